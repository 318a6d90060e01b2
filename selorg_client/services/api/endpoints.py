"""API endpoint paths, relative to the customer API base URL."""


class AuthEndpoints:
    SEND_OTP = "/auth/send-otp"
    VERIFY_OTP = "/auth/verify-otp"
    RESEND_OTP = "/auth/resend-otp"
    LOGOUT = "/auth/logout"


class UserEndpoints:
    PROFILE = "/user/profile"


class CartEndpoints:
    CART = "/cart"
    ITEMS = "/cart/items"
    CLEAR = "/cart/clear"

    @staticmethod
    def item(item_id: str) -> str:
        return f"/cart/items/{item_id}"


class OrderEndpoints:
    ORDERS = "/orders"

    @staticmethod
    def detail(order_id: str) -> str:
        return f"/orders/{order_id}"

    @staticmethod
    def cancel(order_id: str) -> str:
        return f"/orders/{order_id}/cancel"


class AddressEndpoints:
    ADDRESSES = "/addresses"
    DEFAULT = "/addresses/default"

    @staticmethod
    def detail(address_id: str) -> str:
        return f"/addresses/{address_id}"


class LegalEndpoints:
    """Public content, read without a bearer token."""

    CONFIG = "/legal/config"
    TERMS = "/legal/terms"
    PRIVACY = "/legal/privacy"
