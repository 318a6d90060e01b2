"""Tests for the request/response interceptor pipeline."""

import asyncio

import aiohttp
import pytest

from selorg_client.core.config.settings import DEFAULT_DEV_API_BASE_URL
from selorg_client.core.exceptions import (
    CLIENT_ERROR,
    MALFORMED_RESPONSE,
    NETWORK_ERROR,
    ApiError,
    NetworkError,
    NotFoundError,
    ServerError,
    UnauthorizedError,
)
from selorg_client.services.api.interceptors import InterceptorPipeline, join_url
from selorg_client.services.api.types import RequestOptions

BASE_URL = "http://api.test/api/v1/customer"


@pytest.fixture
def pipeline(token_manager, session_events):
    return InterceptorPipeline(token_manager, session_events, base_url_resolver=lambda: BASE_URL)


class TestJoinUrl:
    """Test URL joining."""

    @pytest.mark.parametrize(
        "base,path,expected",
        [
            ("http://h/api", "/auth/send-otp", "http://h/api/auth/send-otp"),
            ("http://h/api/", "auth/send-otp", "http://h/api/auth/send-otp"),
            ("http://h/api/", "/auth/send-otp", "http://h/api/auth/send-otp"),
            ("http://h/api", "", "http://h/api"),
            ("http://h/api", "https://cdn.test/x", "https://cdn.test/x"),
        ],
    )
    def test_join(self, base, path, expected):
        assert join_url(base, path) == expected


class TestPrepareRequest:
    """Test outbound interceptors."""

    def test_no_token_no_header(self, pipeline):
        """Test missing token is not an error and adds no header."""
        prepared = pipeline.prepare_request("get", "/user/profile")

        assert prepared.method == "GET"
        assert prepared.url == f"{BASE_URL}/user/profile"
        assert "Authorization" not in prepared.headers
        assert prepared.headers["Content-Type"] == "application/json"

    @pytest.mark.asyncio
    async def test_bearer_token_attached(self, pipeline, token_manager):
        """Test the current token is attached."""
        await token_manager.set_tokens("tok-1", "ref-1")

        prepared = pipeline.prepare_request("GET", "/user/profile")

        assert prepared.headers["Authorization"] == "Bearer tok-1"

    @pytest.mark.asyncio
    async def test_skip_auth(self, pipeline, token_manager):
        """Test skip_auth requests never carry the token."""
        await token_manager.set_tokens("tok-1")

        prepared = pipeline.prepare_request(
            "POST", "/auth/send-otp", {"phoneNumber": "9876543210"}, RequestOptions(skip_auth=True)
        )

        assert "Authorization" not in prepared.headers
        assert prepared.skip_auth is True
        assert prepared.json == {"phoneNumber": "9876543210"}

    @pytest.mark.asyncio
    async def test_token_read_per_request(self, pipeline, token_manager):
        """Test a token change applies to the next request."""
        await token_manager.set_tokens("tok-1")
        first = pipeline.prepare_request("GET", "/cart")
        await token_manager.set_tokens("tok-2")
        second = pipeline.prepare_request("GET", "/cart")

        assert first.headers["Authorization"] == "Bearer tok-1"
        assert second.headers["Authorization"] == "Bearer tok-2"

    def test_custom_headers_merged_case_insensitively(self, pipeline):
        """Test caller headers replace defaults of the same name."""
        prepared = pipeline.prepare_request(
            "POST", "/cart", options=RequestOptions(headers={"content-type": "text/plain", "X-Trace": "1"})
        )

        assert prepared.headers["content-type"] == "text/plain"
        assert "Content-Type" not in prepared.headers
        assert prepared.headers["X-Trace"] == "1"

    def test_options_forwarded(self, pipeline):
        """Test params and timeout are carried through."""
        prepared = pipeline.prepare_request(
            "GET", "/orders", options=RequestOptions(params={"page": 2}, timeout=5)
        )

        assert prepared.params == {"page": 2}
        assert prepared.timeout == 5

    def test_base_url_resolved_per_request(self, token_manager, session_events):
        """Test the resolver is consulted on every call."""
        bases = iter(["http://one.test/api", "http://two.test/api/"])
        pipeline = InterceptorPipeline(token_manager, session_events, base_url_resolver=lambda: next(bases))

        assert pipeline.prepare_request("GET", "/cart").url == "http://one.test/api/cart"
        assert pipeline.prepare_request("GET", "/cart").url == "http://two.test/api/cart"

    def test_resolver_failure_uses_last_good_base(self, token_manager, session_events):
        """Test a failing resolver falls back to the last resolved URL."""
        calls = {"n": 0}

        def resolver():
            calls["n"] += 1
            if calls["n"] > 1:
                raise RuntimeError("config unavailable")
            return "http://one.test/api"

        pipeline = InterceptorPipeline(token_manager, session_events, base_url_resolver=resolver)
        pipeline.prepare_request("GET", "/cart")

        assert pipeline.prepare_request("GET", "/cart").url == "http://one.test/api/cart"

    def test_resolver_failure_without_history(self, token_manager, session_events):
        """Test a failing resolver with no history uses the development default."""

        def resolver():
            raise RuntimeError("config unavailable")

        pipeline = InterceptorPipeline(token_manager, session_events, base_url_resolver=resolver)

        assert pipeline.resolve_base_url() == DEFAULT_DEV_API_BASE_URL

    def test_empty_base_url_falls_back(self, token_manager, session_events):
        """Test an empty resolved URL is treated as a failure."""
        pipeline = InterceptorPipeline(token_manager, session_events, base_url_resolver=lambda: "")
        assert pipeline.resolve_base_url() == DEFAULT_DEV_API_BASE_URL


class TestHandleResponse:
    """Test inbound interceptors."""

    @pytest.fixture
    def prepared(self, pipeline):
        return pipeline.prepare_request("GET", "/user/profile")

    @pytest.mark.asyncio
    async def test_success_passthrough(self, pipeline, prepared):
        """Test 2xx JSON objects pass through unchanged."""
        body = await pipeline.handle_response(prepared, 200, '{"success": false, "message": "OTP expired"}')
        assert body == {"success": False, "message": "OTP expired"}

    @pytest.mark.asyncio
    async def test_empty_success_body(self, pipeline, prepared):
        """Test an empty 2xx body becomes an empty object."""
        assert await pipeline.handle_response(prepared, 204, "") == {}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["not json", "[1, 2]", '"text"'])
    async def test_malformed_success_body(self, pipeline, prepared, text):
        """Test 2xx bodies that are not JSON objects raise."""
        with pytest.raises(ApiError) as exc_info:
            await pipeline.handle_response(prepared, 200, text)

        assert exc_info.value.code == MALFORMED_RESPONSE
        assert exc_info.value.status == 200

    @pytest.mark.asyncio
    async def test_401_clears_tokens_before_raising(self, pipeline, prepared, token_manager):
        """Test 401 invalidates the session before the error surfaces."""
        await token_manager.set_tokens("tok-1", "ref-1")

        with pytest.raises(UnauthorizedError) as exc_info:
            await pipeline.handle_response(prepared, 401, '{"message": "Token expired", "code": "TOKEN_EXPIRED"}')

        assert token_manager.is_authenticated() is False
        assert token_manager.get_refresh_token() is None
        assert exc_info.value.message == "Token expired"
        assert exc_info.value.code == "TOKEN_EXPIRED"

    @pytest.mark.asyncio
    async def test_401_emits_event(self, pipeline, prepared, session_events):
        """Test the invalidation event carries status and path."""
        received = []
        session_events.subscribe(received.append)

        with pytest.raises(UnauthorizedError):
            await pipeline.handle_response(prepared, 401, "")

        assert len(received) == 1
        assert received[0].status == 401
        assert received[0].path == "/user/profile"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status,error_cls", [(403, ApiError), (404, NotFoundError), (500, ServerError)])
    async def test_other_failures_keep_session(self, pipeline, prepared, token_manager, status, error_cls):
        """Test non-401 failures do not touch the tokens."""
        await token_manager.set_tokens("tok-1")

        with pytest.raises(error_cls):
            await pipeline.handle_response(prepared, status, '{"message": "nope"}')

        assert token_manager.get_token() == "tok-1"

    @pytest.mark.asyncio
    async def test_fallback_message(self, pipeline, prepared):
        """Test bodies without a message use the transport message."""
        with pytest.raises(ApiError) as exc_info:
            await pipeline.handle_response(prepared, 502, "<html>Bad Gateway</html>")

        assert exc_info.value.message == "Request failed with status code 502"
        assert exc_info.value.status == 502

    @pytest.mark.asyncio
    async def test_field_errors(self, pipeline, prepared):
        """Test validation errors are normalized."""
        with pytest.raises(ApiError) as exc_info:
            await pipeline.handle_response(
                prepared, 422, '{"message": "Invalid", "errors": {"phoneNumber": ["is required"]}}'
            )

        assert exc_info.value.errors == {"phoneNumber": ["is required"]}


class TestHandleTransportError:
    """Test normalization of failures without a response."""

    @pytest.fixture
    def prepared(self, pipeline):
        return pipeline.prepare_request("GET", "/user/profile", options=RequestOptions(timeout=5))

    def test_connection_error(self, pipeline, prepared):
        """Test connectivity failures become network errors."""
        error = pipeline.handle_transport_error(prepared, aiohttp.ClientConnectionError("refused"))

        assert isinstance(error, NetworkError)
        assert error.code == NETWORK_ERROR
        assert error.status is None
        assert error.message == "refused"

    def test_timeout(self, pipeline, prepared):
        """Test timeouts become network errors."""
        error = pipeline.handle_transport_error(prepared, asyncio.TimeoutError())

        assert error.code == NETWORK_ERROR
        assert error.message == "timeout of 5s exceeded"

    def test_api_error_passthrough(self, pipeline, prepared):
        """Test already normalized errors are returned as is."""
        original = ApiError("boom", code="X")
        assert pipeline.handle_transport_error(prepared, original) is original

    def test_unexpected_error(self, pipeline, prepared):
        """Test other exceptions become client errors."""
        error = pipeline.handle_transport_error(prepared, UnicodeDecodeError("utf-8", b"\xff", 0, 1, "bad"))

        assert error.code == CLIENT_ERROR
        assert error.status is None
