"""API transport - token manager, interceptors and typed client."""

from selorg_client.services.api.client import ApiClient
from selorg_client.services.api.events import SessionEvents, SessionInvalidated
from selorg_client.services.api.interceptors import InterceptorPipeline, PreparedRequest
from selorg_client.services.api.token_manager import TokenManager
from selorg_client.services.api.types import ApiResponse, RequestOptions

__all__ = [
    "ApiClient",
    "ApiResponse",
    "RequestOptions",
    "InterceptorPipeline",
    "PreparedRequest",
    "SessionEvents",
    "SessionInvalidated",
    "TokenManager",
]
