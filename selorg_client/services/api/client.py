"""Selorg API Client - typed HTTP transport facade."""

from typing import Any, Dict, Optional

import aiohttp
from loguru import logger

from ...core.config.settings import ClientSettings, get_settings
from .events import SessionEvents
from .interceptors import BaseUrlResolver, InterceptorPipeline
from .token_manager import TokenManager
from .types import ApiResponse, RequestOptions


class ApiClient:
    """
    HTTP client for the Selorg customer API.

    Every call returns an ``ApiResponse`` or raises ``ApiError``; nothing else
    escapes. Use as an async context manager, or call ``close()`` when done.
    """

    def __init__(
        self,
        token_manager: TokenManager,
        events: Optional[SessionEvents] = None,
        base_url_resolver: Optional[BaseUrlResolver] = None,
        timeout: Optional[float] = None,
        log_requests: Optional[bool] = None,
        settings: Optional[ClientSettings] = None,
    ):
        """
        Initialize API client.

        Args:
            token_manager: Token source for the Authorization header
            events: Session event bus (the token manager's, if omitted)
            base_url_resolver: Callable returning the base URL for each call
            timeout: Default request timeout in seconds
            log_requests: Debug-log requests and responses
            settings: Settings to read defaults from
        """
        settings = settings or get_settings()

        if events is None:
            events = SessionEvents()
            token_manager.bind(events)

        self.token_manager = token_manager
        self.events = events
        self.timeout = timeout if timeout is not None else settings.request_timeout
        self.interceptors = InterceptorPipeline(
            token_manager=token_manager,
            events=events,
            base_url_resolver=base_url_resolver or settings.resolve_api_base_url,
            log_requests=settings.log_requests if log_requests is None else log_requests,
        )

        self._http_session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self):
        """Async context manager entry."""
        await self._init_http_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def _init_http_session(self) -> None:
        """Initialize HTTP session with connection pooling."""
        if self._http_session is None or self._http_session.closed:
            connector = aiohttp.TCPConnector(
                limit=20,
                ttl_dns_cache=120,
                enable_cleanup_closed=True,
            )
            self._http_session = aiohttp.ClientSession(
                connector=connector,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            )
            logger.debug(f"HTTP session initialized (timeout={self.timeout}s)")

    async def close(self) -> None:
        """Close HTTP session."""
        if self._http_session:
            await self._http_session.close()
            self._http_session = None

    @property
    def closed(self) -> bool:
        return self._http_session is None or self._http_session.closed

    async def request(
        self,
        method: str,
        path: str,
        data: Any = None,
        options: Optional[RequestOptions] = None,
    ) -> ApiResponse[Any]:
        """
        Send a request through the interceptor pipeline.

        Args:
            method: HTTP method
            path: Path relative to the base URL
            data: JSON body
            options: Per-call options

        Returns:
            ApiResponse for any 2xx response, including ``success: false``

        Raises:
            ApiError: Normalized error for every failure
        """
        await self._init_http_session()
        prepared = self.interceptors.prepare_request(method, path, data, options)

        kwargs: Dict[str, Any] = {"headers": prepared.headers}
        if prepared.json is not None:
            kwargs["json"] = prepared.json
        if prepared.params:
            kwargs["params"] = prepared.params
        if prepared.timeout is not None:
            kwargs["timeout"] = aiohttp.ClientTimeout(total=prepared.timeout)

        try:
            async with self._http_session.request(
                prepared.method, prepared.url, **kwargs
            ) as response:
                status = response.status
                text = await response.text()
        except Exception as e:
            raise self.interceptors.handle_transport_error(prepared, e) from e

        body = await self.interceptors.handle_response(prepared, status, text)
        return ApiResponse.from_body(body)

    async def get(self, path: str, options: Optional[RequestOptions] = None) -> ApiResponse[Any]:
        return await self.request("GET", path, options=options)

    async def post(
        self, path: str, data: Any = None, options: Optional[RequestOptions] = None
    ) -> ApiResponse[Any]:
        return await self.request("POST", path, data, options)

    async def put(
        self, path: str, data: Any = None, options: Optional[RequestOptions] = None
    ) -> ApiResponse[Any]:
        return await self.request("PUT", path, data, options)

    async def patch(
        self, path: str, data: Any = None, options: Optional[RequestOptions] = None
    ) -> ApiResponse[Any]:
        return await self.request("PATCH", path, data, options)

    async def delete(
        self, path: str, options: Optional[RequestOptions] = None
    ) -> ApiResponse[Any]:
        return await self.request("DELETE", path, options=options)
