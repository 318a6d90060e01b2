"""API Interceptors - cross-cutting policy applied around every call."""

import asyncio
import json
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Tuple

import aiohttp
from loguru import logger

from ...core.config.settings import DEFAULT_DEV_API_BASE_URL, get_settings
from ...core.exceptions import (
    CLIENT_ERROR,
    DEFAULT_ERROR_MESSAGE,
    DEFAULT_NETWORK_MESSAGE,
    ApiError,
    MalformedResponseError,
    NetworkError,
)
from ...utils.masking import mask_headers, mask_sensitive_dict
from .events import SessionEvents, SessionInvalidated
from .token_manager import TokenManager
from .types import RequestOptions

BaseUrlResolver = Callable[[], str]

DEFAULT_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}


@dataclass
class PreparedRequest:
    """A request after the outbound interceptors ran."""

    method: str
    path: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    params: Optional[Dict[str, Any]] = None
    json: Any = None
    timeout: Optional[float] = None
    skip_auth: bool = False


def join_url(base_url: str, path: str) -> str:
    """
    Join base URL and path with exactly one slash.

    Absolute URLs in ``path`` are returned unchanged.
    """
    if path.startswith(("http://", "https://")):
        return path
    if not path:
        return base_url.rstrip("/")
    return f"{base_url.rstrip('/')}/{path.lstrip('/')}"


def _merge_headers(defaults: Dict[str, str], overrides: Dict[str, str]) -> Dict[str, str]:
    """Overlay ``overrides`` on ``defaults``, comparing names case-insensitively."""
    merged = {k: v for k, v in defaults.items() if k.lower() not in {o.lower() for o in overrides}}
    merged.update(overrides)
    return merged


def _parse_json(text: str) -> Tuple[Any, bool]:
    try:
        return json.loads(text), True
    except (json.JSONDecodeError, TypeError, ValueError):
        return None, False


def _default_base_url_resolver() -> str:
    return get_settings().resolve_api_base_url()


class InterceptorPipeline:
    """
    Request/response interceptors shared by every transport call.

    Outbound: resolve the base URL fresh, attach the bearer token unless the
    call opted out. Inbound: pass 2xx JSON objects through, normalize every
    failure into ``ApiError`` and announce 401 responses as an invalidated
    session. This is the only place errors are normalized.
    """

    def __init__(
        self,
        token_manager: TokenManager,
        events: SessionEvents,
        base_url_resolver: Optional[BaseUrlResolver] = None,
        log_requests: bool = False,
    ):
        """
        Initialize interceptor pipeline.

        Args:
            token_manager: Source of the bearer token
            events: Bus receiving session invalidation events
            base_url_resolver: Callable returning the current base URL
            log_requests: Debug-log requests and responses
        """
        self._token_manager = token_manager
        self._events = events
        self._resolve = base_url_resolver or _default_base_url_resolver
        self._last_base_url: Optional[str] = None
        self.log_requests = log_requests

    def resolve_base_url(self) -> str:
        """
        Resolve the base URL for the next request.

        Falls back to the last resolved URL, then the development default,
        when the resolver fails.
        """
        try:
            base_url = self._resolve()
            if not base_url:
                raise ValueError("base URL resolver returned an empty value")
        except Exception as e:
            fallback = self._last_base_url or DEFAULT_DEV_API_BASE_URL
            logger.warning(f"Error resolving base URL, using {fallback}: {e}")
            return fallback

        self._last_base_url = base_url.rstrip("/")
        return self._last_base_url

    def prepare_request(
        self,
        method: str,
        path: str,
        data: Any = None,
        options: Optional[RequestOptions] = None,
    ) -> PreparedRequest:
        """
        Apply the outbound interceptors.

        Args:
            method: HTTP method
            path: Path relative to the base URL (or an absolute URL)
            data: JSON body
            options: Per-call options

        Returns:
            PreparedRequest ready for the transport
        """
        options = options or RequestOptions()
        headers = _merge_headers(DEFAULT_HEADERS, options.headers)

        if not options.skip_auth:
            # No token is not an error here, the server decides if auth is required
            token = self._token_manager.get_token()
            if token:
                headers = _merge_headers(headers, {"Authorization": f"Bearer {token}"})

        prepared = PreparedRequest(
            method=method.upper(),
            path=path,
            url=join_url(self.resolve_base_url(), path),
            headers=headers,
            params=options.params,
            json=data,
            timeout=options.timeout,
            skip_auth=options.skip_auth,
        )

        if self.log_requests:
            logger.debug(
                f"[api][request] {prepared.method} {prepared.url} "
                f"headers={mask_headers(prepared.headers)} "
                f"data={mask_sensitive_dict(prepared.json)}"
            )
        return prepared

    async def handle_response(
        self, prepared: PreparedRequest, status: int, text: str
    ) -> Dict[str, Any]:
        """
        Apply the inbound interceptors to a received response.

        Args:
            prepared: The request that produced the response
            status: HTTP status code
            text: Raw response body

        Returns:
            Parsed JSON object for 2xx responses

        Raises:
            ApiError: For non-2xx statuses and malformed 2xx bodies
        """
        body, parsed = _parse_json(text) if text and text.strip() else ({}, True)

        if self.log_requests:
            logger.debug(
                f"[api][response] {status} {prepared.url} data={mask_sensitive_dict(body)}"
            )

        if 200 <= status < 300:
            if not parsed or not isinstance(body, dict):
                logger.error(f"Malformed response from {prepared.path} (status {status})")
                raise MalformedResponseError(status=status)
            return body

        error = ApiError.from_response(
            status,
            body if parsed else None,
            fallback_message=f"Request failed with status code {status}",
        )

        if status == 401:
            await self._events.emit(
                SessionInvalidated(reason="unauthorized", status=status, path=prepared.path)
            )

        logger.warning(
            f"{prepared.method} {prepared.path} failed: {status} "
            f"(code={error.code}, message={error.message})"
        )
        raise error

    def handle_transport_error(self, prepared: PreparedRequest, exc: BaseException) -> ApiError:
        """
        Normalize a failure that produced no HTTP response.

        Args:
            prepared: The request that failed
            exc: Exception raised by the transport

        Returns:
            NetworkError for connectivity failures and timeouts, ApiError with
            code CLIENT_ERROR for anything else
        """
        if isinstance(exc, ApiError):
            return exc

        if isinstance(exc, asyncio.TimeoutError):
            message = (
                f"timeout of {prepared.timeout}s exceeded"
                if prepared.timeout
                else "Request timed out"
            )
            logger.warning(f"{prepared.method} {prepared.path} timed out")
            return NetworkError(message)

        if isinstance(exc, aiohttp.ClientError):
            logger.warning(f"{prepared.method} {prepared.path} network failure: {exc}")
            return NetworkError(str(exc) or DEFAULT_NETWORK_MESSAGE)

        logger.error(f"{prepared.method} {prepared.path} failed unexpectedly: {exc!r}")
        return ApiError(str(exc) or DEFAULT_ERROR_MESSAGE, code=CLIENT_ERROR)
