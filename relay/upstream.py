import enum
import logging
from dataclasses import dataclass
from typing import AsyncIterator, Iterable, Optional, Type, Union

import httpx

from relay.config import Settings
from relay.errors import UpstreamError

logger = logging.getLogger("relay.upstream")

# How much of a failed upstream body ends up in the error log
ERROR_BODY_PREVIEW = 512


class BodyMode(enum.Enum):
    BINARY = "binary"
    TEXT = "text"


def body_mode_for(content_type: Optional[str], binary_prefixes: Iterable[str]) -> BodyMode:
    content_type = (content_type or "").lower()
    if any(content_type.startswith(prefix.lower()) for prefix in binary_prefixes):
        return BodyMode.BINARY
    return BodyMode.TEXT


@dataclass
class Fetched:
    content_type: Optional[str]
    body: Union[bytes, str]


def segment_limits(settings: Settings) -> httpx.Limits:
    return httpx.Limits(
        max_connections=settings.segment_max_connections,
        max_keepalive_connections=settings.segment_max_keepalive,
        keepalive_expiry=settings.segment_keepalive_expiry,
    )


class UpstreamClient:
    """Outbound HEAD/GET against arbitrary URLs on behalf of a relay request.

    Every httpx failure (transport error, timeout, non-2xx) surfaces as an
    UpstreamError; the details only go to the log.
    """

    def __init__(
        self,
        *,
        timeout: float = 30.0,
        user_agent: Optional[str] = None,
        origin: Optional[str] = None,
        persistent: bool = False,
        limits: Optional[httpx.Limits] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        error_type: Type[UpstreamError] = UpstreamError,
    ):
        headers = {"Accept": "*/*"}
        if user_agent:
            headers["User-Agent"] = user_agent
        if origin:
            headers["Origin"] = origin
        if persistent:
            headers["Connection"] = "keep-alive"

        options = {"follow_redirects": True, "timeout": timeout, "headers": headers}
        if limits is not None:
            options["limits"] = limits
        if transport is not None:
            options["transport"] = transport
        self._client = httpx.AsyncClient(**options)
        self._error_type = error_type
        self.persistent = persistent

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        persistent: bool = False,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        error_type: Type[UpstreamError] = UpstreamError,
    ) -> "UpstreamClient":
        return cls(
            timeout=settings.upstream_timeout,
            user_agent=settings.user_agent,
            origin=settings.default_origin,
            persistent=persistent,
            limits=segment_limits(settings) if persistent else None,
            transport=transport,
            error_type=error_type,
        )

    @property
    def is_closed(self) -> bool:
        return self._client.is_closed

    async def __aenter__(self) -> "UpstreamClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def probe(self, url: str, referrer: Optional[str] = None) -> Optional[str]:
        """HEAD the resource and return its Content-Type, or None when it has none."""
        headers = self._headers(referrer)
        try:
            response = await self._client.head(url, headers=headers)
            response.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise self._failure("HEAD", url, headers, exc) from exc

        content_type = response.headers.get("content-type")
        logger.debug("HEAD %s status=%s content_type=%s", url, response.status_code, content_type)
        return content_type

    async def fetch(
        self, url: str, referrer: Optional[str] = None, mode: BodyMode = BodyMode.BINARY
    ) -> Fetched:
        """GET the whole resource into memory, as bytes or as decoded text."""
        headers = self._headers(referrer)
        try:
            response = await self._client.get(url, headers=headers)
            response.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise self._failure("GET", url, headers, exc) from exc

        logger.debug("GET %s status=%s bytes=%s mode=%s", url, response.status_code, len(response.content), mode.value)
        body = response.content if mode is BodyMode.BINARY else response.text
        return Fetched(content_type=response.headers.get("content-type"), body=body)

    async def stream(self, url: str, referrer: Optional[str] = None) -> httpx.Response:
        """GET with the body left unread; hand the response to relay_body, which closes it."""
        headers = self._headers(referrer)
        try:
            request = self._client.build_request("GET", url, headers=headers)
            response = await self._client.send(request, stream=True)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise self._failure("GET", url, headers, exc) from exc

        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            await response.aclose()
            raise self._failure("GET", url, headers, exc) from exc

        logger.debug("GET %s status=%s streaming", url, response.status_code)
        return response

    async def relay_body(self, url: str, response: httpx.Response) -> AsyncIterator[bytes]:
        """Yield a streamed body, then close the response and this client however it ends.

        A failure here comes after the status line went out, so it is logged and
        re-raised for the server to abort the connection.
        """
        try:
            async for chunk in response.aiter_bytes():
                yield chunk
        except httpx.HTTPError as exc:
            logger.error("Upstream GET %s failed mid-stream: %s", url, str(exc) or type(exc).__name__)
            raise
        finally:
            await response.aclose()
            await self.aclose()

    def _headers(self, referrer: Optional[str]) -> dict:
        # Sent verbatim: origins check it against their own allow-lists
        return {"Referer": referrer} if referrer else {}

    def _failure(self, method: str, url: str, headers: dict, exc: Exception) -> UpstreamError:
        status = None
        body = None
        if isinstance(exc, httpx.HTTPStatusError):
            status = exc.response.status_code
            try:
                body = exc.response.text[:ERROR_BODY_PREVIEW]
            except httpx.ResponseNotRead:
                body = None

        logger.error(
            "Upstream %s %s failed: %s | status=%s response=%r headers=%s",
            method,
            url,
            str(exc) or type(exc).__name__,
            status,
            body,
            {**dict(self._client.headers), **headers},
        )
        return self._error_type()
