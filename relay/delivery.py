import enum
from typing import AsyncIterator, Iterable, Optional, Union

from fastapi import Response
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from relay.media_types import HLS_MIME_TYPE, SEGMENT_MIME_TYPE, is_manifest


class DeliveryMode(enum.Enum):
    MANIFEST = "manifest"  # rewritten text, buffered
    BUFFERED = "buffered"  # binary, buffered
    STREAMED = "streamed"  # passed through as it arrives


def select_mode(content_type: Optional[str], buffered_prefixes: Iterable[str]) -> DeliveryMode:
    """Pick the delivery strategy for an allowed content type, once per request."""
    if is_manifest(content_type):
        return DeliveryMode.MANIFEST
    content_type = (content_type or "").lower()
    if any(content_type.startswith(prefix.lower()) for prefix in buffered_prefixes):
        return DeliveryMode.BUFFERED
    return DeliveryMode.STREAMED


def relay_headers() -> dict:
    return {"Content-Disposition": "inline", "Connection": "keep-alive"}


def deliver(
    content_type: Optional[str],
    body: Union[bytes, str, AsyncIterator[bytes]],
    mode: DeliveryMode,
    background: Optional[BackgroundTask] = None,
) -> Response:
    if mode is DeliveryMode.MANIFEST:
        return Response(content=body, media_type=HLS_MIME_TYPE, headers=relay_headers())

    if mode is DeliveryMode.BUFFERED:
        return Response(content=body, media_type=content_type, headers=relay_headers(), background=background)

    return StreamingResponse(body, media_type=content_type, headers=relay_headers(), background=background)


def deliver_segment(content_type: Optional[str], body: bytes) -> Response:
    return deliver(content_type or SEGMENT_MIME_TYPE, body, DeliveryMode.BUFFERED)
