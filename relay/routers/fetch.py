import logging
from typing import Optional

import httpx
from fastapi import APIRouter, Query, Request, Response
from starlette.background import BackgroundTask

from relay.delivery import DeliveryMode, deliver, deliver_segment, select_mode
from relay.errors import UnsupportedTypeError, ValidationError
from relay.rewriter import relay_bases, rewrite
from relay.upstream import BodyMode, UpstreamClient, body_mode_for

logger = logging.getLogger("relay.fetch")

router = APIRouter(prefix="/fetch")


def require_url(url: Optional[str]) -> str:
    if not url or not url.strip():
        raise ValidationError()
    # Query decoding turns a literal '+' into a space
    if " " in url:
        url = url.replace(" ", "+")
    try:
        parsed = httpx.URL(url)
    except httpx.InvalidURL:
        raise ValidationError("Invalid URL provided") from None
    if parsed.scheme not in ("http", "https") or not parsed.host:
        raise ValidationError("Invalid URL provided")
    return url


@router.get("")
async def fetch_entry(
    request: Request,
    url: Optional[str] = Query(None, description="The URL of the video or image."),
    ref: Optional[str] = Query(None, description="The referrer URL"),
) -> Response:
    target_url = require_url(url)
    state = request.app.state
    settings = state.settings

    upstream = UpstreamClient.from_settings(settings, transport=state.transport)
    streaming = False
    try:
        # 1. Probe, then gate before anything reaches the client
        content_type = await upstream.probe(target_url, ref)
        if not content_type:
            logger.info("Rejecting %s: upstream sent no content type", target_url)
            raise UnsupportedTypeError(None)
        if not state.allow_list.allows(content_type):
            logger.info("Rejecting %s: %s is not an allowed media type", target_url, content_type)
            raise UnsupportedTypeError(content_type)

        mode = select_mode(content_type, settings.buffered_types)
        logger.debug("Relaying %s as %s (%s)", target_url, mode.value, content_type)

        # 2. Stream anything we neither rewrite nor buffer
        if mode is DeliveryMode.STREAMED:
            upstream_response = await upstream.stream(target_url, ref)
            streaming = True
            return deliver(
                content_type,
                upstream.relay_body(target_url, upstream_response),
                mode,
                background=BackgroundTask(upstream.aclose),
            )

        fetched = await upstream.fetch(target_url, ref, body_mode_for(content_type, settings.buffered_types))

        # 3. Re-point every segment and nested playlist through this host
        if mode is DeliveryMode.MANIFEST:
            base_fetch_url, base_segment_url = relay_bases(settings.public_scheme, request.url.netloc)
            body = fetched.body if isinstance(fetched.body, str) else fetched.body.decode("utf-8")
            return deliver(content_type, rewrite(body, target_url, base_fetch_url, base_segment_url), mode)

        return deliver(content_type, fetched.body, mode)
    finally:
        if not streaming:
            await upstream.aclose()


@router.get("/segment")
async def fetch_segment(
    request: Request,
    url: Optional[str] = Query(None, description="The URL of the video segment."),
) -> Response:
    target_url = require_url(url)
    upstream: UpstreamClient = request.app.state.segment_upstream

    fetched = await upstream.fetch(target_url, mode=BodyMode.BINARY)
    return deliver_segment(fetched.content_type, fetched.body)
