import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from relay import __version__
from relay.config import Settings, get_settings
from relay.errors import SegmentUpstreamError, install_error_handlers
from relay.routers.fetch import router as fetch_router
from relay.routers.index import router as index_router
from relay.upstream import UpstreamClient

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    # httpx logs every request at INFO; the relay logs its own
    logging.getLogger("httpx").setLevel(logging.WARNING)


def create_app(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """Build the relay app.

    ``transport`` replaces the network for every upstream client, which is how
    the tests talk to fake origins.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger = logging.getLogger("relay.startup")
        app.state.segment_upstream = UpstreamClient.from_settings(
            settings, persistent=True, transport=transport, error_type=SegmentUpstreamError
        )
        logger.info(
            "Segment pool ready (max_connections=%s, max_keepalive=%s), %d allowed media types",
            settings.segment_max_connections,
            settings.segment_max_keepalive,
            len(app.state.allow_list.prefixes),
        )
        try:
            yield
        finally:
            await app.state.segment_upstream.aclose()

    app = FastAPI(title="m3u8-relay", version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.allow_list = settings.allow_list()
    app.state.transport = transport

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["*"],
    )
    install_error_handlers(app)

    app.include_router(index_router)
    app.include_router(fetch_router)
    return app
