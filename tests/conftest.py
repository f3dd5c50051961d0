import httpx
import pytest
from fastapi.testclient import TestClient

from relay.config import Settings
from relay.main import create_app

MISSING = object()


class BrokenStream(httpx.AsyncByteStream):
    """Body that sends one chunk and then loses the connection."""

    def __init__(self, first_chunk=b"0123456789"):
        self.first_chunk = first_chunk
        self.closed = False

    async def __aiter__(self):
        yield self.first_chunk
        raise httpx.ReadError("connection reset by peer")

    async def aclose(self):
        self.closed = True


class FakeOrigin:
    """Canned upstream keyed by absolute URL; records every request it receives."""

    def __init__(self):
        self.routes = {}
        self.errors = {}
        self.requests = []

    def add(self, url, body=b"", content_type=MISSING, status=200, get_status=None):
        if content_type is MISSING:
            content_type = "application/octet-stream"
        self.routes[url] = (body, content_type, status, get_status or status)

    def fail(self, url, exc):
        self.errors[url] = exc

    def methods(self, url=None):
        return [r.method for r in self.requests if url is None or str(r.url) == url]

    def last(self, method):
        return [r for r in self.requests if r.method == method][-1]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url)
        if url in self.errors:
            raise self.errors[url]
        if url not in self.routes:
            return httpx.Response(404, text="not found")

        body, content_type, head_status, get_status = self.routes[url]
        headers = {"content-type": content_type} if content_type else {}
        if isinstance(body, str):
            body = body.encode("utf-8")
        if request.method == "HEAD":
            return httpx.Response(head_status, headers=headers)
        if isinstance(body, httpx.AsyncByteStream):
            return httpx.Response(get_status, headers=headers, stream=body)
        return httpx.Response(get_status, headers=headers, content=body)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def origin():
    return FakeOrigin()


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def app(origin, settings):
    return create_app(settings, transport=httpx.MockTransport(origin))


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client
