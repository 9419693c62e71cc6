"""Shared test fixtures for confgetter."""

from __future__ import annotations

import base64
from collections.abc import Callable

import httpx
import pytest

from confgetter.getters import ConfigServerGetter

YAML_BODY = (
    "yaml:\n"
    "  key1: value1\n"
    "  key2: value2\n"
    "  key3:\n"
    "    subkey3_1: subvalue3_1\n"
    "    subkey3_2: subvalue3_2\n"
)
LIST_BODY = "items:\n  - name: a\n  - name: b\n"

Route = Callable[[httpx.Request], httpx.Response]


def _text(body: str, **headers: str) -> Route:
    def _respond(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text=body, headers=headers, request=request)
    return _respond


def _get_only(body: str) -> Route:
    def _respond(request: httpx.Request) -> httpx.Response:
        if request.method != "GET":
            return httpx.Response(405, request=request)
        return httpx.Response(200, text=body, request=request)
    return _respond


def _meta_auth(request: httpx.Request) -> httpx.Response:
    expected = "Basic " + base64.b64encode(b"foo:bar").decode("ascii")
    if request.headers.get("authorization") != expected:
        return httpx.Response(401, request=request)
    return httpx.Response(200, text="ok", request=request)


class FakeConfigServer:
    """In-process HTTP endpoint served through ``httpx.MockTransport``."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.routes: dict[str, Route] = {
            "/file": _text("Hello\n"),
            "/yaml": _text(YAML_BODY),
            "/list": _text(LIST_BODY),
            "/broken": _text("a: b: c\n"),
            "/get-only": _get_only(YAML_BODY),
            "/meta-auth": _meta_auth,
            "/loop": _text("", **{"X-Terraform-Get": "/loop"}),
        }

    def add_route(self, path: str, route: Route) -> None:
        self.routes[path] = route

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(request.url.path)
        if route is None:
            return httpx.Response(404, request=request)
        return route(request)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    @property
    def get_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == "GET"]


@pytest.fixture
def server() -> FakeConfigServer:
    return FakeConfigServer()


@pytest.fixture
async def http_client(server: FakeConfigServer):
    async with server.client() as client:
        yield client


@pytest.fixture
def getter(http_client: httpx.AsyncClient) -> ConfigServerGetter:
    """Config-server getter wired to the fake server."""
    g = ConfigServerGetter()
    g.http_getter.client = http_client
    return g
