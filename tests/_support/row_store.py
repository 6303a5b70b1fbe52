"""Row-store doubles: a fake clock and a MockTransport router."""

from __future__ import annotations

import json
from typing import Any

import httpx

SCRIPT_URL = "https://script.example.test/macros/s/abc/exec"


class FakeClock:
    """Callable clock returning epoch seconds under test control."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RowStoreRouter:
    """MockTransport handler keyed by the ``action`` query parameter.

    ``routes`` values are either the ``data`` to wrap in a success envelope
    or a callable ``(request) -> httpx.Response`` for full control.
    """

    def __init__(self, routes: dict[str, Any] | None = None):
        self.routes: dict[str, Any] = dict(routes or {})
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        action = request.url.params.get("action")
        if request.method == "POST":
            action = "submit"
        route = self.routes.get(action)
        if route is None:
            return httpx.Response(200, json={"success": False, "error": f"Unknown action: {action}"})
        if callable(route):
            return route(request)
        return httpx.Response(200, json={"success": True, "data": route})

    def calls(self, action: str) -> int:
        if action == "submit":
            return sum(1 for r in self.requests if r.method == "POST")
        return sum(1 for r in self.requests if r.url.params.get("action") == action)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


def envelope(data: Any = None, *, success: bool = True, **extra: Any) -> httpx.Response:
    body = {"success": success, "data": data, **extra}
    return httpx.Response(200, content=json.dumps(body), headers={"content-type": "application/json"})


async def no_sleep(_delay: float) -> None:
    return None
