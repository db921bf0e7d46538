"""Helpers shared by the test modules."""

import json
from pathlib import Path
from typing import Any

import httpx

FEED_URL = "https://feed.test/api/downloads"
BINARY_URL = "https://releases.gitbutler.com/x/but"


def fake_binary_script(version: str) -> bytes:
    """Contents of a stand-in ``but`` that prints ``version``."""
    return f'#!/bin/sh\necho "but {version}"\n'.encode()


def write_fake_binary(path: Path, version: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(fake_binary_script(version))
    path.chmod(0o755)
    return path


def release_feed(version: str = "2.2.19", builds: list[dict[str, Any]] | None = None) -> bytes:
    """Serialise a feed with a single release."""
    if builds is None:
        builds = [{"arch": "x86_64", "file": "but", "url": BINARY_URL}]
    return json.dumps([{"version": version, "builds": builds}]).encode()


class FakeServer:
    """Serves canned responses through httpx.MockTransport and records requests."""

    def __init__(self) -> None:
        self.routes: dict[str, tuple[int, bytes] | Exception] = {}
        self.requests: list[httpx.Request] = []
        self.client = httpx.Client(transport=httpx.MockTransport(self._handle))

    def add(self, url: str, content: bytes = b"", status: int = 200) -> None:
        self.routes[url] = (status, content)

    def fail(self, url: str, error: Exception) -> None:
        self.routes[url] = error

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(str(request.url))
        if route is None:
            return httpx.Response(404)
        if isinstance(route, Exception):
            raise route
        status, content = route
        return httpx.Response(status, content=content)

    @property
    def downloads(self) -> list[httpx.Request]:
        return [r for r in self.requests if str(r.url) != FEED_URL]
