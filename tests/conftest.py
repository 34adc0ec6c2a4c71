"""Shared fixtures: filter-list texts and a fake list server.

Every test that needs the network goes through ListServer, an
httpx.MockTransport that serves canned list bodies and records each URL
it was asked for.

Requires: pip install pytest-asyncio
"""
from __future__ import annotations

import asyncio

import httpx
import pytest

from tabshield.engine.compiled import preprocess
from tabshield.engine.engine import Engine
from tabshield.engine.fetcher import ListFetcher

LIST_A_URL = "https://lists.test/a.txt"
LIST_B_URL = "https://lists.test/b.txt"
LIST_C_URL = "https://lists.test/c.txt"

LIST_A = """\
[Adblock Plus 2.0]
! Title: list a
||ads.example.com^
@@||ads.example.com/ok/
example.org##.banner
"""

LIST_B = """\
# hosts format
0.0.0.0 tracker.example.net
127.0.0.1 localhost
"""

LIST_C = """\
||cdn.third.test^$third-party
"""


class ListServer:
    """Serves list bodies by URL. An int value is returned as that status."""

    def __init__(self, lists: dict[str, str | int], gate: asyncio.Event | None = None) -> None:
        self.lists = dict(lists)
        self.gate = gate
        self.requests: list[str] = []

    async def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requests.append(url)
        if self.gate is not None:
            await self.gate.wait()
        body = self.lists.get(url)
        if body is None:
            return httpx.Response(404)
        if isinstance(body, int):
            return httpx.Response(body)
        return httpx.Response(200, text=body)

    def fetcher(self) -> ListFetcher:
        return ListFetcher(transport=httpx.MockTransport(self.handler))


def build_engine(*texts: str) -> Engine:
    """Engine from raw list texts, no network involved."""
    return Engine([
        preprocess(index, f"https://lists.test/{index}.txt", text)
        for index, text in enumerate(texts)
    ])


@pytest.fixture()
def list_server() -> ListServer:
    return ListServer({LIST_A_URL: LIST_A, LIST_B_URL: LIST_B, LIST_C_URL: LIST_C})


@pytest.fixture()
def engine_a() -> Engine:
    return build_engine(LIST_A)
