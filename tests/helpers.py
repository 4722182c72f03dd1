"""Test doubles shared across the test suite."""

from __future__ import annotations

import json
from collections.abc import Iterable
from typing import Any

import httpx

# Status codes (or exceptions) a scripted endpoint answers with, in order
Script = Iterable[int | Exception]


class RecordingEndpoint:
    """Scripted webhook receiver for httpx.MockTransport.

    Answers each request with the next status code in the script (the last
    one repeats) or raises the next exception, and records every request.
    """

    def __init__(self, script: Script = (200,)) -> None:
        self._script = list(script)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        index = min(len(self.requests), len(self._script)) - 1
        step = self._script[index]
        if isinstance(step, Exception):
            raise step
        return httpx.Response(step, request=request)

    @property
    def calls(self) -> int:
        return len(self.requests)

    def json_bodies(self) -> list[dict[str, Any]]:
        return [json.loads(r.content) for r in self.requests]

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


class SleepRecorder:
    """Stand-in for asyncio.sleep that records requested waits."""

    def __init__(self) -> None:
        self.waits: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.waits.append(seconds)
