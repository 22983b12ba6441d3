"""Shared fakes for simulation and room tests."""

from __future__ import annotations

import json


class FakeClock:
    """Millisecond clock advanced by hand."""

    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


class FakeChannel:
    """Records every frame a room sends to one client."""

    def __init__(self, fail: bool = False) -> None:
        self.frames: list[dict] = []
        self.fail = fail

    async def send_text(self, data: str) -> None:
        if self.fail:
            raise ConnectionError("socket closed")
        self.frames.append(json.loads(data))

    def types(self) -> list[str]:
        return [f["type"] for f in self.frames]

    def of_type(self, kind: str) -> list[dict]:
        return [f for f in self.frames if f["type"] == kind]
