"""
Shared fixtures for ctrequest tests.
"""

from __future__ import annotations

import time
from typing import Any

import pytest


class FakeClock:
    """Manually advanced clock returning Unix seconds."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingHandler:
    """Async handler returning {'output': param} and recording each call."""

    def __init__(self):
        self.calls: list[tuple[Any, ...]] = []
        self.call_times: list[float] = []

    async def __call__(self, *args: Any) -> Any:
        self.calls.append(args)
        self.call_times.append(time.monotonic())
        return {"output": args[0] if len(args) == 1 else list(args)}


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def handler() -> RecordingHandler:
    return RecordingHandler()


@pytest.fixture
def cache_dir(tmp_path):
    return tmp_path / "cache"
