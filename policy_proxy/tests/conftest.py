from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from policy_proxy.app.core.config import Settings
from policy_proxy.main import create_app


class FakeClock:
    """Millisecond clock the tests move by hand."""

    def __init__(self, start_ms: int = 1_700_000_000_000):
        self.now = start_ms

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_app():
    """Fresh app (own menu cache + ledger) built from explicit settings overrides."""

    def _make(**overrides):
        return create_app(Settings(**overrides))

    return _make


@pytest.fixture
def client(make_app):
    with TestClient(make_app()) as c:
        yield c
