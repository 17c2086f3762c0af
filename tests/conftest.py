"""Pytest configuration shared across the suite."""

import asyncio

import pytest

from db import database
from db.models import Base
from whoop.relay_client import RelayResponse
from whoop.storage import MemoryStorage
from whoop.token_store import TokenStore

NOW_MS = 1_700_000_000_000


class FakeClock:
    def __init__(self, now: int = NOW_MS) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += int(seconds * 1000)


class FakeRelay:
    """Stands in for RelayClient. Queue responses (or exceptions) per action."""

    def __init__(self) -> None:
        self.api_responses: list = []
        self.refresh_responses: list = []
        self.exchange_responses: list = []
        self.calls: list[tuple] = []

    @staticmethod
    async def _next(queue: list):
        await asyncio.sleep(0)
        item = queue.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    async def api(self, endpoint: str, access_token: str) -> RelayResponse:
        self.calls.append(("api", endpoint, access_token))
        return await self._next(self.api_responses)

    async def refresh(self, refresh_token: str) -> RelayResponse:
        self.calls.append(("refresh", refresh_token))
        return await self._next(self.refresh_responses)

    async def exchange_code(self, code: str, redirect_uri: str) -> RelayResponse:
        self.calls.append(("exchange", code, redirect_uri))
        return await self._next(self.exchange_responses)

    def actions(self) -> list[str]:
        return [c[0] for c in self.calls]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def token_store(storage, clock) -> TokenStore:
    return TokenStore(storage, clock=clock)


@pytest.fixture
def relay() -> FakeRelay:
    return FakeRelay()


@pytest.fixture
def memory_db():
    database.configure("sqlite://")
    Base.metadata.create_all(database.engine)
    yield database.engine
    Base.metadata.drop_all(database.engine)
