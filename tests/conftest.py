from __future__ import annotations

import pytest

from config.settings import Settings
from storage.directory import AccountDirectory
from storage.passwords import Pbkdf2Hasher, PlaintextHasher
from storage.record_store import InMemoryRecordStore


class FakeSleep:
    """Records requested delays instead of waiting."""

    def __init__(self):
        self.calls: list[float] = []
        self.hooks: list = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        for hook in list(self.hooks):
            hook(seconds)


@pytest.fixture
def fake_sleep() -> FakeSleep:
    return FakeSleep()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        submit_delay=1.0,
        login_handoff_delay=1.0,
        signup_handoff_delay=1.5,
        reset_revert_delay=2.0,
    )


@pytest.fixture
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def plain_directory(store) -> AccountDirectory:
    return AccountDirectory(store, PlaintextHasher())


@pytest.fixture
def hashed_directory(store) -> AccountDirectory:
    # low iteration count keeps the suite fast
    return AccountDirectory(store, Pbkdf2Hasher(iterations=1_000))
