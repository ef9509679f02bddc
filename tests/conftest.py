"""
Pytest configuration and fixtures for supercache tests.
"""

from __future__ import annotations

import os
import random
import string
from collections.abc import Callable, Iterable, Mapping
from typing import Generator
from unittest.mock import patch

import pytest

from supercache.cache.facade import SuperCache
from supercache.cache.memory_store import InMemoryBoundedStore
from supercache.config import Settings, clear_settings_cache

ALPHABET = string.ascii_letters + string.digits


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingStore(InMemoryBoundedStore):
    """In-memory store that records every call made against it."""

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self.calls: list[tuple[str, object]] = []

    def get_all(self, keys: Iterable[str]) -> dict[str, str]:
        keys = list(keys)
        self.calls.append(("get_all", keys))
        return super().get_all(keys)

    def put_all(self, values: Mapping[str, str], ttl_seconds: int) -> None:
        self.calls.append(("put_all", (dict(values), ttl_seconds)))
        super().put_all(values, ttl_seconds)

    def remove_all(self, keys: Iterable[str]) -> None:
        keys = list(keys)
        self.calls.append(("remove_all", keys))
        super().remove_all(keys)

    def names(self) -> list[str]:
        return [name for name, _ in self.calls]


@pytest.fixture
def clock() -> FakeClock:
    """Provide a controllable clock for TTL tests."""
    return FakeClock()


@pytest.fixture
def settings() -> Settings:
    """Provide default settings, ignoring any .env file."""
    return Settings(_env_file=None)


@pytest.fixture
def store(clock: FakeClock) -> RecordingStore:
    """Provide a bounded store with host-service limits."""
    return RecordingStore(clock=clock)


@pytest.fixture
def cache(store: RecordingStore, settings: Settings) -> SuperCache:
    """Provide a SuperCache over the recording store."""
    return SuperCache(store, settings=settings)


@pytest.fixture
def mock_env_vars() -> Generator[dict[str, str], None, None]:
    """Provide SUPERCACHE_* environment variables for testing."""
    env_vars = {
        "SUPERCACHE_MAX_VALUE_BYTES": "50000",
        "SUPERCACHE_MAX_KEY_LENGTH": "120",
        "SUPERCACHE_DEFAULT_TTL_SECONDS": "300",
        "SUPERCACHE_DEFAULT_SCOPE": "user",
        "SUPERCACHE_LOG_LEVEL": "DEBUG",
    }

    with patch.dict(os.environ, env_vars, clear=False):
        clear_settings_cache()
        yield env_vars


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Automatically reset settings cache before and after each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def noisy_text() -> Callable[..., str]:
    """Provide a factory for poorly compressible ASCII text."""

    def make(length: int, seed: int = 7) -> str:
        rng = random.Random(seed)
        return "".join(rng.choice(ALPHABET) for _ in range(length))

    return make
