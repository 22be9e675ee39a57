"""Pytest fixtures for CoinLink."""

from __future__ import annotations

from pathlib import Path

import pytest

from ..app import RewardApp
from ..config import CoinLinkConfig, StorageConfig
from .clock import ManualClock


@pytest.fixture()
def manual_clock() -> ManualClock:
    return ManualClock()


@pytest.fixture()
def memory_app(manual_clock: ManualClock) -> RewardApp:
    return RewardApp(CoinLinkConfig(), clock=manual_clock)


def app_fixture(clock: ManualClock | None = None, **kwargs) -> RewardApp:
    """Helper for ad-hoc tests where pytest fixtures are not available."""
    config = CoinLinkConfig(**kwargs)
    return RewardApp(config, clock=clock or ManualClock())


async def backend_app(
    backend: str, directory: Path, clock: ManualClock | None = None, **kwargs
) -> RewardApp:
    """Build an initialised app on ``backend``; SQLAlchemy gets a SQLite file in ``directory``.

    Callers own the app and must ``await app.close()``.
    """
    if backend == "sqlalchemy":
        dsn = f"sqlite+aiosqlite:///{(directory / 'coinlink.db').as_posix()}"
        kwargs["storage"] = StorageConfig(backend="sqlalchemy", dsn=dsn)
    elif backend != "memory":
        raise ValueError(f"Unsupported storage backend {backend}")
    app = app_fixture(clock, **kwargs)
    await app.init_backend()
    return app
