"""Testing utilities for CoinLink."""

from .clock import ManualClock
from .factory import TokenFactory, UserFactory
from .fixtures import app_fixture, backend_app, manual_clock, memory_app
from .test_client import TestClient

__all__ = [
    "ManualClock",
    "TokenFactory",
    "UserFactory",
    "app_fixture",
    "backend_app",
    "manual_clock",
    "memory_app",
    "TestClient",
]
