"""CoinLink reward backend public API."""

from .app import RewardApp
from .clock import Clock, SystemClock
from .config import CoinLinkConfig, RewardPolicy, TokenConfig

__all__ = [
    "RewardApp",
    "Clock",
    "SystemClock",
    "CoinLinkConfig",
    "RewardPolicy",
    "TokenConfig",
]
