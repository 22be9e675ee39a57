"""Domain models and services."""

from .events import EventBus
from .exceptions import (
    AccountFrozen,
    AlreadyUsed,
    CoinLinkError,
    Expired,
    FraudDetected,
    InsufficientFunds,
    InvalidToken,
    QuotaExceeded,
    StoreUnavailable,
    ValidationError,
)
from .leaderboard import Leaderboard, ScoreResult
from .ledger import FREEZE_SENTINEL, RewardLedger
from .progression import LEVEL_XP, MAX_LEVEL, XP_CAP, apply_xp
from .sweeper import SessionSweeper, SweepReport
from .tokens import Redemption, TokenIssue, TokenManager
from .users import UserProfile, UserService

__all__ = [
    "EventBus",
    "AccountFrozen",
    "AlreadyUsed",
    "CoinLinkError",
    "Expired",
    "FraudDetected",
    "InsufficientFunds",
    "InvalidToken",
    "QuotaExceeded",
    "StoreUnavailable",
    "ValidationError",
    "Leaderboard",
    "ScoreResult",
    "FREEZE_SENTINEL",
    "RewardLedger",
    "LEVEL_XP",
    "MAX_LEVEL",
    "XP_CAP",
    "apply_xp",
    "SessionSweeper",
    "SweepReport",
    "Redemption",
    "TokenIssue",
    "TokenManager",
    "UserProfile",
    "UserService",
]
