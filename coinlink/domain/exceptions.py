"""Exceptions raised by CoinLink domain services."""

from ..storage.base import StoreUnavailable


class CoinLinkError(RuntimeError):
    """Base class for domain exceptions."""

    code = "error"


class ValidationError(CoinLinkError):
    """Raised for missing or malformed input."""

    code = "validation_error"


class QuotaExceeded(CoinLinkError):
    """Raised when a (user, link) pair already used its daily tokens."""

    code = "quota_exceeded"

    def __init__(self, link_id: str, count_today: int, quota: int) -> None:
        super().__init__(f"Daily quota of {quota} reached for link {link_id}")
        self.link_id = link_id
        self.count_today = count_today
        self.quota = quota


class InvalidToken(CoinLinkError):
    """Raised when a token does not exist or belongs to another user."""

    code = "invalid_token"


class Expired(CoinLinkError):
    code = "expired"


class AlreadyUsed(CoinLinkError):
    """Raised on every redemption attempt after the first successful one."""

    code = "already_used"


class FraudDetected(CoinLinkError):
    """Raised when a token is redeemed faster than a human could manage.

    The account is frozen before this is raised.
    """

    code = "fraud_detected"

    def __init__(self, uid: str, dwell_seconds: float) -> None:
        super().__init__(f"Token redeemed after {dwell_seconds:.1f}s, account {uid} frozen")
        self.uid = uid
        self.dwell_seconds = dwell_seconds


class InsufficientFunds(CoinLinkError):
    code = "insufficient_funds"

    def __init__(self, balance: int, cost: int) -> None:
        super().__init__(f"Insufficient coins: have {balance}, need {cost}")
        self.balance = balance
        self.cost = cost


class AccountFrozen(CoinLinkError):
    """Raised when a frozen account tries to act."""

    code = "account_frozen"


__all__ = [
    "CoinLinkError",
    "ValidationError",
    "QuotaExceeded",
    "InvalidToken",
    "Expired",
    "AlreadyUsed",
    "FraudDetected",
    "InsufficientFunds",
    "AccountFrozen",
    "StoreUnavailable",
]
