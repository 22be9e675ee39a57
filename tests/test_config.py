import pytest

from coinlink.app import RewardApp
from coinlink.config import CoinLinkConfig, StorageConfig, TokenConfig
from coinlink.storage.memory import InMemoryStore


def test_defaults_are_valid():
    config = CoinLinkConfig()
    config.validate()
    assert config.tokens.daily_quota == 20
    assert config.tokens.validity_seconds == 3600
    assert config.tokens.min_dwell_seconds == 15
    assert config.reward.coin_amount == 30
    assert config.reward.xp_amount == 5
    assert config.sweeper.interval_seconds == 300


def test_from_env(monkeypatch):
    monkeypatch.setenv("COINLINK_DAILY_QUOTA", "2")
    monkeypatch.setenv("COINLINK_TOKEN_VALIDITY", "21600")
    monkeypatch.setenv("COINLINK_REWARD_XP", "8")
    monkeypatch.setenv("COINLINK_DAY_ZONE", "Europe/Berlin")
    monkeypatch.setenv("COINLINK_STORAGE_ECHO_SQL", "yes")

    config = CoinLinkConfig.from_env()

    assert config.tokens.daily_quota == 2
    assert config.tokens.validity_seconds == 21600
    assert config.reward.xp_amount == 8
    assert config.day_zone == "Europe/Berlin"
    assert config.storage.echo_sql


def test_from_env_rejects_garbage(monkeypatch):
    monkeypatch.setenv("COINLINK_DAILY_QUOTA", "many")
    with pytest.raises(ValueError):
        CoinLinkConfig.from_env()


@pytest.mark.parametrize(
    "tokens",
    [
        TokenConfig(daily_quota=0),
        TokenConfig(validity_seconds=3600, retention_seconds=60),
        TokenConfig(validity_seconds=10, min_dwell_seconds=15, retention_seconds=60),
    ],
)
def test_invalid_token_settings(tokens):
    with pytest.raises(ValueError):
        CoinLinkConfig(tokens=tokens).validate()


def test_unknown_zone():
    with pytest.raises(ValueError):
        CoinLinkConfig(day_zone="Mars/Olympus").validate()


def test_app_wiring():
    app = RewardApp(CoinLinkConfig())
    assert isinstance(app.store, InMemoryStore)
    assert app.snapshot()["reward"] == {"coins": 30, "xp": 5}

    with pytest.raises(ValueError):
        RewardApp(CoinLinkConfig(storage=StorageConfig(backend="redis")))
