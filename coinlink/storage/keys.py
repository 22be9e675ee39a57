"""Store key patterns.

Keys are slash-separated paths: ``{collection}/{identifier}[/{subkey}]``.
"""

USERS_PREFIX = "users/"
TOKENS_PREFIX = "tokens/"
LEADERBOARD_PREFIX = "leaderboard/"


def user_key(uid: str) -> str:
    return f"{USERS_PREFIX}{uid}"


def token_key(token_id: str) -> str:
    return f"{TOKENS_PREFIX}{token_id}"


def leaderboard_prefix(game: str) -> str:
    return f"{LEADERBOARD_PREFIX}{game}/"


def leaderboard_key(game: str, uid: str) -> str:
    return f"{leaderboard_prefix(game)}{uid}"


def last_segment(key: str) -> str:
    return key.rsplit("/", 1)[-1]
