"""Walk one user through issuing, redeeming and scoring on the in-memory store."""

from __future__ import annotations

import asyncio
import logging

from coinlink import CoinLinkConfig, RewardApp
from coinlink.domain.exceptions import CoinLinkError
from coinlink.testing import ManualClock


async def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    clock = ManualClock()
    app = RewardApp(CoinLinkConfig(), clock=clock)

    session_id = await app.users.open_session("demo-user")
    await app.users.verify_session("demo-user", session_id)
    await app.users.accept_rules("demo-user")

    issued = await app.tokens.issue("demo-user", "sponsor-page")
    clock.advance(30)
    redemption = await app.tokens.redeem(issued.token, "demo-user")
    print(f"+{redemption.coins_added} coins, level {redemption.level} ({redemption.xp} xp)")

    try:
        await app.tokens.redeem(issued.token, "demo-user")
    except CoinLinkError as exc:
        print(f"Second redemption rejected: {exc.code}")

    await app.leaderboard.join("demo-user", "Tetris")
    result = await app.leaderboard.submit_score("demo-user", "Tetris", 1200)
    print(f"New record: {result.new_record}")

    clock.advance(days=1)
    report = await app.sweeper.sweep()
    print(f"Sweeper removed {report.tokens_removed} token(s)")


if __name__ == "__main__":
    asyncio.run(main())
