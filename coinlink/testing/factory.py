"""Factories for tests and prototyping."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta

from faker import Faker

from ..domain.tokens import generate_token_id
from ..storage.base import LinkUsage, TokenRecord, UserRecord


@dataclass(slots=True)
class UserFactory:
    faker: Faker = field(default_factory=Faker)

    def uid(self) -> str:
        return self.faker.unique.hexify(text="^" * 28)

    def build(self, *, coins: int = 0, level: int = 0, xp: int = 0) -> UserRecord:
        return UserRecord(uid=self.uid(), coins=coins, level=level, xp=xp, rules_accepted=True)

    def with_links(self, day: str, counts: dict[str, int]) -> UserRecord:
        record = self.build()
        record.links = {link_id: LinkUsage(date=day, count=count) for link_id, count in counts.items()}
        return record


@dataclass(slots=True)
class TokenFactory:
    faker: Faker = field(default_factory=Faker)

    def build(
        self,
        uid: str,
        *,
        start_at: datetime,
        validity: timedelta = timedelta(hours=1),
        retention: timedelta = timedelta(days=1),
        used: bool = False,
        link_id: str | None = None,
    ) -> TokenRecord:
        return TokenRecord(
            token_id=generate_token_id(),
            uid=uid,
            link_id=link_id or self.faker.slug(),
            start_at=start_at,
            expires_at=start_at + validity,
            delete_at=start_at + retention,
            used=used,
            used_at=start_at + timedelta(minutes=1) if used else None,
        )
