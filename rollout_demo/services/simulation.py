from __future__ import annotations

import asyncio
import random
from collections.abc import Awaitable
from datetime import datetime, timezone
from typing import Callable

from rollout_demo.models.schemas import User

MAX_KNOWN_USER_ID = 10

SEED_USERS: tuple[tuple[int, str, str], ...] = (
    (1, "Alice", "alice@example.com"),
    (2, "Bob", "bob@example.com"),
    (3, "Charlie", "charlie@example.com"),
)


class SimulationSource:
    """Randomness and waiting used by the simulated endpoints.

    Production uses an unseeded ``random.Random`` and ``asyncio.sleep``; tests pass a
    seeded generator, a fixed error rate and (optionally) a no-op sleep.
    """

    def __init__(
        self,
        *,
        rng: random.Random | None = None,
        error_rate: float = 0.05,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if not 0.0 <= error_rate <= 1.0:
            raise ValueError("error_rate must be between 0 and 1")
        self.rng = rng or random.Random()
        self.error_rate = error_rate
        self._sleep = sleep

    @classmethod
    def from_seed(cls, seed: int | None, *, error_rate: float = 0.05) -> "SimulationSource":
        return cls(rng=random.Random(seed), error_rate=error_rate)

    def should_fail(self) -> bool:
        return self.rng.random() < self.error_rate

    def delay_ms(self, max_ms: float) -> float:
        if max_ms <= 0:
            return 0.0
        return self.rng.uniform(0.0, max_ms)

    def new_user_id(self) -> int:
        return self.rng.randint(0, 999)

    async def wait(self, max_ms: float) -> float:
        """Suspend for a random delay up to ``max_ms``; returns the delay used."""

        delay = self.delay_ms(max_ms)
        await self._sleep(delay / 1000.0)
        return delay


def _now() -> datetime:
    return datetime.now(timezone.utc)


def list_users() -> list[User]:
    return [User(id=user_id, name=name, email=email) for user_id, name, email in SEED_USERS]


def parse_user_id(raw: str) -> int | None:
    try:
        return int(raw.strip())
    except ValueError:
        return None


def find_user(user_id: int) -> User | None:
    if user_id > MAX_KNOWN_USER_ID:
        return None
    return User(
        id=user_id,
        name=f"User {user_id}",
        email=f"user{user_id}@example.com",
        created_at=_now(),
    )


def create_user(source: SimulationSource, *, name: str, email: str) -> User:
    return User(id=source.new_user_id(), name=name, email=email, created_at=_now())
