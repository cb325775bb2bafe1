"""Repository protocol for charges."""

from __future__ import annotations

from typing import Iterable, Protocol, Sequence

from .models import Charge, ChargeCreateInput, ChargePatch, ChargeStatus


class ChargeRepository(Protocol):
    """Abstract repository interface for charge persistence."""

    async def create(self, payload: ChargeCreateInput) -> Charge:
        ...

    async def get(self, charge_id: str) -> Charge | None:
        ...

    async def find_first(self, *references: str) -> Charge | None:
        """Return the first charge whose external reference is one of ``references``."""
        ...

    async def find_by_idempotency_key(self, key: str) -> Charge | None:
        ...

    async def list_for_customer(self, customer_id: str, limit: int, offset: int) -> Sequence[Charge]:
        ...

    async def apply(
        self,
        charge_id: str,
        patch: ChargePatch,
        *,
        expected_statuses: Iterable[ChargeStatus] | None = None,
    ) -> Charge | None:
        """Apply ``patch``; returns None when the row is missing or not in an expected status."""
        ...

    async def commit(self) -> None:
        ...
