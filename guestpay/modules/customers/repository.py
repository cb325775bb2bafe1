"""Repository protocol for customers."""

from __future__ import annotations

from typing import Protocol

from .models import Customer, CustomerCreateInput


class CustomerRepository(Protocol):
    async def get(self, customer_id: str) -> Customer | None:
        ...

    async def create(self, payload: CustomerCreateInput) -> Customer:
        ...
