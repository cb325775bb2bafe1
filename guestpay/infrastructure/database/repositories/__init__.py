"""SQLAlchemy repository implementations."""

from .charge_repository import SqlChargeRepository
from .customer_repository import SqlCustomerRepository

__all__ = [
    "SqlChargeRepository",
    "SqlCustomerRepository",
]
