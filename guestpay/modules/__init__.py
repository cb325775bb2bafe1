"""Feature modules."""

from . import charges, customers

__all__ = [
    "charges",
    "customers",
]
