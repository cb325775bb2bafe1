"""Customer domain exports"""

from .models import Customer, CustomerCreateInput
from .repository import CustomerRepository

__all__ = [
    "Customer",
    "CustomerCreateInput",
    "CustomerRepository",
]
