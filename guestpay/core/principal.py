"""Principal for authenticated operators."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Operator:
    """Staff member verified from a bearer token."""

    operator_id: str
    username: str
    role: str = "staff"

    @property
    def id(self) -> str:
        return self.operator_id

    def is_admin(self) -> bool:
        return self.role in {"admin", "super_admin"}
