from __future__ import annotations

import enum
from typing import Iterable


class RoleName(str, enum.Enum):
    CUSTOMER = "CUSTOMER"
    SELLER = "SELLER"
    ADMIN = "ADMIN"

    @classmethod
    def parse(cls, value: str) -> "RoleName":
        """Aceita "seller", "ROLE_SELLER" etc. Levanta ValueError se desconhecido."""
        normalized = (value or "").strip().upper()
        if normalized.startswith("ROLE_"):
            normalized = normalized[len("ROLE_"):]
        return cls(normalized)


ROLE_PRIORITY = (RoleName.ADMIN, RoleName.SELLER, RoleName.CUSTOMER)


def primary_role(role_names: Iterable[str]) -> str:
    names = {str(getattr(name, "value", name)) for name in role_names}
    for role in ROLE_PRIORITY:
        if role.value in names:
            return role.value
    if names:
        return sorted(names)[0]
    return RoleName.CUSTOMER.value


def has_role(user, role: RoleName) -> bool:
    return role.value in getattr(user, "role_names", set())
