from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any

from app.core.errors import InvalidArgumentError

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value: Any) -> Decimal:
    """Converte para Decimal com 2 casas; nunca passa por float."""
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise InvalidArgumentError(f"Valor monetário inválido: {value}") from exc
    if not amount.is_finite():
        raise InvalidArgumentError(f"Valor monetário inválido: {value}")
    return amount.quantize(CENT)


def money_str(value: Any) -> str | None:
    if value is None:
        return None
    return str(to_money(value))
