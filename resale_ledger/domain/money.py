from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

from resale_ledger.core.errors import InvalidInputError

ZERO = Decimal("0")
ONE = Decimal("1")
CENT = Decimal("0.01")


class PaymentMethod(str, Enum):
    CASH = "Cash"
    VISA = "Visa"
    JCB = "JCB"


def to_decimal(value: Any, field: str = "value") -> Decimal:
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool):
        raise InvalidInputError(f"{field} must be numeric, got {value!r}")
    elif isinstance(value, (int, str)):
        try:
            result = Decimal(str(value).strip() or "0")
        except InvalidOperation as exc:
            raise InvalidInputError(f"{field} must be numeric, got {value!r}") from exc
    elif isinstance(value, float):
        result = Decimal(repr(value))
    elif value is None:
        result = ZERO
    else:
        raise InvalidInputError(f"{field} must be numeric, got {value!r}")
    if not result.is_finite():
        raise InvalidInputError(f"{field} must be finite, got {value!r}")
    return result


def non_negative_decimal(value: Any, field: str) -> Decimal:
    result = to_decimal(value, field)
    if result < 0:
        raise InvalidInputError(f"{field} must be >= 0, got {result}")
    return result


def non_negative_int(value: Any, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, str, Decimal)):
        raise InvalidInputError(f"{field} must be an integer, got {value!r}")
    try:
        result = int(value)
    except (TypeError, ValueError) as exc:
        raise InvalidInputError(f"{field} must be an integer, got {value!r}") from exc
    if Decimal(str(value)) != result:
        raise InvalidInputError(f"{field} must be a whole number, got {value!r}")
    if result < 0:
        raise InvalidInputError(f"{field} must be >= 0, got {result}")
    return result


def safe_rate(rate: Decimal | None) -> Decimal:
    if rate is None or not rate.is_finite() or rate <= 0:
        return ONE
    return rate


def parse_day(value: date | str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError as exc:
        raise InvalidInputError(f"date must be YYYY-MM-DD, got {value!r}") from exc


def today() -> date:
    return datetime.now(timezone.utc).date()


def now_ms() -> int:
    return int(datetime.now(timezone.utc).timestamp() * 1000)
