from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .errors import ValidationError
from .time_utils import parse_iso_datetime


# Maximum price: 9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical prices
MAX_PRICE_CENTS = 999_999_999

# Quantities, ids and cents are stored in 32-bit INTEGER columns
MAX_INT32 = 2_147_483_647
MIN_INT32 = -2_147_483_648

MAX_NOTE_LENGTH = 255


def coerce_int(value: Any, field: str, *, minimum: int | None = None, maximum: int | None = None) -> int:
    """
    Strict integer coercion for JSON payload values.

    Accepts ints and plain digit strings; rejects bools, floats, decimals and
    scientific notation.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        result = value
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        if 'e' in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        if '.' in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            result = int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    elif isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    else:
        raise ValidationError(f"{field} must be an integer")

    if result > MAX_INT32 or result < MIN_INT32:
        raise ValidationError(f"{field} is out of range", details={"field": field})
    if minimum is not None and result < minimum:
        raise ValidationError(f"{field} must be >= {minimum}")
    if maximum is not None and result > maximum:
        raise ValidationError(f"{field} must be <= {maximum}")
    return result


def coerce_cents(value: Any, field: str) -> int:
    return coerce_int(value, field, minimum=0, maximum=MAX_PRICE_CENTS)


def optional_int(payload: dict, field: str, **kwargs) -> int | None:
    value = payload.get(field)
    if value is None or value == "":
        return None
    return coerce_int(value, field, **kwargs)


def require_fields(payload: dict, *fields: str) -> None:
    missing = [f for f in fields if payload.get(f) in (None, "")]
    if missing:
        raise ValidationError(
            "Missing required fields",
            details={"missing": missing},
        )


def optional_text(payload: dict, field: str, *, max_length: int = MAX_NOTE_LENGTH) -> str | None:
    value = payload.get(field)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    value = value.strip()
    if len(value) > max_length:
        raise ValidationError(
            f"{field} must be at most {max_length} characters",
            details={"field": field, "max_length": max_length},
        )
    return value or None


def optional_datetime(payload: dict, field: str):
    value = payload.get(field)
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be an ISO-8601 string")
    try:
        return parse_iso_datetime(value)
    except ValueError:
        raise ValidationError(f"invalid {field}")


@dataclass(frozen=True)
class CartLine:
    """
    One requested cart line.

    Prices are optional; settlement snapshots the product's current prices
    when they are omitted.
    """
    product_id: int
    quantity: int
    unit_selling_price_cents: int | None = None
    unit_purchase_price_cents: int | None = None

    @classmethod
    def from_payload(cls, item: Any, index: int) -> "CartLine":
        if not isinstance(item, dict):
            raise ValidationError(f"items[{index}] must be an object")
        if item.get("product_id") in (None, ""):
            raise ValidationError(f"items[{index}].product_id is required")
        if item.get("quantity") in (None, ""):
            raise ValidationError(f"items[{index}].quantity is required")
        return cls(
            product_id=coerce_int(item["product_id"], f"items[{index}].product_id"),
            quantity=coerce_int(item["quantity"], f"items[{index}].quantity", minimum=1),
            unit_selling_price_cents=(
                coerce_cents(item["unit_selling_price_cents"], f"items[{index}].unit_selling_price_cents")
                if item.get("unit_selling_price_cents") is not None else None
            ),
            unit_purchase_price_cents=(
                coerce_cents(item["unit_purchase_price_cents"], f"items[{index}].unit_purchase_price_cents")
                if item.get("unit_purchase_price_cents") is not None else None
            ),
        )


def parse_cart_lines(items: Any) -> list[CartLine]:
    if items is None:
        return []
    if not isinstance(items, list):
        raise ValidationError("items must be a list")
    return [CartLine.from_payload(item, i) for i, item in enumerate(items)]
