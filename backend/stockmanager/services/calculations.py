# Overview: Pure pricing arithmetic for billing: discounts, profit, margin, markup.

"""
All money values are integer cents. Percentages are Decimal.

Rounding: any fractional cent is rounded to the nearest cent, half-up.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Sequence

from ..errors import ValidationError
from ..validation import MAX_INT32


DISCOUNT_TYPES = ("NONE", "PERCENTAGE", "FLAT")

# Sale.discount_value is stored as NUMERIC(12, 2)
DISCOUNT_VALUE_PLACES = 2


def round_cents(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def to_decimal(value, field: str) -> Decimal:
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number")
    if not result.is_finite():
        raise ValidationError(f"{field} must be a number")
    return result


@dataclass(frozen=True)
class DiscountPolicy:
    """
    NONE, PERCENTAGE(value 0-100) or FLAT(value >= 0 cents).

    Build with DiscountPolicy.parse() to get validation.
    """
    kind: str = "NONE"
    value: Decimal = Decimal("0")

    @classmethod
    def none(cls) -> "DiscountPolicy":
        return cls("NONE", Decimal("0"))

    @classmethod
    def percentage(cls, value) -> "DiscountPolicy":
        return cls.parse("PERCENTAGE", value)

    @classmethod
    def flat(cls, value_cents) -> "DiscountPolicy":
        return cls.parse("FLAT", value_cents)

    @classmethod
    def parse(cls, discount_type: str | None, discount_value=None) -> "DiscountPolicy":
        if discount_type is None or discount_type == "":
            discount_type = "NONE"
        if not isinstance(discount_type, str) or discount_type.upper() not in DISCOUNT_TYPES:
            raise ValidationError(
                f"discount_type must be one of {', '.join(DISCOUNT_TYPES)}",
                code="INVALID_DISCOUNT",
            )
        kind = discount_type.upper()
        if kind == "NONE":
            return cls.none()

        if discount_value is None:
            raise ValidationError("discount_value is required", code="INVALID_DISCOUNT")
        value = to_decimal(discount_value, "discount_value")
        if value.normalize().as_tuple().exponent < -DISCOUNT_VALUE_PLACES:
            raise ValidationError(
                f"discount_value allows at most {DISCOUNT_VALUE_PLACES} decimal places",
                details={"discount_value": str(value)},
                code="INVALID_DISCOUNT",
            )

        if kind == "PERCENTAGE":
            if value < 0 or value > 100:
                raise ValidationError(
                    "percentage discount must be between 0 and 100",
                    details={"discount_value": str(value)},
                    code="INVALID_DISCOUNT",
                )
        else:
            if value < 0:
                raise ValidationError(
                    "flat discount cannot be negative",
                    details={"discount_value": str(value)},
                    code="INVALID_DISCOUNT",
                )
            if value != value.to_integral_value():
                raise ValidationError(
                    "flat discount must be a whole number of cents",
                    code="INVALID_DISCOUNT",
                )
            if value > MAX_INT32:
                raise ValidationError(
                    "flat discount is out of range",
                    details={"discount_value": str(value)},
                    code="INVALID_DISCOUNT",
                )
        return cls(kind, value)


@dataclass(frozen=True)
class DiscountCalculation:
    subtotal_cents: int
    discount_amount_cents: int
    total_cents: int


def calculate_discount(subtotal_cents: int, discount: DiscountPolicy) -> DiscountCalculation:
    """
    PERCENTAGE -> subtotal * value / 100
    FLAT       -> min(value, subtotal)   (total never goes negative)
    NONE       -> 0
    """
    discount_amount = 0
    if discount.kind == "PERCENTAGE":
        discount_amount = round_cents(Decimal(subtotal_cents) * discount.value / Decimal(100))
    elif discount.kind == "FLAT":
        discount_amount = min(int(discount.value), subtotal_cents)

    return DiscountCalculation(
        subtotal_cents=subtotal_cents,
        discount_amount_cents=discount_amount,
        total_cents=subtotal_cents - discount_amount,
    )


def calculate_profit(selling_price_cents: int, purchase_price_cents: int, quantity: int) -> int:
    return (selling_price_cents - purchase_price_cents) * quantity


def calculate_profit_margin(selling_price_cents: int, purchase_price_cents: int) -> Decimal:
    """Markup over cost, in percent. 0 when cost is 0."""
    if purchase_price_cents == 0:
        return Decimal("0")
    return (
        Decimal(selling_price_cents - purchase_price_cents) / Decimal(purchase_price_cents) * 100
    ).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def calculate_markup_price(purchase_price_cents: int, markup_percentage) -> int:
    markup = to_decimal(markup_percentage, "markup_percentage")
    if markup < 0:
        raise ValidationError("markup_percentage cannot be negative")
    return round_cents(Decimal(purchase_price_cents) * (1 + markup / Decimal(100)))


@dataclass(frozen=True)
class PricedLine:
    """A cart line with resolved price snapshots."""
    product_id: int
    quantity: int
    unit_selling_price_cents: int
    unit_purchase_price_cents: int

    @property
    def subtotal_cents(self) -> int:
        return self.unit_selling_price_cents * self.quantity

    @property
    def profit_cents(self) -> int:
        return calculate_profit(
            self.unit_selling_price_cents, self.unit_purchase_price_cents, self.quantity
        )


@dataclass(frozen=True)
class SaleTotals:
    subtotal_cents: int
    discount_amount_cents: int
    total_cents: int
    profit_cents: int


def calculate_sale_totals(lines: Sequence[PricedLine], discount: DiscountPolicy) -> SaleTotals:
    """
    Subtotal, discount, total and aggregate profit for a cart.

    Aggregate profit is the sum of line profits and is NOT reduced by the
    discount: margin reporting stays independent of promotional pricing.
    """
    subtotal = sum(line.subtotal_cents for line in lines)
    calc = calculate_discount(subtotal, discount)
    return SaleTotals(
        subtotal_cents=calc.subtotal_cents,
        discount_amount_cents=calc.discount_amount_cents,
        total_cents=calc.total_cents,
        profit_cents=sum(line.profit_cents for line in lines),
    )
