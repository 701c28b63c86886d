"""
Sale settlement: checkout-time billing and stock reservation.

A settlement is one atomic unit:
1. resolve every cart line against the seller's active products (price snapshots)
2. compute subtotal, discount, total and gross profit
3. decrement stock for every line through the ledger (SALE rows)
4. allocate the sale number and write Sale + SaleItems

If any step fails (unknown product, insufficient stock on any line, lock
conflict) nothing is committed: no stock change, no ledger row, no sale.
"""

from __future__ import annotations

from typing import Sequence

from sqlalchemy import func, update

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Customer, Product, Sale, SaleItem, SaleSequence
from ..validation import CartLine
from stockmanager.time_utils import compact_date, utcnow
from .calculations import DiscountPolicy, PricedLine, calculate_sale_totals
from .concurrency import atomic, begin_serialized, lock_for_update
from .ledger_service import _apply_stock_change_inner


SALE_NUMBER_PREFIX = "INV"


def next_sale_number(seller_id: int) -> str:
    """
    Allocate the next sale number for today: INV-YYYYMMDD-NNN.

    Runs inside the caller's unit. Two writers racing to create today's
    sequence row hit the unique constraint; that IntegrityError surfaces as a
    ConflictError from atomic() and the caller retries the whole settlement.
    """
    day = compact_date(utcnow().date())

    stmt = (
        update(SaleSequence)
        .where(
            SaleSequence.seller_id == seller_id,
            SaleSequence.sequence_date == day,
        )
        .values(next_number=SaleSequence.next_number + 1)
    )
    result = db.session.execute(stmt)
    if result.rowcount:
        current = (
            db.session.query(SaleSequence.next_number)
            .filter_by(seller_id=seller_id, sequence_date=day)
            .scalar()
        )
        number = current - 1
    else:
        db.session.add(SaleSequence(seller_id=seller_id, sequence_date=day, next_number=2))
        db.session.flush()
        number = 1

    return f"{SALE_NUMBER_PREFIX}-{day}-{number:03d}"


def _load_cart_products(seller_id: int, lines: Sequence[CartLine]) -> dict[int, Product]:
    """Lock the cart's products in id order so concurrent carts cannot deadlock."""
    product_ids = sorted({line.product_id for line in lines})
    query = (
        db.session.query(Product)
        .filter(
            Product.id.in_(product_ids),
            Product.seller_id == seller_id,
            Product.is_active.is_(True),
        )
        .order_by(Product.id)
    )
    products = {p.id: p for p in lock_for_update(query).all()}

    missing = [pid for pid in product_ids if pid not in products]
    if missing:
        raise NotFoundError(
            "One or more products not found",
            details={"product_ids": missing},
        )
    return products


def _price_lines(lines: Sequence[CartLine], products: dict[int, Product]) -> list[PricedLine]:
    priced = []
    for line in lines:
        product = products[line.product_id]
        priced.append(PricedLine(
            product_id=line.product_id,
            quantity=line.quantity,
            unit_selling_price_cents=(
                line.unit_selling_price_cents
                if line.unit_selling_price_cents is not None
                else product.selling_price_cents
            ),
            unit_purchase_price_cents=(
                line.unit_purchase_price_cents
                if line.unit_purchase_price_cents is not None
                else product.purchase_price_cents
            ),
        ))
    return priced


def _validate_lines(lines: Sequence[CartLine]) -> None:
    if not lines:
        raise ValidationError("At least one item is required", code="EMPTY_CART")
    for i, line in enumerate(lines):
        if isinstance(line.quantity, bool) or not isinstance(line.quantity, int) or line.quantity <= 0:
            raise ValidationError(
                "quantity must be a positive integer",
                details={"line": i, "product_id": line.product_id},
            )
        for field in ("unit_selling_price_cents", "unit_purchase_price_cents"):
            value = getattr(line, field)
            if value is not None and value < 0:
                raise ValidationError(
                    f"{field} cannot be negative",
                    details={"line": i, "product_id": line.product_id},
                )


def settle_sale(
    *,
    seller_id: int,
    lines: Sequence[CartLine],
    discount: DiscountPolicy | None = None,
    customer_id: int | None = None,
    actor_id: int | None,
) -> Sale:
    """
    Settle a cart into a committed Sale, all-or-nothing.

    Raises:
    - ValidationError (EMPTY_CART / INVALID_INPUT)
    - NotFoundError: a product or the customer is not the seller's
    - InsufficientStockError: names the first line that would oversell
    - ConflictError: lock/serialization failure or sale number collision
    """
    _validate_lines(lines)
    discount = discount or DiscountPolicy.none()

    with atomic():
        begin_serialized()

        if customer_id is not None:
            customer = db.session.query(Customer).filter_by(id=customer_id, seller_id=seller_id).first()
            if customer is None:
                raise NotFoundError("Customer not found", details={"customer_id": customer_id})

        products = _load_cart_products(seller_id, lines)
        priced = _price_lines(lines, products)
        totals = calculate_sale_totals(priced, discount)

        sale = Sale(
            seller_id=seller_id,
            customer_id=customer_id,
            sale_number=next_sale_number(seller_id),
            subtotal_cents=totals.subtotal_cents,
            discount_type=discount.kind,
            discount_value=discount.value,
            discount_amount_cents=totals.discount_amount_cents,
            total_cents=totals.total_cents,
            profit_cents=totals.profit_cents,
            created_by_user_id=actor_id,
            created_at=utcnow(),
        )
        db.session.add(sale)
        db.session.flush()

        for line in priced:
            _apply_stock_change_inner(
                product=products[line.product_id],
                quantity_delta=-line.quantity,
                transaction_type="SALE",
                actor_id=actor_id,
                note=f"Sale {sale.sale_number}",
                sale_id=sale.id,
            )
            db.session.add(SaleItem(
                sale_id=sale.id,
                product_id=line.product_id,
                quantity=line.quantity,
                purchase_price_cents=line.unit_purchase_price_cents,
                selling_price_cents=line.unit_selling_price_cents,
                subtotal_cents=line.subtotal_cents,
                profit_cents=line.profit_cents,
            ))

    return sale


def get_sale(seller_id: int, sale_id: int) -> Sale:
    sale = db.session.query(Sale).filter_by(id=sale_id, seller_id=seller_id).first()
    if sale is None:
        raise NotFoundError("Sale not found", details={"sale_id": sale_id})
    return sale


def list_sales(
    *,
    seller_id: int,
    customer_id: int | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[Sale]:
    q = Sale.query.filter_by(seller_id=seller_id)
    if customer_id is not None:
        q = q.filter_by(customer_id=customer_id)
    return (
        q.order_by(Sale.created_at.desc(), Sale.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )


def count_sales(seller_id: int) -> int:
    return int(
        db.session.query(func.count(Sale.id)).filter(Sale.seller_id == seller_id).scalar() or 0
    )
