# Overview: Inventory ledger; the only code path allowed to change Product.current_stock.

"""
Stock Ledger Invariants (authoritative)

Ledger model:
- stock_transactions is append-only; rows are never updated or deleted.
- Product.current_stock is a cached projection of the ledger:
      current_stock == SUM(quantity_delta) over the product's transactions
  It is written only here, in the same DB transaction as the ledger row.

Business invariants:
- current_stock may never go negative. A change that would make it negative
  is rejected with InsufficientStockError and leaves state unchanged.
- quantity_delta is a non-zero integer; PURCHASE adds, SALE removes,
  ADJUSTMENT may do either.
- PURCHASE rows may snapshot the unit purchase price.

Concurrency:
- The read of current_stock, the non-negativity check and the write of the
  new value plus the ledger row run as one serialized unit per call
  (BEGIN IMMEDIATE on SQLite, SELECT ... FOR UPDATE elsewhere, plus the
  optimistic version_id on Product). Lost updates surface as ConflictError.
"""

from __future__ import annotations

from sqlalchemy import func

from ..errors import InsufficientStockError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Product, StockTransaction
from ..models.inventory import TRANSACTION_TYPES
from ..validation import MAX_INT32, MAX_NOTE_LENGTH
from stockmanager.time_utils import utcnow
from .concurrency import atomic, begin_serialized, lock_for_update


STOCK_STATUSES = ("OUT_OF_STOCK", "LOW_STOCK", "HEALTHY")


def stock_status(current_stock: int, min_stock_level: int) -> str:
    """Classify a stock level; min_stock_level is a threshold, never a floor."""
    if current_stock <= 0:
        return "OUT_OF_STOCK"
    if current_stock < min_stock_level:
        return "LOW_STOCK"
    return "HEALTHY"


def get_product_for_seller(
    seller_id: int,
    product_id: int,
    *,
    require_active: bool = False,
    lock: bool = False,
) -> Product:
    """
    Load a product scoped to its seller.

    Products of another seller are reported as not found, never as forbidden,
    so their existence is not revealed.
    """
    query = db.session.query(Product).filter_by(id=product_id, seller_id=seller_id)
    if lock:
        query = lock_for_update(query)
    product = query.first()
    if product is None:
        raise NotFoundError("Product not found", details={"product_id": product_id})
    if require_active and not product.is_active:
        raise NotFoundError("Product not found", details={"product_id": product_id, "inactive": True})
    return product


def _validate_change(quantity_delta, transaction_type: str, purchase_price_cents, note) -> None:
    if isinstance(quantity_delta, bool) or not isinstance(quantity_delta, int):
        raise ValidationError("quantity_delta must be an integer")
    if quantity_delta == 0:
        raise ValidationError("quantity_delta must be non-zero")
    if abs(quantity_delta) > MAX_INT32:
        raise ValidationError("quantity_delta is out of range")
    if transaction_type not in TRANSACTION_TYPES:
        raise ValidationError(
            f"transaction_type must be one of {', '.join(TRANSACTION_TYPES)}",
            details={"transaction_type": transaction_type},
        )
    if transaction_type == "PURCHASE" and quantity_delta < 0:
        raise ValidationError("PURCHASE must add stock (positive quantity_delta)")
    if transaction_type == "SALE" and quantity_delta > 0:
        raise ValidationError("SALE must remove stock (negative quantity_delta)")
    if purchase_price_cents is not None and not 0 <= purchase_price_cents <= MAX_INT32:
        raise ValidationError("purchase_price_cents is out of range")
    if note is not None and (not isinstance(note, str) or len(note) > MAX_NOTE_LENGTH):
        raise ValidationError(f"note must be a string of at most {MAX_NOTE_LENGTH} characters")


def _apply_stock_change_inner(
    *,
    product: Product,
    quantity_delta: int,
    transaction_type: str,
    actor_id: int | None,
    purchase_price_cents: int | None = None,
    note: str | None = None,
    sale_id: int | None = None,
) -> StockTransaction:
    """Core ledger write without locking or commit; product must already be locked."""
    new_stock = product.current_stock + quantity_delta
    if new_stock < 0:
        raise InsufficientStockError(
            product_id=product.id,
            requested=-quantity_delta,
            available=product.current_stock,
            product_name=product.name,
        )
    if new_stock > MAX_INT32:
        raise ValidationError(
            "Resulting stock level is out of range",
            details={"product_id": product.id, "current_stock": product.current_stock},
        )

    product.current_stock = new_stock

    tx = StockTransaction(
        seller_id=product.seller_id,
        product_id=product.id,
        transaction_type=transaction_type,
        quantity_delta=quantity_delta,
        purchase_price_cents=purchase_price_cents,
        note=note,
        sale_id=sale_id,
        created_by_user_id=actor_id,
        created_at=utcnow(),
    )
    db.session.add(tx)
    db.session.flush()
    return tx


def apply_stock_change(
    *,
    seller_id: int,
    product_id: int,
    quantity_delta: int,
    transaction_type: str,
    actor_id: int | None,
    purchase_price_cents: int | None = None,
    note: str | None = None,
    sale_id: int | None = None,
) -> StockTransaction:
    """
    Apply one signed stock change and record it in the ledger.

    Raises:
    - ValidationError: zero, non-integer or out-of-range delta, unknown type,
      sign mismatch, bad note
    - NotFoundError: product missing, inactive or owned by another seller
    - InsufficientStockError: resulting stock would be negative
    - ConflictError: concurrent writer won; safe to retry from scratch
    """
    _validate_change(quantity_delta, transaction_type, purchase_price_cents, note)

    with atomic():
        begin_serialized()
        product = get_product_for_seller(seller_id, product_id, require_active=True, lock=True)
        tx = _apply_stock_change_inner(
            product=product,
            quantity_delta=quantity_delta,
            transaction_type=transaction_type,
            actor_id=actor_id,
            purchase_price_cents=purchase_price_cents,
            note=note,
            sale_id=sale_id,
        )
    return tx


def get_ledger_balance(seller_id: int, product_id: int) -> int:
    """SUM(quantity_delta) for a product: the authoritative stock level."""
    q = db.session.query(
        func.coalesce(func.sum(StockTransaction.quantity_delta), 0)
    ).filter(
        StockTransaction.seller_id == seller_id,
        StockTransaction.product_id == product_id,
    )
    return int(q.scalar() or 0)


def reconcile_stock(seller_id: int | None = None, product_id: int | None = None) -> list[dict]:
    """
    Compare every product's cached current_stock with its ledger sum.

    Returns the mismatches (empty list when the ledger reconciles).
    """
    ledger_sum = (
        db.session.query(
            StockTransaction.product_id.label("product_id"),
            func.sum(StockTransaction.quantity_delta).label("balance"),
        )
        .group_by(StockTransaction.product_id)
        .subquery()
    )

    q = db.session.query(
        Product.id,
        Product.seller_id,
        Product.name,
        Product.current_stock,
        func.coalesce(ledger_sum.c.balance, 0),
    ).outerjoin(ledger_sum, ledger_sum.c.product_id == Product.id)

    if seller_id is not None:
        q = q.filter(Product.seller_id == seller_id)
    if product_id is not None:
        q = q.filter(Product.id == product_id)

    mismatches = []
    for pid, sid, name, current, balance in q.order_by(Product.id).all():
        if int(current) != int(balance):
            mismatches.append({
                "product_id": pid,
                "seller_id": sid,
                "product_name": name,
                "current_stock": int(current),
                "ledger_balance": int(balance),
            })
    return mismatches


def list_stock_transactions(
    *, seller_id: int, product_id: int | None = None, limit: int = 20
) -> list[StockTransaction]:
    q = StockTransaction.query.filter_by(seller_id=seller_id)
    if product_id is not None:
        get_product_for_seller(seller_id, product_id)
        q = q.filter_by(product_id=product_id)

    return q.order_by(
        StockTransaction.created_at.desc(),
        StockTransaction.id.desc(),
    ).limit(limit).all()
