"""
Catalog Service: categories, units and products.

MULTI-TENANT: every lookup filters by seller_id; another seller's rows are
reported as not found.

Stock is never written here. Opening stock on product creation goes through
the ledger (a PURCHASE row) in the same commit as the product, and updates
refuse current_stock outright.
"""

from __future__ import annotations

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from ..errors import NotFoundError, PermissionDeniedError, ValidationError
from ..extensions import db
from ..models import Category, Product, Unit
from .calculations import calculate_markup_price, to_decimal
from .concurrency import atomic
from .ledger_service import _apply_stock_change_inner, get_product_for_seller
from .tenant_service import get_product_limit, get_seller


PRICING_MODES = ("FIXED", "MARKUP")

PRODUCT_MUTABLE_FIELDS = {
    "name",
    "description",
    "category_id",
    "unit_id",
    "purchase_price_cents",
    "selling_price_cents",
    "pricing_mode",
    "markup_percentage",
    "min_stock_level",
}


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------

def list_categories(seller_id: int) -> list[dict]:
    """Categories with their active product counts."""
    counts = dict(
        db.session.query(Product.category_id, func.count(Product.id))
        .filter(Product.seller_id == seller_id, Product.is_active.is_(True))
        .group_by(Product.category_id)
        .all()
    )
    categories = Category.query.filter_by(seller_id=seller_id).order_by(Category.name).all()
    return [
        {**c.to_dict(), "product_count": int(counts.get(c.id, 0))}
        for c in categories
    ]


def get_category(seller_id: int, category_id: int) -> Category:
    category = db.session.query(Category).filter_by(id=category_id, seller_id=seller_id).first()
    if category is None:
        raise NotFoundError("Category not found", details={"category_id": category_id})
    return category


def _require_name(name) -> str:
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("name is required")
    return name.strip()


def _commit_unique(entity: str):
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ValidationError(f"{entity} with this name already exists", code="DUPLICATE")


def create_category(seller_id: int, name: str, description: str | None = None) -> Category:
    category = Category(seller_id=seller_id, name=_require_name(name), description=description)
    db.session.add(category)
    _commit_unique("Category")
    return category


def update_category(seller_id: int, category_id: int, patch: dict) -> Category:
    category = get_category(seller_id, category_id)
    if "name" in patch:
        category.name = _require_name(patch["name"])
    if "description" in patch:
        category.description = patch["description"]
    _commit_unique("Category")
    return category


def delete_category(seller_id: int, category_id: int) -> None:
    category = get_category(seller_id, category_id)
    in_use = Product.query.filter_by(seller_id=seller_id, category_id=category.id, is_active=True).count()
    if in_use:
        raise ValidationError(
            "Cannot delete category with active products",
            details={"product_count": in_use},
        )
    db.session.delete(category)
    db.session.commit()


# ---------------------------------------------------------------------------
# Units
# ---------------------------------------------------------------------------

def list_units(seller_id: int) -> list[Unit]:
    return Unit.query.filter_by(seller_id=seller_id).order_by(Unit.name).all()


def get_unit(seller_id: int, unit_id: int) -> Unit:
    unit = db.session.query(Unit).filter_by(id=unit_id, seller_id=seller_id).first()
    if unit is None:
        raise NotFoundError("Unit not found", details={"unit_id": unit_id})
    return unit


def create_unit(seller_id: int, name: str, abbreviation: str) -> Unit:
    if not isinstance(abbreviation, str) or not abbreviation.strip():
        raise ValidationError("abbreviation is required")
    unit = Unit(seller_id=seller_id, name=_require_name(name), abbreviation=abbreviation.strip())
    db.session.add(unit)
    _commit_unique("Unit")
    return unit


def update_unit(seller_id: int, unit_id: int, patch: dict) -> Unit:
    unit = get_unit(seller_id, unit_id)
    if "name" in patch:
        unit.name = _require_name(patch["name"])
    if "abbreviation" in patch:
        if not patch["abbreviation"]:
            raise ValidationError("abbreviation is required")
        unit.abbreviation = patch["abbreviation"]
    _commit_unique("Unit")
    return unit


def delete_unit(seller_id: int, unit_id: int) -> None:
    unit = get_unit(seller_id, unit_id)
    in_use = Product.query.filter_by(seller_id=seller_id, unit_id=unit.id, is_active=True).count()
    if in_use:
        raise ValidationError(
            "Cannot delete unit used by active products",
            details={"product_count": in_use},
        )
    db.session.delete(unit)
    db.session.commit()


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------

def resolve_selling_price(
    *,
    seller_id: int,
    purchase_price_cents: int,
    selling_price_cents: int | None,
    pricing_mode: str | None,
    markup_percentage,
) -> tuple[int, str, object]:
    """
    Decide (selling_price_cents, pricing_mode, markup_percentage).

    - MARKUP with a markup: purchase price * (1 + markup/100)
    - no selling price given: the seller's default MARKUP, if configured
    - otherwise FIXED at the given price (0 when absent)
    """
    mode = pricing_mode or "FIXED"
    if mode not in PRICING_MODES:
        raise ValidationError(f"pricing_mode must be one of {', '.join(PRICING_MODES)}")

    if mode == "MARKUP" and markup_percentage is not None:
        markup = to_decimal(markup_percentage, "markup_percentage")
        return calculate_markup_price(purchase_price_cents, markup), "MARKUP", markup

    if selling_price_cents is None:
        seller = get_seller(seller_id)
        default_markup = to_decimal(seller.default_markup_percentage or 0, "default_markup_percentage")
        if seller.default_pricing_mode == "MARKUP" and default_markup > 0:
            return calculate_markup_price(purchase_price_cents, default_markup), "MARKUP", default_markup
        return 0, "FIXED", None

    return selling_price_cents, "FIXED", None


def list_products(
    seller_id: int,
    *,
    category_id: int | None = None,
    include_inactive: bool = False,
) -> list[Product]:
    q = Product.query.filter_by(seller_id=seller_id)
    if not include_inactive:
        q = q.filter_by(is_active=True)
    if category_id is not None:
        q = q.filter_by(category_id=category_id)
    return q.order_by(Product.created_at.desc(), Product.id.desc()).all()


def get_product(seller_id: int, product_id: int) -> Product:
    return get_product_for_seller(seller_id, product_id)


def create_product(
    *,
    seller_id: int,
    actor_id: int | None,
    name: str,
    category_id: int,
    purchase_price_cents: int,
    selling_price_cents: int | None = None,
    pricing_mode: str | None = None,
    markup_percentage=None,
    unit_id: int | None = None,
    opening_stock: int = 0,
    min_stock_level: int = 0,
    description: str | None = None,
) -> Product:
    """
    Create a product, enforcing the subscription product limit.

    opening_stock > 0 is recorded as a PURCHASE ledger row in the same commit,
    so the product's counter and its ledger agree from the first moment.
    """
    name = _require_name(name)
    if purchase_price_cents < 0:
        raise ValidationError("Purchase price cannot be negative")
    if selling_price_cents is not None and selling_price_cents < 0:
        raise ValidationError("Selling price cannot be negative")
    if opening_stock < 0:
        raise ValidationError("opening_stock cannot be negative")
    if min_stock_level < 0:
        raise ValidationError("min_stock_level cannot be negative")

    get_category(seller_id, category_id)
    if unit_id is not None:
        get_unit(seller_id, unit_id)

    limit = get_product_limit(seller_id)
    if limit is not None:
        active = Product.query.filter_by(seller_id=seller_id, is_active=True).count()
        if active >= limit:
            raise PermissionDeniedError(
                f"Product limit reached ({limit}). Upgrade your plan.",
                details={"max_products": limit},
            )

    price, mode, markup = resolve_selling_price(
        seller_id=seller_id,
        purchase_price_cents=purchase_price_cents,
        selling_price_cents=selling_price_cents,
        pricing_mode=pricing_mode,
        markup_percentage=markup_percentage,
    )

    with atomic():
        product = Product(
            seller_id=seller_id,
            category_id=category_id,
            unit_id=unit_id,
            name=name,
            description=description,
            purchase_price_cents=purchase_price_cents,
            selling_price_cents=price,
            pricing_mode=mode,
            markup_percentage=markup,
            current_stock=0,
            min_stock_level=min_stock_level,
        )
        db.session.add(product)
        db.session.flush()

        if opening_stock > 0:
            _apply_stock_change_inner(
                product=product,
                quantity_delta=opening_stock,
                transaction_type="PURCHASE",
                actor_id=actor_id,
                purchase_price_cents=purchase_price_cents,
                note="Opening stock",
            )
    return product


def update_product(seller_id: int, product_id: int, patch: dict) -> Product:
    """
    Apply a partial update. current_stock is not writable here; stock changes
    must go through the ledger.
    """
    if "current_stock" in patch:
        raise ValidationError(
            "current_stock cannot be edited; record a stock transaction instead",
            details={"field": "current_stock"},
        )

    product = get_product_for_seller(seller_id, product_id)
    changes = {k: v for k, v in patch.items() if k in PRODUCT_MUTABLE_FIELDS}

    if "name" in changes:
        changes["name"] = _require_name(changes["name"])
    if "category_id" in changes:
        get_category(seller_id, changes["category_id"])
    if changes.get("unit_id") is not None:
        get_unit(seller_id, changes["unit_id"])
    for field in ("purchase_price_cents", "selling_price_cents", "min_stock_level"):
        if field in changes and changes[field] is not None and changes[field] < 0:
            raise ValidationError(f"{field} cannot be negative")

    purchase = changes.get("purchase_price_cents", product.purchase_price_cents)
    mode = changes.get("pricing_mode", product.pricing_mode)
    markup = changes.get("markup_percentage", product.markup_percentage)
    if mode == "MARKUP" and markup is not None:
        price, mode, markup = resolve_selling_price(
            seller_id=seller_id,
            purchase_price_cents=purchase,
            selling_price_cents=None,
            pricing_mode="MARKUP",
            markup_percentage=markup,
        )
        changes.update(selling_price_cents=price, pricing_mode=mode, markup_percentage=markup)
    elif "pricing_mode" in changes:
        if mode not in PRICING_MODES:
            raise ValidationError(f"pricing_mode must be one of {', '.join(PRICING_MODES)}")
        if mode == "FIXED":
            changes["markup_percentage"] = None

    with atomic():
        for key, value in changes.items():
            setattr(product, key, value)
    return product


def deactivate_product(seller_id: int, product_id: int) -> Product:
    """Soft delete: history (ledger rows, sale items) keeps referencing the product."""
    product = get_product_for_seller(seller_id, product_id)
    with atomic():
        product.is_active = False
    return product
