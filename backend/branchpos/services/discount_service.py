# Overview: Service-layer operations for branch discount codes.

from __future__ import annotations

import logging

from ..extensions import db
from ..models import Discount, Order
from ..models.discounts import DISCOUNT_PERCENTAGE, DISCOUNT_TYPES
from ..validation import (
    ConflictError,
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    enforce_rules_money,
    validate_payload,
)
from .branch_service import require_active_branch
from .concurrency import commit_and_publish
from .metrics import discount_amount

logger = logging.getLogger(__name__)

DISCOUNT_POLICY = ModelValidationPolicy(
    writable_fields={
        "code", "discount_type", "value", "applies_to_category_id",
        "min_subtotal_cents", "is_active",
    },
    required_on_create={"code", "discount_type", "value"},
)


class DiscountError(ValueError):
    """Raised when a discount code cannot be applied."""
    pass


def normalize_code(code: str | None) -> str:
    return (code or "").strip().upper()


def get_discount(discount_id: int) -> Discount:
    discount = db.session.get(Discount, discount_id)
    if discount is None:
        raise NotFoundError("Discount not found")
    return discount


def _enforce_rules(patch: dict, current: Discount | None = None) -> None:
    if "code" in patch:
        patch["code"] = normalize_code(patch["code"])
        if not patch["code"]:
            raise ValidationError("code cannot be blank")
    discount_type = patch.get("discount_type", current.discount_type if current else None)
    if discount_type not in DISCOUNT_TYPES:
        raise ValidationError(f"discount_type must be one of: {', '.join(DISCOUNT_TYPES)}")
    value = patch.get("value", current.value if current else None)
    if value is None or value < 0:
        raise ValidationError("value must be >= 0")
    if discount_type == DISCOUNT_PERCENTAGE and value > 100:
        raise ValidationError("percentage value cannot exceed 100")
    enforce_rules_money(patch, "min_subtotal_cents")


def _ensure_unique_code(branch_id: int, code: str, exclude_id: int | None = None) -> None:
    query = db.session.query(Discount).filter_by(branch_id=branch_id, code=code)
    if exclude_id is not None:
        query = query.filter(Discount.id != exclude_id)
    if query.first() is not None:
        raise ConflictError(f"Discount code already exists: {code}")


def create_discount(*, branch_id: int, payload: dict, created_by_id: int | None = None) -> Discount:
    require_active_branch(branch_id)
    patch = validate_payload(model=Discount, payload=payload, policy=DISCOUNT_POLICY, partial=False)
    _enforce_rules(patch)
    _ensure_unique_code(branch_id, patch["code"])

    discount = Discount(branch_id=branch_id, created_by_id=created_by_id, **patch)
    db.session.add(discount)
    commit_and_publish()
    logger.info("Created discount %s (%s) in branch %s", discount.id, discount.code, branch_id)
    return discount


def update_discount(discount_id: int, payload: dict) -> Discount:
    discount = get_discount(discount_id)
    patch = validate_payload(model=Discount, payload=payload, policy=DISCOUNT_POLICY, partial=True)
    _enforce_rules(patch, current=discount)
    if "code" in patch:
        _ensure_unique_code(discount.branch_id, patch["code"], exclude_id=discount.id)
    for key, value in patch.items():
        setattr(discount, key, value)
    commit_and_publish()
    return discount


def delete_discount(discount_id: int) -> bool:
    """Delete a discount; codes already used on orders are deactivated instead."""
    discount = get_discount(discount_id)
    used = db.session.query(Order.id).filter(Order.discount_id == discount.id).first() is not None
    if used:
        discount.is_active = False
        commit_and_publish()
        return False
    db.session.delete(discount)
    commit_and_publish()
    return True


def find_active_discount(branch_id: int, code: str) -> Discount | None:
    return (
        db.session.query(Discount)
        .filter_by(branch_id=branch_id, code=normalize_code(code), is_active=True)
        .first()
    )


def quote_discount(*, branch_id: int, code: str, subtotal_cents: int, category_ids=()) -> tuple[Discount, int]:
    """Look up an active code and compute what it takes off `subtotal_cents`."""
    discount = find_active_discount(branch_id, code)
    if discount is None:
        raise DiscountError("Invalid or inactive discount code")
    category_ids = set(category_ids)
    if discount.applies_to_category_id is not None and discount.applies_to_category_id not in category_ids:
        raise DiscountError("Discount does not apply to any item in the cart")
    if discount.min_subtotal_cents and subtotal_cents < discount.min_subtotal_cents:
        raise DiscountError(f"Subtotal must be at least {discount.min_subtotal_cents} cents")
    return discount, discount_amount(discount, subtotal_cents, category_ids)
