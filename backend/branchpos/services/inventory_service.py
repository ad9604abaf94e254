# Overview: Service-layer operations for inventory items and categories.

"""
Inventory Service

Stock is an integer that never goes below zero. Order placement is the only
routine decrement (see order_service); manual adjustments go through
adjust_stock, which rejects a delta that would overdraw.
"""

from __future__ import annotations

import logging

from ..extensions import db
from ..models import Category, InventoryItem
from ..validation import (
    ConflictError,
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    enforce_rules_item,
    validate_payload,
)
from .branch_service import require_active_branch
from .concurrency import commit_and_publish, run_with_retry

logger = logging.getLogger(__name__)

ITEM_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "description", "category_id", "price_cents", "cost_cents",
        "stock", "barcode", "image_url", "is_active",
    },
    required_on_create={"name", "price_cents"},
)


def get_item(item_id: int) -> InventoryItem:
    item = db.session.get(InventoryItem, item_id)
    if item is None:
        raise NotFoundError("Inventory item not found")
    return item


def get_category(category_id: int) -> Category:
    category = db.session.get(Category, category_id)
    if category is None:
        raise NotFoundError("Category not found")
    return category


def _check_category(branch_id: int, category_id: int | None) -> None:
    if category_id is None:
        return
    if get_category(category_id).branch_id != branch_id:
        raise ValidationError("Category belongs to another branch")


def create_category(*, branch_id: int, name: str) -> Category:
    require_active_branch(branch_id)
    name = (name or "").strip()
    if not name:
        raise ValidationError("name is required")
    existing = db.session.query(Category).filter(
        Category.branch_id == branch_id,
        db.func.lower(Category.name) == name.lower(),
    ).first()
    if existing is not None:
        raise ConflictError(f"Category already exists: {name}")

    category = Category(branch_id=branch_id, name=name)
    db.session.add(category)
    commit_and_publish()
    return category


def list_categories(branch_id: int) -> list[Category]:
    return (
        db.session.query(Category)
        .filter_by(branch_id=branch_id)
        .order_by(Category.name.asc())
        .all()
    )


def create_item(*, branch_id: int, payload: dict) -> InventoryItem:
    require_active_branch(branch_id)
    patch = validate_payload(model=InventoryItem, payload=payload, policy=ITEM_POLICY, partial=False)
    enforce_rules_item(patch)
    _check_category(branch_id, patch.get("category_id"))

    item = InventoryItem(branch_id=branch_id, **patch)
    if item.stock is None:
        item.stock = 0
    db.session.add(item)
    commit_and_publish()
    logger.info("Created inventory item %s in branch %s", item.id, branch_id)
    return item


def update_item(item_id: int, payload: dict) -> InventoryItem:
    item = get_item(item_id)
    patch = validate_payload(model=InventoryItem, payload=payload, policy=ITEM_POLICY, partial=True)
    enforce_rules_item(patch)
    if "category_id" in patch:
        _check_category(item.branch_id, patch["category_id"])
    for key, value in patch.items():
        setattr(item, key, value)
    commit_and_publish()
    return item


def adjust_stock(adjustments: dict[int, int]) -> list[InventoryItem]:
    """
    Apply signed stock deltas {item_id: delta} in one transaction.

    All-or-nothing: if any item would go below zero nothing is written.
    """
    if not adjustments:
        raise ValidationError("No adjustments given")

    def _op():
        items = [(get_item(item_id), delta) for item_id, delta in adjustments.items()]
        for item, delta in items:
            if item.stock + delta < 0:
                raise ValidationError(f"Adjustment would make stock negative for {item.name}")
        for item, delta in items:
            item.stock += delta
        commit_and_publish()
        return [item for item, _ in items]

    return run_with_retry(_op)
