# Overview: Service-layer operations for bundles and their component lists.

"""
Bundle Service

Fixed bundles own a list of {inventory_item_id, quantity} components drawn
from the same branch. Custom bundles own none; they only carry max_pieces.
Component problems are detected before anything is written, so a bad
component never leaves a half-built bundle behind.
"""

from __future__ import annotations

import logging

from ..extensions import db
from ..models import Bundle, BundleComponent, InventoryItem, OrderLine
from ..validation import NotFoundError, ValidationError, enforce_rules_bundle
from .branch_service import require_active_branch
from .concurrency import commit_and_publish

logger = logging.getLogger(__name__)

_BUNDLE_FIELDS = {"name", "description", "price_cents", "image_url", "is_custom", "max_pieces", "is_active"}


class BundleError(ValueError):
    """Raised for invalid bundle definitions."""
    pass


def get_bundle(bundle_id: int) -> Bundle:
    bundle = db.session.get(Bundle, bundle_id)
    if bundle is None:
        raise NotFoundError("Bundle not found")
    return bundle


def _clean_fields(payload: dict, *, partial: bool) -> dict:
    unknown = set(payload) - _BUNDLE_FIELDS - {"components"}
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(sorted(unknown))}")
    fields = {k: v for k, v in payload.items() if k in _BUNDLE_FIELDS}
    if not partial:
        if not (fields.get("name") or "").strip():
            raise ValidationError("name is required")
        if fields.get("price_cents") is None:
            raise ValidationError("price_cents is required")
    if "name" in fields:
        fields["name"] = (fields["name"] or "").strip()
        if not fields["name"]:
            raise ValidationError("name cannot be blank")
    for key in ("price_cents", "max_pieces"):
        value = fields.get(key)
        if value is not None and (isinstance(value, bool) or not isinstance(value, int)):
            raise ValidationError(f"{key} must be an integer")
    return fields


def _resolve_components(branch_id: int, components) -> list[tuple[InventoryItem, int]]:
    if not isinstance(components, list):
        raise BundleError("components must be a list")
    seen = set()
    resolved = []
    for raw in components:
        if not isinstance(raw, dict):
            raise BundleError("Each component needs inventory_item_id and quantity")
        item_id = raw.get("inventory_item_id")
        quantity = raw.get("quantity", 1)
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise BundleError("Component quantity must be a positive integer")
        if item_id in seen:
            raise BundleError(f"Duplicate component item {item_id}")
        item = db.session.get(InventoryItem, item_id) if item_id is not None else None
        if item is None:
            raise BundleError(f"Component item {item_id} not found")
        if item.branch_id != branch_id:
            raise BundleError(f"Component item {item_id} belongs to another branch")
        seen.add(item_id)
        resolved.append((item, quantity))
    return resolved


def _validate_shape(is_custom: bool, max_pieces, components: list) -> None:
    if is_custom:
        if components:
            raise BundleError("Custom bundles cannot have fixed components")
        if max_pieces is None or max_pieces <= 0:
            raise BundleError("Custom bundles need max_pieces > 0")
    elif not components:
        raise BundleError("Fixed bundles need at least one component")


def create_bundle(*, branch_id: int, payload: dict) -> Bundle:
    require_active_branch(branch_id)
    fields = _clean_fields(payload, partial=False)
    enforce_rules_bundle(fields)
    components = _resolve_components(branch_id, payload.get("components") or [])
    _validate_shape(bool(fields.get("is_custom")), fields.get("max_pieces"), components)

    bundle = Bundle(branch_id=branch_id, **fields)
    bundle.components = [
        BundleComponent(inventory_item_id=item.id, quantity=quantity) for item, quantity in components
    ]
    db.session.add(bundle)
    commit_and_publish()
    logger.info("Created bundle %s in branch %s with %d components", bundle.id, branch_id, len(components))
    return bundle


def update_bundle(bundle_id: int, payload: dict) -> Bundle:
    """Patch bundle fields; the component list is replaced only when `components` is given."""
    bundle = get_bundle(bundle_id)
    fields = _clean_fields(payload, partial=True)
    enforce_rules_bundle({**{"is_custom": bundle.is_custom, "max_pieces": bundle.max_pieces}, **fields})

    if "components" in payload:
        components = _resolve_components(bundle.branch_id, payload.get("components") or [])
    else:
        components = [(c.inventory_item, c.quantity) for c in bundle.components]
    is_custom = fields.get("is_custom", bundle.is_custom)
    max_pieces = fields.get("max_pieces", bundle.max_pieces)
    _validate_shape(bool(is_custom), max_pieces, components)

    for key, value in fields.items():
        setattr(bundle, key, value)
    if "components" in payload:
        # Old rows must be deleted before the replacements hit the unique constraint
        bundle.components = []
        db.session.flush()
        bundle.components = [
            BundleComponent(inventory_item_id=item.id, quantity=quantity) for item, quantity in components
        ]
    commit_and_publish()
    return bundle


def delete_bundle(bundle_id: int) -> bool:
    """
    Remove a bundle.

    Bundles already sold are deactivated instead so order history keeps its
    reference. Returns True when the row was actually deleted.
    """
    bundle = get_bundle(bundle_id)
    sold = db.session.query(OrderLine.id).filter(OrderLine.bundle_id == bundle.id).first() is not None
    if sold:
        bundle.is_active = False
        commit_and_publish()
        logger.info("Deactivated sold bundle %s", bundle_id)
        return False
    db.session.delete(bundle)
    commit_and_publish()
    logger.info("Deleted bundle %s", bundle_id)
    return True
