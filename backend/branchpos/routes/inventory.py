# Overview: Flask API routes for branch inventory; items, categories, stock and bundles.

"""
Inventory Routes

Everything is nested under /api/branches/<branch_id>/ so branch access is
checked once by the decorator. Reads need access to the branch; writes need
the manager role there (admins always pass).
"""

from flask import Blueprint, g, jsonify, request

from ..decorators import json_errors, require_branch_access, require_worker, view_context
from ..records import BundleRecord, CategoryRecord, InventoryItemRecord
from ..services import bundle_service, inventory_service
from ..services.dispatch import MutationDispatcher
from ..validation import NotFoundError, ValidationError, require_int
from ..views import InventoryView
from .common import action_response, filter_args, record_response

inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/branches/<int:branch_id>")


def _branch_item(branch_id: int, item_id: int):
    item = inventory_service.get_item(item_id)
    if item.branch_id != branch_id:
        raise NotFoundError("Inventory item not found")
    return item


def _dispatcher() -> MutationDispatcher:
    return MutationDispatcher(actor_id=g.current_worker.id)


def _branch_bundle(branch_id: int, bundle_id: int):
    bundle = bundle_service.get_bundle(bundle_id)
    if bundle.branch_id != branch_id:
        raise NotFoundError("Bundle not found")
    return bundle


@inventory_bp.get("/inventory")
@require_worker
@require_branch_access()
@json_errors
def inventory_view_route(branch_id: int):
    filter_spec, sort_spec = filter_args(match_keys=("category_id", "status"))
    with InventoryView(view_context(branch_id), filter_spec, sort_spec) as view:
        return jsonify(view.render()), 200


@inventory_bp.post("/inventory/items")
@require_worker
@require_branch_access(manage=True)
@json_errors
def create_item_route(branch_id: int):
    data = request.get_json(silent=True) or {}
    item = inventory_service.create_item(branch_id=branch_id, payload=data)
    return record_response(InventoryItemRecord.from_model(item), 201)


@inventory_bp.patch("/inventory/items/<int:item_id>")
@require_worker
@require_branch_access(manage=True)
@json_errors
def update_item_route(branch_id: int, item_id: int):
    data = request.get_json(silent=True) or {}
    _branch_item(branch_id, item_id)
    item = inventory_service.update_item(item_id, data)
    return record_response(InventoryItemRecord.from_model(item))


@inventory_bp.post("/inventory/adjust")
@require_worker
@require_branch_access(manage=True)
@json_errors
def adjust_stock_route(branch_id: int):
    data = request.get_json(silent=True) or {}
    rows = data.get("adjustments")
    if not isinstance(rows, list) or not rows:
        raise ValidationError("adjustments must be a non-empty list")
    adjustments = {}
    for row in rows:
        item_id = require_int(row.get("item_id"), "item_id")
        _branch_item(branch_id, item_id)
        adjustments[item_id] = adjustments.get(item_id, 0) + require_int(row.get("delta"), "delta")
    items = inventory_service.adjust_stock(adjustments)
    return record_response([InventoryItemRecord.from_model(i) for i in items])


@inventory_bp.get("/categories")
@require_worker
@require_branch_access()
@json_errors
def list_categories_route(branch_id: int):
    categories = inventory_service.list_categories(branch_id)
    return record_response([CategoryRecord.from_model(c) for c in categories])


@inventory_bp.post("/categories")
@require_worker
@require_branch_access(manage=True)
@json_errors
def create_category_route(branch_id: int):
    data = request.get_json(silent=True) or {}
    category = inventory_service.create_category(branch_id=branch_id, name=data.get("name"))
    return record_response(CategoryRecord.from_model(category), 201)


@inventory_bp.post("/bundles")
@require_worker
@require_branch_access(manage=True)
@json_errors
def create_bundle_route(branch_id: int):
    data = request.get_json(silent=True) or {}
    result = _dispatcher().create_bundle(branch_id=branch_id, payload=data)
    return action_response(result, BundleRecord, 201)


@inventory_bp.patch("/bundles/<int:bundle_id>")
@require_worker
@require_branch_access(manage=True)
@json_errors
def update_bundle_route(branch_id: int, bundle_id: int):
    data = request.get_json(silent=True) or {}
    _branch_bundle(branch_id, bundle_id)
    result = _dispatcher().update_bundle(bundle_id, data)
    return action_response(result, BundleRecord)


@inventory_bp.delete("/bundles/<int:bundle_id>")
@require_worker
@require_branch_access(manage=True)
@json_errors
def delete_bundle_route(branch_id: int, bundle_id: int):
    _branch_bundle(branch_id, bundle_id)
    result = _dispatcher().delete_bundle(bundle_id)
    if not result.ok:
        return jsonify({"error": result.error}), 400
    return jsonify({"deleted": result.value, "deactivated": not result.value}), 200
