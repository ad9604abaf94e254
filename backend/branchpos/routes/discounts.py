# Overview: Flask API routes for branch discount codes and checkout quotes.

from flask import Blueprint, g, jsonify, request

from ..decorators import json_errors, require_branch_access, require_worker
from ..extensions import db
from ..models import Discount
from ..records import DiscountRecord, to_json
from ..services import discount_service
from ..validation import NotFoundError, require_int
from .common import arg_bool, record_response

discounts_bp = Blueprint("discounts", __name__, url_prefix="/api/branches/<int:branch_id>/discounts")


def _branch_discount(branch_id: int, discount_id: int):
    discount = discount_service.get_discount(discount_id)
    if discount.branch_id != branch_id:
        raise NotFoundError("Discount not found")
    return discount


@discounts_bp.get("")
@require_worker
@require_branch_access(manage=True)
def list_discounts_route(branch_id: int):
    query = db.session.query(Discount).filter_by(branch_id=branch_id)
    if not arg_bool("include_inactive"):
        query = query.filter(Discount.is_active.is_(True))
    discounts = query.order_by(Discount.code.asc()).all()
    return jsonify(to_json([DiscountRecord.from_model(d) for d in discounts])), 200


@discounts_bp.post("")
@require_worker
@require_branch_access(manage=True)
@json_errors
def create_discount_route(branch_id: int):
    data = request.get_json(silent=True) or {}
    discount = discount_service.create_discount(
        branch_id=branch_id, payload=data, created_by_id=g.current_worker.id
    )
    return record_response(DiscountRecord.from_model(discount), 201)


@discounts_bp.patch("/<int:discount_id>")
@require_worker
@require_branch_access(manage=True)
@json_errors
def update_discount_route(branch_id: int, discount_id: int):
    data = request.get_json(silent=True) or {}
    _branch_discount(branch_id, discount_id)
    discount = discount_service.update_discount(discount_id, data)
    return record_response(DiscountRecord.from_model(discount))


@discounts_bp.delete("/<int:discount_id>")
@require_worker
@require_branch_access(manage=True)
@json_errors
def delete_discount_route(branch_id: int, discount_id: int):
    _branch_discount(branch_id, discount_id)
    deleted = discount_service.delete_discount(discount_id)
    return jsonify({"deleted": deleted, "deactivated": not deleted}), 200


@discounts_bp.post("/quote")
@require_worker
@require_branch_access()
@json_errors
def quote_discount_route(branch_id: int):
    """Body: {"code", "subtotal_cents", "category_ids": [...]}."""
    data = request.get_json(silent=True) or {}
    discount, amount = discount_service.quote_discount(
        branch_id=branch_id,
        code=data.get("code"),
        subtotal_cents=require_int(data.get("subtotal_cents"), "subtotal_cents"),
        category_ids=[require_int(c, "category_ids") for c in data.get("category_ids") or []],
    )
    return jsonify({"discount": to_json(DiscountRecord.from_model(discount)), "discount_cents": amount}), 200
