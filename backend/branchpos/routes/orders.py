# Overview: Flask API routes for the store screen, checkout and sales history.

from flask import Blueprint, g, jsonify, request

from ..decorators import json_errors, require_branch_access, require_worker, view_context
from ..records import OrderRecord
from ..services import order_service
from ..time_utils import parse_iso_datetime
from ..validation import NotFoundError
from ..views import SalesView, StoreView
from .common import date_range_args, filter_args, record_response

orders_bp = Blueprint("orders", __name__, url_prefix="/api/branches/<int:branch_id>")


@orders_bp.get("/store")
@require_worker
@require_branch_access()
@json_errors
def store_view_route(branch_id: int):
    filter_spec, sort_spec = filter_args(match_keys=("category_id",))
    with StoreView(view_context(branch_id), filter_spec, sort_spec) as view:
        return jsonify(view.render()), 200


@orders_bp.post("/orders")
@require_worker
@require_branch_access()
@json_errors
def create_order_route(branch_id: int):
    """
    Place an order from a client-side cart.

    Body: {"lines": [...], "order_type": "dine_in", "discount_code": "..."};
    see order_service for the line shape. Prices are always taken from the
    database.
    """
    data = request.get_json(silent=True) or {}
    order = order_service.create_order(
        branch_id=branch_id,
        worker_id=g.current_worker.id,
        lines=data.get("lines") or [],
        order_type=data.get("order_type", "dine_in"),
        discount_code=data.get("discount_code"),
    )
    return record_response(OrderRecord.from_model(order), 201)


@orders_bp.get("/orders")
@require_worker
@require_branch_access(manage=True)
@json_errors
def sales_view_route(branch_id: int):
    start, end = date_range_args()
    filter_spec, sort_spec = filter_args(match_keys=("order_type", "worker_id"))
    # ?week=YYYY-MM-DD picks the weekly report; any day of the week works
    week = parse_iso_datetime(request.args.get("week"))
    view = SalesView(view_context(branch_id), filter_spec, sort_spec, start=start, end=end,
                     week_of=week.date() if week else None)
    with view:
        return jsonify(view.render()), 200


@orders_bp.get("/orders/<int:order_id>")
@require_worker
@require_branch_access(manage=True)
@json_errors
def get_order_route(branch_id: int, order_id: int):
    order = order_service.get_order(order_id)
    if order.branch_id != branch_id:
        raise NotFoundError("Order not found")
    return record_response(OrderRecord.from_model(order))
