# Overview: Service-layer operations for checkout; writes orders and deducts stock atomically.

"""
Order Service

WHY: An order is the only routine stock decrement. Writing the order, its
lines and every stock deduction in one transaction keeps stock >= 0 and
guarantees that live inventory views never see a sale without its
deduction (or the reverse).

DESIGN:
- Prices, names and costs come from the database, never from the client
- Line input: {"item_id", "quantity"} or {"bundle_id", "quantity"}; custom
  bundles also carry "components": [{"inventory_item_id", "quantity"}] per unit
- Stock needs are aggregated per item across all lines before checking
- Orders are write-once; nothing here updates an existing order
"""

from __future__ import annotations

import logging
import time
from collections import defaultdict
from datetime import datetime, timezone

from ..extensions import db
from ..models import Bundle, InventoryItem, Order, OrderLine, Worker
from ..models.orders import ORDER_TYPES
from ..time_utils import utcnow
from ..validation import NotFoundError
from .branch_service import require_active_branch
from .concurrency import commit_and_publish, run_with_retry
from .discount_service import quote_discount

logger = logging.getLogger(__name__)


class OrderError(ValueError):
    """Raised for invalid checkout requests."""
    pass


class InsufficientStockError(OrderError):
    """Raised when an order needs more units than are in stock."""

    def __init__(self, item_name: str, needed: int, available: int):
        super().__init__(f"Insufficient stock for {item_name}: need {needed}, have {available}")
        self.item_name = item_name
        self.needed = needed
        self.available = available


def _positive_int(value, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise OrderError(f"{name} must be a positive integer")
    return value


def _branch_item(branch_id: int, item_id) -> InventoryItem:
    item = db.session.get(InventoryItem, item_id) if item_id is not None else None
    if item is None or item.branch_id != branch_id:
        raise OrderError(f"Item {item_id} not found in this branch")
    if not item.is_active:
        raise OrderError(f"{item.name} is not for sale")
    return item


def _custom_components(branch_id: int, bundle: Bundle, raw_components) -> list[tuple[InventoryItem, int]]:
    if not raw_components:
        raise OrderError(f"Pick the pieces for {bundle.name}")
    picked = []
    pieces = 0
    for raw in raw_components:
        item = _branch_item(branch_id, raw.get("inventory_item_id"))
        quantity = _positive_int(raw.get("quantity", 1), "component quantity")
        pieces += quantity
        picked.append((item, quantity))
    if bundle.max_pieces is not None and pieces > bundle.max_pieces:
        raise OrderError(f"{bundle.name} allows at most {bundle.max_pieces} pieces")
    return picked


def _build_lines(branch_id: int, raw_lines) -> tuple[list[OrderLine], dict[int, int], dict[int, InventoryItem], set[int]]:
    lines: list[OrderLine] = []
    needs: dict[int, int] = defaultdict(int)
    items: dict[int, InventoryItem] = {}
    category_ids: set[int] = set()

    for raw in raw_lines:
        if not isinstance(raw, dict):
            raise OrderError("Invalid order line")
        quantity = _positive_int(raw.get("quantity", 1), "quantity")

        if raw.get("bundle_id") is not None:
            bundle = db.session.get(Bundle, raw["bundle_id"])
            if bundle is None or bundle.branch_id != branch_id:
                raise OrderError(f"Bundle {raw['bundle_id']} not found in this branch")
            if not bundle.is_active:
                raise OrderError(f"{bundle.name} is not for sale")
            if bundle.is_custom:
                components = _custom_components(branch_id, bundle, raw.get("components"))
            else:
                components = [(c.inventory_item, c.quantity) for c in bundle.components]
                if not components:
                    raise OrderError(f"{bundle.name} has no components")
                for item, _ in components:
                    if not item.is_active:
                        raise OrderError(f"{bundle.name} is not for sale: {item.name} is inactive")
            for item, per_unit in components:
                needs[item.id] += per_unit * quantity
                items[item.id] = item
                if item.category_id is not None:
                    category_ids.add(item.category_id)
            lines.append(OrderLine(
                bundle_id=bundle.id,
                is_bundle=True,
                name=bundle.name,
                price_cents=bundle.price_cents,
                cost_cents=None,
                quantity=quantity,
                bundle_components=[
                    {"inventory_item_id": item.id, "quantity": per_unit} for item, per_unit in components
                ],
            ))
        else:
            item = _branch_item(branch_id, raw.get("item_id"))
            needs[item.id] += quantity
            items[item.id] = item
            if item.category_id is not None:
                category_ids.add(item.category_id)
            lines.append(OrderLine(
                item_id=item.id,
                is_bundle=False,
                name=item.name,
                price_cents=item.price_cents,
                cost_cents=item.cost_cents,
                quantity=quantity,
            ))
    return lines, needs, items, category_ids


def _order_number(now: datetime) -> str:
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    base = int(now.timestamp() * 1000)
    number = f"ORD-{base}"
    suffix = 1
    while db.session.query(Order.id).filter_by(order_number=number).first() is not None:
        suffix += 1
        number = f"ORD-{base}-{suffix}"
    return number


def create_order(
    *,
    branch_id: int,
    worker_id: int,
    lines: list,
    order_type: str = "dine_in",
    discount_code: str | None = None,
    now: datetime | None = None,
) -> Order:
    """
    Validate a cart, write the order and deduct stock in one transaction.

    Raises OrderError (or InsufficientStockError) without writing anything
    when the cart is empty, references foreign/inactive entities, or needs
    more stock than is available. DiscountError propagates for bad codes.
    """
    if order_type not in ORDER_TYPES:
        raise OrderError(f"order_type must be one of: {', '.join(ORDER_TYPES)}")
    if not lines:
        raise OrderError("Cart is empty")
    require_active_branch(branch_id)
    if db.session.get(Worker, worker_id) is None:
        raise NotFoundError("Worker not found")

    started = time.perf_counter()

    def _op():
        order_lines, needs, items, category_ids = _build_lines(branch_id, lines)
        for item_id, needed in needs.items():
            item = items[item_id]
            if item.stock < needed:
                raise InsufficientStockError(item.name, needed, item.stock)

        subtotal = sum(line.price_cents * line.quantity for line in order_lines)
        discount = None
        discount_cents = 0
        if discount_code:
            discount, discount_cents = quote_discount(
                branch_id=branch_id,
                code=discount_code,
                subtotal_cents=subtotal,
                category_ids=category_ids,
            )

        for item_id, needed in needs.items():
            items[item_id].stock -= needed

        created = now or utcnow()
        order = Order(
            branch_id=branch_id,
            worker_id=worker_id,
            order_number=_order_number(created),
            order_type=order_type,
            subtotal_cents=subtotal,
            discount_id=discount.id if discount else None,
            discount_amount_cents=discount_cents,
            total_cents=subtotal - discount_cents,
            created_at=created,
        )
        order.lines = order_lines
        db.session.add(order)
        commit_and_publish()
        return order

    try:
        order = run_with_retry(_op)
    except ValueError:
        db.session.rollback()
        raise

    logger.info(
        "Order %s placed in branch %s: %d lines, total %s cents (%.1f ms)",
        order.order_number, branch_id, len(order.lines), order.total_cents,
        (time.perf_counter() - started) * 1000,
    )
    return order


def get_order(order_id: int) -> Order:
    order = db.session.get(Order, order_id)
    if order is None:
        raise NotFoundError("Order not found")
    return order
