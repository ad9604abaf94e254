# Overview: Entity readers; load a collection snapshot as typed records for the change feed.

"""
Entity Readers

Each reader takes a CollectionRef and returns the current snapshot of that
collection as a list of frozen records. A ref's branch_id scopes the query;
extra parameters narrow it further:

- inventory / bundles / categories / discounts: include_inactive
- workers: include_inactive (branch scope matches active role assignments)
- work_sessions: worker_id, start, end, active_only
- orders: start, end
"""

from __future__ import annotations

from sqlalchemy.orm import selectinload

from ..extensions import db
from ..models import (
    Branch,
    Bundle,
    Category,
    Discount,
    InventoryItem,
    Order,
    RoleAssignment,
    Worker,
    WorkSession,
)
from ..records import (
    BranchRecord,
    BundleRecord,
    CategoryRecord,
    DiscountRecord,
    InventoryItemRecord,
    OrderRecord,
    WorkerRecord,
    WorkSessionRecord,
)
from .realtime import ChangeFeed, CollectionRef


def _scoped(query, model, ref: CollectionRef):
    if ref.branch_id is not None:
        query = query.filter(model.branch_id == ref.branch_id)
    if hasattr(model, "is_active") and not ref.param("include_inactive", False):
        query = query.filter(model.is_active.is_(True))
    return query


def read_branches(ref: CollectionRef) -> list[BranchRecord]:
    query = db.session.query(Branch)
    if ref.branch_id is not None:
        query = query.filter(Branch.id == ref.branch_id)
    if not ref.param("include_inactive", False):
        query = query.filter(Branch.is_active.is_(True))
    return [BranchRecord.from_model(b) for b in query.order_by(Branch.name.asc()).all()]


def read_categories(ref: CollectionRef) -> list[CategoryRecord]:
    query = _scoped(db.session.query(Category), Category, ref)
    return [CategoryRecord.from_model(c) for c in query.order_by(Category.name.asc()).all()]


def read_inventory(ref: CollectionRef) -> list[InventoryItemRecord]:
    query = _scoped(db.session.query(InventoryItem), InventoryItem, ref)
    return [InventoryItemRecord.from_model(i) for i in query.order_by(InventoryItem.name.asc()).all()]


def read_bundles(ref: CollectionRef) -> list[BundleRecord]:
    query = _scoped(db.session.query(Bundle), Bundle, ref).options(selectinload(Bundle.components))
    return [BundleRecord.from_model(b) for b in query.order_by(Bundle.name.asc()).all()]


def read_workers(ref: CollectionRef) -> list[WorkerRecord]:
    query = db.session.query(Worker).options(selectinload(Worker.role_assignments))
    if not ref.param("include_inactive", False):
        query = query.filter(Worker.is_active.is_(True))
    if ref.branch_id is not None:
        query = query.filter(
            Worker.role_assignments.any(
                (RoleAssignment.branch_id == ref.branch_id) & RoleAssignment.is_active.is_(True)
            )
        )
    return [WorkerRecord.from_model(w) for w in query.order_by(Worker.name.asc()).all()]


def read_work_sessions(ref: CollectionRef) -> list[WorkSessionRecord]:
    query = db.session.query(WorkSession)
    if ref.branch_id is not None:
        query = query.filter(WorkSession.branch_id == ref.branch_id)
    worker_id = ref.param("worker_id")
    if worker_id is not None:
        query = query.filter(WorkSession.worker_id == worker_id)
    start = ref.param("start")
    if start is not None:
        query = query.filter(WorkSession.time_in_at >= start)
    end = ref.param("end")
    if end is not None:
        query = query.filter(WorkSession.time_in_at <= end)
    if ref.param("active_only", False):
        query = query.filter(WorkSession.time_out_at.is_(None))
    sessions = query.order_by(WorkSession.time_in_at.desc(), WorkSession.id.desc()).all()
    return [WorkSessionRecord.from_model(s) for s in sessions]


def read_orders(ref: CollectionRef) -> list[OrderRecord]:
    query = db.session.query(Order).options(selectinload(Order.lines))
    if ref.branch_id is not None:
        query = query.filter(Order.branch_id == ref.branch_id)
    start = ref.param("start")
    if start is not None:
        query = query.filter(Order.created_at >= start)
    end = ref.param("end")
    if end is not None:
        query = query.filter(Order.created_at <= end)
    orders = query.order_by(Order.created_at.desc(), Order.id.desc()).all()
    return [OrderRecord.from_model(o) for o in orders]


def read_discounts(ref: CollectionRef) -> list[DiscountRecord]:
    query = _scoped(db.session.query(Discount), Discount, ref)
    return [DiscountRecord.from_model(d) for d in query.order_by(Discount.code.asc()).all()]


def register_readers(feed: ChangeFeed) -> None:
    """Attach every collection reader (and its document model) to the feed."""
    feed.register("branches", read_branches, model=Branch, to_record=BranchRecord.from_model)
    feed.register("categories", read_categories, model=Category, to_record=CategoryRecord.from_model)
    feed.register("inventory", read_inventory, model=InventoryItem, to_record=InventoryItemRecord.from_model)
    feed.register("bundles", read_bundles, model=Bundle, to_record=BundleRecord.from_model)
    feed.register("workers", read_workers, model=Worker, to_record=WorkerRecord.from_model)
    feed.register("work_sessions", read_work_sessions, model=WorkSession, to_record=WorkSessionRecord.from_model)
    feed.register("orders", read_orders, model=Order, to_record=OrderRecord.from_model, read_only=True)
    feed.register("discounts", read_discounts, model=Discount, to_record=DiscountRecord.from_model)
