# Overview: Immutable in-memory records handed to views by the entity readers.

"""
Typed records

Views never hold ORM instances: a committed row is translated into a frozen
dataclass so that subscription callbacks, filters and metric calculators work
on plain values that cannot trigger lazy loads or leak session state.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import datetime
from typing import Optional, Tuple

from .time_utils import to_utc_z


@dataclass(frozen=True)
class BranchRecord:
    id: int
    name: str
    location: Optional[str] = None
    contact_number: Optional[str] = None
    is_active: bool = True

    @classmethod
    def from_model(cls, branch) -> "BranchRecord":
        return cls(
            id=branch.id,
            name=branch.name,
            location=branch.location,
            contact_number=branch.contact_number,
            is_active=branch.is_active,
        )


@dataclass(frozen=True)
class CategoryRecord:
    id: int
    branch_id: int
    name: str

    @classmethod
    def from_model(cls, category) -> "CategoryRecord":
        return cls(id=category.id, branch_id=category.branch_id, name=category.name)


@dataclass(frozen=True)
class InventoryItemRecord:
    id: int
    branch_id: int
    name: str
    price_cents: int
    stock: int
    category_id: Optional[int] = None
    cost_cents: Optional[int] = None
    description: Optional[str] = None
    barcode: Optional[str] = None
    image_url: Optional[str] = None
    is_active: bool = True

    @property
    def status(self) -> str:
        return "active" if self.is_active else "inactive"

    @classmethod
    def from_model(cls, item) -> "InventoryItemRecord":
        return cls(
            id=item.id,
            branch_id=item.branch_id,
            name=item.name,
            price_cents=item.price_cents,
            stock=item.stock,
            category_id=item.category_id,
            cost_cents=item.cost_cents,
            description=item.description,
            barcode=item.barcode,
            image_url=item.image_url,
            is_active=item.is_active,
        )


@dataclass(frozen=True)
class BundleComponentRecord:
    inventory_item_id: int
    quantity: int


@dataclass(frozen=True)
class BundleRecord:
    id: int
    branch_id: int
    name: str
    price_cents: int
    components: Tuple[BundleComponentRecord, ...] = ()
    is_custom: bool = False
    max_pieces: Optional[int] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    is_active: bool = True

    @property
    def status(self) -> str:
        return "active" if self.is_active else "inactive"

    @classmethod
    def from_model(cls, bundle) -> "BundleRecord":
        return cls(
            id=bundle.id,
            branch_id=bundle.branch_id,
            name=bundle.name,
            price_cents=bundle.price_cents,
            components=tuple(
                BundleComponentRecord(c.inventory_item_id, c.quantity) for c in bundle.components
            ),
            is_custom=bundle.is_custom,
            max_pieces=bundle.max_pieces,
            description=bundle.description,
            image_url=bundle.image_url,
            is_active=bundle.is_active,
        )


@dataclass(frozen=True)
class RoleAssignmentRecord:
    branch_id: int
    role: str
    is_active: bool = True


@dataclass(frozen=True)
class WorkerRecord:
    id: int
    name: str
    email: str
    role_assignments: Tuple[RoleAssignmentRecord, ...] = ()
    is_admin: bool = False
    employee_code: Optional[str] = None
    phone: Optional[str] = None
    current_status: Optional[str] = "clocked_out"
    current_branch_id: Optional[int] = None
    last_time_in: Optional[datetime] = None
    last_time_out: Optional[datetime] = None
    is_active: bool = True

    @property
    def roles(self) -> frozenset:
        """Roles the worker currently holds anywhere ("admin" for admins)."""
        if self.is_admin:
            return frozenset({"admin"})
        return frozenset(a.role for a in self.role_assignments if a.is_active)

    @property
    def branch_ids(self) -> frozenset:
        return frozenset(a.branch_id for a in self.role_assignments if a.is_active)

    @property
    def status(self) -> Optional[str]:
        return self.current_status

    @classmethod
    def from_model(cls, worker) -> "WorkerRecord":
        return cls(
            id=worker.id,
            name=worker.name,
            email=worker.email,
            role_assignments=tuple(
                RoleAssignmentRecord(a.branch_id, a.role, a.is_active) for a in worker.role_assignments
            ),
            is_admin=worker.is_admin,
            employee_code=worker.employee_code,
            phone=worker.phone,
            current_status=None if worker.is_admin else worker.current_status,
            current_branch_id=worker.current_branch_id,
            last_time_in=worker.last_time_in,
            last_time_out=worker.last_time_out,
            is_active=worker.is_active,
        )


@dataclass(frozen=True)
class WorkSessionRecord:
    id: int
    worker_id: int
    branch_id: int
    time_in_at: datetime
    time_out_at: Optional[datetime] = None
    duration_minutes: Optional[int] = None
    session_type: str = "scheduled"
    notes: Optional[str] = None

    @property
    def status(self) -> str:
        return "active" if self.time_out_at is None else "completed"

    @classmethod
    def from_model(cls, session) -> "WorkSessionRecord":
        return cls(
            id=session.id,
            worker_id=session.worker_id,
            branch_id=session.branch_id,
            time_in_at=session.time_in_at,
            time_out_at=session.time_out_at,
            duration_minutes=session.duration_minutes,
            session_type=session.session_type,
            notes=session.notes,
        )


@dataclass(frozen=True)
class OrderLineRecord:
    name: str
    price_cents: int
    quantity: int
    cost_cents: Optional[int] = None
    item_id: Optional[int] = None
    bundle_id: Optional[int] = None
    is_bundle: bool = False
    bundle_components: Tuple[BundleComponentRecord, ...] = ()


@dataclass(frozen=True)
class OrderRecord:
    id: int
    branch_id: int
    worker_id: int
    order_number: str
    subtotal_cents: int
    total_cents: int
    created_at: datetime
    lines: Tuple[OrderLineRecord, ...] = ()
    order_type: str = "dine_in"
    discount_id: Optional[int] = None
    discount_amount_cents: int = 0

    @classmethod
    def from_model(cls, order) -> "OrderRecord":
        return cls(
            id=order.id,
            branch_id=order.branch_id,
            worker_id=order.worker_id,
            order_number=order.order_number,
            subtotal_cents=order.subtotal_cents,
            total_cents=order.total_cents,
            created_at=order.created_at,
            lines=tuple(
                OrderLineRecord(
                    name=line.name,
                    price_cents=line.price_cents,
                    quantity=line.quantity,
                    cost_cents=line.cost_cents,
                    item_id=line.item_id,
                    bundle_id=line.bundle_id,
                    is_bundle=line.is_bundle,
                    bundle_components=tuple(
                        BundleComponentRecord(c["inventory_item_id"], c["quantity"])
                        for c in (line.bundle_components or [])
                    ),
                )
                for line in order.lines
            ),
            order_type=order.order_type,
            discount_id=order.discount_id,
            discount_amount_cents=order.discount_amount_cents,
        )


@dataclass(frozen=True)
class DiscountRecord:
    id: int
    branch_id: int
    code: str
    discount_type: str
    value: int
    applies_to_category_id: Optional[int] = None
    min_subtotal_cents: Optional[int] = None
    is_active: bool = True

    @property
    def status(self) -> str:
        return "active" if self.is_active else "inactive"

    @classmethod
    def from_model(cls, discount) -> "DiscountRecord":
        return cls(
            id=discount.id,
            branch_id=discount.branch_id,
            code=discount.code,
            discount_type=discount.discount_type,
            value=discount.value,
            applies_to_category_id=discount.applies_to_category_id,
            min_subtotal_cents=discount.min_subtotal_cents,
            is_active=discount.is_active,
        )


def to_json(value):
    """Recursively convert records (and containers of them) to JSON-safe values."""
    if hasattr(value, "__dataclass_fields__"):
        return {f.name: to_json(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, datetime):
        return to_utc_z(value)
    if isinstance(value, (frozenset, set)):
        return sorted(to_json(v) for v in value)
    if isinstance(value, (list, tuple)):
        return [to_json(v) for v in value]
    if isinstance(value, dict):
        return {str(k): to_json(v) for k, v in value.items()}
    return value
