from __future__ import annotations

from ..extensions import db

ORDER_TYPES = ("dine_in", "take_out", "delivery")


class Order(db.Model):
    """
    Completed sale.

    IMMUTABLE: orders and their lines are written once at checkout and never
    updated afterwards.
    """
    __tablename__ = "orders"
    __collection__ = "orders"
    __table_args__ = (
        db.UniqueConstraint("order_number", name="uq_orders_order_number"),
        db.Index("ix_orders_branch_created", "branch_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False, index=True)
    worker_id = db.Column(db.Integer, db.ForeignKey("workers.id"), nullable=False, index=True)

    order_number = db.Column(db.String(32), nullable=False)
    order_type = db.Column(db.String(16), nullable=False, default="dine_in")

    subtotal_cents = db.Column(db.Integer, nullable=False)
    discount_id = db.Column(db.Integer, db.ForeignKey("discounts.id"), nullable=True)
    discount_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False)

    lines = db.relationship("OrderLine", back_populates="order", order_by="OrderLine.id")
    worker = db.relationship("Worker")


class OrderLine(db.Model):
    __tablename__ = "order_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)

    item_id = db.Column(db.Integer, db.ForeignKey("inventory_items.id"), nullable=True)
    bundle_id = db.Column(db.Integer, db.ForeignKey("bundles.id"), nullable=True)
    is_bundle = db.Column(db.Boolean, nullable=False, default=False)

    name = db.Column(db.String(255), nullable=False)
    price_cents = db.Column(db.Integer, nullable=False)
    cost_cents = db.Column(db.Integer, nullable=True)
    quantity = db.Column(db.Integer, nullable=False)

    # Snapshot of [{"inventory_item_id": .., "quantity": ..}] at sale time
    bundle_components = db.Column(db.JSON, nullable=True)

    order = db.relationship("Order", back_populates="lines")
