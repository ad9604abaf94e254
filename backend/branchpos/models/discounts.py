from __future__ import annotations

from ..extensions import db

DISCOUNT_PERCENTAGE = "percentage"
DISCOUNT_FLAT = "flat"
DISCOUNT_TYPES = (DISCOUNT_PERCENTAGE, DISCOUNT_FLAT)


class Discount(db.Model):
    """
    Branch discount code.

    discount_type=percentage: value is a whole percent (0-100).
    discount_type=flat: value is cents, capped at the order subtotal.
    applies_to_category_id limits the code to carts holding that category.
    """
    __tablename__ = "discounts"
    __collection__ = "discounts"
    __table_args__ = (
        db.UniqueConstraint("branch_id", "code", name="uq_discounts_branch_code"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False, index=True)

    code = db.Column(db.String(64), nullable=False)
    discount_type = db.Column(db.String(16), nullable=False)
    value = db.Column(db.Integer, nullable=False, default=0)

    applies_to_category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=True)
    min_subtotal_cents = db.Column(db.Integer, nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_by_id = db.Column(db.Integer, db.ForeignKey("workers.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
