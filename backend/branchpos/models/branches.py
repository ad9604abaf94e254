from __future__ import annotations

from ..extensions import db


class Branch(db.Model):
    """
    Physical or operational location.

    Root scoping unit: inventory, bundles, discounts, orders and work
    sessions all carry a branch_id.
    """
    __tablename__ = "branches"
    __collection__ = "branches"
    __table_args__ = (
        db.UniqueConstraint("name", name="uq_branches_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    location = db.Column(db.String(255), nullable=True)
    contact_number = db.Column(db.String(32), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Branch id={self.id} name={self.name!r}>"
