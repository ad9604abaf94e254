from __future__ import annotations

from ..extensions import db


class Category(db.Model):
    __tablename__ = "categories"
    __collection__ = "categories"
    __table_args__ = (
        db.UniqueConstraint("branch_id", "name", name="uq_categories_branch_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False, index=True)
    name = db.Column(db.String(120), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    branch = db.relationship("Branch", backref=db.backref("categories", lazy=True))


class InventoryItem(db.Model):
    """
    Sellable stock-keeping item.

    Stock is an integer that never drops below zero. It is decremented by
    order placement (directly, or through bundle components).
    """
    __tablename__ = "inventory_items"
    __collection__ = "inventory"
    __table_args__ = (
        db.CheckConstraint("stock >= 0", name="ck_inventory_items_stock_nonnegative"),
        db.Index("ix_inventory_items_branch_name", "branch_id", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False, index=True)
    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=True, index=True)

    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)

    price_cents = db.Column(db.Integer, nullable=False, default=0)
    cost_cents = db.Column(db.Integer, nullable=True)
    stock = db.Column(db.Integer, nullable=False, default=0)

    barcode = db.Column(db.String(64), nullable=True, index=True)
    image_url = db.Column(db.String(512), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    branch = db.relationship("Branch", backref=db.backref("inventory_items", lazy=True))
    category = db.relationship("Category", backref=db.backref("items", lazy=True))

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<InventoryItem id={self.id} name={self.name!r} stock={self.stock}>"


class Bundle(db.Model):
    """
    Sellable composite of inventory items.

    Fixed bundles carry a component list. Custom bundles let the customer pick
    up to max_pieces items at checkout, so their components are not stored.
    """
    __tablename__ = "bundles"
    __collection__ = "bundles"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    price_cents = db.Column(db.Integer, nullable=False, default=0)
    image_url = db.Column(db.String(512), nullable=True)

    is_custom = db.Column(db.Boolean, nullable=False, default=False)
    max_pieces = db.Column(db.Integer, nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    branch = db.relationship("Branch", backref=db.backref("bundles", lazy=True))
    components = db.relationship(
        "BundleComponent",
        back_populates="bundle",
        cascade="all, delete-orphan",
        order_by="BundleComponent.id",
    )


class BundleComponent(db.Model):
    __tablename__ = "bundle_components"
    # Component rows do not carry a branch, so changes refresh every bundle scope
    __collection__ = "bundles"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_bundle_components_quantity_positive"),
        db.UniqueConstraint("bundle_id", "inventory_item_id", name="uq_bundle_components_bundle_item"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    bundle_id = db.Column(db.Integer, db.ForeignKey("bundles.id"), nullable=False, index=True)
    inventory_item_id = db.Column(db.Integer, db.ForeignKey("inventory_items.id"), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False, default=1)

    bundle = db.relationship("Bundle", back_populates="components")
    inventory_item = db.relationship("InventoryItem")
