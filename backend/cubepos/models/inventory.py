from __future__ import annotations

from ..extensions import db
from cubepos.time_utils import to_utc_z


APPROVAL_PENDING = "PENDING"
APPROVAL_APPROVED = "APPROVED"
APPROVAL_REJECTED = "REJECTED"

CHANGE_SALE = "SALE"
CHANGE_VARIANT_STOCK_UPDATE = "VARIANT_STOCK_UPDATE"
CHANGE_VARIANT_PRICE_UPDATE = "VARIANT_PRICE_UPDATE"
CHANGE_APPROVAL = "APPROVAL"

DEFAULT_LOW_STOCK_THRESHOLD = 5


class Product(db.Model):
    """
    Product master data owned by a tenant.

    Sellable units are ProductVariants; the product carries the shared name.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_tenant_name", "tenant_id", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    sku = db.Column(db.String(64), nullable=True)
    category = db.Column(db.String(64), nullable=True)
    description = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    tenant = db.relationship("Tenant", backref=db.backref("products", lazy=True))

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} tenant_id={self.tenant_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "name": self.name,
            "sku": self.sku,
            "category": self.category,
            "description": self.description,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class ProductVariant(db.Model):
    """
    Sellable variant (color/size) with its own stock level.

    Stock is a mutable counter that must never go negative. Checkout only
    changes it through a single conditional UPDATE (decrement where
    stock >= quantity); the CHECK constraint backs that up at the store.
    """
    __tablename__ = "product_variants"
    __table_args__ = (
        db.CheckConstraint("stock >= 0", name="ck_product_variants_stock_nonnegative"),
        db.UniqueConstraint("barcode", name="uq_product_variants_barcode"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    color = db.Column(db.String(64), nullable=True)
    size = db.Column(db.String(64), nullable=True)
    sku = db.Column(db.String(64), nullable=True)
    barcode = db.Column(db.String(64), nullable=True)

    price = db.Column(db.Numeric(10, 2), nullable=False)
    stock = db.Column(db.Integer, nullable=False, default=0)
    low_stock_threshold = db.Column(db.Integer, nullable=False, default=DEFAULT_LOW_STOCK_THRESHOLD)
    approval_status = db.Column(db.String(16), nullable=False, default=APPROVAL_PENDING, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    product = db.relationship("Product", backref=db.backref("variants", lazy=True, order_by="ProductVariant.id"))

    @property
    def display_name(self) -> str:
        """Color and size joined with " - ", skipping whichever is unset."""
        return " - ".join(part for part in (self.color, self.size) if part)

    def __repr__(self) -> str:
        return f"<ProductVariant id={self.id} product_id={self.product_id} stock={self.stock}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "color": self.color,
            "size": self.size,
            "sku": self.sku,
            "barcode": self.barcode,
            "price": f"{self.price:.2f}",
            "stock": self.stock,
            "low_stock_threshold": self.low_stock_threshold,
            "approval_status": self.approval_status,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class InventoryLog(db.Model):
    """
    Append-only audit trail: one row per stock, price or approval change.

    Written inside the same DB transaction as the change it records.
    previous_value/new_value are stored as text so one table covers stock
    counts and prices.
    """
    __tablename__ = "inventory_logs"
    __table_args__ = (
        db.Index("ix_inventory_logs_variant_created", "variant_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    variant_id = db.Column(db.Integer, db.ForeignKey("product_variants.id"), nullable=True)
    actor_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    change_type = db.Column(db.String(32), nullable=False, index=True)
    previous_value = db.Column(db.String(64), nullable=True)
    new_value = db.Column(db.String(64), nullable=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "variant_id": self.variant_id,
            "actor_user_id": self.actor_user_id,
            "change_type": self.change_type,
            "previous_value": self.previous_value,
            "new_value": self.new_value,
            "sale_id": self.sale_id,
            "created_at": to_utc_z(self.created_at),
        }
