from __future__ import annotations

from ..extensions import db
from barberpos.time_utils import to_utc_z

class Product(db.Model):
    """
    Retail product (pomade, shampoo, ...).

    stock_qty is the current on-hand quantity. Every change to it is
    mirrored by an append-only StockMovement row.
    """
    __tablename__ = "catalog_products"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "sku", name="uq_catalog_products_tenant_sku"),
        db.Index("ix_catalog_products_tenant_active", "tenant_id", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)

    sku = db.Column(db.String(64), nullable=True)
    name = db.Column(db.String(255), nullable=False)

    # Authoritative storage in minor units (frontend may only format for display)
    price_cents = db.Column(db.Integer, nullable=False)
    discounted_price_cents = db.Column(db.Integer, nullable=True)

    stock_qty = db.Column(db.Integer, nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "sku": self.sku,
            "name": self.name,
            "price_cents": self.price_cents,
            "discounted_price_cents": self.discounted_price_cents,
            "stock_qty": self.stock_qty,
            "is_active": self.is_active,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }

class StockMovement(db.Model):
    """
    Append-only stock movement.

    MOVEMENT TYPES:
    - OUT: quantity leaves stock (POS sale)
    - IN: quantity returns to stock (sale reversal, manual restock)

    One movement per (sale line, direction): re-running a sale's side
    effects can never decrement the same line twice.
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.UniqueConstraint("sale_line_id", "movement_type", name="uq_stock_movements_line_type"),
        db.Index("ix_stock_movements_tenant_product", "tenant_id", "product_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("catalog_products.id"), nullable=False, index=True)

    movement_type = db.Column(db.String(8), nullable=False)  # OUT, IN
    quantity_delta = db.Column(db.Integer, nullable=False)  # signed
    quantity_after = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.String(32), nullable=False)  # POS_SALE, SALE_REVERSAL, RESTOCK, ...

    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True, index=True)
    sale_line_id = db.Column(db.Integer, db.ForeignKey("sale_lines.id"), nullable=True)
    note = db.Column(db.String(255), nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    product = db.relationship("Product", backref=db.backref("movements", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "product_id": self.product_id,
            "movement_type": self.movement_type,
            "quantity_delta": self.quantity_delta,
            "quantity_after": self.quantity_after,
            "reason": self.reason,
            "sale_id": self.sale_id,
            "sale_line_id": self.sale_line_id,
            "note": self.note,
            "occurred_at": to_utc_z(self.occurred_at),
        }
