from __future__ import annotations

from ..extensions import db
from barberpos.time_utils import to_utc_z

TENDER_CASH = "CASH"
TENDER_CARD = "CARD"
TENDER_CREDIT = "CREDIT"
TENDER_DEBIT = "DEBIT"
TENDER_TRANSFER = "TRANSFER"

TENDER_METHODS = (TENDER_CASH, TENDER_CARD, TENDER_CREDIT, TENDER_DEBIT, TENDER_TRANSFER)

class Sale(db.Model):
    """
    Point-of-sale transaction (mixed services and products).

    IMMUTABLE: written once by the sale processor with server-validated
    figures. Corrections are new sales or commission ledger adjustments.

    INVARIANTS:
    - discount_cents <= subtotal_cents
    - total_cents == subtotal_cents - discount_cents + tax_cents
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "document_number", name="uq_sales_tenant_docnum"),
        # Composite index for tenant-scoped queries by date
        db.Index("ix_sales_tenant_created", "tenant_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)

    # Human-readable document number (e.g., "V-000123")
    document_number = db.Column(db.String(64), nullable=False)

    provider_id = db.Column(db.Integer, db.ForeignKey("providers.id"), nullable=True, index=True)
    tender_method = db.Column(db.String(32), nullable=False, index=True)

    # Server-computed figures (all amounts in minor units)
    subtotal_cents = db.Column(db.Integer, nullable=False)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    tax_rate_bps = db.Column(db.Integer, nullable=False, default=0)
    tax_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False)

    created_by = db.Column(db.String(64), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    provider = db.relationship("Provider")
    lines = db.relationship(
        "SaleLine",
        backref="sale",
        lazy=True,
        order_by="SaleLine.position",
    )

    def to_dict(self, include_lines: bool = True) -> dict:
        data = {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "document_number": self.document_number,
            "provider_id": self.provider_id,
            "tender_method": self.tender_method,
            "subtotal_cents": self.subtotal_cents,
            "discount_cents": self.discount_cents,
            "tax_rate_bps": self.tax_rate_bps,
            "tax_cents": self.tax_cents,
            "total_cents": self.total_cents,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data

class SaleLine(db.Model):
    """Individual line items on a sale, priced at time of sale."""
    __tablename__ = "sale_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False)

    item_kind = db.Column(db.String(16), nullable=False)  # SERVICE, PRODUCT
    item_id = db.Column(db.Integer, nullable=False)
    name = db.Column(db.String(255), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    line_subtotal_cents = db.Column(db.Integer, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "position": self.position,
            "item_kind": self.item_kind,
            "item_id": self.item_id,
            "name": self.name,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "line_subtotal_cents": self.line_subtotal_cents,
        }

class Payment(db.Model):
    """
    Settlement of a single booking.

    Supports split tenders: one Payment, many PaymentTender rows. Tax is
    computed on net (post processing fee) revenue.

    IMMUTABLE: only notes may change after creation.
    """
    __tablename__ = "payments"
    __table_args__ = (
        db.UniqueConstraint("booking_id", name="uq_payments_booking"),
        db.Index("ix_payments_tenant_created", "tenant_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    booking_id = db.Column(db.Integer, db.ForeignKey("bookings.id"), nullable=False)
    provider_id = db.Column(db.Integer, db.ForeignKey("providers.id"), nullable=True, index=True)

    gross_cents = db.Column(db.Integer, nullable=False)
    fee_cents = db.Column(db.Integer, nullable=False, default=0)
    net_cents = db.Column(db.Integer, nullable=False)
    tax_rate_bps = db.Column(db.Integer, nullable=False, default=0)
    tax_cents = db.Column(db.Integer, nullable=False, default=0)

    recorded_by = db.Column(db.String(64), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    booking = db.relationship("Booking", backref=db.backref("payment", uselist=False))
    tenders = db.relationship("PaymentTender", backref="payment", lazy=True, order_by="PaymentTender.id")
    __mapper_args__ = {"version_id_col": version_id}

    def amount_for(self, *methods: str) -> int:
        return sum(t.amount_cents for t in self.tenders if t.method in methods)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "booking_id": self.booking_id,
            "provider_id": self.provider_id,
            "gross_cents": self.gross_cents,
            "fee_cents": self.fee_cents,
            "net_cents": self.net_cents,
            "tax_rate_bps": self.tax_rate_bps,
            "tax_cents": self.tax_cents,
            "recorded_by": self.recorded_by,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "tenders": [t.to_dict() for t in self.tenders],
        }

class PaymentTender(db.Model):
    """One tender line (method + amount) of a split payment."""
    __tablename__ = "payment_tenders"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    payment_id = db.Column(db.Integer, db.ForeignKey("payments.id"), nullable=False, index=True)

    method = db.Column(db.String(32), nullable=False, index=True)
    amount_cents = db.Column(db.Integer, nullable=False)
    fee_bps = db.Column(db.Integer, nullable=False, default=0)
    fee_cents = db.Column(db.Integer, nullable=False, default=0)
    net_cents = db.Column(db.Integer, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "payment_id": self.payment_id,
            "method": self.method,
            "amount_cents": self.amount_cents,
            "fee_bps": self.fee_bps,
            "fee_cents": self.fee_cents,
            "net_cents": self.net_cents,
        }
