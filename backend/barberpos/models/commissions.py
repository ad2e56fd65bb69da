from __future__ import annotations

from ..extensions import db
from barberpos.time_utils import to_utc_z

ENTRY_PENDING = "PENDING"
ENTRY_APPROVED = "APPROVED"
ENTRY_PAID = "PAID"

class CommissionEntry(db.Model):
    """
    Money owed to a provider for one service line or one booking.

    LIFECYCLE:
    - PENDING -> APPROVED -> PAID (terminal)
    - PENDING/APPROVED entries may be adjusted any number of times; each
      adjustment appends a CommissionAdjustment row.

    Never deleted. auto_* columns keep the amounts computed at creation;
    provider_cents/business_cents are the current (possibly adjusted) ones.
    """
    __tablename__ = "commission_entries"
    __table_args__ = (
        db.UniqueConstraint("sale_line_id", name="uq_commission_entries_sale_line"),
        db.UniqueConstraint("booking_id", name="uq_commission_entries_booking"),
        db.Index("ix_commission_entries_tenant_provider_state", "tenant_id", "provider_id", "state"),
        db.Index("ix_commission_entries_tenant_created", "tenant_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    provider_id = db.Column(db.Integer, db.ForeignKey("providers.id"), nullable=False, index=True)
    service_id = db.Column(db.Integer, db.ForeignKey("catalog_services.id"), nullable=True)

    # Origin: a POS sale line, or a settled booking
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True, index=True)
    sale_line_id = db.Column(db.Integer, db.ForeignKey("sale_lines.id"), nullable=True)
    booking_id = db.Column(db.Integer, db.ForeignKey("bookings.id"), nullable=True)
    payment_id = db.Column(db.Integer, db.ForeignKey("payments.id"), nullable=True, index=True)

    gross_cents = db.Column(db.Integer, nullable=False)
    auto_provider_cents = db.Column(db.Integer, nullable=False)
    auto_business_cents = db.Column(db.Integer, nullable=False)
    provider_cents = db.Column(db.Integer, nullable=False)
    business_cents = db.Column(db.Integer, nullable=False)

    provider_pct = db.Column(db.Integer, nullable=False)
    business_pct = db.Column(db.Integer, nullable=False)
    rate_source = db.Column(db.String(32), nullable=False)  # PROVIDER_OVERRIDE, SERVICE_OVERRIDE, TENANT_DEFAULT, SYSTEM_DEFAULT
    calculation_method = db.Column(db.String(16), nullable=False, default="PERCENTAGE")  # PERCENTAGE, MANUAL

    tax_withheld_cents = db.Column(db.Integer, nullable=False, default=0)

    state = db.Column(db.String(16), nullable=False, default=ENTRY_PENDING, index=True)

    approved_by = db.Column(db.String(64), nullable=True)
    approved_at = db.Column(db.DateTime(timezone=True), nullable=True)
    paid_by = db.Column(db.String(64), nullable=True)
    paid_at = db.Column(db.DateTime(timezone=True), nullable=True)
    tender_method = db.Column(db.String(32), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    adjustments = db.relationship(
        "CommissionAdjustment",
        backref="entry",
        lazy=True,
        order_by="CommissionAdjustment.id",
    )
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def was_adjusted(self) -> bool:
        return bool(self.adjustments)

    @property
    def provider_net_cents(self) -> int:
        return self.provider_cents - self.tax_withheld_cents

    def to_dict(self, include_history: bool = True) -> dict:
        data = {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "provider_id": self.provider_id,
            "service_id": self.service_id,
            "sale_id": self.sale_id,
            "sale_line_id": self.sale_line_id,
            "booking_id": self.booking_id,
            "payment_id": self.payment_id,
            "gross_cents": self.gross_cents,
            "auto_provider_cents": self.auto_provider_cents,
            "auto_business_cents": self.auto_business_cents,
            "provider_cents": self.provider_cents,
            "business_cents": self.business_cents,
            "provider_pct": self.provider_pct,
            "business_pct": self.business_pct,
            "rate_source": self.rate_source,
            "calculation_method": self.calculation_method,
            "tax_withheld_cents": self.tax_withheld_cents,
            "provider_net_cents": self.provider_net_cents,
            "state": self.state,
            "approved_by": self.approved_by,
            "approved_at": to_utc_z(self.approved_at),
            "paid_by": self.paid_by,
            "paid_at": to_utc_z(self.paid_at),
            "tender_method": self.tender_method,
            "notes": self.notes,
            "was_adjusted": self.was_adjusted,
            "created_at": to_utc_z(self.created_at),
            "version_id": self.version_id,
        }
        if include_history:
            data["adjustments"] = [a.to_dict() for a in self.adjustments]
        return data

class CommissionAdjustment(db.Model):
    """Manual adjustment history row. Append-only."""
    __tablename__ = "commission_adjustments"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    entry_id = db.Column(db.Integer, db.ForeignKey("commission_entries.id"), nullable=False, index=True)

    previous_provider_cents = db.Column(db.Integer, nullable=False)
    previous_business_cents = db.Column(db.Integer, nullable=False)
    new_provider_cents = db.Column(db.Integer, nullable=False)
    new_business_cents = db.Column(db.Integer, nullable=False)

    reason = db.Column(db.Text, nullable=False)
    actor = db.Column(db.String(64), nullable=False)
    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "entry_id": self.entry_id,
            "previous_provider_cents": self.previous_provider_cents,
            "previous_business_cents": self.previous_business_cents,
            "new_provider_cents": self.new_provider_cents,
            "new_business_cents": self.new_business_cents,
            "reason": self.reason,
            "actor": self.actor,
            "occurred_at": to_utc_z(self.occurred_at),
        }
