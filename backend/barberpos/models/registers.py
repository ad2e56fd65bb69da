from __future__ import annotations

from ..extensions import db
from barberpos.time_utils import to_utc_z

TILL_STATUS_OPEN = "OPEN"
TILL_STATUS_CLOSED = "CLOSED"

ENTRY_INGRESS = "INGRESS"
ENTRY_EGRESS = "EGRESS"

VARIANCE_NONE = "NONE"
VARIANCE_MINOR = "MINOR"
VARIANCE_HIGH = "HIGH"

# Absolute variance (minor units) still considered MINOR
DEFAULT_MINOR_VARIANCE_LIMIT = 1000


def classify_variance(variance: int, minor_limit: int = DEFAULT_MINOR_VARIANCE_LIMIT) -> str:
    if variance == 0:
        return VARIANCE_NONE
    if abs(variance) <= minor_limit:
        return VARIANCE_MINOR
    return VARIANCE_HIGH


class Till(db.Model):
    """
    Cash register session (caja) for one tenant, day and shift.

    LIFECYCLE:
    - OPEN: accepts ingress/egress entries
    - CLOSED: counted, variance known. Terminal; a new shift opens a new till.

    At most one OPEN till per tenant, enforced by a partial unique index so
    it holds across service instances.

    expected/variance are derived from the entry rows on every read, never
    stored, so they cannot drift from the entries they summarize.
    """
    __tablename__ = "tills"
    __table_args__ = (
        db.Index(
            "uq_tills_one_open_per_tenant",
            "tenant_id",
            unique=True,
            sqlite_where=db.text("status = 'OPEN'"),
            postgresql_where=db.text("status = 'OPEN'"),
        ),
        db.Index("ix_tills_tenant_business_date", "tenant_id", "business_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)

    business_date = db.Column(db.Date, nullable=False)
    shift = db.Column(db.String(16), nullable=False, default="FULL")  # MORNING, AFTERNOON, FULL
    responsible = db.Column(db.String(120), nullable=False)

    status = db.Column(db.String(16), nullable=False, default=TILL_STATUS_OPEN, index=True)

    opening_float_cents = db.Column(db.Integer, nullable=False, default=0)
    counted_cents = db.Column(db.Integer, nullable=True)  # Set when closing
    denomination_breakdown = db.Column(db.JSON, nullable=True)

    opened_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    closed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    closed_by = db.Column(db.String(64), nullable=True)

    # Touched on every entry so concurrent writers collide on version_id
    last_entry_at = db.Column(db.DateTime(timezone=True), nullable=True)

    notes = db.Column(db.Text, nullable=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    entries = db.relationship("TillEntry", backref="till", lazy=True, order_by="TillEntry.id")
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def total_ingress_cents(self) -> int:
        return sum(e.amount_cents for e in self.entries if e.entry_type == ENTRY_INGRESS)

    @property
    def total_egress_cents(self) -> int:
        return sum(e.amount_cents for e in self.entries if e.entry_type == ENTRY_EGRESS)

    @property
    def expected_cents(self) -> int:
        return self.opening_float_cents + self.total_ingress_cents - self.total_egress_cents

    @property
    def variance_cents(self) -> int | None:
        if self.counted_cents is None:
            return None
        return self.counted_cents - self.expected_cents

    def variance_severity(self, minor_limit: int = DEFAULT_MINOR_VARIANCE_LIMIT) -> str | None:
        variance = self.variance_cents
        if variance is None:
            return None
        return classify_variance(variance, minor_limit)

    def to_dict(self, include_entries: bool = False, minor_limit: int = DEFAULT_MINOR_VARIANCE_LIMIT) -> dict:
        data = {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "business_date": self.business_date.isoformat() if self.business_date else None,
            "shift": self.shift,
            "responsible": self.responsible,
            "status": self.status,
            "opening_float_cents": self.opening_float_cents,
            "total_ingress_cents": self.total_ingress_cents,
            "total_egress_cents": self.total_egress_cents,
            "expected_cents": self.expected_cents,
            "counted_cents": self.counted_cents,
            "variance_cents": self.variance_cents,
            "variance_severity": self.variance_severity(minor_limit),
            "denomination_breakdown": self.denomination_breakdown,
            "opened_at": to_utc_z(self.opened_at),
            "closed_at": to_utc_z(self.closed_at),
            "closed_by": self.closed_by,
            "notes": self.notes,
            "version_id": self.version_id,
        }
        if include_entries:
            data["entries"] = [e.to_dict() for e in self.entries]
        return data

class TillEntry(db.Model):
    """
    Cash ingress or egress on a till. Append-only.

    CATEGORIES:
    - INGRESS: SALE, OTHER
    - EGRESS: PURCHASE, EXPENSE, BANK_WITHDRAWAL

    source_key ("sale:12", "payment:7") is unique per till so a retried
    cash sync is applied at most once.
    """
    __tablename__ = "till_entries"
    __table_args__ = (
        db.UniqueConstraint("till_id", "source_key", name="uq_till_entries_source"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    till_id = db.Column(db.Integer, db.ForeignKey("tills.id"), nullable=False, index=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)

    entry_type = db.Column(db.String(8), nullable=False, index=True)  # INGRESS, EGRESS
    amount_cents = db.Column(db.Integer, nullable=False)
    concept = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(32), nullable=False)

    authorized_by = db.Column(db.String(64), nullable=True)
    recorded_by = db.Column(db.String(64), nullable=True)

    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True, index=True)
    payment_id = db.Column(db.Integer, db.ForeignKey("payments.id"), nullable=True, index=True)
    booking_id = db.Column(db.Integer, db.ForeignKey("bookings.id"), nullable=True)
    source_key = db.Column(db.String(64), nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "till_id": self.till_id,
            "tenant_id": self.tenant_id,
            "entry_type": self.entry_type,
            "amount_cents": self.amount_cents,
            "concept": self.concept,
            "category": self.category,
            "authorized_by": self.authorized_by,
            "recorded_by": self.recorded_by,
            "sale_id": self.sale_id,
            "payment_id": self.payment_id,
            "booking_id": self.booking_id,
            "occurred_at": to_utc_z(self.occurred_at),
        }
