from __future__ import annotations

from ..extensions import db
from barberpos.time_utils import to_utc_z

class Service(db.Model):
    """
    Bookable/sellable service (haircut, beard trim, ...).

    Prices are authoritative here; sale and payment code never trusts a
    client-supplied price.
    """
    __tablename__ = "catalog_services"
    __table_args__ = (
        db.Index("ix_catalog_services_tenant_active", "tenant_id", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)

    price_cents = db.Column(db.Integer, nullable=False)
    discounted_price_cents = db.Column(db.Integer, nullable=True)
    duration_minutes = db.Column(db.Integer, nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "name": self.name,
            "price_cents": self.price_cents,
            "discounted_price_cents": self.discounted_price_cents,
            "duration_minutes": self.duration_minutes,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }

class Booking(db.Model):
    """
    Booking (reservation) as seen by the settlement core.

    Scheduling lives elsewhere; the core only needs the authoritative
    price, the provider and whether the booking has been settled.
    """
    __tablename__ = "bookings"
    __table_args__ = (
        db.Index("ix_bookings_tenant_settled", "tenant_id", "settled"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    provider_id = db.Column(db.Integer, db.ForeignKey("providers.id"), nullable=True, index=True)
    service_id = db.Column(db.Integer, db.ForeignKey("catalog_services.id"), nullable=True)

    customer_name = db.Column(db.String(255), nullable=True)
    scheduled_for = db.Column(db.DateTime(timezone=True), nullable=True)

    price_cents = db.Column(db.Integer, nullable=False)

    settled = db.Column(db.Boolean, nullable=False, default=False)
    settled_at = db.Column(db.DateTime(timezone=True), nullable=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    provider = db.relationship("Provider")
    service = db.relationship("Service")
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "provider_id": self.provider_id,
            "service_id": self.service_id,
            "customer_name": self.customer_name,
            "scheduled_for": to_utc_z(self.scheduled_for),
            "price_cents": self.price_cents,
            "settled": self.settled,
            "settled_at": to_utc_z(self.settled_at),
            "created_at": to_utc_z(self.created_at),
        }
