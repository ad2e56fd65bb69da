# Overview: Error taxonomy shared by services and routes.

"""
Settlement error taxonomy.

Services raise these; routes translate them into JSON responses using
``status_code``. Validation and lookup failures abort an operation before
anything is persisted. Failures of best-effort side effects are never
raised to the caller (they are logged by the effect runner instead).
"""

from __future__ import annotations


class SettlementError(Exception):
    """Base class for errors surfaced to callers of the settlement core."""

    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        payload = {"error": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class InvalidInput(SettlementError):
    """Malformed or empty request (empty item list, missing reason, ...)."""

    status_code = 400


class NotFound(SettlementError):
    """Unknown entity, or an entity that belongs to another tenant."""

    status_code = 404


class Conflict(SettlementError):
    status_code = 409


class AlreadyOpen(Conflict):
    """A till is already open for the tenant."""


class AlreadyPaid(Conflict):
    """Booking already settled, or ledger entry already paid."""


class AmountMismatch(SettlementError):
    """Tender sum differs from the authoritative price."""

    status_code = 422


class InvalidState(SettlementError):
    """Operation not allowed in the entity's current state."""

    status_code = 409


class InsufficientStock(InvalidState):
    """Stock movement would take a product below zero."""
