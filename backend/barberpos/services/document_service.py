# Overview: Service-layer operations for document numbers; per-tenant atomic sequences.

from __future__ import annotations

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import DocumentSequence
from .concurrency import run_with_retry


class DocumentSequenceError(Exception):
    """Raised when document sequence operations fail."""
    pass


def _current_number(tenant_id: int, document_type: str) -> int:
    current = (
        db.session.query(DocumentSequence.next_number)
        .filter_by(tenant_id=tenant_id, document_type=document_type)
        .scalar()
    )
    return current - 1


def next_document_number(
    *,
    tenant_id: int,
    document_type: str,
    prefix: str,
    pad: int = 4,
) -> str:
    """
    Atomically allocate the next document number for a tenant/type.

    Must be called before anything else is added to the session: the
    first-use path may roll the session back when another request created
    the sequence row at the same time.
    """
    def _op() -> str:
        if not tenant_id:
            raise DocumentSequenceError("tenant_id is required")
        if not document_type:
            raise DocumentSequenceError("document_type is required")

        stmt = (
            update(DocumentSequence)
            .where(
                DocumentSequence.tenant_id == tenant_id,
                DocumentSequence.document_type == document_type,
            )
            .values(next_number=DocumentSequence.next_number + 1)
        )

        result = db.session.execute(stmt)
        if result.rowcount:
            db.session.flush()
            next_num = _current_number(tenant_id, document_type)
        else:
            seq = DocumentSequence(tenant_id=tenant_id, document_type=document_type, next_number=2)
            db.session.add(seq)
            try:
                db.session.flush()
                next_num = 1
            except IntegrityError:
                db.session.rollback()
                result = db.session.execute(stmt)
                if not result.rowcount:
                    raise
                db.session.flush()
                next_num = _current_number(tenant_id, document_type)

        return f"{prefix}-{next_num:0{pad}d}"

    return run_with_retry(_op)
