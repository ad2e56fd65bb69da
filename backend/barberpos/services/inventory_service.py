# Overview: Service-layer operations for inventory; stock movements tied to sales.

"""
Stock Ledger

INVARIANTS:
- Product.stock_qty never goes below zero (InsufficientStock).
- Every change to stock_qty appends exactly one StockMovement row.
- A sale line moves stock at most once per direction: OUT on sale,
  IN on reversal. Replaying either is a no-op returning the original
  movement.
"""

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..errors import InvalidInput, InsufficientStock
from ..models import Product, Sale, SaleLine, StockMovement
from barberpos.time_utils import utcnow
from .concurrency import lock_for_update, run_with_retry
from .pricing_service import ITEM_KIND_PRODUCT
from .tenant_service import get_scoped


MOVEMENT_OUT = "OUT"
MOVEMENT_IN = "IN"

REASON_POS_SALE = "POS_SALE"
REASON_SALE_REVERSAL = "SALE_REVERSAL"


def _existing_movement(sale_line_id: int | None, movement_type: str) -> StockMovement | None:
    if sale_line_id is None:
        return None
    return db.session.query(StockMovement).filter_by(
        sale_line_id=sale_line_id,
        movement_type=movement_type,
    ).first()


def adjust_stock(
    tenant_id: int,
    product_id: int,
    delta: int,
    reason: str,
    *,
    sale_id: int | None = None,
    sale_line_id: int | None = None,
    note: str | None = None,
) -> StockMovement:
    """
    Apply a signed quantity change to a product and record the movement.

    Raises:
        InvalidInput: delta is zero or reason is empty
        NotFound: product missing or owned by another tenant
        InsufficientStock: the change would leave negative stock
    """
    if not isinstance(delta, int) or isinstance(delta, bool) or delta == 0:
        raise InvalidInput("delta must be a non-zero integer")
    if not reason:
        raise InvalidInput("reason is required")

    movement_type = MOVEMENT_OUT if delta < 0 else MOVEMENT_IN

    existing = _existing_movement(sale_line_id, movement_type)
    if existing is not None:
        return existing

    def _op() -> StockMovement:
        get_scoped(Product, product_id, tenant_id, label="Product")
        product = lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()

        new_qty = (product.stock_qty or 0) + delta
        if new_qty < 0:
            raise InsufficientStock(
                f"Insufficient stock for product {product_id}",
                details={"product_id": product_id, "on_hand": product.stock_qty, "requested": -delta},
            )

        product.stock_qty = new_qty
        movement = StockMovement(
            tenant_id=tenant_id,
            product_id=product_id,
            movement_type=movement_type,
            quantity_delta=delta,
            quantity_after=new_qty,
            reason=reason,
            sale_id=sale_id,
            sale_line_id=sale_line_id,
            note=note,
            occurred_at=utcnow(),
        )
        db.session.add(movement)
        try:
            db.session.commit()
        except IntegrityError:
            # Another worker recorded this line's movement first
            db.session.rollback()
            winner = _existing_movement(sale_line_id, movement_type)
            if winner is None:
                raise
            return winner
        return movement

    return run_with_retry(_op)


def record_sale_outflow(tenant_id: int, line: SaleLine) -> StockMovement | None:
    """Decrement stock for one product line of a sale."""
    if line.item_kind != ITEM_KIND_PRODUCT:
        return None
    return adjust_stock(
        tenant_id,
        line.item_id,
        -line.quantity,
        REASON_POS_SALE,
        sale_id=line.sale_id,
        sale_line_id=line.id,
        note=f"Sale {line.sale.document_number}",
    )


def reverse_sale_stock(tenant_id: int, sale_id: int) -> list[StockMovement]:
    """
    Return a sale's products to stock.

    Only lines that actually left stock are returned. Lines already
    reversed keep their original IN movement.
    """
    sale = get_scoped(Sale, sale_id, tenant_id, label="Sale")

    movements = []
    for line in sale.lines:
        if line.item_kind != ITEM_KIND_PRODUCT:
            continue
        if _existing_movement(line.id, MOVEMENT_OUT) is None:
            continue
        movements.append(
            adjust_stock(
                tenant_id,
                line.item_id,
                line.quantity,
                REASON_SALE_REVERSAL,
                sale_id=sale.id,
                sale_line_id=line.id,
                note=f"Reversal of sale {sale.document_number}",
            )
        )
    return movements


def list_movements(
    tenant_id: int,
    *,
    product_id: int | None = None,
    sale_id: int | None = None,
    limit: int = 100,
    offset: int = 0,
) -> tuple[list[StockMovement], int]:
    query = db.session.query(StockMovement).filter(StockMovement.tenant_id == tenant_id)
    if product_id is not None:
        query = query.filter(StockMovement.product_id == product_id)
    if sale_id is not None:
        query = query.filter(StockMovement.sale_id == sale_id)

    total = query.count()
    rows = (
        query.order_by(StockMovement.occurred_at.desc(), StockMovement.id.desc())
        .offset(max(offset, 0))
        .limit(min(max(limit, 1), 500))
        .all()
    )
    return rows, total

