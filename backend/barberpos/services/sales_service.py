"""
Sale Processing Service

Point-of-sale transactions mixing services and products.

ORDER OF WORK:
1. Validate items and price them from the catalog (never client prices)
2. Clamp the discount to [0, subtotal]; compute tax and total
3. Commit the Sale with its lines (the money record)
4. Run post-commit effects, each independently:
   - stock outflow per product line
   - cash ingress on the open till (CASH tender only)
   - PENDING commission entry per service line (when a provider is given)

Nothing after step 3 can fail the sale; see effects.py.
"""

from __future__ import annotations

from datetime import datetime
from functools import partial

from flask import current_app

from ..extensions import db
from ..errors import InvalidInput
from ..models import Sale, SaleLine
from ..models.sales import TENDER_CASH, TENDER_METHODS
from barberpos.time_utils import utcnow
from . import commission_service, inventory_service, register_service
from .concurrency import run_with_retry
from .document_service import next_document_number
from .effects import EffectContext, EffectOutcome, PostCommitEffect, run_post_commit_effects
from .pricing_service import ITEM_KIND_PRODUCT, ITEM_KIND_SERVICE, PricedItem, normalize_kind, resolve_item
from .tax_service import compute_tax, get_tax_rate_bps
from .tenant_service import get_scoped, require_provider, require_tenant


SALE_DOCUMENT_TYPE = "SALE"
SALE_DOCUMENT_PREFIX = "V"


def _int_field(item: dict, key: str, *, default=None, index: int) -> int:
    value = item.get(key, default)
    if not isinstance(value, int) or isinstance(value, bool):
        raise InvalidInput(f"items[{index}].{key} must be an integer")
    return value


def _parse_items(items) -> list[dict]:
    if not isinstance(items, list) or not items:
        raise InvalidInput("A sale needs at least one item")

    parsed = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise InvalidInput(f"items[{index}] must be an object")
        quantity = _int_field(item, "quantity", default=1, index=index)
        if quantity <= 0:
            raise InvalidInput(f"items[{index}].quantity must be positive")
        client_price = item.get("unit_price_cents")
        if client_price is not None and (not isinstance(client_price, int) or isinstance(client_price, bool)):
            client_price = None
        parsed.append({
            "kind": normalize_kind(item.get("kind")),
            "item_id": _int_field(item, "item_id", index=index),
            "quantity": quantity,
            "client_price_cents": client_price,
        })
    return parsed


def clamp_discount(discount_cents: int, subtotal_cents: int) -> int:
    return max(0, min(discount_cents, subtotal_cents))


def compute_totals(subtotal_cents: int, discount_cents: int, tax_rate_bps: int) -> dict:
    """Discount is clamped, tax applies to the discounted subtotal."""
    discount = clamp_discount(discount_cents, subtotal_cents)
    taxable = subtotal_cents - discount
    tax = compute_tax(taxable, tax_rate_bps)
    return {
        "subtotal_cents": subtotal_cents,
        "discount_cents": discount,
        "tax_cents": tax,
        "total_cents": taxable + tax,
    }


def record_sale(
    tenant_id: int,
    items: list[dict],
    discount_cents: int = 0,
    tender_method: str = TENDER_CASH,
    provider_id: int | None = None,
    actor_id: str | None = None,
) -> Sale:
    """
    Record a point-of-sale transaction.

    Args:
        items: [{"kind": "SERVICE"|"PRODUCT", "item_id": int, "quantity": int,
                 "unit_price_cents": optional client price, ignored}]
        discount_cents: clamped to [0, subtotal], never rejected
        tender_method: CASH, CARD, CREDIT, DEBIT, TRANSFER

    Raises:
        InvalidInput: empty/malformed items, unknown tender method
        NotFound: unknown tenant, provider or item

    Returns:
        The committed Sale. Side-effect failures are logged, never raised.
    """
    parsed = _parse_items(items)

    method = (tender_method or "").upper() if isinstance(tender_method, str) else ""
    if method not in TENDER_METHODS:
        raise InvalidInput(f"Invalid tender method: {tender_method}. Must be one of {list(TENDER_METHODS)}")
    if discount_cents is None:
        discount_cents = 0
    if not isinstance(discount_cents, int) or isinstance(discount_cents, bool):
        raise InvalidInput("discount_cents must be an integer")

    require_tenant(tenant_id)
    if provider_id is not None:
        require_provider(tenant_id, provider_id)

    priced: list[tuple[PricedItem, int]] = []
    subtotal = 0
    for item in parsed:
        priced_item = resolve_item(tenant_id, item["kind"], item["item_id"], item["client_price_cents"])
        priced.append((priced_item, item["quantity"]))
        subtotal += priced_item.price_cents * item["quantity"]

    tax_rate_bps = get_tax_rate_bps(tenant_id)
    totals = compute_totals(subtotal, discount_cents, tax_rate_bps)

    def _persist() -> Sale:
        document_number = next_document_number(
            tenant_id=tenant_id,
            document_type=SALE_DOCUMENT_TYPE,
            prefix=SALE_DOCUMENT_PREFIX,
        )
        sale = Sale(
            tenant_id=tenant_id,
            document_number=document_number,
            provider_id=provider_id,
            tender_method=method,
            tax_rate_bps=tax_rate_bps,
            created_by=str(actor_id) if actor_id is not None else None,
            created_at=utcnow(),
            **totals,
        )
        db.session.add(sale)
        db.session.flush()

        for position, (priced_item, quantity) in enumerate(priced, start=1):
            db.session.add(
                SaleLine(
                    sale_id=sale.id,
                    position=position,
                    item_kind=priced_item.kind,
                    item_id=priced_item.item_id,
                    name=priced_item.name,
                    quantity=quantity,
                    unit_price_cents=priced_item.price_cents,
                    line_subtotal_cents=priced_item.price_cents * quantity,
                )
            )

        db.session.commit()
        return sale

    sale = run_with_retry(_persist)
    current_app.logger.info(
        "Sale %s recorded for tenant %s: total=%s tender=%s",
        sale.document_number,
        tenant_id,
        sale.total_cents,
        sale.tender_method,
    )

    run_sale_effects(sale)
    return sale


def build_sale_effects(sale: Sale) -> list[PostCommitEffect]:
    tenant_id = sale.tenant_id
    effects = []

    for line in sale.lines:
        if line.item_kind == ITEM_KIND_PRODUCT:
            effects.append(
                PostCommitEffect(
                    name=f"stock_outflow[line={line.id}]",
                    apply=partial(inventory_service.record_sale_outflow, tenant_id, line),
                )
            )

    if sale.tender_method == TENDER_CASH:
        effects.append(
            PostCommitEffect(
                name="till_ingress",
                apply=partial(
                    register_service.record_cash_ingress_if_open,
                    tenant_id,
                    sale.total_cents,
                    f"Sale {sale.document_number}",
                    source_key=f"sale:{sale.id}",
                    sale_id=sale.id,
                    recorded_by=sale.created_by,
                ),
            )
        )

    if sale.provider_id is not None:
        for line in sale.lines:
            if line.item_kind != ITEM_KIND_SERVICE:
                continue
            effects.append(
                PostCommitEffect(
                    name=f"commission[line={line.id}]",
                    apply=partial(
                        commission_service.create_entry,
                        tenant_id,
                        sale.provider_id,
                        line.line_subtotal_cents,
                        service_id=line.item_id,
                        sale_id=sale.id,
                        sale_line_id=line.id,
                        tender_method=sale.tender_method,
                    ),
                )
            )

    return effects


def run_sale_effects(sale: Sale) -> list[EffectOutcome]:
    context = EffectContext(tenant_id=sale.tenant_id, document=f"sale={sale.id}", extra={"number": sale.document_number})
    return run_post_commit_effects(build_sale_effects(sale), context)


def reconcile_sale(tenant_id: int, sale_id: int) -> list[EffectOutcome]:
    """
    Replay a sale's side effects.

    Effects already applied are left alone (stock movements, till entries
    and commission entries are unique per origin). Cash that never reached
    a till lands in the till open now, if any.
    """
    sale = get_sale(tenant_id, sale_id)
    return run_sale_effects(sale)


def get_sale(tenant_id: int, sale_id: int) -> Sale:
    return get_scoped(Sale, sale_id, tenant_id, label="Sale")


def list_sales(
    tenant_id: int,
    *,
    from_dt: datetime | None = None,
    to_dt: datetime | None = None,
    provider_id: int | None = None,
    tender_method: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[Sale], int]:
    query = db.session.query(Sale).filter(Sale.tenant_id == tenant_id)
    if from_dt:
        query = query.filter(Sale.created_at >= from_dt)
    if to_dt:
        query = query.filter(Sale.created_at < to_dt)
    if provider_id is not None:
        query = query.filter(Sale.provider_id == provider_id)
    if tender_method:
        query = query.filter(Sale.tender_method == tender_method.upper())

    total = query.count()
    sales = (
        query.order_by(Sale.created_at.desc(), Sale.id.desc())
        .offset(max(offset, 0))
        .limit(min(max(limit, 1), 200))
        .all()
    )
    return sales, total
