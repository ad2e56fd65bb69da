"""
Price Validation Service

Resolves the authoritative price of a catalog item at sale time.

RULES:
- Price comes from the catalog row, never from the client.
- A configured discounted price wins when it is lower than the list price.
- A client-supplied price that disagrees is logged and ignored.
- Missing, inactive or foreign items are NotFound.
"""

from __future__ import annotations

from dataclasses import dataclass

from flask import current_app

from ..extensions import db
from ..errors import InvalidInput, NotFound
from ..models import Service, Product


ITEM_KIND_SERVICE = "SERVICE"
ITEM_KIND_PRODUCT = "PRODUCT"

_MODELS = {
    ITEM_KIND_SERVICE: Service,
    ITEM_KIND_PRODUCT: Product,
}


@dataclass(frozen=True)
class PricedItem:
    kind: str
    item_id: int
    name: str
    price_cents: int
    list_price_cents: int


def normalize_kind(kind) -> str:
    value = (kind or "").strip().upper() if isinstance(kind, str) else ""
    if value not in _MODELS:
        raise InvalidInput(f"Invalid item kind: {kind}. Must be one of {list(_MODELS)}")
    return value


def _load_item(tenant_id: int, kind: str, item_id: int):
    model = _MODELS[kind]
    item = db.session.get(model, item_id)
    if item is None or item.tenant_id != tenant_id or not item.is_active:
        raise NotFound(f"{kind.title()} {item_id} not found")
    return item


def get_item(tenant_id: int, kind: str, item_id: int) -> dict:
    """Catalog contract: price, discounted price, stock and active flag."""
    kind = normalize_kind(kind)
    item = db.session.get(_MODELS[kind], item_id)
    if item is None or item.tenant_id != tenant_id:
        raise NotFound(f"{kind.title()} {item_id} not found")
    return {
        "price_cents": item.price_cents,
        "discounted_price_cents": item.discounted_price_cents,
        "stock_qty": getattr(item, "stock_qty", None),
        "active": item.is_active,
    }


def effective_price_cents(price_cents: int, discounted_price_cents: int | None) -> int:
    if discounted_price_cents is not None and discounted_price_cents < price_cents:
        return discounted_price_cents
    return price_cents


def resolve_item(tenant_id: int, kind, item_id: int, client_price_cents: int | None = None) -> PricedItem:
    kind = normalize_kind(kind)
    item = _load_item(tenant_id, kind, item_id)
    price = effective_price_cents(item.price_cents, item.discounted_price_cents)

    if client_price_cents is not None and client_price_cents != price:
        current_app.logger.warning(
            "Client price mismatch for %s %s (tenant %s): client=%s authoritative=%s",
            kind,
            item_id,
            tenant_id,
            client_price_cents,
            price,
        )

    return PricedItem(
        kind=kind,
        item_id=item.id,
        name=item.name,
        price_cents=price,
        list_price_cents=item.price_cents,
    )


def resolve_price(tenant_id: int, kind, item_id: int, client_price_cents: int | None = None) -> int:
    return resolve_item(tenant_id, kind, item_id, client_price_cents).price_cents
