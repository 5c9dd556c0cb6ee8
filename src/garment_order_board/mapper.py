"""Remote-to-canonical mapping helpers used between the order service payload and the board."""

from __future__ import annotations

import re
import unicodedata
from typing import Any, Dict, Iterable, List, Optional

from garment_order_board.schema import Counterpart, ExternalOrder, ExternalParty, Order
from garment_order_board.status_semantics import Role, to_canonical
from garment_order_board.timeline import derive_timeline

UNASSIGNED_SUPPLIER_NAME = "Aguardando Facção"

_PAYMENT_STATUSES = {"paid", "pending", "late", "partial"}


def _normalize_token(value: Any) -> str:
    txt = str(value or "").strip().lower()
    if not txt:
        return ""
    txt = unicodedata.normalize("NFKD", txt)
    txt = "".join(ch for ch in txt if not unicodedata.combining(ch))
    txt = re.sub(r"[^a-z0-9]+", " ", txt)
    return re.sub(r"\s+", " ", txt).strip()


def _as_text(value: Any) -> str:
    return str(value or "").strip()


def normalize_product_type(value: Any) -> str:
    """Remote product types are free text ("Moda Infantil", "Adulto Feminino"); only the age band matters."""
    return "Infantil" if "infantil" in _normalize_token(value) else "Adulto"


def normalize_payment_status(value: Any) -> str:
    token = _normalize_token(value)
    return token if token in _PAYMENT_STATUSES else "pending"


def _party_name(party: Optional[ExternalParty]) -> str:
    if party is None:
        return ""
    return _as_text(party.trade_name)


def counterpart_for_role(record: ExternalOrder, role: Role) -> Counterpart:
    """The workshop sees the brand; the brand sees the workshop, or a placeholder until one accepts."""
    if Role(role) is Role.SUPPLIER:
        brand_id = _as_text(record.brand_id) or _as_text(record.brand.id if record.brand else "")
        return Counterpart(id=brand_id, name=_party_name(record.brand))

    supplier_id = _as_text(record.supplier_id) or _as_text(
        record.supplier.id if record.supplier else ""
    )
    if not supplier_id and record.supplier is None:
        return Counterpart(id="", name=UNASSIGNED_SUPPLIER_NAME)
    return Counterpart(id=supplier_id, name=_party_name(record.supplier) or UNASSIGNED_SUPPLIER_NAME)


def order_from_external(record: ExternalOrder, role: Role) -> Order:
    status = to_canonical(record.status, role)
    return Order(
        id=_as_text(record.id),
        display_id=_as_text(record.display_id) or _as_text(record.id),
        counterpart=counterpart_for_role(record, role),
        product_name=_as_text(record.product_name),
        product_type=normalize_product_type(record.product_type),
        op=_as_text(record.op),
        article=_as_text(record.artigo),
        quantity=max(int(record.quantity or 0), 0),
        price_per_unit=max(float(record.price_per_unit or 0.0), 0.0),
        delivery_deadline=record.delivery_deadline,
        status=status,
        payment_status=normalize_payment_status(record.payment_status),
        created_at=record.created_at,
        timeline=derive_timeline(status, record.timeline),
    )


def orders_from_payload(payload: Iterable[Dict[str, Any]], role: Role) -> List[Order]:
    return [order_from_external(ExternalOrder.model_validate(item), role) for item in payload]
