from __future__ import annotations

from typing import Any

import pytest

from garment_order_board.mapper import (
    UNASSIGNED_SUPPLIER_NAME,
    normalize_product_type,
    order_from_external,
    orders_from_payload,
)
from garment_order_board.schema import ExternalOrder
from garment_order_board.status_semantics import OrderStatus, Role
from garment_order_board.timeline import STEP_ACCEPTED, STEP_CREATED, is_milestone_complete


def _payload(**overrides: Any) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": "ord-1",
        "displayId": "#1042",
        "status": "EM_PREPARACAO_SAIDA_MARCA",
        "brandId": "brand-1",
        "supplierId": "sup-1",
        "brand": {"id": "brand-1", "tradeName": "Marca Azul"},
        "supplier": {"id": "sup-1", "tradeName": "Facção Boa Costura"},
        "productType": "Moda Infantil",
        "productName": "Vestido Floral",
        "op": "OP-77",
        "artigo": "ART-9",
        "quantity": 300,
        "pricePerUnit": 12.5,
        "totalValue": 1.0,
        "deliveryDeadline": "2026-02-20T00:00:00.000Z",
        "paymentStatus": "PENDING",
        "createdAt": "2026-01-05T13:00:00.000Z",
    }
    data.update(overrides)
    return data


def test_order_from_external_for_supplier_sees_brand() -> None:
    order = order_from_external(ExternalOrder.model_validate(_payload()), Role.SUPPLIER)

    assert order.display_id == "#1042"
    assert order.status == OrderStatus.WAITING
    assert order.counterpart.id == "brand-1"
    assert order.counterpart.name == "Marca Azul"
    assert order.product_type == "Infantil"
    assert order.article == "ART-9"
    # remote totalValue is ignored
    assert order.total_value == 3750.0
    assert order.payment_status == "pending"
    assert is_milestone_complete(order.timeline, STEP_ACCEPTED)


def test_order_from_external_for_brand_sees_supplier_or_placeholder() -> None:
    order = order_from_external(ExternalOrder.model_validate(_payload()), Role.BRAND)
    assert order.status == OrderStatus.ACCEPTED
    assert order.counterpart.name == "Facção Boa Costura"

    unassigned = order_from_external(
        ExternalOrder.model_validate(
            _payload(status="LANCADO_PELA_MARCA", supplierId=None, supplier=None)
        ),
        Role.BRAND,
    )
    assert unassigned.counterpart.id == ""
    assert unassigned.counterpart.name == UNASSIGNED_SUPPLIER_NAME
    assert is_milestone_complete(unassigned.timeline, STEP_CREATED)
    assert not is_milestone_complete(unassigned.timeline, STEP_ACCEPTED)


def test_unknown_remote_status_survives_parsing_as_new() -> None:
    orders = orders_from_payload([_payload(status="AGUARDANDO_QA")], Role.SUPPLIER)
    assert orders[0].status == OrderStatus.NEW


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("Moda Infantil", "Infantil"),
        ("INFANTIL", "Infantil"),
        ("Adulto Feminino", "Adulto"),
        ("", "Adulto"),
        (None, "Adulto"),
    ],
)
def test_normalize_product_type(raw: Any, expected: str) -> None:
    assert normalize_product_type(raw) == expected


def test_created_at_is_normalized_to_utc() -> None:
    naive = ExternalOrder.model_validate(_payload(createdAt="2026-01-20T10:00:00"))
    offset = ExternalOrder.model_validate(_payload(createdAt="2026-01-20T10:00:00-03:00"))

    assert naive.created_at.utcoffset() is not None
    assert naive.created_at.hour == 10
    order = order_from_external(offset, Role.SUPPLIER)
    assert order.created_at.utcoffset().total_seconds() == 0  # type: ignore[union-attr]
    assert order.created_at.hour == 13
