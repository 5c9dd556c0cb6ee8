from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any

from garment_order_board.kpis import compute_kpis
from garment_order_board.schema import Order
from garment_order_board.status_semantics import OrderStatus, Role

REFERENCE = datetime(2026, 1, 25, 12, 0, tzinfo=timezone.utc)


def _order(order_id: str, status: OrderStatus, deadline: date, value: float) -> Order:
    data: dict[str, Any] = {
        "id": order_id,
        "display_id": f"#{order_id}",
        "quantity": 10,
        "price_per_unit": value / 10,
        "delivery_deadline": deadline,
        "status": status,
        "created_at": "2026-01-01",
    }
    return Order(**data)


def test_kpis_basic_counts_and_values() -> None:
    orders = [
        _order("1", OrderStatus.PRODUCTION, date(2026, 1, 20), 1000.0),
        _order("2", OrderStatus.ACCEPTED, date(2026, 2, 10), 500.0),
        _order("3", OrderStatus.WAITING, date(2026, 4, 1), 250.0),
        _order("4", OrderStatus.FINALIZED, date(2026, 1, 10), 300.0),
        _order("5", OrderStatus.CANCELLED, date(2026, 1, 10), 999.0),
    ]

    k = compute_kpis(orders, Role.SUPPLIER, reference=REFERENCE)

    assert k["orders_total"] == 5
    assert k["orders_active"] == 3
    assert k["orders_finalized"] == 1
    assert k["orders_closed"] == 1
    assert k["active_value"] == 1750.0
    assert k["finalized_value"] == 300.0
    assert k["overdue_active"] == 1
    # only order 2 is due within the next 30 days
    assert k["receivable_next_window"] == 500.0
    assert k["by_column"]["waiting_materials"] == 2
    assert k["by_column"]["production"] == 1
    assert k["by_column"]["cancelled"] == 1
    assert k["by_column"]["new_orders"] == 0


def test_kpis_empty_input_has_every_column() -> None:
    k = compute_kpis([], Role.BRAND, reference=REFERENCE)
    assert k["orders_total"] == 0
    assert k["active_value"] == 0.0
    assert set(k["by_column"]) == {
        "awaiting_supplier",
        "accepted",
        "in_transit_supplier",
        "production",
        "ready",
        "finalized",
        "closed",
    }
