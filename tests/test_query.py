from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any

import pytest

from garment_order_board.query import (
    FilterState,
    active_filter_count,
    apply_filters,
    deadline_urgency,
    filter_options,
    orders_frame,
    sort_orders,
)
from garment_order_board.schema import Counterpart, Order
from garment_order_board.status_semantics import OrderStatus, Role

REFERENCE = datetime(2026, 1, 25, tzinfo=timezone.utc)


def _order(**overrides: Any) -> Order:
    data: dict[str, Any] = {
        "id": "o-1",
        "display_id": "#1",
        "counterpart": Counterpart(id="b-1", name="Marca Azul"),
        "product_name": "Camisa",
        "product_type": "Adulto",
        "quantity": 1,
        "price_per_unit": 1.0,
        "delivery_deadline": date(2026, 2, 10),
        "status": OrderStatus.NEW,
        "created_at": "2026-01-20",
    }
    data.update(overrides)
    return Order(**data)


def _two_orders() -> list[Order]:
    return [
        _order(id="a", display_id="#100", product_name="Camisa", created_at="2026-01-20"),
        _order(id="b", display_id="#200", product_name="Calça", created_at="2026-01-01"),
    ]


def test_week_filter_is_relative_to_reference() -> None:
    out = apply_filters(_two_orders(), FilterState(date_range="week"), role=Role.SUPPLIER, reference=REFERENCE)
    assert [o.display_id for o in out] == ["#100"]


def test_search_is_case_insensitive() -> None:
    out = apply_filters(_two_orders(), FilterState(search="calça"), role=Role.SUPPLIER, reference=REFERENCE)
    assert [o.display_id for o in out] == ["#200"]


def test_search_matches_display_id_and_counterpart() -> None:
    orders = [
        _order(id="a", display_id="#100"),
        _order(id="b", display_id="#200", counterpart=Counterpart(id="b-2", name="Vermelho Jeans")),
    ]
    by_id = apply_filters(orders, FilterState(search="#10"), role=Role.SUPPLIER, reference=REFERENCE)
    by_name = apply_filters(orders, FilterState(search="JEANS"), role=Role.SUPPLIER, reference=REFERENCE)
    assert [o.id for o in by_id] == ["a"]
    assert [o.id for o in by_name] == ["b"]


@pytest.mark.parametrize(
    ("date_range", "expected"),
    [
        ("all", ["a", "b", "c"]),
        ("today", ["a"]),
        ("month", ["a", "b"]),
    ],
)
def test_date_buckets(date_range: str, expected: list[str]) -> None:
    orders = [
        _order(id="a", created_at="2026-01-25T10:00:00Z"),
        _order(id="b", created_at="2026-01-02"),
        _order(id="c", created_at="2025-12-31"),
    ]
    out = apply_filters(orders, FilterState(date_range=date_range), role=Role.BRAND, reference=REFERENCE)  # type: ignore[arg-type]
    assert [o.id for o in out] == expected


def test_absent_filters_are_no_ops_and_keep_order() -> None:
    orders = _two_orders()[::-1]
    out = apply_filters(orders, FilterState(), role=Role.SUPPLIER, reference=REFERENCE)
    assert out == orders
    assert out is not orders


def test_status_filter_expands_to_column_members() -> None:
    orders = [
        _order(id="a", status=OrderStatus.ACCEPTED),
        _order(id="b", status=OrderStatus.WAITING),
        _order(id="c", status=OrderStatus.PRODUCTION),
    ]
    fs = FilterState(statuses=(OrderStatus.ACCEPTED,))
    out = apply_filters(orders, fs, role=Role.SUPPLIER, reference=REFERENCE)
    assert [o.id for o in out] == ["a", "b"]


def test_counterpart_product_type_and_hide_terminal() -> None:
    orders = [
        _order(id="a", product_type="Infantil"),
        _order(id="b", counterpart=Counterpart(id="b-2", name="Outra")),
        _order(id="c", status=OrderStatus.REJECTED),
        _order(id="d", status=OrderStatus.FINALIZED),
    ]
    assert [
        o.id
        for o in apply_filters(orders, FilterState(counterpart_id="b-2"), role=Role.SUPPLIER, reference=REFERENCE)
    ] == ["b"]
    assert [
        o.id
        for o in apply_filters(orders, FilterState(product_type="Infantil"), role=Role.SUPPLIER, reference=REFERENCE)
    ] == ["a"]
    assert [
        o.id
        for o in apply_filters(orders, FilterState(hide_terminal=True), role=Role.SUPPLIER, reference=REFERENCE)
    ] == ["a", "b"]


def test_unknown_date_range_is_a_programming_error() -> None:
    with pytest.raises(ValueError):
        apply_filters(_two_orders(), FilterState(date_range="year"), role=Role.SUPPLIER, reference=REFERENCE)  # type: ignore[arg-type]


def test_sort_by_value_descending_then_ascending_without_mutation() -> None:
    orders = [
        _order(id="a", quantity=1, price_per_unit=100.0),
        _order(id="b", quantity=1, price_per_unit=50.0),
        _order(id="c", quantity=1, price_per_unit=200.0),
    ]
    snapshot = list(orders)

    desc = sort_orders(orders, "value", "desc")
    assert [o.total_value for o in desc] == [200.0, 100.0, 50.0]

    asc = sort_orders(desc, "value", "asc")
    assert [o.total_value for o in asc] == [50.0, 100.0, 200.0]
    assert [o.total_value for o in sort_orders(asc, "value", "desc")] == [200.0, 100.0, 50.0]
    assert orders == snapshot


@pytest.mark.parametrize("direction", ["asc", "desc"])
def test_sort_is_stable_for_ties(direction: str) -> None:
    orders = [
        _order(id="a", status=OrderStatus.PRODUCTION),
        _order(id="b", status=OrderStatus.NEW),
        _order(id="c", status=OrderStatus.PRODUCTION),
        _order(id="d", status=OrderStatus.NEW),
    ]
    out = sort_orders(orders, "status", direction)  # type: ignore[arg-type]
    expected = ["b", "d", "a", "c"] if direction == "asc" else ["a", "c", "b", "d"]
    assert [o.id for o in out] == expected


def test_sort_by_deadline_and_unknown_key() -> None:
    orders = [
        _order(id="a", delivery_deadline=date(2026, 3, 1)),
        _order(id="b", delivery_deadline=date(2026, 2, 1)),
    ]
    assert [o.id for o in sort_orders(orders, "deadline")] == ["b", "a"]
    with pytest.raises(ValueError):
        sort_orders(orders, "priority")


def test_filter_options_and_active_filter_count() -> None:
    orders = [
        _order(id="a", counterpart=Counterpart(id="b-2", name="Zeta"), product_type="Infantil"),
        _order(id="b"),
        _order(id="c"),
    ]
    opts = filter_options(orders)
    assert opts.counterparts == [("b-1", "Marca Azul"), ("b-2", "Zeta")]
    assert opts.product_types == ["Adulto", "Infantil"]

    assert active_filter_count(FilterState()) == 0
    assert active_filter_count(FilterState(search="x")) == 0
    assert active_filter_count(FilterState(date_range="week", statuses=(OrderStatus.NEW,))) == 2


@pytest.mark.parametrize(
    ("deadline", "status", "level", "label"),
    [
        (date(2026, 1, 23), OrderStatus.PRODUCTION, "overdue", "2d atrasado"),
        (date(2026, 1, 25), OrderStatus.PRODUCTION, "due_soon", "Entrega Hoje"),
        (date(2026, 1, 28), OrderStatus.PRODUCTION, "due_soon", "3d restantes"),
        (date(2026, 1, 30), OrderStatus.PRODUCTION, "on_track", "5d restantes"),
        (date(2026, 1, 1), OrderStatus.FINALIZED, "finalized", "Finalizado"),
    ],
)
def test_deadline_urgency(deadline: date, status: OrderStatus, level: str, label: str) -> None:
    out = deadline_urgency(_order(delivery_deadline=deadline, status=status), REFERENCE)
    assert out.level == level
    assert out.label == label


def test_orders_frame_projects_one_row_per_order() -> None:
    df = orders_frame(_two_orders())
    assert list(df["display_id"]) == ["#100", "#200"]
    assert str(df["created_at"].dt.tz) == "UTC"
    assert orders_frame([]).empty
