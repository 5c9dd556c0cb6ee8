"""Board/list query engine: filter state, pandas-mask filtering, stable sorting and deadline urgency."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Literal, Sequence, Tuple, Union

import pandas as pd

from garment_order_board.columns import expand_status_filter
from garment_order_board.schema import Order
from garment_order_board.status_semantics import (
    OrderStatus,
    Role,
    TERMINAL_STATUSES,
    canonical_status_rank_map,
    is_terminal,
    status_label,
)

DateRange = Literal["all", "today", "week", "month"]
SortDirection = Literal["asc", "desc"]

DATE_RANGES: Tuple[str, ...] = ("all", "today", "week", "month")
DATE_RANGE_LABELS: Dict[str, str] = {
    "all": "Todo o Período",
    "today": "Hoje",
    "week": "Esta Semana",
    "month": "Este Mês",
}
SORT_DIRECTIONS: Tuple[str, ...] = ("asc", "desc")

FRAME_COLUMNS = [
    "id",
    "display_id",
    "counterpart_id",
    "counterpart",
    "product_name",
    "product_type",
    "op",
    "article",
    "quantity",
    "price_per_unit",
    "total_value",
    "delivery_deadline",
    "status",
    "status_label",
    "payment_status",
    "created_at",
]


@dataclass(frozen=True)
class FilterState:
    search: str = ""
    date_range: DateRange = "all"
    statuses: Tuple[OrderStatus, ...] = ()
    counterpart_id: str = ""
    product_type: str = ""
    hide_terminal: bool = False


@dataclass(frozen=True)
class FilterOptions:
    counterparts: List[Tuple[str, str]] = field(default_factory=list)
    product_types: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class DeadlineUrgency:
    level: Literal["finalized", "overdue", "due_soon", "on_track"]
    days_left: int
    label: str


def orders_frame(orders: Sequence[Order]) -> pd.DataFrame:
    """Tabular projection of orders, one row per order, index aligned with the input position."""
    rows = [
        {
            "id": o.id,
            "display_id": o.display_id,
            "counterpart_id": o.counterpart.id,
            "counterpart": o.counterpart.name,
            "product_name": o.product_name,
            "product_type": o.product_type,
            "op": o.op,
            "article": o.article,
            "quantity": o.quantity,
            "price_per_unit": o.price_per_unit,
            "total_value": o.total_value,
            "delivery_deadline": o.delivery_deadline,
            "status": o.status.value,
            "status_label": status_label(o.status),
            "payment_status": o.payment_status,
            "created_at": o.created_at,
        }
        for o in orders
    ]
    if not rows:
        return pd.DataFrame(columns=FRAME_COLUMNS)
    df = pd.DataFrame(rows, columns=FRAME_COLUMNS)
    df["created_at"] = pd.to_datetime(df["created_at"], utc=True, errors="coerce")
    return df


def reference_day(reference: Union[date, datetime]) -> date:
    if isinstance(reference, datetime):
        if reference.tzinfo is not None:
            reference = reference.astimezone(timezone.utc)
        return reference.date()
    return reference


def _date_mask(created: pd.Series, date_range: str, reference: Union[date, datetime]) -> pd.Series:
    if date_range not in DATE_RANGES:
        raise ValueError(f"Unknown date range: {date_range!r}")
    if date_range == "all":
        return pd.Series(True, index=created.index)

    ref = reference_day(reference)
    created_day = created.dt.date
    if date_range == "today":
        return created_day == ref
    if date_range == "week":
        return (created_day >= ref - timedelta(days=7)) & (created_day <= ref)
    return (created.dt.month == ref.month) & (created.dt.year == ref.year)


def apply_filters(
    orders: Sequence[Order],
    fs: FilterState,
    *,
    role: Role,
    reference: Union[date, datetime],
) -> List[Order]:
    """
    Keep the orders matching every active criterion of `fs`, in input order.

    `reference` anchors the date buckets; it is supplied by the caller so the
    result does not depend on when the call happens.
    """
    items = list(orders)
    if fs.date_range not in DATE_RANGES:
        raise ValueError(f"Unknown date range: {fs.date_range!r}")
    if not items:
        return []

    df = orders_frame(items)
    mask = pd.Series(True, index=df.index)

    needle = str(fs.search or "").strip().lower()
    if needle:
        haystacks = (df["display_id"], df["counterpart"], df["product_name"])
        hit = pd.Series(False, index=df.index)
        for col in haystacks:
            hit |= col.fillna("").astype(str).str.lower().str.contains(needle, regex=False)
        mask &= hit

    mask &= _date_mask(df["created_at"], fs.date_range, reference)

    if fs.statuses:
        wanted = [s.value for s in expand_status_filter(fs.statuses, role)]
        mask &= df["status"].isin(wanted)

    if fs.hide_terminal:
        mask &= ~df["status"].isin([s.value for s in TERMINAL_STATUSES])

    if fs.counterpart_id:
        mask &= df["counterpart_id"] == fs.counterpart_id

    if fs.product_type:
        mask &= df["product_type"] == fs.product_type

    return [items[i] for i in df.index[mask]]


_STATUS_RANK = canonical_status_rank_map()

SORT_KEYS: Dict[str, Callable[[Order], Any]] = {
    "id": lambda o: o.display_id.lower(),
    "counterpart": lambda o: o.counterpart.name.lower(),
    "product": lambda o: o.product_name.lower(),
    "op": lambda o: o.op.lower(),
    "article": lambda o: o.article.lower(),
    "value": lambda o: o.total_value,
    "status": lambda o: _STATUS_RANK[o.status],
    "deadline": lambda o: pd.Timestamp(o.delivery_deadline),
    "payment": lambda o: o.payment_status,
}


def sort_orders(orders: Sequence[Order], key: str, direction: SortDirection = "asc") -> List[Order]:
    """Stable sort by one key; ties keep their input order in both directions. Input is not modified."""
    if key not in SORT_KEYS:
        raise ValueError(f"Unknown sort key: {key!r}")
    if direction not in SORT_DIRECTIONS:
        raise ValueError(f"Unknown sort direction: {direction!r}")

    items = list(orders)
    if len(items) < 2:
        return items
    values = pd.Series([SORT_KEYS[key](o) for o in items])
    ordered = values.sort_values(ascending=(direction == "asc"), kind="mergesort")
    return [items[i] for i in ordered.index]


def filter_options(orders: Sequence[Order]) -> FilterOptions:
    counterparts: Dict[str, str] = {}
    product_types: List[str] = []
    for o in orders:
        if o.counterpart.id and o.counterpart.id not in counterparts:
            counterparts[o.counterpart.id] = o.counterpart.name
        if o.product_type not in product_types:
            product_types.append(o.product_type)
    return FilterOptions(
        counterparts=sorted(counterparts.items(), key=lambda kv: kv[1].lower()),
        product_types=sorted(product_types),
    )


def active_filter_count(fs: FilterState) -> int:
    """Number of dropdown criteria narrowing the view. Search text has its own box and is not counted."""
    return sum(
        [
            bool(fs.statuses),
            fs.date_range != "all",
            bool(fs.counterpart_id),
            bool(fs.product_type),
            bool(fs.hide_terminal),
        ]
    )


def deadline_urgency(
    order: Order, reference: Union[date, datetime], *, warning_days: int = 3
) -> DeadlineUrgency:
    days_left = (order.delivery_deadline - reference_day(reference)).days
    if is_terminal(order.status):
        return DeadlineUrgency("finalized", days_left, status_label(order.status))
    if days_left < 0:
        return DeadlineUrgency("overdue", days_left, f"{abs(days_left)}d atrasado")
    if days_left == 0:
        return DeadlineUrgency("due_soon", 0, "Entrega Hoje")
    level = "due_soon" if days_left <= warning_days else "on_track"
    return DeadlineUrgency(level, days_left, f"{days_left}d restantes")
