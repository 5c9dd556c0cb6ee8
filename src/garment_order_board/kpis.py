"""KPI computation for the board's stats overview."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Any, Dict, Sequence, Union

import pandas as pd

from garment_order_board.columns import column_for_status, columns_for
from garment_order_board.query import orders_frame, reference_day
from garment_order_board.schema import Order
from garment_order_board.status_semantics import OrderStatus, Role

RECEIVABLE_WINDOW_DAYS = 30

# Cancelled/rejected orders are neither active nor delivered.
_CLOSED = (OrderStatus.REJECTED.value, OrderStatus.CANCELLED.value)


def _empty_kpis(role: Role) -> Dict[str, Any]:
    return {
        "orders_total": 0,
        "orders_active": 0,
        "orders_finalized": 0,
        "orders_closed": 0,
        "active_value": 0.0,
        "finalized_value": 0.0,
        "receivable_next_window": 0.0,
        "overdue_active": 0,
        "by_column": {col.id: 0 for col in columns_for(role)},
    }


def compute_kpis(
    orders: Sequence[Order],
    role: Role,
    *,
    reference: Union[date, datetime],
) -> Dict[str, Any]:
    items = list(orders)
    if not items:
        return _empty_kpis(role)

    df = orders_frame(items)
    ref = pd.Timestamp(reference_day(reference))
    deadline = pd.to_datetime(df["delivery_deadline"], errors="coerce")
    status = df["status"]

    finalized_mask = status == OrderStatus.FINALIZED.value
    closed_mask = status.isin(_CLOSED)
    active_mask = ~(finalized_mask | closed_mask)
    overdue_mask = active_mask & (deadline < ref)
    window_end = ref + timedelta(days=RECEIVABLE_WINDOW_DAYS)
    receivable_mask = active_mask & (deadline >= ref) & (deadline <= window_end)

    by_column = {col.id: 0 for col in columns_for(role)}
    for raw, count in status.value_counts().items():
        col = column_for_status(OrderStatus(raw), role)
        by_column[col.id] += int(count)

    return {
        "orders_total": int(len(df)),
        "orders_active": int(active_mask.sum()),
        "orders_finalized": int(finalized_mask.sum()),
        "orders_closed": int(closed_mask.sum()),
        "active_value": round(float(df.loc[active_mask, "total_value"].sum()), 2),
        "finalized_value": round(float(df.loc[finalized_mask, "total_value"].sum()), 2),
        "receivable_next_window": round(float(df.loc[receivable_mask, "total_value"].sum()), 2),
        "overdue_active": int(overdue_mask.sum()),
        "by_column": by_column,
    }
