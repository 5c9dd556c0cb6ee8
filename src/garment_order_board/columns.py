"""Role-specific board columns and the projection of orders onto them."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Sequence, Tuple

from garment_order_board.errors import UnmappedStatusError
from garment_order_board.schema import Order
from garment_order_board.status_semantics import OrderStatus, Role, reachable_statuses


@dataclass(frozen=True)
class StatusColumn:
    id: str
    label: str
    statuses: Tuple[OrderStatus, ...]

    @property
    def representative(self) -> OrderStatus:
        """Status used by filter dropdowns to stand for the whole column."""
        return self.statuses[0]


ROLE_COLUMNS: Dict[Role, Tuple[StatusColumn, ...]] = {
    Role.SUPPLIER: (
        StatusColumn("new_orders", "Novos Pedidos", (OrderStatus.NEW,)),
        StatusColumn("negotiation", "Em Análise/Negociação", (OrderStatus.NEGOTIATING,)),
        StatusColumn("waiting_materials", "Aguardando Insumos", (OrderStatus.ACCEPTED, OrderStatus.WAITING)),
        StatusColumn("production", "Em Produção", (OrderStatus.PRODUCTION,)),
        StatusColumn("ready", "Pronto / Envio", (OrderStatus.READY_SEND,)),
        StatusColumn("finalized", "Finalizados", (OrderStatus.FINALIZED,)),
        StatusColumn("cancelled", "Cancelados", (OrderStatus.REJECTED, OrderStatus.CANCELLED)),
    ),
    Role.BRAND: (
        StatusColumn("awaiting_supplier", "Aguardando Facção", (OrderStatus.NEW, OrderStatus.NEGOTIATING)),
        StatusColumn("accepted", "Aceito / Preparando Envio", (OrderStatus.ACCEPTED,)),
        StatusColumn("in_transit_supplier", "Trânsito → Facção", (OrderStatus.WAITING,)),
        StatusColumn("production", "Em Produção", (OrderStatus.PRODUCTION,)),
        StatusColumn("ready", "Pronto / Envio", (OrderStatus.READY_SEND,)),
        StatusColumn("finalized", "Finalizados", (OrderStatus.FINALIZED,)),
        StatusColumn("closed", "Recusados / Cancelados", (OrderStatus.REJECTED, OrderStatus.CANCELLED)),
    ),
}


def columns_for(role: Role) -> Tuple[StatusColumn, ...]:
    return ROLE_COLUMNS[Role(role)]


def _status_index(role: Role) -> Dict[OrderStatus, StatusColumn]:
    out: Dict[OrderStatus, StatusColumn] = {}
    for col in columns_for(role):
        for status in col.statuses:
            out.setdefault(status, col)
    return out


def column_for_status(status: OrderStatus, role: Role) -> StatusColumn:
    col = _status_index(role).get(OrderStatus(status))
    if col is None:
        raise UnmappedStatusError(f"Status {OrderStatus(status).value} has no column for role {Role(role).value}")
    return col


def project_columns(orders: Iterable[Order], role: Role) -> Dict[str, List[Order]]:
    """
    Group orders by board column for `role`.

    Every column id is present (possibly with an empty list) and orders keep
    their input order inside each column. An order whose status has no column
    raises UnmappedStatusError instead of being dropped.
    """
    index = _status_index(role)
    grouped: Dict[str, List[Order]] = {col.id: [] for col in columns_for(role)}
    for order in orders:
        col = index.get(order.status)
        if col is None:
            raise UnmappedStatusError(
                f"Order {order.display_id} has status {order.status.value} with no column "
                f"for role {Role(role).value}"
            )
        grouped[col.id].append(order)
    return grouped


def partition_defects(role: Role) -> Dict[str, List[OrderStatus]]:
    """Reachable statuses missing from the board, and statuses claimed by more than one column."""
    role = Role(role)
    counts: Dict[OrderStatus, int] = {}
    for col in columns_for(role):
        for status in col.statuses:
            counts[status] = counts.get(status, 0) + 1

    missing = sorted(
        (s for s in reachable_statuses(role) if s not in counts),
        key=lambda s: list(OrderStatus).index(s),
    )
    duplicated = [s for s in OrderStatus if counts.get(s, 0) > 1]
    return {"missing": missing, "duplicated": duplicated}


def expand_status_filter(statuses: Sequence[OrderStatus], role: Role) -> List[OrderStatus]:
    """
    Widen each selected status to every member of its column.

    Picking "Aguardando Insumos" in the workshop filter means ACCEPTED and
    WAITING alike. Statuses without a column are kept as selected.
    """
    index = _status_index(role)
    out: List[OrderStatus] = []
    for raw in statuses:
        status = OrderStatus(raw)
        col = index.get(status)
        members = col.statuses if col is not None else (status,)
        for member in members:
            if member not in out:
                out.append(member)
    return out
