"""Board rendering: KPI strip, filters, kanban columns, list view and the order detail panel."""

from __future__ import annotations

from datetime import date
from typing import List

import streamlit as st

from garment_order_board.columns import columns_for
from garment_order_board.dashboard import DashboardController
from garment_order_board.query import DATE_RANGE_LABELS, active_filter_count, deadline_urgency, orders_frame
from garment_order_board.schema import Order
from garment_order_board.status_semantics import status_label
from garment_order_board.transitions import ACTION_CONFIRMATIONS, Action, TransitionRejected
from garment_order_board.ui.state import (
    FILTER_COUNTERPART_KEY,
    FILTER_DATE_KEY,
    FILTER_HIDE_TERMINAL_KEY,
    FILTER_PRODUCT_TYPE_KEY,
    FILTER_STATUS_KEY,
    SEARCH_KEY,
    SORT_DIRECTION_KEY,
    SORT_KEY_KEY,
    clear_all_filters,
)

FEEDBACK_KEY = "__board_feedback"

_ACTION_LABELS = {
    Action.ACCEPT: "Aceitar",
    Action.NEGOTIATE: "Negociar",
    Action.REJECT: "Recusar",
    Action.ADVANCE: "Avançar Etapa",
    Action.CONFIRM_RECEIPT: "Confirmar Recebimento",
}

_SORT_LABELS = {
    "id": "Pedido",
    "counterpart": "Parceiro",
    "product": "Produto",
    "op": "OP",
    "article": "Artigo",
    "value": "Valor",
    "status": "Status",
    "deadline": "Prazo",
    "payment": "Pagamento",
}


def _money(value: float) -> str:
    txt = f"{value:,.2f}".replace(",", "X").replace(".", ",").replace("X", ".")
    return f"R$ {txt}"


def render_kpis(controller: DashboardController) -> None:
    k = controller.kpis
    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Pedidos Ativos", k["orders_active"])
    c2.metric("Em Atraso", k["overdue_active"])
    c3.metric("A Receber (30 dias)", _money(k["receivable_next_window"]))
    c4.metric("Finalizados", k["orders_finalized"])


def render_filters(controller: DashboardController) -> None:
    options = controller.filter_options
    reps = [col.representative.value for col in columns_for(controller.role)]
    rep_labels = {col.representative.value: col.label for col in columns_for(controller.role)}
    counterparts = [""] + [cid for cid, _ in options.counterparts]
    names = dict(options.counterparts)

    # widget values must be among the current options
    st.session_state[FILTER_STATUS_KEY] = [
        s for s in (st.session_state.get(FILTER_STATUS_KEY) or []) if s in reps
    ]
    if st.session_state.get(FILTER_COUNTERPART_KEY) not in counterparts:
        st.session_state[FILTER_COUNTERPART_KEY] = ""
    if st.session_state.get(FILTER_PRODUCT_TYPE_KEY) not in [""] + list(options.product_types):
        st.session_state[FILTER_PRODUCT_TYPE_KEY] = ""

    st.text_input("Buscar", key=SEARCH_KEY, placeholder="Pedido, parceiro ou produto")
    c1, c2, c3, c4 = st.columns(4)
    c1.multiselect("Status", reps, key=FILTER_STATUS_KEY, format_func=lambda s: rep_labels.get(s, s))
    c2.selectbox(
        "Período",
        list(DATE_RANGE_LABELS),
        key=FILTER_DATE_KEY,
        format_func=lambda v: DATE_RANGE_LABELS[v],
    )
    c3.selectbox(
        "Parceiro",
        counterparts,
        key=FILTER_COUNTERPART_KEY,
        format_func=lambda cid: names.get(cid, "Todos") if cid else "Todos",
    )
    c4.selectbox(
        "Tipo de Produto",
        [""] + list(options.product_types),
        key=FILTER_PRODUCT_TYPE_KEY,
        format_func=lambda v: v or "Todos",
    )

    c5, c6, c7, c8 = st.columns(4)
    c5.checkbox("Ocultar encerrados", key=FILTER_HIDE_TERMINAL_KEY)
    c6.selectbox(
        "Ordenar por",
        [None] + list(_SORT_LABELS),
        key=SORT_KEY_KEY,
        format_func=lambda v: _SORT_LABELS.get(v, "Padrão") if v else "Padrão",
    )
    c7.radio("Direção", ["asc", "desc"], key=SORT_DIRECTION_KEY, horizontal=True)
    count = active_filter_count(controller.view.filters)
    c8.button(
        f"Limpar filtros ({count})" if count else "Limpar filtros",
        on_click=clear_all_filters,
        disabled=count == 0 and not controller.view.search,
    )


def _order_caption(
    order: Order, controller: DashboardController, reference: date, warning_days: int
) -> str:
    urgency = deadline_urgency(order, reference, warning_days=warning_days)
    parts = [order.counterpart.name or "-", _money(order.total_value), urgency.label]
    if controller.is_sync_pending(order.id):
        parts.append("sincronizando")
    return " · ".join(parts)


def render_kanban(controller: DashboardController, reference: date, *, warning_days: int = 3) -> None:
    grouped = controller.columns
    cols_cfg = columns_for(controller.role)
    cols = st.columns(len(cols_cfg))
    for col, cfg in zip(cols, cols_cfg):
        orders = grouped.get(cfg.id, [])
        with col:
            st.markdown(f"**{cfg.label}**")
            st.caption(f"{len(orders)} pedidos")
            for order in orders:
                st.button(
                    f"{order.display_id} · {order.product_name}",
                    key=f"kanban_card__{order.id}",
                    use_container_width=True,
                    on_click=controller.select_order,
                    args=(order.id,),
                )
                st.caption(_order_caption(order, controller, reference, warning_days))


def render_list(controller: DashboardController) -> None:
    df = orders_frame(controller.filtered_sorted_orders)
    if df.empty:
        st.info("Nenhum pedido encontrado com os filtros atuais.")
        return
    view = df[
        [
            "display_id",
            "counterpart",
            "product_name",
            "op",
            "article",
            "total_value",
            "status_label",
            "delivery_deadline",
            "payment_status",
        ]
    ]
    st.dataframe(view, use_container_width=True, hide_index=True)


def _run_confirmed(controller: DashboardController) -> None:
    result = controller.confirm()
    if isinstance(result, TransitionRejected):
        st.session_state[FEEDBACK_KEY] = ("error", result.message)
    elif result is not None and result.changed:
        st.session_state[FEEDBACK_KEY] = ("success", status_label(result.next_status))


def render_detail(controller: DashboardController, reference: date, *, warning_days: int = 3) -> None:
    order = controller.selected_order
    if order is None:
        return

    with st.container(border=True):
        st.subheader(f"{order.display_id} · {order.product_name}")
        urgency = deadline_urgency(order, reference, warning_days=warning_days)
        st.caption(f"{status_label(order.status)} · {urgency.label}")
        st.write(
            f"{order.counterpart.name or '-'} · {order.quantity} peças × {_money(order.price_per_unit)}"
            f" = {_money(order.total_value)}"
        )

        lines: List[str] = []
        for ev in order.timeline:
            mark = "✓" if ev.completed else "○"
            when = f" ({ev.completed_at:%d/%m/%Y %H:%M})" if ev.completed_at else ""
            lines.append(f"- {mark} {ev.step}{when}")
        st.markdown("\n".join(lines))

        errors = controller.sync_errors
        if order.id in errors:
            st.warning(f"Alteração ainda não sincronizada: {errors[order.id]}")
            st.button("Tentar novamente", key="detail_retry_sync", on_click=controller.retry_pending)
        elif controller.is_sync_pending(order.id):
            st.caption("Sincronizando com o servidor...")

        pending = controller.view.pending_confirmation
        if pending is not None and pending.order_id == order.id:
            copy = ACTION_CONFIRMATIONS[pending.action]
            st.markdown(f"**{copy.title}**")
            st.write(copy.message)
            c1, c2 = st.columns(2)
            c1.button(copy.confirm_label, key="detail_confirm", on_click=_run_confirmed, args=(controller,))
            c2.button("Cancelar", key="detail_cancel", on_click=controller.cancel_confirmation)
        else:
            actions = controller.actions_for(order)
            if actions:
                cols = st.columns(len(actions))
                for col, action in zip(cols, actions):
                    col.button(
                        _ACTION_LABELS[action],
                        key=f"detail_action__{action.value}",
                        on_click=controller.begin_confirmation,
                        args=(order.id, action),
                    )
            else:
                waiting = controller.waiting_label(order)
                if waiting:
                    st.info(waiting)

        st.button("Fechar", key="detail_close", on_click=controller.dismiss_detail)
