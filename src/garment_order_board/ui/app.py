"""Main Streamlit application shell: settings, controller lifecycle and page layout."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional

import streamlit as st

from garment_order_board.config import Settings, ensure_env, load_settings, role_from_settings, save_settings
from garment_order_board.dashboard import DashboardController
from garment_order_board.logging_setup import configure_logging
from garment_order_board.order_service import client_from_settings
from garment_order_board.status_semantics import Role
from garment_order_board.ui.board import (
    FEEDBACK_KEY,
    render_detail,
    render_filters,
    render_kanban,
    render_kpis,
    render_list,
)
from garment_order_board.ui.state import (
    CONTROLLER_KEY,
    bootstrap_filters_from_env,
    get_filter_state,
    get_sort,
    persist_filters_in_env,
)

LOGGER = logging.getLogger(__name__)

_ROLE_LABELS = {Role.SUPPLIER: "Facção", Role.BRAND: "Marca"}
_LOAD_STATUS_KEY = "__board_load_status"
_VIEW_MODE_KEY = "board_view_mode"


def _build_controller(settings: Settings) -> Optional[DashboardController]:
    try:
        service = client_from_settings(settings)
    except ValueError as e:
        st.error(str(e))
        return None
    controller = DashboardController(role_from_settings(settings), service)
    st.session_state[_LOAD_STATUS_KEY] = controller.load()
    return controller


def _get_controller(settings: Settings) -> Optional[DashboardController]:
    controller = st.session_state.get(CONTROLLER_KEY)
    if isinstance(controller, DashboardController) and controller.role == role_from_settings(settings):
        return controller
    if isinstance(controller, DashboardController):
        controller.shutdown(wait=False)
    controller = _build_controller(settings)
    if controller is not None:
        st.session_state[CONTROLLER_KEY] = controller
    return controller


def _reload(controller: DashboardController) -> None:
    st.session_state[_LOAD_STATUS_KEY] = controller.load()


def _render_sidebar(settings: Settings) -> Settings:
    with st.sidebar:
        current = role_from_settings(settings)
        roles = list(_ROLE_LABELS)
        picked = st.radio(
            "Perfil",
            roles,
            index=roles.index(current),
            format_func=lambda r: _ROLE_LABELS[r],
        )
        if picked != current:
            settings = settings.model_copy(update={"DASHBOARD_ROLE": picked.value})
            save_settings(settings)
            LOGGER.info("Dashboard role switched to %s", picked.value)
        st.radio(
            "Visualização",
            ["kanban", "list"],
            key=_VIEW_MODE_KEY,
            format_func=lambda v: "Quadro" if v == "kanban" else "Lista",
        )
    return settings


def _sync_view_state(controller: DashboardController) -> None:
    fs = get_filter_state()
    sort_key, sort_direction = get_sort()
    if controller.view.search != fs.search:
        controller.set_search(fs.search)
    filters = replace(fs, search="")
    if controller.view.filters != filters:
        controller.set_filters(filters)
    if (controller.view.sort_key, controller.view.sort_direction) != (sort_key, sort_direction):
        controller.set_sort(sort_key, sort_direction)
    mode = str(st.session_state.get(_VIEW_MODE_KEY) or "kanban")
    if controller.view.view_mode != mode:
        controller.set_view_mode(mode)


def main() -> None:
    st.set_page_config(page_title="Painel de Pedidos", layout="wide")

    ensure_env()
    settings = load_settings()
    configure_logging(settings)
    bootstrap_filters_from_env(settings)

    settings = _render_sidebar(settings)
    st.title(settings.APP_TITLE)

    controller = _get_controller(settings)
    if controller is None:
        st.stop()
        return

    ok, msg = st.session_state.get(_LOAD_STATUS_KEY, (True, ""))
    if not ok:
        st.error(msg)
    st.button("Recarregar", on_click=_reload, args=(controller,))

    feedback = st.session_state.pop(FEEDBACK_KEY, None)
    if feedback:
        kind, text = feedback
        (st.error if kind == "error" else st.success)(text)

    reviews = controller.pending_reviews
    if reviews:
        st.info(f"Você tem {len(reviews)} avaliação(ões) pendente(s).")

    _sync_view_state(controller)
    render_kpis(controller)
    render_filters(controller)
    persist_filters_in_env(settings)

    reference = controller.today()
    if controller.view.view_mode == "list":
        render_list(controller)
    else:
        render_kanban(controller, reference, warning_days=settings.DEADLINE_WARNING_DAYS)
    render_detail(controller, reference, warning_days=settings.DEADLINE_WARNING_DAYS)
