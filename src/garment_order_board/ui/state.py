"""Session state keys and .env persistence for the board's filter and sort preferences."""

from __future__ import annotations

import json
from typing import List, Optional

import streamlit as st

from garment_order_board.config import Settings, save_settings
from garment_order_board.query import DATE_RANGES, SORT_DIRECTIONS, SORT_KEYS, FilterState
from garment_order_board.status_semantics import OrderStatus

# Canonical keys shared across UI modules.
FILTER_STATUS_KEY = "filter_status"
FILTER_DATE_KEY = "filter_date"
FILTER_COUNTERPART_KEY = "filter_counterpart"
FILTER_PRODUCT_TYPE_KEY = "filter_product_type"
FILTER_HIDE_TERMINAL_KEY = "filter_hide_terminal"
SEARCH_KEY = "board_search"
SORT_KEY_KEY = "board_sort_key"
SORT_DIRECTION_KEY = "board_sort_direction"
FILTERS_BOOTSTRAPPED_KEY = "__filters_bootstrapped_from_env"
CONTROLLER_KEY = "__dashboard_controller"

FILTER_STATUS_ENV_KEY = "DASHBOARD_FILTER_STATUS_JSON"
FILTER_DATE_ENV_KEY = "DASHBOARD_FILTER_DATE"
SORT_KEY_ENV_KEY = "DASHBOARD_SORT_KEY"
SORT_DIRECTION_ENV_KEY = "DASHBOARD_SORT_DIRECTION"


def _normalize_status_tokens(values: List[object]) -> List[str]:
    """Keep known canonical statuses only, deduplicated, in first-seen order."""
    known = {s.value for s in OrderStatus}
    out: List[str] = []
    for raw in list(values or []):
        token = str(raw or "").strip().upper()
        if token not in known or token in out:
            continue
        out.append(token)
    return out


def _parse_status_env_list(raw: object) -> List[str]:
    txt = str(raw or "").strip()
    if not txt:
        return []
    try:
        payload = json.loads(txt)
    except ValueError:
        payload = None
    if isinstance(payload, list):
        return _normalize_status_tokens(payload)
    return _normalize_status_tokens([part.strip() for part in txt.split(",") if part.strip()])


def _encode_status_env_list(values: List[str]) -> str:
    return json.dumps(_normalize_status_tokens(list(values or [])), separators=(",", ":"))


def _date_or_default(raw: object) -> str:
    txt = str(raw or "").strip().lower()
    return txt if txt in DATE_RANGES else "all"


def _sort_key_or_none(raw: object) -> Optional[str]:
    txt = str(raw or "").strip().lower()
    return txt if txt in SORT_KEYS else None


def _direction_or_default(raw: object) -> str:
    txt = str(raw or "").strip().lower()
    return txt if txt in SORT_DIRECTIONS else "asc"


def bootstrap_filters_from_env(settings: Settings) -> None:
    """Hydrate filter and sort session keys from persisted .env once per session."""
    if bool(st.session_state.get(FILTERS_BOOTSTRAPPED_KEY, False)):
        return

    if FILTER_STATUS_KEY not in st.session_state:
        st.session_state[FILTER_STATUS_KEY] = _parse_status_env_list(
            getattr(settings, FILTER_STATUS_ENV_KEY, "[]")
        )
    else:
        st.session_state[FILTER_STATUS_KEY] = _normalize_status_tokens(
            list(st.session_state.get(FILTER_STATUS_KEY) or [])
        )

    if FILTER_DATE_KEY not in st.session_state:
        st.session_state[FILTER_DATE_KEY] = _date_or_default(getattr(settings, FILTER_DATE_ENV_KEY, "all"))
    if SORT_KEY_KEY not in st.session_state:
        st.session_state[SORT_KEY_KEY] = _sort_key_or_none(getattr(settings, SORT_KEY_ENV_KEY, ""))
    if SORT_DIRECTION_KEY not in st.session_state:
        st.session_state[SORT_DIRECTION_KEY] = _direction_or_default(
            getattr(settings, SORT_DIRECTION_ENV_KEY, "asc")
        )

    st.session_state[FILTERS_BOOTSTRAPPED_KEY] = True


def get_filter_state() -> FilterState:
    """Read the filter state from st.session_state. Does not render widgets."""
    return FilterState(
        search=str(st.session_state.get(SEARCH_KEY) or ""),
        date_range=_date_or_default(st.session_state.get(FILTER_DATE_KEY)),  # type: ignore[arg-type]
        statuses=tuple(
            OrderStatus(s)
            for s in _normalize_status_tokens(list(st.session_state.get(FILTER_STATUS_KEY) or []))
        ),
        counterpart_id=str(st.session_state.get(FILTER_COUNTERPART_KEY) or ""),
        product_type=str(st.session_state.get(FILTER_PRODUCT_TYPE_KEY) or ""),
        hide_terminal=bool(st.session_state.get(FILTER_HIDE_TERMINAL_KEY, False)),
    )


def get_sort() -> tuple[Optional[str], str]:
    return (
        _sort_key_or_none(st.session_state.get(SORT_KEY_KEY)),
        _direction_or_default(st.session_state.get(SORT_DIRECTION_KEY)),
    )


def persist_filters_in_env(settings: Settings) -> bool:
    """Persist the status/date filters and the sort choice into .env when they change."""
    fs = get_filter_state()
    sort_key, sort_direction = get_sort()
    current = {
        FILTER_STATUS_ENV_KEY: _encode_status_env_list([s.value for s in fs.statuses]),
        FILTER_DATE_ENV_KEY: fs.date_range,
        SORT_KEY_ENV_KEY: sort_key or "",
        SORT_DIRECTION_ENV_KEY: sort_direction,
    }
    persisted = {
        FILTER_STATUS_ENV_KEY: _encode_status_env_list(
            _parse_status_env_list(getattr(settings, FILTER_STATUS_ENV_KEY, "[]"))
        ),
        FILTER_DATE_ENV_KEY: _date_or_default(getattr(settings, FILTER_DATE_ENV_KEY, "all")),
        SORT_KEY_ENV_KEY: _sort_key_or_none(getattr(settings, SORT_KEY_ENV_KEY, "")) or "",
        SORT_DIRECTION_ENV_KEY: _direction_or_default(getattr(settings, SORT_DIRECTION_ENV_KEY, "asc")),
    }
    if current == persisted:
        return False

    save_settings(settings.model_copy(update=current))
    return True


def clear_all_filters() -> None:
    st.session_state[SEARCH_KEY] = ""
    st.session_state[FILTER_STATUS_KEY] = []
    st.session_state[FILTER_DATE_KEY] = "all"
    st.session_state[FILTER_COUNTERPART_KEY] = ""
    st.session_state[FILTER_PRODUCT_TYPE_KEY] = ""
    st.session_state[FILTER_HIDE_TERMINAL_KEY] = False
