from __future__ import annotations

from types import SimpleNamespace
from typing import Any

from garment_order_board.config import Settings
from garment_order_board.status_semantics import OrderStatus
from garment_order_board.ui import state as ui_state


def test_bootstrap_filters_from_env_hydrates_session_state(monkeypatch: Any) -> None:
    fake_state: dict[str, Any] = {}
    monkeypatch.setattr(ui_state, "st", SimpleNamespace(session_state=fake_state))

    settings = Settings(
        DASHBOARD_FILTER_STATUS_JSON='["NEW","production","bogus","NEW"]',
        DASHBOARD_FILTER_DATE="week",
        DASHBOARD_SORT_KEY="deadline",
        DASHBOARD_SORT_DIRECTION="desc",
    )

    ui_state.bootstrap_filters_from_env(settings)

    assert fake_state[ui_state.FILTER_STATUS_KEY] == ["NEW", "PRODUCTION"]
    assert fake_state[ui_state.FILTER_DATE_KEY] == "week"
    assert fake_state[ui_state.SORT_KEY_KEY] == "deadline"
    assert fake_state[ui_state.SORT_DIRECTION_KEY] == "desc"
    assert fake_state[ui_state.FILTERS_BOOTSTRAPPED_KEY] is True


def test_bootstrap_keeps_existing_session_values(monkeypatch: Any) -> None:
    fake_state: dict[str, Any] = {
        ui_state.FILTER_STATUS_KEY: ["READY_SEND"],
        ui_state.FILTER_DATE_KEY: "month",
    }
    monkeypatch.setattr(ui_state, "st", SimpleNamespace(session_state=fake_state))

    ui_state.bootstrap_filters_from_env(
        Settings(DASHBOARD_FILTER_STATUS_JSON='["NEW"]', DASHBOARD_FILTER_DATE="today")
    )

    assert fake_state[ui_state.FILTER_STATUS_KEY] == ["READY_SEND"]
    assert fake_state[ui_state.FILTER_DATE_KEY] == "month"


def test_invalid_persisted_values_fall_back_to_defaults(monkeypatch: Any) -> None:
    fake_state: dict[str, Any] = {}
    monkeypatch.setattr(ui_state, "st", SimpleNamespace(session_state=fake_state))

    ui_state.bootstrap_filters_from_env(
        Settings(
            DASHBOARD_FILTER_STATUS_JSON="NEW, ACCEPTED",
            DASHBOARD_FILTER_DATE="decade",
            DASHBOARD_SORT_KEY="priority",
            DASHBOARD_SORT_DIRECTION="sideways",
        )
    )

    assert fake_state[ui_state.FILTER_STATUS_KEY] == ["NEW", "ACCEPTED"]
    assert fake_state[ui_state.FILTER_DATE_KEY] == "all"
    assert fake_state[ui_state.SORT_KEY_KEY] is None
    assert fake_state[ui_state.SORT_DIRECTION_KEY] == "asc"


def test_get_filter_state_reads_session_keys(monkeypatch: Any) -> None:
    fake_state: dict[str, Any] = {
        ui_state.SEARCH_KEY: "camisa",
        ui_state.FILTER_STATUS_KEY: ["ACCEPTED"],
        ui_state.FILTER_DATE_KEY: "today",
        ui_state.FILTER_COUNTERPART_KEY: "b-1",
        ui_state.FILTER_HIDE_TERMINAL_KEY: True,
    }
    monkeypatch.setattr(ui_state, "st", SimpleNamespace(session_state=fake_state))

    fs = ui_state.get_filter_state()

    assert fs.search == "camisa"
    assert fs.statuses == (OrderStatus.ACCEPTED,)
    assert fs.date_range == "today"
    assert fs.counterpart_id == "b-1"
    assert fs.product_type == ""
    assert fs.hide_terminal is True


def test_persist_filters_in_env_only_saves_when_changed(monkeypatch: Any) -> None:
    fake_state: dict[str, Any] = {
        ui_state.FILTER_STATUS_KEY: ["NEW", "PRODUCTION"],
        ui_state.FILTER_DATE_KEY: "week",
        ui_state.SORT_KEY_KEY: "value",
        ui_state.SORT_DIRECTION_KEY: "desc",
    }
    monkeypatch.setattr(ui_state, "st", SimpleNamespace(session_state=fake_state))

    captured: dict[str, Any] = {}

    def _fake_save_settings(updated: Settings) -> None:
        captured["settings"] = updated

    monkeypatch.setattr(ui_state, "save_settings", _fake_save_settings)

    same_settings = Settings(
        DASHBOARD_FILTER_STATUS_JSON='["NEW","PRODUCTION"]',
        DASHBOARD_FILTER_DATE="week",
        DASHBOARD_SORT_KEY="value",
        DASHBOARD_SORT_DIRECTION="desc",
    )
    assert ui_state.persist_filters_in_env(same_settings) is False
    assert "settings" not in captured

    changed_settings = Settings(DASHBOARD_FILTER_STATUS_JSON='["NEW"]')
    assert ui_state.persist_filters_in_env(changed_settings) is True
    saved = captured["settings"]
    assert saved.DASHBOARD_FILTER_STATUS_JSON == '["NEW","PRODUCTION"]'
    assert saved.DASHBOARD_FILTER_DATE == "week"
    assert saved.DASHBOARD_SORT_KEY == "value"
    assert saved.DASHBOARD_SORT_DIRECTION == "desc"


def test_clear_all_filters_resets_session_keys(monkeypatch: Any) -> None:
    fake_state: dict[str, Any] = {
        ui_state.SEARCH_KEY: "x",
        ui_state.FILTER_STATUS_KEY: ["NEW"],
        ui_state.FILTER_DATE_KEY: "week",
    }
    monkeypatch.setattr(ui_state, "st", SimpleNamespace(session_state=fake_state))

    ui_state.clear_all_filters()

    assert ui_state.get_filter_state() == ui_state.FilterState()
