"""Configuration loading, validation and persistence helpers (.env backed)."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Any, List

from dotenv import dotenv_values
from pydantic import BaseModel

from garment_order_board.status_semantics import Role


def _default_user_config_home() -> Path:
    """
    Return an OS-appropriate, user-writable config directory.

    Frozen builds may live in read-only install dirs, so they never write next
    to the binary.
    """
    if sys.platform == "darwin":
        base = Path("~/Library/Application Support").expanduser()
    elif os.name == "nt":
        base = Path(os.environ.get("APPDATA") or (Path.home() / "AppData" / "Roaming"))
    else:
        base = Path(os.environ.get("XDG_CONFIG_HOME") or (Path.home() / ".config"))
    return (base / "garment-order-board").expanduser()


def _runtime_home() -> Path:
    override = str(os.getenv("ORDER_BOARD_HOME", "") or "").strip()
    if override:
        return Path(override).expanduser().resolve()
    if getattr(sys, "frozen", False):
        return _default_user_config_home().resolve()
    return Path(__file__).resolve().parents[2]


DEFAULT_CONFIG_HOME = _runtime_home()
ENV_PATH = DEFAULT_CONFIG_HOME / ".env"
ENV_EXAMPLE_PATH = DEFAULT_CONFIG_HOME / ".env.example"

_PATH_SETTING_KEYS = {"LOG_PATH"}
_ENUM_LIKE_KEYS = ("DASHBOARD_ROLE", "DASHBOARD_FILTER_DATE", "DASHBOARD_SORT_DIRECTION", "LOG_LEVEL")


def _candidate_env_example_paths() -> List[Path]:
    out: List[Path] = [ENV_EXAMPLE_PATH]
    try:
        out.append(Path.cwd() / ".env.example")
    except OSError:
        pass

    seen: set[str] = set()
    uniq: List[Path] = []
    for path in out:
        key = str(path)
        if key in seen:
            continue
        seen.add(key)
        uniq.append(path)
    return uniq


def _coerce_str(value: Any) -> str:
    return str(value or "").strip()


def _strip_inline_comment(value: object) -> str:
    """
    `.env.example` documents enum-like keys inline (`DASHBOARD_ROLE=SUPPLIER  # BRAND|SUPPLIER`);
    python-dotenv may keep the comment as part of the value.
    """
    txt = _coerce_str(value)
    if " #" in txt:
        txt = txt.split(" #", 1)[0].strip()
    return txt


def config_home() -> Path:
    return ENV_PATH.expanduser().resolve().parent


def _resolve_runtime_path(raw: str) -> str:
    txt = _coerce_str(raw)
    if not txt:
        return ""
    path = Path(txt).expanduser()
    if not path.is_absolute():
        path = config_home() / path
    return str(path.resolve())


def _to_storable_path(raw: str) -> str:
    txt = _coerce_str(raw)
    if not txt:
        return ""
    path = Path(txt).expanduser()
    if not path.is_absolute():
        return str(path)
    try:
        return str(path.resolve().relative_to(config_home()))
    except ValueError:
        return str(path.resolve())


class Settings(BaseModel):
    APP_TITLE: str = "Painel de Pedidos"
    LOG_LEVEL: str = "INFO"
    LOG_PATH: str = "logs/order_board.log"

    # -------------------------
    # Remote order service
    # -------------------------
    ORDER_SERVICE_BASE_URL: str = ""
    ORDER_SERVICE_TOKEN: str = ""
    ORDER_SERVICE_CONNECT_TIMEOUT: float = 10.0
    ORDER_SERVICE_READ_TIMEOUT: float = 30.0
    ORDER_SERVICE_ALLOW_LOCAL: bool = False

    # -------------------------
    # Dashboard preferences
    # -------------------------
    DASHBOARD_ROLE: str = "SUPPLIER"
    DASHBOARD_FILTER_STATUS_JSON: str = "[]"
    DASHBOARD_FILTER_DATE: str = "all"
    DASHBOARD_SORT_KEY: str = ""
    DASHBOARD_SORT_DIRECTION: str = "asc"
    DEADLINE_WARNING_DAYS: int = 3


def ensure_env() -> None:
    ENV_PATH.parent.mkdir(parents=True, exist_ok=True)
    if not ENV_PATH.exists():
        example_path = next((p for p in _candidate_env_example_paths() if p.exists()), None)
        if example_path is not None:
            ENV_PATH.write_text(example_path.read_text(encoding="utf-8"), encoding="utf-8")
            return
        ENV_PATH.write_text("", encoding="utf-8")


def load_settings() -> Settings:
    vals = {k: v for k, v in dotenv_values(ENV_PATH).items() if v is not None}

    for key in _ENUM_LIKE_KEYS:
        if key in vals:
            vals[key] = _strip_inline_comment(vals[key])

    settings = Settings.model_validate(vals)

    payload = settings.model_dump()
    for key in _PATH_SETTING_KEYS:
        payload[key] = _resolve_runtime_path(str(payload.get(key) or ""))
    return Settings.model_validate(payload)


def save_settings(settings: Settings) -> None:
    ENV_PATH.parent.mkdir(parents=True, exist_ok=True)
    lines = []
    data = settings.model_dump()

    for k, v in data.items():
        if isinstance(v, str):
            if k in _PATH_SETTING_KEYS:
                v = _to_storable_path(v)
            v = v.replace("\r\n", "\n").replace("\r", "\n").replace("\n", "\\n")
        lines.append(f"{k}={v}")

    ENV_PATH.write_text("\n".join(lines) + "\n", encoding="utf-8")


def role_from_settings(settings: Settings) -> Role:
    raw = _coerce_str(getattr(settings, "DASHBOARD_ROLE", "")).upper()
    try:
        return Role(raw)
    except ValueError:
        return Role.SUPPLIER
