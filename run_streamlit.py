"""Command-line launcher: runs the order board Streamlit app."""

from __future__ import annotations

import os
import sys
from pathlib import Path

from streamlit.web import cli as stcli

_PORT_ENV = "ORDER_BOARD_PORT"
_HEADLESS_ENV = "ORDER_BOARD_HEADLESS"


def _resolve_app_script() -> Path:
    script = Path(__file__).resolve().parent / "app.py"
    if script.exists():
        return script
    raise FileNotFoundError(f"Could not find Streamlit entrypoint: {script}")


def _bool_env(name: str, default: bool) -> bool:
    raw = str(os.environ.get(name) or "").strip().lower()
    if not raw:
        return bool(default)
    if raw in {"1", "true", "yes", "on"}:
        return True
    if raw in {"0", "false", "no", "off"}:
        return False
    return bool(default)


def _port_from_env() -> int | None:
    raw = str(os.environ.get(_PORT_ENV) or "").strip()
    if not raw:
        return None
    try:
        port = int(raw)
    except ValueError:
        return None
    return port if 0 < port < 65536 else None


def _build_streamlit_argv(script: Path, *, port: int | None, headless: bool) -> list[str]:
    argv = [
        "streamlit",
        "run",
        str(script),
        "--global.developmentMode=false",
        "--server.runOnSave=false",
    ]
    if port is not None:
        argv.extend(
            [
                "--server.address=127.0.0.1",
                f"--server.port={int(port)}",
            ]
        )
    if headless:
        argv.append("--server.headless=true")
    return argv


def main() -> int:
    headless = _bool_env(_HEADLESS_ENV, False)
    if headless:
        os.environ["BROWSER"] = "none"
    sys.argv = _build_streamlit_argv(_resolve_app_script(), port=_port_from_env(), headless=headless)
    return int(stcli.main())


if __name__ == "__main__":
    raise SystemExit(main())
