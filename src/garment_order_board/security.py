"""Secret masking and outbound URL validation for the order service client."""

from __future__ import annotations

import ipaddress
import re
from urllib.parse import urlparse, urlunparse

SENSITIVE_PATTERNS = [
    re.compile(r"(?i)(authorization:)(\s*)(.+)"),
    re.compile(r"(?i)(bearer)(\s+)([^\s]+)"),
    re.compile(r"(?i)(token)(\s*[:=]\s*)([^\s]+)"),
]

_LOCAL_HOSTNAMES = {"localhost", "localhost.localdomain"}


def mask_secret(value: str) -> str:
    if not value:
        return value
    if len(value) <= 8:
        return "*" * len(value)
    return value[:3] + "*" * (len(value) - 6) + value[-3:]


def safe_log_text(text: str) -> str:
    out = text
    for pat in SENSITIVE_PATTERNS:
        out = pat.sub(lambda m: f"{m.group(1)}{m.group(2)}***", out)
    return out


def _is_local_or_private_host(host: str) -> bool:
    h = (host or "").strip().lower().rstrip(".")
    if not h:
        return True
    if h in _LOCAL_HOSTNAMES or h.endswith(".local"):
        return True

    try:
        ip = ipaddress.ip_address(h)
    except ValueError:
        return False

    return bool(
        ip.is_private
        or ip.is_loopback
        or ip.is_link_local
        or ip.is_multicast
        or ip.is_reserved
        or ip.is_unspecified
    )


def validate_service_base_url(raw_url: str, *, service_name: str, allow_local: bool = False) -> str:
    """
    Normalize and validate the base URL used by the order service client.

    - Enforce https (plain http only for local hosts when `allow_local`).
    - Reject credentials in URL.
    - Reject local/private hosts unless `allow_local`.
    """
    value = (raw_url or "").strip()
    if not value:
        raise ValueError(f"Configure a URL base de {service_name}.")

    parsed = urlparse(value)
    if not parsed.netloc:
        raise ValueError(f"{service_name}: URL inválida.")
    if parsed.username or parsed.password:
        raise ValueError(f"{service_name}: não inclua credenciais na URL base.")

    is_local = _is_local_or_private_host(parsed.hostname or "")
    scheme = parsed.scheme.lower()
    if is_local and not allow_local:
        raise ValueError(f"{service_name}: hosts locais/privados não são permitidos.")
    if scheme != "https" and not (allow_local and is_local and scheme == "http"):
        raise ValueError(f"{service_name}: apenas HTTPS é permitido.")

    cleaned = parsed._replace(query="", fragment="", params="")
    return urlunparse(cleaned).rstrip("/")
