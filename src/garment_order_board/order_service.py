"""Remote order service: the protocol the dashboard depends on and its HTTP client."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Protocol, Tuple

import requests
from pydantic import ValidationError
from tenacity import RetryError, retry, retry_if_exception, stop_after_attempt, wait_exponential

from garment_order_board.config import Settings
from garment_order_board.errors import OrderServiceError
from garment_order_board.schema import ExternalOrder, PendingReview
from garment_order_board.security import mask_secret, safe_log_text, validate_service_base_url
from garment_order_board.status_semantics import ExternalStatus, Role

LOGGER = logging.getLogger(__name__)

SERVICE_NAME = "Serviço de Pedidos"

_ORDERS_PATH: Dict[Role, str] = {
    Role.BRAND: "/orders/brand",
    Role.SUPPLIER: "/orders/supplier",
}
_PENDING_REVIEWS_PATH = "/ratings/pending"


class OrderService(Protocol):
    def fetch_orders(self, role: Role) -> List[ExternalOrder]: ...

    def request_status_change(self, order_id: str, external_status: ExternalStatus) -> Dict[str, Any]: ...

    def fetch_pending_reviews(self) -> List[PendingReview]: ...


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=8),
    retry=retry_if_exception(
        lambda e: isinstance(
            e,
            (RuntimeError, requests.exceptions.ConnectionError),
        )
        and not isinstance(e, requests.exceptions.SSLError)
    ),
)
def _request(
    session: requests.Session,
    method: str,
    url: str,
    timeout: Tuple[float, float],
    **kwargs: Any,
) -> requests.Response:
    r = session.request(method, url, timeout=timeout, **kwargs)
    if r.status_code in (429, 503):
        raise RuntimeError(f"rate limited ({r.status_code})")
    return r


def _retry_root_cause(e: RetryError) -> str:
    last = e.last_attempt.exception()
    if last is not None:
        return f"{type(last).__name__}: {last}"
    return str(e)


def _unwrap_payload(payload: Any) -> Any:
    """The service wraps bodies as `{"data": ..., "meta": {...}}`; bare bodies are accepted too."""
    if isinstance(payload, dict) and "data" in payload:
        return payload["data"]
    return payload


def _as_records(payload: Any) -> List[Dict[str, Any]]:
    data = _unwrap_payload(payload)
    if isinstance(data, dict):
        for key in ("items", "orders", "results"):
            if isinstance(data.get(key), list):
                data = data[key]
                break
    if not isinstance(data, list):
        return []
    return [x for x in data if isinstance(x, dict)]


class OrderServiceClient:
    """
    `requests.Session` adapter over the order service REST endpoints.

    Transient failures (429/503, connection errors) are retried with
    exponential backoff; any other non-2xx answer raises OrderServiceError.
    """

    def __init__(
        self,
        base_url: str,
        *,
        token: str = "",
        connect_timeout: float = 10.0,
        read_timeout: float = 30.0,
        session: Optional[requests.Session] = None,
        allow_local: bool = False,
    ) -> None:
        self.base_url = validate_service_base_url(
            base_url, service_name=SERVICE_NAME, allow_local=allow_local
        )
        self.timeout: Tuple[float, float] = (float(connect_timeout), float(read_timeout))
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/json"})
        if token:
            self.session.headers.update({"Authorization": f"Bearer {token}"})
            LOGGER.debug("Order service client using bearer token %s", mask_secret(token))

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _call(self, method: str, path: str, **kwargs: Any) -> Any:
        url = self._url(path)
        try:
            r = _request(self.session, method, url, self.timeout, **kwargs)
        except RetryError as e:
            cause = _retry_root_cause(e)
            raise OrderServiceError(
                f"{SERVICE_NAME} indisponível após novas tentativas: {cause}", endpoint=path
            ) from e
        except requests.exceptions.RequestException as e:
            raise OrderServiceError(f"{SERVICE_NAME}: falha de rede: {e}", endpoint=path) from e

        if not 200 <= r.status_code < 300:
            excerpt = safe_log_text((r.text or "")[:300])
            LOGGER.warning("%s %s answered HTTP %s: %s", method, path, r.status_code, excerpt)
            raise OrderServiceError(
                f"{SERVICE_NAME} respondeu HTTP {r.status_code}",
                status_code=r.status_code,
                endpoint=path,
                response_excerpt=excerpt,
            )
        if r.status_code == 204 or not (r.text or "").strip():
            return {}
        try:
            return r.json()
        except ValueError as e:
            raise OrderServiceError(
                f"{SERVICE_NAME}: resposta não é JSON válido",
                status_code=r.status_code,
                endpoint=path,
                response_excerpt=safe_log_text((r.text or "")[:300]),
            ) from e

    def fetch_orders(self, role: Role) -> List[ExternalOrder]:
        path = _ORDERS_PATH[Role(role)]
        records = _as_records(self._call("GET", path))
        out: List[ExternalOrder] = []
        for record in records:
            try:
                out.append(ExternalOrder.model_validate(record))
            except ValidationError as e:
                LOGGER.warning(
                    "Skipping malformed order record %r from %s: %s",
                    record.get("id"),
                    path,
                    e.error_count(),
                )
        return out

    def request_status_change(self, order_id: str, external_status: ExternalStatus) -> Dict[str, Any]:
        status = ExternalStatus(external_status)
        payload = self._call("PATCH", f"/orders/{order_id}/status", json={"status": status.value})
        ack = _unwrap_payload(payload)
        return ack if isinstance(ack, dict) else {"status": status.value}

    def fetch_pending_reviews(self) -> List[PendingReview]:
        records = _as_records(self._call("GET", _PENDING_REVIEWS_PATH))
        return [PendingReview.model_validate(r) for r in records]


def client_from_settings(settings: Settings, *, session: Optional[requests.Session] = None) -> OrderServiceClient:
    return OrderServiceClient(
        settings.ORDER_SERVICE_BASE_URL,
        token=str(settings.ORDER_SERVICE_TOKEN or "").strip(),
        connect_timeout=float(settings.ORDER_SERVICE_CONNECT_TIMEOUT),
        read_timeout=float(settings.ORDER_SERVICE_READ_TIMEOUT),
        session=session,
        allow_local=bool(settings.ORDER_SERVICE_ALLOW_LOCAL),
    )
