"""Canonical vs. remote status vocabularies and the per-role tables bridging them."""

from __future__ import annotations

import logging
import re
import unicodedata
from enum import Enum
from typing import Dict, Final, FrozenSet, List, Union

from garment_order_board.errors import ReadOnlyStatusError

LOGGER = logging.getLogger(__name__)


class Role(str, Enum):
    BRAND = "BRAND"
    SUPPLIER = "SUPPLIER"


class OrderStatus(str, Enum):
    """Canonical status driving business decisions, declared in flow order."""

    NEW = "NEW"
    NEGOTIATING = "NEGOTIATING"
    ACCEPTED = "ACCEPTED"
    WAITING = "WAITING"
    PRODUCTION = "PRODUCTION"
    READY_SEND = "READY_SEND"
    FINALIZED = "FINALIZED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


class ExternalStatus(str, Enum):
    """Status vocabulary emitted and consumed by the remote order service."""

    LANCADO_PELA_MARCA = "LANCADO_PELA_MARCA"
    DISPONIVEL_PARA_OUTRAS = "DISPONIVEL_PARA_OUTRAS"
    EM_NEGOCIACAO = "EM_NEGOCIACAO"
    ACEITO_PELA_FACCAO = "ACEITO_PELA_FACCAO"
    EM_PREPARACAO_SAIDA_MARCA = "EM_PREPARACAO_SAIDA_MARCA"
    EM_TRANSITO_PARA_FACCAO = "EM_TRANSITO_PARA_FACCAO"
    EM_PREPARACAO_ENTRADA_FACCAO = "EM_PREPARACAO_ENTRADA_FACCAO"
    FILA_DE_PRODUCAO = "FILA_DE_PRODUCAO"
    EM_PRODUCAO = "EM_PRODUCAO"
    PRONTO = "PRONTO"
    EM_TRANSITO_PARA_MARCA = "EM_TRANSITO_PARA_MARCA"
    EM_REVISAO = "EM_REVISAO"
    PARCIALMENTE_APROVADO = "PARCIALMENTE_APROVADO"
    REPROVADO = "REPROVADO"
    AGUARDANDO_RETRABALHO = "AGUARDANDO_RETRABALHO"
    EM_PROCESSO_PAGAMENTO = "EM_PROCESSO_PAGAMENTO"
    FINALIZADO = "FINALIZADO"
    RECUSADO_PELA_FACCAO = "RECUSADO_PELA_FACCAO"
    CANCELADO = "CANCELADO"


DEFAULT_CANONICAL_STATUS: Final[OrderStatus] = OrderStatus.NEW

TERMINAL_STATUSES: Final[FrozenSet[OrderStatus]] = frozenset(
    {OrderStatus.FINALIZED, OrderStatus.REJECTED, OrderStatus.CANCELLED}
)

STATUS_LABELS: Final[Dict[OrderStatus, str]] = {
    OrderStatus.NEW: "Novo",
    OrderStatus.NEGOTIATING: "Em Negociação",
    OrderStatus.ACCEPTED: "Aceito",
    OrderStatus.WAITING: "Aguardando Insumos",
    OrderStatus.PRODUCTION: "Em Produção",
    OrderStatus.READY_SEND: "Pronto p/ Envio",
    OrderStatus.FINALIZED: "Finalizado",
    OrderStatus.REJECTED: "Recusado",
    OrderStatus.CANCELLED: "Cancelado",
}

_SHARED_TO_CANONICAL: Dict[ExternalStatus, OrderStatus] = {
    ExternalStatus.LANCADO_PELA_MARCA: OrderStatus.NEW,
    ExternalStatus.DISPONIVEL_PARA_OUTRAS: OrderStatus.NEW,
    ExternalStatus.EM_NEGOCIACAO: OrderStatus.NEGOTIATING,
    ExternalStatus.ACEITO_PELA_FACCAO: OrderStatus.ACCEPTED,
    ExternalStatus.EM_TRANSITO_PARA_FACCAO: OrderStatus.WAITING,
    ExternalStatus.EM_PREPARACAO_ENTRADA_FACCAO: OrderStatus.WAITING,
    ExternalStatus.FILA_DE_PRODUCAO: OrderStatus.PRODUCTION,
    ExternalStatus.EM_PRODUCAO: OrderStatus.PRODUCTION,
    ExternalStatus.PRONTO: OrderStatus.READY_SEND,
    ExternalStatus.EM_TRANSITO_PARA_MARCA: OrderStatus.READY_SEND,
    # quality review, rework and payment happen after the goods left the workshop
    ExternalStatus.EM_REVISAO: OrderStatus.READY_SEND,
    ExternalStatus.PARCIALMENTE_APROVADO: OrderStatus.READY_SEND,
    ExternalStatus.REPROVADO: OrderStatus.READY_SEND,
    ExternalStatus.AGUARDANDO_RETRABALHO: OrderStatus.READY_SEND,
    ExternalStatus.EM_PROCESSO_PAGAMENTO: OrderStatus.READY_SEND,
    ExternalStatus.FINALIZADO: OrderStatus.FINALIZED,
    ExternalStatus.RECUSADO_PELA_FACCAO: OrderStatus.REJECTED,
    ExternalStatus.CANCELADO: OrderStatus.CANCELLED,
}

# The workshop only sees "waiting for materials" while the brand prepares the
# shipment; for the brand that preparation is still its own accepted work.
TO_CANONICAL: Final[Dict[Role, Dict[ExternalStatus, OrderStatus]]] = {
    Role.SUPPLIER: {
        **_SHARED_TO_CANONICAL,
        ExternalStatus.EM_PREPARACAO_SAIDA_MARCA: OrderStatus.WAITING,
    },
    Role.BRAND: {
        **_SHARED_TO_CANONICAL,
        ExternalStatus.EM_PREPARACAO_SAIDA_MARCA: OrderStatus.ACCEPTED,
    },
}

# Exact reverse mapping for statuses a transition request can originate.
_WRITABLE_TO_EXTERNAL: Dict[OrderStatus, ExternalStatus] = {
    OrderStatus.NEW: ExternalStatus.LANCADO_PELA_MARCA,
    OrderStatus.NEGOTIATING: ExternalStatus.EM_NEGOCIACAO,
    OrderStatus.ACCEPTED: ExternalStatus.ACEITO_PELA_FACCAO,
    OrderStatus.PRODUCTION: ExternalStatus.EM_PRODUCAO,
    OrderStatus.READY_SEND: ExternalStatus.PRONTO,
    OrderStatus.FINALIZED: ExternalStatus.FINALIZADO,
    OrderStatus.REJECTED: ExternalStatus.RECUSADO_PELA_FACCAO,
    OrderStatus.CANCELLED: ExternalStatus.CANCELADO,
}

TO_EXTERNAL: Final[Dict[Role, Dict[OrderStatus, ExternalStatus]]] = {
    Role.SUPPLIER: dict(_WRITABLE_TO_EXTERNAL),
    Role.BRAND: dict(_WRITABLE_TO_EXTERNAL),
}

# Disambiguation rule for collapsed read-only projections: the most advanced
# collapsed stage stands in for the whole bucket.
READ_ONLY_REPRESENTATIVE: Final[Dict[Role, Dict[OrderStatus, ExternalStatus]]] = {
    Role.SUPPLIER: {OrderStatus.WAITING: ExternalStatus.EM_PREPARACAO_ENTRADA_FACCAO},
    Role.BRAND: {OrderStatus.WAITING: ExternalStatus.EM_PREPARACAO_ENTRADA_FACCAO},
}


def canonical_status_order() -> List[OrderStatus]:
    return list(OrderStatus)


def canonical_status_rank_map() -> Dict[OrderStatus, int]:
    return {status: idx for idx, status in enumerate(OrderStatus)}


def status_label(status: OrderStatus) -> str:
    return STATUS_LABELS.get(OrderStatus(status), str(status))


def is_terminal(status: OrderStatus) -> bool:
    return OrderStatus(status) in TERMINAL_STATUSES


def reachable_statuses(role: Role) -> FrozenSet[OrderStatus]:
    """Every canonical status the role can observe coming from the remote service."""
    return frozenset(TO_CANONICAL[Role(role)].values()) | {DEFAULT_CANONICAL_STATUS}


def writable_statuses(role: Role) -> FrozenSet[OrderStatus]:
    return frozenset(TO_EXTERNAL[Role(role)])


def is_writable(status: OrderStatus, role: Role) -> bool:
    return OrderStatus(status) in TO_EXTERNAL[Role(role)]


def _normalize_external_token(value: object) -> str:
    txt = str(value or "").strip()
    if not txt:
        return ""
    txt = unicodedata.normalize("NFKD", txt)
    txt = "".join(ch for ch in txt if not unicodedata.combining(ch))
    txt = re.sub(r"[\s\-]+", "_", txt)
    return txt.upper()


def parse_external_status(value: Union[ExternalStatus, str, None]) -> ExternalStatus | None:
    if isinstance(value, ExternalStatus):
        return value
    token = _normalize_external_token(value)
    if not token:
        return None
    try:
        return ExternalStatus(token)
    except ValueError:
        return None


def to_canonical(external: Union[ExternalStatus, str, None], role: Role) -> OrderStatus:
    """
    Translate a remote status into the canonical vocabulary for `role`.

    The remote vocabulary evolves on its own schedule, so unknown values never
    raise: they degrade to NEW and leave a warning in the log.
    """
    parsed = parse_external_status(external)
    if parsed is None:
        LOGGER.warning(
            "Unrecognized external order status %r for role %s; treating as %s",
            external,
            Role(role).value,
            DEFAULT_CANONICAL_STATUS.value,
        )
        return DEFAULT_CANONICAL_STATUS
    return TO_CANONICAL[Role(role)][parsed]


def to_external(status: OrderStatus, role: Role, *, strict: bool = False) -> ExternalStatus:
    """
    Translate a canonical status back into the remote vocabulary.

    Exact for writable statuses. Collapsed read-only statuses resolve through
    READ_ONLY_REPRESENTATIVE, or raise ReadOnlyStatusError when `strict`.
    """
    role = Role(role)
    status = OrderStatus(status)
    exact = TO_EXTERNAL[role].get(status)
    if exact is not None:
        return exact
    if strict:
        raise ReadOnlyStatusError(
            f"{status.value} is a read-only projection for {role.value} and cannot be sent "
            "to the order service"
        )
    representative = READ_ONLY_REPRESENTATIVE[role][status]
    LOGGER.debug(
        "Resolved read-only status %s for %s to representative %s",
        status.value,
        role.value,
        representative.value,
    )
    return representative
