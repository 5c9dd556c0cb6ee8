from __future__ import annotations

import logging
from typing import Any

import pytest

from garment_order_board.errors import ReadOnlyStatusError
from garment_order_board.status_semantics import (
    DEFAULT_CANONICAL_STATUS,
    ExternalStatus,
    OrderStatus,
    Role,
    canonical_status_rank_map,
    is_terminal,
    is_writable,
    reachable_statuses,
    status_label,
    to_canonical,
    to_external,
    writable_statuses,
)


@pytest.mark.parametrize("role", list(Role))
def test_writable_statuses_round_trip_through_external_vocabulary(role: Role) -> None:
    for status in writable_statuses(role):
        assert to_canonical(to_external(status, role), role) == status


@pytest.mark.parametrize("role", list(Role))
def test_every_external_status_maps_to_a_reachable_canonical_status(role: Role) -> None:
    reachable = reachable_statuses(role)
    for external in ExternalStatus:
        assert to_canonical(external, role) in reachable


@pytest.mark.parametrize(
    ("role", "expected"),
    [
        (Role.SUPPLIER, OrderStatus.WAITING),
        (Role.BRAND, OrderStatus.ACCEPTED),
    ],
)
def test_brand_shipment_preparation_depends_on_role(role: Role, expected: OrderStatus) -> None:
    assert to_canonical(ExternalStatus.EM_PREPARACAO_SAIDA_MARCA, role) == expected


@pytest.mark.parametrize("role", list(Role))
@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("FILA_DE_PRODUCAO", OrderStatus.PRODUCTION),
        ("EM_REVISAO", OrderStatus.READY_SEND),
        ("PARCIALMENTE_APROVADO", OrderStatus.READY_SEND),
        ("REPROVADO", OrderStatus.READY_SEND),
        ("AGUARDANDO_RETRABALHO", OrderStatus.READY_SEND),
        ("EM_PROCESSO_PAGAMENTO", OrderStatus.READY_SEND),
    ],
)
def test_queue_review_and_payment_statuses_are_recognized(
    raw: str, expected: OrderStatus, role: Role, caplog: Any
) -> None:
    caplog.set_level(logging.WARNING, logger="garment_order_board.status_semantics")

    assert to_canonical(raw, role) == expected
    assert not caplog.records
    # collapsed stages are never sent back to the service
    assert to_external(expected, role, strict=True) != ExternalStatus(raw)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("EM_PRODUCAO", OrderStatus.PRODUCTION),
        ("  em producao ", OrderStatus.PRODUCTION),
        ("em-negociacao", OrderStatus.NEGOTIATING),
        ("Em Produção", OrderStatus.PRODUCTION),
        ("EM_TRANSITO_PARA_MARCA", OrderStatus.READY_SEND),
        ("DISPONIVEL_PARA_OUTRAS", OrderStatus.NEW),
    ],
)
def test_to_canonical_normalizes_raw_tokens(raw: str, expected: OrderStatus) -> None:
    assert to_canonical(raw, Role.SUPPLIER) == expected


@pytest.mark.parametrize("raw", ["AGUARDANDO_APROVACAO", "", None, "???"])
def test_unknown_external_status_defaults_to_new_and_warns(raw: Any, caplog: Any) -> None:
    with caplog.at_level(logging.WARNING, logger="garment_order_board.status_semantics"):
        out = to_canonical(raw, Role.BRAND)

    assert out == DEFAULT_CANONICAL_STATUS == OrderStatus.NEW
    assert any("Unrecognized external order status" in r.getMessage() for r in caplog.records)


def test_waiting_is_read_only_and_resolves_to_most_advanced_collapsed_stage() -> None:
    assert not is_writable(OrderStatus.WAITING, Role.SUPPLIER)
    assert to_external(OrderStatus.WAITING, Role.SUPPLIER) == ExternalStatus.EM_PREPARACAO_ENTRADA_FACCAO
    with pytest.raises(ReadOnlyStatusError):
        to_external(OrderStatus.WAITING, Role.SUPPLIER, strict=True)


def test_strict_to_external_is_exact_for_writable_statuses() -> None:
    assert to_external(OrderStatus.READY_SEND, Role.BRAND, strict=True) == ExternalStatus.PRONTO
    assert to_external(OrderStatus.REJECTED, Role.SUPPLIER, strict=True) == ExternalStatus.RECUSADO_PELA_FACCAO


def test_terminal_statuses_and_labels() -> None:
    assert is_terminal(OrderStatus.REJECTED)
    assert is_terminal(OrderStatus.FINALIZED)
    assert is_terminal(OrderStatus.CANCELLED)
    assert not is_terminal(OrderStatus.READY_SEND)
    assert status_label(OrderStatus.NEGOTIATING) == "Em Negociação"


def test_canonical_rank_follows_flow_order() -> None:
    rank = canonical_status_rank_map()
    assert rank[OrderStatus.NEW] < rank[OrderStatus.ACCEPTED] < rank[OrderStatus.PRODUCTION]
    assert rank[OrderStatus.READY_SEND] < rank[OrderStatus.FINALIZED]
