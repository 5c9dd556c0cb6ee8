"""
Transition validation for order actions.

The validator is a pure lookup: `(status, action)` selects a rule, the rule
names the next status and the roles allowed to trigger it. It performs no I/O
and returns the decision plus the side effects the caller must apply.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Tuple, Union

from garment_order_board.status_semantics import OrderStatus, Role, is_terminal
from garment_order_board.timeline import STEP_RECEIPT


class Action(str, Enum):
    ACCEPT = "ACCEPT"
    NEGOTIATE = "NEGOTIATE"
    REJECT = "REJECT"
    ADVANCE = "ADVANCE"
    CONFIRM_RECEIPT = "CONFIRM_RECEIPT"


class RejectionReason(str, Enum):
    INVALID_ACTION_FOR_STATUS = "INVALID_ACTION_FOR_STATUS"
    INVALID_ACTION_FOR_ROLE = "INVALID_ACTION_FOR_ROLE"


REASON_MESSAGES: Dict[RejectionReason, str] = {
    RejectionReason.INVALID_ACTION_FOR_STATUS: "Esta ação não está disponível no status atual do pedido.",
    RejectionReason.INVALID_ACTION_FOR_ROLE: "Seu perfil não tem permissão para executar esta ação.",
}


@dataclass(frozen=True)
class TransitionRule:
    next_status: OrderStatus
    roles: FrozenSet[Role]
    milestones: Tuple[str, ...] = ()


_SUPPLIER = frozenset({Role.SUPPLIER})
_BOTH = frozenset({Role.SUPPLIER, Role.BRAND})

TRANSITIONS: Dict[Tuple[OrderStatus, Action], TransitionRule] = {
    (OrderStatus.NEW, Action.ACCEPT): TransitionRule(OrderStatus.ACCEPTED, _SUPPLIER),
    (OrderStatus.NEW, Action.NEGOTIATE): TransitionRule(OrderStatus.NEGOTIATING, _BOTH),
    (OrderStatus.NEW, Action.REJECT): TransitionRule(OrderStatus.REJECTED, _SUPPLIER),
    (OrderStatus.NEGOTIATING, Action.ACCEPT): TransitionRule(OrderStatus.ACCEPTED, _SUPPLIER),
    (OrderStatus.NEGOTIATING, Action.NEGOTIATE): TransitionRule(OrderStatus.NEGOTIATING, _BOTH),
    (OrderStatus.NEGOTIATING, Action.REJECT): TransitionRule(OrderStatus.REJECTED, _SUPPLIER),
    # ADVANCE is spelled out per source status; no other status may advance.
    (OrderStatus.PRODUCTION, Action.ADVANCE): TransitionRule(OrderStatus.READY_SEND, _SUPPLIER),
    (OrderStatus.READY_SEND, Action.ADVANCE): TransitionRule(OrderStatus.FINALIZED, _BOTH),
    (OrderStatus.WAITING, Action.CONFIRM_RECEIPT): TransitionRule(
        OrderStatus.PRODUCTION, _SUPPLIER, milestones=(STEP_RECEIPT,)
    ),
    (OrderStatus.PRODUCTION, Action.CONFIRM_RECEIPT): TransitionRule(
        OrderStatus.PRODUCTION, _SUPPLIER, milestones=(STEP_RECEIPT,)
    ),
}


@dataclass(frozen=True)
class TransitionDecision:
    previous_status: OrderStatus
    next_status: OrderStatus
    action: Action
    milestones: Tuple[str, ...] = ()
    changed: bool = True

    @property
    def status_changed(self) -> bool:
        return self.previous_status != self.next_status


@dataclass(frozen=True)
class TransitionRejected:
    reason: RejectionReason
    status: OrderStatus
    action: Action
    role: Role
    message: str = field(default="")


TransitionResult = Union[TransitionDecision, TransitionRejected]


@dataclass(frozen=True)
class ActionConfirmation:
    title: str
    message: str
    confirm_label: str


ACTION_CONFIRMATIONS: Dict[Action, ActionConfirmation] = {
    Action.ACCEPT: ActionConfirmation(
        "Aceitar Pedido?",
        "Certifique-se de que tem capacidade para atender o prazo antes de aceitar.",
        "Sim, Aceitar",
    ),
    Action.NEGOTIATE: ActionConfirmation(
        "Negociar Condições?",
        'O status mudará para "Em Negociação" e a outra parte será avisada.',
        "Confirmar Negociação",
    ),
    Action.REJECT: ActionConfirmation(
        "Recusar Pedido?",
        "O pedido será recusado e arquivado. Essa ação não pode ser desfeita.",
        "Sim, Recusar",
    ),
    Action.ADVANCE: ActionConfirmation(
        "Avançar Etapa?",
        "Confirma que a etapa atual foi concluída e o pedido está pronto para o próximo passo?",
        "Sim, Avançar",
    ),
    Action.CONFIRM_RECEIPT: ActionConfirmation(
        "Confirmar Recebimento?",
        "Confirma que recebeu todos os insumos e materiais necessários para iniciar?",
        "Sim, Recebi",
    ),
}


def _reject(
    reason: RejectionReason, status: OrderStatus, action: Action, role: Role
) -> TransitionRejected:
    return TransitionRejected(
        reason=reason,
        status=status,
        action=action,
        role=role,
        message=REASON_MESSAGES[reason],
    )


def validate_transition(
    status: OrderStatus,
    action: Action,
    role: Role,
    *,
    receipt_confirmed: bool = False,
) -> TransitionResult:
    """
    Decide whether `role` may apply `action` to an order in `status`.

    The status check runs first: an action with no rule for the status is
    INVALID_ACTION_FOR_STATUS whatever the role. Repeating an action whose
    effect is already in place returns a decision with `changed=False`.
    """
    status = OrderStatus(status)
    action = Action(action)
    role = Role(role)

    rule = TRANSITIONS.get((status, action))
    if rule is None:
        return _reject(RejectionReason.INVALID_ACTION_FOR_STATUS, status, action, role)
    if role not in rule.roles:
        return _reject(RejectionReason.INVALID_ACTION_FOR_ROLE, status, action, role)

    milestones = rule.milestones
    if action is Action.CONFIRM_RECEIPT and receipt_confirmed:
        milestones = ()

    changed = rule.next_status != status or bool(milestones)
    return TransitionDecision(
        previous_status=status,
        next_status=rule.next_status,
        action=action,
        milestones=milestones,
        changed=changed,
    )


def available_actions(
    status: OrderStatus, role: Role, *, receipt_confirmed: bool = False
) -> List[Action]:
    """Actions that would validate and actually change something, in declaration order."""
    out: List[Action] = []
    for action in Action:
        result = validate_transition(status, action, role, receipt_confirmed=receipt_confirmed)
        if isinstance(result, TransitionDecision) and result.changed:
            out.append(action)
    return out


# Who the order is waiting on when the viewing role has nothing to do.
_WAITING_FOR: Dict[OrderStatus, Tuple[Role, str]] = {
    OrderStatus.NEW: (Role.SUPPLIER, "Aguardando a Facção aceitar o pedido"),
    OrderStatus.NEGOTIATING: (Role.SUPPLIER, "Aguardando a Facção concluir a negociação"),
    OrderStatus.ACCEPTED: (Role.BRAND, "Aguardando a Marca preparar os insumos"),
    OrderStatus.WAITING: (Role.SUPPLIER, "Aguardando a Facção confirmar o recebimento"),
    OrderStatus.PRODUCTION: (Role.SUPPLIER, "Facção em produção"),
    OrderStatus.READY_SEND: (Role.SUPPLIER, "Aguardando despacho para a Marca"),
}


def waiting_for(
    status: OrderStatus, role: Role, *, receipt_confirmed: bool = False
) -> Optional[Tuple[Role, str]]:
    status = OrderStatus(status)
    if is_terminal(status):
        return None
    if available_actions(status, role, receipt_confirmed=receipt_confirmed):
        return None
    return _WAITING_FOR.get(status)
