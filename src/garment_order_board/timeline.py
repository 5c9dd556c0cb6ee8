"""Happy-path milestone timeline derived from an order's canonical status."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, FrozenSet, List, Optional, Sequence, Tuple

from garment_order_board.schema import IconTag, TimelineEvent
from garment_order_board.status_semantics import OrderStatus

STEP_CREATED = "Pedido Criado"
STEP_ACCEPTED = "Aceite da Facção"
STEP_RECEIPT = "Recebimento na Facção"
STEP_PRODUCTION = "Em Produção"
STEP_READY = "Pronto p/ Envio"
STEP_DELIVERED = "Entrega / Finalização"


@dataclass(frozen=True)
class Milestone:
    step: str
    icon: IconTag
    reachable_from: FrozenSet[OrderStatus]


_FROM_ACCEPTED = frozenset(
    {
        OrderStatus.ACCEPTED,
        OrderStatus.WAITING,
        OrderStatus.PRODUCTION,
        OrderStatus.READY_SEND,
        OrderStatus.FINALIZED,
    }
)
_FROM_PRODUCTION = frozenset({OrderStatus.PRODUCTION, OrderStatus.READY_SEND, OrderStatus.FINALIZED})
_FROM_READY = frozenset({OrderStatus.READY_SEND, OrderStatus.FINALIZED})

# Each set contains the sets of every later milestone: completion only grows
# along the forward flow. REJECTED/CANCELLED reach nothing beyond creation.
MILESTONES: Tuple[Milestone, ...] = (
    Milestone(STEP_CREATED, "check", frozenset(OrderStatus)),
    Milestone(STEP_ACCEPTED, "check", _FROM_ACCEPTED),
    Milestone(STEP_RECEIPT, "box", _FROM_PRODUCTION),
    Milestone(STEP_PRODUCTION, "scissors", _FROM_PRODUCTION),
    Milestone(STEP_READY, "box", _FROM_READY),
    Milestone(STEP_DELIVERED, "truck", frozenset({OrderStatus.FINALIZED})),
)

_MILESTONE_BY_STEP: Dict[str, Milestone] = {m.step: m for m in MILESTONES}


def milestone_names() -> List[str]:
    return [m.step for m in MILESTONES]


def _stored_by_step(stored: Optional[Sequence[TimelineEvent]]) -> Dict[str, TimelineEvent]:
    out: Dict[str, TimelineEvent] = {}
    for event in list(stored or []):
        prev = out.get(event.step)
        # duplicated steps in stored data: keep whichever says it is complete
        if prev is None or (event.completed and not prev.completed):
            out[event.step] = event
    return out


def derive_timeline(
    status: OrderStatus,
    stored: Optional[Sequence[TimelineEvent]] = None,
    *,
    completed_at: Optional[datetime] = None,
) -> List[TimelineEvent]:
    """
    Build the fixed milestone list for `status`.

    A milestone is complete when the status is in its reachable set or when the
    stored event already says so. Stored timestamps are carried as-is; only
    milestones completed by this call receive `completed_at`.
    """
    status = OrderStatus(status)
    previous = _stored_by_step(stored)

    timeline: List[TimelineEvent] = []
    for milestone in MILESTONES:
        prior = previous.get(milestone.step)
        was_complete = bool(prior is not None and prior.completed)
        complete = was_complete or status in milestone.reachable_from

        stamp: Optional[datetime] = None
        if was_complete and prior is not None:
            stamp = prior.completed_at
        elif complete:
            stamp = completed_at

        timeline.append(
            TimelineEvent(
                step=milestone.step,
                completed=complete,
                completed_at=stamp,
                icon=milestone.icon,
            )
        )
    return timeline


def mark_milestone(
    timeline: Sequence[TimelineEvent], step: str, *, at: Optional[datetime] = None
) -> List[TimelineEvent]:
    """Set `step` complete. Re-marking keeps the first timestamp and never duplicates the entry."""
    if step not in _MILESTONE_BY_STEP:
        raise KeyError(f"Unknown timeline milestone: {step!r}")

    out: List[TimelineEvent] = []
    found = False
    for event in timeline:
        if event.step != step:
            out.append(event)
            continue
        if found:
            continue
        found = True
        if event.completed:
            out.append(event)
        else:
            out.append(event.model_copy(update={"completed": True, "completed_at": at}))

    if not found:
        milestone = _MILESTONE_BY_STEP[step]
        out.append(TimelineEvent(step=step, completed=True, completed_at=at, icon=milestone.icon))
        order_idx = {name: i for i, name in enumerate(milestone_names())}
        out.sort(key=lambda e: order_idx.get(e.step, len(order_idx)))
    return out


def is_milestone_complete(timeline: Sequence[TimelineEvent], step: str) -> bool:
    return any(e.step == step and e.completed for e in timeline)
