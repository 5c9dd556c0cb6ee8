"""
Per-role dashboard orchestration.

`DashboardController` owns the order list for one role, the ephemeral view
state (search, filters, selection, sort, pending confirmation) and the
derived views the UI renders. Transitions are applied optimistically and
persisted on a background executor; failures stay visible as "sync pending"
until a retry succeeds.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from garment_order_board.columns import project_columns
from garment_order_board.kpis import compute_kpis
from garment_order_board.mapper import order_from_external
from garment_order_board.order_service import OrderService
from garment_order_board.query import (
    SORT_DIRECTIONS,
    SORT_KEYS,
    FilterOptions,
    FilterState,
    apply_filters,
    filter_options,
    sort_orders,
)
from garment_order_board.schema import Order, PendingReview
from garment_order_board.status_semantics import (
    ExternalStatus,
    OrderStatus,
    Role,
    canonical_status_rank_map,
    is_terminal,
    to_canonical,
    to_external,
)
from garment_order_board.timeline import STEP_RECEIPT, derive_timeline, is_milestone_complete, mark_milestone
from garment_order_board.transitions import (
    ACTION_CONFIRMATIONS,
    REASON_MESSAGES,
    Action,
    ActionConfirmation,
    RejectionReason,
    TransitionDecision,
    TransitionRejected,
    TransitionResult,
    available_actions,
    validate_transition,
    waiting_for,
)

LOGGER = logging.getLogger(__name__)

VIEW_MODES = ("kanban", "list")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class PendingConfirmation:
    order_id: str
    action: Action
    seen_status: OrderStatus


@dataclass(frozen=True)
class ViewState:
    search: str = ""
    filters: FilterState = field(default_factory=FilterState)
    selected_order_id: Optional[str] = None
    view_mode: str = "kanban"
    sort_key: Optional[str] = None
    sort_direction: str = "asc"
    pending_confirmation: Optional[PendingConfirmation] = None


class DashboardController:
    def __init__(
        self,
        role: Role,
        service: OrderService,
        *,
        clock: Optional[Callable[[], datetime]] = None,
        executor: Optional[Executor] = None,
    ) -> None:
        self.role = Role(role)
        self._service = service
        self._clock = clock or _utcnow
        self._owns_executor = executor is None
        self._executor: Executor = executor or ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="order-sync"
        )

        self._orders: List[Order] = []
        self._pending_reviews: List[PendingReview] = []
        self._view = ViewState()
        self._revision = 0
        self._memo: Dict[str, Tuple[Tuple[int, date], Any]] = {}

        self._sync_lock = threading.Lock()
        self._pending_sync: Dict[str, ExternalStatus] = {}
        self._sync_errors: Dict[str, str] = {}

    # -------------------------
    # Loading
    # -------------------------
    def load(self) -> Tuple[bool, str]:
        try:
            records = self._service.fetch_orders(self.role)
            orders = [order_from_external(r, self.role) for r in records]
        except Exception as e:
            LOGGER.exception("Failed to load %s orders", self.role.value)
            self._set_orders([])
            return False, f"Não foi possível carregar os pedidos: {e}"

        try:
            self._pending_reviews = list(self._service.fetch_pending_reviews())
        except Exception as e:
            LOGGER.warning("Failed to load pending reviews: %s", e)
            self._pending_reviews = []

        self._set_orders(self._reconcile_pending(orders))
        LOGGER.info("Loaded %d %s orders", len(orders), self.role.value)
        return True, f"{len(orders)} pedidos carregados."

    def _reconcile_pending(self, orders: List[Order]) -> List[Order]:
        """
        Keep unacknowledged local changes visible over a freshly loaded copy.

        A pending change the server already reflects (or has moved past) is
        dropped from the sync bookkeeping; otherwise the optimistic status is
        re-applied so a later retry pushes what the board shows.
        """
        with self._sync_lock:
            pending = dict(self._pending_sync)
        if not pending:
            return orders

        rank = canonical_status_rank_map()
        out: List[Order] = []
        for order in orders:
            external = pending.get(order.id)
            if external is None:
                out.append(order)
                continue
            target = to_canonical(external, self.role)
            if is_terminal(order.status) or rank[order.status] >= rank[target]:
                with self._sync_lock:
                    if self._pending_sync.get(order.id) == external:
                        del self._pending_sync[order.id]
                        self._sync_errors.pop(order.id, None)
                out.append(order)
                continue
            LOGGER.info(
                "Order %s still pending sync as %s; keeping local %s over server %s",
                order.display_id,
                external.value,
                target.value,
                order.status.value,
            )
            timeline = derive_timeline(target, order.timeline, completed_at=self._clock())
            out.append(order.model_copy(update={"status": target, "timeline": timeline}))
        return out

    def _set_orders(self, orders: List[Order]) -> None:
        self._orders = list(orders)
        self._touch()

    def _touch(self) -> None:
        self._revision += 1

    def today(self) -> date:
        return self._clock().date()

    @property
    def revision(self) -> int:
        return self._revision

    @property
    def orders(self) -> List[Order]:
        return list(self._orders)

    @property
    def pending_reviews(self) -> List[PendingReview]:
        return list(self._pending_reviews)

    def get_order(self, order_id: str) -> Optional[Order]:
        return next((o for o in self._orders if o.id == order_id), None)

    # -------------------------
    # View state
    # -------------------------
    @property
    def view(self) -> ViewState:
        return self._view

    def _set_view(self, **changes: Any) -> None:
        self._view = replace(self._view, **changes)
        self._touch()

    def set_search(self, text: str) -> None:
        self._set_view(search=str(text or ""))

    def set_filters(self, fs: FilterState) -> None:
        self._set_view(filters=fs)

    def clear_filters(self) -> None:
        self._set_view(search="", filters=FilterState())

    def set_sort(self, key: Optional[str], direction: str = "asc") -> None:
        if key is not None and key not in SORT_KEYS:
            raise ValueError(f"Unknown sort key: {key!r}")
        if direction not in SORT_DIRECTIONS:
            raise ValueError(f"Unknown sort direction: {direction!r}")
        self._set_view(sort_key=key, sort_direction=direction)

    def set_view_mode(self, mode: str) -> None:
        if mode not in VIEW_MODES:
            raise ValueError(f"Unknown view mode: {mode!r}")
        self._set_view(view_mode=mode)

    def select_order(self, order_id: Optional[str]) -> None:
        self._set_view(selected_order_id=order_id, pending_confirmation=None)

    def dismiss_detail(self) -> None:
        # in-flight persistence keeps running; only the panel closes
        self._set_view(selected_order_id=None, pending_confirmation=None)

    def begin_confirmation(self, order_id: str, action: Action) -> ActionConfirmation:
        order = self._require_order(order_id)
        action = Action(action)
        self._set_view(
            pending_confirmation=PendingConfirmation(order_id, action, order.status)
        )
        return ACTION_CONFIRMATIONS[action]

    def cancel_confirmation(self) -> None:
        self._set_view(pending_confirmation=None)

    def confirm(self) -> Optional[TransitionResult]:
        pending = self._view.pending_confirmation
        if pending is None:
            return None
        self._set_view(pending_confirmation=None)
        return self.request_action(pending.order_id, pending.action, seen_status=pending.seen_status)

    # -------------------------
    # Derived views
    # -------------------------
    def _memoized(self, name: str, compute: Callable[[], Any]) -> Any:
        # date-bucketed views also expire when the day changes
        key = (self._revision, self.today())
        hit = self._memo.get(name)
        if hit is not None and hit[0] == key:
            return hit[1]
        value = compute()
        self._memo[name] = (key, value)
        return value

    def _effective_filters(self) -> FilterState:
        return replace(self._view.filters, search=self._view.search)

    def _compute_filtered_sorted(self) -> List[Order]:
        out = apply_filters(
            self._orders, self._effective_filters(), role=self.role, reference=self._clock()
        )
        if self._view.sort_key:
            out = sort_orders(out, self._view.sort_key, self._view.sort_direction)  # type: ignore[arg-type]
        return out

    @property
    def filtered_sorted_orders(self) -> List[Order]:
        return list(self._memoized("filtered_sorted", self._compute_filtered_sorted))

    @property
    def columns(self) -> Dict[str, List[Order]]:
        grouped = self._memoized(
            "columns", lambda: project_columns(self.filtered_sorted_orders, self.role)
        )
        return {col_id: list(orders) for col_id, orders in grouped.items()}

    @property
    def selected_order(self) -> Optional[Order]:
        order_id = self._view.selected_order_id
        if not order_id:
            return None
        return self.get_order(order_id)

    @property
    def kpis(self) -> Dict[str, Any]:
        return self._memoized(
            "kpis", lambda: compute_kpis(self._orders, self.role, reference=self._clock())
        )

    @property
    def filter_options(self) -> FilterOptions:
        return self._memoized("filter_options", lambda: filter_options(self._orders))

    def actions_for(self, order: Order) -> List[Action]:
        return available_actions(
            order.status,
            self.role,
            receipt_confirmed=is_milestone_complete(order.timeline, STEP_RECEIPT),
        )

    def waiting_label(self, order: Order) -> Optional[str]:
        hit = waiting_for(
            order.status,
            self.role,
            receipt_confirmed=is_milestone_complete(order.timeline, STEP_RECEIPT),
        )
        return hit[1] if hit else None

    # -------------------------
    # Transitions
    # -------------------------
    def _require_order(self, order_id: str) -> Order:
        order = self.get_order(order_id)
        if order is None:
            raise KeyError(f"Unknown order id: {order_id!r}")
        return order

    def request_action(
        self,
        order_id: str,
        action: Action,
        *,
        seen_status: Optional[OrderStatus] = None,
    ) -> TransitionResult:
        """
        Validate and apply `action` on the order.

        `seen_status` is the status the user saw when triggering the action;
        if the order has moved since, the request is rejected as
        INVALID_ACTION_FOR_STATUS instead of being applied to the new status.
        """
        order = self._require_order(order_id)
        action = Action(action)

        if seen_status is not None and OrderStatus(seen_status) != order.status:
            LOGGER.info(
                "Ignoring %s on order %s: status moved from %s to %s",
                action.value,
                order.display_id,
                OrderStatus(seen_status).value,
                order.status.value,
            )
            reason = RejectionReason.INVALID_ACTION_FOR_STATUS
            return TransitionRejected(
                reason=reason,
                status=order.status,
                action=action,
                role=self.role,
                message=REASON_MESSAGES[reason],
            )

        result = validate_transition(
            order.status,
            action,
            self.role,
            receipt_confirmed=is_milestone_complete(order.timeline, STEP_RECEIPT),
        )
        if isinstance(result, TransitionRejected):
            LOGGER.info(
                "Rejected %s on order %s (%s): %s",
                action.value,
                order.display_id,
                order.status.value,
                result.reason.value,
            )
            return result
        if not result.changed:
            return result

        self._apply(order, result)
        if result.status_changed:
            self._enqueue_sync(order.id, to_external(result.next_status, self.role, strict=True))
        return result

    def _apply(self, order: Order, decision: TransitionDecision) -> None:
        now = self._clock()
        timeline = derive_timeline(decision.next_status, order.timeline, completed_at=now)
        for step in decision.milestones:
            timeline = mark_milestone(timeline, step, at=now)
        updated = order.model_copy(update={"status": decision.next_status, "timeline": timeline})
        self._orders = [updated if o.id == order.id else o for o in self._orders]
        self._touch()
        LOGGER.info(
            "Order %s: %s -> %s via %s",
            order.display_id,
            decision.previous_status.value,
            decision.next_status.value,
            decision.action.value,
        )

    # -------------------------
    # Persistence / sync tracking
    # -------------------------
    def _enqueue_sync(self, order_id: str, external: ExternalStatus) -> None:
        with self._sync_lock:
            self._pending_sync[order_id] = external
            self._sync_errors.pop(order_id, None)
        self._executor.submit(self._persist, order_id, external)

    def _persist(self, order_id: str, external: ExternalStatus) -> None:
        try:
            self._service.request_status_change(order_id, external)
        except Exception as e:
            LOGGER.warning("Status change of order %s to %s failed: %s", order_id, external.value, e)
            with self._sync_lock:
                if self._pending_sync.get(order_id) == external:
                    self._sync_errors[order_id] = str(e) or type(e).__name__
            return

        with self._sync_lock:
            # a newer change for the same order stays pending until its own ack
            if self._pending_sync.get(order_id) == external:
                del self._pending_sync[order_id]
                self._sync_errors.pop(order_id, None)
        LOGGER.debug("Order %s synced as %s", order_id, external.value)

    @property
    def pending_sync(self) -> Dict[str, ExternalStatus]:
        with self._sync_lock:
            return dict(self._pending_sync)

    @property
    def sync_errors(self) -> Dict[str, str]:
        with self._sync_lock:
            return dict(self._sync_errors)

    def is_sync_pending(self, order_id: str) -> bool:
        with self._sync_lock:
            return order_id in self._pending_sync

    def retry_pending(self) -> int:
        """Re-submit every change whose last attempt failed. Returns how many were queued."""
        with self._sync_lock:
            failed = [(oid, self._pending_sync[oid]) for oid in self._sync_errors if oid in self._pending_sync]
            for oid, _ in failed:
                self._sync_errors.pop(oid, None)
        for oid, external in failed:
            self._executor.submit(self._persist, oid, external)
        return len(failed)

    def shutdown(self, wait: bool = True) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=wait)
