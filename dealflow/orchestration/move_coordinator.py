"""Optimistic coordinator for interactive (drag-and-drop) deal moves.

A gesture walks IDLE -> PENDING -> RECONCILING -> COMMITTED | ROLLED_BACK.
The local board copy is updated before the server answers; the server's
answer always wins. Each gesture takes a per-deal token so that a late
answer for an older gesture cannot clobber a newer move of the same deal;
such an answer ends the older gesture as SUPERSEDED. A rollback returns the
card to the last stage the server confirmed, never to an unconfirmed guess.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from threading import Lock
from typing import Any

from dealflow.actions.deals import move_deal_to_stage
from dealflow.auth.identity import IdentityProvider
from dealflow.core.exceptions import NotFoundError, PersistenceError, ValidationError
from dealflow.core.logging import LogContext, log_extra
from dealflow.core.outcome import Outcome
from dealflow.models.enums import DealStatus
from dealflow.orchestration.state_machine import StateMachine
from dealflow.schemas.deals import PipelineBoardResponse
from dealflow.services.revalidation import ViewInvalidator

logger = logging.getLogger(__name__)

OPEN_ONLY_MESSAGE = "Only open deals can be moved."
MOVE_FAILED_MESSAGE = "Could not move deal."
MOVE_SUCCEEDED_MESSAGE = "Deal moved."


class MoveState(str, enum.Enum):
    IDLE = "idle"
    PENDING = "pending"
    RECONCILING = "reconciling"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"
    SUPERSEDED = "superseded"


MOVE_TRANSITIONS = StateMachine(
    {
        MoveState.IDLE.value: {MoveState.PENDING.value},
        MoveState.PENDING.value: {
            MoveState.RECONCILING.value,
            MoveState.ROLLED_BACK.value,
            MoveState.SUPERSEDED.value,
        },
        MoveState.RECONCILING.value: {
            MoveState.COMMITTED.value,
            MoveState.ROLLED_BACK.value,
            MoveState.SUPERSEDED.value,
        },
    }
)

Mover = Callable[[int, int], Outcome]
Notifier = Callable[[str, str], None]


@dataclass
class BoardDeal:
    """Transient local copy of a deal card."""

    id: int
    stage_id: int | None
    status: DealStatus = DealStatus.OPEN
    title: str = ""


@dataclass
class MoveGesture:
    deal_id: int
    token: int
    from_stage_id: int | None
    to_stage_id: int
    state: MoveState = MoveState.IDLE
    error: str | None = None

    def advance(self, target: MoveState) -> None:
        MOVE_TRANSITIONS.assert_transition(self.state.value, target.value)
        self.state = target

    @property
    def finished(self) -> bool:
        return MOVE_TRANSITIONS.is_terminal(self.state.value)

    @property
    def superseded(self) -> bool:
        return self.state is MoveState.SUPERSEDED


def _as_board_deal(item: Any) -> BoardDeal:
    if isinstance(item, BoardDeal):
        return item
    getter = item.get if isinstance(item, dict) else lambda key, default=None: getattr(item, key, default)
    return BoardDeal(
        id=int(getter("id")),
        stage_id=getter("stage_id"),
        status=DealStatus(getter("status", DealStatus.OPEN)),
        title=getter("title", "") or "",
    )


class OptimisticMoveCoordinator:
    """Applies moves locally, persists them through `mover` and reconciles."""

    def __init__(self, deals: Iterable[Any], mover: Mover, notifier: Notifier | None = None) -> None:
        self._mover = mover
        self._notifier = notifier
        self._tokens: dict[int, int] = {}
        self._latest: dict[int, MoveGesture] = {}
        self._deals: dict[int, BoardDeal] = {}
        # deal id -> (token of the confirming gesture, stage the server holds)
        self._confirmed: dict[int, tuple[int, int | None]] = {}
        self._lock = Lock()
        self._load(deals)

    def _load(self, deals: Iterable[Any]) -> None:
        self._deals = {deal.id: deal for deal in map(_as_board_deal, deals)}
        self._confirmed = {
            deal.id: (self._tokens.get(deal.id, 0), deal.stage_id)
            for deal in self._deals.values()
        }

    @classmethod
    def from_board(
        cls,
        identity: IdentityProvider,
        board: PipelineBoardResponse,
        notifier: Notifier | None = None,
        invalidator: ViewInvalidator | None = None,
    ) -> "OptimisticMoveCoordinator":
        """Coordinator over a loaded board that persists through the move action."""

        def mover(deal_id: int, stage_id: int) -> Outcome:
            return move_deal_to_stage(identity, deal_id, stage_id, invalidator=invalidator)

        return cls(board.deals, mover=mover, notifier=notifier)

    def deal(self, deal_id: int) -> BoardDeal:
        with self._lock:
            try:
                return self._deals[deal_id]
            except KeyError as exc:
                raise NotFoundError("Deal not found.") from exc

    def deals_in_stage(self, stage_id: int | None) -> list[BoardDeal]:
        with self._lock:
            return [deal for deal in self._deals.values() if deal.stage_id == stage_id]

    def latest_token(self, deal_id: int) -> int:
        with self._lock:
            return self._tokens.get(deal_id, 0)

    def replace(self, deals: Iterable[Any]) -> None:
        """Overwrite the local copy with a fresh authoritative listing."""
        with self._lock:
            self._load(deals)

    def begin(self, deal_id: int, stage_id: int) -> MoveGesture | None:
        """Guard and optimistically apply a move. Returns None for a same-stage drop."""
        with self._lock:
            deal = self._deals.get(deal_id)
            if deal is None:
                raise NotFoundError("Deal not found.")
            if deal.stage_id == stage_id:
                return None
            blocked = DealStatus(deal.status).is_closed
            if not blocked:
                gesture = self._apply_locally(deal, stage_id)
        if blocked:
            self._notify("error", OPEN_ONLY_MESSAGE)
            raise ValidationError(OPEN_ONLY_MESSAGE)
        logger.debug(
            "move.pending",
            extra=log_extra("move.pending", LogContext(deal_id=deal_id, stage_id=stage_id), token=gesture.token),
        )
        return gesture

    def _apply_locally(self, deal: BoardDeal, stage_id: int) -> MoveGesture:
        token = self._tokens.get(deal.id, 0) + 1
        self._tokens[deal.id] = token
        gesture = MoveGesture(deal_id=deal.id, token=token, from_stage_id=deal.stage_id, to_stage_id=stage_id)
        gesture.advance(MoveState.PENDING)
        self._latest[deal.id] = gesture
        deal.stage_id = stage_id
        return gesture

    def _mark_sent(self, gesture: MoveGesture) -> None:
        with self._lock:
            gesture.advance(MoveState.RECONCILING)

    def dispatch(self, gesture: MoveGesture) -> MoveGesture:
        """Send the move to the engine synchronously and reconcile."""
        self._mark_sent(gesture)
        return self.reconcile(gesture, self._call_mover(gesture))

    def _call_mover(self, gesture: MoveGesture) -> Outcome:
        try:
            return self._mover(gesture.deal_id, gesture.to_stage_id)
        except Exception as exc:
            # The mover is caller supplied; a raise counts as a failed move.
            logger.exception(
                "move.mover_raised",
                extra=log_extra("move.mover_raised", LogContext(deal_id=gesture.deal_id)),
            )
            return Outcome.fail(PersistenceError(repr(exc)))

    def _confirm(self, gesture: MoveGesture, stage_id: int | None) -> bool:
        """Record a server-acknowledged stage unless a newer gesture already confirmed one."""
        confirmed_token, _ = self._confirmed.get(gesture.deal_id, (0, None))
        if gesture.token < confirmed_token:
            return False
        self._confirmed[gesture.deal_id] = (gesture.token, stage_id)
        return True

    def _confirmed_stage(self, gesture: MoveGesture) -> int | None:
        _, stage_id = self._confirmed.get(gesture.deal_id, (0, gesture.from_stage_id))
        return stage_id

    def reconcile(self, gesture: MoveGesture, outcome: Outcome) -> MoveGesture:
        with self._lock:
            deal = self._deals.get(gesture.deal_id)
            server_stage = getattr(outcome.data, "stage_id", gesture.to_stage_id)

            if self._tokens.get(gesture.deal_id) != gesture.token:
                gesture.advance(MoveState.SUPERSEDED)
                # A late success still tells us where the server holds the deal.
                if outcome.success and self._confirm(gesture, server_stage):
                    latest = self._latest.get(gesture.deal_id)
                    if deal is not None and latest is not None and latest.state is MoveState.ROLLED_BACK:
                        deal.stage_id = server_stage
                logger.debug(
                    "move.stale_ignored",
                    extra=log_extra("move.stale_ignored", LogContext(deal_id=gesture.deal_id), token=gesture.token),
                )
                return gesture

            if gesture.state is MoveState.PENDING:
                gesture.advance(MoveState.RECONCILING)
            if outcome.success:
                gesture.advance(MoveState.COMMITTED)
                self._confirm(gesture, server_stage)
                server_status = getattr(outcome.data, "status", None)
                if deal is not None:
                    deal.stage_id = server_stage
                    if server_status is not None:
                        deal.status = DealStatus(server_status)
                notice = ("success", MOVE_SUCCEEDED_MESSAGE)
            else:
                gesture.advance(MoveState.ROLLED_BACK)
                gesture.error = outcome.message or MOVE_FAILED_MESSAGE
                if deal is not None:
                    deal.stage_id = self._confirmed_stage(gesture)
                notice = ("error", gesture.error)
        self._notify(*notice)

        logger.info(
            f"move.{gesture.state.value}",
            extra=log_extra(
                f"move.{gesture.state.value}",
                LogContext(deal_id=gesture.deal_id, stage_id=gesture.to_stage_id),
                token=gesture.token,
            ),
        )
        return gesture

    async def move(self, deal_id: int, stage_id: int) -> MoveGesture | None:
        """Full gesture: optimistic apply, engine call in a worker thread, reconcile."""
        gesture = self.begin(deal_id, stage_id)
        if gesture is None:
            return None
        self._mark_sent(gesture)
        outcome = await asyncio.to_thread(self._call_mover, gesture)
        return self.reconcile(gesture, outcome)

    def _notify(self, level: str, message: str) -> None:
        if self._notifier is None:
            return
        try:
            self._notifier(level, message)
        except Exception:
            logger.warning("move.notify_failed", exc_info=True, extra={"event": "move.notify_failed"})
