# fooddispatch/lifecycle.py
"""
Order lifecycle transition table.

The whole lifecycle is one closed mapping ``(OrderStatus, OrderOperation) ->
Transition``. A missing key means the operation is illegal from that status.

    PLACED -> ACCEPTED -> PREPARING -> READY -> PICKED_UP -> DELIVERED
       \\          \\           \\          \\
        +----------+-----------+----------+--> CANCELLED

Cancellation carries a penalty tier: free before preparation started, the
configured fee once the restaurant has invested preparation work.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

from . import config
from .errors import InvalidTransition
from .models import OrderStatus


class OrderOperation(Enum):
    ACCEPT = "accept"
    START_PREPARATION = "start_preparation"
    MARK_READY = "mark_ready"
    PICK_UP = "pick_up"
    DELIVER = "deliver"
    CANCEL = "cancel"


class PenaltyTier(Enum):
    NONE = "NONE"
    PREPARATION_STARTED = "PREPARATION_STARTED"

    @property
    def amount(self) -> float:
        if self is PenaltyTier.PREPARATION_STARTED:
            return config.CANCELLATION_PENALTY
        return config.NO_PENALTY


@dataclass(frozen=True)
class Transition:
    source: OrderStatus
    operation: OrderOperation
    target: OrderStatus
    penalty_tier: Optional[PenaltyTier] = None

    @property
    def penalty(self) -> Optional[float]:
        return self.penalty_tier.amount if self.penalty_tier is not None else None


def _table(*transitions: Transition) -> Dict[Tuple[OrderStatus, OrderOperation], Transition]:
    return {(t.source, t.operation): t for t in transitions}


TRANSITIONS: Dict[Tuple[OrderStatus, OrderOperation], Transition] = _table(
    Transition(OrderStatus.PLACED, OrderOperation.ACCEPT, OrderStatus.ACCEPTED),
    Transition(OrderStatus.ACCEPTED, OrderOperation.START_PREPARATION, OrderStatus.PREPARING),
    Transition(OrderStatus.PREPARING, OrderOperation.MARK_READY, OrderStatus.READY),
    Transition(OrderStatus.READY, OrderOperation.PICK_UP, OrderStatus.PICKED_UP),
    Transition(OrderStatus.PICKED_UP, OrderOperation.DELIVER, OrderStatus.DELIVERED),
    Transition(OrderStatus.PLACED, OrderOperation.CANCEL, OrderStatus.CANCELLED, PenaltyTier.NONE),
    Transition(OrderStatus.ACCEPTED, OrderOperation.CANCEL, OrderStatus.CANCELLED, PenaltyTier.NONE),
    Transition(OrderStatus.PREPARING, OrderOperation.CANCEL, OrderStatus.CANCELLED,
               PenaltyTier.PREPARATION_STARTED),
    Transition(OrderStatus.READY, OrderOperation.CANCEL, OrderStatus.CANCELLED,
               PenaltyTier.PREPARATION_STARTED),
)
"""Every legal transition. Anything not listed raises InvalidTransition."""

FORWARD_PATH: Tuple[OrderStatus, ...] = (
    OrderStatus.PLACED,
    OrderStatus.ACCEPTED,
    OrderStatus.PREPARING,
    OrderStatus.READY,
    OrderStatus.PICKED_UP,
    OrderStatus.DELIVERED,
)

DISPATCHABLE: Tuple[OrderStatus, ...] = (
    OrderStatus.ACCEPTED,
    OrderStatus.PREPARING,
    OrderStatus.READY,
)
"""Statuses in which a driver may be bound to the order."""


def resolve(status: OrderStatus, operation: OrderOperation, subject_id: Optional[str] = None) -> Transition:
    """
    Look up the transition for ``operation`` from ``status``.

    Raises:
        InvalidTransition: if the table has no such entry
    """
    transition = TRANSITIONS.get((status, operation))
    if transition is None:
        raise InvalidTransition(operation.value, status, subject_id)
    return transition


def allowed_operations(status: OrderStatus) -> List[OrderOperation]:
    """Operations that are legal from ``status``, in declaration order."""
    return [op for op in OrderOperation if (status, op) in TRANSITIONS]
