"""Order item lifecycle.

    pending  -> accepted | rejected
    accepted -> shipped  | rejected
    shipped  -> delivered

delivered and rejected are terminal. Statuses never move backwards.
"""
from enum import Enum
from typing import Dict, List, Tuple

from storefront.errors import TransitionNotAllowed
from storefront.schemas import OrderItemStatus as Status


class OrderAction(str, Enum):
    ACCEPT = "accept"
    REJECT = "reject"
    SHIP = "ship"
    DELIVER = "deliver"


TRANSITIONS: Dict[Status, Tuple[Status, ...]] = {
    Status.PENDING: (Status.ACCEPTED, Status.REJECTED),
    Status.ACCEPTED: (Status.SHIPPED, Status.REJECTED),
    Status.SHIPPED: (Status.DELIVERED,),
    Status.DELIVERED: (),
    Status.REJECTED: (),
}

TERMINAL = frozenset(s for s, nxt in TRANSITIONS.items() if not nxt)

ACTION_TARGETS: Dict[OrderAction, Status] = {
    OrderAction.ACCEPT: Status.ACCEPTED,
    OrderAction.REJECT: Status.REJECTED,
    OrderAction.SHIP: Status.SHIPPED,
    OrderAction.DELIVER: Status.DELIVERED,
}

_ACTIONS_BY_TARGET: Dict[Status, OrderAction] = {target: action for action, target in ACTION_TARGETS.items()}

_LABELS = {
    OrderAction.ACCEPT: "Accept Order",
    OrderAction.REJECT: "Reject Order",
    OrderAction.SHIP: "Mark as Shipped",
    OrderAction.DELIVER: "Mark as Delivered",
}


def is_terminal(status: Status) -> bool:
    return Status(status) in TERMINAL


def next_statuses(status: Status) -> Tuple[Status, ...]:
    return TRANSITIONS[Status(status)]


def can_transition(current: Status, target: Status) -> bool:
    return Status(target) in TRANSITIONS[Status(current)]


def check_transition(current: Status, target: Status) -> None:
    if not can_transition(current, target):
        raise TransitionNotAllowed(Status(current).value, Status(target).value)


def allowed_actions(status: Status) -> List[OrderAction]:
    return [_ACTIONS_BY_TARGET[target] for target in next_statuses(status)]


def action_label(action: OrderAction, status: Status) -> str:
    # rejecting an already accepted item reads as a cancellation
    if action == OrderAction.REJECT and Status(status) == Status.ACCEPTED:
        return "Cancel Order"
    return _LABELS[action]
