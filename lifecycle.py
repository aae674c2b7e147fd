"""
Order lifecycle

Orders move forward along

    PENDING -> BUSINESS_CONFIRMED -> CONFIRMED -> PREPARING -> READY
            -> PICKED_UP -> COURIER_DELIVERED -> DELIVERED

with CANCELLED reachable until the courier picks the order up. Each
allowed move lists the roles that may perform it; ADMIN may perform any
allowed move. Updates are compare-and-set on the current status so two
clients acting on the same order cannot both win.
"""
import logging
from typing import Dict, Optional, Set

from database import update_where, utcnow
from inventory import restock_items
from schemas import OrderStatus, UserRole

logger = logging.getLogger(__name__)

S = OrderStatus
R = UserRole

SEQUENCE = [
    S.PENDING,
    S.BUSINESS_CONFIRMED,
    S.CONFIRMED,
    S.PREPARING,
    S.READY,
    S.PICKED_UP,
    S.COURIER_DELIVERED,
    S.DELIVERED,
]

TRANSITIONS: Dict[OrderStatus, Dict[OrderStatus, Set[UserRole]]] = {
    S.PENDING: {
        S.BUSINESS_CONFIRMED: {R.BUSINESS},
        S.CONFIRMED: {R.COURIER},
        S.CANCELLED: {R.BUSINESS, R.CONSUMER},
    },
    S.BUSINESS_CONFIRMED: {
        S.CONFIRMED: {R.COURIER},
        S.CANCELLED: {R.BUSINESS, R.CONSUMER},
    },
    S.CONFIRMED: {
        S.PREPARING: {R.BUSINESS},
        S.PICKED_UP: {R.COURIER},
        S.CANCELLED: {R.BUSINESS},
    },
    S.PREPARING: {
        S.READY: {R.BUSINESS},
        S.CANCELLED: {R.BUSINESS},
    },
    S.READY: {
        S.PICKED_UP: {R.COURIER},
        S.CANCELLED: {R.BUSINESS},
    },
    S.PICKED_UP: {
        S.COURIER_DELIVERED: {R.COURIER},
    },
    S.COURIER_DELIVERED: {
        S.DELIVERED: {R.COURIER, R.CONSUMER},
    },
    S.DELIVERED: {},
    S.CANCELLED: {},
}

TERMINAL = {S.DELIVERED, S.CANCELLED}

# Statuses in which a courier is busy with an order
ACTIVE_DELIVERY = [S.CONFIRMED, S.PREPARING, S.READY, S.PICKED_UP]
COMPLETED_DELIVERY = [S.COURIER_DELIVERED, S.DELIVERED]
OPEN_REQUEST = [S.PENDING, S.BUSINESS_CONFIRMED]


class InvalidTransition(Exception):
    def __init__(self, current, target, role=None):
        self.current = OrderStatus(current)
        self.target = OrderStatus(target)
        self.role = role
        if role is None:
            msg = f"Invalid status transition from {self.current.value} to {self.target.value}"
        else:
            msg = f"Role {UserRole(role).value} cannot change status from {self.current.value} to {self.target.value}"
        super().__init__(msg)


class TransitionConflict(Exception):
    pass


def allowed_targets(current, role) -> Set[OrderStatus]:
    moves = TRANSITIONS[OrderStatus(current)]
    role = UserRole(role)
    if role == R.ADMIN:
        return set(moves)
    return {target for target, roles in moves.items() if role in roles}


def can_transition(current, target, role) -> bool:
    return OrderStatus(target) in allowed_targets(current, role)


def check_transition(current, target, role):
    current, target = OrderStatus(current), OrderStatus(target)
    if target not in TRANSITIONS[current]:
        raise InvalidTransition(current, target)
    if not can_transition(current, target, role):
        raise InvalidTransition(current, target, role)


def transition_order(order: dict, target, role, extra: Optional[dict] = None, match: Optional[dict] = None) -> dict:
    """Move `order` to `target` on behalf of `role` and return the stored result.

    `extra` holds further fields to set along with the status. `match`
    adds conditions the stored order must still meet, e.g. that no courier
    has claimed it yet.
    """
    current = OrderStatus(order["status"])
    target = OrderStatus(target)
    check_transition(current, target, role)

    now = utcnow()
    fields = {"status": target.value}
    if target == S.COURIER_DELIVERED:
        fields["completed_at"] = now
    fields.update(extra or {})

    query = {"status": current.value}
    query.update(match or {})
    updated = update_where(
        "order",
        order["_id"],
        query,
        {
            "$set": fields,
            "$push": {"status_history": {"status": target.value, "role": UserRole(role).value, "at": now}},
        },
    )
    if updated is None:
        logger.info("Order %s changed while moving %s -> %s", order["_id"], current.value, target.value)
        raise TransitionConflict(f"Order {order['_id']} was modified concurrently, reload and retry")

    logger.info("Order %s moved %s -> %s by %s", order["_id"], current.value, target.value, UserRole(role).value)
    if target == S.CANCELLED:
        restock_items(updated["items"])
    return updated
