"""Order status lifecycle and the tracking timeline derived from it."""

from datetime import datetime, timedelta

from src.mp_common.enums import OrderStatus
from src.mp_common.errors import InvalidStatusTransitionError
from src.mp_order.domain.models import Order, TimelineStep

# key -> (label, offset from creation). Delivered prefers the actual, then the
# estimated delivery date; terminal steps have no offset.
_STEPS: dict[str, tuple[str, timedelta | None]] = {
    "ordered": ("Order Placed", timedelta(0)),
    "confirmed": ("Order Confirmed", timedelta(minutes=5)),
    "processing": ("Processing", timedelta(minutes=30)),
    "shipped": ("Shipped", timedelta(hours=24)),
    "delivered": ("Delivered", timedelta(days=3)),
    "cancelled": ("Cancelled", None),
    "returned": ("Returned", None),
}

_FORWARD = ["ordered", "confirmed", "processing", "shipped", "delivered"]

# PENDING is the "ordered" step; every other status shares its step's name.
_STATUS_TO_STEP = {OrderStatus.PENDING.value: "ordered"}

ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset({OrderStatus.RETURNED}),
    OrderStatus.CANCELLED: frozenset(),
    OrderStatus.RETURNED: frozenset(),
}


def ensure_transition(current: str, target: str) -> OrderStatus:
    """Return the target status, or raise if the lifecycle forbids the move."""
    try:
        cur = OrderStatus(current.upper())
        nxt = OrderStatus(target.upper())
    except ValueError:
        raise InvalidStatusTransitionError(current, target) from None
    if nxt not in ALLOWED_TRANSITIONS[cur]:
        raise InvalidStatusTransitionError(cur.value, nxt.value)
    return nxt


def _step_keys(status: str) -> list[str]:
    if status == OrderStatus.CANCELLED.value:
        return ["ordered", "cancelled"]
    if status == OrderStatus.RETURNED.value:
        return [*_FORWARD, "returned"]
    return list(_FORWARD)


def _step_time(order: Order, key: str) -> datetime | None:
    created = order.created_at
    if key == "delivered":
        return order.delivered_at or order.estimated_delivery or created + timedelta(days=3)
    offset = _STEPS[key][1]
    return None if offset is None else created + offset


def build_timeline(order: Order) -> list[TimelineStep]:
    """Steps sorted by time; a step is completed up to the current status.

    Terminal steps (cancelled, returned) are stamped with the last update and
    never sort before the steps they end.
    """
    status = order.status.upper()
    steps: list[TimelineStep] = []
    for key in _step_keys(status):
        at = _step_time(order, key)
        if at is None:
            at = max([order.updated_at, *(s.at for s in steps)])
        steps.append(TimelineStep(key=key, label=_STEPS[key][0], at=at))
    steps.sort(key=lambda s: s.at)

    current_key = _STATUS_TO_STEP.get(status, status.lower())
    keys = [s.key for s in steps]
    current_index = keys.index(current_key) if current_key in keys else 0
    for index, step in enumerate(steps):
        step.is_completed = index <= current_index
    return steps
