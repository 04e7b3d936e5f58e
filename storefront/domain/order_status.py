# storefront/domain/order_status.py
import enum

from storefront.domain.errors import InvalidTransition


class OrderStatus(str, enum.Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),  # terminal
    OrderStatus.CANCELLED: set(),  # terminal
}

PAYABLE_STATES = frozenset({OrderStatus.PENDING, OrderStatus.PROCESSING})
TERMINAL_STATES = frozenset(s for s, targets in _TRANSITIONS.items() if not targets)


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return target in _TRANSITIONS[OrderStatus(current)]


def assert_transition(current: OrderStatus, target: OrderStatus) -> None:
    current, target = OrderStatus(current), OrderStatus(target)
    if not can_transition(current, target):
        raise InvalidTransition(f"Cannot change order status from {current.value} to {target.value}")


def is_payable(status) -> bool:
    return OrderStatus(status) in PAYABLE_STATES
