"""
Order status machine and the independent payment-status axis.

Only the rules live here; persisting a transition is done by the order
service with a conditional update against the expected prior status.
"""
from theatre_pos.errors import InvalidTransition
from theatre_pos.models.core import OrderStatus, OrderPaymentStatus

TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.DRAFT: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.PREPARING, OrderStatus.CANCELLED}),
    OrderStatus.PREPARING: frozenset({OrderStatus.READY, OrderStatus.CANCELLED}),
    OrderStatus.READY: frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED}),
    OrderStatus.COMPLETED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

PAYMENT_TRANSITIONS: dict[OrderPaymentStatus, frozenset[OrderPaymentStatus]] = {
    OrderPaymentStatus.PENDING: frozenset({OrderPaymentStatus.PAID, OrderPaymentStatus.FAILED}),
    OrderPaymentStatus.FAILED: frozenset({OrderPaymentStatus.PAID, OrderPaymentStatus.FAILED}),
    OrderPaymentStatus.PAID: frozenset({OrderPaymentStatus.REFUNDED}),
    OrderPaymentStatus.REFUNDED: frozenset(),
}


def can_transition(current: OrderStatus, requested: OrderStatus) -> bool:
    return requested in TRANSITIONS[OrderStatus(current)]


def ensure_transition(current: OrderStatus, requested: OrderStatus) -> None:
    current, requested = OrderStatus(current), OrderStatus(requested)
    if not can_transition(current, requested):
        raise InvalidTransition(current.value, requested.value)


def ensure_cancellable(current: OrderStatus) -> None:
    current = OrderStatus(current)
    if current == OrderStatus.COMPLETED:
        raise InvalidTransition(current.value, OrderStatus.CANCELLED.value, "Cannot cancel completed order")
    ensure_transition(current, OrderStatus.CANCELLED)


def ensure_payment_transition(current: OrderPaymentStatus, requested: OrderPaymentStatus) -> None:
    current, requested = OrderPaymentStatus(current), OrderPaymentStatus(requested)
    if requested not in PAYMENT_TRANSITIONS[current]:
        raise InvalidTransition(
            current.value, requested.value,
            f"Cannot change payment status from {current.value} to {requested.value}",
        )


def append_note(notes: str | None, reason: str | None) -> str:
    line = f"Cancellation reason: {reason or 'not given'}"
    return f"{notes}\n{line}" if notes else line
