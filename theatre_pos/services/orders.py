from datetime import date, datetime
from sqlalchemy import Integer, cast, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from theatre_pos.errors import InvalidTransition, NotFound, PosError, ValidationError
from theatre_pos.models.core import (
    Order, OrderItem, OrderSequence, OrderStatus, OrderPaymentStatus,
)
from theatre_pos.schemas.audit import (
    Cancellation, Created, PaymentStatusChange, StatusChange, Updated,
)
from theatre_pos.schemas.orders import OrderIn, OrderOut, OrderUpdateIn
from theatre_pos.services import catalog, order_state
from theatre_pos.services.configuration import current_tax_rate
from theatre_pos.services.money import compute_totals, line_total, money
from theatre_pos.util.audit import RequestContext, audit
from theatre_pos.util.log import get_logger

logger = get_logger(__name__)

ORDER_PREFIX = "ORD"


# --- loading ---------------------------------------------------------------

def load_order(db: Session, order_id: str) -> Order:
    q = (
        select(Order)
        .where(Order.id == order_id)
        .options(
            selectinload(Order.items).selectinload(OrderItem.product),
            selectinload(Order.created_by),
            selectinload(Order.payments),
        )
        .execution_options(populate_existing=True)
    )
    o = db.scalars(q).first()
    if not o:
        raise NotFound("Order not found", {"order_id": order_id})
    return o


def get_order(db: Session, order_id: str) -> OrderOut:
    """Fresh, immutable snapshot of an order with items, products, cashier and payments."""
    return OrderOut.model_validate(load_order(db, order_id))


def list_orders(
    db: Session,
    page: int = 1,
    limit: int = 10,
    status: OrderStatus | None = None,
    payment_status: OrderPaymentStatus | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    search: str | None = None,
) -> tuple[list[OrderOut], int]:
    q = select(Order)
    if status:
        q = q.where(Order.status == status)
    if payment_status:
        q = q.where(Order.payment_status == payment_status)
    if start and end:
        q = q.where(Order.created_at.between(start, end))
    if search:
        like = f"%{search}%"
        q = q.where(or_(
            Order.order_number.ilike(like),
            Order.customer_name.ilike(like),
            Order.customer_email.ilike(like),
        ))

    page = max(page, 1)
    limit = limit if limit >= 1 else 10
    total = db.scalar(select(func.count()).select_from(q.subquery())) or 0

    rows = db.scalars(
        q.options(
            selectinload(Order.items).selectinload(OrderItem.product),
            selectinload(Order.created_by),
            selectinload(Order.payments),
        )
        .order_by(Order.created_at.desc(), Order.order_number.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()
    return [OrderOut.model_validate(o) for o in rows], total


# --- order numbers ---------------------------------------------------------

def _max_sequence(db: Session, prefix: str) -> int:
    # numeric max, so 10000 sorts after 9999
    seq = db.scalar(
        select(func.max(cast(func.substr(Order.order_number, len(prefix) + 1), Integer)))
        .where(Order.order_number.like(f"{prefix}%"))
    )
    return seq or 0


def allocate_order_number(db: Session, today: date | None = None) -> str:
    """
    Next `ORD-YYYYMMDD-NNNN` for the server's local date.

    The per-day counter row is bumped with a single UPDATE, so concurrent
    creators serialize on it. The first allocation of a day seeds the row from
    the highest number already present for that prefix; two creators racing
    to insert it collide on the primary key and the loser retries the UPDATE.
    """
    day = (today or datetime.now().date()).strftime("%Y%m%d")
    prefix = f"{ORDER_PREFIX}-{day}-"

    for _ in range(5):
        bumped = db.execute(
            update(OrderSequence)
            .where(OrderSequence.day == day)
            .values(last_seq=OrderSequence.last_seq + 1)
            .execution_options(synchronize_session=False)
        )
        if bumped.rowcount:
            seq = db.scalar(select(OrderSequence.last_seq).where(OrderSequence.day == day))
            return f"{prefix}{seq:04d}"

        seq = _max_sequence(db, prefix) + 1
        try:
            with db.begin_nested():
                db.add(OrderSequence(day=day, last_seq=seq))
            return f"{prefix}{seq:04d}"
        except IntegrityError:
            continue

    raise PosError("Could not allocate a unique order number", {"day": day})


# --- creation --------------------------------------------------------------

def create_order(db: Session, body: OrderIn, ctx: RequestContext) -> OrderOut:
    if not body.items:
        raise ValidationError("order must contain at least one item")

    priced = []
    for item in body.items:
        if item.quantity < 1:
            raise ValidationError("quantity must be at least 1", {"product_id": item.product_id, "quantity": item.quantity})
        # authoritative price from the catalog, never from the client
        priced.append((item, catalog.get_product_by_id(db, item.product_id)))

    rate = current_tax_rate(db)
    totals = compute_totals(
        [(item.quantity, product.price) for item, product in priced],
        rate,
        body.discount_amount or 0,
    )

    order = Order(
        order_number=allocate_order_number(db),
        customer_name=body.customer_name,
        customer_email=body.customer_email,
        customer_phone=body.customer_phone,
        subtotal=totals.subtotal,
        tax_rate=rate,
        tax_amount=totals.tax,
        discount_amount=totals.discount,
        total_amount=totals.total,
        status=OrderStatus.DRAFT,
        payment_status=OrderPaymentStatus.PENDING,
        notes=body.notes,
        created_by_id=ctx.user_id,
    )
    db.add(order)
    db.flush()

    for pos, (item, product) in enumerate(priced):
        db.add(OrderItem(
            order_id=order.id,
            product_id=product.id,
            position=pos,
            quantity=item.quantity,
            unit_price=money(product.price),
            total_price=line_total(item.quantity, product.price),
            notes=item.notes,
        ))

    audit(db, ctx, "Order", order.id, "CREATE_ORDER", Created(summary={
        "order_number": order.order_number,
        "items": len(priced),
        "total": str(totals.total),
    }))
    db.commit()
    logger.info("Order created", order_id=order.id, order_number=order.order_number, total=str(totals.total))
    return get_order(db, order.id)


def update_order(db: Session, order_id: str, body: OrderUpdateIn, ctx: RequestContext) -> OrderOut:
    """Customer details and notes only; money fields are fixed at creation."""
    o = load_order(db, order_id)
    data = body.model_dump(exclude_unset=True)
    changed = {k: (getattr(o, k), v) for k, v in data.items() if getattr(o, k) != v}
    for k, v in data.items():
        setattr(o, k, v)
    if changed:
        audit(db, ctx, "Order", o.id, "UPDATE_ORDER", Updated(fields=changed))
    db.commit()
    return get_order(db, order_id)


# --- transitions -----------------------------------------------------------

def _guarded_update(db: Session, order_id: str, column, expected, **values) -> bool:
    """UPDATE ... WHERE status = expected; False if someone else moved it first."""
    res = db.execute(
        update(Order)
        .where(Order.id == order_id, column == expected)
        .values(version=Order.version + 1, **values)
        .execution_options(synchronize_session=False)
    )
    return res.rowcount == 1


def update_status(db: Session, order_id: str, requested: OrderStatus, ctx: RequestContext) -> OrderOut:
    requested = OrderStatus(requested)
    current = load_order(db, order_id).status
    order_state.ensure_transition(current, requested)

    if not _guarded_update(db, order_id, Order.status, current, status=requested):
        db.rollback()
        fresh = load_order(db, order_id).status
        raise InvalidTransition(fresh.value, requested.value)

    audit(db, ctx, "Order", order_id, "UPDATE_ORDER_STATUS", StatusChange(old=current.value, new=requested.value))
    db.commit()
    logger.info("Order status changed", order_id=order_id, old=current.value, new=requested.value)
    return get_order(db, order_id)


def cancel(db: Session, order_id: str, reason: str | None, ctx: RequestContext) -> OrderOut:
    o = load_order(db, order_id)
    current = o.status
    order_state.ensure_cancellable(current)

    notes = order_state.append_note(o.notes, reason)
    if not _guarded_update(db, order_id, Order.status, current, status=OrderStatus.CANCELLED, notes=notes):
        db.rollback()
        fresh = load_order(db, order_id).status
        raise InvalidTransition(fresh.value, OrderStatus.CANCELLED.value)

    audit(db, ctx, "Order", order_id, "CANCEL_ORDER", Cancellation(old_status=current.value, reason=reason))
    db.commit()
    logger.info("Order cancelled", order_id=order_id, old=current.value, reason=reason)
    return get_order(db, order_id)


def set_payment_status(db: Session, order_id: str, requested: OrderPaymentStatus, ctx: RequestContext,
                       expected: OrderPaymentStatus | None = None) -> OrderPaymentStatus:
    """
    Move the payment-status axis inside the caller's transaction (no commit).
    Returns the previous value.
    """
    requested = OrderPaymentStatus(requested)
    current = expected if expected is not None else load_order(db, order_id).payment_status
    order_state.ensure_payment_transition(current, requested)
    if not _guarded_update(db, order_id, Order.payment_status, current, payment_status=requested):
        fresh = db.scalar(select(Order.payment_status).where(Order.id == order_id))
        raise InvalidTransition(
            fresh.value if fresh else "missing", requested.value,
            "Order payment status changed concurrently",
        )
    audit(db, ctx, "Order", order_id, "UPDATE_PAYMENT_STATUS",
          PaymentStatusChange(old=OrderPaymentStatus(current).value, new=requested.value))
    return OrderPaymentStatus(current)


def update_payment_status(db: Session, order_id: str, requested: OrderPaymentStatus, ctx: RequestContext) -> OrderOut:
    try:
        old = set_payment_status(db, order_id, requested, ctx)
    except PosError:
        db.rollback()
        raise
    db.commit()
    logger.info("Order payment status changed", order_id=order_id, old=old.value, new=OrderPaymentStatus(requested).value)
    return get_order(db, order_id)
