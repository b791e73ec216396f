import time
import uuid
from datetime import datetime
from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from theatre_pos.config import settings
from theatre_pos.errors import (
    GatewayError, InvalidSignature, InvalidTransition, NotFound, PosError, ValidationError,
)
from theatre_pos.models.common import utcnow
from theatre_pos.models.core import (
    Order, OrderPaymentStatus, OrderStatus, Payment, PaymentMethod, PaymentStatus,
)
from theatre_pos.schemas.audit import PaymentRecorded, Refund
from theatre_pos.services import order_state, orders
from theatre_pos.services.effects import SideEffect, after_payment
from theatre_pos.services.gateway import PaymentGateway, signature_matches
from theatre_pos.services.money import to_minor_units
from theatre_pos.util.audit import RequestContext, audit
from theatre_pos.util.log import get_logger

logger = get_logger(__name__)


def _payment_id() -> str:
    return f"PAY_{uuid.uuid4().hex[:20].upper()}"


def _transaction_id(method: PaymentMethod) -> str:
    return f"{method.value.upper()}_{int(time.time() * 1000)}"


def _payable(db: Session, order_id: str) -> Order:
    o = orders.load_order(db, order_id)
    if o.status == OrderStatus.CANCELLED:
        raise ValidationError("cannot take payment for a cancelled order", {"order_id": order_id})
    return o


# --- reads -----------------------------------------------------------------

def get_payment(db: Session, payment_id: str) -> Payment:
    """Accepts the row id or the public `PAY_...` id."""
    p = db.scalars(
        select(Payment)
        .where((Payment.id == payment_id) | (Payment.payment_id == payment_id))
        .execution_options(populate_existing=True)
    ).first()
    if not p:
        raise NotFound("Payment not found", {"payment_id": payment_id})
    return p


def list_payments(
    db: Session,
    page: int = 1,
    limit: int = 10,
    status: PaymentStatus | None = None,
    method: PaymentMethod | None = None,
    order_id: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
) -> tuple[list[Payment], int]:
    q = select(Payment)
    if status:
        q = q.where(Payment.status == status)
    if method:
        q = q.where(Payment.method == method)
    if order_id:
        q = q.where(Payment.order_id == order_id)
    if start and end:
        q = q.where(Payment.created_at.between(start, end))

    page = max(page, 1)
    limit = limit if limit >= 1 else 10
    total = db.scalar(select(func.count()).select_from(q.subquery())) or 0
    rows = db.scalars(
        q.order_by(Payment.created_at.desc()).offset((page - 1) * limit).limit(limit)
    ).all()
    return list(rows), total


# --- manual ----------------------------------------------------------------

def record_manual_payment(db: Session, order_id: str, method: PaymentMethod, ctx: RequestContext,
                          print_receipt: bool = False,
                          printer_id: str | None = None) -> tuple[Payment, list[SideEffect]]:
    """Cash/card/upi taken at the counter. The amount is always the stored order total."""
    method = PaymentMethod(method)
    if method == PaymentMethod.GATEWAY:
        raise ValidationError("gateway payments are recorded through verification")

    try:
        o = _payable(db, order_id)
        orders.set_payment_status(db, o.id, OrderPaymentStatus.PAID, ctx, expected=o.payment_status)
        p = Payment(
            payment_id=_payment_id(),
            order_id=o.id,
            amount=o.total_amount,
            method=method,
            status=PaymentStatus.SUCCESS,
            transaction_id=_transaction_id(method),
        )
        db.add(p)
        db.flush()
        audit(db, ctx, "Payment", p.id, "RECORD_PAYMENT", PaymentRecorded(
            payment_id=p.payment_id, method=method.value, status=p.status.value, amount=str(p.amount),
        ))
        db.commit()
    except PosError:
        db.rollback()
        raise

    logger.info("Payment recorded", order_id=o.id, payment_id=p.payment_id, method=method.value, amount=str(p.amount))
    return p, after_payment(o.id, o.customer_email, print_receipt, printer_id)


# --- gateway ---------------------------------------------------------------

def create_gateway_order(db: Session, order_id: str, gateway: PaymentGateway) -> dict:
    """
    Opens a remote order for the stored total and keeps it as a pending
    payment, so a later verification can only settle the order it was
    opened for.
    """
    o = _payable(db, order_id)
    order_state.ensure_payment_transition(o.payment_status, OrderPaymentStatus.PAID)
    amount_minor = to_minor_units(o.total_amount)
    order_number, total = o.order_number, o.total_amount
    # no transaction held across the gateway round trip
    db.commit()

    gateway_order_id = gateway.create_remote_order(
        amount_minor, settings.CURRENCY, order_number, {"order_id": order_id},
    )
    db.add(Payment(
        payment_id=_payment_id(),
        order_id=order_id,
        gateway_order_id=gateway_order_id,
        amount=total,
        method=PaymentMethod.GATEWAY,
        status=PaymentStatus.PENDING,
    ))
    db.commit()
    logger.info("Gateway order created", order_id=order_id, gateway_order_id=gateway_order_id, amount=amount_minor)
    return {
        "gateway_order_id": gateway_order_id,
        "amount": amount_minor,
        "currency": settings.CURRENCY,
        "key": settings.GATEWAY_KEY_ID,
    }


def verify_gateway_payment(db: Session, gateway_order_id: str, gateway_payment_id: str, signature: str,
                           order_id: str, ctx: RequestContext, print_receipt: bool = False,
                           printer_id: str | None = None) -> tuple[Payment, list[SideEffect]]:
    if not settings.GATEWAY_KEY_SECRET:
        raise GatewayError("Payment gateway is not configured")
    if not signature_matches(gateway_order_id, gateway_payment_id, signature, settings.GATEWAY_KEY_SECRET):
        logger.warning("Gateway signature mismatch", order_id=order_id, gateway_order_id=gateway_order_id)
        raise InvalidSignature("Invalid payment signature", {"order_id": order_id})

    # the gateway may call back twice for the same capture
    existing = db.scalars(select(Payment).where(Payment.gateway_payment_id == gateway_payment_id)).first()
    if existing and existing.status != PaymentStatus.FAILED:
        if existing.order_id != order_id:
            raise ValidationError("gateway payment belongs to another order", {"payment_id": existing.payment_id})
        return existing, []

    # the signature only proves the capture; the remote order must be ours for this order
    intent = db.scalars(
        select(Payment)
        .where(Payment.gateway_order_id == gateway_order_id, Payment.status == PaymentStatus.PENDING)
        .execution_options(populate_existing=True)
    ).first()
    if intent is None or intent.order_id != order_id:
        logger.warning("Gateway order mismatch", order_id=order_id, gateway_order_id=gateway_order_id)
        raise ValidationError("gateway order was not opened for this order",
                              {"order_id": order_id, "gateway_order_id": gateway_order_id})

    try:
        o = _payable(db, order_id)
        orders.set_payment_status(db, o.id, OrderPaymentStatus.PAID, ctx, expected=o.payment_status)
        res = db.execute(
            update(Payment)
            .where(Payment.id == intent.id, Payment.status == PaymentStatus.PENDING)
            .values(
                status=PaymentStatus.SUCCESS,
                gateway_payment_id=gateway_payment_id,
                gateway_signature=signature,
                transaction_id=gateway_payment_id,
                version=Payment.version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        if res.rowcount != 1:
            raise InvalidTransition(PaymentStatus.PENDING.value, PaymentStatus.SUCCESS.value,
                                    "Gateway order was settled concurrently")
        audit(db, ctx, "Payment", intent.id, "VERIFY_PAYMENT", PaymentRecorded(
            payment_id=intent.payment_id, method=PaymentMethod.GATEWAY.value,
            status=PaymentStatus.SUCCESS.value, amount=str(intent.amount),
        ))
        db.commit()
    except PosError:
        db.rollback()
        raise

    p = get_payment(db, intent.id)
    logger.info("Gateway payment verified", order_id=o.id, payment_id=p.payment_id, gateway_payment_id=gateway_payment_id)
    return p, after_payment(o.id, o.customer_email, print_receipt, printer_id)


def record_gateway_failure(db: Session, order_id: str, ctx: RequestContext,
                           gateway_order_id: str | None = None,
                           gateway_payment_id: str | None = None,
                           reason: str | None = None) -> Payment:
    """Keeps the failed attempt; the order stays payable unless it was already paid."""
    try:
        o = orders.load_order(db, order_id)
        if o.payment_status in (OrderPaymentStatus.PENDING, OrderPaymentStatus.FAILED):
            orders.set_payment_status(db, o.id, OrderPaymentStatus.FAILED, ctx, expected=o.payment_status)
        p = Payment(
            payment_id=_payment_id(),
            order_id=o.id,
            gateway_order_id=gateway_order_id,
            gateway_payment_id=gateway_payment_id,
            amount=o.total_amount,
            method=PaymentMethod.GATEWAY,
            status=PaymentStatus.FAILED,
            failure_reason=reason,
        )
        db.add(p)
        db.flush()
        audit(db, ctx, "Payment", p.id, "PAYMENT_FAILED", PaymentRecorded(
            payment_id=p.payment_id, method=p.method.value, status=p.status.value, amount=str(p.amount),
        ))
        db.commit()
    except PosError:
        db.rollback()
        raise

    logger.warning("Gateway payment failed", order_id=o.id, payment_id=p.payment_id, reason=reason)
    return p


# --- refunds ---------------------------------------------------------------

def _release_refund_claim(db: Session, row_id: str) -> None:
    db.execute(
        update(Payment)
        .where(Payment.id == row_id)
        .values(refund_requested_at=None)
        .execution_options(synchronize_session=False)
    )
    db.commit()


def refund(db: Session, payment_id: str, reason: str | None, ctx: RequestContext,
           gateway: PaymentGateway) -> Payment:
    """
    All or nothing: for gateway payments the gateway refund happens first and
    any failure there leaves the payment and the order as they were.
    """
    p = get_payment(db, payment_id)
    if p.status != PaymentStatus.SUCCESS:
        raise InvalidTransition(
            p.status.value, PaymentStatus.REFUNDED.value, "Only successful payments can be refunded",
        )
    o = orders.load_order(db, p.order_id)
    order_state.ensure_payment_transition(o.payment_status, OrderPaymentStatus.REFUNDED)
    row_id, order_id, order_payment_status = p.id, o.id, o.payment_status
    reason = reason or "not given"

    if p.method == PaymentMethod.GATEWAY and p.gateway_payment_id:
        amount_minor = to_minor_units(p.amount)
        # claim the row first so only one caller ever reaches the gateway
        claimed = db.execute(
            update(Payment)
            .where(Payment.id == row_id, Payment.status == PaymentStatus.SUCCESS,
                   Payment.refund_requested_at.is_(None))
            .values(refund_requested_at=utcnow(), version=Payment.version + 1)
            .execution_options(synchronize_session=False)
        )
        if claimed.rowcount != 1:
            db.rollback()
            raise InvalidTransition(
                PaymentStatus.SUCCESS.value, PaymentStatus.REFUNDED.value, "A refund is already in progress",
            )
        db.commit()
        try:
            gateway.refund(p.gateway_payment_id, amount_minor, reason)
        except GatewayError:
            logger.warning("Gateway refund failed", payment_id=p.payment_id)
            _release_refund_claim(db, row_id)
            raise
        except Exception as e:
            logger.warning("Gateway refund failed", payment_id=p.payment_id, error=str(e))
            _release_refund_claim(db, row_id)
            raise GatewayError(f"Gateway refund failed: {e}", e) from e

    try:
        res = db.execute(
            update(Payment)
            .where(Payment.id == row_id, Payment.status == PaymentStatus.SUCCESS)
            .values(status=PaymentStatus.REFUNDED, failure_reason=reason, version=Payment.version + 1)
            .execution_options(synchronize_session=False)
        )
        if res.rowcount != 1:
            raise InvalidTransition(
                db.scalar(select(Payment.status).where(Payment.id == row_id)).value,
                PaymentStatus.REFUNDED.value,
                "Payment changed concurrently",
            )
        orders.set_payment_status(db, order_id, OrderPaymentStatus.REFUNDED, ctx, expected=order_payment_status)
        audit(db, ctx, "Payment", row_id, "REFUND_PAYMENT", Refund(
            payment_id=p.payment_id, amount=str(p.amount), reason=reason,
        ))
        db.commit()
    except PosError:
        db.rollback()
        raise

    logger.info("Payment refunded", payment_id=p.payment_id, order_id=order_id, amount=str(p.amount))
    return get_payment(db, row_id)
