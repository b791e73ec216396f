from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import Optional
from datetime import datetime

from theatre_pos.db import get_db
from theatre_pos.deps import require_auth, require_context
from theatre_pos.models.core import PaymentMethod, PaymentStatus
from theatre_pos.schemas.payments import (
    GatewayFailureIn, GatewayOrderIn, GatewayOrderOut, GatewayVerifyIn, ManualPaymentIn,
    PaymentOut, PaymentPage, PaymentResult, RefundIn,
)
from theatre_pos.services import effects, payments
from theatre_pos.services.gateway import PaymentGateway, get_gateway
from theatre_pos.util.audit import RequestContext

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post("/manual", response_model=PaymentResult, status_code=201)
async def record_manual(body: ManualPaymentIn, db: Session = Depends(get_db),
                        ctx: RequestContext = Depends(require_context)):
    p, todo = payments.record_manual_payment(
        db, body.order_id, PaymentMethod(body.method), ctx, body.print_receipt, body.printer_id,
    )
    # committed above; follow-ups only report
    reports = await effects.dispatch(db, todo)
    return PaymentResult(payment=PaymentOut.model_validate(p), side_effects=reports)


@router.post("/gateway/order", response_model=GatewayOrderOut)
def create_gateway_order(body: GatewayOrderIn, db: Session = Depends(get_db),
                         sub: str = Depends(require_auth),
                         gateway: PaymentGateway = Depends(get_gateway)):
    return payments.create_gateway_order(db, body.order_id, gateway)


@router.post("/gateway/verify", response_model=PaymentResult)
async def verify_gateway_payment(body: GatewayVerifyIn, db: Session = Depends(get_db),
                                 ctx: RequestContext = Depends(require_context)):
    p, todo = payments.verify_gateway_payment(
        db, body.gateway_order_id, body.gateway_payment_id, body.signature, body.order_id, ctx,
        body.print_receipt, body.printer_id,
    )
    reports = await effects.dispatch(db, todo)
    return PaymentResult(payment=PaymentOut.model_validate(p), side_effects=reports)


@router.post("/gateway/failure", response_model=PaymentOut, status_code=201)
def record_gateway_failure(body: GatewayFailureIn, db: Session = Depends(get_db),
                           ctx: RequestContext = Depends(require_context)):
    return payments.record_gateway_failure(
        db, body.order_id, ctx, body.gateway_order_id, body.gateway_payment_id, body.reason,
    )


@router.post("/{payment_id}/refund", response_model=PaymentOut)
def refund(payment_id: str, body: Optional[RefundIn] = None, db: Session = Depends(get_db),
           ctx: RequestContext = Depends(require_context),
           gateway: PaymentGateway = Depends(get_gateway)):
    return payments.refund(db, payment_id, body.reason if body else None, ctx, gateway)


@router.get("/", response_model=PaymentPage)
def list_payments(
    page: int = 1,
    limit: int = 10,
    status: Optional[PaymentStatus] = None,
    method: Optional[PaymentMethod] = None,
    order_id: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    db: Session = Depends(get_db),
    sub: str = Depends(require_auth),
):
    items, total = payments.list_payments(db, page, limit, status, method, order_id, start, end)
    return PaymentPage(items=[PaymentOut.model_validate(p) for p in items], total=total)


@router.get("/{payment_id}", response_model=PaymentOut)
def get_payment(payment_id: str, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    return payments.get_payment(db, payment_id)
