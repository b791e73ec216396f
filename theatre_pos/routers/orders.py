from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import Optional
from datetime import datetime

from theatre_pos.db import get_db
from theatre_pos.deps import require_auth, require_context
from theatre_pos.errors import PosError
from theatre_pos.models.core import OrderStatus, OrderPaymentStatus
from theatre_pos.schemas.audit import PrintRequest
from theatre_pos.schemas.orders import (
    CancelIn, OrderIn, OrderOut, OrderPage, OrderUpdateIn, PaymentStatusIn, PrintIn, StatusIn,
)
from theatre_pos.services import orders, printer
from theatre_pos.util.audit import RequestContext, audit
from theatre_pos.util.log import get_logger

router = APIRouter(prefix="/orders", tags=["orders"])
logger = get_logger(__name__)


@router.post("/", response_model=OrderOut, status_code=201)
def create_order(body: OrderIn, db: Session = Depends(get_db), ctx: RequestContext = Depends(require_context)):
    return orders.create_order(db, body, ctx)


@router.get("/", response_model=OrderPage)
def list_orders(
    page: int = 1,
    limit: int = 10,
    status: Optional[OrderStatus] = None,
    payment_status: Optional[OrderPaymentStatus] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    search: Optional[str] = None,
    db: Session = Depends(get_db),
    sub: str = Depends(require_auth),
):
    """
    Newest first. `start`/`end` filter on creation time and only apply
    together; `search` matches order number, customer name or email.
    """
    items, total = orders.list_orders(db, page, limit, status, payment_status, start, end, search)
    return OrderPage(items=items, total=total)


@router.get("/{order_id}", response_model=OrderOut)
def get_order(order_id: str, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    return orders.get_order(db, order_id)


@router.patch("/{order_id}", response_model=OrderOut)
def update_order(order_id: str, body: OrderUpdateIn, db: Session = Depends(get_db),
                 ctx: RequestContext = Depends(require_context)):
    return orders.update_order(db, order_id, body, ctx)


@router.patch("/{order_id}/status", response_model=OrderOut)
def update_status(order_id: str, body: StatusIn, db: Session = Depends(get_db),
                  ctx: RequestContext = Depends(require_context)):
    return orders.update_status(db, order_id, body.status, ctx)


@router.patch("/{order_id}/payment-status", response_model=OrderOut)
def update_payment_status(order_id: str, body: PaymentStatusIn, db: Session = Depends(get_db),
                          ctx: RequestContext = Depends(require_context)):
    return orders.update_payment_status(db, order_id, body.payment_status, ctx)


@router.patch("/{order_id}/cancel", response_model=OrderOut)
def cancel_order(order_id: str, body: Optional[CancelIn] = None, db: Session = Depends(get_db),
                 ctx: RequestContext = Depends(require_context)):
    return orders.cancel(db, order_id, body.reason if body else None, ctx)


@router.post("/{order_id}/print")
async def print_order(order_id: str, body: Optional[PrintIn] = None, db: Session = Depends(get_db),
                      ctx: RequestContext = Depends(require_context)):
    """
    Print the receipt on the given printer, or the default one.
    A missing order is a 404; a printer problem is reported in the body
    as `printed: false` so the sale itself is never in doubt.
    """
    orders.get_order(db, order_id)
    printer_id = body.printer_id if body else None

    error = None
    try:
        used = await printer.print_receipt(db, order_id, printer_id)
        printer_id = used.id
    except PosError as e:
        # transport failures plus no default printer, unknown id or bad config
        db.rollback()
        error = e.message
    if error:
        logger.warning("Receipt not printed", order_id=order_id, printer_id=printer_id, error=error)

    audit(db, ctx, "Order", order_id, "PRINT_RECEIPT",
          PrintRequest(printer_id=printer_id, printed=error is None, error=error))
    db.commit()

    out = {"printed": error is None}
    if error:
        out["error"] = error
    return out
