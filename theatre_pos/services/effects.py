"""
Best-effort follow-ups of a sale: printing the receipt and emailing the
customer. Services hand back a list of these instead of doing them inline;
the HTTP layer dispatches them after the payment has been committed and
reports each outcome separately.
"""
import asyncio
from dataclasses import dataclass
from typing import Literal

from sqlalchemy.orm import Session

from theatre_pos.schemas.payments import EffectReport
from theatre_pos.services import notify, orders, printer
from theatre_pos.util.log import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class SideEffect:
    kind: Literal["print_receipt", "send_confirmation"]
    order_id: str
    printer_id: str | None = None


def after_payment(order_id: str, customer_email: str | None, print_receipt: bool,
                  printer_id: str | None = None) -> list[SideEffect]:
    effects = []
    if print_receipt:
        effects.append(SideEffect("print_receipt", order_id, printer_id))
    if customer_email:
        effects.append(SideEffect("send_confirmation", order_id))
    return effects


async def _run(db: Session, effect: SideEffect) -> EffectReport:
    if effect.kind == "print_receipt":
        await printer.print_receipt(db, effect.order_id, effect.printer_id)
        return EffectReport(kind=effect.kind, ok=True)

    order = orders.get_order(db, effect.order_id)
    db.commit()
    sent = await asyncio.to_thread(notify.send_order_confirmation, order)
    return EffectReport(kind=effect.kind, ok=sent, skipped=not sent)


async def dispatch(db: Session, effects: list[SideEffect]) -> list[EffectReport]:
    """Never raises; every failure of a follow-up becomes a report."""
    reports = []
    for effect in effects:
        try:
            reports.append(await _run(db, effect))
        except Exception as e:
            # the sale is already committed
            logger.warning("Side effect failed", kind=effect.kind, order_id=effect.order_id,
                           error=str(e), error_type=type(e).__name__)
            db.rollback()
            reports.append(EffectReport(kind=effect.kind, ok=False, error=str(e)))
    return reports
