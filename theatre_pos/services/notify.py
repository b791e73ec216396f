"""
Order confirmation email. Best effort: callers log and report failures,
they never undo a sale because of them.
"""
import smtplib
from email.message import EmailMessage

from theatre_pos.config import settings
from theatre_pos.schemas.orders import OrderOut
from theatre_pos.services.receipt import amount


def render_confirmation(order: OrderOut) -> EmailMessage:
    msg = EmailMessage()
    msg["Subject"] = f"Order Confirmation - {order.order_number} | {settings.VENUE_NAME.title()}"
    msg["From"] = settings.SMTP_FROM or settings.SMTP_USER
    msg["To"] = order.customer_email

    lines = [
        f"Hi {order.customer_name or 'there'},",
        "",
        f"Thank you for your order {order.order_number}.",
        "",
    ]
    for item in order.items:
        lines.append(f"  {item.quantity} x {item.product.name}  {amount(item.total_price)}")
    lines += [
        "",
        f"Subtotal: {amount(order.subtotal)}",
        f"Tax: {amount(order.tax_amount)}",
    ]
    if order.discount_amount > 0:
        lines.append(f"Discount: -{amount(order.discount_amount)}")
    lines += [f"Total: {amount(order.total_amount)}", "", *settings.RECEIPT_FOOTER]
    msg.set_content("\n".join(lines))
    return msg


def send_order_confirmation(order: OrderOut) -> bool:
    """
    Returns False when there is nothing to do (no customer email or SMTP
    disabled). Blocking; call it from a worker thread.
    """
    if not order.customer_email or not settings.SMTP_HOST:
        return False
    msg = render_confirmation(order)
    with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=10) as smtp:
        smtp.starttls()
        if settings.SMTP_USER:
            smtp.login(settings.SMTP_USER, settings.SMTP_PASS)
        smtp.send_message(msg)
    return True
