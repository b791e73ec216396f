"""
Plain-text receipt layout for ESC/POS printers.

Everything here is pure: an order snapshot and a printer's paper width go in,
a string comes out. The last three characters of every blob are the paper
cut command.
"""
from datetime import datetime
from decimal import Decimal

from theatre_pos.config import settings
from theatre_pos.schemas.orders import OrderOut
from theatre_pos.services.money import money

CUT = "\x1d\x56\x00"
ELLIPSIS = "..."


def _width(printer) -> int:
    w = getattr(printer, "paper_width", None) or settings.PRINTER_DEFAULT_WIDTH
    return max(int(w), 1)


def columns(width: int) -> tuple[int, int, int, int]:
    """name 40%, qty 10%, unit price 20%, line total gets the rest."""
    name_w = int(width * 0.4)
    qty_w = int(width * 0.1)
    price_w = int(width * 0.2)
    return name_w, qty_w, price_w, width - name_w - qty_w - price_w


def center(text: str, width: int) -> str:
    return " " * max(0, (width - len(text)) // 2) + text


def pad_right(text: str, width: int) -> str:
    return text + " " * max(0, width - len(text))


def row(c1: str, c2: str, c3: str, c4: str, width: int) -> str:
    w1, w2, w3, w4 = columns(width)
    return (
        c1[:w1].ljust(w1)
        + c2[:w2].ljust(w2)
        + c3[:w3].ljust(w3)
        + c4[:w4].ljust(w4)
    )


def shorten(name: str, width: int) -> str:
    if len(name) <= width:
        return name
    return (name[:max(width - len(ELLIPSIS), 0)] + ELLIPSIS)[:width]


def _fit(lines: list[str], width: int) -> str:
    return "\n".join(shorten(line, width) for line in lines)


def amount(x) -> str:
    return f"{settings.CURRENCY_SYMBOL}{money(x):.2f}"


def percent(rate) -> str:
    s = f"{Decimal(rate) * 100:f}"
    if "." in s:
        s = s.rstrip("0").rstrip(".")
    return f"{s}%"


def _stamp(dt: datetime) -> str:
    # stored timestamps come back as UTC; naive ones are taken as local already
    if dt.tzinfo is not None:
        dt = dt.astimezone()
    return dt.strftime("%d/%m/%Y, %H:%M:%S")


def format_receipt(order: OrderOut, printer=None) -> str:
    width = _width(printer)
    rule = "=" * width
    thin = "-" * width
    name_w = columns(width)[0]

    out = [
        center(settings.VENUE_NAME, width),
        center(settings.VENUE_TAGLINE, width),
        center(settings.VENUE_URL, width),
        rule,
        f"Order: {order.order_number}",
        f"Date: {_stamp(order.created_at)}",
        f"Cashier: {order.created_by.display_name if order.created_by else '-'}",
    ]
    if order.customer_name:
        out.append(f"Customer: {order.customer_name}")
    if order.customer_phone:
        out.append(f"Phone: {order.customer_phone}")

    out += [thin, row("ITEM", "QTY", "PRICE", "TOTAL", width), thin]
    for item in order.items:
        out.append(row(
            shorten(item.product.name, name_w),
            str(item.quantity),
            amount(item.unit_price),
            amount(item.total_price),
            width,
        ))
        if item.notes:
            out.append(f"  Note: {item.notes}")
    out.append(thin)

    out.append(pad_right(f"Subtotal: {amount(order.subtotal)}", width))
    out.append(pad_right(f"Tax ({percent(order.tax_rate)}): {amount(order.tax_amount)}", width))
    if order.discount_amount > 0:
        out.append(pad_right(f"Discount: -{amount(order.discount_amount)}", width))
    out += [
        rule,
        pad_right(f"TOTAL: {amount(order.total_amount)}", width),
        rule,
        "",
    ]
    out += [center(line, width) for line in settings.RECEIPT_FOOTER]

    return _fit(out, width) + "\n" + "\n\n\n" + CUT


def format_test_page(printer, now: datetime | None = None) -> str:
    width = _width(printer)
    rule = "=" * width
    out = [
        center("PRINTER TEST", width),
        center(settings.VENUE_NAME, width),
        rule,
        f"Printer: {printer.name}",
        f"Type: {getattr(printer.type, 'value', printer.type)}",
        f"Connection: {getattr(printer.connection_type, 'value', printer.connection_type)}",
        f"Date: {_stamp(now or datetime.now())}",
        rule,
        center("Test successful!", width),
    ]
    return _fit(out, width) + "\n" + "\n\n\n" + CUT


def receipt_bytes(text: str) -> bytes:
    return text.encode("utf-8")
