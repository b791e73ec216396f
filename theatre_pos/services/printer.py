import asyncio
from contextlib import suppress
from sqlalchemy import select
from sqlalchemy.orm import Session

from theatre_pos.config import settings
from theatre_pos.errors import (
    NotFound, PrinterConnectionFailed, PrinterTimeout, UnsupportedConnection, ValidationError,
)
from theatre_pos.models.core import ConnectionType, PrinterConfiguration
from theatre_pos.schemas.audit import ConfigChange
from theatre_pos.schemas.configuration import PrinterIn, PrinterOut, PrinterUpdateIn
from theatre_pos.services import orders
from theatre_pos.services.configuration import make_exclusive_default
from theatre_pos.services.receipt import format_receipt, format_test_page, receipt_bytes
from theatre_pos.util.audit import RequestContext, audit
from theatre_pos.util.log import get_logger

logger = get_logger(__name__)


# --- transport -------------------------------------------------------------

async def send_raw(host: str, port: int, payload: bytes, timeout: float | None = None) -> None:
    """
    Write `payload` to host:port over plain TCP and wait for the printer to
    close the connection. The whole exchange is bounded by `timeout`.
    """
    timeout = settings.PRINTER_TIMEOUT_SEC if timeout is None else timeout
    writer = None

    async def _exchange():
        nonlocal writer
        reader, writer = await asyncio.open_connection(host, port)
        writer.write(payload)
        await writer.drain()
        if writer.can_write_eof():
            writer.write_eof()
        # nothing meaningful comes back; EOF is the printer hanging up
        while await reader.read(1024):
            pass

    timed_out = False
    try:
        await asyncio.wait_for(_exchange(), timeout)
    except asyncio.TimeoutError as e:
        timed_out = True
        raise PrinterTimeout("Printer connection timeout", {"host": host, "port": port, "timeout": timeout}) from e
    except OSError as e:
        raise PrinterConnectionFailed(f"Printer connection failed: {e}", e) from e
    finally:
        if writer is not None:
            if timed_out:
                writer.transport.abort()
            else:
                writer.close()
            with suppress(OSError):
                await writer.wait_closed()


async def print_to(printer: PrinterOut, payload: bytes, timeout: float | None = None) -> None:
    if printer.connection_type != ConnectionType.NETWORK:
        raise UnsupportedConnection(
            "Only network printers are currently supported",
            {"printer_id": printer.id, "connection_type": printer.connection_type.value},
        )
    if not printer.ip_address:
        raise ValidationError("network printer has no ip address", {"printer_id": printer.id})
    port = printer.port or settings.PRINTER_DEFAULT_PORT
    await send_raw(printer.ip_address, port, payload, timeout)
    logger.info("Sent to printer", printer_id=printer.id, host=printer.ip_address, port=port, bytes=len(payload))


# --- configuration ---------------------------------------------------------

def _check_connection(connection_type: ConnectionType, ip_address: str | None) -> None:
    if connection_type == ConnectionType.NETWORK and not ip_address:
        raise ValidationError("ip_address is required for network printers")


def list_printers(db: Session) -> list[PrinterConfiguration]:
    return list(db.scalars(select(PrinterConfiguration).order_by(PrinterConfiguration.name)))


def get_printer(db: Session, printer_id: str) -> PrinterConfiguration:
    p = db.get(PrinterConfiguration, printer_id, populate_existing=True)
    if not p:
        raise NotFound("Printer configuration not found", {"printer_id": printer_id})
    return p


def get_default_printer(db: Session) -> PrinterConfiguration:
    p = db.scalars(
        select(PrinterConfiguration)
        .where(PrinterConfiguration.is_default.is_(True), PrinterConfiguration.is_active.is_(True))
        .execution_options(populate_existing=True)
    ).first()
    if not p:
        raise NotFound("No default printer configured")
    return p


def create_printer(db: Session, body: PrinterIn, ctx: RequestContext) -> PrinterConfiguration:
    _check_connection(body.connection_type, body.ip_address)
    p = PrinterConfiguration(**body.model_dump(exclude={"is_default"}), is_default=False)
    db.add(p)
    db.flush()
    if body.is_default:
        make_exclusive_default(db, PrinterConfiguration, p.id)
    audit(db, ctx, "PrinterConfiguration", p.id, "CREATE_PRINTER", ConfigChange(op="create", name=p.name))
    db.commit()
    db.refresh(p)
    return p


def update_printer(db: Session, printer_id: str, body: PrinterUpdateIn, ctx: RequestContext) -> PrinterConfiguration:
    p = get_printer(db, printer_id)
    data = body.model_dump(exclude_unset=True)
    make_default = data.pop("is_default", None)
    for k, v in data.items():
        setattr(p, k, v)
    _check_connection(p.connection_type, p.ip_address)
    if make_default:
        make_exclusive_default(db, PrinterConfiguration, p.id)
    elif make_default is False:
        p.is_default = False
    audit(db, ctx, "PrinterConfiguration", p.id, "UPDATE_PRINTER", ConfigChange(op="update", name=p.name))
    db.commit()
    db.refresh(p)
    return p


def set_default_printer(db: Session, printer_id: str, ctx: RequestContext) -> PrinterConfiguration:
    p = get_printer(db, printer_id)
    if not p.is_active:
        raise ValidationError("inactive printer cannot be the default", {"printer_id": printer_id})
    make_exclusive_default(db, PrinterConfiguration, p.id)
    audit(db, ctx, "PrinterConfiguration", p.id, "SET_DEFAULT_PRINTER", ConfigChange(op="set_default", name=p.name))
    db.commit()
    db.refresh(p)
    return p


def remove_printer(db: Session, printer_id: str, ctx: RequestContext) -> None:
    p = get_printer(db, printer_id)
    audit(db, ctx, "PrinterConfiguration", p.id, "DELETE_PRINTER", ConfigChange(op="delete", name=p.name))
    db.delete(p)
    db.commit()


def resolve_printer(db: Session, printer_id: str | None = None) -> PrinterOut:
    """Latest stored configuration; never cached between prints."""
    p = get_printer(db, printer_id) if printer_id else get_default_printer(db)
    return PrinterOut.model_validate(p)


# --- printing --------------------------------------------------------------

async def print_receipt(db: Session, order_id: str, printer_id: str | None = None) -> PrinterOut:
    order = orders.get_order(db, order_id)
    printer = resolve_printer(db, printer_id)
    # don't hold a database transaction open across the network wait
    db.commit()
    await print_to(printer, receipt_bytes(format_receipt(order, printer)))
    return printer


async def print_test_page(db: Session, printer_id: str) -> PrinterOut:
    printer = resolve_printer(db, printer_id)
    db.commit()
    await print_to(printer, receipt_bytes(format_test_page(printer)))
    return printer
