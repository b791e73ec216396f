from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List

from theatre_pos.db import get_db
from theatre_pos.deps import require_auth, require_context
from theatre_pos.errors import PrinterError, UnsupportedConnection
from theatre_pos.schemas.audit import PrintRequest
from theatre_pos.schemas.configuration import PrinterIn, PrinterOut, PrinterUpdateIn
from theatre_pos.services import printer
from theatre_pos.util.audit import RequestContext, audit
from theatre_pos.util.log import get_logger

router = APIRouter(prefix="/printers", tags=["printers"])
logger = get_logger(__name__)


@router.post("/", response_model=PrinterOut, status_code=201)
def create_printer(body: PrinterIn, db: Session = Depends(get_db), ctx: RequestContext = Depends(require_context)):
    return printer.create_printer(db, body, ctx)


@router.get("/", response_model=List[PrinterOut])
def list_printers(db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    return printer.list_printers(db)


# declared before /{printer_id} so "default" is not taken for an id
@router.get("/default/current", response_model=PrinterOut)
def get_default_printer(db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    return printer.get_default_printer(db)


@router.get("/{printer_id}", response_model=PrinterOut)
def get_printer(printer_id: str, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    return printer.get_printer(db, printer_id)


@router.patch("/{printer_id}", response_model=PrinterOut)
def update_printer(printer_id: str, body: PrinterUpdateIn, db: Session = Depends(get_db),
                   ctx: RequestContext = Depends(require_context)):
    return printer.update_printer(db, printer_id, body, ctx)


@router.delete("/{printer_id}", status_code=204)
def delete_printer(printer_id: str, db: Session = Depends(get_db), ctx: RequestContext = Depends(require_context)):
    printer.remove_printer(db, printer_id, ctx)


@router.post("/{printer_id}/default", response_model=PrinterOut)
def set_default_printer(printer_id: str, db: Session = Depends(get_db),
                        ctx: RequestContext = Depends(require_context)):
    return printer.set_default_printer(db, printer_id, ctx)


@router.post("/{printer_id}/test")
async def send_test_page(printer_id: str, db: Session = Depends(get_db), ctx: RequestContext = Depends(require_context)):
    """
    Send the test page. Unknown printer is a 404 and a usb/bluetooth printer
    a 400; a transport failure comes back as `{"printed": false, "error": ...}`.
    """
    error = None
    try:
        await printer.print_test_page(db, printer_id)
    except UnsupportedConnection:
        raise
    except PrinterError as e:
        error = e.message
        logger.warning("Test page not printed", printer_id=printer_id, error=error)

    audit(db, ctx, "PrinterConfiguration", printer_id, "TEST_PRINT",
          PrintRequest(printer_id=printer_id, printed=error is None, error=error))
    db.commit()

    out = {"printed": error is None}
    if error:
        out["error"] = error
    return out
