from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List

from theatre_pos.db import get_db
from theatre_pos.deps import require_auth, require_context
from theatre_pos.schemas.configuration import TaxConfigIn, TaxConfigOut, TaxConfigUpdateIn
from theatre_pos.services import configuration
from theatre_pos.util.audit import RequestContext

router = APIRouter(prefix="/settings", tags=["settings"])


@router.post("/tax", response_model=TaxConfigOut, status_code=201)
def create_tax(body: TaxConfigIn, db: Session = Depends(get_db), ctx: RequestContext = Depends(require_context)):
    return configuration.create_tax_config(db, body, ctx)


@router.get("/tax", response_model=List[TaxConfigOut])
def list_tax(db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    return configuration.list_tax_configs(db)


@router.get("/tax/default/current", response_model=TaxConfigOut)
def get_default_tax(db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    return configuration.get_default_tax_config(db)


@router.get("/tax/{tax_id}", response_model=TaxConfigOut)
def get_tax(tax_id: str, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    return configuration.get_tax_config(db, tax_id)


@router.patch("/tax/{tax_id}", response_model=TaxConfigOut)
def update_tax(tax_id: str, body: TaxConfigUpdateIn, db: Session = Depends(get_db),
               ctx: RequestContext = Depends(require_context)):
    # new rates apply to orders created afterwards; existing orders keep theirs
    return configuration.update_tax_config(db, tax_id, body, ctx)


@router.delete("/tax/{tax_id}", status_code=204)
def delete_tax(tax_id: str, db: Session = Depends(get_db), ctx: RequestContext = Depends(require_context)):
    configuration.remove_tax_config(db, tax_id, ctx)


@router.post("/tax/{tax_id}/default", response_model=TaxConfigOut)
def set_default_tax(tax_id: str, db: Session = Depends(get_db), ctx: RequestContext = Depends(require_context)):
    return configuration.set_default_tax_config(db, tax_id, ctx)
