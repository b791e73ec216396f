from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List, Optional

from theatre_pos.db import get_db
from theatre_pos.deps import require_auth
from theatre_pos.schemas.catalog import ProductIn, ProductOut, ProductUpdateIn
from theatre_pos.services import catalog

router = APIRouter(prefix="/products", tags=["products"])


@router.post("/", response_model=ProductOut, status_code=201)
def create_product(body: ProductIn, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    return catalog.create_product(db, body)


@router.get("/", response_model=List[ProductOut])
def list_products(
    category: Optional[str] = None,
    include_inactive: bool = False,
    db: Session = Depends(get_db),
    sub: str = Depends(require_auth),
):
    """Concession counter grid; inactive products only on request."""
    return catalog.list_products(db, category, include_inactive)


@router.get("/{product_id}", response_model=ProductOut)
def get_product(product_id: str, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    return catalog.get_product(db, product_id)


@router.patch("/{product_id}", response_model=ProductOut)
def update_product(product_id: str, body: ProductUpdateIn, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    # existing orders keep the unit price they were sold at
    return catalog.update_product(db, product_id, body)
