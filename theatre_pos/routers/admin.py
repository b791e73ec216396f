from decimal import Decimal
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session
from theatre_pos.db import get_db
from theatre_pos.config import settings
from theatre_pos.util.security import hash_pw
from theatre_pos.models.core import Product, TaxConfiguration, User

router = APIRouter(prefix="/admin", tags=["admin"])

SAMPLE_PRODUCTS = [
    ("Popcorn (Large)", "snacks", Decimal("150.00")),
    ("Popcorn (Regular)", "snacks", Decimal("110.00")),
    ("Nachos with Cheese", "snacks", Decimal("180.00")),
    ("Cold Coffee", "beverages", Decimal("120.00")),
    ("Soft Drink", "beverages", Decimal("80.00")),
]

@router.post("/dev-bootstrap")
def dev_bootstrap(db: Session = Depends(get_db)):
    """Idempotent seed for local development: admin login, GST config and a few products."""
    if settings.APP_ENV != "dev":
        raise HTTPException(403, detail="Not allowed")

    u = db.scalars(select(User).where(User.email == "admin@example.com")).first()
    if not u:
        u = User(
            email="admin@example.com",
            first_name="Admin",
            last_name=None,
            pass_hash=hash_pw("admin"),
            active=True,
        )
        db.add(u); db.flush()

    tax = db.scalars(select(TaxConfiguration).where(TaxConfiguration.name == "GST")).first()
    if not tax:
        has_default = db.scalars(select(TaxConfiguration).where(TaxConfiguration.is_default.is_(True))).first()
        tax = TaxConfiguration(
            name="GST",
            rate=settings.TAX_RATE,
            description="Goods and Services Tax",
            is_default=has_default is None,
            is_active=True,
        )
        db.add(tax); db.flush()

    if not db.scalars(select(Product).limit(1)).first():
        for name, category, price in SAMPLE_PRODUCTS:
            db.add(Product(name=name, category=category, price=price, is_active=True))

    db.commit()
    return {
        "admin_email": u.email,
        "admin_password": "admin",
        "tax_config_id": tax.id,
    }
