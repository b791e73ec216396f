from sqlalchemy import select
from sqlalchemy.orm import Session

from theatre_pos.errors import NotFound, ValidationError
from theatre_pos.models.core import Product
from theatre_pos.schemas.catalog import ProductIn, ProductUpdateIn
from theatre_pos.services.money import money


def get_product_by_id(db: Session, product_id: str) -> Product:
    p = db.get(Product, product_id)
    if not p or not p.is_active:
        raise NotFound("Product not found", {"product_id": product_id})
    return p


def list_products(db: Session, category: str | None = None, include_inactive: bool = False) -> list[Product]:
    q = select(Product).order_by(Product.name)
    if category:
        q = q.where(Product.category == category)
    if not include_inactive:
        q = q.where(Product.is_active.is_(True))
    return list(db.scalars(q))


def create_product(db: Session, body: ProductIn) -> Product:
    if body.price < 0:
        raise ValidationError("price must not be negative", {"price": str(body.price)})
    p = Product(**body.model_dump(exclude={"price"}), price=money(body.price))
    db.add(p)
    db.commit()
    return p


def get_product(db: Session, product_id: str) -> Product:
    """Any product, active or not."""
    p = db.get(Product, product_id)
    if not p:
        raise NotFound("Product not found", {"product_id": product_id})
    return p


def update_product(db: Session, product_id: str, body: ProductUpdateIn) -> Product:
    p = get_product(db, product_id)
    data = body.model_dump(exclude_unset=True)
    if "price" in data:
        if data["price"] is None or data["price"] < 0:
            raise ValidationError("price must not be negative", {"price": str(data["price"])})
        data["price"] = money(data["price"])
    # order lines keep their captured unit_price; nothing else to touch
    for k, v in data.items():
        setattr(p, k, v)
    db.commit()
    return p
