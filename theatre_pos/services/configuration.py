from decimal import Decimal
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from theatre_pos.config import settings
from theatre_pos.errors import NotFound, ValidationError
from theatre_pos.models.core import TaxConfiguration
from theatre_pos.schemas.audit import ConfigChange
from theatre_pos.schemas.configuration import TaxConfigIn, TaxConfigUpdateIn
from theatre_pos.util.audit import RequestContext, audit
from theatre_pos.util.log import get_logger

logger = get_logger(__name__)


def make_exclusive_default(db: Session, model, target_id: str) -> None:
    """
    Clear every other default and set `target_id`, inside the caller's
    transaction. Both statements commit together, so readers see either the
    old default or the new one, never zero or two.
    """
    db.execute(
        update(model)
        .where(model.id != target_id, model.is_default.is_(True))
        .values(is_default=False)
    )
    db.execute(update(model).where(model.id == target_id).values(is_default=True))


# ---------- tax ----------

def _check_rate(rate) -> Decimal:
    if rate is None or rate < 0 or rate > 1:
        raise ValidationError("tax rate must be a fraction between 0 and 1", {"rate": str(rate)})
    return Decimal(rate)


def current_tax_rate(db: Session) -> Decimal:
    """Default active TaxConfiguration rate, else the configured flat rate."""
    row = db.scalars(
        select(TaxConfiguration).where(TaxConfiguration.is_default.is_(True), TaxConfiguration.is_active.is_(True))
    ).first()
    return Decimal(row.rate) if row else settings.TAX_RATE


def get_tax_config(db: Session, tax_id: str) -> TaxConfiguration:
    t = db.get(TaxConfiguration, tax_id)
    if not t:
        raise NotFound("Tax configuration not found", {"tax_id": tax_id})
    return t


def list_tax_configs(db: Session) -> list[TaxConfiguration]:
    return list(db.scalars(
        select(TaxConfiguration).where(TaxConfiguration.is_active.is_(True)).order_by(TaxConfiguration.name)
    ))


def get_default_tax_config(db: Session) -> TaxConfiguration:
    t = db.scalars(
        select(TaxConfiguration).where(TaxConfiguration.is_default.is_(True), TaxConfiguration.is_active.is_(True))
    ).first()
    if not t:
        raise NotFound("No default tax configuration found")
    return t


def create_tax_config(db: Session, body: TaxConfigIn, ctx: RequestContext) -> TaxConfiguration:
    _check_rate(body.rate)
    t = TaxConfiguration(**body.model_dump(exclude={"is_default"}), is_default=False)
    db.add(t)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        raise ValidationError("tax configuration name already exists", {"name": body.name})
    if body.is_default:
        make_exclusive_default(db, TaxConfiguration, t.id)
    audit(db, ctx, "TaxConfiguration", t.id, "CREATE_TAX_CONFIG", ConfigChange(op="create", name=t.name))
    db.commit()
    db.refresh(t)
    return t


def update_tax_config(db: Session, tax_id: str, body: TaxConfigUpdateIn, ctx: RequestContext) -> TaxConfiguration:
    t = get_tax_config(db, tax_id)
    data = body.model_dump(exclude_unset=True)
    if "rate" in data:
        _check_rate(data["rate"])
    make_default = data.pop("is_default", None)
    for k, v in data.items():
        setattr(t, k, v)
    if make_default:
        make_exclusive_default(db, TaxConfiguration, t.id)
    elif make_default is False:
        t.is_default = False
    audit(db, ctx, "TaxConfiguration", t.id, "UPDATE_TAX_CONFIG", ConfigChange(op="update", name=t.name))
    db.commit()
    db.refresh(t)
    return t


def set_default_tax_config(db: Session, tax_id: str, ctx: RequestContext) -> TaxConfiguration:
    t = get_tax_config(db, tax_id)
    if not t.is_active:
        raise ValidationError("inactive tax configuration cannot be the default", {"tax_id": tax_id})
    make_exclusive_default(db, TaxConfiguration, t.id)
    audit(db, ctx, "TaxConfiguration", t.id, "SET_DEFAULT_TAX_CONFIG", ConfigChange(op="set_default", name=t.name))
    db.commit()
    db.refresh(t)
    logger.info("Default tax configuration changed", tax_id=t.id, rate=str(t.rate))
    return t


def remove_tax_config(db: Session, tax_id: str, ctx: RequestContext) -> None:
    t = get_tax_config(db, tax_id)
    audit(db, ctx, "TaxConfiguration", t.id, "DELETE_TAX_CONFIG", ConfigChange(op="delete", name=t.name))
    db.delete(t)
    db.commit()
