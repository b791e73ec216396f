from pydantic import BaseModel, ConfigDict
from typing import Optional
from decimal import Decimal


class ProductIn(BaseModel):
    name: str
    price: Decimal
    description: Optional[str] = None
    category: Optional[str] = None
    is_active: bool = True

class ProductUpdateIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = None
    price: Optional[Decimal] = None
    description: Optional[str] = None
    category: Optional[str] = None
    is_active: Optional[bool] = None

class ProductOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    price: Decimal
    description: Optional[str] = None
    category: Optional[str] = None
    is_active: bool
