from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from decimal import Decimal

from theatre_pos.models.core import PrinterType, ConnectionType


# ---------- printers ----------

class PrinterIn(BaseModel):
    name: str
    type: PrinterType = PrinterType.THERMAL
    connection_type: ConnectionType
    ip_address: Optional[str] = None
    port: Optional[int] = None
    device_path: Optional[str] = None
    paper_width: int = Field(default=80, ge=1)
    is_default: bool = False
    is_active: bool = True

class PrinterUpdateIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = None
    type: Optional[PrinterType] = None
    connection_type: Optional[ConnectionType] = None
    ip_address: Optional[str] = None
    port: Optional[int] = None
    device_path: Optional[str] = None
    paper_width: Optional[int] = Field(default=None, ge=1)
    is_default: Optional[bool] = None
    is_active: Optional[bool] = None

class PrinterOut(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str
    name: str
    type: PrinterType
    connection_type: ConnectionType
    ip_address: Optional[str] = None
    port: Optional[int] = None
    device_path: Optional[str] = None
    paper_width: int = 80
    is_default: bool = False
    is_active: bool = True


# ---------- tax ----------

class TaxConfigIn(BaseModel):
    name: str
    rate: Decimal
    description: Optional[str] = None
    is_default: bool = False
    is_active: bool = True

class TaxConfigUpdateIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = None
    rate: Optional[Decimal] = None
    description: Optional[str] = None
    is_default: Optional[bool] = None
    is_active: Optional[bool] = None

class TaxConfigOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    rate: Decimal
    description: Optional[str] = None
    is_default: bool
    is_active: bool
