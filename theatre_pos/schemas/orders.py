from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import Optional
from datetime import datetime
from decimal import Decimal

from theatre_pos.models.core import OrderStatus, OrderPaymentStatus, PaymentMethod, PaymentStatus

# ---------- input ----------

class OrderItemIn(BaseModel):
    product_id: str
    quantity: int
    notes: Optional[str] = None

class OrderIn(BaseModel):
    # no price fields on purpose: every line is re-priced from the catalog
    model_config = ConfigDict(extra="ignore")

    customer_name: Optional[str] = None
    customer_email: Optional[EmailStr] = None
    customer_phone: Optional[str] = None
    items: list[OrderItemIn] = Field(default_factory=list)
    discount_amount: Optional[Decimal] = None
    notes: Optional[str] = None

class OrderUpdateIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    customer_name: Optional[str] = None
    customer_email: Optional[EmailStr] = None
    customer_phone: Optional[str] = None
    notes: Optional[str] = None

class StatusIn(BaseModel):
    status: OrderStatus

class PaymentStatusIn(BaseModel):
    payment_status: OrderPaymentStatus

class CancelIn(BaseModel):
    reason: Optional[str] = None

class PrintIn(BaseModel):
    printer_id: Optional[str] = None

# ---------- snapshots ----------

class _Snapshot(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

class ProductSnapshot(_Snapshot):
    id: str
    name: str
    price: Decimal

class CashierOut(_Snapshot):
    id: str
    first_name: str
    last_name: Optional[str] = None

    @property
    def display_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name) if p)

class OrderItemOut(_Snapshot):
    id: str
    product_id: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    notes: Optional[str] = None
    product: ProductSnapshot

class OrderPaymentOut(_Snapshot):
    id: str
    payment_id: str
    amount: Decimal
    method: PaymentMethod
    status: PaymentStatus

class OrderOut(_Snapshot):
    id: str
    order_number: str
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    subtotal: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    discount_amount: Decimal
    total_amount: Decimal
    status: OrderStatus
    payment_status: OrderPaymentStatus
    notes: Optional[str] = None
    created_at: datetime
    created_by: Optional[CashierOut] = None
    items: list[OrderItemOut] = []
    payments: list[OrderPaymentOut] = []

class OrderPage(BaseModel):
    items: list[OrderOut]
    total: int
