from pydantic import BaseModel, ConfigDict
from typing import Literal, Optional
from datetime import datetime
from decimal import Decimal

from theatre_pos.models.core import PaymentMethod, PaymentStatus

ManualMethodLiteral = Literal["cash", "card", "upi"]

# ---------- input ----------

class ManualPaymentIn(BaseModel):
    order_id: str
    method: ManualMethodLiteral
    print_receipt: bool = False
    printer_id: Optional[str] = None

class GatewayOrderIn(BaseModel):
    order_id: str

class GatewayVerifyIn(BaseModel):
    gateway_order_id: str
    gateway_payment_id: str
    signature: str
    order_id: str
    print_receipt: bool = False
    printer_id: Optional[str] = None

class GatewayFailureIn(BaseModel):
    order_id: str
    gateway_order_id: Optional[str] = None
    gateway_payment_id: Optional[str] = None
    reason: Optional[str] = None

class RefundIn(BaseModel):
    reason: Optional[str] = None

# ---------- output ----------

class PaymentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str
    payment_id: str
    order_id: str
    amount: Decimal
    method: PaymentMethod
    status: PaymentStatus
    gateway_order_id: Optional[str] = None
    gateway_payment_id: Optional[str] = None
    transaction_id: Optional[str] = None
    failure_reason: Optional[str] = None
    created_at: datetime

class EffectReport(BaseModel):
    kind: Literal["print_receipt", "send_confirmation"]
    ok: bool
    skipped: bool = False
    error: Optional[str] = None

class PaymentResult(BaseModel):
    """A recorded payment plus how each best-effort follow-up went."""
    payment: PaymentOut
    side_effects: list[EffectReport] = []

class GatewayOrderOut(BaseModel):
    gateway_order_id: str
    amount: int  # minor units
    currency: str
    key: str

class PaymentPage(BaseModel):
    items: list[PaymentOut]
    total: int
