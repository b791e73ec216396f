from datetime import datetime
from decimal import Decimal
from sqlalchemy import (
    String, ForeignKey, Boolean, Numeric, Enum, Text, Integer
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from enum import Enum as PyEnum
from theatre_pos.db import Base
from theatre_pos.models.common import IdMixin, TSMMixin, UTCDateTime

# ── Enums ───────────────────────────────────────────────────────────────────
class OrderStatus(str, PyEnum):
    DRAFT = "draft"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

class OrderPaymentStatus(str, PyEnum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"

class PaymentMethod(str, PyEnum):
    CASH = "cash"
    CARD = "card"
    UPI = "upi"
    GATEWAY = "gateway"

class PaymentStatus(str, PyEnum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"
    REFUNDED = "refunded"

class PrinterType(str, PyEnum):
    # informational only, formatting is identical
    THERMAL = "thermal"
    INKJET = "inkjet"
    LASER = "laser"

class ConnectionType(str, PyEnum):
    USB = "usb"
    NETWORK = "network"
    BLUETOOTH = "bluetooth"

# ── Identity ────────────────────────────────────────────────────────────────
class User(Base, IdMixin, TSMMixin):
    __tablename__ = "user"
    email: Mapped[str] = mapped_column(String(160), unique=True)
    first_name: Mapped[str] = mapped_column(String(80))
    last_name: Mapped[str | None] = mapped_column(String(80))
    pass_hash: Mapped[str] = mapped_column(String(200))
    active: Mapped[bool] = mapped_column(Boolean, default=True)

# ── Catalog ─────────────────────────────────────────────────────────────────
class Product(Base, IdMixin, TSMMixin):
    __tablename__ = "product"
    name: Mapped[str] = mapped_column(String(160))
    description: Mapped[str | None] = mapped_column(Text)
    category: Mapped[str | None] = mapped_column(String(80))
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

# ── Orders ──────────────────────────────────────────────────────────────────
class Order(Base, IdMixin, TSMMixin):
    __tablename__ = "order"
    order_number: Mapped[str] = mapped_column(String(20), unique=True)
    customer_name: Mapped[str | None] = mapped_column(String(160))
    customer_email: Mapped[str | None] = mapped_column(String(160))
    customer_phone: Mapped[str | None] = mapped_column(String(20))
    subtotal: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    tax_rate: Mapped[Decimal] = mapped_column(Numeric(5, 4))  # captured at creation
    tax_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    discount_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=0)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    status: Mapped[OrderStatus] = mapped_column(Enum(OrderStatus), default=OrderStatus.DRAFT)
    payment_status: Mapped[OrderPaymentStatus] = mapped_column(
        Enum(OrderPaymentStatus), default=OrderPaymentStatus.PENDING
    )
    notes: Mapped[str | None] = mapped_column(Text)
    created_by_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("user.id"))  # cashier

    items: Mapped[list["OrderItem"]] = relationship(back_populates="order", order_by="OrderItem.position")
    payments: Mapped[list["Payment"]] = relationship(back_populates="order", order_by="Payment.created_at")
    created_by: Mapped[User | None] = relationship()

class OrderItem(Base, IdMixin, TSMMixin):
    __tablename__ = "order_item"
    order_id: Mapped[str] = mapped_column(String(36), ForeignKey("order.id"))
    product_id: Mapped[str] = mapped_column(String(36), ForeignKey("product.id"))
    position: Mapped[int] = mapped_column(Integer, default=0)  # cart order
    quantity: Mapped[int] = mapped_column(Integer)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(10, 2))  # catalog price at creation
    total_price: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    notes: Mapped[str | None] = mapped_column(Text)

    order: Mapped[Order] = relationship(back_populates="items")
    product: Mapped[Product] = relationship()

class OrderSequence(Base, TSMMixin):
    __tablename__ = "order_sequence"
    day: Mapped[str] = mapped_column(String(8), primary_key=True)  # YYYYMMDD
    last_seq: Mapped[int] = mapped_column(Integer, default=0)

# ── Payments ────────────────────────────────────────────────────────────────
class Payment(Base, IdMixin, TSMMixin):
    __tablename__ = "payment"
    payment_id: Mapped[str] = mapped_column(String(40), unique=True)
    order_id: Mapped[str] = mapped_column(String(36), ForeignKey("order.id"))
    gateway_order_id: Mapped[str | None] = mapped_column(String(80))
    gateway_payment_id: Mapped[str | None] = mapped_column(String(80))
    gateway_signature: Mapped[str | None] = mapped_column(String(200))
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    method: Mapped[PaymentMethod] = mapped_column(Enum(PaymentMethod))
    status: Mapped[PaymentStatus] = mapped_column(Enum(PaymentStatus), default=PaymentStatus.PENDING)
    transaction_id: Mapped[str | None] = mapped_column(String(120))
    failure_reason: Mapped[str | None] = mapped_column(Text)
    refund_requested_at: Mapped[datetime | None] = mapped_column(UTCDateTime)  # gateway refund in flight

    order: Mapped[Order] = relationship(back_populates="payments")

# ── Configuration ───────────────────────────────────────────────────────────
class PrinterConfiguration(Base, IdMixin, TSMMixin):
    __tablename__ = "printer_configuration"
    name: Mapped[str] = mapped_column(String(120))
    type: Mapped[PrinterType] = mapped_column(Enum(PrinterType), default=PrinterType.THERMAL)
    connection_type: Mapped[ConnectionType] = mapped_column(Enum(ConnectionType))
    ip_address: Mapped[str | None] = mapped_column(String(120))  # required for network printers
    port: Mapped[int | None] = mapped_column(Integer)
    device_path: Mapped[str | None] = mapped_column(String(200))
    paper_width: Mapped[int] = mapped_column(Integer, default=80)  # character columns
    is_default: Mapped[bool] = mapped_column(Boolean, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

class TaxConfiguration(Base, IdMixin, TSMMixin):
    __tablename__ = "tax_configuration"
    name: Mapped[str] = mapped_column(String(60), unique=True)
    rate: Mapped[Decimal] = mapped_column(Numeric(5, 4))  # fraction, 0.18 == 18%
    description: Mapped[str | None] = mapped_column(Text)
    is_default: Mapped[bool] = mapped_column(Boolean, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

# ── Audit ───────────────────────────────────────────────────────────────────
class AuditLog(Base, IdMixin, TSMMixin):
    __tablename__ = "audit_log"
    actor_user_id: Mapped[str | None] = mapped_column(String(36))
    entity: Mapped[str] = mapped_column(String(60))
    entity_id: Mapped[str] = mapped_column(String(36))
    action: Mapped[str] = mapped_column(String(60))
    reason: Mapped[str | None] = mapped_column(Text)
    changes: Mapped[str | None] = mapped_column(Text)  # JSON of one audit change model
    ip_address: Mapped[str | None] = mapped_column(String(64))
    user_agent: Mapped[str | None] = mapped_column(String(300))
    request_id: Mapped[str | None] = mapped_column(String(64))
