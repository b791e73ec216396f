# Importing the module registers tables with Base for create_all()
from .core import (  # noqa: F401
    # Enums
    OrderStatus, OrderPaymentStatus, PaymentMethod, PaymentStatus,
    PrinterType, ConnectionType,

    # Identity
    User,

    # Catalog
    Product,

    # Orders / payments
    Order, OrderItem, OrderSequence, Payment,

    # Configuration
    PrinterConfiguration, TaxConfiguration,

    # Audit
    AuditLog,
)

__all__ = [
    "OrderStatus", "OrderPaymentStatus", "PaymentMethod", "PaymentStatus",
    "PrinterType", "ConnectionType",
    "User",
    "Product",
    "Order", "OrderItem", "OrderSequence", "Payment",
    "PrinterConfiguration", "TaxConfiguration",
    "AuditLog",
]
