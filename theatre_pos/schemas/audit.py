from pydantic import BaseModel, Field
from typing import Annotated, Literal, Optional, Union


class Created(BaseModel):
    kind: Literal["created"] = "created"
    summary: dict[str, str | int | None]

class Updated(BaseModel):
    kind: Literal["updated"] = "updated"
    fields: dict[str, tuple[Optional[str], Optional[str]]]  # name -> (old, new)

class StatusChange(BaseModel):
    kind: Literal["status"] = "status"
    old: str
    new: str

class PaymentStatusChange(BaseModel):
    kind: Literal["payment_status"] = "payment_status"
    old: str
    new: str

class Cancellation(BaseModel):
    kind: Literal["cancel"] = "cancel"
    old_status: str
    reason: Optional[str] = None

class PaymentRecorded(BaseModel):
    kind: Literal["payment"] = "payment"
    payment_id: str
    method: str
    status: str
    amount: str

class Refund(BaseModel):
    kind: Literal["refund"] = "refund"
    payment_id: str
    amount: str
    reason: Optional[str] = None

class PrintRequest(BaseModel):
    kind: Literal["print"] = "print"
    printer_id: Optional[str] = None
    printed: bool
    error: Optional[str] = None

class ConfigChange(BaseModel):
    kind: Literal["config"] = "config"
    op: Literal["create", "update", "delete", "set_default"]
    name: str


AuditChange = Annotated[
    Union[
        Created, Updated, StatusChange, PaymentStatusChange, Cancellation,
        PaymentRecorded, Refund, PrintRequest, ConfigChange,
    ],
    Field(discriminator="kind"),
]
