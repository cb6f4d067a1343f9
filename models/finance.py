from pydantic import BaseModel, Field
from typing import Optional, List


# -----------------------------------------------------------------------------
# 1. Invoices (remote-authoritative, read-mostly)
# -----------------------------------------------------------------------------
class InvoiceModel(BaseModel):
    name: str
    customer: Optional[str] = None
    grand_total: float = 0.0
    outstanding_amount: float = 0.0
    status: Optional[str] = None
    due_date: Optional[str] = None
    posting_date: Optional[str] = None


class InvoiceLine(BaseModel):
    item_code: Optional[str] = None
    description: Optional[str] = None
    qty: float = Field(default=1, gt=0)
    rate: float = Field(ge=0)


class InvoiceCreate(BaseModel):
    # Presence is checked by the reconciliation layer so the 400 carries a readable message
    customer: Optional[str] = None
    items: List[InvoiceLine] = Field(default_factory=list)
    due_date: Optional[str] = None
    posting_date: Optional[str] = None


# -----------------------------------------------------------------------------
# 2. Payments
# -----------------------------------------------------------------------------
class MarkPaidRequest(BaseModel):
    amount: Optional[float] = Field(default=None, gt=0)
    mode_of_payment: Optional[str] = None
    reference_no: Optional[str] = None
    reference_date: Optional[str] = None


class PaymentModel(BaseModel):
    name: str
    party: Optional[str] = None
    paid_amount: float = 0.0
    posting_date: Optional[str] = None
    mode_of_payment: Optional[str] = None
