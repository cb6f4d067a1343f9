# models/erp.py
# One variant per ERPNext doctype we read. Rows are validated at the gateway
# boundary; anything that does not fit is logged and dropped.
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from typing import Optional, Literal, List, Any, Type, TypeVar
from logging_config import get_logger

logger = get_logger("erp.models")


class ErpDoc(BaseModel):
    name: str
    creation: Optional[str] = None
    modified: Optional[str] = None

    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore"
    )


class ErpTask(ErpDoc):
    doctype: Literal["Task"] = "Task"
    subject: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    exp_end_date: Optional[str] = None
    customer: Optional[str] = None
    project: Optional[str] = None
    assign: Optional[Any] = Field(default=None, alias="_assign")


class ErpCustomer(ErpDoc):
    doctype: Literal["Customer"] = "Customer"
    customer_name: Optional[str] = None
    customer_type: Optional[str] = None
    industry: Optional[str] = None
    mobile_no: Optional[str] = None


class ErpLead(ErpDoc):
    doctype: Literal["Lead"] = "Lead"
    lead_name: Optional[str] = None
    title: Optional[str] = None
    mobile_no: Optional[str] = None
    email_id: Optional[str] = None
    status: Optional[str] = None


class ErpCommunication(ErpDoc):
    doctype: Literal["Communication"] = "Communication"
    subject: Optional[str] = None
    content: Optional[str] = None
    communication_date: Optional[str] = None
    sender: Optional[str] = None


class ErpComment(ErpDoc):
    doctype: Literal["Comment"] = "Comment"
    content: Optional[str] = None
    comment_type: Optional[str] = None
    reference_doctype: Optional[str] = None
    reference_name: Optional[str] = None
    owner: Optional[str] = None
    comment_email: Optional[str] = None


class ErpSalesInvoice(ErpDoc):
    doctype: Literal["Sales Invoice"] = "Sales Invoice"
    customer: Optional[str] = None
    grand_total: float = 0.0
    outstanding_amount: float = 0.0
    status: Optional[str] = None
    due_date: Optional[str] = None
    posting_date: Optional[str] = None
    debit_to: Optional[str] = None
    currency: Optional[str] = None
    company: Optional[str] = None


class ErpPurchaseInvoice(ErpDoc):
    doctype: Literal["Purchase Invoice"] = "Purchase Invoice"
    supplier: Optional[str] = None
    grand_total: float = 0.0
    outstanding_amount: float = 0.0
    status: Optional[str] = None
    posting_date: Optional[str] = None


class ErpPaymentEntry(ErpDoc):
    doctype: Literal["Payment Entry"] = "Payment Entry"
    party: Optional[str] = None
    party_type: Optional[str] = None
    payment_type: Optional[str] = None
    paid_amount: float = 0.0
    posting_date: Optional[str] = None
    mode_of_payment: Optional[str] = None
    docstatus: Optional[int] = None


class ErpFile(ErpDoc):
    doctype: Literal["File"] = "File"
    file_name: Optional[str] = None
    file_url: Optional[str] = None
    attached_to_name: Optional[str] = None
    is_private: Optional[int] = None


class ErpEvent(ErpDoc):
    doctype: Literal["Event"] = "Event"
    subject: Optional[str] = None
    starts_on: Optional[str] = None
    ends_on: Optional[str] = None
    event_type: Optional[str] = None
    description: Optional[str] = None


class ErpAccount(ErpDoc):
    doctype: Literal["Account"] = "Account"
    account_type: Optional[str] = None
    is_group: Optional[int] = None


class ErpItem(ErpDoc):
    doctype: Literal["Item"] = "Item"
    item_name: Optional[str] = None
    is_sales_item: Optional[int] = None


DocT = TypeVar("DocT", bound=ErpDoc)


def parse_doc(model: Type[DocT], row: Any) -> Optional[DocT]:
    try:
        return model.model_validate(row)
    except ValidationError as e:
        logger.warning(
            f"Dropping malformed {model.__name__} row",
            extra={"data": {"errors": e.errors(include_url=False), "row": str(row)[:200]}}
        )
        return None


def parse_docs(model: Type[DocT], rows: Any) -> List[DocT]:
    if not isinstance(rows, list):
        return []
    parsed = (parse_doc(model, row) for row in rows)
    return [doc for doc in parsed if doc is not None]
