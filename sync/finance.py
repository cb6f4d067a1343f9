"""
Finance lookups and the two finance writes (draft invoice, mark paid).

Invoices and payments are remote-authoritative: there is no local copy and no
fallback. Every ERP failure is raised to the caller.
"""

from datetime import date
from typing import List, Optional
from urllib.parse import urlencode

from constants import Doctypes, InvoiceStatus
from erp.errors import NotFoundError, RemoteError, ValidationError
from erp.gateway import list_many
from logging_config import get_logger
from models.erp import (
    ErpAccount,
    ErpEvent,
    ErpFile,
    ErpItem,
    ErpPaymentEntry,
    ErpPurchaseInvoice,
    ErpSalesInvoice,
    parse_doc,
    parse_docs,
)
from models.finance import InvoiceCreate, InvoiceModel, MarkPaidRequest, PaymentModel
from sync.base import require_gateway

logger = get_logger("sync.finance")

INVOICE_FIELDS = ["name", "customer", "grand_total", "outstanding_amount", "status", "due_date", "posting_date"]
DEFAULT_MODE_OF_PAYMENT = "Transferencia Bancaria"
DEFAULT_PAID_TO_ACCOUNT = "1110 - Banco - LC"
DEFAULT_CURRENCY = "USD"
PRINT_FORMAT = "Standard"
PDF_METHODS = [
    "frappe.utils.print_format.download_pdf",
    "frappe.utils.weasyprint.download_pdf",
]


class PdfUnavailable(RemoteError):
    """Both print methods failed; `fallback_url` points at the ERP print view."""

    def __init__(self, message: str, fallback_url: str):
        super().__init__(message, 502)
        self.fallback_url = fallback_url


def summarize(invoices: List[dict], payments: List[dict], expenses: Optional[List[dict]] = None) -> dict:
    invoiced = sum(i.get("grand_total") or 0 for i in invoices)
    outstanding = sum(i.get("outstanding_amount") or 0 for i in invoices)
    summary = {
        "invoiced": round(invoiced, 2),
        "outstanding": round(outstanding, 2),
        "collected": round(sum(p.get("paid_amount") or 0 for p in payments), 2),
        "overdue": sum(1 for i in invoices if i.get("status") == InvoiceStatus.OVERDUE),
    }
    if expenses is not None:
        spent = sum(e.get("grand_total") or 0 for e in expenses)
        summary["expenses"] = round(spent, 2)
        summary["net"] = round(invoiced - spent, 2)
    return summary


class FinanceService:
    def __init__(self, gateway):
        self.gateway = gateway

    @property
    def erp(self):
        return require_gateway(self.gateway)

    # --- Invoices ---

    async def list_invoices(self, customer: Optional[str] = None, limit: int = 50) -> List[dict]:
        result = await self.erp.list(
            Doctypes.SALES_INVOICE,
            filters=[["customer", "=", customer]] if customer else None,
            fields=INVOICE_FIELDS,
            order_by="posting_date desc",
            limit=limit,
        )
        return [InvoiceModel(**i.model_dump()).model_dump() for i in parse_docs(ErpSalesInvoice, result.unwrap())]

    async def _default_item(self) -> str:
        result = await self.erp.list(
            Doctypes.ITEM,
            filters=[["is_sales_item", "=", 1]],
            fields=["name", "item_name"],
            limit=1,
        )
        items = parse_docs(ErpItem, result.unwrap())
        if not items:
            raise ValidationError("No sales items are configured in ERPNext. Create a 'Servicios' item first.")
        return items[0].name

    async def create_invoice(self, payload: InvoiceCreate) -> dict:
        if not payload.customer:
            raise ValidationError("Customer is required")
        if not payload.items:
            raise ValidationError("At least one item is required")
        if not payload.due_date:
            raise ValidationError("Due date is required")

        default_item = None
        if any(not line.item_code for line in payload.items):
            default_item = await self._default_item()

        doc = {
            "customer": payload.customer,
            "posting_date": payload.posting_date or date.today().isoformat(),
            "due_date": payload.due_date,
            "items": [
                {
                    "item_code": line.item_code or default_item,
                    "description": line.description,
                    "qty": line.qty,
                    "rate": line.rate,
                }
                for line in payload.items
            ],
            "docstatus": 0,
        }
        invoice = (await self.erp.create(Doctypes.SALES_INVOICE, doc)).unwrap()
        logger.info(f"Draft invoice {invoice['name']} created", extra={"data": {"customer": payload.customer}})
        return invoice

    async def _paid_to_account(self) -> str:
        result = await self.erp.list(
            Doctypes.ACCOUNT,
            filters=[["account_type", "in", ["Bank", "Cash"]], ["is_group", "=", 0]],
            fields=["name"],
            limit=1,
        )
        accounts = parse_docs(ErpAccount, result.data) if result.ok else []
        if not accounts:
            logger.warning(f"No Bank/Cash account found, using {DEFAULT_PAID_TO_ACCOUNT}")
            return DEFAULT_PAID_TO_ACCOUNT
        return accounts[0].name

    async def mark_paid(self, invoice_id: str, payload: Optional[MarkPaidRequest] = None) -> dict:
        payload = payload or MarkPaidRequest()
        result = await self.erp.get(Doctypes.SALES_INVOICE, invoice_id)
        if result.not_found:
            raise NotFoundError(f"Invoice {invoice_id} not found")
        invoice = parse_doc(ErpSalesInvoice, result.unwrap())
        if invoice is None:
            raise NotFoundError(f"Invoice {invoice_id} not found")

        if invoice.status == InvoiceStatus.PAID:
            return {"success": True, "status": InvoiceStatus.PAID, "message": "Invoice was already paid"}

        amount = payload.amount or invoice.outstanding_amount or invoice.grand_total
        currency = invoice.currency or DEFAULT_CURRENCY
        entry = {
            "payment_type": "Receive",
            "party_type": "Customer",
            "party": invoice.customer,
            "posting_date": date.today().isoformat(),
            "paid_amount": amount,
            "received_amount": amount,
            "source_exchange_rate": 1,
            "target_exchange_rate": 1,
            "paid_from": invoice.debit_to,
            "paid_to": await self._paid_to_account(),
            "paid_from_account_currency": currency,
            "paid_to_account_currency": currency,
            "mode_of_payment": payload.mode_of_payment or DEFAULT_MODE_OF_PAYMENT,
            "references": [{
                "reference_doctype": Doctypes.SALES_INVOICE,
                "reference_name": invoice_id,
                "total_amount": invoice.grand_total,
                "outstanding_amount": invoice.outstanding_amount or invoice.grand_total,
                "allocated_amount": amount,
            }],
        }
        if payload.reference_no:
            entry["reference_no"] = payload.reference_no
            entry["reference_date"] = payload.reference_date or date.today().isoformat()

        payment = (await self.erp.create(Doctypes.PAYMENT_ENTRY, entry)).unwrap()
        submit = await self.erp.update(Doctypes.PAYMENT_ENTRY, payment["name"], {"docstatus": 1})
        if not submit.ok:
            logger.warning(
                f"Payment Entry {payment['name']} created but not submitted",
                extra={"data": {"invoice": invoice_id, "error": submit.error.message}}
            )
            return {
                "success": True,
                "status": InvoiceStatus.DRAFT,
                "payment_entry": payment["name"],
                "message": f"Payment created as draft: {submit.error.message}",
            }

        logger.info(f"Invoice {invoice_id} paid", extra={"data": {"payment_entry": payment["name"], "amount": amount}})
        return {
            "success": True,
            "status": InvoiceStatus.PAID,
            "payment_entry": payment["name"],
            "amount": amount,
        }

    async def invoice_pdf(self, invoice_id: str) -> bytes:
        gateway = self.erp
        errors = []
        for method in PDF_METHODS:
            result = await gateway.download(method, {
                "doctype": Doctypes.SALES_INVOICE,
                "name": invoice_id,
                "format": PRINT_FORMAT,
                "no_letterhead": 0,
            })
            if result.ok and result.data:
                return result.data
            errors.append(result.error.message if result.error else "empty body")

        query = urlencode({"doctype": Doctypes.SALES_INVOICE, "name": invoice_id, "format": PRINT_FORMAT})
        raise PdfUnavailable(
            f"PDF could not be generated: {'; '.join(errors)}",
            f"{gateway.base_url}/printview?{query}",
        )

    # --- Aggregates ---

    async def client_finance(self, customer: str) -> dict:
        if not customer:
            raise ValidationError("customer is required")
        invoices, payments = await list_many(self.erp, [
            {
                "doctype": Doctypes.SALES_INVOICE,
                "filters": [[Doctypes.SALES_INVOICE, "customer", "=", customer]],
                "fields": INVOICE_FIELDS + ["currency"],
                "order_by": "posting_date desc",
            },
            {
                "doctype": Doctypes.PAYMENT_ENTRY,
                "filters": [
                    [Doctypes.PAYMENT_ENTRY, "party", "=", customer],
                    [Doctypes.PAYMENT_ENTRY, "payment_type", "=", "Receive"],
                ],
                "fields": ["name", "party", "paid_amount", "posting_date", "mode_of_payment"],
                "order_by": "posting_date desc",
            },
        ])
        invoices = [i.model_dump(exclude={"doctype"}) for i in parse_docs(ErpSalesInvoice, invoices.unwrap())]
        payments = [PaymentModel(**p.model_dump()).model_dump() for p in parse_docs(ErpPaymentEntry, payments.unwrap())]
        return {"invoices": invoices, "payments": payments, "summary": summarize(invoices, payments)}

    async def finance_global(self) -> dict:
        invoices, expenses, payments = await list_many(self.erp, [
            {
                "doctype": Doctypes.SALES_INVOICE,
                "fields": INVOICE_FIELDS,
                "order_by": "posting_date desc",
                "limit": 200,
            },
            {
                "doctype": Doctypes.PURCHASE_INVOICE,
                "fields": ["name", "supplier", "grand_total", "status", "posting_date"],
                "order_by": "posting_date desc",
                "limit": 100,
            },
            {
                "doctype": Doctypes.PAYMENT_ENTRY,
                "fields": ["name", "party", "paid_amount", "payment_type", "posting_date"],
                "order_by": "posting_date desc",
                "limit": 200,
            },
        ])
        invoices = [InvoiceModel(**i.model_dump()).model_dump() for i in parse_docs(ErpSalesInvoice, invoices.unwrap())]
        expenses = [e.model_dump(exclude={"doctype"}) for e in parse_docs(ErpPurchaseInvoice, expenses.unwrap())]
        payments = [p.model_dump(exclude={"doctype"}) for p in parse_docs(ErpPaymentEntry, payments.unwrap())]
        received = [p for p in payments if p.get("payment_type") == "Receive"]
        return {
            "invoices": invoices,
            "expenses": expenses,
            "payments": payments,
            "summary": summarize(invoices, received, expenses),
        }

    # --- Lookups ---

    async def events(self) -> List[dict]:
        result = await self.erp.list(
            Doctypes.EVENT,
            fields=["name", "subject", "starts_on", "ends_on", "event_type", "description"],
            order_by="starts_on desc",
            limit=100,
        )
        return [e.model_dump(exclude={"doctype", "modified"}) for e in parse_docs(ErpEvent, result.unwrap())]

    async def client_documents(self, client_name: str) -> List[dict]:
        if not client_name:
            raise ValidationError("clientName is required")
        gateway = self.erp
        result = await gateway.list(
            Doctypes.FILE,
            filters=[[Doctypes.FILE, "attached_to_name", "=", client_name]],
            fields=["name", "file_name", "file_url", "is_private", "creation"],
            order_by="creation desc",
        )
        files = []
        for f in parse_docs(ErpFile, result.unwrap()):
            url = f.file_url or ""
            if url and not url.startswith("http"):
                url = f"{gateway.base_url}{url}"
            files.append({"id": f.name, "name": f.file_name, "url": url, "date": f.creation})
        return files

    async def erp_status(self) -> dict:
        if self.gateway is None:
            return {"connected": False, "configured": False, "error": "ERPNext is not configured"}
        result = await self.gateway.call_method("frappe.auth.get_logged_user")
        if not result.ok:
            return {
                "connected": False,
                "configured": True,
                "url": self.gateway.base_url,
                "error": result.error.message,
                "statusCode": result.status_code,
            }
        return {"connected": True, "configured": True, "url": self.gateway.base_url, "user": result.data}
