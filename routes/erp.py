from fastapi import APIRouter, Depends, Query, Response, status
from fastapi.responses import JSONResponse
from typing import Optional
from constants import Roles
from models.finance import InvoiceCreate, MarkPaidRequest
from routes.deps import get_finance, get_session, require_role
from sync.finance import FinanceService, PdfUnavailable
from logging_config import get_logger

logger = get_logger("erp")

router = APIRouter(prefix="/api/erp", tags=["ERP"], dependencies=[Depends(get_session)])


# -----------------------------------------------------------------------------
# Invoices
# -----------------------------------------------------------------------------
@router.get("/invoices")
async def list_invoices(
    customer: Optional[str] = None,
    limit: int = Query(50, ge=1, le=500),
    finance: FinanceService = Depends(get_finance),
):
    return {"invoices": await finance.list_invoices(customer, limit)}


@router.post("/invoices", status_code=status.HTTP_201_CREATED)
async def create_invoice(payload: InvoiceCreate, finance: FinanceService = Depends(get_finance)):
    """Draft Sales Invoice. Lines without item_code use the first sales item."""
    invoice = await finance.create_invoice(payload)
    return {
        "success": True,
        "invoice": invoice,
        "invoice_name": invoice["name"],
        "message": f"Invoice {invoice['name']} created",
    }


@router.post("/invoices/{invoice_id}/pay")
async def mark_paid(invoice_id: str, payload: Optional[MarkPaidRequest] = None, finance: FinanceService = Depends(get_finance)):
    return await finance.mark_paid(invoice_id, payload)


@router.get("/invoices/{invoice_id}/pdf")
async def invoice_pdf(invoice_id: str, finance: FinanceService = Depends(get_finance)):
    try:
        pdf = await finance.invoice_pdf(invoice_id)
    except PdfUnavailable as e:
        logger.warning(f"PDF unavailable for {invoice_id}", extra={"data": {"error": e.message}})
        return JSONResponse(
            status_code=502,
            content={"detail": e.message, "source": "erpnext-error", "fallback_url": e.fallback_url},
        )
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'inline; filename="{invoice_id}.pdf"'},
    )


# -----------------------------------------------------------------------------
# Aggregates and lookups
# -----------------------------------------------------------------------------
@router.get("/client-finance")
async def client_finance(customer: str = Query(..., min_length=1), finance: FinanceService = Depends(get_finance)):
    return await finance.client_finance(customer)


@router.get("/finance-global")
async def finance_global(finance: FinanceService = Depends(get_finance)):
    return await finance.finance_global()


@router.get("/events")
async def list_events(finance: FinanceService = Depends(get_finance)):
    return {"events": await finance.events()}


@router.get("/client-documents")
async def client_documents(client_name: str = Query(..., alias="clientName", min_length=1), finance: FinanceService = Depends(get_finance)):
    return {"files": await finance.client_documents(client_name)}


@router.get("/status", dependencies=[Depends(require_role(Roles.ADMIN))])
async def erp_status(finance: FinanceService = Depends(get_finance)):
    """Connectivity check against ERPNext (admin only)"""
    return await finance.erp_status()
