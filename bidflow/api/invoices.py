"""
Invoice API endpoints.

`router` holds the project and contract scoped routes (/invoices), while
`detail_router` addresses a single invoice (/invoice).
"""
import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from bidflow.database import get_db
from bidflow.models.invoice import Invoice
from bidflow.services import invoice_generator
from bidflow.utils.validators import FiniteFloat

router = APIRouter()
detail_router = APIRouter()


# --- Pydantic Schemas ---

class InvoiceBatchCreate(BaseModel):
    contract_id: uuid.UUID
    payment_term: Optional[str] = None


class InvoiceStatusUpdate(BaseModel):
    status: str


class InvoiceUpdate(BaseModel):
    invoice_date: Optional[date] = None
    payment_due_date: Optional[date] = None
    paid_date: Optional[date] = None
    payment_term: Optional[str] = None
    retention: Optional[FiniteFloat] = None
    remarks: Optional[str] = None


def invoice_to_dict(invoice: Invoice) -> dict:
    period = invoice.period
    return {
        "id": str(invoice.id),
        "project_id": str(invoice.project_id),
        "period_id": str(invoice.period_id) if invoice.period_id else None,
        "status": invoice.status.value,
        "invoice_date": invoice.invoice_date.isoformat() if invoice.invoice_date else None,
        "payment_due_date": invoice.payment_due_date.isoformat() if invoice.payment_due_date else None,
        "paid_date": invoice.paid_date.isoformat() if invoice.paid_date else None,
        "payment_term": invoice.payment_term,
        "retention": invoice.retention,
        "remarks": invoice.remarks,
        "created_at": invoice.created_at.isoformat() if invoice.created_at else None,
        "updated_at": invoice.updated_at.isoformat() if invoice.updated_at else None,
        "period": {
            "period_number": period.period_number,
            "amount_period": period.amount_period,
            "delivered_within": period.delivered_within,
        } if period else None,
    }


# --- Project / contract scoped ---

@router.post("/{project_id}", status_code=201)
async def create_invoices(
    project_id: uuid.UUID,
    data: InvoiceBatchCreate,
    db: AsyncSession = Depends(get_db),
):
    """Create one draft invoice for every contract period not yet invoiced"""
    invoices = await invoice_generator.create_for_all_periods(
        db, project_id, data.contract_id, data.payment_term
    )
    return {
        "message": f"{len(invoices)} invoices created",
        "invoice_ids": [str(invoice.id) for invoice in invoices],
    }


@router.get("/{project_id}")
async def list_project_invoices(project_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    invoices = await invoice_generator.list_project_invoices(db, project_id)
    return {"invoices": [invoice_to_dict(invoice) for invoice in invoices]}


@router.get("/contract/{contract_id}/status")
async def contract_invoice_status(contract_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    return await invoice_generator.contract_invoice_status(db, contract_id)


# --- Single invoice ---

@detail_router.get("/{invoice_id}")
async def get_invoice(invoice_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    return invoice_to_dict(await invoice_generator.get_invoice(db, invoice_id))


@detail_router.put("/{invoice_id}")
async def update_invoice(invoice_id: uuid.UUID, data: InvoiceUpdate, db: AsyncSession = Depends(get_db)):
    """Partial update; only the fields present in the body are changed"""
    fields = data.model_dump(exclude_unset=True)
    await invoice_generator.update_invoice(db, invoice_id, fields)
    return invoice_to_dict(await invoice_generator.get_invoice(db, invoice_id))


@detail_router.put("/{invoice_id}/status")
async def update_invoice_status(
    invoice_id: uuid.UUID,
    data: InvoiceStatusUpdate,
    db: AsyncSession = Depends(get_db),
):
    await invoice_generator.update_invoice_status(db, invoice_id, data.status)
    return invoice_to_dict(await invoice_generator.get_invoice(db, invoice_id))


@detail_router.delete("/{invoice_id}")
async def delete_invoice(invoice_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    await invoice_generator.delete_invoice(db, invoice_id)
    return {"message": "invoice deleted"}
