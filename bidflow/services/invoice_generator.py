"""
Invoice generator - one draft invoice per contract period, then a
draft -> approved lifecycle with partial field edits.
"""
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from bidflow.database import transaction
from bidflow.errors import not_found, state_error, validation_error
from bidflow.models.contract import Contract, Period
from bidflow.models.enums import BOQStatus, InvoiceStatus, ProjectStatus, QuotationStatus
from bidflow.models.invoice import Invoice
from bidflow.services import status_rules
from bidflow.services.lookups import get_project, load_statuses
from bidflow.utils.helpers import margin_percent, round_money
from bidflow.utils.logger import get_logger
from bidflow.utils.validators import parse_iso_date, validate_non_negative

logger = get_logger(__name__)

# Columns a caller may set through update_invoice_fields
EDITABLE_FIELDS = ("invoice_date", "payment_due_date", "payment_term", "remarks", "retention", "paid_date")

# The only column still editable once an invoice is approved
APPROVED_EDITABLE_FIELDS = ("paid_date",)

REQUIRED_FOR_APPROVAL = ("invoice_date", "payment_due_date", "payment_term")


def _build_invoice(project_id: uuid.UUID, period: Period, payment_term: Optional[str]) -> Invoice:
    return Invoice(
        project_id=project_id,
        period_id=period.id,
        status=InvoiceStatus.DRAFT,
        payment_term=payment_term,
    )


async def create_for_all_periods(db: AsyncSession, project_id: uuid.UUID,
                                 contract_id: uuid.UUID,
                                 payment_term: Optional[str] = None) -> List[Invoice]:
    """Create a draft invoice for every period of the contract that has none.

    All inserts share one transaction; if any of them fails none is kept.
    """
    payment_term = payment_term.strip() if payment_term and payment_term.strip() else None

    async with transaction(db, "create invoices"):
        statuses = await load_statuses(db, project_id)
        if statuses.project_status == ProjectStatus.COMPLETED:
            raise state_error("project is already completed", code="project_completed")
        if statuses.boq_status != BOQStatus.APPROVED:
            raise state_error("BOQ must be approved", code="boq_not_approved")
        if statuses.quotation_status != QuotationStatus.APPROVED:
            raise state_error("quotation must be approved", code="quotation_not_approved")
        if statuses.contract_id is None or statuses.contract_id != contract_id:
            raise not_found("contract not found for this project", code="contract_not_found")

        result = await db.execute(
            select(Period)
            .options(selectinload(Period.invoice))
            .execution_options(populate_existing=True)
            .where(Period.contract_id == contract_id)
            .order_by(Period.period_number)
            .with_for_update()
        )
        periods = result.scalars().all()
        if not periods:
            raise state_error("contract has no periods to invoice", code="no_periods")

        available = [p for p in periods if p.invoice is None]
        if not available:
            raise state_error(
                "no available periods found for invoicing in this contract",
                code="no_available_periods",
            )

        invoices = []
        for period in available:
            invoice = _build_invoice(project_id, period, payment_term)
            db.add(invoice)
            await db.flush()
            invoices.append(invoice)

    logger.info(
        f"Created {len(invoices)} draft invoices for project {project_id} "
        f"({len(periods) - len(available)} periods already invoiced)"
    )
    return invoices


async def _get_invoice(db: AsyncSession, invoice_id: uuid.UUID, for_update: bool = False) -> Invoice:
    query = (
        select(Invoice)
        .options(selectinload(Invoice.period))
        .where(Invoice.id == invoice_id)
        .execution_options(populate_existing=True)
    )
    if for_update:
        query = query.with_for_update()
    result = await db.execute(query)
    invoice = result.scalar_one_or_none()
    if not invoice:
        raise not_found("invoice not found", code="invoice_not_found")
    return invoice


async def get_invoice(db: AsyncSession, invoice_id: uuid.UUID) -> Invoice:
    return await _get_invoice(db, invoice_id)


async def list_project_invoices(db: AsyncSession, project_id: uuid.UUID) -> List[Invoice]:
    await get_project(db, project_id)
    result = await db.execute(
        select(Invoice)
        .options(selectinload(Invoice.period))
        .execution_options(populate_existing=True)
        .outerjoin(Period, Period.id == Invoice.period_id)
        .where(Invoice.project_id == project_id)
        .order_by(Period.period_number, Invoice.created_at)
    )
    return list(result.scalars().all())


def missing_approval_fields(invoice: Invoice) -> List[str]:
    missing = []
    for field in REQUIRED_FOR_APPROVAL:
        value = getattr(invoice, field)
        if value is None or (isinstance(value, str) and not value.strip()):
            missing.append(field)
    return missing


async def update_invoice_status(db: AsyncSession, invoice_id: uuid.UUID, status: str) -> Invoice:
    async with transaction(db, "update invoice status"):
        invoice = await _get_invoice(db, invoice_id, for_update=True)
        current = invoice.status

        error = status_rules.transition_error(status_rules.INVOICE, current, status)
        if error is not None:
            logger.warning(f"Invoice {invoice_id} status change refused: {error.message}")
            raise error

        target = InvoiceStatus(status)
        if target == InvoiceStatus.APPROVED and current == InvoiceStatus.DRAFT:
            missing = missing_approval_fields(invoice)
            if missing:
                raise validation_error(
                    f"cannot approve invoice, required fields are missing: {', '.join(missing)}",
                    code="missing_required_fields",
                )

        invoice.status = target
        await db.flush()

    logger.info(f"Invoice {invoice_id} status {current.value} -> {target.value}")
    return invoice


async def update_invoice_fields(db: AsyncSession, invoice_id: uuid.UUID,
                                updates: Dict[str, Any]) -> Invoice:
    """Partial column update; only EDITABLE_FIELDS are accepted"""
    if not updates:
        raise validation_error("no fields to update", code="no_fields")
    unknown = [name for name in updates if name not in EDITABLE_FIELDS]
    if unknown:
        raise validation_error(f"unknown invoice fields: {', '.join(sorted(unknown))}")

    invoice = await _get_invoice(db, invoice_id, for_update=True)
    for name, value in updates.items():
        setattr(invoice, name, value)
    await db.flush()
    return invoice


async def update_invoice(db: AsyncSession, invoice_id: uuid.UUID, fields: Dict[str, Any]) -> Invoice:
    """Edit a draft invoice; approved invoices only take a paid date"""
    async with transaction(db, "update invoice"):
        invoice = await _get_invoice(db, invoice_id, for_update=True)
        if not fields:
            raise validation_error("no fields to update", code="no_fields")

        if invoice.status == InvoiceStatus.APPROVED:
            if any(name not in APPROVED_EDITABLE_FIELDS for name in fields):
                raise state_error("cannot edit approved invoice", code="invoice_approved")

        updates = {}
        for name, value in fields.items():
            if name in ("invoice_date", "payment_due_date", "paid_date"):
                value = parse_iso_date(value, name.replace("_", " "))
            elif name == "retention" and value is not None:
                value = validate_non_negative(value, "retention")
            updates[name] = value

        due = updates.get("payment_due_date", invoice.payment_due_date)
        issued = updates.get("invoice_date", invoice.invoice_date)
        if due and issued and due < issued:
            raise validation_error("payment due date cannot be before invoice date")

        invoice = await update_invoice_fields(db, invoice_id, updates)

    logger.info(f"Updated invoice {invoice_id}: {', '.join(sorted(fields))}")
    return invoice


async def delete_invoice(db: AsyncSession, invoice_id: uuid.UUID) -> None:
    async with transaction(db, "delete invoice"):
        invoice = await _get_invoice(db, invoice_id, for_update=True)
        if invoice.status == InvoiceStatus.APPROVED:
            logger.warning(f"Deleting approved invoice {invoice_id}")
        await db.delete(invoice)

    logger.info(f"Deleted invoice {invoice_id}")


async def contract_invoice_status(db: AsyncSession, contract_id: uuid.UUID) -> dict:
    """Per-period invoicing and payment progress of a contract"""
    result = await db.execute(
        select(Contract)
        .options(selectinload(Contract.periods).selectinload(Period.invoice))
        .execution_options(populate_existing=True)
        .where(Contract.id == contract_id)
    )
    contract = result.scalar_one_or_none()
    if not contract:
        raise not_found("contract not found", code="contract_not_found")

    periods = []
    total_amount = invoiced_amount = paid_amount = 0.0
    invoiced_count = paid_count = 0
    for period in contract.periods:
        invoice = period.invoice
        is_invoiced = invoice is not None
        is_paid = is_invoiced and invoice.paid_date is not None
        amount = period.amount_period or 0.0

        total_amount += amount
        if is_invoiced:
            invoiced_count += 1
            invoiced_amount += amount
        if is_paid:
            paid_count += 1
            paid_amount += amount

        periods.append({
            "period_id": str(period.id),
            "period_number": period.period_number,
            "amount_period": round_money(amount),
            "invoice_id": str(invoice.id) if is_invoiced else None,
            "invoice_status": invoice.status.value if is_invoiced else None,
            "invoice_created_at": invoice.created_at.isoformat() if is_invoiced and invoice.created_at else None,
            "paid_date": invoice.paid_date.isoformat() if is_paid else None,
            "is_invoiced": is_invoiced,
            "is_paid": is_paid,
        })

    return {
        "contract_id": str(contract.id),
        "periods": periods,
        "progress": {
            "total_periods": len(periods),
            "invoiced_periods": invoiced_count,
            "paid_periods": paid_count,
            "total_amount": round_money(total_amount),
            "invoiced_amount": round_money(invoiced_amount),
            "paid_amount": round_money(paid_amount),
            "percent_invoiced": round_money(margin_percent(invoiced_amount, total_amount)),
            "percent_paid": round_money(margin_percent(paid_amount, total_amount)),
        },
    }
