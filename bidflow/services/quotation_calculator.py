"""
Quotation calculator.

Derives priced quotation lines from the approved BOQ on every read; only the
final amount is frozen, when the quotation is approved or repriced.
"""
import math
import uuid
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from bidflow.config import get_settings
from bidflow.database import transaction
from bidflow.errors import not_found, state_error, validation_error
from bidflow.models.boq import BOQ, BOQJob
from bidflow.models.catalog import Job, MaterialPriceLog
from bidflow.models.enums import BOQStatus, QuotationStatus
from bidflow.models.project import Project
from bidflow.models.quotation import Quotation
from bidflow.services import status_rules
from bidflow.services.general_costs import ensure_general_costs
from bidflow.services.lookups import find_quotation, get_boq_by_project
from bidflow.utils.helpers import add_months, round_money
from bidflow.utils.logger import get_logger

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Line pricing
# ---------------------------------------------------------------------------

async def job_material_totals(db: AsyncSession, boq_id: uuid.UUID,
                              actual: bool = False) -> Dict[uuid.UUID, float]:
    """Material price per job unit: sum of price x log quantity.

    Uses the estimated price unless `actual` is set. Logs without that price
    are ignored; a missing log quantity counts as 1.
    """
    price = MaterialPriceLog.actual_price if actual else MaterialPriceLog.estimated_price
    result = await db.execute(
        select(
            MaterialPriceLog.job_id,
            func.sum(price * func.coalesce(MaterialPriceLog.quantity, 1)),
        )
        .where(MaterialPriceLog.boq_id == boq_id, price.is_not(None))
        .group_by(MaterialPriceLog.job_id)
    )
    return {job_id: total or 0.0 for job_id, total in result.all()}


async def load_lines(db: AsyncSession, boq_id: uuid.UUID):
    """(BOQJob, Job) pairs of a BOQ ordered by job name"""
    result = await db.execute(
        select(BOQJob, Job)
        .join(Job, Job.id == BOQJob.job_id)
        .where(BOQJob.boq_id == boq_id)
        .order_by(Job.name, Job.id)
    )
    return result.all()


def price_line(line: BOQJob, job: Job, unit_material_price: Optional[float]) -> dict:
    labor_total = line.labor_cost * line.quantity
    material_total = (unit_material_price or 0.0) * line.quantity
    total_selling = None
    if line.selling_price is not None:
        total_selling = line.selling_price * line.quantity

    return {
        "job_id": str(job.id),
        "name": job.name,
        "description": job.description,
        "unit": job.unit,
        "quantity": line.quantity,
        "labor_cost": round_money(line.labor_cost),
        "selling_price": round_money(line.selling_price) if line.selling_price is not None else None,
        "total_material_price": round_money(unit_material_price or 0.0),
        "labor_total": round_money(labor_total),
        "material_total": round_money(material_total),
        "total": round_money(labor_total + material_total),
        "total_selling_price": round_money(total_selling) if total_selling is not None else None,
        # unrounded, for totals
        "_labor": labor_total,
        "_material": material_total,
        "_selling": total_selling or 0.0,
    }


def _strip(lines: List[dict]) -> List[dict]:
    return [{k: v for k, v in line.items() if not k.startswith("_")} for line in lines]


async def _priced_lines(db: AsyncSession, boq: BOQ) -> List[dict]:
    materials = await job_material_totals(db, boq.id)
    return [
        price_line(line, job, materials.get(job.id))
        for line, job in await load_lines(db, boq.id)
    ]


def selling_subtotal(lines: List[dict], selling_general_cost: Optional[float]) -> float:
    """Sum of line selling totals plus the flat selling general cost"""
    return sum(line["_selling"] for line in lines) + (selling_general_cost or 0.0)


def amount_with_tax(subtotal: float, tax_percentage: Optional[float]) -> float:
    return round_money(subtotal * (1 + (tax_percentage or 0.0) / 100))


def _quotation_header(quotation: Quotation) -> dict:
    return {
        "quotation_id": str(quotation.id),
        "project_id": str(quotation.project_id),
        "status": quotation.status.value,
        "valid_date": quotation.valid_date.isoformat() if quotation.valid_date else None,
        "tax_percentage": quotation.tax_percentage,
        "final_amount": round_money(quotation.final_amount) if quotation.final_amount is not None else None,
        "created_at": quotation.created_at.isoformat() if quotation.created_at else None,
    }


async def build_view(db: AsyncSession, boq: BOQ, quotation: Quotation) -> dict:
    lines = await _priced_lines(db, boq)
    general_costs = await ensure_general_costs(db, boq.id)

    total_labor = sum(line["_labor"] for line in lines)
    total_material = sum(line["_material"] for line in lines)
    total_general = sum(gc.estimated_cost or 0.0 for gc in general_costs)
    total_line = total_labor + total_material

    return {
        **_quotation_header(quotation),
        "selling_general_cost": (
            round_money(boq.selling_general_cost) if boq.selling_general_cost is not None else None
        ),
        "jobs": _strip(lines),
        "general_costs": [
            {"type_name": gc.type_name, "estimated_cost": round_money(gc.estimated_cost)}
            for gc in general_costs
        ],
        "totals": {
            "total_labor_cost": round_money(total_labor),
            "total_material_cost": round_money(total_material),
            "total_line_cost": round_money(total_line),
            "total_general_cost": round_money(total_general),
            "total_cost": round_money(total_line + total_general),
            "total_selling_price": round_money(selling_subtotal(lines, boq.selling_general_cost)),
        },
    }


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------

def _is_positive(value: Optional[float]) -> bool:
    # None, NaN and +/-Infinity are not positive prices
    return value is not None and math.isfinite(value) and value > 0


def _require_approved_boq(boq: BOQ, message: str) -> None:
    if boq.status != BOQStatus.APPROVED:
        raise state_error(message, code="boq_not_approved")


async def compute(db: AsyncSession, project_id: uuid.UUID) -> dict:
    """Get or create the project's quotation and price it from the BOQ"""
    boq = await get_boq_by_project(db, project_id)
    _require_approved_boq(boq, "BOQ must be approved before creating quotation")

    settings = get_settings()
    async with transaction(db, "create quotation"):
        quotation = await find_quotation(db, project_id, for_update=True)
        if quotation is None:
            quotation = Quotation(
                project_id=project_id,
                status=QuotationStatus.DRAFT,
                tax_percentage=settings.DEFAULT_TAX_PERCENTAGE,
                valid_date=add_months(datetime.utcnow(), settings.QUOTATION_VALIDITY_MONTHS),
            )
            db.add(quotation)
            await db.flush()
            logger.info(f"Created draft quotation {quotation.id} for project {project_id}")

    return await build_view(db, boq, quotation)


async def approve(db: AsyncSession, project_id: uuid.UUID) -> dict:
    """Approve the draft quotation and freeze its final amount"""
    async with transaction(db, "approve quotation"):
        boq = await get_boq_by_project(db, project_id)
        quotation = await find_quotation(db, project_id, for_update=True)
        if quotation is None:
            raise not_found("quotation not found", code="quotation_not_found")

        error = status_rules.transition_error(
            status_rules.QUOTATION, quotation.status, QuotationStatus.APPROVED,
            boq_status=boq.status,
        )
        if error is not None:
            logger.warning(f"Quotation approval refused for project {project_id}: {error.message}")
            raise error

        lines = await _priced_lines(db, boq)
        final_amount = amount_with_tax(
            selling_subtotal(lines, boq.selling_general_cost), quotation.tax_percentage
        )

        result = await db.execute(
            update(Quotation)
            .where(
                Quotation.project_id == project_id,
                Quotation.status == QuotationStatus.DRAFT,
            )
            .values(status=QuotationStatus.APPROVED, final_amount=final_amount)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            logger.warning(f"Quotation approval refused for project {project_id}: not in draft")
            raise state_error("no draft quotation found to approve", code="no_draft_quotation")

    await db.refresh(quotation)
    logger.info(f"Approved quotation {quotation.id} with final amount {final_amount}")
    return await build_view(db, boq, quotation)


async def export(db: AsyncSession, project_id: uuid.UUID) -> dict:
    """Printable quotation: project and client header, priced lines, tax"""
    boq = await get_boq_by_project(db, project_id)
    _require_approved_boq(boq, "BOQ must be approved before exporting quotation")

    quotation = await find_quotation(db, project_id)
    if quotation is None:
        raise not_found("quotation not found", code="quotation_not_found")
    if quotation.status != QuotationStatus.APPROVED:
        raise state_error("only approved quotations can be exported", code="quotation_not_approved")

    result = await db.execute(
        select(Project).options(selectinload(Project.client)).where(Project.id == project_id)
    )
    project = result.scalar_one()
    client = project.client

    jobs = []
    lines_total = 0.0
    for line, job in await load_lines(db, boq.id):
        amount = None
        if line.selling_price is not None:
            amount = line.selling_price * line.quantity
            lines_total += amount
        jobs.append({
            "name": job.name,
            "description": job.description,
            "unit": job.unit,
            "quantity": line.quantity,
            "selling_price": round_money(line.selling_price) if line.selling_price is not None else None,
            "amount": round_money(amount) if amount is not None else None,
        })

    subtotal = lines_total + (boq.selling_general_cost or 0.0)
    tax_percentage = quotation.tax_percentage or 0.0
    tax_amount = subtotal * tax_percentage / 100
    final_amount = quotation.final_amount
    if final_amount is None:
        final_amount = subtotal + tax_amount

    return {
        "project_id": str(project.id),
        "project_name": project.name,
        "description": project.description,
        "address": project.address,
        "client_name": client.name if client else None,
        "client_address": client.address if client else None,
        "client_email": client.email if client else None,
        "client_tel": client.tel if client else None,
        "client_tax_id": client.tax_id if client else None,
        "quotation_id": str(quotation.id),
        "status": quotation.status.value,
        "valid_date": quotation.valid_date.isoformat() if quotation.valid_date else None,
        "tax_percentage": tax_percentage,
        "jobs": jobs,
        "selling_general_cost": round_money(boq.selling_general_cost),
        "sub_total": round_money(subtotal),
        "tax_amount": round_money(tax_amount),
        "final_amount": round_money(final_amount),
    }


async def update_selling_prices(
    db: AsyncSession,
    project_id: uuid.UUID,
    tax_percentage: float,
    selling_general_cost: float,
    job_selling_prices: Dict[uuid.UUID, float],
) -> dict:
    """Reprice a draft quotation and recompute its final amount"""
    async with transaction(db, "update selling price"):
        boq = await get_boq_by_project(db, project_id, for_update=True)
        _require_approved_boq(boq, "BOQ must be approved before updating selling price")

        quotation = await find_quotation(db, project_id, for_update=True)
        if quotation is None:
            raise not_found("quotation not found", code="quotation_not_found")
        if quotation.status != QuotationStatus.DRAFT:
            raise state_error(
                "can only update selling price for quotation in draft status",
                code="quotation_not_draft",
            )

        if not _is_positive(tax_percentage):
            raise validation_error("tax percentage must be greater than 0")
        if not _is_positive(selling_general_cost):
            raise validation_error("selling general cost must be greater than 0")
        if not job_selling_prices:
            raise validation_error("at least one job selling price is required")
        for job_id, price in job_selling_prices.items():
            if not _is_positive(price):
                raise validation_error(f"selling price for job {job_id} must be greater than 0")

        result = await db.execute(select(BOQJob).where(BOQJob.boq_id == boq.id))
        lines = {line.job_id: line for line in result.scalars().all()}
        for job_id, price in job_selling_prices.items():
            line = lines.get(job_id)
            if line is None:
                raise not_found(f"job {job_id} not found in BOQ", code="boq_job_not_found")
            line.selling_price = price

        boq.selling_general_cost = selling_general_cost
        quotation.tax_percentage = tax_percentage
        await db.flush()

        priced = await _priced_lines(db, boq)
        quotation.final_amount = amount_with_tax(
            selling_subtotal(priced, selling_general_cost), tax_percentage
        )
        await db.flush()

    logger.info(
        f"Repriced quotation {quotation.id}: {len(job_selling_prices)} jobs, "
        f"final amount {quotation.final_amount}"
    )
    return await build_view(db, boq, quotation)
