"""
BOQ workflow - job lines, approval, material price history and summary
"""
import uuid
from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from bidflow.database import transaction
from bidflow.errors import conflict, not_found, state_error, validation_error
from bidflow.models.boq import BOQ, BOQJob
from bidflow.models.catalog import Job, Material, MaterialPriceLog
from bidflow.models.enums import BOQStatus
from bidflow.services import status_rules
from bidflow.services.general_costs import ensure_general_costs, get_or_create_boq
from bidflow.services.lookups import get_boq_by_project, get_project
from bidflow.services.quotation_calculator import job_material_totals, load_lines
from bidflow.utils.helpers import round_money
from bidflow.utils.logger import get_logger
from bidflow.utils.validators import validate_non_negative, validate_positive

logger = get_logger(__name__)


async def _get_boq(db: AsyncSession, boq_id: uuid.UUID, for_update: bool = False) -> BOQ:
    query = select(BOQ).where(BOQ.id == boq_id)
    if for_update:
        query = query.with_for_update()
    result = await db.execute(query)
    boq = result.scalar_one_or_none()
    if not boq:
        raise not_found("BOQ not found", code="boq_not_found")
    return boq


async def _get_line(db: AsyncSession, boq_id: uuid.UUID, job_id: uuid.UUID) -> BOQJob:
    line = await db.get(BOQJob, (boq_id, job_id))
    if line is None:
        raise not_found("job not found in BOQ", code="boq_job_not_found")
    return line


async def get_boq_with_jobs(db: AsyncSession, project_id: uuid.UUID):
    """Get or create the project's BOQ; returns (boq, [(BOQJob, Job), ...])"""
    boq = await get_or_create_boq(db, project_id)
    return boq, await load_lines(db, boq.id)


async def approve_boq(db: AsyncSession, boq_id: uuid.UUID) -> BOQ:
    async with transaction(db, "approve BOQ"):
        boq = await _get_boq(db, boq_id, for_update=True)
        status_rules.ensure_transition(status_rules.BOQ, boq.status, BOQStatus.APPROVED)

        project = await get_project(db, boq.project_id)
        if project.status in status_rules.TERMINAL_PROJECT_STATUSES:
            raise state_error(
                f"cannot approve BOQ of a {project.status.value} project",
                code="terminal_status",
            )

        job_count = await db.scalar(
            select(func.count()).select_from(BOQJob).where(BOQJob.boq_id == boq_id)
        )
        if not job_count:
            raise state_error("BOQ must have at least one job to be approved", code="boq_empty")

        boq.status = BOQStatus.APPROVED
        await db.flush()

    logger.info(f"Approved BOQ {boq_id} with {job_count} jobs")
    return boq


async def add_boq_job(db: AsyncSession, boq_id: uuid.UUID, job_id: uuid.UUID,
                      quantity: float, labor_cost: float) -> BOQJob:
    validate_positive(quantity, "quantity")
    validate_non_negative(labor_cost, "labor cost")

    async with transaction(db, "add BOQ job"):
        boq = await _get_boq(db, boq_id, for_update=True)
        status_rules.ensure_editable_boq(boq.status)

        if await db.get(Job, job_id) is None:
            raise not_found("job not found", code="job_not_found")
        if await db.get(BOQJob, (boq_id, job_id)) is not None:
            raise conflict("job already exists in BOQ", code="duplicate_boq_job")

        line = BOQJob(boq_id=boq_id, job_id=job_id, quantity=quantity, labor_cost=labor_cost)
        db.add(line)
        await db.flush()

    logger.info(f"Added job {job_id} to BOQ {boq_id} (quantity={quantity})")
    return line


async def update_boq_job(db: AsyncSession, boq_id: uuid.UUID, job_id: uuid.UUID,
                         quantity: float, labor_cost: float) -> BOQJob:
    validate_positive(quantity, "quantity")
    validate_non_negative(labor_cost, "labor cost")

    async with transaction(db, "update BOQ job"):
        boq = await _get_boq(db, boq_id, for_update=True)
        status_rules.ensure_editable_boq(boq.status)
        line = await _get_line(db, boq_id, job_id)
        line.quantity = quantity
        line.labor_cost = labor_cost
        await db.flush()

    return line


async def delete_boq_job(db: AsyncSession, boq_id: uuid.UUID, job_id: uuid.UUID) -> None:
    """Remove a line; its material price history stays in the log"""
    async with transaction(db, "delete BOQ job"):
        boq = await _get_boq(db, boq_id, for_update=True)
        status_rules.ensure_editable_boq(boq.status)
        line = await _get_line(db, boq_id, job_id)
        await db.delete(line)

    logger.info(f"Removed job {job_id} from BOQ {boq_id}")


async def log_material_price(
    db: AsyncSession,
    boq_id: uuid.UUID,
    job_id: uuid.UUID,
    material_id: uuid.UUID,
    quantity: Optional[float] = None,
    estimated_price: Optional[float] = None,
    actual_price: Optional[float] = None,
    supplier_id: Optional[uuid.UUID] = None,
) -> MaterialPriceLog:
    """Append a price observation for a material used by a BOQ job"""
    if estimated_price is None and actual_price is None:
        raise validation_error("estimated price or actual price is required")
    if estimated_price is not None:
        validate_non_negative(estimated_price, "estimated price")
    if actual_price is not None:
        validate_non_negative(actual_price, "actual price")
    if quantity is not None:
        validate_positive(quantity, "quantity")

    async with transaction(db, "log material price"):
        await _get_boq(db, boq_id)
        await _get_line(db, boq_id, job_id)
        if await db.get(Material, material_id) is None:
            raise not_found("material not found", code="material_not_found")

        entry = MaterialPriceLog(
            boq_id=boq_id,
            job_id=job_id,
            material_id=material_id,
            supplier_id=supplier_id,
            quantity=quantity,
            estimated_price=estimated_price,
            actual_price=actual_price,
        )
        db.add(entry)
        await db.flush()

    return entry


async def get_boq_summary(db: AsyncSession, project_id: uuid.UUID) -> dict:
    """Cost breakdown of an approved BOQ"""
    project = await get_project(db, project_id)
    boq = await get_boq_by_project(db, project_id)
    if boq.status != BOQStatus.APPROVED:
        raise state_error("BOQ is not approved", code="boq_not_approved")

    general_costs = await ensure_general_costs(db, boq.id)
    unit_prices = await job_material_totals(db, boq.id)

    result = await db.execute(
        select(MaterialPriceLog, Material)
        .join(Material, Material.id == MaterialPriceLog.material_id)
        .where(MaterialPriceLog.boq_id == boq.id)
        .order_by(Material.name, MaterialPriceLog.created_at)
    )
    materials_by_job = {}
    for log, material in result.all():
        quantity = log.quantity if log.quantity is not None else 1.0
        materials_by_job.setdefault(log.job_id, []).append({
            "material_id": str(material.id),
            "material_name": material.name,
            "unit": material.unit,
            "quantity": quantity,
            "estimated_price": round_money(log.estimated_price) if log.estimated_price is not None else None,
            "total": round_money((log.estimated_price or 0.0) * quantity),
        })

    jobs = []
    total_labor = total_material = 0.0
    for line, job in await load_lines(db, boq.id):
        unit_price = unit_prices.get(job.id, 0.0)
        labor = line.labor_cost * line.quantity
        material = unit_price * line.quantity
        total_labor += labor
        total_material += material
        jobs.append({
            "job_id": str(job.id),
            "job_name": job.name,
            "description": job.description,
            "unit": job.unit,
            "quantity": line.quantity,
            "labor_cost": round_money(line.labor_cost),
            "estimated_price": round_money(unit_price),
            "total_estimated_price": round_money(material),
            "total_labor_cost": round_money(labor),
            "total": round_money(labor + material),
            "materials": materials_by_job.get(job.id, []),
        })

    total_general = sum(gc.estimated_cost or 0.0 for gc in general_costs)

    return {
        "project_info": {
            "project_id": str(project.id),
            "project_name": project.name,
            "project_address": project.address,
        },
        "general_costs": [
            {"type_name": gc.type_name, "estimated_cost": round_money(gc.estimated_cost)}
            for gc in general_costs
        ],
        "jobs": jobs,
        "summary_metrics": {
            "total_general_cost": round_money(total_general),
            "total_material_cost": round_money(total_material),
            "total_labor_cost": round_money(total_labor),
            "total_amount": round_money(total_labor + total_material),
            "grand_total": round_money(total_general + total_labor + total_material),
        },
    }
