"""
Workflow orchestrator - project status changes and project-level financials
"""
import uuid
from datetime import date
from typing import Optional

from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from bidflow.database import transaction
from bidflow.errors import incomplete_data, not_found, state_error, validation_error
from bidflow.models.catalog import MaterialPriceLog
from bidflow.models.enums import ProjectStatus
from bidflow.models.project import Client, Project
from bidflow.services import status_rules
from bidflow.services.general_costs import ensure_general_costs
from bidflow.services.lookups import find_quotation, get_boq_by_project, get_project, load_statuses
from bidflow.services.quotation_calculator import job_material_totals, load_lines
from bidflow.utils.helpers import margin_percent, round_money
from bidflow.utils.logger import get_logger

logger = get_logger(__name__)


async def update_project_status(db: AsyncSession, project_id: uuid.UUID, status: str) -> Project:
    async with transaction(db, "update project status"):
        project = await get_project(db, project_id, for_update=True)
        statuses = await load_statuses(db, project_id)

        error = status_rules.transition_error(
            status_rules.PROJECT,
            project.status,
            status,
            boq_status=statuses.boq_status,
            quotation_status=statuses.quotation_status,
        )
        if error is not None:
            logger.warning(f"Project {project_id} status change refused: {error.message}")
            raise error

        previous = project.status
        project.status = ProjectStatus(status)
        await db.flush()

    logger.info(f"Project {project_id} status {previous.value} -> {project.status.value}")
    return project


async def cancel_project(db: AsyncSession, project_id: uuid.UUID) -> Project:
    return await update_project_status(db, project_id, ProjectStatus.CANCELLED.value)


async def _ensure_prices(db: AsyncSession, boq_id: uuid.UUID, require_actual: bool) -> None:
    missing = MaterialPriceLog.estimated_price.is_(None)
    if require_actual:
        missing = or_(missing, MaterialPriceLog.actual_price.is_(None))
    count = await db.scalar(
        select(func.count())
        .select_from(MaterialPriceLog)
        .where(MaterialPriceLog.boq_id == boq_id, missing)
    )
    if count:
        logger.warning(f"BOQ {boq_id} has {count} material price logs without prices")
        raise incomplete_data("missing price information", code="missing_price")


async def _financials(db: AsyncSession, project_id: uuid.UUID, require_actual: bool):
    """Per-job cost, actual cost and selling figures of the project's BOQ"""
    boq = await get_boq_by_project(db, project_id)
    await _ensure_prices(db, boq.id, require_actual)

    estimated = await job_material_totals(db, boq.id)
    actual = await job_material_totals(db, boq.id, actual=True)
    general_costs = await ensure_general_costs(db, boq.id)
    quotation = await find_quotation(db, project_id)

    jobs = []
    for line, job in await load_lines(db, boq.id):
        unit_cost = estimated.get(job.id, 0.0) + line.labor_cost
        unit_actual = actual.get(job.id, 0.0) + line.labor_cost
        jobs.append({
            "job": job,
            "line": line,
            "material_cost": estimated.get(job.id, 0.0),
            "unit_cost": unit_cost,
            "unit_actual": unit_actual,
            "selling_price": line.selling_price or 0.0,
        })
    return boq, quotation, general_costs, jobs


async def get_project_overview(db: AsyncSession, project_id: uuid.UUID) -> dict:
    await get_project(db, project_id)
    boq, quotation, general_costs, jobs = await _financials(db, project_id, require_actual=False)

    total_overall_cost = (
        sum(j["unit_cost"] * j["line"].quantity for j in jobs)
        + sum(gc.estimated_cost or 0.0 for gc in general_costs)
    )
    total_actual_cost = (
        sum(j["unit_actual"] * j["line"].quantity for j in jobs)
        + sum(gc.actual_cost or 0.0 for gc in general_costs)
    )
    total_selling_price = (
        sum(j["selling_price"] * j["line"].quantity for j in jobs)
        + (boq.selling_general_cost or 0.0)
    )
    tax_percentage = quotation.tax_percentage if quotation and quotation.tax_percentage else 0.0
    tax_amount = total_selling_price * tax_percentage / 100
    estimated_profit = total_selling_price - total_overall_cost
    actual_profit = total_selling_price - total_actual_cost

    return {
        "project_id": str(project_id),
        "boq_id": str(boq.id),
        "quotation_id": str(quotation.id) if quotation else None,
        "total_overall_cost": round_money(total_overall_cost),
        "total_selling_price": round_money(total_selling_price),
        "total_actual_cost": round_money(total_actual_cost),
        "tax_percentage": tax_percentage,
        "tax_amount": round_money(tax_amount),
        "total_with_tax": round_money(total_selling_price + tax_amount),
        "estimated_profit": round_money(estimated_profit),
        "estimated_margin": round_money(margin_percent(estimated_profit, total_selling_price)),
        "actual_profit": round_money(actual_profit),
        "actual_margin": round_money(margin_percent(actual_profit, total_selling_price)),
    }


async def get_project_summary(db: AsyncSession, project_id: uuid.UUID) -> dict:
    """Estimated against actual profit per job for a completed project"""
    project = await get_project(db, project_id)
    if project.status != ProjectStatus.COMPLETED:
        raise state_error("project must be completed to view summary", code="project_not_completed")

    overview = await get_project_overview(db, project_id)
    _, quotation, _, jobs = await _financials(db, project_id, require_actual=True)

    lines = []
    total_estimated_cost = total_actual_cost = total_selling = 0.0
    for j in jobs:
        job, quantity, selling = j["job"], j["line"].quantity, j["selling_price"]
        estimated_profit = selling - j["unit_cost"]
        actual_profit = selling - j["unit_actual"]

        total_estimated_cost += j["unit_cost"] * quantity
        total_actual_cost += j["unit_actual"] * quantity
        total_selling += selling * quantity

        lines.append({
            "job_id": str(job.id),
            "job_name": job.name,
            "unit": job.unit,
            "quantity": quantity,
            "labor_cost": round_money(j["line"].labor_cost),
            "material_cost": round_money(j["material_cost"]),
            "overall_cost": round_money(j["unit_cost"]),
            "selling_price": round_money(selling),
            "estimated_profit": round_money(estimated_profit),
            "estimated_margin": round_money(margin_percent(estimated_profit, selling)),
            "actual_overall_cost": round_money(j["unit_actual"]),
            "actual_profit": round_money(actual_profit),
            "actual_margin": round_money(margin_percent(actual_profit, selling)),
            "total_profit": round_money(actual_profit * quantity),
        })

    estimated_profit = total_selling - total_estimated_cost
    actual_profit = total_selling - total_actual_cost
    cost_variance = total_estimated_cost - total_actual_cost

    return {
        "project_id": str(project.id),
        "project_name": project.name,
        "status": project.status.value,
        "quotation": {
            "quotation_id": str(quotation.id) if quotation else None,
            "status": quotation.status.value if quotation else None,
            "valid_date": quotation.valid_date.date().isoformat() if quotation and quotation.valid_date else None,
            "tax_percentage": quotation.tax_percentage if quotation else None,
        },
        "overview": overview,
        "jobs": lines,
        "totals": {
            "total_estimated_cost": round_money(total_estimated_cost),
            "total_actual_cost": round_money(total_actual_cost),
            "total_selling_price": round_money(total_selling),
            "total_estimated_profit": round_money(estimated_profit),
            "total_actual_profit": round_money(actual_profit),
            "estimated_margin": round_money(margin_percent(estimated_profit, total_selling)),
            "actual_margin": round_money(margin_percent(actual_profit, total_selling)),
            "cost_variance": round_money(cost_variance),
            "cost_variance_percent": round_money(margin_percent(cost_variance, total_estimated_cost)),
        },
    }


async def create_project(db: AsyncSession, name: str, description: Optional[str] = None,
                         address: Optional[str] = None, client_id: Optional[uuid.UUID] = None,
                         start_date: Optional[date] = None, end_date: Optional[date] = None) -> Project:
    if not name or not name.strip():
        raise validation_error("project name is required")
    if start_date and end_date and end_date < start_date:
        raise validation_error("end date cannot be before start date")

    async with transaction(db, "create project"):
        if client_id is not None and await db.get(Client, client_id) is None:
            raise not_found("client not found", code="client_not_found")
        project = Project(
            name=name.strip(),
            description=description,
            address=address,
            client_id=client_id,
            start_date=start_date,
            end_date=end_date,
            status=ProjectStatus.PLANNING,
        )
        db.add(project)
        await db.flush()

    logger.info(f"Created project {project.id} ({project.name})")
    return project
