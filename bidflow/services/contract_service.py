"""
Contract setup - one contract per project, split into numbered periods
"""
import uuid
from datetime import date
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from bidflow.database import transaction
from bidflow.errors import conflict, not_found, state_error, validation_error
from bidflow.models.boq import BOQJob
from bidflow.models.contract import Contract, JobPeriod, Period
from bidflow.models.enums import QuotationStatus
from bidflow.services.lookups import find_quotation, get_boq_by_project, get_project
from bidflow.utils.logger import get_logger
from bidflow.utils.validators import validate_non_negative, validate_positive

logger = get_logger(__name__)


def _validate_periods(periods: List[dict]) -> None:
    if not periods:
        raise validation_error("at least one period is required")
    seen = set()
    for period in periods:
        number = period.get("period_number")
        validate_positive(number, "period number")
        if number in seen:
            raise validation_error(f"duplicate period number {number}", code="duplicate_period")
        seen.add(number)
        validate_non_negative(period.get("amount_period", 0.0), "period amount")
        job_ids = set()
        for job in period.get("jobs") or []:
            validate_non_negative(job.get("job_amount", 0.0), "job amount")
            if job["job_id"] in job_ids:
                raise validation_error(
                    f"job {job['job_id']} is listed twice in period {number}",
                    code="duplicate_period_job",
                )
            job_ids.add(job["job_id"])


async def create_contract(
    db: AsyncSession,
    project_id: uuid.UUID,
    periods: List[dict],
    pay_within: Optional[int] = None,
    retention_money: Optional[float] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> Contract:
    """Create the project's contract with its periods and job apportioning"""
    _validate_periods(periods)
    if retention_money is not None:
        validate_non_negative(retention_money, "retention money")
    if pay_within is not None:
        validate_non_negative(pay_within, "pay within")
    if start_date and end_date and end_date < start_date:
        raise validation_error("end date cannot be before start date")

    async with transaction(db, "create contract"):
        await get_project(db, project_id, for_update=True)
        quotation = await find_quotation(db, project_id)
        if quotation is None or quotation.status != QuotationStatus.APPROVED:
            raise state_error(
                "quotation must be approved before creating contract",
                code="quotation_not_approved",
            )

        existing = await db.execute(select(Contract.id).where(Contract.project_id == project_id))
        if existing.first() is not None:
            raise conflict("contract already exists for this project", code="duplicate_contract")

        boq = await get_boq_by_project(db, project_id)
        result = await db.execute(select(BOQJob.job_id).where(BOQJob.boq_id == boq.id))
        boq_jobs = set(result.scalars().all())

        contract = Contract(
            project_id=project_id,
            pay_within=pay_within,
            retention_money=retention_money,
            start_date=start_date,
            end_date=end_date,
        )
        db.add(contract)
        await db.flush()

        for data in sorted(periods, key=lambda p: p["period_number"]):
            period = Period(
                contract_id=contract.id,
                period_number=data["period_number"],
                amount_period=data.get("amount_period", 0.0),
                delivered_within=data.get("delivered_within"),
            )
            db.add(period)
            await db.flush()
            for job in data.get("jobs") or []:
                if job["job_id"] not in boq_jobs:
                    raise not_found(f"job {job['job_id']} not found in BOQ", code="boq_job_not_found")
                db.add(JobPeriod(
                    job_id=job["job_id"],
                    period_id=period.id,
                    job_amount=job.get("job_amount", 0.0),
                ))
        await db.flush()
        contract_id = contract.id

    logger.info(f"Created contract {contract_id} for project {project_id} with {len(periods)} periods")
    return await get_contract(db, project_id)


async def get_contract(db: AsyncSession, project_id: uuid.UUID) -> Contract:
    result = await db.execute(
        select(Contract)
        .options(selectinload(Contract.periods).selectinload(Period.jobs))
        .execution_options(populate_existing=True)
        .where(Contract.project_id == project_id)
    )
    contract = result.scalar_one_or_none()
    if not contract:
        raise not_found("contract not found", code="contract_not_found")
    return contract
