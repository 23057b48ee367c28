"""
General-cost synchronizer.

Every BOQ carries exactly one GeneralCost row per entry of the cost type
catalog. Rows are created lazily the first time a BOQ's costs are read.
"""
import uuid
from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bidflow.database import transaction
from bidflow.errors import conflict, not_found, state_error
from bidflow.models.boq import BOQ, CostType, GeneralCost
from bidflow.models.enums import BOQStatus, ProjectStatus, QuotationStatus
from bidflow.services.lookups import get_project, find_quotation
from bidflow.utils.logger import get_logger
from bidflow.utils.validators import validate_non_negative

logger = get_logger(__name__)


async def get_or_create_boq(db: AsyncSession, project_id: uuid.UUID) -> BOQ:
    """Return the project's BOQ, creating a draft one under a row lock if missing"""
    async with transaction(db, "get or create BOQ"):
        await get_project(db, project_id, for_update=True)
        result = await db.execute(
            select(BOQ).where(BOQ.project_id == project_id).with_for_update()
        )
        boq = result.scalar_one_or_none()
        if boq is None:
            boq = BOQ(project_id=project_id, status=BOQStatus.DRAFT, selling_general_cost=None)
            db.add(boq)
            await db.flush()
            logger.info(f"Created draft BOQ {boq.id} for project {project_id}")
    return boq


async def list_cost_types(db: AsyncSession) -> List[CostType]:
    result = await db.execute(select(CostType).order_by(CostType.type_name))
    return list(result.scalars().all())


async def _list_for_boq(db: AsyncSession, boq_id: uuid.UUID) -> List[GeneralCost]:
    result = await db.execute(
        select(GeneralCost)
        .where(GeneralCost.boq_id == boq_id)
        .order_by(GeneralCost.type_name)
    )
    return list(result.scalars().all())


async def ensure_general_costs(db: AsyncSession, boq_id: uuid.UUID) -> List[GeneralCost]:
    """Insert a zeroed GeneralCost for every catalog type the BOQ lacks"""
    async with transaction(db, "synchronize general costs"):
        result = await db.execute(select(BOQ).where(BOQ.id == boq_id).with_for_update())
        if result.scalar_one_or_none() is None:
            raise not_found("BOQ not found", code="boq_not_found")

        type_names = (await db.execute(select(CostType.type_name))).scalars().all()
        existing = set(
            (await db.execute(
                select(GeneralCost.type_name).where(GeneralCost.boq_id == boq_id)
            )).scalars().all()
        )

        missing = [name for name in type_names if name not in existing]
        for type_name in missing:
            db.add(GeneralCost(
                boq_id=boq_id,
                type_name=type_name,
                estimated_cost=0,
                actual_cost=0,
            ))
        if missing:
            await db.flush()
            logger.info(f"Added {len(missing)} general cost rows to BOQ {boq_id}")

    return await _list_for_boq(db, boq_id)


async def get_project_general_costs(db: AsyncSession, project_id: uuid.UUID) -> List[GeneralCost]:
    boq = await get_or_create_boq(db, project_id)
    return await ensure_general_costs(db, boq.id)


async def get_general_cost(db: AsyncSession, g_id: uuid.UUID) -> GeneralCost:
    result = await db.execute(select(GeneralCost).where(GeneralCost.id == g_id))
    general_cost = result.scalar_one_or_none()
    if not general_cost:
        raise not_found("general cost not found", code="general_cost_not_found")
    return general_cost


async def create_general_cost(db: AsyncSession, boq_id: uuid.UUID, type_name: str) -> GeneralCost:
    async with transaction(db, "create general cost"):
        result = await db.execute(select(BOQ).where(BOQ.id == boq_id).with_for_update())
        boq = result.scalar_one_or_none()
        if boq is None:
            raise not_found("BOQ not found", code="boq_not_found")
        if boq.status != BOQStatus.DRAFT:
            raise state_error(
                "can only add general cost to BOQ in draft status",
                code="boq_not_draft",
            )
        if await db.get(CostType, type_name) is None:
            raise not_found("type not found", code="type_not_found")

        exists = await db.execute(
            select(GeneralCost.id).where(
                GeneralCost.boq_id == boq_id,
                GeneralCost.type_name == type_name,
            )
        )
        if exists.first() is not None:
            raise conflict(
                "general cost already exists for this type",
                code="duplicate_general_cost",
            )

        general_cost = GeneralCost(
            boq_id=boq_id, type_name=type_name, estimated_cost=0, actual_cost=0
        )
        db.add(general_cost)
        await db.flush()
    return general_cost


async def _lock_with_boq(db: AsyncSession, g_id: uuid.UUID):
    result = await db.execute(
        select(GeneralCost, BOQ)
        .join(BOQ, BOQ.id == GeneralCost.boq_id)
        .where(GeneralCost.id == g_id)
        .with_for_update()
    )
    row = result.first()
    if row is None:
        raise not_found("general cost not found", code="general_cost_not_found")
    return row


async def update_estimated_cost(db: AsyncSession, g_id: uuid.UUID, value: float) -> GeneralCost:
    validate_non_negative(value, "estimated cost")

    async with transaction(db, "update general cost"):
        general_cost, boq = await _lock_with_boq(db, g_id)
        if boq.status != BOQStatus.DRAFT:
            raise state_error(
                "can only update general cost for BOQ in draft status",
                code="boq_not_draft",
            )
        general_cost.estimated_cost = value
        await db.flush()

    logger.info(f"Set estimated cost of {general_cost.type_name} on BOQ {boq.id} to {value}")
    return general_cost


async def update_actual_cost(db: AsyncSession, g_id: uuid.UUID, value: float) -> GeneralCost:
    """Actual costs are recorded once the priced offer is approved and work is running"""
    validate_non_negative(value, "actual cost")

    async with transaction(db, "update actual cost"):
        general_cost, boq = await _lock_with_boq(db, g_id)
        project = await get_project(db, boq.project_id)
        if project.status == ProjectStatus.COMPLETED:
            raise state_error(
                "cannot update actual cost for completed project",
                code="project_completed",
            )
        if boq.status != BOQStatus.APPROVED:
            raise state_error(
                "BOQ must be approved to update actual cost",
                code="boq_not_approved",
            )
        quotation = await find_quotation(db, boq.project_id)
        if quotation is None or quotation.status != QuotationStatus.APPROVED:
            raise state_error(
                "quotation must be approved to update actual cost",
                code="quotation_not_approved",
            )
        general_cost.actual_cost = value
        await db.flush()

    logger.info(f"Set actual cost of {general_cost.type_name} on BOQ {boq.id} to {value}")
    return general_cost
