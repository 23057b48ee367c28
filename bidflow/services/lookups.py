"""
Shared read helpers for the workflow services
"""
import uuid
from typing import NamedTuple, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bidflow.errors import not_found
from bidflow.models.boq import BOQ
from bidflow.models.contract import Contract
from bidflow.models.project import Project
from bidflow.models.quotation import Quotation


class StatusSnapshot(NamedTuple):
    """Statuses of a project and its linked documents at one point in time"""
    project_status: str
    boq_status: Optional[str]
    quotation_status: Optional[str]
    contract_id: Optional[uuid.UUID]


async def get_project(db: AsyncSession, project_id: uuid.UUID, for_update: bool = False) -> Project:
    query = select(Project).where(Project.id == project_id)
    if for_update:
        query = query.with_for_update()
    result = await db.execute(query)
    project = result.scalar_one_or_none()
    if not project:
        raise not_found("project not found", code="project_not_found")
    return project


async def get_boq_by_project(db: AsyncSession, project_id: uuid.UUID, for_update: bool = False) -> BOQ:
    query = select(BOQ).where(BOQ.project_id == project_id)
    if for_update:
        query = query.with_for_update()
    result = await db.execute(query)
    boq = result.scalar_one_or_none()
    if not boq:
        raise not_found("BOQ not found", code="boq_not_found")
    return boq


async def find_quotation(db: AsyncSession, project_id: uuid.UUID,
                         for_update: bool = False) -> Optional[Quotation]:
    query = select(Quotation).where(Quotation.project_id == project_id)
    if for_update:
        query = query.with_for_update()
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def load_statuses(db: AsyncSession, project_id: uuid.UUID) -> StatusSnapshot:
    """Read project, BOQ, quotation status and contract id in one query"""
    result = await db.execute(
        select(Project.status, BOQ.status, Quotation.status, Contract.id)
        .select_from(Project)
        .outerjoin(BOQ, BOQ.project_id == Project.id)
        .outerjoin(Quotation, Quotation.project_id == Project.id)
        .outerjoin(Contract, Contract.project_id == Project.id)
        .where(Project.id == project_id)
    )
    row = result.first()
    if row is None:
        raise not_found("project not found", code="project_not_found")
    return StatusSnapshot(*row)
