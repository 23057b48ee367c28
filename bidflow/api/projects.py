"""
Projects API endpoints - project lifecycle and financial overview
"""
import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from bidflow.database import get_db
from bidflow.models.project import Project
from bidflow.services import workflow
from bidflow.services.lookups import get_project

router = APIRouter()


# --- Pydantic Schemas ---

class ProjectCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    address: Optional[str] = None
    client_id: Optional[uuid.UUID] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class ProjectStatusUpdate(BaseModel):
    status: str


def project_to_dict(project: Project) -> dict:
    return {
        "id": str(project.id),
        "name": project.name,
        "description": project.description,
        "address": project.address,
        "status": project.status.value,
        "client_id": str(project.client_id) if project.client_id else None,
        "start_date": project.start_date.isoformat() if project.start_date else None,
        "end_date": project.end_date.isoformat() if project.end_date else None,
        "created_at": project.created_at.isoformat() if project.created_at else None,
        "updated_at": project.updated_at.isoformat() if project.updated_at else None,
    }


# --- Endpoints ---

@router.post("", status_code=201)
async def create_project(data: ProjectCreate, db: AsyncSession = Depends(get_db)):
    """Create a project in planning status"""
    project = await workflow.create_project(db, **data.model_dump())
    return project_to_dict(project)


@router.get("/{project_id}")
async def read_project(project_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    return project_to_dict(await get_project(db, project_id))


@router.put("/{project_id}/status")
async def update_project_status(
    project_id: uuid.UUID,
    data: ProjectStatusUpdate,
    db: AsyncSession = Depends(get_db),
):
    """Advance the project status; starting work needs an approved BOQ and quotation"""
    project = await workflow.update_project_status(db, project_id, data.status)
    return {
        "message": f"project status updated to {project.status.value}",
        "project": project_to_dict(project),
    }


@router.put("/{project_id}/cancel")
async def cancel_project(project_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    project = await workflow.cancel_project(db, project_id)
    return {"message": "project cancelled", "project": project_to_dict(project)}


@router.get("/{project_id}/overview")
async def project_overview(project_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    """Estimated and actual cost, selling price and margins"""
    return await workflow.get_project_overview(db, project_id)


@router.get("/{project_id}/summary")
async def project_summary(project_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    """Per-job profit breakdown of a completed project"""
    return await workflow.get_project_summary(db, project_id)
