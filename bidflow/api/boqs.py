"""
BOQ API endpoints - job lines, approval and material price history
"""
import uuid
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from bidflow.database import get_db
from bidflow.services import boq_service
from bidflow.utils.validators import FiniteFloat

router = APIRouter()


# --- Pydantic Schemas ---

class BOQJobCreate(BaseModel):
    job_id: uuid.UUID
    quantity: FiniteFloat
    labor_cost: FiniteFloat = 0


class BOQJobUpdate(BaseModel):
    quantity: FiniteFloat
    labor_cost: FiniteFloat


class MaterialPriceCreate(BaseModel):
    job_id: uuid.UUID
    material_id: uuid.UUID
    supplier_id: Optional[uuid.UUID] = None
    quantity: Optional[FiniteFloat] = None
    estimated_price: Optional[FiniteFloat] = None
    actual_price: Optional[FiniteFloat] = None


def _line_to_dict(line, job) -> dict:
    return {
        "job_id": str(job.id),
        "name": job.name,
        "description": job.description,
        "unit": job.unit,
        "quantity": line.quantity,
        "labor_cost": line.labor_cost,
        "selling_price": line.selling_price,
    }


# --- Endpoints ---

@router.get("/project/{project_id}")
async def get_project_boq(project_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    """Get the project's BOQ with its jobs, creating an empty draft on first access"""
    boq, lines = await boq_service.get_boq_with_jobs(db, project_id)
    return {
        "id": str(boq.id),
        "project_id": str(boq.project_id),
        "status": boq.status.value,
        "selling_general_cost": boq.selling_general_cost,
        "complete_step": boq.complete_step,
        "jobs": [_line_to_dict(line, job) for line, job in lines],
    }


@router.get("/project/{project_id}/summary")
async def get_boq_summary(project_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    return await boq_service.get_boq_summary(db, project_id)


@router.put("/{boq_id}/approve")
async def approve_boq(boq_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    boq = await boq_service.approve_boq(db, boq_id)
    return {"message": "BOQ approved", "id": str(boq.id), "status": boq.status.value}


@router.post("/{boq_id}/jobs", status_code=201)
async def add_boq_job(boq_id: uuid.UUID, data: BOQJobCreate, db: AsyncSession = Depends(get_db)):
    line = await boq_service.add_boq_job(db, boq_id, data.job_id, data.quantity, data.labor_cost)
    return {
        "boq_id": str(line.boq_id),
        "job_id": str(line.job_id),
        "quantity": line.quantity,
        "labor_cost": line.labor_cost,
    }


@router.put("/{boq_id}/jobs/{job_id}")
async def update_boq_job(
    boq_id: uuid.UUID,
    job_id: uuid.UUID,
    data: BOQJobUpdate,
    db: AsyncSession = Depends(get_db),
):
    line = await boq_service.update_boq_job(db, boq_id, job_id, data.quantity, data.labor_cost)
    return {
        "boq_id": str(line.boq_id),
        "job_id": str(line.job_id),
        "quantity": line.quantity,
        "labor_cost": line.labor_cost,
    }


@router.delete("/{boq_id}/jobs/{job_id}")
async def delete_boq_job(boq_id: uuid.UUID, job_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    await boq_service.delete_boq_job(db, boq_id, job_id)
    return {"message": "job removed from BOQ"}


@router.post("/{boq_id}/material-prices", status_code=201)
async def log_material_price(
    boq_id: uuid.UUID,
    data: MaterialPriceCreate,
    db: AsyncSession = Depends(get_db),
):
    """Append a material price observation; existing entries are never changed"""
    entry = await boq_service.log_material_price(db, boq_id, **data.model_dump())
    return {
        "id": str(entry.id),
        "boq_id": str(entry.boq_id),
        "job_id": str(entry.job_id),
        "material_id": str(entry.material_id),
        "supplier_id": str(entry.supplier_id) if entry.supplier_id else None,
        "quantity": entry.quantity,
        "estimated_price": entry.estimated_price,
        "actual_price": entry.actual_price,
        "created_at": entry.created_at.isoformat() if entry.created_at else None,
    }
