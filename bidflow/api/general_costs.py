"""
General cost API endpoints
"""
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from bidflow.database import get_db
from bidflow.services import general_costs
from bidflow.utils.validators import FiniteFloat

router = APIRouter()


# --- Pydantic Schemas ---

class CostTypeResponse(BaseModel):
    type_name: str
    description: Optional[str]

    class Config:
        from_attributes = True


class GeneralCostResponse(BaseModel):
    id: uuid.UUID
    boq_id: uuid.UUID
    type_name: str
    estimated_cost: float
    actual_cost: float

    class Config:
        from_attributes = True


class GeneralCostCreate(BaseModel):
    boq_id: uuid.UUID
    type_name: str


class EstimatedCostUpdate(BaseModel):
    estimated_cost: FiniteFloat


class ActualCostUpdate(BaseModel):
    actual_cost: FiniteFloat


# --- Endpoints ---

@router.get("/types", response_model=List[CostTypeResponse])
async def list_cost_types(db: AsyncSession = Depends(get_db)):
    return await general_costs.list_cost_types(db)


@router.get("/project/{project_id}", response_model=List[GeneralCostResponse])
async def get_project_general_costs(project_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    """One row per cost type; missing rows are created at zero"""
    return await general_costs.get_project_general_costs(db, project_id)


@router.get("/{g_id}", response_model=GeneralCostResponse)
async def get_general_cost(g_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    return await general_costs.get_general_cost(db, g_id)


@router.post("", response_model=GeneralCostResponse, status_code=201)
async def create_general_cost(data: GeneralCostCreate, db: AsyncSession = Depends(get_db)):
    return await general_costs.create_general_cost(db, data.boq_id, data.type_name)


@router.put("/{g_id}", response_model=GeneralCostResponse)
async def update_estimated_cost(
    g_id: uuid.UUID,
    data: EstimatedCostUpdate,
    db: AsyncSession = Depends(get_db),
):
    return await general_costs.update_estimated_cost(db, g_id, data.estimated_cost)


@router.put("/{g_id}/actual-cost", response_model=GeneralCostResponse)
async def update_actual_cost(
    g_id: uuid.UUID,
    data: ActualCostUpdate,
    db: AsyncSession = Depends(get_db),
):
    return await general_costs.update_actual_cost(db, g_id, data.actual_cost)
