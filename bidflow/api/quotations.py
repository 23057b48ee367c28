"""
Quotation API endpoints
"""
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from bidflow.database import get_db
from bidflow.services import quotation_calculator
from bidflow.utils.validators import FiniteFloat

router = APIRouter()


class JobSellingPrice(BaseModel):
    job_id: uuid.UUID
    selling_price: FiniteFloat


class SellingPriceUpdate(BaseModel):
    tax_percentage: Optional[FiniteFloat] = None
    selling_general_cost: Optional[FiniteFloat] = None
    job_selling_prices: List[JobSellingPrice] = []


@router.post("/projects/{project_id}")
async def create_or_get_quotation(project_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    """Create the draft quotation on first call; every call reprices from the BOQ"""
    return await quotation_calculator.compute(db, project_id)


@router.put("/projects/{project_id}/approve")
async def approve_quotation(project_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    return await quotation_calculator.approve(db, project_id)


@router.get("/projects/{project_id}/export")
async def export_quotation(project_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    return await quotation_calculator.export(db, project_id)


@router.put("/projects/{project_id}/selling-price")
async def update_selling_price(
    project_id: uuid.UUID,
    data: SellingPriceUpdate,
    db: AsyncSession = Depends(get_db),
):
    prices = {item.job_id: item.selling_price for item in data.job_selling_prices}
    return await quotation_calculator.update_selling_prices(
        db,
        project_id,
        tax_percentage=data.tax_percentage,
        selling_general_cost=data.selling_general_cost,
        job_selling_prices=prices,
    )
