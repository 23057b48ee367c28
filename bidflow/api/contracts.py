"""
Contract API endpoints - contract, periods and job apportioning
"""
import uuid
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from bidflow.database import get_db
from bidflow.models.contract import Contract
from bidflow.services import contract_service
from bidflow.utils.validators import FiniteFloat

router = APIRouter()


# --- Pydantic Schemas ---

class JobAmount(BaseModel):
    job_id: uuid.UUID
    job_amount: FiniteFloat = 0


class PeriodCreate(BaseModel):
    period_number: int
    amount_period: FiniteFloat = 0
    delivered_within: Optional[int] = None
    jobs: List[JobAmount] = []


class ContractCreate(BaseModel):
    pay_within: Optional[int] = None
    retention_money: Optional[FiniteFloat] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    periods: List[PeriodCreate] = []


def contract_to_dict(contract: Contract) -> dict:
    return {
        "id": str(contract.id),
        "project_id": str(contract.project_id),
        "pay_within": contract.pay_within,
        "retention_money": contract.retention_money,
        "start_date": contract.start_date.isoformat() if contract.start_date else None,
        "end_date": contract.end_date.isoformat() if contract.end_date else None,
        "periods": [
            {
                "id": str(period.id),
                "period_number": period.period_number,
                "amount_period": period.amount_period,
                "delivered_within": period.delivered_within,
                "jobs": [
                    {"job_id": str(jp.job_id), "job_amount": jp.job_amount}
                    for jp in period.jobs
                ],
            }
            for period in contract.periods
        ],
    }


# --- Endpoints ---

@router.post("/{project_id}", status_code=201)
async def create_contract(project_id: uuid.UUID, data: ContractCreate, db: AsyncSession = Depends(get_db)):
    contract = await contract_service.create_contract(
        db,
        project_id,
        periods=[p.model_dump() for p in data.periods],
        pay_within=data.pay_within,
        retention_money=data.retention_money,
        start_date=data.start_date,
        end_date=data.end_date,
    )
    return contract_to_dict(contract)


@router.get("/{project_id}")
async def get_contract(project_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    return contract_to_dict(await contract_service.get_contract(db, project_id))
