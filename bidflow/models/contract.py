"""
Contract models - a contract splits the project into invoiced periods
"""
import uuid
from datetime import datetime

from sqlalchemy import Column, Integer, Float, Date, DateTime, ForeignKey, Uuid, UniqueConstraint
from sqlalchemy.orm import relationship

from bidflow.database import Base


class Contract(Base):
    __tablename__ = "contract"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    project_id = Column(Uuid, ForeignKey("project.id"), nullable=False, unique=True)
    pay_within = Column(Integer, nullable=True)  # days
    retention_money = Column(Float, nullable=True)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    project = relationship("Project", back_populates="contract")
    periods = relationship("Period", back_populates="contract", order_by="Period.period_number")


class Period(Base):
    """Ordered installment of a contract; each one is invoiced once"""
    __tablename__ = "period"
    __table_args__ = (
        UniqueConstraint("contract_id", "period_number", name="uq_period_contract_number"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    contract_id = Column(Uuid, ForeignKey("contract.id"), nullable=False, index=True)
    period_number = Column(Integer, nullable=False)
    amount_period = Column(Float, nullable=False, default=0)
    delivered_within = Column(Integer, nullable=True)  # days

    contract = relationship("Contract", back_populates="periods")
    jobs = relationship("JobPeriod", back_populates="period")
    invoice = relationship("Invoice", back_populates="period", uselist=False)


class JobPeriod(Base):
    """Share of a job's amount billed in one period"""
    __tablename__ = "job_period"

    job_id = Column(Uuid, ForeignKey("job.id"), primary_key=True)
    period_id = Column(Uuid, ForeignKey("period.id"), primary_key=True)
    job_amount = Column(Float, nullable=False, default=0)

    period = relationship("Period", back_populates="jobs")
    job = relationship("Job")
