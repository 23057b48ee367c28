"""
Bill of quantities models - BOQ, its job lines and its general costs
"""
import uuid

from sqlalchemy import Column, Integer, String, Text, Float, ForeignKey, Uuid, UniqueConstraint
from sqlalchemy.orm import relationship

from bidflow.database import Base
from bidflow.models.enums import BOQStatus, status_column_type


class BOQ(Base):
    __tablename__ = "boq"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    project_id = Column(Uuid, ForeignKey("project.id"), nullable=False, unique=True)
    status = Column(status_column_type(BOQStatus), nullable=False, default=BOQStatus.DRAFT)
    selling_general_cost = Column(Float, nullable=True)
    complete_step = Column(Integer, nullable=False, default=0)

    # Relationships
    project = relationship("Project", back_populates="boq")
    jobs = relationship("BOQJob", back_populates="boq", cascade="all, delete-orphan")
    general_costs = relationship(
        "GeneralCost", back_populates="boq", order_by="GeneralCost.type_name"
    )


class BOQJob(Base):
    """A job priced inside one BOQ - the line-item grain for pricing"""
    __tablename__ = "boq_job"

    boq_id = Column(Uuid, ForeignKey("boq.id"), primary_key=True)
    job_id = Column(Uuid, ForeignKey("job.id"), primary_key=True)
    quantity = Column(Float, nullable=False)
    labor_cost = Column(Float, nullable=False, default=0)
    selling_price = Column(Float, nullable=True)

    boq = relationship("BOQ", back_populates="jobs")
    job = relationship("Job")


class CostType(Base):
    """General-cost category catalog (global reference data)"""
    __tablename__ = "type"

    type_name = Column(String, primary_key=True)
    description = Column(Text, nullable=True)


class GeneralCost(Base):
    __tablename__ = "general_cost"
    __table_args__ = (
        UniqueConstraint("boq_id", "type_name", name="uq_general_cost_boq_type"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    boq_id = Column(Uuid, ForeignKey("boq.id"), nullable=False, index=True)
    type_name = Column(String, ForeignKey("type.type_name"), nullable=False)
    estimated_cost = Column(Float, nullable=False, default=0)
    actual_cost = Column(Float, nullable=False, default=0)

    boq = relationship("BOQ", back_populates="general_costs")
