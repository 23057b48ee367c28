"""
Work and supply catalog models (jobs, materials, price history)
"""
import uuid
from datetime import datetime

from sqlalchemy import Column, String, Text, Float, DateTime, ForeignKey, Uuid
from sqlalchemy.orm import relationship

from bidflow.database import Base


class Job(Base):
    """Catalog work item"""
    __tablename__ = "job"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    unit = Column(String, nullable=False)

    materials = relationship("JobMaterial", back_populates="job")


class Material(Base):
    """Catalog supply item"""
    __tablename__ = "material"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False)
    unit = Column(String, nullable=False)


class JobMaterial(Base):
    """Quantity of a material consumed per unit of a job"""
    __tablename__ = "job_material"

    job_id = Column(Uuid, ForeignKey("job.id"), primary_key=True)
    material_id = Column(Uuid, ForeignKey("material.id"), primary_key=True)
    quantity = Column(Float, nullable=False, default=0)

    job = relationship("Job", back_populates="materials")
    material = relationship("Material")


class MaterialPriceLog(Base):
    """Append-only price history of a material within one BOQ job"""
    __tablename__ = "material_price_log"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    material_id = Column(Uuid, ForeignKey("material.id"), nullable=False)
    boq_id = Column(Uuid, ForeignKey("boq.id"), nullable=False, index=True)
    job_id = Column(Uuid, ForeignKey("job.id"), nullable=False)
    supplier_id = Column(Uuid, nullable=True)
    quantity = Column(Float, nullable=True)  # per job unit; absent means 1
    estimated_price = Column(Float, nullable=True)
    actual_price = Column(Float, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    material = relationship("Material")
