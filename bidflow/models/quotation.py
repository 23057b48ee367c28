"""
Quotation model - line items are derived from the BOQ on every read
"""
import uuid
from datetime import datetime

from sqlalchemy import Column, Float, DateTime, ForeignKey, Uuid
from sqlalchemy.orm import relationship

from bidflow.database import Base
from bidflow.models.enums import QuotationStatus, status_column_type


class Quotation(Base):
    __tablename__ = "quotation"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    project_id = Column(Uuid, ForeignKey("project.id"), nullable=False, unique=True)
    status = Column(status_column_type(QuotationStatus), nullable=False, default=QuotationStatus.DRAFT)
    valid_date = Column(DateTime, nullable=True)
    tax_percentage = Column(Float, nullable=True)
    final_amount = Column(Float, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    project = relationship("Project", back_populates="quotation")
