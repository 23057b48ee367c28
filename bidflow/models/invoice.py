"""
Invoice model - one invoice per contract period
"""
import uuid
from datetime import datetime

from sqlalchemy import Column, String, Text, Float, Date, DateTime, ForeignKey, Uuid
from sqlalchemy.orm import relationship

from bidflow.database import Base
from bidflow.models.enums import InvoiceStatus, status_column_type


class Invoice(Base):
    __tablename__ = "invoice"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    project_id = Column(Uuid, ForeignKey("project.id"), nullable=False, index=True)
    period_id = Column(Uuid, ForeignKey("period.id"), nullable=True, unique=True)
    status = Column(status_column_type(InvoiceStatus), nullable=False, default=InvoiceStatus.DRAFT)

    # Payment details
    invoice_date = Column(Date, nullable=True)
    payment_due_date = Column(Date, nullable=True)
    paid_date = Column(Date, nullable=True)
    payment_term = Column(String, nullable=True)
    retention = Column(Float, nullable=True)
    remarks = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    project = relationship("Project", back_populates="invoices")
    period = relationship("Period", back_populates="invoice")
