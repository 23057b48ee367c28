"""
Project and client models - the project is the root aggregate of the workflow
"""
import uuid
from datetime import datetime

from sqlalchemy import Column, String, Text, Date, DateTime, ForeignKey, Uuid
from sqlalchemy.orm import relationship

from bidflow.database import Base
from bidflow.models.enums import ProjectStatus, status_column_type


class Client(Base):
    """Customer the quotation is addressed to (managed elsewhere)"""
    __tablename__ = "client"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False)
    email = Column(String, nullable=True)
    tel = Column(String, nullable=True)
    address = Column(Text, nullable=True)
    tax_id = Column(String, nullable=True)


class Project(Base):
    __tablename__ = "project"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    address = Column(Text, nullable=True)
    status = Column(status_column_type(ProjectStatus), nullable=False, default=ProjectStatus.PLANNING)
    client_id = Column(Uuid, ForeignKey("client.id"), nullable=True)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    client = relationship("Client")
    boq = relationship("BOQ", back_populates="project", uselist=False)
    quotation = relationship("Quotation", back_populates="project", uselist=False)
    contract = relationship("Contract", back_populates="project", uselist=False)
    invoices = relationship("Invoice", back_populates="project")
