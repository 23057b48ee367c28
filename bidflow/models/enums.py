"""
Status enums shared by the workflow models
"""
from enum import Enum

from sqlalchemy import Enum as SQLEnum


class ProjectStatus(str, Enum):
    PLANNING = "planning"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class BOQStatus(str, Enum):
    DRAFT = "draft"
    APPROVED = "approved"


class QuotationStatus(str, Enum):
    DRAFT = "draft"
    APPROVED = "approved"


class InvoiceStatus(str, Enum):
    DRAFT = "draft"
    APPROVED = "approved"


def status_column_type(enum_cls) -> SQLEnum:
    """Store enum values (not names) in a plain VARCHAR column"""
    return SQLEnum(
        enum_cls,
        native_enum=False,
        length=20,
        values_callable=lambda members: [m.value for m in members],
    )
