from bidflow.models.enums import ProjectStatus, BOQStatus, QuotationStatus, InvoiceStatus
from bidflow.models.project import Client, Project
from bidflow.models.catalog import Job, Material, JobMaterial, MaterialPriceLog
from bidflow.models.boq import BOQ, BOQJob, CostType, GeneralCost
from bidflow.models.quotation import Quotation
from bidflow.models.contract import Contract, Period, JobPeriod
from bidflow.models.invoice import Invoice

__all__ = [
    "ProjectStatus",
    "BOQStatus",
    "QuotationStatus",
    "InvoiceStatus",
    "Client",
    "Project",
    "Job",
    "Material",
    "JobMaterial",
    "MaterialPriceLog",
    "BOQ",
    "BOQJob",
    "CostType",
    "GeneralCost",
    "Quotation",
    "Contract",
    "Period",
    "JobPeriod",
    "Invoice",
]
