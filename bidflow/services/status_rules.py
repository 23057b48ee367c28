"""
Status transition rules for projects, BOQs, quotations and invoices.

Pure functions: callers load the current statuses, these decide whether a
transition is legal. `can_transition` reports, `ensure_transition` raises.
"""
from typing import Optional, Tuple

from bidflow.errors import WorkflowError, dependency_error, state_error, validation_error
from bidflow.models.enums import BOQStatus, InvoiceStatus, ProjectStatus, QuotationStatus

PROJECT = "project"
BOQ = "boq"
QUOTATION = "quotation"
INVOICE = "invoice"

_STATUS_ENUMS = {
    PROJECT: ProjectStatus,
    BOQ: BOQStatus,
    QUOTATION: QuotationStatus,
    INVOICE: InvoiceStatus,
}

# Forward edges; anything not listed is illegal
_PROJECT_TRANSITIONS = {
    ProjectStatus.PLANNING: {ProjectStatus.IN_PROGRESS, ProjectStatus.CANCELLED},
    ProjectStatus.IN_PROGRESS: {ProjectStatus.COMPLETED, ProjectStatus.CANCELLED},
    ProjectStatus.COMPLETED: set(),
    ProjectStatus.CANCELLED: set(),
}

TERMINAL_PROJECT_STATUSES = {ProjectStatus.COMPLETED, ProjectStatus.CANCELLED}


def _coerce(kind: str, value, field: str):
    enum_cls = _STATUS_ENUMS.get(kind)
    if enum_cls is None:
        raise validation_error(f"unknown status kind: {kind}")
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise validation_error(
            f"invalid {kind} {field} '{value}', must be one of: {allowed}",
            code="invalid_status",
        )


def _project_error(current: ProjectStatus, target: ProjectStatus,
                   boq_status: Optional[str], quotation_status: Optional[str]) -> Optional[WorkflowError]:
    if current in TERMINAL_PROJECT_STATUSES:
        return state_error(
            f"project is {current.value} and cannot change status",
            code="terminal_status",
        )
    if target not in _PROJECT_TRANSITIONS[current]:
        return state_error(
            f"cannot change project status from {current.value} to {target.value}",
            code="illegal_transition",
        )
    if target == ProjectStatus.IN_PROGRESS:
        if boq_status != BOQStatus.APPROVED:
            return dependency_error("BOQ must be approved", code="boq_not_approved")
        if quotation_status != QuotationStatus.APPROVED:
            return dependency_error("quotation must be approved", code="quotation_not_approved")
    return None


def _document_error(kind: str, current, target) -> Optional[WorkflowError]:
    # BOQ, quotation and invoice share the draft -> approved lifecycle
    if current == target == "approved":
        if kind == INVOICE:
            return None
        if kind == QUOTATION:
            return state_error("no draft quotation found to approve", code="no_draft_quotation")
        return state_error(f"{kind} is already approved", code="already_approved")
    if current == "approved" and target == "draft":
        return state_error(
            "cannot change status from approved to draft",
            code="illegal_transition",
        )
    if current == target:
        return state_error(f"{kind} is already {current.value}", code="illegal_transition")
    return None


def transition_error(kind: str, current, target, *,
                     boq_status: Optional[str] = None,
                     quotation_status: Optional[str] = None) -> Optional[WorkflowError]:
    """Return the error that blocks current -> target, or None when legal"""
    current = _coerce(kind, current, "current status")
    target = _coerce(kind, target, "status")

    if kind == PROJECT:
        return _project_error(current, target, boq_status, quotation_status)

    error = _document_error(kind, current, target)
    if error is None and kind == QUOTATION and target == QuotationStatus.APPROVED:
        if boq_status != BOQStatus.APPROVED:
            return state_error(
                "BOQ must be approved before approving quotation",
                code="boq_not_approved",
            )
    return error


def can_transition(kind: str, current, target, *,
                   boq_status: Optional[str] = None,
                   quotation_status: Optional[str] = None) -> Tuple[bool, Optional[str]]:
    error = transition_error(
        kind, current, target, boq_status=boq_status, quotation_status=quotation_status
    )
    if error is None:
        return True, None
    return False, error.message


def ensure_transition(kind: str, current, target, *,
                      boq_status: Optional[str] = None,
                      quotation_status: Optional[str] = None) -> None:
    error = transition_error(
        kind, current, target, boq_status=boq_status, quotation_status=quotation_status
    )
    if error is not None:
        raise error


def ensure_editable_boq(status) -> None:
    """BOQ lines and estimates are frozen once the BOQ leaves draft"""
    if status != BOQStatus.DRAFT:
        raise state_error(
            "BOQ must be in draft status to be modified",
            code="boq_not_draft",
        )
