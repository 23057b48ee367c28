"""
Workflow error taxonomy.

Every failure the services raise is a WorkflowError tagged with an ErrorKind.
The HTTP layer maps the kind to a status code; the message is for humans and
the code is for clients that need to branch on a specific condition.
"""
from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    STATE = "state"
    DEPENDENCY = "dependency"
    CONFLICT = "conflict"
    INCOMPLETE_DATA = "incomplete_data"
    INFRASTRUCTURE = "infrastructure"


HTTP_STATUS_BY_KIND = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.STATE: 400,
    ErrorKind.DEPENDENCY: 409,
    ErrorKind.CONFLICT: 409,
    ErrorKind.INCOMPLETE_DATA: 422,
    ErrorKind.INFRASTRUCTURE: 500,
}


class WorkflowError(Exception):
    """A business-rule or data-access failure with a machine-readable kind"""

    def __init__(self, kind: ErrorKind, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.code = code or kind.value

    @property
    def status_code(self) -> int:
        return HTTP_STATUS_BY_KIND[self.kind]

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code}

    def __repr__(self) -> str:
        return f"WorkflowError({self.kind.value!r}, {self.message!r}, code={self.code!r})"


def validation_error(message: str, code: Optional[str] = None) -> WorkflowError:
    return WorkflowError(ErrorKind.VALIDATION, message, code)


def not_found(message: str, code: Optional[str] = None) -> WorkflowError:
    return WorkflowError(ErrorKind.NOT_FOUND, message, code)


def state_error(message: str, code: Optional[str] = None) -> WorkflowError:
    return WorkflowError(ErrorKind.STATE, message, code)


def dependency_error(message: str, code: Optional[str] = None) -> WorkflowError:
    return WorkflowError(ErrorKind.DEPENDENCY, message, code)


def conflict(message: str, code: Optional[str] = None) -> WorkflowError:
    return WorkflowError(ErrorKind.CONFLICT, message, code)


def incomplete_data(message: str, code: Optional[str] = None) -> WorkflowError:
    return WorkflowError(ErrorKind.INCOMPLETE_DATA, message, code)
