"""
Input validation utilities
"""
import math
from datetime import date
from typing import Annotated, Optional

from pydantic import Field

from bidflow.errors import validation_error

# Request body float that rejects Infinity and NaN
FiniteFloat = Annotated[float, Field(allow_inf_nan=False)]


def _ensure_finite(value: float, field: str) -> None:
    if not math.isfinite(value):
        raise validation_error(f"{field} must be a finite number", code="non_finite_number")


def validate_non_negative(value: Optional[float], field: str) -> float:
    """Validate that a cost or amount is present and not negative"""
    if value is None:
        raise validation_error(f"{field} is required")
    _ensure_finite(value, field)
    if value < 0:
        raise validation_error(f"{field} must be positive", code="negative_amount")
    return value


def validate_positive(value: Optional[float], field: str) -> float:
    """Validate that a quantity or price is strictly greater than zero"""
    if value is not None:
        _ensure_finite(value, field)
    if value is None or value <= 0:
        raise validation_error(f"{field} must be greater than 0")
    return value


def parse_iso_date(value, field: str) -> Optional[date]:
    """Parse YYYY-MM-DD strings; dates and None pass through"""
    if value is None or isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        raise validation_error(f"invalid {field} format, expected YYYY-MM-DD")
