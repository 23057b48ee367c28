"""
General helper utilities
"""
from calendar import monthrange
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from bidflow.config import get_settings


def round_money(amount: Optional[float], places: Optional[int] = None) -> float:
    """Round a monetary amount half away from zero at the configured precision"""
    if amount is None:
        return 0.0
    if places is None:
        places = get_settings().MONEY_DECIMAL_PLACES
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(amount)).quantize(quantum, rounding=ROUND_HALF_UP))


def add_months(value: datetime, months: int) -> datetime:
    """Shift a datetime by whole months, clamping the day to the target month"""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def margin_percent(profit: float, total: float) -> float:
    """Profit as a percentage of total, 0 when total is 0"""
    if not total:
        return 0.0
    return profit / total * 100
