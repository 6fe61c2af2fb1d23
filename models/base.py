"""
Field conversions shared by the models' camelCase views.
"""
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Iterable, Optional


def uid(value: Any) -> Optional[str]:
    return str(value) if value is not None else None


def money(value: Any) -> float:
    if value is None:
        return 0.0
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def calculate_percentage(current: Any, total: Any) -> int:
    """Whole-number percent; 0 when there is no total"""
    total = Decimal(str(total or 0))
    if total == 0:
        return 0
    percent = Decimal(str(current or 0)) / total * 100
    return int(percent.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def average_rating(ratings: Iterable[int]) -> float:
    """Mean rating to two decimals; 0 when there are none"""
    ratings = list(ratings)
    if not ratings:
        return 0.0
    avg = Decimal(sum(ratings)) / Decimal(len(ratings))
    return float(avg.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))
