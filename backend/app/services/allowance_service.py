import calendar
import math
from dataclasses import dataclass
from typing import NamedTuple, Optional, Tuple, Union

from backend.app.errors import ValidationError
from backend.app.models.models import PeriodKind, MONTHLY_WEEK_SLOT

DAYS_IN_WEEK = 7


@dataclass(frozen=True)
class MonthlySlot:
    """A whole calendar month"""
    month: int
    year: int

    kind = PeriodKind.MONTHLY
    week_number = None
    week_slot = MONTHLY_WEEK_SLOT

    @property
    def day_count(self) -> int:
        return calendar.monthrange(self.year, self.month)[1]

    def natural_key(self, user_id: str) -> Tuple[str, int, int, Optional[int]]:
        return (user_id, self.month, self.year, None)


@dataclass(frozen=True)
class WeeklySlot:
    """One numbered week inside a month"""
    month: int
    year: int
    week_number: int

    kind = PeriodKind.WEEKLY
    day_count = DAYS_IN_WEEK

    @property
    def week_slot(self) -> int:
        return self.week_number

    def natural_key(self, user_id: str) -> Tuple[str, int, int, Optional[int]]:
        return (user_id, self.month, self.year, self.week_number)


PeriodSlot = Union[MonthlySlot, WeeklySlot]


class Allowance(NamedTuple):
    available_amount: float
    daily_allowance: float


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def resolve_period(
    period_kind: Optional[PeriodKind],
    month: Optional[int],
    year: Optional[int],
    week_number: Optional[int] = None,
) -> PeriodSlot:
    """
    Resolve a period request into its canonical slot.

    Args:
        period_kind: monthly or weekly, monthly when omitted
        month: Calendar month (1-12)
        year: Calendar year
        week_number: Week inside the month, required for weekly periods

    Returns:
        MonthlySlot or WeeklySlot carrying the day count used for allowance division
    """
    period_kind = PeriodKind(period_kind) if period_kind else PeriodKind.MONTHLY

    if month is None or year is None:
        raise ValidationError("Month and year are required")
    if month < 1 or month > 12:
        raise ValidationError("Month must be between 1 and 12")
    if year < 1 or year > 9999:
        raise ValidationError("Year must be between 1 and 9999")

    if period_kind == PeriodKind.WEEKLY:
        if week_number is None:
            raise ValidationError("Week number is required for weekly periods")
        if week_number < 1:
            raise ValidationError("Week number must be positive")
        return WeeklySlot(month=month, year=year, week_number=week_number)

    return MonthlySlot(month=month, year=year)


def calculate_allowance(income_amount: Optional[float], target_amount: Optional[float], day_count: int) -> Allowance:
    """Derive the available amount and daily allowance of a period"""
    if income_amount is None or target_amount is None:
        raise ValidationError("Income amount and target amount are required")
    if not math.isfinite(income_amount) or not math.isfinite(target_amount):
        raise ValidationError("Income amount and target amount must be finite numbers")
    if income_amount <= 0:
        raise ValidationError("Income amount must be positive")
    if target_amount < 0:
        raise ValidationError("Target amount cannot be negative")
    if target_amount >= income_amount:
        raise ValidationError("Target amount cannot be equal to or greater than income amount")

    available_amount = income_amount - target_amount
    return Allowance(
        available_amount=available_amount,
        daily_allowance=available_amount / day_count,
    )


def format_difference(difference: float) -> str:
    """Render a variance with an explicit sign, e.g. +12.50 or -3.00"""
    if difference >= 0:
        return f"+{abs(difference):.2f}"
    return f"{difference:.2f}"
