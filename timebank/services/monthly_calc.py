from __future__ import annotations

import math
from dataclasses import dataclass, field
from decimal import Decimal

from timebank.models import AbsenceCategory, CreditType

WARN_MONTHLY_CAP = "MONTHLY_CAP"
WARN_FLEXTIME_CAPPED = "FLEXTIME_CAPPED"
WARN_BELOW_THRESHOLD = "BELOW_THRESHOLD"
WARN_NO_CARRYOVER = "NO_CARRYOVER"


@dataclass(frozen=True)
class DailyTotals:
    gross_minutes: int = 0
    net_minutes: int = 0
    target_minutes: int = 0
    overtime_minutes: int = 0
    undertime_minutes: int = 0
    break_minutes: int = 0
    has_error: bool = False


@dataclass(frozen=True)
class EvaluationRules:
    credit_type: CreditType | str
    flextime_threshold: int | None = None
    max_flextime_per_month: int | None = None
    upper_limit_annual: int | None = None
    # stored as a positive number of minutes
    lower_limit_annual: int | None = None


@dataclass(frozen=True)
class AbsenceSummary:
    vacation_days: Decimal = Decimal("0")
    sick_days: int = 0
    other_absence_days: int = 0


@dataclass
class MonthResult:
    total_gross_minutes: int = 0
    total_net_minutes: int = 0
    total_target_minutes: int = 0
    total_overtime_minutes: int = 0
    total_undertime_minutes: int = 0
    total_break_minutes: int = 0
    flextime_start: int = 0
    flextime_change: int = 0
    flextime_raw: int = 0
    flextime_credited: int = 0
    flextime_forfeited: int = 0
    flextime_end: int = 0
    work_days: int = 0
    days_with_errors: int = 0
    vacation_taken: Decimal = Decimal("0")
    sick_days: int = 0
    other_absence_days: int = 0
    warnings: list[str] = field(default_factory=list)


def apply_flextime_caps(balance: int, upper: int | None, lower: int | None) -> tuple[int, int]:
    """Clamp a balance to the annual limits; returns (balance, forfeited)."""
    forfeited = 0
    if upper is not None and balance > upper:
        forfeited = balance - upper
        balance = upper
    if lower is not None and balance < -lower:
        balance = -lower
    return balance, forfeited


def _apply_monthly_cap(result: MonthResult, cap: int | None) -> None:
    if cap is not None and result.flextime_credited > cap:
        result.flextime_forfeited += result.flextime_credited - cap
        result.flextime_credited = cap
        result.warnings.append(WARN_MONTHLY_CAP)


def _apply_annual_caps(result: MonthResult, rules: EvaluationRules) -> None:
    uncapped = result.flextime_start + result.flextime_credited
    result.flextime_end, forfeited = apply_flextime_caps(
        uncapped, rules.upper_limit_annual, rules.lower_limit_annual
    )
    result.flextime_forfeited += forfeited
    if result.flextime_end != uncapped:
        result.warnings.append(WARN_FLEXTIME_CAPPED)


def _direct_transfer(result: MonthResult) -> None:
    result.flextime_credited = result.flextime_change
    result.flextime_end = result.flextime_raw
    result.flextime_forfeited = 0


def _credit_complete(result: MonthResult, rules: EvaluationRules) -> None:
    result.flextime_credited = result.flextime_change
    _apply_monthly_cap(result, rules.max_flextime_per_month)
    _apply_annual_caps(result, rules)


def _credit_after_threshold(result: MonthResult, rules: EvaluationRules) -> None:
    threshold = rules.flextime_threshold or 0
    change = result.flextime_change
    if change > threshold:
        result.flextime_credited = change - threshold
        result.flextime_forfeited = threshold
    elif change > 0:
        result.flextime_credited = 0
        result.flextime_forfeited = change
        result.warnings.append(WARN_BELOW_THRESHOLD)
    else:
        # undertime is always deducted in full
        result.flextime_credited = change
    _apply_monthly_cap(result, rules.max_flextime_per_month)
    _apply_annual_caps(result, rules)


def _credit_no_carryover(result: MonthResult, rules: EvaluationRules) -> None:
    result.flextime_credited = 0
    result.flextime_end = 0
    result.flextime_forfeited = result.flextime_change
    result.warnings.append(WARN_NO_CARRYOVER)


_CREDIT_RULES = {
    CreditType.COMPLETE: _credit_complete,
    CreditType.AFTER_THRESHOLD: _credit_after_threshold,
    CreditType.NO_CARRYOVER: _credit_no_carryover,
}


def calculate_month(
    daily_values: list[DailyTotals],
    *,
    previous_balance: int,
    rules: EvaluationRules | None,
    absences: AbsenceSummary | None = None,
) -> MonthResult:
    absences = absences or AbsenceSummary()
    result = MonthResult(
        flextime_start=previous_balance,
        vacation_taken=absences.vacation_days,
        sick_days=absences.sick_days,
        other_absence_days=absences.other_absence_days,
    )

    for value in daily_values:
        result.total_gross_minutes += value.gross_minutes
        result.total_net_minutes += value.net_minutes
        result.total_target_minutes += value.target_minutes
        result.total_overtime_minutes += value.overtime_minutes
        result.total_undertime_minutes += value.undertime_minutes
        result.total_break_minutes += value.break_minutes
        if value.gross_minutes > 0 or value.net_minutes > 0:
            result.work_days += 1
        if value.has_error:
            result.days_with_errors += 1

    result.flextime_change = result.total_overtime_minutes - result.total_undertime_minutes
    result.flextime_raw = result.flextime_start + result.flextime_change

    if rules is None:
        _direct_transfer(result)
        return result

    try:
        credit_type = CreditType(rules.credit_type)
    except ValueError:
        credit_type = CreditType.NO_EVALUATION
    handler = _CREDIT_RULES.get(credit_type)
    if handler is None:
        _direct_transfer(result)
    else:
        handler(result, rules)
    return result


def calculate_annual_carryover(balance: int | None, annual_floor: int | None) -> int:
    if balance is None:
        return 0
    if annual_floor is not None and balance < -annual_floor:
        return -annual_floor
    return balance


def summarize_absences(absences: list[tuple[AbsenceCategory, Decimal]]) -> AbsenceSummary:
    vacation = Decimal("0")
    sick = 0
    other = 0
    for category, duration in absences:
        if category == AbsenceCategory.VACATION:
            vacation += Decimal(duration)
        elif category == AbsenceCategory.ILLNESS:
            sick += math.ceil(Decimal(duration))
        else:
            other += 1
    return AbsenceSummary(vacation_days=vacation, sick_days=sick, other_absence_days=other)
