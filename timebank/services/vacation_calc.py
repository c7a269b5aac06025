from __future__ import annotations

from calendar import monthrange
from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from timebank.models import CappingRuleType, ExemptionType, SpecialCalcType, VacationBasis

ZERO = Decimal("0")


@dataclass(frozen=True)
class SpecialCalculation:
    calc_type: SpecialCalcType
    threshold: int
    bonus_days: Decimal


@dataclass(frozen=True)
class EntitlementInput:
    year: int
    reference_date: date
    entry_date: date
    base_vacation_days: Decimal
    exit_date: date | None = None
    birth_date: date | None = None
    weekly_hours: Decimal | None = None
    standard_weekly_hours: Decimal | None = None
    has_disability: bool = False
    basis: VacationBasis = VacationBasis.CALENDAR_YEAR
    special_calculations: tuple[SpecialCalculation, ...] = ()


@dataclass(frozen=True)
class EntitlementResult:
    base_entitlement: Decimal
    prorated_entitlement: Decimal
    part_time_adjustment: Decimal
    age_bonus: Decimal
    tenure_bonus: Decimal
    disability_bonus: Decimal
    total_entitlement: Decimal
    months_employed: int
    age_at_reference: int
    tenure_years: int


@dataclass(frozen=True)
class CappingRuleInput:
    rule_id: int | None
    code: str
    rule_type: CappingRuleType
    cap_value: Decimal
    cutoff_month: int = 12
    cutoff_day: int = 31


@dataclass(frozen=True)
class CappingExceptionInput:
    rule_id: int | None
    exemption_type: ExemptionType
    retain_days: Decimal | None = None


@dataclass(frozen=True)
class CappingRuleResult:
    rule_id: int | None
    rule_code: str
    rule_type: CappingRuleType
    cap_value: Decimal
    applied: bool
    capped_amount: Decimal
    exemption: ExemptionType | None = None


@dataclass
class CarryoverResult:
    available_days: Decimal
    capped_carryover: Decimal
    forfeited_days: Decimal = ZERO
    rules_applied: list[CappingRuleResult] = field(default_factory=list)
    has_exception: bool = False


def _full_years(start: date, reference: date) -> int:
    years = reference.year - start.year
    if (reference.month, reference.day) < (start.month, start.day):
        years -= 1
    return max(years, 0)


def age_at(birth_date: date | None, reference: date) -> int:
    if birth_date is None:
        return 0
    return _full_years(birth_date, reference)


def tenure_at(entry_date: date, reference: date) -> int:
    if reference < entry_date:
        return 0
    return _full_years(entry_date, reference)


def _add_months(day: date, months: int) -> date:
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    return date(year, month, min(day.day, monthrange(year, month)[1]))


def _anniversary(entry_date: date, year: int) -> date:
    try:
        return date(year, entry_date.month, entry_date.day)
    except ValueError:
        # 29 February in a non-leap year
        return date(year, 2, 28)


def basis_period(entry_date: date, year: int, basis: VacationBasis) -> tuple[date, date]:
    if basis == VacationBasis.ENTRY_DATE:
        start = _anniversary(entry_date, year)
        end = date.fromordinal(_anniversary(entry_date, year + 1).toordinal() - 1)
        return start, end
    return date(year, 1, 1), date(year, 12, 31)


def months_employed_in_year(
    entry_date: date,
    exit_date: date | None,
    year: int,
    basis: VacationBasis,
) -> int:
    """Count employed months in the basis period; a started month counts in full."""
    period_start, period_end = basis_period(entry_date, year, basis)
    effective_start = max(entry_date, period_start)
    effective_end = period_end if exit_date is None else min(exit_date, period_end)
    if effective_start > effective_end:
        return 0

    months = 0
    current = effective_start
    while current <= effective_end and months < 12:
        months += 1
        current = _add_months(effective_start, months)
    return months


def round_to_half_day(value: Decimal) -> Decimal:
    doubled = (value * 2).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return (doubled / 2).quantize(Decimal("0.01"))


def calculate_entitlement(data: EntitlementInput) -> EntitlementResult:
    age = age_at(data.birth_date, data.reference_date)
    tenure = tenure_at(data.entry_date, data.reference_date)
    months = months_employed_in_year(data.entry_date, data.exit_date, data.year, data.basis)

    base = Decimal(data.base_vacation_days)
    prorated = base if months >= 12 else base * Decimal(months) / Decimal(12)

    standard = Decimal(data.standard_weekly_hours or 0)
    if standard > 0 and data.weekly_hours is not None:
        part_time = prorated * Decimal(data.weekly_hours) / standard
    else:
        part_time = prorated

    age_bonus = tenure_bonus = disability_bonus = ZERO
    for item in data.special_calculations:
        if item.calc_type == SpecialCalcType.AGE and age >= item.threshold:
            age_bonus += Decimal(item.bonus_days)
        elif item.calc_type == SpecialCalcType.TENURE and tenure >= item.threshold:
            tenure_bonus += Decimal(item.bonus_days)
        elif item.calc_type == SpecialCalcType.DISABILITY and data.has_disability:
            disability_bonus += Decimal(item.bonus_days)

    total = round_to_half_day(part_time + age_bonus + tenure_bonus + disability_bonus)
    return EntitlementResult(
        base_entitlement=base,
        prorated_entitlement=prorated,
        part_time_adjustment=part_time,
        age_bonus=age_bonus,
        tenure_bonus=tenure_bonus,
        disability_bonus=disability_bonus,
        total_entitlement=total,
        months_employed=months,
        age_at_reference=age,
        tenure_years=tenure,
    )


def calculate_carryover(available: Decimal, max_carryover: Decimal | None) -> Decimal:
    """A missing or non-positive maximum means no limit."""
    if available <= 0:
        return ZERO
    if max_carryover is not None and max_carryover > 0 and available > max_carryover:
        return max_carryover
    return available


def _rule_is_due(rule: CappingRuleInput, reference_date: date, year: int) -> bool:
    if rule.rule_type == CappingRuleType.YEAR_END:
        return True
    try:
        cutoff = date(year + 1, rule.cutoff_month, rule.cutoff_day)
    except ValueError:
        return False
    return reference_date > cutoff


def calculate_carryover_with_capping(
    available: Decimal,
    rules: list[CappingRuleInput],
    exceptions: list[CappingExceptionInput],
    *,
    reference_date: date,
    year: int,
) -> CarryoverResult:
    """Pass the remaining days of ``year`` through the capping rules in order."""
    available = Decimal(available)
    if available <= 0:
        return CarryoverResult(available_days=available, capped_carryover=ZERO)

    by_rule = {item.rule_id: item for item in exceptions}
    result = CarryoverResult(available_days=available, capped_carryover=available)

    for rule in rules:
        exception = by_rule.get(rule.rule_id)
        exemption = exception.exemption_type if exception is not None else None
        if exception is not None:
            result.has_exception = True

        cap = Decimal(rule.cap_value)
        applied = False
        capped_amount = ZERO
        if exemption != ExemptionType.FULL and _rule_is_due(rule, reference_date, year):
            if exemption == ExemptionType.PARTIAL and exception.retain_days is not None:
                cap = max(cap, Decimal(exception.retain_days))
            if result.capped_carryover > cap:
                capped_amount = result.capped_carryover - cap
                result.capped_carryover = cap
                result.forfeited_days += capped_amount
                applied = True

        result.rules_applied.append(
            CappingRuleResult(
                rule_id=rule.rule_id,
                rule_code=rule.code,
                rule_type=rule.rule_type,
                cap_value=cap,
                applied=applied,
                capped_amount=capped_amount,
                exemption=exemption,
            )
        )
    return result


def calculate_vacation_deduction(factor: Decimal, duration: Decimal) -> Decimal:
    return Decimal(factor) * Decimal(duration)
