from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal

from fastapi import HTTPException, status
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from timebank.audit import log_audit
from timebank.models import (
    AbsenceDay,
    AbsenceStatus,
    AbsenceType,
    AuditActorType,
    Employee,
    EmployeeCappingException,
    Tariff,
    VacationBalance,
    VacationBasis,
    VacationCappingRule,
)
from timebank.services.monthly import validate_period
from timebank.services.plan_resolver import resolve_day_plan, resolve_tariff
from timebank.services.vacation_calc import (
    CappingExceptionInput,
    CappingRuleInput,
    CarryoverResult,
    EntitlementInput,
    EntitlementResult,
    SpecialCalculation,
    calculate_carryover_with_capping,
    calculate_entitlement,
    calculate_vacation_deduction,
)
from timebank.settings import get_settings

logger = logging.getLogger("timebank.vacation")

CENT = Decimal("0.01")


def _days(value: Decimal) -> Decimal:
    return Decimal(value).quantize(CENT)


def _get_employee(db: Session, employee_id: int) -> Employee:
    employee = db.get(Employee, employee_id)
    if employee is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Employee not found")
    return employee


def _require_tariff(db: Session, employee: Employee, day: date) -> Tariff:
    tariff = resolve_tariff(db, employee, day)
    if tariff is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No tariff assigned to employee")
    return tariff


def _find_balance(db: Session, employee_id: int, year: int, *, for_update: bool = False) -> VacationBalance | None:
    query = select(VacationBalance).where(
        VacationBalance.employee_id == employee_id,
        VacationBalance.year == year,
    )
    if for_update:
        query = query.with_for_update()
    return db.scalar(query)


def get_or_create_balance(db: Session, employee_id: int, year: int) -> VacationBalance:
    balance = _find_balance(db, employee_id, year, for_update=True)
    if balance is None:
        balance = VacationBalance(
            employee_id=employee_id,
            year=year,
            base_entitlement=Decimal("0"),
            additional_entitlement=Decimal("0"),
            carryover=Decimal("0"),
            manual_adjustment=Decimal("0"),
            used_days=Decimal("0"),
            planned_days=Decimal("0"),
        )
        db.add(balance)
        db.flush()
    return balance


def get_balance(db: Session, employee_id: int, year: int) -> VacationBalance:
    validate_period(year, 1)
    _get_employee(db, employee_id)
    balance = _find_balance(db, employee_id, year)
    if balance is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Vacation balance not found")
    return balance


def build_entitlement_input(
    employee: Employee,
    tariff: Tariff,
    year: int,
    reference_date: date,
) -> EntitlementInput:
    standard = tariff.standard_weekly_hours
    if standard is None:
        standard = Decimal(str(get_settings().default_standard_weekly_hours))
    return EntitlementInput(
        year=year,
        reference_date=reference_date,
        entry_date=employee.entry_date,
        exit_date=employee.exit_date,
        birth_date=employee.birth_date,
        weekly_hours=employee.weekly_hours,
        standard_weekly_hours=standard,
        has_disability=employee.has_disability,
        base_vacation_days=Decimal(tariff.annual_vacation_days or 0),
        basis=tariff.vacation_basis or VacationBasis.CALENDAR_YEAR,
        special_calculations=tuple(
            SpecialCalculation(
                calc_type=item.calc_type,
                threshold=item.threshold,
                bonus_days=Decimal(item.bonus_days),
            )
            for item in tariff.special_calculations
        ),
    )


def preview_entitlement(
    db: Session,
    employee_id: int,
    year: int,
    *,
    reference_date: date | None = None,
) -> EntitlementResult:
    validate_period(year, 1)
    employee = _get_employee(db, employee_id)
    reference_date = reference_date or date(year, 1, 1)
    tariff = _require_tariff(db, employee, reference_date)
    return calculate_entitlement(build_entitlement_input(employee, tariff, year, reference_date))


def initialize_year(
    db: Session,
    employee_id: int,
    year: int,
    *,
    actor: str,
    reference_date: date | None = None,
) -> VacationBalance:
    """Write the computed entitlement into the balance for ``year``.

    Carryover, manual adjustments and used days are left as they are, so the
    operation can be repeated after tariff changes.
    """
    result = preview_entitlement(db, employee_id, year, reference_date=reference_date)
    bonuses = result.age_bonus + result.tenure_bonus + result.disability_bonus

    balance = get_or_create_balance(db, employee_id, year)
    balance.base_entitlement = _days(result.total_entitlement - bonuses)
    balance.additional_entitlement = _days(bonuses)
    db.flush()

    log_audit(
        db,
        actor_type=AuditActorType.ADMIN,
        actor_id=actor,
        action="VACATION_YEAR_INITIALIZED",
        entity_type="vacation_balance",
        entity_id=str(balance.id),
        details={
            "employee_id": employee_id,
            "year": year,
            "total_entitlement": str(result.total_entitlement),
            "months_employed": result.months_employed,
        },
    )
    db.commit()
    db.refresh(balance)
    logger.info(
        "vacation_year_initialized",
        extra={"employee_id": employee_id, "year": year, "total_entitlement": str(result.total_entitlement)},
    )
    return balance


def _capping_rules(tariff: Tariff) -> list[VacationCappingRule]:
    rules = [rule for rule in tariff.capping_rules if rule.is_active]
    return sorted(rules, key=lambda rule: (rule.sort_order, rule.id or 0))


def _capping_exceptions(
    db: Session,
    employee_id: int,
    year: int,
    rule_ids: list[int],
) -> list[EmployeeCappingException]:
    if not rule_ids:
        return []
    return list(
        db.scalars(
            select(EmployeeCappingException).where(
                EmployeeCappingException.employee_id == employee_id,
                EmployeeCappingException.capping_rule_id.in_(rule_ids),
                EmployeeCappingException.is_active.is_(True),
                or_(EmployeeCappingException.year.is_(None), EmployeeCappingException.year == year),
            )
        ).all()
    )


def apply_year_transition(
    db: Session,
    employee_id: int,
    year: int,
    *,
    actor: str,
    reference_date: date | None = None,
) -> tuple[CarryoverResult, VacationBalance]:
    """Carry the remaining days of ``year`` into ``year + 1`` through the tariff's capping rules."""
    validate_period(year, 1)
    validate_period(year + 1, 1)
    employee = _get_employee(db, employee_id)
    reference_date = reference_date or date(year + 1, 1, 1)
    tariff = _require_tariff(db, employee, date(year, 12, 31))

    source = _find_balance(db, employee_id, year, for_update=True)
    available = source.remaining_days if source is not None else Decimal("0")

    rules = _capping_rules(tariff)
    exceptions = _capping_exceptions(db, employee_id, year, [rule.id for rule in rules])
    result = calculate_carryover_with_capping(
        available,
        [
            CappingRuleInput(
                rule_id=rule.id,
                code=rule.code,
                rule_type=rule.rule_type,
                cap_value=Decimal(rule.cap_value),
                cutoff_month=rule.cutoff_month,
                cutoff_day=rule.cutoff_day,
            )
            for rule in rules
        ],
        [
            CappingExceptionInput(
                rule_id=item.capping_rule_id,
                exemption_type=item.exemption_type,
                retain_days=item.retain_days,
            )
            for item in exceptions
        ],
        reference_date=reference_date,
        year=year,
    )

    target = get_or_create_balance(db, employee_id, year + 1)
    previous_carryover = Decimal(target.carryover or 0)
    target.carryover = _days(result.capped_carryover)
    db.flush()

    log_audit(
        db,
        actor_type=AuditActorType.SYSTEM if actor == "system" else AuditActorType.ADMIN,
        actor_id=actor,
        action="VACATION_YEAR_TRANSITION",
        entity_type="vacation_balance",
        entity_id=str(target.id),
        details={
            "employee_id": employee_id,
            "from_year": year,
            "to_year": year + 1,
            "reference_date": reference_date.isoformat(),
            "available_days": str(available),
            "previous_carryover": str(previous_carryover),
            "carryover": str(target.carryover),
            "forfeited_days": str(result.forfeited_days),
            "rules_applied": [item.rule_code for item in result.rules_applied if item.applied],
        },
    )
    db.commit()
    db.refresh(target)
    logger.info(
        "vacation_year_transition_applied",
        extra={
            "employee_id": employee_id,
            "from_year": year,
            "carryover": str(target.carryover),
            "forfeited_days": str(result.forfeited_days),
            "has_exception": result.has_exception,
        },
    )
    return result, target


def add_manual_adjustment(
    db: Session,
    employee_id: int,
    year: int,
    *,
    days: Decimal,
    reason: str,
    actor: str,
) -> VacationBalance:
    validate_period(year, 1)
    _get_employee(db, employee_id)
    balance = get_or_create_balance(db, employee_id, year)
    balance.manual_adjustment = _days(Decimal(balance.manual_adjustment or 0) + Decimal(days))
    db.flush()

    log_audit(
        db,
        actor_type=AuditActorType.ADMIN,
        actor_id=actor,
        action="VACATION_ADJUSTED",
        entity_type="vacation_balance",
        entity_id=str(balance.id),
        details={"employee_id": employee_id, "year": year, "days": str(days), "reason": reason},
    )
    db.commit()
    db.refresh(balance)
    return balance


def vacation_deduction_factor(db: Session, employee_id: int, day: date) -> Decimal:
    resolved = resolve_day_plan(db, employee_id, day)
    if resolved.day_plan is None or resolved.day_plan.vacation_deduction is None:
        return Decimal("1")
    return Decimal(resolved.day_plan.vacation_deduction)


def absence_vacation_deduction(db: Session, absence: AbsenceDay) -> Decimal:
    factor = vacation_deduction_factor(db, absence.employee_id, absence.absence_date)
    return _days(calculate_vacation_deduction(factor, Decimal(absence.duration)))


def recalculate_used_days(db: Session, employee_id: int, year: int) -> VacationBalance:
    """Rebuild used and planned days from the absences booked in ``year``."""
    validate_period(year, 1)
    _get_employee(db, employee_id)
    absences = db.scalars(
        select(AbsenceDay)
        .join(AbsenceType, AbsenceDay.absence_type_id == AbsenceType.id)
        .where(
            AbsenceDay.employee_id == employee_id,
            AbsenceDay.absence_date >= date(year, 1, 1),
            AbsenceDay.absence_date <= date(year, 12, 31),
            AbsenceType.deducts_vacation.is_(True),
            AbsenceDay.status.in_([AbsenceStatus.APPROVED, AbsenceStatus.PENDING]),
        )
        .order_by(AbsenceDay.absence_date)
    ).all()

    used = Decimal("0")
    planned = Decimal("0")
    for absence in absences:
        deduction = absence_vacation_deduction(db, absence)
        if absence.status == AbsenceStatus.APPROVED:
            if absence.vacation_deducted != deduction:
                absence.vacation_deducted = deduction
            used += deduction
        else:
            planned += deduction

    balance = get_or_create_balance(db, employee_id, year)
    balance.used_days = _days(used)
    balance.planned_days = _days(planned)
    db.commit()
    db.refresh(balance)
    logger.info(
        "vacation_used_days_recalculated",
        extra={"employee_id": employee_id, "year": year, "used_days": str(balance.used_days)},
    )
    return balance
