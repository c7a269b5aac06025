from __future__ import annotations

import logging
from calendar import monthrange
from datetime import date, datetime, timezone

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from timebank.audit import log_audit
from timebank.errors import (
    InvalidPeriodError,
    MonthClosedError,
    MonthlyValueNotFoundError,
    MonthNotClosedError,
    ReopenReasonRequiredError,
    UnresolvedErrorsError,
)
from timebank.models import (
    AbsenceDay,
    AbsenceStatus,
    AuditActorType,
    DailyValue,
    Employee,
    MonthlyValue,
    MonthStatus,
    Tariff,
)
from timebank.services.monthly_calc import (
    DailyTotals,
    EvaluationRules,
    MonthResult,
    calculate_annual_carryover,
    calculate_month,
    summarize_absences,
)
from timebank.services.plan_resolver import resolve_tariff

logger = logging.getLogger("timebank.monthly")

MIN_YEAR = 1900
MAX_YEAR = 2200

_RESULT_FIELDS = (
    "total_gross_minutes",
    "total_net_minutes",
    "total_target_minutes",
    "total_overtime_minutes",
    "total_undertime_minutes",
    "total_break_minutes",
    "flextime_start",
    "flextime_change",
    "flextime_credited",
    "flextime_forfeited",
    "flextime_end",
    "vacation_taken",
    "sick_days",
    "other_absence_days",
    "work_days",
    "days_with_errors",
    "warnings",
)


def validate_period(year: int, month: int) -> None:
    if not MIN_YEAR <= year <= MAX_YEAR:
        raise InvalidPeriodError(f"Year must be between {MIN_YEAR} and {MAX_YEAR}.")
    if not 1 <= month <= 12:
        raise InvalidPeriodError("Month must be between 1 and 12.")


def month_bounds(year: int, month: int) -> tuple[date, date]:
    return date(year, month, 1), date(year, month, monthrange(year, month)[1])


def _get_employee(db: Session, employee_id: int) -> Employee:
    employee = db.get(Employee, employee_id)
    if employee is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Employee not found")
    return employee


def _find_monthly_value(
    db: Session, employee_id: int, year: int, month: int, *, lock: bool = False
) -> MonthlyValue | None:
    stmt = select(MonthlyValue).where(
        MonthlyValue.employee_id == employee_id,
        MonthlyValue.year == year,
        MonthlyValue.month == month,
    )
    if lock:
        stmt = stmt.with_for_update()
    return db.scalar(stmt)


def _month_daily_values(db: Session, employee_id: int, year: int, month: int) -> list[DailyValue]:
    start, end = month_bounds(year, month)
    return list(
        db.scalars(
            select(DailyValue)
            .where(
                DailyValue.employee_id == employee_id,
                DailyValue.value_date >= start,
                DailyValue.value_date <= end,
            )
            .order_by(DailyValue.value_date)
        ).all()
    )


def _evaluation_rules(tariff: Tariff | None) -> EvaluationRules | None:
    if tariff is None:
        return None
    return EvaluationRules(
        credit_type=tariff.credit_type,
        flextime_threshold=tariff.flextime_threshold,
        max_flextime_per_month=tariff.max_flextime_per_month,
        upper_limit_annual=tariff.upper_limit_annual,
        lower_limit_annual=tariff.lower_limit_annual,
    )


def previous_balance(db: Session, employee_id: int, year: int, month: int, tariff: Tariff | None) -> int:
    if month == 1:
        previous = _find_monthly_value(db, employee_id, year - 1, 12)
        floor = tariff.lower_limit_annual if tariff is not None else None
        return calculate_annual_carryover(previous.flextime_end if previous else None, floor)
    previous = _find_monthly_value(db, employee_id, year, month - 1)
    return previous.flextime_end if previous is not None else 0


def _absence_rows(db: Session, employee_id: int, year: int, month: int) -> list[AbsenceDay]:
    start, end = month_bounds(year, month)
    return list(
        db.scalars(
            select(AbsenceDay).where(
                AbsenceDay.employee_id == employee_id,
                AbsenceDay.absence_date >= start,
                AbsenceDay.absence_date <= end,
                AbsenceDay.status == AbsenceStatus.APPROVED,
            )
        ).all()
    )


def calculate_month_for_employee(db: Session, employee: Employee, year: int, month: int) -> MonthResult:
    start, _ = month_bounds(year, month)
    tariff = resolve_tariff(db, employee, start)
    daily_values = [
        DailyTotals(
            gross_minutes=row.gross_minutes,
            net_minutes=row.net_minutes,
            target_minutes=row.target_minutes,
            overtime_minutes=row.overtime_minutes,
            undertime_minutes=row.undertime_minutes,
            break_minutes=row.break_minutes,
            has_error=row.has_error,
        )
        for row in _month_daily_values(db, employee.id, year, month)
    ]
    absences = summarize_absences(
        [(row.absence_type.category, row.duration) for row in _absence_rows(db, employee.id, year, month)]
    )
    return calculate_month(
        daily_values,
        previous_balance=previous_balance(db, employee.id, year, month, tariff),
        rules=_evaluation_rules(tariff),
        absences=absences,
    )


def evaluate_month(
    db: Session,
    employee_id: int,
    year: int,
    month: int,
    *,
    commit: bool = True,
) -> MonthlyValue:
    validate_period(year, month)
    employee = _get_employee(db, employee_id)

    monthly = _find_monthly_value(db, employee_id, year, month, lock=True)
    if monthly is not None and monthly.is_closed:
        raise MonthClosedError(employee_id, year, month)

    result = calculate_month_for_employee(db, employee, year, month)
    values = {name: getattr(result, name) for name in _RESULT_FIELDS}
    values["warnings"] = list(dict.fromkeys(result.warnings))

    if monthly is None:
        monthly = MonthlyValue(employee_id=employee_id, year=year, month=month, **values)
        monthly.status = MonthStatus.CALCULATED
        monthly.calculated_at = datetime.now(timezone.utc)
        db.add(monthly)
        changed = True
    else:
        changed = monthly.status != MonthStatus.CALCULATED or any(
            getattr(monthly, name) != value for name, value in values.items()
        )
        if changed:
            for name, value in values.items():
                setattr(monthly, name, value)
            # reopen metadata stays untouched
            monthly.status = MonthStatus.CALCULATED
            monthly.calculated_at = datetime.now(timezone.utc)

    if commit:
        db.commit()
        db.refresh(monthly)
    else:
        db.flush()

    logger.info(
        "monthly_value_evaluated",
        extra={
            "employee_id": employee_id,
            "year": year,
            "month": month,
            "flextime_end": monthly.flextime_end,
            "days_with_errors": monthly.days_with_errors,
            "changed": changed,
        },
    )
    return monthly


def close_month(
    db: Session,
    employee_id: int,
    year: int,
    month: int,
    *,
    closed_by: str,
    force: bool = False,
) -> MonthlyValue:
    monthly = evaluate_month(db, employee_id, year, month, commit=False)

    daily_values = _month_daily_values(db, employee_id, year, month)
    error_dates = [row.value_date.isoformat() for row in daily_values if row.has_error]
    if error_dates and not force:
        db.rollback()
        raise UnresolvedErrorsError(error_dates)

    monthly.status = MonthStatus.CLOSED
    monthly.closed_by = closed_by
    monthly.closed_at = datetime.now(timezone.utc)
    for row in daily_values:
        if not row.is_locked:
            row.is_locked = True

    log_audit(
        db,
        actor_type=AuditActorType.ADMIN,
        actor_id=closed_by,
        action="MONTH_CLOSED",
        entity_type="monthly_value",
        entity_id=str(monthly.id),
        details={
            "employee_id": employee_id,
            "year": year,
            "month": month,
            "forced": force,
            "error_dates": error_dates,
        },
    )
    db.commit()
    db.refresh(monthly)
    return monthly


def reopen_month(
    db: Session,
    employee_id: int,
    year: int,
    month: int,
    *,
    reopened_by: str,
    reason: str,
) -> MonthlyValue:
    validate_period(year, month)
    normalized_reason = (reason or "").strip()
    if not normalized_reason:
        raise ReopenReasonRequiredError()

    _get_employee(db, employee_id)
    monthly = _find_monthly_value(db, employee_id, year, month, lock=True)
    if monthly is None or not monthly.is_closed:
        raise MonthNotClosedError(employee_id, year, month)

    monthly.status = MonthStatus.CALCULATED
    monthly.reopened_by = reopened_by
    monthly.reopened_at = datetime.now(timezone.utc)
    monthly.reopen_reason = normalized_reason
    for row in _month_daily_values(db, employee_id, year, month):
        if row.is_locked:
            row.is_locked = False

    log_audit(
        db,
        actor_type=AuditActorType.ADMIN,
        actor_id=reopened_by,
        action="MONTH_REOPENED",
        entity_type="monthly_value",
        entity_id=str(monthly.id),
        details={"employee_id": employee_id, "year": year, "month": month, "reason": normalized_reason},
    )
    db.commit()
    db.refresh(monthly)
    return monthly


def get_monthly_value(db: Session, employee_id: int, year: int, month: int) -> MonthlyValue:
    validate_period(year, month)
    _get_employee(db, employee_id)
    monthly = _find_monthly_value(db, employee_id, year, month)
    if monthly is None:
        raise MonthlyValueNotFoundError(employee_id, year, month)
    return monthly


def list_monthly_values(db: Session, employee_id: int, year: int) -> list[MonthlyValue]:
    validate_period(year, 1)
    _get_employee(db, employee_id)
    return list(
        db.scalars(
            select(MonthlyValue)
            .where(MonthlyValue.employee_id == employee_id, MonthlyValue.year == year)
            .order_by(MonthlyValue.month)
        ).all()
    )
