from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from decimal import Decimal

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from timebank.audit import log_audit
from timebank.models import AbsenceDay, AbsenceStatus, AuditActorType
from timebank.services.daily import calculate_employee_day, is_month_closed
from timebank.services.vacation import absence_vacation_deduction, get_or_create_balance

logger = logging.getLogger("timebank.absences")


def _lock_absence(db: Session, absence_id: int) -> AbsenceDay:
    absence = db.scalar(select(AbsenceDay).where(AbsenceDay.id == absence_id).with_for_update())
    if absence is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Absence not found")
    return absence


def _recalculate_day(db: Session, absence: AbsenceDay, today: date | None) -> bool:
    if is_month_closed(db, absence.employee_id, absence.absence_date):
        return False
    calculate_employee_day(db, absence.employee_id, absence.absence_date, today=today, commit=False)
    return True


def approve_absence(db: Session, absence_id: int, *, actor: str, today: date | None = None) -> AbsenceDay:
    """Approve an absence, book its vacation deduction and recalculate the day in one transaction."""
    absence = _lock_absence(db, absence_id)
    if absence.status == AbsenceStatus.APPROVED:
        return absence
    if absence.status != AbsenceStatus.PENDING:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Absence in status {absence.status.value} cannot be approved",
        )

    deducted = Decimal("0")
    if absence.absence_type.deducts_vacation:
        deducted = absence_vacation_deduction(db, absence)
        balance = get_or_create_balance(db, absence.employee_id, absence.absence_date.year)
        balance.used_days = Decimal(balance.used_days or 0) + deducted
        absence.vacation_deducted = deducted

    absence.status = AbsenceStatus.APPROVED
    absence.approved_by = actor
    absence.approved_at = datetime.now(timezone.utc)
    db.flush()

    recalculated = _recalculate_day(db, absence, today)
    log_audit(
        db,
        actor_type=AuditActorType.ADMIN,
        actor_id=actor,
        action="ABSENCE_APPROVED",
        entity_type="absence_day",
        entity_id=str(absence.id),
        details={
            "employee_id": absence.employee_id,
            "absence_date": absence.absence_date.isoformat(),
            "absence_code": absence.absence_type.code,
            "vacation_deducted": str(deducted),
            "day_recalculated": recalculated,
        },
    )
    db.commit()
    db.refresh(absence)
    logger.info(
        "absence_approved",
        extra={
            "employee_id": absence.employee_id,
            "absence_date": absence.absence_date,
            "vacation_deducted": str(deducted),
        },
    )
    return absence


def cancel_absence(db: Session, absence_id: int, *, actor: str, today: date | None = None) -> AbsenceDay:
    absence = _lock_absence(db, absence_id)
    if absence.status == AbsenceStatus.CANCELLED:
        return absence
    was_approved = absence.status == AbsenceStatus.APPROVED

    reversed_days = Decimal("0")
    if was_approved and absence.vacation_deducted:
        reversed_days = Decimal(absence.vacation_deducted)
        balance = get_or_create_balance(db, absence.employee_id, absence.absence_date.year)
        balance.used_days = Decimal(balance.used_days or 0) - reversed_days
        absence.vacation_deducted = None

    absence.status = AbsenceStatus.CANCELLED
    db.flush()

    recalculated = _recalculate_day(db, absence, today) if was_approved else False
    log_audit(
        db,
        actor_type=AuditActorType.ADMIN,
        actor_id=actor,
        action="ABSENCE_CANCELLED",
        entity_type="absence_day",
        entity_id=str(absence.id),
        details={
            "employee_id": absence.employee_id,
            "absence_date": absence.absence_date.isoformat(),
            "vacation_reversed": str(reversed_days),
            "day_recalculated": recalculated,
        },
    )
    db.commit()
    db.refresh(absence)
    return absence
