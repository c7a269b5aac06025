from __future__ import annotations

from datetime import date

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from timebank.audit import log_audit
from timebank.models import AuditActorType, CorrectionMessage
from timebank.schemas import (
    CorrectionCatalogEntry,
    CorrectionItemRead,
    CorrectionMessageSaveRequest,
)
from timebank.services import breaks, daily, day_calc, monthly_calc, pairing, shift_detection

ERROR_TEXTS = {
    day_calc.ERR_NO_BOOKINGS: "No bookings for the day",
    day_calc.ERR_MISSING_COME: "Missing arrival booking",
    day_calc.ERR_MISSING_GO: "Missing departure booking",
    day_calc.ERR_EARLY_COME: "Arrival before allowed window",
    day_calc.ERR_LATE_COME: "Arrival after allowed window",
    day_calc.ERR_EARLY_GO: "Departure before allowed window",
    day_calc.ERR_LATE_GO: "Departure after allowed window",
    day_calc.ERR_MISSED_CORE_START: "Missed core hours start",
    day_calc.ERR_MISSED_CORE_END: "Missed core hours end",
    day_calc.ERR_BELOW_MIN_WORK_TIME: "Below minimum work time",
    shift_detection.ERR_NO_MATCHING_SHIFT: "No matching time plan found",
}

HINT_TEXTS = {
    pairing.WARN_CROSS_MIDNIGHT: "Shift spans midnight",
    day_calc.WARN_MAX_TIME_REACHED: "Maximum work time reached",
    breaks.WARN_MANUAL_BREAK: "Manual break booking exists",
    breaks.WARN_NO_BREAK_RECORDED: "No break booking recorded",
    breaks.WARN_AUTO_BREAK_APPLIED: "Automatic break applied",
    daily.WARN_OFF_DAY: "Day off according to the plan",
    daily.WARN_BOOKINGS_ON_OFF_DAY: "Bookings on a day off",
    daily.WARN_HOLIDAY: "Public holiday credited",
    daily.WARN_ABSENCE_ON_HOLIDAY: "Absence takes priority over the holiday",
    daily.WARN_ABSENCE_CREDITED: "Absence credited",
    daily.WARN_NO_BOOKINGS_DEDUCTED: "Target deducted for a day without bookings",
    daily.WARN_NO_BOOKINGS_CREDITED: "Target credited for a day without bookings",
    daily.WARN_ORDER_BOOKING_CREATED: "Order booking created for the default order",
    daily.WARN_NO_DEFAULT_ORDER: "No default order configured",
    daily.WARN_WORKED_ON_HOLIDAY: "Work booked on a public holiday",
    monthly_calc.WARN_MONTHLY_CAP: "Monthly cap reached",
    monthly_calc.WARN_FLEXTIME_CAPPED: "Flextime balance capped",
    monthly_calc.WARN_BELOW_THRESHOLD: "Below threshold",
    monthly_calc.WARN_NO_CARRYOVER: "No carryover",
}


def default_text(code: str) -> str:
    return ERROR_TEXTS.get(code) or HINT_TEXTS.get(code) or code


def _custom_texts(db: Session) -> dict[str, str]:
    rows = db.scalars(select(CorrectionMessage).where(CorrectionMessage.is_active.is_(True))).all()
    return {row.code: row.custom_text for row in rows}


def list_catalog(db: Session) -> list[CorrectionCatalogEntry]:
    custom = _custom_texts(db)
    entries = [
        CorrectionCatalogEntry(code=code, severity=severity, default_text=text, custom_text=custom.get(code))
        for severity, texts in (("error", ERROR_TEXTS), ("hint", HINT_TEXTS))
        for code, text in texts.items()
    ]
    return sorted(entries, key=lambda entry: (entry.severity, entry.code))


def save_correction_message(db: Session, code: str, payload: CorrectionMessageSaveRequest) -> CorrectionMessage:
    """Override the text shown for a catalog code. Codes themselves are fixed."""
    if code not in ERROR_TEXTS and code not in HINT_TEXTS:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Unknown correction code")

    message = db.scalar(select(CorrectionMessage).where(CorrectionMessage.code == code))
    if message is None:
        message = CorrectionMessage(code=code)
        db.add(message)
    message.custom_text = payload.custom_text.strip()
    message.is_active = payload.is_active
    db.flush()

    log_audit(
        db,
        actor_type=AuditActorType.ADMIN,
        actor_id=payload.actor,
        action="CORRECTION_MESSAGE_SAVED",
        entity_type="correction_message",
        entity_id=str(message.id),
        details={"code": code, "is_active": message.is_active},
    )
    db.commit()
    db.refresh(message)
    return message


def list_correction_items(
    db: Session,
    employee_id: int,
    date_from: date,
    date_to: date,
    *,
    severity: str | None = None,
) -> list[CorrectionItemRead]:
    custom = _custom_texts(db)
    items: list[CorrectionItemRead] = []
    for row in daily.list_daily_values(db, employee_id, date_from, date_to):
        codes = [(code, "error") for code in row.error_codes or []]
        codes += [(code, "hint") for code in row.warnings or []]
        for code, code_severity in dict.fromkeys(codes):
            if severity is not None and severity != code_severity:
                continue
            items.append(
                CorrectionItemRead(
                    employee_id=employee_id,
                    value_date=row.value_date,
                    code=code,
                    severity=code_severity,
                    message=custom.get(code) or default_text(code),
                )
            )
    return items
