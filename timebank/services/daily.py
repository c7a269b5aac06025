from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal

from fastapi import HTTPException, status
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from timebank.audit import log_audit
from timebank.errors import DataIntegrityError, MonthClosedError
from timebank.models import (
    VOCATIONAL_SCHOOL_ABSENCE_CODE,
    AbsenceDay,
    AbsenceStatus,
    AbsenceType,
    AccountPosting,
    AuditActorType,
    Booking,
    BookingKind,
    BookingSource,
    DailyValue,
    DailyValueStatus,
    DayChangePolicy,
    DayPlan,
    Employee,
    Holiday,
    MonthlyValue,
    MonthStatus,
    NoBookingPolicy,
    OrderBooking,
    PostingSource,
)
from timebank.services.calc_types import MINUTES_PER_DAY, BookingInput
from timebank.services.day_calc import ERR_NO_BOOKINGS, DayCalculation, calculate_day
from timebank.services.plan_resolver import (
    build_plan_input,
    resolve_day_plan,
    resolve_target_minutes,
)
from timebank.services.shift_detection import ShiftWindow, detect_shift
from timebank.settings import get_settings

logger = logging.getLogger("timebank.daily")

AUTO_COMPLETE_NOTE = "Auto-complete day change"
AUTO_ORDER_SOURCE = "AUTO"

WARN_OFF_DAY = "OFF_DAY"
WARN_BOOKINGS_ON_OFF_DAY = "BOOKINGS_ON_OFF_DAY"
WARN_HOLIDAY = "HOLIDAY"
WARN_ABSENCE_ON_HOLIDAY = "ABSENCE_ON_HOLIDAY"
WARN_ABSENCE_CREDITED = "ABSENCE_CREDITED"
WARN_NO_BOOKINGS_DEDUCTED = "NO_BOOKINGS_DEDUCTED"
WARN_NO_BOOKINGS_CREDITED = "NO_BOOKINGS_CREDITED"
WARN_ORDER_BOOKING_CREATED = "ORDER_BOOKING_CREATED"
WARN_NO_DEFAULT_ORDER = "NO_DEFAULT_ORDER"
WARN_WORKED_ON_HOLIDAY = "WORKED_ON_HOLIDAY"

_WORK_KINDS = {
    BookingKind.IN: ("IN", "WORK"),
    BookingKind.OUT: ("OUT", "WORK"),
    BookingKind.BREAK_START: ("OUT", "BREAK"),
    BookingKind.BREAK_END: ("IN", "BREAK"),
}

_PERSISTED_FIELDS = (
    "status",
    "target_minutes",
    "gross_minutes",
    "net_minutes",
    "break_minutes",
    "overtime_minutes",
    "undertime_minutes",
    "capped_minutes",
    "booking_count",
    "first_come",
    "last_go",
    "has_error",
    "error_codes",
    "warnings",
    "absence_code",
    "day_plan_id",
)


@dataclass
class DayOutcome:
    status: DailyValueStatus
    day_plan: DayPlan | None
    target_minutes: int = 0
    gross_minutes: int = 0
    net_minutes: int = 0
    break_minutes: int = 0
    overtime_minutes: int = 0
    undertime_minutes: int = 0
    capped_minutes: int = 0
    booking_count: int = 0
    first_come: int | None = None
    last_go: int | None = None
    error_codes: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    absence_code: str | None = None
    calculated_times: dict[int, int] = field(default_factory=dict)
    order_minutes: int = 0

    def as_row_values(self) -> dict[str, object]:
        error_codes = list(dict.fromkeys(self.error_codes))
        return {
            "status": self.status,
            "target_minutes": self.target_minutes,
            "gross_minutes": self.gross_minutes,
            "net_minutes": self.net_minutes,
            "break_minutes": self.break_minutes,
            "overtime_minutes": self.overtime_minutes,
            "undertime_minutes": self.undertime_minutes,
            "capped_minutes": self.capped_minutes,
            "booking_count": self.booking_count,
            "first_come": self.first_come,
            "last_go": self.last_go,
            "has_error": bool(error_codes),
            "error_codes": error_codes,
            "warnings": list(dict.fromkeys(self.warnings)),
            "absence_code": self.absence_code,
            "day_plan_id": self.day_plan.id if self.day_plan is not None else None,
        }


@dataclass
class _DayContext:
    db: Session
    employee: Employee
    day: date
    today: date
    day_plan: DayPlan
    target_minutes: int


def _credited(target_minutes: int, credit_minutes: int) -> tuple[int, int]:
    return max(0, credit_minutes - target_minutes), max(0, target_minutes - credit_minutes)


def _credit_outcome(ctx: _DayContext, credit_minutes: int, warnings: list[str], **extra) -> DayOutcome:
    overtime, undertime = _credited(ctx.target_minutes, credit_minutes)
    return DayOutcome(
        status=DailyValueStatus.CALCULATED,
        day_plan=ctx.day_plan,
        target_minutes=ctx.target_minutes,
        gross_minutes=credit_minutes,
        net_minutes=credit_minutes,
        overtime_minutes=overtime,
        undertime_minutes=undertime,
        warnings=warnings,
        **extra,
    )


def absence_credit_minutes(target_minutes: int, absence: AbsenceDay) -> int:
    credit = Decimal(target_minutes) * absence.absence_type.credit_factor() * Decimal(absence.duration)
    return int(credit.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _absence_code(absence: AbsenceDay, *, on_holiday: bool) -> str:
    if on_holiday and absence.absence_type.holiday_code:
        return absence.absence_type.holiday_code
    return absence.absence_type.code


def _absence_outcome(ctx: _DayContext, absence: AbsenceDay, *, on_holiday: bool) -> DayOutcome:
    warning = WARN_ABSENCE_ON_HOLIDAY if on_holiday else WARN_ABSENCE_CREDITED
    return _credit_outcome(
        ctx,
        absence_credit_minutes(ctx.target_minutes, absence),
        [warning],
        absence_code=_absence_code(absence, on_holiday=on_holiday),
    )


def _holiday_outcome(ctx: _DayContext, holiday: Holiday) -> DayOutcome:
    return _credit_outcome(ctx, ctx.day_plan.holiday_credit(holiday.category), [WARN_HOLIDAY])


def _no_evaluation(ctx: _DayContext) -> DayOutcome:
    return DayOutcome(
        status=DailyValueStatus.ERROR,
        day_plan=ctx.day_plan,
        target_minutes=ctx.target_minutes,
        undertime_minutes=ctx.target_minutes,
        error_codes=[ERR_NO_BOOKINGS],
    )


def _deduct_target(ctx: _DayContext) -> DayOutcome:
    return DayOutcome(
        status=DailyValueStatus.CALCULATED,
        day_plan=ctx.day_plan,
        target_minutes=ctx.target_minutes,
        undertime_minutes=ctx.target_minutes,
        warnings=[WARN_NO_BOOKINGS_DEDUCTED],
    )


def _adopt_target(ctx: _DayContext) -> DayOutcome:
    return _credit_outcome(ctx, ctx.target_minutes, [WARN_NO_BOOKINGS_CREDITED])


def _target_with_order(ctx: _DayContext) -> DayOutcome:
    if not ctx.employee.default_order_code:
        outcome = _adopt_target(ctx)
        outcome.warnings.append(WARN_NO_DEFAULT_ORDER)
        return outcome
    return _credit_outcome(
        ctx,
        ctx.target_minutes,
        [WARN_NO_BOOKINGS_CREDITED, WARN_ORDER_BOOKING_CREATED],
        order_minutes=ctx.target_minutes,
    )


def _vocational_school(ctx: _DayContext) -> DayOutcome:
    if ctx.day >= ctx.today:
        return _no_evaluation(ctx)

    existing = ctx.db.scalar(
        select(AbsenceDay).where(
            AbsenceDay.employee_id == ctx.employee.id,
            AbsenceDay.absence_date == ctx.day,
        )
    )
    if existing is not None:
        return _no_evaluation(ctx)

    absence_type = ctx.db.scalar(select(AbsenceType).where(AbsenceType.code == VOCATIONAL_SCHOOL_ABSENCE_CODE))
    if absence_type is None:
        raise DataIntegrityError(f"Absence type {VOCATIONAL_SCHOOL_ABSENCE_CODE} is not configured.")

    absence = AbsenceDay(
        employee_id=ctx.employee.id,
        absence_date=ctx.day,
        absence_type_id=absence_type.id,
        absence_type=absence_type,
        duration=Decimal("1.00"),
        status=AbsenceStatus.APPROVED,
        approved_by="system",
        approved_at=datetime.now(timezone.utc),
        created_by="system",
    )
    ctx.db.add(absence)
    ctx.db.flush()
    logger.info(
        "vocational_school_absence_created",
        extra={"employee_id": ctx.employee.id, "absence_date": ctx.day, "absence_id": absence.id},
    )

    ctx.target_minutes = resolve_target_minutes(ctx.day_plan, ctx.employee, is_absence_day=True)
    return _absence_outcome(ctx, absence, on_holiday=False)


_NO_BOOKING_HANDLERS: dict[NoBookingPolicy, Callable[[_DayContext], DayOutcome]] = {
    NoBookingPolicy.NO_EVALUATION: _no_evaluation,
    NoBookingPolicy.DEDUCT_TARGET: _deduct_target,
    NoBookingPolicy.ADOPT_TARGET: _adopt_target,
    NoBookingPolicy.TARGET_WITH_ORDER: _target_with_order,
    NoBookingPolicy.VOCATIONAL_SCHOOL: _vocational_school,
}


def _booking_inputs(bookings: list[Booking]) -> list[BookingInput]:
    inputs: list[BookingInput] = []
    for booking in bookings:
        mapping = _WORK_KINDS.get(booking.kind)
        if mapping is None:
            continue
        direction, category = mapping
        inputs.append(
            BookingInput(
                id=booking.id,
                time=booking.edited_time,
                direction=direction,
                category=category,
                pair_id=booking.pair_id,
                auto_complete=_is_auto_complete_booking(booking),
            )
        )
    return inputs


def _outcome_from_calculation(day_plan: DayPlan, calculation: DayCalculation) -> DayOutcome:
    return DayOutcome(
        status=DailyValueStatus.ERROR if calculation.has_error else DailyValueStatus.CALCULATED,
        day_plan=day_plan,
        target_minutes=calculation.target_minutes,
        gross_minutes=calculation.gross_minutes,
        net_minutes=calculation.net_minutes,
        break_minutes=calculation.break_minutes,
        overtime_minutes=calculation.overtime_minutes,
        undertime_minutes=calculation.undertime_minutes,
        capped_minutes=calculation.capped_minutes,
        booking_count=calculation.booking_count,
        first_come=calculation.first_come,
        last_go=calculation.last_go,
        error_codes=list(calculation.error_codes),
        warnings=list(calculation.warnings),
        calculated_times=dict(calculation.calculated_times),
    )


def _shift_window(plan: DayPlan) -> ShiftWindow:
    return ShiftWindow(
        plan_id=plan.id,
        arrive_from=plan.shift_detect_arrive_from,
        arrive_to=plan.shift_detect_arrive_to,
        depart_from=plan.shift_detect_depart_from,
        depart_to=plan.shift_detect_depart_to,
        alternative_plan_ids=tuple(plan.alternative_plan_ids or ()),
    )


def _first_last_raw(bookings: list[Booking]) -> tuple[int | None, int | None]:
    arrivals = [b.edited_time for b in bookings if b.kind == BookingKind.IN]
    departures = [b.edited_time for b in bookings if b.kind == BookingKind.OUT]
    return (min(arrivals) if arrivals else None, max(departures) if departures else None)


def _calculate_with_bookings(
    db: Session,
    employee: Employee,
    day_plan: DayPlan,
    bookings: list[Booking],
    *,
    is_absence_day: bool,
    is_holiday: bool,
    round_relative_to_plan: bool,
) -> DayOutcome:
    shift_error: str | None = None
    if day_plan.has_shift_detection():
        first_arrival, last_departure = _first_last_raw(bookings)

        def _load_window(plan_id: int) -> ShiftWindow | None:
            candidate = db.get(DayPlan, plan_id)
            return _shift_window(candidate) if candidate is not None else None

        detection = detect_shift(_shift_window(day_plan), first_arrival, last_departure, _load_window)
        if not detection.is_original_plan and detection.matched_plan_id is not None:
            day_plan = db.get(DayPlan, detection.matched_plan_id)
        shift_error = detection.error_code

    target = resolve_target_minutes(day_plan, employee, is_absence_day=is_absence_day)
    calculation = calculate_day(
        _booking_inputs(bookings),
        build_plan_input(day_plan, target),
        round_relative_to_plan=round_relative_to_plan,
    )
    calculation.booking_count = len(bookings)
    outcome = _outcome_from_calculation(day_plan, calculation)
    if shift_error is not None:
        outcome.error_codes.append(shift_error)
        outcome.status = DailyValueStatus.ERROR
    if is_holiday:
        outcome.warnings.append(WARN_WORKED_ON_HOLIDAY)
    return outcome


def is_month_closed(db: Session, employee_id: int, day: date) -> bool:
    monthly = db.scalar(
        select(MonthlyValue).where(
            MonthlyValue.employee_id == employee_id,
            MonthlyValue.year == day.year,
            MonthlyValue.month == day.month,
        )
    )
    return monthly is not None and monthly.status == MonthStatus.CLOSED


def ensure_month_open(db: Session, employee_id: int, day: date, *, create_missing: bool = True) -> None:
    """Lock the month row so closing and day writes for the month serialize.

    A missing row is created as an OPEN placeholder; the monthly evaluation
    fills it in later.
    """
    monthly = db.scalar(
        select(MonthlyValue)
        .where(
            MonthlyValue.employee_id == employee_id,
            MonthlyValue.year == day.year,
            MonthlyValue.month == day.month,
        )
        .with_for_update()
    )
    if monthly is None:
        if create_missing:
            db.add(MonthlyValue(employee_id=employee_id, year=day.year, month=day.month, status=MonthStatus.OPEN))
            db.flush()
        return
    if monthly.status == MonthStatus.CLOSED:
        raise MonthClosedError(employee_id, day.year, day.month)


def _load_bookings(db: Session, employee_id: int, date_from: date, date_to: date) -> list[Booking]:
    return list(
        db.scalars(
            select(Booking)
            .where(
                Booking.employee_id == employee_id,
                Booking.booking_date >= date_from,
                Booking.booking_date <= date_to,
            )
            .order_by(Booking.booking_date, Booking.edited_time, Booking.id)
        ).all()
    )


def _is_auto_complete_booking(booking: Booking) -> bool:
    return (
        booking.source == BookingSource.CORRECTION
        and booking.note == AUTO_COMPLETE_NOTE
        and booking.edited_time == 0
    )


def pair_across_days(
    prev: list[Booking],
    current: list[Booking],
    following: list[Booking],
) -> list[tuple[tuple[int, Booking], tuple[int, Booking]]]:
    """First-in-first-out pairing of work bookings over three adjacent days.

    Each side of a pair carries its day offset (-1, 0, 1).
    """
    items: list[tuple[int, int, Booking]] = []
    for offset, bookings in ((-1, prev), (0, current), (1, following)):
        for booking in bookings:
            if booking.kind in (BookingKind.IN, BookingKind.OUT):
                items.append((offset * MINUTES_PER_DAY + booking.edited_time, offset, booking))
    items.sort(key=lambda item: (item[0], item[2].id))

    pairs: list[tuple[tuple[int, Booking], tuple[int, Booking]]] = []
    open_arrivals: list[tuple[int, Booking]] = []
    for _, offset, booking in items:
        if booking.kind == BookingKind.IN:
            open_arrivals.append((offset, booking))
            continue
        if not open_arrivals:
            continue
        pairs.append((open_arrivals.pop(0), (offset, booking)))
    return pairs


def _ensure_auto_complete_booking(
    db: Session,
    employee_id: int,
    day: date,
    kind: BookingKind,
    existing: list[Booking],
) -> Booking:
    for booking in existing:
        if booking.booking_date == day and booking.kind == kind and _is_auto_complete_booking(booking):
            return booking
    booking = Booking(
        employee_id=employee_id,
        booking_date=day,
        kind=kind,
        original_time=0,
        edited_time=0,
        source=BookingSource.CORRECTION,
        note=AUTO_COMPLETE_NOTE,
    )
    db.add(booking)
    db.flush()
    existing.append(booking)
    logger.info(
        "auto_complete_booking_created",
        extra={"employee_id": employee_id, "booking_date": day, "kind": kind.value, "booking_id": booking.id},
    )
    return booking


def _sorted_selection(selected: dict[int, Booking]) -> list[Booking]:
    return sorted(selected.values(), key=lambda b: (b.booking_date, b.edited_time, b.id))


def load_day_bookings(db: Session, employee_id: int, day: date, policy: DayChangePolicy) -> list[Booking]:
    if policy == DayChangePolicy.NONE:
        return _load_bookings(db, employee_id, day, day)

    previous_day = day - timedelta(days=1)
    next_day = day + timedelta(days=1)
    window = _load_bookings(db, employee_id, previous_day, next_day)
    prev = [b for b in window if b.booking_date == previous_day]
    current = [b for b in window if b.booking_date == day]
    following = [b for b in window if b.booking_date == next_day]
    pairs = pair_across_days(prev, current, following)
    selected = {b.id: b for b in current}

    if policy == DayChangePolicy.AT_ARRIVAL:
        for (arrival_offset, _), (departure_offset, departure) in pairs:
            if arrival_offset == 0 and departure_offset == 1:
                selected[departure.id] = departure
            if arrival_offset == -1 and departure_offset == 0:
                selected.pop(departure.id, None)
    elif policy == DayChangePolicy.AT_DEPARTURE:
        for (arrival_offset, arrival), (departure_offset, _) in pairs:
            if departure_offset == 0 and arrival_offset == -1:
                selected[arrival.id] = arrival
            if departure_offset == 1 and arrival_offset == 0:
                selected.pop(arrival.id, None)
    elif policy == DayChangePolicy.AUTO_COMPLETE:
        for (arrival_offset, _), (departure_offset, departure) in pairs:
            if arrival_offset == 0 and departure_offset == 1:
                if _is_auto_complete_booking(departure):
                    selected[departure.id] = departure
                    continue
                closing = _ensure_auto_complete_booking(db, employee_id, next_day, BookingKind.OUT, window)
                _ensure_auto_complete_booking(db, employee_id, next_day, BookingKind.IN, window)
                selected[closing.id] = closing
            elif arrival_offset == -1 and departure_offset == 0:
                if _is_auto_complete_booking(departure):
                    # belongs to the previous day's shift
                    selected.pop(departure.id, None)
                    continue
                _ensure_auto_complete_booking(db, employee_id, day, BookingKind.OUT, window)
                opening = _ensure_auto_complete_booking(db, employee_id, day, BookingKind.IN, window)
                selected[opening.id] = opening

    return _sorted_selection(selected)


def _approved_absence(db: Session, employee_id: int, day: date) -> AbsenceDay | None:
    absence = db.scalar(
        select(AbsenceDay).where(
            AbsenceDay.employee_id == employee_id,
            AbsenceDay.absence_date == day,
            AbsenceDay.status == AbsenceStatus.APPROVED,
        )
    )
    if absence is not None and absence.absence_type is None:
        raise DataIntegrityError(f"Absence {absence.id} references a missing absence type.")
    return absence


def _write_postings(db: Session, employee_id: int, day: date, outcome: DayOutcome) -> None:
    day_plan = outcome.day_plan
    if day_plan is None:
        db.execute(
            delete(AccountPosting).where(
                AccountPosting.employee_id == employee_id,
                AccountPosting.value_date == day,
            )
        )
        return

    wanted: dict[tuple[int, PostingSource], int] = {}
    if day_plan.net_account_id is not None:
        wanted[(day_plan.net_account_id, PostingSource.NET_TIME)] = outcome.net_minutes
    if day_plan.cap_account_id is not None and day_plan.max_net_work_minutes is not None:
        wanted[(day_plan.cap_account_id, PostingSource.CAPPED_TIME)] = outcome.capped_minutes

    existing = db.scalars(
        select(AccountPosting).where(
            AccountPosting.employee_id == employee_id,
            AccountPosting.value_date == day,
        )
    ).all()
    for posting in existing:
        key = (posting.account_id, posting.source)
        if key not in wanted:
            db.delete(posting)
            continue
        minutes = wanted.pop(key)
        if posting.minutes != minutes:
            posting.minutes = minutes
        if posting.day_plan_id != day_plan.id:
            posting.day_plan_id = day_plan.id

    for (account_id, source), minutes in wanted.items():
        db.add(
            AccountPosting(
                employee_id=employee_id,
                account_id=account_id,
                value_date=day,
                minutes=minutes,
                source=source,
                day_plan_id=day_plan.id,
            )
        )


def _write_order_booking(db: Session, employee: Employee, day: date, outcome: DayOutcome) -> None:
    existing = db.scalars(
        select(OrderBooking).where(
            OrderBooking.employee_id == employee.id,
            OrderBooking.booking_date == day,
            OrderBooking.source == AUTO_ORDER_SOURCE,
        )
    ).all()
    current = existing[0] if existing else None
    for stale in existing[1:]:
        db.delete(stale)

    if outcome.order_minutes <= 0 or not employee.default_order_code:
        if current is not None:
            db.delete(current)
        return

    if current is None:
        db.add(
            OrderBooking(
                employee_id=employee.id,
                order_code=employee.default_order_code,
                booking_date=day,
                minutes=outcome.order_minutes,
                source=AUTO_ORDER_SOURCE,
            )
        )
        return
    if current.order_code != employee.default_order_code:
        current.order_code = employee.default_order_code
    if current.minutes != outcome.order_minutes:
        current.minutes = outcome.order_minutes


def _lock_daily_value(db: Session, employee_id: int, day: date) -> DailyValue | None:
    return db.scalar(
        select(DailyValue)
        .where(DailyValue.employee_id == employee_id, DailyValue.value_date == day)
        .with_for_update()
    )


def _store_daily_value(db: Session, employee_id: int, day: date, outcome: DayOutcome) -> tuple[DailyValue, bool]:
    values = outcome.as_row_values()
    row = _lock_daily_value(db, employee_id, day)
    if row is None:
        row = DailyValue(employee_id=employee_id, value_date=day, **values)
        row.calculated_at = datetime.now(timezone.utc)
        db.add(row)
        return row, True

    if row.status == DailyValueStatus.APPROVED and values["status"] == DailyValueStatus.CALCULATED:
        # approval survives a recalculation that changes nothing
        values["status"] = DailyValueStatus.APPROVED
    if all(getattr(row, name) == values[name] for name in _PERSISTED_FIELDS):
        return row, False
    if values["status"] == DailyValueStatus.APPROVED:
        values["status"] = DailyValueStatus.CALCULATED

    for name in _PERSISTED_FIELDS:
        setattr(row, name, values[name])
    row.calculated_at = datetime.now(timezone.utc)
    return row, True


def evaluate_day(
    db: Session,
    employee: Employee,
    day: date,
    *,
    round_relative_to_plan: bool,
    today: date,
) -> tuple[DayOutcome, list[Booking]]:
    resolved = resolve_day_plan(db, employee.id, day)
    day_plan = resolved.day_plan
    policy = day_plan.day_change_policy if day_plan is not None else DayChangePolicy.NONE
    bookings = load_day_bookings(db, employee.id, day, policy)

    if day_plan is None:
        warnings = [WARN_OFF_DAY]
        if bookings:
            warnings.append(WARN_BOOKINGS_ON_OFF_DAY)
        return (
            DayOutcome(
                status=DailyValueStatus.CALCULATED,
                day_plan=None,
                booking_count=len(bookings),
                warnings=warnings,
            ),
            bookings,
        )

    holiday = db.scalar(select(Holiday).where(Holiday.holiday_date == day))
    absence = _approved_absence(db, employee.id, day)
    ctx = _DayContext(
        db=db,
        employee=employee,
        day=day,
        today=today,
        day_plan=day_plan,
        target_minutes=resolve_target_minutes(day_plan, employee, is_absence_day=absence is not None),
    )

    if bookings:
        outcome = _calculate_with_bookings(
            db,
            employee,
            day_plan,
            bookings,
            is_absence_day=absence is not None,
            is_holiday=holiday is not None,
            round_relative_to_plan=round_relative_to_plan,
        )
        return outcome, bookings

    if holiday is not None:
        if absence is not None and absence.absence_type.priority > 0:
            return _absence_outcome(ctx, absence, on_holiday=True), bookings
        return _holiday_outcome(ctx, holiday), bookings

    if absence is not None:
        return _absence_outcome(ctx, absence, on_holiday=False), bookings

    handler = _NO_BOOKING_HANDLERS.get(day_plan.no_booking_policy, _no_evaluation)
    return handler(ctx), bookings


def calculate_employee_day(
    db: Session,
    employee_id: int,
    day: date,
    *,
    round_relative_to_plan: bool | None = None,
    today: date | None = None,
    commit: bool = True,
) -> DailyValue:
    employee = db.get(Employee, employee_id)
    if employee is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Employee not found")
    ensure_month_open(db, employee_id, day)

    if round_relative_to_plan is None:
        round_relative_to_plan = get_settings().round_relative_to_plan
    outcome, bookings = evaluate_day(
        db,
        employee,
        day,
        round_relative_to_plan=round_relative_to_plan,
        today=today or date.today(),
    )

    for booking in bookings:
        calculated = outcome.calculated_times.get(booking.id)
        if calculated is not None and booking.calculated_time != calculated:
            booking.calculated_time = calculated

    row, changed = _store_daily_value(db, employee_id, day, outcome)
    _write_postings(db, employee_id, day, outcome)
    _write_order_booking(db, employee, day, outcome)

    if commit:
        db.commit()
        db.refresh(row)
    else:
        db.flush()

    logger.info(
        "daily_value_calculated",
        extra={
            "employee_id": employee_id,
            "value_date": day,
            "status": row.status.value,
            "net_minutes": row.net_minutes,
            "error_codes": row.error_codes,
            "changed": changed,
        },
    )
    return row


def list_daily_values(db: Session, employee_id: int, date_from: date, date_to: date) -> list[DailyValue]:
    if db.get(Employee, employee_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Employee not found")
    return list(
        db.scalars(
            select(DailyValue)
            .where(
                DailyValue.employee_id == employee_id,
                DailyValue.value_date >= date_from,
                DailyValue.value_date <= date_to,
            )
            .order_by(DailyValue.value_date)
        ).all()
    )


def recalculate_employee_range(
    db: Session,
    employee_id: int,
    date_from: date,
    date_to: date,
    *,
    today: date | None = None,
) -> list[DailyValue]:
    """Recalculate every open date in order; dates in closed months are skipped."""
    results: list[DailyValue] = []
    current = date_from
    while current <= date_to:
        if not is_month_closed(db, employee_id, current):
            results.append(calculate_employee_day(db, employee_id, current, today=today))
        current += timedelta(days=1)
    return results


def approve_daily_value(db: Session, employee_id: int, day: date, *, actor: str) -> DailyValue:
    ensure_month_open(db, employee_id, day, create_missing=False)
    row = _lock_daily_value(db, employee_id, day)
    if row is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Daily value not found")
    if row.has_error:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Daily values with errors cannot be approved",
        )
    if row.status != DailyValueStatus.APPROVED:
        row.status = DailyValueStatus.APPROVED
    log_audit(
        db,
        actor_type=AuditActorType.ADMIN,
        actor_id=actor,
        action="DAILY_VALUE_APPROVED",
        entity_type="daily_value",
        entity_id=str(row.id),
        details={"employee_id": employee_id, "value_date": day.isoformat()},
    )
    db.commit()
    db.refresh(row)
    return row
