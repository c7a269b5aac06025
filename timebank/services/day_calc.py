from __future__ import annotations

from dataclasses import dataclass, field

from timebank.services.booking_normalizer import normalize_bookings
from timebank.services.breaks import calculate_break_deduction
from timebank.services.calc_types import MINUTES_PER_DAY, BookingInput, CappedTime, PlanInput
from timebank.services.pairing import (
    BookingPair,
    first_come,
    gross_minutes,
    last_go,
    pair_bookings,
    recorded_break_minutes,
)

ERR_NO_BOOKINGS = "NO_BOOKINGS"
ERR_MISSING_COME = "MISSING_COME"
ERR_MISSING_GO = "MISSING_GO"
ERR_EARLY_COME = "EARLY_COME"
ERR_LATE_COME = "LATE_COME"
ERR_EARLY_GO = "EARLY_GO"
ERR_LATE_GO = "LATE_GO"
ERR_MISSED_CORE_START = "MISSED_CORE_START"
ERR_MISSED_CORE_END = "MISSED_CORE_END"
ERR_BELOW_MIN_WORK_TIME = "BELOW_MIN_WORK_TIME"

WARN_MAX_TIME_REACHED = "MAX_TIME_REACHED"


@dataclass
class DayCalculation:
    target_minutes: int
    booking_count: int = 0
    gross_minutes: int = 0
    net_minutes: int = 0
    break_minutes: int = 0
    overtime_minutes: int = 0
    undertime_minutes: int = 0
    capped_minutes: int = 0
    first_come: int | None = None
    last_go: int | None = None
    error_codes: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    calculated_times: dict[int, int] = field(default_factory=dict)
    capping_items: list[CappedTime] = field(default_factory=list)
    pairs: list[BookingPair] = field(default_factory=list)

    @property
    def has_error(self) -> bool:
        return bool(self.error_codes)


def validate_time_window(
    actual: int,
    window_from: int | None,
    window_to: int | None,
    *,
    early_code: str,
    late_code: str,
) -> list[str]:
    errors: list[str] = []
    if window_from is not None and actual < window_from:
        errors.append(early_code)
    if window_to is not None and actual > window_to:
        errors.append(late_code)
    return errors


def validate_core_hours(
    first_arrival: int | None,
    last_departure: int | None,
    core_start: int | None,
    core_end: int | None,
) -> list[str]:
    errors: list[str] = []
    if core_start is None or core_end is None:
        return errors
    if first_arrival is None or first_arrival > core_start:
        errors.append(ERR_MISSED_CORE_START)
    if last_departure is None or last_departure < core_end:
        errors.append(ERR_MISSED_CORE_END)
    return errors


def overtime_undertime(net_minutes: int, target_minutes: int) -> tuple[int, int]:
    difference = net_minutes - target_minutes
    if difference > 0:
        return difference, 0
    return 0, -difference


def _has_auto_complete(bookings: list[BookingInput], direction: str) -> bool:
    return any(
        booking.auto_complete and booking.category == "WORK" and booking.direction == direction
        for booking in bookings
    )


def calculate_day(
    bookings: list[BookingInput],
    plan: PlanInput,
    *,
    round_relative_to_plan: bool = False,
) -> DayCalculation:
    """Run one day's bookings through normalisation, pairing and break rules."""
    result = DayCalculation(target_minutes=plan.target_minutes, booking_count=len(bookings))
    if not bookings:
        result.error_codes.append(ERR_NO_BOOKINGS)
        return result

    ordered = sorted(bookings, key=lambda b: (b.time, b.id))
    normalized = normalize_bookings(ordered, plan, round_relative_to_plan=round_relative_to_plan)
    result.calculated_times = normalized.calculated_times

    pairing = pair_bookings(normalized.processed)
    result.pairs = pairing.pairs
    result.warnings.extend(pairing.warnings)
    if pairing.unpaired_in_ids:
        result.error_codes.append(ERR_MISSING_GO)
    if pairing.unpaired_out_ids:
        result.error_codes.append(ERR_MISSING_COME)

    result.first_come = first_come(normalized.validation)
    result.last_go = last_go(normalized.validation)

    # midnight bookings of an auto-completed shift are not real arrivals or departures
    booked = [booking for booking in normalized.validation if not booking.auto_complete]
    booked_come = first_come(booked)
    booked_go = last_go(booked)
    if booked_come is not None:
        result.error_codes.extend(
            validate_time_window(
                booked_come,
                plan.come_from,
                plan.come_to,
                early_code=ERR_EARLY_COME,
                late_code=ERR_LATE_COME,
            )
        )
    if booked_go is not None:
        result.error_codes.extend(
            validate_time_window(
                booked_go,
                plan.go_from,
                plan.go_to,
                early_code=ERR_EARLY_GO,
                late_code=ERR_LATE_GO,
            )
        )
    core_come = 0 if _has_auto_complete(normalized.validation, "IN") else booked_come
    core_go = MINUTES_PER_DAY if _has_auto_complete(normalized.validation, "OUT") else booked_go
    result.error_codes.extend(validate_core_hours(core_come, core_go, plan.core_start, plan.core_end))

    result.gross_minutes = gross_minutes(pairing.pairs)
    recorded_break = recorded_break_minutes(pairing.pairs)
    breaks = calculate_break_deduction(
        pairing.pairs,
        recorded_break,
        result.gross_minutes,
        plan.breaks,
        manual_break_recorded=any(pair.category == "BREAK" for pair in pairing.pairs),
    )
    result.break_minutes = breaks.deducted_minutes
    result.warnings.extend(breaks.warnings)

    uncapped_net = max(0, result.gross_minutes - result.break_minutes)
    result.net_minutes = uncapped_net
    capping_items = list(normalized.capping_items)
    if plan.max_net_work_minutes is not None and uncapped_net > plan.max_net_work_minutes:
        result.net_minutes = plan.max_net_work_minutes
        result.warnings.append(WARN_MAX_TIME_REACHED)
        capping_items.append(
            CappedTime(uncapped_net - plan.max_net_work_minutes, "max_net_time", "Net time above daily maximum")
        )
    result.capping_items = capping_items
    result.capped_minutes = uncapped_net - result.net_minutes

    if plan.min_work_minutes is not None and result.net_minutes < plan.min_work_minutes:
        result.error_codes.append(ERR_BELOW_MIN_WORK_TIME)

    result.overtime_minutes, result.undertime_minutes = overtime_undertime(
        result.net_minutes, result.target_minutes
    )
    return result
