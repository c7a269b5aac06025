from __future__ import annotations

from dataclasses import dataclass, replace

from timebank.models import PlanType, RoundingType
from timebank.services.calc_types import (
    MINUTES_PER_DAY,
    BookingInput,
    CappedTime,
    PlanInput,
    RoundingConfig,
    ToleranceConfig,
)


@dataclass(frozen=True)
class NormalizationResult:
    processed: list[BookingInput]
    validation: list[BookingInput]
    calculated_times: dict[int, int]
    capping_items: list[CappedTime]


def effective_tolerance(plan: PlanInput) -> tuple[ToleranceConfig, bool]:
    """Tolerance and variable-work-time flag after plan-type rules."""
    tolerance = plan.tolerance
    variable_work_time = plan.variable_work_time
    if plan.plan_type == PlanType.FLEX:
        tolerance = replace(tolerance, come_plus=0, go_minus=0)
        variable_work_time = False
    elif not plan.variable_work_time:
        tolerance = replace(tolerance, come_minus=0)
    return tolerance, variable_work_time


def apply_come_tolerance(time: int, come_from: int | None, tolerance: ToleranceConfig) -> int:
    if come_from is None or tolerance.come_plus <= 0:
        return time
    if come_from < time <= come_from + tolerance.come_plus:
        return come_from
    return time


def apply_go_tolerance(time: int, expected_go: int | None, tolerance: ToleranceConfig) -> int:
    if expected_go is None or tolerance.go_minus <= 0:
        return time
    if expected_go - tolerance.go_minus <= time < expected_go:
        return expected_go
    return time


def _clamp_to_day(value: int) -> int:
    return max(0, min(MINUTES_PER_DAY, value))


def round_time(time: int, config: RoundingConfig | None, *, anchor: int = 0) -> int:
    if config is None:
        return time

    if config.type == RoundingType.ADD:
        return _clamp_to_day(time + max(0, config.add_value))
    if config.type == RoundingType.SUBTRACT:
        return _clamp_to_day(time - max(0, config.add_value))

    interval = config.interval
    if interval <= 0:
        return time

    offset = time - anchor
    if config.type == RoundingType.UP:
        rounded = -((-offset) // interval) * interval
    elif config.type == RoundingType.DOWN:
        rounded = (offset // interval) * interval
    elif config.type == RoundingType.NEAREST:
        # half-up: the exact midpoint rounds away from the lower grid line
        rounded = ((2 * offset + interval) // (2 * interval)) * interval
    else:
        return time
    return _clamp_to_day(anchor + rounded)


def apply_window_capping(
    time: int,
    *,
    window_start: int | None,
    window_end: int | None,
    come_minus: int,
    go_plus: int,
    is_arrival: bool,
    allow_early_tolerance: bool,
) -> tuple[int, int]:
    """Returns the capped time and the number of minutes cut off."""
    if is_arrival:
        if window_start is None:
            return time, 0
        effective_start = window_start
        if allow_early_tolerance and come_minus > 0:
            effective_start = window_start - come_minus
        if time < effective_start:
            return effective_start, effective_start - time
        return time, 0

    if window_end is None:
        return time, 0
    effective_end = window_end + max(0, go_plus)
    if time > effective_end:
        return effective_end, time - effective_end
    return time, 0


def _rounding_anchor(plan: PlanInput, *, is_arrival: bool, relative_to_plan: bool) -> int:
    if not relative_to_plan:
        return 0
    if is_arrival:
        return plan.come_from if plan.come_from is not None else 0
    expected_go = plan.go_to if plan.go_to is not None else plan.go_from
    return expected_go if expected_go is not None else 0


def normalize_bookings(
    bookings: list[BookingInput],
    plan: PlanInput,
    *,
    round_relative_to_plan: bool = False,
) -> NormalizationResult:
    """Apply tolerance, rounding and evaluation-window capping to work bookings.

    ``bookings`` must be in chronological order. Break bookings and the
    synthetic midnight bookings of an auto-completed night shift pass through
    unchanged. ``validation`` holds the times before window capping and is
    what the time-window and core-time checks look at.
    """
    tolerance, variable_work_time = effective_tolerance(plan)
    allow_early_tolerance = variable_work_time or plan.plan_type == PlanType.FLEX
    expected_go = plan.go_to if plan.go_to is not None else plan.go_from

    first_in_index = -1
    last_out_index = -1
    if not plan.round_all_bookings:
        for index, booking in enumerate(bookings):
            if booking.category != "WORK" or booking.auto_complete:
                continue
            if booking.direction == "IN" and first_in_index == -1:
                first_in_index = index
            if booking.direction == "OUT":
                last_out_index = index

    processed: list[BookingInput] = []
    validation: list[BookingInput] = []
    calculated_times: dict[int, int] = {}
    capping_items: list[CappedTime] = []

    for index, booking in enumerate(bookings):
        if booking.category != "WORK" or booking.auto_complete:
            processed.append(booking)
            validation.append(booking)
            calculated_times[booking.id] = booking.time
            continue

        is_arrival = booking.direction == "IN"
        if is_arrival:
            value = apply_come_tolerance(booking.time, plan.come_from, tolerance)
            if plan.round_all_bookings or index == first_in_index:
                anchor = _rounding_anchor(plan, is_arrival=True, relative_to_plan=round_relative_to_plan)
                value = round_time(value, plan.rounding_come, anchor=anchor)
        else:
            value = apply_go_tolerance(booking.time, expected_go, tolerance)
            if plan.round_all_bookings or index == last_out_index:
                anchor = _rounding_anchor(plan, is_arrival=False, relative_to_plan=round_relative_to_plan)
                value = round_time(value, plan.rounding_go, anchor=anchor)

        validation.append(replace(booking, time=value))

        capped_value, capped_minutes = apply_window_capping(
            value,
            window_start=plan.come_from,
            window_end=plan.go_to,
            come_minus=tolerance.come_minus,
            go_plus=tolerance.go_plus,
            is_arrival=is_arrival,
            allow_early_tolerance=allow_early_tolerance,
        )
        if capped_minutes > 0:
            if is_arrival:
                capping_items.append(
                    CappedTime(capped_minutes, "early_arrival", "Arrival before evaluation window")
                )
            else:
                capping_items.append(
                    CappedTime(capped_minutes, "late_leave", "Departure after evaluation window")
                )

        processed.append(replace(booking, time=capped_value))
        calculated_times[booking.id] = capped_value

    return NormalizationResult(
        processed=processed,
        validation=validation,
        calculated_times=calculated_times,
        capping_items=capping_items,
    )
