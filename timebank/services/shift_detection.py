from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Literal

ERR_NO_MATCHING_SHIFT = "NO_MATCHING_SHIFT"
MAX_ALTERNATIVE_PLANS = 6

MatchType = Literal["none", "arrival", "departure", "both"]


@dataclass(frozen=True)
class ShiftWindow:
    plan_id: int
    arrive_from: int | None = None
    arrive_to: int | None = None
    depart_from: int | None = None
    depart_to: int | None = None
    alternative_plan_ids: tuple[int, ...] = ()

    @property
    def has_arrival_window(self) -> bool:
        return self.arrive_from is not None and self.arrive_to is not None

    @property
    def has_departure_window(self) -> bool:
        return self.depart_from is not None and self.depart_to is not None


@dataclass(frozen=True)
class ShiftDetectionResult:
    matched_plan_id: int | None
    is_original_plan: bool
    matched_by: MatchType
    error_code: str | None = None

    @property
    def has_error(self) -> bool:
        return self.error_code is not None


def _in_window(value: int, start: int | None, end: int | None) -> bool:
    if start is None or end is None:
        return False
    return start <= value <= end


def match_window(window: ShiftWindow, first_arrival: int | None, last_departure: int | None) -> MatchType:
    has_arrival = window.has_arrival_window
    has_departure = window.has_departure_window
    if not has_arrival and not has_departure:
        return "none"

    arrival_ok = first_arrival is not None and _in_window(first_arrival, window.arrive_from, window.arrive_to)
    departure_ok = last_departure is not None and _in_window(last_departure, window.depart_from, window.depart_to)

    if has_arrival and has_departure:
        return "both" if arrival_ok and departure_ok else "none"
    if has_arrival:
        return "arrival" if arrival_ok else "none"
    return "departure" if departure_ok else "none"


def detect_shift(
    assigned: ShiftWindow | None,
    first_arrival: int | None,
    last_departure: int | None,
    load_window: Callable[[int], ShiftWindow | None],
) -> ShiftDetectionResult:
    if assigned is None:
        return ShiftDetectionResult(matched_plan_id=None, is_original_plan=True, matched_by="none")

    original = ShiftDetectionResult(matched_plan_id=assigned.plan_id, is_original_plan=True, matched_by="none")
    if not assigned.has_arrival_window and not assigned.has_departure_window:
        return original
    if first_arrival is None and last_departure is None:
        return original

    matched_by = match_window(assigned, first_arrival, last_departure)
    if matched_by != "none":
        return ShiftDetectionResult(matched_plan_id=assigned.plan_id, is_original_plan=True, matched_by=matched_by)

    for plan_id in assigned.alternative_plan_ids[:MAX_ALTERNATIVE_PLANS]:
        alternative = load_window(plan_id)
        if alternative is None:
            continue
        matched_by = match_window(alternative, first_arrival, last_departure)
        if matched_by != "none":
            return ShiftDetectionResult(
                matched_plan_id=alternative.plan_id,
                is_original_plan=False,
                matched_by=matched_by,
            )

    return ShiftDetectionResult(
        matched_plan_id=assigned.plan_id,
        is_original_plan=True,
        matched_by="none",
        error_code=ERR_NO_MATCHING_SHIFT,
    )


def validate_shift_detection_config(
    *,
    arrive_from: int | None,
    arrive_to: int | None,
    depart_from: int | None,
    depart_to: int | None,
    alternative_plan_ids: list[int] | tuple[int, ...] = (),
) -> list[str]:
    problems: list[str] = []
    for label, start, end in (
        ("arrive", arrive_from, arrive_to),
        ("depart", depart_from, depart_to),
    ):
        if start is not None and end is not None:
            if not 0 <= start <= 1440:
                problems.append(f"shift_detect_{label}_from must be between 0 and 1440")
            if not 0 <= end <= 1440:
                problems.append(f"shift_detect_{label}_to must be between 0 and 1440")
            if start > end:
                problems.append(f"shift_detect_{label}_from must be <= shift_detect_{label}_to")
        elif (start is None) != (end is None):
            problems.append(f"both shift_detect_{label}_from and shift_detect_{label}_to must be set together")
    if len(alternative_plan_ids) > MAX_ALTERNATIVE_PLANS:
        problems.append(f"at most {MAX_ALTERNATIVE_PLANS} alternative plans are allowed")
    return problems
