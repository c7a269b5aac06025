from __future__ import annotations

from dataclasses import dataclass, field

from timebank.models import BreakType
from timebank.services.calc_types import BreakConfig
from timebank.services.pairing import BookingPair

WARN_MANUAL_BREAK = "MANUAL_BREAK"
WARN_AUTO_BREAK_APPLIED = "AUTO_BREAK_APPLIED"
WARN_NO_BREAK_RECORDED = "NO_BREAK_RECORDED"


@dataclass(frozen=True)
class BreakResult:
    deducted_minutes: int
    warnings: list[str] = field(default_factory=list)


def calculate_overlap(start1: int, end1: int, start2: int, end2: int) -> int:
    return max(0, min(end1, end2) - max(start1, start2))


def deduct_fixed_break(pairs: list[BookingPair], config: BreakConfig) -> int:
    if config.start_time is None or config.end_time is None:
        return 0
    overlap = 0
    for pair in pairs:
        if pair.category != "WORK":
            continue
        overlap += calculate_overlap(pair.start, pair.end, config.start_time, config.end_time)
    return min(overlap, max(0, config.duration))


def calculate_minimum_break(gross_minutes: int, config: BreakConfig) -> int:
    threshold = config.after_work_minutes
    if threshold is None or gross_minutes < threshold:
        return 0
    if config.minutes_difference:
        return min(gross_minutes - threshold, config.duration)
    return config.duration


def calculate_break_deduction(
    pairs: list[BookingPair],
    recorded_break_minutes: int,
    gross_minutes: int,
    configs: list[BreakConfig] | tuple[BreakConfig, ...],
    *,
    manual_break_recorded: bool | None = None,
) -> BreakResult:
    """Total break minutes to deduct from gross presence.

    Manually booked break time is always deducted. Fixed breaks deduct their
    overlap with the presence pairs, a variable break only applies when no
    manual break was booked, and minimum breaks apply once presence reaches
    their threshold.
    """
    if manual_break_recorded is None:
        manual_break_recorded = recorded_break_minutes > 0

    if not configs:
        return BreakResult(deducted_minutes=max(0, recorded_break_minutes))

    warnings: list[str] = []
    total = 0
    if recorded_break_minutes > 0:
        total += recorded_break_minutes
        warnings.append(WARN_MANUAL_BREAK)

    automatic = 0
    for config in configs:
        if config.break_type == BreakType.FIXED:
            automatic += deduct_fixed_break(pairs, config)
        elif config.break_type == BreakType.VARIABLE:
            if not manual_break_recorded and config.auto_deduct:
                automatic += max(0, config.duration)
        elif config.break_type == BreakType.MINIMUM:
            if config.auto_deduct:
                automatic += calculate_minimum_break(gross_minutes, config)

    if automatic > 0 and not manual_break_recorded:
        warnings.append(WARN_AUTO_BREAK_APPLIED)
        warnings.append(WARN_NO_BREAK_RECORDED)

    return BreakResult(deducted_minutes=total + automatic, warnings=warnings)
