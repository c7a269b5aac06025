from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from timebank.models import BreakType, PlanType, RoundingType

Direction = Literal["IN", "OUT"]
Category = Literal["WORK", "BREAK"]

MINUTES_PER_DAY = 1440


@dataclass(frozen=True)
class BookingInput:
    id: int
    time: int
    direction: Direction
    category: Category = "WORK"
    pair_id: int | None = None
    auto_complete: bool = False


@dataclass(frozen=True)
class ToleranceConfig:
    come_plus: int = 0
    come_minus: int = 0
    go_plus: int = 0
    go_minus: int = 0


@dataclass(frozen=True)
class RoundingConfig:
    type: RoundingType
    interval: int = 0
    add_value: int = 0


@dataclass(frozen=True)
class BreakConfig:
    break_type: BreakType
    duration: int
    start_time: int | None = None
    end_time: int | None = None
    after_work_minutes: int | None = None
    auto_deduct: bool = True
    minutes_difference: bool = False


@dataclass(frozen=True)
class PlanInput:
    target_minutes: int
    plan_type: PlanType = PlanType.FIXED
    come_from: int | None = None
    come_to: int | None = None
    go_from: int | None = None
    go_to: int | None = None
    core_start: int | None = None
    core_end: int | None = None
    min_work_minutes: int | None = None
    max_net_work_minutes: int | None = None
    variable_work_time: bool = False
    round_all_bookings: bool = False
    tolerance: ToleranceConfig = field(default_factory=ToleranceConfig)
    rounding_come: RoundingConfig | None = None
    rounding_go: RoundingConfig | None = None
    breaks: tuple[BreakConfig, ...] = ()


@dataclass(frozen=True)
class CappedTime:
    minutes: int
    source: Literal["early_arrival", "late_leave", "max_net_time"]
    reason: str
