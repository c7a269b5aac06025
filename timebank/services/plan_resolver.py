from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Literal

from fastapi import HTTPException, status
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from timebank.models import (
    DayPlan,
    Employee,
    EmployeeDayPlanOverride,
    EmployeeScheduleAssignment,
    RhythmType,
    Tariff,
    WeekPlan,
)
from timebank.services.calc_types import (
    BreakConfig,
    PlanInput,
    RoundingConfig,
    ToleranceConfig,
)

PlanSource = Literal["override", "rolling", "xday", "weekly", "none"]


@dataclass(frozen=True)
class ResolvedPlan:
    day_plan: DayPlan | None
    source: PlanSource

    @property
    def is_off_day(self) -> bool:
        return self.day_plan is None


def rolling_week_index(day: date, start: date | None, week_count: int) -> int:
    if week_count <= 0 or start is None or day < start:
        return 0
    weeks = (day - start).days // 7
    return weeks % week_count


def x_day_position(day: date, start: date | None, cycle_days: int | None) -> int | None:
    if not cycle_days or cycle_days <= 0 or start is None:
        return None
    return (day - start).days % cycle_days + 1


def _active_assignment(db: Session, employee_id: int, day: date) -> EmployeeScheduleAssignment | None:
    return db.scalar(
        select(EmployeeScheduleAssignment)
        .where(
            EmployeeScheduleAssignment.employee_id == employee_id,
            EmployeeScheduleAssignment.effective_from <= day,
            or_(
                EmployeeScheduleAssignment.effective_to.is_(None),
                EmployeeScheduleAssignment.effective_to >= day,
            ),
        )
        .order_by(EmployeeScheduleAssignment.effective_from.desc(), EmployeeScheduleAssignment.id.desc())
        .limit(1)
    )


def resolve_tariff(db: Session, employee: Employee, day: date) -> Tariff | None:
    assignment = _active_assignment(db, employee.id, day)
    if assignment is not None:
        return assignment.tariff
    return employee.tariff


def _day_plan_from_week_plan(db: Session, week_plan_id: int | None, day: date) -> DayPlan | None:
    if week_plan_id is None:
        return None
    week_plan = db.get(WeekPlan, week_plan_id)
    if week_plan is None:
        return None
    day_plan_id = week_plan.day_plan_id_for(day.weekday())
    if day_plan_id is None:
        return None
    return db.get(DayPlan, day_plan_id)


def _resolve_from_tariff(db: Session, tariff: Tariff, day: date) -> ResolvedPlan:
    if tariff.rhythm_type == RhythmType.ROLLING_WEEKLY and tariff.rolling_week_plans:
        index = rolling_week_index(day, tariff.rhythm_start_date, len(tariff.rolling_week_plans))
        entry = tariff.rolling_week_plans[index]
        return ResolvedPlan(_day_plan_from_week_plan(db, entry.week_plan_id, day), "rolling")

    if tariff.rhythm_type == RhythmType.X_DAYS:
        position = x_day_position(day, tariff.rhythm_start_date, tariff.cycle_days)
        if position is None:
            return ResolvedPlan(None, "xday")
        slot = next((item for item in tariff.day_positions if item.day_position == position), None)
        if slot is None or slot.day_plan_id is None:
            return ResolvedPlan(None, "xday")
        return ResolvedPlan(db.get(DayPlan, slot.day_plan_id), "xday")

    if tariff.week_plan_id is None:
        return ResolvedPlan(None, "none")
    return ResolvedPlan(_day_plan_from_week_plan(db, tariff.week_plan_id, day), "weekly")


def resolve_day_plan(db: Session, employee_id: int, day: date) -> ResolvedPlan:
    employee = db.get(Employee, employee_id)
    if employee is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Employee not found")

    override = db.scalar(
        select(EmployeeDayPlanOverride).where(
            EmployeeDayPlanOverride.employee_id == employee_id,
            EmployeeDayPlanOverride.plan_date == day,
        )
    )
    if override is not None:
        day_plan = db.get(DayPlan, override.day_plan_id) if override.day_plan_id is not None else None
        return ResolvedPlan(day_plan, "override")

    tariff = resolve_tariff(db, employee, day)
    if tariff is None:
        return ResolvedPlan(None, "none")
    return _resolve_from_tariff(db, tariff, day)


def _rounding(type_value, interval: int | None, add_value: int | None) -> RoundingConfig | None:
    if type_value is None:
        return None
    return RoundingConfig(type=type_value, interval=interval or 0, add_value=add_value or 0)


def build_plan_input(day_plan: DayPlan, target_minutes: int) -> PlanInput:
    breaks = tuple(
        BreakConfig(
            break_type=item.break_type,
            duration=item.duration,
            start_time=item.start_time,
            end_time=item.end_time,
            after_work_minutes=item.after_work_minutes,
            auto_deduct=item.auto_deduct,
            minutes_difference=item.minutes_difference,
        )
        for item in day_plan.breaks
    )
    return PlanInput(
        target_minutes=target_minutes,
        plan_type=day_plan.plan_type,
        come_from=day_plan.come_from,
        come_to=day_plan.come_to,
        go_from=day_plan.go_from,
        go_to=day_plan.go_to,
        core_start=day_plan.core_start,
        core_end=day_plan.core_end,
        min_work_minutes=day_plan.min_work_minutes,
        max_net_work_minutes=day_plan.max_net_work_minutes,
        variable_work_time=day_plan.variable_work_time,
        round_all_bookings=day_plan.round_all_bookings,
        tolerance=ToleranceConfig(
            come_plus=day_plan.tolerance_come_plus,
            come_minus=day_plan.tolerance_come_minus,
            go_plus=day_plan.tolerance_go_plus,
            go_minus=day_plan.tolerance_go_minus,
        ),
        rounding_come=_rounding(
            day_plan.rounding_come_type,
            day_plan.rounding_come_interval,
            day_plan.rounding_come_add_value,
        ),
        rounding_go=_rounding(
            day_plan.rounding_go_type,
            day_plan.rounding_go_interval,
            day_plan.rounding_go_add_value,
        ),
        breaks=breaks,
    )


def resolve_target_minutes(day_plan: DayPlan, employee: Employee, *, is_absence_day: bool) -> int:
    if day_plan.from_employee_master and employee.daily_target_minutes is not None:
        return employee.daily_target_minutes
    if is_absence_day and day_plan.regular_minutes_absence is not None:
        return day_plan.regular_minutes_absence
    return day_plan.regular_minutes
