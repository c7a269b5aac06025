from __future__ import annotations

import logging

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from timebank.audit import log_audit
from timebank.errors import IncompleteScheduleError, InvalidCappingRuleError, InvalidDayPlanError
from timebank.models import (
    RESERVED_ABSENCE_CODES,
    AuditActorType,
    BreakType,
    CappingRuleType,
    DayPlan,
    DayPlanBreak,
    Employee,
    EmployeeDayPlanOverride,
    Tariff,
    VacationCappingRule,
    WeekPlan,
)
from timebank.schemas import (
    CappingRuleSaveRequest,
    DayPlanOverrideSaveRequest,
    DayPlanSaveRequest,
    WeekPlanSaveRequest,
)
from timebank.services.shift_detection import validate_shift_detection_config

logger = logging.getLogger("timebank.plan_config")

MAX_BREAKS_PER_TYPE = {
    BreakType.FIXED: 3,
    BreakType.VARIABLE: 1,
    BreakType.MINIMUM: 2,
}

_DAY_PLAN_FIELDS = (
    "code",
    "name",
    "plan_type",
    "come_from",
    "come_to",
    "go_from",
    "go_to",
    "core_start",
    "core_end",
    "regular_minutes",
    "regular_minutes_absence",
    "from_employee_master",
    "tolerance_come_plus",
    "tolerance_come_minus",
    "tolerance_go_plus",
    "tolerance_go_minus",
    "variable_work_time",
    "rounding_come_type",
    "rounding_come_interval",
    "rounding_come_add_value",
    "rounding_go_type",
    "rounding_go_interval",
    "rounding_go_add_value",
    "round_all_bookings",
    "min_work_minutes",
    "max_net_work_minutes",
    "holiday_credit_cat1",
    "holiday_credit_cat2",
    "holiday_credit_cat3",
    "vacation_deduction",
    "no_booking_policy",
    "day_change_policy",
    "net_account_id",
    "cap_account_id",
    "shift_detect_arrive_from",
    "shift_detect_arrive_to",
    "shift_detect_depart_from",
    "shift_detect_depart_to",
)

_WEEKDAY_LABELS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


def _check_minutes(problems: list[str], label: str, value: int | None) -> None:
    if value is not None and not 0 <= value <= 1440:
        problems.append(f"{label} must be between 0 and 1440")


def _check_window(problems: list[str], label: str, start: int | None, end: int | None) -> None:
    if start is not None and end is not None and start > end:
        problems.append(f"{label} window is reversed")


def validate_day_plan_payload(payload: DayPlanSaveRequest) -> list[str]:
    problems: list[str] = []
    if payload.code.strip().upper() in RESERVED_ABSENCE_CODES:
        problems.append(f"code '{payload.code}' is reserved for absence types")

    for label in ("come_from", "come_to", "go_from", "go_to", "core_start", "core_end"):
        _check_minutes(problems, label, getattr(payload, label))
    _check_window(problems, "come", payload.come_from, payload.come_to)
    _check_window(problems, "go", payload.go_from, payload.go_to)
    _check_window(problems, "core", payload.core_start, payload.core_end)

    counts: dict[BreakType, int] = {}
    for item in payload.breaks:
        counts[item.break_type] = counts.get(item.break_type, 0) + 1
        if item.break_type == BreakType.FIXED:
            if item.start_time is None or item.end_time is None:
                problems.append("fixed breaks need start_time and end_time")
            else:
                _check_minutes(problems, "break start_time", item.start_time)
                _check_minutes(problems, "break end_time", item.end_time)
                _check_window(problems, "break", item.start_time, item.end_time)
    for break_type, limit in MAX_BREAKS_PER_TYPE.items():
        if counts.get(break_type, 0) > limit:
            problems.append(f"at most {limit} {break_type.value.lower()} break(s) allowed")

    problems.extend(
        validate_shift_detection_config(
            arrive_from=payload.shift_detect_arrive_from,
            arrive_to=payload.shift_detect_arrive_to,
            depart_from=payload.shift_detect_depart_from,
            depart_to=payload.shift_detect_depart_to,
            alternative_plan_ids=payload.alternative_plan_ids,
        )
    )
    return problems


def save_day_plan(db: Session, payload: DayPlanSaveRequest, *, plan_id: int | None = None) -> DayPlan:
    problems = validate_day_plan_payload(payload)
    if problems:
        raise InvalidDayPlanError(problems)

    if plan_id is None:
        day_plan = DayPlan()
    else:
        day_plan = db.get(DayPlan, plan_id)
        if day_plan is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Day plan not found")

    duplicate = db.scalar(select(DayPlan).where(DayPlan.code == payload.code))
    if duplicate is not None and duplicate.id != plan_id:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Day plan code already exists")

    for alternative_id in payload.alternative_plan_ids:
        if alternative_id == plan_id or db.get(DayPlan, alternative_id) is None:
            raise InvalidDayPlanError([f"alternative plan {alternative_id} does not exist"])

    if plan_id is None:
        db.add(day_plan)

    for field_name in _DAY_PLAN_FIELDS:
        setattr(day_plan, field_name, getattr(payload, field_name))
    day_plan.alternative_plan_ids = list(payload.alternative_plan_ids)
    day_plan.breaks = [
        DayPlanBreak(
            break_type=item.break_type,
            start_time=item.start_time,
            end_time=item.end_time,
            duration=item.duration,
            after_work_minutes=item.after_work_minutes,
            auto_deduct=item.auto_deduct,
            is_paid=item.is_paid,
            minutes_difference=item.minutes_difference,
            sort_order=index,
        )
        for index, item in enumerate(payload.breaks)
    ]
    db.flush()

    log_audit(
        db,
        actor_type=AuditActorType.ADMIN,
        actor_id=payload.actor,
        action="DAY_PLAN_SAVED",
        entity_type="day_plan",
        entity_id=str(day_plan.id),
        details={"code": day_plan.code, "break_count": len(day_plan.breaks)},
    )
    db.commit()
    db.refresh(day_plan)
    return day_plan


def save_week_plan(db: Session, payload: WeekPlanSaveRequest, *, week_plan_id: int | None = None) -> WeekPlan:
    missing = [
        label
        for label, field_name in zip(_WEEKDAY_LABELS, WeekPlan.WEEKDAY_FIELDS)
        if getattr(payload, field_name) is None
    ]
    if missing:
        raise IncompleteScheduleError(missing)

    for field_name in WeekPlan.WEEKDAY_FIELDS:
        day_plan_id = getattr(payload, field_name)
        if db.get(DayPlan, day_plan_id) is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Day plan {day_plan_id} not found")

    if week_plan_id is None:
        week_plan = WeekPlan()
        db.add(week_plan)
    else:
        week_plan = db.get(WeekPlan, week_plan_id)
        if week_plan is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Week plan not found")

    week_plan.code = payload.code
    week_plan.name = payload.name
    for field_name in WeekPlan.WEEKDAY_FIELDS:
        setattr(week_plan, field_name, getattr(payload, field_name))
    db.flush()

    log_audit(
        db,
        actor_type=AuditActorType.ADMIN,
        actor_id=payload.actor,
        action="WEEK_PLAN_SAVED",
        entity_type="week_plan",
        entity_id=str(week_plan.id),
        details={"code": week_plan.code},
    )
    db.commit()
    db.refresh(week_plan)
    return week_plan


def validate_capping_rule_payload(payload: CappingRuleSaveRequest) -> list[str]:
    problems: list[str] = []
    valid_types = {item.value for item in CappingRuleType}
    if payload.rule_type not in valid_types:
        problems.append(f"rule_type must be one of {sorted(valid_types)}")
    if not 1 <= payload.cutoff_month <= 12:
        problems.append("cutoff_month must be between 1 and 12")
    if not 1 <= payload.cutoff_day <= 31:
        problems.append("cutoff_day must be between 1 and 31")
    if payload.cap_value < 0:
        problems.append("cap_value must not be negative")
    return problems


def save_capping_rule(
    db: Session,
    payload: CappingRuleSaveRequest,
    *,
    rule_id: int | None = None,
) -> VacationCappingRule:
    problems = validate_capping_rule_payload(payload)
    if problems:
        raise InvalidCappingRuleError(problems)

    if db.get(Tariff, payload.tariff_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tariff not found")

    if rule_id is None:
        rule = VacationCappingRule()
        db.add(rule)
    else:
        rule = db.get(VacationCappingRule, rule_id)
        if rule is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Capping rule not found")

    rule.tariff_id = payload.tariff_id
    rule.code = payload.code
    rule.name = payload.name
    rule.rule_type = CappingRuleType(payload.rule_type)
    rule.cutoff_month = payload.cutoff_month
    rule.cutoff_day = payload.cutoff_day
    rule.cap_value = payload.cap_value
    rule.sort_order = payload.sort_order
    rule.is_active = payload.is_active
    db.flush()

    log_audit(
        db,
        actor_type=AuditActorType.ADMIN,
        actor_id=payload.actor,
        action="CAPPING_RULE_SAVED",
        entity_type="vacation_capping_rule",
        entity_id=str(rule.id),
        details={"code": rule.code, "rule_type": rule.rule_type.value, "cap_value": str(rule.cap_value)},
    )
    db.commit()
    db.refresh(rule)
    return rule


def save_day_plan_override(db: Session, payload: DayPlanOverrideSaveRequest) -> EmployeeDayPlanOverride:
    if db.get(Employee, payload.employee_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Employee not found")
    if payload.day_plan_id is not None and db.get(DayPlan, payload.day_plan_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Day plan not found")

    override = db.scalar(
        select(EmployeeDayPlanOverride).where(
            EmployeeDayPlanOverride.employee_id == payload.employee_id,
            EmployeeDayPlanOverride.plan_date == payload.plan_date,
        )
    )
    if override is None:
        override = EmployeeDayPlanOverride(
            employee_id=payload.employee_id,
            plan_date=payload.plan_date,
            created_by=payload.actor,
        )
        db.add(override)

    override.day_plan_id = payload.day_plan_id
    override.note = payload.note
    db.flush()

    log_audit(
        db,
        actor_type=AuditActorType.ADMIN,
        actor_id=payload.actor,
        action="DAY_PLAN_OVERRIDE_SAVED",
        entity_type="employee",
        entity_id=str(payload.employee_id),
        details={"plan_date": payload.plan_date.isoformat(), "day_plan_id": payload.day_plan_id},
    )
    db.commit()
    db.refresh(override)
    logger.info(
        "day_plan_override_saved",
        extra={
            "employee_id": payload.employee_id,
            "plan_date": payload.plan_date,
            "day_plan_id": payload.day_plan_id,
        },
    )
    return override
