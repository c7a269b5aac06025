from datetime import date
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session, sessionmaker

from timebank.db import get_db, get_session_factory
from timebank.schemas import (
    AbsenceActionRequest,
    AbsenceDayRead,
    BatchRecalculationRequest,
    BatchRecalculationResponse,
    CappingRuleResultRead,
    CorrectionItemRead,
    DailyValueApproveRequest,
    DailyValueRead,
    MonthCloseRequest,
    MonthlyValueRead,
    MonthReopenRequest,
    ResolvedPlanResponse,
    VacationAdjustmentRequest,
    VacationBalanceRead,
    VacationEntitlementResponse,
    VacationInitializeRequest,
    VacationYearTransitionRequest,
    VacationYearTransitionResponse,
)
from timebank.services.absences import approve_absence, cancel_absence
from timebank.services.batch import recalculate_range
from timebank.services.corrections import list_correction_items
from timebank.services.daily import approve_daily_value, calculate_employee_day, list_daily_values
from timebank.services.monthly import (
    close_month,
    evaluate_month,
    get_monthly_value,
    list_monthly_values,
    reopen_month,
)
from timebank.services.plan_resolver import resolve_day_plan
from timebank.services.vacation import (
    add_manual_adjustment,
    apply_year_transition,
    get_balance,
    initialize_year,
    preview_entitlement,
    recalculate_used_days,
)

router = APIRouter(tags=["attendance"])


def _check_range(date_from: date, date_to: date) -> None:
    if date_to < date_from:
        raise HTTPException(status_code=422, detail="date_to must be on or after date_from")


@router.get("/api/employees/{employee_id}/plans/{plan_date}", response_model=ResolvedPlanResponse)
def get_resolved_plan(
    employee_id: int,
    plan_date: date,
    db: Session = Depends(get_db),
) -> ResolvedPlanResponse:
    resolved = resolve_day_plan(db, employee_id, plan_date)
    return ResolvedPlanResponse(
        employee_id=employee_id,
        plan_date=plan_date,
        source=resolved.source,
        day_plan_id=resolved.day_plan.id if resolved.day_plan is not None else None,
        day_plan_code=resolved.day_plan.code if resolved.day_plan is not None else None,
    )


@router.post("/api/employees/{employee_id}/days/{value_date}/calculate", response_model=DailyValueRead)
def calculate_day_endpoint(
    employee_id: int,
    value_date: date,
    db: Session = Depends(get_db),
) -> DailyValueRead:
    return calculate_employee_day(db, employee_id, value_date)


@router.post("/api/employees/{employee_id}/days/{value_date}/approve", response_model=DailyValueRead)
def approve_day_endpoint(
    employee_id: int,
    value_date: date,
    payload: DailyValueApproveRequest,
    request: Request,
    db: Session = Depends(get_db),
) -> DailyValueRead:
    request.state.actor_id = payload.actor
    return approve_daily_value(db, employee_id, value_date, actor=payload.actor)


@router.get("/api/employees/{employee_id}/daily-values", response_model=list[DailyValueRead])
def get_daily_values(
    employee_id: int,
    date_from: date = Query(...),
    date_to: date = Query(...),
    db: Session = Depends(get_db),
) -> list[DailyValueRead]:
    _check_range(date_from, date_to)
    return list_daily_values(db, employee_id, date_from, date_to)


@router.get("/api/employees/{employee_id}/corrections", response_model=list[CorrectionItemRead])
def get_correction_items(
    employee_id: int,
    date_from: date = Query(...),
    date_to: date = Query(...),
    severity: Literal["error", "hint"] | None = Query(default=None),
    db: Session = Depends(get_db),
) -> list[CorrectionItemRead]:
    _check_range(date_from, date_to)
    return list_correction_items(db, employee_id, date_from, date_to, severity=severity)


@router.get("/api/employees/{employee_id}/months/{year}", response_model=list[MonthlyValueRead])
def get_year_months(
    employee_id: int,
    year: int,
    db: Session = Depends(get_db),
) -> list[MonthlyValueRead]:
    return list_monthly_values(db, employee_id, year)


@router.get("/api/employees/{employee_id}/months/{year}/{month}", response_model=MonthlyValueRead)
def get_month(
    employee_id: int,
    year: int,
    month: int,
    db: Session = Depends(get_db),
) -> MonthlyValueRead:
    return get_monthly_value(db, employee_id, year, month)


@router.post("/api/employees/{employee_id}/months/{year}/{month}/evaluate", response_model=MonthlyValueRead)
def evaluate_month_endpoint(
    employee_id: int,
    year: int,
    month: int,
    db: Session = Depends(get_db),
) -> MonthlyValueRead:
    return evaluate_month(db, employee_id, year, month)


@router.post("/api/employees/{employee_id}/months/{year}/{month}/close", response_model=MonthlyValueRead)
def close_month_endpoint(
    employee_id: int,
    year: int,
    month: int,
    payload: MonthCloseRequest,
    request: Request,
    db: Session = Depends(get_db),
) -> MonthlyValueRead:
    request.state.actor_id = payload.closed_by
    return close_month(db, employee_id, year, month, closed_by=payload.closed_by, force=payload.force)


@router.post("/api/employees/{employee_id}/months/{year}/{month}/reopen", response_model=MonthlyValueRead)
def reopen_month_endpoint(
    employee_id: int,
    year: int,
    month: int,
    payload: MonthReopenRequest,
    request: Request,
    db: Session = Depends(get_db),
) -> MonthlyValueRead:
    request.state.actor_id = payload.reopened_by
    return reopen_month(db, employee_id, year, month, reopened_by=payload.reopened_by, reason=payload.reason)


@router.get(
    "/api/employees/{employee_id}/vacation/{year}/entitlement",
    response_model=VacationEntitlementResponse,
)
def get_vacation_entitlement(
    employee_id: int,
    year: int,
    reference_date: date | None = Query(default=None),
    db: Session = Depends(get_db),
) -> VacationEntitlementResponse:
    reference_date = reference_date or date(year, 1, 1)
    result = preview_entitlement(db, employee_id, year, reference_date=reference_date)
    return VacationEntitlementResponse(
        employee_id=employee_id,
        year=year,
        reference_date=reference_date,
        age_at_reference=result.age_at_reference,
        tenure_years=result.tenure_years,
        months_employed=result.months_employed,
        base_entitlement=result.base_entitlement,
        prorated_entitlement=result.prorated_entitlement,
        part_time_adjustment=result.part_time_adjustment,
        age_bonus=result.age_bonus,
        tenure_bonus=result.tenure_bonus,
        disability_bonus=result.disability_bonus,
        total_entitlement=result.total_entitlement,
    )


@router.get("/api/employees/{employee_id}/vacation/{year}", response_model=VacationBalanceRead)
def get_vacation_balance(
    employee_id: int,
    year: int,
    db: Session = Depends(get_db),
) -> VacationBalanceRead:
    return get_balance(db, employee_id, year)


@router.post("/api/employees/{employee_id}/vacation/{year}/initialize", response_model=VacationBalanceRead)
def initialize_vacation_year(
    employee_id: int,
    year: int,
    payload: VacationInitializeRequest,
    request: Request,
    db: Session = Depends(get_db),
) -> VacationBalanceRead:
    request.state.actor_id = payload.actor
    return initialize_year(db, employee_id, year, actor=payload.actor, reference_date=payload.reference_date)


@router.post(
    "/api/employees/{employee_id}/vacation/{year}/transition",
    response_model=VacationYearTransitionResponse,
)
def vacation_year_transition(
    employee_id: int,
    year: int,
    payload: VacationYearTransitionRequest,
    request: Request,
    db: Session = Depends(get_db),
) -> VacationYearTransitionResponse:
    request.state.actor_id = payload.actor
    result, balance = apply_year_transition(
        db,
        employee_id,
        year,
        actor=payload.actor,
        reference_date=payload.reference_date,
    )
    return VacationYearTransitionResponse(
        employee_id=employee_id,
        from_year=year,
        to_year=year + 1,
        available_days=result.available_days,
        carryover=result.capped_carryover,
        forfeited_days=result.forfeited_days,
        has_exception=result.has_exception,
        rules_applied=[
            CappingRuleResultRead(
                rule_id=item.rule_id,
                rule_code=item.rule_code,
                rule_type=item.rule_type,
                cap_value=item.cap_value,
                applied=item.applied,
                capped_amount=item.capped_amount,
                exemption=item.exemption,
            )
            for item in result.rules_applied
        ],
        balance=VacationBalanceRead.model_validate(balance),
    )


@router.post("/api/employees/{employee_id}/vacation/{year}/adjustments", response_model=VacationBalanceRead)
def add_vacation_adjustment(
    employee_id: int,
    year: int,
    payload: VacationAdjustmentRequest,
    request: Request,
    db: Session = Depends(get_db),
) -> VacationBalanceRead:
    request.state.actor_id = payload.actor
    return add_manual_adjustment(
        db,
        employee_id,
        year,
        days=payload.days,
        reason=payload.reason,
        actor=payload.actor,
    )


@router.post("/api/employees/{employee_id}/vacation/{year}/recalculate", response_model=VacationBalanceRead)
def recalculate_vacation_used(
    employee_id: int,
    year: int,
    db: Session = Depends(get_db),
) -> VacationBalanceRead:
    return recalculate_used_days(db, employee_id, year)


@router.post("/api/absences/{absence_id}/approve", response_model=AbsenceDayRead)
def approve_absence_endpoint(
    absence_id: int,
    payload: AbsenceActionRequest,
    request: Request,
    db: Session = Depends(get_db),
) -> AbsenceDayRead:
    request.state.actor_id = payload.actor
    return approve_absence(db, absence_id, actor=payload.actor)


@router.post("/api/absences/{absence_id}/cancel", response_model=AbsenceDayRead)
def cancel_absence_endpoint(
    absence_id: int,
    payload: AbsenceActionRequest,
    request: Request,
    db: Session = Depends(get_db),
) -> AbsenceDayRead:
    request.state.actor_id = payload.actor
    return cancel_absence(db, absence_id, actor=payload.actor)


@router.post("/api/batch/recalculate", response_model=BatchRecalculationResponse)
def batch_recalculate(
    payload: BatchRecalculationRequest,
    session_factory: sessionmaker[Session] = Depends(get_session_factory),
) -> BatchRecalculationResponse:
    result = recalculate_range(
        payload.employee_ids,
        payload.date_from,
        payload.date_to,
        evaluate_months=payload.evaluate_months,
        session_factory=session_factory,
    )
    return BatchRecalculationResponse(
        processed=result.processed,
        failed=result.failed,
        skipped=result.skipped,
        stopped=result.stopped,
        months_evaluated=result.months_evaluated,
        failures=result.failures,
    )
