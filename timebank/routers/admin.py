from fastapi import APIRouter, Depends, Request, status
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from timebank.db import get_db
from timebank.models import DayPlan, VacationCappingRule, WeekPlan
from timebank.schemas import (
    CappingRuleRead,
    CappingRuleSaveRequest,
    CorrectionCatalogEntry,
    CorrectionMessageRead,
    CorrectionMessageSaveRequest,
    DayPlanOverrideRead,
    DayPlanOverrideSaveRequest,
    DayPlanRead,
    DayPlanSaveRequest,
    WeekPlanRead,
    WeekPlanSaveRequest,
)
from timebank.services.corrections import list_catalog, save_correction_message
from timebank.services.plan_config import (
    save_capping_rule,
    save_day_plan,
    save_day_plan_override,
    save_week_plan,
)

router = APIRouter(tags=["admin"])


def _mark_actor(request: Request, actor: str) -> None:
    request.state.actor = "admin"
    request.state.actor_id = actor


@router.get("/api/admin/day-plans", response_model=list[DayPlanRead])
def list_day_plans(db: Session = Depends(get_db)) -> list[DayPlanRead]:
    return list(db.scalars(select(DayPlan).options(selectinload(DayPlan.breaks)).order_by(DayPlan.code)).all())


@router.post("/api/admin/day-plans", response_model=DayPlanRead, status_code=status.HTTP_201_CREATED)
def create_day_plan(
    payload: DayPlanSaveRequest,
    request: Request,
    db: Session = Depends(get_db),
) -> DayPlanRead:
    _mark_actor(request, payload.actor)
    return save_day_plan(db, payload)


@router.put("/api/admin/day-plans/{plan_id}", response_model=DayPlanRead)
def update_day_plan(
    plan_id: int,
    payload: DayPlanSaveRequest,
    request: Request,
    db: Session = Depends(get_db),
) -> DayPlanRead:
    _mark_actor(request, payload.actor)
    return save_day_plan(db, payload, plan_id=plan_id)


@router.get("/api/admin/week-plans", response_model=list[WeekPlanRead])
def list_week_plans(db: Session = Depends(get_db)) -> list[WeekPlanRead]:
    return list(db.scalars(select(WeekPlan).order_by(WeekPlan.code)).all())


@router.post("/api/admin/week-plans", response_model=WeekPlanRead, status_code=status.HTTP_201_CREATED)
def create_week_plan(
    payload: WeekPlanSaveRequest,
    request: Request,
    db: Session = Depends(get_db),
) -> WeekPlanRead:
    _mark_actor(request, payload.actor)
    return save_week_plan(db, payload)


@router.put("/api/admin/week-plans/{week_plan_id}", response_model=WeekPlanRead)
def update_week_plan(
    week_plan_id: int,
    payload: WeekPlanSaveRequest,
    request: Request,
    db: Session = Depends(get_db),
) -> WeekPlanRead:
    _mark_actor(request, payload.actor)
    return save_week_plan(db, payload, week_plan_id=week_plan_id)


@router.get("/api/admin/capping-rules", response_model=list[CappingRuleRead])
def list_capping_rules(db: Session = Depends(get_db)) -> list[CappingRuleRead]:
    return list(
        db.scalars(
            select(VacationCappingRule).order_by(VacationCappingRule.tariff_id, VacationCappingRule.sort_order)
        ).all()
    )


@router.post("/api/admin/capping-rules", response_model=CappingRuleRead, status_code=status.HTTP_201_CREATED)
def create_capping_rule(
    payload: CappingRuleSaveRequest,
    request: Request,
    db: Session = Depends(get_db),
) -> CappingRuleRead:
    _mark_actor(request, payload.actor)
    return save_capping_rule(db, payload)


@router.put("/api/admin/capping-rules/{rule_id}", response_model=CappingRuleRead)
def update_capping_rule(
    rule_id: int,
    payload: CappingRuleSaveRequest,
    request: Request,
    db: Session = Depends(get_db),
) -> CappingRuleRead:
    _mark_actor(request, payload.actor)
    return save_capping_rule(db, payload, rule_id=rule_id)


@router.put("/api/admin/day-plan-overrides", response_model=DayPlanOverrideRead)
def upsert_day_plan_override(
    payload: DayPlanOverrideSaveRequest,
    request: Request,
    db: Session = Depends(get_db),
) -> DayPlanOverrideRead:
    _mark_actor(request, payload.actor)
    return save_day_plan_override(db, payload)


@router.get("/api/admin/correction-messages", response_model=list[CorrectionCatalogEntry])
def get_correction_catalog(db: Session = Depends(get_db)) -> list[CorrectionCatalogEntry]:
    return list_catalog(db)


@router.put("/api/admin/correction-messages/{code}", response_model=CorrectionMessageRead)
def update_correction_message(
    code: str,
    payload: CorrectionMessageSaveRequest,
    request: Request,
    db: Session = Depends(get_db),
) -> CorrectionMessageRead:
    _mark_actor(request, payload.actor)
    return save_correction_message(db, code, payload)
