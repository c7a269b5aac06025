from datetime import date, datetime
from decimal import Decimal
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from timebank.models import (
    AbsenceStatus,
    BreakType,
    CappingRuleType,
    DailyValueStatus,
    DayChangePolicy,
    ExemptionType,
    MonthStatus,
    NoBookingPolicy,
    PlanType,
    RoundingType,
)


class DayPlanBreakPayload(BaseModel):
    break_type: BreakType
    start_time: int | None = None
    end_time: int | None = None
    duration: int = Field(default=0, ge=0)
    after_work_minutes: int | None = None
    auto_deduct: bool = True
    is_paid: bool = False
    minutes_difference: bool = False


class DayPlanBreakRead(DayPlanBreakPayload):
    id: int
    sort_order: int

    model_config = ConfigDict(from_attributes=True)


class DayPlanSaveRequest(BaseModel):
    code: str = Field(min_length=1, max_length=50)
    name: str = Field(min_length=1, max_length=255)
    plan_type: PlanType = PlanType.FIXED
    come_from: int | None = None
    come_to: int | None = None
    go_from: int | None = None
    go_to: int | None = None
    core_start: int | None = None
    core_end: int | None = None
    regular_minutes: int = Field(default=480, ge=0)
    regular_minutes_absence: int | None = Field(default=None, ge=0)
    from_employee_master: bool = False
    tolerance_come_plus: int = Field(default=0, ge=0)
    tolerance_come_minus: int = Field(default=0, ge=0)
    tolerance_go_plus: int = Field(default=0, ge=0)
    tolerance_go_minus: int = Field(default=0, ge=0)
    variable_work_time: bool = False
    rounding_come_type: RoundingType | None = None
    rounding_come_interval: int | None = Field(default=None, ge=0)
    rounding_come_add_value: int | None = Field(default=None, ge=0)
    rounding_go_type: RoundingType | None = None
    rounding_go_interval: int | None = Field(default=None, ge=0)
    rounding_go_add_value: int | None = Field(default=None, ge=0)
    round_all_bookings: bool = False
    min_work_minutes: int | None = Field(default=None, ge=0)
    max_net_work_minutes: int | None = Field(default=None, ge=0)
    holiday_credit_cat1: int | None = Field(default=None, ge=0)
    holiday_credit_cat2: int | None = Field(default=None, ge=0)
    holiday_credit_cat3: int | None = Field(default=None, ge=0)
    vacation_deduction: Decimal = Field(default=Decimal("1.00"), ge=0)
    no_booking_policy: NoBookingPolicy = NoBookingPolicy.NO_EVALUATION
    day_change_policy: DayChangePolicy = DayChangePolicy.NONE
    net_account_id: int | None = Field(default=None, ge=1)
    cap_account_id: int | None = Field(default=None, ge=1)
    shift_detect_arrive_from: int | None = None
    shift_detect_arrive_to: int | None = None
    shift_detect_depart_from: int | None = None
    shift_detect_depart_to: int | None = None
    alternative_plan_ids: list[int] = Field(default_factory=list)
    breaks: list[DayPlanBreakPayload] = Field(default_factory=list)
    actor: str = Field(default="admin", min_length=1, max_length=255)


class DayPlanRead(BaseModel):
    id: int
    code: str
    name: str
    plan_type: PlanType
    come_from: int | None = None
    come_to: int | None = None
    go_from: int | None = None
    go_to: int | None = None
    core_start: int | None = None
    core_end: int | None = None
    regular_minutes: int
    regular_minutes_absence: int | None = None
    from_employee_master: bool
    tolerance_come_plus: int
    tolerance_come_minus: int
    tolerance_go_plus: int
    tolerance_go_minus: int
    variable_work_time: bool
    rounding_come_type: RoundingType | None = None
    rounding_come_interval: int | None = None
    rounding_come_add_value: int | None = None
    rounding_go_type: RoundingType | None = None
    rounding_go_interval: int | None = None
    rounding_go_add_value: int | None = None
    round_all_bookings: bool
    min_work_minutes: int | None = None
    max_net_work_minutes: int | None = None
    holiday_credit_cat1: int | None = None
    holiday_credit_cat2: int | None = None
    holiday_credit_cat3: int | None = None
    vacation_deduction: Decimal
    no_booking_policy: NoBookingPolicy
    day_change_policy: DayChangePolicy
    net_account_id: int | None = None
    cap_account_id: int | None = None
    shift_detect_arrive_from: int | None = None
    shift_detect_arrive_to: int | None = None
    shift_detect_depart_from: int | None = None
    shift_detect_depart_to: int | None = None
    alternative_plan_ids: list[int]
    breaks: list[DayPlanBreakRead]

    model_config = ConfigDict(from_attributes=True)


class WeekPlanSaveRequest(BaseModel):
    code: str = Field(min_length=1, max_length=50)
    name: str = Field(min_length=1, max_length=255)
    monday_day_plan_id: int | None = None
    tuesday_day_plan_id: int | None = None
    wednesday_day_plan_id: int | None = None
    thursday_day_plan_id: int | None = None
    friday_day_plan_id: int | None = None
    saturday_day_plan_id: int | None = None
    sunday_day_plan_id: int | None = None
    actor: str = Field(default="admin", min_length=1, max_length=255)


class WeekPlanRead(BaseModel):
    id: int
    code: str
    name: str
    monday_day_plan_id: int | None
    tuesday_day_plan_id: int | None
    wednesday_day_plan_id: int | None
    thursday_day_plan_id: int | None
    friday_day_plan_id: int | None
    saturday_day_plan_id: int | None
    sunday_day_plan_id: int | None

    model_config = ConfigDict(from_attributes=True)


class CappingRuleSaveRequest(BaseModel):
    tariff_id: int = Field(ge=1)
    code: str = Field(min_length=1, max_length=50)
    name: str = Field(min_length=1, max_length=255)
    rule_type: str
    cutoff_month: int = 12
    cutoff_day: int = 31
    cap_value: Decimal = Decimal("0")
    sort_order: int = 0
    is_active: bool = True
    actor: str = Field(default="admin", min_length=1, max_length=255)


class CappingRuleRead(BaseModel):
    id: int
    tariff_id: int
    code: str
    name: str
    rule_type: CappingRuleType
    cutoff_month: int
    cutoff_day: int
    cap_value: Decimal
    sort_order: int
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class DayPlanOverrideSaveRequest(BaseModel):
    employee_id: int = Field(ge=1)
    plan_date: date
    day_plan_id: int | None = Field(default=None, ge=1)
    note: str | None = Field(default=None, max_length=1000)
    actor: str = Field(default="admin", min_length=1, max_length=255)


class DayPlanOverrideRead(BaseModel):
    id: int
    employee_id: int
    plan_date: date
    day_plan_id: int | None = None
    note: str | None = None
    created_by: str

    model_config = ConfigDict(from_attributes=True)


class CorrectionMessageSaveRequest(BaseModel):
    custom_text: str = Field(min_length=1, max_length=500)
    is_active: bool = True
    actor: str = Field(default="admin", min_length=1, max_length=255)


class CorrectionMessageRead(BaseModel):
    id: int
    code: str
    custom_text: str
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class CorrectionCatalogEntry(BaseModel):
    code: str
    severity: Literal["error", "hint"]
    default_text: str
    custom_text: str | None = None


class CorrectionItemRead(BaseModel):
    employee_id: int
    value_date: date
    code: str
    severity: Literal["error", "hint"]
    message: str


class ResolvedPlanResponse(BaseModel):
    employee_id: int
    plan_date: date
    source: Literal["override", "rolling", "xday", "weekly", "none"]
    day_plan_id: int | None = None
    day_plan_code: str | None = None


class DailyValueRead(BaseModel):
    id: int
    employee_id: int
    value_date: date
    status: DailyValueStatus
    target_minutes: int
    gross_minutes: int
    net_minutes: int
    break_minutes: int
    overtime_minutes: int
    undertime_minutes: int
    capped_minutes: int
    booking_count: int
    first_come: int | None = None
    last_go: int | None = None
    has_error: bool
    error_codes: list[str]
    warnings: list[str]
    absence_code: str | None = None
    day_plan_id: int | None = None
    is_locked: bool
    calculated_at: datetime | None = None
    version: int

    model_config = ConfigDict(from_attributes=True)


class MonthlyValueRead(BaseModel):
    id: int
    employee_id: int
    year: int
    month: int
    total_gross_minutes: int
    total_net_minutes: int
    total_target_minutes: int
    total_overtime_minutes: int
    total_undertime_minutes: int
    total_break_minutes: int
    flextime_start: int
    flextime_change: int
    flextime_credited: int
    flextime_forfeited: int
    flextime_end: int
    vacation_taken: Decimal
    sick_days: int
    other_absence_days: int
    work_days: int
    days_with_errors: int
    warnings: list[str]
    status: MonthStatus
    closed_at: datetime | None = None
    closed_by: str | None = None
    reopened_at: datetime | None = None
    reopened_by: str | None = None
    reopen_reason: str | None = None
    calculated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class DailyValueApproveRequest(BaseModel):
    actor: str = Field(default="admin", min_length=1, max_length=255)


class MonthCloseRequest(BaseModel):
    closed_by: str = Field(min_length=1, max_length=255)
    force: bool = False


class MonthReopenRequest(BaseModel):
    reopened_by: str = Field(min_length=1, max_length=255)
    reason: str = ""


class VacationEntitlementResponse(BaseModel):
    employee_id: int
    year: int
    reference_date: date
    age_at_reference: int
    tenure_years: int
    months_employed: int
    base_entitlement: Decimal
    prorated_entitlement: Decimal
    part_time_adjustment: Decimal
    age_bonus: Decimal
    tenure_bonus: Decimal
    disability_bonus: Decimal
    total_entitlement: Decimal


class VacationBalanceRead(BaseModel):
    id: int
    employee_id: int
    year: int
    base_entitlement: Decimal
    additional_entitlement: Decimal
    carryover: Decimal
    manual_adjustment: Decimal
    used_days: Decimal
    planned_days: Decimal
    total_entitlement: Decimal
    remaining_days: Decimal

    model_config = ConfigDict(from_attributes=True)


class VacationInitializeRequest(BaseModel):
    reference_date: date | None = None
    actor: str = Field(default="admin", min_length=1, max_length=255)


class VacationYearTransitionRequest(BaseModel):
    reference_date: date | None = None
    actor: str = Field(default="system", min_length=1, max_length=255)


class CappingRuleResultRead(BaseModel):
    rule_id: int | None = None
    rule_code: str
    rule_type: CappingRuleType
    cap_value: Decimal
    applied: bool
    capped_amount: Decimal
    exemption: ExemptionType | None = None


class VacationYearTransitionResponse(BaseModel):
    employee_id: int
    from_year: int
    to_year: int
    available_days: Decimal
    carryover: Decimal
    forfeited_days: Decimal
    has_exception: bool
    rules_applied: list[CappingRuleResultRead]
    balance: VacationBalanceRead


class VacationAdjustmentRequest(BaseModel):
    days: Decimal
    reason: str = Field(min_length=1, max_length=1000)
    actor: str = Field(default="admin", min_length=1, max_length=255)

    @model_validator(mode="after")
    def _validate_days(self) -> "VacationAdjustmentRequest":
        if self.days == 0:
            raise ValueError("Adjustment days must not be zero.")
        return self


class AbsenceActionRequest(BaseModel):
    actor: str = Field(default="admin", min_length=1, max_length=255)


class AbsenceDayRead(BaseModel):
    id: int
    employee_id: int
    absence_date: date
    absence_type_id: int
    duration: Decimal
    status: AbsenceStatus
    approved_by: str | None = None
    approved_at: datetime | None = None
    vacation_deducted: Decimal | None = None

    model_config = ConfigDict(from_attributes=True)


class BatchRecalculationRequest(BaseModel):
    employee_ids: list[int] = Field(min_length=1)
    date_from: date
    date_to: date
    evaluate_months: bool = False

    @model_validator(mode="after")
    def _validate_range(self) -> "BatchRecalculationRequest":
        if self.date_to < self.date_from:
            raise ValueError("date_to must be on or after date_from.")
        return self


class BatchRecalculationResponse(BaseModel):
    processed: int
    failed: int
    skipped: int
    stopped: bool
    months_evaluated: int
    failures: list[dict[str, Any]]
