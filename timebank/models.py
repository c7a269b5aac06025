from __future__ import annotations

import enum
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from timebank.db import Base

JSONType = JSON().with_variant(JSONB(), "postgresql")

RESERVED_ABSENCE_CODES = frozenset({"U", "K", "S"})
VOCATIONAL_SCHOOL_ABSENCE_CODE = "SB"


class PlanType(str, enum.Enum):
    FIXED = "FIXED"
    FLEX = "FLEX"


class RoundingType(str, enum.Enum):
    UP = "UP"
    DOWN = "DOWN"
    NEAREST = "NEAREST"
    ADD = "ADD"
    SUBTRACT = "SUBTRACT"


ROUNDING_TYPE_ENUM = Enum(RoundingType, name="rounding_type")


class BreakType(str, enum.Enum):
    FIXED = "FIXED"
    VARIABLE = "VARIABLE"
    MINIMUM = "MINIMUM"


class NoBookingPolicy(str, enum.Enum):
    NO_EVALUATION = "NO_EVALUATION"
    DEDUCT_TARGET = "DEDUCT_TARGET"
    VOCATIONAL_SCHOOL = "VOCATIONAL_SCHOOL"
    ADOPT_TARGET = "ADOPT_TARGET"
    TARGET_WITH_ORDER = "TARGET_WITH_ORDER"


class DayChangePolicy(str, enum.Enum):
    NONE = "NONE"
    AT_ARRIVAL = "AT_ARRIVAL"
    AT_DEPARTURE = "AT_DEPARTURE"
    AUTO_COMPLETE = "AUTO_COMPLETE"


class RhythmType(str, enum.Enum):
    WEEKLY = "WEEKLY"
    ROLLING_WEEKLY = "ROLLING_WEEKLY"
    X_DAYS = "X_DAYS"


class CreditType(str, enum.Enum):
    NO_EVALUATION = "NO_EVALUATION"
    COMPLETE = "COMPLETE"
    AFTER_THRESHOLD = "AFTER_THRESHOLD"
    NO_CARRYOVER = "NO_CARRYOVER"


class VacationBasis(str, enum.Enum):
    CALENDAR_YEAR = "CALENDAR_YEAR"
    ENTRY_DATE = "ENTRY_DATE"


class SpecialCalcType(str, enum.Enum):
    AGE = "AGE"
    TENURE = "TENURE"
    DISABILITY = "DISABILITY"


class CappingRuleType(str, enum.Enum):
    YEAR_END = "YEAR_END"
    MID_YEAR = "MID_YEAR"


class ExemptionType(str, enum.Enum):
    FULL = "FULL"
    PARTIAL = "PARTIAL"


class BookingKind(str, enum.Enum):
    IN = "IN"
    OUT = "OUT"
    BREAK_START = "BREAK_START"
    BREAK_END = "BREAK_END"
    ERRAND_START = "ERRAND_START"
    ERRAND_END = "ERRAND_END"


class BookingSource(str, enum.Enum):
    TERMINAL = "TERMINAL"
    WEB = "WEB"
    API = "API"
    CORRECTION = "CORRECTION"


class AbsenceCategory(str, enum.Enum):
    VACATION = "VACATION"
    ILLNESS = "ILLNESS"
    SPECIAL = "SPECIAL"
    VOCATIONAL_SCHOOL = "VOCATIONAL_SCHOOL"


class AbsenceStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


class AccountUnit(str, enum.Enum):
    MINUTES = "MINUTES"
    HOURS = "HOURS"
    DAYS = "DAYS"


class PostingSource(str, enum.Enum):
    NET_TIME = "NET_TIME"
    CAPPED_TIME = "CAPPED_TIME"


class DailyValueStatus(str, enum.Enum):
    CALCULATED = "CALCULATED"
    ERROR = "ERROR"
    APPROVED = "APPROVED"


class MonthStatus(str, enum.Enum):
    OPEN = "OPEN"
    CALCULATED = "CALCULATED"
    CLOSED = "CLOSED"


class AuditActorType(str, enum.Enum):
    ADMIN = "ADMIN"
    SYSTEM = "SYSTEM"


class Employee(Base):
    __tablename__ = "employees"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    personnel_number: Mapped[str | None] = mapped_column(String(50), nullable=True, unique=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=text("true"))
    entry_date: Mapped[date] = mapped_column(Date, nullable=False)
    exit_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    birth_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    weekly_hours: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)
    daily_target_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    has_disability: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=text("false"))
    default_order_code: Mapped[str | None] = mapped_column(String(50), nullable=True)
    tariff_id: Mapped[int | None] = mapped_column(
        ForeignKey("tariffs.id", ondelete="SET NULL"),
        nullable=True,
    )

    tariff: Mapped[Tariff | None] = relationship()
    assignments: Mapped[list[EmployeeScheduleAssignment]] = relationship(back_populates="employee")


class Account(Base):
    __tablename__ = "accounts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    unit: Mapped[AccountUnit] = mapped_column(
        Enum(AccountUnit, name="account_unit"),
        nullable=False,
        default=AccountUnit.MINUTES,
    )
    is_carryover: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=text("false"))


class DayPlan(Base):
    __tablename__ = "day_plans"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    plan_type: Mapped[PlanType] = mapped_column(
        Enum(PlanType, name="day_plan_type"),
        nullable=False,
        default=PlanType.FIXED,
    )
    come_from: Mapped[int | None] = mapped_column(Integer, nullable=True)
    come_to: Mapped[int | None] = mapped_column(Integer, nullable=True)
    go_from: Mapped[int | None] = mapped_column(Integer, nullable=True)
    go_to: Mapped[int | None] = mapped_column(Integer, nullable=True)
    core_start: Mapped[int | None] = mapped_column(Integer, nullable=True)
    core_end: Mapped[int | None] = mapped_column(Integer, nullable=True)
    regular_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=480, server_default=text("480"))
    regular_minutes_absence: Mapped[int | None] = mapped_column(Integer, nullable=True)
    from_employee_master: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=text("false"))

    tolerance_come_plus: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))
    tolerance_come_minus: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))
    tolerance_go_plus: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))
    tolerance_go_minus: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))
    variable_work_time: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=text("false"))

    rounding_come_type: Mapped[RoundingType | None] = mapped_column(
        ROUNDING_TYPE_ENUM,
        nullable=True,
    )
    rounding_come_interval: Mapped[int | None] = mapped_column(Integer, nullable=True)
    rounding_come_add_value: Mapped[int | None] = mapped_column(Integer, nullable=True)
    rounding_go_type: Mapped[RoundingType | None] = mapped_column(
        ROUNDING_TYPE_ENUM,
        nullable=True,
    )
    rounding_go_interval: Mapped[int | None] = mapped_column(Integer, nullable=True)
    rounding_go_add_value: Mapped[int | None] = mapped_column(Integer, nullable=True)
    round_all_bookings: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=text("false"))

    min_work_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    max_net_work_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)

    holiday_credit_cat1: Mapped[int | None] = mapped_column(Integer, nullable=True)
    holiday_credit_cat2: Mapped[int | None] = mapped_column(Integer, nullable=True)
    holiday_credit_cat3: Mapped[int | None] = mapped_column(Integer, nullable=True)
    vacation_deduction: Mapped[Decimal] = mapped_column(
        Numeric(4, 2),
        nullable=False,
        default=Decimal("1.00"),
        server_default=text("1.00"),
    )
    no_booking_policy: Mapped[NoBookingPolicy] = mapped_column(
        Enum(NoBookingPolicy, name="no_booking_policy"),
        nullable=False,
        default=NoBookingPolicy.NO_EVALUATION,
    )
    day_change_policy: Mapped[DayChangePolicy] = mapped_column(
        Enum(DayChangePolicy, name="day_change_policy"),
        nullable=False,
        default=DayChangePolicy.NONE,
    )
    net_account_id: Mapped[int | None] = mapped_column(ForeignKey("accounts.id", ondelete="SET NULL"), nullable=True)
    cap_account_id: Mapped[int | None] = mapped_column(ForeignKey("accounts.id", ondelete="SET NULL"), nullable=True)

    shift_detect_arrive_from: Mapped[int | None] = mapped_column(Integer, nullable=True)
    shift_detect_arrive_to: Mapped[int | None] = mapped_column(Integer, nullable=True)
    shift_detect_depart_from: Mapped[int | None] = mapped_column(Integer, nullable=True)
    shift_detect_depart_to: Mapped[int | None] = mapped_column(Integer, nullable=True)
    alternative_plan_ids: Mapped[list[int]] = mapped_column(JSONType, nullable=False, default=list)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    breaks: Mapped[list[DayPlanBreak]] = relationship(
        back_populates="day_plan",
        cascade="all, delete-orphan",
        order_by="DayPlanBreak.sort_order",
    )

    def holiday_credit(self, category: int) -> int:
        value = {
            1: self.holiday_credit_cat1,
            2: self.holiday_credit_cat2,
            3: self.holiday_credit_cat3,
        }.get(category)
        return value or 0

    def has_shift_detection(self) -> bool:
        return (
            self.shift_detect_arrive_from is not None and self.shift_detect_arrive_to is not None
        ) or (
            self.shift_detect_depart_from is not None and self.shift_detect_depart_to is not None
        )


class DayPlanBreak(Base):
    __tablename__ = "day_plan_breaks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    day_plan_id: Mapped[int] = mapped_column(
        ForeignKey("day_plans.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    break_type: Mapped[BreakType] = mapped_column(Enum(BreakType, name="break_type"), nullable=False)
    start_time: Mapped[int | None] = mapped_column(Integer, nullable=True)
    end_time: Mapped[int | None] = mapped_column(Integer, nullable=True)
    duration: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))
    after_work_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    auto_deduct: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=text("true"))
    is_paid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=text("false"))
    minutes_difference: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=text("false"))
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))

    day_plan: Mapped[DayPlan] = relationship(back_populates="breaks")


class WeekPlan(Base):
    __tablename__ = "week_plans"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    monday_day_plan_id: Mapped[int | None] = mapped_column(ForeignKey("day_plans.id", ondelete="RESTRICT"), nullable=True)
    tuesday_day_plan_id: Mapped[int | None] = mapped_column(ForeignKey("day_plans.id", ondelete="RESTRICT"), nullable=True)
    wednesday_day_plan_id: Mapped[int | None] = mapped_column(ForeignKey("day_plans.id", ondelete="RESTRICT"), nullable=True)
    thursday_day_plan_id: Mapped[int | None] = mapped_column(ForeignKey("day_plans.id", ondelete="RESTRICT"), nullable=True)
    friday_day_plan_id: Mapped[int | None] = mapped_column(ForeignKey("day_plans.id", ondelete="RESTRICT"), nullable=True)
    saturday_day_plan_id: Mapped[int | None] = mapped_column(ForeignKey("day_plans.id", ondelete="RESTRICT"), nullable=True)
    sunday_day_plan_id: Mapped[int | None] = mapped_column(ForeignKey("day_plans.id", ondelete="RESTRICT"), nullable=True)

    WEEKDAY_FIELDS = (
        "monday_day_plan_id",
        "tuesday_day_plan_id",
        "wednesday_day_plan_id",
        "thursday_day_plan_id",
        "friday_day_plan_id",
        "saturday_day_plan_id",
        "sunday_day_plan_id",
    )

    def day_plan_id_for(self, weekday: int) -> int | None:
        return getattr(self, self.WEEKDAY_FIELDS[weekday])


class Tariff(Base):
    __tablename__ = "tariffs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    week_plan_id: Mapped[int | None] = mapped_column(ForeignKey("week_plans.id", ondelete="SET NULL"), nullable=True)
    rhythm_type: Mapped[RhythmType] = mapped_column(
        Enum(RhythmType, name="rhythm_type"),
        nullable=False,
        default=RhythmType.WEEKLY,
    )
    cycle_days: Mapped[int | None] = mapped_column(Integer, nullable=True)
    rhythm_start_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    credit_type: Mapped[CreditType] = mapped_column(
        Enum(CreditType, name="credit_type"),
        nullable=False,
        default=CreditType.NO_EVALUATION,
    )
    flextime_threshold: Mapped[int | None] = mapped_column(Integer, nullable=True)
    max_flextime_per_month: Mapped[int | None] = mapped_column(Integer, nullable=True)
    upper_limit_annual: Mapped[int | None] = mapped_column(Integer, nullable=True)
    lower_limit_annual: Mapped[int | None] = mapped_column(Integer, nullable=True)

    annual_vacation_days: Mapped[Decimal | None] = mapped_column(Numeric(6, 2), nullable=True)
    vacation_basis: Mapped[VacationBasis] = mapped_column(
        Enum(VacationBasis, name="vacation_basis"),
        nullable=False,
        default=VacationBasis.CALENDAR_YEAR,
    )
    standard_weekly_hours: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)

    week_plan: Mapped[WeekPlan | None] = relationship()
    rolling_week_plans: Mapped[list[TariffWeekPlan]] = relationship(
        cascade="all, delete-orphan",
        order_by="TariffWeekPlan.sequence_order",
    )
    day_positions: Mapped[list[TariffDayPlan]] = relationship(
        cascade="all, delete-orphan",
        order_by="TariffDayPlan.day_position",
    )
    special_calculations: Mapped[list[VacationSpecialCalculation]] = relationship(cascade="all, delete-orphan")
    capping_rules: Mapped[list[VacationCappingRule]] = relationship(
        cascade="all, delete-orphan",
        order_by="VacationCappingRule.sort_order",
    )


class TariffWeekPlan(Base):
    __tablename__ = "tariff_week_plans"
    __table_args__ = (
        UniqueConstraint("tariff_id", "sequence_order", name="uq_tariff_week_plans_tariff_sequence"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    tariff_id: Mapped[int] = mapped_column(ForeignKey("tariffs.id", ondelete="CASCADE"), nullable=False, index=True)
    week_plan_id: Mapped[int] = mapped_column(ForeignKey("week_plans.id", ondelete="RESTRICT"), nullable=False)
    sequence_order: Mapped[int] = mapped_column(Integer, nullable=False)


class TariffDayPlan(Base):
    __tablename__ = "tariff_day_plans"
    __table_args__ = (
        UniqueConstraint("tariff_id", "day_position", name="uq_tariff_day_plans_tariff_position"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    tariff_id: Mapped[int] = mapped_column(ForeignKey("tariffs.id", ondelete="CASCADE"), nullable=False, index=True)
    day_position: Mapped[int] = mapped_column(Integer, nullable=False)
    day_plan_id: Mapped[int | None] = mapped_column(ForeignKey("day_plans.id", ondelete="RESTRICT"), nullable=True)


class EmployeeScheduleAssignment(Base):
    __tablename__ = "employee_schedule_assignments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    employee_id: Mapped[int] = mapped_column(ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    tariff_id: Mapped[int] = mapped_column(ForeignKey("tariffs.id", ondelete="RESTRICT"), nullable=False)
    effective_from: Mapped[date] = mapped_column(Date, nullable=False)
    effective_to: Mapped[date | None] = mapped_column(Date, nullable=True)

    employee: Mapped[Employee] = relationship(back_populates="assignments")
    tariff: Mapped[Tariff] = relationship()


class EmployeeDayPlanOverride(Base):
    __tablename__ = "employee_day_plan_overrides"
    __table_args__ = (
        UniqueConstraint("employee_id", "plan_date", name="uq_employee_day_plan_overrides_employee_date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    employee_id: Mapped[int] = mapped_column(ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    plan_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    day_plan_id: Mapped[int | None] = mapped_column(ForeignKey("day_plans.id", ondelete="CASCADE"), nullable=True)
    note: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    created_by: Mapped[str] = mapped_column(String(255), nullable=False, default="admin")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=lambda: datetime.now(timezone.utc),
    )


class Booking(Base):
    __tablename__ = "bookings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    employee_id: Mapped[int] = mapped_column(ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    booking_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    kind: Mapped[BookingKind] = mapped_column(Enum(BookingKind, name="booking_kind"), nullable=False)
    original_time: Mapped[int] = mapped_column(Integer, nullable=False)
    edited_time: Mapped[int] = mapped_column(Integer, nullable=False)
    calculated_time: Mapped[int | None] = mapped_column(Integer, nullable=True)
    pair_id: Mapped[int | None] = mapped_column(ForeignKey("bookings.id", ondelete="SET NULL"), nullable=True)
    source: Mapped[BookingSource] = mapped_column(
        Enum(BookingSource, name="booking_source"),
        nullable=False,
        default=BookingSource.TERMINAL,
    )
    note: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
    )


class Holiday(Base):
    __tablename__ = "holidays"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    holiday_date: Mapped[date] = mapped_column(Date, nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default=text("1"))


class AbsenceType(Base):
    __tablename__ = "absence_types"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    code: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)
    holiday_code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[AbsenceCategory] = mapped_column(Enum(AbsenceCategory, name="absence_category"), nullable=False)
    portion: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default=text("1"))
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))
    deducts_vacation: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=text("false"))

    def credit_factor(self) -> Decimal:
        return {0: Decimal("0"), 1: Decimal("1"), 2: Decimal("0.5")}.get(self.portion, Decimal("0"))


class AbsenceDay(Base):
    __tablename__ = "absence_days"
    __table_args__ = (
        UniqueConstraint("employee_id", "absence_date", name="uq_absence_days_employee_date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    employee_id: Mapped[int] = mapped_column(ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    absence_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    absence_type_id: Mapped[int] = mapped_column(ForeignKey("absence_types.id", ondelete="RESTRICT"), nullable=False)
    duration: Mapped[Decimal] = mapped_column(Numeric(3, 2), nullable=False, default=Decimal("1.00"))
    status: Mapped[AbsenceStatus] = mapped_column(
        Enum(AbsenceStatus, name="absence_status"),
        nullable=False,
        default=AbsenceStatus.PENDING,
    )
    note: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    approved_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    vacation_deducted: Mapped[Decimal | None] = mapped_column(Numeric(6, 2), nullable=True)
    created_by: Mapped[str] = mapped_column(String(255), nullable=False, default="system")

    absence_type: Mapped[AbsenceType] = relationship()

    def is_approved(self) -> bool:
        return self.status == AbsenceStatus.APPROVED


class AccountPosting(Base):
    __tablename__ = "account_postings"
    __table_args__ = (
        UniqueConstraint(
            "employee_id",
            "account_id",
            "value_date",
            "source",
            name="uq_account_postings_employee_account_date_source",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    employee_id: Mapped[int] = mapped_column(ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    account_id: Mapped[int] = mapped_column(ForeignKey("accounts.id", ondelete="RESTRICT"), nullable=False)
    value_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    source: Mapped[PostingSource] = mapped_column(Enum(PostingSource, name="posting_source"), nullable=False)
    day_plan_id: Mapped[int | None] = mapped_column(ForeignKey("day_plans.id", ondelete="SET NULL"), nullable=True)


class DailyValue(Base):
    __tablename__ = "daily_values"
    __table_args__ = (
        UniqueConstraint("employee_id", "value_date", name="uq_daily_values_employee_date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    employee_id: Mapped[int] = mapped_column(ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    value_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    status: Mapped[DailyValueStatus] = mapped_column(
        Enum(DailyValueStatus, name="daily_value_status"),
        nullable=False,
        default=DailyValueStatus.CALCULATED,
    )
    target_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    gross_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    net_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    break_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    overtime_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    undertime_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    capped_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    booking_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    first_come: Mapped[int | None] = mapped_column(Integer, nullable=True)
    last_go: Mapped[int | None] = mapped_column(Integer, nullable=True)
    has_error: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=text("false"))
    error_codes: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    warnings: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    absence_code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    day_plan_id: Mapped[int | None] = mapped_column(ForeignKey("day_plans.id", ondelete="SET NULL"), nullable=True)
    is_locked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=text("false"))
    calculated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("1"))

    __mapper_args__ = {"version_id_col": version}


class MonthlyValue(Base):
    __tablename__ = "monthly_values"
    __table_args__ = (
        UniqueConstraint("employee_id", "year", "month", name="uq_monthly_values_employee_period"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    employee_id: Mapped[int] = mapped_column(ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    total_gross_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_net_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_target_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_overtime_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_undertime_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_break_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    flextime_start: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    flextime_change: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    flextime_credited: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    flextime_forfeited: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    flextime_end: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    vacation_taken: Mapped[Decimal] = mapped_column(Numeric(6, 2), nullable=False, default=Decimal("0"))
    sick_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    other_absence_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    work_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    days_with_errors: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    warnings: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    status: Mapped[MonthStatus] = mapped_column(
        Enum(MonthStatus, name="month_status"),
        nullable=False,
        default=MonthStatus.OPEN,
    )
    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    closed_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    reopened_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    reopened_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    reopen_reason: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    calculated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    @property
    def is_closed(self) -> bool:
        return self.status == MonthStatus.CLOSED


class VacationBalance(Base):
    __tablename__ = "vacation_balances"
    __table_args__ = (
        UniqueConstraint("employee_id", "year", name="uq_vacation_balances_employee_year"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    employee_id: Mapped[int] = mapped_column(ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    base_entitlement: Mapped[Decimal] = mapped_column(Numeric(6, 2), nullable=False, default=Decimal("0"))
    additional_entitlement: Mapped[Decimal] = mapped_column(Numeric(6, 2), nullable=False, default=Decimal("0"))
    carryover: Mapped[Decimal] = mapped_column(Numeric(6, 2), nullable=False, default=Decimal("0"))
    manual_adjustment: Mapped[Decimal] = mapped_column(Numeric(6, 2), nullable=False, default=Decimal("0"))
    used_days: Mapped[Decimal] = mapped_column(Numeric(6, 2), nullable=False, default=Decimal("0"))
    planned_days: Mapped[Decimal] = mapped_column(Numeric(6, 2), nullable=False, default=Decimal("0"))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    @property
    def total_entitlement(self) -> Decimal:
        return (
            Decimal(self.base_entitlement or 0)
            + Decimal(self.additional_entitlement or 0)
            + Decimal(self.carryover or 0)
            + Decimal(self.manual_adjustment or 0)
        )

    @property
    def remaining_days(self) -> Decimal:
        return self.total_entitlement - Decimal(self.used_days or 0)


class VacationSpecialCalculation(Base):
    __tablename__ = "vacation_special_calculations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    tariff_id: Mapped[int] = mapped_column(ForeignKey("tariffs.id", ondelete="CASCADE"), nullable=False, index=True)
    calc_type: Mapped[SpecialCalcType] = mapped_column(Enum(SpecialCalcType, name="special_calc_type"), nullable=False)
    threshold: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    bonus_days: Mapped[Decimal] = mapped_column(Numeric(6, 2), nullable=False)


class VacationCappingRule(Base):
    __tablename__ = "vacation_capping_rules"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    tariff_id: Mapped[int] = mapped_column(ForeignKey("tariffs.id", ondelete="CASCADE"), nullable=False, index=True)
    code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    rule_type: Mapped[CappingRuleType] = mapped_column(Enum(CappingRuleType, name="capping_rule_type"), nullable=False)
    cutoff_month: Mapped[int] = mapped_column(Integer, nullable=False, default=12)
    cutoff_day: Mapped[int] = mapped_column(Integer, nullable=False, default=31)
    cap_value: Mapped[Decimal] = mapped_column(Numeric(6, 2), nullable=False, default=Decimal("0"))
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=text("true"))


class EmployeeCappingException(Base):
    __tablename__ = "employee_capping_exceptions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    employee_id: Mapped[int] = mapped_column(ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    capping_rule_id: Mapped[int] = mapped_column(
        ForeignKey("vacation_capping_rules.id", ondelete="CASCADE"),
        nullable=False,
    )
    exemption_type: Mapped[ExemptionType] = mapped_column(Enum(ExemptionType, name="exemption_type"), nullable=False)
    retain_days: Mapped[Decimal | None] = mapped_column(Numeric(6, 2), nullable=True)
    year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=text("true"))


class OrderBooking(Base):
    __tablename__ = "order_bookings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    employee_id: Mapped[int] = mapped_column(ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    order_code: Mapped[str] = mapped_column(String(50), nullable=False)
    booking_date: Mapped[date] = mapped_column(Date, nullable=False)
    minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    source: Mapped[str] = mapped_column(String(20), nullable=False, default="AUTO")


class CorrectionMessage(Base):
    __tablename__ = "correction_messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    custom_text: Mapped[str] = mapped_column(String(500), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=text("true"))


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    ts_utc: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
        index=True,
    )
    actor_type: Mapped[AuditActorType] = mapped_column(
        Enum(AuditActorType, name="audit_actor_type"),
        nullable=False,
    )
    actor_id: Mapped[str] = mapped_column(String(255), nullable=False)
    action: Mapped[str] = mapped_column(String(255), nullable=False)
    entity_type: Mapped[str | None] = mapped_column(String(255), nullable=True)
    entity_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    success: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=text("true"))
    details: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
