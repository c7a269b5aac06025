"""Initial time and attendance schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18 00:00:00
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _enum(name: str, *values: str) -> postgresql.ENUM:
    return postgresql.ENUM(*values, name=name, create_type=False)


day_plan_type = _enum("day_plan_type", "FIXED", "FLEX")
rounding_type = _enum("rounding_type", "UP", "DOWN", "NEAREST", "ADD", "SUBTRACT")
break_type = _enum("break_type", "FIXED", "VARIABLE", "MINIMUM")
no_booking_policy = _enum(
    "no_booking_policy",
    "NO_EVALUATION",
    "DEDUCT_TARGET",
    "VOCATIONAL_SCHOOL",
    "ADOPT_TARGET",
    "TARGET_WITH_ORDER",
)
day_change_policy = _enum("day_change_policy", "NONE", "AT_ARRIVAL", "AT_DEPARTURE", "AUTO_COMPLETE")
rhythm_type = _enum("rhythm_type", "WEEKLY", "ROLLING_WEEKLY", "X_DAYS")
credit_type = _enum("credit_type", "NO_EVALUATION", "COMPLETE", "AFTER_THRESHOLD", "NO_CARRYOVER")
vacation_basis = _enum("vacation_basis", "CALENDAR_YEAR", "ENTRY_DATE")
special_calc_type = _enum("special_calc_type", "AGE", "TENURE", "DISABILITY")
capping_rule_type = _enum("capping_rule_type", "YEAR_END", "MID_YEAR")
exemption_type = _enum("exemption_type", "FULL", "PARTIAL")
booking_kind = _enum("booking_kind", "IN", "OUT", "BREAK_START", "BREAK_END", "ERRAND_START", "ERRAND_END")
booking_source = _enum("booking_source", "TERMINAL", "WEB", "API", "CORRECTION")
absence_category = _enum("absence_category", "VACATION", "ILLNESS", "SPECIAL", "VOCATIONAL_SCHOOL")
absence_status = _enum("absence_status", "PENDING", "APPROVED", "REJECTED", "CANCELLED")
account_unit = _enum("account_unit", "MINUTES", "HOURS", "DAYS")
posting_source = _enum("posting_source", "NET_TIME", "CAPPED_TIME")
daily_value_status = _enum("daily_value_status", "CALCULATED", "ERROR", "APPROVED")
month_status = _enum("month_status", "OPEN", "CALCULATED", "CLOSED")
audit_actor_type = _enum("audit_actor_type", "ADMIN", "SYSTEM")

ALL_ENUMS = (
    day_plan_type,
    rounding_type,
    break_type,
    no_booking_policy,
    day_change_policy,
    rhythm_type,
    credit_type,
    vacation_basis,
    special_calc_type,
    capping_rule_type,
    exemption_type,
    booking_kind,
    booking_source,
    absence_category,
    absence_status,
    account_unit,
    posting_source,
    daily_value_status,
    month_status,
    audit_actor_type,
)


def _timestamp(name: str) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP"))


def _days(name: str) -> sa.Column:
    return sa.Column(name, sa.Numeric(6, 2), nullable=False, server_default=sa.text("0"))


def upgrade() -> None:
    bind = op.get_bind()
    for enum_type in ALL_ENUMS:
        enum_type.create(bind, checkfirst=True)

    op.create_table(
        "accounts",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("code", sa.String(length=50), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("unit", account_unit, nullable=False, server_default="MINUTES"),
        sa.Column("is_carryover", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.UniqueConstraint("code", name="uq_accounts_code"),
    )

    op.create_table(
        "day_plans",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("code", sa.String(length=50), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("plan_type", day_plan_type, nullable=False, server_default="FIXED"),
        sa.Column("come_from", sa.Integer(), nullable=True),
        sa.Column("come_to", sa.Integer(), nullable=True),
        sa.Column("go_from", sa.Integer(), nullable=True),
        sa.Column("go_to", sa.Integer(), nullable=True),
        sa.Column("core_start", sa.Integer(), nullable=True),
        sa.Column("core_end", sa.Integer(), nullable=True),
        sa.Column("regular_minutes", sa.Integer(), nullable=False, server_default=sa.text("480")),
        sa.Column("regular_minutes_absence", sa.Integer(), nullable=True),
        sa.Column("from_employee_master", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("tolerance_come_plus", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("tolerance_come_minus", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("tolerance_go_plus", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("tolerance_go_minus", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("variable_work_time", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("rounding_come_type", rounding_type, nullable=True),
        sa.Column("rounding_come_interval", sa.Integer(), nullable=True),
        sa.Column("rounding_come_add_value", sa.Integer(), nullable=True),
        sa.Column("rounding_go_type", rounding_type, nullable=True),
        sa.Column("rounding_go_interval", sa.Integer(), nullable=True),
        sa.Column("rounding_go_add_value", sa.Integer(), nullable=True),
        sa.Column("round_all_bookings", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("min_work_minutes", sa.Integer(), nullable=True),
        sa.Column("max_net_work_minutes", sa.Integer(), nullable=True),
        sa.Column("holiday_credit_cat1", sa.Integer(), nullable=True),
        sa.Column("holiday_credit_cat2", sa.Integer(), nullable=True),
        sa.Column("holiday_credit_cat3", sa.Integer(), nullable=True),
        sa.Column("vacation_deduction", sa.Numeric(4, 2), nullable=False, server_default=sa.text("1.00")),
        sa.Column("no_booking_policy", no_booking_policy, nullable=False, server_default="NO_EVALUATION"),
        sa.Column("day_change_policy", day_change_policy, nullable=False, server_default="NONE"),
        sa.Column("net_account_id", sa.Integer(), nullable=True),
        sa.Column("cap_account_id", sa.Integer(), nullable=True),
        sa.Column("shift_detect_arrive_from", sa.Integer(), nullable=True),
        sa.Column("shift_detect_arrive_to", sa.Integer(), nullable=True),
        sa.Column("shift_detect_depart_from", sa.Integer(), nullable=True),
        sa.Column("shift_detect_depart_to", sa.Integer(), nullable=True),
        sa.Column(
            "alternative_plan_ids",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.ForeignKeyConstraint(["net_account_id"], ["accounts.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["cap_account_id"], ["accounts.id"], ondelete="SET NULL"),
        sa.UniqueConstraint("code", name="uq_day_plans_code"),
    )

    op.create_table(
        "day_plan_breaks",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("day_plan_id", sa.Integer(), nullable=False),
        sa.Column("break_type", break_type, nullable=False),
        sa.Column("start_time", sa.Integer(), nullable=True),
        sa.Column("end_time", sa.Integer(), nullable=True),
        sa.Column("duration", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("after_work_minutes", sa.Integer(), nullable=True),
        sa.Column("auto_deduct", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("is_paid", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("minutes_difference", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.ForeignKeyConstraint(["day_plan_id"], ["day_plans.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_day_plan_breaks_day_plan_id", "day_plan_breaks", ["day_plan_id"], unique=False)

    weekday_columns = [
        sa.Column(f"{weekday}_day_plan_id", sa.Integer(), nullable=True)
        for weekday in ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
    ]
    op.create_table(
        "week_plans",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("code", sa.String(length=50), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        *weekday_columns,
        *[
            sa.ForeignKeyConstraint([column.name], ["day_plans.id"], ondelete="RESTRICT")
            for column in weekday_columns
        ],
        sa.UniqueConstraint("code", name="uq_week_plans_code"),
    )

    op.create_table(
        "tariffs",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("code", sa.String(length=50), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("week_plan_id", sa.Integer(), nullable=True),
        sa.Column("rhythm_type", rhythm_type, nullable=False, server_default="WEEKLY"),
        sa.Column("cycle_days", sa.Integer(), nullable=True),
        sa.Column("rhythm_start_date", sa.Date(), nullable=True),
        sa.Column("credit_type", credit_type, nullable=False, server_default="NO_EVALUATION"),
        sa.Column("flextime_threshold", sa.Integer(), nullable=True),
        sa.Column("max_flextime_per_month", sa.Integer(), nullable=True),
        sa.Column("upper_limit_annual", sa.Integer(), nullable=True),
        sa.Column("lower_limit_annual", sa.Integer(), nullable=True),
        sa.Column("annual_vacation_days", sa.Numeric(6, 2), nullable=True),
        sa.Column("vacation_basis", vacation_basis, nullable=False, server_default="CALENDAR_YEAR"),
        sa.Column("standard_weekly_hours", sa.Numeric(5, 2), nullable=True),
        sa.ForeignKeyConstraint(["week_plan_id"], ["week_plans.id"], ondelete="SET NULL"),
        sa.UniqueConstraint("code", name="uq_tariffs_code"),
    )

    op.create_table(
        "tariff_week_plans",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("tariff_id", sa.Integer(), nullable=False),
        sa.Column("week_plan_id", sa.Integer(), nullable=False),
        sa.Column("sequence_order", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["tariff_id"], ["tariffs.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["week_plan_id"], ["week_plans.id"], ondelete="RESTRICT"),
        sa.UniqueConstraint("tariff_id", "sequence_order", name="uq_tariff_week_plans_tariff_sequence"),
    )
    op.create_index("ix_tariff_week_plans_tariff_id", "tariff_week_plans", ["tariff_id"], unique=False)

    op.create_table(
        "tariff_day_plans",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("tariff_id", sa.Integer(), nullable=False),
        sa.Column("day_position", sa.Integer(), nullable=False),
        sa.Column("day_plan_id", sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(["tariff_id"], ["tariffs.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["day_plan_id"], ["day_plans.id"], ondelete="RESTRICT"),
        sa.UniqueConstraint("tariff_id", "day_position", name="uq_tariff_day_plans_tariff_position"),
    )
    op.create_index("ix_tariff_day_plans_tariff_id", "tariff_day_plans", ["tariff_id"], unique=False)

    op.create_table(
        "employees",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=False),
        sa.Column("personnel_number", sa.String(length=50), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("entry_date", sa.Date(), nullable=False),
        sa.Column("exit_date", sa.Date(), nullable=True),
        sa.Column("birth_date", sa.Date(), nullable=True),
        sa.Column("weekly_hours", sa.Numeric(5, 2), nullable=True),
        sa.Column("daily_target_minutes", sa.Integer(), nullable=True),
        sa.Column("has_disability", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("default_order_code", sa.String(length=50), nullable=True),
        sa.Column("tariff_id", sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(["tariff_id"], ["tariffs.id"], ondelete="SET NULL"),
        sa.UniqueConstraint("personnel_number", name="uq_employees_personnel_number"),
    )

    op.create_table(
        "employee_schedule_assignments",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("tariff_id", sa.Integer(), nullable=False),
        sa.Column("effective_from", sa.Date(), nullable=False),
        sa.Column("effective_to", sa.Date(), nullable=True),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["tariff_id"], ["tariffs.id"], ondelete="RESTRICT"),
    )
    op.create_index(
        "ix_employee_schedule_assignments_employee_id",
        "employee_schedule_assignments",
        ["employee_id"],
        unique=False,
    )

    op.create_table(
        "employee_day_plan_overrides",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("plan_date", sa.Date(), nullable=False),
        sa.Column("day_plan_id", sa.Integer(), nullable=True),
        sa.Column("note", sa.String(length=1000), nullable=True),
        sa.Column("created_by", sa.String(length=255), nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["day_plan_id"], ["day_plans.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("employee_id", "plan_date", name="uq_employee_day_plan_overrides_employee_date"),
    )
    op.create_index(
        "ix_employee_day_plan_overrides_employee_id",
        "employee_day_plan_overrides",
        ["employee_id"],
        unique=False,
    )
    op.create_index(
        "ix_employee_day_plan_overrides_plan_date",
        "employee_day_plan_overrides",
        ["plan_date"],
        unique=False,
    )

    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("booking_date", sa.Date(), nullable=False),
        sa.Column("kind", booking_kind, nullable=False),
        sa.Column("original_time", sa.Integer(), nullable=False),
        sa.Column("edited_time", sa.Integer(), nullable=False),
        sa.Column("calculated_time", sa.Integer(), nullable=True),
        sa.Column("pair_id", sa.Integer(), nullable=True),
        sa.Column("source", booking_source, nullable=False, server_default="TERMINAL"),
        sa.Column("note", sa.String(length=1000), nullable=True),
        _timestamp("created_at"),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["pair_id"], ["bookings.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_bookings_employee_id", "bookings", ["employee_id"], unique=False)
    op.create_index("ix_bookings_booking_date", "bookings", ["booking_date"], unique=False)

    op.create_table(
        "holidays",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("holiday_date", sa.Date(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("category", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.UniqueConstraint("holiday_date", name="uq_holidays_holiday_date"),
    )

    op.create_table(
        "absence_types",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("code", sa.String(length=20), nullable=False),
        sa.Column("holiday_code", sa.String(length=20), nullable=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("category", absence_category, nullable=False),
        sa.Column("portion", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("priority", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("deducts_vacation", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.UniqueConstraint("code", name="uq_absence_types_code"),
    )

    op.create_table(
        "absence_days",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("absence_date", sa.Date(), nullable=False),
        sa.Column("absence_type_id", sa.Integer(), nullable=False),
        sa.Column("duration", sa.Numeric(3, 2), nullable=False, server_default=sa.text("1.00")),
        sa.Column("status", absence_status, nullable=False, server_default="PENDING"),
        sa.Column("note", sa.String(length=1000), nullable=True),
        sa.Column("approved_by", sa.String(length=255), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("vacation_deducted", sa.Numeric(6, 2), nullable=True),
        sa.Column("created_by", sa.String(length=255), nullable=False, server_default="system"),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["absence_type_id"], ["absence_types.id"], ondelete="RESTRICT"),
        sa.UniqueConstraint("employee_id", "absence_date", name="uq_absence_days_employee_date"),
    )
    op.create_index("ix_absence_days_employee_id", "absence_days", ["employee_id"], unique=False)
    op.create_index("ix_absence_days_absence_date", "absence_days", ["absence_date"], unique=False)

    op.create_table(
        "account_postings",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("account_id", sa.Integer(), nullable=False),
        sa.Column("value_date", sa.Date(), nullable=False),
        sa.Column("minutes", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("source", posting_source, nullable=False),
        sa.Column("day_plan_id", sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["account_id"], ["accounts.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["day_plan_id"], ["day_plans.id"], ondelete="SET NULL"),
        sa.UniqueConstraint(
            "employee_id",
            "account_id",
            "value_date",
            "source",
            name="uq_account_postings_employee_account_date_source",
        ),
    )
    op.create_index("ix_account_postings_employee_id", "account_postings", ["employee_id"], unique=False)
    op.create_index("ix_account_postings_value_date", "account_postings", ["value_date"], unique=False)

    op.create_table(
        "daily_values",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("value_date", sa.Date(), nullable=False),
        sa.Column("status", daily_value_status, nullable=False, server_default="CALCULATED"),
        sa.Column("target_minutes", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("gross_minutes", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("net_minutes", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("break_minutes", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("overtime_minutes", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("undertime_minutes", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("capped_minutes", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("booking_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("first_come", sa.Integer(), nullable=True),
        sa.Column("last_go", sa.Integer(), nullable=True),
        sa.Column("has_error", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column(
            "error_codes",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column(
            "warnings",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column("absence_code", sa.String(length=20), nullable=True),
        sa.Column("day_plan_id", sa.Integer(), nullable=True),
        sa.Column("is_locked", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("calculated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["day_plan_id"], ["day_plans.id"], ondelete="SET NULL"),
        sa.UniqueConstraint("employee_id", "value_date", name="uq_daily_values_employee_date"),
    )
    op.create_index("ix_daily_values_employee_id", "daily_values", ["employee_id"], unique=False)
    op.create_index("ix_daily_values_value_date", "daily_values", ["value_date"], unique=False)

    op.create_table(
        "monthly_values",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("month", sa.Integer(), nullable=False),
        *[
            sa.Column(name, sa.Integer(), nullable=False, server_default=sa.text("0"))
            for name in (
                "total_gross_minutes",
                "total_net_minutes",
                "total_target_minutes",
                "total_overtime_minutes",
                "total_undertime_minutes",
                "total_break_minutes",
                "flextime_start",
                "flextime_change",
                "flextime_credited",
                "flextime_forfeited",
                "flextime_end",
            )
        ],
        _days("vacation_taken"),
        sa.Column("sick_days", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("other_absence_days", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("work_days", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("days_with_errors", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column(
            "warnings",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column("status", month_status, nullable=False, server_default="OPEN"),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("closed_by", sa.String(length=255), nullable=True),
        sa.Column("reopened_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reopened_by", sa.String(length=255), nullable=True),
        sa.Column("reopen_reason", sa.String(length=1000), nullable=True),
        sa.Column("calculated_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("employee_id", "year", "month", name="uq_monthly_values_employee_period"),
    )
    op.create_index("ix_monthly_values_employee_id", "monthly_values", ["employee_id"], unique=False)

    op.create_table(
        "vacation_balances",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        _days("base_entitlement"),
        _days("additional_entitlement"),
        _days("carryover"),
        _days("manual_adjustment"),
        _days("used_days"),
        _days("planned_days"),
        _timestamp("updated_at"),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("employee_id", "year", name="uq_vacation_balances_employee_year"),
    )
    op.create_index("ix_vacation_balances_employee_id", "vacation_balances", ["employee_id"], unique=False)

    op.create_table(
        "vacation_special_calculations",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("tariff_id", sa.Integer(), nullable=False),
        sa.Column("calc_type", special_calc_type, nullable=False),
        sa.Column("threshold", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("bonus_days", sa.Numeric(6, 2), nullable=False),
        sa.ForeignKeyConstraint(["tariff_id"], ["tariffs.id"], ondelete="CASCADE"),
    )
    op.create_index(
        "ix_vacation_special_calculations_tariff_id",
        "vacation_special_calculations",
        ["tariff_id"],
        unique=False,
    )

    op.create_table(
        "vacation_capping_rules",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("tariff_id", sa.Integer(), nullable=False),
        sa.Column("code", sa.String(length=50), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("rule_type", capping_rule_type, nullable=False),
        sa.Column("cutoff_month", sa.Integer(), nullable=False, server_default=sa.text("12")),
        sa.Column("cutoff_day", sa.Integer(), nullable=False, server_default=sa.text("31")),
        _days("cap_value"),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.ForeignKeyConstraint(["tariff_id"], ["tariffs.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("code", name="uq_vacation_capping_rules_code"),
    )
    op.create_index("ix_vacation_capping_rules_tariff_id", "vacation_capping_rules", ["tariff_id"], unique=False)

    op.create_table(
        "employee_capping_exceptions",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("capping_rule_id", sa.Integer(), nullable=False),
        sa.Column("exemption_type", exemption_type, nullable=False),
        sa.Column("retain_days", sa.Numeric(6, 2), nullable=True),
        sa.Column("year", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["capping_rule_id"], ["vacation_capping_rules.id"], ondelete="CASCADE"),
    )
    op.create_index(
        "ix_employee_capping_exceptions_employee_id",
        "employee_capping_exceptions",
        ["employee_id"],
        unique=False,
    )

    op.create_table(
        "order_bookings",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("order_code", sa.String(length=50), nullable=False),
        sa.Column("booking_date", sa.Date(), nullable=False),
        sa.Column("minutes", sa.Integer(), nullable=False),
        sa.Column("source", sa.String(length=20), nullable=False, server_default="AUTO"),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_order_bookings_employee_id", "order_bookings", ["employee_id"], unique=False)

    op.create_table(
        "correction_messages",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("code", sa.String(length=50), nullable=False),
        sa.Column("custom_text", sa.String(length=500), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.UniqueConstraint("code", name="uq_correction_messages_code"),
    )

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        _timestamp("ts_utc"),
        sa.Column("actor_type", audit_actor_type, nullable=False),
        sa.Column("actor_id", sa.String(length=255), nullable=False),
        sa.Column("action", sa.String(length=255), nullable=False),
        sa.Column("entity_type", sa.String(length=255), nullable=True),
        sa.Column("entity_id", sa.String(length=255), nullable=True),
        sa.Column("success", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column(
            "details",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
    )
    op.create_index("ix_audit_logs_ts_utc", "audit_logs", ["ts_utc"], unique=False)


def downgrade() -> None:
    for table_name in (
        "audit_logs",
        "correction_messages",
        "order_bookings",
        "employee_capping_exceptions",
        "vacation_capping_rules",
        "vacation_special_calculations",
        "vacation_balances",
        "monthly_values",
        "daily_values",
        "account_postings",
        "absence_days",
        "absence_types",
        "holidays",
        "bookings",
        "employee_day_plan_overrides",
        "employee_schedule_assignments",
        "employees",
        "tariff_day_plans",
        "tariff_week_plans",
        "tariffs",
        "week_plans",
        "day_plan_breaks",
        "day_plans",
        "accounts",
    ):
        op.drop_table(table_name)

    bind = op.get_bind()
    for enum_type in reversed(ALL_ENUMS):
        enum_type.drop(bind, checkfirst=True)
