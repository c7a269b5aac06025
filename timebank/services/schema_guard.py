from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine


@dataclass(frozen=True, slots=True)
class SchemaGuardResult:
    ok: bool
    checked_at_utc: datetime
    issues: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "checked_at_utc": self.checked_at_utc.isoformat(),
            "issues": list(self.issues),
            "warnings": list(self.warnings),
            "issue_count": len(self.issues),
            "warning_count": len(self.warnings),
        }


REQUIRED_TABLE_COLUMNS: dict[str, set[str]] = {
    "employees": {"id", "entry_date", "tariff_id", "daily_target_minutes"},
    "day_plans": {"id", "code", "no_booking_policy", "day_change_policy", "alternative_plan_ids"},
    "tariffs": {"id", "rhythm_type", "credit_type", "vacation_basis"},
    "bookings": {"id", "employee_id", "booking_date", "kind", "edited_time", "calculated_time"},
    "daily_values": {"id", "employee_id", "value_date", "error_codes", "warnings", "is_locked", "version"},
    "monthly_values": {"id", "employee_id", "year", "month", "status", "flextime_end"},
    "vacation_balances": {"id", "employee_id", "year", "carryover", "used_days"},
    "absence_days": {"id", "employee_id", "absence_date", "status", "vacation_deducted"},
}

REQUIRED_ENUM_VALUES: dict[str, set[str]] = {
    "no_booking_policy": {
        "NO_EVALUATION",
        "DEDUCT_TARGET",
        "ADOPT_TARGET",
        "TARGET_WITH_ORDER",
        "VOCATIONAL_SCHOOL",
    },
    "month_status": {"OPEN", "CALCULATED", "CLOSED"},
    "capping_rule_type": {"YEAR_END", "MID_YEAR"},
}


def verify_runtime_schema(engine: Engine, *, check_alembic_version: bool = True) -> SchemaGuardResult:
    issues: list[str] = []
    warnings: list[str] = []
    checked_at_utc = datetime.now(timezone.utc)
    inspector = inspect(engine)
    table_names = set(inspector.get_table_names())

    for table_name, required_columns in REQUIRED_TABLE_COLUMNS.items():
        if table_name not in table_names:
            issues.append(f"MISSING_TABLE:{table_name}")
            continue
        column_names = {str(item.get("name")) for item in inspector.get_columns(table_name)}
        missing_columns = sorted(item for item in required_columns if item not in column_names)
        if missing_columns:
            issues.append(f"MISSING_COLUMNS:{table_name}:{','.join(missing_columns)}")

    if engine.dialect.name == "postgresql":
        enum_values_by_name: dict[str, set[str]] = {}
        for enum_item in inspector.get_enums() or []:
            name = str(enum_item.get("name") or "").strip()
            labels = enum_item.get("labels")
            if name and isinstance(labels, list):
                enum_values_by_name[name] = {str(label) for label in labels}

        for enum_name, required_values in REQUIRED_ENUM_VALUES.items():
            if enum_name not in enum_values_by_name:
                warnings.append(f"ENUM_NOT_FOUND:{enum_name}")
                continue
            missing_values = sorted(item for item in required_values if item not in enum_values_by_name[enum_name])
            if missing_values:
                issues.append(f"MISSING_ENUM_VALUES:{enum_name}:{','.join(missing_values)}")
    else:
        warnings.append(f"ENUM_CHECK_SKIPPED:{engine.dialect.name}")

    if check_alembic_version:
        if "alembic_version" not in table_names:
            issues.append("ALEMBIC_VERSION_MISSING")
        else:
            with engine.connect() as connection:
                row = connection.execute(text("SELECT version_num FROM alembic_version LIMIT 1")).scalar()
            if row is None or not str(row).strip():
                issues.append("ALEMBIC_VERSION_EMPTY")

    return SchemaGuardResult(
        ok=len(issues) == 0,
        checked_at_utc=checked_at_utc,
        issues=issues,
        warnings=warnings,
    )
