from __future__ import annotations

import unittest
from types import SimpleNamespace
from unittest.mock import patch

from timebank.services.schema_guard import REQUIRED_TABLE_COLUMNS, verify_runtime_schema


class _FakeResult:
    def __init__(self, value):
        self._value = value

    def scalar(self):  # type: ignore[no-untyped-def]
        return self._value


class _FakeConnection:
    def __init__(self, version_value):
        self._version_value = version_value

    def __enter__(self):  # type: ignore[no-untyped-def]
        return self

    def __exit__(self, exc_type, exc, tb):  # type: ignore[no-untyped-def]
        return False

    def execute(self, _statement):  # type: ignore[no-untyped-def]
        return _FakeResult(self._version_value)


class _FakeEngine:
    def __init__(self, version_value, *, dialect: str = "postgresql"):
        self._version_value = version_value
        self.dialect = SimpleNamespace(name=dialect)

    def connect(self):  # type: ignore[no-untyped-def]
        return _FakeConnection(self._version_value)


class _FakeInspector:
    def __init__(self, *, columns_by_table: dict[str, set[str]], enums: list[dict[str, object]]):
        self._columns_by_table = columns_by_table
        self._enums = enums

    def get_table_names(self):  # type: ignore[no-untyped-def]
        return list(self._columns_by_table)

    def get_columns(self, table_name: str):  # type: ignore[no-untyped-def]
        columns = self._columns_by_table[table_name]
        return [{"name": item} for item in columns]

    def get_enums(self):  # type: ignore[no-untyped-def]
        return self._enums


def _complete_tables() -> dict[str, set[str]]:
    tables = {name: set(columns) | {"created_at"} for name, columns in REQUIRED_TABLE_COLUMNS.items()}
    tables["alembic_version"] = {"version_num"}
    return tables


_COMPLETE_ENUMS: list[dict[str, object]] = [
    {
        "name": "no_booking_policy",
        "labels": ["NO_EVALUATION", "DEDUCT_TARGET", "ADOPT_TARGET", "TARGET_WITH_ORDER", "VOCATIONAL_SCHOOL"],
    },
    {"name": "month_status", "labels": ["OPEN", "CALCULATED", "CLOSED"]},
    {"name": "capping_rule_type", "labels": ["YEAR_END", "MID_YEAR"]},
]


class SchemaGuardTests(unittest.TestCase):
    def test_verify_runtime_schema_ok_when_required_columns_exist(self) -> None:
        fake_inspector = _FakeInspector(columns_by_table=_complete_tables(), enums=_COMPLETE_ENUMS)
        fake_engine = _FakeEngine("0001_initial")

        with patch("timebank.services.schema_guard.inspect", return_value=fake_inspector):
            result = verify_runtime_schema(fake_engine)  # type: ignore[arg-type]

        self.assertTrue(result.ok)
        self.assertEqual(result.issues, [])
        self.assertEqual(result.warnings, [])
        self.assertEqual(result.to_dict()["issue_count"], 0)

    def test_verify_runtime_schema_reports_missing_columns(self) -> None:
        tables = _complete_tables()
        tables["daily_values"] = {"id", "employee_id", "value_date"}
        del tables["vacation_balances"]
        enums = [
            {"name": "no_booking_policy", "labels": ["NO_EVALUATION", "DEDUCT_TARGET"]},
            {"name": "month_status", "labels": ["OPEN", "CALCULATED", "CLOSED"]},
        ]
        fake_inspector = _FakeInspector(columns_by_table=tables, enums=enums)
        fake_engine = _FakeEngine("")

        with patch("timebank.services.schema_guard.inspect", return_value=fake_inspector):
            result = verify_runtime_schema(fake_engine)  # type: ignore[arg-type]

        self.assertFalse(result.ok)
        self.assertIn("MISSING_COLUMNS:daily_values:error_codes,is_locked,version,warnings", result.issues)
        self.assertIn("MISSING_TABLE:vacation_balances", result.issues)
        self.assertIn(
            "MISSING_ENUM_VALUES:no_booking_policy:ADOPT_TARGET,TARGET_WITH_ORDER,VOCATIONAL_SCHOOL",
            result.issues,
        )
        self.assertIn("ENUM_NOT_FOUND:capping_rule_type", result.warnings)
        self.assertIn("ALEMBIC_VERSION_EMPTY", result.issues)

    def test_missing_version_table_and_non_postgres_dialect(self) -> None:
        tables = _complete_tables()
        del tables["alembic_version"]
        fake_inspector = _FakeInspector(columns_by_table=tables, enums=[])
        fake_engine = _FakeEngine(None, dialect="sqlite")

        with patch("timebank.services.schema_guard.inspect", return_value=fake_inspector):
            result = verify_runtime_schema(fake_engine)  # type: ignore[arg-type]
            unchecked = verify_runtime_schema(fake_engine, check_alembic_version=False)  # type: ignore[arg-type]

        self.assertEqual(result.issues, ["ALEMBIC_VERSION_MISSING"])
        self.assertEqual(result.warnings, ["ENUM_CHECK_SKIPPED:sqlite"])
        self.assertTrue(unchecked.ok)


if __name__ == "__main__":
    unittest.main()
