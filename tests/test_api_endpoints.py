from __future__ import annotations

import unittest
from datetime import date
from decimal import Decimal

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from timebank.db import Base, get_db, get_session_factory
from timebank.main import app
from timebank.models import (
    Booking,
    BookingKind,
    BookingSource,
    DayPlan,
    Employee,
    NoBookingPolicy,
    Tariff,
    WeekPlan,
)


def _seed(db: Session) -> Employee:
    plan = DayPlan(code="STD", name="Standard", regular_minutes=480, no_booking_policy=NoBookingPolicy.ADOPT_TARGET)
    db.add(plan)
    db.flush()
    week = WeekPlan(code="W", name="Office week")
    for field_name in WeekPlan.WEEKDAY_FIELDS[:5]:
        setattr(week, field_name, plan.id)
    db.add(week)
    db.flush()
    tariff = Tariff(code="T", name="Office", week_plan_id=week.id, annual_vacation_days=Decimal("30"))
    db.add(tariff)
    db.flush()
    employee = Employee(full_name="Ada Example", entry_date=date(2020, 1, 1), tariff_id=tariff.id)
    db.add(employee)
    db.flush()
    for kind, minutes in ((BookingKind.IN, 480), (BookingKind.OUT, 1020)):
        db.add(
            Booking(
                employee_id=employee.id,
                booking_date=date(2026, 3, 2),
                kind=kind,
                original_time=minutes,
                edited_time=minutes,
                source=BookingSource.TERMINAL,
            )
        )
    db.commit()
    return employee


class ApiEndpointTests(unittest.TestCase):
    def setUp(self) -> None:
        engine = create_engine("sqlite://", poolclass=StaticPool, connect_args={"check_same_thread": False})
        Base.metadata.create_all(engine)
        self.factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
        self.db = self.factory()

        def _override_get_db():  # type: ignore[no-untyped-def]
            yield self.db

        app.dependency_overrides[get_db] = _override_get_db
        app.dependency_overrides[get_session_factory] = lambda: self.factory
        self.client = TestClient(app)

    def tearDown(self) -> None:
        app.dependency_overrides.clear()
        self.db.close()

    def test_health_reports_schema_guard_state(self) -> None:
        response = self.client.get("/health")

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["status"], "ok")
        self.assertIn("SCHEMA_GUARD_NOT_RUN", body["schema_guard"]["issues"])

    def test_request_id_is_echoed(self) -> None:
        response = self.client.get("/health", headers={"X-Request-Id": "req-42"})
        self.assertEqual(response.headers["X-Request-Id"], "req-42")

    def test_day_plan_create_and_conflict(self) -> None:
        payload = {"code": "EARLY", "name": "Early shift", "come_from": 360, "come_to": 420}

        created = self.client.post("/api/admin/day-plans", json=payload)
        duplicate = self.client.post("/api/admin/day-plans", json=payload)
        listing = self.client.get("/api/admin/day-plans")

        self.assertEqual(created.status_code, 201)
        self.assertEqual(created.json()["code"], "EARLY")
        self.assertEqual(duplicate.status_code, 409)
        self.assertEqual(duplicate.json()["error"]["code"], "CONFLICT")
        self.assertEqual([item["code"] for item in listing.json()], ["EARLY"])

    def test_invalid_day_plan_and_incomplete_week(self) -> None:
        invalid = self.client.post("/api/admin/day-plans", json={"code": "U", "name": "Clash"})
        week = self.client.post("/api/admin/week-plans", json={"code": "W", "name": "Week"})

        self.assertEqual(invalid.status_code, 422)
        self.assertEqual(invalid.json()["error"]["code"], "INVALID_DAY_PLAN")
        self.assertEqual(week.status_code, 422)
        self.assertEqual(week.json()["error"]["code"], "INCOMPLETE_SCHEDULE")

    def test_calculate_and_list_days(self) -> None:
        employee = _seed(self.db)

        plan = self.client.get(f"/api/employees/{employee.id}/plans/2026-03-02")
        calculated = self.client.post(f"/api/employees/{employee.id}/days/2026-03-02/calculate")
        listed = self.client.get(
            f"/api/employees/{employee.id}/daily-values",
            params={"date_from": "2026-03-01", "date_to": "2026-03-31"},
        )

        self.assertEqual(plan.json()["source"], "weekly")
        self.assertEqual(plan.json()["day_plan_code"], "STD")
        self.assertEqual(calculated.status_code, 200)
        self.assertEqual(calculated.json()["net_minutes"], 540)
        self.assertEqual(calculated.json()["overtime_minutes"], 60)
        self.assertEqual(len(listed.json()), 1)

    def test_reversed_range_is_a_validation_error(self) -> None:
        employee = _seed(self.db)

        response = self.client.get(
            f"/api/employees/{employee.id}/corrections",
            params={"date_from": "2026-03-31", "date_to": "2026-03-01"},
        )

        self.assertEqual(response.status_code, 422)
        self.assertEqual(response.json()["error"]["code"], "VALIDATION_ERROR")

    def test_unknown_employee_is_not_found(self) -> None:
        response = self.client.post("/api/employees/999/days/2026-03-02/calculate")

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["error"]["code"], "NOT_FOUND")

    def test_month_close_and_reopen(self) -> None:
        employee = _seed(self.db)
        self.client.post(f"/api/employees/{employee.id}/days/2026-03-02/calculate")

        closed = self.client.post(
            f"/api/employees/{employee.id}/months/2026/3/close",
            json={"closed_by": "lead"},
        )
        blocked = self.client.post(f"/api/employees/{employee.id}/days/2026-03-02/calculate")
        no_reason = self.client.post(
            f"/api/employees/{employee.id}/months/2026/3/reopen",
            json={"reopened_by": "hr", "reason": ""},
        )
        reopened = self.client.post(
            f"/api/employees/{employee.id}/months/2026/3/reopen",
            json={"reopened_by": "hr", "reason": "late booking"},
        )

        self.assertEqual(closed.status_code, 200)
        self.assertEqual(closed.json()["status"], "CLOSED")
        self.assertEqual(blocked.status_code, 409)
        self.assertEqual(blocked.json()["error"]["code"], "MONTH_CLOSED")
        self.assertEqual(no_reason.status_code, 422)
        self.assertEqual(no_reason.json()["error"]["code"], "REOPEN_REASON_REQUIRED")
        self.assertEqual(reopened.json()["status"], "CALCULATED")

    def test_missing_monthly_value(self) -> None:
        employee = _seed(self.db)

        response = self.client.get(f"/api/employees/{employee.id}/months/2026/4")

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["error"]["code"], "MONTHLY_VALUE_NOT_FOUND")

    def test_vacation_entitlement_and_initialize(self) -> None:
        employee = _seed(self.db)

        preview = self.client.get(f"/api/employees/{employee.id}/vacation/2026/entitlement")
        initialized = self.client.post(f"/api/employees/{employee.id}/vacation/2026/initialize", json={})
        balance = self.client.get(f"/api/employees/{employee.id}/vacation/2026")

        self.assertEqual(preview.status_code, 200)
        self.assertEqual(Decimal(preview.json()["total_entitlement"]), Decimal("30"))
        self.assertEqual(initialized.status_code, 200)
        self.assertEqual(Decimal(balance.json()["total_entitlement"]), Decimal("30"))

    def test_batch_recalculation(self) -> None:
        employee = _seed(self.db)

        response = self.client.post(
            "/api/batch/recalculate",
            json={
                "employee_ids": [employee.id],
                "date_from": "2026-03-02",
                "date_to": "2026-03-03",
                "evaluate_months": True,
            },
        )
        reversed_range = self.client.post(
            "/api/batch/recalculate",
            json={"employee_ids": [employee.id], "date_from": "2026-03-03", "date_to": "2026-03-02"},
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["processed"], 2)
        self.assertEqual(response.json()["months_evaluated"], 1)
        self.assertEqual(reversed_range.status_code, 422)
        self.assertEqual(reversed_range.json()["error"]["code"], "VALIDATION_ERROR")

    def test_correction_catalog_endpoints(self) -> None:
        saved = self.client.put("/api/admin/correction-messages/NO_BOOKINGS", json={"custom_text": "Book please"})
        unknown = self.client.put("/api/admin/correction-messages/MADE_UP", json={"custom_text": "x"})
        catalog = self.client.get("/api/admin/correction-messages")

        self.assertEqual(saved.status_code, 200)
        self.assertEqual(unknown.status_code, 404)
        entry = next(item for item in catalog.json() if item["code"] == "NO_BOOKINGS")
        self.assertEqual(entry["custom_text"], "Book please")


if __name__ == "__main__":
    unittest.main()
