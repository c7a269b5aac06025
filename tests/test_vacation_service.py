from __future__ import annotations

import unittest
from datetime import date
from decimal import Decimal

from fastapi import HTTPException
from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from timebank.db import Base
from timebank.models import (
    AbsenceCategory,
    AbsenceDay,
    AbsenceStatus,
    AbsenceType,
    AuditLog,
    CappingRuleType,
    DailyValue,
    DayPlan,
    Employee,
    EmployeeCappingException,
    ExemptionType,
    MonthlyValue,
    MonthStatus,
    SpecialCalcType,
    Tariff,
    VacationBalance,
    VacationCappingRule,
    VacationSpecialCalculation,
    WeekPlan,
)
from timebank.services.absences import approve_absence, cancel_absence
from timebank.services.vacation import (
    add_manual_adjustment,
    apply_year_transition,
    get_balance,
    initialize_year,
    preview_entitlement,
    recalculate_used_days,
)

MONDAY = date(2026, 3, 2)
TUESDAY = date(2026, 3, 3)
TODAY = date(2026, 3, 20)


def _session() -> Session:
    engine = create_engine("sqlite://", poolclass=StaticPool, connect_args={"check_same_thread": False})
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)()


def _setup(db: Session, *, vacation_deduction: str = "1.00") -> tuple[Employee, Tariff]:
    plan = DayPlan(code="STD", name="Standard", regular_minutes=480, vacation_deduction=Decimal(vacation_deduction))
    db.add(plan)
    db.flush()
    week = WeekPlan(code="W", name="Office week")
    for field_name in WeekPlan.WEEKDAY_FIELDS[:5]:
        setattr(week, field_name, plan.id)
    db.add(week)
    db.flush()
    tariff = Tariff(
        code="T",
        name="Office",
        week_plan_id=week.id,
        annual_vacation_days=Decimal("30"),
        standard_weekly_hours=Decimal("40"),
    )
    tariff.special_calculations = [
        VacationSpecialCalculation(calc_type=SpecialCalcType.AGE, threshold=50, bonus_days=Decimal("2")),
    ]
    db.add(tariff)
    db.flush()
    employee = Employee(
        full_name="Ada Example",
        entry_date=date(2020, 1, 1),
        birth_date=date(1970, 5, 1),
        tariff_id=tariff.id,
    )
    db.add(employee)
    db.commit()
    return employee, tariff


def _vacation_type(db: Session) -> AbsenceType:
    absence_type = AbsenceType(
        code="U",
        name="Vacation",
        category=AbsenceCategory.VACATION,
        deducts_vacation=True,
    )
    db.add(absence_type)
    db.commit()
    return absence_type


def _absence(
    db: Session,
    employee: Employee,
    day: date,
    absence_type: AbsenceType,
    *,
    duration: str = "1.00",
    status: AbsenceStatus = AbsenceStatus.PENDING,
) -> AbsenceDay:
    absence = AbsenceDay(
        employee_id=employee.id,
        absence_date=day,
        absence_type_id=absence_type.id,
        duration=Decimal(duration),
        status=status,
    )
    db.add(absence)
    db.commit()
    return absence


class EntitlementServiceTests(unittest.TestCase):
    def setUp(self) -> None:
        self.db = _session()

    def tearDown(self) -> None:
        self.db.close()

    def test_preview_uses_tariff_and_employee_master(self) -> None:
        employee, _ = _setup(self.db)

        result = preview_entitlement(self.db, employee.id, 2026)

        self.assertEqual(result.age_at_reference, 55)
        self.assertEqual(result.age_bonus, Decimal("2"))
        self.assertEqual(result.total_entitlement, Decimal("32.00"))

    def test_initialize_year_keeps_carryover_and_used_days(self) -> None:
        employee, _ = _setup(self.db)
        self.db.add(
            VacationBalance(
                employee_id=employee.id,
                year=2026,
                carryover=Decimal("4"),
                used_days=Decimal("5"),
            )
        )
        self.db.commit()

        balance = initialize_year(self.db, employee.id, 2026, actor="hr")

        self.assertEqual(balance.base_entitlement, Decimal("30.00"))
        self.assertEqual(balance.additional_entitlement, Decimal("2.00"))
        self.assertEqual(balance.carryover, Decimal("4"))
        self.assertEqual(balance.remaining_days, Decimal("31.00"))
        self.assertIsNotNone(self.db.scalar(select(AuditLog).where(AuditLog.action == "VACATION_YEAR_INITIALIZED")))

    def test_missing_tariff_and_balance(self) -> None:
        employee = Employee(full_name="No Tariff", entry_date=date(2020, 1, 1))
        self.db.add(employee)
        self.db.commit()

        with self.assertRaises(HTTPException) as no_tariff:
            preview_entitlement(self.db, employee.id, 2026)
        with self.assertRaises(HTTPException) as no_balance:
            get_balance(self.db, employee.id, 2026)

        self.assertEqual(no_tariff.exception.status_code, 404)
        self.assertEqual(no_balance.exception.status_code, 404)

    def test_manual_adjustment_accumulates(self) -> None:
        employee, _ = _setup(self.db)

        add_manual_adjustment(self.db, employee.id, 2026, days=Decimal("2.5"), reason="bonus", actor="hr")
        balance = add_manual_adjustment(self.db, employee.id, 2026, days=Decimal("-1"), reason="fix", actor="hr")

        self.assertEqual(balance.manual_adjustment, Decimal("1.50"))
        audits = self.db.scalars(select(AuditLog).where(AuditLog.action == "VACATION_ADJUSTED")).all()
        self.assertEqual(len(audits), 2)


class YearTransitionTests(unittest.TestCase):
    def setUp(self) -> None:
        self.db = _session()
        self.employee, self.tariff = _setup(self.db)
        self.db.add(
            VacationBalance(
                employee_id=self.employee.id,
                year=2026,
                base_entitlement=Decimal("30"),
                used_days=Decimal("18"),
            )
        )
        self.rule = VacationCappingRule(
            tariff_id=self.tariff.id,
            code="YE",
            name="Year end",
            rule_type=CappingRuleType.YEAR_END,
            cap_value=Decimal("5"),
        )
        self.db.add(self.rule)
        self.db.commit()

    def tearDown(self) -> None:
        self.db.close()

    def test_capped_carryover(self) -> None:
        result, balance = apply_year_transition(self.db, self.employee.id, 2026, actor="system")

        self.assertEqual(result.available_days, Decimal("12"))
        self.assertEqual(result.forfeited_days, Decimal("7"))
        self.assertEqual(balance.year, 2027)
        self.assertEqual(balance.carryover, Decimal("5.00"))
        audit = self.db.scalar(select(AuditLog).where(AuditLog.action == "VACATION_YEAR_TRANSITION"))
        self.assertEqual(audit.details["rules_applied"], ["YE"])

    def test_transition_is_repeatable(self) -> None:
        apply_year_transition(self.db, self.employee.id, 2026, actor="system")
        _, balance = apply_year_transition(self.db, self.employee.id, 2026, actor="system")

        self.assertEqual(balance.carryover, Decimal("5.00"))
        self.assertEqual(len(self.db.scalars(select(VacationBalance).where(VacationBalance.year == 2027)).all()), 1)

    def test_employee_exception_keeps_all_days(self) -> None:
        self.db.add(
            EmployeeCappingException(
                employee_id=self.employee.id,
                capping_rule_id=self.rule.id,
                exemption_type=ExemptionType.FULL,
                year=2026,
            )
        )
        self.db.commit()

        result, balance = apply_year_transition(self.db, self.employee.id, 2026, actor="hr")

        self.assertTrue(result.has_exception)
        self.assertEqual(balance.carryover, Decimal("12.00"))

    def test_inactive_rule_is_ignored(self) -> None:
        self.rule.is_active = False
        self.db.commit()

        _, balance = apply_year_transition(self.db, self.employee.id, 2026, actor="system")

        self.assertEqual(balance.carryover, Decimal("12.00"))


class AbsenceWorkflowTests(unittest.TestCase):
    def setUp(self) -> None:
        self.db = _session()

    def tearDown(self) -> None:
        self.db.close()

    def _daily(self, day: date) -> DailyValue | None:
        return self.db.scalar(select(DailyValue).where(DailyValue.value_date == day))

    def test_approve_deducts_vacation_and_recalculates_day(self) -> None:
        employee, _ = _setup(self.db)
        absence = _absence(self.db, employee, MONDAY, _vacation_type(self.db))

        approved = approve_absence(self.db, absence.id, actor="lead", today=TODAY)
        again = approve_absence(self.db, absence.id, actor="lead", today=TODAY)

        self.assertEqual(approved.status, AbsenceStatus.APPROVED)
        self.assertEqual(again.vacation_deducted, Decimal("1.00"))
        balance = get_balance(self.db, employee.id, 2026)
        self.assertEqual(balance.used_days, Decimal("1.00"))
        daily = self._daily(MONDAY)
        self.assertEqual(daily.absence_code, "U")
        self.assertEqual(daily.net_minutes, 480)

    def test_deduction_uses_day_plan_factor(self) -> None:
        employee, _ = _setup(self.db, vacation_deduction="0.50")
        absence = _absence(self.db, employee, MONDAY, _vacation_type(self.db))

        approve_absence(self.db, absence.id, actor="lead", today=TODAY)

        self.assertEqual(get_balance(self.db, employee.id, 2026).used_days, Decimal("0.50"))

    def test_only_pending_absences_can_be_approved(self) -> None:
        employee, _ = _setup(self.db)
        absence = _absence(self.db, employee, MONDAY, _vacation_type(self.db), status=AbsenceStatus.REJECTED)

        with self.assertRaises(HTTPException) as ctx:
            approve_absence(self.db, absence.id, actor="lead", today=TODAY)
        self.assertEqual(ctx.exception.status_code, 409)

        with self.assertRaises(HTTPException) as missing:
            approve_absence(self.db, 999, actor="lead", today=TODAY)
        self.assertEqual(missing.exception.status_code, 404)

    def test_cancel_reverses_deduction(self) -> None:
        employee, _ = _setup(self.db)
        absence = _absence(self.db, employee, MONDAY, _vacation_type(self.db))
        approve_absence(self.db, absence.id, actor="lead", today=TODAY)

        cancelled = cancel_absence(self.db, absence.id, actor="lead", today=TODAY)

        self.assertEqual(cancelled.status, AbsenceStatus.CANCELLED)
        self.assertIsNone(cancelled.vacation_deducted)
        self.assertEqual(get_balance(self.db, employee.id, 2026).used_days, Decimal("0.00"))
        daily = self._daily(MONDAY)
        self.assertIsNone(daily.absence_code)
        self.assertEqual(daily.error_codes, ["NO_BOOKINGS"])

    def test_approval_in_closed_month_skips_recalculation(self) -> None:
        employee, _ = _setup(self.db)
        self.db.add(MonthlyValue(employee_id=employee.id, year=2026, month=3, status=MonthStatus.CLOSED))
        absence = _absence(self.db, employee, MONDAY, _vacation_type(self.db))

        approve_absence(self.db, absence.id, actor="lead", today=TODAY)

        self.assertIsNone(self._daily(MONDAY))
        audit = self.db.scalar(select(AuditLog).where(AuditLog.action == "ABSENCE_APPROVED"))
        self.assertFalse(audit.details["day_recalculated"])

    def test_recalculate_used_and_planned_days(self) -> None:
        employee, _ = _setup(self.db)
        vacation = _vacation_type(self.db)
        special = AbsenceType(code="SU", name="Special leave", category=AbsenceCategory.SPECIAL)
        self.db.add(special)
        self.db.commit()
        _absence(self.db, employee, MONDAY, vacation, status=AbsenceStatus.APPROVED)
        _absence(self.db, employee, TUESDAY, vacation, duration="0.50")
        _absence(self.db, employee, date(2026, 3, 4), special, status=AbsenceStatus.APPROVED)
        _absence(self.db, employee, date(2026, 3, 5), vacation, status=AbsenceStatus.CANCELLED)

        balance = recalculate_used_days(self.db, employee.id, 2026)

        self.assertEqual(balance.used_days, Decimal("1.00"))
        self.assertEqual(balance.planned_days, Decimal("0.50"))
        monday = self.db.scalar(select(AbsenceDay).where(AbsenceDay.absence_date == MONDAY))
        self.assertEqual(monday.vacation_deducted, Decimal("1.00"))


if __name__ == "__main__":
    unittest.main()
