from __future__ import annotations

import unittest
from decimal import Decimal

from timebank.models import AbsenceCategory, CreditType
from timebank.services.monthly_calc import (
    WARN_BELOW_THRESHOLD,
    WARN_FLEXTIME_CAPPED,
    WARN_MONTHLY_CAP,
    WARN_NO_CARRYOVER,
    DailyTotals,
    EvaluationRules,
    calculate_annual_carryover,
    calculate_month,
    summarize_absences,
)


def _days(*differences: int) -> list[DailyTotals]:
    values = []
    for diff in differences:
        values.append(
            DailyTotals(
                gross_minutes=510 + max(diff, 0),
                net_minutes=480 + diff,
                target_minutes=480,
                overtime_minutes=max(diff, 0),
                undertime_minutes=max(-diff, 0),
                break_minutes=30,
            )
        )
    return values


class CalculateMonthTests(unittest.TestCase):
    def test_totals_and_direct_transfer_without_rules(self) -> None:
        result = calculate_month(_days(60, -20, 0), previous_balance=100, rules=None)

        self.assertEqual(result.total_target_minutes, 1440)
        self.assertEqual(result.total_overtime_minutes, 60)
        self.assertEqual(result.total_undertime_minutes, 20)
        self.assertEqual(result.total_break_minutes, 90)
        self.assertEqual(result.flextime_change, 40)
        self.assertEqual(result.flextime_credited, 40)
        self.assertEqual(result.flextime_end, 140)
        self.assertEqual(result.work_days, 3)

    def test_no_evaluation_behaves_like_direct_transfer(self) -> None:
        result = calculate_month(
            _days(90),
            previous_balance=0,
            rules=EvaluationRules(credit_type=CreditType.NO_EVALUATION, max_flextime_per_month=10),
        )
        self.assertEqual(result.flextime_end, 90)
        self.assertEqual(result.flextime_forfeited, 0)

    def test_complete_respects_monthly_cap(self) -> None:
        result = calculate_month(
            _days(300, 300),
            previous_balance=0,
            rules=EvaluationRules(credit_type=CreditType.COMPLETE, max_flextime_per_month=300),
        )

        self.assertEqual(result.flextime_credited, 300)
        self.assertEqual(result.flextime_forfeited, 300)
        self.assertEqual(result.flextime_end, 300)
        self.assertIn(WARN_MONTHLY_CAP, result.warnings)

    def test_complete_respects_annual_limits(self) -> None:
        upper = calculate_month(
            _days(500),
            previous_balance=1000,
            rules=EvaluationRules(credit_type=CreditType.COMPLETE, upper_limit_annual=1200),
        )
        lower = calculate_month(
            _days(-300),
            previous_balance=-500,
            rules=EvaluationRules(credit_type=CreditType.COMPLETE, lower_limit_annual=600),
        )

        self.assertEqual(upper.flextime_end, 1200)
        self.assertEqual(upper.flextime_forfeited, 300)
        self.assertIn(WARN_FLEXTIME_CAPPED, upper.warnings)
        self.assertEqual(lower.flextime_end, -600)
        self.assertEqual(lower.flextime_forfeited, 0)
        self.assertIn(WARN_FLEXTIME_CAPPED, lower.warnings)

    def test_after_threshold(self) -> None:
        rules = EvaluationRules(credit_type=CreditType.AFTER_THRESHOLD, flextime_threshold=60)

        above = calculate_month(_days(200), previous_balance=0, rules=rules)
        below = calculate_month(_days(40), previous_balance=0, rules=rules)
        negative = calculate_month(_days(-100), previous_balance=0, rules=rules)

        self.assertEqual((above.flextime_credited, above.flextime_forfeited), (140, 60))
        self.assertEqual((below.flextime_credited, below.flextime_forfeited), (0, 40))
        self.assertIn(WARN_BELOW_THRESHOLD, below.warnings)
        self.assertEqual(negative.flextime_credited, -100)
        self.assertEqual(negative.flextime_end, -100)

    def test_no_carryover_resets_balance(self) -> None:
        result = calculate_month(
            _days(120),
            previous_balance=500,
            rules=EvaluationRules(credit_type=CreditType.NO_CARRYOVER),
        )
        self.assertEqual(result.flextime_end, 0)
        self.assertEqual(result.flextime_credited, 0)
        self.assertEqual(result.flextime_forfeited, 120)
        self.assertIn(WARN_NO_CARRYOVER, result.warnings)

    def test_error_days_and_empty_days_are_counted(self) -> None:
        values = [
            DailyTotals(target_minutes=480, undertime_minutes=480, has_error=True),
            DailyTotals(gross_minutes=480, net_minutes=480, target_minutes=480),
        ]
        result = calculate_month(values, previous_balance=0, rules=None)
        self.assertEqual(result.days_with_errors, 1)
        self.assertEqual(result.work_days, 1)


class CarryoverAndAbsenceTests(unittest.TestCase):
    def test_annual_carryover(self) -> None:
        self.assertEqual(calculate_annual_carryover(None, 600), 0)
        self.assertEqual(calculate_annual_carryover(-900, 600), -600)
        self.assertEqual(calculate_annual_carryover(300, 600), 300)
        self.assertEqual(calculate_annual_carryover(-900, None), -900)

    def test_absence_summary(self) -> None:
        summary = summarize_absences(
            [
                (AbsenceCategory.VACATION, Decimal("1.00")),
                (AbsenceCategory.VACATION, Decimal("0.50")),
                (AbsenceCategory.ILLNESS, Decimal("0.50")),
                (AbsenceCategory.SPECIAL, Decimal("1.00")),
            ]
        )
        self.assertEqual(summary.vacation_days, Decimal("1.50"))
        self.assertEqual(summary.sick_days, 1)
        self.assertEqual(summary.other_absence_days, 1)


if __name__ == "__main__":
    unittest.main()
