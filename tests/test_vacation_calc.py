from __future__ import annotations

import unittest
from datetime import date
from decimal import Decimal

from timebank.models import CappingRuleType, ExemptionType, SpecialCalcType, VacationBasis
from timebank.services.vacation_calc import (
    CappingExceptionInput,
    CappingRuleInput,
    EntitlementInput,
    SpecialCalculation,
    age_at,
    calculate_carryover,
    calculate_carryover_with_capping,
    calculate_entitlement,
    calculate_vacation_deduction,
    months_employed_in_year,
    round_to_half_day,
    tenure_at,
)


def _input(**overrides) -> EntitlementInput:  # type: ignore[no-untyped-def]
    values = {
        "year": 2026,
        "reference_date": date(2026, 1, 1),
        "entry_date": date(2020, 1, 1),
        "base_vacation_days": Decimal("30"),
        "standard_weekly_hours": Decimal("40"),
    }
    values.update(overrides)
    return EntitlementInput(**values)


class EntitlementTests(unittest.TestCase):
    def test_full_year(self) -> None:
        result = calculate_entitlement(_input())
        self.assertEqual(result.months_employed, 12)
        self.assertEqual(result.total_entitlement, Decimal("30.00"))

    def test_entry_during_year_is_prorated_by_started_months(self) -> None:
        result = calculate_entitlement(_input(entry_date=date(2026, 7, 15)))
        self.assertEqual(result.months_employed, 6)
        self.assertEqual(result.total_entitlement, Decimal("15.00"))

    def test_exit_during_year(self) -> None:
        self.assertEqual(months_employed_in_year(date(2020, 1, 1), date(2026, 3, 10), 2026, VacationBasis.CALENDAR_YEAR), 3)
        self.assertEqual(months_employed_in_year(date(2020, 1, 1), date(2025, 12, 31), 2026, VacationBasis.CALENDAR_YEAR), 0)

    def test_entry_date_basis_uses_anniversary_period(self) -> None:
        months = months_employed_in_year(date(2020, 4, 1), None, 2026, VacationBasis.ENTRY_DATE)
        self.assertEqual(months, 12)

    def test_part_time_scales_by_weekly_hours(self) -> None:
        result = calculate_entitlement(_input(weekly_hours=Decimal("20")))
        self.assertEqual(result.part_time_adjustment, Decimal("15"))
        self.assertEqual(result.total_entitlement, Decimal("15.00"))

    def test_missing_standard_hours_skips_part_time_adjustment(self) -> None:
        result = calculate_entitlement(_input(weekly_hours=Decimal("20"), standard_weekly_hours=None))
        self.assertEqual(result.total_entitlement, Decimal("30.00"))

    def test_special_calculation_bonuses(self) -> None:
        result = calculate_entitlement(
            _input(
                entry_date=date(2015, 1, 1),
                birth_date=date(1970, 5, 1),
                has_disability=True,
                special_calculations=(
                    SpecialCalculation(SpecialCalcType.AGE, 50, Decimal("2")),
                    SpecialCalculation(SpecialCalcType.AGE, 60, Decimal("1")),
                    SpecialCalculation(SpecialCalcType.TENURE, 10, Decimal("1")),
                    SpecialCalculation(SpecialCalcType.DISABILITY, 0, Decimal("5")),
                ),
            )
        )

        self.assertEqual(result.age_at_reference, 55)
        self.assertEqual(result.tenure_years, 11)
        self.assertEqual(result.age_bonus, Decimal("2"))
        self.assertEqual(result.tenure_bonus, Decimal("1"))
        self.assertEqual(result.disability_bonus, Decimal("5"))
        self.assertEqual(result.total_entitlement, Decimal("38.00"))

    def test_total_is_rounded_to_half_days(self) -> None:
        self.assertEqual(round_to_half_day(Decimal("14.5833")), Decimal("14.50"))
        self.assertEqual(round_to_half_day(Decimal("10.8333")), Decimal("11.00"))
        self.assertEqual(round_to_half_day(Decimal("12.25")), Decimal("12.50"))

    def test_age_and_tenure_count_full_years(self) -> None:
        self.assertEqual(age_at(date(1970, 5, 1), date(2026, 4, 30)), 55)
        self.assertEqual(age_at(date(1970, 5, 1), date(2026, 5, 1)), 56)
        self.assertEqual(age_at(None, date(2026, 1, 1)), 0)
        self.assertEqual(tenure_at(date(2027, 1, 1), date(2026, 1, 1)), 0)


class CarryoverTests(unittest.TestCase):
    def test_simple_carryover(self) -> None:
        self.assertEqual(calculate_carryover(Decimal("10"), Decimal("5")), Decimal("5"))
        self.assertEqual(calculate_carryover(Decimal("10"), None), Decimal("10"))
        self.assertEqual(calculate_carryover(Decimal("10"), Decimal("0")), Decimal("10"))
        self.assertEqual(calculate_carryover(Decimal("-2"), Decimal("5")), Decimal("0"))

    def test_year_end_cap(self) -> None:
        result = calculate_carryover_with_capping(
            Decimal("12"),
            [CappingRuleInput(rule_id=1, code="YE", rule_type=CappingRuleType.YEAR_END, cap_value=Decimal("5"))],
            [],
            reference_date=date(2027, 1, 1),
            year=2026,
        )

        self.assertEqual(result.capped_carryover, Decimal("5"))
        self.assertEqual(result.forfeited_days, Decimal("7"))
        self.assertTrue(result.rules_applied[0].applied)
        self.assertFalse(result.has_exception)

    def test_mid_year_rule_applies_only_after_cutoff(self) -> None:
        rule = CappingRuleInput(
            rule_id=1,
            code="MY",
            rule_type=CappingRuleType.MID_YEAR,
            cap_value=Decimal("5"),
            cutoff_month=3,
            cutoff_day=31,
        )

        on_cutoff = calculate_carryover_with_capping(
            Decimal("12"), [rule], [], reference_date=date(2027, 3, 31), year=2026
        )
        after_cutoff = calculate_carryover_with_capping(
            Decimal("12"), [rule], [], reference_date=date(2027, 4, 1), year=2026
        )

        self.assertEqual(on_cutoff.capped_carryover, Decimal("12"))
        self.assertFalse(on_cutoff.rules_applied[0].applied)
        self.assertEqual(after_cutoff.capped_carryover, Decimal("5"))

    def test_remaining_days_above_cap_keep_the_cap(self) -> None:
        result = calculate_carryover_with_capping(
            Decimal("8"),
            [CappingRuleInput(rule_id=1, code="YE", rule_type=CappingRuleType.YEAR_END, cap_value=Decimal("5"))],
            [],
            reference_date=date(2027, 1, 1),
            year=2026,
        )

        self.assertEqual(result.capped_carryover, Decimal("5"))
        self.assertEqual(result.forfeited_days, Decimal("3"))
        self.assertEqual(result.rules_applied[0].capped_amount, Decimal("3"))

    def test_mid_year_zero_cap_forfeits_everything_after_cutoff(self) -> None:
        rule = CappingRuleInput(
            rule_id=1,
            code="MY0",
            rule_type=CappingRuleType.MID_YEAR,
            cap_value=Decimal("0"),
            cutoff_month=3,
            cutoff_day=31,
        )

        result = calculate_carryover_with_capping(
            Decimal("8"), [rule], [], reference_date=date(2027, 4, 1), year=2026
        )

        self.assertEqual(result.capped_carryover, Decimal("0"))
        self.assertEqual(result.forfeited_days, Decimal("8"))
        self.assertTrue(result.rules_applied[0].applied)

    def test_full_exemption_skips_rule(self) -> None:
        result = calculate_carryover_with_capping(
            Decimal("12"),
            [CappingRuleInput(rule_id=1, code="YE", rule_type=CappingRuleType.YEAR_END, cap_value=Decimal("5"))],
            [CappingExceptionInput(rule_id=1, exemption_type=ExemptionType.FULL)],
            reference_date=date(2027, 1, 1),
            year=2026,
        )

        self.assertEqual(result.capped_carryover, Decimal("12"))
        self.assertTrue(result.has_exception)
        self.assertEqual(result.rules_applied[0].exemption, ExemptionType.FULL)

    def test_partial_exemption_raises_cap_to_retained_days(self) -> None:
        result = calculate_carryover_with_capping(
            Decimal("12"),
            [CappingRuleInput(rule_id=1, code="YE", rule_type=CappingRuleType.YEAR_END, cap_value=Decimal("5"))],
            [CappingExceptionInput(rule_id=1, exemption_type=ExemptionType.PARTIAL, retain_days=Decimal("8"))],
            reference_date=date(2027, 1, 1),
            year=2026,
        )

        self.assertEqual(result.capped_carryover, Decimal("8"))
        self.assertEqual(result.forfeited_days, Decimal("4"))

    def test_rules_apply_in_order(self) -> None:
        rules = [
            CappingRuleInput(rule_id=1, code="YE", rule_type=CappingRuleType.YEAR_END, cap_value=Decimal("10")),
            CappingRuleInput(
                rule_id=2,
                code="MY",
                rule_type=CappingRuleType.MID_YEAR,
                cap_value=Decimal("3"),
                cutoff_month=3,
                cutoff_day=31,
            ),
        ]

        result = calculate_carryover_with_capping(
            Decimal("12"), rules, [], reference_date=date(2027, 6, 1), year=2026
        )

        self.assertEqual(result.capped_carryover, Decimal("3"))
        self.assertEqual(result.forfeited_days, Decimal("9"))
        self.assertEqual([item.capped_amount for item in result.rules_applied], [Decimal("2"), Decimal("7")])

    def test_nothing_available(self) -> None:
        result = calculate_carryover_with_capping(
            Decimal("0"),
            [CappingRuleInput(rule_id=1, code="YE", rule_type=CappingRuleType.YEAR_END, cap_value=Decimal("5"))],
            [],
            reference_date=date(2027, 1, 1),
            year=2026,
        )
        self.assertEqual(result.capped_carryover, Decimal("0"))
        self.assertEqual(result.rules_applied, [])

    def test_vacation_deduction(self) -> None:
        self.assertEqual(calculate_vacation_deduction(Decimal("0.5"), Decimal("1")), Decimal("0.5"))
        self.assertEqual(calculate_vacation_deduction(Decimal("1"), Decimal("0.5")), Decimal("0.5"))


if __name__ == "__main__":
    unittest.main()
