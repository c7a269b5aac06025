from __future__ import annotations

import unittest

from timebank.models import PlanType, RoundingType
from timebank.services.booking_normalizer import (
    apply_come_tolerance,
    apply_go_tolerance,
    apply_window_capping,
    effective_tolerance,
    normalize_bookings,
    round_time,
)
from timebank.services.calc_types import BookingInput, PlanInput, RoundingConfig, ToleranceConfig


def _in(booking_id: int, time: int, category: str = "WORK") -> BookingInput:
    return BookingInput(id=booking_id, time=time, direction="IN", category=category)  # type: ignore[arg-type]


def _out(booking_id: int, time: int, category: str = "WORK") -> BookingInput:
    return BookingInput(id=booking_id, time=time, direction="OUT", category=category)  # type: ignore[arg-type]


class RoundTimeTests(unittest.TestCase):
    def test_round_up_to_interval(self) -> None:
        self.assertEqual(round_time(487, RoundingConfig(RoundingType.UP, interval=15)), 495)
        self.assertEqual(round_time(495, RoundingConfig(RoundingType.UP, interval=15)), 495)

    def test_round_down_to_interval(self) -> None:
        self.assertEqual(round_time(494, RoundingConfig(RoundingType.DOWN, interval=15)), 480)

    def test_round_nearest_midpoint_goes_up(self) -> None:
        config = RoundingConfig(RoundingType.NEAREST, interval=10)
        self.assertEqual(round_time(484, config), 480)
        self.assertEqual(round_time(485, config), 490)

    def test_add_and_subtract_are_clamped_to_day(self) -> None:
        self.assertEqual(round_time(480, RoundingConfig(RoundingType.ADD, add_value=5)), 485)
        self.assertEqual(round_time(1438, RoundingConfig(RoundingType.ADD, add_value=5)), 1440)
        self.assertEqual(round_time(3, RoundingConfig(RoundingType.SUBTRACT, add_value=5)), 0)

    def test_zero_interval_and_missing_config_leave_time_unchanged(self) -> None:
        self.assertEqual(round_time(487, RoundingConfig(RoundingType.UP, interval=0)), 487)
        self.assertEqual(round_time(487, None), 487)

    def test_rounding_grid_can_be_anchored_to_plan_start(self) -> None:
        config = RoundingConfig(RoundingType.UP, interval=15)
        self.assertEqual(round_time(487, config, anchor=485), 500)


class ToleranceTests(unittest.TestCase):
    def test_late_arrival_inside_tolerance_snaps_to_window_start(self) -> None:
        tolerance = ToleranceConfig(come_plus=5)
        self.assertEqual(apply_come_tolerance(483, 480, tolerance), 480)
        self.assertEqual(apply_come_tolerance(486, 480, tolerance), 486)

    def test_early_departure_inside_tolerance_snaps_to_expected_end(self) -> None:
        tolerance = ToleranceConfig(go_minus=5)
        self.assertEqual(apply_go_tolerance(1017, 1020, tolerance), 1020)
        self.assertEqual(apply_go_tolerance(1010, 1020, tolerance), 1010)

    def test_flex_plan_ignores_late_and_early_tolerances(self) -> None:
        plan = PlanInput(
            target_minutes=480,
            plan_type=PlanType.FLEX,
            variable_work_time=True,
            tolerance=ToleranceConfig(come_plus=5, come_minus=10, go_plus=15, go_minus=20),
        )
        tolerance, variable = effective_tolerance(plan)
        self.assertEqual(tolerance, ToleranceConfig(come_plus=0, come_minus=10, go_plus=15, go_minus=0))
        self.assertFalse(variable)

    def test_fixed_plan_without_variable_time_drops_early_arrival_tolerance(self) -> None:
        plan = PlanInput(target_minutes=480, tolerance=ToleranceConfig(come_plus=5, come_minus=10))
        tolerance, _ = effective_tolerance(plan)
        self.assertEqual(tolerance.come_minus, 0)
        self.assertEqual(tolerance.come_plus, 5)


class WindowCappingTests(unittest.TestCase):
    def test_early_arrival_is_capped_to_window_start(self) -> None:
        value, capped = apply_window_capping(
            400,
            window_start=420,
            window_end=None,
            come_minus=0,
            go_plus=0,
            is_arrival=True,
            allow_early_tolerance=False,
        )
        self.assertEqual((value, capped), (420, 20))

    def test_early_tolerance_widens_the_window(self) -> None:
        value, capped = apply_window_capping(
            360,
            window_start=420,
            window_end=None,
            come_minus=30,
            go_plus=0,
            is_arrival=True,
            allow_early_tolerance=True,
        )
        self.assertEqual((value, capped), (390, 30))

    def test_late_departure_is_capped_to_window_end_plus_tolerance(self) -> None:
        value, capped = apply_window_capping(
            1170,
            window_start=None,
            window_end=1140,
            come_minus=0,
            go_plus=10,
            is_arrival=False,
            allow_early_tolerance=False,
        )
        self.assertEqual((value, capped), (1150, 20))


class NormalizeBookingsTests(unittest.TestCase):
    def test_only_first_arrival_and_last_departure_are_rounded(self) -> None:
        plan = PlanInput(
            target_minutes=480,
            rounding_come=RoundingConfig(RoundingType.UP, interval=15),
            rounding_go=RoundingConfig(RoundingType.DOWN, interval=15),
        )
        bookings = [_in(1, 482), _out(2, 722), _in(3, 752), _out(4, 1027)]

        result = normalize_bookings(bookings, plan)

        self.assertEqual(result.calculated_times, {1: 495, 2: 722, 3: 752, 4: 1020})

    def test_round_all_bookings_rounds_every_work_booking(self) -> None:
        plan = PlanInput(
            target_minutes=480,
            round_all_bookings=True,
            rounding_come=RoundingConfig(RoundingType.UP, interval=15),
            rounding_go=RoundingConfig(RoundingType.DOWN, interval=15),
        )
        bookings = [_in(1, 482), _out(2, 722), _in(3, 752), _out(4, 1027)]

        result = normalize_bookings(bookings, plan)

        self.assertEqual(result.calculated_times, {1: 495, 2: 720, 3: 765, 4: 1020})

    def test_break_bookings_pass_through_unchanged(self) -> None:
        plan = PlanInput(
            target_minutes=480,
            round_all_bookings=True,
            rounding_come=RoundingConfig(RoundingType.UP, interval=15),
        )
        bookings = [_in(1, 480), _out(2, 722, "BREAK"), _in(3, 751, "BREAK"), _out(4, 1020)]

        result = normalize_bookings(bookings, plan)

        self.assertEqual(result.calculated_times[2], 722)
        self.assertEqual(result.calculated_times[3], 751)

    def test_capping_keeps_uncapped_time_for_validation(self) -> None:
        plan = PlanInput(target_minutes=480, come_from=420, go_to=1140)
        bookings = [_in(1, 390), _out(2, 1170)]

        result = normalize_bookings(bookings, plan)

        self.assertEqual([b.time for b in result.processed], [420, 1140])
        self.assertEqual([b.time for b in result.validation], [390, 1170])
        self.assertEqual([item.source for item in result.capping_items], ["early_arrival", "late_leave"])
        self.assertEqual(sum(item.minutes for item in result.capping_items), 60)

    def test_relative_rounding_uses_plan_window_as_anchor(self) -> None:
        plan = PlanInput(
            target_minutes=480,
            come_from=425,
            rounding_come=RoundingConfig(RoundingType.UP, interval=15),
        )

        absolute = normalize_bookings([_in(1, 430)], plan)
        relative = normalize_bookings([_in(1, 430)], plan, round_relative_to_plan=True)

        self.assertEqual(absolute.calculated_times[1], 435)
        self.assertEqual(relative.calculated_times[1], 440)


if __name__ == "__main__":
    unittest.main()
