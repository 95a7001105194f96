"""Unit tests for core services."""
from datetime import date
from django.test import SimpleTestCase

from core.exceptions import InfrastructureError, ValidationFailed
from core.services import DateRangeService, WorkoutMetrics, calculate_age, compute_rr_value, thresholds_for_age
from core.services.rr_calculator import is_eligible_workout


class ThresholdsTests(SimpleTestCase):
    """Tests for age-adjusted thresholds."""

    def test_defaults(self):
        for age in (None, 20, 65):
            thresholds = thresholds_for_age(age)
            self.assertEqual(
                (thresholds.base_duration, thresholds.min_steps, thresholds.max_steps), (45, 10000, 20000)
            )

    def test_over_65(self):
        for age in (66, 75):
            thresholds = thresholds_for_age(age)
            self.assertEqual(
                (thresholds.base_duration, thresholds.min_steps, thresholds.max_steps), (30, 5000, 10000)
            )

    def test_over_75(self):
        thresholds = thresholds_for_age(76)
        self.assertEqual((thresholds.base_duration, thresholds.min_steps, thresholds.max_steps), (30, 3000, 6000))

    def test_calculate_age_before_birthday(self):
        self.assertEqual(calculate_age(date(1950, 6, 15), date(2026, 6, 14)), 75)
        self.assertEqual(calculate_age(date(1950, 6, 15), date(2026, 6, 15)), 76)


class ComputeRRValueTests(SimpleTestCase):
    """Tests for compute_rr_value."""

    def test_rest_day_is_one(self):
        self.assertEqual(compute_rr_value('rest'), 1.0)
        self.assertEqual(compute_rr_value('rest', 'run', WorkoutMetrics(duration=200)), 1.0)

    def test_steps_example(self):
        self.assertAlmostEqual(compute_rr_value('workout', 'steps', WorkoutMetrics(steps=12000)), 1.2)

    def test_steps_below_minimum_scores_zero(self):
        self.assertEqual(compute_rr_value('workout', 'steps', WorkoutMetrics(steps=9999)), 0.0)

    def test_steps_capped(self):
        self.assertEqual(compute_rr_value('workout', 'steps', WorkoutMetrics(steps=50000)), 2.0)

    def test_steps_for_older_member(self):
        self.assertEqual(compute_rr_value('workout', 'steps', WorkoutMetrics(steps=4500), age=80), 1.5)

    def test_run_duration_capped(self):
        self.assertEqual(compute_rr_value('workout', 'run', WorkoutMetrics(duration=90)), 2.0)

    def test_run_uses_better_of_duration_and_distance(self):
        self.assertAlmostEqual(compute_rr_value('workout', 'run', WorkoutMetrics(duration=30, distance=6)), 1.5)

    def test_cycling_distance(self):
        self.assertAlmostEqual(compute_rr_value('workout', 'cycling', WorkoutMetrics(distance=15)), 1.5)

    def test_golf(self):
        self.assertEqual(compute_rr_value('workout', 'golf', WorkoutMetrics(holes=18)), 2.0)
        self.assertAlmostEqual(compute_rr_value('workout', 'golf', WorkoutMetrics(holes=9)), 1.0)

    def test_other_subtypes_use_duration(self):
        self.assertAlmostEqual(compute_rr_value('workout', 'yoga', WorkoutMetrics(duration=30), age=70), 1.0)
        self.assertAlmostEqual(compute_rr_value('workout', 'gym', WorkoutMetrics(duration=30)), 30 / 45)

    def test_steps_without_count_falls_back_to_duration(self):
        self.assertAlmostEqual(compute_rr_value('workout', 'steps', WorkoutMetrics(duration=45)), 1.0)

    def test_zero_steps_scores_zero(self):
        self.assertEqual(compute_rr_value('workout', 'steps', WorkoutMetrics(steps=0)), 0.0)
        self.assertFalse(is_eligible_workout(compute_rr_value('workout', 'steps', WorkoutMetrics(steps=0))))

    def test_zero_holes_scores_zero(self):
        self.assertEqual(compute_rr_value('workout', 'golf', WorkoutMetrics(holes=0)), 0.0)

    def test_monotonic_in_steps_and_holes(self):
        steps = [compute_rr_value('workout', 'steps', WorkoutMetrics(steps=s)) for s in (0, 5000, 10000, 15000)]
        holes = [compute_rr_value('workout', 'golf', WorkoutMetrics(holes=h)) for h in (0, 1, 9, 18)]
        self.assertEqual(steps, sorted(steps))
        self.assertEqual(holes, sorted(holes))

    def test_no_metrics_defaults_to_one(self):
        self.assertEqual(compute_rr_value('workout', 'gym'), 1.0)

    def test_monotonic_in_duration(self):
        values = [compute_rr_value('workout', 'run', WorkoutMetrics(duration=d)) for d in range(0, 200, 5)]
        self.assertEqual(values, sorted(values))
        self.assertTrue(all(0.0 <= v <= 2.0 for v in values))

    def test_eligibility(self):
        self.assertTrue(is_eligible_workout(1.0))
        self.assertFalse(is_eligible_workout(0.99))
        self.assertFalse(is_eligible_workout(None))


class DateRangeServiceTests(SimpleTestCase):
    """Tests for DateRangeService."""

    def test_parse_date(self):
        self.assertEqual(DateRangeService.parse_date('2026-02-04'), date(2026, 2, 4))

    def test_parse_timestamp_truncates(self):
        self.assertEqual(DateRangeService.parse_date('2026-02-04T18:30:00Z'), date(2026, 2, 4))

    def test_parse_invalid(self):
        for value in ('04/02/2026', '2026-02-30', '', None):
            with self.assertRaises(ValidationFailed):
                DateRangeService.parse_date(value)

    def test_window_needs_both_bounds(self):
        self.assertIsNone(DateRangeService.resolve_window('2026-01-01', None))
        self.assertIsNone(DateRangeService.resolve_window(None, '2026-01-31'))
        window = DateRangeService.resolve_window('2026-01-01', '2026-01-31')
        self.assertTrue(window.contains(date(2026, 1, 31)))
        self.assertFalse(window.contains(date(2026, 2, 1)))

    def test_window_end_before_start(self):
        with self.assertRaises(ValidationFailed):
            DateRangeService.resolve_window('2026-01-31', '2026-01-01')

    def test_league_weeks(self):
        self.assertEqual(DateRangeService.league_weeks(date(2026, 1, 1), date(2026, 1, 29)), 5)
        self.assertEqual(DateRangeService.league_weeks(date(2026, 1, 1), date(2026, 1, 30)), 6)


class ExceptionTests(SimpleTestCase):
    def test_infrastructure_message_is_generic(self):
        exc = InfrastructureError('relation "entries_entry" does not exist')
        self.assertEqual(exc.status_code, 503)
        self.assertNotIn('entries_entry', exc.message)
        self.assertIn('entries_entry', exc.detail)
