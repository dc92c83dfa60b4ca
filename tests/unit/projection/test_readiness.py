"""
Unit tests for the daily readiness composer.

Tests the base signal, goal resolution, conflict detection, peak
anchoring and the end-to-end timeline properties (boundedness,
determinism, isolated and back-to-back goals).
"""

import datetime

import pytest

from app.projection.readiness import (
    DEFAULT_TIMELINE_CONFIG,
    ReadinessTimelineConfig,
    compose_readiness_timeline,
    compute_base_readiness_scores,
    compute_dynamic_form_weight,
    compute_optimal_tsb,
    compute_projection_point_readiness_scores,
    derive_goal_anchors,
)
from app.schemas.goal import ActivityCategory, Goal, GoalTarget, TargetType
from app.schemas.projection import ProjectionPoint

START = datetime.date(2026, 1, 5)


# ======================================================================
# Helpers
# ======================================================================


def _day(offset: int) -> datetime.date:
    return START + datetime.timedelta(days=offset)


def _make_points(days: int, fitness: float = 65.0, fatigue: float = 60.0) -> list[ProjectionPoint]:
    """Flat trajectory: same CTL/ATL every day."""
    return [ProjectionPoint(date=_day(i), fitness=fitness, fatigue=fatigue) for i in range(days)]


def _make_wavy_points(days: int) -> list[ProjectionPoint]:
    """Rising CTL with a weekly ATL wave."""
    points = []
    for i in range(days):
        fitness = 40.0 + 0.3 * i
        fatigue = fitness + (12.0 if i % 7 in (1, 2, 3) else -6.0)
        points.append(ProjectionPoint(date=_day(i), fitness=fitness, fatigue=fatigue))
    return points


def _make_marathon_block() -> list[ProjectionPoint]:
    """12-week build + 2-week taper ending on race day (day 84), then 6 recovery days."""
    points = []
    for i in range(91):
        if i <= 70:
            fitness = 45.0 + 25.0 * i / 70
            balance = -5.0
        elif i <= 84:
            fitness = 70.0 - 3.0 * (i - 70) / 14
            balance = -5.0 + 15.0 * (i - 70) / 14
        else:
            fitness = 66.0
            balance = -4.0
        points.append(ProjectionPoint(date=_day(i), fitness=fitness, fatigue=fitness - balance))
    return points


def _make_marathon(offset: int, goal_id: str | None = None) -> Goal:
    return Goal(
        goal_id=goal_id,
        target_date=_day(offset),
        targets=[GoalTarget(
            target_type=TargetType.RACE_PERFORMANCE,
            activity_category=ActivityCategory.RUN,
            distance_m=42195,
            target_time_s=3.5 * 3600,
        )],
    )


def _make_hr_test(offset: int) -> Goal:
    """Heart-rate threshold test: 3 days full, 1 day functional recovery."""
    return Goal(
        target_date=_day(offset),
        targets=[GoalTarget(target_type=TargetType.HR_THRESHOLD)],
    )


# ======================================================================
# compute_optimal_tsb / compute_dynamic_form_weight
# ======================================================================


class TestOptimalTsb:

    @pytest.mark.parametrize("hours,expected", [
        (None, 8.0),
        (0.0, 8.0),
        (0.3, 15.0),
        (1.0, 12.0),
        (2.0, 8.0),
        (3.5, 5.0),
        (8.0, 3.0),
    ])
    def test_table(self, hours, expected):
        assert compute_optimal_tsb(hours) == expected


class TestDynamicFormWeight:

    @pytest.mark.parametrize("days,expected", [
        (0, 0.5),
        (14, 0.5),
        (57, 0.35),
        (100, 0.2),
        (300, 0.2),
    ])
    def test_ramp(self, days, expected):
        assert compute_dynamic_form_weight(days) == pytest.approx(expected)

    def test_custom_bounds(self):
        cfg = ReadinessTimelineConfig(form_weight_min=0.1, form_weight_max=0.7)
        assert compute_dynamic_form_weight(0, cfg) == 0.7
        assert compute_dynamic_form_weight(200, cfg) == 0.1


# ======================================================================
# Base signal
# ======================================================================


class TestBaseScores:

    def test_flat_without_goals(self):
        # form 0.85 (TSB 5 vs target 8), fitness 1, fatigue 1
        # signal 0.925 blended with neutral plan feasibility 0.5 at 15%
        scores = compute_base_readiness_scores(_make_points(5))
        assert scores == pytest.approx([86.125] * 5)

    def test_monotonic_in_balance(self):
        points = [
            ProjectionPoint(date=_day(i), fitness=60.0, fatigue=fatigue)
            for i, fatigue in enumerate([95.0, 85.0, 75.0, 65.0, 60.0, 55.0, 50.0, 40.0, 30.0])
        ]
        scores = compute_base_readiness_scores(points)
        assert scores == sorted(scores)

    def test_fresher_than_target_is_not_penalised(self):
        fresh = compute_base_readiness_scores(_make_points(3, fitness=65.0, fatigue=45.0))
        very_fresh = compute_base_readiness_scores(_make_points(3, fitness=65.0, fatigue=20.0))
        assert very_fresh == fresh

    def test_plan_readiness_blend(self):
        low = compute_base_readiness_scores(_make_points(3), plan_readiness_score=0.0)
        high = compute_base_readiness_scores(_make_points(3), plan_readiness_score=100.0)
        assert high[0] - low[0] == pytest.approx(15.0)

    def test_upcoming_marathon_sets_target_tsb(self):
        # TSB 5 meets the marathon target exactly: full form signal
        scores = compute_base_readiness_scores(_make_points(10), [_make_marathon(9)])
        assert scores[0] == pytest.approx(92.5)

    def test_event_aware_form_disabled(self):
        cfg = ReadinessTimelineConfig(event_aware_form=False)
        scores = compute_base_readiness_scores(_make_points(10), [_make_marathon(9)], config=cfg)
        assert scores[0] == pytest.approx(86.125)

    def test_negative_inputs_are_bounded(self):
        points = [ProjectionPoint(date=_day(0), fitness=-10.0, fatigue=-5.0)]
        scores = compute_base_readiness_scores(points)
        assert 0.0 <= scores[0] <= 100.0


# ======================================================================
# Goal resolution and anchors
# ======================================================================


class TestAnchors:

    def test_marathon_anchor(self):
        anchors = derive_goal_anchors(_make_points(60), [_make_marathon(30)])
        assert len(anchors) == 1
        anchor = anchors[0]
        assert anchor.point_index == 30
        assert anchor.taper_days == 8
        assert anchor.peak_window == 15
        assert anchor.peak_slope == pytest.approx(1.695)
        assert anchor.allow_natural_fatigue is False

    def test_back_to_back_goals_conflict(self):
        anchors = derive_goal_anchors(_make_points(60), [_make_marathon(20), _make_marathon(21)])
        assert [a.allow_natural_fatigue for a in anchors] == [True, True]
        assert anchors[0].conflicting_goal_indexes == [1]
        assert anchors[1].conflicting_goal_indexes == [0]

    def test_goals_beyond_functional_window_do_not_conflict(self):
        # marathon functional recovery is 5 days
        anchors = derive_goal_anchors(_make_points(60), [_make_marathon(20), _make_marathon(26)])
        assert not any(a.allow_natural_fatigue for a in anchors)

    def test_functional_window_edge_conflicts(self):
        anchors = derive_goal_anchors(_make_points(60), [_make_marathon(20), _make_marathon(25)])
        assert all(a.allow_natural_fatigue for a in anchors)

    def test_short_test_inside_marathon_recovery_conflicts(self):
        # marathon functional recovery 5 days covers the HR test 3 days later;
        # the HR test's 1-day window does not reach back to the marathon
        goals = [_make_marathon(30), _make_hr_test(33)]
        marathon, hr_test = derive_goal_anchors(_make_points(60), goals)
        assert marathon.allow_natural_fatigue is False
        assert marathon.conflicting_goal_indexes == []
        assert hr_test.allow_natural_fatigue is True
        assert hr_test.conflicting_goal_indexes == [0]

    def test_marathon_inside_short_test_recovery_conflicts(self):
        goals = [_make_hr_test(30), _make_marathon(31)]
        hr_test, marathon = derive_goal_anchors(_make_points(60), goals)
        assert hr_test.allow_natural_fatigue is True
        assert marathon.allow_natural_fatigue is True

    def test_anchors_in_day_order(self):
        anchors = derive_goal_anchors(_make_points(60), [_make_marathon(50), _make_marathon(10)])
        assert [a.goal_index for a in anchors] == [1, 0]

    def test_missing_date_resolves_to_nearest_point(self):
        points = [p for p in _make_points(20) if p.date != _day(10)]
        anchors = derive_goal_anchors(points, [_make_marathon(10)])
        assert anchors[0].point_index == 9


# ======================================================================
# compose_readiness_timeline
# ======================================================================


class TestComposeEdgeCases:

    def test_empty_points(self):
        assert compute_projection_point_readiness_scores([]) == []

    def test_empty_points_ignore_goals(self):
        timeline = compose_readiness_timeline([], [_make_marathon(0)])
        assert timeline.scores == []
        assert timeline.ignored_goal_indexes == [0]

    def test_single_point(self):
        scores = compute_projection_point_readiness_scores(_make_points(1), [_make_marathon(0)])
        assert len(scores) == 1
        assert 0.0 <= scores[0] <= 100.0

    def test_no_goals_returns_rounded_base(self):
        points = _make_wavy_points(40)
        base = compute_base_readiness_scores(points)
        scores = compute_projection_point_readiness_scores(points)
        assert scores == [round(b, 2) for b in base]

    def test_goal_outside_span_is_ignored(self):
        points = _make_wavy_points(40)
        timeline = compose_readiness_timeline(points, [_make_marathon(90)])
        assert timeline.ignored_goal_indexes == [0]
        assert timeline.anchors == []
        assert timeline.scores == compute_projection_point_readiness_scores(points)

    def test_goal_without_targets_is_a_marker(self):
        points = _make_wavy_points(40)
        marker = Goal(target_date=_day(10))
        timeline = compose_readiness_timeline(points, [marker])
        assert timeline.anchors == []
        assert timeline.ignored_goal_indexes == []
        assert all(p.fatigue_penalty == 0.0 for p in timeline.points)
        assert timeline.scores == compute_projection_point_readiness_scores(points)

    def test_marker_and_out_of_range_goals_leave_scores_unchanged(self):
        points = _make_wavy_points(40)
        goals = [Goal(target_date=_day(5)), _make_marathon(-10), _make_marathon(60)]
        timeline = compose_readiness_timeline(points, goals)
        assert timeline.ignored_goal_indexes == [1, 2]
        assert timeline.scores == compute_projection_point_readiness_scores(points)

    def test_one_score_per_point(self):
        points = _make_wavy_points(50)
        timeline = compose_readiness_timeline(points, [_make_marathon(20), _make_marathon(21)])
        assert len(timeline.scores) == len(points)
        assert [p.date for p in timeline.points] == [p.date for p in points]

    def test_smoothing_disabled(self):
        cfg = ReadinessTimelineConfig(smoothing_iterations=0)
        timeline = compose_readiness_timeline(_make_points(40), [_make_marathon(10)], config=cfg)
        # day after the race carries the full adjusted penalty
        assert timeline.scores[11] == pytest.approx(86.125 - 42.5 * 0.5 ** 0.25, abs=0.01)


class TestComposeProperties:

    @pytest.mark.parametrize("goal_offsets", [[], [10], [10, 11], [5, 40], [0, 59], [20, 22, 24]])
    def test_bounded(self, goal_offsets):
        points = _make_wavy_points(60)
        goals = [_make_marathon(o) for o in goal_offsets]
        scores = compute_projection_point_readiness_scores(points, goals)
        assert all(0.0 <= s <= 100.0 for s in scores)

    def test_extreme_trajectory_bounded(self):
        points = [
            ProjectionPoint(date=_day(i), fitness=5.0 if i % 2 else 150.0, fatigue=300.0 if i % 3 else 0.0)
            for i in range(30)
        ]
        scores = compute_projection_point_readiness_scores(points, [_make_marathon(5), _make_marathon(6)])
        assert all(0.0 <= s <= 100.0 for s in scores)

    def test_deterministic(self):
        points = _make_wavy_points(60)
        goals = [_make_marathon(15), _make_marathon(16), _make_marathon(45)]
        first = compose_readiness_timeline(points, goals)
        second = compose_readiness_timeline(points, goals)
        assert first == second

    def test_does_not_mutate_inputs(self):
        points = _make_wavy_points(30)
        goals = [_make_marathon(10)]
        snapshot = [p.model_copy() for p in points]
        compose_readiness_timeline(points, goals)
        assert points == snapshot

    def test_penalty_is_largest_single_event(self):
        points = _make_points(60)
        timeline = compose_readiness_timeline(points, [_make_marathon(20), _make_marathon(21)])
        day_after_second = timeline.points[22]
        assert day_after_second.limiting_goal_index == 1
        assert day_after_second.fatigue_penalty == pytest.approx(42.5 * 0.5 ** 0.25, abs=0.01)


class TestMultiGoal:

    def test_conflicting_second_goal_is_lower(self):
        points = _make_points(60)
        timeline = compose_readiness_timeline(points, [_make_marathon(40), _make_marathon(41)])
        assert timeline.scores[41] < timeline.scores[40] - 10.0
        assert timeline.points[41].limiting_goal_index == 0

    def test_short_test_after_marathon_shows_fatigue(self):
        points = _make_wavy_points(60)
        timeline = compose_readiness_timeline(points, [_make_marathon(30), _make_hr_test(33)])
        scores = timeline.scores
        marathon = timeline.anchors[0]

        assert timeline.points[33].limiting_goal_index == 0
        assert timeline.points[33].fatigue_penalty > 20.0
        start = marathon.point_index - marathon.peak_window
        end = marathon.point_index + marathon.peak_window
        assert scores[30] == max(scores[start:end + 1])
        assert scores[33] < scores[30]

    def test_distant_goals_are_both_local_peaks(self):
        points = _make_wavy_points(80)
        timeline = compose_readiness_timeline(points, [_make_marathon(20), _make_marathon(55)])
        scores = timeline.scores
        for anchor in timeline.anchors:
            assert anchor.allow_natural_fatigue is False
            start = max(0, anchor.point_index - anchor.peak_window)
            end = min(len(scores) - 1, anchor.point_index + anchor.peak_window)
            assert scores[anchor.point_index] == max(scores[start:end + 1])

    def test_isolated_marathon_after_12_week_block(self):
        points = _make_marathon_block()
        timeline = compose_readiness_timeline(points, [_make_marathon(84)])
        assert 70.0 <= timeline.scores[84] <= 95.0
        assert all(0.0 <= s <= 100.0 for s in timeline.scores)
        # recovery days after the race are below the race day
        assert max(timeline.scores[85:]) < timeline.scores[84]


def test_default_config_is_shared_and_unchanged():
    compose_readiness_timeline(_make_points(10), [_make_marathon(5)], config=None)
    assert DEFAULT_TIMELINE_CONFIG == ReadinessTimelineConfig()
