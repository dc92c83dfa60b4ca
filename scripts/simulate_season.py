"""Simulate a 12-week marathon block with a half-marathon tune-up race.

Builds CTL/ATL from a daily TSS schedule (exponentially weighted, 42/7-day
time constants), composes the daily readiness timeline and prints the goal
assessments.

Usage:
    python scripts/simulate_season.py
"""

import datetime
import sys
from pathlib import Path

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from app.core.logging import setup_logging
from app.projection.goal_readiness import assess_goals
from app.projection.readiness import compose_readiness_timeline
from app.schemas.goal import ActivityCategory, Goal, GoalTarget, TargetType
from app.schemas.projection import ProjectionPoint

CTL_DAYS = 42
ATL_DAYS = 7

START_DATE = datetime.date(2026, 3, 2)
START_FITNESS = 45.0
START_FATIGUE = 45.0

# ─── Weekly TSS pattern (Mon..Sun) per block ─────────────────────────
BASE_WEEK = [0, 60, 45, 70, 0, 55, 110]
BUILD_WEEK = [0, 75, 55, 90, 0, 65, 140]
RECOVERY_WEEK = [0, 45, 35, 50, 0, 40, 80]
TAPER_WEEK = [0, 50, 30, 45, 0, 30, 40]
RACE_WEEK = [0, 35, 25, 30, 0, 15, 0]

WEEKS = [
    BASE_WEEK, BASE_WEEK, BUILD_WEEK, RECOVERY_WEEK,
    BUILD_WEEK, BUILD_WEEK, BUILD_WEEK, RECOVERY_WEEK,
    BUILD_WEEK, BUILD_WEEK, TAPER_WEEK, RACE_WEEK,
]

# Race-day loads replace the scheduled TSS.
RACE_DAY_TSS = {
    48: 150,  # half marathon, Sunday of week 7
    83: 0,    # rest, marathon the day after the block
}

HALF_MARATHON = Goal(
    goal_id="half",
    name="Spring half marathon",
    target_date=START_DATE + datetime.timedelta(days=48),
    priority=4,
    targets=[GoalTarget(
        target_type=TargetType.RACE_PERFORMANCE,
        activity_category=ActivityCategory.RUN,
        distance_m=21097.5,
        target_time_s=5400,
    )],
)

MARATHON = Goal(
    goal_id="marathon",
    name="Goal marathon",
    target_date=START_DATE + datetime.timedelta(days=84),
    priority=9,
    targets=[GoalTarget(
        target_type=TargetType.RACE_PERFORMANCE,
        activity_category=ActivityCategory.RUN,
        distance_m=42195,
        target_time_s=3.5 * 3600,
    )],
)


def build_trajectory() -> list[ProjectionPoint]:
    schedule = [tss for week in WEEKS for tss in week]
    schedule.append(0)  # marathon day itself
    for day, tss in RACE_DAY_TSS.items():
        schedule[day] = tss

    fitness, fatigue = START_FITNESS, START_FATIGUE
    points = []
    for day, tss in enumerate(schedule):
        # Morning state: yesterday's load is already absorbed.
        points.append(ProjectionPoint(
            date=START_DATE + datetime.timedelta(days=day),
            fitness=round(fitness, 2),
            fatigue=round(fatigue, 2),
        ))
        fitness += (tss - fitness) / CTL_DAYS
        fatigue += (tss - fatigue) / ATL_DAYS
    return points


def main():
    setup_logging()
    points = build_trajectory()
    goals = [HALF_MARATHON, MARATHON]
    timeline = compose_readiness_timeline(points, goals)
    goal_days = {points[a.point_index].date: goals[a.goal_index].name for a in timeline.anchors}

    print()
    print("=" * 84)
    print(
        f"{'Date':<12} {'CTL':>7} {'ATL':>7} {'TSB':>7} "
        f"{'Base':>7} {'Penalty':>8} {'Score':>7}  {'Goal'}"
    )
    print("=" * 84)

    for point, readiness in zip(points, timeline.points):
        print(
            f"{point.date.isoformat():<12} {point.fitness:>7.1f} {point.fatigue:>7.1f} "
            f"{point.balance:>7.1f} {readiness.base_score:>7.1f} "
            f"{readiness.fatigue_penalty:>8.1f} {readiness.score:>7.1f}  "
            f"{goal_days.get(point.date, '')}"
        )

    print()
    print("=" * 84)
    print(
        f"{'Goal':<22} {'State':>7} {'Attain':>7} {'Req CTL':>8} "
        f"{'CTL':>7} {'Full':>5} {'Func':>5} {'Readiness':>10}"
    )
    print("=" * 84)

    for assessment in assess_goals(points, goals):
        profile = assessment.recovery_profile
        print(
            f"{goals[assessment.goal_index].name:<22} "
            f"{assessment.state_readiness_score:>7.1f} "
            f"{assessment.target_attainment_score:>7.1f} "
            f"{assessment.required_fitness:>8.1f} {assessment.projected_fitness:>7.1f} "
            f"{profile.recovery_days_full:>5} {profile.recovery_days_functional:>5} "
            f"{assessment.goal_readiness_score:>10.1f}"
        )
    print()


if __name__ == "__main__":
    main()
