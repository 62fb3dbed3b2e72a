"""Lap-pattern run classifier.

Assigns one run type to an activity from its summary metrics, its laps, the
athlete's HR zones and easy-pace reference. Everything here is pure: the same
inputs always give the same ``ClassificationResult``.

The decision is an ordered chain of rules; the first rule that returns a
result wins and the pace/HR fallback closes the chain:

1. ``race_override``       Strava race flag, beats everything
2. ``unstructured_laps``   no laps, auto laps or too few laps -> fallback
3. ``progression``         core laps get steadily faster
4. ``tempo_block``         fewer than two work laps but a sustained fast block
5. ``intervals_or_fartlek`` alternating work/rest, split on regularity
"""

import math
import statistics
from dataclasses import dataclass
from functools import cached_property
from typing import Callable, Optional, Sequence

from pacelab.classification.schemas import (
    ClassificationResult,
    HrZonesSnapshot,
    LapSplit,
    RunSummary,
)
from pacelab.classification.zones import hr_zone

RACE_WORKOUT_TYPE = 1

# Auto-lap bands (meters)
KM_LAP = 1000
KM_LAP_TOLERANCE = 120
MILE_LAP = 1609
MILE_LAP_TOLERANCE = 150

MIN_STRUCTURED_LAPS = 3
PROGRESSION_SLACK = 1.01  # a lap may be up to 1% slower and still count
PROGRESSION_SHARE = 0.8
WORK_PACE_RATIO = 0.92  # of median lap pace
TEMPO_PACE_RATIO = 0.92  # of easy pace
INTERVAL_MAX_CV = 0.15

FALLBACK_SLOW_RATIO = 1.05
FALLBACK_FAST_RATIO = 0.95
LONG_RUN_METERS = 15000

# (meters, tolerance, label), checked in order
INTERVAL_DISTANCES: tuple[tuple[int, int, str], ...] = (
    (1000, 150, "1km"),
    (800, 100, "800m"),
    (400, 80, "400m"),
    (1609, 200, "1mi"),
    (1600, 200, "1mi"),  # track mile
    (2000, 200, "2km"),
    (1200, 150, "1200m"),
)


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _format_pace(seconds_per_km: float) -> str:
    minutes, seconds = divmod(_round_half_up(seconds_per_km), 60)
    return f"{minutes}:{seconds:02d}"


def lap_pace(lap: LapSplit) -> float:
    """Seconds per km; a lap without distance counts as infinitely slow."""
    if lap.distance <= 0:
        return math.inf
    return lap.moving_time / lap.distance * 1000


def coefficient_of_variation(values: Sequence[float]) -> float:
    if len(values) < 2:
        return 0.0
    mean = statistics.fmean(values)
    if mean == 0:
        return 0.0
    return statistics.pstdev(values) / mean


def is_auto_lap_sequence(laps: Sequence[LapSplit]) -> bool:
    """True when laps look device-generated (every km or mile).

    First and last laps are ignored because they are usually partial.
    """
    if len(laps) <= 2:
        return True

    inner = [lap.distance for lap in laps[1:-1]]
    if all(abs(d - KM_LAP) < KM_LAP_TOLERANCE for d in inner):
        return True
    if all(abs(d - MILE_LAP) < MILE_LAP_TOLERANCE for d in inner):
        return True
    return False


@dataclass
class ClassificationContext:
    """Inputs of one classification plus lazily derived lap metrics."""

    run: RunSummary
    laps: Sequence[LapSplit]
    hr_zones: Optional[HrZonesSnapshot]
    easy_pace: float

    @cached_property
    def lap_paces(self) -> list[float]:
        return [lap_pace(lap) for lap in self.laps]

    @cached_property
    def work_laps(self) -> list[int]:
        """Indexes of laps meaningfully faster than the median lap."""
        threshold = statistics.median(self.lap_paces) * WORK_PACE_RATIO
        return [i for i, pace in enumerate(self.lap_paces) if pace <= threshold]

    @cached_property
    def rest_laps(self) -> list[int]:
        work = set(self.work_laps)
        return [i for i in range(len(self.laps)) if i not in work]


Rule = Callable[[ClassificationContext], Optional[ClassificationResult]]


# =========================================================================
# Fallback
# =========================================================================


def classify_by_pace_and_hr(ctx: ClassificationContext) -> ClassificationResult:
    """Classify from overall pace against easy pace, refined by HR zone."""
    run = ctx.run
    easy = ctx.easy_pace
    pace = run.moving_time / run.distance * 1000 if run.distance > 0 else easy

    zone = None
    if run.average_heartrate and ctx.hr_zones is not None:
        zone = hr_zone(run.average_heartrate, ctx.hr_zones)

    if pace > easy * FALLBACK_SLOW_RATIO:
        if zone is not None and zone <= 2:
            return ClassificationResult(run_type="recovery", confidence="medium")
        return ClassificationResult(run_type="easy", confidence="low")

    if pace >= easy * FALLBACK_FAST_RATIO:
        if run.distance >= LONG_RUN_METERS:
            return ClassificationResult(run_type="long_run", confidence="medium")
        return ClassificationResult(run_type="easy", confidence="medium")

    if zone is not None and zone >= 4:
        return ClassificationResult(run_type="threshold", confidence="medium")
    if zone == 3:
        return ClassificationResult(run_type="tempo", confidence="medium")

    if run.distance >= LONG_RUN_METERS:
        return ClassificationResult(run_type="long_run", confidence="low")

    return ClassificationResult(run_type="unknown", confidence="low")


# =========================================================================
# Rules
# =========================================================================


def race_override(ctx: ClassificationContext) -> Optional[ClassificationResult]:
    if ctx.run.workout_type == RACE_WORKOUT_TYPE:
        return ClassificationResult(run_type="race", confidence="high")
    return None


def unstructured_laps(ctx: ClassificationContext) -> Optional[ClassificationResult]:
    """Laps carry no workout structure: decide on pace and HR alone."""
    if (
        not ctx.laps
        or is_auto_lap_sequence(ctx.laps)
        or len(ctx.laps) < MIN_STRUCTURED_LAPS
    ):
        return classify_by_pace_and_hr(ctx)
    return None


def progression(ctx: ClassificationContext) -> Optional[ClassificationResult]:
    paces = ctx.lap_paces
    # Drop warmup and cooldown when there is enough to spare
    core = paces[1:-1] if len(paces) > 4 else paces

    faster = sum(
        1 for prev, cur in zip(core, core[1:]) if cur < prev * PROGRESSION_SLACK
    )
    if faster >= (len(core) - 1) * PROGRESSION_SHARE:
        return ClassificationResult(run_type="progression", confidence="high")
    return None


def _longest_fast_block(paces: Sequence[float], threshold: float) -> Optional[tuple[int, int]]:
    best: Optional[tuple[int, int]] = None
    start = None
    for i, pace in enumerate([*paces, math.inf]):
        if pace < threshold:
            if start is None:
                start = i
            continue
        if start is not None:
            if best is None or (i - start) > (best[1] - best[0] + 1):
                best = (start, i - 1)
            start = None
    return best


def tempo_block(ctx: ClassificationContext) -> Optional[ClassificationResult]:
    """Sustained block faster than easy pace, bracketed by warmup or cooldown.

    Only considered when the median split found fewer than two work laps.
    """
    if len(ctx.work_laps) >= 2:
        return None

    block = _longest_fast_block(ctx.lap_paces, ctx.easy_pace * TEMPO_PACE_RATIO)
    if block is None:
        return None

    first, last = block
    if last - first + 1 < 2:
        return None
    if first == 0 and last == len(ctx.laps) - 1:
        return None

    block_laps = ctx.laps[first:last + 1]
    distance = sum(lap.distance for lap in block_laps)
    pace = sum(lap.moving_time for lap in block_laps) / distance * 1000

    detail = f"{distance / 1000:.1f}km @ {_format_pace(pace)}/km"
    return ClassificationResult(run_type="tempo", run_type_detail=detail, confidence="high")


def is_alternating(work_laps: Sequence[int], lap_count: int) -> bool:
    """Work and rest laps alternate: type changes at least once per work lap."""
    if len(work_laps) < 2:
        return False
    work = set(work_laps)
    kinds = [i in work for i in range(lap_count)]
    transitions = sum(1 for prev, cur in zip(kinds, kinds[1:]) if prev != cur)
    return transitions >= len(work_laps)


def format_interval_detail(count: int, average_distance: float) -> str:
    for meters, tolerance, label in INTERVAL_DISTANCES:
        if abs(average_distance - meters) < tolerance:
            return f"{count}x{label}"
    return f"{count}x{_round_half_up(average_distance / 100) * 100}m"


def format_fartlek_detail(count: int, average_work: float, average_rest: float) -> str:
    if average_work < 60:
        return f"{count}x{_round_half_up(average_work / 10) * 10}s"

    work_min = _round_half_up(average_work / 60)
    rest_min = _round_half_up(average_rest / 60)
    if rest_min > 0:
        return f"{count}x{work_min}/{rest_min}min"
    return f"{count}x{work_min}min"


def intervals_or_fartlek(ctx: ClassificationContext) -> Optional[ClassificationResult]:
    work = ctx.work_laps
    if len(work) < 2 or not is_alternating(work, len(ctx.laps)):
        return None

    work_distances = [ctx.laps[i].distance for i in work]
    count = len(work)

    if coefficient_of_variation(work_distances) < INTERVAL_MAX_CV:
        detail = format_interval_detail(count, statistics.fmean(work_distances))
        return ClassificationResult(
            run_type="intervals", run_type_detail=detail, confidence="high"
        )

    average_work = statistics.fmean(ctx.laps[i].moving_time for i in work)
    rest = ctx.rest_laps
    average_rest = statistics.fmean(ctx.laps[i].moving_time for i in rest) if rest else 0.0
    detail = format_fartlek_detail(count, average_work, average_rest)
    return ClassificationResult(run_type="fartlek", run_type_detail=detail, confidence="high")


RULES: tuple[Rule, ...] = (
    race_override,
    unstructured_laps,
    progression,
    tempo_block,
    intervals_or_fartlek,
)


def classify_run(
    run: RunSummary,
    laps: Sequence[LapSplit],
    hr_zones: Optional[HrZonesSnapshot],
    easy_pace: float,
) -> ClassificationResult:
    """Classify one activity. Never fails; worst case is ``unknown``/low."""
    ctx = ClassificationContext(
        run=run,
        laps=sorted(laps, key=lambda lap: lap.lap_index),
        hr_zones=hr_zones,
        easy_pace=easy_pace,
    )
    for rule in RULES:
        result = rule(ctx)
        if result is not None:
            return result
    return classify_by_pace_and_hr(ctx)
