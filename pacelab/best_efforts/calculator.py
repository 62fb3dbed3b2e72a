"""Pure functions for best effort calculations.

No database or network access - segment search over raw streams, the realism
floor and the ranking merge can all be tested on plain lists.
"""

from dataclasses import dataclass
from typing import Iterable, Optional, Protocol, Sequence, TypeVar

DISTANCE_TOLERANCE = 50  # meters either side of the target

# Computed distances, name -> meters
STANDARD_DISTANCES: dict[str, int] = {
    "1K": 1000,
    "5K": 5000,
    "10K": 10000,
    "HALF": 21097,
    "MARATHON": 42195,
}

# Strava best effort names -> our distance names
STRAVA_DISTANCE_NAMES: dict[str, str] = {
    "400m": "400M",
    "1/2 mile": "800M",
    "1K": "1K",
    "1 mile": "1MILE",
    "2 mile": "2MILE",
    "5K": "5K",
    "10K": "10K",
    "15K": "15K",
    "10 mile": "10MILE",
    "20K": "20K",
    "Half-Marathon": "HALF",
    "30K": "30K",
    "Marathon": "MARATHON",
}

# Fastest believable pace (seconds per km) per distance
MIN_REALISTIC_PACE_PER_KM: dict[int, float] = {
    1000: 2.5 * 60,
    5000: 3.0 * 60,
    10000: 3.0 * 60,
    21097: 3.0 * 60,
    42195: 3.0 * 60,
}
DEFAULT_MIN_PACE_PER_KM = 3.0 * 60

# Only search distances that fit comfortably inside the activity
SEARCH_DISTANCE_RATIO = 0.95


@dataclass(frozen=True)
class SegmentResult:
    """Fastest window found for one target distance."""

    time_seconds: int  # normalized to the target distance
    distance_meters: int  # actual window distance
    start_index: int
    end_index: int


@dataclass(frozen=True)
class ComputedEffort:
    distance_name: str
    distance_meters: int
    elapsed_time: int
    pace_per_km: float
    start_index: int
    end_index: int


class RankedEffort(Protocol):
    """Anything the merge can rank: one effort of one activity."""

    activity_id: int
    elapsed_time: int


E = TypeVar("E", bound=RankedEffort)


def find_fastest_segment(
    time: Sequence[float],
    distance: Sequence[float],
    target_distance: float,
) -> Optional[SegmentResult]:
    """Find the fastest contiguous window covering ``target_distance``.

    Parameters
    ----------
    time : sequence of float
        Elapsed seconds per sample, non-decreasing
    distance : sequence of float
        Cumulative meters per sample, non-decreasing
    target_distance : float
        Distance to cover in meters

    Returns
    -------
    SegmentResult | None
        None when the stream is shorter than the target (never extrapolated)

    Raises
    ------
    ValueError
        If the two streams differ in length

    Notes
    -----
    Two-pointer sweep: for every right edge the left edge moves forward while
    the window is longer than ``target + 50 m``, then every start that keeps
    the window at least ``target - 50 m`` long is scored. Windows are
    compared by time scaled to exactly the target distance, so a slightly
    long window is not penalized. On ties the earliest window wins.
    """
    if len(time) != len(distance):
        raise ValueError(
            f"time ({len(time)}) and distance ({len(distance)}) streams differ in length"
        )
    if not distance or distance[-1] < target_distance:
        return None

    best: Optional[tuple[float, float, int, int]] = None
    start = 0

    for end in range(len(distance)):
        while (
            start < end
            and distance[end] - distance[start] > target_distance + DISTANCE_TOLERANCE
        ):
            start += 1

        # Every start from here on that still keeps the window in the band
        for left in range(start, end):
            window_distance = distance[end] - distance[left]
            if window_distance <= 0 or window_distance < target_distance - DISTANCE_TOLERANCE:
                break

            window_time = time[end] - time[left]
            normalized = window_time / window_distance * target_distance

            if best is None or normalized < best[0]:
                best = (normalized, window_distance, left, end)

    if best is None:
        return None

    normalized, window_distance, start, end = best
    return SegmentResult(
        time_seconds=round(normalized),
        distance_meters=round(window_distance),
        start_index=start,
        end_index=end,
    )


def pace_per_km(time_seconds: float, distance_meters: float) -> float:
    return time_seconds / distance_meters * 1000


def is_realistic(distance_meters: int, time_seconds: float) -> bool:
    """False when the implied pace beats the floor for that distance (GPS noise)."""
    floor = MIN_REALISTIC_PACE_PER_KM.get(distance_meters, DEFAULT_MIN_PACE_PER_KM)
    return pace_per_km(time_seconds, distance_meters) >= floor


def distances_to_search(activity_distance: float) -> dict[str, int]:
    """Standard distances no longer than 95% of the activity."""
    limit = activity_distance * SEARCH_DISTANCE_RATIO
    return {name: meters for name, meters in STANDARD_DISTANCES.items() if meters <= limit}


def compute_best_efforts(
    time: Sequence[float],
    distance: Sequence[float],
    activity_distance: float,
) -> list[ComputedEffort]:
    """Search every applicable standard distance in one activity's stream.

    Unrealistic segments are dropped here and never reach the caller.
    """
    efforts = []
    for name, meters in distances_to_search(activity_distance).items():
        segment = find_fastest_segment(time, distance, meters)
        if segment is None:
            continue
        if not is_realistic(meters, segment.time_seconds):
            continue
        efforts.append(
            ComputedEffort(
                distance_name=name,
                distance_meters=meters,
                elapsed_time=segment.time_seconds,
                pace_per_km=pace_per_km(segment.time_seconds, meters),
                start_index=segment.start_index,
                end_index=segment.end_index,
            )
        )
    return efforts


def merge_best_efforts(
    native: Iterable[E],
    computed: Iterable[E],
    limit: int,
) -> list[E]:
    """Merge provider-native and computed efforts for one distance.

    A native effort replaces the computed one of the same activity. The result
    is sorted by elapsed time (activity id breaks ties) and truncated to
    ``limit``.
    """
    by_activity: dict[int, E] = {}

    for effort in native:
        current = by_activity.get(effort.activity_id)
        if current is None or effort.elapsed_time < current.elapsed_time:
            by_activity[effort.activity_id] = effort

    native_ids = set(by_activity)
    for effort in computed:
        if effort.activity_id in native_ids:
            continue
        current = by_activity.get(effort.activity_id)
        if current is None or effort.elapsed_time < current.elapsed_time:
            by_activity[effort.activity_id] = effort

    merged = sorted(by_activity.values(), key=lambda e: (e.elapsed_time, e.activity_id))
    return merged[:limit]


def format_duration(seconds: float) -> str:
    """``h:mm:ss`` above an hour, ``m:ss`` below."""
    total = round(seconds)
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def format_pace(seconds_per_km: float) -> str:
    minutes, secs = divmod(round(seconds_per_km), 60)
    return f"{minutes}:{secs:02d}/km"
