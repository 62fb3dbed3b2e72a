"""Heart-rate zones and the easy-pace reference.

Pure functions; the classification service feeds them from the database.
"""

import math
from typing import Sequence

from pacelab.classification.schemas import HrZonesSnapshot, ZoneBound

# Zone edges relative to the thresholds
ZONE1_CEILING = 0.88  # x lt1
ZONE5_FLOOR = 0.97  # x max_hr

DEFAULT_ZONES = HrZonesSnapshot(
    lt1=148, lt2=170, max_hr=190, source="estimated", confirmed=False
)
DEFAULT_EASY_PACE = 360.0  # 6:00/km


def hr_zone(heart_rate: float, zones: HrZonesSnapshot) -> int:
    """Ordinal zone 1-5 of a heart rate.

    Callers are responsible for only using confirmed zones.
    """
    if heart_rate < zones.lt1:
        return 1 if heart_rate < zones.lt1 * ZONE1_CEILING else 2
    if heart_rate < zones.lt2:
        return 3
    if heart_rate < zones.max_hr * ZONE5_FLOOR:
        return 4
    return 5


def zone_bounds(zones: HrZonesSnapshot) -> list[ZoneBound]:
    z1_top = round(zones.lt1 * ZONE1_CEILING)
    z5_floor = round(zones.max_hr * ZONE5_FLOOR)
    return [
        ZoneBound(zone=1, label="recovery", max_bpm=z1_top),
        ZoneBound(zone=2, label="easy", min_bpm=z1_top, max_bpm=zones.lt1),
        ZoneBound(zone=3, label="tempo", min_bpm=zones.lt1, max_bpm=zones.lt2),
        ZoneBound(zone=4, label="threshold", min_bpm=zones.lt2, max_bpm=z5_floor),
        ZoneBound(zone=5, label="vo2max", min_bpm=z5_floor),
    ]


def estimate_hr_zones(max_heart_rates: Sequence[float]) -> HrZonesSnapshot:
    """Estimate thresholds from the max heart rates of stored runs.

    Uses the 95th percentile rather than the maximum so a single strap
    glitch does not inflate every zone. The estimate is never confirmed.
    """
    if not max_heart_rates:
        return DEFAULT_ZONES

    ordered = sorted(max_heart_rates)
    max_hr = ordered[min(math.floor(len(ordered) * 0.95), len(ordered) - 1)]

    return HrZonesSnapshot(
        lt1=round(max_hr * 0.82),
        lt2=round(max_hr * 0.89),
        max_hr=round(max_hr),
        source="estimated",
        confirmed=False,
    )


def easy_pace_reference(paces: Sequence[float]) -> float:
    """Median of the slower 60% of run paces (seconds per km)."""
    if not paces:
        return DEFAULT_EASY_PACE

    ordered = sorted(paces)
    slower = ordered[math.floor(len(ordered) * 0.4):]
    return slower[len(slower) // 2]
