"""Tests for HR zones and the easy-pace reference."""

import pytest
from pydantic import ValidationError

from pacelab.classification.schemas import HrZonesSnapshot, HrZonesUpdate
from pacelab.classification.zones import (
    DEFAULT_EASY_PACE,
    DEFAULT_ZONES,
    easy_pace_reference,
    estimate_hr_zones,
    hr_zone,
    zone_bounds,
)

ZONES = HrZonesSnapshot(lt1=150, lt2=170, max_hr=190, source="manual", confirmed=True)


class TestHrZone:
    @pytest.mark.parametrize(
        "heart_rate, zone",
        [
            (120, 1),
            (131, 1),  # lt1 * 0.88 = 132
            (133, 2),
            (149, 2),
            (150, 3),
            (169, 3),
            (170, 4),
            (184, 4),  # max * 0.97 = 184.3
            (185, 5),
            (200, 5),
        ],
    )
    def test_boundaries(self, heart_rate, zone):
        assert hr_zone(heart_rate, ZONES) == zone

    def test_bounds_for_display(self):
        bounds = zone_bounds(ZONES)

        assert [b.zone for b in bounds] == [1, 2, 3, 4, 5]
        assert bounds[0].max_bpm == 132
        assert (bounds[2].min_bpm, bounds[2].max_bpm) == (150, 170)
        assert bounds[4].min_bpm == 184
        assert bounds[4].max_bpm is None


class TestEstimateHrZones:
    def test_defaults_without_data(self):
        estimate = estimate_hr_zones([])

        assert estimate == DEFAULT_ZONES
        assert (estimate.lt1, estimate.lt2, estimate.max_hr) == (148, 170, 190)
        assert estimate.confirmed is False

    def test_uses_95th_percentile(self):
        # One strap glitch at 230 must not become the max
        rates = [170 + i * 0.5 for i in range(39)] + [230]

        estimate = estimate_hr_zones(rates)

        assert estimate.max_hr == 189
        assert estimate.lt2 == round(189 * 0.89)
        assert estimate.lt1 == round(189 * 0.82)
        assert estimate.source == "estimated"
        assert estimate.confirmed is False


class TestEasyPaceReference:
    def test_default_without_runs(self):
        assert easy_pace_reference([]) == DEFAULT_EASY_PACE

    def test_median_of_slower_sixty_percent(self):
        paces = [270, 280, 290, 300, 310, 320, 330, 340, 350, 360]

        # slower 60% = 310..360, upper median
        assert easy_pace_reference(paces) == 340

    def test_order_does_not_matter(self):
        paces = [330, 300, 360, 290]

        assert easy_pace_reference(paces) == easy_pace_reference(sorted(paces))


class TestHrZonesUpdate:
    def test_thresholds_must_be_ordered(self):
        with pytest.raises(ValidationError):
            HrZonesUpdate(lt1=170, lt2=160, max_hr=190)

    def test_lt2_may_equal_max(self):
        update = HrZonesUpdate(lt1=150, lt2=185, max_hr=185, source="lactate_test")

        assert update.source == "lactate_test"
