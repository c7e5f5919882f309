"""Tests for the metadata-driven LST / NDVI estimators."""

from datetime import datetime, timezone

import pytest

from urban_snapshot.services.estimation import (
    METHOD_ESTIMATED,
    METHOD_HIGH,
    METHOD_MODERATE,
    calculation_method,
    cloud_term,
    confidence,
    estimate_land_surface_temperature,
    estimate_vegetation_index,
    seasonal_temperature_base,
    solar_term,
    urban_heat_term,
)

SUMMER = datetime(2026, 7, 15, 17, 0, tzinfo=timezone.utc)
WINTER = datetime(2026, 1, 15, 17, 0, tzinfo=timezone.utc)


class TestDeterminism:
    def test_identical_inputs_give_identical_samples(self):
        a = estimate_land_surface_temperature(SUMMER, 40.7128, -74.006, 35.0, 2.7)
        b = estimate_land_surface_temperature(SUMMER, 40.7128, -74.006, 35.0, 2.7)
        assert (a.value, a.confidence_pct, a.method) == (b.value, b.confidence_pct, b.method)
        assert a == b

    def test_urban_term_is_not_random(self):
        values = {urban_heat_term(40.7128, -74.006) for _ in range(20)}
        assert values == {5.0}

    def test_ndvi_is_deterministic(self):
        a = estimate_vegetation_index(SUMMER, 48.85, 2.35, 20.0, 5.0)
        b = estimate_vegetation_index(SUMMER, 48.85, 2.35, 20.0, 5.0)
        assert a == b

    def test_naive_timestamp_is_treated_as_utc(self):
        naive = SUMMER.replace(tzinfo=None)
        assert estimate_land_surface_temperature(naive, 10, 10, 0, 5) == \
            estimate_land_surface_temperature(SUMMER, 10, 10, 0, 5)


class TestConfidence:
    @pytest.mark.parametrize("volume", [0.5, 1.9, 2.0, 2.5, 3.0, 4.5, 10.0])
    def test_monotonic_in_cloud_cover(self, volume):
        scores = [confidence(cloud, volume) for cloud in range(0, 101, 5)]
        assert all(later <= earlier for earlier, later in zip(scores, scores[1:]))
        assert all(50 <= s <= 100 for s in scores)

    @pytest.mark.parametrize("cloud, volume, expected", [
        (10, 5.0, 100),
        (70, 5.0, 85),
        (90, 5.0, 70),
        (10, 2.5, 90),
        (10, 1.0, 80),
        (70, 2.5, 75),
        (90, 1.0, 50),
    ])
    def test_penalties(self, cloud, volume, expected):
        assert confidence(cloud, volume) == expected

    def test_sample_flags_low_confidence(self):
        sample = estimate_land_surface_temperature(SUMMER, 0, 0, 95, 0.5)
        assert sample.confidence_pct == 50
        assert sample.low_confidence is True
        assert sample.method == METHOD_ESTIMATED

    def test_clean_sample_is_not_flagged(self):
        sample = estimate_land_surface_temperature(SUMMER, 0, 0, 5, 5)
        assert sample.confidence_pct == 100
        assert sample.low_confidence is False

    def test_confidence_stays_in_range_for_out_of_range_inputs(self):
        sample = estimate_land_surface_temperature(SUMMER, 0, 0, 250, -3)
        assert 50 <= sample.confidence_pct <= 100
        assert sample.basis_cloud_cover_pct == 100
        assert sample.basis_data_volume_mb == 0


class TestMethod:
    @pytest.mark.parametrize("cloud, volume, expected", [
        (10, 5.0, METHOD_HIGH),
        (29, 3.1, METHOD_HIGH),
        (30, 5.0, METHOD_MODERATE),
        (45, 2.5, METHOD_MODERATE),
        (10, 2.0, METHOD_ESTIMATED),
        (60, 5.0, METHOD_ESTIMATED),
        (90, 5.0, METHOD_ESTIMATED),
    ])
    def test_tiers(self, cloud, volume, expected):
        assert calculation_method(cloud, volume) == expected


class TestTerms:
    def test_cloud_term_is_linear(self):
        assert cloud_term(0) == 0
        assert cloud_term(50) == pytest.approx(-4.0)
        assert cloud_term(100) == pytest.approx(-8.0)

    def test_cloud_cover_lowers_lst_by_up_to_eight_degrees(self):
        clear = estimate_land_surface_temperature(SUMMER, 10, 10, 0, 3.0)
        overcast = estimate_land_surface_temperature(SUMMER, 10, 10, 100, 3.0)
        assert clear.value - overcast.value == pytest.approx(8.0, abs=0.02)

    def test_solar_term_peaks_at_local_noon(self):
        # 17:00 UTC at 75°W is local solar noon
        noon = solar_term(datetime(2026, 3, 20, 17, 0, tzinfo=timezone.utc), 0.0, -75.0)
        midnight = solar_term(datetime(2026, 3, 20, 5, 0, tzinfo=timezone.utc), 0.0, -75.0)
        assert noon == pytest.approx(2.5)
        assert midnight == pytest.approx(-2.5)

    def test_seasons_flip_across_the_equator(self):
        assert seasonal_temperature_base(WINTER, -35) > seasonal_temperature_base(WINTER, 35)
        assert seasonal_temperature_base(SUMMER, 35) > seasonal_temperature_base(SUMMER, -35)

    def test_equator_is_warmer_than_poles(self):
        assert seasonal_temperature_base(SUMMER, 0) > seasonal_temperature_base(SUMMER, 80)

    def test_urban_bonus_only_inside_known_regions(self):
        assert urban_heat_term(40.7128, -74.006) == pytest.approx(5.0)
        assert 2.0 < urban_heat_term(40.9, -74.1) < 5.0
        assert urban_heat_term(0.0, 0.0) == 0.0


class TestRanges:
    @pytest.mark.parametrize("lat", [-90, -45, 0, 45, 90])
    @pytest.mark.parametrize("when", [SUMMER, WINTER])
    def test_lst_is_clamped(self, lat, when):
        sample = estimate_land_surface_temperature(when, lat, 0, 0, 10)
        assert -50 <= sample.value <= 60
        assert sample.unit == "°C"

    @pytest.mark.parametrize("lat", [-90, -45, 0, 45, 90])
    def test_ndvi_is_clamped(self, lat):
        sample = estimate_vegetation_index(SUMMER, lat, 0, 100, 0)
        assert -1 <= sample.value <= 1
        assert sample.unit == "NDVI"

    def test_city_centre_is_less_green(self):
        city = estimate_vegetation_index(SUMMER, 40.7128, -74.006, 10, 5)
        rural = estimate_vegetation_index(SUMMER, 40.7128, -76.5, 10, 5)
        assert city.value < rural.value

    def test_non_finite_inputs_are_rejected(self):
        with pytest.raises(ValueError):
            estimate_land_surface_temperature(SUMMER, 0, 0, float("nan"), 1)
        with pytest.raises(ValueError):
            estimate_vegetation_index(SUMMER, 0, 0, 10, float("inf"))
