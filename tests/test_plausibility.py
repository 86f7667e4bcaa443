"""Iterative plausibility corrector."""

from __future__ import annotations

import pytest

from immowert.valuation.plausibility import SIGNALS, correct, run_pass
from immowert.valuation.result import SRC_PLAUSIBILITY


class TestSignals:
    def test_building_value_ceiling(self, make_result):
        result = correct(make_result(total=700_000, land=100_000, living=100))
        assert result.total_value == 500_000
        assert result.building_value == 400_000
        assert "building-ceiling" in result.settled_signals
        assert SRC_PLAUSIBILITY in result.sources
        assert any("capped at 4,000 €/m²" in n for n in result.notes)

    def test_ceiling_ignores_apartments(self, make_result):
        result = make_result(total=700_000, land=100_000, living=200, is_house=False)
        assert correct(result) == result

    def test_income_pull_strength(self, make_result):
        result = correct(make_result(total=300_000, land=50_000, income=200_000))
        # deviation 50% -> strength 25% + 25% x 30% = 32.5%
        assert result.total_value == 267_500
        assert result.settled_signals == ("income-pull",)

    def test_income_pull_strength_is_capped(self, make_result):
        result = correct(make_result(total=300_000, land=50_000, income=100_000))
        assert result.total_value == 220_000

    def test_income_within_tolerance_is_left_alone(self, make_result):
        result = make_result(total=240_000, land=50_000, income=200_000)
        assert correct(result) == result

    def test_land_share_floor(self, make_result):
        result = correct(make_result(total=220_000, land=200_000))
        assert result.total_value == 300_000
        assert result.building_value == 100_000

    def test_price_band_raises_implausibly_low_values(self, make_result):
        result = correct(make_result(total=20_000, land=0, is_house=False))
        # 20% of the national apartment average (2800 €/m²) x 100 m²
        assert result.total_value == 56_000
        assert result.price_per_m2 == 560

    def test_price_band_lowers_implausibly_high_values(self, make_result):
        result = correct(make_result(total=900_000, land=0, is_house=False, region="Sachsen-Anhalt"))
        # 300% of 1800 €/m² x 100 m²
        assert result.total_value == 540_000

    def test_price_band_keeps_building_floor_above_land(self, make_result):
        start = make_result(total=1_000_000, land=600_000, living=100, region="Sachsen-Anhalt")
        first, changed = run_pass(start)
        # ceiling 3 x 1400 x 100 = 420,000 would drop below the land value
        assert changed
        assert first.total_value == 650_000
        # the land share floor picks it up on the next pass
        result = correct(start)
        assert result.total_value == 900_000
        assert set(result.settled_signals) == {"price-band", "land-share"}

    def test_house_total_always_exceeds_land_value(self, make_result):
        # no passes allowed, so only the final floor can lift the value
        result = correct(make_result(total=100_000, land=150_000, living=100), max_passes=0)
        assert result.total_value == 200_000
        assert result.building_value == 50_000
        assert SRC_PLAUSIBILITY in result.sources
        again, changed = run_pass(result)
        assert not changed

    def test_building_floor_ignores_apartments(self, make_result):
        result = make_result(total=100_000, land=150_000, is_house=False)
        assert correct(result, max_passes=0).total_value == 100_000

    def test_ranges_follow_total(self, make_result):
        result = correct(make_result(total=220_000, land=200_000, spread=0.10))
        assert result.value_range.min == 270_000
        assert result.value_range.max == 330_000
        assert result.spread == pytest.approx(0.10)


class TestConvergence:
    def test_plausible_result_is_untouched(self, make_result):
        result = make_result(total=300_000, land=100_000, living=120)
        assert correct(result) == result

    @pytest.mark.parametrize(
        "kwargs",
        [
            dict(total=700_000, land=100_000),
            dict(total=300_000, land=50_000, income=200_000),
            dict(total=220_000, land=200_000),
            dict(total=20_000, land=0, is_house=False),
            dict(total=2_000_000, land=150_000, income=600_000, region="Thüringen"),
        ],
    )
    def test_fourth_pass_changes_nothing(self, make_result, kwargs):
        corrected = correct(make_result(**kwargs))
        again, changed = run_pass(corrected)
        assert not changed
        assert again == corrected

    def test_exhausted_passes_settle_every_signal(self, make_result):
        corrected = correct(make_result(total=700_000, land=100_000), max_passes=1)
        assert set(corrected.settled_signals) == {name for name, _ in SIGNALS}
        again, changed = run_pass(corrected)
        assert not changed
        assert again == corrected
