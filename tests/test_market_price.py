"""Listing discount and band interpolation."""

from __future__ import annotations

import pytest

from immowert.data.base import PriceBand, PriceIndexPoint
from immowert.valuation.market_price import adjusted_price_per_m2, listing_discount


BAND = PriceBand(median=3000, low=2200, high=4000)


def _series(yoy: float):
    points = [PriceIndexPoint(f"2024-Q{q}", 100.0) for q in range(1, 5)]
    return points + [PriceIndexPoint("2025-Q1", 100.0 * (1 + yoy))]


class TestListingDiscount:
    def test_base_by_tier(self):
        assert listing_discount("A") == pytest.approx(0.07)
        assert listing_discount("B") == pytest.approx(0.10)
        assert listing_discount("C") == pytest.approx(0.13)

    def test_rising_market_shrinks_discount(self):
        assert listing_discount("B", _series(0.10)) == pytest.approx(0.05)

    def test_falling_market_widens_discount_up_to_cap(self):
        assert listing_discount("B", _series(-0.06)) == pytest.approx(0.13)
        assert listing_discount("C", _series(-0.30)) == pytest.approx(0.18)
        assert listing_discount("A", _series(0.30)) == pytest.approx(0.03)

    def test_short_series_is_ignored(self):
        assert listing_discount("B", _series(0.10)[1:]) == pytest.approx(0.10)


class TestAdjustedPrice:
    def test_zero_factor_gives_discounted_median(self):
        assert adjusted_price_per_m2(BAND, 0.0, 0.10) == pytest.approx(2700)

    def test_band_edges(self):
        assert adjusted_price_per_m2(BAND, 0.15, 0.10) == pytest.approx(3600)
        assert adjusted_price_per_m2(BAND, 0.40, 0.10) == pytest.approx(3600)
        assert adjusted_price_per_m2(BAND, -0.15, 0.10) == pytest.approx(1980)

    def test_interpolates_inside_band(self):
        assert adjusted_price_per_m2(BAND, -0.13, 0.10) == pytest.approx(2700 - 0.13 / 0.15 * 720)

    def test_soft_extrapolation_below_min(self):
        assert adjusted_price_per_m2(BAND, -0.30, 0.10) == pytest.approx(1980 - 0.30 * 720)

    def test_floor_at_quarter_of_median(self):
        assert adjusted_price_per_m2(BAND, -3.0, 0.10) == pytest.approx(675)

    def test_monotonic_in_factor(self):
        prices = [adjusted_price_per_m2(BAND, f / 100, 0.10) for f in range(-60, 31, 5)]
        assert prices == sorted(prices)

    def test_without_min_max_scales_median(self):
        band = PriceBand(median=3000)
        assert adjusted_price_per_m2(band, -0.10, 0.10) == pytest.approx(2430)

    def test_wide_band_is_not_trusted(self):
        band = PriceBand(median=3000, low=500, high=5000)
        assert adjusted_price_per_m2(band, 0.10, 0.10) == pytest.approx(2970)
        assert adjusted_price_per_m2(band, -0.90, 0.10) == pytest.approx(675)
