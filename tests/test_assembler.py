"""Method selection, confidence and the assembled estimate."""

from __future__ import annotations

import pytest

from immowert.core.utils import round_money
from immowert.data.base import RegionalReferenceValue
from immowert.valuation.assembler import assemble, confidence_and_spread, evaluate, select_method
from immowert.valuation.inputs import PropertyInput
from immowert.valuation.result import (
    SRC_COMPARISON,
    SRC_COST,
    SRC_INCOME,
    SRC_NATIONAL_AVERAGE,
    Confidence,
    Method,
)


def _apartment(**kw):
    defaults = dict(kind="apartment", living_area=80, construction_year=1985,
                    modernization="partially modernized", energy="average", fitout="average")
    defaults.update(kw)
    return PropertyInput.from_raw(**defaults)


def _assert_consistent(result):
    assert result.total_value > 0
    assert result.price_per_m2 == round_money(result.total_value / result.living_area)
    assert result.value_range.min <= result.total_value <= result.value_range.max
    assert result.price_per_m2_range.min <= result.price_per_m2 <= result.price_per_m2_range.max
    assert result.building_value >= 0


# ---------------------------------------------------------------------------
# Selection tables
# ---------------------------------------------------------------------------

class TestSelection:
    def test_select_method(self):
        assert select_method(True, True, True, 0) == Method.COMPARISON
        assert select_method(True, False, True, 0) == Method.MARKET_INDICATION
        assert select_method(False, True, True, 500) == Method.COST_LITE
        assert select_method(False, True, True, 0) == Method.MARKET_INDICATION
        assert select_method(False, True, False, 500) == Method.MARKET_INDICATION

    def test_confidence_table(self):
        assert confidence_and_spread(Method.COMPARISON, True, True, True, False, False) == (Confidence.HIGH, 0.06)
        assert confidence_and_spread(Method.COMPARISON, True, True, False, False, False) == (Confidence.HIGH, 0.10)
        assert confidence_and_spread(Method.COMPARISON, True, None, False, False, False) == (Confidence.MEDIUM, 0.15)
        assert confidence_and_spread(Method.COST_LITE, True, True, True, False, False) == (Confidence.HIGH, 0.08)
        assert confidence_and_spread(Method.COST_LITE, False, False, False, False, False) == (Confidence.MEDIUM, 0.15)
        assert confidence_and_spread(Method.COST_LITE, True, True, True, False, True) == (Confidence.LOW, 0.20)
        assert confidence_and_spread(Method.COST_LITE, True, True, True, True, False) == (Confidence.LOW, 0.25)
        assert confidence_and_spread(Method.MARKET_INDICATION, False, None, False, False, False) == (Confidence.LOW, 0.25)
        assert confidence_and_spread(Method.MARKET_INDICATION, True, None, False, False, False) == (Confidence.MEDIUM, 0.15)


# ---------------------------------------------------------------------------
# Cost-lite
# ---------------------------------------------------------------------------

class TestCostLite:
    def test_reference_house(self, house, source_data, land_value, market_sample):
        data = source_data(land_value=land_value(), market=market_sample())
        result = evaluate(house, data)

        assert result.method == Method.COST_LITE
        assert result.confidence == Confidence.HIGH
        assert result.spread == pytest.approx(0.08)
        assert result.income_value is not None
        assert SRC_INCOME in result.sources
        assert SRC_COST in result.sources
        assert result.land_value == 125_000
        # (2700 - 0.13 / 0.15 * 720) €/m² x 140 m²
        assert result.total_value == 290_640
        assert result.total_value == result.land_value + result.building_value
        assert result.value_range.min == 267_389
        assert result.value_range.max == 313_891
        _assert_consistent(result)

    def test_income_note_confirms_close_value(self, house, source_data, land_value, market_sample):
        result = assemble(house, source_data(land_value=land_value(), market=market_sample()))
        assert any(n.startswith("Income value confirms the valuation") for n in result.notes)

    def test_total_is_rounded_once(self, source_data, land_value, market_sample):
        prop = PropertyInput.from_raw(kind="house", living_area=140, plot_area=501, construction_year=1985,
                                      modernization="partially modernized", energy="average", fitout="average")
        result = assemble(prop, source_data(land_value=land_value(250.5), market=market_sample()))
        # land 125,500.5 and building 165,139.5 would round to 290,641 separately
        assert result.land_value == 125_501
        assert result.total_value == 290_640
        assert result.building_value == 165_139

    def test_without_market_uses_cost_model(self, house, source_data, land_value):
        result = evaluate(house, source_data(land_value=land_value()))
        assert result.method == Method.COST_LITE
        assert result.income_value is None
        assert any(n.startswith("Cost model:") for n in result.notes)
        assert result.total_value == result.land_value + result.building_value
        _assert_consistent(result)

    def test_estimated_plot_downgrades_confidence(self, source_data, land_value, market_sample):
        prop = PropertyInput.from_raw(kind="house", living_area=140, construction_year=1985)
        result = evaluate(prop, source_data(land_value=land_value(), market=market_sample()))
        assert result.method == Method.COST_LITE
        assert result.confidence == Confidence.LOW
        assert result.spread == pytest.approx(0.20)
        assert any("Plot area estimated at 420 m²" in n for n in result.notes)

    def test_estimated_land_value_is_medium(self, house, source_data, land_value, market_sample):
        result = evaluate(house, source_data(land_value=land_value(estimated=True), market=market_sample()))
        assert result.confidence == Confidence.MEDIUM
        assert any("not an official reference value" in n for n in result.notes)

    def test_old_reference_date_is_corrected(self, house, source_data, land_value, market_sample):
        result = assemble(house, source_data(land_value=land_value(reference_date="2020-01-01"), market=market_sample()))
        assert result.factors.valuation_date > 0
        assert result.land_value > 125_000
        assert any("flat estimate" in n for n in result.notes)


# ---------------------------------------------------------------------------
# Comparison
# ---------------------------------------------------------------------------

class TestComparison:
    def test_apartment_with_rent_and_land(self, source_data, land_value, market_sample):
        result = evaluate(_apartment(), source_data(land_value=land_value(), market=market_sample()))
        assert result.method == Method.COMPARISON
        assert result.confidence == Confidence.HIGH
        assert result.spread == pytest.approx(0.06)
        assert result.income_value is not None
        assert SRC_COMPARISON in result.sources
        assert SRC_INCOME in result.sources
        _assert_consistent(result)

    def test_apartment_without_rent(self, source_data, land_value, market_sample):
        result = evaluate(_apartment(), source_data(land_value=land_value(), market=market_sample(rent=None)))
        assert result.method == Method.COMPARISON
        assert result.income_value is None
        assert result.spread == pytest.approx(0.10)
        assert result.total_value == round(2076 * 80)

    def test_apartment_without_land_value(self, source_data, market_sample):
        result = evaluate(_apartment(), source_data(market=market_sample(rent=None)))
        assert result.confidence == Confidence.MEDIUM
        assert result.land_value == 0


# ---------------------------------------------------------------------------
# Market indication and degradation
# ---------------------------------------------------------------------------

class TestMarketIndication:
    def test_regional_average_without_any_source(self, source_data):
        prop = PropertyInput.from_raw(kind="house", living_area=120, construction_year=2000)
        result = evaluate(prop, source_data())
        assert result.method == Method.MARKET_INDICATION
        assert result.confidence == Confidence.LOW
        assert "Regional average Nordrhein-Westfalen" in result.sources
        # 2200 €/m² x (1 - 0.04) x 120 m²
        assert result.total_value == 253_440
        _assert_consistent(result)

    def test_national_average_without_region(self, source_data):
        prop = PropertyInput.from_raw(kind="house", living_area=120, construction_year=2000)
        result = evaluate(prop, source_data(region=None))
        assert SRC_NATIONAL_AVERAGE in result.sources

    def test_house_with_market_but_no_land(self, source_data, market_sample):
        prop = PropertyInput.from_raw(kind="house", living_area=120, plot_area=400, construction_year=2000)
        result = evaluate(prop, source_data(market=market_sample()))
        assert result.method == Method.MARKET_INDICATION
        assert result.confidence == Confidence.MEDIUM
        assert result.land_value == 0

    def test_missing_living_area_is_estimated(self, source_data, market_sample):
        prop = PropertyInput.from_raw(kind="house", plot_area=400)
        result = evaluate(prop, source_data(market=market_sample()))
        assert result.living_area == 160
        assert result.confidence == Confidence.LOW
        assert result.spread == pytest.approx(0.25)
        assert any("Living area estimated at 160 m²" in n for n in result.notes)
        _assert_consistent(result)

    def test_implausible_inputs_are_flagged_not_rejected(self, source_data):
        prop = PropertyInput.from_raw(kind="house", living_area=10, construction_year=1700)
        result = evaluate(prop, source_data())
        assert any("outside the plausible range" in n for n in result.notes)
        assert any("unusually small" in n for n in result.notes)
        _assert_consistent(result)


# ---------------------------------------------------------------------------
# Cross-checks and purity
# ---------------------------------------------------------------------------

class TestCrossChecks:
    def test_reference_value_deviation_note(self, house, source_data, land_value, market_sample):
        ref = RegionalReferenceValue(value_per_m2=4000, segment="EFH", reference_date="2025-01-01",
                                     source="Regional reference value")
        result = assemble(house, source_data(land_value=land_value(), market=market_sample(), reference_value=ref))
        assert "Regional reference value" in result.sources
        assert any(n.startswith("Deviation from the regional reference value") for n in result.notes)

    def test_district_granularity_note(self, house, source_data, land_value, market_sample):
        result = assemble(house, source_data(land_value=land_value(), market=market_sample(district="Ehrenfeld")))
        assert any("district Ehrenfeld" in n for n in result.notes)

    def test_evaluate_is_pure(self, house, source_data, land_value, market_sample):
        data = source_data(land_value=land_value(), market=market_sample())
        assert evaluate(house, data) == evaluate(house, data)
        assert assemble(house, data) == assemble(house, data)
