"""Shared test fixtures and builders."""

from __future__ import annotations

import asyncio
from datetime import date

import pytest

from immowert.core.cache import FileTTLCache
from immowert.core.utils import round_money
from immowert.core.security import reset_rate_limits
from immowert.data.base import (
    GeocodeResult,
    MarketPriceSample,
    PriceBand,
    ReferenceLandValue,
)
from immowert.data.land_value import LandValueRegistry
from immowert.services.advisory_service import AdvisoryService
from immowert.services.sources import (
    CostIndexSource,
    LandValueSource,
    MarketSampleSource,
    PriceIndexSource,
    ReferenceValueSource,
)
from immowert.services.valuation_service import ValuationService
from immowert.valuation.factors import CorrectionFactors
from immowert.valuation.inputs import PropertyInput, SourceData
from immowert.valuation.result import Confidence, Method, ValuationResult, value_range


VALUATION_DATE = date(2025, 6, 1)


@pytest.fixture(autouse=True)
def _reset_rate_limits():
    reset_rate_limits()
    yield
    reset_rate_limits()


@pytest.fixture
def make_result():
    """Build a ValuationResult with consistent derived fields."""

    def _make(
        total=300_000,
        land=100_000,
        living=100.0,
        is_house=True,
        income=None,
        region=None,
        spread=0.10,
        method=Method.COST_LITE,
        confidence=Confidence.HIGH,
        building=None,
    ) -> ValuationResult:
        per_m2 = round_money(total / living)
        return ValuationResult(
            method=method,
            land_value=land,
            building_value=building if building is not None else max(0, total - land),
            total_value=total,
            price_per_m2=per_m2,
            value_range=value_range(total, spread),
            price_per_m2_range=value_range(per_m2, spread),
            income_value=income,
            confidence=confidence,
            spread=spread,
            factors=CorrectionFactors(),
            notes=(),
            sources=("Cost approach (land value + replacement cost)",),
            living_area=living,
            is_house=is_house,
            region=region,
        )

    return _make


@pytest.fixture
def market_sample():
    def _make(median=3000, low=2200, high=4000, rent=10.0, district=None, region="Nordrhein-Westfalen"):
        band = PriceBand(median=median, low=low, high=high)
        return MarketPriceSample(
            region=region,
            locality="koeln",
            district=district,
            house_buy=band,
            apartment_buy=band,
            house_rent=rent,
            apartment_rent=rent,
            period="2025-Q2",
            source="Market listings",
        )

    return _make


@pytest.fixture
def land_value():
    def _make(value=250.0, reference_date="2025-01-01", estimated=False):
        return ReferenceLandValue(
            value_per_m2=value,
            reference_date=reference_date,
            usage="W",
            zone="Zone 101",
            region="Nordrhein-Westfalen",
            source="Land reference value Nordrhein-Westfalen",
            estimated=estimated,
        )

    return _make


@pytest.fixture
def source_data():
    def _make(**kwargs) -> SourceData:
        kwargs.setdefault("valuation_date", VALUATION_DATE)
        kwargs.setdefault("region", "Nordrhein-Westfalen")
        return SourceData(**kwargs)

    return _make


@pytest.fixture
def house():
    """The reference house: 140 m² on 500 m², built 1985, partially modernized."""
    return PropertyInput.from_raw(
        kind="house",
        living_area=140,
        plot_area=500,
        construction_year=1985,
        modernization="partially modernized",
        energy="average",
        fitout="average",
    )


@pytest.fixture
def geo():
    return GeocodeResult(
        lat=50.9375,
        lon=6.9603,
        region="Nordrhein-Westfalen",
        locality="Köln",
        district="Ehrenfeld",
        postcode="50823",
    )


@pytest.fixture
def file_cache(tmp_path):
    def _make(name="cache.json", ttl=3600, validator=None, clock=None):
        kwargs = {"validator": validator, "flush_delay": 0}
        if clock is not None:
            kwargs["clock"] = clock
        return FileTTLCache(str(tmp_path / name), ttl, name, **kwargs)

    return _make


# ---------------------------------------------------------------------------
# Stub clients behind the real source wrappers
# ---------------------------------------------------------------------------

class StubGeocode:
    def __init__(self, result):
        self.result = result
        self.calls = []

    async def resolve(self, address):
        self.calls.append(address)
        return self.result


class StubLandValue:
    name = "stub"

    def __init__(self, value=None, error=None, delay=0.0):
        self.value = value
        self.error = error
        self.delay = delay
        self.calls = 0

    async def fetch(self, lat, lon):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.value


class StubMarket:
    def __init__(self, sample=None, delay=0.0):
        self.sample = sample
        self.delay = delay
        self.calls = 0

    async def city_sample(self, region, slug):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.sample

    async def search_sample(self, region, locality):
        return self.sample

    async def districts(self, region, slug):
        return []

    async def district_sample(self, region, slug, district):
        return None


class StubSeries:
    def __init__(self, points=()):
        self.points = list(points)

    async def series(self):
        return self.points


class StubCost:
    def __init__(self, point=None):
        self.point = point

    async def latest(self):
        return self.point


class StubReference:
    def __init__(self, value=None):
        self.value = value

    async def lookup(self, lat, lon, segment):
        return self.value


@pytest.fixture
def make_service(file_cache, geo):
    """ValuationService over stub clients, fixed to the default valuation date."""

    def _make(location=geo, land=None, market=None, region=None, model=None, reference_regions=()):
        region = region or (location.region if location else "Nordrhein-Westfalen")
        land = land if land is not None else StubLandValue()
        return ValuationService(
            geo=StubGeocode(location),
            land_values=LandValueSource(LandValueRegistry({region: land}), file_cache("land.json")),
            market=MarketSampleSource(market or StubMarket(), file_cache("market.json")),
            price_index=PriceIndexSource(StubSeries(), 60),
            cost_index=CostIndexSource(StubCost(), 60),
            reference_values=ReferenceValueSource(StubReference(), list(reference_regions)),
            advisory=AdvisoryService(model, timeout=1, ttl_seconds=60),
            today=lambda: VALUATION_DATE,
        )

    return _make
