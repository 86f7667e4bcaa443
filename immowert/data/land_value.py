"""
Land reference value adapters.

One adapter serves one region; `LandValueRegistry` routes a region name to
its adapter. Regions without an automated lookup get a `ManualLookupAdapter`
that explains why and returns nothing.
"""
import logging
import math
from typing import Dict, Optional

import httpx

from .base import LandValueAdapter, MarketPriceSample, ReferenceLandValue
from ..core.config import settings
from ..core.utils import fnv1a_32, seeded_rand, round_to

logger = logging.getLogger(__name__)

# Typical residential land value per m² by region, used by the mock adapter.
_MOCK_LEVELS = {
    "Bayern": 620, "Hamburg": 900, "Berlin": 1100, "Hessen": 380,
    "Nordrhein-Westfalen": 290, "Niedersachsen": 150, "Sachsen": 120,
    "Thüringen": 85, "Baden-Württemberg": 450,
}

class MockLandValue(LandValueAdapter):
    """Deterministic values around a regional level, keyed by rounded coordinates."""
    def __init__(self, region: str):
        self.name = f"mock:{region}"
        self.region = region

    async def fetch(self, lat: float, lon: float) -> Optional[ReferenceLandValue]:
        seed = fnv1a_32(f"{round(lat, 4)},{round(lon, 4)}")
        level = _MOCK_LEVELS.get(self.region, 180)
        value = round(level * (0.7 + seeded_rand(seed, 1)[0] * 0.6))
        return ReferenceLandValue(
            value_per_m2=value,
            reference_date="2024-01-01",
            usage="W",
            zone=f"Zone {seed % 900 + 100}",
            region=self.region,
            source=f"Land reference value {self.region} (mock)",
        )

class HttpLandValue(LandValueAdapter):
    """
    Client for a land value gateway that fronts the regional services.
    Expects GET {base}/land-value?lat&lon&region returning the value or 404.
    """
    def __init__(self, base_url: str, region: str, timeout: float = 15):
        self.name = f"http:{region}"
        self.base_url = base_url.rstrip("/")
        self.region = region
        self.timeout = timeout

    async def fetch(self, lat: float, lon: float) -> Optional[ReferenceLandValue]:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            r = await client.get(
                f"{self.base_url}/land-value",
                params={"lat": lat, "lon": lon, "region": self.region},
            )
            if r.status_code == 404:
                return None
            r.raise_for_status()
            j = r.json()
        value = float(j.get("value") or 0)
        if value <= 0:
            return None
        return ReferenceLandValue(
            value_per_m2=value,
            reference_date=j.get("reference_date"),
            usage=j.get("usage"),
            zone=j.get("zone"),
            municipality=j.get("municipality"),
            region=self.region,
            source=j.get("source") or f"Land reference value {self.region}",
            estimated=bool(j.get("estimated", False)),
        )

class ManualLookupAdapter(LandValueAdapter):
    """Stands in for regions whose land values cannot be fetched automatically."""
    def __init__(self, region: str, reason: Optional[str] = None):
        self.name = f"manual:{region}"
        self.region = region
        self.reason = reason or f"No automated land value lookup available for {region}."

    async def fetch(self, lat: float, lon: float) -> Optional[ReferenceLandValue]:
        return None

class LandValueRegistry:
    """Region name -> adapter. Unknown regions get a manual-lookup adapter."""
    def __init__(self, adapters: Dict[str, LandValueAdapter]):
        self.adapters = dict(adapters)

    def for_region(self, region: str) -> LandValueAdapter:
        adapter = self.adapters.get(region)
        if adapter is None:
            logger.warning("no land value adapter for region", extra={"region": region})
            return ManualLookupAdapter(region)
        return adapter

    def is_manual(self, region: str) -> bool:
        return isinstance(self.for_region(region), ManualLookupAdapter)

    def regions(self) -> list[str]:
        return sorted(self.adapters)

REGIONS = [
    "Baden-Württemberg", "Bayern", "Berlin", "Brandenburg", "Bremen", "Hamburg",
    "Hessen", "Mecklenburg-Vorpommern", "Niedersachsen", "Nordrhein-Westfalen",
    "Rheinland-Pfalz", "Saarland", "Sachsen", "Sachsen-Anhalt",
    "Schleswig-Holstein", "Thüringen",
]

def land_value_registry() -> LandValueRegistry:
    manual = set(settings.region_list(settings.LAND_VALUE_MANUAL_REGIONS))
    adapters: Dict[str, LandValueAdapter] = {}
    for region in REGIONS:
        if region in manual:
            adapters[region] = ManualLookupAdapter(
                region, f"Land values for {region} must be looked up manually; automated reuse is not permitted."
            )
        elif settings.LAND_VALUE_PROVIDER == "http" and settings.LAND_VALUE_BASE_URL:
            adapters[region] = HttpLandValue(settings.LAND_VALUE_BASE_URL, region, settings.LAND_VALUE_TIMEOUT)
        else:
            adapters[region] = MockLandValue(region)
    return LandValueRegistry(adapters)

def estimate_from_market(sample: MarketPriceSample) -> Optional[ReferenceLandValue]:
    """
    Rough land value from the local house price level.

    The land share of the price grows with the price level:
    share = 0.165 * ln(price) - 0.935, clamped to [0.15, 0.60]
    (about 22% at 1000 €/m², 38% at 3000 €/m², 53% at 7000 €/m²).
    Apartment prices stand in at 90% when no house price is listed.
    """
    if sample.house_buy and sample.house_buy.median > 0:
        base = sample.house_buy.median
    elif sample.apartment_buy and sample.apartment_buy.median > 0:
        base = round(sample.apartment_buy.median * 0.9)
    else:
        return None
    share = round_to(max(0.15, min(0.60, 0.165 * math.log(base) - 0.935)), 3)
    year = (sample.period or "")[:4]
    return ReferenceLandValue(
        value_per_m2=round(base * share),
        reference_date=f"{year}-01-01" if year.isdigit() else None,
        usage="W",
        zone=sample.district or sample.locality,
        municipality=sample.locality,
        region=sample.region,
        source="Market listings (estimated land value)",
        estimated=True,
    )
