"""
Source wrappers used by the orchestrator.

Each wrapper owns its cache and its bounded fallback logic. They raise on
transport errors; the orchestrator turns any raise or timeout into "absent".
"""
import logging
from typing import List, Optional, Tuple

import httpx

from ..core.cache import FileTTLCache, memory_cache
from ..core.utils import normalize_address, slugify
from ..data.base import (
    CostIndexClient,
    ConstructionCostIndexPoint,
    GeocodeResult,
    MarketClient,
    MarketPriceSample,
    PriceIndexClient,
    PriceIndexPoint,
    ReferenceLandValue,
    ReferenceValueClient,
    RegionalReferenceValue,
)
from ..data.land_value import LandValueRegistry, ManualLookupAdapter

logger = logging.getLogger(__name__)

# ~11 m at German latitudes
COORD_DIGITS = 4
MAX_MARKET_ATTEMPTS = 4
COUNTY_PREFIXES = ("landkreis ", "kreis ", "region ", "städteregion ")

SEGMENT_BY_BUILDING_TYPE = {
    "efh": "EFH",
    "zfh": "ZFH",
    "dhh": "RDH",
    "end_terrace": "RDH",
    "mid_terrace": "RDH",
    "etw": "ETW",
    "mfh": "MFH",
}

def land_value_valid(value) -> bool:
    return isinstance(value, dict) and float(value.get("value_per_m2") or 0) > 0

def market_sample_valid(value) -> bool:
    """Market entries are {"slug": <page slug the sample came from>, "sample": {...}}."""
    if not isinstance(value, dict) or not isinstance(value.get("sample"), dict):
        return False
    return MarketPriceSample.from_json(value["sample"]).has_prices()

class LandValueSource:
    """Region-routed land value lookup behind a file cache keyed by rounded coordinates."""
    def __init__(self, registry: LandValueRegistry, cache: FileTTLCache):
        self.registry = registry
        self.cache = cache

    @staticmethod
    def cache_key(lat: float, lon: float) -> str:
        return f"{round(lat, COORD_DIGITS):.{COORD_DIGITS}f},{round(lon, COORD_DIGITS):.{COORD_DIGITS}f}"

    def manual_note(self, region: str) -> Optional[str]:
        adapter = self.registry.for_region(region)
        if isinstance(adapter, ManualLookupAdapter):
            return adapter.reason
        return None

    async def fetch(self, geo: GeocodeResult) -> Optional[ReferenceLandValue]:
        key = self.cache_key(geo.lat, geo.lon)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("land value cache hit", extra={"key": key})
            return ReferenceLandValue.from_json(cached)
        adapter = self.registry.for_region(geo.region)
        value = await adapter.fetch(geo.lat, geo.lon)
        if value is not None and value.value_per_m2 > 0:
            self.cache.set(key, value.to_json())
            return value
        return None

def _first_word_slug(locality: str) -> str:
    return slugify(locality.replace("-", " ").split(" ")[0]) if locality else ""

def _county_slug(county: Optional[str]) -> str:
    if not county:
        return ""
    name = county.strip()
    lowered = name.lower()
    for prefix in COUNTY_PREFIXES:
        if lowered.startswith(prefix):
            name = name[len(prefix):]
            break
    return slugify(name)

def match_district(wanted: str, available: List[str]) -> Optional[str]:
    """Exact (case-insensitive) match first, then a containment match in either direction."""
    w = wanted.strip().casefold()
    if not w:
        return None
    for d in available:
        if d.casefold() == w:
            return d
    for d in available:
        c = d.casefold()
        if w in c or c in w:
            return d
    return None

class MarketSampleSource:
    """
    Listing statistics for a locality.

    City level comes from a chain of at most four attempts: the locality slug,
    a shortened slug variant, the county, and a free-text search. The city
    result is cached by region + locality; a district sample refines it when
    the geocoder named a district the provider knows.
    """
    def __init__(self, client: MarketClient, cache: FileTTLCache):
        self.client = client
        self.cache = cache

    @staticmethod
    def cache_key(region: str, locality: str, district: Optional[str] = None) -> str:
        key = f"{normalize_address(region)}:{normalize_address(locality)}"
        return f"{key}:{normalize_address(district)}" if district else key

    def _attempts(self, geo: GeocodeResult) -> List[Tuple[str, str]]:
        out: List[Tuple[str, str]] = []
        seen = set()
        for kind, slug in (
            ("city", slugify(geo.locality)),
            ("city", _first_word_slug(geo.locality)),
            ("city", _county_slug(geo.county)),
        ):
            if slug and slug not in seen:
                seen.add(slug)
                out.append((kind, slug))
        out.append(("search", slugify(geo.locality)))
        return out[:MAX_MARKET_ATTEMPTS]

    async def _city(self, geo: GeocodeResult) -> Tuple[Optional[MarketPriceSample], Optional[str]]:
        for kind, slug in self._attempts(geo):
            try:
                if kind == "search":
                    sample = await self.client.search_sample(geo.region, geo.locality)
                else:
                    sample = await self.client.city_sample(geo.region, slug)
            except (httpx.HTTPError, ValueError) as exc:
                logger.warning("market attempt failed", extra={"attempt": kind, "slug": slug, "error": str(exc)})
                continue
            if sample is not None and sample.has_prices():
                return sample, slug
        return None, None

    async def _district(self, geo: GeocodeResult, slug: str) -> Optional[MarketPriceSample]:
        try:
            names = await self.client.districts(geo.region, slug)
            name = match_district(geo.district, names)
            if name is None:
                return None
            sample = await self.client.district_sample(geo.region, slug, name)
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("district refinement failed", extra={"district": geo.district, "error": str(exc)})
            return None
        return sample if sample is not None and sample.has_prices() else None

    async def fetch(self, geo: GeocodeResult) -> Optional[MarketPriceSample]:
        if geo.district:
            cached = self.cache.get(self.cache_key(geo.region, geo.locality, geo.district))
            if cached is not None:
                return MarketPriceSample.from_json(cached["sample"])

        key = self.cache_key(geo.region, geo.locality)
        cached = self.cache.get(key)
        if cached is not None:
            city = MarketPriceSample.from_json(cached["sample"])
            slug = cached["slug"]
        else:
            city, slug = await self._city(geo)
            if city is None:
                return None
            self.cache.set(key, {"slug": slug, "sample": city.to_json()})

        if geo.district and slug:
            district = await self._district(geo, slug)
            if district is not None:
                self.cache.set(
                    self.cache_key(geo.region, geo.locality, geo.district),
                    {"slug": slug, "sample": district.to_json()},
                )
                return district
        return city

class PriceIndexSource:
    """Process-wide price index series. Empty series are not cached."""
    def __init__(self, client: PriceIndexClient, ttl_seconds: float):
        self.client = client
        self.cache = memory_cache(ttl_seconds, maxsize=1)

    async def fetch(self) -> Tuple[PriceIndexPoint, ...]:
        cached = self.cache.get("series")
        if cached is not None:
            return cached
        series = tuple(sorted(await self.client.series(), key=lambda p: p.quarter))
        if series:
            self.cache["series"] = series
        return series

class CostIndexSource:
    def __init__(self, client: CostIndexClient, ttl_seconds: float):
        self.client = client
        self.cache = memory_cache(ttl_seconds, maxsize=1)

    async def fetch(self) -> Optional[ConstructionCostIndexPoint]:
        cached = self.cache.get("latest")
        if cached is not None:
            return cached
        point = await self.client.latest()
        if point is not None:
            self.cache["latest"] = point
        return point

class ReferenceValueSource:
    """Regional reference values exist only for some regions; elsewhere this returns None without a call."""
    def __init__(self, client: ReferenceValueClient, regions: List[str]):
        self.client = client
        self.regions = set(regions)

    def covers(self, region: Optional[str]) -> bool:
        return bool(region) and region in self.regions

    async def fetch(self, geo: GeocodeResult, building_type: str) -> Optional[RegionalReferenceValue]:
        if not self.covers(geo.region):
            return None
        segment = SEGMENT_BY_BUILDING_TYPE.get(building_type, "EFH")
        return await self.client.lookup(geo.lat, geo.lon, segment)
