from typing import List, Optional
from .base import MarketClient, MarketPriceSample, PriceBand
from ..core.utils import fnv1a_32, seeded_rand, slugify
from ..core.config import settings
import httpx

# Apartment price level per m² by region for the synthetic market.
_MOCK_LEVELS = {
    "Bayern": 5200, "Hamburg": 5600, "Berlin": 5000, "Hessen": 4100,
    "Nordrhein-Westfalen": 3300, "Niedersachsen": 2800, "Sachsen": 2300,
    "Thüringen": 2000, "Baden-Württemberg": 4300,
}

def _band(median: float, spread_low: float, spread_high: float) -> PriceBand:
    return PriceBand(median=round(median), low=round(median * spread_low), high=round(median * spread_high))

class MockMarket(MarketClient):
    """
    Synthetic listing statistics. Plausible, stable per place, fake.
    """
    async def city_sample(self, region: str, slug: str) -> Optional[MarketPriceSample]:
        return self._sample(region, slug, None)

    async def search_sample(self, region: str, locality: str) -> Optional[MarketPriceSample]:
        return self._sample(region, slugify(locality), None, source="Market listings (search)")

    async def districts(self, region: str, slug: str) -> List[str]:
        seed = fnv1a_32(f"{region}/{slug}")
        return [f"{slug.title()}-{name}" for name in ("Nord", "Süd", "Mitte")][: 1 + seed % 3]

    async def district_sample(self, region: str, slug: str, district: str) -> Optional[MarketPriceSample]:
        return self._sample(region, slug, district)

    def _sample(self, region: str, slug: str, district: Optional[str], source: str = "Market listings") -> MarketPriceSample:
        seed = fnv1a_32(f"{region}/{slug}/{district or ''}")
        r = seeded_rand(seed, 3)
        level = _MOCK_LEVELS.get(region, 2600) * (0.8 + r[0] * 0.4)
        return MarketPriceSample(
            region=region,
            locality=slug,
            district=district,
            house_buy=_band(level * 0.9, 0.65, 1.45),
            apartment_buy=_band(level, 0.7, 1.4),
            house_rent=round(level / 330 * (0.9 + r[1] * 0.2), 2),
            apartment_rent=round(level / 300 * (0.9 + r[2] * 0.2), 2),
            period="2025-Q3",
            source=source,
        )

def _parse_band(raw) -> Optional[PriceBand]:
    if not raw or not raw.get("median"):
        return None
    return PriceBand(
        median=float(raw["median"]),
        low=float(raw["low"]) if raw.get("low") is not None else None,
        high=float(raw["high"]) if raw.get("high") is not None else None,
    )

def parse_sample(j: dict, region: str, locality: str, district: Optional[str] = None,
                 source: str = "Market listings") -> Optional[MarketPriceSample]:
    sample = MarketPriceSample(
        region=region,
        locality=j.get("locality") or locality,
        district=j.get("district") or district,
        house_buy=_parse_band(j.get("house_buy")),
        apartment_buy=_parse_band(j.get("apartment_buy")),
        house_rent=j.get("house_rent"),
        apartment_rent=j.get("apartment_rent"),
        period=j.get("period"),
        source=source,
    )
    return sample if sample.has_prices() else None

class HttpMarket(MarketClient):
    """
    Client for the listing statistics service.
    Pages are addressed by region slug and place slug; 404 means no page.
    """
    def __init__(self, base_url: str, timeout: float = 20):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    async def _get(self, path: str, params: dict | None = None):
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            r = await client.get(f"{self.base_url}{path}", params=params)
            if r.status_code == 404:
                return None
            r.raise_for_status()
            return r.json()

    async def city_sample(self, region: str, slug: str) -> Optional[MarketPriceSample]:
        j = await self._get(f"/atlas/{slugify(region)}/{slug}")
        return parse_sample(j, region, slug) if j else None

    async def search_sample(self, region: str, locality: str) -> Optional[MarketPriceSample]:
        j = await self._get("/search", params={"region": region, "locality": locality})
        return parse_sample(j, region, locality, source="Market listings (search)") if j else None

    async def districts(self, region: str, slug: str) -> List[str]:
        j = await self._get(f"/atlas/{slugify(region)}/{slug}/districts")
        return [str(d) for d in j] if j else []

    async def district_sample(self, region: str, slug: str, district: str) -> Optional[MarketPriceSample]:
        j = await self._get(f"/atlas/{slugify(region)}/{slug}/{slugify(district)}")
        return parse_sample(j, region, slug, district) if j else None

def market_client() -> MarketClient:
    if settings.MARKET_PROVIDER == "http" and settings.MARKET_BASE_URL:
        return HttpMarket(settings.MARKET_BASE_URL, settings.MARKET_TIMEOUT)
    return MockMarket()
