from typing import List
from .base import PriceIndexClient, PriceIndexPoint
from ..core.config import settings
import httpx

SDMX_ACCEPT = "application/vnd.sdmx.data+json;version=1.0.0-wd"

class MockPriceIndex(PriceIndexClient):
    """
    Residential price index (2015 = 100) shaped like the published series:
    steady growth to a 2022 peak, a correction, then a modest recovery.
    """
    async def series(self) -> List[PriceIndexPoint]:
        out: List[PriceIndexPoint] = []
        value = 100.0
        for year in range(2015, 2026):
            for q in range(1, 5):
                if year == 2025 and q > 3:
                    break
                out.append(PriceIndexPoint(quarter=f"{year}-Q{q}", value=round(value, 1)))
                if year < 2022:
                    value *= 1.018
                elif year < 2024:
                    value *= 0.985
                else:
                    value *= 1.006
        return out

class BundesbankPriceIndex(PriceIndexClient):
    """
    Quarterly residential property price index from the Bundesbank SDMX REST API.
    """
    def __init__(self, url: str, timeout: float = 10):
        self.url = url
        self.timeout = timeout

    async def series(self) -> List[PriceIndexPoint]:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            r = await client.get(self.url, headers={"Accept": SDMX_ACCEPT})
            r.raise_for_status()
            return parse_sdmx(r.json())

def parse_sdmx(payload: dict) -> List[PriceIndexPoint]:
    """
    dataSets[0].series[<first key>].observations maps positions to [value, ...];
    structure.dimensions.observation[TIME_PERIOD].values maps positions to quarters.
    Returns points sorted oldest first; an unexpected shape yields [].
    """
    series = ((payload.get("dataSets") or [{}])[0]).get("series") or {}
    if not series:
        return []
    observations = next(iter(series.values())).get("observations") or {}
    dims = ((payload.get("structure") or {}).get("dimensions") or {}).get("observation") or []
    time_dim = next((d for d in dims if d.get("id") == "TIME_PERIOD"), None)
    periods = (time_dim or {}).get("values") or []

    out: List[PriceIndexPoint] = []
    for pos, values in observations.items():
        i = int(pos)
        if i >= len(periods) or not isinstance(values, list) or not values:
            continue
        value = values[0]
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            out.append(PriceIndexPoint(quarter=periods[i]["id"], value=float(value)))
    out.sort(key=lambda p: p.quarter)
    return out

def price_index_client() -> PriceIndexClient:
    if settings.PRICE_INDEX_PROVIDER == "http":
        return BundesbankPriceIndex(settings.PRICE_INDEX_URL, settings.PRICE_INDEX_TIMEOUT)
    return MockPriceIndex()
