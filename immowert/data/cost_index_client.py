from typing import Optional
from .base import CostIndexClient, ConstructionCostIndexPoint
from ..core.config import settings
import httpx

# Residential construction price index, 2015 = 100.
FALLBACK_BASE_2010 = 90.4
FALLBACK_CURRENT = 168.2
FALLBACK_LABEL = "2025-Q3"

class MockCostIndex(CostIndexClient):
    async def latest(self) -> Optional[ConstructionCostIndexPoint]:
        return ConstructionCostIndexPoint(
            current=FALLBACK_CURRENT, base=FALLBACK_BASE_2010, label=FALLBACK_LABEL,
            source="Construction cost index (mock)",
        )

class HttpCostIndex(CostIndexClient):
    """
    Quarterly construction price index for residential buildings.
    Expects GET {base}/construction-price-index -> [{"quarter": "2010-Q1", "value": 90.1}, ...]
    """
    def __init__(self, base_url: str, timeout: float = 10):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    async def latest(self) -> Optional[ConstructionCostIndexPoint]:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            r = await client.get(f"{self.base_url}/construction-price-index")
            r.raise_for_status()
            items = r.json()
        return latest_point(items)

def latest_point(items: list) -> Optional[ConstructionCostIndexPoint]:
    """Newest quarter against the 2010 annual mean (fallback mean when 2010 is missing)."""
    points = sorted(
        ((str(i["quarter"]), float(i["value"])) for i in items if i.get("value")),
        key=lambda p: p[0],
    )
    if not points:
        return None
    base_quarters = [v for q, v in points if q.startswith("2010")]
    base = round(sum(base_quarters) / len(base_quarters), 1) if base_quarters else FALLBACK_BASE_2010
    quarter, current = points[-1]
    return ConstructionCostIndexPoint(current=current, base=base, label=quarter, source="Construction cost index")

def cost_index_client() -> CostIndexClient:
    if settings.COST_INDEX_PROVIDER == "http" and settings.COST_INDEX_BASE_URL:
        return HttpCostIndex(settings.COST_INDEX_BASE_URL, settings.COST_INDEX_TIMEOUT)
    return MockCostIndex()
