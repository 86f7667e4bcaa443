from typing import Optional
from .base import ReferenceValueClient, RegionalReferenceValue
from ..core.utils import fnv1a_32, seeded_rand
from ..core.config import settings
import httpx

# Official per-m² figures for a typical object, by market segment.
SEGMENTS = ("EFH", "ZFH", "RDH", "ETW", "MFH")

class MockReferenceValue(ReferenceValueClient):
    async def lookup(self, lat: float, lon: float, segment: str) -> Optional[RegionalReferenceValue]:
        seed = fnv1a_32(f"{round(lat, 3)},{round(lon, 3)}:{segment}")
        base = {"EFH": 2600, "ZFH": 2300, "RDH": 2500, "ETW": 2900, "MFH": 1900}.get(segment, 2400)
        return RegionalReferenceValue(
            value_per_m2=round(base * (0.8 + seeded_rand(seed, 1)[0] * 0.4)),
            segment=segment,
            reference_date="2025-01-01",
            source="Regional reference value (mock)",
        )

class HttpReferenceValue(ReferenceValueClient):
    """
    Expects GET {base}/reference-value?lat&lon&segment returning the value or 404.
    """
    def __init__(self, base_url: str, timeout: float = 8):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    async def lookup(self, lat: float, lon: float, segment: str) -> Optional[RegionalReferenceValue]:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            r = await client.get(
                f"{self.base_url}/reference-value",
                params={"lat": lat, "lon": lon, "segment": segment},
            )
            if r.status_code == 404:
                return None
            r.raise_for_status()
            j = r.json()
        value = float(j.get("value") or 0)
        if value <= 0:
            return None
        return RegionalReferenceValue(
            value_per_m2=value,
            segment=j.get("segment") or segment,
            reference_date=j.get("reference_date"),
            source=j.get("source") or "Regional reference value",
        )

def reference_value_client() -> ReferenceValueClient:
    if settings.REFERENCE_VALUE_PROVIDER == "http" and settings.REFERENCE_VALUE_BASE_URL:
        return HttpReferenceValue(settings.REFERENCE_VALUE_BASE_URL, settings.REFERENCE_VALUE_TIMEOUT)
    return MockReferenceValue()
