from typing import Optional
from .base import GeocodeClient, GeocodeResult
from ..core.config import settings
from ..core.utils import fnv1a_32, seeded_rand
import httpx

# (locality, region, county, districts, lat, lon)
_MOCK_PLACES = [
    ("München", "Bayern", None, ["Schwabing", "Pasing", "Giesing"], 48.137, 11.575),
    ("Hamburg", "Hamburg", None, ["Eimsbüttel", "Altona", "Harburg"], 53.551, 9.993),
    ("Köln", "Nordrhein-Westfalen", None, ["Ehrenfeld", "Nippes", "Porz"], 50.938, 6.960),
    ("Hannover", "Niedersachsen", "Region Hannover", ["List", "Linden", "Südstadt"], 52.375, 9.732),
    ("Leipzig", "Sachsen", None, ["Gohlis", "Plagwitz", "Connewitz"], 51.340, 12.375),
    ("Erfurt", "Thüringen", None, ["Altstadt", "Andreasvorstadt"], 50.978, 11.029),
    ("Freiburg im Breisgau", "Baden-Württemberg", None, ["Wiehre", "Herdern"], 47.999, 7.842),
]

class MockGeocode(GeocodeClient):
    """
    Mock geocoder that turns the address string into a stable German place.
    Entirely deterministic and free of external dependencies.
    """
    async def resolve(self, address: str) -> Optional[GeocodeResult]:
        seed = fnv1a_32(address)
        r = seeded_rand(seed, 4)
        locality, region, county, districts, lat, lon = _MOCK_PLACES[int(r[0] * len(_MOCK_PLACES)) % len(_MOCK_PLACES)]
        district = districts[int(r[1] * len(districts)) % len(districts)]
        # Jitter within roughly 3 km of the city centre
        return GeocodeResult(
            lat=round(lat + (r[2] - 0.5) * 0.05, 6),
            lon=round(lon + (r[3] - 0.5) * 0.05, 6),
            region=region, locality=locality, district=district, county=county,
        )

class NominatimGeocode(GeocodeClient):
    """
    OpenStreetMap Nominatim search, restricted to Germany.
    Returns None when nothing matches.
    """
    def __init__(self, base_url: str, user_agent: str, timeout: float = 10):
        self.base_url = base_url.rstrip("/")
        self.user_agent = user_agent
        self.timeout = timeout

    async def resolve(self, address: str) -> Optional[GeocodeResult]:
        async with httpx.AsyncClient(timeout=self.timeout, headers={"User-Agent": self.user_agent}) as client:
            r = await client.get(
                f"{self.base_url}/search",
                params={"q": address, "format": "jsonv2", "addressdetails": 1,
                        "countrycodes": "de", "limit": 1},
            )
            r.raise_for_status()
            hits = r.json()
        if not hits:
            return None
        return parse_nominatim(hits[0])

def parse_nominatim(hit: dict) -> GeocodeResult:
    a = hit.get("address") or {}
    locality = a.get("city") or a.get("town") or a.get("village") or a.get("municipality") or ""
    district = a.get("suburb") or a.get("city_district") or a.get("borough")
    return GeocodeResult(
        lat=float(hit["lat"]),
        lon=float(hit["lon"]),
        region=a.get("state") or a.get("city") or "",
        locality=locality,
        district=district,
        county=a.get("county"),
        postcode=a.get("postcode"),
        display_name=hit.get("display_name"),
    )

def geocode_client() -> GeocodeClient:
    """
    Factory picks mock or http based on env flags.
    """
    if settings.GEO_PROVIDER == "http":
        return NominatimGeocode(settings.GEO_BASE_URL, settings.GEO_USER_AGENT, settings.GEO_TIMEOUT)
    return MockGeocode()
