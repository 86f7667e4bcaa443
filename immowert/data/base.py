from typing import Protocol, List, Optional
from dataclasses import dataclass, asdict

# ----- Data shapes (thin & explicit) -----

@dataclass(frozen=True)
class GeocodeResult:
    lat: float
    lon: float
    region: str                       # federal state, e.g. "Bayern"
    locality: str                     # city / municipality
    district: Optional[str] = None    # e.g. "Schwabing"
    county: Optional[str] = None      # e.g. "Landkreis München"
    postcode: Optional[str] = None
    display_name: Optional[str] = None

@dataclass(frozen=True)
class ReferenceLandValue:
    value_per_m2: float
    reference_date: Optional[str] = None   # ISO date the value was fixed ("Stichtag")
    usage: Optional[str] = None            # e.g. "W" residential, "M" mixed
    zone: Optional[str] = None
    municipality: Optional[str] = None
    region: Optional[str] = None
    source: str = "land reference value"
    estimated: bool = False

    def to_json(self) -> dict:
        return asdict(self)

    @classmethod
    def from_json(cls, d: dict) -> "ReferenceLandValue":
        return cls(**d)

@dataclass(frozen=True)
class PriceBand:
    median: float
    low: Optional[float] = None
    high: Optional[float] = None

@dataclass(frozen=True)
class MarketPriceSample:
    region: str
    locality: str
    district: Optional[str] = None
    house_buy: Optional[PriceBand] = None
    apartment_buy: Optional[PriceBand] = None
    house_rent: Optional[float] = None       # per m² and month
    apartment_rent: Optional[float] = None
    period: Optional[str] = None             # e.g. "2025-Q3"
    source: str = "market listings"

    def buy_band(self, is_house: bool) -> Optional[PriceBand]:
        """Band for the property type, falling back to the other type."""
        if is_house:
            return self.house_buy or self.apartment_buy
        return self.apartment_buy or self.house_buy

    def rent(self, is_house: bool) -> Optional[float]:
        if is_house:
            return self.house_rent or self.apartment_rent
        return self.apartment_rent or self.house_rent

    def has_prices(self) -> bool:
        return any(b is not None and b.median > 0 for b in (self.house_buy, self.apartment_buy))

    def to_json(self) -> dict:
        return asdict(self)

    @classmethod
    def from_json(cls, d: dict) -> "MarketPriceSample":
        d = dict(d)
        for key in ("house_buy", "apartment_buy"):
            if d.get(key) is not None:
                d[key] = PriceBand(**d[key])
        return cls(**d)

@dataclass(frozen=True)
class PriceIndexPoint:
    quarter: str      # "2024-Q3"
    value: float      # base period = 100

@dataclass(frozen=True)
class ConstructionCostIndexPoint:
    current: float
    base: float       # index of the cost table's base year
    label: str        # e.g. "2025-Q3"
    source: str = "construction cost index"

@dataclass(frozen=True)
class RegionalReferenceValue:
    value_per_m2: float
    segment: str
    reference_date: Optional[str] = None
    source: str = "regional reference value"

# ----- Protocols (interfaces) -----

class GeocodeClient(Protocol):
    async def resolve(self, address: str) -> Optional[GeocodeResult]: ...

class LandValueAdapter(Protocol):
    name: str
    async def fetch(self, lat: float, lon: float) -> Optional[ReferenceLandValue]: ...

class MarketClient(Protocol):
    async def city_sample(self, region: str, slug: str) -> Optional[MarketPriceSample]: ...
    async def search_sample(self, region: str, locality: str) -> Optional[MarketPriceSample]: ...
    async def districts(self, region: str, slug: str) -> List[str]: ...
    async def district_sample(self, region: str, slug: str, district: str) -> Optional[MarketPriceSample]: ...

class PriceIndexClient(Protocol):
    async def series(self) -> List[PriceIndexPoint]: ...

class CostIndexClient(Protocol):
    async def latest(self) -> Optional[ConstructionCostIndexPoint]: ...

class ReferenceValueClient(Protocol):
    async def lookup(self, lat: float, lon: float, segment: str) -> Optional[RegionalReferenceValue]: ...
