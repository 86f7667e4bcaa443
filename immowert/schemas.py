from typing import Optional, Union

from pydantic import BaseModel, Field, field_validator

from .core.utils import parse_number

Level = Optional[Union[int, float, str]]

class ValuationRequest(BaseModel):
    street: Optional[str] = Field(default=None, max_length=200)
    postcode: Optional[str] = Field(default=None, max_length=10)
    city: Optional[str] = Field(default=None, max_length=120)
    kind: str = Field(default="house", max_length=60)          # house | apartment, free text accepted
    living_area: Optional[float] = Field(default=None, ge=0)
    plot_area: Optional[float] = Field(default=None, ge=0)
    construction_year: Optional[int] = None
    sub_type: Optional[str] = Field(default=None, max_length=80)
    # 1-5 score or free text, e.g. "partially modernized"
    modernization: Level = None
    energy: Level = None
    fitout: Level = None
    advisory: bool = False

    @field_validator("living_area", "plot_area", mode="before")
    @classmethod
    def _number(cls, v):
        """Accept German number formats like "1.200,50 m²"."""
        if v is None or v == "":
            return None
        return parse_number(v)

    @field_validator("construction_year", mode="before")
    @classmethod
    def _year(cls, v):
        if v is None or v == "":
            return None
        n = parse_number(v)
        return int(n) if n is not None else None

    @field_validator("street", "postcode", "city", "sub_type", mode="before")
    @classmethod
    def _strip(cls, v):
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    def address(self) -> str:
        place = " ".join(p for p in (self.postcode, self.city) if p)
        return ", ".join(p for p in (self.street, place) if p)

class Range(BaseModel):
    min: int
    max: int

class Factors(BaseModel):
    construction_year: float
    modernization: float
    energy: float
    fitout: float
    sub_type: float
    new_build: float
    valuation_date: float
    total: float

class Advisory(BaseModel):
    status: str
    confidence: float
    recommended_value: Optional[int] = None
    rationale: str = ""

class Location(BaseModel):
    lat: float
    lon: float
    region: str
    locality: str
    district: Optional[str] = None

class ValuationResponse(BaseModel):
    address: str
    currency: str = "EUR"
    method: str
    total_value: int
    land_value: int
    building_value: int
    price_per_m2: int
    value_range: Range
    price_per_m2_range: Range
    income_value: Optional[int] = None
    confidence: str
    spread: float
    living_area: float
    location_tier: str
    factors: Factors
    notes: list[str]
    sources: list[str]
    location: Optional[Location] = None
    advisory: Optional[Advisory] = None
    disclaimer: str
    etag: Optional[str] = None

class OptionsResponse(BaseModel):
    kinds: list[str]
    sub_types: list[str]
    modernization: list[str]
    energy: list[str]
    fitout: list[str]
    regions: list[str]
