"""
Property attributes as they enter the valuation.

Ratings (modernization, energy, fitout) arrive either as a 1-5 score or as
free text in German or English. They are normalized here, once, into a
`Rating`; every later computation only sees scores.
"""
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Optional, Tuple

from ..data.base import (
    ConstructionCostIndexPoint,
    MarketPriceSample,
    PriceIndexPoint,
    ReferenceLandValue,
    RegionalReferenceValue,
)

@dataclass(frozen=True)
class Rating:
    score: float
    source: str = "default"   # score | text | default

    @property
    def known(self) -> bool:
        return self.source != "default"

# Neutral scores: the value a missing or unrecognised answer stands for.
NEUTRAL_MODERNIZATION = 4
NEUTRAL_ENERGY = 4
NEUTRAL_FITOUT = 3

# First match wins, so more specific phrases come first.
MODERNIZATION_TEXT = [
    (("kernsanierung", "kernsaniert", "neuwertig", "core renovation", "core-renovated", "like new", "as new"), 5),
    (("umfassend", "vollständig", "vollsaniert", "comprehensive", "extensive", "fully"), 4),
    (("teilweise", "teilsaniert", "partial"), 3),
    (("einzelne", "individual", "single measure", "minor"), 2),
    (("keine", "unsaniert", "unrenoviert", "none", "not modernized", "unrenovated"), 1),
    (("mittel", "normal", "durchschnittlich", "average"), 3),
]

ENERGY_TEXT = [
    (("sehr schlecht", "very poor", "very bad"), 1),
    (("eher schlecht", "rather poor", "below average"), 2),
    (("sehr gut", "very good", "excellent"), 5),
    (("durchschnittlich", "average", "mittel"), 3),
    (("gut", "good"), 4),
    (("schlecht", "poor", "bad"), 1),
]

FITOUT_TEXT = [
    (("stark gehoben", "luxus", "luxury", "premium"), 5),
    (("gehoben", "upscale", "high"), 4),
    (("mittel", "normal", "standard", "average"), 3),
    (("einfach", "simple", "basic"), 2),
    (("schlecht", "poor"), 1),
]

def normalize_rating(raw, vocabulary, neutral: int) -> Rating:
    """Score (number or numeric string, clamped to 1-5), text label, or neutral default."""
    if raw is None or isinstance(raw, bool):
        return Rating(float(neutral))
    if isinstance(raw, (int, float)):
        return Rating(float(min(5, max(1, raw))), "score")
    text = str(raw).strip().lower()
    if not text:
        return Rating(float(neutral))
    try:
        return Rating(float(min(5, max(1, float(text.replace(",", "."))))), "score")
    except ValueError:
        pass
    for keywords, score in vocabulary:
        if any(k in text for k in keywords):
            return Rating(float(score), "text")
    return Rating(float(neutral))

def modernization_rating(raw) -> Rating:
    return normalize_rating(raw, MODERNIZATION_TEXT, NEUTRAL_MODERNIZATION)

def energy_rating(raw) -> Rating:
    return normalize_rating(raw, ENERGY_TEXT, NEUTRAL_ENERGY)

def fitout_rating(raw) -> Rating:
    return normalize_rating(raw, FITOUT_TEXT, NEUTRAL_FITOUT)

# ----- Sub-type vocabulary -----

@dataclass(frozen=True)
class SubType:
    name: str
    phrases: Tuple[str, ...]
    codes: Tuple[str, ...]      # abbreviations, matched as whole words
    factor: float
    building_type: str          # key into the cost tables

# Order matters: "semi-detached" must be tested before "detached",
# "end-terrace" before the generic "terrace".
SUB_TYPES = (
    SubType("townhouse", ("townhouse", "stadthaus"), (), 0.05, "end_terrace"),
    SubType("bungalow", ("bungalow",), (), 0.02, "efh"),
    SubType("semi-detached", ("semi-detached", "semi detached", "doppelhaushälfte", "doppelhaushalfte"), ("dhh",), -0.05, "dhh"),
    SubType("end-terrace", ("end-terrace", "end terrace", "reihenendhaus"), ("reh",), -0.04, "end_terrace"),
    SubType("mid-terrace", ("mid-terrace", "mid terrace", "terrace", "reihenmittelhaus", "reihenhaus"), ("rmh",), -0.08, "mid_terrace"),
    SubType("two-family", ("two-family", "two family", "zweifamilienhaus"), ("zfh",), -0.03, "zfh"),
    SubType("multi-family", ("multi-family", "multi family", "mehrfamilienhaus"), ("mfh",), -0.04, "mfh"),
    SubType("farmhouse", ("farmhouse", "bauernhaus", "resthof"), (), -0.10, "efh"),
    SubType("detached", ("detached", "freistehend", "einfamilienhaus"), ("efh",), 0.0, "efh"),
)

APARTMENT_PHRASES = (
    "apartment", "flat", "condo", "wohnung", "penthouse", "maisonette", "loft", "dachgeschoss",
)
APARTMENT_CODES = ("etw",)

def _words(text: str) -> set[str]:
    return set(re.split(r"[^a-z0-9äöüß]+", text))

def match_sub_type(sub_type: Optional[str]) -> Optional[SubType]:
    if not sub_type:
        return None
    text = sub_type.strip().lower()
    words = _words(text)
    for st in SUB_TYPES:
        if any(p in text for p in st.phrases) or any(c in words for c in st.codes):
            return st
    return None

def is_apartment_text(text: Optional[str]) -> bool:
    if not text:
        return False
    t = text.strip().lower()
    return any(p in t for p in APARTMENT_PHRASES) or any(c in _words(t) for c in APARTMENT_CODES)

# Typical living area (m²) when none is given.
DEFAULT_LIVING_AREA = {
    "efh": 130, "zfh": 160, "mfh": 300, "etw": 75,
    "dhh": 120, "mid_terrace": 110, "end_terrace": 115,
}

@dataclass(frozen=True)
class PropertyInput:
    kind: str = "house"                         # house | apartment
    living_area: Optional[float] = None         # m²
    plot_area: Optional[float] = None           # m²
    construction_year: Optional[int] = None
    sub_type: Optional[str] = None
    modernization: Rating = Rating(float(NEUTRAL_MODERNIZATION))
    energy: Rating = Rating(float(NEUTRAL_ENERGY))
    fitout: Rating = Rating(float(NEUTRAL_FITOUT))

    @classmethod
    def from_raw(cls, kind=None, living_area=None, plot_area=None, construction_year=None,
                 sub_type=None, modernization=None, energy=None, fitout=None) -> "PropertyInput":
        apartment = is_apartment_text(kind) or is_apartment_text(sub_type)
        return cls(
            kind="apartment" if apartment else "house",
            living_area=float(living_area) if living_area is not None else None,
            plot_area=float(plot_area) if plot_area is not None else None,
            construction_year=int(construction_year) if construction_year is not None else None,
            sub_type=sub_type or None,
            modernization=modernization_rating(modernization),
            energy=energy_rating(energy),
            fitout=fitout_rating(fitout),
        )

    @property
    def is_apartment(self) -> bool:
        return self.kind == "apartment"

    @property
    def is_house(self) -> bool:
        return not self.is_apartment

    @property
    def building_type(self) -> str:
        """Cost-table key: efh, dhh, end_terrace, mid_terrace, zfh, mfh or etw."""
        if self.is_apartment:
            return "etw"
        st = match_sub_type(self.sub_type)
        return st.building_type if st else "efh"

    @property
    def income_type(self) -> str:
        """Income-table key: etw, mfh, zfh or efh."""
        bt = self.building_type
        return bt if bt in ("etw", "mfh", "zfh") else "efh"

def estimate_living_area(prop: PropertyInput) -> Tuple[float, str]:
    """Living area from the plot (house 0.4, apartment 0.8, at least 30 m²) or a per-type default."""
    if prop.plot_area and prop.plot_area > 0:
        ratio = 0.8 if prop.is_apartment else 0.4
        area = max(round(prop.plot_area * ratio), 30)
        return float(area), (
            f"Living area estimated at {area} m² from the plot area (x {ratio}). "
            "Provide the exact living area for a more precise valuation."
        )
    area = DEFAULT_LIVING_AREA.get(prop.building_type, 120)
    return float(area), (
        f"Living area estimated at {area} m² from the property type. "
        "Provide the exact living area for a more precise valuation."
    )

def estimate_plot_area(living_area: float) -> Tuple[float, str]:
    area = max(round(living_area * 3), 50)
    return float(area), (
        f"Plot area estimated at {area} m² (living area x 3). "
        "Provide the exact plot area for a more precise valuation."
    )

@dataclass(frozen=True)
class SourceData:
    """Everything the external sources delivered for one request; absent sources are None or empty."""
    valuation_date: date
    land_value: Optional[ReferenceLandValue] = None
    market: Optional[MarketPriceSample] = None
    price_index: Tuple[PriceIndexPoint, ...] = ()
    cost_index: Optional[ConstructionCostIndexPoint] = None
    reference_value: Optional[RegionalReferenceValue] = None
    region: Optional[str] = None
    notes: Tuple[str, ...] = field(default_factory=tuple)
