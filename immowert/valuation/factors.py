"""
Additive correction factors derived from the property attributes.

Every function is a pure lookup. The location tier (A premium, B standard,
C weak) shifts the construction-year table and scales negative
modernization factors.
"""
from dataclasses import dataclass, asdict
from typing import List, Optional, Tuple

from ..core.utils import round_to
from .inputs import PropertyInput, Rating, match_sub_type

NEW_BUILD_YEAR = 2020
NEW_BUILD_PREMIUM = 0.10

@dataclass(frozen=True)
class CorrectionFactors:
    construction_year: float = 0.0
    modernization: float = 0.0
    energy: float = 0.0
    fitout: float = 0.0
    sub_type: float = 0.0
    new_build: float = 0.0
    valuation_date: float = 0.0

    @property
    def total(self) -> float:
        return (
            self.construction_year
            + self.modernization
            + self.energy
            + self.fitout
            + self.sub_type
            + self.new_build
            + self.valuation_date
        )

    def to_dict(self) -> dict:
        d = asdict(self)
        d["total"] = round(self.total, 4)
        return d

def location_tier(land_value_per_m2: float, market_median: float) -> str:
    if land_value_per_m2 > 300 or market_median > 5000:
        return "A"
    if 0 < land_value_per_m2 < 80 or (land_value_per_m2 == 0 and 0 < market_median < 2000):
        return "C"
    return "B"

# Upper year bound (inclusive) -> factor, per tier; years from 2011 to 2019 get +3%.
_YEAR_STEPS = {
    "A": ((1949, -0.08), (1969, -0.06), (1979, -0.05), (1994, -0.03), (2004, -0.02), (2010, 0.0)),
    "B": ((1949, -0.20), (1969, -0.15), (1979, -0.12), (1994, -0.08), (2004, -0.04), (2010, 0.0)),
    "C": ((1949, -0.25), (1969, -0.20), (1979, -0.16), (1994, -0.10), (2004, -0.05), (2010, 0.0)),
}

def construction_year_factor(year: Optional[int], tier: str = "B") -> float:
    if year is None:
        return 0.0
    if year >= NEW_BUILD_YEAR:
        # the new-build premium covers this bracket
        return 0.0
    for upper, factor in _YEAR_STEPS.get(tier, _YEAR_STEPS["B"]):
        if year <= upper:
            return factor
    return 0.03

def _scale_for_tier(factor: float, tier: str) -> float:
    if factor >= 0:
        return factor
    if tier == "A":
        return round_to(factor * 0.7, 2)
    if tier == "C":
        return round_to(factor * 1.3, 2)
    return factor

def modernization_factor(rating: Rating, year: Optional[int], tier: str = "B") -> float:
    """
    Linear between anchors: score 5 = +0.02, score 4 = 0, score 1 = floor,
    where the floor depends on the age bracket (-0.18 before 1970,
    -0.12 before 1990, -0.06 otherwise; unknown year counts as 2000).
    """
    built = year if year is not None else 2000
    score = min(5.0, max(1.0, rating.score))
    floor = -0.18 if built < 1970 else -0.12 if built < 1990 else -0.06
    if score >= 4:
        factor = (score - 4) * 0.02
    else:
        factor = floor + (score - 1) / 3 * (0 - floor)
    return _scale_for_tier(round_to(factor, 2), tier)

def energy_factor(rating: Rating) -> float:
    s = rating.score
    if s >= 5:
        return 0.03
    if s >= 4:
        return 0.0
    if s >= 3:
        return -0.01
    if s >= 2:
        return -0.03
    return -0.06

def fitout_factor(rating: Rating) -> float:
    s = rating.score
    if s >= 5:
        return 0.05
    if s >= 4:
        return 0.03
    if s >= 3:
        return 0.0
    if s >= 2:
        return -0.03
    return -0.05

def sub_type_factor(sub_type: Optional[str]) -> float:
    st = match_sub_type(sub_type)
    return st.factor if st else 0.0

def new_build_premium(year: Optional[int]) -> float:
    if year is not None and year >= NEW_BUILD_YEAR:
        return NEW_BUILD_PREMIUM
    return 0.0

def compute_factors(prop: PropertyInput, tier: str, valuation_date_correction: float) -> Tuple[CorrectionFactors, List[str]]:
    notes: List[str] = []
    year = prop.construction_year
    new_build = new_build_premium(year)
    modernization = modernization_factor(prop.modernization, year, tier)
    if new_build > 0 and modernization > 0:
        modernization = 0.0
        notes.append("New-build premium already includes the modernization bonus; the overlap was removed.")
    factors = CorrectionFactors(
        construction_year=construction_year_factor(year, tier),
        modernization=modernization,
        energy=energy_factor(prop.energy),
        fitout=fitout_factor(prop.fitout),
        sub_type=sub_type_factor(prop.sub_type),
        new_build=new_build,
        valuation_date=valuation_date_correction,
    )
    return factors, notes
