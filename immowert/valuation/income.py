"""
Income capitalization, used only to cross-check the primary method.

gross income   = rent x 12 x living area
net income     = gross income - operating costs
building value = (net income - land value x rate) x multiplier(rate, remaining life)
income value   = land value + max(0, building value)
"""
from dataclasses import dataclass
from typing import Optional, Tuple

from ..core.utils import round_to

# Land interest rate band per income type; the rate falls as land value rises.
LAND_INTEREST_BANDS = {
    "mfh": (0.025, 0.065),
    "etw": (0.020, 0.050),
    "efh": (0.015, 0.040),
    "zfh": (0.020, 0.045),
}
LAND_VALUE_CEILING = 500

MANAGEMENT_COST_PER_UNIT = 230
UNIT_SIZE_M2 = 80
RENT_LOSS_ALLOWANCE = 0.02
DEFAULT_AGE = 30

def land_interest_rate(income_type: str, land_value_per_m2: float) -> float:
    low, high = LAND_INTEREST_BANDS.get(income_type, LAND_INTEREST_BANDS["mfh"])
    norm = min(max(land_value_per_m2, 0), LAND_VALUE_CEILING) / LAND_VALUE_CEILING
    return round_to(high - norm * (high - low), 3)

def maintenance_per_m2(age: int) -> float:
    if age < 22:
        return 7.10
    if age < 32:
        return 9.00
    return 11.50

def operating_costs(living_area: float, gross_income: float, age: int) -> float:
    units = max(1, round(living_area / UNIT_SIZE_M2))
    return units * MANAGEMENT_COST_PER_UNIT + living_area * maintenance_per_m2(age) + gross_income * RENT_LOSS_ALLOWANCE

def multiplier(rate: float, years: float) -> float:
    """Present value annuity factor ((1+i)^n - 1) / ((1+i)^n * i)."""
    if rate <= 0 or years <= 0:
        return 0.0
    q = (1 + rate) ** years
    return (q - 1) / (q * rate)

def remaining_life(income_type: str, age: int) -> int:
    total = 60 if income_type in ("mfh", "etw") else 70
    return max(5, total - age)

@dataclass(frozen=True)
class IncomeResult:
    value: float
    gross_income: float
    operating_costs: float
    operating_cost_ratio: float
    net_income: float
    land_interest_rate: float
    multiplier: float
    remaining_life: int
    building_value: float
    notes: Tuple[str, ...]

def income_value(
    living_area: float,
    rent_per_m2: Optional[float],
    land_component: float,
    land_value_per_m2: float,
    construction_year: Optional[int],
    income_type: str,
    valuation_year: int,
) -> Optional[IncomeResult]:
    """None when rent, area or land component is missing, or when costs eat the whole rent."""
    if not rent_per_m2 or rent_per_m2 <= 0 or living_area <= 0 or land_component <= 0:
        return None
    age = valuation_year - construction_year if construction_year is not None else DEFAULT_AGE
    gross = rent_per_m2 * 12 * living_area
    costs = operating_costs(living_area, gross, age)
    net = gross - costs
    if net <= 0:
        return None
    rate = land_interest_rate(income_type, land_value_per_m2)
    years = remaining_life(income_type, age)
    mult = multiplier(rate, years)
    building = max(0.0, (net - land_component * rate) * mult)
    value = land_component + building
    notes = [
        f"Income check: {gross:,.0f} € gross rent - {costs:,.0f} € operating costs "
        f"({costs / gross:.1%}) = {net:,.0f} € net income.",
        f"Land interest rate {rate:.1%} (land value {land_value_per_m2:,.0f} €/m²), "
        f"multiplier {mult:.2f} over {years} years.",
    ]
    if net - land_component * rate < 0:
        notes.append("Interest on the land value exceeds the net income; building income value set to 0.")
    return IncomeResult(
        value=value,
        gross_income=gross,
        operating_costs=costs,
        operating_cost_ratio=costs / gross,
        net_income=net,
        land_interest_rate=rate,
        multiplier=mult,
        remaining_life=years,
        building_value=building,
        notes=tuple(notes),
    )
