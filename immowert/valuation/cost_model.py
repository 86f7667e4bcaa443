"""
Replacement-cost building value.

building value = cost per m² gross floor area (2010 prices, by type and
quality tier) x gross floor area x cost index factor
x remaining life / total life x market adjustment factor
"""
from dataclasses import dataclass
from typing import Optional, Tuple

from ..data.base import ConstructionCostIndexPoint
from ..data.cost_index_client import FALLBACK_BASE_2010, FALLBACK_CURRENT, FALLBACK_LABEL
from .inputs import Rating

# Standard production cost 2010, €/m² gross floor area, quality tier 1..5.
COST_TABLE = {
    "efh": (655, 725, 835, 1005, 1260),
    "dhh": (610, 675, 775, 935, 1170),
    "end_terrace": (610, 675, 775, 935, 1170),
    "mid_terrace": (575, 640, 735, 885, 1110),
    "zfh": (690, 760, 875, 1055, 1325),
    "mfh": (490, 545, 625, 755, 945),
    "etw": (490, 545, 625, 755, 945),
}

# Living area -> gross floor area.
GROSS_FLOOR_AREA_FACTOR = {
    "efh": 1.35, "dhh": 1.25, "end_terrace": 1.25, "mid_terrace": 1.20,
    "zfh": 1.30, "mfh": 1.25, "etw": 1.25,
}

_HOUSE_LIFE = (60, 65, 70, 75, 80)
_UNIT_LIFE = (50, 55, 60, 70, 80)
TOTAL_LIFE = {
    "efh": _HOUSE_LIFE, "dhh": _HOUSE_LIFE, "end_terrace": _HOUSE_LIFE,
    "mid_terrace": _HOUSE_LIFE, "zfh": _HOUSE_LIFE, "mfh": _UNIT_LIFE, "etw": _UNIT_LIFE,
}

# Rows: provisional building value up to the bound (€). Columns: land value
# per m² up to 30, 60, 120, 180, above.
MARKET_ADJUSTMENT = (
    (50_000, (1.4, 1.5, 1.6, 1.7, 1.8)),
    (100_000, (1.2, 1.3, 1.4, 1.5, 1.6)),
    (150_000, (1.1, 1.2, 1.3, 1.4, 1.5)),
    (200_000, (1.0, 1.1, 1.2, 1.3, 1.4)),
    (300_000, (0.9, 1.0, 1.1, 1.2, 1.3)),
    (400_000, (0.85, 0.95, 1.05, 1.15, 1.25)),
    (500_000, (0.8, 0.9, 1.0, 1.1, 1.2)),
    (float("inf"), (0.8, 0.85, 0.95, 1.05, 1.15)),
)
LAND_BRACKETS = (30, 60, 120, 180)

DEFAULT_AGE = 30

def land_bracket(land_value_per_m2: float) -> int:
    for i, upper in enumerate(LAND_BRACKETS):
        if land_value_per_m2 <= upper:
            return i
    return len(LAND_BRACKETS)

def market_adjustment_factor(provisional_value: float, land_value_per_m2: float) -> float:
    col = land_bracket(land_value_per_m2)
    for upper, row in MARKET_ADJUSTMENT:
        if provisional_value <= upper:
            return row[col]
    return MARKET_ADJUSTMENT[-1][1][col]

def quality_tier(fitout: Rating) -> int:
    s = fitout.score
    if s >= 5:
        return 5
    if s >= 4:
        return 4
    if s >= 3:
        return 3
    if s >= 2:
        return 2
    return 1

def modernized_remaining_life(remaining: float, total: int, modernization: Rating) -> float:
    """Modernization lifts the remaining life to a minimum share of the total life, never lowers it."""
    if not modernization.known:
        return remaining
    s = modernization.score
    if s >= 5:
        share = 0.65
    elif s >= 4:
        share = 0.50
    elif s >= 3:
        share = 0.35
    else:
        return remaining
    return max(remaining, round(total * share))

@dataclass(frozen=True)
class CostModelResult:
    building_value: float
    provisional_value: float
    cost_per_m2: int
    gross_floor_area: float
    cost_index_factor: float
    total_life: int
    remaining_life: float
    age: int
    market_adjustment: float
    notes: Tuple[str, ...]

def building_value(
    living_area: float,
    construction_year: Optional[int],
    building_type: str,
    fitout: Rating,
    modernization: Rating,
    land_value_per_m2: float,
    cost_index: Optional[ConstructionCostIndexPoint],
    valuation_year: int,
) -> CostModelResult:
    notes = []
    tier = quality_tier(fitout)
    cost = COST_TABLE[building_type][tier - 1]
    gfa = living_area * GROSS_FLOOR_AREA_FACTOR[building_type]

    if cost_index is not None and cost_index.base > 0:
        index_factor = cost_index.current / cost_index.base
        index_label = f"{cost_index.label}, {cost_index.source}"
    else:
        index_factor = FALLBACK_CURRENT / FALLBACK_BASE_2010
        index_label = f"{FALLBACK_LABEL}, built-in fallback"

    total_life = TOTAL_LIFE[building_type][tier - 1]
    if construction_year is None:
        age = DEFAULT_AGE
        notes.append(f"No construction year given; the cost model assumes a building age of {DEFAULT_AGE} years.")
    else:
        age = valuation_year - construction_year
    base_remaining = min(total_life, max(0, total_life - age))
    remaining = modernized_remaining_life(base_remaining, total_life, modernization)

    provisional = cost * gfa * index_factor * (remaining / total_life)
    maf = market_adjustment_factor(provisional, land_value_per_m2)
    value = max(0.0, provisional * maf)

    if age > total_life:
        notes.append(
            f"Building age ({age} years) exceeds the total useful life ({total_life} years); "
            "the building is valued at its residual value."
        )
    if remaining > base_remaining:
        notes.append(f"Modernization extends the remaining useful life from {base_remaining} to {remaining} years.")
    notes.append(
        f"Cost model: {cost} €/m² x {gfa:.0f} m² gross floor area x {index_factor:.2f} "
        f"(cost index {index_label}) x {remaining}/{total_life} years x {maf:.2f} market adjustment."
    )
    return CostModelResult(
        building_value=value,
        provisional_value=provisional,
        cost_per_m2=cost,
        gross_floor_area=gfa,
        cost_index_factor=index_factor,
        total_life=total_life,
        remaining_life=remaining,
        age=age,
        market_adjustment=maf,
        notes=tuple(notes),
    )
