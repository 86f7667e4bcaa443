"""
Iterative plausibility corrector.

Up to three passes over the assembled result, each applying four ordered
signals. A signal that fired is settled and never fires again on the same
result, so a converged result is a fixed point of `run_pass`.
"""
import logging
from dataclasses import replace
from typing import Callable, List, Optional, Tuple

from ..core.utils import round_money
from .result import SRC_PLAUSIBILITY, ValuationResult
from .tables import reference_average

log = logging.getLogger("immowert.plausibility")

MAX_PASSES = 3
BUILDING_CEILING_PER_M2 = 4000
INCOME_TOLERANCE = 0.25
INCOME_PULL_BASE = 0.25
INCOME_PULL_SLOPE = 0.30
INCOME_PULL_MAX = 0.40
LAND_SHARE_LIMIT = 0.70
LAND_FLOOR_MULTIPLE = 1.5
PRICE_BAND = (0.2, 3.0)
# Minimum building value per m² kept above the land value when clamping down.
BUILDING_FLOOR_PER_M2 = 500

Signal = Callable[[ValuationResult], Optional[Tuple[int, str]]]

def _building_ceiling(r: ValuationResult):
    if not r.is_house or r.living_area <= 0:
        return None
    if r.building_value / r.living_area <= BUILDING_CEILING_PER_M2:
        return None
    building = round_money(BUILDING_CEILING_PER_M2 * r.living_area)
    return (
        r.land_value + building,
        f"Building value capped at {BUILDING_CEILING_PER_M2:,} €/m² "
        f"(was {r.building_value / r.living_area:,.0f} €/m²).",
    )

def _income_pull(r: ValuationResult):
    if not r.income_value:
        return None
    deviation = (r.total_value - r.income_value) / r.income_value
    if abs(deviation) <= INCOME_TOLERANCE:
        return None
    strength = min(INCOME_PULL_MAX, INCOME_PULL_BASE + (abs(deviation) - INCOME_TOLERANCE) * INCOME_PULL_SLOPE)
    total = round_money(r.total_value + (r.income_value - r.total_value) * strength)
    return (
        total,
        f"Value deviates {deviation:+.0%} from the income value ({r.income_value:,} €); "
        f"pulled {strength:.0%} toward it.",
    )

def _land_share_floor(r: ValuationResult):
    if not r.is_house or r.land_value <= 0 or r.total_value <= 0:
        return None
    share = r.land_value / r.total_value
    floor = round_money(r.land_value * LAND_FLOOR_MULTIPLE)
    if share <= LAND_SHARE_LIMIT or r.total_value >= floor:
        return None
    return (
        floor,
        f"Land value is {share:.0%} of the total value; total raised to "
        f"{LAND_FLOOR_MULTIPLE:g}x the land value.",
    )

def _price_band(r: ValuationResult):
    if r.living_area <= 0:
        return None
    avg = reference_average(r.region, r.is_house)
    low, high = avg * PRICE_BAND[0], avg * PRICE_BAND[1]
    per_m2 = r.total_value / r.living_area
    if low <= per_m2 <= high:
        return None
    if per_m2 < low:
        total = round_money(low * r.living_area)
        direction = "raised to the lower"
    else:
        total = round_money(high * r.living_area)
        if r.land_value > 0:
            total = max(total, r.land_value + round_money(BUILDING_FLOOR_PER_M2 * r.living_area))
        direction = "lowered to the upper"
    where = r.region or "Germany"
    return (
        total,
        f"Price of {per_m2:,.0f} €/m² is implausible against the average for {where} "
        f"({avg:,.0f} €/m²); {direction} bound.",
    )

SIGNALS: List[Tuple[str, Signal]] = [
    ("building-ceiling", _building_ceiling),
    ("income-pull", _income_pull),
    ("land-share", _land_share_floor),
    ("price-band", _price_band),
]

def run_pass(result: ValuationResult) -> Tuple[ValuationResult, bool]:
    """One pass over all signals. Returns the new result and whether the total moved."""
    changed = False
    for name, signal in SIGNALS:
        if name in result.settled_signals:
            continue
        hit = signal(result)
        if hit is None:
            continue
        total, note = hit
        if abs(total - result.total_value) < 1:
            continue
        log.info("plausibility_correction", extra={"signal": name, "before": result.total_value, "after": total})
        result = result.with_total(total, note=note, source=SRC_PLAUSIBILITY, settle=name)
        changed = True
    return result, changed

def _building_above_land(r: ValuationResult) -> ValuationResult:
    """A house with land never ends at or below its land value."""
    if not r.is_house or r.land_value <= 0 or r.total_value > r.land_value:
        return r
    total = r.land_value + round_money(BUILDING_FLOOR_PER_M2 * r.living_area)
    log.info("plausibility_correction", extra={"signal": "building-floor", "before": r.total_value, "after": total})
    return r.with_total(
        total,
        note=f"Total value did not exceed the land value; building value set to {BUILDING_FLOOR_PER_M2} €/m².",
        source=SRC_PLAUSIBILITY,
    )

def correct(result: ValuationResult, max_passes: int = MAX_PASSES) -> ValuationResult:
    for _ in range(max_passes):
        result, changed = run_pass(result)
        if not changed:
            return _building_above_land(result)
    # Passes exhausted: freeze every signal so later passes are no-ops.
    settled = result.settled_signals + tuple(n for n, _ in SIGNALS if n not in result.settled_signals)
    return _building_above_land(replace(result, settled_signals=settled))
