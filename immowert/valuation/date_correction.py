"""
Brings a land value fixed at an older reference date to present terms.

Preferred: the ratio of the residential price index now to the index at the
reference date. Without index data: a flat 2.5% per year beyond a two-year
grace period.
"""
from datetime import date
from typing import Optional, Sequence, Tuple

from ..core.utils import round_to
from ..data.base import PriceIndexPoint, ReferenceLandValue

FLAT_RATE_PER_YEAR = 0.025
FLAT_GRACE_YEARS = 2

def quarter_of(d: date) -> str:
    return f"{d.year}-Q{(d.month - 1) // 3 + 1}"

def parse_reference_date(raw: Optional[str]) -> Optional[date]:
    if not raw:
        return None
    try:
        return date.fromisoformat(str(raw)[:10])
    except ValueError:
        return None

def index_at(quarter: str, series: Sequence[PriceIndexPoint]) -> Optional[float]:
    """Exact quarter, else the latest earlier quarter, else the earliest available."""
    if not series:
        return None
    for p in series:
        if p.quarter == quarter:
            return p.value
    earlier = [p for p in series if p.quarter <= quarter]
    if earlier:
        return earlier[-1].value
    return series[0].value

def index_correction(reference: date, series: Sequence[PriceIndexPoint], valuation_date: date) -> Optional[float]:
    """(index now / index at reference) - 1, rounded to 3 decimals; None when unusable."""
    then = index_at(quarter_of(reference), series)
    now = index_at(quarter_of(valuation_date), series)
    if then is None or now is None or then == 0:
        return None
    return round_to(now / then - 1, 3)

def flat_correction(reference: date, valuation_date: date) -> float:
    years = (valuation_date - reference).days / 365.25
    return max(0.0, years - FLAT_GRACE_YEARS) * FLAT_RATE_PER_YEAR

def valuation_date_correction(
    land_value: Optional[ReferenceLandValue],
    series: Sequence[PriceIndexPoint],
    valuation_date: date,
) -> Tuple[float, str]:
    """
    Returns (correction, basis) where basis is "index", "flat" or "none".
    """
    if land_value is None:
        return 0.0, "none"
    reference = parse_reference_date(land_value.reference_date)
    if reference is None:
        return 0.0, "none"
    ordered = sorted(series, key=lambda p: p.quarter)
    if ordered:
        corr = index_correction(reference, ordered, valuation_date)
        if corr is not None:
            return corr, "index"
    return flat_correction(reference, valuation_date), "flat"
