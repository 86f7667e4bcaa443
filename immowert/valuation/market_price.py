"""
Listing prices to transaction-level prices per m².

Listing statistics are asking prices. They are discounted by a
location-dependent share, nudged by the market cycle, and then the total
correction factor positions the property inside the [min, median, max] band.
"""
from typing import Optional, Sequence

from ..data.base import PriceBand, PriceIndexPoint

BASE_DISCOUNT = {"A": 0.07, "B": 0.10, "C": 0.13}
MIN_DISCOUNT = 0.03
MAX_DISCOUNT = 0.18

# Factor total at which the price reaches min or max of the band.
SCALE = 0.15
# Slope beyond min, relative to the slope inside the band.
EXTRAPOLATION_SLOPE = 0.30
# Bands wider than this share of the median are not trusted.
WIDE_BAND = 1.2
PRICE_FLOOR_SHARE = 0.25

def listing_discount(tier: str, series: Sequence[PriceIndexPoint] = ()) -> float:
    """
    Share subtracted from asking prices. With at least five index quarters the
    base share moves against the year-over-year change (half of it), clamped to [3%, 18%].
    """
    base = BASE_DISCOUNT.get(tier, BASE_DISCOUNT["B"])
    if len(series) >= 5:
        latest = series[-1].value
        year_ago = series[-5].value
        if latest > 0 and year_ago > 0:
            yoy = (latest - year_ago) / year_ago
            return max(MIN_DISCOUNT, min(MAX_DISCOUNT, base - yoy * 0.5))
    return base

def adjusted_price_per_m2(band: PriceBand, factor_total: float, discount: float) -> float:
    keep = 1 - discount
    median = band.median * keep
    low: Optional[float] = band.low * keep if band.low is not None else None
    high: Optional[float] = band.high * keep if band.high is not None else None

    if low is None or high is None or not (low < median < high):
        return median * (1 + factor_total)

    if (high - low) / median > WIDE_BAND:
        return max(median * (1 + factor_total), median * PRICE_FLOOR_SHARE)

    t_raw = factor_total / SCALE
    t = max(-1.0, min(1.0, t_raw))
    if t < 0:
        price = median - abs(t) * (median - low)
    else:
        price = median + t * (high - median)
    if t_raw < -1:
        price -= (abs(t_raw) - 1) * EXTRAPOLATION_SLOPE * (median - low)
    return max(price, median * PRICE_FLOOR_SHARE)
