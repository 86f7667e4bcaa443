from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Tuple

from ..core.utils import round_money
from .factors import CorrectionFactors

class Method(str, Enum):
    COMPARISON = "comparison"
    COST_LITE = "cost-lite"
    MARKET_INDICATION = "market-indication"

class Confidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

# Data source labels
SRC_COMPARISON = "Comparison method"
SRC_COST = "Cost approach (land value + replacement cost)"
SRC_INCOME = "Income capitalization cross-check"
SRC_PRICE_INDEX = "Residential property price index"
SRC_PLAUSIBILITY = "Plausibility check (auto-correction)"
SRC_ADVISORY = "Advisory review"
SRC_NATIONAL_AVERAGE = "National average price"

@dataclass(frozen=True)
class ValueRange:
    min: int
    max: int

def value_range(total: int, spread: float) -> ValueRange:
    return ValueRange(min=round_money(total * (1 - spread)), max=round_money(total * (1 + spread)))

@dataclass(frozen=True)
class ValuationResult:
    method: Method
    land_value: int
    building_value: int
    total_value: int
    price_per_m2: int
    value_range: ValueRange
    price_per_m2_range: ValueRange
    income_value: Optional[int]
    confidence: Confidence
    spread: float
    factors: CorrectionFactors
    notes: Tuple[str, ...]
    sources: Tuple[str, ...]
    living_area: float
    is_house: bool
    region: Optional[str] = None
    location_tier: str = "B"
    # Plausibility signals that may not fire again on this result.
    settled_signals: Tuple[str, ...] = ()

    def with_total(self, total: int, note: Optional[str] = None, source: Optional[str] = None,
                   settle: Optional[str] = None) -> "ValuationResult":
        """New result at `total`; building, per-m² price and both ranges follow, spread unchanged."""
        per_m2 = round_money(total / self.living_area)
        notes = self.notes + ((note,) if note else ())
        sources = self.sources
        if source and source not in sources:
            sources = sources + (source,)
        settled = self.settled_signals
        if settle and settle not in settled:
            settled = settled + (settle,)
        return replace(
            self,
            total_value=total,
            building_value=max(0, total - self.land_value),
            price_per_m2=per_m2,
            value_range=value_range(total, self.spread),
            price_per_m2_range=value_range(per_m2, self.spread),
            notes=notes,
            sources=sources,
            settled_signals=settled,
        )

    def to_dict(self) -> dict:
        return {
            "method": self.method.value,
            "land_value": self.land_value,
            "building_value": self.building_value,
            "total_value": self.total_value,
            "price_per_m2": self.price_per_m2,
            "value_range": {"min": self.value_range.min, "max": self.value_range.max},
            "price_per_m2_range": {"min": self.price_per_m2_range.min, "max": self.price_per_m2_range.max},
            "income_value": self.income_value,
            "confidence": self.confidence.value,
            "spread": self.spread,
            "factors": self.factors.to_dict(),
            "notes": list(self.notes),
            "sources": list(self.sources),
            "living_area": self.living_area,
            "location_tier": self.location_tier,
        }
