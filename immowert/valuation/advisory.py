"""Advisory opinions and how far they may move a valuation."""
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..core.utils import round_money
from .result import SRC_ADVISORY, ValuationResult

class AdvisoryStatus(str, Enum):
    OK = "ok"
    MINOR_CONCERN = "minor-concern"
    MAJOR_CONCERN = "major-concern"
    UNAVAILABLE = "unavailable"
    ERROR = "error"

# status -> (blend weight, minimum confidence)
BLEND_RULES = {
    AdvisoryStatus.MINOR_CONCERN: (0.30, 0.70),
    AdvisoryStatus.MAJOR_CONCERN: (0.50, 0.75),
}
SANITY_BAND = (0.2, 5.0)

@dataclass(frozen=True)
class AdvisoryOpinion:
    status: AdvisoryStatus
    confidence: float = 0.0
    recommended_value: Optional[int] = None
    rationale: str = ""

    @classmethod
    def unavailable(cls, rationale: str = "No advisory backend configured.") -> "AdvisoryOpinion":
        return cls(status=AdvisoryStatus.UNAVAILABLE, rationale=rationale)

    @classmethod
    def error(cls, rationale: str) -> "AdvisoryOpinion":
        return cls(status=AdvisoryStatus.ERROR, rationale=rationale)

    @classmethod
    def from_payload(cls, payload: dict) -> "AdvisoryOpinion":
        """Lenient parse of a backend reply; unknown statuses count as a minor concern."""
        try:
            status = AdvisoryStatus(str(payload.get("status", "")).strip().lower())
        except ValueError:
            status = AdvisoryStatus.MINOR_CONCERN
        try:
            confidence = float(payload.get("confidence") or 0.0)
        except (TypeError, ValueError):
            confidence = 0.0
        confidence = max(0.0, min(1.0, confidence))
        rec = payload.get("recommended_value")
        try:
            recommended = round_money(float(rec)) if rec is not None else None
        except (TypeError, ValueError):
            recommended = None
        return cls(
            status=status,
            confidence=confidence,
            recommended_value=recommended,
            rationale=str(payload.get("rationale") or "")[:500],
        )

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "confidence": self.confidence,
            "recommended_value": self.recommended_value,
            "rationale": self.rationale,
        }

def blend(result: ValuationResult, opinion: AdvisoryOpinion) -> ValuationResult:
    rule = BLEND_RULES.get(opinion.status)
    if rule is None:
        return result
    weight, min_confidence = rule
    rec = opinion.recommended_value
    current = result.total_value
    if opinion.confidence < min_confidence or not rec or rec <= 0 or current <= 0:
        return result
    if not (current * SANITY_BAND[0] <= rec <= current * SANITY_BAND[1]):
        return result
    new_total = round_money(current * (1 - weight) + rec * weight)
    if new_total == current:
        return result
    shift = (new_total - current) / current
    note = (
        f"Advisory review ({opinion.status.value}, confidence {opinion.confidence:.0%}): "
        f"value adjusted by {shift:+.1%} with blend weight {weight:.0%}."
    )
    if opinion.rationale:
        note += f" {opinion.rationale}"
    return result.with_total(new_total, note=note, source=SRC_ADVISORY)
