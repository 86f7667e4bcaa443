from typing import Dict, Any
from .base import AdvisoryModel
from ..core.utils import fnv1a_32, seeded_rand, round_money
from ..valuation.tables import reference_average

class MockAdvisor(AdvisoryModel):
    """
    Deterministic placeholder reviewer. Compares the price per m² with the
    regional average and raises a concern when the two drift far apart.
    """
    async def review(self, features: Dict[str, Any]) -> Dict[str, Any]:
        valuation = features.get("valuation") or {}
        seed = fnv1a_32(features.get("address") or "unknown")
        confidence = round(0.70 + seeded_rand(seed, 1)[0] * 0.25, 2)  # 0.70–0.95

        total = valuation.get("total_value") or 0
        living = valuation.get("living_area") or 0
        if total <= 0 or living <= 0:
            return {"status": "ok", "confidence": confidence, "recommended_value": None,
                    "rationale": "Nothing to review."}

        is_house = (features.get("input") or {}).get("is_house", True)
        avg = reference_average(features.get("region"), is_house)
        ratio = total / living / avg
        if 0.6 <= ratio <= 1.7:
            return {"status": "ok", "confidence": confidence, "recommended_value": None,
                    "rationale": "Price level is in line with the regional average."}

        # Recommend halfway between the estimate and the regional average.
        recommended = round_money((total + avg * living) / 2)
        status = "minor-concern" if 0.4 <= ratio <= 2.5 else "major-concern"
        direction = "above" if ratio > 1 else "below"
        return {
            "status": status,
            "confidence": confidence,
            "recommended_value": recommended,
            "rationale": f"Price per m² is {ratio:.1f}x the regional average, well {direction} typical levels.",
        }
