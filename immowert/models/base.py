from typing import Protocol, Dict, Any

class AdvisoryModel(Protocol):
    async def review(self, features: Dict[str, Any]) -> Dict[str, Any]:
        """
        Returns a payload with keys:
        status, confidence, recommended_value, rationale.
        """
        ...
