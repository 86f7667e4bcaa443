import asyncio
import json
import logging
from typing import Any, Dict, Optional

from ..core.cache import memory_cache
from ..core.config import settings
from ..core.metrics import ADVISORY_CALLS
from ..core.utils import fnv1a_32, normalize_address
from ..data.base import ReferenceLandValue
from ..models.base import AdvisoryModel
from ..models.mock_model import MockAdvisor
from ..models.openai_model import OpenAIAdvisor
from ..valuation.advisory import AdvisoryOpinion
from ..valuation.inputs import PropertyInput
from ..valuation.result import ValuationResult

logger = logging.getLogger(__name__)

def advisory_model() -> Optional[AdvisoryModel]:
    """Pick the reviewer from settings. None means the feature is off."""
    provider = settings.ADVISORY_PROVIDER
    if provider == "mock":
        return MockAdvisor()
    if provider == "openai":
        if not settings.OPENAI_API_KEY:
            logger.warning("advisory provider is openai but OPENAI_API_KEY is unset; advisory disabled")
            return None
        return OpenAIAdvisor()
    return None

def advisory_features(
    prop: PropertyInput,
    result: ValuationResult,
    land_value: Optional[ReferenceLandValue],
    address: str,
    region: Optional[str],
) -> Dict[str, Any]:
    return {
        "input": {
            "kind": prop.kind,
            "is_house": prop.is_house,
            "living_area": result.living_area,
            "plot_area": prop.plot_area,
            "construction_year": prop.construction_year,
            "sub_type": prop.sub_type,
            "modernization": prop.modernization.score,
            "energy": prop.energy.score,
            "fitout": prop.fitout.score,
        },
        "valuation": {
            "method": result.method.value,
            "total_value": result.total_value,
            "land_value": result.land_value,
            "building_value": result.building_value,
            "price_per_m2": result.price_per_m2,
            "income_value": result.income_value,
            "confidence": result.confidence.value,
            "living_area": result.living_area,
        },
        "land_value": land_value.to_json() if land_value else None,
        "address": address,
        "region": region,
    }

class AdvisoryService:
    """
    Requests a second opinion on a finished valuation.

    Opinions are cached for a day by a signature of address, input and
    value. Without a backend the answer is "unavailable" and nothing is
    called; a failing or slow backend yields "error".
    """
    def __init__(self, model: Optional[AdvisoryModel], timeout: float, ttl_seconds: float):
        self.model = model
        self.timeout = timeout
        self.cache = memory_cache(ttl_seconds, maxsize=2048)

    @property
    def enabled(self) -> bool:
        return self.model is not None

    @staticmethod
    def signature(features: Dict[str, Any]) -> str:
        raw = json.dumps(
            {
                "address": normalize_address(features.get("address") or ""),
                "input": features.get("input"),
                "total": (features.get("valuation") or {}).get("total_value"),
            },
            sort_keys=True,
            default=str,
        )
        return f"advisory:{fnv1a_32(raw):08x}"

    async def review(
        self,
        prop: PropertyInput,
        result: ValuationResult,
        land_value: Optional[ReferenceLandValue],
        address: str,
        region: Optional[str],
    ) -> AdvisoryOpinion:
        if self.model is None:
            return AdvisoryOpinion.unavailable()

        features = advisory_features(prop, result, land_value, address, region)
        key = self.signature(features)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        try:
            payload = await asyncio.wait_for(self.model.review(features), timeout=self.timeout)
            opinion = AdvisoryOpinion.from_payload(payload)
        except asyncio.TimeoutError:
            logger.warning("advisory timed out", extra={"timeout": self.timeout})
            ADVISORY_CALLS.labels(status="error").inc()
            return AdvisoryOpinion.error(f"Advisory review timed out after {self.timeout:g} s.")
        except Exception as exc:
            logger.warning("advisory failed", extra={"error": str(exc)})
            ADVISORY_CALLS.labels(status="error").inc()
            return AdvisoryOpinion.error("Advisory review failed.")

        ADVISORY_CALLS.labels(status=opinion.status.value).inc()
        self.cache[key] = opinion
        return opinion

    def clear(self) -> int:
        n = len(self.cache)
        self.cache.clear()
        return n
