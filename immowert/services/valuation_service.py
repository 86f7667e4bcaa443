import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import date
from typing import Any, Awaitable, Callable, Optional

from ..core.cache import FileTTLCache
from ..core.config import settings
from ..core.metrics import VALUATIONS, record_fetch
from ..core.utils import normalize_address
from ..data.base import GeocodeClient, GeocodeResult
from ..data.cost_index_client import cost_index_client
from ..data.geocode_client import geocode_client
from ..data.land_value import estimate_from_market, land_value_registry
from ..data.market_client import market_client
from ..data.price_index_client import price_index_client
from ..data.reference_value_client import reference_value_client
from ..valuation.advisory import AdvisoryOpinion, blend
from ..valuation.assembler import evaluate
from ..valuation.inputs import PropertyInput, SourceData
from ..valuation.result import ValuationResult
from .advisory_service import AdvisoryService, advisory_model
from .sources import (
    CostIndexSource,
    LandValueSource,
    MarketSampleSource,
    PriceIndexSource,
    ReferenceValueSource,
    land_value_valid,
    market_sample_valid,
)

logger = logging.getLogger(__name__)

async def _guarded(source: str, aw: Awaitable[Any], timeout: float, default: Any = None) -> Any:
    """Await one source branch. Timeouts and errors resolve to `default`; nothing propagates."""
    start = time.perf_counter()
    try:
        value = await asyncio.wait_for(aw, timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning("source timed out", extra={"source": source, "timeout": timeout})
        record_fetch(source, "timeout", time.perf_counter() - start)
        return default
    except Exception as exc:
        logger.warning("source failed", extra={"source": source, "error": repr(exc)})
        record_fetch(source, "error", time.perf_counter() - start)
        return default
    record_fetch(source, "ok" if value else "empty", time.perf_counter() - start)
    return value if value is not None else default

async def _absent(default: Any = None) -> Any:
    return default

@dataclass(frozen=True)
class ValuationOutcome:
    result: ValuationResult
    location: Optional[GeocodeResult] = None
    advisory: Optional[AdvisoryOpinion] = None

class ValuationService:
    """
    Orchestrates:
      address → geocode → (land value | market sample | price index | cost index | reference value)
      → join → assemble → plausibility → optional advisory blend
    Every source branch has its own timeout; a missing source lowers
    confidence instead of failing the request.
    """
    def __init__(
        self,
        geo: Optional[GeocodeClient] = None,
        land_values: Optional[LandValueSource] = None,
        market: Optional[MarketSampleSource] = None,
        price_index: Optional[PriceIndexSource] = None,
        cost_index: Optional[CostIndexSource] = None,
        reference_values: Optional[ReferenceValueSource] = None,
        advisory: Optional[AdvisoryService] = None,
        today: Callable[[], date] = date.today,
    ):
        flush_delay = settings.CACHE_FLUSH_DELAY_SECONDS
        self.geo = geo or geocode_client()
        self.land_values = land_values or LandValueSource(
            land_value_registry(),
            FileTTLCache(
                settings.LAND_VALUE_CACHE_PATH, settings.LAND_VALUE_TTL_SECONDS, "land-value",
                validator=land_value_valid, flush_delay=flush_delay,
            ),
        )
        self.market = market or MarketSampleSource(
            market_client(),
            FileTTLCache(
                settings.MARKET_CACHE_PATH, settings.MARKET_TTL_SECONDS, "market",
                validator=market_sample_valid, flush_delay=flush_delay,
            ),
        )
        self.price_index = price_index or PriceIndexSource(price_index_client(), settings.PRICE_INDEX_TTL_SECONDS)
        self.cost_index = cost_index or CostIndexSource(cost_index_client(), settings.COST_INDEX_TTL_SECONDS)
        self.reference_values = reference_values or ReferenceValueSource(
            reference_value_client(), settings.region_list(settings.REFERENCE_VALUE_REGIONS)
        )
        self.advisory = advisory or AdvisoryService(
            advisory_model(), settings.ADVISORY_TIMEOUT, settings.ADVISORY_TTL_SECONDS
        )
        self.today = today

    # ---- cache lifecycle ----

    def load_caches(self) -> None:
        self.land_values.cache.load()
        self.market.cache.load()

    def flush(self) -> None:
        self.land_values.cache.flush()
        self.market.cache.flush()

    def clear_caches(self) -> dict:
        return {
            "land_value": self.land_values.cache.clear(),
            "market": self.market.cache.clear(),
            "advisory": self.advisory.clear(),
        }

    def cache_stats(self) -> list[dict]:
        return [self.land_values.cache.stats(), self.market.cache.stats()]

    # ---- acquisition ----

    async def locate(self, address: str) -> Optional[GeocodeResult]:
        return await _guarded("geocode", self.geo.resolve(normalize_address(address)), settings.GEO_TIMEOUT)

    async def gather(self, prop: PropertyInput, geo: Optional[GeocodeResult]) -> SourceData:
        """Fan out to all sources and wait for every branch to resolve."""
        notes = []
        if geo is not None:
            land_aw = self.land_values.fetch(geo)
            market_aw = self.market.fetch(geo)
            ref_aw = self.reference_values.fetch(geo, prop.building_type)
        else:
            notes.append("Address could not be located; land value and local market data are unavailable.")
            land_aw, market_aw, ref_aw = _absent(), _absent(), _absent()

        land, market, series, cost, reference = await asyncio.gather(
            _guarded("land_value", land_aw, settings.LAND_VALUE_TIMEOUT),
            _guarded("market", market_aw, settings.MARKET_TIMEOUT),
            _guarded("price_index", self.price_index.fetch(), settings.PRICE_INDEX_TIMEOUT, default=()),
            _guarded("cost_index", self.cost_index.fetch(), settings.COST_INDEX_TIMEOUT),
            _guarded("reference_value", ref_aw, settings.REFERENCE_VALUE_TIMEOUT),
        )

        if geo is not None and land is None:
            manual = self.land_values.manual_note(geo.region)
            if manual:
                notes.append(manual)
            if market is not None:
                land = estimate_from_market(market)
            if land is None:
                notes.append("No land reference value available for this location.")

        return SourceData(
            valuation_date=self.today(),
            land_value=land,
            market=market,
            price_index=tuple(series or ()),
            cost_index=cost,
            reference_value=reference,
            region=geo.region if geo else None,
            notes=tuple(notes),
        )

    # ---- public operations ----

    async def _run(self, prop: PropertyInput, address: str):
        geo = await self.locate(address)
        data = await self.gather(prop, geo)
        result = evaluate(prop, data)
        return result, geo, data

    def _record(self, result: ValuationResult, region: Optional[str]) -> None:
        VALUATIONS.labels(method=result.method.value, confidence=result.confidence.value).inc()
        logger.info(
            "valuation complete",
            extra={
                "method": result.method.value,
                "confidence": result.confidence.value,
                "total_value": result.total_value,
                "region": region,
            },
        )

    async def evaluate(self, prop: PropertyInput, address: str) -> ValuationOutcome:
        result, geo, data = await self._run(prop, address)
        self._record(result, data.region)
        return ValuationOutcome(result=result, location=geo)

    async def evaluate_with_advisory(self, prop: PropertyInput, address: str) -> ValuationOutcome:
        """Valuation plus a second opinion; concerns held with enough confidence are blended in."""
        result, geo, data = await self._run(prop, address)
        opinion = await self.advisory.review(prop, result, data.land_value, address, data.region)
        result = blend(result, opinion)
        self._record(result, data.region)
        return ValuationOutcome(result=result, location=geo, advisory=opinion)
