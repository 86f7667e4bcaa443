import json

from fastapi import APIRouter, Depends, Header, HTTPException, Request, Response

from ..schemas import OptionsResponse, ValuationRequest, ValuationResponse
from ..services.valuation_service import ValuationOutcome, ValuationService
from ..core.config import settings
from ..core.security import rate_limit, require_api_key
from ..core.utils import weak_etag
from ..data.land_value import REGIONS
from ..valuation.inputs import PropertyInput, SUB_TYPES

router = APIRouter()

DISCLAIMER = "This valuation is an automated estimate, not a certified appraisal."

# Labels the text parser understands, lowest to highest.
MODERNIZATION_OPTIONS = ["none", "minor", "partial", "comprehensive", "core renovation"]
ENERGY_OPTIONS = ["very poor", "rather poor", "average", "good", "very good"]
FITOUT_OPTIONS = ["simple", "average", "upscale", "luxury"]

def service_dep(request: Request) -> ValuationService:
    # Built once in create_app so caches live for the whole process.
    return request.app.state.service

def _payload(address: str, outcome: ValuationOutcome) -> dict:
    result = outcome.result
    payload = {
        "address": address,
        "currency": settings.DEFAULT_CURRENCY,
        **result.to_dict(),
        "location": None,
        "advisory": outcome.advisory.to_dict() if outcome.advisory else None,
        "disclaimer": DISCLAIMER,
    }
    loc = outcome.location
    if loc is not None:
        payload["location"] = {
            "lat": loc.lat, "lon": loc.lon, "region": loc.region,
            "locality": loc.locality, "district": loc.district,
        }
    return payload

@router.post("/valuation", response_model=ValuationResponse)
async def post_valuation(
    body: ValuationRequest,
    response: Response,
    if_none_match: str | None = Header(default=None, alias="if-none-match"),
    _auth = Depends(require_api_key),     # API key guard
    _lim  = Depends(rate_limit),          # Rate limiting
    svc: ValuationService = Depends(service_dep),
):
    if not body.street and not body.postcode:
        raise HTTPException(status_code=400, detail="street or postcode is required")

    prop = PropertyInput.from_raw(
        kind=body.kind,
        living_area=body.living_area,
        plot_area=body.plot_area,
        construction_year=body.construction_year,
        sub_type=body.sub_type,
        modernization=body.modernization,
        energy=body.energy,
        fitout=body.fitout,
    )
    address = body.address()
    if body.advisory:
        outcome = await svc.evaluate_with_advisory(prop, address)
    else:
        outcome = await svc.evaluate(prop, address)

    payload = _payload(address, outcome)
    etag = weak_etag(json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8"))
    if if_none_match and if_none_match == etag:
        return Response(status_code=304, headers={"ETag": etag})
    payload["etag"] = etag
    response.headers["ETag"] = etag
    return payload

@router.get("/options", response_model=OptionsResponse)
def get_options():
    return {
        "kinds": ["house", "apartment"],
        "sub_types": [st.name for st in SUB_TYPES],
        "modernization": MODERNIZATION_OPTIONS,
        "energy": ENERGY_OPTIONS,
        "fitout": FITOUT_OPTIONS,
        "regions": REGIONS,
    }

@router.delete("/cache")
def clear_cache(
    _auth = Depends(require_api_key),
    svc: ValuationService = Depends(service_dep),
):
    cleared = svc.clear_caches()
    svc.flush()
    return {"cleared": cleared}
