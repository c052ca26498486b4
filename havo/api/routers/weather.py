"""
Weather endpoints.

GET  /api/v1/weather.current?key=<api key>&q=<location>   — single location
POST /api/v1/weather.current?key=<api key>&q=bulk         — many locations

Bulk body:
    {"locations": [{"q": "new york"}, {"q": "london"}]}

Bulk response:
    {"bulk": [...], "not_found": ["'atlantis' not found"]}

not_found is omitted when every location resolved. The bulk body is validated
only after the key check, so a malformed body from an unknown key answers 401.
Domain errors raised by the engine are mapped to HTTP statuses by the
handlers registered in main.
"""

from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, Field, ValidationError

from havo.api.accounts.authorization import ApiKeyGate
from havo.api.routers._deps import get_api_key_gate, get_weather_engine
from havo.api.weather.engine import WeatherEngine

router = APIRouter(prefix="/api/v1", tags=["weather"])

_MAX_BULK_LOCATIONS = 50

_MISSING_KEY = "API key is missing or invalid. Please include a valid API key in your request."
_MISSING_Q = "Parameter q is missing."
_BULK_Q_REQUIRED = "Parameter q='bulk' is required."


class LocationParam(BaseModel):
    q: str


class BulkWeatherRequest(BaseModel):
    locations: list[LocationParam] = Field(min_length=1, max_length=_MAX_BULK_LOCATIONS)

    def queries(self) -> list[str]:
        """Location queries with blank entries dropped, request order kept."""
        return [loc.q for loc in self.locations if loc.q.strip()]


def _require_api_key(key: str | None) -> str:
    if key is None or not key.strip():
        raise HTTPException(status_code=400, detail=_MISSING_KEY)
    return key


def _parse_bulk_body(body: Any) -> BulkWeatherRequest:
    """Validate the bulk body once the caller is authorized."""
    try:
        return BulkWeatherRequest.model_validate(body if body is not None else {})
    except ValidationError as exc:
        raise RequestValidationError(
            [{**err, "loc": ("body", *err["loc"])} for err in exc.errors()]
        ) from exc


@router.get("/weather.current")
async def current_weather(
    key: str | None = Query(default=None),
    q: str | None = Query(default=None),
    engine: WeatherEngine = Depends(get_weather_engine),
    gate: ApiKeyGate = Depends(get_api_key_gate),
) -> dict:
    """Current weather for one location."""
    api_key = _require_api_key(key)
    if q is None or not q.strip():
        raise HTTPException(status_code=400, detail=_MISSING_Q)

    await gate.authorize(api_key)
    record = await engine.fetch_weather(q)
    return {"location": record.model_dump()}


@router.post("/weather.current")
async def bulk_current_weather(
    body: Any = Body(default=None),
    key: str | None = Query(default=None),
    q: str | None = Query(default=None),
    engine: WeatherEngine = Depends(get_weather_engine),
    gate: ApiKeyGate = Depends(get_api_key_gate),
) -> dict:
    """Current weather for up to 50 locations; unresolved ones are listed separately."""
    api_key = _require_api_key(key)
    if q != "bulk":
        raise HTTPException(status_code=400, detail=_BULK_Q_REQUIRED)

    await gate.authorize(api_key)
    bulk_request = _parse_bulk_body(body)
    result = await engine.fetch_bulk_weather(bulk_request.queries())

    payload: dict = {"bulk": [record.model_dump() for record in result.found]}
    if result.not_found:
        payload["not_found"] = result.not_found
    return payload
