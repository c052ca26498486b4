"""Shared dependencies for the weather routers."""
from fastapi import HTTPException, Request

from havo.api.accounts.authorization import ApiKeyGate
from havo.api.weather.engine import WeatherEngine


def get_weather_engine(request: Request) -> WeatherEngine:
    engine = getattr(request.app.state, "weather_engine", None)
    if engine is None:
        raise HTTPException(status_code=503, detail="Weather service unavailable")
    return engine


def get_api_key_gate(request: Request) -> ApiKeyGate:
    gate = getattr(request.app.state, "api_key_gate", None)
    if gate is None:
        raise HTTPException(status_code=503, detail="Account store unavailable")
    return gate
