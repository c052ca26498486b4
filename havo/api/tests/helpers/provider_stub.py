"""
Stub weatherapi.com built on httpx.MockTransport.

Usage:
    stub = ProviderStub()
    stub.add("Tashkent", temp_c=18.0)        # q matched case-insensitively
    stub.not_found("atlantis")               # -> HTTP 400
    stub.status("london", 503)               # -> HTTP 503
    provider = WeatherApiClient(api_key="test-key", client=stub.client())

stub.requests holds every q value received, in order.
"""

from __future__ import annotations

import json
from typing import Any

import httpx


def make_provider_payload(
    name: str = "Tashkent",
    country: str = "Uzbekistan",
    lat: float = 41.32,
    lon: float = 69.25,
    temp_c: float = 18.0,
    wind_kph: float = 11.2,
    cloud: int = 25,
) -> dict[str, Any]:
    """Factory for weatherapi.com /current.json response dicts."""
    return {
        "location": {
            "name": name,
            "region": "",
            "country": country,
            "lat": lat,
            "lon": lon,
            "tz_id": "UTC",
            "localtime": "2026-10-18 12:00",
        },
        "current": {
            "temp_c": temp_c,
            "temp_f": round(temp_c * 9 / 5 + 32, 1),
            "wind_kph": wind_kph,
            "cloud": cloud,
            "condition": {"text": "Partly cloudy", "code": 1003},
        },
    }


class ProviderStub:
    def __init__(self) -> None:
        self._routes: dict[str, httpx.Response] = {}
        self.requests: list[str] = []

    def add(self, query: str, **payload: Any) -> "ProviderStub":
        payload.setdefault("name", query.title())
        self._routes[query.lower()] = httpx.Response(200, json=make_provider_payload(**payload))
        return self

    def not_found(self, query: str) -> "ProviderStub":
        body = {"error": {"code": 1006, "message": "No matching location found."}}
        self._routes[query.lower()] = httpx.Response(400, json=body)
        return self

    def status(self, query: str, status_code: int) -> "ProviderStub":
        self._routes[query.lower()] = httpx.Response(status_code, text="upstream error")
        return self

    def raw(self, query: str, body: str | bytes) -> "ProviderStub":
        self._routes[query.lower()] = httpx.Response(200, content=body)
        return self

    def handler(self, request: httpx.Request) -> httpx.Response:
        q = request.url.params.get("q", "")
        self.requests.append(q)
        response = self._routes.get(q.lower())
        if response is None:
            body = {"error": {"code": 1006, "message": "No matching location found."}}
            return httpx.Response(400, content=json.dumps(body))
        return httpx.Response(response.status_code, content=response.content)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))
