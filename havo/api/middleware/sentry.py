"""
Sentry instrumentation for the FastAPI service.
Strips sensitive headers and the ``key`` query parameter (caller API key)
from events and breadcrumbs.
"""

import re
from typing import Any

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration

from havo.api.config import settings

SENSITIVE_HEADERS = {"authorization", "cookie", "set-cookie"}

_KEY_PARAM_RE = re.compile(r"(^|[?&])key=[^&]*")


def _filter_headers(headers: Any) -> None:
    if isinstance(headers, dict):
        for key in list(headers.keys()):
            if key.lower() in SENSITIVE_HEADERS:
                headers[key] = "[FILTERED]"


def _filter_query(value: Any) -> Any:
    if isinstance(value, str):
        return _KEY_PARAM_RE.sub(r"\1key=[FILTERED]", value)
    return value


def _strip_sensitive_data(event: dict[str, Any], hint: dict[str, Any]) -> dict[str, Any] | None:
    """before_send hook: strip auth headers, cookies and API keys."""
    if "breadcrumbs" in event:
        for breadcrumb in event["breadcrumbs"].get("values", []):
            data = breadcrumb.get("data", {})
            if isinstance(data, dict):
                _filter_headers(data.get("headers", {}))
                if "url" in data:
                    data["url"] = _filter_query(data["url"])
                if "http.query" in data:
                    data["http.query"] = _filter_query(data["http.query"])
    request = event.get("request", {})
    if isinstance(request, dict):
        _filter_headers(request.get("headers", {}))
        if "query_string" in request:
            request["query_string"] = _filter_query(request["query_string"])
        if "url" in request:
            request["url"] = _filter_query(request["url"])
    return event


def setup_sentry() -> None:
    if not settings.sentry_dsn:
        return

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.environment,
        release=f"{settings.app_name}@{settings.app_version}",
        traces_sample_rate=settings.sentry_traces_sample_rate,
        before_send=_strip_sensitive_data,
        integrations=[
            StarletteIntegration(transaction_style="endpoint"),
            FastApiIntegration(transaction_style="endpoint"),
        ],
        send_default_pii=False,
    )
