"""
CORS middleware configuration.
Origins come from settings.cors_origins; the API is read-only so only GET and
POST (bulk lookups) are allowed.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from havo.api.config import settings


def setup_cors(app: FastAPI) -> None:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "X-Request-ID"],
        max_age=600,
    )
