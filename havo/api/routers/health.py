"""Health check endpoint."""

from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health")
async def health_check(request: Request) -> dict:
    engine = getattr(request.app.state, "weather_engine", None)
    write_failures = engine.cache_write_failures if engine is not None else None
    return {
        "success": True,
        "data": {
            "status": "healthy" if engine is not None else "degraded",
            "version": request.app.state.settings.app_version,
            "weatherCache": {"writeFailures": write_failures},
        },
        "requestId": request.state.request_id,
    }
