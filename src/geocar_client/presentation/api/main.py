from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response

from geocar_client.domain.errors import (
    AuthExpired,
    GeoCarError,
    HttpError,
    MissingCredential,
    NetworkError,
    ResolutionNotFound,
    ValidationError,
)
from geocar_client.infrastructure.metrics import registry
from geocar_client.presentation.api.routes.geo import router as geo_router
from geocar_client.presentation.api.routes.health import router as health_router
from geocar_client.presentation.api.routes.session import router as session_router

app = FastAPI(title="GeoCAR Client", version="0.1.0")
app.include_router(health_router)
app.include_router(session_router)
app.include_router(geo_router)


def status_for(exc: GeoCarError) -> int:
    if isinstance(exc, (AuthExpired, MissingCredential)):
        return 401
    if isinstance(exc, HttpError):
        return exc.status if 400 <= exc.status < 600 else 502
    if isinstance(exc, ValidationError):
        return 400
    if isinstance(exc, ResolutionNotFound):
        return 404
    if isinstance(exc, NetworkError):
        return 502
    return 500


@app.exception_handler(GeoCarError)
async def geocar_error_handler(request: Request, exc: GeoCarError) -> JSONResponse:
    return JSONResponse(status_code=status_for(exc), content={"error": type(exc).__name__, "message": str(exc)})


@app.get("/metrics")
def metrics() -> Response:  # type: ignore[misc]
    data = generate_latest(registry)
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)
