from typing import Any

from fastapi import APIRouter, Depends

from geocar_client.infrastructure.container import Container
from geocar_client.presentation.api.deps import get_container

router = APIRouter(tags=["health"])


@router.get("/health")
def health(c: Container = Depends(get_container)) -> dict[str, Any]:  # type: ignore[misc]
    return {
        "status": "ok",
        "session": c.session.current.state.value,
        "google_maps": bool(c.settings.google_maps_api_key),
    }
