from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends

from geocar_client.infrastructure.container import Container
from geocar_client.presentation.api.deps import get_container

router = APIRouter(prefix="/v1/session", tags=["session"])


def _state(c: Container) -> dict[str, Any]:
    current = c.session.current
    return {
        "state": current.state.value,
        "flow": current.flow.value if current.flow else None,
        "name": current.profile.name if current.profile else None,
    }


@router.get("")
def session_state(c: Container = Depends(get_container)) -> dict[str, Any]:  # type: ignore[misc]
    return _state(c)


@router.post("/login")
async def login(  # type: ignore[misc]
    email: str = Body(...),
    password: str = Body(...),
    c: Container = Depends(get_container),
) -> dict[str, Any]:
    await c.session.login_start(email, password)
    return _state(c)


@router.post("/verify")
async def verify(  # type: ignore[misc]
    email: str = Body(...),
    code: str = Body(...),
    c: Container = Depends(get_container),
) -> dict[str, Any]:
    await c.session.login_verify(email, code)
    return _state(c)


@router.post("/logout")
async def logout(c: Container = Depends(get_container)) -> dict[str, Any]:  # type: ignore[misc]
    await c.session.logout()
    return _state(c)
