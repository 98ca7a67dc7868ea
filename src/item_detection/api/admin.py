"""Admin API endpoints with simple token auth."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

if TYPE_CHECKING:
    from item_detection.containers import AppContainer

router = APIRouter(prefix="/admin", tags=["admin"])


def _get_admin_token(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return container.settings.admin_token


async def require_admin(
    x_admin_token: str | None = Header(default=None),
    admin_token: str = Depends(_get_admin_token),
) -> None:
    """Ensure requests include a valid admin token."""
    if not x_admin_token or x_admin_token != admin_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


@router.get("/ai/budget", dependencies=[Depends(require_admin)])
async def budget_stats(request: Request) -> dict[str, object]:
    """Return current vision usage, limits and remaining capacity."""
    container: AppContainer = request.app.state.container
    stats = await container.budget_service.get_stats()
    return {"budget": stats.to_dict()}


@router.post("/ai/budget/reset-hourly", dependencies=[Depends(require_admin)])
async def reset_hourly(request: Request) -> dict[str, str]:
    """Clear the current hourly usage bucket."""
    container: AppContainer = request.app.state.container
    await container.budget_service.reset_hourly()
    return {"status": "ok"}


@router.post("/ai/budget/reset-daily", dependencies=[Depends(require_admin)])
async def reset_daily(request: Request) -> dict[str, str]:
    """Clear the current daily usage bucket."""
    container: AppContainer = request.app.state.container
    await container.budget_service.reset_daily()
    return {"status": "ok"}
