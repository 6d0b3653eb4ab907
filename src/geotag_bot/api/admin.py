"""Admin API endpoints with simple token auth."""

from __future__ import annotations

from dataclasses import asdict
from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, status

from geotag_bot.domain.sessions import SessionSummary

if TYPE_CHECKING:
    from geotag_bot.containers import AppContainer

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


@router.get("/health", dependencies=[Depends(require_admin)])
async def admin_health() -> dict[str, str]:
    """Admin health check endpoint."""
    return {"status": "ok"}


@router.get("/sessions", dependencies=[Depends(require_admin)])
async def list_sessions(request: Request) -> dict[str, object]:
    """Return summaries of live geotag sessions."""
    container: AppContainer = request.app.state.container
    summaries = [
        asdict(SessionSummary.from_session(session))
        for session in container.session_store.sessions()
    ]
    summaries.sort(key=lambda summary: summary["last_active_at"], reverse=True)
    return {"sessions": summaries}


@router.post("/sessions/sweep", dependencies=[Depends(require_admin)])
async def sweep_sessions(
    request: Request, idle_seconds: float = Query(default=3600, ge=0)
) -> dict[str, object]:
    """Evict sessions idle for longer than ``idle_seconds``."""
    container: AppContainer = request.app.state.container
    evicted = container.session_store.sweep(idle_seconds)
    return {"evicted": evicted}


@router.delete("/sessions/{user_id}", dependencies=[Depends(require_admin)])
async def delete_session(user_id: int, request: Request) -> dict[str, object]:
    """Drop one user's session, cancelling any pending batch."""
    container: AppContainer = request.app.state.container
    session = container.session_store.delete(user_id)
    if session is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    return {"deleted": user_id}
