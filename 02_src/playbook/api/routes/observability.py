"""Observability API routes."""

from typing import Any

from pydantic import BaseModel
from fastapi import APIRouter, HTTPException, Query

from ...app import Application


class SceneResponse(BaseModel):
    """Response model for a scene and its engaged participants."""

    id: str
    key: str | None
    scope: str
    engaged: list[str]


def create_observability_router(app: Application) -> APIRouter:
    """Create observability router."""
    router = APIRouter(prefix="/api", tags=["observability"])

    @router.get("/transcript", response_model=list[dict[str, Any]])
    async def get_transcript(
        event: str | None = Query(None, description="Filter by event name"),
        key: str | None = Query(None, description="Filter by instance key"),
        limit: int = Query(100, ge=1, le=1000),
    ) -> list[dict]:
        """Get recorded events with optional filters, latest last."""
        try:
            subset: dict[str, Any] = {}
            if event:
                subset["event"] = event
            if key:
                subset["instance"] = {"key": key}
            return app.transcript.find_records(subset)[-limit:]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    @router.get("/scenes", response_model=list[SceneResponse])
    async def get_scenes() -> list[dict]:
        """Get scenes with the participants engaged in each."""
        try:
            return [
                {
                    "id": scene.identity.id,
                    "key": scene.identity.key,
                    "scope": scene.scope.value,
                    "engaged": list(scene.engaged),
                }
                for scene in app.playbook.scenes
            ]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    return router
