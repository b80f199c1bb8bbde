"""Control API routes."""

from typing import Any

from pydantic import BaseModel
from fastapi import APIRouter, HTTPException

from ...app import Application
from ...models import TextMessage, User
from ...robot import Response


class StatusResponse(BaseModel):
    """Response model for status."""

    status: str


class ExitRequest(BaseModel):
    """Participants to disengage from every scene."""

    user_id: str
    room: str | None = None
    status: str = "exited"


class ExitResponse(BaseModel):
    """Keys of the scenes the participants were disengaged from."""

    scenes: list[str]


# SIM instance, set by main
_sim_instance: Any = None


def set_sim_instance(sim: Any) -> None:
    global _sim_instance
    _sim_instance = sim


def _require_sim() -> Any:
    if not _sim_instance:
        raise HTTPException(status_code=404, detail="SIM not configured")
    return _sim_instance


def create_control_router(app: Application) -> APIRouter:
    """Create control router."""
    router = APIRouter(prefix="/api/control", tags=["control"])

    @router.post("/reset", response_model=StatusResponse)
    async def reset_system() -> dict:
        """Stop conversations and wipe the brain between test runs."""
        try:
            await app.reset()
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
        return {"status": "ok"}

    @router.post("/exit", response_model=ExitResponse)
    async def exit_scenes(request: ExitRequest) -> dict:
        """Disengage a user (or their room) from any scene they're engaged in."""
        user = User(id=request.user_id, name=request.user_id)
        response = Response(app.robot, TextMessage(user=user, text="", room=request.room))
        exited = [
            scene.identity.key or scene.identity.id
            for scene in app.playbook.scenes
            if scene.exit(response, request.status)
        ]
        return {"scenes": exited}

    @router.post("/sim/start", response_model=StatusResponse)
    async def start_sim() -> dict:
        """Start SIM simulation."""
        sim = _require_sim()
        try:
            await sim.start()
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
        return {"status": "ok"}

    @router.post("/sim/stop", response_model=StatusResponse)
    async def stop_sim() -> dict:
        """Stop SIM simulation."""
        sim = _require_sim()
        try:
            await sim.stop()
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
        return {"status": "ok"}

    return router
