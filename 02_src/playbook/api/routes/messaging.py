"""Messaging API routes."""

from pydantic import BaseModel
from fastapi import APIRouter, HTTPException

from ...app import Application
from ...models import User


class MessageRequest(BaseModel):
    """Request model for sending a message."""

    user_id: str
    user_name: str | None = None
    room: str | None = None
    text: str


class MessageResponse(BaseModel):
    """Response model for message."""

    replies: list[str]


def create_messaging_router(app: Application) -> APIRouter:
    """Create messaging router."""
    router = APIRouter(prefix="/api", tags=["messaging"])

    @router.post("/messages", response_model=MessageResponse)
    async def send_message(request: MessageRequest) -> dict:
        """Pass a user's message to the robot, returning what it said meanwhile."""
        try:
            adapter = app.adapter
            before = len(adapter.messages)
            user = User(id=request.user_id, name=request.user_name or request.user_id)
            await adapter.receive(user, request.text, request.room)
            replies = [
                text
                for _, speaker, text in adapter.messages[before:]
                if speaker == app.robot.name
            ]
            return {"replies": replies}
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    return router
