"""Event routes - server-sent change events and the internal notify bridge."""
import json
import secrets
import time

from fastapi import APIRouter, Header, Request
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from ..config import NOTIFY_TOKEN_HEADER
from ..dependencies import require_user
from ..domain import NotFound, Unauthorized
from ..infrastructure.events import Scope

router = APIRouter()

KEEPALIVE_SECONDS = 15.0


class NotifyRequest(BaseModel):
    event: str
    room_id: str | None = Field(None, alias="roomId")
    data: dict = {}


def format_sse(event_type: str, data: dict) -> str:
    return f"event: {event_type}\ndata: {json.dumps(data, ensure_ascii=False)}\n\n"


@router.get("/api/events")
async def event_stream(request: Request):
    """SSE stream of events for the caller's user room (plus global events)."""
    user = require_user(request)
    subscription = request.app.state.notifier.subscribe(Scope.user(user["id"]))

    async def generate():
        try:
            yield format_sse("hello", {"time": time.time()})
            while True:
                if await request.is_disconnected():
                    break
                event = await subscription.next_event(timeout=KEEPALIVE_SECONDS)
                if event is None:
                    if subscription.closed:
                        break
                    yield ": keep-alive\n\n"
                    continue
                yield format_sse(event.event_type, event.payload)
        finally:
            subscription.unsubscribe()

    headers = {
        "Cache-Control": "no-cache",
        "X-Accel-Buffering": "no",  # nginx: disable buffering
    }
    return StreamingResponse(generate(), media_type="text/event-stream", headers=headers)


@router.post("/api/internal/notify")
async def internal_notify(
    request: Request,
    data: NotifyRequest,
    x_notify_token: str | None = Header(None, alias=NOTIFY_TOKEN_HEADER)
):
    """Publish an event on behalf of another process.

    Disabled unless a notify token is configured.
    """
    expected = request.app.state.settings.notify_token
    if not expected:
        raise NotFound("Notify bridge disabled")
    if not x_notify_token or not secrets.compare_digest(x_notify_token, expected):
        raise Unauthorized("Invalid notify token")

    scope = Scope.named(data.room_id) if data.room_id else Scope.GLOBAL
    delivered = await request.app.state.notifier.notify(data.event, scope, data.data)
    return {"status": "ok", "delivered": delivered}
