"""WebSocket endpoints for the session message-passing contract.

Inbound:  start / update / randomize / reset
Outbound: ready (once on connect), data (~60 Hz), error (rejected command)

`/` binds a fresh session to the connection and tears it down on
disconnect. `/{session_id}` attaches to a session created over REST.
"""

import asyncio
import json
import logging
from uuid import UUID

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from backend.api.models.schemas import ErrorMessage, ReadyMessage, command_adapter
from backend.services.simulation_manager import SessionManager, SessionRunner

logger = logging.getLogger(__name__)

router = APIRouter()

# "Try again later" close code
WS_CLOSE_OVERLOADED = 1013


async def _pump_frames(websocket: WebSocket, queue: asyncio.Queue):
    while True:
        frame = await queue.get()
        await websocket.send_json(frame)


async def _serve(websocket: WebSocket, runner: SessionRunner):
    await websocket.send_json(ReadyMessage(session_id=runner.id).model_dump(mode="json"))
    queue = runner.subscribe()
    sender = asyncio.create_task(_pump_frames(websocket, queue))
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                message = command_adapter.validate_python(json.loads(raw))
            except (json.JSONDecodeError, ValidationError) as e:
                logger.warning("Session %s rejected message: %s", runner.id, e)
                await websocket.send_json(ErrorMessage(detail=str(e)).model_dump())
                continue
            runner.handle(message)
    except WebSocketDisconnect:
        pass
    finally:
        sender.cancel()
        try:
            await sender
        except asyncio.CancelledError:
            pass
        except Exception as e:
            # the socket went away mid-send
            logger.info("Session %s stream closed: %s", runner.id, e)
        runner.unsubscribe(queue)


@router.websocket("")
async def session_stream(websocket: WebSocket):
    """Create a session for this connection; it lives as long as the socket."""
    manager = SessionManager()
    await websocket.accept()
    try:
        runner = await manager.create_session(autostart=False)
    except RuntimeError as e:
        await websocket.close(code=WS_CLOSE_OVERLOADED, reason=str(e))
        return
    try:
        await _serve(websocket, runner)
    finally:
        await manager.stop_session(runner.id)


@router.websocket("/{session_id}")
async def attach_stream(websocket: WebSocket, session_id: UUID):
    """Attach to an existing session without owning its lifetime."""
    manager = SessionManager()
    await websocket.accept()
    runner = manager.get_session(session_id)
    if runner is None:
        await websocket.send_json(ErrorMessage(detail="session not found").model_dump())
        await websocket.close()
        return
    await _serve(websocket, runner)
