"""Session lifecycle endpoints.

Create, command, query and tear down closed-loop simulation sessions.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query

from backend.api.models.schemas import (
    CommandMessage,
    DataMessage,
    LiveReadout,
    ResponseMetrics,
    SessionCreate,
    SessionResponse,
    SessionSnapshot,
    SimulationParams,
)
from backend.services.simulation_manager import SessionManager

router = APIRouter()


def get_manager() -> SessionManager:
    return SessionManager()


@router.post("/", response_model=SessionResponse)
async def create_session(body: SessionCreate, manager: SessionManager = Depends(get_manager)):
    """Create a session and start its control loop."""
    try:
        runner = await manager.create_session(
            params=body.params.to_engine() if body.params else None,
            running=body.running,
            randomize_system=body.randomize_system,
            seed=body.seed,
        )
    except RuntimeError as e:
        raise HTTPException(status_code=429, detail=str(e))
    return SessionResponse(
        id=runner.id,
        status=runner.status,
        created_at=runner.created_at,
        params=SimulationParams.from_engine(runner.session.params),
    )


@router.get("/")
async def list_sessions(manager: SessionManager = Depends(get_manager)):
    """List all live sessions."""
    return {
        "sessions": manager.all_sessions,
        "active_count": manager.active_count,
    }


@router.post("/{session_id}/commands")
async def send_command(session_id: UUID, message: CommandMessage,
                       manager: SessionManager = Depends(get_manager)):
    """Send a start/update/randomize/reset command to a session."""
    success = await manager.send_command(session_id, message)
    if not success:
        raise HTTPException(status_code=404, detail="Session not found")
    return {"status": "ok", "session_id": str(session_id), "command": message.type}


@router.get("/{session_id}/snapshot", response_model=SessionSnapshot)
async def get_snapshot(
    session_id: UUID,
    window_s: float | None = Query(None, gt=0, description="Only the newest seconds of history"),
    manager: SessionManager = Depends(get_manager),
):
    """Latest flushed data frame plus loop state and the live readout."""
    snap = await manager.get_snapshot(session_id, window_s=window_s)
    if snap is None:
        raise HTTPException(status_code=404, detail="Session not found")

    latest = LiveReadout(**snap["latest"]) if snap["latest"] else None
    return SessionSnapshot(
        session_id=snap["session_id"],
        status=snap["status"],
        running=snap["running"],
        simulation_time=snap["simulation_time"],
        params=SimulationParams.from_engine(snap["params"]),
        controller=snap["controller"],
        actuator=snap["actuator"],
        total_samples=snap["total_samples"],
        latest=latest,
        data=DataMessage(**snap["data"]),
    )


@router.get("/{session_id}/metrics", response_model=ResponseMetrics)
async def get_metrics(session_id: UUID, manager: SessionManager = Depends(get_manager)):
    """Overshoot, residual oscillation and steady-state error of the history."""
    metrics = await manager.get_metrics(session_id)
    if metrics is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return ResponseMetrics(**metrics)


@router.delete("/{session_id}")
async def stop_session(session_id: UUID, manager: SessionManager = Depends(get_manager)):
    """Tear down a session and release its buffers."""
    success = await manager.stop_session(session_id)
    if not success:
        raise HTTPException(status_code=404, detail="Session not found")
    return {"status": "stopped", "session_id": str(session_id)}
