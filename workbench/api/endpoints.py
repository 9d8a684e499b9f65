# workbench/api/endpoints.py
import asyncio
import logging
from typing import Dict, List, Optional

from fastapi import APIRouter, HTTPException, Query, Response, WebSocket, WebSocketDisconnect
from pydantic import BaseModel

from workbench.config import get_settings
from workbench.engine.changes import to_cell_out
from workbench.engine.executor import stream_execution
from workbench.engine.session import CleaningSession
from workbench.errors import QueueOrderError, SessionNotFoundError
from workbench.models import (
    CleaningAction,
    ColumnInfo,
    DataSummary,
    Dataset,
    PreviewResponse,
    ProfileReport,
    ProposalResult,
    QAContext,
)
from workbench.profiling.report import analyze_columns, build_qa_context, profile_dataset, summarize

logger = logging.getLogger(__name__)

router = APIRouter()

# in-memory store
_SESSIONS: Dict[str, CleaningSession] = {}


class ActionRequest(BaseModel):
    action: CleaningAction


class ReorderRequest(BaseModel):
    order: List[str]


def get_session(session_id: str) -> CleaningSession:
    session = _SESSIONS.get(session_id)
    if session is None:
        raise SessionNotFoundError(session_id)
    return session


def _session_or_404(session_id: str) -> CleaningSession:
    try:
        return get_session(session_id)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="session not found")


def _preview_response(session: CleaningSession, limit: Optional[int] = None) -> PreviewResponse:
    preview = session.preview()
    limit = get_settings().preview_row_limit if limit is None else limit
    rows = preview.rows[:limit]
    return PreviewResponse(
        columns=preview.columns,
        rows=[{c: to_cell_out(row[c]) for c in preview.columns if c in row} for row in rows],
        stats=preview.stats,
        truncated=len(preview.rows) > len(rows),
    )


def _dataset_payload(session: CleaningSession) -> Dict:
    return {
        "session_id": session.session_id,
        "version": session.version,
        "columns": [c.model_dump(mode="json") for c in session.dataset.columns],
        "summary": summarize(session.dataset.data).model_dump(),
    }


# -------------------------
# Sessions
# -------------------------
@router.post("/sessions")
def create_session(dataset: Dataset):
    session = CleaningSession(dataset)
    _SESSIONS[session.session_id] = session
    logger.info("session %s created: %d rows x %d columns", session.session_id, len(dataset.data), len(dataset.columns))
    return _dataset_payload(session)


@router.get("/sessions/{session_id}")
def get_session_state(session_id: str):
    session = _session_or_404(session_id)
    payload = _dataset_payload(session)
    payload["actions"] = [
        {**a.model_dump(mode="json"), "description": a.description} for a in session.actions
    ]
    return payload


@router.delete("/sessions/{session_id}")
def delete_session(session_id: str):
    _session_or_404(session_id)
    del _SESSIONS[session_id]
    return {"deleted": session_id}


# -------------------------
# Profiling
# -------------------------
@router.get("/sessions/{session_id}/profile", response_model=ProfileReport)
def get_profile(session_id: str):
    return profile_dataset(_session_or_404(session_id).dataset)


@router.get("/sessions/{session_id}/columns", response_model=List[ColumnInfo])
def get_columns(session_id: str):
    return analyze_columns(_session_or_404(session_id).dataset)


@router.get("/sessions/{session_id}/summary", response_model=DataSummary)
def get_summary(session_id: str):
    return summarize(_session_or_404(session_id).dataset.data)


@router.get("/sessions/{session_id}/context", response_model=QAContext)
def get_qa_context(session_id: str):
    return build_qa_context(_session_or_404(session_id).dataset)


# -------------------------
# Recipe
# -------------------------
@router.post("/sessions/{session_id}/actions")
def propose_action(session_id: str, payload: ActionRequest):
    session = _session_or_404(session_id)
    result: ProposalResult = session.propose(payload.action)
    return {
        "status": result.status,
        "reason": result.reason,
        "action": {**result.action.model_dump(mode="json"), "description": result.action.description},
        "stats": session.preview().stats.model_dump(),
    }


@router.delete("/sessions/{session_id}/actions/{action_id}")
def remove_action(session_id: str, action_id: str):
    session = _session_or_404(session_id)
    if not session.remove(action_id):
        raise HTTPException(status_code=404, detail="action not found")
    return {"removed": action_id, "actions": [a.id for a in session.actions]}


@router.put("/sessions/{session_id}/actions/order")
def reorder_actions(session_id: str, payload: ReorderRequest):
    session = _session_or_404(session_id)
    try:
        session.reorder(payload.order)
    except QueueOrderError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"actions": [a.id for a in session.actions]}


@router.delete("/sessions/{session_id}/actions")
def reset_actions(session_id: str):
    session = _session_or_404(session_id)
    session.reset()
    return {"actions": []}


@router.get("/sessions/{session_id}/preview", response_model=PreviewResponse)
def get_preview(session_id: str, limit: Optional[int] = Query(default=None, ge=0)):
    return _preview_response(_session_or_404(session_id), limit)


@router.post("/sessions/{session_id}/apply")
def apply_actions(session_id: str):
    session = _session_or_404(session_id)
    session.apply()
    return _dataset_payload(session)


@router.get("/sessions/{session_id}/export")
def export_csv(session_id: str):
    session = _session_or_404(session_id)
    filename = session.suggested_filename()
    return Response(
        content=session.export(),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# -------------------------
# WebSocket streaming endpoint
# -------------------------
@router.websocket("/ws/sessions/{session_id}/preview")
async def websocket_preview(websocket: WebSocket, session_id: str):
    await websocket.accept()
    try:
        session = _SESSIONS.get(session_id)
        if session is None:
            await websocket.send_json({"type": "error", "message": "session not found"})
            await websocket.close()
            return

        for event in stream_execution(session.dataset, session.actions, run_id=session.session_id):
            await websocket.send_json(event)
            # let other tasks run between steps
            await asyncio.sleep(0)

        await websocket.close()
    except WebSocketDisconnect:
        logger.info("websocket client disconnected from session %s", session_id)
