"""
Pipeline session routes.

Endpoints:
- POST   /api/sessions                     - Create a session
- GET    /api/sessions/{id}                - Session snapshot
- DELETE /api/sessions/{id}                - Drop a session
- POST   /api/sessions/{id}/files          - Connect repository and list files
- PUT    /api/sessions/{id}/selection      - Replace the selection set
- POST   /api/sessions/{id}/summaries      - Generate test case summaries
- PUT    /api/sessions/{id}/summary        - Choose a summary
- POST   /api/sessions/{id}/code           - Generate test code
- POST   /api/sessions/{id}/publish        - Commit and open a pull request
- POST   /api/sessions/{id}/restart        - Discard everything
- POST   /api/sessions/{id}/resume         - Back to the file list

Pipeline errors are turned into JSON responses by the handler in api.main.
"""

import uuid
from collections.abc import Callable
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException

from testgenius.dependencies import OrchestratorDependencies
from testgenius.orchestrator import PipelineOrchestrator
from testgenius.utils.logger import get_logger

from ..models import (
    ChooseSummaryRequest,
    GenerateCodeRequest,
    GitHubCredentials,
    PublishRequestBody,
    PublishResponse,
    SelectFilesRequest,
    SessionResponse,
)

logger = get_logger(__name__)

router = APIRouter()

OrchestratorFactory = Callable[[str, Callable[[str], None]], PipelineOrchestrator]

# In-memory storage, lost on restart
active_sessions: dict[str, PipelineOrchestrator] = {}
session_messages: dict[str, list[str]] = {}


def _default_factory(session_id: str, send_message: Callable[[str], None]) -> PipelineOrchestrator:
    return PipelineOrchestrator(
        OrchestratorDependencies(session_id=session_id, send_message=send_message)
    )


def get_orchestrator_factory() -> OrchestratorFactory:
    """Dependency returning the orchestrator factory; overridden in tests."""
    return _default_factory


def _get_session(session_id: str) -> PipelineOrchestrator:
    orchestrator = active_sessions.get(session_id)
    if orchestrator is None:
        raise HTTPException(status_code=404, detail=f"Session not found: {session_id}")
    return orchestrator


def _session_response(session_id: str) -> SessionResponse:
    orchestrator = _get_session(session_id)
    return SessionResponse(
        session_id=session_id,
        snapshot=orchestrator.snapshot(),
        messages=list(session_messages.get(session_id, [])),
    )


@router.post("/sessions", response_model=SessionResponse, status_code=201)
async def create_session(
    factory: OrchestratorFactory = Depends(get_orchestrator_factory),
) -> SessionResponse:
    """
    Create a new pipeline session.

    Example response:
        {
            "session_id": "session_20250126_143022_1a2b3c4d",
            "snapshot": {"stage": "initial", ...},
            "messages": []
        }
    """
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    unique_id = str(uuid.uuid4())[:8]
    session_id = f"session_{timestamp}_{unique_id}"

    messages: list[str] = []
    session_messages[session_id] = messages
    active_sessions[session_id] = factory(session_id, messages.append)

    logger.info(f"Session created: {session_id}")
    return _session_response(session_id)


@router.get("/sessions/{session_id}", response_model=SessionResponse)
async def get_session(session_id: str) -> SessionResponse:
    return _session_response(session_id)


@router.delete("/sessions/{session_id}")
async def delete_session(session_id: str) -> dict[str, object]:
    orchestrator = _get_session(session_id)
    del active_sessions[session_id]
    session_messages.pop(session_id, None)
    await orchestrator.aclose()
    logger.info(f"Session deleted: {session_id}")
    return {"session_id": session_id, "deleted": True}


@router.post("/sessions/{session_id}/files", response_model=SessionResponse)
async def load_files(session_id: str, credentials: GitHubCredentials) -> SessionResponse:
    orchestrator = _get_session(session_id)
    await orchestrator.load_files(credentials.repository_url, credentials.access_token)
    return _session_response(session_id)


@router.put("/sessions/{session_id}/selection", response_model=SessionResponse)
async def select_files(session_id: str, request: SelectFilesRequest) -> SessionResponse:
    _get_session(session_id).select_files(request.paths)
    return _session_response(session_id)


@router.post("/sessions/{session_id}/summaries", response_model=SessionResponse)
async def generate_summaries(session_id: str) -> SessionResponse:
    await _get_session(session_id).generate_summaries()
    return _session_response(session_id)


@router.put("/sessions/{session_id}/summary", response_model=SessionResponse)
async def choose_summary(session_id: str, request: ChooseSummaryRequest) -> SessionResponse:
    _get_session(session_id).choose_summary(request.summary)
    return _session_response(session_id)


@router.post("/sessions/{session_id}/code", response_model=SessionResponse)
async def generate_code(session_id: str, request: GenerateCodeRequest) -> SessionResponse:
    await _get_session(session_id).generate_code(
        summary=request.summary,
        class_name=request.class_name,
        filename=request.filename,
    )
    return _session_response(session_id)


@router.post("/sessions/{session_id}/publish", response_model=PublishResponse)
async def publish(session_id: str, request: PublishRequestBody) -> PublishResponse:
    result = await _get_session(session_id).publish(
        commit_message=request.commit_message, filename=request.filename
    )
    return PublishResponse(
        session_id=session_id,
        pull_request_url=result.pull_request_url,
        branch_name=result.branch_name,
    )


@router.post("/sessions/{session_id}/restart", response_model=SessionResponse)
async def restart(session_id: str) -> SessionResponse:
    _get_session(session_id).restart()
    return _session_response(session_id)


@router.post("/sessions/{session_id}/resume", response_model=SessionResponse)
async def resume(session_id: str) -> SessionResponse:
    _get_session(session_id).resume()
    return _session_response(session_id)
