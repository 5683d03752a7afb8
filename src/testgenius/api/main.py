"""
FastAPI application for TestGenius.

Thin presentation adapter over PipelineOrchestrator: every route maps to one
orchestrator operation and returns the resulting session snapshot.

Endpoints:
- GET    /api/health                - Health check
- POST   /api/sessions              - Create a pipeline session
- ...    /api/sessions/{id}/...     - Pipeline operations (see routes.pipeline)
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from testgenius import __version__
from testgenius.config.settings import get_settings
from testgenius.errors import ErrorKind, PipelineError, PublishError
from testgenius.utils.logger import get_logger, setup_logging

from .models import ErrorResponse
from .routes import health, pipeline

logger = get_logger(__name__)

STATUS_BY_KIND = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.PRECONDITION: 409,
    ErrorKind.AUTH: 401,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.TRANSIENT: 503,
    ErrorKind.PROVIDER: 502,
    ErrorKind.FETCH: 502,
    ErrorKind.GENERATION: 502,
    ErrorKind.PUBLISH: 502,
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan context manager for startup/shutdown."""
    setup_logging(level=get_settings().LOG_LEVEL)
    logger.info("🚀 TestGenius API starting...")

    yield

    logger.info("🛑 TestGenius API shutting down...")
    logger.info(f"   Sessions dropped: {len(pipeline.active_sessions)}")
    for orchestrator in pipeline.active_sessions.values():
        await orchestrator.aclose()
    pipeline.active_sessions.clear()
    pipeline.session_messages.clear()


app = FastAPI(
    title="TestGenius API",
    description="Generate unit tests for repository code and open them as pull requests",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://localhost:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router, prefix="/api", tags=["Health"])
app.include_router(pipeline.router, prefix="/api", tags=["Pipeline"])


@app.get("/")
async def root() -> dict[str, object]:
    """Root endpoint with API info."""
    return {
        "service": "TestGenius",
        "version": __version__,
        "status": "running",
        "docs": "/docs",
        "endpoints": {
            "health": "GET /api/health",
            "create_session": "POST /api/sessions",
            "session": "GET /api/sessions/{session_id}",
        },
    }


@app.exception_handler(PipelineError)
async def pipeline_exception_handler(request: Request, exc: PipelineError) -> JSONResponse:
    """Map pipeline errors to status codes; the body always names the error kind."""
    status_code = STATUS_BY_KIND.get(exc.kind, 500)
    body = ErrorResponse(
        error=type(exc).__name__,
        kind=exc.kind.value,
        message=exc.message,
        session_id=request.path_params.get("session_id"),
    )
    if isinstance(exc, PublishError):
        body.branch_name = exc.branch_name
        body.completed_steps = list(exc.completed_steps)

    logger.warning(f"{request.method} {request.url.path} -> {status_code}: {exc.message}")
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle uncaught exceptions."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "message": str(exc),
            "type": type(exc).__name__,
        },
    )


def run(host: str = "0.0.0.0", port: int = 8000, reload: bool = False) -> None:
    import uvicorn

    uvicorn.run("testgenius.api.main:app", host=host, port=port, reload=reload, log_level="info")


if __name__ == "__main__":
    run(reload=True)
