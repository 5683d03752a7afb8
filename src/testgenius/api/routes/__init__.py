from .health import health_check, liveness_check, readiness_check
from .pipeline import create_session, get_orchestrator_factory, get_session

__all__ = [
    "health_check",
    "readiness_check",
    "liveness_check",
    "create_session",
    "get_session",
    "get_orchestrator_factory",
]
