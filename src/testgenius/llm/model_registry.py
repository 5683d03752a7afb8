from __future__ import annotations

from dataclasses import dataclass

from testgenius.config.settings import Settings, get_settings

from .model_roles import ModelRole


@dataclass(frozen=True)
class ModelSpec:
    """Single model option for a given logical role."""

    provider: str
    model_id: str
    temperature: float = 0.2
    max_output_tokens: int = 2048


# (temperature, max_output_tokens); the coder writes whole test files with imports
ROLE_SAMPLING: dict[ModelRole, tuple[float, int]] = {
    ModelRole.SUMMARIZER: (0.4, 2048),
    ModelRole.CODER: (0.2, 8192),
}


def _route_for(role: ModelRole, settings: Settings) -> str:
    if role is ModelRole.CODER:
        return settings.MODEL_ROUTE_CODER
    return settings.MODEL_ROUTE_SUMMARIZER


def load_defaults_from_env(settings: Settings | None = None) -> dict[ModelRole, list[ModelSpec]]:
    """
    Build the ordered ModelSpec list of every role.

    MODEL_ROUTE_* values are comma-separated model ids; an unset route
    falls back to GEMINI_MODEL.
    """
    settings = settings or get_settings()
    table: dict[ModelRole, list[ModelSpec]] = {}

    for role in ModelRole:
        route = _route_for(role, settings)
        ids = [item.strip() for item in route.split(",") if item.strip()]
        temperature, max_tokens = ROLE_SAMPLING[role]
        table[role] = [
            ModelSpec("Gemini", model_id, temperature=temperature, max_output_tokens=max_tokens)
            for model_id in ids or [settings.GEMINI_MODEL]
        ]

    return table
