"""
Role-based model selection.

Answers "which model serves this role". A failed call is never retried on
another model; the pipeline reports it instead.
"""

from __future__ import annotations

from collections.abc import Mapping

from testgenius.utils.logger import get_logger

from .model_registry import ModelSpec, load_defaults_from_env
from .model_roles import ModelRole

logger = get_logger(__name__)


class ModelRouter:
    """
    Usage:

        router = ModelRouter()
        spec = router.choose(ModelRole.CODER)
        print(spec.model_id)  # e.g. "gemini-2.0-flash"
    """

    def __init__(self, table: Mapping[ModelRole, list[ModelSpec]] | None = None) -> None:
        self._table = dict(table) if table is not None else load_defaults_from_env()

    def choose(self, role: ModelRole) -> ModelSpec:
        """Return the primary model spec for the given role."""
        specs = self._table.get(role)
        if not specs:
            raise ValueError(f"No model configured for role: {role.value}")
        if len(specs) > 1:
            logger.debug(
                f"Role {role.value}: using {specs[0].model_id}, "
                f"ignoring {[spec.model_id for spec in specs[1:]]}"
            )
        return specs[0]

    def primary_models(self) -> dict[str, str]:
        """role name -> model id, as reported by the health endpoint."""
        return {role.value.lower(): self.choose(role).model_id for role in self._table}
