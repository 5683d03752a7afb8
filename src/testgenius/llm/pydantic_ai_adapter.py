"""
PydanticAIAdapter: hands out configured models and settings per role.

Agents are built by the modules in testgenius.agents; the adapter keeps the
provider wiring (API key, model id, sampling settings) in one place.
"""

from __future__ import annotations

from pydantic_ai.models import Model
from pydantic_ai.models.google import GoogleModel
from pydantic_ai.providers.google import GoogleProvider
from pydantic_ai.settings import ModelSettings

from testgenius.config.settings import get_settings
from testgenius.utils.logger import get_logger

from .model_roles import ModelRole
from .router import ModelRouter

logger = get_logger(__name__)


class PydanticAIAdapter:
    """
    Model and settings provider for pydantic-ai agents.

    Example:
        adapter = PydanticAIAdapter()
        agent = Agent(
            model=adapter.get_model(ModelRole.SUMMARIZER),
            output_type=SummarizeTestCasesOutput,
            model_settings=adapter.get_model_settings(ModelRole.SUMMARIZER),
        )

        # Tests pin every role to one model instead of routing
        adapter = PydanticAIAdapter(model=TestModel())
    """

    def __init__(self, router: ModelRouter | None = None, model: Model | None = None):
        self.router = router or ModelRouter()
        self._model_override = model
        logger.debug(
            "PydanticAIAdapter initialized"
            + (f" with pinned model {model.model_name}" if model else "")
        )

    def get_model(self, role: ModelRole) -> Model:
        """
        Get the configured model for a role.

        Returns the pinned model when one was passed to the constructor,
        otherwise a GoogleModel for the role's primary ModelSpec.
        """
        if self._model_override is not None:
            return self._model_override

        spec = self.router.choose(role)
        provider = GoogleProvider(api_key=get_settings().GOOGLE_API_KEY)
        logger.debug(f"Retrieved model for role {role.value}: {spec.model_id}")
        return GoogleModel(spec.model_id, provider=provider)

    def get_model_settings(self, role: ModelRole) -> ModelSettings:
        """Sampling settings (temperature, max_tokens) for a role."""
        spec = self.router.choose(role)
        return {
            "temperature": spec.temperature,
            "max_tokens": spec.max_output_tokens,
        }

    def model_name(self, role: ModelRole) -> str:
        """Identifier of the model that serves `role`, for metadata and logs."""
        if self._model_override is not None:
            return self._model_override.model_name
        return self.router.choose(role).model_id
