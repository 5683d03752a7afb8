"""
LLM infrastructure for TestGenius.

Provides role-based model selection and pydantic-ai integration.
"""

from .model_registry import ModelSpec, load_defaults_from_env
from .model_roles import ModelRole
from .pydantic_ai_adapter import PydanticAIAdapter
from .router import ModelRouter

__all__ = [
    "ModelRole",
    "ModelSpec",
    "load_defaults_from_env",
    "ModelRouter",
    "PydanticAIAdapter",
]
