"""
Language-model collaborator: local providers and the fallback helper.
"""

from gitchat.llm.fallback import Resolution, ResolutionSource, resolve_with_fallback
from gitchat.llm.providers import (
    LLMRequest,
    LLMResponse,
    LMStudioProvider,
    ModelClient,
    OllamaProvider,
    create_model_client,
)

__all__ = [
    "LLMRequest",
    "LLMResponse",
    "LMStudioProvider",
    "ModelClient",
    "OllamaProvider",
    "Resolution",
    "ResolutionSource",
    "create_model_client",
    "resolve_with_fallback",
]
