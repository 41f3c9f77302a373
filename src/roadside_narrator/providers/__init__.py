"""External collaborator boundaries: POI discovery and language-model backends."""

from .llm import (
    GeneratedText,
    LLMBackend,
    LLMUnavailableError,
    MockLLMBackend,
    OpenAILLMBackend,
    SeedDraft,
    select_llm_backend,
)
from .poi import POIProvider, StaticPOIProvider, load_pois

__all__ = [
    "GeneratedText",
    "LLMBackend",
    "LLMUnavailableError",
    "MockLLMBackend",
    "OpenAILLMBackend",
    "POIProvider",
    "SeedDraft",
    "StaticPOIProvider",
    "load_pois",
    "select_llm_backend",
]
