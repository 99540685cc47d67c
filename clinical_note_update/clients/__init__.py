"""
Clients Layer - LLM API Client Abstractions

This layer provides clean abstractions over LLM providers (Gemini, OpenAI),
enabling the generation gateway to work with any provider interchangeably.

Submodules:
    llm_client.py    → Protocol and thread-safe base implementation
    gemini_client.py → Google Gemini implementation
    openai_client.py → OpenAI implementation

Dependency Rule:
    This layer depends on: core (exceptions)
    This layer is used by: generation, pipeline

Author: Shubham Singh
Date: December 2025
"""

from clinical_note_update.clients.llm_client import (
    LLMClientProtocol,
    BaseLLMClient,
)
from clinical_note_update.clients.gemini_client import GeminiClient
from clinical_note_update.clients.openai_client import OpenAIClient

__all__ = [
    "LLMClientProtocol",
    "BaseLLMClient",
    "GeminiClient",
    "OpenAIClient",
]
