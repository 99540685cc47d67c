"""
Generation Layer - Gateway Boundary and Prompts

This layer is the boundary between the merge engine and text generation
providers.

Submodules:
    gateway.py        → GenerationGateway protocol and LLMGateway adapter
    prompt_builder.py → Prompt construction and templates

Dependency Rule:
    This layer depends on: core, clients (LLM)
    This layer is used by: merge, pipeline

Author: Shubham Singh
Date: December 2025
"""

from clinical_note_update.generation.gateway import (
    GenerationGateway,
    LLMGateway,
    clean_generated_text,
)
from clinical_note_update.generation.prompt_builder import PromptBuilder

__all__ = [
    "GenerationGateway",
    "LLMGateway",
    "clean_generated_text",
    "PromptBuilder",
]
