"""
Generation Gateway - Provider Boundary of the Merge Engine

This module defines the only interface the merge engine uses to reach a
text generator, and the adapter that puts an LLM client behind it.

Protocol Pattern:
    - GenerationGateway defines the interface (provider_name, generate)
    - LLMGateway adapts any LLMClientProtocol to it
    - Tests pass stub gateways implementing the same two members

Error Contract:
    generate() returns a GenerationResult or raises a GatewayError subclass
    (GatewayTimeoutError, EmptyResponseError, ProviderError) carrying the
    provider identity.

Author: Shubham Singh
Date: December 2025
"""

import re
from typing import Optional, Protocol, runtime_checkable

from loguru import logger

from clinical_note_update.clients.llm_client import LLMClientProtocol
from clinical_note_update.core.exceptions import EmptyResponseError
from clinical_note_update.core.models import GenerationRequest, GenerationResult
from clinical_note_update.generation.prompt_builder import PromptBuilder


# =============================================================================
# STAGE 1: GATEWAY PROTOCOL
# =============================================================================


@runtime_checkable
class GenerationGateway(Protocol):
    """
    Protocol for anything that can regenerate note text.

    Required Members:
        provider_name → Provider identity reported in results and errors
        generate(request) → GenerationResult, or raise GatewayError
    """

    @property
    def provider_name(self) -> str:
        ...

    def generate(self, request: GenerationRequest) -> GenerationResult:
        ...


# =============================================================================
# STAGE 2: OUTPUT CLEANUP
# =============================================================================

_CODE_FENCE = re.compile(r"^```[a-zA-Z]*\s*\n(.*?)\n?```\s*$", re.DOTALL)
_PREAMBLE = re.compile(
    r"^\s*(?:sure[,!.]?\s*)?(?:here\s+is|here's|below\s+is)\b[^\n]*?"
    r"(?:note|sections?)[^\n]*:?\s*\n",
    re.IGNORECASE,
)


def clean_generated_text(text: str) -> str:
    """
    Strip wrapper text models add around a note.

    Removes a surrounding markdown code fence and a leading
    "Here is the updated note:" style sentence. The note body is untouched.
    """
    cleaned = text.strip()
    fenced = _CODE_FENCE.match(cleaned)
    if fenced:
        cleaned = fenced.group(1).strip()
    cleaned = _PREAMBLE.sub("", cleaned, count=1)
    return cleaned.strip()


# =============================================================================
# STAGE 3: LLM GATEWAY ADAPTER
# =============================================================================


class LLMGateway:
    """
    Generation gateway backed by an LLM client.

    What it does:
        Builds the prompt for a request, calls the client with the request's
        timeout, cleans the output, and reports which provider answered.

    Why it exists:
        1. The merge engine depends on a two-member protocol, not on SDKs
        2. Prompt wording stays out of the engine
        3. One pooled client can serve many concurrent merges

    Example:
        >>> gateway = LLMGateway(GeminiClient(api_key="..."))
        >>> result = gateway.generate(request)
        >>> result.provider
        'gemini'
    """

    def __init__(self, client: LLMClientProtocol, prompt_builder: Optional[PromptBuilder] = None):
        self._client = client
        self._prompt_builder = prompt_builder or PromptBuilder()
        logger.info(
            f"LLMGateway initialized | Provider: {client.provider_name} | "
            f"Model: {client.model_name}"
        )

    @property
    def provider_name(self) -> str:
        return self._client.provider_name

    @property
    def model_name(self) -> str:
        return self._client.model_name

    def generate(self, request: GenerationRequest) -> GenerationResult:
        """
        Regenerate the allowed sections of a note.

        Raises:
            EmptyResponseError: If the cleaned output is blank
            GatewayError: Whatever the client raised
        """
        prompt = self._prompt_builder.build_update_prompt(request)
        logger.debug(
            f"Calling {self.provider_name} | Sections: {len(request.allowed_section_types)} | "
            f"Strict: {request.strict} | Prompt length: {len(prompt)}"
        )

        raw_text = self._client.generate(prompt, timeout=request.timeout_seconds)
        if not isinstance(raw_text, str):
            raise EmptyResponseError(self.provider_name, detail="non-text payload")

        text = clean_generated_text(raw_text)
        if not text:
            raise EmptyResponseError(self.provider_name, detail="blank output after cleanup")

        return GenerationResult(text=text, provider=self.provider_name, model=self.model_name)
