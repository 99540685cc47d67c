"""
OpenAI Client - OpenAI API Implementation

This module provides the concrete implementation of LLMClient for
OpenAI's chat completion models. OpenAI is the default fallback provider
of the selective update pipeline.

Author: Shubham Singh
Date: December 2025
"""

from typing import Optional

from loguru import logger

from clinical_note_update.clients.llm_client import BaseLLMClient
from clinical_note_update.core.exceptions import (
    ContentFilteredError,
    EmptyResponseError,
    GatewayError,
    ProviderError,
)


SYSTEM_MESSAGE = (
    "You are a clinical documentation assistant. You update only the sections "
    "you are asked to update and return the complete note as plain text."
)


# =============================================================================
# STAGE 1: OPENAI CLIENT IMPLEMENTATION
# =============================================================================


class OpenAIClient(BaseLLMClient):
    """
    OpenAI API client for text generation.

    What it does:
        Provides text generation using OpenAI's models via the openai
        library, passing a per-call timeout to the SDK.

    Why it exists:
        1. Encapsulates OpenAI-specific API logic
        2. Handles OpenAI's content filter finish reason
        3. Translates OpenAI errors to domain exceptions

    Example:
        >>> client = OpenAIClient(api_key="...", model_name="gpt-4o-mini")
        >>> text = client.generate("Update the HPI section...", timeout=60)
    """

    def __init__(
        self,
        api_key: str,
        model_name: str = "gpt-4o-mini",
        rate_limit_delay: float = 0.5,
        max_retries: int = 1,
        retry_delay: float = 2.0,
        temperature: float = 0.3,
        max_output_tokens: int = 4000,
    ):
        """
        Initialize OpenAI client.

        STAGE 1.1: Initialize base class
        STAGE 1.2: Configure OpenAI SDK

        Args:
            api_key: OpenAI API key
            model_name: Model to use (default: gpt-4o-mini)
            rate_limit_delay: Seconds between API calls
            max_retries: Attempts per generate() call
            retry_delay: Seconds between attempts
            temperature: Sampling temperature
            max_output_tokens: Output token cap
        """
        super().__init__(
            api_key=api_key,
            model_name=model_name,
            rate_limit_delay=rate_limit_delay,
            max_retries=max_retries,
            retry_delay=retry_delay,
        )
        self._temperature = temperature
        self._max_output_tokens = max_output_tokens

        self._client = None
        self._initialize_client()

        logger.info(f"OpenAIClient initialized | Model: {model_name}")

    def _initialize_client(self) -> None:
        """
        Initialize the OpenAI client.

        Lazy import to avoid requiring openai at module load. SDK-level
        retries are disabled; retries are counted by the base class.
        """
        try:
            from openai import OpenAI

            self._client = OpenAI(api_key=self._api_key, max_retries=0)

        except ImportError as e:
            raise ProviderError(
                "openai package not installed. Install with: pip install openai",
                provider="openai",
                original_error=e,
            ) from e
        except Exception as e:
            raise ProviderError(
                f"Failed to initialize OpenAI client: {e}", provider="openai", original_error=e
            ) from e

    # =========================================================================
    # STAGE 2: API CALL IMPLEMENTATION
    # =========================================================================

    def _call_api(self, prompt: str, timeout: Optional[float]) -> str:
        """
        Make the actual OpenAI API call.

        Raises:
            GatewayTimeoutError: If the request timed out
            RateLimitError: If rate limited
            ContentFilteredError: If content was filtered
            EmptyResponseError: If no text came back
            ProviderError: Any other API failure
        """
        try:
            kwargs = {
                "model": self._model_name,
                "messages": [
                    {"role": "system", "content": SYSTEM_MESSAGE},
                    {"role": "user", "content": prompt},
                ],
                "temperature": self._temperature,
                "max_tokens": self._max_output_tokens,
            }
            if timeout:
                kwargs["timeout"] = timeout
            response = self._client.chat.completions.create(**kwargs)

            if response.choices:
                choice = response.choices[0]
                if getattr(choice, "finish_reason", None) == "content_filter":
                    raise ContentFilteredError(provider="openai", reason="content_filter")
                if choice.message and choice.message.content:
                    return choice.message.content

            raise EmptyResponseError(provider="openai")

        except GatewayError:
            raise

        except Exception as e:
            raise self._classify_error(e, timeout) from e

    # =========================================================================
    # STAGE 3: PROPERTIES
    # =========================================================================

    @property
    def provider_name(self) -> str:
        return "openai"
