"""
Gemini Client - Google Gemini API Implementation

This module provides the concrete implementation of LLMClient for
Google's Gemini API (gemini-1.5-flash, gemini-1.5-pro, etc.). Gemini is
the default primary provider of the selective update pipeline.

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


# =============================================================================
# STAGE 1: GEMINI CLIENT IMPLEMENTATION
# =============================================================================


class GeminiClient(BaseLLMClient):
    """
    Google Gemini API client for text generation.

    What it does:
        Provides text generation using Google's Gemini models via the
        google-generativeai library, with a per-call request timeout.

    Why it exists:
        1. Encapsulates Gemini-specific API logic
        2. Handles Gemini's safety settings (clinical text trips default filters)
        3. Translates Gemini errors to domain exceptions

    Example:
        >>> client = GeminiClient(api_key="...", model_name="gemini-1.5-flash")
        >>> text = client.generate("Update the HPI section...", timeout=60)
    """

    def __init__(
        self,
        api_key: str,
        model_name: str = "gemini-1.5-flash",
        rate_limit_delay: float = 0.5,
        max_retries: int = 1,
        retry_delay: float = 2.0,
        temperature: float = 0.3,
        max_output_tokens: int = 4000,
    ):
        """
        Initialize Gemini client.

        STAGE 1.1: Initialize base class
        STAGE 1.2: Configure Gemini SDK
        STAGE 1.3: Set safety settings

        Args:
            api_key: Google API key (Gemini)
            model_name: Model to use (default: gemini-1.5-flash)
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

        self._model = None
        self._initialize_client()

        logger.info(f"GeminiClient initialized | Model: {model_name}")

    def _initialize_client(self) -> None:
        """
        Initialize the Gemini client and model.

        Lazy import to avoid requiring google-generativeai at module load.
        """
        try:
            import google.generativeai as genai

            genai.configure(api_key=self._api_key)

            # STAGE 1.3: Set safety settings (permissive for medical content)
            safety_settings = [
                {"category": "HARM_CATEGORY_HARASSMENT", "threshold": "BLOCK_NONE"},
                {"category": "HARM_CATEGORY_HATE_SPEECH", "threshold": "BLOCK_NONE"},
                {"category": "HARM_CATEGORY_SEXUALLY_EXPLICIT", "threshold": "BLOCK_NONE"},
                {"category": "HARM_CATEGORY_DANGEROUS_CONTENT", "threshold": "BLOCK_NONE"},
            ]

            self._model = genai.GenerativeModel(
                model_name=self._model_name,
                safety_settings=safety_settings,
                generation_config={
                    "temperature": self._temperature,
                    "max_output_tokens": self._max_output_tokens,
                },
            )

        except ImportError as e:
            raise ProviderError(
                "google-generativeai package not installed. "
                "Install with: pip install google-generativeai",
                provider="gemini",
                original_error=e,
            ) from e
        except Exception as e:
            raise ProviderError(
                f"Failed to initialize Gemini client: {e}", provider="gemini", original_error=e
            ) from e

    # =========================================================================
    # STAGE 2: API CALL IMPLEMENTATION
    # =========================================================================

    def _call_api(self, prompt: str, timeout: Optional[float]) -> str:
        """
        Make the actual Gemini API call.

        Raises:
            GatewayTimeoutError: If the request deadline passed
            RateLimitError: If rate limited
            ContentFilteredError: If content was filtered
            EmptyResponseError: If no text came back
            ProviderError: Any other API failure
        """
        request_options = {"timeout": timeout} if timeout else None
        try:
            response = self._model.generate_content(prompt, request_options=request_options)

            feedback = getattr(response, "prompt_feedback", None)
            if feedback is not None and getattr(feedback, "block_reason", None):
                raise ContentFilteredError(provider="gemini", reason=str(feedback.block_reason))

            if response.candidates:
                candidate = response.candidates[0]
                if candidate.content and candidate.content.parts:
                    text = "".join(getattr(part, "text", "") for part in candidate.content.parts)
                    if text.strip():
                        return text

            raise EmptyResponseError(provider="gemini")

        except GatewayError:
            raise

        except Exception as e:
            raise self._classify_error(e, timeout) from e

    # =========================================================================
    # STAGE 3: PROPERTIES
    # =========================================================================

    @property
    def provider_name(self) -> str:
        return "gemini"
