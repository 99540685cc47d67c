"""
LLM Client Protocol and Base Implementation

This module defines the interface for LLM clients and provides a base
class with common functionality (rate limiting, timeouts, error handling).

Protocol Pattern:
    - LLMClientProtocol defines the interface
    - BaseLLMClient provides common implementation
    - Concrete clients (GeminiClient, OpenAIClient) extend base

Error Contract:
    Every failure leaves a client as a GatewayError subclass carrying the
    provider name, so the merge engine can fall back without knowing which
    SDK raised what.

Author: Shubham Singh
Date: December 2025
"""

import threading
import time
from abc import ABC, abstractmethod
from typing import Optional, Protocol, runtime_checkable

from loguru import logger

from clinical_note_update.core.exceptions import (
    ContentFilteredError,
    GatewayError,
    GatewayTimeoutError,
    ProviderError,
    RateLimitError,
)


# =============================================================================
# STAGE 1: LLM CLIENT PROTOCOL
# =============================================================================


@runtime_checkable
class LLMClientProtocol(Protocol):
    """
    Protocol defining the interface for LLM clients.

    Required Methods:
        generate(prompt, timeout) → Generate text from prompt

    Properties:
        model_name → Name of the model being used
        provider_name → Name of the provider (gemini, openai)
    """

    def generate(self, prompt: str, timeout: Optional[float] = None) -> str:
        """
        Generate text from a prompt.

        Raises:
            GatewayError: If generation fails
        """
        ...

    @property
    def model_name(self) -> str:
        ...

    @property
    def provider_name(self) -> str:
        ...


def is_timeout_error(error: Exception) -> bool:
    """Recognize SDK timeout exceptions without importing the SDKs."""
    if isinstance(error, TimeoutError):
        return True
    name = type(error).__name__.lower()
    message = str(error).lower()
    return (
        "timeout" in name
        or "deadline" in name
        or "timed out" in message
        or "deadline exceeded" in message
    )


# =============================================================================
# STAGE 2: BASE LLM CLIENT (ABSTRACT)
# =============================================================================


class BaseLLMClient(ABC):
    """
    Abstract base class for LLM clients with common functionality.

    What it does:
        Provides rate limiting, bounded retry, timeout mapping and call
        metrics, so concrete implementations only implement the API call.

    Thread Safety:
        Rate limiting and counters are guarded by a lock; one client may be
        shared by concurrent merges.

    What subclasses must implement:
        - _call_api(prompt, timeout): Actual API call
        - provider_name: Property returning provider name
    """

    def __init__(
        self,
        api_key: str,
        model_name: str,
        rate_limit_delay: float = 0.5,
        max_retries: int = 1,
        retry_delay: float = 2.0,
    ):
        """
        Initialize base LLM client.

        Args:
            api_key: API key for the provider
            model_name: Name of model to use
            rate_limit_delay: Seconds to wait between API calls
            max_retries: Attempts per generate() call
            retry_delay: Seconds to wait before retrying a failed attempt
        """
        # =====================================================================
        # STAGE 2.1: STORE CONFIGURATION
        # =====================================================================
        self._api_key = api_key
        self._model_name = model_name
        self._rate_limit_delay = rate_limit_delay
        self._max_retries = max(1, max_retries)
        self._retry_delay = retry_delay

        # =====================================================================
        # STAGE 2.2: TRACKING STATE
        # =====================================================================
        self._lock = threading.Lock()
        self._last_call_time: Optional[float] = None
        self._total_calls = 0
        self._failed_calls = 0

    # =========================================================================
    # STAGE 3: PUBLIC API
    # =========================================================================

    def generate(self, prompt: str, timeout: Optional[float] = None) -> str:
        """
        Generate text from prompt with rate limiting and retry.

        Algorithm:
            1. Apply rate limiting (wait if needed)
            2. Call API, retrying transient errors up to max_retries
            3. Track metrics
            4. Return result

        Args:
            prompt: The generation prompt
            timeout: Per-attempt timeout in seconds (None = SDK default)

        Returns:
            Generated text

        Raises:
            GatewayError: The last error once all attempts fail
        """
        last_error: Optional[GatewayError] = None

        for attempt in range(1, self._max_retries + 1):
            self._apply_rate_limit()
            try:
                result = self._call_api(prompt, timeout)
                self._record(success=True)
                return result

            except ContentFilteredError as e:
                # Same prompt, same filter: retrying cannot help.
                self._record(success=False)
                logger.warning(f"Content filtered by {self.provider_name}: {e.reason}")
                raise

            except RateLimitError as e:
                last_error = e
                self._record(success=False)
                if attempt < self._max_retries:
                    wait_time = e.retry_after or (2**attempt)
                    logger.warning(
                        f"Rate limited by {self.provider_name}, "
                        f"waiting {wait_time}s (attempt {attempt})"
                    )
                    time.sleep(wait_time)

            except GatewayError as e:
                last_error = e
                self._record(success=False)
                logger.warning(
                    f"LLM call failed (attempt {attempt}/{self._max_retries}) | "
                    f"Provider: {self.provider_name} | Error: {e.message}"
                )
                if attempt < self._max_retries:
                    time.sleep(self._retry_delay)

            except Exception as e:
                self._record(success=False)
                if is_timeout_error(e):
                    last_error = GatewayTimeoutError(
                        self.provider_name, timeout_seconds=timeout, original_error=e
                    )
                else:
                    last_error = ProviderError(
                        f"Unexpected error in {self.provider_name} call: {e}",
                        provider=self.provider_name,
                        original_error=e,
                    )
                logger.error(f"Unexpected error in LLM call | Provider: {self.provider_name} | {e}")

        logger.warning(
            f"Generation failed after {self._max_retries} attempt(s) | "
            f"Provider: {self.provider_name}"
        )
        raise last_error

    # =========================================================================
    # STAGE 4: ABSTRACT METHODS
    # =========================================================================

    @abstractmethod
    def _call_api(self, prompt: str, timeout: Optional[float]) -> str:
        """
        Make the actual API call. Must be implemented by subclasses.

        Raises:
            GatewayError: If API call fails
        """
        ...

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name (e.g., 'gemini', 'openai')."""
        ...

    # =========================================================================
    # STAGE 5: COMMON IMPLEMENTATION
    # =========================================================================

    @property
    def model_name(self) -> str:
        return self._model_name

    def _apply_rate_limit(self) -> None:
        """Apply rate limiting between API calls."""
        with self._lock:
            now = time.monotonic()
            wait_time = 0.0
            if self._last_call_time is not None:
                elapsed = now - self._last_call_time
                if elapsed < self._rate_limit_delay:
                    wait_time = self._rate_limit_delay - elapsed
            # Reserve the slot before sleeping so concurrent callers queue up.
            self._last_call_time = now + wait_time
        if wait_time > 0:
            time.sleep(wait_time)

    def _record(self, success: bool) -> None:
        with self._lock:
            if success:
                self._total_calls += 1
            else:
                self._failed_calls += 1

    def _classify_error(self, error: Exception, timeout: Optional[float]) -> GatewayError:
        """
        Translate an SDK exception into a domain GatewayError.

        Rate limits, timeouts and safety filters are recognized from the
        exception type name and message, the same way for every SDK.
        """
        error_str = f"{type(error).__name__} {error}".lower()
        provider = self.provider_name

        if is_timeout_error(error):
            return GatewayTimeoutError(provider, timeout_seconds=timeout, original_error=error)
        if (
            "ratelimit" in error_str
            or "rate limit" in error_str
            or "rate_limit" in error_str
            or "quota" in error_str
            or "429" in error_str
        ):
            return RateLimitError(provider=provider, original_error=error)
        if (
            "blocked" in error_str
            or "safety" in error_str
            or "content_filter" in error_str
            or "policy" in error_str
        ):
            return ContentFilteredError(provider=provider, reason=str(error))
        return ProviderError(f"{provider} API error: {error}", provider=provider, original_error=error)

    # =========================================================================
    # STAGE 6: METRICS
    # =========================================================================

    @property
    def total_calls(self) -> int:
        """Total number of successful API calls."""
        return self._total_calls

    @property
    def failed_calls(self) -> int:
        """Number of failed API calls."""
        return self._failed_calls

    @property
    def success_rate(self) -> float:
        """Percentage of successful calls."""
        total = self._total_calls + self._failed_calls
        if total == 0:
            return 100.0
        return (self._total_calls / total) * 100
