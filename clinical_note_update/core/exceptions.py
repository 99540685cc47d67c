"""
Domain Exceptions for Clinical Note Selective Update

This module defines all custom exceptions used throughout the selective
update pipeline. Well-defined exceptions enable:
    1. Clear error categorization for debugging
    2. Specific catch blocks for different failure modes
    3. Rich error context for troubleshooting

Exception Hierarchy:
    ClinicalNoteUpdateError (base)
    ├── ConfigurationError          → Invalid configuration or merge inputs
    │   └── ProfileNotFoundError
    ├── RepositoryError             → Profile data access failures
    │   └── ProfileLoadError
    ├── GatewayError                → Generation provider failures
    │   ├── GatewayTimeoutError
    │   ├── EmptyResponseError
    │   └── ProviderError
    │       ├── RateLimitError
    │       └── ContentFilteredError
    └── MergeError                  → Selective update failures
        ├── BothProvidersFailedError
        └── MergeCancelledError

Parse problems are reported as warnings on the ParsedNote and compliance
violations as ValidationResult errors; neither raises.

Usage:
    from clinical_note_update.core.exceptions import BothProvidersFailedError

    try:
        merged = engine.merge_update(prev, transcript, selection, profile)
    except BothProvidersFailedError as e:
        logger.error(f"Generation unavailable: {e.primary_error}")

Author: Shubham Singh
Date: December 2025
"""

from typing import Optional


# =============================================================================
# STAGE 1: BASE EXCEPTION
# =============================================================================


class ClinicalNoteUpdateError(Exception):
    """
    Base exception for all selective update errors.

    What it does:
        Provides a common base class for all domain-specific exceptions,
        enabling catch-all handling while preserving specific error types.

    Attributes:
        message: Human-readable error description
        context: Dictionary of additional context for debugging
    """

    def __init__(self, message: str, context: Optional[dict] = None):
        self.message = message
        self.context = context or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format message with context for display."""
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} [{context_str}]"
        return self.message


# =============================================================================
# STAGE 2: CONFIGURATION ERRORS
# =============================================================================


class ConfigurationError(ClinicalNoteUpdateError):
    """
    Error in pipeline configuration or merge inputs.

    When raised:
        - Missing API keys or unknown provider names
        - No compliance profile supplied to the merge engine
        - A section selected for update does not exist in the previous note

    Example:
        >>> raise ConfigurationError(
        ...     "Selected section not present in previous note",
        ...     context={"section_type": "SAFETY_PLAN"}
        ... )
    """

    pass


class ProfileNotFoundError(ConfigurationError):
    """
    Requested EMR compliance profile is not registered.

    Attributes:
        profile_id: The identifier that was requested
    """

    def __init__(self, profile_id: str, available: Optional[list] = None):
        self.profile_id = profile_id
        super().__init__(
            f"EMR profile not found: {profile_id}",
            context={"profile_id": profile_id, "available": available or []},
        )


# =============================================================================
# STAGE 3: REPOSITORY ERRORS
# =============================================================================


class RepositoryError(ClinicalNoteUpdateError):
    """Error accessing profile or alias data."""

    pass


class ProfileLoadError(RepositoryError):
    """
    Error loading institution profiles from disk.

    When raised:
        - File not found
        - Invalid JSON format
        - Unknown section type or invalid regex in a profile definition

    Attributes:
        file_path: Path to the profile file
        reason: Why loading failed
    """

    def __init__(self, file_path: str, reason: str):
        self.file_path = file_path
        self.reason = reason
        super().__init__(
            f"Failed to load profiles from {file_path}: {reason}",
            context={"file_path": file_path},
        )


# =============================================================================
# STAGE 4: GATEWAY ERRORS
# =============================================================================
# Every failure surfaced by a generation provider. The merge engine treats
# any GatewayError from the primary as a signal to try the secondary.


class GatewayError(ClinicalNoteUpdateError):
    """
    Error returned by a generation gateway.

    Attributes:
        provider: The provider identity (gemini, openai, ...)
        original_error: The wrapped original exception
    """

    def __init__(self, message: str, provider: str, original_error: Optional[Exception] = None):
        self.provider = provider
        self.original_error = original_error
        super().__init__(
            message,
            context={
                "provider": provider,
                "original_error": str(original_error) if original_error else None,
            },
        )


class GatewayTimeoutError(GatewayError):
    """
    Provider call exceeded its timeout.

    Attributes:
        timeout_seconds: The timeout that was exceeded
    """

    def __init__(
        self,
        provider: str,
        timeout_seconds: Optional[float] = None,
        original_error: Optional[Exception] = None,
    ):
        self.timeout_seconds = timeout_seconds
        super().__init__(
            f"Generation timed out for {provider} after {timeout_seconds}s",
            provider=provider,
            original_error=original_error,
        )
        self.context["timeout_seconds"] = timeout_seconds


class EmptyResponseError(GatewayError):
    """Provider returned no usable text."""

    def __init__(self, provider: str, detail: Optional[str] = None):
        super().__init__(
            f"Empty response from {provider}" + (f": {detail}" if detail else ""),
            provider=provider,
        )


class ProviderError(GatewayError):
    """Provider-side failure (API error, bad payload, unexpected exception)."""

    pass


class RateLimitError(ProviderError):
    """
    Provider rate limit exceeded.

    Attributes:
        retry_after: Seconds to wait before retrying (if known)
    """

    def __init__(
        self,
        provider: str,
        retry_after: Optional[int] = None,
        original_error: Optional[Exception] = None,
    ):
        self.retry_after = retry_after
        super().__init__(
            f"Rate limit exceeded for {provider}", provider=provider, original_error=original_error
        )
        self.context["retry_after"] = retry_after


class ContentFilteredError(ProviderError):
    """Provider refused to generate content due to safety settings."""

    def __init__(self, provider: str, reason: Optional[str] = None):
        super().__init__(
            f"Content filtered by {provider} safety settings: {reason or 'unknown reason'}",
            provider=provider,
        )
        self.reason = reason


# =============================================================================
# STAGE 5: MERGE ERRORS
# =============================================================================


class MergeError(ClinicalNoteUpdateError):
    """Base exception for selective update failures."""

    pass


class BothProvidersFailedError(MergeError):
    """
    Primary and secondary providers both failed for the same request.

    Attributes:
        primary_error: GatewayError raised by the primary provider
        secondary_error: GatewayError raised by the secondary provider
    """

    def __init__(self, primary_error: GatewayError, secondary_error: GatewayError):
        self.primary_error = primary_error
        self.secondary_error = secondary_error
        super().__init__(
            "Both generation providers failed",
            context={
                "primary": f"{primary_error.provider}: {primary_error.message}",
                "secondary": f"{secondary_error.provider}: {secondary_error.message}",
            },
        )


class MergeCancelledError(MergeError):
    """
    Merge was cancelled by the caller.

    Attributes:
        state: The merge state at which cancellation was observed
    """

    def __init__(self, state: str):
        self.state = state
        super().__init__("Merge cancelled", context={"state": state})
