"""
Configuration for the Selective Update Pipeline

This module defines the configuration dataclass used to initialize the
transfer-of-care update pipeline. Configuration is:
    1. Loaded from environment variables (with .env support)
    2. Validated at startup to fail fast on misconfiguration
    3. Plain data, passed explicitly into components (no global state)

Configuration Hierarchy:
    UpdateConfiguration (main config)
    ├── Provider Settings (API keys, models, primary/fallback order)
    ├── Call Settings (timeout, rate limit, per-provider retries)
    └── Compliance Settings (default profile, profile file, retry switch)

Usage:
    from clinical_note_update.core.config import UpdateConfiguration

    # Load from environment
    config = UpdateConfiguration.from_environment()

    # Or configure programmatically
    config = UpdateConfiguration(
        gemini_api_key="your-key",
        openai_api_key="your-other-key",
    )

Author: Shubham Singh
Date: December 2025
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from clinical_note_update.core.exceptions import ConfigurationError


# =============================================================================
# STAGE 1: DEFAULT VALUES
# =============================================================================


class ConfigDefaults:
    """Default configuration values."""

    # -------------------------------------------------------------------------
    # 1.1 Provider Defaults
    # -------------------------------------------------------------------------
    DEFAULT_GEMINI_MODEL = "gemini-1.5-flash"
    DEFAULT_OPENAI_MODEL = "gpt-4o-mini"
    DEFAULT_PRIMARY_PROVIDER = "gemini"
    DEFAULT_FALLBACK_PROVIDER = "openai"
    SUPPORTED_PROVIDERS = ("gemini", "openai")

    # -------------------------------------------------------------------------
    # 1.2 Call Defaults
    # -------------------------------------------------------------------------
    DEFAULT_GENERATION_TIMEOUT = 60.0  # seconds per gateway call
    DEFAULT_RATE_LIMIT_DELAY = 0.5  # seconds between API calls
    DEFAULT_PROVIDER_MAX_RETRIES = 1  # attempts per gateway call
    DEFAULT_RETRY_DELAY = 2.0  # seconds
    DEFAULT_TEMPERATURE = 0.3
    DEFAULT_MAX_OUTPUT_TOKENS = 4000

    # -------------------------------------------------------------------------
    # 1.3 Compliance Defaults
    # -------------------------------------------------------------------------
    DEFAULT_EMR_PROFILE = "epic"


# =============================================================================
# STAGE 2: CONFIGURATION DATACLASS
# =============================================================================


@dataclass
class UpdateConfiguration:
    """
    Configuration for the selective update pipeline.

    What it does:
        Encapsulates provider credentials, call limits and compliance
        defaults needed to build gateways and the merge engine.

    Why it exists:
        1. Single source of truth for all configuration
        2. Validated at startup to fail fast on errors
        3. Supports both environment and programmatic configuration

    Example:
        >>> config = UpdateConfiguration.from_environment()
        >>> config.primary_provider
        'gemini'
    """

    # -------------------------------------------------------------------------
    # 2.1 Provider Configuration
    # -------------------------------------------------------------------------
    gemini_api_key: Optional[str] = None
    """Google Gemini API key. Required if Gemini is primary or fallback."""

    gemini_model: str = ConfigDefaults.DEFAULT_GEMINI_MODEL

    openai_api_key: Optional[str] = None
    """OpenAI API key. Required if OpenAI is primary or fallback."""

    openai_model: str = ConfigDefaults.DEFAULT_OPENAI_MODEL

    primary_provider: str = ConfigDefaults.DEFAULT_PRIMARY_PROVIDER
    """Provider tried first for every generation."""

    fallback_provider: str = ConfigDefaults.DEFAULT_FALLBACK_PROVIDER
    """Provider tried once when the primary fails."""

    # -------------------------------------------------------------------------
    # 2.2 Call Configuration
    # -------------------------------------------------------------------------
    generation_timeout: float = ConfigDefaults.DEFAULT_GENERATION_TIMEOUT
    """Timeout in seconds placed on every generation request."""

    rate_limit_delay: float = ConfigDefaults.DEFAULT_RATE_LIMIT_DELAY

    provider_max_retries: int = ConfigDefaults.DEFAULT_PROVIDER_MAX_RETRIES
    """Attempts per gateway call inside a client. Keep at 1 to bound total calls."""

    retry_delay: float = ConfigDefaults.DEFAULT_RETRY_DELAY

    temperature: float = ConfigDefaults.DEFAULT_TEMPERATURE

    max_output_tokens: int = ConfigDefaults.DEFAULT_MAX_OUTPUT_TOKENS

    # -------------------------------------------------------------------------
    # 2.3 Compliance Configuration
    # -------------------------------------------------------------------------
    default_emr_profile: str = ConfigDefaults.DEFAULT_EMR_PROFILE
    """Profile used when a caller does not name one."""

    profile_config_path: Optional[str] = None
    """Optional JSON file with institution profiles and extra aliases."""

    enable_compliance_retry: bool = True
    """Whether a hard compliance violation triggers one stricter regeneration."""

    # -------------------------------------------------------------------------
    # 2.4 Validation Methods
    # -------------------------------------------------------------------------

    def api_key_for(self, provider: str) -> Optional[str]:
        return {"gemini": self.gemini_api_key, "openai": self.openai_api_key}.get(provider)

    def validate(self) -> None:
        """
        Validate configuration parameters.

        Checks:
            1. Provider names are supported
            2. Each configured provider has an API key
            3. Numeric parameters are in valid ranges
            4. Profile file exists (if given)

        Raises:
            ConfigurationError: If configuration is invalid
        """
        for setting, provider in (
            ("PRIMARY_PROVIDER", self.primary_provider),
            ("FALLBACK_PROVIDER", self.fallback_provider),
        ):
            if provider not in ConfigDefaults.SUPPORTED_PROVIDERS:
                raise ConfigurationError(
                    f"Unsupported provider: {provider}",
                    context={
                        "setting": setting,
                        "supported": ", ".join(ConfigDefaults.SUPPORTED_PROVIDERS),
                    },
                )
            if not self.api_key_for(provider):
                raise ConfigurationError(
                    f"API key required for provider '{provider}'",
                    context={"setting": f"{provider.upper()}_API_KEY", "provider": provider},
                )

        if self.generation_timeout <= 0:
            raise ConfigurationError(
                f"Generation timeout must be positive, got {self.generation_timeout}",
                context={"setting": "GENERATION_TIMEOUT"},
            )

        if self.provider_max_retries < 1:
            raise ConfigurationError(
                f"Provider max retries must be at least 1, got {self.provider_max_retries}",
                context={"setting": "PROVIDER_MAX_RETRIES"},
            )

        if self.profile_config_path and not Path(self.profile_config_path).exists():
            raise ConfigurationError(
                f"Profile config file not found: {self.profile_config_path}",
                context={"setting": "PROFILE_CONFIG_PATH", "path": self.profile_config_path},
            )

    # -------------------------------------------------------------------------
    # 2.5 Factory Methods
    # -------------------------------------------------------------------------

    @classmethod
    def from_environment(
        cls, env_file: Optional[str] = None, validate_on_load: bool = True
    ) -> "UpdateConfiguration":
        """
        Load configuration from environment variables.

        STAGE 1: Load .env file (if specified or found)
        STAGE 2: Read environment variables
        STAGE 3: Convert to typed configuration
        STAGE 4: Validate configuration (optional)

        Args:
            env_file: Path to .env file (optional, auto-detected if not provided)
            validate_on_load: Whether to validate after loading

        Returns:
            Configured UpdateConfiguration instance

        Raises:
            ConfigurationError: If required settings are missing or invalid
        """
        # STAGE 1: Load .env file
        if env_file:
            load_dotenv(env_file)
        else:
            possible_locations = [
                Path.cwd() / ".env",
                Path.cwd() / "clinical_note_update" / ".env",
            ]
            for location in possible_locations:
                if location.exists():
                    load_dotenv(location)
                    break

        # STAGE 2: Read environment variables
        gemini_key = os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")
        openai_key = os.getenv("OPENAI_API_KEY")

        # STAGE 3: Create configuration
        try:
            config = cls(
                gemini_api_key=gemini_key,
                gemini_model=os.getenv("GEMINI_MODEL", ConfigDefaults.DEFAULT_GEMINI_MODEL),
                openai_api_key=openai_key,
                openai_model=os.getenv("OPENAI_MODEL", ConfigDefaults.DEFAULT_OPENAI_MODEL),
                primary_provider=os.getenv(
                    "PRIMARY_PROVIDER", ConfigDefaults.DEFAULT_PRIMARY_PROVIDER
                ).lower(),
                fallback_provider=os.getenv(
                    "FALLBACK_PROVIDER", ConfigDefaults.DEFAULT_FALLBACK_PROVIDER
                ).lower(),
                generation_timeout=float(
                    os.getenv("GENERATION_TIMEOUT", ConfigDefaults.DEFAULT_GENERATION_TIMEOUT)
                ),
                rate_limit_delay=float(
                    os.getenv("RATE_LIMIT_DELAY", ConfigDefaults.DEFAULT_RATE_LIMIT_DELAY)
                ),
                provider_max_retries=int(
                    os.getenv("PROVIDER_MAX_RETRIES", ConfigDefaults.DEFAULT_PROVIDER_MAX_RETRIES)
                ),
                default_emr_profile=os.getenv(
                    "DEFAULT_EMR_PROFILE", ConfigDefaults.DEFAULT_EMR_PROFILE
                ).lower(),
                profile_config_path=os.getenv("PROFILE_CONFIG_PATH") or None,
                enable_compliance_retry=os.getenv("ENABLE_COMPLIANCE_RETRY", "true").lower()
                == "true",
            )
        except ValueError as e:
            raise ConfigurationError(
                f"Invalid numeric setting: {e}", context={"source": "environment"}
            ) from e

        # STAGE 4: Validate
        if validate_on_load:
            config.validate()

        return config

    def to_dict(self) -> dict:
        """Convert configuration to dictionary (for logging/debugging)."""
        return {
            "primary_provider": self.primary_provider,
            "fallback_provider": self.fallback_provider,
            "gemini_model": self.gemini_model,
            "openai_model": self.openai_model,
            "gemini_api_key": "***" if self.gemini_api_key else None,
            "openai_api_key": "***" if self.openai_api_key else None,
            "generation_timeout": self.generation_timeout,
            "rate_limit_delay": self.rate_limit_delay,
            "provider_max_retries": self.provider_max_retries,
            "default_emr_profile": self.default_emr_profile,
            "profile_config_path": self.profile_config_path,
            "enable_compliance_retry": self.enable_compliance_retry,
        }
