"""
Transfer-of-Care Pipeline - Main Orchestrator

This is the PUBLIC API entry point for the selective update system. It
coordinates all layers (repository, parsing, validation, generation, merge)
into a simple, easy-to-use interface.

Architecture Diagram:
    ┌─────────────────────────────────────────────────────────────────────┐
    │                       TransferOfCarePipeline                        │
    │                         (This Orchestrator)                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                     │
    │   ┌───────────┐    ┌───────────┐    ┌───────────┐    ┌───────────┐  │
    │   │Repository │ →  │  Parsing  │ →  │   Merge   │ →  │ Validation│  │
    │   └───────────┘    └───────────┘    └─────┬─────┘    └───────────┘  │
    │                                           │                         │
    │                          Gateway (primary → fallback)               │
    └─────────────────────────────────────────────────────────────────────┘

Usage:
    from clinical_note_update import TransferOfCarePipeline

    pipeline = TransferOfCarePipeline.from_environment()
    merged = pipeline.update_note(
        previous_note=text,
        transcript=transcript,
        selection="standard-followup",
        profile_id="credible",
    )

The pipeline stores nothing: every call returns a plain value and any
persistence is the caller's responsibility.

Author: Shubham Singh
Date: December 2025
"""

from typing import Optional, Union

from loguru import logger

from clinical_note_update.clients import GeminiClient, OpenAIClient
from clinical_note_update.core.config import UpdateConfiguration
from clinical_note_update.core.exceptions import ConfigurationError
from clinical_note_update.core.models import (
    EMRProfile,
    MergedNote,
    ParsedNote,
    SelectionConfig,
    ValidationResult,
)
from clinical_note_update.generation import LLMGateway, PromptBuilder
from clinical_note_update.merge import CancellationToken, SelectiveUpdateEngine
from clinical_note_update.parsing import SectionParser
from clinical_note_update.repository import (
    FileBasedProfileRepository,
    InMemoryProfileRepository,
    ProfileRepository,
)
from clinical_note_update.selection import VisitTypePreset
from clinical_note_update.selection.presets import PRESETS
from clinical_note_update.validation import ComplianceValidator


# =============================================================================
# STAGE 1: PIPELINE CLASS
# =============================================================================


class TransferOfCarePipeline:
    """
    Main orchestrator for selective clinical note updates.

    What it does:
        Provides a single entry point for parsing, validating, sanitizing
        and selectively updating clinical notes against EMR profiles.

    Why it exists:
        1. Simple API: One class to learn
        2. Encapsulation: Gateway and engine wiring hidden behind a facade
        3. Configuration: Central place for all settings

    How it works:
        STAGE 1: Initialize repository, parser, validator from configuration
        STAGE 2: Build primary/secondary gateways and the merge engine
        STAGE 3: On update_note():
            3.1 Resolve the profile
            3.2 Parse the previous note with the profile's alias table
            3.3 Resolve the selection (config, preset name or visit type)
            3.4 Run the merge engine

    Example:
        >>> pipeline = TransferOfCarePipeline.from_environment()
        >>> parsed = pipeline.parse_note(previous_text)
        >>> parsed.types
        [<SectionType.HPI: 'HPI'>, <SectionType.ASSESSMENT_AND_PLAN: 'ASSESSMENT_AND_PLAN'>]
    """

    def __init__(
        self,
        config: UpdateConfiguration,
        repository: Optional[ProfileRepository] = None,
        engine: Optional[SelectiveUpdateEngine] = None,
        parser: Optional[SectionParser] = None,
        validator: Optional[ComplianceValidator] = None,
    ):
        """
        Initialize pipeline with configuration and optional component overrides.

        Args:
            config: Update configuration
            repository: Optional profile repository override (for testing)
            engine: Optional merge engine override (for testing, or custom gateways)
            parser: Optional parser override
            validator: Optional validator override
        """
        # =====================================================================
        # STAGE 1.1: STORE CONFIGURATION
        # =====================================================================
        self._config = config

        # =====================================================================
        # STAGE 1.2: INITIALIZE REPOSITORY
        # =====================================================================
        if repository:
            self._repository = repository
        else:
            self._repository = self._create_repository(config)

        # =====================================================================
        # STAGE 1.3: INITIALIZE PARSER AND VALIDATOR
        # =====================================================================
        self._parser = parser or SectionParser()
        self._validator = validator or ComplianceValidator(self._parser)

        # =====================================================================
        # STAGE 1.4: INITIALIZE MERGE ENGINE
        # =====================================================================
        if engine:
            self._engine = engine
        else:
            prompt_builder = PromptBuilder()
            self._engine = SelectiveUpdateEngine(
                primary=LLMGateway(self._create_llm_client(config.primary_provider), prompt_builder),
                secondary=LLMGateway(
                    self._create_llm_client(config.fallback_provider), prompt_builder
                ),
                config=config,
                parser=self._parser,
                validator=self._validator,
            )

        logger.info(
            f"TransferOfCarePipeline initialized | "
            f"Primary: {config.primary_provider} | Fallback: {config.fallback_provider} | "
            f"Profiles: {len(self._repository.list_profile_ids())}"
        )

    # =========================================================================
    # STAGE 2: PARSING AND COMPLIANCE API
    # =========================================================================

    def get_profile(self, profile_id: Optional[str] = None) -> EMRProfile:
        """Return a profile by id (default profile when None)."""
        return self._repository.get_profile(profile_id or self._config.default_emr_profile)

    def parse_note(self, text: str, profile_id: Optional[str] = None) -> ParsedNote:
        """Split a note into typed sections using the profile's alias table."""
        return self._parser.parse(text, self.get_profile(profile_id))

    def validate_note(self, text: str, profile_id: Optional[str] = None) -> ValidationResult:
        """Check a note against an EMR profile."""
        return self._validator.validate(text, self.get_profile(profile_id))

    def sanitize_note(self, text: str, profile_id: Optional[str] = None) -> str:
        """Remove every token the profile forbids."""
        return self._validator.sanitize(text, self.get_profile(profile_id))

    # =========================================================================
    # STAGE 3: SELECTIVE UPDATE API
    # =========================================================================

    def update_note(
        self,
        previous_note: Union[str, ParsedNote],
        transcript: str,
        selection: Union[SelectionConfig, str],
        profile_id: Optional[str] = None,
        cancellation_token: Optional[CancellationToken] = None,
    ) -> MergedNote:
        """
        Regenerate the selected sections of a note from a new transcript.

        Args:
            previous_note: Previous note text or an already parsed note
            transcript: New encounter transcript
            selection: SelectionConfig, preset name ('update-all',
                'preserve-assessment', 'update-plan-only', 'standard-followup')
                or visit type ('transfer-of-care', 'follow-up',
                'psychiatric-intake')
            profile_id: Target EMR profile (default profile when None)
            cancellation_token: Optional token to abort the merge

        Returns:
            MergedNote

        Raises:
            ConfigurationError: Unknown profile, preset or section selection
            BothProvidersFailedError: No provider produced output
        """
        profile = self.get_profile(profile_id)

        if isinstance(previous_note, str):
            prev = self._parser.parse(previous_note, profile)
        else:
            prev = previous_note

        resolved = self._resolve_selection(selection, prev)
        logger.debug(
            f"Updating note | Profile: {profile.id} | Sections: {prev.section_count} | "
            f"Selected: {len(resolved.selected_types)}"
        )

        return self._engine.merge_update(
            prev, transcript, resolved, profile, cancellation_token=cancellation_token
        )

    # =========================================================================
    # STAGE 4: FACTORY METHODS
    # =========================================================================

    @classmethod
    def from_environment(cls, env_file: Optional[str] = None) -> "TransferOfCarePipeline":
        """
        Create pipeline from environment configuration.

        Raises:
            ConfigurationError: If required settings missing
        """
        config = UpdateConfiguration.from_environment(env_file=env_file, validate_on_load=True)
        return cls(config)

    # =========================================================================
    # STAGE 5: PRIVATE HELPERS
    # =========================================================================

    @staticmethod
    def _resolve_selection(
        selection: Union[SelectionConfig, str], prev: ParsedNote
    ) -> SelectionConfig:
        if isinstance(selection, SelectionConfig):
            return selection
        if isinstance(selection, str):
            name = selection.strip().lower()
            if name in PRESETS:
                return PRESETS[name].build(prev)
            try:
                return VisitTypePreset(name).build(prev)
            except ValueError as e:
                raise ConfigurationError(
                    f"Unknown selection preset: '{selection}'",
                    context={"presets": ", ".join(PRESETS)},
                ) from e
        raise ConfigurationError(
            "Selection must be a SelectionConfig or a preset name",
            context={"type": type(selection).__name__},
        )

    def _create_repository(self, config: UpdateConfiguration) -> ProfileRepository:
        """Create repository from configuration."""
        if config.profile_config_path:
            return FileBasedProfileRepository(config.profile_config_path)
        return InMemoryProfileRepository()

    def _create_llm_client(self, provider: str):
        """Create LLM client for one provider."""
        config = self._config
        api_key = config.api_key_for(provider)
        if not api_key:
            raise ConfigurationError(
                f"API key required for provider '{provider}'",
                context={"setting": f"{provider.upper()}_API_KEY"},
            )
        common = dict(
            api_key=api_key,
            rate_limit_delay=config.rate_limit_delay,
            max_retries=config.provider_max_retries,
            retry_delay=config.retry_delay,
            temperature=config.temperature,
            max_output_tokens=config.max_output_tokens,
        )
        if provider == "gemini":
            return GeminiClient(model_name=config.gemini_model, **common)
        if provider == "openai":
            return OpenAIClient(model_name=config.openai_model, **common)
        raise ConfigurationError(
            f"Unsupported LLM provider: {provider}", context={"supported": "gemini, openai"}
        )

    # =========================================================================
    # STAGE 6: PROPERTIES
    # =========================================================================

    @property
    def config(self) -> UpdateConfiguration:
        """Access to update configuration."""
        return self._config

    @property
    def repository(self) -> ProfileRepository:
        """Access to profile repository."""
        return self._repository

    @property
    def engine(self) -> SelectiveUpdateEngine:
        return self._engine


# =============================================================================
# STAGE 7: SMOKE TEST
# =============================================================================

if __name__ == "__main__":
    import sys

    # Configure logger for simple output
    logger.remove()
    logger.add(sys.stderr, level="INFO")

    print("\n--- Transfer-of-Care Pipeline Smoke Test ---\n")

    SAMPLE_NOTE = (
        "SUBJECTIVE:\nPatient reports improved sleep since the last visit. @PATIENTNAME@\n\n"
        "OBJECTIVE:\nBP 128/82, HR 74. Alert and oriented.\n\n"
        "ASSESSMENT:\nGeneralized anxiety disorder, improving.\n\n"
        "PLAN:\nContinue sertraline 50 mg daily. Follow up in 4 weeks."
    )

    try:
        # 1. Initialize Pipeline
        print("1. Initializing pipeline from environment...")
        pipeline = TransferOfCarePipeline.from_environment()
        print("   [OK] Pipeline initialized successfully")

        # 2. Inspect Configuration
        print("\n2. Configuration loaded:")
        for key, value in pipeline.config.to_dict().items():
            print(f"   - {key}: {value}")

        # 3. Parse a sample note
        print("\n3. Parsing sample note...")
        parsed = pipeline.parse_note(SAMPLE_NOTE)
        for section in parsed.sections:
            print(f"   * {section.type.value} ({section.confidence:.1f})")
        print("   [OK] Parser working")

        # 4. Validate against Credible
        print("\n4. Validating against 'credible'...")
        result = pipeline.validate_note(SAMPLE_NOTE, "credible")
        print(f"   - Valid: {result.is_valid} | Errors: {len(result.errors)}")
        cleaned = pipeline.sanitize_note(SAMPLE_NOTE, "credible")
        print(f"   - Valid after sanitize: {pipeline.validate_note(cleaned, 'credible').is_valid}")
        print("   [OK] Validator working")

        print("\n[OK] SMOKE TEST PASSED: System is ready for selective updates.")

    except Exception as e:
        print(f"\n[FAIL] SMOKE TEST FAILED: {e}")
        import traceback

        traceback.print_exc()
        sys.exit(1)
