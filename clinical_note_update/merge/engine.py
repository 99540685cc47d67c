"""
Selective Update Engine - Bounded Regenerate-Then-Splice State Machine

This module turns (previous note, new transcript, section selection) into a
new note in which every section not selected for update is returned exactly
as it was, whatever the generator produced.

State Machine:
    INIT → REQUEST_BUILT → GENERATING → REPARSING → SPLICING → VALIDATING
         → (RETRY_GENERATING, at most once) → (SANITIZING) → DONE
    FAILED when both providers fail on the first generation.

Bounds:
    1 primary + 1 fallback + 1 retry primary + 1 retry fallback
    = at most 4 gateway calls per merge_update() call.

Pipeline Position:
    Caller → [SelectiveUpdateEngine] → GenerationGateway → SectionParser
             ^^^^^^^^^^^^^^^^^^^^^^^    → ComplianceValidator
             You are here

Author: Shubham Singh
Date: December 2025
"""

from dataclasses import dataclass, field, replace
from typing import List, Optional, Tuple, Union

from loguru import logger

from clinical_note_update.core.config import UpdateConfiguration
from clinical_note_update.core.enums import ChangeAction, MergeState
from clinical_note_update.core.exceptions import (
    BothProvidersFailedError,
    ConfigurationError,
    EmptyResponseError,
    GatewayError,
    ProviderError,
)
from clinical_note_update.core.models import (
    EMRProfile,
    GenerationAttempt,
    GenerationRequest,
    GenerationResult,
    MergedNote,
    ParsedNote,
    SelectionConfig,
    ValidationResult,
    render_sections,
)
from clinical_note_update.generation.gateway import GenerationGateway
from clinical_note_update.merge.cancellation import CancellationToken
from clinical_note_update.merge.splice import SpliceResult, restore_placeholders, splice_sections
from clinical_note_update.parsing.section_parser import SectionParser
from clinical_note_update.validation.compliance_validator import ComplianceValidator


SANITIZED_NOTE = "emergency sanitization applied"
EMPTIED_NOTE = "generated content empty; previous content kept"
NO_PROVIDER = "none"


# =============================================================================
# STAGE 1: PER-INVOCATION STATE
# =============================================================================


@dataclass
class _Assembly:
    """One regenerate-reparse-splice-validate pass."""

    splice: SpliceResult
    validation: ValidationResult
    provider: str
    used_fallback: bool

    @property
    def text(self) -> str:
        return render_sections(self.splice.sections)


@dataclass
class _MergeRun:
    """Mutable bookkeeping for a single merge_update() call."""

    token: Optional[CancellationToken]
    history: List[MergeState] = field(default_factory=list)
    attempts: List[GenerationAttempt] = field(default_factory=list)

    def enter(self, state: MergeState) -> None:
        if self.token is not None and state not in (MergeState.DONE, MergeState.FAILED):
            self.token.raise_if_cancelled(state)
        self.history.append(state)
        logger.debug(f"Merge state | {state.value}")


# =============================================================================
# STAGE 2: SELECTIVE UPDATE ENGINE
# =============================================================================


class SelectiveUpdateEngine:
    """
    Regenerates selected sections of a note and splices them in by type.

    What it does:
        Asks a generation gateway for the selected sections, re-parses the
        output, splices it over the previous note, validates the result
        against the EMR profile, and remediates hard violations with one
        stricter retry and then deterministic sanitization.

    Why it exists:
        1. Preserved sections must never be read from generator output
        2. Provider outages need a single, bounded fallback
        3. Notes leaving the engine must not carry forbidden vendor syntax

    Thread Safety:
        The engine holds no per-merge state; concurrent merge_update() calls
        share only the gateways, which must be safe for concurrent use.

    Example:
        >>> engine = SelectiveUpdateEngine(primary=gemini_gateway, secondary=openai_gateway)
        >>> merged = engine.merge_update(prev, transcript, selection, credible_profile)
        >>> merged.used_fallback
        False
    """

    def __init__(
        self,
        primary: GenerationGateway,
        secondary: GenerationGateway,
        config: Optional[UpdateConfiguration] = None,
        parser: Optional[SectionParser] = None,
        validator: Optional[ComplianceValidator] = None,
    ):
        """
        Initialize the engine.

        Args:
            primary: Gateway tried first
            secondary: Gateway tried once when the primary fails
            config: Supplies the per-call timeout and the compliance retry
                switch (defaults when None)
            parser: Section parser for generated text
            validator: Compliance validator for assembled notes
        """
        self._primary = primary
        self._secondary = secondary
        self._config = config or UpdateConfiguration()
        self._parser = parser or SectionParser()
        self._validator = validator or ComplianceValidator(self._parser)

        logger.info(
            f"SelectiveUpdateEngine initialized | Primary: {primary.provider_name} | "
            f"Secondary: {secondary.provider_name} | "
            f"Timeout: {self._config.generation_timeout}s"
        )

    # =========================================================================
    # STAGE 3: PUBLIC API
    # =========================================================================

    def merge_update(
        self,
        prev: Union[ParsedNote, str],
        transcript: str,
        selection: SelectionConfig,
        profile: EMRProfile,
        cancellation_token: Optional[CancellationToken] = None,
    ) -> MergedNote:
        """
        Produce an updated note.

        Args:
            prev: Previous note, parsed (or raw text, parsed with the profile)
            transcript: New encounter transcript
            selection: Sections to regenerate and their merge strategies
            profile: Target EMR profile
            cancellation_token: Optional token checked between steps

        Returns:
            MergedNote with change ledger and validation

        Raises:
            ConfigurationError: Missing profile, or a selected type is not in prev
            BothProvidersFailedError: Primary and secondary failed on the
                first generation
            MergeCancelledError: The token was cancelled
        """
        run = _MergeRun(token=cancellation_token)
        run.enter(MergeState.INIT)

        # =====================================================================
        # STAGE 3.1: VALIDATE INPUTS AND BUILD REQUEST
        # =====================================================================
        prev = self._check_inputs(prev, selection, profile)
        request = self._build_request(prev, transcript, selection, profile, strict=False)
        run.enter(MergeState.REQUEST_BUILT)

        if not request.allowed_section_types:
            return self._preserve_everything(prev, profile, run)

        # =====================================================================
        # STAGE 3.2: GENERATE, REPARSE, SPLICE, VALIDATE
        # =====================================================================
        run.enter(MergeState.GENERATING)
        try:
            result, used_fallback = self._generate_with_fallback(request, run, phase="initial")
        except BothProvidersFailedError as e:
            run.history.append(MergeState.FAILED)
            e.context["state_history"] = [state.value for state in run.history]
            logger.error(
                f"Merge failed | Both providers failed | "
                f"Primary: {e.primary_error.provider} | Secondary: {e.secondary_error.provider}"
            )
            raise

        assembly = self._assemble(prev, result, used_fallback, selection, profile, run, retried=False)
        retried = False

        # =====================================================================
        # STAGE 3.3: ONE STRICTER RETRY FOR GENERATED VIOLATIONS
        # =====================================================================
        if self._generated_violations(assembly, profile) and self._config.enable_compliance_retry:
            run.enter(MergeState.RETRY_GENERATING)
            retried = True
            strict_request = self._build_request(prev, transcript, selection, profile, strict=True)
            logger.warning(
                f"Compliance violation in generated content | Profile: {profile.id} | "
                f"Errors: {len(assembly.validation.errors)} | Retrying with strict prompt"
            )
            try:
                retry_result, retry_fallback = self._generate_with_fallback(
                    strict_request, run, phase="retry"
                )
            except BothProvidersFailedError:
                logger.warning("Retry generation failed on both providers | Sanitizing first assembly")
                assembly.splice.warnings.append(
                    "compliance retry failed on both providers; first result sanitized"
                )
            else:
                assembly = self._assemble(
                    prev, retry_result, retry_fallback, selection, profile, run, retried=True
                )

        # =====================================================================
        # STAGE 3.4: TERMINAL SANITIZATION
        # =====================================================================
        sanitized = False
        if self._generated_violations(assembly, profile):
            run.enter(MergeState.SANITIZING)
            assembly = self._sanitize(prev, assembly, profile)
            sanitized = True

        if not assembly.validation.is_valid:
            assembly.splice.warnings.append(
                "note still violates profile rules outside regenerated sections"
            )

        run.enter(MergeState.DONE)
        merged = MergedNote(
            final_text=assembly.text,
            sections=list(assembly.splice.sections),
            change_ledger=list(assembly.splice.ledger),
            validation=assembly.validation,
            provider=assembly.provider,
            used_fallback=assembly.used_fallback,
            retried=retried,
            sanitized=sanitized,
            warnings=list(assembly.splice.warnings),
            attempts=list(run.attempts),
            state_history=list(run.history),
        )

        logger.info(
            f"Merge complete | Provider: {merged.provider} | Fallback: {merged.used_fallback} | "
            f"Updated: {len(merged.updated_types)}/{len(merged.sections)} | "
            f"Retried: {retried} | Sanitized: {sanitized} | Calls: {merged.gateway_calls}"
        )
        return merged

    # =========================================================================
    # STAGE 4: INPUT CHECKS AND REQUESTS
    # =========================================================================

    def _check_inputs(
        self, prev: Union[ParsedNote, str], selection: SelectionConfig, profile: EMRProfile
    ) -> ParsedNote:
        if not isinstance(profile, EMRProfile):
            raise ConfigurationError("An EMR profile is required for a selective update")
        if not isinstance(selection, SelectionConfig):
            raise ConfigurationError("A SelectionConfig is required for a selective update")
        if isinstance(prev, str):
            prev = self._parser.parse(prev, profile)
        if not isinstance(prev, ParsedNote):
            raise ConfigurationError(
                "Previous note must be a ParsedNote or text",
                context={"type": type(prev).__name__},
            )

        present = set(prev.types)
        unknown = [t for t in selection.selected_types if t not in present]
        if unknown:
            raise ConfigurationError(
                "Selection references section types not present in the previous note",
                context={
                    "unknown": [t.value for t in unknown],
                    "present": [t.value for t in prev.types],
                },
            )
        return prev

    def _build_request(
        self,
        prev: ParsedNote,
        transcript: str,
        selection: SelectionConfig,
        profile: EMRProfile,
        strict: bool,
    ) -> GenerationRequest:
        allowed = [t for t in dict.fromkeys(prev.types) if selection.should_update(t)]
        return GenerationRequest(
            full_context_text=prev.render(),
            transcript_text=transcript or "",
            allowed_section_types=tuple(allowed),
            compliance_profile_id=profile.id,
            section_order=tuple(prev.types),
            syntax_rules=profile.syntax_rules,
            forbidden_token_names=tuple(profile.forbidden_token_names),
            strict=strict,
            timeout_seconds=self._config.generation_timeout,
        )

    # =========================================================================
    # STAGE 5: GENERATION WITH FALLBACK
    # =========================================================================

    def _generate_with_fallback(
        self, request: GenerationRequest, run: _MergeRun, phase: str
    ) -> Tuple[GenerationResult, bool]:
        """
        Call the primary, then the secondary once if the primary fails.

        Returns:
            (result, used_fallback)

        Raises:
            BothProvidersFailedError: Both calls failed
        """
        try:
            return self._call(self._primary, request, run, phase), False
        except GatewayError as primary_error:
            logger.warning(
                f"Primary provider failed | Provider: {primary_error.provider} | "
                f"Phase: {phase} | Error: {primary_error.message} | Trying fallback"
            )
            if run.token is not None:
                run.token.raise_if_cancelled(run.history[-1])
            try:
                return self._call(self._secondary, request, run, phase), True
            except GatewayError as secondary_error:
                raise BothProvidersFailedError(primary_error, secondary_error) from secondary_error

    def _call(
        self, gateway: GenerationGateway, request: GenerationRequest, run: _MergeRun, phase: str
    ) -> GenerationResult:
        """
        Make one gateway call and normalise its outcome.

        Any exception, empty text or non-text payload becomes a GatewayError.
        """
        provider = gateway.provider_name
        try:
            raw = gateway.generate(request)
            result = self._normalize_result(raw, provider)
        except GatewayError as e:
            run.attempts.append(GenerationAttempt(provider, phase, False, e.message))
            raise
        except Exception as e:
            error = ProviderError(
                f"Unexpected error from {provider}: {e}", provider=provider, original_error=e
            )
            run.attempts.append(GenerationAttempt(provider, phase, False, error.message))
            raise error from e

        run.attempts.append(GenerationAttempt(result.provider, phase, True))
        return result

    @staticmethod
    def _normalize_result(raw: object, provider: str) -> GenerationResult:
        if isinstance(raw, str):
            raw = GenerationResult(text=raw, provider=provider)
        if not isinstance(raw, GenerationResult) or not isinstance(raw.text, str):
            raise EmptyResponseError(provider, detail="non-text payload")
        if not raw.text.strip():
            raise EmptyResponseError(provider)
        return raw

    # =========================================================================
    # STAGE 6: ASSEMBLY
    # =========================================================================

    def _assemble(
        self,
        prev: ParsedNote,
        result: GenerationResult,
        used_fallback: bool,
        selection: SelectionConfig,
        profile: EMRProfile,
        run: _MergeRun,
        retried: bool,
    ) -> _Assembly:
        run.enter(MergeState.REPARSING)
        parsed = self._parser.parse(result.text, profile)
        candidate = restore_placeholders(prev, parsed, result.text)

        run.enter(MergeState.SPLICING)
        reason = f"regenerated by {result.provider}"
        if used_fallback:
            reason += " via fallback provider"
        if retried:
            reason += " after compliance retry"
        splice = splice_sections(prev, candidate, selection, reason)
        for warning in splice.warnings:
            logger.warning(f"Splice | {warning}")

        run.enter(MergeState.VALIDATING)
        validation = self._validator.validate(render_sections(splice.sections), profile)
        return _Assembly(
            splice=splice,
            validation=validation,
            provider=result.provider,
            used_fallback=used_fallback,
        )

    def _generated_violations(self, assembly: _Assembly, profile: EMRProfile) -> bool:
        """True when a regenerated section carries a forbidden token."""
        if assembly.validation.is_valid:
            return False
        sections = assembly.splice.sections
        return any(
            self._validator.find_forbidden_tokens(sections[order].content, profile)
            for order in assembly.splice.regenerated_orders
        )

    def _sanitize(self, prev: ParsedNote, assembly: _Assembly, profile: EMRProfile) -> _Assembly:
        """
        Sanitize regenerated sections only; preserved sections are never touched.

        A section that sanitizes down to nothing gets its previous content back.
        """
        splice = assembly.splice
        sections = list(splice.sections)
        ledger = list(splice.ledger)
        warnings = list(splice.warnings)
        regenerated = []

        for order in splice.regenerated_orders:
            content = sections[order].content
            cleaned = self._validator.sanitize(content, profile)
            record = ledger[order]
            if not cleaned.strip():
                sections[order] = prev.sections[order]
                ledger[order] = replace(
                    record,
                    action=ChangeAction.PRESERVED,
                    new_content=record.original_content,
                    reason=f"{record.reason}; {SANITIZED_NOTE}; {EMPTIED_NOTE}",
                    confidence=1.0,
                )
                warnings.append(
                    f"section {record.section_type.value} was empty after sanitization; "
                    f"previous content kept"
                )
                continue
            regenerated.append(order)
            if cleaned == content:
                continue
            sections[order] = sections[order].with_content(cleaned)
            ledger[order] = replace(
                record, new_content=cleaned, reason=f"{record.reason}; {SANITIZED_NOTE}"
            )

        logger.warning(
            f"Emergency sanitization applied | Profile: {profile.id} | "
            f"Sections: {sum(1 for r in ledger if SANITIZED_NOTE in r.reason)} | "
            f"Restored: {len(splice.regenerated_orders) - len(regenerated)}"
        )
        sanitized = SpliceResult(
            sections=sections,
            ledger=ledger,
            warnings=warnings,
            regenerated_orders=regenerated,
        )
        validation = self._validator.validate(render_sections(sections), profile)
        return replace(assembly, splice=sanitized, validation=validation)

    def _preserve_everything(
        self, prev: ParsedNote, profile: EMRProfile, run: _MergeRun
    ) -> MergedNote:
        """Nothing selected: no gateway call, every section preserved."""
        splice = splice_sections(prev, ParsedNote(), SelectionConfig.preserve_all(), "")
        run.enter(MergeState.VALIDATING)
        validation = self._validator.validate(render_sections(splice.sections), profile)
        run.enter(MergeState.DONE)
        logger.info(f"Merge complete | No sections selected | Preserved: {len(splice.sections)}")
        return MergedNote(
            final_text=render_sections(splice.sections),
            sections=list(splice.sections),
            change_ledger=list(splice.ledger),
            validation=validation,
            provider=NO_PROVIDER,
            warnings=list(splice.warnings),
            attempts=list(run.attempts),
            state_history=list(run.history),
        )

    # =========================================================================
    # STAGE 7: PROPERTIES
    # =========================================================================

    @property
    def primary(self) -> GenerationGateway:
        return self._primary

    @property
    def secondary(self) -> GenerationGateway:
        return self._secondary
