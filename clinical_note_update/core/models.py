"""
Domain Models for Clinical Note Selective Update

This module defines the core data structures used throughout the selective
update pipeline. Models are dataclasses designed for:
    1. Type safety and IDE support
    2. Serialization to JSON (audit trails, API responses)
    3. Clear domain semantics

Model Hierarchy:
    Section / ParsedNote       → Parser output (typed, ordered sections)
    ForbiddenTokenPattern      → One vendor syntax a profile rejects
    EMRProfile                 → Compliance rules of a target EMR
    SectionSelection / SelectionConfig → What the caller wants regenerated
    GenerationRequest / GenerationResult → Gateway boundary payloads
    ChangeRecord / ValidationResult / MergedNote → Merge engine output

Usage:
    from clinical_note_update.core.models import SelectionConfig
    from clinical_note_update.core.enums import SectionType

    selection = SelectionConfig.from_types([SectionType.HPI, SectionType.PLAN])

Author: Shubham Singh
Date: December 2025
"""

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional, Tuple

from clinical_note_update.core.enums import (
    ChangeAction,
    MergeState,
    MergeStrategy,
    NoteFormat,
    SectionType,
)

if TYPE_CHECKING:
    from clinical_note_update.parsing.alias_table import AliasTable


# =============================================================================
# STAGE 1: SECTION MODELS
# =============================================================================
# A parsed note is an ordered list of typed sections. Sections are frozen:
# the merge engine builds new ones instead of editing previous ones.


@dataclass(frozen=True)
class SectionMetadata:
    """
    Provenance of a parsed section.

    Attributes:
        original_heading: Heading text exactly as written (None for HEADER,
            UNSTRUCTURED and heuristic sections)
        word_count: Number of whitespace-separated words in the content
        is_standardized: True when resolved at alias tier or better
        inline_heading: True when the body started on the heading line
    """

    original_heading: Optional[str] = None
    word_count: int = 0
    is_standardized: bool = False
    inline_heading: bool = False


@dataclass(frozen=True)
class Section:
    """
    One typed section of a clinical note.

    What it does:
        Holds the body of a section together with its canonical type, its
        position in the note and how confidently the heading was resolved.

    Attributes:
        type: Canonical section kind
        title: Display title (original heading text without markup or colon)
        content: Body text, leading/trailing blank lines trimmed
        order: Zero-based position in the note
        confidence: 0.0 - 1.0 resolution confidence
        metadata: Heading provenance and counts

    Example:
        >>> section = Section(
        ...     type=SectionType.HPI,
        ...     title="HPI",
        ...     content="Patient reports improved sleep.",
        ...     order=0,
        ...     confidence=0.8,
        ... )
    """

    type: SectionType
    title: str
    content: str
    order: int
    confidence: float
    metadata: SectionMetadata = field(default_factory=SectionMetadata)

    @property
    def heading(self) -> Optional[str]:
        """Heading text as it appeared in the source note."""
        return self.metadata.original_heading

    def render(self) -> str:
        """Rebuild the section text: original heading line, then content."""
        heading = self.metadata.original_heading
        if not heading:
            return self.content
        if not self.content:
            return heading
        if self.metadata.inline_heading:
            return f"{heading} {self.content}"
        return f"{heading}\n{self.content}"

    def with_content(self, content: str, confidence: Optional[float] = None) -> "Section":
        """Return a copy carrying new content (and optionally a new confidence)."""
        return Section(
            type=self.type,
            title=self.title,
            content=content,
            order=self.order,
            confidence=self.confidence if confidence is None else confidence,
            metadata=SectionMetadata(
                original_heading=self.metadata.original_heading,
                word_count=len(content.split()),
                is_standardized=self.metadata.is_standardized,
                inline_heading=self.metadata.inline_heading,
            ),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "type": self.type.value,
            "title": self.title,
            "content": self.content,
            "order": self.order,
            "confidence": self.confidence,
            "metadata": {
                "original_heading": self.metadata.original_heading,
                "word_count": self.metadata.word_count,
                "is_standardized": self.metadata.is_standardized,
            },
        }


def render_sections(sections: Iterable[Section]) -> str:
    """Join rendered sections with a single blank line between them."""
    blocks = [section.render() for section in sections]
    return "\n\n".join(block for block in blocks if block)


@dataclass
class ParseMetadata:
    """Summary of a parse: confidence, counts, warnings, detected layout and source EMR."""

    overall_confidence: float = 0.0
    standardized_section_count: int = 0
    warnings: List[str] = field(default_factory=list)
    detected_format: NoteFormat = NoteFormat.UNKNOWN
    source_emr: str = "plain"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "overall_confidence": self.overall_confidence,
            "standardized_section_count": self.standardized_section_count,
            "warnings": list(self.warnings),
            "detected_format": self.detected_format.value,
            "source_emr": self.source_emr,
        }


@dataclass
class ParsedNote:
    """
    Ordered, typed sections of a note plus parse metadata.

    Sections appear in the order they were found in the source text.
    """

    sections: List[Section] = field(default_factory=list)
    parse_metadata: ParseMetadata = field(default_factory=ParseMetadata)

    @property
    def types(self) -> List[SectionType]:
        """Section types in document order (duplicates kept)."""
        return [section.type for section in self.sections]

    @property
    def section_count(self) -> int:
        return len(self.sections)

    def has_type(self, section_type: SectionType) -> bool:
        return any(section.type == section_type for section in self.sections)

    def get_sections(self, section_type: SectionType) -> List[Section]:
        """All sections of one type, in document order."""
        return [section for section in self.sections if section.type == section_type]

    def get_section(self, section_type: SectionType) -> Optional[Section]:
        """First section of one type, or None."""
        for section in self.sections:
            if section.type == section_type:
                return section
        return None

    def render(self) -> str:
        """Rebuild note text from sections."""
        return render_sections(self.sections)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "sections": [section.to_dict() for section in self.sections],
            "parse_metadata": self.parse_metadata.to_dict(),
        }


# =============================================================================
# STAGE 2: EMR PROFILE MODELS
# =============================================================================


@dataclass(frozen=True)
class ForbiddenTokenPattern:
    """
    One vendor syntax class a profile rejects.

    Attributes:
        name: Pattern class name reported in errors (e.g. "smartphrase")
        pattern: Regular expression matching the forbidden token
        replacement: Plain-text substitute used by sanitization
        description: Human-readable description for prompts and reports
    """

    name: str
    pattern: str
    replacement: str = ""
    description: str = ""

    @property
    def regex(self) -> "re.Pattern":
        return re.compile(self.pattern)

    def find_all(self, text: str) -> List[str]:
        """Return every matched token in order of appearance."""
        return [match.group(0) for match in self.regex.finditer(text)]

    def substitute(self, text: str) -> str:
        return self.regex.sub(self.replacement, text)


@dataclass(frozen=True)
class EMRProfile:
    """
    Compliance rules of a target EMR system.

    What it does:
        Names the vendor syntaxes the target EMR rejects, whether a canonical
        section structure is mandatory, and which alias table to parse with.

    Why it exists:
        1. Notes written in one EMR (Epic SmartPhrases, wildcards) must not
           leak vendor syntax into another (Credible)
        2. Some destinations require a fixed structure (SOAP)
        3. Institutions extend the alias table with their own headings

    Attributes:
        id: Profile identifier (e.g. "credible")
        name: Display name
        forbidden_token_patterns: Syntaxes that are hard violations
        requires_canonical_structure: Whether canonical_structure_sections
            must all appear as recognized headings
        canonical_structure_sections: Required section types
        alias_table: Alias table used when parsing for this profile
            (None means the built-in table)
        min_length / max_length: Soft length bounds (warnings only)
        syntax_rules: Free-text formatting guidance passed to the generator
    """

    id: str
    name: str
    forbidden_token_patterns: Tuple[ForbiddenTokenPattern, ...] = ()
    requires_canonical_structure: bool = False
    canonical_structure_sections: Tuple[SectionType, ...] = ()
    alias_table: Optional["AliasTable"] = None
    min_length: int = 200
    max_length: int = 15000
    syntax_rules: str = ""

    @property
    def forbidden_token_names(self) -> List[str]:
        return [pattern.name for pattern in self.forbidden_token_patterns]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "forbidden_token_patterns": [
                {
                    "name": p.name,
                    "pattern": p.pattern,
                    "replacement": p.replacement,
                    "description": p.description,
                }
                for p in self.forbidden_token_patterns
            ],
            "requires_canonical_structure": self.requires_canonical_structure,
            "canonical_structure_sections": [t.value for t in self.canonical_structure_sections],
            "min_length": self.min_length,
            "max_length": self.max_length,
            "syntax_rules": self.syntax_rules,
        }


# =============================================================================
# STAGE 3: SELECTION MODELS
# =============================================================================


@dataclass(frozen=True)
class SectionSelection:
    """Whether one section type is regenerated, and how the result is combined."""

    should_update: bool = False
    merge_strategy: MergeStrategy = MergeStrategy.REPLACE


_PRESERVE = SectionSelection()


@dataclass
class SelectionConfig:
    """
    Caller's choice of sections to regenerate.

    Types absent from the mapping are preserved with the replace strategy.

    Example:
        >>> selection = SelectionConfig.from_types(
        ...     [SectionType.HPI, SectionType.ASSESSMENT_AND_PLAN],
        ...     strategies={SectionType.ASSESSMENT_AND_PLAN: MergeStrategy.APPEND},
        ... )
        >>> selection.for_type(SectionType.ALLERGIES).should_update
        False
    """

    selections: Dict[SectionType, SectionSelection] = field(default_factory=dict)

    def for_type(self, section_type: SectionType) -> SectionSelection:
        return self.selections.get(section_type, _PRESERVE)

    def should_update(self, section_type: SectionType) -> bool:
        return self.for_type(section_type).should_update

    @property
    def selected_types(self) -> List[SectionType]:
        """Types marked for update, in insertion order."""
        return [t for t, selection in self.selections.items() if selection.should_update]

    def with_update(
        self, section_type: SectionType, strategy: MergeStrategy = MergeStrategy.REPLACE
    ) -> "SelectionConfig":
        """Return a copy that also regenerates section_type."""
        selections = dict(self.selections)
        selections[section_type] = SectionSelection(True, strategy)
        return SelectionConfig(selections)

    @classmethod
    def from_types(
        cls,
        section_types: Iterable[SectionType],
        strategy: MergeStrategy = MergeStrategy.REPLACE,
        strategies: Optional[Dict[SectionType, MergeStrategy]] = None,
    ) -> "SelectionConfig":
        """Select the given types for update, optionally with per-type strategies."""
        strategies = strategies or {}
        return cls(
            {
                section_type: SectionSelection(True, strategies.get(section_type, strategy))
                for section_type in section_types
            }
        )

    @classmethod
    def preserve_all(cls) -> "SelectionConfig":
        return cls({})

    def to_dict(self) -> Dict[str, Any]:
        return {
            t.value: {"should_update": s.should_update, "merge_strategy": s.merge_strategy.value}
            for t, s in self.selections.items()
        }


# =============================================================================
# STAGE 4: VALIDATION RESULT MODEL
# =============================================================================


@dataclass
class ValidationResult:
    """
    Outcome of checking a note against an EMR profile.

    Attributes:
        is_valid: True when there are no errors (warnings never invalidate)
        errors: Hard violations, prefixed "FORBIDDEN_TOKEN" or "MISSING_SECTION"
        warnings: Soft issues (length, missing structure)
        forbidden_token_hits: Pattern name → matched tokens
        missing_sections: Required section types not found
    """

    is_valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    forbidden_token_hits: Dict[str, List[str]] = field(default_factory=dict)
    missing_sections: List[SectionType] = field(default_factory=list)

    @property
    def has_forbidden_tokens(self) -> bool:
        return bool(self.forbidden_token_hits)

    @property
    def issue_count(self) -> int:
        return len(self.errors) + len(self.warnings)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "forbidden_token_hits": {k: list(v) for k, v in self.forbidden_token_hits.items()},
            "missing_sections": [t.value for t in self.missing_sections],
        }


# =============================================================================
# STAGE 5: GENERATION GATEWAY MODELS
# =============================================================================


@dataclass(frozen=True)
class GenerationRequest:
    """
    Payload sent to a generation gateway.

    Attributes:
        full_context_text: Rendered previous note (full context)
        transcript_text: New encounter transcript
        allowed_section_types: Sections the generator may change
        compliance_profile_id: Target EMR profile
        section_order: Section types of the previous note, in order
        syntax_rules: Profile formatting guidance
        forbidden_token_names: Syntax classes the output must not contain
        strict: True for the compliance retry
        timeout_seconds: Per-call timeout (None = provider default)
    """

    full_context_text: str
    transcript_text: str
    allowed_section_types: Tuple[SectionType, ...]
    compliance_profile_id: str
    section_order: Tuple[SectionType, ...] = ()
    syntax_rules: str = ""
    forbidden_token_names: Tuple[str, ...] = ()
    strict: bool = False
    timeout_seconds: Optional[float] = None


@dataclass(frozen=True)
class GenerationResult:
    """Text returned by a gateway and the identity of the provider that made it."""

    text: str
    provider: str
    model: Optional[str] = None


@dataclass(frozen=True)
class GenerationAttempt:
    """One gateway call made during a merge."""

    provider: str
    phase: str
    succeeded: bool
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "provider": self.provider,
            "phase": self.phase,
            "succeeded": self.succeeded,
            "error": self.error,
        }


# =============================================================================
# STAGE 6: MERGE OUTPUT MODELS
# =============================================================================


@dataclass(frozen=True)
class ChangeRecord:
    """
    Ledger entry for one output section.

    Attributes:
        section_type: Section kind
        action: updated, preserved, merged or added
        original_content: Content in the previous note
        new_content: Content in the output note
        reason: Human-readable explanation (provider, fallback, sanitization)
        confidence: 1.0 for preserved sections, otherwise the confidence of
            the regenerated section
        order: Position in the output note
    """

    section_type: SectionType
    action: ChangeAction
    original_content: str
    new_content: str
    reason: str
    confidence: float
    order: int

    @property
    def changed(self) -> bool:
        return self.original_content != self.new_content

    def to_dict(self) -> Dict[str, Any]:
        return {
            "section_type": self.section_type.value,
            "action": self.action.value,
            "original_content": self.original_content,
            "new_content": self.new_content,
            "reason": self.reason,
            "confidence": self.confidence,
            "order": self.order,
        }


@dataclass
class MergedNote:
    """
    Result of a selective update.

    Attributes:
        final_text: Rendered output note
        sections: Output sections, in previous-note order
        change_ledger: One ChangeRecord per output section
        validation: Validation of final_text against the target profile
        provider: Provider whose output was used
        used_fallback: True when the secondary provider produced the output
        retried: True when the compliance retry ran
        sanitized: True when emergency sanitization was applied
        warnings: Non-fatal merge warnings (missing or phantom sections)
        attempts: Every gateway call, in order
        state_history: Visited merge states, in order
    """

    final_text: str
    sections: List[Section]
    change_ledger: List[ChangeRecord]
    validation: ValidationResult
    provider: str
    used_fallback: bool = False
    retried: bool = False
    sanitized: bool = False
    warnings: List[str] = field(default_factory=list)
    attempts: List[GenerationAttempt] = field(default_factory=list)
    state_history: List[MergeState] = field(default_factory=list)

    @property
    def gateway_calls(self) -> int:
        return len(self.attempts)

    @property
    def updated_types(self) -> List[SectionType]:
        return [
            record.section_type
            for record in self.change_ledger
            if record.action != ChangeAction.PRESERVED
        ]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "final_text": self.final_text,
            "sections": [section.to_dict() for section in self.sections],
            "change_ledger": [record.to_dict() for record in self.change_ledger],
            "validation": self.validation.to_dict(),
            "provider": self.provider,
            "used_fallback": self.used_fallback,
            "retried": self.retried,
            "sanitized": self.sanitized,
            "warnings": list(self.warnings),
            "attempts": [attempt.to_dict() for attempt in self.attempts],
            "state_history": [state.value for state in self.state_history],
            "gateway_calls": self.gateway_calls,
        }
