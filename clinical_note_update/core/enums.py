"""
Enumerations for Clinical Note Selective Update

This module defines all enumeration types used throughout the selective
update pipeline. Enums provide:
    1. A closed, stable vocabulary of section kinds
    2. IDE autocomplete support
    3. Clear domain semantics for ledger and state tracking

Enumeration Categories:
    SectionType     → Canonical clinical section kinds (closed set)
    MergeStrategy   → How an updated section combines with its previous content
    ChangeAction    → What happened to a section during a merge
    MergeState      → States of the merge engine's bounded state machine
    ConfidenceTier  → Parser resolution tiers
    NoteFormat      → Overall note layout detected by the parser

Author: Shubham Singh
Date: December 2025
"""

from enum import Enum


# =============================================================================
# STAGE 1: SECTION TYPE ENUMERATION
# =============================================================================
# The closed set of canonical section kinds. Identifiers are stable and are
# never inferred dynamically; the alias table maps raw headings onto them.


class SectionType(str, Enum):
    """
    Canonical clinical note section kinds.

    What it does:
        Gives every section detected in a note a stable, typed identity so
        that splicing and preservation can be done strictly by type.

    Why it exists:
        1. Headings in real notes are inconsistent ("HPI", "History of
           Present Illness", "Reason for Visit")
        2. The merge engine must match previous and regenerated sections
           without comparing free text
        3. Operators select sections for update by type

    Special Members:
        HEADER       → Text before the first recognized heading
        OTHER        → A heading the alias table could not resolve
        UNSTRUCTURED → Parser fallback wrapping the whole text
    """

    # -------------------------------------------------------------------------
    # 1.1 Patient Information
    # -------------------------------------------------------------------------
    BASIC_DEMO_INFO = "BASIC_DEMO_INFO"
    DIAGNOSIS = "DIAGNOSIS"
    IDENTIFYING_INFO = "IDENTIFYING_INFO"

    # -------------------------------------------------------------------------
    # 1.2 Medications
    # -------------------------------------------------------------------------
    CURRENT_MEDICATIONS = "CURRENT_MEDICATIONS"
    BH_PRIOR_MEDS_TRIED = "BH_PRIOR_MEDS_TRIED"
    MEDICATIONS_PLAN = "MEDICATIONS_PLAN"

    # -------------------------------------------------------------------------
    # 1.3 Clinical Assessment
    # -------------------------------------------------------------------------
    CHIEF_COMPLAINT = "CHIEF_COMPLAINT"
    HPI = "HPI"
    REVIEW_OF_SYSTEMS = "REVIEW_OF_SYSTEMS"
    PSYCHIATRIC_EXAM = "PSYCHIATRIC_EXAM"
    QUESTIONNAIRES_SURVEYS = "QUESTIONNAIRES_SURVEYS"

    # -------------------------------------------------------------------------
    # 1.4 Examination and History
    # -------------------------------------------------------------------------
    MEDICAL = "MEDICAL"
    PHYSICAL_EXAM = "PHYSICAL_EXAM"
    VITALS = "VITALS"
    ALLERGIES = "ALLERGIES"
    SOCIAL_HISTORY = "SOCIAL_HISTORY"
    FAMILY_HISTORY = "FAMILY_HISTORY"

    # -------------------------------------------------------------------------
    # 1.5 Plan and Safety
    # -------------------------------------------------------------------------
    RISKS = "RISKS"
    ASSESSMENT_AND_PLAN = "ASSESSMENT_AND_PLAN"
    PSYCHOSOCIAL = "PSYCHOSOCIAL"
    SAFETY_PLAN = "SAFETY_PLAN"

    # -------------------------------------------------------------------------
    # 1.6 Follow-up
    # -------------------------------------------------------------------------
    PROGNOSIS = "PROGNOSIS"
    FOLLOW_UP = "FOLLOW_UP"

    # -------------------------------------------------------------------------
    # 1.7 SOAP Layout
    # -------------------------------------------------------------------------
    SUBJECTIVE = "SUBJECTIVE"
    OBJECTIVE = "OBJECTIVE"
    ASSESSMENT = "ASSESSMENT"
    PLAN = "PLAN"

    # -------------------------------------------------------------------------
    # 1.8 Structural Placeholders
    # -------------------------------------------------------------------------
    HEADER = "HEADER"
    OTHER = "OTHER"
    UNSTRUCTURED = "UNSTRUCTURED"

    @property
    def display_title(self) -> str:
        """Canonical human-readable title (e.g. 'History of Present Illness')."""
        from clinical_note_update.core.constants import SECTION_TITLES

        return SECTION_TITLES.get(self, self.value.replace("_", " ").title())

    @property
    def group(self) -> str:
        """Section group name (e.g. 'MEDICATIONS', 'PLAN_AND_SAFETY')."""
        from clinical_note_update.core.constants import SECTION_GROUPS

        for group_name, members in SECTION_GROUPS.items():
            if self in members:
                return group_name
        return "OTHER"

    @property
    def is_placeholder(self) -> bool:
        """True for HEADER, OTHER and UNSTRUCTURED, which carry no clinical kind."""
        return self in (SectionType.HEADER, SectionType.OTHER, SectionType.UNSTRUCTURED)

    @classmethod
    def get_all_types(cls) -> list:
        """Return all section type values as a list."""
        return [section_type.value for section_type in cls]

    @classmethod
    def from_string(cls, value: str) -> "SectionType":
        """
        Convert string to SectionType with case-insensitive matching.

        Args:
            value: String representation (e.g. "hpi", "Assessment and Plan")

        Returns:
            Matching SectionType enum member

        Raises:
            ValueError: If string doesn't match any section type
        """
        normalized = value.strip().upper().replace(" ", "_").replace("-", "_")
        for section_type in cls:
            if section_type.value == normalized:
                return section_type
        raise ValueError(
            f"Unknown section type: '{value}'. " f"Valid types: {cls.get_all_types()}"
        )


# =============================================================================
# STAGE 2: MERGE STRATEGY ENUMERATION
# =============================================================================


class MergeStrategy(str, Enum):
    """
    How regenerated content combines with the previous section content.

    Strategy Comparison:
        REPLACE: New content overwrites the previous content
        APPEND:  New content is concatenated after the previous content
        MERGE:   Line union: previous lines, then new lines not already present
    """

    REPLACE = "replace"
    APPEND = "append"
    MERGE = "merge"


# =============================================================================
# STAGE 3: CHANGE ACTION ENUMERATION
# =============================================================================


class ChangeAction(str, Enum):
    """Action recorded in the change ledger for one output section."""

    UPDATED = "updated"
    """Section content was replaced by regenerated content."""

    PRESERVED = "preserved"
    """Section content was copied verbatim from the previous note."""

    MERGED = "merged"
    """Regenerated content was appended to or merged with previous content."""

    ADDED = "added"
    """Previous section was empty and now carries regenerated content."""


# =============================================================================
# STAGE 4: MERGE STATE ENUMERATION
# =============================================================================


class MergeState(str, Enum):
    """
    States of the selective update state machine.

    Transitions:
        INIT → REQUEST_BUILT → GENERATING → REPARSING → SPLICING → VALIDATING
             → (RETRY_GENERATING, at most once) → (SANITIZING) → DONE
        Any generation step may end in FAILED once both providers fail.
    """

    INIT = "INIT"
    REQUEST_BUILT = "REQUEST_BUILT"
    GENERATING = "GENERATING"
    REPARSING = "REPARSING"
    SPLICING = "SPLICING"
    VALIDATING = "VALIDATING"
    RETRY_GENERATING = "RETRY_GENERATING"
    SANITIZING = "SANITIZING"
    DONE = "DONE"
    FAILED = "FAILED"


# =============================================================================
# STAGE 5: CONFIDENCE TIER ENUMERATION
# =============================================================================


class ConfidenceTier(float, Enum):
    """
    Resolution tiers of the section parser, valued by their confidence.

    Tier Meaning:
        EXACT:      Heading equals the canonical title
        ALIAS:      Heading is a known alias (or starts with one)
        KEYWORD:    Heading unknown, body matches a type's keyword bag
        UNRESOLVED: Heading unknown and body unclassifiable (type OTHER)
        NONE:       Nothing recognized (type UNSTRUCTURED)
    """

    EXACT = 1.0
    ALIAS = 0.8
    KEYWORD = 0.5
    UNRESOLVED = 0.3
    NONE = 0.0

    @classmethod
    def from_confidence(cls, confidence: float) -> "ConfidenceTier":
        """Map an arbitrary confidence onto the highest tier it reaches."""
        for tier in cls:
            if confidence >= tier.value:
                return tier
        return cls.NONE


# =============================================================================
# STAGE 6: NOTE FORMAT ENUMERATION
# =============================================================================


class NoteFormat(str, Enum):
    """Overall layout of a parsed note."""

    SOAP = "SOAP"
    NARRATIVE = "NARRATIVE"
    MIXED = "MIXED"
    UNKNOWN = "UNKNOWN"
