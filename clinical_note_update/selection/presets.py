"""
Selection Presets - Caller-Side SelectionConfig Builders

The merge engine never decides which sections to regenerate; callers pass a
SelectionConfig. This module offers the common choices as presets, each a
deterministic table lookup restricted to the types present in a parsed note.

Preset Hierarchy:
    SelectionPreset (Abstract)
    ├── UpdateAllPreset          → Every section except the preamble
    ├── PreserveAssessmentPreset → Everything except diagnostic assessment
    ├── PlanOnlyPreset           → Treatment plan sections only
    ├── StandardFollowUpPreset   → Interval history, exam and plan
    └── VisitTypePreset          → Defaults per visit type

Pipeline Position:
    Caller → [Presets] → SelectionConfig → Merge Engine

Usage:
    from clinical_note_update.selection import presets

    parsed = parse_note(previous_note)
    selection = presets.for_visit_type("follow-up", parsed)

Author: Shubham Singh
Date: December 2025
"""

from abc import ABC, abstractmethod
from typing import Dict, FrozenSet, Mapping, Optional

from loguru import logger

from clinical_note_update.core.enums import MergeStrategy, SectionType
from clinical_note_update.core.models import ParsedNote, SectionSelection, SelectionConfig


# =============================================================================
# STAGE 1: PRESET TABLES
# =============================================================================

ASSESSMENT_TYPES: FrozenSet[SectionType] = frozenset(
    {SectionType.ASSESSMENT, SectionType.DIAGNOSIS, SectionType.ASSESSMENT_AND_PLAN}
)

PLAN_TYPES: FrozenSet[SectionType] = frozenset(
    {SectionType.PLAN, SectionType.ASSESSMENT_AND_PLAN, SectionType.MEDICATIONS_PLAN}
)

FOLLOW_UP_TYPES: FrozenSet[SectionType] = frozenset(
    {
        SectionType.SUBJECTIVE,
        SectionType.OBJECTIVE,
        SectionType.PLAN,
        SectionType.HPI,
        SectionType.PSYCHIATRIC_EXAM,
    }
)

# Visit type → section types preserved by default. Unlisted types update.
VISIT_TYPE_PRESERVED: Dict[str, FrozenSet[SectionType]] = {
    "transfer-of-care": frozenset(),
    "follow-up": frozenset({SectionType.ASSESSMENT}),
    "psychiatric-intake": frozenset(),
}


# =============================================================================
# STAGE 2: ABSTRACT BASE PRESET
# =============================================================================


class SelectionPreset(ABC):
    """
    Abstract base class for selection presets.

    Template Method Pattern:
        Subclasses implement `_should_update()`; `build()` walks the parsed
        note, skips the preamble and applies per-type merge strategies.
    """

    @property
    @abstractmethod
    def preset_name(self) -> str:
        ...

    def build(
        self,
        parsed: ParsedNote,
        strategies: Optional[Mapping[SectionType, MergeStrategy]] = None,
    ) -> SelectionConfig:
        """
        Build a SelectionConfig for the types present in a parsed note.

        Args:
            parsed: Previous note, parsed
            strategies: Optional merge strategy per type (default replace)

        Returns:
            SelectionConfig with one entry per distinct type of the note
        """
        strategies = strategies or {}
        selections: Dict[SectionType, SectionSelection] = {}
        for section_type in parsed.types:
            if section_type in selections:
                continue
            update = section_type != SectionType.HEADER and self._should_update(section_type)
            selections[section_type] = SectionSelection(
                should_update=update,
                merge_strategy=strategies.get(section_type, MergeStrategy.REPLACE),
            )

        config = SelectionConfig(selections)
        logger.debug(
            f"[{self.preset_name}] Selection built | "
            f"Update: {[t.value for t in config.selected_types]}"
        )
        return config

    @abstractmethod
    def _should_update(self, section_type: SectionType) -> bool:
        ...


# =============================================================================
# STAGE 3: CONCRETE PRESETS
# =============================================================================


class UpdateAllPreset(SelectionPreset):
    """Regenerate every section (the preamble is always kept)."""

    @property
    def preset_name(self) -> str:
        return "update-all"

    def _should_update(self, section_type: SectionType) -> bool:
        return True


class PreserveAssessmentPreset(SelectionPreset):
    """Update clinical findings but keep the diagnostic assessment."""

    @property
    def preset_name(self) -> str:
        return "preserve-assessment"

    def _should_update(self, section_type: SectionType) -> bool:
        return section_type not in ASSESSMENT_TYPES


class PlanOnlyPreset(SelectionPreset):
    """Only update treatment plan and recommendations."""

    @property
    def preset_name(self) -> str:
        return "update-plan-only"

    def _should_update(self, section_type: SectionType) -> bool:
        return section_type in PLAN_TYPES


class StandardFollowUpPreset(SelectionPreset):
    """Typical updates for a follow-up visit."""

    @property
    def preset_name(self) -> str:
        return "standard-followup"

    def _should_update(self, section_type: SectionType) -> bool:
        return section_type in FOLLOW_UP_TYPES


class VisitTypePreset(SelectionPreset):
    """
    Default selection for a visit type.

    Raises:
        ValueError: If the visit type is unknown
    """

    def __init__(self, visit_type: str):
        key = visit_type.strip().lower().replace("_", "-").replace(" ", "-")
        if key not in VISIT_TYPE_PRESERVED:
            raise ValueError(
                f"Unknown visit type: '{visit_type}'. "
                f"Valid types: {list(VISIT_TYPE_PRESERVED)}"
            )
        self._visit_type = key
        self._preserved = VISIT_TYPE_PRESERVED[key]

    @property
    def preset_name(self) -> str:
        return f"visit:{self._visit_type}"

    def _should_update(self, section_type: SectionType) -> bool:
        return section_type not in self._preserved


# =============================================================================
# STAGE 4: MODULE-LEVEL CONVENIENCE
# =============================================================================


def update_all(parsed: ParsedNote, **kwargs) -> SelectionConfig:
    return UpdateAllPreset().build(parsed, **kwargs)


def preserve_assessment(parsed: ParsedNote, **kwargs) -> SelectionConfig:
    return PreserveAssessmentPreset().build(parsed, **kwargs)


def plan_only(parsed: ParsedNote, **kwargs) -> SelectionConfig:
    return PlanOnlyPreset().build(parsed, **kwargs)


def standard_follow_up(parsed: ParsedNote, **kwargs) -> SelectionConfig:
    return StandardFollowUpPreset().build(parsed, **kwargs)


def for_visit_type(visit_type: str, parsed: ParsedNote, **kwargs) -> SelectionConfig:
    return VisitTypePreset(visit_type).build(parsed, **kwargs)


PRESETS: Dict[str, SelectionPreset] = {
    preset.preset_name: preset
    for preset in (
        UpdateAllPreset(),
        PreserveAssessmentPreset(),
        PlanOnlyPreset(),
        StandardFollowUpPreset(),
    )
}


def get_preset(name: str) -> SelectionPreset:
    """Look up a named preset ('update-all', 'preserve-assessment', ...)."""
    if name not in PRESETS:
        raise ValueError(f"Unknown preset: '{name}'. Valid presets: {list(PRESETS)}")
    return PRESETS[name]
