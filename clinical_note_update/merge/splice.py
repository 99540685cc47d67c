"""
Splice - Reassemble a Note from Previous and Regenerated Sections

This module implements the correctness core of a selective update: the
output section list is built by walking the previous note's sections in
order. Preserved types are copied from the previous note; updated types
take the regenerated section of the same type. Nothing else from the
generated text ever reaches the output.

Algorithm:
    for each previous section (in order):
        not selected  → previous section object, unchanged
        selected      → nth generated section of the same type, combined
                        with the previous content by the merge strategy
        selected but not generated → previous content + warning
    generated types absent from the previous note → discarded + warning
    extra generated occurrences of an updated type → discarded + warning

Author: Shubham Singh
Date: December 2025
"""

from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional

from clinical_note_update.core.enums import ChangeAction, ConfidenceTier, MergeStrategy, SectionType
from clinical_note_update.core.models import (
    ChangeRecord,
    ParsedNote,
    Section,
    SelectionConfig,
)


PRESERVED_REASON = "not selected for update; previous content kept verbatim"
MISSING_REASON = "selected for update but absent from generated output; previous content kept"

PLACEHOLDER_TYPES = (SectionType.HEADER, SectionType.OTHER, SectionType.UNSTRUCTURED)


# =============================================================================
# STAGE 1: MERGE STRATEGIES
# =============================================================================


def _append(previous: str, new: str) -> str:
    if not previous.strip():
        return new
    return f"{previous.rstrip()}\n\n{new.strip()}"


def _line_union(previous: str, new: str) -> str:
    """Previous lines as written, then new non-blank lines not already present."""
    if not previous.strip():
        return new
    seen = {line.strip() for line in previous.split("\n") if line.strip()}
    added = []
    for line in new.split("\n"):
        key = line.strip()
        if key and key not in seen:
            seen.add(key)
            added.append(line.rstrip())
    if not added:
        return previous
    return previous.rstrip() + "\n" + "\n".join(added)


def apply_strategy(strategy: MergeStrategy, previous: str, new: str) -> str:
    """
    Combine previous and regenerated section content.

    Args:
        strategy: replace, append or merge
        previous: Content in the previous note
        new: Regenerated content

    Returns:
        Output section content
    """
    if strategy == MergeStrategy.APPEND:
        return _append(previous, new)
    if strategy == MergeStrategy.MERGE:
        return _line_union(previous, new)
    return new


def _action_for(strategy: MergeStrategy, previous: str, combined: str) -> ChangeAction:
    if not previous.strip() and combined.strip():
        return ChangeAction.ADDED
    if strategy == MergeStrategy.REPLACE:
        return ChangeAction.UPDATED
    return ChangeAction.MERGED


# =============================================================================
# STAGE 2: SPLICE RESULT
# =============================================================================


@dataclass
class SpliceResult:
    """
    Output of one splice.

    Attributes:
        sections: Output sections, one per previous section, same order
        ledger: One ChangeRecord per output section
        warnings: Missing and discarded section warnings
        regenerated_orders: Orders of sections whose content came from the
            generated text (the only sections sanitization may touch)
    """

    sections: List[Section] = field(default_factory=list)
    ledger: List[ChangeRecord] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    regenerated_orders: List[int] = field(default_factory=list)


# =============================================================================
# STAGE 3: SPLICE
# =============================================================================


def splice_sections(
    previous: ParsedNote,
    candidate: ParsedNote,
    selection: SelectionConfig,
    update_reason: str,
) -> SpliceResult:
    """
    Build the output section list strictly by type.

    Args:
        previous: Parsed previous note (defines the output type set and order)
        candidate: Parsed generated text
        selection: Which types are regenerated and with which strategy
        update_reason: Ledger reason for regenerated sections

    Returns:
        SpliceResult
    """
    result = SpliceResult()
    occurrences: Dict[SectionType, int] = {}

    for position, section in enumerate(previous.sections):
        choice = selection.for_type(section.type)
        nth = occurrences.get(section.type, 0)
        occurrences[section.type] = nth + 1

        if not choice.should_update:
            result.sections.append(section)
            result.ledger.append(_preserved_record(section, position, PRESERVED_REASON))
            continue

        generated = _nth_with_content(candidate, section.type, nth)
        if generated is None:
            result.sections.append(section)
            result.ledger.append(_preserved_record(section, position, MISSING_REASON))
            result.warnings.append(
                f"section {section.type.value} (occurrence {nth + 1}) missing from generated "
                f"output; previous content kept"
            )
            continue

        combined = apply_strategy(choice.merge_strategy, section.content, generated.content)
        result.sections.append(section.with_content(combined))
        result.regenerated_orders.append(position)
        result.ledger.append(
            ChangeRecord(
                section_type=section.type,
                action=_action_for(choice.merge_strategy, section.content, combined),
                original_content=section.content,
                new_content=combined,
                reason=f"{update_reason} ({choice.merge_strategy.value})",
                confidence=generated.confidence,
                order=position,
            )
        )

    previous_types = set(previous.types)
    for discarded in dict.fromkeys(t for t in candidate.types if t not in previous_types):
        result.warnings.append(
            f"discarded generated section {discarded.value}: not present in previous note"
        )

    for section_type, kept in occurrences.items():
        if not selection.for_type(section_type).should_update:
            continue
        produced = sum(1 for s in candidate.get_sections(section_type) if s.content.strip())
        if produced > kept:
            result.warnings.append(
                f"discarded {produced - kept} extra generated section(s) {section_type.value}: "
                f"previous note has {kept}"
            )

    return result


# =============================================================================
# STAGE 4: PLACEHOLDER SECTIONS IN GENERATED TEXT
# =============================================================================


def restore_placeholders(
    previous: ParsedNote, candidate: ParsedNote, generated_text: str
) -> ParsedNote:
    """
    Give generated sections back their placeholder types.

    HEADER, OTHER and UNSTRUCTURED have no alias table entry, so a
    generated "Header:" or "Unstructured:" heading parses as OTHER or as a
    keyword guess. Sections titled with a placeholder's display title are
    retyped to it. A titled HEADER replaces any untitled preamble.

    A previous note that is one UNSTRUCTURED section has no headings to
    line up against: when the generated text carries no UNSTRUCTURED
    section, the whole text becomes one.

    Args:
        previous: Parsed previous note
        candidate: Parsed generated text
        generated_text: Cleaned generated text the candidate was parsed from

    Returns:
        ParsedNote ready for splice_sections
    """
    titles = {_title_key(t.display_title): t for t in PLACEHOLDER_TYPES}
    sections = [
        replace(s, type=titles[_title_key(s.title)])
        if s.heading and _title_key(s.title) in titles
        else s
        for s in candidate.sections
    ]
    if any(s.type == SectionType.HEADER and s.heading for s in sections):
        sections = [s for s in sections if s.heading or s.type != SectionType.HEADER]

    unstructured = [s for s in sections if s.type == SectionType.UNSTRUCTURED and s.content.strip()]
    if previous.types == [SectionType.UNSTRUCTURED] and not unstructured and generated_text.strip():
        sections = [
            Section(
                type=SectionType.UNSTRUCTURED,
                title=SectionType.UNSTRUCTURED.display_title,
                content=generated_text.strip(),
                order=0,
                confidence=ConfidenceTier.NONE.value,
            )
        ]

    return ParsedNote(sections=sections, parse_metadata=candidate.parse_metadata)


def _title_key(title: str) -> str:
    return " ".join(title.lower().split())


def _nth_with_content(note: ParsedNote, section_type: SectionType, nth: int) -> Optional[Section]:
    matches = [s for s in note.get_sections(section_type) if s.content.strip()]
    if nth < len(matches):
        return matches[nth]
    return None


def _preserved_record(section: Section, position: int, reason: str) -> ChangeRecord:
    return ChangeRecord(
        section_type=section.type,
        action=ChangeAction.PRESERVED,
        original_content=section.content,
        new_content=section.content,
        reason=reason,
        confidence=1.0,
        order=position,
    )
