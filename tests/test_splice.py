"""Tests for merge strategies and type-based splicing."""

import pytest

from clinical_note_update.core.enums import ChangeAction, MergeStrategy, SectionType
from clinical_note_update.core.models import SelectionConfig
from clinical_note_update.merge import apply_strategy, restore_placeholders, splice_sections
from clinical_note_update.merge.splice import MISSING_REASON, PRESERVED_REASON
from clinical_note_update.parsing import parse_note


@pytest.mark.parametrize(
    "strategy, previous, new, expected",
    [
        (MergeStrategy.REPLACE, "Old plan.", "New plan.", "New plan."),
        (MergeStrategy.APPEND, "Old plan.\n", "  New plan.", "Old plan.\n\nNew plan."),
        (MergeStrategy.APPEND, "   ", "New plan.", "New plan."),
        (MergeStrategy.MERGE, "Sertraline 50 mg\nLab review", "Sertraline 50 mg\nTherapy referral",
         "Sertraline 50 mg\nLab review\nTherapy referral"),
        (MergeStrategy.MERGE, "Sertraline 50 mg", "  Sertraline 50 mg  \n\n", "Sertraline 50 mg"),
    ],
)
def test_apply_strategy(strategy, previous, new, expected):
    assert apply_strategy(strategy, previous, new) == expected


def test_duplicate_types_splice_by_occurrence():
    previous = parse_note("Plan:\nFirst plan.\n\nAllergies:\nNone\n\nPlan:\nSecond plan.")
    candidate = parse_note("Plan:\nNew first.\n\nPlan:\nNew second.")

    result = splice_sections(
        previous, candidate, SelectionConfig.from_types([SectionType.PLAN]), "regenerated"
    )

    assert [s.content for s in result.sections] == ["New first.", "None", "New second."]
    assert result.regenerated_orders == [0, 2]
    assert result.ledger[1].reason == PRESERVED_REASON
    assert result.ledger[0].reason == "regenerated (replace)"


def test_empty_generated_section_counts_as_missing():
    previous = parse_note("Plan:\nKeep going.")
    candidate = parse_note("Plan:\n\nAllergies:\nNone")

    result = splice_sections(
        previous, candidate, SelectionConfig.from_types([SectionType.PLAN]), "regenerated"
    )

    assert result.sections[0] is previous.sections[0]
    assert result.ledger[0].action == ChangeAction.PRESERVED
    assert result.ledger[0].reason == MISSING_REASON
    assert result.regenerated_orders == []
    assert len(result.warnings) == 2


def test_merge_strategy_is_recorded_as_merged():
    previous = parse_note("Plan:\nSertraline 50 mg")
    candidate = parse_note("Plan:\nTherapy referral")

    result = splice_sections(
        previous,
        candidate,
        SelectionConfig.from_types([SectionType.PLAN], strategy=MergeStrategy.MERGE),
        "regenerated",
    )

    record = result.ledger[0]
    assert record.action == ChangeAction.MERGED
    assert record.original_content == "Sertraline 50 mg"
    assert record.new_content == "Sertraline 50 mg\nTherapy referral"
    assert record.changed


def test_extra_generated_occurrences_are_reported():
    previous = parse_note("Plan:\nOld plan.\n\nAllergies:\nNone")
    candidate = parse_note("Plan:\nNew plan.\n\nPlan for next visit:\nReview sleep diary.")

    result = splice_sections(
        previous, candidate, SelectionConfig.from_types([SectionType.PLAN]), "regenerated"
    )

    assert result.sections[0].content == "New plan."
    assert "Review sleep diary" not in result.sections[0].content
    assert result.warnings == ["discarded 1 extra generated section(s) PLAN: previous note has 1"]


def test_placeholder_headings_are_retyped():
    previous = parse_note("Seen by Dr. Lee\n\nPlan:\nOld plan.")
    candidate = parse_note("Preface line\n\nHeader:\nSeen by Dr. Park\n\nPlan:\nNew plan.")

    restored = restore_placeholders(previous, candidate, "")

    assert restored.types == [SectionType.HEADER, SectionType.PLAN]
    assert restored.sections[0].content == "Seen by Dr. Park"

    result = splice_sections(
        previous, restored, SelectionConfig.from_types(previous.types), "regenerated"
    )
    assert [s.content for s in result.sections] == ["Seen by Dr. Park", "New plan."]
    assert result.sections[0].heading is None
    assert result.warnings == []


def test_unstructured_previous_note_takes_whole_generated_text():
    previous = parse_note("Lorem ipsum dolor sit amet.")
    text = "Plan:\nNew plan.\n\nAllergies:\nNone"

    restored = restore_placeholders(previous, parse_note(text), text)

    assert restored.types == [SectionType.UNSTRUCTURED]
    assert restored.sections[0].content == text
