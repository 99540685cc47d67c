"""Tests for heading resolution tiers."""

import pytest

from clinical_note_update.core.enums import ConfidenceTier, SectionType
from clinical_note_update.parsing import default_alias_table, normalize_heading


@pytest.fixture
def table():
    return default_alias_table()


@pytest.mark.parametrize(
    "heading, expected",
    [
        ("History of Present Illness", SectionType.HPI),
        ("PLAN:", SectionType.PLAN),
        ("**Assessment and Plan:**", SectionType.ASSESSMENT_AND_PLAN),
        ("## Vital Signs", SectionType.VITALS),
    ],
)
def test_canonical_titles_resolve_exactly(table, heading, expected):
    match = table.resolve(heading)

    assert match.section_type == expected
    assert match.tier == ConfidenceTier.EXACT
    assert match.confidence == 1.0


@pytest.mark.parametrize(
    "heading, expected",
    [
        ("HPI", SectionType.HPI),
        ("A&P", SectionType.ASSESSMENT_AND_PLAN),
        ("Meds", SectionType.CURRENT_MEDICATIONS),
        ("MSE", SectionType.PSYCHIATRIC_EXAM),
        ("Follow up", SectionType.FOLLOW_UP),
    ],
)
def test_aliases_resolve_at_alias_tier(table, heading, expected):
    match = table.resolve(heading)

    assert match.section_type == expected
    assert match.tier == ConfidenceTier.ALIAS


def test_prefix_match_prefers_longest_alias(table):
    match = table.resolve("Mental status exam today")

    assert match.section_type == SectionType.PSYCHIATRIC_EXAM
    assert match.alias == "mental status exam"
    assert match.tier == ConfidenceTier.ALIAS


def test_prefix_requires_word_boundary(table):
    assert table.resolve("Planning committee") is None


def test_lookup_never_uses_prefixes(table):
    assert table.lookup("Plan for next visit") is None
    assert table.resolve("Plan for next visit").section_type == SectionType.PLAN


def test_unknown_heading_is_none(table):
    assert table.resolve("Weather report") is None


def test_find_inline_requires_known_heading(table):
    inline = table.find_inline("HPI: patient reports poor sleep")

    assert inline.match.section_type == SectionType.HPI
    assert inline.rest == "patient reports poor sleep"
    assert table.find_inline("Note: patient called") is None
    assert table.find_inline("S: short alias is too short for inline use") is None


def test_keyword_classification_needs_two_hits(table):
    assert table.classify_by_keywords("Weather was pleasant.") is None

    classified = table.classify_by_keywords(
        "Mood euthymic, affect congruent, thought process linear, insight fair."
    )
    assert classified == (SectionType.PSYCHIATRIC_EXAM, 3)


def test_extend_appends_without_overriding_builtins(table):
    extended = table.extend(
        {SectionType.PSYCHOSOCIAL: ["group notes"], SectionType.PLAN: ["hpi"]}
    )

    assert extended.resolve("Group Notes").section_type == SectionType.PSYCHOSOCIAL
    assert extended.resolve("HPI").section_type == SectionType.HPI
    assert table.resolve("Group Notes") is None
    assert "group notes" in extended.aliases_for(SectionType.PSYCHOSOCIAL)


def test_normalize_heading():
    assert normalize_heading("  **Chief   Complaint:** ") == "chief complaint"
    assert normalize_heading("### PLAN") == "plan"
