"""Tests for the deterministic section parser."""

import pytest

from clinical_note_update.core.enums import ConfidenceTier, NoteFormat, SectionType
from clinical_note_update.parsing import SectionParser, parse_note, render_sections
from clinical_note_update.parsing.section_parser import UNSTRUCTURED_WARNING

from conftest import PSYCH_NOTE, SOAP_NOTE


def test_soap_headings_give_four_exact_sections(soap_note):
    assert soap_note.types == [
        SectionType.SUBJECTIVE,
        SectionType.OBJECTIVE,
        SectionType.ASSESSMENT,
        SectionType.PLAN,
    ]
    assert all(s.confidence == 1.0 for s in soap_note.sections)
    assert soap_note.parse_metadata.standardized_section_count == 4
    assert soap_note.parse_metadata.detected_format == NoteFormat.SOAP
    assert soap_note.sections[0].content == (
        "Patient reports improved sleep and less worry since the last visit."
    )
    assert [s.order for s in soap_note.sections] == [0, 1, 2, 3]


def test_alias_heading_resolves_at_alias_tier():
    parsed = parse_note("HPI:\nPatient reports two weeks of poor sleep.")

    section = parsed.sections[0]
    assert section.type == SectionType.HPI
    assert section.confidence == 0.8
    assert section.metadata.original_heading == "HPI:"
    assert section.metadata.is_standardized


def test_preamble_becomes_header_section(psych_note):
    assert psych_note.types == [
        SectionType.HEADER,
        SectionType.CHIEF_COMPLAINT,
        SectionType.HPI,
        SectionType.CURRENT_MEDICATIONS,
        SectionType.ALLERGIES,
        SectionType.ASSESSMENT_AND_PLAN,
    ]
    header = psych_note.sections[0]
    assert header.confidence == ConfidenceTier.UNRESOLVED.value
    assert header.heading is None
    assert header.content.startswith("Patient: J. Doe")


def test_inline_heading_splits_body_from_heading():
    parsed = parse_note("Chief Complaint: anxiety and poor sleep\n\nPlan:\nStart therapy.")

    complaint = parsed.sections[0]
    assert complaint.type == SectionType.CHIEF_COMPLAINT
    assert complaint.content == "anxiety and poor sleep"
    assert complaint.metadata.inline_heading
    assert complaint.render() == "Chief Complaint: anxiety and poor sleep"


def test_markdown_and_prefix_headings():
    text = "## Assessment & Plan\nPanic disorder.\n\n**Plan for next visit:**\nReview sleep diary."
    parsed = parse_note(text)

    assert parsed.types == [SectionType.ASSESSMENT_AND_PLAN, SectionType.PLAN]
    assert parsed.sections[0].confidence == 0.8
    assert parsed.sections[1].confidence == 0.8


def test_unknown_heading_classified_by_keywords_or_other():
    parsed = parse_note("Misc Notes:\nWeather was pleasant today.")

    section = parsed.sections[0]
    assert section.type == SectionType.OTHER
    assert section.confidence == ConfidenceTier.UNRESOLVED.value
    assert section.heading == "Misc Notes:"


def test_single_caps_word_is_body_text():
    parsed = parse_note("Allergies:\nNKDA\n\nPlan:\nContinue current medications.")

    assert parsed.types == [SectionType.ALLERGIES, SectionType.PLAN]
    assert parsed.sections[0].content == "NKDA"


def test_duplicate_and_empty_sections_are_warnings():
    parsed = parse_note("Plan:\nStart therapy.\n\nAllergies:\n\nPlan:\nRecheck labs.")

    warnings = parsed.parse_metadata.warnings
    assert any("duplicate section type PLAN" in w for w in warnings)
    assert any(w.startswith("empty section") for w in warnings)
    assert [s.type for s in parsed.get_sections(SectionType.PLAN)] == [SectionType.PLAN] * 2


def test_text_without_headings_uses_soap_fallback():
    text = (
        "Patient reports feeling anxious and states sleep is poor.\n\n"
        "Impression is a stable anxiety disorder."
    )
    parsed = parse_note(text)

    assert all(s.heading is None for s in parsed.sections)
    assert all(s.confidence <= 0.5 for s in parsed.sections)
    assert parsed.parse_metadata.detected_format == NoteFormat.NARRATIVE
    assert parsed.parse_metadata.warnings


def test_text_without_any_signal_is_unstructured():
    parsed = parse_note("Lorem ipsum dolor sit amet.")

    assert parsed.types == [SectionType.UNSTRUCTURED]
    assert parsed.sections[0].confidence == 0.0
    assert UNSTRUCTURED_WARNING in parsed.parse_metadata.warnings


@pytest.mark.parametrize("raw", ["", "   \n\n  ", None, 42])
def test_empty_or_invalid_input_never_raises(raw):
    parsed = parse_note(raw)

    assert parsed.types == [SectionType.UNSTRUCTURED]
    assert parsed.parse_metadata.warnings


def test_crlf_newlines_are_normalised():
    parsed = parse_note(SOAP_NOTE.replace("\n", "\r\n"))

    assert len(parsed.sections) == 4
    assert "\r" not in parsed.sections[0].content


@pytest.mark.parametrize("text", [SOAP_NOTE, PSYCH_NOTE])
def test_reparsing_rendered_note_is_stable(parser, text):
    first = parser.parse(text)
    second = parser.parse(render_sections(first.sections))

    assert second.types == first.types
    assert [ConfidenceTier.from_confidence(s.confidence) for s in second.sections] == [
        ConfidenceTier.from_confidence(s.confidence) for s in first.sections
    ]
    assert [s.heading for s in second.sections] == [s.heading for s in first.sections]


def test_profile_alias_table_takes_precedence(parser, epic_profile):
    from dataclasses import replace

    table = epic_profile.alias_table.extend({SectionType.PSYCHOSOCIAL: ["dbt skills"]})
    profile = replace(epic_profile, alias_table=table)

    parsed = parser.parse("DBT Skills:\nPracticed distress tolerance.", profile)

    assert parsed.sections[0].type == SectionType.PSYCHOSOCIAL
    assert SectionParser().parse("DBT Skills:\nPracticed.").sections[0].type != SectionType.PSYCHOSOCIAL


def test_to_dict_is_serializable(soap_note):
    import json

    payload = json.loads(json.dumps(soap_note.to_dict()))
    assert payload["sections"][0]["type"] == "SUBJECTIVE"
    assert payload["parse_metadata"]["detected_format"] == "SOAP"


def test_overall_confidence_is_weighted_by_content_length():
    parsed = parse_note(
        "Plan:\nContinue current medications.\n\nMisc Notes:\nWeather was pleasant today."
    )
    plan, misc = parsed.sections
    assert (plan.confidence, misc.confidence) == (1.0, ConfidenceTier.UNRESOLVED.value)

    weighted = (len(plan.content) * 1.0 + len(misc.content) * 0.3) / (
        len(plan.content) + len(misc.content)
    )

    assert (len(plan.content), len(misc.content)) == (29, 27)
    assert parsed.parse_metadata.overall_confidence == pytest.approx(weighted, abs=1e-3)
    assert parsed.parse_metadata.overall_confidence != pytest.approx(0.65, abs=1e-3)


@pytest.mark.parametrize(
    "text, expected",
    [
        (SOAP_NOTE, NoteFormat.SOAP),
        ("Subjective:\nSleeping better.\n\nObjective:\nCalm.\n\nPlan:\nContinue.", NoteFormat.MIXED),
        (PSYCH_NOTE, NoteFormat.MIXED),
        ("Lorem ipsum dolor sit amet.", NoteFormat.UNKNOWN),
    ],
)
def test_detected_format(text, expected):
    assert parse_note(text).parse_metadata.detected_format == expected


@pytest.mark.parametrize(
    "text, expected",
    [
        ("Plan:\nRefill per @MEDLIST@.", "epic"),
        ("Plan:\nReview *** at next visit.", "epic"),
        (SOAP_NOTE, "plain"),
        (PSYCH_NOTE, "plain"),
    ],
)
def test_source_emr_detection(text, expected):
    parsed = parse_note(text)

    assert parsed.parse_metadata.source_emr == expected
    assert parsed.to_dict()["parse_metadata"]["source_emr"] == expected


def test_vital_sign_abbreviations_bucket_as_objective():
    text = (
        "Continue sertraline 50 mg and return in four weeks.\n\n"
        "Patient reports poor sleep and feeling anxious.\n\n"
        "BP 120/80, exam normal, vitals stable."
    )
    parsed = parse_note(text)

    assert parsed.types == [SectionType.SUBJECTIVE, SectionType.OBJECTIVE, SectionType.PLAN]
    objective = parsed.get_section(SectionType.OBJECTIVE)
    assert objective.content == "BP 120/80, exam normal, vitals stable."
    assert "BP" not in parsed.get_section(SectionType.PLAN).content
