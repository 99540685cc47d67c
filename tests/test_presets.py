"""Tests for selection presets."""

import pytest

from clinical_note_update.core.enums import MergeStrategy, SectionType
from clinical_note_update.selection import presets


def test_update_all_skips_the_preamble(psych_note):
    selection = presets.update_all(psych_note)

    assert not selection.should_update(SectionType.HEADER)
    assert selection.selected_types == [t for t in psych_note.types if t != SectionType.HEADER]


def test_preserve_assessment(soap_note, psych_note):
    soap = presets.preserve_assessment(soap_note)
    psych = presets.preserve_assessment(psych_note)

    assert soap.selected_types == [SectionType.SUBJECTIVE, SectionType.OBJECTIVE, SectionType.PLAN]
    assert not psych.should_update(SectionType.ASSESSMENT_AND_PLAN)


def test_plan_only(soap_note, psych_note):
    assert presets.plan_only(soap_note).selected_types == [SectionType.PLAN]
    assert presets.plan_only(psych_note).selected_types == [SectionType.ASSESSMENT_AND_PLAN]


def test_standard_follow_up(psych_note):
    selection = presets.standard_follow_up(psych_note)

    assert selection.selected_types == [SectionType.HPI]
    assert SectionType.ALLERGIES in selection.selections


def test_presets_only_cover_types_present_in_note(soap_note):
    selection = presets.update_all(soap_note)

    assert set(selection.selections) == set(soap_note.types)


def test_strategies_are_applied_per_type(soap_note):
    selection = presets.update_all(
        soap_note, strategies={SectionType.SUBJECTIVE: MergeStrategy.APPEND}
    )

    assert selection.for_type(SectionType.SUBJECTIVE).merge_strategy == MergeStrategy.APPEND
    assert selection.for_type(SectionType.PLAN).merge_strategy == MergeStrategy.REPLACE


@pytest.mark.parametrize("visit_type", ["follow-up", "Follow Up", "follow_up"])
def test_follow_up_visit_keeps_assessment(soap_note, visit_type):
    selection = presets.for_visit_type(visit_type, soap_note)

    assert not selection.should_update(SectionType.ASSESSMENT)
    assert selection.should_update(SectionType.PLAN)


def test_transfer_of_care_updates_everything(soap_note):
    selection = presets.for_visit_type("transfer-of-care", soap_note)

    assert selection.selected_types == soap_note.types


def test_unknown_names_raise():
    with pytest.raises(ValueError):
        presets.VisitTypePreset("home visit")
    with pytest.raises(ValueError):
        presets.get_preset("update-nothing")


def test_get_preset_by_name(soap_note):
    preset = presets.get_preset("update-plan-only")

    assert isinstance(preset, presets.PlanOnlyPreset)
    assert preset.build(soap_note).selected_types == [SectionType.PLAN]
