"""Tests for the selective update engine state machine."""

import threading

import pytest

from clinical_note_update.core.config import UpdateConfiguration
from clinical_note_update.core.enums import ChangeAction, MergeState, MergeStrategy, SectionType
from clinical_note_update.core.exceptions import (
    BothProvidersFailedError,
    ConfigurationError,
    GatewayTimeoutError,
    MergeCancelledError,
    ProviderError,
)
from clinical_note_update.core.models import SectionSelection, SelectionConfig
from clinical_note_update.generation import PromptBuilder
from clinical_note_update.merge import CancellationToken, SelectiveUpdateEngine
from clinical_note_update.merge.engine import EMPTIED_NOTE
from clinical_note_update.validation import find_forbidden_tokens

from conftest import SOAP_NOTE, StubGateway, failing_gateway


NEW_PLAN = "Plan:\nIncrease sertraline to 100 mg daily. Return in 2 weeks."
PLAN_WITH_PLACEHOLDER = "Plan:\nIncrease sertraline to 100 mg daily. Return in [TBD] weeks."


def make_engine(primary, secondary, **config_overrides):
    config = UpdateConfiguration(**config_overrides)
    return SelectiveUpdateEngine(primary=primary, secondary=secondary, config=config)


def plan_selection(strategy=MergeStrategy.REPLACE):
    return SelectionConfig.from_types([SectionType.PLAN], strategy=strategy)


# =============================================================================
# Preservation
# =============================================================================


def test_nothing_selected_returns_previous_sections_untouched(soap_note, soap_profile):
    primary = StubGateway("gemini", ["SUBJECTIVE:\nEverything rewritten by the model."])
    secondary = StubGateway("openai", ["OBJECTIVE:\nAlso rewritten."])
    engine = make_engine(primary, secondary)

    merged = engine.merge_update(soap_note, "transcript", SelectionConfig.preserve_all(), soap_profile)

    assert [s.content for s in merged.sections] == [s.content for s in soap_note.sections]
    assert all(out is prev for out, prev in zip(merged.sections, soap_note.sections))
    assert all(r.action == ChangeAction.PRESERVED for r in merged.change_ledger)
    assert all(r.confidence == 1.0 for r in merged.change_ledger)
    assert primary.call_count == 0
    assert merged.gateway_calls == 0


def test_explicit_false_selections_preserve_everything(soap_note, soap_profile):
    selection = SelectionConfig(
        {t: SectionSelection(should_update=False) for t in soap_note.types}
    )
    engine = make_engine(StubGateway("gemini", ["garbage"]), StubGateway("openai", ["garbage"]))

    merged = engine.merge_update(soap_note, "transcript", selection, soap_profile)

    assert merged.final_text == soap_note.render()


def test_preserved_sections_ignore_generated_versions(soap_note, soap_profile):
    rewritten = (
        "Subjective:\nModel rewrote the subjective section.\n\n"
        "Assessment:\nModel changed the diagnosis.\n\n"
        + NEW_PLAN
    )
    engine = make_engine(StubGateway("gemini", [rewritten]), failing_gateway("openai"))

    merged = engine.merge_update(soap_note, "transcript", plan_selection(), soap_profile)

    for out, prev in zip(merged.sections, soap_note.sections):
        if prev.type != SectionType.PLAN:
            assert out is prev
    plan = merged.sections[3]
    assert plan.content == "Increase sertraline to 100 mg daily. Return in 2 weeks."
    assert plan.heading == "PLAN:"
    assert "Model rewrote" not in merged.final_text


# =============================================================================
# Splice
# =============================================================================


def test_phantom_sections_are_discarded(soap_note, soap_profile):
    output = NEW_PLAN + "\n\nAllergies:\nPenicillin (rash)"
    engine = make_engine(StubGateway("gemini", [output]), failing_gateway("openai"))

    merged = engine.merge_update(soap_note, "transcript", plan_selection(), soap_profile)

    assert [s.type for s in merged.sections] == soap_note.types
    assert "Penicillin" not in merged.final_text
    assert any("ALLERGIES" in w for w in merged.warnings)


def test_missing_generated_section_keeps_previous_content(soap_note, soap_profile):
    selection = SelectionConfig.from_types([SectionType.ASSESSMENT, SectionType.PLAN])
    engine = make_engine(StubGateway("gemini", [NEW_PLAN]), failing_gateway("openai"))

    merged = engine.merge_update(soap_note, "transcript", selection, soap_profile)

    assessment = merged.sections[2]
    assert assessment.content == soap_note.sections[2].content
    assert merged.change_ledger[2].action == ChangeAction.PRESERVED
    assert any("ASSESSMENT" in w and "missing" in w for w in merged.warnings)
    assert merged.change_ledger[3].action == ChangeAction.UPDATED


def test_append_strategy_adds_after_previous_content(soap_note, soap_profile):
    engine = make_engine(StubGateway("gemini", [NEW_PLAN]), failing_gateway("openai"))

    merged = engine.merge_update(
        soap_note, "transcript", plan_selection(MergeStrategy.APPEND), soap_profile
    )

    plan = merged.sections[3].content
    assert plan.startswith("Continue sertraline 50 mg daily. Return in 4 weeks.")
    assert plan.endswith("Increase sertraline to 100 mg daily. Return in 2 weeks.")
    assert "\n\n" in plan
    assert merged.change_ledger[3].action == ChangeAction.MERGED


def test_empty_previous_section_is_recorded_as_added(parser, soap_profile):
    prev = parser.parse(SOAP_NOTE.replace("Continue sertraline 50 mg daily. Return in 4 weeks.", ""))
    assert prev.sections[3].content == ""
    engine = make_engine(StubGateway("gemini", [NEW_PLAN]), failing_gateway("openai"))

    merged = engine.merge_update(prev, "transcript", plan_selection(), soap_profile)

    assert merged.change_ledger[3].action == ChangeAction.ADDED
    assert merged.sections[3].content.startswith("Increase sertraline")


def test_updated_record_carries_generated_confidence(soap_note, soap_profile):
    output = "P:\nIncrease sertraline to 100 mg daily."
    engine = make_engine(StubGateway("gemini", [output]), failing_gateway("openai"))

    merged = engine.merge_update(soap_note, "transcript", plan_selection(), soap_profile)

    assert merged.change_ledger[3].confidence == 0.8
    assert merged.sections[3].heading == "PLAN:"


def fill_output_structure(request):
    """Answer with exactly the structure the update prompt asks for."""
    prompt = PromptBuilder().build_update_prompt(request)
    structure = prompt.split("**OUTPUT STRUCTURE:**")[1].strip()
    return structure.replace("[updated content]", "Updated after the new visit.")


def test_unstructured_note_updates_from_requested_structure(parser, soap_profile):
    prev = parser.parse("Lorem ipsum dolor sit amet.")
    assert prev.types == [SectionType.UNSTRUCTURED]
    selection = SelectionConfig.from_types(prev.types)
    engine = make_engine(StubGateway("gemini", [fill_output_structure]), failing_gateway("openai"))

    merged = engine.merge_update(prev, "transcript", selection, soap_profile)

    assert merged.final_text == "Updated after the new visit."
    assert merged.change_ledger[0].action == ChangeAction.UPDATED
    assert not any("missing" in w for w in merged.warnings)


def test_unstructured_note_takes_whole_headless_output(parser, soap_profile):
    prev = parser.parse("Lorem ipsum dolor sit amet.")
    selection = SelectionConfig.from_types(prev.types)
    output = "Patient reports better sleep.\n\nContinue sertraline and return in 4 weeks."
    engine = make_engine(StubGateway("gemini", [output]), failing_gateway("openai"))

    merged = engine.merge_update(prev, "transcript", selection, soap_profile)

    assert [s.type for s in merged.sections] == [SectionType.UNSTRUCTURED]
    assert merged.sections[0].content == output
    assert merged.final_text == output


def test_header_section_updates_from_requested_structure(psych_note, soap_profile):
    selection = SelectionConfig.from_types([SectionType.HEADER, SectionType.HPI])
    primary = StubGateway("gemini", [fill_output_structure])
    engine = make_engine(primary, failing_gateway("openai"))

    merged = engine.merge_update(psych_note, "transcript", selection, soap_profile)

    header = merged.sections[0]
    assert header.type == SectionType.HEADER
    assert header.content == "Updated after the new visit."
    assert header.heading is None
    assert merged.sections[2].content == "Updated after the new visit."
    assert merged.updated_types == [SectionType.HEADER, SectionType.HPI]
    assert merged.final_text.startswith("Updated after the new visit.\n\nChief Complaint:")
    assert primary.requests[0].allowed_section_types[0] == SectionType.HEADER


# =============================================================================
# Fallback
# =============================================================================


def test_fallback_provider_used_when_primary_fails(soap_note, soap_profile):
    engine = make_engine(failing_gateway("gemini"), StubGateway("openai", [NEW_PLAN]))

    merged = engine.merge_update(soap_note, "transcript", plan_selection(), soap_profile)

    assert merged.validation.is_valid
    assert merged.used_fallback is True
    assert merged.provider == "openai"
    assert "fallback" in merged.change_ledger[3].reason
    assert [a.succeeded for a in merged.attempts] == [False, True]


@pytest.mark.parametrize(
    "bad_response",
    [
        "   ",
        RuntimeError("socket closed"),
        lambda request: 42,
    ],
)
def test_bad_primary_payloads_fall_back(soap_note, soap_profile, bad_response):
    engine = make_engine(StubGateway("gemini", [bad_response]), StubGateway("openai", [NEW_PLAN]))

    merged = engine.merge_update(soap_note, "transcript", plan_selection(), soap_profile)

    assert merged.used_fallback is True
    assert merged.attempts[0].provider == "gemini"
    assert merged.attempts[0].succeeded is False


def test_both_providers_failing_raises(soap_note, soap_profile):
    primary = failing_gateway("gemini")
    secondary = StubGateway("openai", [ProviderError("HTTP 503", provider="openai")])
    engine = make_engine(primary, secondary)

    with pytest.raises(BothProvidersFailedError) as excinfo:
        engine.merge_update(soap_note, "transcript", plan_selection(), soap_profile)

    assert isinstance(excinfo.value.primary_error, GatewayTimeoutError)
    assert excinfo.value.secondary_error.provider == "openai"
    assert primary.call_count == 1
    assert secondary.call_count == 1
    assert excinfo.value.context["state_history"][-1] == MergeState.FAILED.value


# =============================================================================
# Compliance retry and sanitization
# =============================================================================


def test_forbidden_tokens_are_removed_after_retry(soap_note, soap_profile):
    primary = StubGateway("gemini", [PLAN_WITH_PLACEHOLDER])
    engine = make_engine(primary, failing_gateway("openai"))

    merged = engine.merge_update(soap_note, "transcript", plan_selection(), soap_profile)

    assert find_forbidden_tokens(merged.final_text, soap_profile) == {}
    assert merged.validation.is_valid
    assert merged.retried is True
    assert merged.sanitized is True
    assert "emergency sanitization applied" in merged.change_ledger[3].reason
    assert "emergency sanitization applied" not in merged.change_ledger[0].reason
    assert primary.call_count == 2
    assert primary.requests[1].strict is True
    assert primary.requests[1].allowed_section_types == (SectionType.PLAN,)


def test_retry_that_fixes_output_skips_sanitization(soap_note, soap_profile):
    primary = StubGateway("gemini", [PLAN_WITH_PLACEHOLDER, NEW_PLAN])
    engine = make_engine(primary, failing_gateway("openai"))

    merged = engine.merge_update(soap_note, "transcript", plan_selection(), soap_profile)

    assert merged.retried is True
    assert merged.sanitized is False
    assert "after compliance retry" in merged.change_ledger[3].reason
    assert MergeState.SANITIZING not in merged.state_history


def test_gateway_calls_never_exceed_four(soap_note, credible_profile):
    primary = failing_gateway("gemini")
    secondary = StubGateway("openai", ["Plan:\nRefill @MEDLIST@ and review ***."])
    engine = make_engine(primary, secondary)

    merged = engine.merge_update(soap_note, "transcript", plan_selection(), credible_profile)

    assert merged.gateway_calls == 4
    assert primary.call_count == 2
    assert secondary.call_count == 2
    assert merged.sanitized is True
    assert find_forbidden_tokens(merged.final_text, credible_profile) == {}


def test_outage_during_retry_sanitizes_first_result(soap_note, soap_profile):
    primary = StubGateway(
        "gemini",
        [PLAN_WITH_PLACEHOLDER, GatewayTimeoutError("gemini", timeout_seconds=1.0)],
    )
    engine = make_engine(primary, failing_gateway("openai"))

    merged = engine.merge_update(soap_note, "transcript", plan_selection(), soap_profile)

    assert merged.sanitized is True
    assert merged.provider == "gemini"
    assert merged.gateway_calls == 3
    assert find_forbidden_tokens(merged.final_text, soap_profile) == {}


def test_retry_disabled_goes_straight_to_sanitization(soap_note, soap_profile):
    primary = StubGateway("gemini", [PLAN_WITH_PLACEHOLDER])
    engine = make_engine(primary, failing_gateway("openai"), enable_compliance_retry=False)

    merged = engine.merge_update(soap_note, "transcript", plan_selection(), soap_profile)

    assert primary.call_count == 1
    assert merged.retried is False
    assert merged.sanitized is True


def test_section_emptied_by_sanitization_keeps_previous_content(parser, credible_profile):
    prev = parser.parse("HPI:\nPatient doing well.\n\nPlan:\nContinue current dose.", credible_profile)
    primary = StubGateway("gemini", ["Plan:\n@MEDLIST@"])
    engine = make_engine(primary, failing_gateway("openai"))

    merged = engine.merge_update(prev, "transcript", plan_selection(), credible_profile)

    assert merged.retried is True
    assert merged.sanitized is True
    assert merged.sections[1] is prev.sections[1]
    assert merged.final_text == prev.render()
    record = merged.change_ledger[1]
    assert record.action == ChangeAction.PRESERVED
    assert record.new_content == "Continue current dose."
    assert EMPTIED_NOTE in record.reason
    assert merged.updated_types == []
    assert any("empty after sanitization" in w for w in merged.warnings)


def test_state_history_of_clean_merge(soap_note, soap_profile):
    engine = make_engine(StubGateway("gemini", [NEW_PLAN]), failing_gateway("openai"))

    merged = engine.merge_update(soap_note, "transcript", plan_selection(), soap_profile)

    assert merged.state_history == [
        MergeState.INIT,
        MergeState.REQUEST_BUILT,
        MergeState.GENERATING,
        MergeState.REPARSING,
        MergeState.SPLICING,
        MergeState.VALIDATING,
        MergeState.DONE,
    ]


# =============================================================================
# Inputs, timeouts and cancellation
# =============================================================================


def test_selection_of_absent_type_is_configuration_error(soap_note, soap_profile):
    primary = StubGateway("gemini", [NEW_PLAN])
    engine = make_engine(primary, failing_gateway("openai"))
    selection = SelectionConfig.from_types([SectionType.ALLERGIES])

    with pytest.raises(ConfigurationError):
        engine.merge_update(soap_note, "transcript", selection, soap_profile)

    assert primary.call_count == 0


def test_missing_profile_is_configuration_error(soap_note):
    engine = make_engine(StubGateway("gemini", [NEW_PLAN]), failing_gateway("openai"))

    with pytest.raises(ConfigurationError):
        engine.merge_update(soap_note, "transcript", plan_selection(), None)


def test_request_carries_context_and_timeout(soap_note, credible_profile):
    primary = StubGateway("gemini", [NEW_PLAN])
    engine = make_engine(primary, failing_gateway("openai"), generation_timeout=12.5)

    engine.merge_update(soap_note, "new transcript", plan_selection(), credible_profile)

    request = primary.requests[0]
    assert request.timeout_seconds == 12.5
    assert request.transcript_text == "new transcript"
    assert request.full_context_text == soap_note.render()
    assert request.allowed_section_types == (SectionType.PLAN,)
    assert request.compliance_profile_id == "credible"
    assert "smartphrase" in request.forbidden_token_names


def test_raw_text_previous_note_is_parsed(soap_profile):
    engine = make_engine(StubGateway("gemini", [NEW_PLAN]), failing_gateway("openai"))

    merged = engine.merge_update(SOAP_NOTE, "transcript", plan_selection(), soap_profile)

    assert merged.sections[0].content.startswith("Patient reports improved sleep")


def test_cancelled_token_aborts_before_any_call(soap_note, soap_profile):
    primary = StubGateway("gemini", [NEW_PLAN])
    engine = make_engine(primary, failing_gateway("openai"))
    token = CancellationToken()
    token.cancel()

    with pytest.raises(MergeCancelledError):
        engine.merge_update(soap_note, "transcript", plan_selection(), soap_profile, token)

    assert primary.call_count == 0


def test_cancel_during_generation_aborts_remaining_steps(soap_note, soap_profile):
    token = CancellationToken()

    def cancel_then_answer(request):
        token.cancel()
        return NEW_PLAN

    primary = StubGateway("gemini", [cancel_then_answer])
    engine = make_engine(primary, failing_gateway("openai"))

    with pytest.raises(MergeCancelledError) as excinfo:
        engine.merge_update(soap_note, "transcript", plan_selection(), soap_profile, token)

    assert excinfo.value.state == MergeState.REPARSING.value


def test_concurrent_merges_share_gateways(soap_note, soap_profile):
    primary = StubGateway("gemini", [NEW_PLAN])
    engine = make_engine(primary, failing_gateway("openai"))
    results = []

    def run():
        results.append(
            engine.merge_update(soap_note, "transcript", plan_selection(), soap_profile)
        )

    threads = [threading.Thread(target=run) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(results) == 4
    assert len({r.final_text for r in results}) == 1
