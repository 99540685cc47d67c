"""Tests for built-in and file-based EMR profiles."""

import json

import pytest

from clinical_note_update.core.enums import SectionType
from clinical_note_update.core.exceptions import ProfileLoadError, ProfileNotFoundError
from clinical_note_update.parsing import SectionParser
from clinical_note_update.repository import FileBasedProfileRepository, InMemoryProfileRepository


def write_config(tmp_path, payload):
    path = tmp_path / "profiles.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    return str(path)


def test_builtin_profiles(repository):
    assert set(repository.list_profile_ids()) == {"epic", "credible", "soap"}
    assert repository.get_profile("EPIC").forbidden_token_patterns == ()
    assert "wildcard" in repository.get_profile("credible").forbidden_token_names
    assert repository.get_profile("soap").requires_canonical_structure


def test_unknown_profile_raises(repository):
    with pytest.raises(ProfileNotFoundError):
        repository.get_profile("cerner")
    assert not repository.has_profile("cerner")


def test_file_profiles_extend_aliases_and_builtins(tmp_path):
    path = write_config(
        tmp_path,
        {
            "aliases": {"PSYCHOSOCIAL": ["group notes"]},
            "profiles": [
                {
                    "id": "Clinic",
                    "name": "Community Clinic",
                    "forbidden_syntax": ["wildcard"],
                    "forbidden_patterns": [
                        {"name": "mrn", "pattern": "MRN\\d{6}", "description": "Record number"}
                    ],
                    "requires_canonical_structure": True,
                    "canonical_structure_sections": ["HPI", "PLAN"],
                    "aliases": {"HPI": ["story so far"]},
                    "min_length": 50,
                }
            ],
        },
    )

    repo = FileBasedProfileRepository(path)
    clinic = repo.get_profile("clinic")

    assert repo.profile_count == 4
    assert clinic.forbidden_token_names == ["wildcard", "mrn"]
    assert clinic.canonical_structure_sections == (SectionType.HPI, SectionType.PLAN)
    assert clinic.min_length == 50

    parser = SectionParser()
    parsed = parser.parse("Story so far:\nDoing well.\n\nGroup Notes:\nAttended.", clinic)
    assert parsed.types == [SectionType.HPI, SectionType.PSYCHOSOCIAL]

    credible = repo.get_profile("credible")
    assert parser.parse("Group Notes:\nAttended.", credible).types == [SectionType.PSYCHOSOCIAL]
    assert parser.parse("Story so far:\nDoing well.", credible).types != [SectionType.HPI]


def test_file_without_builtins(tmp_path):
    path = write_config(tmp_path, {"profiles": [{"id": "only"}]})

    repo = FileBasedProfileRepository(path, include_builtin=False)

    assert repo.list_profile_ids() == ["only"]


@pytest.mark.parametrize(
    "payload",
    [
        {"profiles": [{"id": "x", "forbidden_syntax": ["telepathy"]}]},
        {"profiles": [{"id": "x", "forbidden_patterns": [{"name": "bad", "pattern": "("}]}]},
        {"profiles": [{"id": "x", "canonical_structure_sections": ["NOT_A_SECTION"]}]},
        {"profiles": [{"name": "missing id"}]},
        {"aliases": {"NOT_A_SECTION": ["x"]}},
        ["not", "an", "object"],
    ],
)
def test_invalid_files_raise_load_error(tmp_path, payload):
    path = write_config(tmp_path, payload)

    with pytest.raises(ProfileLoadError):
        FileBasedProfileRepository(path)


def test_missing_and_malformed_files(tmp_path):
    with pytest.raises(ProfileLoadError):
        FileBasedProfileRepository(str(tmp_path / "absent.json"))

    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")
    with pytest.raises(ProfileLoadError):
        FileBasedProfileRepository(str(broken))


def test_in_memory_repository_with_custom_profiles(credible_profile):
    repo = InMemoryProfileRepository({"Credible": credible_profile})

    assert repo.get_profile("credible") is credible_profile
    assert repo.list_profile_ids() == ["credible"]
