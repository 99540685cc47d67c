"""
Profile Repository - EMR Profile Data Access

This module provides EMR compliance profiles (forbidden syntaxes, required
structure, alias tables) to the rest of the pipeline, abstracting away
whether they are built in or loaded from an institution's JSON file.

Architecture:
    ProfileRepository (Protocol)
    ├── InMemoryProfileRepository   → Built-in profiles (epic, credible, soap)
    └── FileBasedProfileRepository  → Built-ins + institution JSON file

Pipeline Position:
    Config → [Repository] → Parser / Validator / Merge Engine
              ^^^^^^^^^^^^
              You are here

Profile File Format:
    {
        "aliases": {"HPI": ["interval events"]},
        "profiles": [
            {
                "id": "community_clinic",
                "name": "Community Clinic",
                "forbidden_syntax": ["smartphrase", "wildcard"],
                "forbidden_patterns": [
                    {"name": "xx_marker", "pattern": "XX+", "replacement": ""}
                ],
                "requires_canonical_structure": false,
                "canonical_structure_sections": [],
                "aliases": {"PLAN": ["next steps"]},
                "min_length": 200,
                "max_length": 15000,
                "syntax_rules": "Plain text only."
            }
        ]
    }

Top-level aliases apply to every profile; profile-level aliases apply to
that profile only. Profiles are immutable once loaded.

Usage:
    from clinical_note_update.repository import InMemoryProfileRepository

    repo = InMemoryProfileRepository()
    profile = repo.get_profile("credible")

Author: Shubham Singh
Date: December 2025
"""

import json
import re
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Protocol, runtime_checkable

from loguru import logger

from clinical_note_update.core.constants import (
    CREDIBLE_FORBIDDEN_SYNTAX,
    DEFAULT_MAX_NOTE_LENGTH,
    DEFAULT_MIN_NOTE_LENGTH,
    EMR_SYNTAX_PATTERNS,
    SOAP_ORDER,
)
from clinical_note_update.core.enums import SectionType
from clinical_note_update.core.exceptions import ProfileLoadError, ProfileNotFoundError
from clinical_note_update.core.models import EMRProfile, ForbiddenTokenPattern
from clinical_note_update.parsing.alias_table import AliasTable, default_alias_table


# =============================================================================
# STAGE 1: REPOSITORY PROTOCOL (INTERFACE)
# =============================================================================


@runtime_checkable
class ProfileRepository(Protocol):
    """
    Protocol defining the interface for EMR profile repositories.

    Required Methods:
        get_profile(profile_id) → EMRProfile (raises ProfileNotFoundError)
        has_profile(profile_id) → bool
        list_profile_ids()      → Registered identifiers
    """

    def get_profile(self, profile_id: str) -> EMRProfile:
        ...

    def has_profile(self, profile_id: str) -> bool:
        ...

    def list_profile_ids(self) -> List[str]:
        ...


# =============================================================================
# STAGE 2: BUILT-IN PROFILES
# =============================================================================


def syntax_pattern(name: str) -> ForbiddenTokenPattern:
    """Build a ForbiddenTokenPattern from the EMR_SYNTAX_PATTERNS table."""
    pattern, replacement, description = EMR_SYNTAX_PATTERNS[name]
    return ForbiddenTokenPattern(
        name=name, pattern=pattern, replacement=replacement, description=description
    )


def build_builtin_profiles(alias_table: Optional[AliasTable] = None) -> Dict[str, EMRProfile]:
    """
    Construct the built-in profiles.

    Profiles:
        epic:     Source EMR. Vendor syntax is permitted.
        credible: Destination EMR. Rejects every Epic template syntax.
        soap:     Requires SUBJECTIVE/OBJECTIVE/ASSESSMENT/PLAN headings
                  and rejects unfilled bracketed placeholders.
    """
    table = alias_table or default_alias_table()
    return {
        "epic": EMRProfile(
            id="epic",
            name="Epic",
            alias_table=table,
            min_length=DEFAULT_MIN_NOTE_LENGTH,
            max_length=DEFAULT_MAX_NOTE_LENGTH,
            syntax_rules=(
                "Epic SmartPhrases, SmartLinks and *** wildcards may be kept where the "
                "previous note used them."
            ),
        ),
        "credible": EMRProfile(
            id="credible",
            name="Credible",
            forbidden_token_patterns=tuple(
                syntax_pattern(name) for name in CREDIBLE_FORBIDDEN_SYNTAX
            ),
            alias_table=table,
            min_length=DEFAULT_MIN_NOTE_LENGTH,
            max_length=DEFAULT_MAX_NOTE_LENGTH,
            syntax_rules=(
                "Plain text only. Do not use Epic SmartPhrases (@NAME@), SmartLinks "
                "(@NAME), DotPhrases (.phrase), SmartLists ({List:123}) or *** "
                "wildcards. Write the information in full sentences instead."
            ),
        ),
        "soap": EMRProfile(
            id="soap",
            name="SOAP Note",
            forbidden_token_patterns=(syntax_pattern("bracketed_placeholder"),),
            requires_canonical_structure=True,
            canonical_structure_sections=SOAP_ORDER,
            alias_table=table,
            min_length=DEFAULT_MIN_NOTE_LENGTH,
            max_length=DEFAULT_MAX_NOTE_LENGTH,
            syntax_rules=(
                "Keep the Subjective, Objective, Assessment and Plan headings. Never "
                "leave placeholders such as [To be documented] or [TBD]."
            ),
        ),
    }


class InMemoryProfileRepository:
    """
    Profile repository holding profiles in a dictionary.

    What it does:
        Serves the built-in profiles, or any profiles passed in (tests and
        callers that build profiles programmatically).

    Example:
        >>> repo = InMemoryProfileRepository()
        >>> repo.get_profile("soap").requires_canonical_structure
        True
    """

    def __init__(self, profiles: Optional[Mapping[str, EMRProfile]] = None):
        source = profiles if profiles is not None else build_builtin_profiles()
        self._profiles: Dict[str, EMRProfile] = {
            profile_id.lower(): profile for profile_id, profile in source.items()
        }
        logger.debug(f"Profile repository initialized | Profiles: {self.list_profile_ids()}")

    def get_profile(self, profile_id: str) -> EMRProfile:
        """
        Retrieve a profile by identifier (case-insensitive).

        Raises:
            ProfileNotFoundError: If the profile is not registered
        """
        profile = self._profiles.get(profile_id.lower())
        if profile is None:
            raise ProfileNotFoundError(profile_id, available=self.list_profile_ids())
        return profile

    def has_profile(self, profile_id: str) -> bool:
        return profile_id.lower() in self._profiles

    def list_profile_ids(self) -> List[str]:
        return list(self._profiles)

    @property
    def profile_count(self) -> int:
        return len(self._profiles)


# =============================================================================
# STAGE 3: FILE-BASED REPOSITORY IMPLEMENTATION
# =============================================================================


class FileBasedProfileRepository(InMemoryProfileRepository):
    """
    Profile repository backed by an institution JSON file.

    How it works:
        STAGE 3.1: Load JSON file
        STAGE 3.2: Extend the alias table with top-level aliases
        STAGE 3.3: Rebuild built-in profiles on the extended table
        STAGE 3.4: Parse institution profiles (override built-ins by id)

    Raises:
        ProfileLoadError: Missing file, invalid JSON, unknown section type,
            unknown syntax name or invalid regex
    """

    def __init__(self, file_path: str, include_builtin: bool = True):
        self._file_path = Path(file_path)
        raw = self._load_json()

        # STAGE 3.2: institution-wide aliases
        base_table = default_alias_table()
        shared_aliases = self._parse_aliases(raw.get("aliases", {}))
        if shared_aliases:
            base_table = base_table.extend(shared_aliases)

        # STAGE 3.3: built-ins share the extended table
        profiles: Dict[str, EMRProfile] = (
            build_builtin_profiles(base_table) if include_builtin else {}
        )

        # STAGE 3.4: institution profiles
        for entry in raw.get("profiles", []):
            profile = self._parse_profile(entry, base_table)
            profiles[profile.id] = profile

        super().__init__(profiles)
        logger.info(
            f"FileBasedProfileRepository initialized | "
            f"File: {self._file_path.name} | Profiles: {self.profile_count} | "
            f"Extra aliases: {sum(len(a) for a in shared_aliases.values())}"
        )

    def _load_json(self) -> dict:
        if not self._file_path.exists():
            raise ProfileLoadError(str(self._file_path), "File not found")
        try:
            with open(self._file_path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except json.JSONDecodeError as e:
            raise ProfileLoadError(str(self._file_path), f"Invalid JSON: {e}") from e
        except OSError as e:
            raise ProfileLoadError(str(self._file_path), str(e)) from e
        if not isinstance(raw, dict):
            raise ProfileLoadError(str(self._file_path), "Top-level value must be an object")
        return raw

    def _parse_aliases(self, raw_aliases: Mapping[str, Iterable[str]]) -> Dict[SectionType, List[str]]:
        aliases: Dict[SectionType, List[str]] = {}
        for type_name, values in raw_aliases.items():
            section_type = self._section_type(type_name)
            if isinstance(values, str):
                values = [values]
            aliases.setdefault(section_type, []).extend(str(v) for v in values)
        return aliases

    def _section_type(self, type_name: str) -> SectionType:
        try:
            return SectionType.from_string(type_name)
        except ValueError as e:
            raise ProfileLoadError(str(self._file_path), str(e)) from e

    def _parse_profile(self, entry: dict, base_table: AliasTable) -> EMRProfile:
        if "id" not in entry:
            raise ProfileLoadError(str(self._file_path), "Profile entry without 'id'")
        profile_id = str(entry["id"]).lower()

        patterns: List[ForbiddenTokenPattern] = []
        for name in entry.get("forbidden_syntax", []):
            if name not in EMR_SYNTAX_PATTERNS:
                raise ProfileLoadError(
                    str(self._file_path),
                    f"Unknown syntax '{name}' in profile '{profile_id}'",
                )
            patterns.append(syntax_pattern(name))
        for raw_pattern in entry.get("forbidden_patterns", []):
            try:
                re.compile(raw_pattern["pattern"])
            except (KeyError, re.error) as e:
                raise ProfileLoadError(
                    str(self._file_path), f"Invalid pattern in profile '{profile_id}': {e}"
                ) from e
            patterns.append(
                ForbiddenTokenPattern(
                    name=raw_pattern.get("name", "custom"),
                    pattern=raw_pattern["pattern"],
                    replacement=raw_pattern.get("replacement", ""),
                    description=raw_pattern.get("description", ""),
                )
            )

        table = base_table
        own_aliases = self._parse_aliases(entry.get("aliases", {}))
        if own_aliases:
            table = table.extend(own_aliases)

        return EMRProfile(
            id=profile_id,
            name=entry.get("name", profile_id),
            forbidden_token_patterns=tuple(patterns),
            requires_canonical_structure=bool(entry.get("requires_canonical_structure", False)),
            canonical_structure_sections=tuple(
                self._section_type(name) for name in entry.get("canonical_structure_sections", [])
            ),
            alias_table=table,
            min_length=int(entry.get("min_length", DEFAULT_MIN_NOTE_LENGTH)),
            max_length=int(entry.get("max_length", DEFAULT_MAX_NOTE_LENGTH)),
            syntax_rules=entry.get("syntax_rules", ""),
        )

