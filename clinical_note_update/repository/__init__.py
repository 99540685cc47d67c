"""
Repository Layer - EMR Profile Data Access

This layer provides a clean abstraction over EMR compliance profiles,
whether built in or loaded from an institution JSON file. The repository
pattern:
    1. Hides where profile data comes from
    2. Provides consistent lookup by profile id
    3. Keeps profiles and alias tables read-only for the core

Submodules:
    profile_repository.py → Repository protocol + implementations

Dependency Rule:
    This layer depends on: core, parsing.alias_table
    This layer is used by: pipeline

Author: Shubham Singh
Date: December 2025
"""

from clinical_note_update.repository.profile_repository import (
    ProfileRepository,
    InMemoryProfileRepository,
    FileBasedProfileRepository,
    build_builtin_profiles,
)

__all__ = [
    "ProfileRepository",
    "InMemoryProfileRepository",
    "FileBasedProfileRepository",
    "build_builtin_profiles",
]
