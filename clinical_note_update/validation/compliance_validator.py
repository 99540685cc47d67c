"""
Compliance Validator - EMR Profile Checks and Sanitization

This module checks a note against an EMR profile and, when asked, removes
forbidden vendor syntax deterministically. Checks are rule-based only:

    Hard (errors, make the note invalid):
        FORBIDDEN_TOKEN  → a forbidden syntax pattern matched
        MISSING_SECTION  → a required canonical section has no recognized heading

    Soft (warnings only):
        NOTE_EMPTY       → nothing but whitespace
        NOTE_TOO_SHORT   → below profile.min_length characters
        NOTE_TOO_LONG    → above profile.max_length characters
        NO_STRUCTURE     → no recognized heading anywhere

Pipeline Position:
    Splice → [Validation] → (Retry) → (Sanitize) → MergedNote
              ^^^^^^^^^^^^

Usage:
    from clinical_note_update.validation import ComplianceValidator

    validator = ComplianceValidator()
    result = validator.validate(note_text, profile)
    if not result.is_valid:
        clean_text = validator.sanitize(note_text, profile)

Author: Shubham Singh
Date: December 2025
"""

import re
from typing import Dict, List, Optional, Tuple

from loguru import logger

from clinical_note_update.core.enums import SectionType
from clinical_note_update.core.models import EMRProfile, ParsedNote, ValidationResult
from clinical_note_update.parsing.section_parser import SectionParser


_MULTI_SPACE = re.compile(r"(?<=\S) {2,}")
_SPACE_BEFORE_PUNCTUATION = re.compile(r" +([,.;:!?)])")
_EMPTY_PARENS = re.compile(r"\(\s*\)")

# Replacements can expose new matches ("*@AB@**" becomes "***").
MAX_SANITIZE_PASSES = 5


# =============================================================================
# STAGE 1: RULE-BASED CHECKS (STATIC CLASS)
# =============================================================================


class ComplianceChecks:
    """
    Static methods for profile compliance checks.

    What it does:
        Provides fast, deterministic checks of a note against one EMR
        profile. Each check returns plain issue strings prefixed with a
        stable code, so callers can filter by prefix.

    Checks Performed:
        1. Forbidden vendor syntax
        2. Required canonical sections
        3. Length bounds and presence of structure
    """

    @staticmethod
    def find_forbidden_tokens(note_text: str, profile: EMRProfile) -> Dict[str, List[str]]:
        """
        Find every forbidden token in a text.

        Returns:
            Pattern name → matched tokens (only patterns with matches)
        """
        hits: Dict[str, List[str]] = {}
        for pattern in profile.forbidden_token_patterns:
            matches = pattern.find_all(note_text)
            if matches:
                hits[pattern.name] = matches
        return hits

    @staticmethod
    def check_forbidden_tokens(
        note_text: str, profile: EMRProfile
    ) -> Tuple[List[str], Dict[str, List[str]]]:
        """
        Report forbidden tokens as errors.

        Returns:
            Tuple of (errors, pattern name → matches)
        """
        hits = ComplianceChecks.find_forbidden_tokens(note_text, profile)
        descriptions = {p.name: p.description for p in profile.forbidden_token_patterns}
        errors = []
        for name, matches in hits.items():
            unique = list(dict.fromkeys(matches))
            label = descriptions.get(name) or name
            errors.append(
                f"FORBIDDEN_TOKEN: {label} [{name}] found {len(matches)} time(s): "
                f"{', '.join(repr(m) for m in unique[:5])}"
            )
        return errors, hits

    @staticmethod
    def check_required_sections(
        parsed: ParsedNote, profile: EMRProfile
    ) -> Tuple[List[str], List[SectionType]]:
        """
        Check that every canonical section appears under a recognized heading.

        A section counts only when its heading was resolved from the alias
        table (alias tier or better); heuristic splits do not satisfy it.
        """
        if not profile.requires_canonical_structure:
            return [], []

        recognized = {
            section.type
            for section in parsed.sections
            if section.metadata.original_heading and section.metadata.is_standardized
        }
        missing = [t for t in profile.canonical_structure_sections if t not in recognized]
        errors = [
            f"MISSING_SECTION: required section '{t.display_title}' ({t.value}) not found"
            for t in missing
        ]
        return errors, missing

    @staticmethod
    def check_length(note_text: str, profile: EMRProfile) -> List[str]:
        length = len(note_text.strip())
        if length == 0:
            return ["NOTE_EMPTY: note contains no text"]
        if length < profile.min_length:
            return [f"NOTE_TOO_SHORT: note is {length} chars, minimum is {profile.min_length}"]
        if length > profile.max_length:
            return [f"NOTE_TOO_LONG: note is {length} chars, maximum is {profile.max_length}"]
        return []

    @staticmethod
    def check_structure_present(parsed: ParsedNote) -> List[str]:
        if parsed.parse_metadata.standardized_section_count == 0:
            return ["NO_STRUCTURE: no recognized section headings"]
        return []


# =============================================================================
# STAGE 2: SANITIZATION
# =============================================================================


def _tidy_line(line: str) -> str:
    """Collapse the gaps left by removed tokens, keeping indentation."""
    indent = line[: len(line) - len(line.lstrip())]
    body = _EMPTY_PARENS.sub("", line.strip())
    body = _MULTI_SPACE.sub(" ", body)
    body = _SPACE_BEFORE_PUNCTUATION.sub(r"\1", body)
    return (indent + body).rstrip() if body else ""


def sanitize_text(note_text: str, profile: EMRProfile) -> str:
    """
    Replace every forbidden token by its plain-text replacement.

    Pure and deterministic. Only lines that contained a forbidden token are
    tidied; all other lines are returned unchanged. Patterns spanning lines
    are removed in a final whole-text pass.
    """
    text = note_text
    for _ in range(MAX_SANITIZE_PASSES):
        lines = text.split("\n")
        for index, line in enumerate(lines):
            cleaned = line
            for pattern in profile.forbidden_token_patterns:
                cleaned = pattern.substitute(cleaned)
            if cleaned != line:
                lines[index] = _tidy_line(cleaned)
        text = "\n".join(lines)
        for pattern in profile.forbidden_token_patterns:
            text = pattern.substitute(text)
        if not ComplianceChecks.find_forbidden_tokens(text, profile):
            break
    return text


# =============================================================================
# STAGE 3: COMPLIANCE VALIDATOR CLASS
# =============================================================================


class ComplianceValidator:
    """
    Validates notes against EMR profiles.

    What it does:
        Combines the compliance checks into a ValidationResult. Errors make
        the note invalid; warnings never do.

    Why it exists:
        1. Notes moving between EMRs must not carry source-vendor syntax
        2. Some destinations require a fixed section structure
        3. The merge engine needs a yes/no answer plus the offending tokens

    Example:
        >>> validator = ComplianceValidator()
        >>> result = validator.validate("SUBJECTIVE:\\n@NAME@ reports ...", credible)
        >>> result.forbidden_token_hits
        {'smartphrase': ['@NAME@']}
    """

    def __init__(self, parser: Optional[SectionParser] = None):
        self._parser = parser or SectionParser()

    def validate(self, note_text: str, profile: EMRProfile) -> ValidationResult:
        """
        Validate a note against a profile.

        Args:
            note_text: Full note text
            profile: Target EMR profile

        Returns:
            ValidationResult (is_valid == no errors)
        """
        parsed = self._parser.parse(note_text, profile)

        token_errors, hits = ComplianceChecks.check_forbidden_tokens(note_text, profile)
        structure_errors, missing = ComplianceChecks.check_required_sections(parsed, profile)

        warnings = ComplianceChecks.check_length(note_text, profile)
        if note_text.strip():
            warnings.extend(ComplianceChecks.check_structure_present(parsed))

        errors = token_errors + structure_errors
        result = ValidationResult(
            is_valid=not errors,
            errors=errors,
            warnings=warnings,
            forbidden_token_hits=hits,
            missing_sections=missing,
        )

        logger.debug(
            f"Compliance validation | Profile: {profile.id} | Valid: {result.is_valid} | "
            f"Errors: {len(errors)} | Warnings: {len(warnings)}"
        )
        return result

    def sanitize(self, note_text: str, profile: EMRProfile) -> str:
        """Remove forbidden tokens (see sanitize_text)."""
        sanitized = sanitize_text(note_text, profile)
        if sanitized != note_text:
            logger.debug(f"Sanitized text | Profile: {profile.id} | Length: {len(sanitized)}")
        return sanitized

    def find_forbidden_tokens(self, note_text: str, profile: EMRProfile) -> Dict[str, List[str]]:
        return ComplianceChecks.find_forbidden_tokens(note_text, profile)


# =============================================================================
# STAGE 4: MODULE-LEVEL CONVENIENCE
# =============================================================================


def validate_note(note_text: str, profile: EMRProfile) -> ValidationResult:
    return ComplianceValidator().validate(note_text, profile)


def sanitize_note(note_text: str, profile: EMRProfile) -> str:
    return sanitize_text(note_text, profile)


def find_forbidden_tokens(note_text: str, profile: EMRProfile) -> Dict[str, List[str]]:
    return ComplianceChecks.find_forbidden_tokens(note_text, profile)
