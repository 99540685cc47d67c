"""
Validation Layer - EMR Compliance

Submodules:
    compliance_validator.py → Profile checks + deterministic sanitization

Dependency Rule:
    This layer depends on: core, parsing
    This layer is used by: merge, pipeline

Author: Shubham Singh
Date: December 2025
"""

from clinical_note_update.validation.compliance_validator import (
    ComplianceChecks,
    ComplianceValidator,
    find_forbidden_tokens,
    sanitize_note,
    validate_note,
)

__all__ = [
    "ComplianceChecks",
    "ComplianceValidator",
    "find_forbidden_tokens",
    "sanitize_note",
    "validate_note",
]
