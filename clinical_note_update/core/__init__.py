"""
Core Layer - Domain Models, Enums, and Configuration

This layer contains the side-effect-free components that form the foundation
of the selective update system.

Submodules:
    models.py     → Data structures (Section, ParsedNote, EMRProfile, MergedNote)
    enums.py      → Enumerations (SectionType, MergeStrategy, MergeState)
    constants.py  → Alias data, keyword bags, EMR syntax patterns
    config.py     → Configuration dataclass
    exceptions.py → Domain-specific exceptions

Dependency Rule:
    This layer depends on NOTHING else in the package.
    All other layers may depend on this layer.

Author: Shubham Singh
Date: December 2025
"""

from clinical_note_update.core.models import (
    Section,
    SectionMetadata,
    ParsedNote,
    ParseMetadata,
    ForbiddenTokenPattern,
    EMRProfile,
    SectionSelection,
    SelectionConfig,
    ValidationResult,
    GenerationRequest,
    GenerationResult,
    GenerationAttempt,
    ChangeRecord,
    MergedNote,
)
from clinical_note_update.core.enums import (
    SectionType,
    MergeStrategy,
    ChangeAction,
    MergeState,
    ConfidenceTier,
    NoteFormat,
)
from clinical_note_update.core.config import UpdateConfiguration
from clinical_note_update.core.exceptions import (
    ClinicalNoteUpdateError,
    ConfigurationError,
    GatewayError,
    MergeError,
)

__all__ = [
    # Models
    "Section",
    "SectionMetadata",
    "ParsedNote",
    "ParseMetadata",
    "ForbiddenTokenPattern",
    "EMRProfile",
    "SectionSelection",
    "SelectionConfig",
    "ValidationResult",
    "GenerationRequest",
    "GenerationResult",
    "GenerationAttempt",
    "ChangeRecord",
    "MergedNote",
    # Enums
    "SectionType",
    "MergeStrategy",
    "ChangeAction",
    "MergeState",
    "ConfidenceTier",
    "NoteFormat",
    # Configuration
    "UpdateConfiguration",
    # Exceptions
    "ClinicalNoteUpdateError",
    "ConfigurationError",
    "GatewayError",
    "MergeError",
]
