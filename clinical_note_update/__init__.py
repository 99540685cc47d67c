"""
Clinical Note Update Module

A system for selectively updating clinical notes from a new encounter
transcript: chosen sections are regenerated, all others are returned exactly
as they were, and the result is checked against the target EMR's rules.

Architecture Overview:
    clinical_note_update/
    ├── core/           → Domain models, enums, configuration (Layer 0 - Pure)
    ├── repository/     → EMR profile data access (Layer 1 - Infrastructure)
    ├── parsing/        → Alias table and section parser (Layer 2)
    ├── validation/     → EMR compliance validation and sanitization (Layer 3)
    ├── selection/      → Caller-side selection presets (Layer 3)
    ├── clients/        → LLM client abstractions (Layer 4 - Infrastructure)
    ├── generation/     → Generation gateway and prompts (Layer 4)
    ├── merge/          → Selective update engine (Layer 5)
    └── pipeline.py     → Main orchestrator (Layer 6 - Public API)

Quick Start:
    from clinical_note_update import TransferOfCarePipeline

    pipeline = TransferOfCarePipeline.from_environment()
    merged = pipeline.update_note(previous_text, transcript, "standard-followup")

Author: Shubham Singh
Date: December 2025
"""

__version__ = "1.0.0"
__author__ = "Shubham Singh"

# =============================================================================
# PUBLIC API EXPORTS
# =============================================================================

# Main Entry Point
from clinical_note_update.pipeline import TransferOfCarePipeline

# Core Models
from clinical_note_update.core.models import (
    Section,
    ParsedNote,
    EMRProfile,
    SelectionConfig,
    SectionSelection,
    ValidationResult,
    ChangeRecord,
    MergedNote,
    GenerationRequest,
    GenerationResult,
)

# Enums
from clinical_note_update.core.enums import (
    SectionType,
    MergeStrategy,
    ChangeAction,
    MergeState,
)

# Components
from clinical_note_update.parsing import SectionParser, parse_note
from clinical_note_update.validation import ComplianceValidator
from clinical_note_update.merge import CancellationToken, SelectiveUpdateEngine
from clinical_note_update.generation import GenerationGateway, LLMGateway

# Configuration
from clinical_note_update.core.config import UpdateConfiguration

__all__ = [
    # Main Entry Point (use this!)
    "TransferOfCarePipeline",
    # Core Models
    "Section",
    "ParsedNote",
    "EMRProfile",
    "SelectionConfig",
    "SectionSelection",
    "ValidationResult",
    "ChangeRecord",
    "MergedNote",
    "GenerationRequest",
    "GenerationResult",
    # Enums
    "SectionType",
    "MergeStrategy",
    "ChangeAction",
    "MergeState",
    # Components
    "SectionParser",
    "parse_note",
    "ComplianceValidator",
    "CancellationToken",
    "SelectiveUpdateEngine",
    "GenerationGateway",
    "LLMGateway",
    # Configuration
    "UpdateConfiguration",
]
