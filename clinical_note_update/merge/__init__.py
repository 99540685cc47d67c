"""
Merge Layer - Selective Update Engine

Submodules:
    engine.py       → SelectiveUpdateEngine (bounded state machine)
    splice.py       → Merge strategies and splice-by-type
    cancellation.py → CancellationToken

Dependency Rule:
    This layer depends on: core, parsing, validation, generation (protocol only)
    This layer is used by: pipeline

Author: Shubham Singh
Date: December 2025
"""

from clinical_note_update.merge.cancellation import CancellationToken
from clinical_note_update.merge.engine import SelectiveUpdateEngine
from clinical_note_update.merge.splice import (
    SpliceResult,
    apply_strategy,
    restore_placeholders,
    splice_sections,
)

__all__ = [
    "CancellationToken",
    "SelectiveUpdateEngine",
    "SpliceResult",
    "apply_strategy",
    "restore_placeholders",
    "splice_sections",
]
