"""
Selection Layer - Caller-Side Section Selection Presets

Submodules:
    presets.py → Named presets and visit-type defaults producing SelectionConfig

Dependency Rule:
    This layer depends on: core
    This layer is used by: callers of the pipeline (never by the merge engine)

Author: Shubham Singh
Date: December 2025
"""

from clinical_note_update.selection.presets import (
    SelectionPreset,
    UpdateAllPreset,
    PreserveAssessmentPreset,
    PlanOnlyPreset,
    StandardFollowUpPreset,
    VisitTypePreset,
    update_all,
    preserve_assessment,
    plan_only,
    standard_follow_up,
    for_visit_type,
    get_preset,
)

__all__ = [
    "SelectionPreset",
    "UpdateAllPreset",
    "PreserveAssessmentPreset",
    "PlanOnlyPreset",
    "StandardFollowUpPreset",
    "VisitTypePreset",
    "update_all",
    "preserve_assessment",
    "plan_only",
    "standard_follow_up",
    "for_visit_type",
    "get_preset",
]
