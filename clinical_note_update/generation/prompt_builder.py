"""
Prompt Builder - Selective Update Prompts

This module constructs the prompts sent to a generation provider when a
previous note is regenerated from a new transcript. Prompts are designed to:
    1. Give the model the full previous note for continuity
    2. Name exactly which sections may be rewritten
    3. Carry the target EMR's syntax rules and forbidden token classes

Why Separate Prompt Builder:
    1. Single Responsibility: prompt construction separate from generation
    2. Testability: prompts can be tested without LLM calls
    3. Maintainability: centralized prompt templates

The merge engine never trusts the model to leave other sections alone;
the prompt only narrows what the model produces. Preservation is enforced
by the splice step.

Pipeline Position:
    SelectionConfig → MergeEngine → [PromptBuilder] → LLMGateway → Client
                                     ^^^^^^^^^^^^^^^
                                     You are here

Author: Shubham Singh
Date: December 2025
"""

from typing import List

from clinical_note_update.core.constants import (
    DEFAULT_UPDATE_INSTRUCTION,
    EMR_SYNTAX_PATTERNS,
    SECTION_UPDATE_INSTRUCTIONS,
)
from clinical_note_update.core.models import GenerationRequest


# =============================================================================
# STAGE 1: PROMPT TEMPLATES
# =============================================================================

UPDATE_NOTE_TEMPLATE = """You are a clinician updating an existing clinical note after a new encounter.

**PREVIOUS NOTE (for continuity, do not copy sections you are not asked to write):**
{previous_note}

**NEW ENCOUNTER TRANSCRIPT:**
{transcript}

**SECTIONS TO UPDATE:**
{section_instructions}

**EMR FORMATTING RULES ({profile_id}):**
{syntax_rules}
{forbidden_block}
**RULES:**
1. Write ONLY the sections listed above, each under its exact heading
2. Use information from the transcript; keep facts from the previous note that are still true
3. Do not invent findings, medications or diagnoses not supported by the note or transcript
4. Plain text only: no markdown code blocks, no commentary before or after the note

**OUTPUT STRUCTURE:**
{output_structure}
"""

STRICT_ADDENDUM = """
**COMPLIANCE CORRECTION (previous output was rejected):**
The previous response contained syntax the target EMR does not accept.
Write plain clinical prose only. Every template token, placeholder or
vendor shortcut must be written out as ordinary text or omitted.
"""

FORBIDDEN_TEMPLATE = """
**FORBIDDEN SYNTAX (the note will be rejected if any appear):**
{forbidden_lines}
"""


# =============================================================================
# STAGE 2: PROMPT BUILDER CLASS
# =============================================================================


class PromptBuilder:
    """
    Constructs prompts for selective note regeneration.

    What it does:
        Takes a GenerationRequest and produces a complete LLM prompt that
        asks for only the allowed sections, under canonical headings the
        Section Parser resolves at the exact tier.

    Why it exists:
        1. Centralizes prompt logic for maintainability
        2. Keeps per-section update guidance in one table
        3. Enables testing prompts without making LLM calls

    Example:
        >>> builder = PromptBuilder()
        >>> prompt = builder.build_update_prompt(request)
    """

    def build_update_prompt(self, request: GenerationRequest) -> str:
        """
        Build the regeneration prompt for a request.

        STAGE 2.1: Per-section instructions
        STAGE 2.2: Syntax rules and forbidden classes
        STAGE 2.3: Output structure (allowed sections only)

        A strict request gets the forbidden classes spelled out and the
        compliance correction addendum.
        """
        # =====================================================================
        # STAGE 2.1: SECTION INSTRUCTIONS
        # =====================================================================
        section_instructions = "\n".join(
            f"- {section_type.display_title}: "
            f"{SECTION_UPDATE_INSTRUCTIONS.get(section_type, DEFAULT_UPDATE_INSTRUCTION)}"
            for section_type in request.allowed_section_types
        )

        # =====================================================================
        # STAGE 2.2: SYNTAX RULES
        # =====================================================================
        forbidden_lines = self._describe_forbidden(request.forbidden_token_names)
        forbidden_block = ""
        if forbidden_lines:
            forbidden_block = FORBIDDEN_TEMPLATE.format(forbidden_lines="\n".join(forbidden_lines))

        # =====================================================================
        # STAGE 2.3: OUTPUT STRUCTURE
        # =====================================================================
        output_structure = "\n\n".join(
            f"{section_type.display_title}:\n[updated content]"
            for section_type in self._ordered_allowed(request)
        )

        prompt = UPDATE_NOTE_TEMPLATE.format(
            previous_note=request.full_context_text,
            transcript=request.transcript_text or "(no transcript provided)",
            section_instructions=section_instructions or "- (none)",
            profile_id=request.compliance_profile_id,
            syntax_rules=request.syntax_rules or "Standard clinical prose.",
            forbidden_block=forbidden_block,
            output_structure=output_structure,
        )

        if request.strict:
            prompt += STRICT_ADDENDUM

        return prompt

    def _ordered_allowed(self, request: GenerationRequest) -> List:
        """Allowed types in previous-note order, then any not in that order."""
        allowed = list(dict.fromkeys(request.allowed_section_types))
        ordered = [t for t in dict.fromkeys(request.section_order) if t in allowed]
        return ordered + [t for t in allowed if t not in ordered]

    @staticmethod
    def _describe_forbidden(names) -> List[str]:
        lines = []
        for name in names:
            entry = EMR_SYNTAX_PATTERNS.get(name)
            description = entry[2] if entry else name
            lines.append(f"- {description} [{name}]")
        return lines
