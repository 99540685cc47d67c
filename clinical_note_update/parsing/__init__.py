"""
Parsing Layer - Alias Table and Section Parser

Submodules:
    alias_table.py    → Immutable heading → SectionType resolution table
    section_parser.py → Free text → ParsedNote, plus reconstruction

Dependency Rule:
    This layer depends on: core
    This layer is used by: repository, validation, merge, pipeline

Author: Shubham Singh
Date: December 2025
"""

from clinical_note_update.parsing.alias_table import (
    AliasMatch,
    AliasTable,
    default_alias_table,
    normalize_heading,
)
from clinical_note_update.parsing.section_parser import (
    SectionParser,
    parse_note,
    render_sections,
)

__all__ = [
    "AliasMatch",
    "AliasTable",
    "default_alias_table",
    "normalize_heading",
    "SectionParser",
    "parse_note",
    "render_sections",
]
