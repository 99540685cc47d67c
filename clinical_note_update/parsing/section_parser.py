"""
Section Parser - Free Text to Typed Sections

This module splits a clinical note into ordered, typed sections. It is
deterministic and table-driven: heading candidates are recognized by layout,
then resolved against the alias table.

Heading Candidates:
    1. A line equal to a known title or alias ("HPI", "**Plan:**", "## ROS")
    2. A colon-terminated line ("Interval Events:")
    3. An ALL-CAPS line of at most MAX_HEADING_WORDS words ("TREATMENT GOALS")
    4. A markdown heading line ("## Something")
    5. An inline `Known Heading: text` line, at the start of a block

Resolution (see alias_table):
    exact title 1.0 → alias/prefix 0.8 → keyword bag 0.5 → OTHER 0.3

Notes without any heading are split into paragraphs and bucketed into
SUBJECTIVE / OBJECTIVE / ASSESSMENT / PLAN by lexicon, with confidence
capped at 0.5. The parser never raises on malformed input: the worst case
is one UNSTRUCTURED section with a warning.

Pipeline Position:
    Previous note → [Parser] → Merge Engine → Generator → [Parser] → Splice
                     ^^^^^^                                ^^^^^^

Usage:
    from clinical_note_update.parsing import parse_note

    parsed = parse_note(note_text)
    for section in parsed.sections:
        print(section.type, section.confidence)

Author: Shubham Singh
Date: December 2025
"""

import re
from collections import Counter
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from loguru import logger

from clinical_note_update.core.constants import (
    EMR_SYNTAX_PATTERNS,
    EPIC_NATIVE_SYNTAX,
    FALLBACK_CONFIDENCE_CAP,
    MAX_HEADING_LENGTH,
    MAX_HEADING_WORDS,
    NO_HEADINGS_WARNING,
    SOAP_BUCKET_LEXICONS,
    SOAP_ORDER,
    SOURCE_EMR_EPIC,
    SOURCE_EMR_PLAIN,
)
from clinical_note_update.core.enums import ConfidenceTier, NoteFormat, SectionType
from clinical_note_update.core.models import (
    EMRProfile,
    ParsedNote,
    ParseMetadata,
    Section,
    SectionMetadata,
    render_sections,
)
from clinical_note_update.parsing.alias_table import (
    AliasMatch,
    AliasTable,
    count_keyword_hits,
    default_alias_table,
)


_HEADING_MARKUP = re.compile(r"^[#\s*_]+|[\s*_]+$")
_STRUCTURAL_HEADING = re.compile(r"^[A-Z][A-Za-z0-9 _/&()',.-]*$")
_ALL_CAPS_HEADING = re.compile(r"^[A-Z][A-Z &/()',-]*[A-Z)]$")
_PARAGRAPH_BREAK = re.compile(r"\n[ \t]*\n")
_EPIC_SYNTAX = [re.compile(EMR_SYNTAX_PATTERNS[name][0]) for name in EPIC_NATIVE_SYNTAX]

UNSTRUCTURED_WARNING = "no recognized section headings; note left unstructured"
EMPTY_NOTE_WARNING = "note is empty"


# =============================================================================
# STAGE 1: HELPERS
# =============================================================================


@dataclass(frozen=True)
class _HeadingHit:
    """A line recognized as a section heading."""

    line_index: int
    heading: str
    name: str
    match: Optional[AliasMatch]
    inline_rest: Optional[str] = None


def _normalize_newlines(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\r", "\n")


def _trim_blank_lines(lines: List[str]) -> str:
    """Join lines after dropping leading and trailing blank ones."""
    start, end = 0, len(lines)
    while start < end and not lines[start].strip():
        start += 1
    while end > start and not lines[end - 1].strip():
        end -= 1
    return "\n".join(lines[start:end])


def _build_section(
    section_type: SectionType,
    title: str,
    content: str,
    order: int,
    confidence: float,
    heading: Optional[str] = None,
    inline: bool = False,
) -> Section:
    return Section(
        type=section_type,
        title=title,
        content=content,
        order=order,
        confidence=confidence,
        metadata=SectionMetadata(
            original_heading=heading,
            word_count=len(content.split()),
            is_standardized=confidence >= ConfidenceTier.ALIAS.value,
            inline_heading=inline,
        ),
    )


def _weighted_confidence(sections: List[Section]) -> float:
    """Content-length weighted mean of section confidences."""
    if not sections:
        return 0.0
    weights = [len(section.content) for section in sections]
    total = sum(weights)
    if total == 0:
        return round(sum(s.confidence for s in sections) / len(sections), 3)
    return round(sum(s.confidence * w for s, w in zip(sections, weights)) / total, 3)


def _detect_format(sections: List[Section]) -> NoteFormat:
    """SOAP when all four SOAP types are present, otherwise MIXED for a headed note."""
    present = {s.type for s in sections}
    if all(section_type in present for section_type in SOAP_ORDER):
        return NoteFormat.SOAP
    if any(s.heading for s in sections):
        return NoteFormat.MIXED
    return NoteFormat.UNKNOWN


def _detect_source_emr(text: str) -> str:
    if any(pattern.search(text) for pattern in _EPIC_SYNTAX):
        return SOURCE_EMR_EPIC
    return SOURCE_EMR_PLAIN


# =============================================================================
# STAGE 2: SECTION PARSER
# =============================================================================


class SectionParser:
    """
    Deterministic, table-driven section parser.

    What it does:
        Turns raw note text into a ParsedNote: ordered sections, each with a
        canonical type, its original heading and a resolution confidence.

    Why it exists:
        1. The merge engine splices strictly by section type
        2. Generated output is re-parsed with the same rules as the input,
           so both sides line up
        3. Confidence makes uncertain parses visible to callers

    Attributes:
        alias_table: Table used when the profile does not carry its own
    """

    def __init__(self, alias_table: Optional[AliasTable] = None):
        self.alias_table = alias_table or default_alias_table()

    # -------------------------------------------------------------------------
    # 2.1 Public API
    # -------------------------------------------------------------------------

    def parse(self, raw_text: str, profile: Optional[EMRProfile] = None) -> ParsedNote:
        """
        Parse raw note text into typed sections.

        Args:
            raw_text: Note text (any newline convention)
            profile: Optional EMR profile; its alias table takes precedence

        Returns:
            ParsedNote. Never raises: unparseable input yields a single
            UNSTRUCTURED section with a warning.
        """
        table = self.alias_table
        if profile is not None and profile.alias_table is not None:
            table = profile.alias_table

        if not isinstance(raw_text, str):
            logger.warning(f"Parser received non-text input | Type: {type(raw_text).__name__}")
            return self._unstructured("", [f"input is not text ({type(raw_text).__name__})"])

        try:
            parsed = self._parse(raw_text, table)
        except Exception as e:
            logger.exception(f"Section parsing failed | Error: {e}")
            return self._unstructured(
                _normalize_newlines(raw_text).strip("\n"), [f"parse failed: {e}"]
            )

        meta = parsed.parse_metadata
        meta.source_emr = _detect_source_emr(raw_text)
        logger.debug(
            f"Parsed note | Sections: {parsed.section_count} | "
            f"Confidence: {meta.overall_confidence:.2f} | "
            f"Format: {meta.detected_format.value} | Source: {meta.source_emr} | "
            f"Warnings: {len(meta.warnings)}"
        )
        return parsed

    # -------------------------------------------------------------------------
    # 2.2 Headed Notes
    # -------------------------------------------------------------------------

    def _parse(self, raw_text: str, table: AliasTable) -> ParsedNote:
        text = _normalize_newlines(raw_text)
        if not text.strip():
            return self._unstructured("", [EMPTY_NOTE_WARNING])

        lines = text.split("\n")
        hits = self._find_headings(lines, table)
        if not hits:
            return self._parse_without_headings(text)

        sections: List[Section] = []
        preamble = _trim_blank_lines(lines[: hits[0].line_index])
        if preamble:
            sections.append(
                _build_section(
                    SectionType.HEADER,
                    SectionType.HEADER.display_title,
                    preamble,
                    order=0,
                    confidence=ConfidenceTier.UNRESOLVED.value,
                )
            )

        for position, hit in enumerate(hits):
            end = hits[position + 1].line_index if position + 1 < len(hits) else len(lines)
            body_lines = lines[hit.line_index + 1 : end]
            if hit.inline_rest is not None:
                body_lines = [hit.inline_rest] + body_lines
            content = _trim_blank_lines(body_lines)
            section_type, confidence = self._resolve(hit, content, table)
            sections.append(
                _build_section(
                    section_type,
                    hit.name,
                    content,
                    order=len(sections),
                    confidence=confidence,
                    heading=hit.heading,
                    inline=hit.inline_rest is not None,
                )
            )

        return ParsedNote(sections=sections, parse_metadata=self._summarize(sections, []))

    def _find_headings(self, lines: List[str], table: AliasTable) -> List[_HeadingHit]:
        hits: List[_HeadingHit] = []
        block_start = True
        for index, line in enumerate(lines):
            hit = self._match_heading(line, index, block_start, table)
            if hit is not None:
                hits.append(hit)
            # Inline headings may follow a blank line or another heading.
            block_start = hit is not None or not line.strip()
        return hits

    def _match_heading(
        self, line: str, index: int, block_start: bool, table: AliasTable
    ) -> Optional[_HeadingHit]:
        stripped = line.strip()
        if not stripped or len(stripped) > MAX_HEADING_LENGTH:
            return None

        bare = _HEADING_MARKUP.sub("", stripped)
        has_colon = bare.endswith(":")
        name = _HEADING_MARKUP.sub("", bare.rstrip(":").strip())
        if not name:
            return None

        known = table.lookup(name)
        if known is not None:
            return _HeadingHit(index, stripped, name, known)

        word_count = len(name.split())
        structural = word_count <= MAX_HEADING_WORDS and (
            (has_colon and _STRUCTURAL_HEADING.match(name) is not None)
            or stripped.startswith("#")
            or self._is_all_caps(name)
        )
        if structural:
            return _HeadingHit(index, stripped, name, table.resolve(name))

        if block_start:
            inline = table.find_inline(stripped)
            if inline is not None:
                return _HeadingHit(index, inline.heading, inline.name, inline.match, inline.rest)
        return None

    @staticmethod
    def _is_all_caps(name: str) -> bool:
        # Single unknown words ("NKDA", "BID") are body text.
        if len(name.split()) < 2:
            return False
        return _ALL_CAPS_HEADING.match(name) is not None

    @staticmethod
    def _resolve(hit: _HeadingHit, content: str, table: AliasTable) -> Tuple[SectionType, float]:
        if hit.match is not None:
            return hit.match.section_type, hit.match.confidence
        classified = table.classify_by_keywords(content)
        if classified is not None:
            return classified[0], ConfidenceTier.KEYWORD.value
        return SectionType.OTHER, ConfidenceTier.UNRESOLVED.value

    # -------------------------------------------------------------------------
    # 2.3 Notes Without Headings
    # -------------------------------------------------------------------------

    def _parse_without_headings(self, text: str) -> ParsedNote:
        """
        Bucket paragraphs into SOAP sections by lexicon.

        A paragraph without lexicon hits joins the bucket of the paragraph
        before it (or the first classified bucket, at the start of the note).
        """
        paragraphs = [
            _trim_blank_lines(block.split("\n"))
            for block in _PARAGRAPH_BREAK.split(text)
            if block.strip()
        ]
        buckets: Dict[SectionType, List[str]] = {section_type: [] for section_type in SOAP_ORDER}
        pending: List[str] = []
        current: Optional[SectionType] = None
        classified = 0

        for paragraph in paragraphs:
            bucket = self._best_bucket(paragraph)
            if bucket is None:
                if current is None:
                    pending.append(paragraph)
                else:
                    buckets[current].append(paragraph)
                continue
            classified += 1
            current = bucket
            buckets[bucket].extend(pending)
            pending = []
            buckets[bucket].append(paragraph)

        if classified == 0:
            logger.warning(f"No headings or lexicon hits | Paragraphs: {len(paragraphs)}")
            return self._unstructured(
                _trim_blank_lines(text.split("\n")), [UNSTRUCTURED_WARNING]
            )

        confidence = round(FALLBACK_CONFIDENCE_CAP * classified / len(paragraphs), 3)
        sections: List[Section] = []
        for section_type in SOAP_ORDER:
            if buckets[section_type]:
                sections.append(
                    _build_section(
                        section_type,
                        section_type.display_title,
                        "\n\n".join(buckets[section_type]),
                        order=len(sections),
                        confidence=confidence,
                    )
                )

        logger.warning(
            f"Heuristic split applied | Paragraphs: {len(paragraphs)} | "
            f"Sections: {len(sections)}"
        )
        metadata = self._summarize(sections, [NO_HEADINGS_WARNING])
        metadata.detected_format = NoteFormat.NARRATIVE
        return ParsedNote(sections=sections, parse_metadata=metadata)

    @staticmethod
    def _best_bucket(paragraph: str) -> Optional[SectionType]:
        best: Optional[SectionType] = None
        best_hits = 0
        for section_type in SOAP_ORDER:
            hits = count_keyword_hits(paragraph, SOAP_BUCKET_LEXICONS[section_type])
            if hits > best_hits:
                best, best_hits = section_type, hits
        return best

    # -------------------------------------------------------------------------
    # 2.4 Metadata
    # -------------------------------------------------------------------------

    @staticmethod
    def _summarize(sections: List[Section], warnings: List[str]) -> ParseMetadata:
        warnings = list(warnings)
        counts = Counter(s.type for s in sections if not s.type.is_placeholder)
        for section_type, count in counts.items():
            if count > 1:
                warnings.append(f"duplicate section type {section_type.value} ({count} occurrences)")
        for section in sections:
            if not section.content and section.type != SectionType.HEADER:
                warnings.append(f"empty section: {section.title}")

        return ParseMetadata(
            overall_confidence=_weighted_confidence(sections),
            standardized_section_count=sum(1 for s in sections if s.metadata.is_standardized),
            warnings=warnings,
            detected_format=_detect_format(sections),
        )

    @staticmethod
    def _unstructured(content: str, warnings: List[str]) -> ParsedNote:
        section = _build_section(
            SectionType.UNSTRUCTURED,
            SectionType.UNSTRUCTURED.display_title,
            content,
            order=0,
            confidence=ConfidenceTier.NONE.value,
        )
        return ParsedNote(
            sections=[section],
            parse_metadata=ParseMetadata(
                overall_confidence=0.0,
                standardized_section_count=0,
                warnings=list(warnings),
                detected_format=NoteFormat.UNKNOWN,
            ),
        )


# =============================================================================
# STAGE 3: MODULE-LEVEL CONVENIENCE
# =============================================================================


def parse_note(raw_text: str, profile: Optional[EMRProfile] = None) -> ParsedNote:
    """Parse a note with the built-in alias table (or the profile's table)."""
    return SectionParser().parse(raw_text, profile)


__all__ = ["SectionParser", "parse_note", "render_sections"]
