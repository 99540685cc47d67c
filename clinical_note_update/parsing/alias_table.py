"""
Alias Table - Heading Resolution Data

This module maps raw section headings onto canonical SectionType values.
Resolution is a pure table lookup with three tiers:

    Tier        Confidence  Rule
    EXACT       1.0         Heading equals the canonical title
    ALIAS       0.8         Heading equals a known alias, or starts with one
    KEYWORD     0.5         Heading unknown; body hits a type's keyword bag

Tie-break for ALIAS: the longest matching alias wins; equal lengths resolve
to the type declared first. Tables are immutable; institutions extend them
with `extend()`, which returns a new table.

Usage:
    from clinical_note_update.parsing.alias_table import default_alias_table

    table = default_alias_table()
    match = table.resolve("HPI")
    match.section_type, match.tier
    # (SectionType.HPI, ConfidenceTier.ALIAS)

Author: Shubham Singh
Date: December 2025
"""

import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from clinical_note_update.core.constants import (
    MIN_KEYWORD_HITS,
    MIN_PREFIX_ALIAS_LENGTH,
    SECTION_ALIASES,
    SECTION_KEYWORD_BAGS,
    SECTION_TITLES,
)
from clinical_note_update.core.enums import ConfidenceTier, SectionType


_MARKDOWN_EDGES = re.compile(r"^[#\s*_]+|[\s*_]+$")
_WHITESPACE = re.compile(r"\s+")
_INLINE_HEADING = re.compile(
    r"^(?P<heading>(?:\*\*|__)?\s*(?P<name>[A-Za-z][^:\n]{0,60}?)\s*:\s*(?:\*\*|__)?)\s*(?P<rest>\S.*)$"
)


def normalize_heading(heading: str) -> str:
    """Lower-case a heading and strip markdown markers, colon and extra spaces."""
    text = _MARKDOWN_EDGES.sub("", heading.strip())
    text = text.rstrip(":").strip()
    text = _MARKDOWN_EDGES.sub("", text)
    return _WHITESPACE.sub(" ", text).lower()


@lru_cache(maxsize=512)
def _keyword_regex(keyword: str) -> "re.Pattern":
    return re.compile(r"(?<![a-z0-9])" + re.escape(keyword.lower()) + r"(?![a-z0-9])")


def count_keyword_hits(text: str, keywords: Iterable[str]) -> int:
    """Number of distinct keywords present in text as whole words (case-insensitive)."""
    lowered = text.lower()
    return sum(1 for keyword in keywords if _keyword_regex(keyword).search(lowered))


# =============================================================================
# STAGE 1: MATCH RESULT
# =============================================================================


@dataclass(frozen=True)
class AliasMatch:
    """A resolved heading: canonical type, resolution tier, and the alias that matched."""

    section_type: SectionType
    tier: ConfidenceTier
    alias: str

    @property
    def confidence(self) -> float:
        return self.tier.value


@dataclass(frozen=True)
class InlineHeading:
    """A `Known Heading: text` line split into heading and body start."""

    match: AliasMatch
    heading: str
    name: str
    rest: str


# =============================================================================
# STAGE 2: ALIAS TABLE
# =============================================================================


@dataclass(frozen=True)
class AliasTable:
    """
    Immutable mapping of headings onto canonical section types.

    What it does:
        Resolves raw headings at the exact or alias tier, and classifies
        unknown headings by their body at the keyword tier.

    Why it exists:
        1. Heading vocabularies differ between clinicians and EMRs
        2. Resolution must be deterministic and explainable (no NLU)
        3. Institutions add aliases without touching code

    Attributes:
        titles: Canonical title per type (exact tier)
        aliases: Declaration-ordered aliases per type (alias tier)
        keyword_bags: Body keywords per type (keyword tier)
    """

    titles: Tuple[Tuple[SectionType, str], ...]
    aliases: Tuple[Tuple[SectionType, Tuple[str, ...]], ...]
    keyword_bags: Tuple[Tuple[SectionType, Tuple[str, ...]], ...] = ()
    _exact_index: Dict[str, SectionType] = field(
        default_factory=dict, init=False, repr=False, compare=False
    )
    _alias_index: Dict[str, SectionType] = field(
        default_factory=dict, init=False, repr=False, compare=False
    )
    _prefix_candidates: Tuple[Tuple[str, SectionType], ...] = field(
        default=(), init=False, repr=False, compare=False
    )

    def __post_init__(self):
        exact_index: Dict[str, SectionType] = {}
        for section_type, title in self.titles:
            exact_index.setdefault(normalize_heading(title), section_type)

        alias_index: Dict[str, SectionType] = {}
        for section_type, aliases in self.aliases:
            for alias in aliases:
                alias_index.setdefault(normalize_heading(alias), section_type)

        # Titles and aliases both qualify as prefixes. Declaration order is
        # kept so that a stable sort by length preserves it on ties.
        prefixes: List[Tuple[str, SectionType]] = []
        seen = set()
        for key, section_type in list(exact_index.items()) + list(alias_index.items()):
            if len(key) >= MIN_PREFIX_ALIAS_LENGTH and key not in seen:
                seen.add(key)
                prefixes.append((key, section_type))
        prefixes.sort(key=lambda item: len(item[0]), reverse=True)

        object.__setattr__(self, "_exact_index", exact_index)
        object.__setattr__(self, "_alias_index", alias_index)
        object.__setattr__(self, "_prefix_candidates", tuple(prefixes))

    # -------------------------------------------------------------------------
    # 2.1 Heading Resolution
    # -------------------------------------------------------------------------

    def exact(self, heading: str) -> Optional[SectionType]:
        """Type whose canonical title equals the heading, if any."""
        return self._exact_index.get(normalize_heading(heading))

    def lookup(self, heading: str) -> Optional[AliasMatch]:
        """Resolve a heading that matches a title or alias in full (no prefixes)."""
        key = normalize_heading(heading)
        if not key:
            return None
        if key in self._exact_index:
            return AliasMatch(self._exact_index[key], ConfidenceTier.EXACT, key)
        if key in self._alias_index:
            return AliasMatch(self._alias_index[key], ConfidenceTier.ALIAS, key)
        return None

    def resolve(self, heading: str) -> Optional[AliasMatch]:
        """
        Resolve a heading at the exact or alias tier.

        Full matches are tried first; otherwise the heading may start with a
        known title or alias followed by a word boundary ("Plan for next
        visit" resolves to PLAN at the alias tier).

        Returns:
            AliasMatch, or None when the heading is unknown
        """
        full = self.lookup(heading)
        if full is not None:
            return full

        key = normalize_heading(heading)
        for alias, section_type in self._prefix_candidates:
            if key.startswith(alias) and not key[len(alias)].isalnum():
                return AliasMatch(section_type, ConfidenceTier.ALIAS, alias)
        return None

    def find_inline(self, line: str) -> Optional[InlineHeading]:
        """
        Split a `Known Heading: text` line.

        Only full title/alias matches of at least MIN_PREFIX_ALIAS_LENGTH
        characters qualify; anything else stays body text.
        """
        match = _INLINE_HEADING.match(line.strip())
        if not match:
            return None
        name = match.group("name").strip()
        if len(normalize_heading(name)) < MIN_PREFIX_ALIAS_LENGTH:
            return None
        resolved = self.lookup(name)
        if resolved is None:
            return None
        return InlineHeading(
            match=resolved,
            heading=match.group("heading").strip(),
            name=name,
            rest=match.group("rest"),
        )

    # -------------------------------------------------------------------------
    # 2.2 Keyword Classification
    # -------------------------------------------------------------------------

    def classify_by_keywords(self, body: str) -> Optional[Tuple[SectionType, int]]:
        """
        Classify a body by keyword bags.

        Returns:
            (type, distinct keyword hits) for the bag with the most hits,
            provided it reaches MIN_KEYWORD_HITS; ties go to the bag declared
            first. None otherwise.
        """
        best: Optional[Tuple[SectionType, int]] = None
        for section_type, keywords in self.keyword_bags:
            hits = count_keyword_hits(body, keywords)
            if hits >= MIN_KEYWORD_HITS and (best is None or hits > best[1]):
                best = (section_type, hits)
        return best

    # -------------------------------------------------------------------------
    # 2.3 Introspection and Extension
    # -------------------------------------------------------------------------

    def aliases_for(self, section_type: SectionType) -> List[str]:
        result: List[str] = []
        for declared_type, aliases in self.aliases:
            if declared_type == section_type:
                result.extend(aliases)
        return result

    def extend(self, extra_aliases: Mapping[SectionType, Iterable[str]]) -> "AliasTable":
        """
        Return a new table with institution aliases appended.

        Built-in aliases keep precedence: an extra alias that collides with
        an existing one is ignored by lookups.
        """
        additions = tuple(
            (section_type, tuple(alias.lower().strip() for alias in aliases))
            for section_type, aliases in extra_aliases.items()
        )
        return AliasTable(
            titles=self.titles,
            aliases=self.aliases + additions,
            keyword_bags=self.keyword_bags,
        )

    @classmethod
    def from_mappings(
        cls,
        titles: Mapping[SectionType, str],
        aliases: Mapping[SectionType, Iterable[str]],
        keyword_bags: Optional[Mapping[SectionType, Iterable[str]]] = None,
    ) -> "AliasTable":
        return cls(
            titles=tuple(
                (section_type, title)
                for section_type, title in titles.items()
                if not section_type.is_placeholder
            ),
            aliases=tuple((t, tuple(a)) for t, a in aliases.items()),
            keyword_bags=tuple((t, tuple(k)) for t, k in (keyword_bags or {}).items()),
        )


@lru_cache(maxsize=1)
def default_alias_table() -> AliasTable:
    """Built-in alias table assembled from core.constants."""
    return AliasTable.from_mappings(SECTION_TITLES, SECTION_ALIASES, SECTION_KEYWORD_BAGS)
