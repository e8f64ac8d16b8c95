"""Person-name detection and in-text masking.

Detection runs over the plain text of possibly HTML-bearing content and maps
every span back onto the original markup, so masking can work on the
original string without touching tags.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Protocol

from keepsake.identity.labels import INLINE_PLACEHOLDER, render_label
from keepsake.identity.references import (
    as_reference_row,
    author_label_for,
    effective_visibility,
)
from keepsake.identity.types import (
    DetectedName,
    KnownPerson,
    LabelContext,
    RedactedReference,
    ReferenceKind,
    ReferenceRow,
    Visibility,
    coerce_visibility,
)

logger = logging.getLogger(__name__)

# Only real tags: "3 < 5" stays text.
TAG_RE = re.compile(r"<[A-Za-z/!][^>]*>")

_UPPER = "A-ZÀ-ÖØ-Þ"
_LOWER = "a-zß-öø-ÿ"
_WORD_RE = re.compile(
    rf"(?<![\w-])"
    rf"(?:[{_UPPER}]['’])?[{_UPPER}][{_LOWER}]+(?:[{_UPPER}][{_LOWER}]+)?"
    rf"(?:-[{_UPPER}][{_LOWER}]+)*"
    rf"(?![\w-])"
)

# Words that prefix a name ("Uncle Bob", "Dr. Jones") but are not one alone
TITLES = frozenset(
    {
        "uncle",
        "aunt",
        "auntie",
        "cousin",
        "grandma",
        "grandpa",
        "granny",
        "nana",
        "papa",
        "mom",
        "mum",
        "dad",
        "grandmother",
        "grandfather",
        "sister",
        "brother",
        "father",
        "mother",
        "dr",
        "mr",
        "mrs",
        "ms",
        "miss",
        "sir",
        "professor",
        "prof",
        "rev",
        "pastor",
        "coach",
    }
)

# Capitalized words that are never part of a person's name
NON_NAME_WORDS = frozenset(
    {
        # Pronouns, determiners, conjunctions
        "a", "an", "the", "he", "she", "it", "we", "they", "you", "me", "my",
        "our", "your", "his", "her", "their", "its", "this", "that", "these",
        "those", "there", "here", "and", "but", "or", "so", "if", "because",
        "though", "although", "while", "as", "some", "every", "each", "all",
        "both", "no", "not", "yes", "one", "someone", "everyone", "nobody",
        # Prepositions and adverbs that start sentences
        "in", "on", "at", "by", "for", "from", "with", "without", "of", "to",
        "after", "before", "during", "when", "whenever", "then", "now", "once",
        "later", "soon", "still", "also", "just", "even", "only", "maybe",
        "perhaps", "yesterday", "today", "tonight", "tomorrow", "always",
        "never", "sometimes", "often", "what", "who", "where", "why", "how",
        "which", "did", "does", "do", "was", "were", "is", "are", "had", "has",
        "have", "will", "would", "could", "should", "can", "may", "might",
        "thanks", "thank", "dear", "love", "hello", "hi", "oh", "well",
        "remember", "years", "last", "first", "next", "many", "most", "much",
        # Calendar
        "january", "february", "march", "april", "june", "july", "august",
        "september", "october", "november", "december", "monday", "tuesday",
        "wednesday", "thursday", "friday", "saturday", "sunday",
        "christmas", "easter", "thanksgiving", "halloween", "hanukkah",
    }
)  # fmt: skip

MAX_NAME_WORDS = 4

FICTIONAL_CHARACTERS = frozenset(
    {
        # Holiday figures
        "santa", "santa claus", "father christmas", "st nick", "saint nick",
        "easter bunny", "tooth fairy", "jack frost", "cupid",
        # Religious and mythic figures
        "god", "jesus", "jesus christ", "christ", "devil", "satan",
        # Fairy tales
        "cinderella", "snow white", "sleeping beauty", "rapunzel",
        "peter pan", "tinkerbell", "pinocchio",
        # Other story figures
        "boogeyman", "sandman", "mother nature",
    }
)  # fmt: skip


def normalize_name(name: str) -> str:
    return " ".join(name.split()).casefold()


def is_fictional_character(name: str, extra: Iterable[str] = ()) -> bool:
    key = normalize_name(name)
    return key in FICTIONAL_CHARACTERS or key in {normalize_name(n) for n in extra}


# =============================================================================
# HTML stripping
# =============================================================================


@dataclass
class StrippedText:
    """Plain text plus a map from plain-text index to original index."""

    text: str
    positions: list[int]

    def to_original(self, pos: int) -> int:
        if 0 <= pos < len(self.positions):
            return self.positions[pos]
        return pos

    def span_to_original(self, start: int, end: int) -> tuple[int, int]:
        return self.to_original(start), self.to_original(end - 1) + 1


def strip_html(html: str) -> StrippedText:
    """Remove tags, remembering where each remaining character came from."""
    chars: list[str] = []
    positions: list[int] = []
    cursor = 0
    for match in TAG_RE.finditer(html or ""):
        for i in range(cursor, match.start()):
            chars.append(html[i])
            positions.append(i)
        cursor = match.end()
    for i in range(cursor, len(html or "")):
        chars.append(html[i])
        positions.append(i)
    return StrippedText(text="".join(chars), positions=positions)


# =============================================================================
# Detection
# =============================================================================


class NameDetector(Protocol):
    """Finds person-name spans in plain text."""

    def find_names(self, text: str) -> list[tuple[int, int]]: ...


class CapitalizedNameDetector:
    """Rule-based person-name pass.

    Runs of capitalized words on one line form a candidate; calendar words,
    sentence starters and other common words split runs; kinship and honorific
    titles are kept only when a name follows them.
    """

    def __init__(
        self,
        *,
        titles: Iterable[str] = TITLES,
        non_name_words: Iterable[str] = NON_NAME_WORDS,
        max_words: int = MAX_NAME_WORDS,
    ) -> None:
        self._titles = frozenset(t.casefold() for t in titles)
        self._stop = frozenset(w.casefold() for w in non_name_words)
        self._max_words = max_words

    def find_names(self, text: str) -> list[tuple[int, int]]:
        spans: list[tuple[int, int]] = []
        for run in self._runs(text):
            for segment in self._segments(run):
                spans.append((segment[0][1], segment[-1][2]))
        return spans

    def _runs(self, text: str) -> list[list[tuple[str, int, int]]]:
        runs: list[list[tuple[str, int, int]]] = []
        run: list[tuple[str, int, int]] = []
        for match in _WORD_RE.finditer(text):
            word = (match.group(0), match.start(), match.end())
            if run and self._joins(text, run[-1], word):
                run.append(word)
                continue
            if run:
                runs.append(run)
            run = [word]
        if run:
            runs.append(run)
        return runs

    def _joins(
        self, text: str, prev: tuple[str, int, int], word: tuple[str, int, int]
    ) -> bool:
        gap = text[prev[2] : word[1]]
        if prev[0].casefold() in self._titles and gap.startswith("."):
            gap = gap[1:]
        return bool(gap) and gap.strip(" \t\u00a0") == ""

    def _segments(
        self, run: list[tuple[str, int, int]]
    ) -> list[list[tuple[str, int, int]]]:
        segments: list[list[tuple[str, int, int]]] = []
        current: list[tuple[str, int, int]] = []
        for word in run:
            if word[0].casefold() in self._stop:
                if current:
                    segments.append(current)
                current = []
                continue
            current.append(word)
        if current:
            segments.append(current)

        names: list[list[tuple[str, int, int]]] = []
        for segment in segments:
            if all(w[0].casefold() in self._titles for w in segment):
                continue
            names.append(segment[: self._max_words])
        return names


_default_detector = CapitalizedNameDetector()


def detect_names(
    content: str, detector: NameDetector | None = None
) -> list[DetectedName]:
    """Detect person names, with spans over the original content."""
    stripped = strip_html(content)
    finder = detector or _default_detector

    results: list[DetectedName] = []
    seen: set[str] = set()
    for start, end in sorted(finder.find_names(stripped.text)):
        text = stripped.text[start:end].strip()
        if not text:
            continue
        key = normalize_name(text)
        if key in seen:
            continue
        seen.add(key)
        orig_start, orig_end = stripped.span_to_original(start, end)
        results.append(DetectedName(text=text, start=orig_start, end=orig_end))
    return results


def detect_and_match_names(
    content: str,
    known_people: Sequence[KnownPerson | Mapping[str, Any]],
    detector: NameDetector | None = None,
) -> list[DetectedName]:
    """Detect names and attach known people by full name, then by first name."""
    lookup: dict[str, KnownPerson] = {}
    for raw in known_people:
        person = (
            raw
            if isinstance(raw, KnownPerson)
            else KnownPerson(
                id=str(raw["id"]),
                name=str(raw["name"]),
                visibility=(
                    coerce_visibility(raw["visibility"])
                    if raw.get("visibility") is not None
                    else None
                ),
            )
        )
        full = normalize_name(person.name)
        if not full:
            continue
        lookup[full] = person
        first = full.split()[0]
        lookup.setdefault(first, person)

    matched: list[DetectedName] = []
    for detected in detect_names(content, detector):
        key = normalize_name(detected.text)
        person = lookup.get(key)
        if person is None:
            for part in key.split():
                person = lookup.get(part)
                if person:
                    break
        if person is not None:
            detected.person_id = person.id
            detected.visibility = person.visibility
        matched.append(detected)
    return matched


# =============================================================================
# Masking
# =============================================================================


_WORD_CHAR_RE = re.compile(r"\w")


def _name_pattern(name: str) -> re.Pattern[str]:
    return re.compile(re.escape(name), re.IGNORECASE)


def _is_word_char(char: str) -> bool:
    return bool(_WORD_CHAR_RE.match(char))


def _tag_between(stripped: StrippedText, index: int) -> bool:
    return stripped.positions[index] - stripped.positions[index - 1] > 1


def _is_whole_word(stripped: StrippedText, start: int, end: int) -> bool:
    text = stripped.text
    if start > 0 and _is_word_char(text[start - 1]):
        if not _tag_between(stripped, start):
            return False
    if end < len(text) and _is_word_char(text[end]):
        if not _tag_between(stripped, end):
            return False
    return True


def _find_name_spans(
    stripped: StrippedText, patterns: list[tuple[re.Pattern[str], str]]
) -> list[tuple[int, int, str]]:
    """Locate non-overlapping name spans in plain text, earlier patterns first."""
    spans: list[tuple[int, int, str]] = []
    for pattern, label in patterns:
        pos = 0
        while match := pattern.search(stripped.text, pos):
            start, end = match.span()
            taken = any(start < s_end and s_start < end for s_start, s_end, _ in spans)
            if taken or not _is_whole_word(stripped, start, end):
                pos = start + 1
                continue
            spans.append((start, end, label))
            pos = end
    return spans


def mask_names_in_content(
    content: str, names_to_mask: Iterable[tuple[str, str]]
) -> str:
    """Replace each name with its label, longest names first.

    Matching is case-insensitive and whole-word and runs over the text with
    tags stripped, so a name split by inline markup (``<b>Julie</b> Smith``)
    is still found. The label lands where the name starts; tags inside the
    matched range are kept and the text between them is dropped. Markup
    inside tags is never rewritten.
    """
    pairs = [(name, label) for name, label in names_to_mask if name and name.strip()]
    if not pairs or not content:
        return content
    pairs.sort(key=lambda pair: len(pair[0]), reverse=True)
    patterns = [(_name_pattern(name), label) for name, label in pairs]

    stripped = strip_html(content)
    spans = _find_name_spans(stripped, patterns)
    if not spans:
        return content

    out = list(content)
    for start, end, label in spans:
        out[stripped.positions[start]] = label
        for index in range(start + 1, end):
            out[stripped.positions[index]] = ""
    return "".join(out)


def mask_content_with_references(
    content: str, references: Iterable[RedactedReference | Mapping[str, Any]]
) -> str:
    """Mask names using already-redacted references that carry author payloads."""
    pairs: list[tuple[str, str]] = []
    for ref in references:
        data = ref.model_dump() if isinstance(ref, RedactedReference) else dict(ref)
        if coerce_visibility(data.get("visibility")) == Visibility.APPROVED:
            continue
        payload = data.get("author_payload")
        if not payload:
            continue
        original = payload.get("author_label")
        replacement = data.get("render_label")
        if original and replacement and original != replacement:
            pairs.append((original, replacement))
    if not pairs:
        return content
    return mask_names_in_content(content, pairs)


def masking_pairs_for_rows(
    rows: Iterable[ReferenceRow | Mapping[str, Any]],
    placeholder: str = INLINE_PLACEHOLDER,
) -> list[tuple[str, str]]:
    """Name/label pairs for every non-approved person, including REMOVED ones."""
    pairs: list[tuple[str, str]] = []
    for raw in rows:
        row = as_reference_row(raw)
        if row.type == ReferenceKind.LINK:
            continue
        state = effective_visibility(row)
        if state == Visibility.APPROVED:
            continue
        names = {author_label_for(row)}
        if row.display_name:
            names.add(row.display_name)
        label = get_masked_name(
            author_label_for(row), state, row.relationship_to_subject, placeholder
        )
        for name in names:
            if name and normalize_name(name) != normalize_name(label):
                pairs.append((name, label))
    return pairs


def mask_content_for_viewer(
    content: str,
    rows: Iterable[ReferenceRow | Mapping[str, Any]],
    placeholder: str = INLINE_PLACEHOLDER,
) -> str:
    """Mask every hidden person named in ``rows`` inside ``content``."""
    pairs = masking_pairs_for_rows(rows, placeholder)
    if pairs:
        logger.debug("content_masked", extra={"names": len(pairs)})
    return mask_names_in_content(content, pairs)


def get_masked_name(
    name: str,
    visibility: Any,
    relationship: str | None = None,
    placeholder: str = INLINE_PLACEHOLDER,
) -> str:
    """Inline label for a name inside content. REMOVED names become the placeholder."""
    state = coerce_visibility(visibility)
    if state == Visibility.REMOVED:
        return placeholder
    return render_label(
        state, name, relationship, LabelContext.INLINE, placeholder=placeholder
    )
