"""Reconstruct page-like segments from a single block of extracted text.

Used when the text came from whole-document extraction and real page
boundaries are gone. Heuristics are tried in a fixed priority order; the
first one that produces at least two segments wins, and the character
budget split always produces a result.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable

from pdf_to_ebook.models import SegmentationMethod

logger = logging.getLogger(__name__)

FORM_FEED = "\x0c"

# Checked in order; "page N of M" goes before "page N" so the "of M" tail
# is not left behind at the start of the next segment.
_PAGE_INDICATOR_PATTERNS = (
    re.compile(r"(?i)page\s+\d+\s+of\s+\d+"),
    re.compile(r"(?i)page\s+\d+"),
    re.compile(r"- \d+ -"),
    re.compile(r"(?m)^[ \t]*\d+[ \t]*$"),
)

_STRUCTURAL_PATTERNS = (
    re.compile(r"(?im)^[ \t]*(?:chapter|ch\.?)\s+\d+"),
    re.compile(r"(?im)^[ \t]*(?:section|sec\.?)\s+\d+"),
    re.compile(r"(?im)^[ \t]*(?:part|pt\.?)\s+\d+"),
    re.compile(r"(?m)^[ \t]*\d+\.\s+[A-Z]"),
)

_SENTENCE_END = ".!?"


def _clean_segments(parts: list[str]) -> list[str]:
    return [part.strip() for part in parts if part.strip()]


class PageSegmenter:
    """Split undifferentiated text into synthetic pages."""

    def __init__(
        self,
        target_chars: int = 2500,
        max_chars: int = 4000,
        paragraph_window: int = 500,
        sentence_window: int = 200,
        lines_per_page: int = 40,
        short_line_chars: int = 20,
    ) -> None:
        self.target_chars = target_chars
        self.max_chars = max_chars
        self.paragraph_window = paragraph_window
        self.sentence_window = sentence_window
        self.lines_per_page = lines_per_page
        self.short_line_chars = short_line_chars

    def segment(self, text: str) -> tuple[list[str], SegmentationMethod]:
        """Return the segments of *text* and the method that produced them."""
        if not text.strip():
            return [], SegmentationMethod.CHARACTER_BUDGET

        methods: list[tuple[SegmentationMethod, Callable[[str], list[str]]]] = [
            (SegmentationMethod.FORM_FEED, self.split_by_form_feed),
            (SegmentationMethod.PAGE_INDICATOR_PATTERN, self.split_by_page_indicators),
            (SegmentationMethod.STRUCTURAL_MARKER, self.split_by_structural_markers),
            (SegmentationMethod.CONTENT_DENSITY, self.split_by_content_density),
        ]
        for method, split in methods:
            segments = split(text)
            if len(segments) >= 2:
                logger.info("Split into %d pages using %s", len(segments), method.value)
                return segments, method

        logger.warning("Using fallback character-based splitting")
        segments = self.split_by_character_budget(text)
        logger.info("Split into %d pages using character budget", len(segments))
        return segments, SegmentationMethod.CHARACTER_BUDGET

    # ------------------------------------------------------------------
    # Strategies
    # ------------------------------------------------------------------

    def split_by_form_feed(self, text: str) -> list[str]:
        if FORM_FEED not in text:
            return []
        return _clean_segments(text.split(FORM_FEED))

    def split_by_page_indicators(self, text: str) -> list[str]:
        for pattern in _PAGE_INDICATOR_PATTERNS:
            if not pattern.search(text):
                continue
            segments = _clean_segments(pattern.split(text))
            if len(segments) >= 2:
                logger.debug("Page indicator pattern matched: %s", pattern.pattern)
                return segments
        return []

    def split_by_structural_markers(self, text: str) -> list[str]:
        """Split at each heading-like line start.

        Needs more than two markers. Text before the first marker is kept as
        its own segment.
        """
        for pattern in _STRUCTURAL_PATTERNS:
            starts = [match.start() for match in pattern.finditer(text)]
            if len(starts) <= 2:
                continue
            bounds = [0] + starts + [len(text)]
            segments = _clean_segments(
                [text[begin:end] for begin, end in zip(bounds, bounds[1:])]
            )
            if len(segments) >= 2:
                return segments
        return []

    def split_by_content_density(self, text: str) -> list[str]:
        """Cut roughly every ``lines_per_page`` lines at a blank or short line.

        A cut is forced at twice that many lines.
        """
        lines = text.splitlines()
        if len(lines) < 10:
            return _clean_segments([text])

        segments: list[str] = []
        current: list[str] = []
        for line in lines:
            current.append(line)
            if len(current) >= self.lines_per_page and len(line.strip()) < self.short_line_chars:
                segments.append("\n".join(current))
                current = []
            elif len(current) >= self.lines_per_page * 2:
                segments.append("\n".join(current))
                current = []

        if current:
            segments.append("\n".join(current))

        return _clean_segments(segments)

    def split_by_character_budget(self, text: str) -> list[str]:
        """Cut every ``target_chars`` characters at the nearest natural break.

        Prefers the paragraph break closest to the target offset, then the
        closest sentence end, and never exceeds ``max_chars`` per segment.
        """
        segments: list[str] = []
        length = len(text)
        cursor = 0

        while cursor < length:
            end = min(cursor + self.target_chars, length)
            if end < length:
                end = self._find_break(text, cursor, end)

            end = min(end, cursor + self.max_chars)
            if end <= cursor:
                end = min(cursor + self.target_chars, length)

            segment = text[cursor:end].strip()
            if segment:
                segments.append(segment)
            cursor = end

        return segments

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _find_break(self, text: str, cursor: int, target: int) -> int:
        length = len(text)

        paragraph = self._nearest(
            lambda pos: text[pos] == "\n" and text[pos + 1] == "\n",
            center=target,
            window=self.paragraph_window,
            low=cursor + 1,
            high=length - 1,
        )
        if paragraph is not None:
            return paragraph

        sentence = self._nearest(
            lambda pos: text[pos] in _SENTENCE_END and text[pos + 1].isspace(),
            center=target,
            window=self.sentence_window,
            low=cursor + 1,
            high=length - 1,
        )
        if sentence is not None:
            return sentence + 1

        return target

    @staticmethod
    def _nearest(
        predicate: Callable[[int], bool],
        center: int,
        window: int,
        low: int,
        high: int,
    ) -> int | None:
        """Closest position to *center* in [low, high) satisfying *predicate*.

        Ties between equally distant positions go to the earlier one.
        """
        for offset in range(window + 1):
            for pos in (center - offset, center + offset):
                if low <= pos < high and predicate(pos):
                    return pos
        return None
