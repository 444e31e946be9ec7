"""Chapter detection over an ordered sequence of page texts.

A single forward pass keeps at most one chapter open. A heading match in the
first lines of a page closes the open chapter and starts a new one; pages
without a heading are appended to the open chapter. Chapters shorter than
the configured minimum are dropped, and overly long chapters are cut into
numbered parts.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from pdf_to_ebook.models import (
    Chapter,
    DetectionConfig,
    PageText,
    ProgressCallback,
    no_progress,
)

logger = logging.getLogger(__name__)

STAGE = "chapter_detection"
FALLBACK_TITLE = "Full Document"

# Only the top of a page is searched for a chapter heading.
HEADING_SCAN_LINES = 10

_BLANK_LINE_RUN_RE = re.compile(r"\n\s*\n\s*\n+")
_HORIZONTAL_SPACE_RE = re.compile(r"[ \t]+")


def clean_text_content(text: str) -> str:
    """Normalise whitespace in extracted text.

    Drops carriage returns, collapses runs of three or more newlines into a
    blank line, squeezes spaces and tabs, strips the space after a newline
    and trims the result.
    """
    text = text.replace("\r", "")
    text = _BLANK_LINE_RUN_RE.sub("\n\n", text)
    text = _HORIZONTAL_SPACE_RE.sub(" ", text)
    text = text.replace("\n ", "\n")
    return text.strip()


@dataclass
class _OpenChapter:
    title: str
    content: str
    start_page: int
    part: int = 0  # 0 until the chapter is first split

    @property
    def display_title(self) -> str:
        if self.part:
            return f"{self.title} (Part {self.part})"
        return self.title


@dataclass
class _DetectionState:
    current: _OpenChapter | None = None
    chapters: list[Chapter] = field(default_factory=list)


class ChapterDetector:
    """Turns page texts into an ordered list of chapters."""

    def __init__(
        self, config: DetectionConfig, progress: ProgressCallback = no_progress
    ) -> None:
        self.config = config
        self.progress = progress

    def clean(self, text: str) -> str:
        if not self.config.clean_text:
            return text
        return clean_text_content(text)

    def detect(self, pages: list[PageText]) -> list[Chapter]:
        """Detect chapters in *pages*, which must be in page order.

        Returns an empty list when nothing meets the minimum chapter length,
        not even the whole document taken as one chapter.
        """
        if not pages:
            return []

        state = _DetectionState()
        last_index = pages[-1].index

        for position, page in enumerate(pages):
            cleaned = self.clean(page.text)
            lines = cleaned.splitlines()

            heading = self._find_heading(lines)
            if heading is not None:
                line_index, title = heading
                self._finalize(state, page_end=page.index - 1)
                state.current = _OpenChapter(
                    title=title,
                    content="\n".join(lines[line_index + 1:]),
                    start_page=page.index,
                )
                logger.debug("Page %d: chapter heading %r", page.index + 1, title)
            elif state.current is not None:
                current = state.current
                current.content = (
                    f"{current.content}\n{cleaned}" if current.content else cleaned
                )

            self._split_if_too_long(state, page.index)
            self.progress(STAGE, position + 1, len(pages))

        self._finalize(state, page_end=last_index)

        if not state.chapters:
            fallback = self._fallback_chapter(pages, last_index)
            if fallback is not None:
                state.chapters.append(fallback)

        logger.info("Detected %d chapters", len(state.chapters))
        return state.chapters

    def _find_heading(self, lines: list[str]) -> tuple[int, str] | None:
        for line_index, line in enumerate(lines[:HEADING_SCAN_LINES]):
            stripped = line.strip()
            if self.config.chapter_pattern.search(stripped):
                return line_index, stripped
        return None

    def _finalize(self, state: _DetectionState, page_end: int) -> None:
        current = state.current
        state.current = None
        if current is None:
            return

        if page_end < current.start_page:
            # A continuation part that never received a page.
            return

        content = self.clean(current.content)
        if len(content) < self.config.min_chapter_length:
            logger.debug(
                "Dropping chapter %r: %d characters is below the minimum of %d",
                current.display_title,
                len(content),
                self.config.min_chapter_length,
            )
            return

        state.chapters.append(
            Chapter(
                title=current.display_title,
                content=content,
                page_start=current.start_page,
                page_end=page_end,
            )
        )

    def _split_if_too_long(self, state: _DetectionState, page_index: int) -> None:
        limit = self.config.max_pages_per_chapter
        current = state.current
        if limit <= 0 or current is None:
            return
        if page_index - current.start_page + 1 < limit:
            return

        part = current.part or 1
        current.part = part
        self._finalize(state, page_end=page_index)
        state.current = _OpenChapter(
            title=current.title,
            content="",
            start_page=page_index + 1,
            part=part + 1,
        )

    def _fallback_chapter(self, pages: list[PageText], last_index: int) -> Chapter | None:
        content = self.clean("\n\n".join(page.text for page in pages))
        if len(content) < self.config.min_chapter_length:
            return None
        logger.info("No chapter headings found; using the whole document as one chapter")
        return Chapter(
            title=FALLBACK_TITLE,
            content=content,
            page_start=0,
            page_end=last_index,
        )
