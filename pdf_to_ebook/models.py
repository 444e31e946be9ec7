"""Core data models for the PDF-to-ebook converter."""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from pdf_to_ebook.errors import InvalidConfigError

DEFAULT_CHAPTER_PATTERN = r"(?i)^(chapter|ch\.?)\s*\d+"
DEFAULT_MIN_CHAPTER_LENGTH = 500

# Called as progress(stage, done, total). Purely observational.
ProgressCallback = Callable[[str, int, int], None]


def no_progress(stage: str, done: int, total: int) -> None:
    """Default progress callback that ignores every update."""


class SegmentationMethod(Enum):
    """Page segmentation heuristics, in priority order."""

    FORM_FEED = "form_feed"
    PAGE_INDICATOR_PATTERN = "page_indicator_pattern"
    STRUCTURAL_MARKER = "structural_marker"
    CONTENT_DENSITY = "content_density"
    CHARACTER_BUDGET = "character_budget"


class OutputFormat(Enum):
    """Ebook formats the generator can write."""

    EPUB = "epub"
    HTML = "html"
    TXT = "txt"

    @property
    def extension(self) -> str:
        return self.value


@dataclass(frozen=True)
class PageText:
    """Text of a single page (real or synthetic), 0-based index."""

    index: int
    text: str


@dataclass
class ExtractionSuccess:
    """Pages produced by an extraction strategy."""

    pages: list[PageText]
    method: str
    segmentation: SegmentationMethod | None = None
    warnings: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return bool(self.pages)


@dataclass
class ExtractionFailure:
    """Reason an extraction strategy could not produce pages."""

    reason: str
    stage: str

    @property
    def ok(self) -> bool:
        return False


ExtractionOutcome = ExtractionSuccess | ExtractionFailure


@dataclass
class Chapter:
    """A titled run of content spanning one or more pages (0-based)."""

    title: str
    content: str
    page_start: int
    page_end: int

    @property
    def display_page_start(self) -> int:
        return self.page_start + 1

    @property
    def display_page_end(self) -> int:
        return self.page_end + 1


@dataclass(frozen=True)
class DetectionConfig:
    """Chapter detection settings, immutable for the duration of a run.

    Build instances with :meth:`from_pattern` so the heading pattern is
    compiled (and validated) exactly once.
    """

    chapter_pattern: re.Pattern[str]
    min_chapter_length: int = DEFAULT_MIN_CHAPTER_LENGTH
    max_pages_per_chapter: int = 0  # 0 = unbounded
    clean_text: bool = True

    @classmethod
    def from_pattern(
        cls,
        chapter_pattern: str = DEFAULT_CHAPTER_PATTERN,
        min_chapter_length: int = DEFAULT_MIN_CHAPTER_LENGTH,
        max_pages_per_chapter: int = 0,
        clean_text: bool = True,
    ) -> DetectionConfig:
        """Compile *chapter_pattern* and validate the numeric limits.

        Raises:
            InvalidConfigError: If the pattern does not compile or a limit
                is negative.
        """
        try:
            compiled = re.compile(chapter_pattern)
        except re.error as exc:
            raise InvalidConfigError(
                f"Invalid chapter detection regex pattern {chapter_pattern!r}: {exc}"
            ) from exc

        if min_chapter_length < 0:
            raise InvalidConfigError(
                f"min_chapter_length must be >= 0, got {min_chapter_length}"
            )
        if max_pages_per_chapter < 0:
            raise InvalidConfigError(
                f"max_pages_per_chapter must be >= 0, got {max_pages_per_chapter}"
            )

        return cls(
            chapter_pattern=compiled,
            min_chapter_length=min_chapter_length,
            max_pages_per_chapter=max_pages_per_chapter,
            clean_text=clean_text,
        )


@dataclass
class ConversionConfig:
    """Configuration for a PDF-to-ebook conversion."""

    chapter_pattern: str = DEFAULT_CHAPTER_PATTERN
    min_chapter_length: int = DEFAULT_MIN_CHAPTER_LENGTH
    max_pages_per_chapter: int = 0
    clean_text: bool = True
    output_format: OutputFormat = OutputFormat.EPUB
    include_page_numbers: bool = False
    generate_toc: bool = True
    verbose: bool = False

    def detection_config(self) -> DetectionConfig:
        return DetectionConfig.from_pattern(
            chapter_pattern=self.chapter_pattern,
            min_chapter_length=self.min_chapter_length,
            max_pages_per_chapter=self.max_pages_per_chapter,
            clean_text=self.clean_text,
        )


@dataclass
class BookMetadata:
    """Book-level metadata written into the generated ebook."""

    title: str
    author: str = "Unknown Author"
    subject: str | None = None
    creator: str | None = None
    creation_date: datetime | None = None


@dataclass
class PdfInfo:
    """Fields of a PDF document information dictionary."""

    title: str | None = None
    author: str | None = None
    subject: str | None = None
    creator: str | None = None
    producer: str | None = None
    creation_date: str | None = None
    modification_date: str | None = None


@dataclass
class ConversionSummary:
    """Summary of a completed conversion run."""

    total_pages: int
    pages_extracted: int
    extraction_method: str
    segmentation_method: SegmentationMethod | None
    chapters_detected: int
    warnings: list[str]
    processing_time_seconds: float
