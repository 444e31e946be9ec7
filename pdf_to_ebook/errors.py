"""Exception types raised by the conversion pipeline."""

from __future__ import annotations


class InvalidConfigError(ValueError):
    """Configuration rejected before any extraction work starts."""


class ConversionError(RuntimeError):
    """A fatal failure of the overall conversion.

    ``stage`` names the pipeline stage that gave up.
    """

    def __init__(self, message: str, stage: str) -> None:
        super().__init__(message)
        self.stage = stage


class ExtractionError(ConversionError):
    """Every text extraction strategy failed."""

    def __init__(self, failures: list[tuple[str, str]]) -> None:
        details = "; ".join(f"{stage}: {reason}" for stage, reason in failures)
        super().__init__(
            f"All text extraction methods failed ({details})",
            stage=failures[-1][0] if failures else "extraction",
        )
        self.failures = failures


class NoChaptersError(ConversionError):
    """Chapter detection produced nothing worth writing."""

    def __init__(self, page_count: int, min_chapter_length: int) -> None:
        super().__init__(
            f"No chapters detected or content too short across {page_count} "
            f"page(s) (minimum chapter length {min_chapter_length}). Try "
            "adjusting the --min-chapter-length or --chapter-pattern parameters.",
            stage="chapter_detection",
        )
        self.page_count = page_count
        self.min_chapter_length = min_chapter_length
