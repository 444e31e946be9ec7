"""Unit tests for data models, configuration validation and error types."""

from __future__ import annotations

import re

import pytest

from pdf_to_ebook.errors import (
    ConversionError,
    ExtractionError,
    InvalidConfigError,
    NoChaptersError,
)
from pdf_to_ebook.models import (
    DEFAULT_CHAPTER_PATTERN,
    DEFAULT_MIN_CHAPTER_LENGTH,
    Chapter,
    ConversionConfig,
    DetectionConfig,
    ExtractionFailure,
    ExtractionSuccess,
    OutputFormat,
    PageText,
)


class TestDetectionConfig:
    def test_defaults(self):
        config = DetectionConfig.from_pattern()
        assert isinstance(config.chapter_pattern, re.Pattern)
        assert config.chapter_pattern.pattern == DEFAULT_CHAPTER_PATTERN
        assert config.min_chapter_length == DEFAULT_MIN_CHAPTER_LENGTH
        assert config.max_pages_per_chapter == 0
        assert config.clean_text is True

    def test_default_pattern_matches_chapter_headings(self):
        pattern = DetectionConfig.from_pattern().chapter_pattern
        assert pattern.search("Chapter 1")
        assert pattern.search("CHAPTER 12: The Return")
        assert pattern.search("Ch. 3")
        assert pattern.search("ch4")
        assert not pattern.search("In this chapter 1 we see")

    def test_invalid_pattern_rejected(self):
        with pytest.raises(InvalidConfigError, match="Invalid chapter detection regex"):
            DetectionConfig.from_pattern("(unclosed")

    def test_invalid_config_is_value_error(self):
        with pytest.raises(ValueError):
            DetectionConfig.from_pattern("[")

    def test_negative_min_length_rejected(self):
        with pytest.raises(InvalidConfigError, match="min_chapter_length"):
            DetectionConfig.from_pattern(min_chapter_length=-1)

    def test_negative_max_pages_rejected(self):
        with pytest.raises(InvalidConfigError, match="max_pages_per_chapter"):
            DetectionConfig.from_pattern(max_pages_per_chapter=-3)

    def test_is_immutable(self):
        config = DetectionConfig.from_pattern()
        with pytest.raises(AttributeError):
            config.min_chapter_length = 1


class TestConversionConfig:
    def test_defaults(self):
        config = ConversionConfig()
        assert config.output_format is OutputFormat.EPUB
        assert config.include_page_numbers is False
        assert config.generate_toc is True
        assert config.verbose is False

    def test_detection_config_carries_settings(self):
        config = ConversionConfig(
            chapter_pattern=r"^Part \d+",
            min_chapter_length=42,
            max_pages_per_chapter=3,
            clean_text=False,
        )
        detection = config.detection_config()
        assert detection.chapter_pattern.pattern == r"^Part \d+"
        assert detection.min_chapter_length == 42
        assert detection.max_pages_per_chapter == 3
        assert detection.clean_text is False

    def test_detection_config_validates(self):
        with pytest.raises(InvalidConfigError):
            ConversionConfig(chapter_pattern="*oops").detection_config()


class TestValueTypes:
    def test_output_format_extension(self):
        assert OutputFormat.EPUB.extension == "epub"
        assert OutputFormat.HTML.extension == "html"
        assert OutputFormat.TXT.extension == "txt"

    def test_chapter_display_pages_are_one_based(self):
        chapter = Chapter(title="Chapter 1", content="text", page_start=0, page_end=4)
        assert chapter.display_page_start == 1
        assert chapter.display_page_end == 5

    def test_extraction_outcomes(self):
        success = ExtractionSuccess(pages=[PageText(0, "a")], method="content_stream")
        failure = ExtractionFailure(reason="broken", stage="content_stream")
        assert success.ok
        assert success.warnings == []
        assert success.segmentation is None
        assert not ExtractionSuccess(pages=[], method="content_stream").ok
        assert not failure.ok


class TestErrors:
    def test_extraction_error_lists_every_failure(self):
        exc = ExtractionError(
            [("content_stream", "no text"), ("fallback_text", "nothing readable")]
        )
        assert isinstance(exc, ConversionError)
        assert "All text extraction methods failed" in str(exc)
        assert "content_stream: no text" in str(exc)
        assert "fallback_text: nothing readable" in str(exc)
        assert exc.stage == "fallback_text"
        assert len(exc.failures) == 2

    def test_no_chapters_error_suggests_parameters(self):
        exc = NoChaptersError(page_count=3, min_chapter_length=500)
        assert exc.stage == "chapter_detection"
        assert "--min-chapter-length" in str(exc)
        assert "--chapter-pattern" in str(exc)

    def test_conversion_error_carries_stage(self):
        exc = ConversionError("boom", stage="content_stream")
        assert exc.stage == "content_stream"
        assert not hasattr(exc, "page")
        assert str(exc) == "boom"
