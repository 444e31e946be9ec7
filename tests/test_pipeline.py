"""Tests for ConversionPipeline: strategy ordering and end-to-end runs."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from pdf_to_ebook.document_loader import PdfDocument
from pdf_to_ebook.errors import ExtractionError, InvalidConfigError, NoChaptersError
from pdf_to_ebook.models import (
    ConversionConfig,
    ExtractionFailure,
    ExtractionSuccess,
    OutputFormat,
    PageText,
    SegmentationMethod,
)
from pdf_to_ebook.pipeline import ConversionPipeline, ExtractionStrategy

from conftest import text_stream

BODY = "The quick brown fox jumps over the lazy dog near the riverbank at dawn."


def _book_pages() -> list[list[bytes]]:
    return [
        [text_stream("Chapter 1", BODY, BODY)],
        [text_stream(BODY)],
        [text_stream("Chapter 2", BODY)],
    ]


class TestStrategyOrder:
    def _pipeline_with(self, *outcomes) -> tuple[ConversionPipeline, list[MagicMock]]:
        pipeline = ConversionPipeline()
        fns = [MagicMock(return_value=outcome) for outcome in outcomes]
        strategies = [
            ExtractionStrategy(name=f"s{i}", fn=fn, description=f"strategy {i}")
            for i, fn in enumerate(fns)
        ]
        pipeline.strategies = MagicMock(return_value=strategies)
        return pipeline, fns

    def test_first_success_wins(self):
        success = ExtractionSuccess(pages=[PageText(0, "text")], method="s0")
        pipeline, fns = self._pipeline_with(success, success)
        assert pipeline.extract_pages(MagicMock(), ConversionConfig()) is success
        fns[1].assert_not_called()

    def test_falls_through_failures(self):
        success = ExtractionSuccess(pages=[PageText(0, "text")], method="s1")
        pipeline, fns = self._pipeline_with(
            ExtractionFailure(reason="no text", stage="s0"), success
        )
        assert pipeline.extract_pages(MagicMock(), ConversionConfig()) is success
        assert fns[0].call_count == 1
        assert fns[1].call_count == 1

    def test_empty_success_counts_as_failure(self):
        pipeline, _ = self._pipeline_with(ExtractionSuccess(pages=[], method="s0"))
        with pytest.raises(ExtractionError) as excinfo:
            pipeline.extract_pages(MagicMock(), ConversionConfig())
        assert excinfo.value.failures == [("s0", "no pages produced")]

    def test_all_failures_raise(self):
        pipeline, _ = self._pipeline_with(
            ExtractionFailure(reason="bad streams", stage="s0"),
            ExtractionFailure(reason="nothing readable", stage="s1"),
        )
        with pytest.raises(ExtractionError, match="bad streams.*nothing readable"):
            pipeline.extract_pages(MagicMock(), ConversionConfig())

    def test_default_strategy_names(self):
        names = [s.name for s in ConversionPipeline().strategies(ConversionConfig())]
        assert names == ["content_stream", "fallback_text"]


class TestFallbackPages:
    def test_segments_full_text_into_pages(self):
        pipeline = ConversionPipeline()
        document = MagicMock(spec=PdfDocument)
        document.full_text.return_value = "first\fsecond\fthird"
        outcome = pipeline.extract_fallback_pages(document)
        assert isinstance(outcome, ExtractionSuccess)
        assert outcome.method == "fallback_text"
        assert outcome.segmentation is SegmentationMethod.FORM_FEED
        assert [(p.index, p.text) for p in outcome.pages] == [
            (0, "first"), (1, "second"), (2, "third"),
        ]

    def test_reports_failure_when_nothing_extracted(self):
        pipeline = ConversionPipeline()
        document = MagicMock(spec=PdfDocument)
        document.full_text.return_value = ""
        document.raw_bytes = b"\x00\x01\x02"
        outcome = pipeline.extract_fallback_pages(document)
        assert isinstance(outcome, ExtractionFailure)
        assert outcome.stage == "fallback_text"


class TestProcessValidation:
    def test_missing_file(self):
        with pytest.raises(FileNotFoundError, match="File not found"):
            ConversionPipeline().process("/nonexistent/book.pdf", ConversionConfig())

    def test_invalid_pattern_rejected_before_file_access(self):
        with patch("pdf_to_ebook.pipeline.PdfDocument.load") as mock_load:
            with pytest.raises(InvalidConfigError):
                ConversionPipeline().process(
                    "/nonexistent/book.pdf", ConversionConfig(chapter_pattern="(")
                )
            mock_load.assert_not_called()


class TestProcess:
    def test_content_stream_path(self, pdf_factory):
        path = pdf_factory(_book_pages(), metadata={"title": "Fox Tales", "author": "R. Fox"})
        metadata, chapters, summary = ConversionPipeline().process(
            path, ConversionConfig(min_chapter_length=50)
        )

        assert metadata.title == "Fox Tales"
        assert metadata.author == "R. Fox"
        assert [(c.title, c.page_start, c.page_end) for c in chapters] == [
            ("Chapter 1", 0, 1),
            ("Chapter 2", 2, 2),
        ]
        assert chapters[0].content == f"{BODY}\n{BODY}\n{BODY}"
        assert summary.total_pages == 3
        assert summary.pages_extracted == 3
        assert summary.extraction_method == "content_stream"
        assert summary.segmentation_method is None
        assert summary.chapters_detected == 2
        assert summary.processing_time_seconds >= 0

    def test_fallback_path_for_unparseable_file(self, tmp_path):
        path = tmp_path / "scrambled.pdf"
        path.write_bytes(
            b"garbage \x00\x01 (It was a dark and stormy night) \x02 "
            b"(and the rain fell in torrents) <0001>"
        )
        metadata, chapters, summary = ConversionPipeline().process(
            str(path), ConversionConfig(min_chapter_length=20)
        )

        assert summary.extraction_method == "fallback_text"
        assert summary.segmentation_method is SegmentationMethod.CHARACTER_BUDGET
        assert metadata.title == "scrambled"
        assert len(chapters) == 1
        assert chapters[0].title == "Full Document"
        assert "dark and stormy night" in chapters[0].content

    def test_no_chapters_error(self, pdf_factory):
        path = pdf_factory([[text_stream("tiny")]])
        with pytest.raises(NoChaptersError) as excinfo:
            ConversionPipeline().process(path, ConversionConfig(min_chapter_length=10_000))
        assert excinfo.value.page_count == 1

    def test_max_pages_per_chapter(self, pdf_factory):
        path = pdf_factory(_book_pages())
        _, chapters, _ = ConversionPipeline().process(
            path, ConversionConfig(min_chapter_length=10, max_pages_per_chapter=1)
        )
        assert [c.title for c in chapters] == [
            "Chapter 1 (Part 1)",
            "Chapter 1 (Part 2)",
            "Chapter 2 (Part 1)",
        ]

    def test_progress_callback_is_observational(self, pdf_factory):
        path = pdf_factory(_book_pages())
        config = ConversionConfig(min_chapter_length=50)
        progress = MagicMock()

        _, quiet, _ = ConversionPipeline().process(path, config)
        _, observed, _ = ConversionPipeline(progress=progress).process(path, config)

        assert quiet == observed
        stages = {call.args[0] for call in progress.call_args_list}
        assert stages == {"content_stream", "chapter_detection"}

    def test_title_and_author_overrides(self, pdf_factory):
        path = pdf_factory(_book_pages(), metadata={"title": "Fox Tales"})
        metadata, _, _ = ConversionPipeline().process(
            path, ConversionConfig(min_chapter_length=50), title="Other", author="Me"
        )
        assert metadata.title == "Other"
        assert metadata.author == "Me"


class TestConvert:
    def test_writes_requested_format(self, pdf_factory, tmp_path):
        path = pdf_factory(_book_pages(), metadata={"title": "Fox Tales"})
        out = tmp_path / "book.txt"
        summary = ConversionPipeline().convert(
            path,
            str(out),
            ConversionConfig(min_chapter_length=50, output_format=OutputFormat.TXT),
        )

        text = out.read_text(encoding="utf-8")
        assert text.startswith("FOX TALES\n")
        assert "CHAPTER 1: CHAPTER 1" in text
        assert "CHAPTER 2: CHAPTER 2" in text
        assert summary.chapters_detected == 2

    def test_generator_receives_config_flags(self, pdf_factory, tmp_path):
        path = pdf_factory(_book_pages())
        pipeline = ConversionPipeline()
        pipeline.generator = MagicMock()
        config = ConversionConfig(
            min_chapter_length=50,
            output_format=OutputFormat.HTML,
            include_page_numbers=True,
            generate_toc=False,
        )
        pipeline.convert(path, str(tmp_path / "b.html"), config)

        args, kwargs = pipeline.generator.generate.call_args
        assert args[0] is OutputFormat.HTML
        assert len(args[2]) == 2
        assert kwargs == {"include_page_numbers": True, "generate_toc": False}
