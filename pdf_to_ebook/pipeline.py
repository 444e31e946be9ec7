"""Conversion pipeline orchestrating extraction, segmentation and chapters."""

from __future__ import annotations

import logging
import os
import time
from collections.abc import Callable
from dataclasses import dataclass

from pdf_to_ebook.chapter_detector import ChapterDetector
from pdf_to_ebook.content_stream import ContentStreamExtractor
from pdf_to_ebook.document_loader import PdfDocument
from pdf_to_ebook.ebook_generator import EbookGenerator
from pdf_to_ebook.errors import ExtractionError, NoChaptersError
from pdf_to_ebook.metadata import extract_metadata
from pdf_to_ebook.models import (
    BookMetadata,
    Chapter,
    ConversionConfig,
    ConversionSummary,
    ExtractionFailure,
    ExtractionOutcome,
    ExtractionSuccess,
    PageText,
    ProgressCallback,
    no_progress,
)
from pdf_to_ebook.page_segmenter import PageSegmenter
from pdf_to_ebook.raw_extractor import RawTextExtractor

logger = logging.getLogger(__name__)

FALLBACK_STAGE = "fallback_text"


@dataclass
class ExtractionStrategy:
    """One step of the extraction fallback chain."""

    name: str
    fn: Callable[[PdfDocument], ExtractionOutcome]
    description: str


class ConversionPipeline:
    """Orchestrates the full PDF-to-chapters pipeline.

    Wires together ContentStreamExtractor, RawTextExtractor, PageSegmenter
    and ChapterDetector. Extraction strategies run in order until one
    yields pages; each runs at most once per conversion.
    """

    def __init__(self, progress: ProgressCallback = no_progress) -> None:
        self.content_extractor = ContentStreamExtractor()
        self.raw_extractor = RawTextExtractor()
        self.segmenter = PageSegmenter()
        self.generator = EbookGenerator()
        self.progress = progress

    def strategies(self, config: ConversionConfig) -> list[ExtractionStrategy]:
        return [
            ExtractionStrategy(
                name="content_stream",
                fn=lambda document: self.content_extractor.extract_pages(
                    document, progress=self.progress, verbose=config.verbose
                ),
                description="page-level content stream parsing",
            ),
            ExtractionStrategy(
                name=FALLBACK_STAGE,
                fn=self.extract_fallback_pages,
                description="full-text extraction with page segmentation",
            ),
        ]

    def extract_fallback_pages(self, document: PdfDocument) -> ExtractionOutcome:
        """Extract the whole text at once and segment it into synthetic pages."""
        try:
            full_text = self.raw_extractor.extract_full_text(document)
        except RuntimeError as exc:
            return ExtractionFailure(reason=str(exc), stage=FALLBACK_STAGE)

        segments, method = self.segmenter.segment(full_text)
        if not segments:
            return ExtractionFailure(
                reason="Segmentation produced no pages", stage=FALLBACK_STAGE
            )

        pages = [PageText(index=i, text=segment) for i, segment in enumerate(segments)]
        return ExtractionSuccess(pages=pages, method=FALLBACK_STAGE, segmentation=method)

    def extract_pages(
        self, document: PdfDocument, config: ConversionConfig
    ) -> ExtractionSuccess:
        """Run the extraction strategies in order and return the first success.

        Raises:
            ExtractionError: If every strategy failed.
        """
        failures: list[tuple[str, str]] = []

        for strategy in self.strategies(config):
            if config.verbose:
                logger.info("Trying %s", strategy.description)

            outcome = strategy.fn(document)
            if outcome.ok:
                logger.info(
                    "Extracted %d pages using %s", len(outcome.pages), strategy.description
                )
                return outcome

            reason = (
                outcome.reason
                if isinstance(outcome, ExtractionFailure)
                else "no pages produced"
            )
            failures.append((strategy.name, reason))
            logger.warning("%s failed: %s", strategy.description.capitalize(), reason)

        raise ExtractionError(failures)

    def process(
        self,
        pdf_path: str,
        config: ConversionConfig,
        title: str | None = None,
        author: str | None = None,
    ) -> tuple[BookMetadata, list[Chapter], ConversionSummary]:
        """Extract metadata and chapters from a PDF file.

        Args:
            pdf_path: Path to the PDF file.
            config: Conversion configuration.
            title: Optional title overriding the PDF metadata.
            author: Optional author overriding the PDF metadata.

        Returns:
            A tuple of (BookMetadata, chapters, ConversionSummary).

        Raises:
            InvalidConfigError: If the configuration is invalid.
            FileNotFoundError: If the file does not exist.
            ExtractionError: If no text could be extracted.
            NoChaptersError: If no chapter met the minimum length.
        """
        start_time = time.monotonic()

        # Validate configuration before touching the file
        detection_config = config.detection_config()

        if not os.path.exists(pdf_path):
            raise FileNotFoundError(f"File not found: {pdf_path}")

        with PdfDocument.load(pdf_path) as document:
            metadata = extract_metadata(document, title=title, author=author)
            total_pages = document.page_count if document.is_open else 0
            extraction = self.extract_pages(document, config)

        warnings = list(extraction.warnings)
        if extraction.segmentation is not None:
            logger.info(
                "Page boundaries reconstructed using %s", extraction.segmentation.value
            )

        detector = ChapterDetector(detection_config, progress=self.progress)
        chapters = detector.detect(extraction.pages)
        if not chapters:
            raise NoChaptersError(
                page_count=len(extraction.pages),
                min_chapter_length=detection_config.min_chapter_length,
            )

        summary = ConversionSummary(
            total_pages=total_pages,
            pages_extracted=len(extraction.pages),
            extraction_method=extraction.method,
            segmentation_method=extraction.segmentation,
            chapters_detected=len(chapters),
            warnings=warnings,
            processing_time_seconds=time.monotonic() - start_time,
        )

        if warnings:
            logger.warning("Processing completed with %d warning(s):", len(warnings))
            for w in warnings:
                logger.warning("  %s", w)

        return metadata, chapters, summary

    def convert(
        self,
        pdf_path: str,
        output_path: str,
        config: ConversionConfig,
        title: str | None = None,
        author: str | None = None,
    ) -> ConversionSummary:
        """Convert *pdf_path* into an ebook written to *output_path*."""
        metadata, chapters, summary = self.process(
            pdf_path, config, title=title, author=author
        )
        self.generator.generate(
            config.output_format,
            metadata,
            chapters,
            output_path,
            include_page_numbers=config.include_page_numbers,
            generate_toc=config.generate_toc,
        )
        return summary
