#!/usr/bin/env python3
"""Example usage of the PDF-to-Ebook Converter library."""

from pdf_to_ebook.models import ConversionConfig, OutputFormat
from pdf_to_ebook.pipeline import ConversionPipeline


def convert_pdf_to_epub(pdf_path: str, output_path: str) -> None:
    """Convert a PDF file to an EPUB with one entry per chapter."""
    # Configure conversion
    config = ConversionConfig(
        min_chapter_length=300,
        max_pages_per_chapter=30,
        include_page_numbers=True,
        verbose=True,
    )

    # Extract, detect chapters and write the ebook
    pipeline = ConversionPipeline()
    summary = pipeline.convert(pdf_path, output_path, config)

    # Print summary
    print(f"\nProcessing Summary:")
    print(f"  Total pages: {summary.total_pages}")
    print(f"  Pages extracted: {summary.pages_extracted} ({summary.extraction_method})")
    print(f"  Chapters: {summary.chapters_detected}")
    print(f"  Time: {summary.processing_time_seconds:.2f}s")
    print(f"  Warnings: {len(summary.warnings)}")


def list_chapters(pdf_path: str, chapter_pattern: str) -> None:
    """Print the chapters detected with a custom heading pattern."""
    config = ConversionConfig(
        chapter_pattern=chapter_pattern,
        min_chapter_length=100,
        output_format=OutputFormat.TXT,
    )

    metadata, chapters, _ = ConversionPipeline().process(pdf_path, config)

    print(f"\n{metadata.title} by {metadata.author}")
    print("=" * 60)
    for i, chapter in enumerate(chapters, 1):
        print(
            f"{i:3d}. {chapter.title} "
            f"(pages {chapter.display_page_start}-{chapter.display_page_end}, "
            f"{len(chapter.content)} chars)"
        )


def main():
    """Example usage."""
    # Example 1: Convert PDF to EPUB
    print("Example 1: Converting PDF to EPUB...")
    # convert_pdf_to_epub("input.pdf", "output.epub")

    # Example 2: List chapters found with a custom pattern
    print("\nExample 2: Listing chapters...")
    # list_chapters("input.pdf", r"(?i)^(part|book)\s+[IVX]+")

    print("\nUncomment the function calls above and provide PDF paths to run.")


if __name__ == "__main__":
    main()
