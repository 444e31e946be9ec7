"""CLI interface for the PDF-to-ebook converter."""

from __future__ import annotations

import logging
import os

import click

from pdf_to_ebook.errors import ConversionError, InvalidConfigError
from pdf_to_ebook.models import (
    DEFAULT_CHAPTER_PATTERN,
    DEFAULT_MIN_CHAPTER_LENGTH,
    ConversionConfig,
    OutputFormat,
    PdfInfo,
    no_progress,
)


def _check_dependencies() -> list[str]:
    """Check for missing dependencies and return a list of issues."""
    issues: list[str] = []

    required_packages = {
        "fitz": "PyMuPDF",
        "ebooklib": "EbookLib",
    }
    for module_name, pip_name in required_packages.items():
        try:
            __import__(module_name)
        except ImportError:
            issues.append(
                f"Python package '{pip_name}' is not installed. "
                f"Install it with: pip install {pip_name}"
            )

    return issues


def _default_output_path(pdf_path: str, output_format: OutputFormat) -> str:
    root, _ = os.path.splitext(pdf_path)
    return f"{root}.{output_format.extension}"


class _ProgressBars:
    """Progress callback rendering one click progress bar per stage."""

    def __init__(self) -> None:
        self._bars = {}

    def __call__(self, stage: str, done: int, total: int) -> None:
        bar = self._bars.get(stage)
        if bar is None:
            label = stage.replace("_", " ").capitalize()
            bar = click.progressbar(length=total, label=label, file=click.get_text_stream("stderr"))
            bar.__enter__()
            self._bars[stage] = bar
        bar.update(done - bar.pos)
        if done >= total:
            bar.__exit__(None, None, None)
            del self._bars[stage]


@click.group()
def cli() -> None:
    """PDF-to-Ebook Converter: turn PDFs into chaptered EPUB, HTML or text."""


@cli.command()
@click.argument("pdf_path", type=click.Path(exists=False))
@click.option("-o", "--output", "output_path", default=None, type=click.Path(), help="Output file path. Defaults to the input path with the format's extension.")
@click.option("-f", "--format", "output_format", default="epub", type=click.Choice([f.value for f in OutputFormat]), show_default=True, help="Output format.")
@click.option("-t", "--title", default=None, help="Book title (read from PDF metadata if omitted).")
@click.option("-a", "--author", default=None, help="Book author (read from PDF metadata if omitted).")
@click.option("--chapter-pattern", default=DEFAULT_CHAPTER_PATTERN, show_default=True, help="Chapter heading regular expression.")
@click.option("--min-chapter-length", default=DEFAULT_MIN_CHAPTER_LENGTH, type=int, show_default=True, help="Minimum chapter length in characters.")
@click.option("--max-pages-per-chapter", default=0, type=int, show_default=True, help="Maximum pages per chapter (0 for no limit).")
@click.option("--include-page-numbers", is_flag=True, default=False, help="Include page ranges in the output.")
@click.option("--clean-text/--no-clean-text", default=True, show_default=True, help="Normalise whitespace in extracted text.")
@click.option("--toc/--no-toc", "generate_toc", default=True, show_default=True, help="Generate a table of contents.")
@click.option("-v", "--verbose", is_flag=True, default=False, help="Enable detailed progress logging.")
def convert(
    pdf_path: str,
    output_path: str | None,
    output_format: str,
    title: str | None,
    author: str | None,
    chapter_pattern: str,
    min_chapter_length: int,
    max_pages_per_chapter: int,
    include_page_numbers: bool,
    clean_text: bool,
    generate_toc: bool,
    verbose: bool,
) -> None:
    """Convert a PDF file to a chaptered ebook.

    PDF_PATH is the path to the PDF file to convert.
    """
    # Check dependencies first
    issues = _check_dependencies()
    if issues:
        for issue in issues:
            click.echo(issue, err=True)
        raise SystemExit(1)

    config = ConversionConfig(
        chapter_pattern=chapter_pattern,
        min_chapter_length=min_chapter_length,
        max_pages_per_chapter=max_pages_per_chapter,
        clean_text=clean_text,
        output_format=OutputFormat(output_format),
        include_page_numbers=include_page_numbers,
        generate_toc=generate_toc,
        verbose=verbose,
    )

    # Reject bad settings before any work on the file
    try:
        config.detection_config()
    except InvalidConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1)

    if not os.path.exists(pdf_path):
        click.echo(f"Error: File not found: {pdf_path}", err=True)
        raise SystemExit(1)

    if verbose:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    from pdf_to_ebook.pipeline import ConversionPipeline

    output_path = output_path or _default_output_path(pdf_path, config.output_format)
    pipeline = ConversionPipeline(progress=_ProgressBars() if verbose else no_progress)

    click.echo(f"Processing: {pdf_path}", err=True)
    try:
        summary = pipeline.convert(pdf_path, output_path, config, title=title, author=author)
    except ConversionError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1)

    click.echo(f"Output written to {output_path}", err=True)

    segmentation = summary.segmentation_method.value if summary.segmentation_method else "none"
    click.echo(
        f"\nProcessing summary:\n"
        f"  Total pages:       {summary.total_pages}\n"
        f"  Pages extracted:   {summary.pages_extracted}\n"
        f"  Extraction method: {summary.extraction_method}\n"
        f"  Segmentation:      {segmentation}\n"
        f"  Chapters:          {summary.chapters_detected}\n"
        f"  Format:            {config.output_format.value}\n"
        f"  Processing time:   {summary.processing_time_seconds:.2f}s\n"
        f"  Warnings:          {len(summary.warnings)}",
        err=True,
    )
    if summary.warnings:
        for w in summary.warnings:
            click.echo(f"  - {w}", err=True)


@cli.command()
@click.argument("pdf_path", type=click.Path(exists=False))
def info(pdf_path: str) -> None:
    """Show the information dictionary of a PDF file."""
    from pdf_to_ebook.document_loader import read_pdf_info

    try:
        pdf_info = read_pdf_info(pdf_path)
    except (FileNotFoundError, RuntimeError) as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1)

    fields = [
        ("Title", pdf_info.title),
        ("Author", pdf_info.author),
        ("Creator", pdf_info.creator),
        ("Producer", pdf_info.producer),
        ("Creation Date", pdf_info.creation_date),
        ("Modification Date", pdf_info.modification_date),
    ]
    for label, value in fields:
        click.echo(f"{label}: {value or 'Unknown'}")


@cli.command("set-info")
@click.argument("pdf_path", type=click.Path(exists=False))
@click.option("-o", "--output", "output_path", default=None, type=click.Path(), help="Output file path. Defaults to set_info.pdf beside the input.")
@click.option("--title", default=None, help="Sets the Title field.")
@click.option("--author", default=None, help="Sets the Author field.")
@click.option("--creator", default=None, help="Sets the Creator field.")
@click.option("--producer", default=None, help="Sets the Producer field.")
@click.option("--creation-date", default=None, help="Sets the CreationDate field.")
@click.option("--modification-date", default=None, help="Sets the ModDate field.")
def set_info(
    pdf_path: str,
    output_path: str | None,
    title: str | None,
    author: str | None,
    creator: str | None,
    producer: str | None,
    creation_date: str | None,
    modification_date: str | None,
) -> None:
    """Write a copy of a PDF with updated information fields."""
    from pdf_to_ebook.document_loader import write_pdf_info

    updates = PdfInfo(
        title=title,
        author=author,
        creator=creator,
        producer=producer,
        creation_date=creation_date,
        modification_date=modification_date,
    )
    output_path = output_path or os.path.join(os.path.dirname(pdf_path), "set_info.pdf")

    try:
        write_pdf_info(pdf_path, output_path, updates)
    except (FileNotFoundError, RuntimeError) as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1)

    click.echo(f"Output written to {output_path}", err=True)


@cli.command("epub-info")
@click.argument("epub_path", type=click.Path(exists=False))
@click.option("--rename", is_flag=True, default=False, help="Rename the file to '<title> - <author>.epub'.")
def epub_info(epub_path: str, rename: bool) -> None:
    """Show the metadata of an EPUB file."""
    from pdf_to_ebook.epub_info import read_epub_info, rename_epub

    if not os.path.exists(epub_path):
        click.echo(f"Error: File not found: {epub_path}", err=True)
        raise SystemExit(1)

    try:
        details = read_epub_info(epub_path)
    except Exception as exc:
        click.echo(f"Error: Not a valid EPUB: {epub_path} ({exc})", err=True)
        raise SystemExit(1)

    click.echo(f"Title: {details.title}")
    click.echo(f"Author: {details.author}")
    click.echo(f"Language: {details.language}")
    click.echo(f"Identifier: {details.identifier}")

    if rename:
        new_path = rename_epub(epub_path, details)
        click.echo(f"Renamed file to: {new_path}")
