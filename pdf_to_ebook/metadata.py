"""Book metadata derived from the PDF information dictionary."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path

from pdf_to_ebook.document_loader import PdfDocument
from pdf_to_ebook.models import BookMetadata

logger = logging.getLogger(__name__)

UNKNOWN_AUTHOR = "Unknown Author"


def extract_metadata(
    document: PdfDocument,
    title: str | None = None,
    author: str | None = None,
) -> BookMetadata:
    """Build book metadata for *document*.

    The title defaults to the file stem and the author to
    ``"Unknown Author"`` when the information dictionary lacks them (or the
    PDF structure could not be parsed). Explicit *title* / *author* values
    win over both.
    """
    metadata = BookMetadata(
        title=Path(document.path).stem,
        author=UNKNOWN_AUTHOR,
        creation_date=datetime.now(timezone.utc),
    )

    if document.is_open:
        info = document.info()
        if info.title:
            metadata.title = info.title
        if info.author:
            metadata.author = info.author
        metadata.subject = info.subject
        metadata.creator = info.creator
    else:
        logger.warning("PDF information dictionary unavailable; using defaults")

    if title:
        metadata.title = title
    if author:
        metadata.author = author

    return metadata
