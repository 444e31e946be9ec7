"""PDF document loader backed by PyMuPDF.

Exposes just what the extraction pipeline consumes: page count, each page's
decompressed content streams and annotation contents, the raw file bytes,
the information dictionary and a best-effort full-text extraction.
"""

from __future__ import annotations

import logging
import os

import fitz  # PyMuPDF

from pdf_to_ebook.models import PdfInfo

logger = logging.getLogger(__name__)

# Keys of PyMuPDF's ``Document.metadata`` mapping, by PdfInfo field.
_INFO_KEYS = {
    "title": "title",
    "author": "author",
    "subject": "subject",
    "creator": "creator",
    "producer": "producer",
    "creation_date": "creationDate",
    "modification_date": "modDate",
}

# Keys accepted by ``Document.set_metadata``.
_WRITABLE_KEYS = (
    "title",
    "author",
    "subject",
    "keywords",
    "creator",
    "producer",
    "creationDate",
    "modDate",
    "trapped",
)


class PdfDocument:
    """Read-only handle over a loaded PDF.

    The raw bytes are always available. The parsed object graph is only
    available when PyMuPDF could open the file; otherwise ``load_error``
    explains why and the structured accessors raise ``RuntimeError``.
    """

    def __init__(
        self,
        path: str,
        raw_bytes: bytes,
        doc: fitz.Document | None,
        load_error: str | None = None,
    ) -> None:
        self.path = path
        self.raw_bytes = raw_bytes
        self._doc = doc
        self.load_error = load_error

    @classmethod
    def load(cls, pdf_path: str) -> PdfDocument:
        """Read *pdf_path* into memory and try to parse it.

        Raises:
            FileNotFoundError: If the file does not exist.
        """
        if not os.path.exists(pdf_path):
            raise FileNotFoundError(f"File not found: {pdf_path}")

        with open(pdf_path, "rb") as f:
            raw_bytes = f.read()

        try:
            doc = fitz.open(stream=raw_bytes, filetype="pdf")
        except Exception as exc:
            logger.warning("Failed to parse PDF structure of %s: %s", pdf_path, exc)
            return cls(pdf_path, raw_bytes, None, load_error=str(exc) or type(exc).__name__)

        return cls(pdf_path, raw_bytes, doc)

    def __enter__(self) -> PdfDocument:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        if self._doc is not None:
            self._doc.close()
            self._doc = None

    @property
    def is_open(self) -> bool:
        return self._doc is not None

    def _require_doc(self) -> fitz.Document:
        if self._doc is None:
            raise RuntimeError(
                f"PDF structure unavailable for {self.path}: {self.load_error or 'closed'}"
            )
        return self._doc

    @property
    def page_count(self) -> int:
        return len(self._require_doc())

    def page_content_streams(self, index: int) -> list[bytes]:
        """Return the decompressed content streams of page *index*, in order.

        A page whose ``/Contents`` is a single stream yields one entry, an
        array of streams yields one entry per element.
        """
        doc = self._require_doc()
        page = doc.load_page(index)
        streams: list[bytes] = []
        for xref in page.get_contents():
            data = doc.xref_stream(xref)
            if data is None:
                raise RuntimeError(f"Content object {xref} is not a stream")
            streams.append(data)
        return streams

    def page_annotation_contents(self, index: int) -> list[str]:
        """Return the non-empty ``/Contents`` strings of page annotations."""
        page = self._require_doc().load_page(index)
        contents: list[str] = []
        for annot in page.annots() or []:
            text = (annot.info or {}).get("content", "")
            if text and text.strip():
                contents.append(text)
        return contents

    def full_text(self) -> str:
        """Plain text of the whole document, pages separated by form feeds."""
        doc = self._require_doc()
        return "\f".join(page.get_text("text") for page in doc)

    def info(self) -> PdfInfo:
        """Read the document information dictionary."""
        metadata = self._require_doc().metadata or {}
        values = {}
        for field_name, key in _INFO_KEYS.items():
            value = metadata.get(key)
            values[field_name] = value if value else None
        return PdfInfo(**values)


def read_pdf_info(pdf_path: str) -> PdfInfo:
    """Open *pdf_path* and return its information dictionary.

    Raises:
        FileNotFoundError: If the file does not exist.
        RuntimeError: If the file is not a valid PDF.
    """
    with PdfDocument.load(pdf_path) as document:
        if not document.is_open:
            raise RuntimeError(f"Not a valid PDF: {pdf_path}")
        return document.info()


def write_pdf_info(pdf_path: str, output_path: str, updates: PdfInfo) -> None:
    """Write a copy of *pdf_path* to *output_path* with updated info fields.

    Only the fields set on *updates* are changed; the rest are preserved.

    Raises:
        FileNotFoundError: If the file does not exist.
        RuntimeError: If the file is not a valid PDF.
    """
    if not os.path.exists(pdf_path):
        raise FileNotFoundError(f"File not found: {pdf_path}")

    try:
        doc = fitz.open(pdf_path)
    except Exception as exc:
        raise RuntimeError(f"Not a valid PDF: {pdf_path}") from exc

    try:
        current = doc.metadata or {}
        metadata = {
            key: current[key] for key in _WRITABLE_KEYS if current.get(key)
        }
        for field_name, key in _INFO_KEYS.items():
            value = getattr(updates, field_name)
            if value is not None:
                metadata[key] = value
        doc.set_metadata(metadata)
        doc.save(output_path)
    finally:
        doc.close()
