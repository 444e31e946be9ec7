"""Whole-document text extraction used when page-level parsing fails.

Two sub-strategies, tried in order: PyMuPDF's own full-text extraction, then
a scan of the raw file bytes for string literals that look like text.
"""

from __future__ import annotations

import logging
import re

from pdf_to_ebook.document_loader import PdfDocument

logger = logging.getLogger(__name__)

# Fraction of characters that must look like prose for a span to be kept.
_READABLE_RATIO = 0.7
_READABLE_PUNCTUATION = set(".,!?;:\"'()-")

_LITERAL_RE = re.compile(r"\(([^)]*)\)")
_HEX_LITERAL_RE = re.compile(r"<([0-9A-Fa-f\s]+)>")

# Graphic ASCII plus ASCII whitespace.
_PRINTABLE_BYTES = frozenset(range(0x21, 0x7F)) | frozenset(b" \t\n\x0c\r")


def is_likely_readable_text(text: str) -> bool:
    """Return True if *text* looks like human-readable prose.

    A span qualifies when it has at least two characters and more than 70%
    of them are ASCII alphanumerics, whitespace or common punctuation.
    """
    if len(text) < 2:
        return False

    readable = sum(
        1
        for ch in text
        if (ch.isascii() and ch.isalnum())
        or ch.isspace()
        or ch in _READABLE_PUNCTUATION
    )
    return readable / len(text) > _READABLE_RATIO


def decode_hex_string(hex_str: str) -> str:
    """Decode a hex literal body pair by pair, keeping printable bytes only.

    Whitespace inside the literal is ignored and a trailing odd digit is
    dropped.
    """
    digits = re.sub(r"\s+", "", hex_str)
    chars: list[str] = []
    for pos in range(0, len(digits) - 1, 2):
        try:
            value = int(digits[pos:pos + 2], 16)
        except ValueError:
            continue
        if value in _PRINTABLE_BYTES:
            chars.append(chr(value))
    return "".join(chars)


class RawTextExtractor:
    """Full-text extraction for documents without usable page structure."""

    def extract_full_text(self, document: PdfDocument) -> str:
        """Return the best available text of the whole document.

        Raises:
            RuntimeError: If neither sub-strategy produced any text.
        """
        try:
            full_text = document.full_text()
        except Exception as exc:
            logger.warning("Full-text extraction failed: %s", exc)
        else:
            if full_text.strip():
                logger.info("Extracted text using PyMuPDF full-text extraction")
                return full_text
            logger.info("PyMuPDF full-text extraction returned no text")

        text = self.extract_raw_text(document.raw_bytes)
        if text.strip():
            logger.info("Extracted text using raw content parsing")
            return text

        raise RuntimeError("All fallback extraction methods failed")

    def extract_raw_text(self, pdf_bytes: bytes) -> str:
        """Scan raw PDF bytes for readable string literals.

        Parenthesised literals are collected first, then hex literals; each
        accepted span is followed by a single space.
        """
        pdf_string = pdf_bytes.decode("latin-1")
        parts: list[str] = []

        for match in _LITERAL_RE.finditer(pdf_string):
            candidate = match.group(1)
            if is_likely_readable_text(candidate):
                parts.append(candidate + " ")

        for match in _HEX_LITERAL_RE.finditer(pdf_string):
            decoded = decode_hex_string(match.group(1))
            if is_likely_readable_text(decoded):
                parts.append(decoded + " ")

        return "".join(parts)
