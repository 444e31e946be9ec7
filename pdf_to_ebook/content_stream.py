"""Text extraction from PDF page content streams.

A small lexer turns a decompressed content stream into operand and operator
tokens. The extractor walks those tokens and collects the string operands of
the show-text operators found inside ``BT`` ... ``ET`` text blocks.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator
from dataclasses import dataclass

from pdf_to_ebook.document_loader import PdfDocument
from pdf_to_ebook.models import (
    ExtractionFailure,
    ExtractionOutcome,
    ExtractionSuccess,
    PageText,
    ProgressCallback,
    no_progress,
)

logger = logging.getLogger(__name__)

STAGE = "content_stream"

_WHITESPACE = b"\x00\t\n\x0c\r "
_DELIMITERS = b"()<>[]{}/%"

_NUMBER_RE = re.compile(rb"[+-]?(?:\d+\.?\d*|\.\d+)")
_NON_HEX_RE = re.compile(rb"[^0-9A-Fa-f]")
_INLINE_IMAGE_END_RE = re.compile(rb"\sEI(?=[\s/\[<(]|$)")

_SIMPLE_ESCAPES = {
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "b": "\b",
    "f": "\f",
    "(": "(",
    ")": ")",
    "\\": "\\",
}
_ESCAPE_RE = re.compile(
    r"\\(?:([nrtbf()\\])|([0-7]{1,3})|(\r\n|\r|\n)|(.)|$)", re.DOTALL
)

# TJ adjustments are in thousandths of a text space unit; a negative
# adjustment wider than this reads as a word gap.
_WORD_GAP = 250

# Runs whose baselines differ by no more than this share a line.
_BASELINE_TOLERANCE = 0.5


@dataclass
class Token:
    """A lexical token of a content stream."""

    kind: str  # string, number, name, operator, array_start, array_end, dict_start, dict_end
    value: str | float | None = None


def _unescape_match(match: re.Match[str]) -> str:
    simple, octal, _continuation, other = match.groups()
    if simple:
        return _SIMPLE_ESCAPES[simple]
    if octal:
        return chr(int(octal, 8) & 0xFF)
    if other:
        # Unknown escape: the backslash is dropped.
        return other
    return ""


def unescape_literal(text: str) -> str:
    """Decode the backslash escapes of a PDF literal string body.

    Handles ``\\(``, ``\\)``, ``\\\\``, ``\\n``, ``\\r``, ``\\t``, ``\\b``,
    ``\\f``, octal escapes of up to three digits and line continuations.
    """
    return _ESCAPE_RE.sub(_unescape_match, text)


def _decode_string_bytes(raw: bytes) -> str:
    if raw.startswith(b"\xfe\xff"):
        return raw[2:].decode("utf-16-be", errors="replace")
    return raw.decode("latin-1")


def _decode_hex_operand(body: bytes) -> str:
    digits = _NON_HEX_RE.sub(b"", body)
    if len(digits) % 2:
        digits += b"0"
    return _decode_string_bytes(bytes.fromhex(digits.decode("ascii")))


def _find_literal_end(data: bytes, i: int) -> int:
    """Index of the parenthesis closing the literal that starts at *i*."""
    depth = 1
    n = len(data)
    while i < n:
        c = data[i]
        if c == 0x5C:  # backslash escapes the next byte
            i += 2
            continue
        if c == 0x28:
            depth += 1
        elif c == 0x29:
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return n


def _scan_regular(data: bytes, i: int) -> int:
    n = len(data)
    while i < n and data[i] not in _WHITESPACE and data[i] not in _DELIMITERS:
        i += 1
    return i


def tokenize(data: bytes) -> Iterator[Token]:
    """Yield the tokens of a content stream.

    Inline image data (between ``ID`` and ``EI``) is skipped, comments are
    dropped and stray closing delimiters are ignored.
    """
    i = 0
    n = len(data)
    while i < n:
        c = data[i]
        if c in _WHITESPACE:
            i += 1
        elif c == 0x25:  # % comment
            while i < n and data[i] not in b"\r\n":
                i += 1
        elif c == 0x28:  # (
            end = _find_literal_end(data, i + 1)
            body = data[i + 1:end].decode("latin-1")
            raw = unescape_literal(body).encode("latin-1")
            yield Token("string", _decode_string_bytes(raw))
            i = end + 1
        elif c == 0x3C:  # <
            if data[i + 1:i + 2] == b"<":
                yield Token("dict_start")
                i += 2
            else:
                end = data.find(b">", i + 1)
                if end == -1:
                    end = n
                yield Token("string", _decode_hex_operand(data[i + 1:end]))
                i = end + 1
        elif c == 0x3E:  # >
            if data[i + 1:i + 2] == b">":
                yield Token("dict_end")
                i += 2
            else:
                i += 1
        elif c == 0x5B:
            yield Token("array_start")
            i += 1
        elif c == 0x5D:
            yield Token("array_end")
            i += 1
        elif c == 0x2F:  # /Name
            end = _scan_regular(data, i + 1)
            yield Token("name", data[i + 1:end].decode("latin-1"))
            i = end
        elif c in b"{})":
            i += 1
        else:
            end = _scan_regular(data, i)
            word = data[i:end]
            i = end
            if _NUMBER_RE.fullmatch(word):
                yield Token("number", float(word.decode("ascii")))
                continue
            operator = word.decode("latin-1")
            yield Token("operator", operator)
            if operator == "ID":
                match = _INLINE_IMAGE_END_RE.search(data, i)
                i = match.end() if match else n


def _printable(text: str) -> str:
    return "".join(ch for ch in text if ch.isprintable() or ch in "\n\r\t")


def _last_string(operands: list) -> str | None:
    for operand in reversed(operands):
        if isinstance(operand, Token) and operand.kind == "string":
            return operand.value
    return None


def _last_array(operands: list) -> list | None:
    for operand in reversed(operands):
        if isinstance(operand, list):
            return operand
    return None


def _numbers(operands: list) -> list[float]:
    return [
        op.value for op in operands
        if isinstance(op, Token) and op.kind == "number"
    ]


def _join_tj_array(items: list) -> str:
    parts: list[str] = []
    for item in items:
        if not isinstance(item, Token):
            continue
        if item.kind == "string":
            parts.append(item.value)
        elif (
            item.kind == "number"
            and item.value < -_WORD_GAP
            and parts
            and not parts[-1].endswith(" ")
        ):
            parts.append(" ")
    return "".join(parts)


class _TextCollector:
    """Accumulates shown strings into space-joined lines.

    A shown run whose baseline differs from the baseline of the current
    line starts a new line. The baseline survives ``ET``/``BT``, so runs
    placed on one baseline from separate text blocks still join.
    """

    def __init__(self) -> None:
        self._lines: list[str] = []
        self._current: list[str] = []
        self._baseline: float | None = None

    def show(self, text: str | None, baseline: float) -> None:
        if text is None:
            return
        cleaned = _printable(text).strip()
        if not cleaned:
            return
        if (
            self._baseline is not None
            and abs(baseline - self._baseline) > _BASELINE_TOLERANCE
        ):
            self.newline()
        self._baseline = baseline
        self._current.append(cleaned)

    def newline(self) -> None:
        if self._current:
            self._lines.append(" ".join(self._current))
            self._current = []

    def text(self) -> str:
        self.newline()
        return "\n".join(self._lines)


class ContentStreamExtractor:
    """Extract per-page text by parsing page content streams."""

    def extract_text(self, content: bytes) -> str:
        """Extract the text shown inside the text blocks of *content*.

        Recognises ``(string) Tj``, ``[...] TJ`` and the quote operators.
        ``T*`` and the quote operators always start a new line. Otherwise a
        run starts a new line only when ``Tm``, ``Td`` or ``TD`` moved the
        baseline away from the previous run's.
        """
        collector = _TextCollector()
        operands: list = []
        arrays: list[list] = []
        in_text = False
        # Text line matrix [a b c d e f] and leading.
        matrix = [1.0, 0.0, 0.0, 1.0, 0.0, 0.0]
        leading = 0.0

        def move(tx: float, ty: float) -> None:
            a, b, c, d, e, f = matrix
            matrix[4] = tx * a + ty * c + e
            matrix[5] = tx * b + ty * d + f

        def next_line() -> None:
            move(0.0, -leading)
            collector.newline()

        for token in tokenize(content):
            if token.kind == "array_start":
                arrays.append([])
                continue
            if token.kind == "array_end":
                if arrays:
                    finished = arrays.pop()
                    (arrays[-1] if arrays else operands).append(finished)
                continue
            if token.kind in ("dict_start", "dict_end"):
                continue
            if token.kind != "operator":
                (arrays[-1] if arrays else operands).append(token)
                continue

            operator = token.value
            arrays.clear()

            if operator == "BT":
                in_text = True
                matrix[:] = [1.0, 0.0, 0.0, 1.0, 0.0, 0.0]
            elif operator == "ET":
                in_text = False
            elif operator == "TL":
                numbers = _numbers(operands)
                if numbers:
                    leading = numbers[-1]
            elif in_text:
                if operator == "Tj":
                    collector.show(_last_string(operands), matrix[5])
                elif operator == "TJ":
                    array = _last_array(operands)
                    if array is not None:
                        collector.show(_join_tj_array(array), matrix[5])
                elif operator in ("'", '"'):
                    next_line()
                    collector.show(_last_string(operands), matrix[5])
                elif operator == "T*":
                    next_line()
                elif operator == "Tm":
                    numbers = _numbers(operands)
                    if len(numbers) >= 6:
                        matrix[:] = numbers[-6:]
                elif operator in ("Td", "TD"):
                    numbers = _numbers(operands)
                    if len(numbers) >= 2:
                        tx, ty = numbers[-2:]
                        move(tx, ty)
                        if operator == "TD":
                            leading = -ty

            operands = []

        return collector.text()

    def extract_page_text(self, document: PdfDocument, index: int) -> str:
        """Text of page *index*, falling back to its annotation contents."""
        streams = document.page_content_streams(index)
        text = self.extract_text(b"\n".join(streams))

        if not text.strip():
            try:
                text = "\n".join(document.page_annotation_contents(index))
            except Exception as exc:
                logger.debug("Page %d: annotation lookup failed: %s", index + 1, exc)
                text = ""

        return text

    def extract_pages(
        self,
        document: PdfDocument,
        progress: ProgressCallback = no_progress,
        verbose: bool = False,
    ) -> ExtractionOutcome:
        """Extract every page of *document* in page order.

        A page that fails to decode, or has no text, is replaced by a
        placeholder and extraction moves on. The whole stage fails only when
        the document is unreadable, has no pages, or no page yields text.
        """
        if not document.is_open:
            return ExtractionFailure(
                reason=f"Failed to load PDF: {document.load_error}", stage=STAGE
            )

        page_count = document.page_count
        if page_count == 0:
            return ExtractionFailure(reason="PDF contains no pages", stage=STAGE)

        logger.info("Found %d pages in PDF", page_count)

        pages: list[PageText] = []
        warnings: list[str] = []
        pages_failed = 0
        pages_with_text = 0

        for index in range(page_count):
            try:
                text = self.extract_page_text(document, index)
            except Exception as exc:
                pages_failed += 1
                warn_msg = f"Failed to extract text from page {index + 1}: {exc}"
                warnings.append(warn_msg)
                logger.warning(warn_msg)
                text = f"[Page {index + 1} - Text extraction failed: {exc}]"
            else:
                if text.strip():
                    pages_with_text += 1
                else:
                    text = f"[Page {index + 1} - No extractable text]"

            if verbose:
                logger.info("Page %d: %d characters extracted", index + 1, len(text))

            pages.append(PageText(index=index, text=text))
            progress(STAGE, index + 1, page_count)

        if pages_failed == page_count:
            return ExtractionFailure(
                reason=f"Content stream decoding failed for all {page_count} pages",
                stage=STAGE,
            )
        if pages_with_text == 0:
            return ExtractionFailure(
                reason=f"No extractable text on any of {page_count} pages",
                stage=STAGE,
            )

        return ExtractionSuccess(pages=pages, method=STAGE, warnings=warnings)
