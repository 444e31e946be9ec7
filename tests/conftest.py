"""Shared fixtures: small PDFs with hand-written content streams."""

from __future__ import annotations

import fitz
import pytest


def build_pdf(
    path: str,
    pages: list[list[bytes]],
    metadata: dict | None = None,
) -> str:
    """Write a PDF whose page *i* has the content streams ``pages[i]``.

    A page given an empty list gets no ``/Contents`` at all.
    """
    doc = fitz.open()
    for streams in pages:
        page = doc.new_page(width=612, height=792)
        xrefs = []
        for data in streams:
            xref = doc.get_new_xref()
            doc.update_object(xref, "<<>>")
            doc.update_stream(xref, data)
            xrefs.append(xref)
        if xrefs:
            refs = " ".join(f"{xref} 0 R" for xref in xrefs)
            doc.xref_set_key(page.xref, "Contents", f"[{refs}]")
    if metadata:
        doc.set_metadata(metadata)
    doc.save(path)
    doc.close()
    return path


def text_stream(*lines: str) -> bytes:
    """A content stream showing each of *lines* on its own line."""
    ops = ["BT", "/F1 12 Tf", "72 720 Td"]
    for i, line in enumerate(lines):
        if i:
            ops.append("0 -14 Td")
        escaped = line.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")
        ops.append(f"({escaped}) Tj")
    ops.append("ET")
    return "\n".join(ops).encode("latin-1")


@pytest.fixture
def pdf_factory(tmp_path):
    """Return a callable building a PDF under *tmp_path*."""
    counter = iter(range(1000))

    def _make(pages: list[list[bytes]], metadata: dict | None = None, name: str | None = None) -> str:
        filename = name or f"doc_{next(counter)}.pdf"
        return build_pdf(str(tmp_path / filename), pages, metadata)

    return _make
