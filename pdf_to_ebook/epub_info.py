"""Reading EPUB package metadata with ebooklib."""

from __future__ import annotations

import os
from dataclasses import dataclass

from ebooklib import epub

UNKNOWN = "Unknown"


@dataclass
class EpubDetails:
    title: str
    author: str
    language: str
    identifier: str


def _first(book: epub.EpubBook, field: str) -> str:
    items = book.get_metadata("DC", field)
    if items and items[0][0]:
        return str(items[0][0])
    return UNKNOWN


def read_epub_info(epub_path: str) -> EpubDetails:
    """Read title, author, language and identifier from an EPUB file."""
    book = epub.read_epub(epub_path)
    return EpubDetails(
        title=_first(book, "title"),
        author=_first(book, "creator"),
        language=_first(book, "language"),
        identifier=_first(book, "identifier"),
    )


def _safe_name(value: str) -> str:
    return value.replace("/", "-").replace("\\", "-")


def rename_epub(epub_path: str, details: EpubDetails) -> str:
    """Rename *epub_path* to ``"<title> - <author><ext>"`` in the same directory.

    Returns the new path.
    """
    directory = os.path.dirname(epub_path)
    _, extension = os.path.splitext(epub_path)
    new_name = f"{_safe_name(details.title)} - {_safe_name(details.author)}{extension or '.epub'}"
    new_path = os.path.join(directory, new_name)
    os.rename(epub_path, new_path)
    return new_path
