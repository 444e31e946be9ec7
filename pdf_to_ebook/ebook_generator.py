"""Ebook generators writing detected chapters as EPUB, HTML or plain text."""

from __future__ import annotations

import html
import logging
import uuid

from ebooklib import epub

from pdf_to_ebook.models import BookMetadata, Chapter, OutputFormat

logger = logging.getLogger(__name__)

GENERATOR_NAME = "pdf-to-ebook converter"

EPUB_CSS = """
body {
    font-family: "Times New Roman", serif;
    line-height: 1.6;
    margin: 1em;
}

h1, h2, h3 {
    color: #333;
    margin-top: 1.5em;
    margin-bottom: 0.5em;
}

h1 {
    font-size: 1.8em;
    border-bottom: 2px solid #ccc;
    padding-bottom: 0.3em;
}

p {
    margin: 0.8em 0;
    text-align: justify;
}

.page-number {
    font-size: 0.8em;
    color: #666;
    margin: 1em 0;
    text-align: center;
}

.chapter-title {
    text-align: center;
    margin: 2em 0;
    font-weight: bold;
}
"""

HTML_CSS = """
body {
    font-family: "Times New Roman", serif;
    line-height: 1.6;
    max-width: 800px;
    margin: 0 auto;
    padding: 20px;
    background-color: #fff;
}

h2 {
    color: #666;
    margin-top: 2em;
    margin-bottom: 1em;
}

.book-title {
    text-align: center;
    font-size: 2.5em;
    margin: 1em 0;
}

.author {
    text-align: center;
    font-size: 1.2em;
    color: #666;
    margin-bottom: 2em;
}

.toc {
    background-color: #f9f9f9;
    padding: 20px;
    margin: 2em 0;
    border-radius: 5px;
}

.toc ul {
    list-style-type: none;
    padding-left: 0;
}

.toc a {
    text-decoration: none;
    color: #0066cc;
}

.chapter {
    margin: 3em 0;
    padding-top: 2em;
    border-top: 1px solid #eee;
}

.page-info {
    font-size: 0.9em;
    color: #999;
    margin-bottom: 1em;
}

p {
    margin: 1em 0;
    text-align: justify;
}
"""

_RULE = "=" * 60


def _paragraphs(content: str) -> list[str]:
    """Split chapter content on blank lines into escaped HTML paragraphs."""
    paragraphs: list[str] = []
    for paragraph in content.split("\n\n"):
        paragraph = paragraph.strip()
        if paragraph:
            paragraphs.append(html.escape(paragraph).replace("\n", "<br/>"))
    return paragraphs


class EbookGenerator:
    """Writes chapters to an ebook file in one of the supported formats."""

    def generate(
        self,
        output_format: OutputFormat,
        metadata: BookMetadata,
        chapters: list[Chapter],
        output_path: str,
        include_page_numbers: bool = False,
        generate_toc: bool = True,
    ) -> None:
        writers = {
            OutputFormat.EPUB: self.generate_epub,
            OutputFormat.HTML: self.generate_html,
            OutputFormat.TXT: self.generate_txt,
        }
        logger.info("Generating %s...", output_format.value.upper())
        writers[output_format](
            metadata, chapters, output_path, include_page_numbers, generate_toc
        )

    # ------------------------------------------------------------------
    # EPUB
    # ------------------------------------------------------------------

    def generate_epub(
        self,
        metadata: BookMetadata,
        chapters: list[Chapter],
        output_path: str,
        include_page_numbers: bool = False,
        generate_toc: bool = True,
    ) -> None:
        book = epub.EpubBook()
        book.set_identifier(
            str(uuid.uuid5(uuid.NAMESPACE_URL, f"{metadata.title}/{metadata.author}"))
        )
        book.set_title(metadata.title)
        book.set_language("en")
        book.add_author(metadata.author)
        if metadata.subject:
            book.add_metadata("DC", "subject", metadata.subject)
        if metadata.creation_date:
            book.add_metadata("DC", "date", metadata.creation_date.isoformat())
        book.add_metadata(None, "meta", "", {"name": "generator", "content": GENERATOR_NAME})

        stylesheet = epub.EpubItem(
            uid="style_default",
            file_name="style/stylesheet.css",
            media_type="text/css",
            content=EPUB_CSS,
        )
        book.add_item(stylesheet)

        items: list[epub.EpubHtml] = []
        for idx, chapter in enumerate(chapters, 1):
            item = epub.EpubHtml(
                title=chapter.title,
                file_name=f"chapter_{idx:03d}.xhtml",
                lang="en",
            )
            item.content = self._epub_chapter_body(chapter, include_page_numbers)
            item.add_item(stylesheet)
            book.add_item(item)
            items.append(item)

        # Navigation documents are mandatory; the visible TOC page is optional.
        book.toc = tuple(items)
        book.add_item(epub.EpubNcx())
        book.add_item(epub.EpubNav())
        book.spine = (["nav"] if generate_toc else []) + items

        epub.write_epub(output_path, book)

    @staticmethod
    def _epub_chapter_body(chapter: Chapter, include_page_numbers: bool) -> str:
        title = html.escape(chapter.title)
        parts = [f'<div class="chapter-title"><h1>{title}</h1></div>']
        if include_page_numbers:
            parts.append(
                f'<div class="page-number">Pages: {chapter.display_page_start} - '
                f"{chapter.display_page_end}</div>"
            )
        parts.extend(f"<p>{paragraph}</p>" for paragraph in _paragraphs(chapter.content))
        return "\n".join(parts)

    # ------------------------------------------------------------------
    # HTML
    # ------------------------------------------------------------------

    def generate_html(
        self,
        metadata: BookMetadata,
        chapters: list[Chapter],
        output_path: str,
        include_page_numbers: bool = False,
        generate_toc: bool = True,
    ) -> None:
        with open(output_path, "w", encoding="utf-8") as f:
            f.write(self.render_html(metadata, chapters, include_page_numbers, generate_toc))

    def render_html(
        self,
        metadata: BookMetadata,
        chapters: list[Chapter],
        include_page_numbers: bool = False,
        generate_toc: bool = True,
    ) -> str:
        title = html.escape(metadata.title)
        lines = [
            "<!DOCTYPE html>",
            '<html lang="en">',
            "<head>",
            '    <meta charset="UTF-8">',
            '    <meta name="viewport" content="width=device-width, initial-scale=1.0">',
            f"    <title>{title}</title>",
            f"    <style>{HTML_CSS}    </style>",
            "</head>",
            "<body>",
            f'    <div class="book-title">{title}</div>',
            f'    <div class="author">by {html.escape(metadata.author)}</div>',
        ]

        if generate_toc:
            lines.append('    <div class="toc">')
            lines.append("        <h2>Table of Contents</h2>")
            lines.append("        <ul>")
            for idx, chapter in enumerate(chapters, 1):
                lines.append(
                    f'            <li><a href="#chapter_{idx}">'
                    f"{html.escape(chapter.title)}</a></li>"
                )
            lines.append("        </ul>")
            lines.append("    </div>")

        for idx, chapter in enumerate(chapters, 1):
            lines.append(f'    <div class="chapter" id="chapter_{idx}">')
            lines.append(f"        <h2>{html.escape(chapter.title)}</h2>")
            if include_page_numbers:
                lines.append(
                    f'        <div class="page-info">Pages: {chapter.display_page_start}'
                    f" - {chapter.display_page_end}</div>"
                )
            for paragraph in _paragraphs(chapter.content):
                lines.append(f"        <p>{paragraph}</p>")
            lines.append("    </div>")

        lines.append("</body>")
        lines.append("</html>")
        return "\n".join(lines)

    # ------------------------------------------------------------------
    # Plain text
    # ------------------------------------------------------------------

    def generate_txt(
        self,
        metadata: BookMetadata,
        chapters: list[Chapter],
        output_path: str,
        include_page_numbers: bool = False,
        generate_toc: bool = True,
    ) -> None:
        with open(output_path, "w", encoding="utf-8") as f:
            f.write(self.render_txt(metadata, chapters, include_page_numbers, generate_toc))

    def render_txt(
        self,
        metadata: BookMetadata,
        chapters: list[Chapter],
        include_page_numbers: bool = False,
        generate_toc: bool = True,
    ) -> str:
        parts = [f"{metadata.title.upper()}\n", f"by {metadata.author}\n", f"{_RULE}\n\n"]

        if generate_toc:
            parts.append("TABLE OF CONTENTS\n")
            parts.append(f"{'-' * 20}\n\n")
            for idx, chapter in enumerate(chapters, 1):
                parts.append(f"{idx}. {chapter.title}\n")
            parts.append("\n\n")

        for idx, chapter in enumerate(chapters, 1):
            parts.append(f"\n\nCHAPTER {idx}: {chapter.title.upper()}\n")
            parts.append(f"{_RULE}\n")
            if include_page_numbers:
                parts.append(
                    f"Pages: {chapter.display_page_start} - {chapter.display_page_end}\n\n"
                )
            parts.append(chapter.content)
            parts.append("\n\n")

        return "".join(parts)
