"""In-process transcoding between Markdown, HTML and plain text.

Dispatch is a table keyed by ``(source, target)``; the capability check and
the transcoder read the same table, so a pair is handled locally exactly
when it has an entry.
"""

from __future__ import annotations

from typing import Callable

from ..errors import UnsupportedLocalConversion
from ..formats import Format, FormatCategory, formats_in
from ..models import ConversionOptions
from .document import finish_html, wrap_document
from .html import HTMLParserTextExtractor, TextExtractor, html_to_markdown
from .markdown import MARKDOWN_TO_HTML_STAGES, markdown_to_html_fragment
from .plain import plain_text_to_html


class Transcoder:
    """Pure text rewriting; the only state is the pluggable text extractor."""

    def __init__(self, extractor: TextExtractor | None = None) -> None:
        self._extractor = extractor or HTMLParserTextExtractor()

    def transcode(
        self,
        text: str,
        source: Format,
        target: Format,
        options: ConversionOptions | None = None,
    ) -> str:
        handler = LOCAL_ROUTES.get((source, target))
        if handler is None:
            raise UnsupportedLocalConversion(source, target)
        return handler(self, text, options or ConversionOptions())

    def markdown_to_html(self, text: str, options: ConversionOptions) -> str:
        return finish_html(markdown_to_html_fragment(text), options)

    def html_to_plain_text(self, text: str, options: ConversionOptions) -> str:
        return self._extractor.extract_visible_text(text)

    def markdown_to_plain_text(self, text: str, options: ConversionOptions) -> str:
        # Two stages on purpose: whatever the HTML step emits (shell, TOC
        # placeholder) is what the extractor sees.
        return self.html_to_plain_text(self.markdown_to_html(text, options), options)

    def plain_text_to_html(self, text: str, options: ConversionOptions) -> str:
        return plain_text_to_html(text, options)

    def html_to_markdown(self, text: str, options: ConversionOptions) -> str:
        return html_to_markdown(text)

    def passthrough(self, text: str, options: ConversionOptions) -> str:
        return text


Handler = Callable[[Transcoder, str, ConversionOptions], str]

LOCAL_MARKDOWN: tuple[Format, ...] = (Format.MARKDOWN, Format.GFM, Format.COMMONMARK)
HTML_FORMATS: tuple[Format, ...] = (Format.HTML, Format.HTML5)


def _build_routes() -> dict[tuple[Format, Format], Handler]:
    routes: dict[tuple[Format, Format], Handler] = {}
    for markdown in LOCAL_MARKDOWN:
        for html in HTML_FORMATS:
            routes[(markdown, html)] = Transcoder.markdown_to_html
            routes[(html, markdown)] = Transcoder.html_to_markdown
        routes[(markdown, Format.PLAIN)] = Transcoder.markdown_to_plain_text
    for html in HTML_FORMATS:
        routes[(html, Format.PLAIN)] = Transcoder.html_to_plain_text
        routes[(Format.PLAIN, html)] = Transcoder.plain_text_to_html
    routes[(Format.PLAIN, Format.PLAIN)] = Transcoder.passthrough
    for markdown in formats_in(FormatCategory.MARKDOWN):
        routes[(markdown, markdown)] = Transcoder.passthrough
        routes[(markdown, Format.MARKDOWN)] = Transcoder.passthrough
    return routes


LOCAL_ROUTES: dict[tuple[Format, Format], Handler] = _build_routes()


def can_handle_locally(source: Format, target: Format) -> bool:
    return (source, target) in LOCAL_ROUTES


def local_pairs() -> list[tuple[Format, Format]]:
    return sorted(LOCAL_ROUTES, key=lambda pair: (pair[0].value, pair[1].value))


__all__ = [
    "HTML_FORMATS",
    "HTMLParserTextExtractor",
    "LOCAL_MARKDOWN",
    "LOCAL_ROUTES",
    "MARKDOWN_TO_HTML_STAGES",
    "TextExtractor",
    "Transcoder",
    "can_handle_locally",
    "local_pairs",
    "wrap_document",
]
