"""HTML to Markdown rewrites and HTML to plain text extraction."""

from __future__ import annotations

import itertools
import re
from html.parser import HTMLParser
from typing import Protocol, Sequence

from .markdown import Stage, new_shield_nonce, run_stages


def _open(tag: str) -> str:
    return rf"<{tag}(?:\s[^>]*)?>"


DOCTYPE_RE = re.compile(r"<!DOCTYPE[^>]*>", re.IGNORECASE)
HEAD_RE = re.compile(_open("head") + r"[\s\S]*?</head>", re.IGNORECASE)
WRAPPER_RE = re.compile(r"</?(?:html|body)(?:\s[^>]*)?>", re.IGNORECASE)
PRE_BLOCK_RE = re.compile(
    r'<pre(?:\s[^>]*)?><code(?:\s[^>]*?class="language-([\w+-]*)")?[^>]*>([\s\S]*?)</code></pre>',
    re.IGNORECASE,
)
CODE_SPAN_RE = re.compile(_open("code") + r"([^<]+)</code>", re.IGNORECASE)
STRONG_EM_RE = re.compile(
    r"<(strong|b)(?:\s[^>]*)?><(em|i)(?:\s[^>]*)?>([^<]+)</\2></\1>"
    r"|<(em|i)(?:\s[^>]*)?><(strong|b)(?:\s[^>]*)?>([^<]+)</\5></\4>",
    re.IGNORECASE,
)
STRONG_RE = re.compile(r"<(strong|b)(?:\s[^>]*)?>([^<]+)</\1>", re.IGNORECASE)
EM_RE = re.compile(r"<(em|i)(?:\s[^>]*)?>([^<]+)</\1>", re.IGNORECASE)
DEL_RE = re.compile(r"<(del|s|strike)(?:\s[^>]*)?>([^<]+)</\1>", re.IGNORECASE)
IMAGE_RES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r'<img\s[^>]*?src="([^"]*)"[^>]*?alt="([^"]*)"[^>]*>', re.IGNORECASE), r"![\2](\1)"),
    (re.compile(r'<img\s[^>]*?alt="([^"]*)"[^>]*?src="([^"]*)"[^>]*>', re.IGNORECASE), r"![\1](\2)"),
    (re.compile(r'<img\s[^>]*?src="([^"]*)"[^>]*>', re.IGNORECASE), r"![](\1)"),
)
LINK_RE = re.compile(r'<a\s[^>]*?href="([^"]+)"[^>]*>([^<]+)</a>', re.IGNORECASE)
HEADING_RE = re.compile(r"<h([1-6])(?:\s[^>]*)?>([^<]+)</h\1>", re.IGNORECASE)
BLOCKQUOTE_LINE_RE = re.compile(_open("blockquote") + r"([^<\n]+)</blockquote>", re.IGNORECASE)
BLOCKQUOTE_OPEN_RE = re.compile(_open("blockquote"), re.IGNORECASE)
BLOCKQUOTE_CLOSE_RE = re.compile(r"</blockquote>", re.IGNORECASE)
HR_RE = re.compile(r"<hr\s*/?>", re.IGNORECASE)
ORDERED_LIST_RE = re.compile(_open("ol") + r"([\s\S]*?)</ol>", re.IGNORECASE)
LIST_ITEM_RE = re.compile(_open("li") + r"([^<]*)</li>[ \t]*\n?", re.IGNORECASE)
LIST_CONTAINER_RE = re.compile(r"</?(?:ul|ol)(?:\s[^>]*)?>", re.IGNORECASE)
PARAGRAPH_RE = re.compile(r"</?p(?:\s[^>]*)?>", re.IGNORECASE)
BREAK_RE = re.compile(r"<br\s*/?>", re.IGNORECASE)
TAG_RE = re.compile(r"<[^>]+>")
EXCESS_NEWLINES_RE = re.compile(r"\n{3,}")

ENTITIES = {
    "&amp;": "&",
    "&lt;": "<",
    "&gt;": ">",
    "&quot;": '"',
    "&#39;": "'",
    "&nbsp;": " ",
}
ENTITY_RE = re.compile("|".join(re.escape(entity) for entity in ENTITIES))


def strip_document_wrappers(html: str) -> str:
    html = DOCTYPE_RE.sub("", html)
    html = HEAD_RE.sub("", html)
    return WRAPPER_RE.sub("", html)


def code_blocks(html: str) -> str:
    def _fence(match: re.Match[str]) -> str:
        language = match.group(1) or ""
        return f"```{language}\n{match.group(2).rstrip(chr(10))}\n```"

    return PRE_BLOCK_RE.sub(_fence, html)


def inline_code(html: str) -> str:
    return CODE_SPAN_RE.sub(r"`\1`", html)


def emphasis(html: str) -> str:
    html = STRONG_EM_RE.sub(lambda match: f"***{match.group(3) or match.group(6)}***", html)
    html = STRONG_RE.sub(r"**\2**", html)
    return EM_RE.sub(r"*\2*", html)


def strikethrough(html: str) -> str:
    return DEL_RE.sub(r"~~\2~~", html)


def images(html: str) -> str:
    for pattern, replacement in IMAGE_RES:
        html = pattern.sub(replacement, html)
    return html


def links(html: str) -> str:
    return LINK_RE.sub(r"[\2](\1)", html)


def headings(html: str) -> str:
    return HEADING_RE.sub(lambda match: f"{'#' * int(match.group(1))} {match.group(2)}\n", html)


def blockquotes(html: str) -> str:
    html = BLOCKQUOTE_LINE_RE.sub(r"> \1\n", html)
    html = BLOCKQUOTE_OPEN_RE.sub("> ", html)
    return BLOCKQUOTE_CLOSE_RE.sub("", html)


def horizontal_rules(html: str) -> str:
    return HR_RE.sub("---\n", html)


def list_items(html: str) -> str:
    def _number(block: re.Match[str]) -> str:
        counter = itertools.count(1)
        return LIST_ITEM_RE.sub(lambda item: f"{next(counter)}. {item.group(1)}\n", block.group(1))

    html = ORDERED_LIST_RE.sub(_number, html)
    html = LIST_ITEM_RE.sub(r"- \1\n", html)
    return LIST_CONTAINER_RE.sub("", html)


def paragraphs(html: str) -> str:
    html = PARAGRAPH_RE.sub("\n", html)
    return BREAK_RE.sub("\n", html)


def strip_tags(html: str) -> str:
    return TAG_RE.sub("", html)


def collapse_newlines(text: str) -> str:
    return EXCESS_NEWLINES_RE.sub("\n\n", text)


def decode_entities(text: str) -> str:
    return ENTITY_RE.sub(lambda match: ENTITIES[match.group(0)], text)


HTML_TO_MARKDOWN_STAGES: tuple[Stage, ...] = (
    strip_document_wrappers,
    code_blocks,
    inline_code,
    emphasis,
    strikethrough,
    images,
    links,
    headings,
    blockquotes,
    horizontal_rules,
    list_items,
    paragraphs,
    strip_tags,
    collapse_newlines,
)

_CODE_STAGES = HTML_TO_MARKDOWN_STAGES[:3]
_TEXT_STAGES = HTML_TO_MARKDOWN_STAGES[3:]
_FENCE_OR_SPAN_RE = re.compile(r"```[\w+-]*\n[\s\S]*?\n```|`[^`\n]+`")


def html_to_markdown(html: str) -> str:
    regions: list[str] = []
    # NUL-delimited so the tag stripper leaves the placeholders alone.
    nonce = new_shield_nonce()

    def _stash(match: re.Match[str]) -> str:
        regions.append(match.group(0))
        return f"\x00code{nonce}-{len(regions) - 1}\x00"

    markdown = run_stages(html, _CODE_STAGES)
    markdown = _FENCE_OR_SPAN_RE.sub(_stash, markdown)
    markdown = run_stages(markdown, _TEXT_STAGES)
    markdown = _restore(markdown, regions, nonce)
    return decode_entities(markdown).strip()


def _restore(text: str, regions: Sequence[str], nonce: str) -> str:
    token_re = re.compile(f"\x00code{re.escape(nonce)}-(\\d+)\x00")

    def _region(match: re.Match[str]) -> str:
        index = int(match.group(1))
        return regions[index] if index < len(regions) else match.group(0)

    return token_re.sub(_region, text)


class TextExtractor(Protocol):
    def extract_visible_text(self, html: str) -> str:  # pragma: no cover - interface
        ...


BLOCK_TAGS = frozenset(
    {
        "address", "article", "aside", "blockquote", "dd", "div", "dl", "dt",
        "figcaption", "figure", "footer", "h1", "h2", "h3", "h4", "h5", "h6",
        "header", "hr", "li", "main", "nav", "ol", "p", "pre", "section",
        "table", "tr", "ul",
    }
)
SKIP_CONTENT_TAGS = frozenset({"head", "script", "style", "title", "noscript", "template"})
WHITESPACE_RE = re.compile(r"\s+")


class _VisibleTextParser(HTMLParser):
    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.parts: list[str] = []
        self.skip_depth = 0
        self.pre_depth = 0

    def _at_line_start(self) -> bool:
        return not self.parts or self.parts[-1].endswith("\n")

    def _line_break(self, force: bool = False) -> None:
        if force or not self._at_line_start():
            self.parts.append("\n")

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        if tag in SKIP_CONTENT_TAGS:
            self.skip_depth += 1
            return
        if self.skip_depth:
            return
        if tag == "br":
            self._line_break(force=True)
        elif tag in BLOCK_TAGS:
            self._line_break()
        if tag == "pre":
            self.pre_depth += 1

    def handle_endtag(self, tag: str) -> None:
        if tag in SKIP_CONTENT_TAGS:
            self.skip_depth = max(0, self.skip_depth - 1)
            return
        if self.skip_depth:
            return
        if tag == "pre":
            self.pre_depth = max(0, self.pre_depth - 1)
        if tag in BLOCK_TAGS:
            self._line_break()

    def handle_data(self, data: str) -> None:
        if self.skip_depth:
            return
        if self.pre_depth:
            self.parts.append(data)
            return
        collapsed = WHITESPACE_RE.sub(" ", data)
        if self._at_line_start() or self.parts[-1].endswith(" "):
            collapsed = collapsed.lstrip(" ")
        if collapsed:
            self.parts.append(collapsed)

    def text(self) -> str:
        lines = "".join(self.parts).split("\n")
        return "\n".join(line.rstrip(" ") for line in lines).strip("\n")


class HTMLParserTextExtractor:
    """Visible-text extraction on top of the standard library HTML parser."""

    def extract_visible_text(self, html: str) -> str:
        parser = _VisibleTextParser()
        parser.feed(html)
        parser.close()
        return parser.text()


__all__ = [
    "HTML_TO_MARKDOWN_STAGES",
    "HTMLParserTextExtractor",
    "TextExtractor",
    "decode_entities",
    "html_to_markdown",
    "strip_document_wrappers",
]
