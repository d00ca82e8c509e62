"""Markdown to HTML as an ordered chain of line-oriented rewrites.

The order of ``MARKDOWN_TO_HTML_STAGES`` matters: fenced blocks must be
converted before inline code and emphasis, longer heading markers before
shorter ones, ``***`` before ``**`` before ``*``, and links before images
(the link rule refuses a leading ``!``). List items are emitted without an
enclosing ``<ul>``/``<ol>`` and paragraphs are wrapped per line, not per
block; both are known limitations kept for output compatibility.
"""

from __future__ import annotations

import re
import uuid
from typing import Callable, Sequence

Stage = Callable[[str], str]

FENCED_CODE_RE = re.compile(r"```(\w*)\n([\s\S]*?)```")
INLINE_CODE_RE = re.compile(r"`([^`\n]+)`")
HEADING_RES: tuple[tuple[re.Pattern[str], str], ...] = tuple(
    (re.compile(rf"^{'#' * level} (.+)$", re.MULTILINE), rf"<h{level}>\1</h{level}>")
    for level in range(6, 0, -1)
)
EMPHASIS_RES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"\*\*\*(.+?)\*\*\*"), r"<strong><em>\1</em></strong>"),
    (re.compile(r"\*\*(.+?)\*\*"), r"<strong>\1</strong>"),
    (re.compile(r"\*([^*\n]+?)\*"), r"<em>\1</em>"),
    (re.compile(r"__(.+?)__"), r"<strong>\1</strong>"),
    (re.compile(r"_([^_\n]+?)_"), r"<em>\1</em>"),
)
STRIKETHROUGH_RE = re.compile(r"~~(.+?)~~")
LINK_RE = re.compile(r"(?<!!)\[([^\]]+)\]\(([^)]+)\)")
IMAGE_RE = re.compile(r"!\[([^\]]*)\]\(([^)]+)\)")
BLOCKQUOTE_RE = re.compile(r"^> (.+)$", re.MULTILINE)
HR_RES = (
    re.compile(r"^---+$", re.MULTILINE),
    re.compile(r"^\*\*\*+$", re.MULTILINE),
)
UNORDERED_ITEM_RE = re.compile(r"^[*-] (.+)$", re.MULTILINE)
ORDERED_ITEM_RE = re.compile(r"^\d+\. (.+)$", re.MULTILINE)

CODE_BLOCK_RE = re.compile(r"<pre><code[^>]*>[\s\S]*?</code></pre>")
CODE_SPAN_RE = re.compile(r"<code>[^\n]*?</code>")


def fenced_code_blocks(text: str) -> str:
    return FENCED_CODE_RE.sub(r'<pre><code class="language-\1">\2</code></pre>', text)


def inline_code(text: str) -> str:
    return INLINE_CODE_RE.sub(r"<code>\1</code>", text)


def headings(text: str) -> str:
    for pattern, replacement in HEADING_RES:
        text = pattern.sub(replacement, text)
    return text


def emphasis(text: str) -> str:
    for pattern, replacement in EMPHASIS_RES:
        text = pattern.sub(replacement, text)
    return text


def strikethrough(text: str) -> str:
    return STRIKETHROUGH_RE.sub(r"<del>\1</del>", text)


def links(text: str) -> str:
    return LINK_RE.sub(r'<a href="\2">\1</a>', text)


def images(text: str) -> str:
    return IMAGE_RE.sub(r'<img src="\2" alt="\1">', text)


def blockquotes(text: str) -> str:
    return BLOCKQUOTE_RE.sub(r"<blockquote>\1</blockquote>", text)


def horizontal_rules(text: str) -> str:
    for pattern in HR_RES:
        text = pattern.sub("<hr>", text)
    return text


def list_items(text: str) -> str:
    text = UNORDERED_ITEM_RE.sub(r"<li>\1</li>", text)
    return ORDERED_ITEM_RE.sub(r"<li>\1</li>", text)


def paragraphs(text: str) -> str:
    lines: list[str] = []
    for line in text.split("\n"):
        stripped = line.strip()
        if not stripped:
            lines.append("")
        elif stripped.startswith("<"):
            lines.append(line)
        else:
            lines.append(f"<p>{line}</p>")
    return "\n".join(lines)


MARKUP_STAGES: tuple[Stage, ...] = (
    headings,
    emphasis,
    strikethrough,
    links,
    images,
    blockquotes,
    horizontal_rules,
    list_items,
    paragraphs,
)

MARKDOWN_TO_HTML_STAGES: tuple[Stage, ...] = (fenced_code_blocks, inline_code) + MARKUP_STAGES


def new_shield_nonce() -> str:
    return uuid.uuid4().hex


def shield_code(text: str, pattern: re.Pattern[str], regions: list[str], nonce: str) -> str:
    """Swap each match for a comment token; ``regions`` collects the originals.

    Tokens carry ``nonce`` so text that merely looks like a token is left alone.
    """

    def _stash(match: re.Match[str]) -> str:
        regions.append(match.group(0))
        return f"<!--code-{nonce}-{len(regions) - 1}-->"

    return pattern.sub(_stash, text)


def restore_code(text: str, regions: Sequence[str], nonce: str) -> str:
    token_re = re.compile(rf"<!--code-{re.escape(nonce)}-(\d+)-->")

    def _restore(match: re.Match[str]) -> str:
        index = int(match.group(1))
        if index >= len(regions):
            return match.group(0)
        # A span may itself hold an earlier token.
        return restore_code(regions[index], regions[:index], nonce)

    return token_re.sub(_restore, text)


def run_stages(text: str, stages: Sequence[Stage]) -> str:
    for stage in stages:
        text = stage(text)
    return text


def markdown_to_html_fragment(markdown: str) -> str:
    """Apply stages 1-10 with code regions hidden from every later stage."""

    regions: list[str] = []
    nonce = new_shield_nonce()
    html = shield_code(fenced_code_blocks(markdown), CODE_BLOCK_RE, regions, nonce)
    html = shield_code(inline_code(html), CODE_SPAN_RE, regions, nonce)
    html = run_stages(html, MARKUP_STAGES)
    return restore_code(html, regions, nonce)


__all__ = [
    "MARKDOWN_TO_HTML_STAGES",
    "blockquotes",
    "emphasis",
    "fenced_code_blocks",
    "headings",
    "horizontal_rules",
    "images",
    "inline_code",
    "links",
    "list_items",
    "markdown_to_html_fragment",
    "new_shield_nonce",
    "paragraphs",
    "restore_code",
    "run_stages",
    "shield_code",
    "strikethrough",
]
