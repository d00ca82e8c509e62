from __future__ import annotations

from ..models import ConversionOptions
from .document import finish_html


def escape_text(text: str) -> str:
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def plain_text_to_html(text: str, options: ConversionOptions) -> str:
    """Blank lines separate paragraphs; single newlines become ``<br>``."""

    paragraphs = escape_text(text).split("\n\n")
    body = "\n".join(f"<p>{paragraph.replace(chr(10), '<br>')}</p>" for paragraph in paragraphs)
    return finish_html(body, options)
