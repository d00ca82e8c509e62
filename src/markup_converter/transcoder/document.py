from __future__ import annotations

from ..models import ConversionOptions

DOCUMENT_TITLE = "Converted Document"

TOC_PLACEHOLDER = (
    '<nav id="toc"><h2>Table of Contents</h2><!-- table of contents placeholder --></nav>\n'
)

STYLESHEET = """\
        body {
            font-family: -apple-system, BlinkMacSystemFont, sans-serif;
            line-height: 1.6;
            max-width: 800px;
            margin: 0 auto;
            padding: 20px;
        }
        pre { background: #f5f5f5; padding: 1em; border-radius: 8px; overflow-x: auto; }
        code { font-family: ui-monospace, monospace; }
        blockquote { border-left: 4px solid #ddd; margin: 0; padding-left: 1em; color: #666; }
        img { max-width: 100%; }"""


def wrap_document(body: str, options: ConversionOptions) -> str:
    """Embed an HTML fragment in the fixed standalone shell."""

    toc = TOC_PLACEHOLDER if options.table_of_contents else ""
    return (
        "<!DOCTYPE html>\n"
        '<html lang="en">\n'
        "<head>\n"
        '    <meta charset="UTF-8">\n'
        '    <meta name="viewport" content="width=device-width, initial-scale=1.0">\n'
        f"    <title>{DOCUMENT_TITLE}</title>\n"
        "    <style>\n"
        f"{STYLESHEET}\n"
        "    </style>\n"
        "</head>\n"
        "<body>\n"
        f"{toc}{body}\n"
        "</body>\n"
        "</html>"
    )


def finish_html(fragment: str, options: ConversionOptions) -> str:
    if options.standalone:
        return wrap_document(fragment, options)
    return fragment
