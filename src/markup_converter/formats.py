"""Catalog of the document formats known to the converter."""

from __future__ import annotations

from enum import Enum
from pathlib import Path


class FormatCategory(str, Enum):
    MARKDOWN = "Markdown"
    DOCUMENT = "Documents"
    WEB = "Web"
    PRESENTATION = "Presentations"
    ACADEMIC = "Academic"
    WIKI = "Wiki"
    DATA = "Data"
    TEXT = "Text"
    OTHER = "Other"

    @property
    def formats(self) -> tuple["Format", ...]:
        return formats_in(self)


class Format(str, Enum):
    # Markdown variants
    MARKDOWN = "markdown"
    MARKDOWN_STRICT = "markdown_strict"
    GFM = "gfm"
    COMMONMARK = "commonmark"
    COMMONMARK_X = "commonmark_x"

    # Documents
    DOCX = "docx"
    ODT = "odt"
    RTF = "rtf"
    EPUB = "epub"

    # Web
    HTML = "html"
    HTML5 = "html5"

    # Presentations
    PPTX = "pptx"
    REVEALJS = "revealjs"
    SLIDY = "slidy"
    BEAMER = "beamer"

    # Academic / technical
    LATEX = "latex"
    PDF = "pdf"
    RST = "rst"
    ASCIIDOC = "asciidoc"
    ORG = "org"

    # Wiki
    MEDIAWIKI = "mediawiki"
    DOKUWIKI = "dokuwiki"

    # Data
    JSON = "json"
    CSV = "csv"

    PLAIN = "plain"

    # Other
    IPYNB = "ipynb"
    BIBLATEX = "biblatex"
    BIBTEX = "bibtex"

    @classmethod
    def parse(cls, value: "str | Format") -> "Format":
        if isinstance(value, Format):
            return value
        normalized = str(value).strip().lower()
        try:
            return cls(normalized)
        except ValueError:
            raise ValueError(f"Unknown format: {value!r}") from None

    @property
    def display_name(self) -> str:
        return DISPLAY_NAMES[self]

    @property
    def category(self) -> FormatCategory:
        return CATEGORY_MAP[self]

    @property
    def extension(self) -> str:
        return EXTENSION_MAP[self]

    @property
    def mime_type(self) -> str:
        return MIME_MAP[self]

    @property
    def is_markdown(self) -> bool:
        return self.category is FormatCategory.MARKDOWN

    @property
    def is_input(self) -> bool:
        return self in INPUT_FORMATS

    @property
    def is_output(self) -> bool:
        return self in OUTPUT_FORMATS


DISPLAY_NAMES: dict[Format, str] = {
    Format.MARKDOWN: "Markdown",
    Format.MARKDOWN_STRICT: "Markdown (Strict)",
    Format.GFM: "GitHub Flavored Markdown",
    Format.COMMONMARK: "CommonMark",
    Format.COMMONMARK_X: "CommonMark Extended",
    Format.DOCX: "Microsoft Word",
    Format.ODT: "OpenDocument Text",
    Format.RTF: "Rich Text Format",
    Format.EPUB: "EPUB",
    Format.HTML: "HTML",
    Format.HTML5: "HTML5",
    Format.PPTX: "PowerPoint",
    Format.REVEALJS: "reveal.js",
    Format.SLIDY: "Slidy",
    Format.BEAMER: "Beamer",
    Format.LATEX: "LaTeX",
    Format.PDF: "PDF",
    Format.RST: "reStructuredText",
    Format.ASCIIDOC: "AsciiDoc",
    Format.ORG: "Org Mode",
    Format.MEDIAWIKI: "MediaWiki",
    Format.DOKUWIKI: "DokuWiki",
    Format.JSON: "JSON",
    Format.CSV: "CSV",
    Format.PLAIN: "Plain Text",
    Format.IPYNB: "Jupyter Notebook",
    Format.BIBLATEX: "BibLaTeX",
    Format.BIBTEX: "BibTeX",
}

CATEGORY_MAP: dict[Format, FormatCategory] = {
    Format.MARKDOWN: FormatCategory.MARKDOWN,
    Format.MARKDOWN_STRICT: FormatCategory.MARKDOWN,
    Format.GFM: FormatCategory.MARKDOWN,
    Format.COMMONMARK: FormatCategory.MARKDOWN,
    Format.COMMONMARK_X: FormatCategory.MARKDOWN,
    Format.DOCX: FormatCategory.DOCUMENT,
    Format.ODT: FormatCategory.DOCUMENT,
    Format.RTF: FormatCategory.DOCUMENT,
    Format.EPUB: FormatCategory.DOCUMENT,
    Format.HTML: FormatCategory.WEB,
    Format.HTML5: FormatCategory.WEB,
    Format.PPTX: FormatCategory.PRESENTATION,
    Format.REVEALJS: FormatCategory.PRESENTATION,
    Format.SLIDY: FormatCategory.PRESENTATION,
    Format.BEAMER: FormatCategory.PRESENTATION,
    Format.LATEX: FormatCategory.ACADEMIC,
    Format.PDF: FormatCategory.ACADEMIC,
    Format.RST: FormatCategory.ACADEMIC,
    Format.ASCIIDOC: FormatCategory.ACADEMIC,
    Format.ORG: FormatCategory.ACADEMIC,
    Format.MEDIAWIKI: FormatCategory.WIKI,
    Format.DOKUWIKI: FormatCategory.WIKI,
    Format.JSON: FormatCategory.DATA,
    Format.CSV: FormatCategory.DATA,
    Format.PLAIN: FormatCategory.TEXT,
    Format.IPYNB: FormatCategory.OTHER,
    Format.BIBLATEX: FormatCategory.OTHER,
    Format.BIBTEX: FormatCategory.OTHER,
}

EXTENSION_MAP: dict[Format, str] = {
    Format.MARKDOWN: "md",
    Format.MARKDOWN_STRICT: "md",
    Format.GFM: "md",
    Format.COMMONMARK: "md",
    Format.COMMONMARK_X: "md",
    Format.DOCX: "docx",
    Format.ODT: "odt",
    Format.RTF: "rtf",
    Format.EPUB: "epub",
    Format.HTML: "html",
    Format.HTML5: "html",
    Format.PPTX: "pptx",
    Format.REVEALJS: "html",
    Format.SLIDY: "html",
    Format.BEAMER: "pdf",
    Format.LATEX: "tex",
    Format.PDF: "pdf",
    Format.RST: "rst",
    Format.ASCIIDOC: "adoc",
    Format.ORG: "org",
    Format.MEDIAWIKI: "txt",
    Format.DOKUWIKI: "txt",
    Format.JSON: "json",
    Format.CSV: "csv",
    Format.PLAIN: "txt",
    Format.IPYNB: "ipynb",
    Format.BIBLATEX: "bib",
    Format.BIBTEX: "bib",
}

MIME_MAP: dict[Format, str] = {
    Format.MARKDOWN: "text/markdown",
    Format.MARKDOWN_STRICT: "text/markdown",
    Format.GFM: "text/markdown",
    Format.COMMONMARK: "text/markdown",
    Format.COMMONMARK_X: "text/markdown",
    Format.DOCX: "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    Format.ODT: "application/vnd.oasis.opendocument.text",
    Format.RTF: "application/rtf",
    Format.EPUB: "application/epub+zip",
    Format.HTML: "text/html",
    Format.HTML5: "text/html",
    Format.PPTX: "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    Format.REVEALJS: "text/html",
    Format.SLIDY: "text/html",
    Format.BEAMER: "application/pdf",
    Format.LATEX: "application/x-tex",
    Format.PDF: "application/pdf",
    Format.RST: "text/x-rst",
    Format.ASCIIDOC: "text/asciidoc",
    Format.ORG: "text/org",
    Format.MEDIAWIKI: "text/plain",
    Format.DOKUWIKI: "text/plain",
    Format.JSON: "application/json",
    Format.CSV: "text/csv",
    Format.PLAIN: "text/plain",
    Format.IPYNB: "application/x-ipynb+json",
    Format.BIBLATEX: "application/x-bibtex",
    Format.BIBTEX: "application/x-bibtex",
}

# Presentation and PDF formats can be produced but not read back.
OUTPUT_ONLY: frozenset[Format] = frozenset(
    {Format.PDF, Format.PPTX, Format.REVEALJS, Format.SLIDY, Format.BEAMER}
)

INPUT_FORMATS: tuple[Format, ...] = tuple(fmt for fmt in Format if fmt not in OUTPUT_ONLY)
OUTPUT_FORMATS: tuple[Format, ...] = tuple(Format)

SUFFIX_MAP: dict[str, Format] = {
    "md": Format.MARKDOWN,
    "markdown": Format.MARKDOWN,
    "html": Format.HTML,
    "htm": Format.HTML,
    "tex": Format.LATEX,
    "latex": Format.LATEX,
    "rst": Format.RST,
    "adoc": Format.ASCIIDOC,
    "asciidoc": Format.ASCIIDOC,
    "org": Format.ORG,
    "json": Format.JSON,
    "csv": Format.CSV,
    "rtf": Format.RTF,
    "docx": Format.DOCX,
    "odt": Format.ODT,
    "epub": Format.EPUB,
    "ipynb": Format.IPYNB,
    "bib": Format.BIBTEX,
    "txt": Format.PLAIN,
}


def is_valid_source(fmt: Format) -> bool:
    return fmt in INPUT_FORMATS


def is_valid_target(fmt: Format) -> bool:
    return fmt in OUTPUT_FORMATS


def category(fmt: Format) -> FormatCategory:
    return CATEGORY_MAP[fmt]


def extension(fmt: Format) -> str:
    return EXTENSION_MAP[fmt]


def formats_in(group: FormatCategory) -> tuple[Format, ...]:
    return tuple(fmt for fmt in Format if CATEGORY_MAP[fmt] is group)


def detect_format(path: str | Path) -> Format | None:
    """Guess the source format from a filename or bare extension."""

    name = Path(str(path)).name
    suffix = name.rsplit(".", 1)[-1] if "." in name else name
    return SUFFIX_MAP.get(suffix.lower())


__all__ = [
    "Format",
    "FormatCategory",
    "INPUT_FORMATS",
    "OUTPUT_FORMATS",
    "category",
    "detect_format",
    "extension",
    "formats_in",
    "is_valid_source",
    "is_valid_target",
]
