"""Markup conversion with a local transcoder and a pandoc-server fallback."""

__version__ = "0.1.0"

from .formats import Format, FormatCategory, detect_format
from .models import ConversionDocument, ConversionMode, ConversionOptions, ConversionResult, WrapMode

__all__ = [
    "ConversionDocument",
    "ConversionMode",
    "ConversionOptions",
    "ConversionResult",
    "Format",
    "FormatCategory",
    "WrapMode",
    "__version__",
    "detect_format",
]
