"""Mail-merge for Word (.docx) templates.

Placeholders such as ``{{name}}`` in the document body, headers and footers
are replaced with text or images, and table rows can be repeated for
tabular data::

    from docxmerge import load

    with load("invoice.docx") as document:
        document.clone_row("item", 2)
        document.set_values({"item#0": "Widget", "item#1": "Gadget"})
        document.set_image("logo", document.image_value("logo.png"))
        document.save("invoice-42.docx")

"""

from docxmerge.config import DEFAULT_CONFIG, Config
from docxmerge.document import Document, load, loads
from docxmerge.exceptions import (
    ArgumentError,
    ConfigurationError,
    DocxMergeError,
    EncodingError,
    LoadError,
    MalformedTableError,
    MarkNotFoundError,
    SaveError,
    UnsupportedImageError,
)
from docxmerge.images import ImageInjection, detect_image_type, parse_image_args

__all__ = [
    "DEFAULT_CONFIG",
    "ArgumentError",
    "Config",
    "ConfigurationError",
    "Document",
    "DocxMergeError",
    "EncodingError",
    "ImageInjection",
    "LoadError",
    "MalformedTableError",
    "MarkNotFoundError",
    "SaveError",
    "UnsupportedImageError",
    "detect_image_type",
    "load",
    "loads",
    "parse_image_args",
]
