"""Exceptions raised by docxmerge.

Hierarchy
---------
- DocxMergeError

  - ConfigurationError (bad placeholder delimiters)
  - LoadError (source is unreadable or not a zip archive)
  - ArgumentError (wrong argument types or values)
  - EncodingError (text that cannot be written into XML)
  - MarkNotFoundError (row clone mark missing from the main part)
  - MalformedTableError (mark is not inside a table row)
  - UnsupportedImageError (unknown image signature)
  - SaveError (writing a part or media file failed)

"""

from __future__ import annotations


class DocxMergeError(Exception):
    """Base class for every error raised by this package.

    Parameters
    ----------
    message : str
        Human-readable description of the error
    original_error : Exception, optional
        The exception that triggered this one, if any

    """

    def __init__(self, message: str, original_error: Exception | None = None):
        super().__init__(message)
        self.message = message
        self.original_error = original_error


class ConfigurationError(DocxMergeError):
    """Raised when a :class:`~docxmerge.config.Config` is unusable."""


class LoadError(DocxMergeError):
    """Raised when a template cannot be opened as a DOCX package."""


class ArgumentError(DocxMergeError):
    """Raised when an operation receives arguments of the wrong type or value."""


class EncodingError(DocxMergeError):
    """Raised when a name or value cannot be escaped into WordprocessingML text."""

    def __init__(self, message: str, name: str | None = None, original_error: Exception | None = None):
        super().__init__(message, original_error)
        self.name = name


class MarkNotFoundError(DocxMergeError):
    """Raised when a placeholder mark does not occur in the main part."""

    def __init__(self, mark: str):
        super().__init__(f"mark not found: {mark}")
        self.mark = mark


class MalformedTableError(DocxMergeError):
    """Raised when a mark is not enclosed by a ``<w:tr>`` ... ``</w:tr>`` pair."""


class UnsupportedImageError(DocxMergeError):
    """Raised when an image type cannot be detected from its leading bytes."""


class SaveError(DocxMergeError):
    """Raised when a package entry cannot be written."""

    def __init__(self, message: str, part_name: str, original_error: Exception | None = None):
        super().__init__(message, original_error)
        self.part_name = part_name
