"""Table row cloning on the main document part."""

from __future__ import annotations

import logging

from docxmerge.config import Config
from docxmerge.exceptions import ArgumentError, MalformedTableError, MarkNotFoundError
from docxmerge.markup import placeholder_pattern

logger = logging.getLogger(__name__)

_ROW_START_TAGS = ("<w:tr>", "<w:tr ")
_ROW_END_TAG = "</w:tr>"


def find_row_start(xml: str, offset: int) -> int:
    """Offset of the nearest ``<w:tr>`` or ``<w:tr ...>`` before ``offset``, or -1."""

    return max(xml.rfind(tag, 0, offset) for tag in _ROW_START_TAGS)


def find_row_end(xml: str, offset: int) -> int:
    """Offset just past the first ``</w:tr>`` at or after ``offset``, or -1."""

    position = xml.find(_ROW_END_TAG, offset)
    if position == -1:
        return -1
    return position + len(_ROW_END_TAG)


def index_placeholders(row: str, count: int, config: Config) -> str:
    """Concatenate ``count`` copies of ``row`` with ``#i`` appended to every placeholder name."""

    pattern = placeholder_pattern(config)
    copies = []
    for index in range(count):
        copies.append(pattern.sub(lambda match: config.wrap(f"{match.group(1)}#{index}"), row))
    return "".join(copies)


def clone_row(xml: str, mark: str, count: int, config: Config) -> str:
    """Repeat the table row holding ``mark`` ``count`` times.

    Placeholders in the ``i``-th copy are renamed ``name#i`` (0-based) so
    each copy can be filled separately. ``count`` of zero removes the row.
    """

    if isinstance(count, bool) or not isinstance(count, int):
        raise ArgumentError(f"row count must be an integer, got {type(count).__name__}")
    if count < 0:
        raise ArgumentError(f"row count must not be negative, got {count}")

    mark = config.ensure_delimited(mark)
    offset = xml.find(mark)
    if offset == -1:
        raise MarkNotFoundError(mark)

    row_start = find_row_start(xml, offset)
    row_end = find_row_end(xml, offset)
    if row_start == -1 or row_end == -1 or xml.rfind(_ROW_END_TAG, row_start, offset) != -1:
        raise MalformedTableError(f"{mark} is not inside a table row")

    row = xml[row_start:row_end]
    logger.debug("Cloning table row for %s", mark, extra={"row_count": count, "row_length": len(row)})
    return xml[:row_start] + index_placeholders(row, count, config) + xml[row_end:]
