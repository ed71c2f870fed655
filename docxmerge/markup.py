"""Text-level helpers for WordprocessingML parts.

Parts are handled as serialized XML strings. Placeholders are located and
replaced textually, so names and values have to be escaped exactly the way
Word writes character data.
"""

from __future__ import annotations

import logging
import re
from xml.sax.saxutils import escape

from docxmerge.config import Config
from docxmerge.exceptions import ArgumentError, EncodingError

logger = logging.getLogger(__name__)

LINE_BREAK = '</w:t><w:br/><w:t xml:space="preserve">'

# Characters that are not allowed anywhere in an XML 1.0 document.
_INVALID_XML_CHARS_RE = re.compile("[\x00-\x08\x0b\x0c\x0e-\x1f\ud800-\udfff\ufffe\uffff]")
_TEXT_ENTITIES = {
    "\t": "&#x9;",
    "\n": "&#xA;",
    "\r": "&#xD;",
}
_TAG_RE = re.compile(r"<[^>]+>")
_TAG_GAP = r"(?:<[^>]*>)*"


def escape_text(text: str, name: str | None = None) -> str:
    """Escape ``text`` for use as WordprocessingML character data.

    Line breaks (CR+LF or a bare LF) become a ``<w:br/>`` between two text
    elements of the same run.
    """

    if not isinstance(text, str):
        raise ArgumentError(f"expected text, got {type(text).__name__}")

    invalid = _INVALID_XML_CHARS_RE.search(text)
    if invalid is not None:
        raise EncodingError(
            f"character U+{ord(invalid.group()):04X} at offset {invalid.start()} cannot be written to XML",
            name=name,
        )

    escaped = escape(text, _TEXT_ENTITIES)
    return escaped.replace("&#xD;&#xA;", LINE_BREAK).replace("&#xA;", LINE_BREAK)


def placeholder_pattern(config: Config) -> re.Pattern[str]:
    """Pattern capturing the name of every delimited placeholder."""

    return re.compile(re.escape(config.placeholder_prefix) + "(.*?)" + re.escape(config.placeholder_suffix))


def find_placeholders(xml: str, config: Config) -> list[str]:
    """Return the names of all placeholders in ``xml`` in document order."""

    return placeholder_pattern(config).findall(xml)


def _split_macro_pattern(config: Config) -> re.Pattern[str]:
    prefix = config.placeholder_prefix
    head = re.escape(prefix[0])
    rest = re.escape(prefix[1:])
    suffix = _TAG_GAP.join(re.escape(char) for char in config.placeholder_suffix)
    # The token body may not leave the paragraph it started in.
    body = r"(?:(?!</w:p>)[\s\S])*?"
    return re.compile(head + "(?:" + rest + "|" + r"(?:<[^>]*>)+" + rest + ")" + body + suffix)


def repair_split_placeholders(xml: str, config: Config) -> str:
    """Rejoin placeholders that Word split across runs.

    Word inserts run boundaries, proofing marks and bookmarks in the middle
    of typed text, so ``{{name}}`` can be stored as
    ``{</w:t></w:r><w:r><w:t>{name}}``. Every match has its embedded tags
    removed; markup outside the token is left alone. Single-character
    prefixes cannot be told apart from ordinary text and are not repaired.
    """

    if len(config.placeholder_prefix) < 2:
        return xml

    repaired = 0

    def strip_tags(match: re.Match[str]) -> str:
        nonlocal repaired
        token = match.group(0)
        cleaned = _TAG_RE.sub("", token)
        if cleaned != token:
            repaired += 1
        return cleaned

    result = _split_macro_pattern(config).sub(strip_tags, xml)
    if repaired:
        logger.debug("Rejoined %d split placeholders", repaired)
    return result
