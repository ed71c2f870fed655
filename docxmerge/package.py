"""Read access to the parts of a DOCX (OPC zip) package."""

from __future__ import annotations

import logging
import os
import zipfile
from typing import BinaryIO, Union

from docx.opc.constants import CONTENT_TYPE as CT
from docx.opc.packuri import PackURI
from lxml import etree

from docxmerge.exceptions import LoadError

logger = logging.getLogger(__name__)

CONTENT_TYPES_PARTNAME = "[Content_Types].xml"
SETTINGS_PARTNAME = "word/settings.xml"
DEFAULT_MAIN_PARTNAME = "word/document.xml"
MEDIA_DIRECTORY = "word/media"

_CONTENT_TYPES_NS = "http://schemas.openxmlformats.org/package/2006/content-types"
_MAIN_CONTENT_TYPES = frozenset(
    {
        CT.WML_DOCUMENT_MAIN,
        "application/vnd.ms-word.document.macroEnabled.main+xml",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.template.main+xml",
        "application/vnd.ms-word.template.macroEnabledTemplate.main+xml",
    }
)

Source = Union[str, os.PathLike, BinaryIO]


def header_partname(index: int) -> str:
    return f"word/header{index}.xml"


def footer_partname(index: int) -> str:
    return f"word/footer{index}.xml"


def relations_partname(partname: str) -> str:
    """Return the sibling ``_rels`` entry for ``partname``.

    ``word/header1.xml`` maps to ``word/_rels/header1.xml.rels``.
    """

    return PackURI("/" + partname).rels_uri.membername


def relations_owner(partname: str) -> str:
    """Return the part a ``_rels`` entry belongs to, or ``partname`` itself.

    This is the inverse of :func:`relations_partname` for relationship
    entries. Any other name comes back unchanged.
    """

    if not partname.endswith(".rels") or "_rels/" not in partname:
        return partname
    return partname.replace("_rels/", "", 1)[: -len(".rels")]


def find_main_partname(content_types: str) -> str:
    """Locate the main document part declared in ``[Content_Types].xml``."""

    if not content_types:
        return DEFAULT_MAIN_PARTNAME
    try:
        root = etree.fromstring(content_types.encode("utf-8"))
    except etree.XMLSyntaxError:
        logger.warning("Content types part is not well formed; assuming %s", DEFAULT_MAIN_PARTNAME)
        return DEFAULT_MAIN_PARTNAME

    for override in root.iter(f"{{{_CONTENT_TYPES_NS}}}Override"):
        if override.get("ContentType") in _MAIN_CONTENT_TYPES:
            partname = (override.get("PartName") or "").lstrip("/")
            if partname:
                return partname
    return DEFAULT_MAIN_PARTNAME


class PartStore:
    """Named entries of an opened DOCX archive.

    The store keeps the underlying :class:`zipfile.ZipFile` open until
    :meth:`close` is called so that unmodified entries can be copied
    verbatim when the document is saved.
    """

    def __init__(self, archive: zipfile.ZipFile):
        self._archive = archive
        self._infos = archive.infolist()
        self._names = {info.filename for info in self._infos}

    @classmethod
    def open(cls, source: Source) -> PartStore:
        """Open ``source`` (a path or a seekable binary stream) as a zip archive."""

        label = os.fspath(source) if isinstance(source, (str, os.PathLike)) else "<stream>"
        try:
            archive = zipfile.ZipFile(source)
        except zipfile.BadZipFile as exc:
            raise LoadError(f"{label} is not a valid DOCX archive", exc) from exc
        except OSError as exc:
            raise LoadError(f"failed to open {label}: {exc}", exc) from exc
        logger.debug("Opened %s with %d entries", label, len(archive.infolist()))
        return cls(archive)

    def infolist(self) -> list[zipfile.ZipInfo]:
        return list(self._infos)

    def list_parts(self) -> list[str]:
        return [info.filename for info in self._infos]

    def has_part(self, name: str) -> bool:
        return name in self._names

    def read_bytes(self, name: str) -> bytes:
        """Return the raw content of ``name`` or ``b""`` when it is absent."""

        if name not in self._names:
            return b""
        try:
            return self._archive.read(name)
        except (zipfile.BadZipFile, OSError, RuntimeError) as exc:
            raise LoadError(f"failed to read {name}: {exc}", exc) from exc

    def read_part(self, name: str) -> str:
        """Return ``name`` decoded as UTF-8 text or ``""`` when it is absent."""

        data = self.read_bytes(name)
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise LoadError(f"{name} is not UTF-8 encoded XML", exc) from exc

    def close(self) -> None:
        self._archive.close()
