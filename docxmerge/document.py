"""In-memory working set of one DOCX template."""

from __future__ import annotations

import io
import logging
import os
import zipfile
from collections.abc import Mapping
from pathlib import Path
from typing import BinaryIO, Iterator, Union

from docxmerge.config import DEFAULT_CONFIG, Config
from docxmerge.exceptions import ArgumentError, SaveError, UnsupportedImageError
from docxmerge.images import ImageInjection, probe_image
from docxmerge.markup import escape_text, find_placeholders, repair_split_placeholders
from docxmerge.package import (
    CONTENT_TYPES_PARTNAME,
    MEDIA_DIRECTORY,
    SETTINGS_PARTNAME,
    PartStore,
    Source,
    find_main_partname,
    footer_partname,
    header_partname,
    relations_owner,
    relations_partname,
)
from docxmerge.relationships import RelationshipLedger
from docxmerge.tables import clone_row

logger = logging.getLogger(__name__)


def _copy_info(info: zipfile.ZipInfo) -> zipfile.ZipInfo:
    copied = zipfile.ZipInfo(info.filename, date_time=info.date_time)
    copied.compress_type = info.compress_type
    copied.external_attr = info.external_attr
    copied.create_system = info.create_system
    return copied


def _check_text(value: object, what: str) -> None:
    if not isinstance(value, str):
        raise ArgumentError(f"{what} must be text, got {type(value).__name__}")


class Document:
    """A loaded template: its editable XML parts plus relationship bookkeeping.

    Only the main part, numbered headers and footers, the settings part and
    ``[Content_Types].xml`` are held as text; every other entry is copied
    from the source archive when saving. A document is owned by a single
    caller and is not safe for concurrent mutation.
    """

    def __init__(self, store: PartStore, config: Config = DEFAULT_CONFIG):
        self.config = config
        self._store = store

        relations: dict[str, str] = {}
        self.headers = self._load_numbered(header_partname, relations)
        self.footers = self._load_numbered(footer_partname, relations)

        self.content_types_name = CONTENT_TYPES_PARTNAME
        content_types = store.read_part(CONTENT_TYPES_PARTNAME)
        self.main_part_name = find_main_partname(content_types)
        self.main_part = store.read_part(self.main_part_name)
        self._load_relations(self.main_part_name, relations)
        self.settings_part_name = SETTINGS_PARTNAME
        self.settings_part = store.read_part(SETTINGS_PARTNAME)
        self._load_relations(SETTINGS_PARTNAME, relations)

        self._ledger = RelationshipLedger(relations, content_types, store.list_parts())
        self._repair()

    # ------------------------------------------------------------------
    # Loading

    @classmethod
    def load(cls, source: Source, config: Config | None = None) -> Document:
        """Open ``source`` (a path or seekable binary stream) as a template."""

        store = PartStore.open(source)
        try:
            document = cls(store, config or DEFAULT_CONFIG)
        except BaseException:
            store.close()
            raise
        logger.debug("Loaded template with main part %s", document.main_part_name)
        return document

    @classmethod
    def loads(cls, data: bytes, config: Config | None = None) -> Document:
        """Open an in-memory DOCX archive."""

        return cls.load(io.BytesIO(data), config)

    def _load_relations(self, partname: str, relations: dict[str, str]) -> None:
        rels = self._store.read_part(relations_partname(partname))
        if rels:
            relations[partname] = rels
        else:
            relations.pop(partname, None)

    def _load_numbered(self, partname_for, relations: dict[str, str]) -> dict[int, str]:
        parts: dict[int, str] = {}
        index = 1
        while self._store.has_part(partname_for(index)):
            partname = partname_for(index)
            parts[index] = self._store.read_part(partname)
            if parts[index]:
                self._load_relations(partname, relations)
            index += 1
        return parts

    def _repair(self) -> None:
        self.main_part = repair_split_placeholders(self.main_part, self.config)
        if not self.config.repair_headers_footers:
            return
        for parts in (self.headers, self.footers):
            for index, xml in parts.items():
                parts[index] = repair_split_placeholders(xml, self.config)

    # ------------------------------------------------------------------
    # Ledger state

    @property
    def content_types(self) -> str:
        return self._ledger.content_types

    @property
    def relations(self) -> dict[str, str]:
        return self._ledger.relations

    @property
    def images(self) -> dict[str, ImageInjection]:
        return self._ledger.images

    def _content_parts(self) -> Iterator[tuple[str, str]]:
        yield self.main_part_name, self.main_part
        for index, xml in self.headers.items():
            yield header_partname(index), xml
        for index, xml in self.footers.items():
            yield footer_partname(index), xml

    def _store_part(self, partname: str, xml: str) -> None:
        if partname == self.main_part_name:
            self.main_part = xml
            return
        for index in self.headers:
            if header_partname(index) == partname:
                self.headers[index] = xml
                return
        for index in self.footers:
            if footer_partname(index) == partname:
                self.footers[index] = xml
                return

    # ------------------------------------------------------------------
    # Text placeholders

    def variables(self) -> list[str]:
        """Names of all placeholders in the body, headers and footers."""

        names: list[str] = []
        for _partname, xml in self._content_parts():
            for name in find_placeholders(xml, self.config):
                if name not in names:
                    names.append(name)
        return names

    def set_value(self, name: str, value: str) -> None:
        """Replace every ``{{name}}`` in the body, headers and footers with ``value``."""

        _check_text(name, "placeholder name")
        _check_text(value, f"value for {name!r}")
        self._replace(name, value)

    def set_values(self, values: Mapping[str, str]) -> None:
        """Apply :meth:`set_value` for each item of ``values``.

        Types are checked before anything is replaced. Pairs are applied one
        after another, so an :class:`~docxmerge.exceptions.EncodingError`
        leaves the pairs before it applied.
        """

        if not isinstance(values, Mapping):
            raise ArgumentError(f"values must be a mapping of names to text, got {type(values).__name__}")
        for name, value in values.items():
            _check_text(name, "placeholder name")
            _check_text(value, f"value for {name!r}")
        for name, value in values.items():
            self._replace(name, value)

    def _replace(self, name: str, value: str) -> None:
        search = escape_text(self.config.wrap(name), name)
        replacement = escape_text(value, name)

        occurrences = 0
        for partname, xml in list(self._content_parts()):
            found = xml.count(search)
            if found:
                occurrences += found
                self._store_part(partname, xml.replace(search, replacement))
        logger.debug("Replaced %d occurrences of %s", occurrences, name)

    # ------------------------------------------------------------------
    # Images

    def image_value(self, path: Union[str, os.PathLike]) -> ImageInjection:
        """Probe the image at ``path`` for use with :meth:`set_image`."""

        return probe_image(path)

    def set_image(self, search: str, image: ImageInjection) -> int:
        """Replace the image marks ``search`` / ``search:<args>`` with ``image``.

        Returns the number of marks replaced across all parts.
        """

        _check_text(search, "image placeholder name")
        if not isinstance(image, ImageInjection):
            raise ArgumentError(f"image must be an ImageInjection, got {type(image).__name__}")
        if not image.type:
            raise UnsupportedImageError(f"unsupported image type: {image.path}")

        total = 0
        for partname, xml in list(self._content_parts()):
            updated, replaced = self._ledger.inject(partname, xml, search, image, self.config)
            if replaced:
                self._store_part(partname, updated)
                total += replaced
        if not total:
            logger.warning("No image placeholder %s found in %s", search, image.path)
        return total

    # ------------------------------------------------------------------
    # Tables

    def clone_row(self, mark: str, count: int) -> None:
        """Repeat the table row holding ``mark``; see :func:`docxmerge.tables.clone_row`."""

        _check_text(mark, "row mark")
        self.main_part = clone_row(self.main_part, mark, count, self.config)

    # ------------------------------------------------------------------
    # Saving

    def _current_part(self, partname: str) -> bytes | None:
        if partname == self.main_part_name and self.main_part:
            return self.main_part.encode("utf-8")
        if partname == self.content_types_name and self.content_types:
            return self.content_types.encode("utf-8")
        if partname == self.settings_part_name:
            return self.settings_part.encode("utf-8")
        for index, xml in self.headers.items():
            if partname == header_partname(index):
                return xml.encode("utf-8")
        for index, xml in self.footers.items():
            if partname == footer_partname(index):
                return xml.encode("utf-8")
        return None

    def _build(self) -> io.BytesIO:
        buffer = io.BytesIO()
        relations = self.relations
        with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
            for info in self._store.infolist():
                partname = info.filename
                owner = relations_owner(partname)
                if owner != partname and owner in relations:
                    continue

                data = self._current_part(partname)
                if data is None:
                    data = self._store.read_bytes(partname)
                self._write_entry(archive, _copy_info(info), data)

                if partname in relations:
                    rels_info = zipfile.ZipInfo(relations_partname(partname), date_time=info.date_time)
                    rels_info.compress_type = zipfile.ZIP_DEFLATED
                    self._write_entry(archive, rels_info, relations[partname].encode("utf-8"))

            for target, path in self._ledger.media().items():
                entry = f"{MEDIA_DIRECTORY}/{target}"
                try:
                    data = Path(path).read_bytes()
                except OSError as exc:
                    raise SaveError(f"failed to read image {path} for {entry}", entry, exc) from exc
                self._write_entry(archive, zipfile.ZipInfo(entry), data, compress_type=zipfile.ZIP_DEFLATED)

        logger.debug(
            "Assembled package",
            extra={"package_size": buffer.tell(), "media_count": len(self._ledger.media())},
        )
        buffer.seek(0)
        return buffer

    @staticmethod
    def _write_entry(archive: zipfile.ZipFile, info: zipfile.ZipInfo, data: bytes, compress_type=None) -> None:
        try:
            archive.writestr(info, data, compress_type=compress_type)
        except (OSError, ValueError, zipfile.BadZipFile) as exc:
            raise SaveError(f"failed to save part {info.filename}", info.filename, exc) from exc

    def save_to_buffer(self) -> io.BytesIO:
        """Return the merged package as an in-memory buffer positioned at 0."""

        return self._build()

    def write_to(self, stream: BinaryIO) -> int:
        """Write the merged package to ``stream`` and return the number of bytes written."""

        data = self._build().getvalue()
        try:
            stream.write(data)
        except OSError as exc:
            raise SaveError(f"failed to write package: {exc}", "<stream>", exc) from exc
        return len(data)

    def save(self, path: Union[str, os.PathLike]) -> None:
        """Write the merged package to ``path``.

        The package is assembled in memory first, so ``path`` may be the
        template the document was loaded from.
        """

        data = self.save_to_buffer().getvalue()
        try:
            Path(path).write_bytes(data)
        except OSError as exc:
            raise SaveError(f"failed to write {os.fspath(path)}", os.fspath(path), exc) from exc

    # ------------------------------------------------------------------
    # Resources

    def close(self) -> None:
        """Release the source archive."""

        self._store.close()

    def __enter__(self) -> Document:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def load(source: Source, config: Config | None = None) -> Document:
    """Open a DOCX template from a path or seekable binary stream."""

    return Document.load(source, config)


def loads(data: bytes, config: Config | None = None) -> Document:
    """Open a DOCX template from bytes."""

    return Document.loads(data, config)
