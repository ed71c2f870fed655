"""Relationship and content-type bookkeeping for injected images."""

from __future__ import annotations

import logging
import posixpath
import re
from dataclasses import replace
from typing import Iterable

from docx.opc.constants import CONTENT_TYPE as CT
from docx.opc.constants import RELATIONSHIP_TYPE as RT
from jinja2 import Environment
from lxml import etree

from docxmerge.config import Config
from docxmerge.images import ImageInjection, matching_image_marks, parse_image_args, resolve_dimensions
from docxmerge.markup import find_placeholders
from docxmerge.package import MEDIA_DIRECTORY, relations_partname

logger = logging.getLogger(__name__)

_RELATIONSHIPS_NS = "http://schemas.openxmlformats.org/package/2006/relationships"
_RID_RE = re.compile(r"rId(\d+)$")
_SELF_CLOSING_ROOT_RE = re.compile(r"<(Relationships|Types)(\b[^>]*?)\s*/>")

_templates = Environment(autoescape=True)

PICTURE_TEMPLATE = _templates.from_string(
    '<w:pict><v:shape type="#_x0000_t75" style="width:{{ width }};height:{{ height }}">'
    '<v:imagedata r:id="{{ rid }}" o:title=""/></v:shape></w:pict>'
)
RELATIONSHIP_TEMPLATE = _templates.from_string(
    '<Relationship Id="{{ rid }}" Type="{{ reltype }}" Target="media/{{ target }}"/>'
)
OVERRIDE_TEMPLATE = _templates.from_string('<Override PartName="/{{ partname }}" ContentType="{{ content_type }}"/>')
EMPTY_RELATIONSHIPS = (
    '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'
    f'<Relationships xmlns="{_RELATIONSHIPS_NS}"></Relationships>'
)


def _insert_before_closing(xml: str, root: str, fragment: str) -> str:
    closing = f"</{root}>"
    if closing not in xml:
        xml = _SELF_CLOSING_ROOT_RE.sub(lambda m: f"<{m.group(1)}{m.group(2)}></{m.group(1)}>", xml, count=1)
    head, found, tail = xml.rpartition(closing)
    if not found:
        return xml + fragment
    return head + fragment + closing + tail


def _seed_relationship_id(rels_xml: str) -> int:
    """Return the first free numeric relationship id for ``rels_xml``."""

    if not rels_xml:
        return 1
    try:
        root = etree.fromstring(rels_xml.encode("utf-8"))
    except etree.XMLSyntaxError:
        return rels_xml.count("<Relationship ") + 1

    relationships = root.findall(f"{{{_RELATIONSHIPS_NS}}}Relationship")
    highest = len(relationships)
    for relationship in relationships:
        match = _RID_RE.match(relationship.get("Id", ""))
        if match:
            highest = max(highest, int(match.group(1)))
    return highest + 1


class RelationshipLedger:
    """Relationship files, the content-types part and pending media of one document.

    ``relations`` maps a part name to the text of its ``_rels`` entry. A part
    only has a key once it has relationship content; the key is created the
    first time an image is attached to a part without one.
    """

    def __init__(self, relations: dict[str, str], content_types: str, existing_names: Iterable[str] = ()):
        self.relations = relations
        self.content_types = content_types
        self.images: dict[str, ImageInjection] = {}
        self._media: dict[str, str] = {}
        self._next_rid: dict[str, int] = {}
        self._existing_names = set(existing_names)

    def next_relationship_id(self, partname: str) -> str:
        if partname not in self._next_rid:
            self._next_rid[partname] = _seed_relationship_id(self.relations.get(partname, ""))
        number = self._next_rid[partname]
        self._next_rid[partname] = number + 1
        return f"rId{number}"

    def media(self) -> dict[str, str]:
        """Map each distinct media file name to the path it is read from."""

        return dict(self._media)

    def find_by_path(self, path: str) -> ImageInjection | None:
        for image in self.images.values():
            if image.path == path:
                return image
        return None

    def _media_name(self, rid: str, partname: str, image_type: str) -> str:
        stem = f"image_{rid[3:]}_{posixpath.splitext(posixpath.basename(partname))[0]}"
        candidate = f"{stem}.{image_type}"
        counter = 0
        while candidate in self._media or f"{MEDIA_DIRECTORY}/{candidate}" in self._existing_names:
            counter += 1
            candidate = f"{stem}_{counter}.{image_type}"
        return candidate

    def _declare(self, partname: str, content_type: str) -> None:
        if f'PartName="/{partname}"' in self.content_types:
            return
        override = OVERRIDE_TEMPLATE.render(partname=partname, content_type=content_type)
        self.content_types = _insert_before_closing(self.content_types, "Types", override)

    def register(self, partname: str, mark: str, image: ImageInjection) -> ImageInjection:
        """Attach ``image`` to ``mark`` in ``partname`` and record the relationship.

        The returned record carries the relationship id and media target.
        Images already embedded from the same path reuse that media file.
        """

        rid = self.next_relationship_id(partname)
        existing = self.find_by_path(image.path)
        if existing is None:
            target = self._media_name(rid, partname, image.type)
            self._media[target] = image.path
            self._declare(f"{MEDIA_DIRECTORY}/{target}", image.content_type)
        else:
            target = existing.target
        record = replace(image, search=mark, rid=rid, target=target)
        self.images[mark] = record

        if partname not in self.relations:
            self.relations[partname] = EMPTY_RELATIONSHIPS
            self._declare(relations_partname(partname), CT.OPC_RELATIONSHIPS)

        relationship = RELATIONSHIP_TEMPLATE.render(rid=rid, reltype=RT.IMAGE, target=target)
        self.relations[partname] = _insert_before_closing(self.relations[partname], "Relationships", relationship)
        logger.debug(
            "Registered image relationship %s in %s",
            rid,
            partname,
            extra={"image_mark": mark, "image_target": target, "image_reused": existing is not None},
        )
        return record

    def inject(self, partname: str, xml: str, search: str, image: ImageInjection, config: Config) -> tuple[str, int]:
        """Replace every image mark for ``search`` in ``xml`` with a picture.

        The run text holding a mark is split around it: the text before the
        mark, the picture and the text after the mark each keep the run's
        original element. Returns the new XML and the number of marks
        replaced.
        """

        marks = matching_image_marks(find_placeholders(xml, config), search)
        replaced = 0
        for mark in marks:
            pattern = re.compile(
                r"(<[^<]+>)([^<]*)(" + re.escape(config.wrap(mark)) + r")([^>]*)(<[^>]+>)"
            )
            if pattern.search(xml) is None:
                continue

            record = self.register(partname, mark, image)
            width, height = resolve_dimensions(image, parse_image_args(mark))
            picture = PICTURE_TEMPLATE.render(width=width, height=height, rid=record.rid)

            def split_run(match: re.Match[str]) -> str:
                open_tag, before, _mark, after, close_tag = match.groups()
                return open_tag + before + close_tag + picture + open_tag + after + close_tag

            xml = pattern.sub(split_run, xml)
            replaced += 1
        return xml, replaced
