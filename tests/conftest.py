"""Shared builders for small but complete DOCX packages and images."""

from __future__ import annotations

import io
import struct
import zipfile
import zlib

import pytest

from docxmerge.config import DEFAULT_CONFIG

W_NS = "http://schemas.openxmlformats.org/wordprocessingml/2006/main"
R_NS = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"
PART_NAMESPACES = (
    f'xmlns:w="{W_NS}" xmlns:r="{R_NS}" '
    'xmlns:v="urn:schemas-microsoft-com:vml" xmlns:o="urn:schemas-microsoft-com:office:office"'
)
XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'

PACKAGE_RELS = (
    XML_DECLARATION + '<Relationships xmlns="http://schemas.openxmlformats.org/package/2006/relationships">'
    '<Relationship Id="rId1" '
    'Type="http://schemas.openxmlformats.org/officeDocument/2006/relationships/officeDocument" '
    'Target="word/document.xml"/>'
    "</Relationships>"
)

DOCUMENT_RELS = (
    XML_DECLARATION + '<Relationships xmlns="http://schemas.openxmlformats.org/package/2006/relationships">'
    '<Relationship Id="rId1" Type="http://schemas.openxmlformats.org/officeDocument/2006/relationships/settings" '
    'Target="settings.xml"/>'
    '<Relationship Id="rId2" Type="http://schemas.openxmlformats.org/officeDocument/2006/relationships/header" '
    'Target="header1.xml"/>'
    '<Relationship Id="rId3" Type="http://schemas.openxmlformats.org/officeDocument/2006/relationships/footer" '
    'Target="footer1.xml"/>'
    "</Relationships>"
)

CONTENT_TYPES = (
    XML_DECLARATION + '<Types xmlns="http://schemas.openxmlformats.org/package/2006/content-types">'
    '<Default Extension="rels" ContentType="application/vnd.openxmlformats-package.relationships+xml"/>'
    '<Default Extension="xml" ContentType="application/xml"/>'
    '<Override PartName="/word/document.xml" '
    'ContentType="application/vnd.openxmlformats-officedocument.wordprocessingml.document.main+xml"/>'
    '<Override PartName="/word/settings.xml" '
    'ContentType="application/vnd.openxmlformats-officedocument.wordprocessingml.settings+xml"/>'
    '<Override PartName="/word/header1.xml" '
    'ContentType="application/vnd.openxmlformats-officedocument.wordprocessingml.header+xml"/>'
    '<Override PartName="/word/footer1.xml" '
    'ContentType="application/vnd.openxmlformats-officedocument.wordprocessingml.footer+xml"/>'
    "</Types>"
)

SETTINGS_XML = XML_DECLARATION + f'<w:settings xmlns:w="{W_NS}"><w:zoom w:percent="100"/></w:settings>'


def run(text: str) -> str:
    return f'<w:r><w:t xml:space="preserve">{text}</w:t></w:r>'


def paragraph(text: str) -> str:
    return f"<w:p>{run(text)}</w:p>"


def table_row(*cells: str, attrs: str = "") -> str:
    opening = f"<w:tr {attrs}>" if attrs else "<w:tr>"
    return opening + "".join(f"<w:tc>{paragraph(cell)}</w:tc>" for cell in cells) + "</w:tr>"


def table(*rows: str) -> str:
    return "<w:tbl><w:tblPr/>" + "".join(rows) + "</w:tbl>"


def document_xml(body: str) -> str:
    return XML_DECLARATION + f"<w:document {PART_NAMESPACES}><w:body>{body}<w:sectPr/></w:body></w:document>"


def header_xml(body: str) -> str:
    return XML_DECLARATION + f"<w:hdr {PART_NAMESPACES}>{body}</w:hdr>"


def footer_xml(body: str) -> str:
    return XML_DECLARATION + f"<w:ftr {PART_NAMESPACES}>{body}</w:ftr>"


def build_docx(
    body: str,
    header: str = paragraph("Header {{title}}"),
    footer: str = paragraph("Page footer {{title}}"),
    extra: dict[str, bytes | str] | None = None,
) -> bytes:
    """Assemble a DOCX archive with a body, one header and one footer."""

    parts: dict[str, bytes | str] = {
        "[Content_Types].xml": CONTENT_TYPES,
        "_rels/.rels": PACKAGE_RELS,
        "word/document.xml": document_xml(body),
        "word/_rels/document.xml.rels": DOCUMENT_RELS,
        "word/settings.xml": SETTINGS_XML,
        "word/header1.xml": header_xml(header),
        "word/footer1.xml": footer_xml(footer),
    }
    parts.update(extra or {})

    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
        for name, content in parts.items():
            archive.writestr(name, content.encode("utf-8") if isinstance(content, str) else content)
    return buffer.getvalue()


def read_entries(data: bytes) -> dict[str, bytes]:
    with zipfile.ZipFile(io.BytesIO(data)) as archive:
        return {info.filename: archive.read(info.filename) for info in archive.infolist()}


def png_bytes(width: int, height: int) -> bytes:
    def chunk(kind: bytes, data: bytes) -> bytes:
        return struct.pack(">I", len(data)) + kind + data + struct.pack(">I", zlib.crc32(kind + data) & 0xFFFFFFFF)

    header = struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0)
    pixels = b"".join(b"\x00" + b"\xff\x00\x00" * width for _ in range(height))
    return (
        b"\x89PNG\r\n\x1a\n"
        + chunk(b"IHDR", header)
        + chunk(b"IDAT", zlib.compress(pixels))
        + chunk(b"IEND", b"")
    )


def gif_bytes(width: int, height: int) -> bytes:
    return b"GIF89a" + struct.pack("<HH", width, height) + b"\x80\x00\x00" + b"\x00" * 6 + b"\x3b"


def jpeg_bytes(width: int, height: int, adobe: bool = False) -> bytes:
    """A JPEG header with no APP0 segment: DQT first, then SOF0 and EOI."""

    def segment(marker: bytes, data: bytes) -> bytes:
        return b"\xff" + marker + struct.pack(">H", len(data) + 2) + data

    app14 = segment(b"\xee", b"Adobe\x00\x64\x00\x00\x00\x00\x01") if adobe else b""
    quantization = segment(b"\xdb", b"\x00" + bytes(range(1, 65)))
    frame = segment(b"\xc0", struct.pack(">BHHB", 8, height, width, 3) + b"\x01\x11\x00\x02\x11\x01\x03\x11\x01")
    return b"\xff\xd8" + app14 + quantization + frame + b"\xff\xd9"


@pytest.fixture
def config():
    return DEFAULT_CONFIG


@pytest.fixture
def png_path(tmp_path):
    path = tmp_path / "logo.png"
    path.write_bytes(png_bytes(40, 20))
    return path


@pytest.fixture
def gif_path(tmp_path):
    path = tmp_path / "badge.gif"
    path.write_bytes(gif_bytes(10, 10))
    return path
