"""Tests for image type detection, probing and mark arguments."""

from __future__ import annotations

import pytest

from conftest import gif_bytes, jpeg_bytes, png_bytes
from docxmerge.exceptions import UnsupportedImageError
from docxmerge.images import (
    ImageInjection,
    detect_image_type,
    matching_image_marks,
    parse_image_args,
    probe_image,
    resolve_dimensions,
)


@pytest.mark.parametrize(
    ("header", "expected"),
    [
        (b"\x89PNG\r\n\x1a\n\x00\x00", "png"),
        (b"GIF89a", "gif"),
        (b"BM\x00\x00", "bmp"),
        (b"\xff\xd8\xff\xe0", "jpeg"),
    ],
)
def test_detect_image_type_from_magic_bytes(header, expected):
    assert detect_image_type(header) == expected


def test_detect_image_type_rejects_unknown_signature(tmp_path):
    path = tmp_path / "notes.txt"
    path.write_bytes(b"plain text")

    with pytest.raises(UnsupportedImageError, match="unsupported image type"):
        detect_image_type(path)


def test_detect_image_type_reports_missing_file(tmp_path):
    with pytest.raises(UnsupportedImageError, match="does not exist"):
        detect_image_type(tmp_path / "missing.png")


def test_probe_image_reads_png_dimensions(png_path):
    image = probe_image(png_path)

    assert image.type == "png"
    assert (image.width, image.height) == (40, 20)
    assert image.path == str(png_path)
    assert image.content_type == "image/png"


def test_probe_image_reads_gif_dimensions(tmp_path):
    path = tmp_path / "wide.gif"
    path.write_bytes(gif_bytes(300, 100))

    image = probe_image(path)

    assert (image.type, image.width, image.height) == ("gif", 300, 100)


@pytest.mark.parametrize("adobe", [False, True])
def test_probe_image_reads_jpeg_without_jfif_header(tmp_path, adobe):
    path = tmp_path / "scan.jpg"
    path.write_bytes(jpeg_bytes(40, 30, adobe=adobe))

    image = probe_image(path)

    assert (image.type, image.width, image.height) == ("jpeg", 40, 30)
    assert image.content_type == "image/jpeg"


def test_probe_image_rejects_jpeg_without_frame(tmp_path):
    path = tmp_path / "empty.jpg"
    path.write_bytes(b"\xff\xd8\xff\xd9")

    with pytest.raises(UnsupportedImageError):
        probe_image(path)


def test_with_size_returns_a_resized_copy(tmp_path):
    path = tmp_path / "small.png"
    path.write_bytes(png_bytes(2, 2))
    image = probe_image(path)

    resized = image.with_size(width=64)

    assert (resized.width, resized.height) == (64, 2)
    assert (image.width, image.height) == (2, 2)


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("logo", {}),
        ("logo:100x200", {"width": "100", "height": "200"}),
        ("logo:autox50", {"width": "auto", "height": "50"}),
        ("logo:size=5cmx3cm:ratio=false", {"width": "5cm", "height": "3cm", "ratio": "false"}),
        ("logo:120:80:f", {"width": "120", "height": "80", "ratio": "f"}),
        ("logo:Width=50", {"width": "50"}),
    ],
)
def test_parse_image_args(name, expected):
    assert parse_image_args(name) == expected


def _image(width, height):
    return ImageInjection(path="picture.png", type="png", width=width, height=height)


def test_resolve_dimensions_defaults_to_pixel_size():
    assert resolve_dimensions(_image(400, 200), {}) == ("400px", "200px")


def test_resolve_dimensions_derives_missing_side_from_aspect_ratio():
    assert resolve_dimensions(_image(400, 200), {"width": "100"}) == ("100px", "50px")
    assert resolve_dimensions(_image(400, 200), {"height": "5cm"}) == ("10cm", "5cm")
    assert resolve_dimensions(_image(400, 200), {"width": "auto", "height": "30"}) == ("60px", "30px")


def test_resolve_dimensions_fits_box_unless_ratio_disabled():
    box = {"width": "100", "height": "100"}

    assert resolve_dimensions(_image(400, 200), box) == ("100px", "50px")
    assert resolve_dimensions(_image(400, 200), {**box, "ratio": "false"}) == ("100px", "100px")


def test_matching_image_marks_accepts_name_and_argument_forms():
    names = ["logo", "logo:10x10", "logos", "other", "logo"]

    assert matching_image_marks(names, "logo") == ["logo", "logo:10x10"]
