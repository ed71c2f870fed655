"""Image probing and the placeholder mini-syntax for image marks."""

from __future__ import annotations

import logging
import os
import re
import struct
from dataclasses import dataclass, replace
from typing import Union

from docx.image.exceptions import InvalidImageStreamError, UnexpectedEndOfFileError, UnrecognizedImageError
from docx.image.image import Image
from docx.image.jpeg import _JfifMarkers
from docx.opc.constants import CONTENT_TYPE as CT

from docxmerge.exceptions import UnsupportedImageError

logger = logging.getLogger(__name__)

PNG = "png"
GIF = "gif"
BMP = "bmp"
JPEG = "jpeg"

_SIGNATURES: tuple[tuple[bytes, str], ...] = (
    (b"\x89PNG\r\n\x1a\n", PNG),
    (b"GIF", GIF),
    (b"BM", BMP),
    (b"\xff\xd8\xff", JPEG),
)

MEDIA_CONTENT_TYPES = {
    PNG: CT.PNG,
    GIF: CT.GIF,
    BMP: CT.BMP,
    JPEG: CT.JPEG,
}

_SIZE_TOKEN_RE = re.compile(r"([0-9]*[a-z%]{0,2}|auto)x([0-9]*[a-z%]{0,2}|auto)")
_LENGTH_RE = re.compile(r"(?P<value>\d+(?:\.\d+)?)(?P<unit>[a-z%]*)")
_RATIO_OFF = frozenset({"false", "f", "0", "no", "n"})


@dataclass
class ImageInjection:
    """An image waiting to be embedded in the package.

    ``target`` and ``rid`` are filled in once the image has been attached
    to a mark; records that share a ``path`` share a ``target`` so the
    media file is only stored once.
    """

    path: str
    type: str
    width: int
    height: int
    search: str = ""
    target: str = ""
    rid: str = ""

    @property
    def content_type(self) -> str:
        return MEDIA_CONTENT_TYPES[self.type]

    def with_size(self, width: int | None = None, height: int | None = None) -> ImageInjection:
        """Return a copy with the pixel ``width`` and/or ``height`` overridden."""

        changes = {}
        if width is not None:
            changes["width"] = width
        if height is not None:
            changes["height"] = height
        return replace(self, **changes)


def detect_image_type(source: Union[str, os.PathLike, bytes]) -> str:
    """Return ``png``, ``gif``, ``bmp`` or ``jpeg`` from the leading bytes of ``source``."""

    if isinstance(source, bytes):
        header = source[:8]
        label = "<bytes>"
    else:
        label = os.fspath(source)
        try:
            with open(source, "rb") as handle:
                header = handle.read(8)
        except FileNotFoundError as exc:
            raise UnsupportedImageError(f"{label} does not exist", exc) from exc
        except PermissionError as exc:
            raise UnsupportedImageError(f"{label} is not readable (permission denied)", exc) from exc
        except OSError as exc:
            raise UnsupportedImageError(f"{label} could not be read", exc) from exc

    for signature, image_type in _SIGNATURES:
        if header.startswith(signature):
            return image_type
    raise UnsupportedImageError(f"unsupported image type: {label}")


def _jpeg_size(path: str) -> tuple[int, int]:
    """Read the pixel size from the first SOFn segment of a JPEG.

    Unlike :meth:`Image.from_file`, this does not require a JFIF or Exif
    header, so baseline and Adobe (APP14) files are sized too.
    """

    with open(path, "rb") as stream:
        try:
            sof = _JfifMarkers.from_stream(stream).sof
        except KeyError as exc:
            raise UnsupportedImageError(f"no start of frame in {path}", exc) from exc
        # the marker scanner raises a plain Exception when the file ends early
        except Exception as exc:
            raise UnsupportedImageError(f"could not read dimensions of {path}", exc) from exc
    return sof.px_width, sof.px_height


def probe_image(path: Union[str, os.PathLike]) -> ImageInjection:
    """Build an :class:`ImageInjection` for the image file at ``path``."""

    path = os.fspath(path)
    image_type = detect_image_type(path)
    try:
        if image_type == JPEG:
            width, height = _jpeg_size(path)
        else:
            image = Image.from_file(path)
            width, height = image.px_width, image.px_height
    except (InvalidImageStreamError, UnexpectedEndOfFileError, UnrecognizedImageError, struct.error) as exc:
        raise UnsupportedImageError(f"could not read dimensions of {path}", exc) from exc

    logger.debug(
        "Probed image %s",
        path,
        extra={"image_type": image_type, "image_width": width, "image_height": height},
    )
    return ImageInjection(path=path, type=image_type, width=width, height=height)


def _split_size(value: str) -> tuple[str, str]:
    width, _, height = value.partition("x")
    return width, height


def parse_image_args(name: str) -> dict[str, str]:
    """Parse the arguments of an image mark such as ``logo:size=120x40``.

    Accepted forms after the base name, separated by ``:``: ``WxH``,
    ``arg=value`` pairs (``size=WxH`` sets both dimensions) and up to three
    positional values read as width, height and ratio.
    """

    args: dict[str, str] = {}
    for position, token in enumerate(name.split(":")[1:]):
        if "=" in token:
            arg_name, arg_value = token.split("=", 1)
            arg_name = arg_name.lower()
            if arg_name == "size":
                args["width"], args["height"] = _split_size(arg_value)
            else:
                args[arg_name] = arg_value
        elif _SIZE_TOKEN_RE.fullmatch(token):
            args["width"], args["height"] = _split_size(token)
        elif position == 0:
            args["width"] = token
        elif position == 1:
            args["height"] = token
        elif position == 2:
            args["ratio"] = token
    return args


def _parse_length(raw: str | None) -> tuple[float, str] | None:
    if raw is None:
        return None
    raw = raw.strip().lower()
    if raw in ("", "auto"):
        return None
    match = _LENGTH_RE.fullmatch(raw)
    if match is None:
        logger.warning("Ignoring unrecognised image dimension %r", raw)
        return None
    return float(match.group("value")), match.group("unit") or "px"


def _format_length(value: float, unit: str) -> str:
    number = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{number}{unit}"


def resolve_dimensions(image: ImageInjection, args: dict[str, str]) -> tuple[str, str]:
    """Return CSS width and height for ``image`` drawn at a mark with ``args``."""

    width = _parse_length(args.get("width"))
    height = _parse_length(args.get("height"))
    keep_ratio = args.get("ratio", "true").strip().lower() not in _RATIO_OFF
    natural_w, natural_h = image.width, image.height

    if width is None and height is None:
        return _format_length(natural_w, "px"), _format_length(natural_h, "px")
    if natural_w <= 0 or natural_h <= 0:
        width = width or (float(natural_w), "px")
        height = height or (float(natural_h), "px")
        return _format_length(*width), _format_length(*height)

    aspect = natural_w / natural_h
    if height is None:
        height = (width[0] / aspect, width[1])
    elif width is None:
        width = (height[0] * aspect, height[1])
    elif keep_ratio and width[1] == height[1]:
        if width[0] / height[0] > aspect:
            width = (height[0] * aspect, width[1])
        else:
            height = (width[0] / aspect, height[1])

    return _format_length(*width), _format_length(*height)


def matching_image_marks(names: list[str], search: str) -> list[str]:
    """Select the marks that address ``search``: ``search`` itself or ``search:<args>``."""

    prefix = search + ":"
    marks: list[str] = []
    for name in names:
        if (name == search or name.startswith(prefix)) and name not in marks:
            marks.append(name)
    return marks
