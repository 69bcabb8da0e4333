"""
utils.py

Utility functions for SlideKit: colors, data URLs and image sniffing.
"""

from __future__ import annotations

import base64
import binascii
import re
from typing import Optional, Tuple

_HEX_COLOR_RE = re.compile(r"^#[0-9A-Fa-f]{6}$")

# Leading byte signatures of the raster formats Pillow is expected to decode
_IMAGE_SIGNATURES = (
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
    (b"BM", "image/bmp"),
    (b"II*\x00", "image/tiff"),
    (b"MM\x00*", "image/tiff"),
)


def is_valid_hex_color(color: str) -> bool:
    """Check for a ``#RRGGBB`` color string."""
    return isinstance(color, str) and bool(_HEX_COLOR_RE.match(color))


def normalize_hex_color(color: str) -> Optional[str]:
    """Normalize user input to ``#rrggbb``, adding a missing ``#``.

    Returns:
        The normalized color, or None if the input is not a 6-digit hex color.
    """
    if not isinstance(color, str):
        return None
    s = color.strip()
    if not s.startswith("#"):
        s = "#" + s
    if not is_valid_hex_color(s):
        return None
    return s.lower()


def hex_to_rgb(hex_color: str) -> Optional[Tuple[int, int, int]]:
    """
    Convert hex color string to RGB tuple.

    Args:
        hex_color: Color in format "#RRGGBB" or "#RRGGBBAA"

    Returns:
        Tuple of (r, g, b) or None if invalid
    """
    if not hex_color or not hex_color.startswith("#"):
        return None

    hex_color = hex_color.lstrip("#")

    # #RRGGBBAA: drop the alpha byte
    if len(hex_color) == 8:
        hex_color = hex_color[:6]

    if len(hex_color) != 6:
        return None

    try:
        r = int(hex_color[0:2], 16)
        g = int(hex_color[2:4], 16)
        b = int(hex_color[4:6], 16)
        return (r, g, b)
    except ValueError:
        return None


def sniff_image_mime(data: bytes) -> Optional[str]:
    """Guess an image MIME type from the leading bytes of *data*."""
    head = bytes(data[:16])
    for signature, mime in _IMAGE_SIGNATURES:
        if head.startswith(signature):
            return mime
    if head[:4] == b"RIFF" and head[8:12] == b"WEBP":
        return "image/webp"
    return None


def to_data_url(data: bytes, mime: str) -> str:
    """Encode raw bytes as a base64 data URL."""
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"


def parse_data_url(url: str) -> Tuple[str, bytes]:
    """
    Decode a base64 data URL.

    Args:
        url: String of the form ``data:<mime>;base64,<payload>``

    Returns:
        Tuple of (mime, raw bytes)

    Raises:
        ValueError: If the string is not a base64 data URL.
    """
    if not isinstance(url, str) or not url.startswith("data:"):
        raise ValueError("not a data URL")
    header, sep, payload = url.partition(",")
    if not sep or not header.endswith(";base64"):
        raise ValueError("only base64 data URLs are supported")
    mime = header[len("data:"):-len(";base64")]
    try:
        return mime, base64.b64decode(payload, validate=True)
    except binascii.Error as e:
        raise ValueError(f"bad base64 payload: {e}") from e


def slide_file_name(base_name: str, index: int, extension: str) -> str:
    """File name for one exported slide: ``<base>_<NNN>.<ext>`` (1-based)."""
    return f"{base_name}_{index + 1:03d}.{extension}"
