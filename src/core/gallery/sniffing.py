"""
Content sniffing for uploaded media.

The client-declared MIME type is not trusted for routing decisions, so the
pipeline looks at the first bytes of the staged file instead. Only a fixed
set of formats is recognized; anything else comes back as UNKNOWN.
"""

import logging
from pathlib import Path
from typing import Union

from .models import FormatTag

logger = logging.getLogger(__name__)

# enough for every signature below, including the EBML doc type
SNIFF_LENGTH = 4100

# QuickTime files predating ftyp start straight with one of these atoms
_QUICKTIME_ATOMS = {b"moov", b"mdat", b"wide", b"free", b"skip", b"pnot"}

_HEIF_BRANDS = {b"heic", b"heix", b"hevc", b"hevx", b"mif1", b"msf1"}


def sniff(data: bytes) -> FormatTag:
    """Identify the container format of ``data`` from its magic bytes."""
    head = data[:SNIFF_LENGTH]

    if head.startswith(b"\xff\xd8\xff"):
        return FormatTag.JPEG
    if head.startswith(b"\x89PNG\r\n\x1a\n"):
        return FormatTag.PNG
    if head.startswith((b"GIF87a", b"GIF89a")):
        return FormatTag.GIF
    if head[:4] == b"RIFF" and head[8:12] == b"WEBP":
        return FormatTag.WEBP
    if head[:4] == b"RIFF" and head[8:12] == b"AVI ":
        return FormatTag.AVI
    if head.startswith(b"BM") and len(head) >= 14:
        return FormatTag.BMP
    if head.startswith((b"II*\x00", b"MM\x00*")):
        return FormatTag.TIFF
    if head.startswith(b"OggS"):
        return FormatTag.OGG
    if head.startswith(b"\x1a\x45\xdf\xa3"):
        # EBML header; the doc type tells WebM apart from generic Matroska
        if b"webm" in head[:64]:
            return FormatTag.WEBM
        return FormatTag.MATROSKA

    box_type = head[4:8]
    if box_type == b"ftyp":
        brand = head[8:12]
        if brand == b"qt  ":
            return FormatTag.QUICKTIME
        if brand in _HEIF_BRANDS:
            return FormatTag.HEIC
        return FormatTag.MP4
    if box_type in _QUICKTIME_ATOMS:
        return FormatTag.QUICKTIME

    return FormatTag.UNKNOWN


def sniff_file(path: Union[str, Path]) -> FormatTag:
    """Read the head of a file on disk and sniff it."""
    with open(path, "rb") as f:
        head = f.read(SNIFF_LENGTH)

    tag = sniff(head)
    logger.debug("Sniffed file format", extra={"path": str(path), "format": tag.value})
    return tag


def requires_transcode(tag: FormatTag) -> bool:
    """
    True if files of this format get normalized before upload.

    QuickTime containers from phones often carry HEVC, which most
    browsers won't play.
    """
    return tag is FormatTag.QUICKTIME
