"""File size formatting and upload helpers."""

from __future__ import annotations

_UNITS = "  kMGTPEZY"


def bytes_to_human_readable(num_bytes: int) -> str:
    """Convert a byte count to a human readable string for display.

    Sizes use decimal (1000-based) units and keep up to two truncated
    decimal places, dropping them when they are both zero.

    Examples:
        >>> bytes_to_human_readable(999)
        '999 Bytes'
        >>> bytes_to_human_readable(1000)
        '1 kB'
        >>> bytes_to_human_readable(1234567)
        '1.23 MB'

    Args:
        num_bytes: File size in bytes.

    Returns:
        Human readable file size.
    """
    if num_bytes < 1000:
        return f"{num_bytes} Bytes"

    digits = str(num_bytes)
    # Left-pad to a multiple of three and split into thousands groups
    digits = "0" * (-len(digits) % 3) + digits
    groups = [digits[i : i + 3] for i in range(0, len(digits), 3)]

    fraction = groups[1][:2]
    decimals = "" if fraction == "00" else f".{fraction}"
    return f"{int(groups[0])}{decimals} {_UNITS[len(groups)]}B"


# Image mimetypes commonly supported by modern browsers
SUPPORTED_IMAGE_MIME_TYPES = (
    "image/jpg",
    "image/jpeg",
    "image/pjpeg",
    "image/png",
    "image/apng",
    "image/avif",
    "image/gif",
    "image/webp",
    "image/svg",
    "image/svg+xml",
    "image/bmp",
    "image/tiff",
)


def is_supported_image(mime_type: str) -> bool:
    """Whether browsers can display an image of this mimetype inline."""
    return mime_type.split(";")[0].strip().lower() in SUPPORTED_IMAGE_MIME_TYPES
