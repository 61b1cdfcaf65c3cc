"""
Conversions between PDF RGB color triples and ``#rrggbb`` strings.
"""

from typing import Optional, Sequence, Tuple

DEFAULT_COLOR = "#ffff00"


def _channel_to_byte(value: float) -> int:
    # Round half up, then clamp to a byte
    return max(0, min(255, int(float(value) * 255 + 0.5)))


def rgb_to_hex(rgb: Optional[Sequence[float]]) -> str:
    """
    Convert an RGB triple of floats in [0, 1] to a ``#rrggbb`` string.

    Returns :data:`DEFAULT_COLOR` when *rgb* is missing or has fewer than
    three components (e.g. grayscale or empty color arrays).
    """
    if not rgb or len(rgb) < 3:
        return DEFAULT_COLOR
    return "#" + "".join(f"{_channel_to_byte(c):02x}" for c in rgb[:3])


def hex_to_rgb(color: Optional[str]) -> Tuple[float, float, float]:
    """
    Convert a ``#rrggbb`` (or ``#rgb``) string to an RGB triple in [0, 1].

    Malformed strings fall back to :data:`DEFAULT_COLOR`.
    """
    value = (color or DEFAULT_COLOR).strip().lstrip("#")
    if len(value) == 3:
        value = "".join(ch * 2 for ch in value)
    if len(value) != 6:
        value = DEFAULT_COLOR.lstrip("#")

    try:
        channels = [int(value[i : i + 2], 16) for i in (0, 2, 4)]
    except ValueError:
        channels = [int(DEFAULT_COLOR[i : i + 2], 16) for i in (1, 3, 5)]

    r, g, b = (c / 255 for c in channels)
    return r, g, b
