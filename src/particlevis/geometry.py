"""
Small geometry and colour helpers shared by the path, engine and render code.

Colours are handled as ``#rrggbb`` strings. Parsing never raises: any channel
that cannot be read is treated as 0.
"""

import math


def segment_length(p0, p1):
    """Euclidean distance between two ``(x, y)`` points."""
    return math.hypot(p1[0] - p0[0], p1[1] - p0[1])


def cumulative_lengths(points):
    """
    Running arc length at the end of each segment of a polyline.

    The result has ``len(points) - 1`` entries and never decreases.
    """
    lengths = []
    total = 0.0
    for p0, p1 in zip(points, points[1:]):
        total += segment_length(p0, p1)
        lengths.append(total)
    return lengths


def _parse_channel(text):
    try:
        return int(text, 16) if len(text) == 2 else 0
    except ValueError:
        return 0


def parse_hex(color):
    """Parse ``#rrggbb`` (or ``#rgb``) into an ``(r, g, b)`` tuple."""
    if not isinstance(color, str):
        return (0, 0, 0)
    c = color.strip().lstrip("#")
    if len(c) == 3:
        c = "".join(ch * 2 for ch in c)
    return tuple(_parse_channel(c[i : i + 2]) for i in (0, 2, 4))


def to_hex(rgb):
    r, g, b = (max(0, min(255, int(v))) for v in rgb)
    return f"#{r:02x}{g:02x}{b:02x}"


def normalise_hex(color):
    """Canonical lowercase ``#rrggbb`` form of ``color``."""
    return to_hex(parse_hex(color))


def invert_hex(color):
    return to_hex(255 - c for c in parse_hex(color))


def _round_half_up(value):
    return int(math.floor(value + 0.5))


def lerp_color(a, b, t):
    """Interpolate each channel from ``a`` to ``b`` and round to the nearest int."""
    ca = parse_hex(a)
    cb = parse_hex(b)
    return to_hex(_round_half_up(x + (y - x) * t) for x, y in zip(ca, cb))


def modulated_color(base, t):
    """Blend ``base`` towards its inverse by ``t`` in ``[0, 1]``."""
    return lerp_color(base, invert_hex(base), t)
