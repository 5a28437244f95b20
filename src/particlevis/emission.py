import math

from particlevis.constants import EMITTER_CIRCLE_RATIO, EMITTER_SQUARE_RATIO

CIRCLE = "circle"
LINE = "line"
SQUARE = "square"
DRAWN_PATH = "drawn_path"

SHAPES = (CIRCLE, LINE, SQUARE, DRAWN_PATH)
PRESET_SHAPES = (CIRCLE, LINE, SQUARE)

# Names used by older embed strings
_ALIASES = {"draw": DRAWN_PATH, "drawnPath": DRAWN_PATH}


def normalise_shape(name):
    """Canonical emitter shape name, or ``None`` if it is not recognised."""
    if not isinstance(name, str):
        return None
    name = _ALIASES.get(name, name)
    return name if name in SHAPES else None


def spawn_position(shape, width, height, rng):
    """
    Spawn coordinate for an emitter shape.

    ``drawn_path`` returns ``None`` because the position comes from the path.
    """
    cx, cy = width / 2, height / 2
    if shape == CIRCLE:
        radius = min(width, height) * EMITTER_CIRCLE_RATIO
        angle = rng.random() * math.pi * 2
        return (cx + math.cos(angle) * radius, cy + math.sin(angle) * radius)
    if shape == LINE:
        return (rng.random() * width, cy)
    if shape == SQUARE:
        size = min(width, height) * EMITTER_SQUARE_RATIO
        half = size / 2
        edge = int(rng.integers(0, 4))
        offset = rng.random() * size
        if edge == 0:  # top
            return (cx - half + offset, cy - half)
        if edge == 1:  # right
            return (cx + half, cy - half + offset)
        if edge == 2:  # bottom
            return (cx - half + offset, cy + half)
        return (cx - half, cy - half + offset)  # left
    return None
