import json
import logging
import math

from particlevis.constants import (
    EMITTER_CIRCLE_RATIO,
    PATH_POINT_MIN_SPACING,
    PRESET_SEGMENTS,
    PRESET_SQUARE_RATIO,
    PRESET_SQUARE_SEGMENTS,
)
from particlevis.geometry import cumulative_lengths, segment_length

logger = logging.getLogger(__name__)


class Path:
    """
    An ordered polyline with precomputed cumulative arc lengths.

    Particles travel along it at constant speed by mapping a travel distance
    to a point with ``point_at_distance``.
    """

    def __init__(self, points=None):
        self.points = []
        self.lengths = []
        self.total_length = 0.0
        if points:
            self.set_points(points)

    @property
    def is_traversable(self):
        return len(self.points) >= 2 and self.total_length > 0

    def set_points(self, points):
        """Replace the polyline and recompute its arc lengths."""
        self.points = [(float(x), float(y)) for x, y in points]
        if len(self.points) >= 2:
            self.lengths = cumulative_lengths(self.points)
            self.total_length = self.lengths[-1]
        else:
            self.lengths = []
            self.total_length = 0.0

    def clear(self):
        self.set_points([])

    def point_at_distance(self, distance, fallback=(0.0, 0.0)):
        """
        Return the point ``distance`` units along the path.

        The distance wraps around the total length. Paths with fewer than two
        points, or no length at all, return ``fallback``.
        """
        if len(self.points) < 2 or self.total_length <= 0:
            return fallback

        d = distance % self.total_length
        # First cumulative length >= d; a distance on a boundary stays on the
        # earlier segment.
        index = 0
        while index < len(self.lengths) - 1 and d > self.lengths[index]:
            index += 1

        seg_start = self.lengths[index - 1] if index > 0 else 0.0
        seg_length = self.lengths[index] - seg_start
        (x0, y0), (x1, y1) = self.points[index], self.points[index + 1]
        if seg_length == 0:
            return (x0, y0)
        t = (d - seg_start) / seg_length
        return (x0 + (x1 - x0) * t, y0 + (y1 - y0) * t)


def preset_points(name, width, height):
    """Built-in polylines for the ``circle``, ``line`` and ``square`` presets."""
    cx, cy = width / 2, height / 2
    points = []
    if name == "circle":
        radius = min(width, height) * EMITTER_CIRCLE_RATIO
        for i in range(PRESET_SEGMENTS + 1):
            a = (i / PRESET_SEGMENTS) * math.pi * 2
            points.append((cx + math.cos(a) * radius, cy + math.sin(a) * radius))
    elif name == "line":
        for i in range(PRESET_SEGMENTS + 1):
            points.append(((i / PRESET_SEGMENTS) * width, cy))
    elif name == "square":
        half = min(width, height) * PRESET_SQUARE_RATIO / 2
        corners = [
            (cx - half, cy - half),
            (cx + half, cy - half),
            (cx + half, cy + half),
            (cx - half, cy + half),
            (cx - half, cy - half),
        ]
        for (x0, y0), (x1, y1) in zip(corners, corners[1:]):
            for j in range(PRESET_SQUARE_SEGMENTS + 1):
                t = j / PRESET_SQUARE_SEGMENTS
                points.append((x0 + (x1 - x0) * t, y0 + (y1 - y0) * t))
    else:
        logger.warning(f"[!] Unknown preset path: {name!r}")
    return points


class PathRecorder:
    """Collects free-hand points between ``begin`` and ``end``."""

    def __init__(self):
        self.points = []
        self.drawing = False

    def begin(self, existing=()):
        # A new stroke continues from whatever was recorded before.
        self.points = list(existing)
        self.drawing = True

    def append(self, x, y):
        if not self.drawing:
            return False
        if self.points and segment_length(self.points[-1], (x, y)) <= PATH_POINT_MIN_SPACING:
            return False
        self.points.append((float(x), float(y)))
        return True

    def end(self):
        self.drawing = False
        return list(self.points)

    def clear(self):
        self.points = []
        self.drawing = False


def load_points(filepath):
    """Read a JSON list of ``[x, y]`` pairs."""
    logger.info(f"[+] Loading path points: {filepath}...")
    with open(filepath, "r") as f:
        payload = json.load(f)
    return [(float(x), float(y)) for x, y in payload]


def save_points(points, filepath):
    with open(filepath, "w") as f:
        json.dump([[x, y] for x, y in points], f)
    logger.info(f"[+] Saved {len(points)} path points to {filepath}")
