"""
Flat key/value settings used to share a scene ("embed" strings).

Every value is a string. Floats are written with ``repr`` so that numbers
survive a round trip unchanged; colours are written as six hex digits
without the leading ``#``.
"""

import base64
import logging
import re
from dataclasses import dataclass, field
from typing import Optional, Tuple
from urllib.parse import parse_qsl, urlencode

import cv2
import numpy as np

from particlevis.constants import (
    BAR_COUNT,
    BASE_SPEED,
    DEFAULT_ALPHA,
    DEFAULT_BACKGROUND,
    DEFAULT_BEHAVIOUR,
    DEFAULT_COLORS,
    DEFAULT_MIC_SENSITIVITY,
    DEFAULT_PARTICLE_COUNT,
    DEFAULT_RESOLUTION_FACTOR,
    DEFAULT_ROTATION_SPEED,
    DEFAULT_SHAPE,
    GLOW,
    MAX_PARTICLES,
    PARTICLE_BASE_SIZE,
    POINTER_STRENGTH,
)
from particlevis.geometry import normalise_hex

logger = logging.getLogger(__name__)

# key -> (attribute, type)
_NUMERIC_KEYS = {
    "count": ("count", int),
    "size": ("size", float),
    "glow": ("glow", float),
    "glowinc": ("glow_increment", float),
    "speed": ("speed", float),
    "pointer": ("pointer", float),
    "maxcount": ("max_particles", int),
    "bars": ("bar_count", int),
    "alpha": ("alpha", float),
    "rotation": ("rotation", float),
    "resolution": ("resolution", float),
    "micsens": ("mic_sensitivity", float),
}

# Strings written before "maxcount" existed carry slider positions: percent
# for these keys and tenths for the speed multiplier.
_SLIDER_DIVISORS = {
    "speed": 10,
    "alpha": 100,
    "rotation": 100,
    "resolution": 100,
    "micsens": 100,
}


@dataclass
class EmbedSettings:
    count: int = DEFAULT_PARTICLE_COUNT
    shape: str = DEFAULT_SHAPE
    behaviour: str = DEFAULT_BEHAVIOUR
    colors: Tuple[str, ...] = DEFAULT_COLORS
    size: float = PARTICLE_BASE_SIZE
    glow: float = GLOW
    glow_increment: float = 0.0
    speed: float = BASE_SPEED
    pointer: float = POINTER_STRENGTH
    max_particles: int = MAX_PARTICLES
    bar_count: int = BAR_COUNT
    mic: bool = True
    alpha: float = DEFAULT_ALPHA
    rotation: float = DEFAULT_ROTATION_SPEED
    resolution: float = DEFAULT_RESOLUTION_FACTOR
    mic_sensitivity: float = DEFAULT_MIC_SENSITIVITY
    background: str = DEFAULT_BACKGROUND
    images: Tuple[str, ...] = field(default_factory=tuple)
    background_image: Optional[str] = None

    def to_params(self):
        params = {
            "count": str(self.count),
            "shape": self.shape,
            "behaviour": self.behaviour,
            "colours": ",".join(normalise_hex(c)[1:] for c in self.colors),
        }
        for key, (attr, kind) in _NUMERIC_KEYS.items():
            if key == "count":
                continue
            value = getattr(self, attr)
            params[key] = str(value) if kind is int else repr(float(value))
        params["mic"] = "1" if self.mic else "0"
        params["bg"] = normalise_hex(self.background)[1:]
        params["embed"] = "1"
        if self.images:
            params["imgs"] = ";".join(self.images)
        if self.background_image:
            params["bgimg"] = self.background_image
        return params

    @classmethod
    def from_params(cls, params):
        """Build settings from a flat mapping, skipping malformed values."""
        settings = cls()
        slider_units = "maxcount" not in params
        for key, (attr, kind) in _NUMERIC_KEYS.items():
            if key not in params:
                continue
            try:
                value = kind(params[key])
                if slider_units and key in _SLIDER_DIVISORS:
                    value /= _SLIDER_DIVISORS[key]
                setattr(settings, attr, value)
            except (TypeError, ValueError):
                logger.warning(f"[!] Ignoring malformed embed value {key}={params[key]!r}")
        if "shape" in params:
            settings.shape = params["shape"]
        # "behavior" is accepted for the American spelling
        behaviour = params.get("behaviour", params.get("behavior"))
        if behaviour:
            settings.behaviour = behaviour
        if params.get("colours"):
            settings.colors = tuple(f"#{c}" for c in params["colours"].split(",") if c)
        elif params.get("colour"):
            settings.colors = (f"#{params['colour']}",)
        if "mic" in params:
            settings.mic = params["mic"] == "1"
        if params.get("bg"):
            settings.background = f"#{params['bg']}"
        if params.get("imgs"):
            # Data URLs contain ";" themselves, so only split where a new one starts
            settings.images = tuple(url for url in re.split(r";(?=data:)", params["imgs"]) if url)
        if params.get("bgimg"):
            settings.background_image = params["bgimg"]
        return settings

    def to_query(self):
        return urlencode(self.to_params())

    @classmethod
    def from_query(cls, query):
        return cls.from_params(dict(parse_qsl(query.lstrip("?"))))


def swap_red_blue(image):
    """Convert between OpenCV's BGR(A) order and the renderer's RGB(A)."""
    if image is None or image.ndim != 3 or image.shape[2] not in (3, 4):
        return image
    code = cv2.COLOR_BGRA2RGBA if image.shape[2] == 4 else cv2.COLOR_BGR2RGB
    return cv2.cvtColor(image, code)


def load_image(filepath):
    """Read an image file as RGB(A), or None if it cannot be read."""
    image = cv2.imread(str(filepath), cv2.IMREAD_UNCHANGED)
    if image is None:
        logger.warning(f"[!] Could not read image: {filepath}")
    return swap_red_blue(image)


def encode_image(image):
    """PNG data URL for an RGB(A) image array."""
    ok, buffer = cv2.imencode(".png", swap_red_blue(image))
    if not ok:
        raise ValueError("Could not encode image")
    return "data:image/png;base64," + base64.b64encode(buffer.tobytes()).decode("ascii")


def decode_image(url):
    """Decode a base64 data URL into an RGB(A) array, or None on failure."""
    try:
        payload = url.split(",", 1)[1]
        data = np.frombuffer(base64.b64decode(payload), dtype=np.uint8)
    except (IndexError, ValueError) as e:
        logger.warning(f"[!] Could not decode embedded image: {e}")
        return None
    if data.size == 0:
        return None
    return swap_red_blue(cv2.imdecode(data, cv2.IMREAD_UNCHANGED))
