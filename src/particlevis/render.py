"""
The render pass: turns particle state into a list of draw commands.

Nothing here touches pixels; ``VisualiserRenderer`` rasterises the commands.
"""

from dataclasses import dataclass
from typing import Any, Optional

from particlevis.constants import BAR_GAP, BAR_HEIGHT_RATIO
from particlevis.emission import LINE, SQUARE
from particlevis.geometry import modulated_color
from particlevis.modulation import bin_value

PRIMITIVE_CIRCLE = "circle"
PRIMITIVE_SQUARE = "square"
PRIMITIVE_LINE = "line"


@dataclass
class Fill:
    """Clear the surface with a colour, or stretch a texture over it."""

    color: str
    texture: Optional[Any] = None


@dataclass
class Sprite:
    x: float
    y: float
    size: float
    color: str
    rotation: float
    alpha: float
    glow: float
    primitive: str
    texture: Optional[Any] = None


@dataclass
class Bar:
    """A histogram column, always drawn fully opaque."""

    x: float
    y: float
    width: float
    height: float
    color: str


def primitive_for_shape(shape):
    if shape == LINE:
        return PRIMITIVE_LINE
    if shape == SQUARE:
        return PRIMITIVE_SQUARE
    return PRIMITIVE_CIRCLE


def particle_sprites(particles, shape, alpha, glow):
    primitive = primitive_for_shape(shape)
    sprites = []
    for p in particles:
        sprites.append(
            Sprite(
                x=p.x,
                y=p.y,
                size=p.size,
                color=p.color,
                rotation=p.rotation,
                alpha=alpha,
                glow=glow,
                primitive=primitive,
                # Textures that have been released fall back to the primitive
                texture=p.texture_image(),
            )
        )
    return sprites


def histogram_bars(bins, base_color, bar_count, width, height):
    bar_width = width / bar_count
    bars = []
    for i in range(bar_count):
        value = bin_value(bins, i)
        bar_height = value * height * BAR_HEIGHT_RATIO
        bars.append(
            Bar(
                x=i * bar_width,
                y=height - bar_height,
                width=max(bar_width - BAR_GAP, 0.0),
                height=bar_height,
                color=modulated_color(base_color, value),
            )
        )
    return bars
