"""
Particle behaviours.

Each behaviour knows how to place a freshly spawned particle
(``initialize``) and how to move it every frame (``update``). Linear
behaviours work on ``vx``/``vy``; the spiral and galaxy behaviours work on the
particle's polar state around the surface centre.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Optional, Tuple

import numpy as np

from particlevis.constants import (
    BAR_RESPAWN_OFFSET,
    GALAXY_DECAY,
    OFFSCREEN_MARGIN,
    POLAR_RADIUS_RATIO,
    POLAR_SPIN,
)
from particlevis.modulation import bin_value

logger = logging.getLogger(__name__)


@dataclass
class FrameContext:
    """Inputs a behaviour needs to spawn or move a particle."""

    width: float
    height: float
    rng: Any
    bar_count: int = 1
    speed: float = 1.0
    bins: np.ndarray = field(default_factory=lambda: np.zeros(0))
    spawn_point: Optional[Tuple[float, float]] = None

    @property
    def center(self):
        return (self.width / 2, self.height / 2)

    @property
    def polar_extent(self):
        return min(self.width, self.height) * POLAR_RADIUS_RATIO


class Behaviour:
    name = "default"
    # Particles that drift off the surface are spawned again
    respawns_offscreen = True

    def initialize(self, particle, ctx):
        # Emitter position, or the centre when the emitter has none
        particle.x, particle.y = ctx.spawn_point or ctx.center
        particle.vx = (ctx.rng.random() - 0.5) * 2
        particle.vy = (ctx.rng.random() - 0.5) * 2

    def update(self, particle, ctx):
        particle.move(ctx.speed)

    def __repr__(self):
        return f"<{type(self).__name__} {self.name!r}>"


class CenterBehaviour(Behaviour):
    name = "center"

    def initialize(self, particle, ctx):
        particle.x, particle.y = ctx.center
        angle = ctx.rng.random() * math.pi * 2
        speed = 0.5 + ctx.rng.random() * 1.5
        particle.vx = math.cos(angle) * speed
        particle.vy = math.sin(angle) * speed


class BottomBehaviour(Behaviour):
    name = "bottom"

    def initialize(self, particle, ctx):
        particle.x = ctx.rng.random() * ctx.width
        particle.y = ctx.height
        particle.vx = ctx.rng.random() - 0.5
        particle.vy = -(1 + ctx.rng.random())


class TopBehaviour(Behaviour):
    name = "top"

    def initialize(self, particle, ctx):
        particle.x = ctx.rng.random() * ctx.width
        particle.y = 0.0
        particle.vx = ctx.rng.random() - 0.5
        particle.vy = 1 + ctx.rng.random()


class RandomBehaviour(Behaviour):
    name = "random"

    def initialize(self, particle, ctx):
        particle.x = ctx.rng.random() * ctx.width
        particle.y = ctx.rng.random() * ctx.height
        particle.vx = (ctx.rng.random() - 0.5) * 2
        particle.vy = (ctx.rng.random() - 0.5) * 2


class LeftBehaviour(Behaviour):
    name = "left"

    def initialize(self, particle, ctx):
        particle.x = 0.0
        particle.y = ctx.rng.random() * ctx.height
        particle.vx = 1 + ctx.rng.random()
        particle.vy = (ctx.rng.random() - 0.5) * 0.5


class RightBehaviour(Behaviour):
    name = "right"

    def initialize(self, particle, ctx):
        particle.x = ctx.width
        particle.y = ctx.rng.random() * ctx.height
        particle.vx = -(1 + ctx.rng.random())
        particle.vy = (ctx.rng.random() - 0.5) * 0.5


class BarsBehaviour(Behaviour):
    """Particles rise up frequency columns at a rate set by their bin."""

    name = "bars"
    respawns_offscreen = False

    def _place_in_column(self, particle, ctx, y):
        index = int(ctx.rng.integers(0, ctx.bar_count))
        bar_width = ctx.width / ctx.bar_count
        particle.bar_index = index
        particle.x = index * bar_width + bar_width / 2
        particle.y = y

    def initialize(self, particle, ctx):
        self._place_in_column(particle, ctx, ctx.height)
        particle.vx = 0.0
        particle.vy = 0.0

    def update(self, particle, ctx):
        value = bin_value(ctx.bins, particle.bar_index)
        particle.vx = 0.0
        particle.vy = -(0.5 + value * 5) * ctx.speed
        particle.y += particle.vy
        if particle.y < -OFFSCREEN_MARGIN:
            self._place_in_column(particle, ctx, ctx.height + BAR_RESPAWN_OFFSET)


class PolarBehaviour(Behaviour):
    """Orbits around the surface centre on the particle's polar state."""

    respawns_offscreen = False
    decay = 1.0

    def _initial_radius(self, ctx):
        raise NotImplementedError

    def _initial_angular_velocity(self, ctx):
        raise NotImplementedError

    def _place(self, particle, ctx):
        cx, cy = ctx.center
        particle.x = cx + math.cos(particle.angle) * particle.radius
        particle.y = cy + math.sin(particle.angle) * particle.radius

    def initialize(self, particle, ctx):
        particle.radius = self._initial_radius(ctx)
        particle.angle = ctx.rng.random() * math.pi * 2
        particle.angular_velocity = self._initial_angular_velocity(ctx)
        particle.vx = particle.vy = 0.0
        particle.rotation = ctx.rng.random() * math.pi * 2
        self._place(particle, ctx)

    def update(self, particle, ctx):
        particle.angle += particle.angular_velocity * ctx.speed
        particle.radius *= self.decay
        self._place(particle, ctx)
        particle.rotation += POLAR_SPIN * ctx.speed


class SpiralBehaviour(PolarBehaviour):
    name = "spiral"

    def _initial_radius(self, ctx):
        return ctx.rng.random() * ctx.polar_extent

    def _initial_angular_velocity(self, ctx):
        return (ctx.rng.random() - 0.5) * 0.02


class GalaxyBehaviour(PolarBehaviour):
    """Dense core, one spin direction, slow inward drift."""

    name = "galaxy"
    decay = GALAXY_DECAY

    def _initial_radius(self, ctx):
        return math.sqrt(ctx.rng.random()) * ctx.polar_extent

    def _initial_angular_velocity(self, ctx):
        return 0.005 + ctx.rng.random() * 0.005


DEFAULT_BEHAVIOUR = Behaviour()

BEHAVIOURS = {
    behaviour.name: behaviour
    for behaviour in (
        CenterBehaviour(),
        BottomBehaviour(),
        TopBehaviour(),
        RandomBehaviour(),
        LeftBehaviour(),
        RightBehaviour(),
        BarsBehaviour(),
        SpiralBehaviour(),
        GalaxyBehaviour(),
    )
}


def get_behaviour(name):
    behaviour = BEHAVIOURS.get(name)
    if behaviour is None:
        logger.debug(f"Unknown behaviour {name!r}, using default motion")
        return DEFAULT_BEHAVIOUR
    return behaviour
