import math
from dataclasses import dataclass

from particlevis.constants import POINTER_EPSILON


@dataclass(frozen=True)
class Pointer:
    x: float = 0.0
    y: float = 0.0
    active: bool = False


def pointer_force(dx, dy, strength):
    """Inverse-square force magnitude at offset ``(dx, dy)`` from the pointer."""
    return strength / (dx * dx + dy * dy + POINTER_EPSILON)


def apply_pointer_force(particle, pointer, strength):
    """Push ``particle`` away from the pointer by adding to its velocity."""
    if pointer is None or not pointer.active or strength <= 0:
        return
    dx = particle.x - pointer.x
    dy = particle.y - pointer.y
    dist = math.sqrt(dx * dx + dy * dy + POINTER_EPSILON)
    force = pointer_force(dx, dy, strength)
    particle.vx += (dx / dist) * force
    particle.vy += (dy / dist) * force
