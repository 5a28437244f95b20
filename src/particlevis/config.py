import logging
import math
from dataclasses import dataclass, replace

from particlevis.constants import (
    BAR_COUNT,
    BASE_SPEED,
    GLOW,
    MAX_PARTICLES,
    PARTICLE_BASE_SIZE,
    POINTER_STRENGTH,
)

logger = logging.getLogger(__name__)

# Accepted spellings for each option
_ALIASES = {
    "maxParticleCount": "max_particles",
    "maxParticles": "max_particles",
    "max_particle_count": "max_particles",
    "baseSize": "base_size",
    "particleBaseSize": "base_size",
    "baseSpeed": "base_speed",
    "pointerStrength": "pointer_strength",
    "barCount": "bar_count",
}


def as_number(value, integer=False):
    """``value`` as a finite float (or int), or None if it is not numeric."""
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    if integer:
        if number != int(number):
            return None
        return int(number)
    return number


# name -> (integer, minimum, minimum is exclusive)
_RULES = {
    "max_particles": (True, 0, True),
    "base_size": (False, 0, True),
    "glow": (False, 0, False),
    "base_speed": (False, 0, False),
    "pointer_strength": (False, 0, False),
    "bar_count": (True, 0, True),
}


@dataclass(frozen=True)
class SimulationConfig:
    """Per-engine base configuration."""

    max_particles: int = MAX_PARTICLES
    base_size: float = PARTICLE_BASE_SIZE
    glow: float = GLOW
    base_speed: float = BASE_SPEED
    pointer_strength: float = POINTER_STRENGTH
    bar_count: int = BAR_COUNT

    def updated(self, params):
        """
        Return a copy with the valid entries of ``params`` applied.

        Unknown keys and non-numeric or out-of-range values are ignored and
        the previous value is kept.
        """
        changes = {}
        for key, value in params.items():
            name = _ALIASES.get(key, key)
            if name not in _RULES:
                logger.warning(f"[!] Ignoring unknown option {key!r}")
                continue
            integer, minimum, exclusive = _RULES[name]
            number = as_number(value, integer=integer)
            if number is None or number < minimum or (exclusive and number == minimum):
                logger.warning(f"[!] Ignoring invalid value for {name}: {value!r}")
                continue
            changes[name] = number
        return replace(self, **changes)
