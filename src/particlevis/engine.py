import logging
import weakref
from contextlib import contextmanager

import numpy as np

from particlevis.behaviours import (
    BEHAVIOURS,
    DEFAULT_BEHAVIOUR,
    BarsBehaviour,
    FrameContext,
    get_behaviour,
)
from particlevis.config import SimulationConfig, as_number
from particlevis.constants import (
    DEFAULT_ALPHA,
    DEFAULT_BACKGROUND,
    DEFAULT_BEHAVIOUR as DEFAULT_BEHAVIOUR_NAME,
    DEFAULT_COLORS,
    DEFAULT_MIC_SENSITIVITY,
    DEFAULT_PARTICLE_COUNT,
    DEFAULT_RESOLUTION,
    DEFAULT_RESOLUTION_FACTOR,
    DEFAULT_ROTATION_SPEED,
    DEFAULT_SHAPE,
    MAX_RESOLUTION_FACTOR,
    OFFSCREEN_MARGIN,
    PARTICLE_SIZE_JITTER,
    RANDOM_GLOW_RANGE,
    RANDOM_POINTER_RANGE,
    RANDOM_ROTATION_RANGE,
    RANDOM_SIZE_RANGE,
    RANDOM_SPEED_RANGE,
)
from particlevis.embed import EmbedSettings, encode_image
from particlevis.emission import DRAWN_PATH, PRESET_SHAPES, normalise_shape, spawn_position
from particlevis.force_field import apply_pointer_force
from particlevis.geometry import modulated_color, normalise_hex
from particlevis.modulation import Modulation, modulated_size, modulated_speed
from particlevis.particle import Particle
from particlevis.path import Path, PathRecorder, preset_points
from particlevis.render import Fill, histogram_bars, particle_sprites

logger = logging.getLogger(__name__)


def _random_hex(rng):
    return f"#{int(rng.integers(0, 0xFFFFFF + 1)):06x}"


def _uniform(rng, bounds):
    low, high = bounds
    return low + rng.random() * (high - low)


class ParticleEngine:
    """
    Owns the particle population and advances it one frame at a time.

    Every instance carries its own configuration and random source, so
    several engines can run side by side. ``rng`` may be any object with
    ``random()`` and ``integers(low, high)``, such as a
    ``numpy.random.Generator``.

    Changing the count, shape, behaviour, colours, textures, path or base
    configuration re-initialises the population. Re-initialisation builds a
    new list and swaps it in, so a list handed out earlier stays consistent.
    """

    def __init__(self, width=DEFAULT_RESOLUTION[0], height=DEFAULT_RESOLUTION[1], config=None, rng=None):
        self.width = width
        self.height = height
        self.config = config or SimulationConfig()
        self.rng = rng if rng is not None else np.random.default_rng()

        self.particle_count = min(DEFAULT_PARTICLE_COUNT, self.config.max_particles)
        self.shape = DEFAULT_SHAPE
        self.behaviour_name = DEFAULT_BEHAVIOUR_NAME
        self.behaviour = get_behaviour(DEFAULT_BEHAVIOUR_NAME)
        self.colors = list(DEFAULT_COLORS)
        self.background_color = DEFAULT_BACKGROUND
        self.alpha = DEFAULT_ALPHA
        self.rotation_speed = DEFAULT_ROTATION_SPEED
        self.mic_sensitivity = DEFAULT_MIC_SENSITIVITY
        self.audio_enabled = True
        self.glow_increment = 0.0
        self.resolution = DEFAULT_RESOLUTION_FACTOR

        self.path = Path()
        self.recorder = PathRecorder()
        self._preset = None

        self._textures = []
        self._background_image = None

        self.modulation = Modulation()
        self.particles = []
        self._batch_depth = 0
        self._pending_reset = False
        self.reset()

    # --- Population ---

    @property
    def path_active(self):
        return self.shape == DRAWN_PATH and self.path.is_traversable

    def _context(self, speed=1.0, bins=None):
        ctx = FrameContext(
            width=self.width,
            height=self.height,
            rng=self.rng,
            bar_count=self.config.bar_count,
            speed=speed,
        )
        if bins is not None:
            ctx.bins = bins
        return ctx

    def _spawn(self, particle, ctx):
        if self.path_active:
            particle.vx = particle.vy = 0.0
            particle.x, particle.y = self.path.point_at_distance(particle.path_distance, ctx.center)
            return
        if self.behaviour is DEFAULT_BEHAVIOUR:
            ctx.spawn_point = spawn_position(self.shape, self.width, self.height, self.rng)
        self.behaviour.initialize(particle, ctx)

    def _pick_texture(self):
        if not self._textures:
            return None
        return self._textures[int(self.rng.integers(0, len(self._textures)))]

    def reset(self):
        """Replace the whole population with freshly spawned particles."""
        self._pending_reset = False
        ctx = self._context()
        count = min(self.particle_count, self.config.max_particles)
        particles = []
        for _ in range(count):
            particle = Particle(
                base_color=self.colors[int(self.rng.integers(0, len(self.colors)))],
                size=self.config.base_size + self.rng.random() * PARTICLE_SIZE_JITTER,
                path_distance=self.rng.random() * (self.path.total_length or 1),
                texture=self._pick_texture(),
            )
            self._spawn(particle, ctx)
            particles.append(particle)
        self.particles = particles
        logger.debug(
            f"Initialised {count} particles (shape={self.shape}, "
            f"behaviour={self.behaviour_name}, path={self.path_active})"
        )

    def _request_reset(self):
        if self._batch_depth:
            self._pending_reset = True
        else:
            self.reset()

    @contextmanager
    def batch(self):
        """Group several changes into a single re-initialisation."""
        self._batch_depth += 1
        try:
            yield self
        finally:
            self._batch_depth -= 1
            if self._batch_depth == 0 and self._pending_reset:
                self.reset()

    def resize(self, width, height):
        logger.debug(f"Surface resized to {width}x{height}")
        self.width = width
        self.height = height
        if self._preset:
            self.path.set_points(preset_points(self._preset, width, height))
        self._request_reset()

    # --- Configuration ---

    def configure(self, params=None, **kwargs):
        """Override base options; invalid values keep the previous setting."""
        merged = dict(params or {}, **kwargs)
        self.config = self.config.updated(merged)
        self.particle_count = min(self.particle_count, self.config.max_particles)
        self._request_reset()

    def _checked(self, name, value, minimum=0.0, maximum=None, integer=False):
        number = as_number(value, integer=integer)
        if number is None or number < minimum or (maximum is not None and number > maximum):
            logger.warning(f"[!] Ignoring invalid {name}: {value!r}")
            return None
        return number

    def set_particle_count(self, count):
        number = self._checked("particle count", count, integer=True)
        if number is None:
            return
        if number > self.config.max_particles:
            logger.info(f"[i] Clamping particle count {number} to {self.config.max_particles}")
            number = self.config.max_particles
        self.particle_count = number
        self._request_reset()

    def set_emitter_shape(self, shape):
        canonical = normalise_shape(shape)
        if canonical is None:
            logger.warning(f"[!] Ignoring unknown emitter shape: {shape!r}")
            return
        self.shape = canonical
        if canonical == DRAWN_PATH:
            self.path.clear()
            self.recorder.clear()
            self._preset = None
        self._request_reset()

    def set_behaviour(self, name):
        self.behaviour_name = name
        self.behaviour = get_behaviour(name)
        self._request_reset()

    def set_colors(self, colors):
        colors = [normalise_hex(c) for c in colors or () if isinstance(c, str)]
        if not colors:
            logger.warning("[!] Ignoring empty colour list")
            return
        self.colors = colors
        self._request_reset()

    def set_background_color(self, color):
        self.background_color = normalise_hex(color)

    def set_alpha(self, alpha):
        number = self._checked("alpha", alpha, maximum=1.0)
        if number is not None:
            self.alpha = number

    def set_rotation_speed(self, speed):
        number = self._checked("rotation speed", speed)
        if number is not None:
            self.rotation_speed = number

    def set_mic_sensitivity(self, sensitivity):
        number = self._checked("mic sensitivity", sensitivity)
        if number is not None:
            self.mic_sensitivity = number

    def set_audio_enabled(self, enabled):
        self.audio_enabled = bool(enabled)

    def set_glow_increment(self, glow):
        number = self._checked("glow increment", glow)
        if number is not None:
            self.glow_increment = number

    def set_resolution(self, factor):
        number = self._checked("resolution", factor, maximum=MAX_RESOLUTION_FACTOR)
        if number is not None and number > 0:
            self.resolution = number

    def set_textures(self, textures):
        """
        Use ``textures`` for particle sprites.

        Only weak references are kept; the caller owns the images and a
        released image makes its particles fall back to primitive shapes.
        """
        self._textures = [weakref.ref(t) for t in textures or () if t is not None]
        self._request_reset()

    def set_background_image(self, image):
        self._background_image = weakref.ref(image) if image is not None else None

    def live_textures(self):
        return [t for t in (ref() for ref in self._textures) if t is not None]

    def background_image(self):
        if self._background_image is None:
            return None
        return self._background_image()

    # --- Paths ---

    def set_path(self, points):
        self.path.set_points(points)
        self._preset = None
        self._request_reset()

    def begin_path_drawing(self, x=None, y=None):
        self.recorder.begin(self.path.points)
        if x is not None and y is not None:
            self.recorder.append(x, y)

    def append_path_point(self, x, y):
        return self.recorder.append(x, y)

    def end_path_drawing(self):
        points = self.recorder.end()
        if len(points) < 2:
            logger.info("[i] Path needs at least two points, path motion stays off")
            return
        self.set_path(points)

    def clear_path(self):
        self.path.clear()
        self.recorder.clear()
        self._preset = None
        self._request_reset()

    def load_preset_path(self, name, width=None, height=None):
        points = preset_points(name, width or self.width, height or self.height)
        if not points:
            return
        self.path.set_points(points)
        self._preset = name
        self._request_reset()

    # --- Frames ---

    def advance_frame(self, width, height, samples=None, bins=None, pointer=None):
        """
        Move every particle one frame and return the frame's draw commands.

        ``samples`` are byte-scale time-domain samples and ``bins`` frequency
        magnitudes in ``[0, 1]``; either may be None when no audio is attached.
        ``pointer`` is a ``force_field.Pointer`` or None.
        """
        if (width, height) != (self.width, self.height):
            self.resize(width, height)

        modulation = Modulation.from_audio(samples, bins, self.mic_sensitivity, self.audio_enabled)
        self.modulation = modulation
        amplitude = modulation.amplitude
        speed = modulated_speed(self.config.base_speed, amplitude)
        ctx = self._context(speed, modulation.bins)
        path_active = self.path_active
        respawn = self.behaviour.respawns_offscreen and self.shape != DRAWN_PATH

        particles = self.particles
        for p in particles:
            p.color = modulated_color(p.base_color, amplitude)
            p.size = modulated_size(self.config.base_size, self.rng.random() * PARTICLE_SIZE_JITTER, amplitude)
            if self.rotation_speed > 0:
                p.rotation += self.rotation_speed * speed

            if path_active:
                p.path_distance = (p.path_distance + speed) % self.path.total_length
                p.x, p.y = self.path.point_at_distance(p.path_distance, ctx.center)
            else:
                self.behaviour.update(p, ctx)

            apply_pointer_force(p, pointer, self.config.pointer_strength)

            if respawn and p.is_offscreen(self.width, self.height, OFFSCREEN_MARGIN):
                self._spawn(p, ctx)

        return self._draw_commands(particles, modulation)

    def _draw_commands(self, particles, modulation):
        commands = [Fill(self.background_color, self.background_image())]
        glow = self.config.glow + self.glow_increment
        commands.extend(particle_sprites(particles, self.shape, self.alpha, glow))
        if isinstance(self.behaviour, BarsBehaviour) and len(modulation.bins):
            commands.extend(
                histogram_bars(
                    modulation.bins,
                    self.colors[0],
                    self.config.bar_count,
                    self.width,
                    self.height,
                )
            )
        return commands

    # --- Scene settings ---

    def randomize(self, rng=None):
        """Pick a random scene, then re-initialise once."""
        rng = rng if rng is not None else self.rng
        names = sorted(BEHAVIOURS)
        with self.batch():
            self.set_particle_count(int(rng.integers(1, self.config.max_particles + 1)))
            self.set_emitter_shape(PRESET_SHAPES[int(rng.integers(0, len(PRESET_SHAPES)))])
            self.set_behaviour(names[int(rng.integers(0, len(names)))])
            self.set_colors([_random_hex(rng) for _ in range(3)])
            self.configure(
                base_size=int(rng.integers(RANDOM_SIZE_RANGE[0], RANDOM_SIZE_RANGE[1] + 1)),
                glow=int(rng.integers(RANDOM_GLOW_RANGE[0], RANDOM_GLOW_RANGE[1] + 1)),
                base_speed=_uniform(rng, RANDOM_SPEED_RANGE),
                pointer_strength=int(rng.integers(RANDOM_POINTER_RANGE[0], RANDOM_POINTER_RANGE[1] + 1)),
            )
            self.set_alpha(int(rng.integers(0, 101)) / 100)
            self.set_rotation_speed(_uniform(rng, RANDOM_ROTATION_RANGE))
            self.set_mic_sensitivity(int(rng.integers(0, 101)) / 100)
            self.set_background_color(_random_hex(rng))
        logger.info(f"[+] Randomised scene: {self.behaviour_name} on {self.shape}, {self.particle_count} particles")

    def export_settings(self):
        """Snapshot the scene as ``EmbedSettings``, live textures included."""
        background = self.background_image()
        return EmbedSettings(
            count=self.particle_count,
            shape=self.shape,
            behaviour=self.behaviour_name,
            colors=tuple(self.colors),
            size=self.config.base_size,
            glow=self.config.glow,
            glow_increment=self.glow_increment,
            speed=self.config.base_speed,
            pointer=self.config.pointer_strength,
            max_particles=self.config.max_particles,
            bar_count=self.config.bar_count,
            mic=self.audio_enabled,
            alpha=self.alpha,
            rotation=self.rotation_speed,
            resolution=self.resolution,
            mic_sensitivity=self.mic_sensitivity,
            background=self.background_color,
            images=tuple(encode_image(t) for t in self.live_textures()),
            background_image=encode_image(background) if background is not None else None,
        )

    def apply_settings(self, settings):
        """
        Apply ``EmbedSettings``.

        Image payloads are left to the caller, which has to own the decoded
        images before handing them to ``set_textures``.
        """
        with self.batch():
            self.configure(
                max_particles=settings.max_particles,
                base_size=settings.size,
                glow=settings.glow,
                base_speed=settings.speed,
                pointer_strength=settings.pointer,
                bar_count=settings.bar_count,
            )
            self.set_particle_count(settings.count)
            self.set_emitter_shape(settings.shape)
            self.set_behaviour(settings.behaviour)
            self.set_colors(settings.colors)
            self.set_background_color(settings.background)
            self.set_alpha(settings.alpha)
            self.set_rotation_speed(settings.rotation)
            self.set_mic_sensitivity(settings.mic_sensitivity)
            self.set_audio_enabled(settings.mic)
            self.set_glow_increment(settings.glow_increment)
            self.set_resolution(settings.resolution)
