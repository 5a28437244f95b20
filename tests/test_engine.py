import gc

import numpy as np
import pytest

from particlevis.behaviours import BEHAVIOURS
from particlevis.config import SimulationConfig
from particlevis.emission import DRAWN_PATH
from particlevis.engine import ParticleEngine
from particlevis.force_field import Pointer
from particlevis.geometry import invert_hex
from particlevis.render import Bar, Fill, Sprite

W, H = 800, 600
LOUD = np.array([0, 255] * 1024)


@pytest.fixture
def engine(rng):
    return ParticleEngine(W, H, rng=rng)


def sprites(commands):
    return [c for c in commands if isinstance(c, Sprite)]


def test_circle_random_population(engine):
    with engine.batch():
        engine.set_emitter_shape("circle")
        engine.set_behaviour("random")
        engine.set_particle_count(100)
    assert len(engine.particles) == 100
    for p in engine.particles:
        assert -20 <= p.x <= W + 20
        assert -20 <= p.y <= H + 20
    velocities = {(p.vx, p.vy) for p in engine.particles}
    assert len(velocities) > 1


def test_batch_resets_once(engine, monkeypatch):
    calls = []
    original = engine.reset
    monkeypatch.setattr(engine, "reset", lambda: calls.append(1) or original())
    with engine.batch():
        engine.set_particle_count(10)
        engine.set_behaviour("top")
        engine.set_colors(["#ff0000"])
    assert len(calls) == 1


def test_count_is_clamped_to_maximum(engine):
    engine.configure(max_particles=50)
    engine.set_particle_count(100)
    assert engine.particle_count == 50
    assert len(engine.particles) == 50


def test_lowering_maximum_clamps_existing_count(engine):
    engine.set_particle_count(200)
    engine.configure({"maxParticleCount": 20})
    assert len(engine.particles) == 20


@pytest.mark.parametrize("count", [-5, "many", None, 2.5])
def test_invalid_count_is_ignored(engine, count):
    engine.set_particle_count(10)
    engine.set_particle_count(count)
    assert engine.particle_count == 10


def test_invalid_configuration_keeps_previous_values(engine):
    engine.configure(base_size=8, bar_count=16)
    engine.configure(base_size=-1, bar_count="lots", glow=float("nan"), speed=3)
    assert engine.config.base_size == 8
    assert engine.config.bar_count == 16
    assert engine.config.glow == 0


def test_configure_accepts_camel_case(engine):
    engine.configure({"baseSize": 3, "pointerStrength": 40, "barCount": 12})
    assert engine.config == SimulationConfig(base_size=3, pointer_strength=40, bar_count=12)


def test_unknown_shape_is_ignored(engine):
    engine.set_emitter_shape("square")
    engine.set_emitter_shape("hexagon")
    assert engine.shape == "square"


def test_setters_validate(engine):
    engine.set_alpha(0.4)
    engine.set_alpha(1.5)
    engine.set_rotation_speed(-1)
    engine.set_mic_sensitivity("loud")
    engine.set_background_color("#ABCDEF")
    assert engine.alpha == 0.4
    assert engine.rotation_speed == 0
    assert engine.mic_sensitivity == 0.5
    assert engine.background_color == "#abcdef"


def test_unknown_behaviour_spawns_on_square_emitter(engine):
    with engine.batch():
        engine.set_emitter_shape("square")
        engine.set_behaviour("wobble")
    # 800x600 surface: a 300 wide square centred on (400, 300)
    for p in engine.particles:
        on_vertical_edge = p.x in (250, 550) and 150 <= p.y <= 450
        on_horizontal_edge = p.y in (150, 450) and 250 <= p.x <= 550
        assert on_vertical_edge or on_horizontal_edge
        assert -1 <= p.vx < 1 and -1 <= p.vy < 1


def test_unknown_behaviour_spawns_on_line_emitter(engine):
    with engine.batch():
        engine.set_emitter_shape("line")
        engine.set_behaviour("wobble")
    xs = [p.x for p in engine.particles]
    assert all(p.y == H / 2 for p in engine.particles)
    assert all(0 <= x < W for x in xs)
    assert len(set(xs)) > 1


def test_named_behaviour_ignores_emitter(engine):
    with engine.batch():
        engine.set_emitter_shape("square")
        engine.set_behaviour("center")
    assert all((p.x, p.y) == (W / 2, H / 2) for p in engine.particles)


def test_resolution_is_bounded(engine):
    engine.set_resolution(1.5)
    engine.set_resolution(100)
    engine.set_resolution(0)
    assert engine.resolution == 1.5
    engine.set_resolution(2.0)
    assert engine.resolution == 2.0


def test_drawn_path_without_points_disables_path_motion(engine):
    engine.set_behaviour("center")
    engine.set_emitter_shape("draw")
    assert engine.shape == DRAWN_PATH
    assert not engine.path_active
    assert all((p.x, p.y) == (400, 300) for p in engine.particles)

    engine.set_path([(100, 100)])
    assert not engine.path_active

    engine.set_path([(100, 100), (300, 100)])
    assert engine.path_active
    engine.advance_frame(W, H)
    for p in engine.particles:
        assert p.y == pytest.approx(100)
        assert 100 <= p.x <= 300


def test_path_distance_advances_and_wraps(engine):
    engine.set_emitter_shape(DRAWN_PATH)
    engine.set_path([(0, 0), (10, 0)])
    engine.configure(base_speed=4)
    p = engine.particles[0]
    p.path_distance = 8.0
    engine.advance_frame(W, H)
    assert p.path_distance == pytest.approx(2.0)
    assert (p.x, p.y) == pytest.approx((2.0, 0.0))


def test_free_hand_drawing(engine):
    engine.set_emitter_shape(DRAWN_PATH)
    engine.begin_path_drawing(10, 10)
    engine.append_path_point(11, 10)
    engine.append_path_point(50, 10)
    engine.append_path_point(50, 60)
    assert not engine.path_active
    engine.end_path_drawing()
    assert engine.path.points == [(10, 10), (50, 10), (50, 60)]
    assert engine.path.total_length == pytest.approx(90)
    assert engine.path_active

    engine.clear_path()
    assert not engine.path_active


def test_single_point_drawing_keeps_path_off(engine):
    engine.set_emitter_shape(DRAWN_PATH)
    engine.begin_path_drawing(10, 10)
    engine.end_path_drawing()
    assert not engine.path_active


def test_preset_path_follows_resize(engine):
    engine.set_emitter_shape(DRAWN_PATH)
    engine.load_preset_path("line")
    assert engine.path.points[-1] == (W, H / 2)
    engine.advance_frame(400, 200)
    assert engine.path.points[-1] == (400, 100)
    for p in engine.particles:
        assert p.y == pytest.approx(100)


def test_offscreen_particles_respawn(engine):
    engine.set_behaviour("left")
    p = engine.particles[0]
    p.x, p.vx = W + 100, 1.0
    engine.advance_frame(W, H)
    assert p.x == 0
    assert 1 <= p.vx < 2


def test_spiral_particles_do_not_respawn(engine):
    engine.set_behaviour("spiral")
    p = engine.particles[0]
    p.radius = 5000
    engine.advance_frame(W, H)
    assert abs(p.x - 400) > 1000 or abs(p.y - 300) > 1000


def test_galaxy_radius_decays_per_frame(engine):
    engine.set_behaviour("galaxy")
    radii = [p.radius for p in engine.particles]
    for _ in range(10):
        engine.advance_frame(W, H)
    for before, p in zip(radii, engine.particles):
        assert p.radius == pytest.approx(before * 0.9995**10)


def test_bars_reassign_column(engine):
    engine.configure(bar_count=8)
    engine.set_behaviour("bars")
    p = engine.particles[0]
    p.y = -19.9
    engine.advance_frame(W, H)
    assert 0 <= p.bar_index < 8
    assert p.y == H + 10


def test_bars_histogram(engine):
    engine.configure(bar_count=4)
    engine.set_behaviour("bars")
    engine.set_colors(["#ff0000"])
    commands = engine.advance_frame(W, H, bins=[1.0, 0.5, 0.0, 0.25])
    bars = [c for c in commands if isinstance(c, Bar)]
    assert len(bars) == 4
    assert bars[0].height == pytest.approx(300)
    assert bars[0].color == invert_hex("#ff0000")
    assert bars[2].color == "#ff0000"
    assert bars[1].width == pytest.approx(198)


def test_no_histogram_without_bins(engine):
    engine.set_behaviour("bars")
    assert not any(isinstance(c, Bar) for c in engine.advance_frame(W, H))


def test_draw_commands(engine):
    engine.set_emitter_shape("square")
    engine.set_alpha(0.5)
    engine.configure(glow=4)
    engine.set_glow_increment(2)
    engine.set_background_color("#102030")
    commands = engine.advance_frame(W, H)
    assert commands[0] == Fill("#102030", None)
    drawn = sprites(commands)
    assert len(drawn) == len(engine.particles)
    assert all(s.primitive == "square" and s.alpha == 0.5 and s.glow == 6 for s in drawn)


def test_loud_audio_inverts_colour_and_grows_particles(engine):
    engine.set_colors(["#ff3366"])
    engine.configure(base_size=6)
    engine.advance_frame(W, H, samples=LOUD)
    assert engine.modulation.amplitude == 1.0
    for p in engine.particles:
        assert p.color == "#00cc99"
        assert 12 <= p.size < 14


def test_quiet_frame_keeps_base_colour(engine):
    engine.set_colors(["#ff3366"])
    engine.advance_frame(W, H)
    assert all(p.color == "#ff3366" for p in engine.particles)
    assert all(6 <= p.size < 8 for p in engine.particles)


def test_disabled_audio_ignores_samples(engine):
    engine.set_audio_enabled(False)
    engine.advance_frame(W, H, samples=LOUD)
    assert engine.modulation.amplitude == 0


def test_audio_speeds_up_motion(engine):
    engine.set_behaviour("random")
    p = engine.particles[0]
    p.x, p.y, p.vx, p.vy = 100.0, 100.0, 1.0, 0.0
    engine.advance_frame(W, H, samples=LOUD)
    assert p.x == pytest.approx(102.0)


def test_rotation_accumulates(engine):
    engine.set_behaviour("random")
    engine.set_rotation_speed(0.1)
    engine.advance_frame(W, H)
    engine.advance_frame(W, H)
    assert all(p.rotation == pytest.approx(0.2) for p in engine.particles)


def test_pointer_pushes_particles(engine):
    engine.configure(pointer_strength=100)
    engine.set_behaviour("random")
    p = engine.particles[0]
    p.x, p.y, p.vx, p.vy = 410.0, 300.0, 0.0, 0.0
    engine.advance_frame(W, H, pointer=Pointer(400, 300, active=True))
    assert p.vx > 0


def test_reinitialisation_swaps_list(engine):
    before = engine.particles
    count = len(before)
    engine.set_behaviour("top")
    assert engine.particles is not before
    assert len(before) == count


def test_textures_are_weak(engine):
    texture = np.full((4, 4, 3), 255, dtype=np.uint8)
    engine.set_textures([texture])
    drawn = sprites(engine.advance_frame(W, H))
    assert all(s.texture is texture for s in drawn)

    del drawn, texture
    gc.collect()
    assert engine.live_textures() == []
    assert all(s.texture is None for s in sprites(engine.advance_frame(W, H)))


def test_background_image_is_weak(engine):
    image = np.zeros((2, 2, 3), dtype=np.uint8)
    engine.set_background_image(image)
    fill = engine.advance_frame(W, H)[0]
    assert fill.texture is image
    del fill, image
    gc.collect()
    assert engine.advance_frame(W, H)[0].texture is None


def test_randomize_produces_valid_scene(engine, rng):
    engine.randomize(rng)
    assert 1 <= engine.particle_count <= engine.config.max_particles
    assert len(engine.particles) == engine.particle_count
    assert engine.shape in ("circle", "line", "square")
    assert engine.behaviour_name in BEHAVIOURS
    assert len(engine.colors) == 3
    assert 0 <= engine.alpha <= 1


def test_settings_round_trip(engine, rng):
    engine.randomize(rng)
    settings = engine.export_settings()
    other = ParticleEngine(W, H, rng=np.random.default_rng(1))
    other.apply_settings(settings)
    assert other.export_settings() == settings


def test_engines_are_independent(rng):
    first = ParticleEngine(W, H, rng=rng)
    second = ParticleEngine(W, H, rng=np.random.default_rng(5))
    first.configure(base_size=20)
    assert second.config.base_size != 20
