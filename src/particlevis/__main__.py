#!/usr/bin/env python3
"""
Particle Visualiser CLI Tool
============================

Renders an audio file into a video of an audio-reactive particle scene.
Librosa analyses the audio, the particle engine moves the particles and
OpenCV/MoviePy draw and encode the frames.

Features:
- Emitter shapes: circle, line, square or a drawn path.
- Behaviours: center, bottom, top, random, left, right, bars, spiral, galaxy.
- Audio amplitude drives colour, size and speed; frequency bins drive bars.
- Scenes can be shared as embed strings (--print-embed / --embed).

Usage:
    python -m particlevis input.wav --output result.mp4
    python -m particlevis input.wav --behaviour galaxy --colours ff0066,00ccff
    python -m particlevis -h (for help)
"""

import argparse
import logging
import os
import sys

import numpy as np
from moviepy import AudioFileClip, VideoClip

from particlevis.audio_analyser import AudioAnalyser
from particlevis.behaviours import BEHAVIOURS
from particlevis.constants import DEFAULT_FPS, DEFAULT_RESOLUTION
from particlevis.embed import EmbedSettings, decode_image, load_image
from particlevis.emission import PRESET_SHAPES, SHAPES
from particlevis.engine import ParticleEngine
from particlevis.force_field import Pointer
from particlevis.path import load_points, save_points
from particlevis.visualiser_renderer import VisualiserRenderer

logger = logging.getLogger(__name__)


def _pointer(value):
    try:
        x, y = (float(v) for v in value.split(","))
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected X,Y, got {value!r}")
    return Pointer(x, y, active=True)


def build_parser():
    parser = argparse.ArgumentParser(
        description="Generate an audio-reactive particle video from an audio file."
    )
    parser.add_argument("input", help="Path to input audio file (WAV/MP3)")
    parser.add_argument("--output", "-o", default="output.mp4", help="Path to output video file")
    parser.add_argument("--width", type=int, default=DEFAULT_RESOLUTION[0], help="Video width")
    parser.add_argument("--height", type=int, default=DEFAULT_RESOLUTION[1], help="Video height")
    parser.add_argument("--fps", type=int, default=DEFAULT_FPS, help="Frames per second")
    parser.add_argument("--duration", type=int, help="Limit duration in seconds (optional)")

    scene = parser.add_argument_group("scene")
    scene.add_argument("--embed", help="Start from an embed query string")
    scene.add_argument("--randomize", action="store_true", help="Pick a random scene")
    scene.add_argument("--seed", type=int, help="Seed for the random source")
    scene.add_argument("--count", type=int, help="Number of particles")
    scene.add_argument("--shape", choices=SHAPES, help="Emitter shape")
    scene.add_argument("--behaviour", choices=sorted(BEHAVIOURS), help="Particle behaviour")
    scene.add_argument("--colours", help="Comma separated hex colours")
    scene.add_argument("--background", help="Background hex colour")
    scene.add_argument("--size", type=float, help="Base particle size")
    scene.add_argument("--glow", type=float, help="Glow radius")
    scene.add_argument("--speed", type=float, help="Speed multiplier")
    scene.add_argument("--alpha", type=float, help="Particle opacity (0-1)")
    scene.add_argument("--rotation", type=float, help="Rotation speed")
    scene.add_argument("--mic-sensitivity", type=float, help="Audio sensitivity")
    scene.add_argument("--bars", type=int, help="Number of bars for the bars behaviour")
    scene.add_argument("--no-audio", action="store_true", help="Do not modulate with the audio")
    scene.add_argument("--path", help="JSON file of [x, y] points (implies the drawn path shape)")
    scene.add_argument("--preset-path", choices=PRESET_SHAPES, help="Travel along a preset path")
    scene.add_argument("--save-path", help="Write the active path to a JSON file")
    scene.add_argument("--texture", action="append", default=[], help="Particle image (repeatable)")
    scene.add_argument("--background-image", help="Background image")
    scene.add_argument("--pointer", type=_pointer, help="Fixed pointer position X,Y")
    scene.add_argument("--pointer-strength", type=float, help="Pointer repulsion strength")
    scene.add_argument("--print-embed", action="store_true", help="Print the scene's embed string")

    parser.add_argument("--log-level", default="INFO", help="Logging level")
    return parser


def apply_arguments(engine, args):
    """Apply command line scene options to ``engine``; returns the images it must keep alive."""
    images = []
    background = None

    if args.embed:
        settings = EmbedSettings.from_query(args.embed)
        engine.apply_settings(settings)
        images = [img for img in (decode_image(url) for url in settings.images) if img is not None]
        if settings.background_image:
            background = decode_image(settings.background_image)

    with engine.batch():
        if args.randomize:
            engine.randomize()

        engine.configure(
            {
                key: value
                for key, value in (
                    ("base_size", args.size),
                    ("glow", args.glow),
                    ("base_speed", args.speed),
                    ("pointer_strength", args.pointer_strength),
                    ("bar_count", args.bars),
                )
                if value is not None
            }
        )
        if args.count is not None:
            engine.set_particle_count(args.count)
        if args.shape:
            engine.set_emitter_shape(args.shape)
        if args.behaviour:
            engine.set_behaviour(args.behaviour)
        if args.colours:
            engine.set_colors([f"#{c.lstrip('#')}" for c in args.colours.split(",") if c])
        if args.background:
            engine.set_background_color(args.background)
        if args.alpha is not None:
            engine.set_alpha(args.alpha)
        if args.rotation is not None:
            engine.set_rotation_speed(args.rotation)
        if args.mic_sensitivity is not None:
            engine.set_mic_sensitivity(args.mic_sensitivity)
        if args.no_audio:
            engine.set_audio_enabled(False)

        if args.path:
            engine.set_emitter_shape("drawn_path")
            engine.set_path(load_points(args.path))
        elif args.preset_path:
            engine.set_emitter_shape("drawn_path")
            engine.load_preset_path(args.preset_path)

        if args.texture:
            images = [img for img in (load_image(f) for f in args.texture) if img is not None]
        if args.background_image:
            background = load_image(args.background_image)

        engine.set_textures(images)
        engine.set_background_image(background)

    if args.save_path:
        if engine.path.is_traversable:
            save_points(engine.path.points, args.save_path)
        else:
            logger.warning("[!] No path to save")

    return images, background


def main():
    parser = build_parser()
    args = parser.parse_args()

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

    # 1. Validation
    if not os.path.exists(args.input):
        sys.exit(f"[!] Input file not found: {args.input}")

    # 2. Build the scene
    rng = np.random.default_rng(args.seed)
    engine = ParticleEngine(args.width, args.height, rng=rng)
    # The engine only holds weak references to these
    images, background = apply_arguments(engine, args)
    logger.info(
        f"[+] Scene: {engine.particle_count} particles, {engine.behaviour_name} on {engine.shape}, "
        f"{len(images)} textures, background image: {background is not None}"
    )

    if args.print_embed:
        print(engine.export_settings().to_query())

    width = max(1, int(args.width * engine.resolution))
    height = max(1, int(args.height * engine.resolution))

    # 3. Analyze Audio
    analyser = AudioAnalyser(args.input)

    duration = analyser.duration
    if args.duration and args.duration < duration:
        duration = args.duration
        logger.info(f"[i] Truncating duration to {duration} seconds.")

    logger.info(f"[+] Preparing render: {width}x{height} @ {args.fps}fps")
    logger.info(f"[+] Duration: {duration:.2f} seconds")

    renderer = VisualiserRenderer(engine, width, height, analyser=analyser, pointer=args.pointer)

    # 4. Create MoviePy Clip (frames are already RGB)
    video_clip = VideoClip(renderer.make_frame, duration=duration)

    # Attach original audio
    audio_clip = AudioFileClip(args.input)
    audio_clip = audio_clip.subclipped(0, duration)
    video_clip = video_clip.with_audio(audio_clip)

    # 5. Export
    logger.info("[+] Rendering video... (This may take a while)")
    video_clip.write_videofile(
        args.output,
        fps=args.fps,
        codec="libx264",
        audio_codec="aac",
        threads=4,
        preset="medium",
        logger="bar",
    )

    logger.info(f"[+] Done! Saved to {args.output}")


if __name__ == "__main__":
    main()
