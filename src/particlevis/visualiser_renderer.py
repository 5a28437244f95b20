import math

import cv2
import numpy as np

from particlevis.geometry import parse_hex
from particlevis.render import PRIMITIVE_LINE, PRIMITIVE_SQUARE, Bar, Fill, Sprite

LINE_THICKNESS = 2


def _to_rgb(image):
    """Drop alpha / expand greyscale so the image has three channels."""
    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2RGB)
    return image[..., :3]


def _rotated_square(x, y, size, rotation):
    half = size / 2
    cos_r, sin_r = math.cos(rotation), math.sin(rotation)
    corners = [(-half, -half), (half, -half), (half, half), (-half, half)]
    return np.array(
        [[x + u * cos_r - v * sin_r, y + u * sin_r + v * cos_r] for u, v in corners],
        dtype=np.int32,
    )


class VisualiserRenderer:
    """
    Handles the drawing logic using OpenCV.

    Pulls audio for each frame from the analyser, advances the particle
    engine and rasterises the returned draw commands into an RGB frame.
    """

    def __init__(self, engine, width, height, analyser=None, pointer=None):
        self.engine = engine
        self.analyser = analyser
        self.w = width
        self.h = height
        self.pointer = pointer

    def make_frame(self, t):
        """
        The callback function for MoviePy.
        Generates a single video frame at time t.
        """
        samples = bins = None
        if self.analyser is not None:
            samples = self.analyser.get_samples_at_time(t)
            bins = self.analyser.get_bins_at_time(t)

        commands = self.engine.advance_frame(self.w, self.h, samples, bins, self.pointer)
        return self.rasterise(commands)

    def rasterise(self, commands):
        frame = None
        # Particles share one alpha, so they are composited as a single layer
        layer = np.zeros((self.h, self.w, 3), dtype=np.uint8)
        coverage = np.zeros((self.h, self.w), dtype=np.float32)
        alpha = 1.0
        glow = 0.0
        bars = []

        for command in commands:
            if isinstance(command, Fill):
                frame = self._background(command)
            elif isinstance(command, Sprite):
                self._draw_sprite(layer, coverage, command)
                alpha = command.alpha
                glow = max(glow, command.glow)
            elif isinstance(command, Bar):
                bars.append(command)

        if frame is None:
            frame = np.zeros((self.h, self.w, 3), dtype=np.uint8)

        # Glow: blurred copy of the particle layer added on top
        if glow > 0:
            halo = cv2.GaussianBlur(layer, (0, 0), sigmaX=glow / 2)
            frame = cv2.addWeighted(frame, 1.0, halo, alpha, 0)

        weight = (np.clip(coverage, 0, 1) * alpha)[..., None]
        frame = (frame * (1 - weight) + layer * weight).astype(np.uint8)

        # Bars are always drawn fully opaque
        for bar in bars:
            if bar.height <= 0:
                continue
            cv2.rectangle(
                frame,
                (int(bar.x), int(bar.y)),
                (int(bar.x + bar.width), self.h),
                parse_hex(bar.color),
                -1,
            )

        return frame

    def _background(self, fill):
        if fill.texture is not None:
            return np.ascontiguousarray(_to_rgb(cv2.resize(fill.texture, (self.w, self.h))))
        return np.full((self.h, self.w, 3), parse_hex(fill.color), dtype=np.uint8)

    def _draw_sprite(self, layer, coverage, sprite):
        if sprite.texture is not None:
            self._paste_texture(layer, coverage, sprite)
            return

        # Only the sprite's bounding box is touched; a rotated square reaches
        # size / sqrt(2) from its centre.
        reach = int(math.ceil(sprite.size * 0.75)) + LINE_THICKNESS + 1
        cx, cy = int(sprite.x), int(sprite.y)
        x0, y0 = max(0, cx - reach), max(0, cy - reach)
        x1, y1 = min(self.w, cx + reach + 1), min(self.h, cy + reach + 1)
        if x1 <= x0 or y1 <= y0:
            return

        color = parse_hex(sprite.color)
        patch = np.ascontiguousarray(layer[y0:y1, x0:x1])
        mask = np.zeros(patch.shape[:2], dtype=np.uint8)
        # Coordinates relative to the box
        x, y = sprite.x - x0, sprite.y - y0
        if sprite.primitive == PRIMITIVE_LINE:
            half = sprite.size / 2
            dx, dy = math.cos(sprite.rotation) * half, math.sin(sprite.rotation) * half
            start = (int(round(x - dx)), int(round(y - dy)))
            end = (int(round(x + dx)), int(round(y + dy)))
            cv2.line(patch, start, end, color, LINE_THICKNESS, cv2.LINE_AA)
            cv2.line(mask, start, end, 255, LINE_THICKNESS, cv2.LINE_AA)
        elif sprite.primitive == PRIMITIVE_SQUARE:
            corners = _rotated_square(x, y, sprite.size, sprite.rotation)
            cv2.fillPoly(patch, [corners], color, cv2.LINE_AA)
            cv2.fillPoly(mask, [corners], 255, cv2.LINE_AA)
        else:
            center = (cx - x0, cy - y0)
            radius = max(1, int(sprite.size / 2))
            cv2.circle(patch, center, radius, color, -1, cv2.LINE_AA)
            cv2.circle(mask, center, radius, 255, -1, cv2.LINE_AA)

        layer[y0:y1, x0:x1] = patch
        region = coverage[y0:y1, x0:x1]
        np.maximum(region, mask.astype(np.float32) / 255.0, out=region)

    def _paste_texture(self, layer, coverage, sprite):
        size = max(1, int(round(sprite.size)))
        texture = cv2.resize(sprite.texture, (size, size))
        if sprite.rotation:
            matrix = cv2.getRotationMatrix2D((size / 2, size / 2), -math.degrees(sprite.rotation), 1.0)
            texture = cv2.warpAffine(texture, matrix, (size, size))

        if texture.ndim == 3 and texture.shape[2] == 4:
            tex_alpha = texture[..., 3].astype(np.float32) / 255.0
        else:
            tex_alpha = np.ones((size, size), dtype=np.float32)
        rgb = _to_rgb(texture)

        # Clip the texture rectangle to the surface
        x0 = int(sprite.x - size / 2)
        y0 = int(sprite.y - size / 2)
        sx0, sy0 = max(0, -x0), max(0, -y0)
        dx0, dy0 = max(0, x0), max(0, y0)
        dx1, dy1 = min(self.w, x0 + size), min(self.h, y0 + size)
        if dx1 <= dx0 or dy1 <= dy0:
            return
        sx1, sy1 = sx0 + (dx1 - dx0), sy0 + (dy1 - dy0)

        a = tex_alpha[sy0:sy1, sx0:sx1, None]
        region = layer[dy0:dy1, dx0:dx1]
        region[:] = (region * (1 - a) + rgb[sy0:sy1, sx0:sx1] * a).astype(np.uint8)
        np.maximum(coverage[dy0:dy1, dx0:dx1], a[..., 0], out=coverage[dy0:dy1, dx0:dx1])
