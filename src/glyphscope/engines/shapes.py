"""
Procedural shape generator.

Every shape is a closed-form implicit function evaluated over the whole
cell grid at once. Cells outside a shape are 0; inside, brightness falls
off smoothly toward the edge. Animated shapes (venn, wave, cube) read
the generator's remembered time.
"""

import math
from enum import Enum

import numpy as np


class Shape(str, Enum):
    CIRCLE = "circle"
    SQUARE = "square"
    TRIANGLE = "triangle"
    VENN = "venn"
    DIAMOND = "diamond"
    HEXAGON = "hexagon"
    STAR = "star"
    HEART = "heart"
    INFINITY = "infinity"
    SPIRAL = "spiral"
    MANDALA = "mandala"
    WAVE = "wave"
    CUBE = "cube"


def parse_shape(shape) -> Shape:
    """Resolve a shape id; unknown ids raise ValueError."""
    if isinstance(shape, Shape):
        return shape
    try:
        return Shape(shape)
    except ValueError:
        raise ValueError(
            f"Unknown shape {shape!r}, available: {[s.value for s in Shape]}"
        ) from None


def _grid(width: int, height: int):
    """Cell coordinates and offsets from the (width/2, height/2) center."""
    y, x = np.mgrid[0:height, 0:width].astype(np.float64)
    return x, y, x - width / 2.0, y - height / 2.0


# Cube geometry: 8 corners of the unit cube.
CUBE_VERTICES = np.array([
    [-1, -1, -1], [1, -1, -1], [1, 1, -1], [-1, 1, -1],
    [-1, -1, 1], [1, -1, 1], [1, 1, 1], [-1, 1, 1],
], dtype=np.float64)

# Screen y grows downward, and the camera sits on the -z side.
CUBE_FACES = (
    ("front", (0, 1, 2, 3), 150),
    ("back", (5, 4, 7, 6), 120),
    ("top", (0, 1, 5, 4), 210),
    ("bottom", (3, 2, 6, 7), 100),
    ("left", (0, 4, 7, 3), 85),
    ("right", (1, 5, 6, 2), 67),
)

CUBE_PERSPECTIVE = 4.0
CUBE_TILT = math.pi / 7
CUBE_SPIN_RATE = 0.8
FACE_CULL = -0.1
FACE_FADE = 0.3


def _rotate_cube(angle_y: float, angle_x: float = CUBE_TILT) -> np.ndarray:
    """Rotate the cube corners about Y, then tilt about X."""
    cy, sy = math.cos(angle_y), math.sin(angle_y)
    cx, sx = math.cos(angle_x), math.sin(angle_x)
    x, y, z = CUBE_VERTICES.T

    xr = x * cy - z * sy
    zr = x * sy + z * cy
    yr2 = y * cx - zr * sx
    zr2 = y * sx + zr * cx
    return np.stack([xr, yr2, zr2], axis=1)


def _face_normal(corners: np.ndarray) -> np.ndarray:
    """Unit outward normal of a planar face of a cube centered on the origin."""
    n = np.cross(corners[1] - corners[0], corners[2] - corners[0])
    if np.dot(n, corners.mean(axis=0)) < 0:
        n = -n
    norm = np.linalg.norm(n)
    return n / norm if norm > 0 else n


def visible_cube_faces(rotated: np.ndarray) -> list:
    """
    Faces of a rotated cube that face the camera, ordered far to near.

    Returns:
        List of (depth, name, indices, color, opacity). Faces whose
        outward normal points away from the camera by more than
        ``FACE_CULL`` are dropped; the rest fade in over ``FACE_FADE``.
    """
    visible = []
    for name, indices, color in CUBE_FACES:
        corners = rotated[list(indices)]
        facing = -_face_normal(corners)[2]
        if facing <= FACE_CULL:
            continue
        opacity = min(1.0, max(0.0, (facing - FACE_CULL) / FACE_FADE))
        depth = corners[:, 2].mean()
        visible.append((depth, name, indices, color, opacity))

    # Larger z is farther from the camera; paint those first.
    visible.sort(key=lambda face: face[0], reverse=True)
    return visible


def fill_polygon(field: np.ndarray, points, value: float):
    """
    Fill a polygon in place using the even-odd rule.

    Cells are tested at their integer coordinates; the scan is limited
    to the polygon's bounding box clipped to the field.
    """
    h, w = field.shape
    pts = np.asarray(points, dtype=np.float64)
    x0 = max(0, int(math.floor(pts[:, 0].min())))
    x1 = min(w, int(math.ceil(pts[:, 0].max())))
    y0 = max(0, int(math.floor(pts[:, 1].min())))
    y1 = min(h, int(math.ceil(pts[:, 1].max())))
    if x1 <= x0 or y1 <= y0:
        return

    y, x = np.mgrid[y0:y1, x0:x1].astype(np.float64)
    inside = np.zeros(x.shape, dtype=bool)
    n = len(pts)
    with np.errstate(divide="ignore", invalid="ignore"):
        for i in range(n):
            xi, yi = pts[i]
            xj, yj = pts[i - 1]
            crosses = (yi > y) != (yj > y)
            x_hit = (xj - xi) * (y - yi) / (yj - yi) + xi
            inside ^= crosses & (x < x_hit)
    field[y0:y1, x0:x1][inside] = value


class ShapeGenerator:
    """
    Generates brightness fields for the built-in parametric shapes.

    The generator only keeps ``time`` between calls; output is a pure
    function of (shape, width, height, time).
    """

    def __init__(self, time: float = 0.0):
        self.time = float(time)
        self._registry = {
            Shape.CIRCLE: self.circle,
            Shape.SQUARE: self.square,
            Shape.TRIANGLE: self.triangle,
            Shape.VENN: self.venn,
            Shape.DIAMOND: self.diamond,
            Shape.HEXAGON: self.hexagon,
            Shape.STAR: self.star,
            Shape.HEART: self.heart,
            Shape.INFINITY: self.infinity,
            Shape.SPIRAL: self.spiral,
            Shape.MANDALA: self.mandala,
            Shape.WAVE: self.wave,
            Shape.CUBE: self.cube,
        }

    def update_time(self, dt: float):
        self.time += dt

    def generate(self, shape, width: int, height: int, time: float | None = None) -> np.ndarray:
        """
        Produce the brightness field for one shape.

        Args:
            shape: ``Shape`` member or its string id.
            width: Field columns.
            height: Field rows.
            time: Animation time; the remembered time is used if None.

        Returns:
            (height, width) float32 field in [0, 255].
        """
        kind = parse_shape(shape)
        if width <= 0 or height <= 0:
            raise ValueError(f"Shape size must be positive, got {width}x{height}")
        if time is not None:
            self.time = float(time)
        field = self._registry[kind](width, height)
        return np.clip(np.nan_to_num(field, nan=0.0), 0.0, 255.0).astype(np.float32)

    # ---- static shapes ---------------------------------------------------

    def circle(self, width: int, height: int) -> np.ndarray:
        _, _, dx, dy = _grid(width, height)
        radius = min(width, height) * 0.42
        dist = np.sqrt(dx * dx + dy * dy)
        inside = dist < radius
        falloff = np.clip(1.0 - dist / radius, 0.0, 1.0) ** 1.5
        return np.where(inside, 255.0 * falloff, 0.0)

    def square(self, width: int, height: int) -> np.ndarray:
        x, y, dx, dy = _grid(width, height)
        size = min(width, height) * 0.6
        start_x = (width - size) / 2.0
        start_y = (height - size) / 2.0
        inside = (x >= start_x) & (x < start_x + size) & (y >= start_y) & (y < start_y + size)
        dist = np.sqrt(dx * dx + dy * dy)
        brightness = 255.0 * np.maximum(0.0, 1.0 - dist / (size * 0.7))
        return np.where(inside, brightness, 0.0)

    def triangle(self, width: int, height: int) -> np.ndarray:
        """Upward-pointing triangle whose width grows linearly from the apex."""
        _, y, dx, _ = _grid(width, height)
        size = min(width, height) * 0.7
        ty = y - height * 0.2
        half = ty / 2.0
        off = np.abs(dx)
        inside = (ty > 0) & (ty < size) & (off < half)
        safe_half = np.where(half > 0, half, 1.0)
        brightness = 255.0 * (1.0 - off / safe_half * 0.7)
        return np.where(inside, brightness, 0.0)

    def diamond(self, width: int, height: int) -> np.ndarray:
        _, _, dx, dy = _grid(width, height)
        half = min(width, height) * 0.3
        dist = np.abs(dx) + np.abs(dy)
        return np.where(dist < half, 255.0 * (1.0 - dist / half), 0.0)

    def hexagon(self, width: int, height: int) -> np.ndarray:
        _, _, dx, dy = _grid(width, height)
        radius = min(width, height) * 0.4
        angle = np.arctan2(dy, dx)
        dist = np.sqrt(dx * dx + dy * dy)
        hex_angle = np.abs(np.mod(angle + math.pi, math.pi / 3) - math.pi / 6)
        hex_radius = radius / np.cos(hex_angle)
        return np.where(dist < hex_radius, 255.0 * (1.0 - dist / hex_radius), 0.0)

    def star(self, width: int, height: int, points: int = 5) -> np.ndarray:
        """Star with radius alternating between inner and outer by angle."""
        _, _, dx, dy = _grid(width, height)
        outer = min(width, height) * 0.4
        inner = outer * 0.4
        sector = 2 * math.pi / points
        angle = np.arctan2(dy, dx) + math.pi / 2
        dist = np.sqrt(dx * dx + dy * dy)

        segment = np.mod(angle + 2 * math.pi, sector) / sector
        radius = inner + (outer - inner) * np.abs(np.cos(segment * math.pi))
        return np.where(dist < radius, 255.0 * (1.0 - dist / radius), 0.0)

    def heart(self, width: int, height: int) -> np.ndarray:
        """
        Implicit heart curve ``(x² + y² - 1)³ - x²y³ <= 0``.

        One heart unit spans 0.3 of the smaller side; brightness fades
        over two units from the heart's origin.
        """
        x, y, _, _ = _grid(width, height)
        scale = min(width, height) * 0.3
        # The curve spans y in [-1, 1.24]; shift so it sits centered.
        tx = (x - width / 2.0) / scale
        ty = (height / 2.0 - y) / scale + 0.12
        value = (tx * tx + ty * ty - 1.0) ** 3 - tx * tx * ty ** 3
        dist = np.sqrt(tx * tx + ty * ty)
        brightness = 255.0 * np.maximum(0.0, 1.0 - dist / 2.0)
        return np.where(value <= 0, brightness, 0.0)

    def infinity(self, width: int, height: int, thickness: float = 5.0) -> np.ndarray:
        """Lemniscate of Bernoulli ``r = a·sqrt(2 cos 2θ)`` drawn as a ±5 cell band."""
        _, _, dx, dy = _grid(width, height)
        a = min(width, height) * 0.25
        dist = np.sqrt(dx * dx + dy * dy)
        cos2 = np.cos(2 * np.arctan2(dy, dx))
        defined = cos2 >= 0
        r = a * np.sqrt(2 * np.maximum(cos2, 0.0))
        band = defined & (dist < r + thickness)
        brightness = 255.0 * np.maximum(0.0, 1.0 - np.abs(dist - r) / thickness)
        return np.where(band, brightness, 0.0)

    def spiral(self, width: int, height: int, turns: int = 3, thickness: float = 3.0) -> np.ndarray:
        """
        Archimedean spiral with ``turns`` arms-worth of windings.

        Each cell is measured against the nearest winding at its angle,
        then drawn as a ±3 cell band that dims toward the rim.
        """
        _, _, dx, dy = _grid(width, height)
        max_radius = min(width, height) * 0.45
        spacing = max_radius / turns
        dist = np.sqrt(dx * dx + dy * dy)
        angle = np.arctan2(dy, dx)

        base = (angle + math.pi) / (2 * math.pi) * spacing
        k = np.clip(np.round((dist - base) / spacing), 0, turns - 1)
        off = np.abs(dist - (base + k * spacing))

        inside = (off < thickness) & (dist < max_radius)
        brightness = 255.0 * (1.0 - off / thickness) * (1.0 - dist / max_radius)
        return np.where(inside, brightness, 0.0)

    def mandala(self, width: int, height: int) -> np.ndarray:
        _, _, dx, dy = _grid(width, height)
        max_radius = min(width, height) * 0.45
        dist = np.sqrt(dx * dx + dy * dy)
        angle = np.arctan2(dy, dx)

        rings = np.sin(dist * 0.5) * 0.5 + 0.5
        petals = np.cos(angle * 8) * 0.5 + 0.5
        swirl = np.sin(dist * 0.2 - angle * 4) * 0.5 + 0.5
        combined = (rings + petals + swirl) / 3.0

        brightness = 255.0 * combined * (1.0 - dist / max_radius)
        return np.where(dist < max_radius, brightness, 0.0)

    # ---- animated shapes -------------------------------------------------

    def venn(self, width: int, height: int, spread: float | None = None) -> np.ndarray:
        """
        Three-circle Venn diagram whose circles drift together and apart.

        Overlap count dominates brightness: all three circles 255, two
        circles 220, one circle ~170 with a soft rim.

        Args:
            spread: Separation in [0, 1] overriding the time-driven
                oscillation. 0 puts all three centers on the field center.
        """
        _, _, dx, dy = _grid(width, height)
        radius = min(width, height) * 0.32

        if spread is None:
            phase = (math.sin(self.time * 0.35) + 1.0) / 2.0
            t = abs(phase - 0.5) * 2.0
            sep_h = radius * 0.4 + radius * 1.0 * t
            sep_v = radius * 0.3 + radius * 0.9 * t
        else:
            spread = min(1.0, max(0.0, float(spread)))
            sep_h = radius * 1.4 * spread
            sep_v = radius * 1.2 * spread

        centers = (
            (-sep_h / 2.0, sep_v * 0.4),
            (sep_h / 2.0, sep_v * 0.4),
            (0.0, -sep_v * 0.7),
        )
        dists = np.stack([np.sqrt((dx - cx) ** 2 + (dy - cy) ** 2) for cx, cy in centers])
        inside = dists < radius
        count = inside.sum(axis=0)

        # Single-circle cells take the distance of the one circle they are in.
        own_dist = np.where(inside, dists, np.inf).min(axis=0)
        rim = np.minimum(1.0, (radius - own_dist) / (radius * 0.15))

        out = np.zeros(count.shape, dtype=np.float64)
        out[count == 1] = 170.0 * rim[count == 1]
        out[count == 2] = 220.0
        out[count == 3] = 255.0
        return out

    def wave(self, width: int, height: int) -> np.ndarray:
        x, y, _, _ = _grid(width, height)
        primary = np.sin(x * 0.15 + self.time * 3)
        secondary = np.cos(x * 0.1 - self.time * 2)
        vertical = np.sin(y * 0.2)
        combined = primary * 0.6 + secondary * 0.3 + vertical * 0.1

        center_dist = np.abs(y - height / 2.0) / (height / 2.0)
        vignette = np.clip(1.0 - center_dist, 0.0, 1.0) ** 2
        return np.maximum(0.0, 255.0 * ((combined + 1.0) / 2.0) * vignette)

    def cube(self, width: int, height: int) -> np.ndarray:
        """
        Rotating 3D cube with two-tone highlights on the top and right faces.

        The cube spins about Y at 0.8 rad/s under a fixed X tilt and is
        projected with ``f / (f + z)`` perspective. Faces are culled on
        the camera-facing component of their outward normal, faded in
        over a narrow band so they do not pop, and painted far to near.
        """
        field = np.zeros((height, width), dtype=np.float64)
        cx, cy = width / 2.0, height / 2.0
        size = min(width, height) * 0.35

        rotated = _rotate_cube(self.time * CUBE_SPIN_RATE)
        factor = CUBE_PERSPECTIVE / (CUBE_PERSPECTIVE + rotated[:, 2])
        projected = np.stack([
            cx + rotated[:, 0] * size * factor,
            cy + rotated[:, 1] * size * factor,
        ], axis=1)

        for _, name, indices, color, opacity in visible_cube_faces(rotated):
            points = projected[list(indices)]
            fill_polygon(field, points, math.floor(color * opacity))
            if opacity > 0.5:
                highlight = math.floor(255 * opacity)
                if name == "top":
                    fill_polygon(field, points[[1, 2, 3]], highlight)
                elif name == "right":
                    fill_polygon(field, points[[0, 1, 2]], highlight)
        return field
