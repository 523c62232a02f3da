"""
Image enhancement stages for depth-map generation.

Each stage takes and returns an (H, W) float32 brightness field in
(roughly) [0, 255]. Stages are vectorized with numpy except the
Floyd-Steinberg pass, whose error diffusion is sequential by nature.
"""

import math

import numpy as np
from scipy.ndimage import gaussian_filter1d, map_coordinates

# Rec. 601 luma weights
LUMA_WEIGHTS = (0.299, 0.587, 0.114)


def sample_bilinear(pixels: np.ndarray, width: int, height: int) -> np.ndarray:
    """
    Resample a square bitmap onto a (height, width) cell grid.

    Each output cell samples the bitmap at the cell's center with
    bilinear interpolation; samples near the border are clamped.

    Args:
        pixels: (S, S) or (S, S, C) array.
        width: Output columns.
        height: Output rows.

    Returns:
        (height, width) or (height, width, C) float32 array.
    """
    src_h, src_w = pixels.shape[:2]
    ys = (np.arange(height, dtype=np.float32) + 0.5) * (src_h / height) - 0.5
    xs = (np.arange(width, dtype=np.float32) + 0.5) * (src_w / width) - 0.5
    ys = np.clip(ys, 0, src_h - 1)
    xs = np.clip(xs, 0, src_w - 1)
    yg, xg = np.meshgrid(ys, xs, indexing="ij")
    coords = np.stack([yg, xg])

    data = pixels.astype(np.float32)
    if data.ndim == 2:
        return map_coordinates(data, coords, order=1, mode="nearest").astype(np.float32)

    channels = [
        map_coordinates(data[:, :, c], coords, order=1, mode="nearest")
        for c in range(data.shape[2])
    ]
    return np.stack(channels, axis=-1).astype(np.float32)


def luminance(rgba: np.ndarray) -> np.ndarray:
    """
    Perceptual luminance weighted by alpha.

    Args:
        rgba: (H, W, 4) or (H, W, 3) float array with 0-255 channels.

    Returns:
        (H, W) float32 brightness. Transparent pixels give zero.
    """
    r, g, b = (rgba[:, :, i] for i in range(3))
    lum = r * LUMA_WEIGHTS[0] + g * LUMA_WEIGHTS[1] + b * LUMA_WEIGHTS[2]
    if rgba.shape[2] > 3:
        lum = lum * (rgba[:, :, 3] / 255.0)
    return lum.astype(np.float32)


def apply_gamma(field: np.ndarray, gamma: float) -> np.ndarray:
    """``(b/255)^gamma * 255`` on the clipped field."""
    vals = np.clip(field, 0.0, 255.0) / 255.0
    return (vals ** gamma * 255.0).astype(np.float32)


def sobel_magnitude(field: np.ndarray) -> np.ndarray:
    """
    Sobel gradient magnitude.

    Only interior cells get a gradient; the one-cell border is zero.
    """
    h, w = field.shape
    mag = np.zeros((h, w), dtype=np.float32)
    if h < 3 or w < 3:
        return mag

    f = field.astype(np.float32)
    tl, tc, tr = f[:-2, :-2], f[:-2, 1:-1], f[:-2, 2:]
    ml, mr = f[1:-1, :-2], f[1:-1, 2:]
    bl, bc, br = f[2:, :-2], f[2:, 1:-1], f[2:, 2:]

    gx = -tl + tr - 2 * ml + 2 * mr - bl + br
    gy = -tl - 2 * tc - tr + bl + 2 * bc + br
    mag[1:-1, 1:-1] = np.sqrt(gx * gx + gy * gy)
    return mag


def enhance_edges(
    field: np.ndarray,
    weight: float = 0.4,
    cap: float = 220.0,
) -> np.ndarray:
    """
    Blend Sobel edges into the field and renormalize.

    The combined field is rescaled against the original field's maximum
    so the brightest cell lands at ``cap``, then clipped to ``cap``.
    """
    max_brightness = float(field.max()) if field.size else 0.0
    combined = field + sobel_magnitude(field) * weight
    if max_brightness > 0:
        combined = combined / max_brightness * cap
    return np.minimum(cap, combined).astype(np.float32)


def contrast_stretch(
    field: np.ndarray,
    low_pct: float = 2.0,
    high_pct: float = 98.0,
) -> np.ndarray:
    """
    Stretch the [low, high] percentile range to [0, 255].

    A field whose percentile range collapses (flat image) is returned
    unchanged apart from clipping.
    """
    lo, hi = np.percentile(field, [low_pct, high_pct])
    span = hi - lo
    if span < 1e-6:
        return np.clip(field, 0.0, 255.0).astype(np.float32)
    return np.clip((field - lo) / span * 255.0, 0.0, 255.0).astype(np.float32)


def _tile_lut(bins: np.ndarray, clip_limit: float) -> np.ndarray:
    """Clipped-histogram equalization look-up table for one tile."""
    hist = np.bincount(bins.ravel(), minlength=256).astype(np.float64)
    limit = max(1.0, clip_limit * bins.size / 256.0)
    excess = np.maximum(hist - limit, 0.0).sum()
    hist = np.minimum(hist, limit) + excess / 256.0

    cdf = np.cumsum(hist)
    cdf_min = cdf[0]
    denom = cdf[-1] - cdf_min
    if denom <= 1e-9:
        return np.arange(256, dtype=np.float64)
    return (cdf - cdf_min) / denom * 255.0


def adaptive_equalize(
    field: np.ndarray,
    tile_size: int = 8,
    clip_limit: float = 2.0,
) -> np.ndarray:
    """
    Contrast-limited adaptive histogram equalization.

    The field is split into ``tile_size`` square tiles. Each tile gets
    its own equalization curve from a histogram clipped at
    ``clip_limit`` times the mean bin count, with the clipped mass
    spread evenly over all 256 bins. Cells are mapped through the four
    nearest tile curves with bilinear weights so tile seams do not show.

    Args:
        field: (H, W) brightness field.
        tile_size: Tile edge length in cells.
        clip_limit: Histogram clip factor.

    Returns:
        (H, W) float32 field in [0, 255].
    """
    h, w = field.shape
    bins = np.clip(field, 0.0, 255.0).astype(np.intp)
    ny = max(1, math.ceil(h / tile_size))
    nx = max(1, math.ceil(w / tile_size))

    luts = np.empty((ny, nx, 256), dtype=np.float64)
    for ty in range(ny):
        for tx in range(nx):
            tile = bins[ty * tile_size:(ty + 1) * tile_size, tx * tile_size:(tx + 1) * tile_size]
            luts[ty, tx] = _tile_lut(tile, clip_limit)

    fy = (np.arange(h) + 0.5) / tile_size - 0.5
    fx = (np.arange(w) + 0.5) / tile_size - 0.5
    y0 = np.clip(np.floor(fy).astype(np.intp), 0, ny - 1)
    x0 = np.clip(np.floor(fx).astype(np.intp), 0, nx - 1)
    y1 = np.minimum(y0 + 1, ny - 1)
    x1 = np.minimum(x0 + 1, nx - 1)
    wy = np.clip(fy - y0, 0.0, 1.0)[:, None]
    wx = np.clip(fx - x0, 0.0, 1.0)[None, :]

    y0g, y1g = y0[:, None], y1[:, None]
    x0g, x1g = x0[None, :], x1[None, :]
    top = luts[y0g, x0g, bins] * (1 - wx) + luts[y0g, x1g, bins] * wx
    bottom = luts[y1g, x0g, bins] * (1 - wx) + luts[y1g, x1g, bins] * wx
    out = top * (1 - wy) + bottom * wy

    return np.clip(out, 0.0, 255.0).astype(np.float32)


def unsharp_mask(
    field: np.ndarray,
    sigma: float = 1.0,
    amount: float = 1.2,
) -> np.ndarray:
    """
    Sharpen by re-adding scaled high-frequency detail.

    The blur is a separable Gaussian (one pass per axis).
    """
    f = field.astype(np.float32)
    blurred = gaussian_filter1d(f, sigma, axis=0, mode="nearest")
    blurred = gaussian_filter1d(blurred, sigma, axis=1, mode="nearest")
    detail = f - blurred
    return np.clip(f + detail * amount, 0.0, 255.0).astype(np.float32)


def floyd_steinberg(field: np.ndarray, levels: int = 64) -> np.ndarray:
    """
    Quantize to ``levels`` evenly spaced values with error diffusion.

    Cells are visited in raster order. The quantization error of each
    cell is pushed into the same working buffer ahead of the scan:
    7/16 right, 3/16 below-left, 5/16 below, 1/16 below-right. Error
    pushed past the field edges is dropped.

    Returns:
        (H, W) float32 field of quantized values in [0, 255].
    """
    if levels < 2:
        raise ValueError(f"Dithering needs at least 2 levels, got {levels}")

    h, w = field.shape
    step = 255.0 / (levels - 1)
    work = np.nan_to_num(field.astype(np.float64), nan=0.0).tolist()

    for y in range(h):
        row = work[y]
        below = work[y + 1] if y + 1 < h else None
        for x in range(w):
            old = row[x]
            new = math.floor(old / step + 0.5) * step
            if new < 0.0:
                new = 0.0
            elif new > 255.0:
                new = 255.0
            row[x] = new
            err = old - new
            if x + 1 < w:
                row[x + 1] += err * 7 / 16
            if below is not None:
                if x > 0:
                    below[x - 1] += err * 3 / 16
                below[x] += err * 5 / 16
                if x + 1 < w:
                    below[x + 1] += err * 1 / 16

    return np.asarray(work, dtype=np.float32).reshape(h, w)


def apply_depth_curve(field: np.ndarray, strength: float) -> np.ndarray:
    """
    Radial depth falloff: ``1 - (dist / max_dist) * strength``.

    The center stays at full brightness while the edges recede, which
    the rotation engine reads as the subject bulging toward the viewer.
    """
    h, w = field.shape
    cx, cy = w / 2.0, h / 2.0
    max_dist = math.sqrt(cx * cx + cy * cy)
    if max_dist <= 0:
        return field.astype(np.float32)

    y = np.arange(h, dtype=np.float32) - cy
    x = np.arange(w, dtype=np.float32) - cx
    xg, yg = np.meshgrid(x, y)
    dist = np.sqrt(xg ** 2 + yg ** 2)
    factor = 1.0 - (dist / max_dist) * strength
    return (field * factor).astype(np.float32)
