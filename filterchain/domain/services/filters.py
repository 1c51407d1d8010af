from __future__ import annotations

import math
from typing import Any, Callable

import numpy as np

# A filter takes a float32 RGB array in [0, 1] with shape (H, W, 3) and the
# converted parameters, and returns a new array of the same convention.
FilterFn = Callable[[np.ndarray, dict[str, Any]], np.ndarray]

_LUMA = np.array([0.299, 0.587, 0.114], dtype=np.float32)


def _param(params: dict[str, Any], key: str, default: float) -> float:
    value = float(params.get(key, default))
    if not math.isfinite(value):
        raise ValueError(f"{key} must be a finite number")
    return value


def _as_rgb(mat: np.ndarray) -> np.ndarray:
    mat = mat.astype(np.float32)
    if mat.ndim == 2:
        return np.repeat(mat[..., None], 3, axis=2)
    return mat[..., :3]


def _clip(mat: np.ndarray) -> np.ndarray:
    return np.clip(mat, 0.0, 1.0).astype(np.float32)


# Luminosity grayscale: 0.299*R + 0.587*G + 0.114*B, kept as three channels
def grayscale(image: np.ndarray, params: dict[str, Any]) -> np.ndarray:
    rgb = _as_rgb(image)
    return _as_rgb(np.dot(rgb, _LUMA))


# Multiplicative brightness: I_out = I_in * level
def brightness(image: np.ndarray, params: dict[str, Any]) -> np.ndarray:
    return _clip(_as_rgb(image) * _param(params, "level", 1.0))


# Contrast around mid-gray: I_out = (I_in - 0.5) * level + 0.5
def contrast(image: np.ndarray, params: dict[str, Any]) -> np.ndarray:
    return _clip((_as_rgb(image) - 0.5) * _param(params, "level", 1.0) + 0.5)


def invert(image: np.ndarray, params: dict[str, Any]) -> np.ndarray:
    return (1.0 - _as_rgb(image)).astype(np.float32)


_SEPIA = np.array(
    [
        [0.393, 0.769, 0.189],
        [0.349, 0.686, 0.168],
        [0.272, 0.534, 0.131],
    ],
    dtype=np.float32,
)


def sepia(image: np.ndarray, params: dict[str, Any]) -> np.ndarray:
    return _clip(_as_rgb(image) @ _SEPIA.T)


# Binarize on luminosity: 1 where Y >= threshold
def binarize(image: np.ndarray, params: dict[str, Any]) -> np.ndarray:
    luma = np.dot(_as_rgb(image), _LUMA)
    return _as_rgb((luma >= _param(params, "threshold", 0.5)).astype(np.float32))


# Logarithmic contrast: I_out = k * log10(1 + I_in)
def log_contrast(image: np.ndarray, params: dict[str, Any]) -> np.ndarray:
    return _clip(_param(params, "k", 1.0) * np.log10(1.0 + _as_rgb(image)))


# Exponential contrast: I_out = k * exp(I_in - 1)
def exp_contrast(image: np.ndarray, params: dict[str, Any]) -> np.ndarray:
    return _clip(_param(params, "k", 1.0) * np.exp(_as_rgb(image) - 1.0))


# Box blur with edge padding; radius 0 is the identity
def blur(image: np.ndarray, params: dict[str, Any]) -> np.ndarray:
    radius = int(_param(params, "radius", 1.0))
    if radius < 0:
        raise ValueError("radius must be >= 0")
    rgb = _as_rgb(image)
    if radius == 0:
        return rgb
    size = 2 * radius + 1
    padded = np.pad(rgb, ((radius, radius), (radius, radius), (0, 0)), mode="edge")
    # summed-area table gives every window sum in O(1)
    sat = np.cumsum(np.cumsum(padded, axis=0, dtype=np.float64), axis=1)
    sat = np.pad(sat, ((1, 0), (1, 0), (0, 0)))
    h, w = rgb.shape[:2]
    total = (
        sat[size : size + h, size : size + w]
        - sat[:h, size : size + w]
        - sat[size : size + h, :w]
        + sat[:h, :w]
    )
    return _clip(total / float(size * size))


# Rotate by angle degrees around the center, nearest-neighbor, same size
def rotate(image: np.ndarray, params: dict[str, Any]) -> np.ndarray:
    rgb = _as_rgb(image)
    h, w = rgb.shape[:2]
    rad = np.deg2rad(_param(params, "angle", 0.0))
    cos_a, sin_a = np.cos(rad), np.sin(rad)
    cx, cy = (w - 1) / 2.0, (h - 1) / 2.0
    ys, xs = np.indices((h, w))
    x_rel, y_rel = xs - cx, ys - cy
    x_src = np.rint(cos_a * x_rel + sin_a * y_rel + cx).astype(int)
    y_src = np.rint(-sin_a * x_rel + cos_a * y_rel + cy).astype(int)
    valid = (x_src >= 0) & (x_src < w) & (y_src >= 0) & (y_src < h)
    out = np.zeros_like(rgb)
    out[valid] = rgb[y_src[valid], x_src[valid]]
    return out


def flip(image: np.ndarray, params: dict[str, Any]) -> np.ndarray:
    direction = str(params.get("direction", "horizontal")).lower()
    rgb = _as_rgb(image)
    if direction == "horizontal":
        return rgb[:, ::-1].copy()
    if direction == "vertical":
        return rgb[::-1, :].copy()
    raise ValueError(f"Unsupported flip direction: {direction}")


# Shift by (dx, dy); positive dx moves right, dy moves down; zero fill
def translate(image: np.ndarray, params: dict[str, Any]) -> np.ndarray:
    dx = int(_param(params, "dx", 0.0))
    dy = int(_param(params, "dy", 0.0))
    rgb = _as_rgb(image)
    h, w = rgb.shape[:2]
    out = np.zeros_like(rgb)
    x_len = w - abs(dx)
    y_len = h - abs(dy)
    if x_len <= 0 or y_len <= 0:
        return out
    xs, xd = max(0, -dx), max(0, dx)
    ys, yd = max(0, -dy), max(0, dy)
    out[yd : yd + y_len, xd : xd + x_len] = rgb[ys : ys + y_len, xs : xs + x_len]
    return out


# Subsample every `factor` pixels
def reduce_resolution(image: np.ndarray, params: dict[str, Any]) -> np.ndarray:
    factor = int(_param(params, "factor", 2.0))
    if factor <= 0:
        raise ValueError("factor must be > 0")
    return _as_rgb(image)[::factor, ::factor].copy()


DEFAULT_FILTERS: list[tuple[str, FilterFn, str]] = [
    ("grayscale", grayscale, "Convert to grayscale using luminosity weights"),
    ("brightness", brightness, "Scale brightness by `level` (1.0 = unchanged)"),
    ("contrast", contrast, "Scale contrast around mid-gray by `level`"),
    ("invert", invert, "Invert all color channels"),
    ("sepia", sepia, "Apply a sepia tone"),
    ("binarize", binarize, "Black and white at luminosity `threshold` (0-1)"),
    ("log_contrast", log_contrast, "Logarithmic contrast k * log10(1 + I)"),
    ("exp_contrast", exp_contrast, "Exponential contrast k * exp(I - 1)"),
    ("blur", blur, "Box blur with integer `radius`"),
    ("rotate", rotate, "Rotate by `angle` degrees around the center"),
    ("flip", flip, "Mirror along `direction` (horizontal or vertical)"),
    ("translate", translate, "Shift by `dx`, `dy` pixels"),
    ("reduce_resolution", reduce_resolution, "Keep every `factor`-th pixel"),
]
