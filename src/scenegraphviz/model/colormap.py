"""
Colormap Engine
===============
Maps a scalar ratio to a color by interpolating hue, lightness and saturation
independently between configured bounds.

Everything here is pure and total: no function raises for finite or
non-finite input.
"""
from __future__ import annotations

import colorsys
import math
from dataclasses import dataclass
from typing import Tuple, TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    import numpy.typing as npt

RGBA = Tuple[float, float, float, float]


@dataclass(frozen=True)
class Color:
    """An RGB color with channels in [0, 1]."""
    r: float
    g: float
    b: float

    def to_rgba(self, alpha: float = 1.0) -> RGBA:
        return float(self.r), float(self.g), float(self.b), float(alpha)

    def to_array(self) -> npt.NDArray[np.float64]:
        return np.array([self.r, self.g, self.b], dtype=np.float64)


BLACK = Color(0.0, 0.0, 0.0)
# Substituted when a node's attributes cannot provide a color
SENTINEL_COLOR = Color(1.0, 0.0, 0.0)


@dataclass(frozen=True)
class HlsColorMapConfig:
    """Bounds of the hue-lightness-saturation ramp. All values in [0, 1]."""
    min_hue: float = 0.0
    max_hue: float = 1.0
    min_saturation: float = 1.0
    max_saturation: float = 1.0
    min_luminance: float = 0.5
    max_luminance: float = 0.5


def get_ratio(min_value: float, max_value: float, value: float) -> float:
    """
    Linear normalization of `value` into [min_value, max_value].

    Returns 0.0 whenever the computation is not finite (min == max, NaN or
    infinite inputs, integers beyond the float range); otherwise the result
    is clamped to [0, 1].
    """
    try:
        ratio = float(value - min_value) / float(max_value - min_value)
    except (OverflowError, ZeroDivisionError):
        return 0.0
    if not math.isfinite(ratio):
        return 0.0
    return float(min(max(ratio, 0.0), 1.0))


def _lerp(low: float, high: float, ratio: float) -> float:
    return low + (high - low) * ratio


def interpolate_color_map(config: HlsColorMapConfig, ratio: float) -> Color:
    """Sample the HLS ramp at `ratio` and convert to RGB."""
    ratio = 0.0 if not math.isfinite(ratio) else min(max(ratio, 0.0), 1.0)

    hue = _lerp(config.min_hue, config.max_hue, ratio)
    luminance = _lerp(config.min_luminance, config.max_luminance, ratio)
    saturation = _lerp(config.min_saturation, config.max_saturation, ratio)

    r, g, b = colorsys.hls_to_rgb(hue, luminance, saturation)
    return Color(float(r), float(g), float(b))
