"""
Tone curve evaluation through control points.

Monotone cubic Hermite interpolation (Fritsch-Carlson slopes), so a curve
through monotone points never overshoots between them.
"""

from typing import Sequence, Tuple, Union

import numpy as np

from film_emulation.color_utils import clamp_channel
from film_emulation.constants import NUMBER_OF_CURVE_POINTS


class ToneCurve:
    """
    Monotone tone curve through 5 control points in [0, 1].

    Parameters:
        points: (x, y) pairs, x strictly increasing, x0 = 0, x4 = 1
    """

    def __init__(self, points: Sequence[Tuple[float, float]]):
        xs = np.array([p[0] for p in points], dtype=np.float64)
        ys = np.array([p[1] for p in points], dtype=np.float64)

        if len(xs) != NUMBER_OF_CURVE_POINTS:
            raise ValueError(f"Tone curve needs exactly {NUMBER_OF_CURVE_POINTS} points, got {len(xs)}")
        if np.any(np.diff(xs) <= 0):
            raise ValueError("Tone curve x values must be strictly increasing")
        if xs[0] != 0.0 or xs[-1] != 1.0:
            raise ValueError("Tone curve must start at x=0 and end at x=1")
        if np.any((ys < 0) | (ys > 1)):
            raise ValueError("Tone curve y values must be in [0, 1]")

        self.xs = xs
        self.ys = ys
        self.slopes = self._fritsch_carlson_slopes(xs, ys)

    @staticmethod
    def _fritsch_carlson_slopes(xs: np.ndarray, ys: np.ndarray) -> np.ndarray:
        h = np.diff(xs)
        delta = np.diff(ys) / h
        slopes = np.empty_like(xs)
        slopes[0] = delta[0]
        slopes[-1] = delta[-1]

        for k in range(1, len(xs) - 1):
            if delta[k - 1] * delta[k] <= 0:
                # local extremum or flat segment
                slopes[k] = 0.0
            else:
                w1 = 2.0 * h[k] + h[k - 1]
                w2 = h[k] + 2.0 * h[k - 1]
                slopes[k] = (w1 + w2) / (w1 / delta[k - 1] + w2 / delta[k])
        return slopes

    def __call__(self, x: Union[float, np.ndarray]) -> Union[float, np.ndarray]:
        """Evaluate at x (clamped to [0, 1]); output clamped to [0, 1]."""
        x = clamp_channel(np.asarray(x, dtype=np.float64))

        k = np.clip(np.searchsorted(self.xs, x, side='right') - 1, 0, len(self.xs) - 2)
        h = self.xs[k + 1] - self.xs[k]
        t = (x - self.xs[k]) / h
        t2 = t * t
        t3 = t2 * t

        h00 = 2 * t3 - 3 * t2 + 1
        h10 = t3 - 2 * t2 + t
        h01 = -2 * t3 + 3 * t2
        h11 = t3 - t2

        y = (h00 * self.ys[k]
             + h10 * h * self.slopes[k]
             + h01 * self.ys[k + 1]
             + h11 * h * self.slopes[k + 1])
        y = clamp_channel(y)
        if np.ndim(y) == 0:
            return float(y)
        return y

    def __repr__(self):
        pts = ", ".join(f"({x:.2f}, {y:.2f})" for x, y in zip(self.xs, self.ys))
        return f"ToneCurve({pts})"
