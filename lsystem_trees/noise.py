"""
Time-keyed noise samples for wind gusts.

The sway functions take the noise sample as an opaque input; this module is
one way of producing it for offline playback.
"""
from typing import Optional

import numpy as np


def lerp(a, b, t):
    return a + t * (b - a)


def fade(t):
    # 6t^5 - 15t^4 + 10t^3
    return t * t * t * (t * (t * 6 - 15) + 10)


class TimeNoise:
    """
    Single-octave 1D Perlin noise in range [-1, 1], sampled by time.

    scale - number of lattice cells per second (~frequency).
    """

    def __init__(self, scale: float = 0.5, period: int = 256, seed: Optional[int] = None):
        self.scale = scale
        self.period = period
        rng = np.random.RandomState(seed) if seed is not None else np.random
        self.gradients = rng.uniform(-1.0, 1.0, period)

    def sample(self, time):
        x = np.asarray(time, dtype=float) * self.scale
        x0 = np.floor(x).astype(int)
        xf = x - x0
        g0 = self.gradients[x0 % self.period]
        g1 = self.gradients[(x0 + 1) % self.period]
        # 1D gradient noise peaks at +-0.5, rescale to [-1, 1]
        value = 2.0 * lerp(g0 * xf, g1 * (xf - 1), fade(xf))
        return float(value) if np.ndim(value) == 0 else value

    __call__ = sample
