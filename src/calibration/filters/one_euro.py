"""
Three-axis One Euro filter (Casiez et al.): an exponential smoother whose
cutoff rises with the smoothed speed of the signal.
"""

import numpy as np

from src.calibration.core import ParameterCandidate
from src.calibration.filters.base import smoothing_alpha


class OneEuroFilter:
    """
    cutoff -> min_cutoff, beta -> speed coefficient.
    The candidate's jitter field does not affect the filter.
    """

    def __init__(self, sample_rate: float = 60.0, d_cutoff: float = 1.0):
        self.dt = 1.0 / sample_rate
        self.d_cutoff = d_cutoff
        self.reset()

    def reset(self) -> None:
        self.x_prev = None
        self.dx_prev = np.zeros(3)

    def step(self, raw_sample: np.ndarray, parameters: ParameterCandidate) -> np.ndarray:
        x = np.asarray(raw_sample, dtype=float)
        if self.x_prev is None:
            self.x_prev = x
            return x

        # Estimate derivative
        dx = (x - self.x_prev) / self.dt

        # Smooth derivative
        a_d = smoothing_alpha(self.d_cutoff, self.dt)
        edx = a_d * dx + (1.0 - a_d) * self.dx_prev
        self.dx_prev = edx

        # Adaptive cutoff
        cutoff = parameters.cutoff + parameters.beta * np.abs(edx)
        a = smoothing_alpha(cutoff, self.dt)

        x_filtered = a * x + (1.0 - a) * self.x_prev
        self.x_prev = x_filtered
        return x_filtered
