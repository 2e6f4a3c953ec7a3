"""
Fixed-cutoff low-pass filters usable as calibration targets.
Only the candidate's cutoff is used; beta and jitter are ignored.
"""

import numpy as np
from scipy import signal

from src.calibration.core import ParameterCandidate
from src.calibration.filters.base import smoothing_alpha


class ExponentialSmoothingFilter:
    """First-order low-pass (EMA)."""

    def __init__(self, sample_rate: float = 60.0):
        self.dt = 1.0 / sample_rate
        self.reset()

    def reset(self) -> None:
        self.y = None

    def step(self, raw_sample: np.ndarray, parameters: ParameterCandidate) -> np.ndarray:
        x = np.asarray(raw_sample, dtype=float)
        if self.y is None:
            self.y = x
            return x
        self.y = self.y + smoothing_alpha(parameters.cutoff, self.dt) * (x - self.y)
        return self.y


class ButterworthFilter:
    """
    Causal 2nd-order Butterworth low-pass, run sample by sample
    (direct form II transposed). State starts at steady state on the first sample.
    """

    def __init__(self, sample_rate: float = 60.0, order: int = 2):
        self.sample_rate = sample_rate
        self.order = order
        self._coeffs = {}
        self.reset()

    def reset(self) -> None:
        self.z = None

    def coefficients(self, cutoff: float):
        if cutoff not in self._coeffs:
            nyq = 0.5 * self.sample_rate
            normal_cutoff = cutoff / nyq
            if normal_cutoff >= 1.0:
                normal_cutoff = 0.99
            if normal_cutoff <= 0.0:
                raise ValueError(f"Butterworth cutoff must be positive, got {cutoff}")
            b, a = signal.butter(self.order, normal_cutoff, btype="low", analog=False)
            self._coeffs[cutoff] = (b, a)
        return self._coeffs[cutoff]

    def step(self, raw_sample: np.ndarray, parameters: ParameterCandidate) -> np.ndarray:
        x = np.asarray(raw_sample, dtype=float)
        b, a = self.coefficients(parameters.cutoff)

        if self.z is None:
            # (order, 3) 초기 상태: 첫 샘플에서 정상상태
            self.z = np.outer(signal.lfilter_zi(b, a), x)

        y = b[0] * x + self.z[0]
        for i in range(1, len(b)):
            nxt = self.z[i] if i < len(b) - 1 else 0.0
            self.z[i - 1] = b[i] * x - a[i] * y + nxt
        return y
