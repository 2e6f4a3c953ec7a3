"""
Capability expected from any filter being calibrated.
"""

from typing import Protocol, runtime_checkable

import numpy as np

from src.calibration.core import ParameterCandidate


@runtime_checkable
class FilterUnderTest(Protocol):
    """
    reset() 후 step() 을 샘플마다 호출합니다.
    구현체의 내부는 스코어러가 알 필요가 없습니다 (상속 불필요).
    """

    def reset(self) -> None: ...

    def step(self, raw_sample: np.ndarray, parameters: ParameterCandidate) -> np.ndarray: ...


def smoothing_alpha(cutoff_hz, dt: float):
    """
    First-order smoothing factor for a cutoff frequency.
    alpha = dt / (tau + dt) with tau = 1 / (2 pi fc); fc = 0 gives alpha = 0.
    """
    w = 2.0 * np.pi * np.asarray(cutoff_hz, dtype=float) * dt
    return w / (1.0 + w)
