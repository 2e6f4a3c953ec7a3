"""
Maximum rate-of-change ("speed") estimation from a dynamic window.

With outlier_rank=k the k largest per-sample rates are tracked and the
smallest of them is reported, so the k-1 biggest spikes count as outliers.
A noise gate ignores deltas that are within `noise_gate_sigma` standard
deviations of the noise floor.
"""

from typing import Optional

import numpy as np
from loguru import logger

from src.calibration.core import AXIS_COUNT, NoiseEstimate, SignalWindow, SpeedEstimate
from src.calibration.errors import InsufficientDataError
from src.calibration.sampler import SignalSampler


class SpeedEstimator:
    def __init__(
        self,
        min_samples: int = 30,
        outlier_rank: int = 1,
        noise_gate_sigma: float = 0.0,
    ):
        if min_samples < 2:
            raise ValueError("min_samples must be at least 2 to take a difference")
        if outlier_rank < 1:
            raise ValueError("outlier_rank must be >= 1")
        if noise_gate_sigma < 0:
            raise ValueError("noise_gate_sigma must be non-negative")
        self.min_samples = min_samples
        self.outlier_rank = outlier_rank
        self.noise_gate_sigma = noise_gate_sigma

    def estimate(
        self, window: SignalWindow, noise: Optional[NoiseEstimate] = None
    ) -> SpeedEstimate:
        n = len(window)
        if n < self.min_samples:
            logger.error(f"Dynamic window has {n} samples, need {self.min_samples}")
            raise InsufficientDataError(
                f"Dynamic window has {n} samples; at least {self.min_samples} required"
            )

        # 1. 축별 차분 및 샘플 간격
        deltas = np.abs(SignalSampler.differences(window))
        dt = SignalSampler.intervals(window)[:, None]

        # 2. 노이즈 게이트 (노이즈 추정값이 있을 때만)
        if noise is not None and self.noise_gate_sigma > 0:
            gate = self.noise_gate_sigma * np.asarray(noise.stddev)
            deltas = np.where(deltas > gate, deltas, 0.0)

        rates = deltas / dt

        # 3. 상위 k 개 중 최소값 (k=1 이면 최대값)
        k = min(self.outlier_rank, len(rates))
        top_k = np.sort(rates, axis=0)[-k:]
        max_rate = top_k.min(axis=0) if k else np.zeros(AXIS_COUNT)

        estimate = SpeedEstimate(max_rate=max_rate, sample_count=n)
        logger.debug(f"Speed estimate over {n} samples: max_rate={estimate.max_rate}")
        return estimate
