"""
Noise-floor estimation from a stationary window.
"""

import numpy as np
from loguru import logger
from scipy import stats

from src.calibration.core import NoiseEstimate, SignalWindow
from src.calibration.errors import InsufficientDataError
from src.calibration.sampler import SignalSampler

# 95% 양측 신뢰구간 z 값 (~1.96)
Z_95 = float(stats.norm.ppf(0.975))


class NoiseEstimator:
    """
    정지 구간의 원시 측정값(차분이 아님)에 대해 축별 표본 표준편차를 계산합니다.
    """

    def __init__(self, min_samples: int = 30):
        if min_samples < 2:
            raise ValueError("min_samples must be at least 2 for a sample standard deviation")
        self.min_samples = min_samples

    def estimate(self, window: SignalWindow) -> NoiseEstimate:
        n = len(window)
        if n < self.min_samples:
            logger.error(f"Stationary window has {n} samples, need {self.min_samples}")
            raise InsufficientDataError(
                f"Stationary window has {n} samples; at least {self.min_samples} required"
            )

        variance = SignalSampler.variance(window, ddof=1)
        stddev = np.sqrt(variance)
        mean = SignalSampler.mean(window)
        ci95 = Z_95 * np.sqrt(variance / n)

        estimate = NoiseEstimate(stddev=stddev, mean=mean, sample_count=n, ci95=ci95)
        logger.debug(f"Noise estimate over {n} samples: stddev={estimate.stddev}")
        return estimate
