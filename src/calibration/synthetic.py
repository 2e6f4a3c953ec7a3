"""
Synthetic scoring fixtures built from the noise and speed estimates.
"""

import numpy as np
from loguru import logger

from src.calibration.core import AXIS_COUNT, NoiseEstimate, SpeedEstimate, SyntheticTraces


class SyntheticSignalGenerator:
    """
    Builds a jitter trace (baseline + noise of exactly the estimated stddev)
    and an edge trace (baseline -> ramp at the estimated speed -> hold).

    The random stream comes only from `seed`, so identical estimates and seed
    always give identical traces.
    """

    def __init__(
        self,
        sample_rate: float = 60.0,
        seed: int = 0,
        jitter_samples: int = 600,
        lead_samples: int = 30,
        ramp_samples: int = 6,
        hold_samples: int = 240,
    ):
        if sample_rate <= 0:
            raise ValueError("sample_rate must be positive")
        if jitter_samples < 2:
            raise ValueError("jitter_samples must be at least 2")
        if lead_samples < 1 or ramp_samples < 1 or hold_samples < 1:
            raise ValueError("lead, ramp and hold segments need at least one sample each")
        self.sample_rate = float(sample_rate)
        self.seed = int(seed)
        self.jitter_samples = jitter_samples
        self.lead_samples = lead_samples
        self.ramp_samples = ramp_samples
        self.hold_samples = hold_samples

    def generate(self, noise: NoiseEstimate, speed: SpeedEstimate) -> SyntheticTraces:
        if not isinstance(noise, NoiseEstimate) or not isinstance(speed, SpeedEstimate):
            raise TypeError("Both a NoiseEstimate and a SpeedEstimate are required")

        baseline = np.asarray(noise.mean)
        jitter = self._jitter_trace(baseline, np.asarray(noise.stddev))
        edge, amplitude = self._edge_trace(baseline, np.asarray(speed.max_rate))

        logger.debug(
            f"Synthetic traces: jitter={jitter.shape}, edge={edge.shape}, amplitude={amplitude}"
        )
        return SyntheticTraces(
            jitter=jitter,
            edge=edge,
            baseline=noise.mean,
            amplitude=tuple(float(a) for a in amplitude),
            edge_start=self.lead_samples,
            sample_rate=self.sample_rate,
            seed=self.seed,
        )

    def _jitter_trace(self, baseline: np.ndarray, stddev: np.ndarray) -> np.ndarray:
        rng = np.random.default_rng(self.seed)
        z = rng.standard_normal((self.jitter_samples, AXIS_COUNT))

        # 정확히 평균 0, 표준편차 1 로 재정규화 -> 추정 표준편차와 동일한 분산
        z = (z - z.mean(axis=0)) / z.std(axis=0, ddof=1)
        trace = baseline + z * stddev
        trace.flags.writeable = False
        return trace

    def _edge_trace(self, baseline: np.ndarray, rate: np.ndarray):
        dt = 1.0 / self.sample_rate
        amplitude = rate * self.ramp_samples * dt

        # lead (baseline) | ramp (기울기 = rate) | hold (baseline + amplitude)
        steps = np.concatenate(
            [
                np.zeros(self.lead_samples),
                np.arange(1, self.ramp_samples + 1) / self.ramp_samples,
                np.ones(self.hold_samples),
            ]
        )
        trace = baseline + steps[:, None] * amplitude
        trace.flags.writeable = False
        return trace, amplitude
