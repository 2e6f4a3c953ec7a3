"""
Staged calibration builder.

    CalibrationBuilder(sampler)
        .estimate_noise(start, end)      -> NoiseStage
        .estimate_speed(start, end)      -> SpeedStage
        .synthesize(generator)           -> SyntheticStage
        .optimize(grid, criterion, opt)  -> CalibrationResult

Each stage only exposes the next transition, and every stage is constructed
from fully-formed predecessor values, so nothing in progress is ever None.
"""

import math
from dataclasses import dataclass
from typing import Optional

from loguru import logger

from src.calibration.core import CalibrationResult, NoiseEstimate, SpeedEstimate, SyntheticTraces
from src.calibration.criteria import CriterionWeights
from src.calibration.grid import ParameterGrid
from src.calibration.noise import NoiseEstimator
from src.calibration.optimizer import GridSearchOptimizer
from src.calibration.sampler import SignalSampler
from src.calibration.speed import SpeedEstimator
from src.calibration.synthetic import SyntheticSignalGenerator


def _require(value, expected_type, name: str):
    if not isinstance(value, expected_type):
        raise TypeError(
            f"{name} must be a {expected_type.__name__}, got {type(value).__name__}"
        )


class CalibrationBuilder:
    def __init__(self, sampler: SignalSampler):
        _require(sampler, SignalSampler, "sampler")
        self.sampler = sampler

    def estimate_noise(
        self, start: int, end: int, estimator: Optional[NoiseEstimator] = None
    ) -> "NoiseStage":
        estimator = estimator or NoiseEstimator()
        window = self.sampler.window(start, end)
        noise = estimator.estimate(window)
        logger.info(
            f"[1/4] Noise estimated on [{start}, {end}) ({window.duration:.2f}s): stddev={noise.stddev}"
        )
        return NoiseStage(sampler=self.sampler, noise=noise)


@dataclass(frozen=True)
class NoiseStage:
    """노이즈 추정 완료 상태"""

    sampler: SignalSampler
    noise: NoiseEstimate

    def __post_init__(self):
        _require(self.sampler, SignalSampler, "sampler")
        _require(self.noise, NoiseEstimate, "noise")

    def estimate_speed(
        self, start: int, end: int, estimator: Optional[SpeedEstimator] = None
    ) -> "SpeedStage":
        estimator = estimator or SpeedEstimator()
        window = self.sampler.window(start, end)
        speed = estimator.estimate(window, noise=self.noise)
        logger.info(
            f"[2/4] Speed estimated on [{start}, {end}) ({window.duration:.2f}s): max_rate={speed.max_rate}"
        )
        return SpeedStage(noise=self.noise, speed=speed)


@dataclass(frozen=True)
class SpeedStage:
    """노이즈 + 속도 추정 완료 상태"""

    noise: NoiseEstimate
    speed: SpeedEstimate

    def __post_init__(self):
        _require(self.noise, NoiseEstimate, "noise")
        _require(self.speed, SpeedEstimate, "speed")

    def synthesize(self, generator: Optional[SyntheticSignalGenerator] = None) -> "SyntheticStage":
        generator = generator or SyntheticSignalGenerator()
        traces = generator.generate(self.noise, self.speed)
        logger.info(
            f"[3/4] Synthetic traces: {len(traces.jitter)} jitter / {len(traces.edge)} edge samples "
            f"(seed={traces.seed})"
        )
        return SyntheticStage(noise=self.noise, speed=self.speed, traces=traces)


@dataclass(frozen=True)
class SyntheticStage:
    noise: NoiseEstimate
    speed: SpeedEstimate
    traces: SyntheticTraces

    def __post_init__(self):
        _require(self.noise, NoiseEstimate, "noise")
        _require(self.speed, SpeedEstimate, "speed")
        _require(self.traces, SyntheticTraces, "traces")

    def optimize(
        self,
        grid: ParameterGrid,
        criterion: CriterionWeights,
        optimizer: GridSearchOptimizer,
    ) -> CalibrationResult:
        _require(grid, ParameterGrid, "grid")
        _require(criterion, CriterionWeights, "criterion")

        if not math.isclose(grid.sample_rate_hz, self.traces.sample_rate, rel_tol=0.01):
            logger.warning(
                f"Grid is tabulated for {grid.sample_rate_hz} Hz but traces are "
                f"{self.traces.sample_rate} Hz; parameters may not transfer"
            )

        outcome = optimizer.search(grid, self.traces, criterion)
        best = outcome.best
        logger.info(
            f"[4/4] Calibrated: cutoff={best.candidate.cutoff}, beta={best.candidate.beta} "
            f"({outcome.evaluated} candidates evaluated)"
        )
        return CalibrationResult(
            candidate=best.candidate,
            precision=best.precision,
            lag_s=best.lag_s,
            fitness=outcome.fitness,
            noise=self.noise,
            speed=self.speed,
            evaluated=outcome.evaluated,
        )
