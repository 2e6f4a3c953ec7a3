"""
Core data structures for filter calibration.
"""

import math
from dataclasses import dataclass, field
from typing import NamedTuple, Tuple

import numpy as np

Axes = Tuple[float, float, float]
AXIS_COUNT = 3


def to_axes(values) -> Axes:
    """Converts any 3-element array-like into a plain float triple."""
    arr = np.asarray(values, dtype=float).reshape(-1)
    if arr.shape != (AXIS_COUNT,):
        raise ValueError(f"Expected {AXIS_COUNT} axis values, got shape {arr.shape}")
    return (float(arr[0]), float(arr[1]), float(arr[2]))


class Sample(NamedTuple):
    """타임스탬프가 붙은 3축 샘플 (불변)"""

    timestamp: float
    x: float
    y: float
    z: float


@dataclass(frozen=True, eq=False)
class SignalWindow:
    """
    Read-only view over a contiguous slice [start, end) of a recording.
    The arrays are numpy views of the sampler's (non-writeable) buffers.
    """

    start: int
    end: int
    timestamps: np.ndarray  # (n,)
    values: np.ndarray  # (n, 3)

    def __len__(self) -> int:
        return self.end - self.start

    @property
    def duration(self) -> float:
        if len(self) < 2:
            return 0.0
        return float(self.timestamps[-1] - self.timestamps[0])


@dataclass(frozen=True)
class NoiseEstimate:
    """
    정지 구간의 축별 노이즈 크기.
    stddev 은 표본 표준편차 (ddof=1), ci95 는 평균의 95% 신뢰구간 반폭입니다.
    """

    stddev: Axes
    mean: Axes = (0.0, 0.0, 0.0)
    sample_count: int = 0
    ci95: Axes = (0.0, 0.0, 0.0)

    def __post_init__(self):
        object.__setattr__(self, "stddev", to_axes(self.stddev))
        object.__setattr__(self, "mean", to_axes(self.mean))
        object.__setattr__(self, "ci95", to_axes(self.ci95))
        if any(s < 0 or not math.isfinite(s) for s in self.stddev):
            raise ValueError(f"Noise stddev must be finite and non-negative: {self.stddev}")

    @property
    def level(self) -> float:
        """Worst-axis noise level."""
        return max(self.stddev)


@dataclass(frozen=True)
class SpeedEstimate:
    """동적 구간의 축별 최대 변화율 (단위/초)"""

    max_rate: Axes
    sample_count: int = 0

    def __post_init__(self):
        object.__setattr__(self, "max_rate", to_axes(self.max_rate))
        if any(r < 0 or not math.isfinite(r) for r in self.max_rate):
            raise ValueError(f"Speed must be finite and non-negative: {self.max_rate}")


@dataclass(frozen=True, eq=False)
class SyntheticTraces:
    """
    Scoring fixture built from a noise and a speed estimate.

    jitter: (n, 3) samples scattered around `baseline`.
    edge:   (m, 3) samples ramping from `baseline` to `baseline + amplitude`.
    """

    jitter: np.ndarray
    edge: np.ndarray
    baseline: Axes
    amplitude: Axes
    edge_start: int
    sample_rate: float
    seed: int

    @property
    def dt(self) -> float:
        """Time step (seconds)"""
        return 1.0 / self.sample_rate


class ParameterCandidate(NamedTuple):
    """One row of the parameter grid."""

    jitter: float
    cutoff: float
    beta: float


@dataclass(frozen=True)
class CandidateScore:
    candidate: ParameterCandidate
    precision: float  # worst-axis residual stddev
    lag_s: float  # worst-axis lag (inf = never settled)
    precision_axes: Axes
    lag_axes: Axes

    @property
    def settled(self) -> bool:
        return math.isfinite(self.lag_s)


@dataclass(frozen=True)
class CalibrationResult:
    """최종 캘리브레이션 결과 (감사 추적용으로 추정값 포함)"""

    candidate: ParameterCandidate
    precision: float
    lag_s: float
    fitness: float
    noise: NoiseEstimate
    speed: SpeedEstimate
    evaluated: int = field(default=0)

    @property
    def cutoff(self) -> float:
        return self.candidate.cutoff

    @property
    def beta(self) -> float:
        return self.candidate.beta
