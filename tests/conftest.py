import numpy as np
import pytest

from src.calibration.core import CandidateScore
from src.calibration.filters.smoothing import ExponentialSmoothingFilter
from src.calibration.sampler import SignalSampler

FS = 60.0


class PassThroughSmoother:
    """cutoff <= 0 -> 원신호 그대로, 그 외에는 EMA"""

    def __init__(self, sample_rate: float = FS):
        self.ema = ExponentialSmoothingFilter(sample_rate)

    def reset(self):
        self.ema.reset()

    def step(self, raw_sample, parameters):
        if parameters.cutoff <= 0:
            return np.asarray(raw_sample, dtype=float)
        return self.ema.step(raw_sample, parameters)


class FixedScorer:
    """Returns precomputed (precision, lag) per candidate."""

    thread_safe = True

    def __init__(self, table):
        self.table = table
        self.calls = []

    def score(self, candidate, traces):
        self.calls.append(candidate)
        precision, lag = self.table[candidate]
        return CandidateScore(
            candidate=candidate,
            precision=precision,
            lag_s=lag,
            precision_axes=(precision,) * 3,
            lag_axes=(lag,) * 3,
        )


def exact_noise(n, sigma, seed=1):
    """Zero-mean noise whose sample stddev is exactly sigma on every axis."""
    z = np.random.default_rng(seed).standard_normal((n, 3))
    z = (z - z.mean(axis=0)) / z.std(axis=0, ddof=1)
    return z * sigma


def make_recording(sigma=0.1, slope=5.0, n_still=120, n_move=120, fs=FS):
    """정지 구간 (baseline + 노이즈) 뒤에 기울기 slope 의 ramp 구간"""
    still = 1.0 + exact_noise(n_still, sigma)
    t_move = np.arange(n_move) / fs
    move = np.column_stack([slope * t_move] * 3) + 2.0
    values = np.vstack([still, move])
    timestamps = np.arange(n_still + n_move) / fs
    return SignalSampler(timestamps, values)


@pytest.fixture
def smoother():
    return PassThroughSmoother()


@pytest.fixture
def recording():
    return make_recording()
