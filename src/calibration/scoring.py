"""
Filter scorer: runs one parameter candidate through the filter under test on
the synthetic traces and measures precision and lag.
"""

import math
import threading
from typing import Callable, Optional

import numpy as np
from loguru import logger

from src.calibration.core import CandidateScore, ParameterCandidate, SyntheticTraces
from src.calibration.filters.base import FilterUnderTest


class FilterScorer:
    """
    precision: 필터링된 jitter trace 의 축별 표본 표준편차 (낮을수록 좋음)
    lag:       edge trace 에서 원신호와 필터 출력이 각각 step 의
               `threshold_fraction` 에 처음 도달한 시점의 차이 (초, 낮을수록 좋음)

    Only reset() and step() are ever called on the filter; reset() runs before
    every trace. Pass `filter_factory` instead of an instance to score from
    several threads: each thread then builds and keeps its own filter.
    """

    def __init__(
        self,
        filter_under_test: Optional[FilterUnderTest] = None,
        threshold_fraction: float = 0.9,
        filter_factory: Optional[Callable[[], FilterUnderTest]] = None,
    ):
        if (filter_under_test is None) == (filter_factory is None):
            raise ValueError("Pass exactly one of filter_under_test or filter_factory")
        if filter_factory is not None:
            filter_under_test = filter_factory()
        if not isinstance(filter_under_test, FilterUnderTest):
            raise TypeError(
                f"{type(filter_under_test).__name__} does not provide reset() and step()"
            )
        if not 0.0 < threshold_fraction <= 1.0:
            raise ValueError("threshold_fraction must be in (0, 1]")
        self.threshold_fraction = threshold_fraction
        self.filter_factory = filter_factory
        self._shared = filter_under_test
        self._local = threading.local()
        self._local.filter = filter_under_test

    @property
    def thread_safe(self) -> bool:
        """True when every scoring thread gets its own filter instance."""
        return self.filter_factory is not None

    def _filter(self) -> FilterUnderTest:
        if self.filter_factory is None:
            return self._shared
        filt = getattr(self._local, "filter", None)
        if filt is None:
            filt = self._local.filter = self.filter_factory()
        return filt

    def score(self, candidate: ParameterCandidate, traces: SyntheticTraces) -> CandidateScore:
        filt = self._filter()

        filt.reset()
        filtered_jitter = self._run(filt, traces.jitter, candidate)
        precision_axes = filtered_jitter.std(axis=0, ddof=1)

        filt.reset()
        filtered_edge = self._run(filt, traces.edge, candidate)
        lag_axes = self._lag(traces, filtered_edge)

        score = CandidateScore(
            candidate=candidate,
            precision=float(np.max(precision_axes)),
            lag_s=float(np.max(lag_axes)),
            precision_axes=tuple(float(p) for p in precision_axes),
            lag_axes=tuple(float(v) for v in lag_axes),
        )
        logger.debug(f"{candidate} -> precision={score.precision:.6g}, lag={score.lag_s:.4g}s")
        return score

    @staticmethod
    def _run(filt: FilterUnderTest, trace: np.ndarray, candidate: ParameterCandidate) -> np.ndarray:
        out = np.empty_like(trace)
        for i, sample in enumerate(trace):
            out[i] = filt.step(sample, candidate)
        return out

    def _lag(self, traces: SyntheticTraces, filtered: np.ndarray) -> np.ndarray:
        baseline = np.asarray(traces.baseline)
        lags = np.zeros(len(traces.amplitude))

        for axis, amplitude in enumerate(traces.amplitude):
            if amplitude == 0.0:
                continue  # step 없음 -> lag 0

            level = baseline[axis] + self.threshold_fraction * amplitude
            true_idx = _first_crossing(traces.edge[:, axis], level)
            filt_idx = _first_crossing(filtered[:, axis], level)

            if filt_idx is None:
                lags[axis] = math.inf
            else:
                lags[axis] = (filt_idx - true_idx) * traces.dt
        return lags


def _first_crossing(series: np.ndarray, level: float):
    """Index of the first sample at or above `level`, None if never reached."""
    hits = np.flatnonzero(series >= level)
    return int(hits[0]) if len(hits) else None
