"""
Parameter grid: a fixed, explicitly loaded table of (jitter, cutoff, beta)
candidates valid for one sampling frequency.
"""

import itertools
import json
import os
from typing import Iterable, Iterator, Sequence, Tuple

import numpy as np
import pandas as pd
from loguru import logger
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_fixed

from src.calibration.core import ParameterCandidate
from src.calibration.errors import GridFormatError

CURRENT_DIR = os.path.dirname(os.path.abspath(__file__))
DEFAULT_GRID_PATH = os.path.join(CURRENT_DIR, "resources", "grid_60hz.json")


class ParameterGrid:
    """불변 후보 테이블. 프로세스 전역 싱글톤이 아니라 명시적으로 로드해서 전달합니다."""

    def __init__(self, candidates: Iterable[ParameterCandidate], sample_rate_hz: float):
        self._candidates: Tuple[ParameterCandidate, ...] = tuple(
            ParameterCandidate(float(j), float(c), float(b)) for j, c, b in candidates
        )
        self.sample_rate_hz = float(sample_rate_hz)

    @classmethod
    def from_axes(
        cls,
        jitter: Sequence[float],
        cutoff: Sequence[float],
        beta: Sequence[float],
        sample_rate_hz: float,
    ) -> "ParameterGrid":
        """Cartesian product of the three parameter axes."""
        return cls(itertools.product(jitter, cutoff, beta), sample_rate_hz)

    @classmethod
    def load(cls, path: str = DEFAULT_GRID_PATH, sample_rate_hz: float = None) -> "ParameterGrid":
        """
        JSON: {"sample_rate_hz": 60, "candidates": [[j, c, b], ...]}
           or {"sample_rate_hz": 60, "jitter": [...], "cutoff_hz": [...], "beta": [...]}
        CSV:  columns jitter,cutoff,beta (sample_rate_hz must then be given)
        """
        if path.lower().endswith(".csv"):
            if sample_rate_hz is None:
                raise GridFormatError("sample_rate_hz is required for CSV grids")
            df = _read_csv(path)
            missing = {"jitter", "cutoff", "beta"} - set(df.columns)
            if missing:
                raise GridFormatError(f"Grid CSV {path} is missing columns: {sorted(missing)}")
            rows = df[["jitter", "cutoff", "beta"]].itertuples(index=False, name=None)
            grid = cls(rows, sample_rate_hz)
        else:
            doc = _read_json(path)
            grid = cls.from_document(doc, sample_rate_hz)

        logger.info(f"Loaded parameter grid {path}: {len(grid)} candidates @ {grid.sample_rate_hz} Hz")
        return grid

    @classmethod
    def from_document(cls, doc: dict, sample_rate_hz: float = None) -> "ParameterGrid":
        rate = doc.get("sample_rate_hz", sample_rate_hz)
        if rate is None:
            raise GridFormatError("Grid document does not declare sample_rate_hz")

        if "candidates" in doc:
            try:
                rows = [tuple(row) for row in doc["candidates"]]
            except TypeError as e:
                raise GridFormatError(f"Malformed candidate rows: {e}") from e
            if any(len(row) != 3 for row in rows):
                raise GridFormatError("Every candidate row needs exactly (jitter, cutoff, beta)")
            return cls(rows, rate)

        try:
            return cls.from_axes(doc["jitter"], doc["cutoff_hz"], doc["beta"], rate)
        except KeyError as e:
            raise GridFormatError(f"Grid document is missing axis {e}") from e

    def __len__(self) -> int:
        return len(self._candidates)

    def __iter__(self) -> Iterator[ParameterCandidate]:
        return iter(self._candidates)

    def __getitem__(self, index: int) -> ParameterCandidate:
        return self._candidates[index]

    @property
    def candidates(self) -> Tuple[ParameterCandidate, ...]:
        return self._candidates

    @property
    def jitter_levels(self) -> Tuple[float, ...]:
        return tuple(sorted({c.jitter for c in self._candidates}))

    def for_noise(self, level: float) -> "ParameterGrid":
        """
        Sub-grid holding only the candidates whose jitter is closest to `level`.
        Equidistant levels resolve to the lower jitter.
        """
        levels = self.jitter_levels
        if not levels:
            return self
        distances = np.abs(np.asarray(levels) - level)
        chosen = levels[int(np.argmin(distances))]  # argmin -> 첫 번째(낮은 값) 우선
        return ParameterGrid(
            (c for c in self._candidates if c.jitter == chosen), self.sample_rate_hz
        )


@retry(
    stop=stop_after_attempt(3),
    wait=wait_fixed(0.1),
    retry=retry_if_exception_type(OSError),
    reraise=True,
)
def _read_json(path: str) -> dict:
    with open(path, "r", encoding="utf-8") as f:
        try:
            return json.load(f)
        except json.JSONDecodeError as e:
            raise GridFormatError(f"Grid file {path} is not valid JSON: {e}") from e


@retry(
    stop=stop_after_attempt(3),
    wait=wait_fixed(0.1),
    retry=retry_if_exception_type(OSError),
    reraise=True,
)
def _read_csv(path: str) -> pd.DataFrame:
    return pd.read_csv(path)
