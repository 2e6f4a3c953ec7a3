"""
Signal sampler: holds a recorded 3-axis signal and hands out read-only windows.
"""

import numpy as np
import pandas as pd
from typing import Sequence

from src.calibration.core import AXIS_COUNT, Sample, SignalWindow
from src.calibration.errors import RangeError


class SignalSampler:
    """녹화된 (timestamp, x, y, z) 시퀀스 래퍼"""

    def __init__(self, timestamps: np.ndarray, values: np.ndarray):
        timestamps = np.array(timestamps, dtype=float)
        values = np.array(values, dtype=float)

        # 1. 형상 검증
        if timestamps.ndim != 1:
            raise ValueError("timestamps must be one-dimensional")
        if values.shape != (len(timestamps), AXIS_COUNT):
            raise ValueError(
                f"values must have shape ({len(timestamps)}, {AXIS_COUNT}), got {values.shape}"
            )
        if len(timestamps) > 1 and np.any(np.diff(timestamps) <= 0):
            raise ValueError("timestamps must be strictly increasing")

        # 2. 원본 보호 (윈도우는 모두 이 버퍼의 view)
        timestamps.flags.writeable = False
        values.flags.writeable = False
        self._timestamps = timestamps
        self._values = values

    @classmethod
    def from_samples(cls, samples: Sequence[Sample]) -> "SignalSampler":
        rows = np.asarray([tuple(s) for s in samples], dtype=float).reshape(-1, 4)
        return cls(rows[:, 0], rows[:, 1:])

    @classmethod
    def from_dataframe(
        cls, df: pd.DataFrame, time_col: str = "timestamp", axis_cols=("x", "y", "z")
    ) -> "SignalSampler":
        missing = [c for c in (time_col, *axis_cols) if c not in df.columns]
        if missing:
            raise ValueError(f"Missing columns: {missing}")
        df = df.dropna(subset=[time_col, *axis_cols]).sort_values(time_col)
        return cls(df[time_col].to_numpy(), df[list(axis_cols)].to_numpy())

    def __len__(self) -> int:
        return len(self._timestamps)

    @property
    def sample_rate(self) -> float:
        """Sampling frequency estimated from the median interval (Hz)."""
        if len(self) < 2:
            raise RangeError("At least two samples are needed to estimate a sample rate")
        return float(1.0 / np.median(np.diff(self._timestamps)))

    def sample(self, index: int) -> Sample:
        if not 0 <= index < len(self):
            raise RangeError(f"Sample index {index} outside [0, {len(self)})")
        x, y, z = self._values[index]
        return Sample(float(self._timestamps[index]), float(x), float(y), float(z))

    def window(self, start: int, end: int) -> SignalWindow:
        """Returns the half-open slice [start, end)."""
        if start >= end:
            raise RangeError(f"Window start ({start}) must be before end ({end})")
        if start < 0 or end > len(self):
            raise RangeError(f"Window [{start}, {end}) exceeds recorded data [0, {len(self)})")
        return SignalWindow(
            start=start,
            end=end,
            timestamps=self._timestamps[start:end],
            values=self._values[start:end],
        )

    def window_by_time(self, t_start: float, t_end: float) -> SignalWindow:
        """Window covering samples with t_start <= t < t_end."""
        if t_start >= t_end:
            raise RangeError(f"Window start ({t_start}s) must be before end ({t_end}s)")
        if len(self) == 0 or t_start < self._timestamps[0] or t_end > self._timestamps[-1] + self._last_interval():
            raise RangeError(f"Time range [{t_start}, {t_end}) exceeds recorded data")
        start = int(np.searchsorted(self._timestamps, t_start, side="left"))
        end = int(np.searchsorted(self._timestamps, t_end, side="left"))
        return self.window(start, end)

    def _last_interval(self) -> float:
        if len(self) < 2:
            return 0.0
        return float(self._timestamps[-1] - self._timestamps[-2])

    # --- 기본 통계 ---

    @staticmethod
    def differences(window: SignalWindow) -> np.ndarray:
        """Consecutive-sample deltas per axis, shape (n-1, 3)."""
        return np.diff(window.values, axis=0)

    @staticmethod
    def intervals(window: SignalWindow) -> np.ndarray:
        """Consecutive timestamp deltas, shape (n-1,)."""
        return np.diff(window.timestamps)

    @staticmethod
    def mean(window: SignalWindow) -> np.ndarray:
        return window.values.mean(axis=0)

    @staticmethod
    def variance(window: SignalWindow, ddof: int = 1) -> np.ndarray:
        return window.values.var(axis=0, ddof=ddof)
