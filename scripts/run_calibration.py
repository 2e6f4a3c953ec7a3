"""
Filter Calibration Script.

Reads a recorded 3-axis signal (CSV with timestamp,x,y,z columns), estimates
noise on a stationary window and speed on a dynamic window, then grid-searches
the parameter table for the chosen filter.

Usage:
    python scripts/run_calibration.py recording.csv --stationary 0 300 --dynamic 300 900 --max-precision 0.05
"""

import argparse
import os
import sys

import pandas as pd
from loguru import logger

from config import settings
from src.calibration.criteria import CriterionWeights
from src.calibration.errors import CalibrationError
from src.calibration.filters.one_euro import OneEuroFilter
from src.calibration.filters.smoothing import ButterworthFilter, ExponentialSmoothingFilter
from src.calibration.grid import ParameterGrid
from src.calibration.pipeline import CalibrationPipeline
from src.calibration.sampler import SignalSampler


def build_filter(name: str, sample_rate: float):
    if name == "one_euro":
        return OneEuroFilter(sample_rate, d_cutoff=settings.ONE_EURO_D_CUTOFF_HZ)
    if name == "ema":
        return ExponentialSmoothingFilter(sample_rate)
    if name == "butterworth":
        return ButterworthFilter(sample_rate)
    raise ValueError(f"Unknown filter: {name}")


def build_criterion(args) -> CriterionWeights:
    if args.max_precision is not None and args.max_lag is None:
        return CriterionWeights.minimize_lag(args.max_precision)
    if args.max_lag is not None and args.max_precision is None:
        return CriterionWeights.minimize_precision(args.max_lag)
    return CriterionWeights(
        precision_weight=args.precision_weight,
        lag_weight=args.lag_weight,
        max_precision=args.max_precision,
        max_lag_s=args.max_lag,
    )


def main():
    # 1. Set up argument parser
    parser = argparse.ArgumentParser(description="Calibrate a low-pass filter from a recorded 3-axis signal.")
    parser.add_argument("csv_path", type=str, help="CSV file with timestamp,x,y,z columns.")
    parser.add_argument("--stationary", type=int, nargs=2, required=True, metavar=("START", "END"))
    parser.add_argument("--dynamic", type=int, nargs=2, required=True, metavar=("START", "END"))
    parser.add_argument("--filter", choices=["one_euro", "ema", "butterworth"], default="one_euro")
    parser.add_argument("--grid", type=str, default=settings.GRID_PATH, help="Parameter table (JSON or CSV).")
    parser.add_argument("--max-precision", type=float, default=None)
    parser.add_argument("--max-lag", type=float, default=None, help="Seconds.")
    parser.add_argument("--precision-weight", type=float, default=0.5)
    parser.add_argument("--lag-weight", type=float, default=0.5)
    parser.add_argument("--match-jitter", action="store_true", help="Search only the jitter level closest to the noise.")

    if len(sys.argv) == 1:
        parser.print_help(sys.stderr)
        sys.exit(1)

    args = parser.parse_args()

    logger.add(os.path.join(settings.LOG_DIR, "calibration.log"), rotation="1 MB")
    print(f"[*] {settings.PROJECT_NAME} v{settings.VERSION}")

    # 2. Load recording
    if not os.path.exists(args.csv_path):
        print(f"[Error] The specified file was not found: '{args.csv_path}'")
        sys.exit(1)

    try:
        df = pd.read_csv(args.csv_path)
        sampler = SignalSampler.from_dataframe(df)
        print(f"[*] Loaded {len(sampler)} samples (~{sampler.sample_rate:.1f} Hz)")
    except ValueError as e:
        print(f"[Error] Could not read recording '{args.csv_path}': {e}")
        sys.exit(1)

    # 3. Run calibration
    grid = ParameterGrid.load(args.grid, sample_rate_hz=settings.SAMPLE_RATE_HZ)
    pipeline = CalibrationPipeline(
        filter_factory=lambda: build_filter(args.filter, grid.sample_rate_hz),
        grid=grid,
        match_jitter=args.match_jitter,
    )

    try:
        result = pipeline.run(
            sampler,
            stationary=tuple(args.stationary),
            dynamic=tuple(args.dynamic),
            criterion=build_criterion(args),
        )
    except CalibrationError as e:
        print(f"[Error] Calibration failed: {e}")
        sys.exit(2)

    # 4. 결과 출력
    print("\n=== Calibration Result ===")
    print(f"  - Filter: {args.filter}")
    print(f"  - Cutoff_Hz: {result.cutoff}")
    print(f"  - Beta: {result.beta}")
    print(f"  - Jitter_Level: {result.candidate.jitter}")
    print(f"  - Precision: {result.precision:.6g}")
    print(f"  - Lag_s: {result.lag_s:.4g}")
    print(f"  - Noise_Stddev: {result.noise.stddev}")
    print(f"  - Speed_Max_Rate: {result.speed.max_rate}")
    print(f"  - Candidates_Evaluated: {result.evaluated}")


if __name__ == "__main__":
    main()
