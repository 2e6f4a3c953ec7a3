"""
Calibration Pipeline Manager.
Wires the staged builder with components configured from `settings`.
"""

import math
from typing import Callable, Optional, Tuple

from loguru import logger

from config import settings
from src.calibration.builder import CalibrationBuilder
from src.calibration.core import CalibrationResult
from src.calibration.criteria import CriterionWeights
from src.calibration.filters.base import FilterUnderTest
from src.calibration.grid import ParameterGrid
from src.calibration.noise import NoiseEstimator
from src.calibration.optimizer import GridSearchOptimizer
from src.calibration.sampler import SignalSampler
from src.calibration.scoring import FilterScorer
from src.calibration.speed import SpeedEstimator
from src.calibration.synthetic import SyntheticSignalGenerator


class CalibrationPipeline:
    def __init__(
        self,
        filter_under_test: Optional[FilterUnderTest] = None,
        grid: Optional[ParameterGrid] = None,
        match_jitter: bool = False,
        filter_factory: Optional[Callable[[], FilterUnderTest]] = None,
    ):
        if (filter_under_test is None) == (filter_factory is None):
            raise ValueError("Pass exactly one of filter_under_test or filter_factory")
        self.filter_under_test = filter_under_test
        self.filter_factory = filter_factory
        self.grid = grid
        self.match_jitter = match_jitter

    def run(
        self,
        sampler: SignalSampler,
        stationary: Tuple[int, int],
        dynamic: Tuple[int, int],
        criterion: CriterionWeights,
        should_stop=None,
    ) -> CalibrationResult:
        """
        정지 구간 / 동적 구간 인덱스를 받아 전체 캘리브레이션을 수행합니다.

        :param stationary: (start, end) of a window with no intentional motion
        :param dynamic: (start, end) of a window with a deliberate fast sweep
        """
        # 그리드는 명시적으로 로드 (전역 싱글톤 없음)
        grid = self.grid if self.grid is not None else ParameterGrid.load(settings.GRID_PATH)
        if not math.isclose(sampler.sample_rate, grid.sample_rate_hz, rel_tol=0.05):
            logger.warning(
                f"Recording is sampled at ~{sampler.sample_rate:.1f} Hz but the grid "
                f"targets {grid.sample_rate_hz} Hz"
            )

        # 1. 노이즈 / 속도 추정
        noise_stage = CalibrationBuilder(sampler).estimate_noise(
            *stationary, estimator=NoiseEstimator(min_samples=settings.MIN_WINDOW_SAMPLES)
        )
        speed_stage = noise_stage.estimate_speed(
            *dynamic,
            estimator=SpeedEstimator(
                min_samples=settings.MIN_WINDOW_SAMPLES,
                outlier_rank=settings.SPEED_OUTLIER_RANK,
                noise_gate_sigma=settings.SPEED_NOISE_GATE_SIGMA,
            ),
        )

        # 2. 합성 신호 생성
        synthetic_stage = speed_stage.synthesize(
            SyntheticSignalGenerator(
                sample_rate=grid.sample_rate_hz,
                seed=settings.SYNTHETIC_SEED,
                jitter_samples=settings.JITTER_SAMPLES,
                lead_samples=settings.EDGE_LEAD_SAMPLES,
                ramp_samples=settings.EDGE_RAMP_SAMPLES,
                hold_samples=settings.EDGE_HOLD_SAMPLES,
            )
        )

        # 3. 그리드 탐색
        if self.match_jitter:
            grid = grid.for_noise(speed_stage.noise.level)

        # 단일 필터 인스턴스는 스레드 간 공유 불가 -> 직렬 탐색
        workers = settings.SEARCH_WORKERS
        if workers > 1 and self.filter_factory is None:
            logger.warning(f"SEARCH_WORKERS={workers} ignored: no filter_factory, searching serially")
            workers = 1

        optimizer = GridSearchOptimizer(
            FilterScorer(
                self.filter_under_test,
                settings.LAG_THRESHOLD_FRACTION,
                filter_factory=self.filter_factory,
            ),
            workers=workers,
            show_progress=settings.SHOW_PROGRESS,
            should_stop=should_stop,
        )
        return synthetic_stage.optimize(grid, criterion, optimizer)
