"""
Exhaustive grid search over the parameter table.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from loguru import logger
from tqdm import tqdm

from src.calibration.core import CandidateScore, ParameterCandidate, SyntheticTraces
from src.calibration.criteria import CriterionWeights
from src.calibration.errors import (
    CalibrationCancelledError,
    EmptyGridError,
    NoFeasibleCandidateError,
)
from src.calibration.grid import ParameterGrid


@dataclass(frozen=True)
class SearchOutcome:
    best: CandidateScore
    fitness: float
    evaluated: int
    feasible: int


def selection_key(fitness: float, candidate: ParameterCandidate) -> Tuple[float, float, float, float]:
    """Total order: fitness, then lower cutoff, lower beta, lower jitter."""
    return (fitness, candidate.cutoff, candidate.beta, candidate.jitter)


class GridSearchOptimizer:
    """
    모든 후보를 평가한 뒤 (조기 종료 없음) 기준에 따라 최적 후보를 선택합니다.

    workers > 1 이면 후보 평가를 스레드 풀에 분산합니다 (scorer.thread_safe 필요).
    선택은 평가 순서와 무관한 순수 reduction 이므로 결과는 동일합니다.
    """

    def __init__(
        self,
        scorer,
        workers: int = 1,
        show_progress: bool = False,
        should_stop: Optional[Callable[[], bool]] = None,
    ):
        if workers < 1:
            raise ValueError("workers must be >= 1")
        if workers > 1 and not getattr(scorer, "thread_safe", False):
            raise ValueError("Parallel search needs a scorer built with a filter_factory")
        self.scorer = scorer
        self.workers = workers
        self.show_progress = show_progress
        self.should_stop = should_stop

    def search(
        self, grid: ParameterGrid, traces: SyntheticTraces, criterion: CriterionWeights
    ) -> SearchOutcome:
        if len(grid) == 0:
            logger.error("Parameter grid is empty")
            raise EmptyGridError("The parameter grid holds no candidates")

        # 1. 전체 평가
        scores = self._evaluate(list(grid), traces)

        # 2. 실행 가능 후보 필터링
        feasible = [s for s in scores if criterion.is_feasible(s)]
        if not feasible:
            logger.error(f"None of {len(scores)} candidates satisfies {criterion}")
            raise NoFeasibleCandidateError(
                f"None of the {len(scores)} candidates satisfies the criterion {criterion!r}"
            )

        # 3. 적합도 계산 + 전순서 reduction
        fitness = criterion.fitness(feasible)
        best_fitness, best = min(
            zip(fitness, feasible), key=lambda fs: selection_key(fs[0], fs[1].candidate)
        )

        logger.info(
            f"Grid search: {len(feasible)}/{len(scores)} feasible, best {best.candidate} "
            f"precision={best.precision:.6g} lag={best.lag_s:.4g}s"
        )
        return SearchOutcome(
            best=best, fitness=float(best_fitness), evaluated=len(scores), feasible=len(feasible)
        )

    def _evaluate(self, candidates: List[ParameterCandidate], traces: SyntheticTraces) -> List[CandidateScore]:
        progress = tqdm(total=len(candidates), disable=not self.show_progress, desc="grid search")
        try:
            if self.workers == 1:
                scores = []
                for candidate in candidates:
                    self._check_cancelled()
                    scores.append(self.scorer.score(candidate, traces))
                    progress.update(1)
                return scores

            def evaluate(candidate):
                self._check_cancelled()
                score = self.scorer.score(candidate, traces)
                progress.update(1)
                return score

            with ThreadPoolExecutor(max_workers=self.workers) as pool:
                return list(pool.map(evaluate, candidates))
        finally:
            progress.close()

    def _check_cancelled(self):
        if self.should_stop is not None and self.should_stop():
            logger.warning("Grid search cancelled between candidate evaluations")
            raise CalibrationCancelledError("Calibration cancelled by caller")
