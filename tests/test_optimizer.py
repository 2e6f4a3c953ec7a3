import math

import pytest
from pydantic import ValidationError

from conftest import FixedScorer
from src.calibration.core import CandidateScore, NoiseEstimate, ParameterCandidate, SpeedEstimate
from src.calibration.criteria import CriterionWeights
from src.calibration.errors import (
    CalibrationCancelledError,
    EmptyGridError,
    NoFeasibleCandidateError,
)
from src.calibration.grid import ParameterGrid
from src.calibration.filters.smoothing import ExponentialSmoothingFilter
from src.calibration.optimizer import GridSearchOptimizer
from src.calibration.scoring import FilterScorer
from src.calibration.synthetic import SyntheticSignalGenerator

A = ParameterCandidate(0.5, 2.0, 0.1)
B = ParameterCandidate(0.5, 1.0, 0.3)
C = ParameterCandidate(0.5, 1.0, 0.2)

TRACES = SyntheticSignalGenerator().generate(
    NoiseEstimate(stddev=(0.1, 0.1, 0.1)), SpeedEstimate(max_rate=(5.0, 5.0, 5.0))
)


def grid_of(*candidates):
    return ParameterGrid(candidates, sample_rate_hz=60.0)


def test_strictly_better_fitness_wins():
    scorer = FixedScorer({A: (0.01, 0.05), B: (0.01, 0.10)})
    outcome = GridSearchOptimizer(scorer).search(grid_of(A, B), TRACES, CriterionWeights())

    assert outcome.best.candidate == A
    assert outcome.evaluated == 2


def test_exact_tie_prefers_lower_cutoff_then_beta():
    scorer = FixedScorer({A: (0.01, 0.05), B: (0.01, 0.05), C: (0.01, 0.05)})
    optimizer = GridSearchOptimizer(scorer)

    picks = {optimizer.search(grid_of(*order), TRACES, CriterionWeights()).best.candidate
             for order in [(A, B, C), (C, B, A), (B, A, C)] * 3}

    assert picks == {C}


def test_search_is_exhaustive():
    scorer = FixedScorer({A: (0.01, 0.0), B: (0.02, 0.1), C: (0.03, 0.2)})
    GridSearchOptimizer(scorer).search(grid_of(A, B, C), TRACES, CriterionWeights())
    assert scorer.calls == [A, B, C]


def test_empty_grid():
    with pytest.raises(EmptyGridError):
        GridSearchOptimizer(FixedScorer({})).search(grid_of(), TRACES, CriterionWeights())


def test_hard_constraint_filters_candidates():
    scorer = FixedScorer({A: (0.04, 0.05), B: (0.02, 0.20), C: (0.06, 0.01)})
    criterion = CriterionWeights.minimize_lag(max_precision=0.05)

    outcome = GridSearchOptimizer(scorer).search(grid_of(A, B, C), TRACES, criterion)

    assert outcome.best.candidate == A
    assert outcome.feasible == 2


def test_unsatisfiable_constraint():
    scorer = FixedScorer({A: (0.04, 0.05), B: (0.02, 0.20)})
    with pytest.raises(NoFeasibleCandidateError):
        GridSearchOptimizer(scorer).search(
            grid_of(A, B), TRACES, CriterionWeights.minimize_lag(max_precision=0.001)
        )


def test_unsettled_candidates_are_never_selected():
    scorer = FixedScorer({A: (0.001, math.inf), B: (0.02, 0.2)})
    outcome = GridSearchOptimizer(scorer).search(
        grid_of(A, B), TRACES, CriterionWeights.weighted(1.0, 0.0)
    )
    assert outcome.best.candidate == B

    scorer = FixedScorer({A: (0.001, math.inf)})
    with pytest.raises(NoFeasibleCandidateError):
        GridSearchOptimizer(scorer).search(grid_of(A), TRACES, CriterionWeights())


def test_weighted_sum_balances_normalized_scores():
    # precision 정규화: A 1.0, B 0.5 / lag 정규화: A 0.25, B 1.0
    scorer = FixedScorer({A: (0.04, 0.05), B: (0.02, 0.20)})
    optimizer = GridSearchOptimizer(scorer)

    assert optimizer.search(grid_of(A, B), TRACES, CriterionWeights.weighted(1, 1)).best.candidate == A
    assert optimizer.search(grid_of(A, B), TRACES, CriterionWeights.weighted(4, 1)).best.candidate == B


def test_parallel_evaluation_gives_same_result():
    table = {ParameterCandidate(0.5, c / 10, b / 10): ((c * b) % 7 / 100 + 0.01, (c + b) % 5 / 10)
             for c in range(1, 11) for b in range(0, 5)}
    grid = ParameterGrid(table.keys(), 60.0)
    criterion = CriterionWeights.weighted(1, 1)

    serial = GridSearchOptimizer(FixedScorer(table)).search(grid, TRACES, criterion)
    parallel = GridSearchOptimizer(FixedScorer(table), workers=4).search(grid, TRACES, criterion)

    assert serial == parallel


def test_parallel_filter_scoring_matches_serial():
    grid = ParameterGrid.from_axes([0.1], [0.5, 1.0, 2.0, 4.0], [0.0, 0.1], sample_rate_hz=60.0)
    criterion = CriterionWeights.weighted(1, 1)

    serial = GridSearchOptimizer(FilterScorer(ExponentialSmoothingFilter(60.0)))
    parallel = GridSearchOptimizer(
        FilterScorer(filter_factory=lambda: ExponentialSmoothingFilter(60.0)), workers=4
    )

    assert serial.search(grid, TRACES, criterion) == parallel.search(grid, TRACES, criterion)


def test_parallel_search_needs_per_thread_filters():
    with pytest.raises(ValueError):
        GridSearchOptimizer(FilterScorer(ExponentialSmoothingFilter(60.0)), workers=2)


def test_cancellation_between_candidates():
    scorer = FixedScorer({A: (0.01, 0.1), B: (0.01, 0.1)})
    optimizer = GridSearchOptimizer(scorer, should_stop=lambda: len(scorer.calls) >= 1)

    with pytest.raises(CalibrationCancelledError):
        optimizer.search(grid_of(A, B), TRACES, CriterionWeights())
    assert scorer.calls == [A]


def test_criterion_validation():
    with pytest.raises(ValidationError):
        CriterionWeights(precision_weight=0.0, lag_weight=0.0)
    with pytest.raises(ValidationError):
        CriterionWeights(lag_weight=-1.0)
    with pytest.raises(ValidationError):
        CriterionWeights.minimize_lag(max_precision=0.0)

    criterion = CriterionWeights.minimize_lag(0.05)
    with pytest.raises(ValidationError):
        criterion.lag_weight = 2.0


def test_constraint_bounds():
    criterion = CriterionWeights(max_precision=0.05, max_lag_s=0.1)

    def score(precision, lag):
        return CandidateScore(A, precision, lag, (precision,) * 3, (lag,) * 3)

    assert criterion.is_feasible(score(0.049, 0.1))
    assert not criterion.is_feasible(score(0.05, 0.1))
    assert not criterion.is_feasible(score(0.01, 0.11))
