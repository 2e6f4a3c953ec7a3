"""
Application-supplied precision/lag criterion.
Compliant with Pydantic v2 validation.
"""

from typing import List, Optional, Sequence

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, model_validator

from src.calibration.core import CandidateScore


class CriterionWeights(BaseModel):
    """
    Fitness = precision_weight * precision / max(precision)
            + lag_weight       * lag       / max(lag)
    over the feasible candidates (lower is better).

    Hard constraints, when set: precision < max_precision, lag <= max_lag_s.
    A candidate whose filter never settles on the edge trace is never feasible.
    """

    model_config = ConfigDict(frozen=True)

    precision_weight: float = Field(0.0, ge=0, description="Weight of residual noise")
    lag_weight: float = Field(1.0, ge=0, description="Weight of response lag")
    max_precision: Optional[float] = Field(None, gt=0, description="Exclusive residual-noise bound")
    max_lag_s: Optional[float] = Field(None, gt=0, description="Inclusive lag bound in seconds")

    @model_validator(mode="after")
    def check_weights(self) -> "CriterionWeights":
        if self.precision_weight == 0 and self.lag_weight == 0:
            raise ValueError("At least one of precision_weight / lag_weight must be positive")
        return self

    # --- 프리셋 ---

    @classmethod
    def minimize_lag(cls, max_precision: float) -> "CriterionWeights":
        """Lowest lag among candidates whose residual noise stays below max_precision."""
        return cls(precision_weight=0.0, lag_weight=1.0, max_precision=max_precision)

    @classmethod
    def minimize_precision(cls, max_lag_s: float) -> "CriterionWeights":
        return cls(precision_weight=1.0, lag_weight=0.0, max_lag_s=max_lag_s)

    @classmethod
    def weighted(cls, precision_weight: float, lag_weight: float) -> "CriterionWeights":
        return cls(precision_weight=precision_weight, lag_weight=lag_weight)

    @property
    def has_constraint(self) -> bool:
        return self.max_precision is not None or self.max_lag_s is not None

    def is_feasible(self, score: CandidateScore) -> bool:
        if not score.settled:
            return False
        if self.max_precision is not None and not score.precision < self.max_precision:
            return False
        if self.max_lag_s is not None and not score.lag_s <= self.max_lag_s:
            return False
        return True

    def fitness(self, scores: Sequence[CandidateScore]) -> List[float]:
        """
        Fitness for each of `scores` (all assumed feasible), normalized by the
        worst value in the set so both terms are dimensionless.
        """
        if not scores:
            return []
        precision = np.array([s.precision for s in scores])
        lag = np.array([s.lag_s for s in scores])
        return list(
            self.precision_weight * _normalize(precision) + self.lag_weight * _normalize(lag)
        )


def _normalize(values: np.ndarray) -> np.ndarray:
    peak = np.max(values)
    if peak <= 0:
        return np.zeros_like(values)
    return values / peak
