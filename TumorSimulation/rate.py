"""Per-individual mutation count distributions.

Population-level counts follow the same dual strategy as growth counts:
explicit per-individual draws at or below the mutation sampling limit, a
discretized expectation above it.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import numpy as np
from scipy import stats

from TumorSimulation.growth import discretize

DEFAULT_SAMPLING_LIMIT = 10

# Poisson support is cut at the first k whose upper tail falls below this.
POISSON_TAIL_PROB = 1.0e-6


class MutationRateType(Enum):
    POISSON = "poisson"
    UNIFORM = "uniform"
    ZERO = "zero"


@dataclass(frozen=True)
class MutationRate:
    """Distribution of the number of new mutations in one daughter cell.

    POISSON draws a Poisson count with the given mean; UNIFORM draws a single
    mutation with probability ``mean``; ZERO never mutates.
    """
    rate_type: MutationRateType
    mean: float = 0.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "mean", float(self.mean))
        if self.mean < 0.0:
            raise ValueError(f"Mean mutation rate must be non-negative; got {self.mean}")
        if self.rate_type is MutationRateType.UNIFORM and self.mean > 1.0:
            raise ValueError(f"Uniform mutation rate must lie in [0, 1]; got {self.mean}")
        if self.rate_type is MutationRateType.ZERO and self.mean != 0.0:
            raise ValueError("Zero mutation rate must have zero mean")

    @classmethod
    def poisson(cls, mean: float) -> MutationRate:
        return cls(MutationRateType.POISSON, mean)

    @classmethod
    def uniform(cls, mean: float) -> MutationRate:
        return cls(MutationRateType.UNIFORM, mean)

    @classmethod
    def resolve(cls, rate_type: str | MutationRateType, mean: float = 0.0) -> MutationRate:
        """Build a rate from a configuration type name and mean."""
        if not isinstance(rate_type, MutationRateType):
            try:
                rate_type = MutationRateType(str(rate_type).lower())
            except ValueError:
                raise ValueError(f"Unknown mutation rate type: {rate_type}") from None
        if rate_type is MutationRateType.ZERO:
            return ZERO_RATE
        return cls(rate_type, mean)

    @property
    def is_zero(self) -> bool:
        return self.mean == 0.0

    # -------------------------------------------------------------------------
    # Explicit sampling
    # -------------------------------------------------------------------------

    def sample(self, rng: np.random.Generator) -> int:
        """Mutation count for one individual."""
        if self.is_zero:
            return 0
        if self.rate_type is MutationRateType.POISSON:
            return int(rng.poisson(self.mean))
        return 1 if rng.random() < self.mean else 0

    def sample_each(self, daughter_count: int, rng: np.random.Generator) -> np.ndarray:
        """Independent mutation counts for ``daughter_count`` individuals."""
        if daughter_count < 0:
            raise ValueError(f"daughter_count must be non-negative; got {daughter_count}")
        if self.is_zero:
            return np.zeros(daughter_count, dtype=np.int64)
        if self.rate_type is MutationRateType.POISSON:
            return rng.poisson(self.mean, size=daughter_count).astype(np.int64)
        return (rng.random(daughter_count) < self.mean).astype(np.int64)

    def sample_count(self, daughter_count: int, rng: np.random.Generator) -> int:
        return int(self.sample_each(daughter_count, rng).sum())

    def sample_distribution(self, daughter_count: int, rng: np.random.Generator) -> np.ndarray:
        """Explicit counterpart of compute_distribution: entry k counts daughters with k mutations."""
        return np.bincount(self.sample_each(daughter_count, rng), minlength=1)

    # -------------------------------------------------------------------------
    # Large-population computation
    # -------------------------------------------------------------------------

    def compute_count(self, daughter_count: int, rng: np.random.Generator) -> int:
        if daughter_count < 0:
            raise ValueError(f"daughter_count must be non-negative; got {daughter_count}")
        if self.is_zero:
            return 0
        return discretize(daughter_count * self.mean, rng)

    def effective_upper(self) -> int:
        """Largest per-individual count given non-negligible weight."""
        if self.is_zero:
            return 0
        if self.rate_type is MutationRateType.UNIFORM:
            return 1
        upper = 0
        while stats.poisson.sf(upper, self.mean) >= POISSON_TAIL_PROB:
            upper += 1
        return upper

    def compute_distribution(self, daughter_count: int, rng: np.random.Generator) -> np.ndarray:
        """Discretized number of daughters carrying k = 0, 1, ... new mutations."""
        if daughter_count < 0:
            raise ValueError(f"daughter_count must be non-negative; got {daughter_count}")
        if self.is_zero:
            return np.array([daughter_count], dtype=np.int64)
        if self.rate_type is MutationRateType.UNIFORM:
            mutated = self.compute_count(daughter_count, rng)
            return np.array([daughter_count - mutated, mutated], dtype=np.int64)
        pmf = stats.poisson.pmf(np.arange(self.effective_upper() + 1), self.mean)
        return np.array([discretize(daughter_count * p, rng) for p in pmf], dtype=np.int64)

    def resolve_count(
        self,
        daughter_count: int,
        rng: np.random.Generator,
        sampling_limit: int = DEFAULT_SAMPLING_LIMIT,
    ) -> int:
        if daughter_count <= sampling_limit:
            return self.sample_count(daughter_count, rng)
        return self.compute_count(daughter_count, rng)

    def resolve_distribution(
        self,
        daughter_count: int,
        rng: np.random.Generator,
        sampling_limit: int = DEFAULT_SAMPLING_LIMIT,
    ) -> np.ndarray:
        if daughter_count <= sampling_limit:
            return self.sample_distribution(daughter_count, rng)
        return self.compute_distribution(daughter_count, rng)


ZERO_RATE = MutationRate(MutationRateType.ZERO)
