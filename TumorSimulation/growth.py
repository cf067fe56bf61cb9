"""Birth/death rates and realized event counts for one discrete time step.

Two algorithms turn a GrowthRate into a GrowthCount for a population of N
identical cells:

    sample_count:  one categorical draw per cell (birth, death, or neither);
                   O(N) but carries the full binomial noise.
    compute_count: N * rate split into integer and fractional parts, with a
                   single weighted coin flip for the fractional remainder;
                   O(1) and unbiased in expectation.

resolve_count picks sampling for populations at or below the explicit
sampling limit and computation above it.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable

import numpy as np

UNBOUNDED_CAPACITY = int(np.iinfo(np.int64).max)
DEFAULT_SAMPLING_LIMIT = 10


def discretize(value: float, rng: np.random.Generator) -> int:
    """Round a non-negative real to an integer whose expectation is ``value``.

    The integer part is kept and one is added with probability equal to the
    fractional part.
    """
    if value < 0.0:
        raise ValueError(f"Cannot discretize a negative value: {value}")
    whole = math.floor(value)
    frac = value - whole
    if frac > 0.0 and rng.random() < frac:
        whole += 1
    return int(whole)


def _validate_population(population: int, capacity: int) -> None:
    if population < 0:
        raise ValueError(f"Population size must be non-negative; got {population}")
    if capacity < 0:
        raise ValueError(f"Growth capacity must be non-negative; got {capacity}")


# -----------------------------------------------------------------------------
# Realized counts
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class GrowthCount:
    """Birth and death events realized by a population in one step."""
    birth_count: int
    death_count: int

    def __post_init__(self) -> None:
        if self.birth_count < 0:
            raise ValueError(f"birth_count must be non-negative; got {self.birth_count}")
        if self.death_count < 0:
            raise ValueError(f"death_count must be non-negative; got {self.death_count}")
        object.__setattr__(self, "birth_count", int(self.birth_count))
        object.__setattr__(self, "death_count", int(self.death_count))

    @property
    def event_count(self) -> int:
        return self.birth_count + self.death_count

    @property
    def net_change(self) -> int:
        return self.birth_count - self.death_count

    @property
    def daughter_count(self) -> int:
        """Cells created by birth events: each birth replaces one parent with two daughters."""
        return 2 * self.birth_count

    @staticmethod
    def sum(counts: Iterable[GrowthCount]) -> GrowthCount:
        birth = 0
        death = 0
        for count in counts:
            birth += count.birth_count
            death += count.death_count
        return GrowthCount(birth, death)


ZERO_COUNT = GrowthCount(0, 0)


# -----------------------------------------------------------------------------
# Rates
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class GrowthRate:
    """Per-step birth and death probabilities for one cell.

    Each rate must lie in [0, 1]. Their sum may exceed one for rates used as
    plain values, but the count algorithms require a normalized event rate.
    """
    birth_rate: float
    death_rate: float

    def __post_init__(self) -> None:
        birth = float(self.birth_rate)
        death = float(self.death_rate)
        if not 0.0 <= birth <= 1.0:
            raise ValueError(f"birth_rate must lie in [0, 1]; got {birth}")
        if not 0.0 <= death <= 1.0:
            raise ValueError(f"death_rate must lie in [0, 1]; got {death}")
        object.__setattr__(self, "birth_rate", birth)
        object.__setattr__(self, "death_rate", death)

    # -------------------------------------------------------------------------
    # Factories
    # -------------------------------------------------------------------------

    @classmethod
    def net(cls, net_rate: float) -> GrowthRate:
        """Normalized rate (birth + death == 1) with the given net rate."""
        if not -1.0 <= net_rate <= 1.0:
            raise ValueError(f"net_rate must lie in [-1, 1]; got {net_rate}")
        return cls(0.5 * (1.0 + net_rate), 0.5 * (1.0 - net_rate))

    @classmethod
    def zero_birth(cls, death_rate: float) -> GrowthRate:
        return cls(0.0, death_rate)

    @classmethod
    def zero_growth(cls, event_rate: float) -> GrowthRate:
        """Rate with equal birth and death probabilities summing to ``event_rate``."""
        return cls(0.5 * event_rate, 0.5 * event_rate)

    # -------------------------------------------------------------------------
    # Derived quantities
    # -------------------------------------------------------------------------

    @property
    def net_rate(self) -> float:
        return self.birth_rate - self.death_rate

    @property
    def event_rate(self) -> float:
        return self.birth_rate + self.death_rate

    @property
    def growth_factor(self) -> float:
        return 1.0 + self.net_rate

    def growth_factor_after(self, steps: int) -> float:
        """Expected population multiplier after ``steps`` time steps."""
        if steps < 0:
            raise ValueError(f"steps must be non-negative; got {steps}")
        return self.growth_factor ** steps

    @property
    def doubling_time(self) -> float:
        """Time steps for the expected population to double (inf without net growth)."""
        if self.growth_factor <= 1.0:
            return math.inf
        return math.log(2.0) / math.log(self.growth_factor)

    # -------------------------------------------------------------------------
    # Derived rates
    # -------------------------------------------------------------------------

    def no_birth(self) -> GrowthRate:
        """Same death rate with births suppressed."""
        return GrowthRate(0.0, self.death_rate)

    def no_growth(self) -> GrowthRate:
        """Split the event rate evenly when this rate grows; otherwise unchanged."""
        if self.growth_factor <= 1.0:
            return self
        return GrowthRate.zero_growth(self.event_rate)

    def rescale_birth_rate(self, scale: float) -> GrowthRate:
        return GrowthRate(scale * self.birth_rate, self.death_rate)

    def rescale_death_rate(self, scale: float) -> GrowthRate:
        return GrowthRate(self.birth_rate, scale * self.death_rate)

    def rescale_growth_factor(self, scale: float) -> GrowthRate:
        """Multiply the growth factor by ``scale`` while keeping the event rate.

        Solving B' + D' = B + D and 1 + B' - D' = scale * (1 + B - D) gives
        B' = (sm1 + sp1 * B - sm1 * D) / 2 and D' = (-sm1 - sm1 * B + sp1 * D) / 2
        with sm1 = scale - 1 and sp1 = scale + 1.
        """
        if scale < 0.0:
            raise ValueError(f"Growth factor scale must be non-negative; got {scale}")
        sm1 = scale - 1.0
        sp1 = scale + 1.0
        birth = 0.5 * (sm1 + sp1 * self.birth_rate - sm1 * self.death_rate)
        death = 0.5 * (-sm1 - sm1 * self.birth_rate + sp1 * self.death_rate)
        return GrowthRate(birth, death)

    # -------------------------------------------------------------------------
    # Event counts
    # -------------------------------------------------------------------------

    def _require_normalized(self) -> None:
        if self.event_rate > 1.0 + 1e-12:
            raise ValueError(
                f"Event counts require birth_rate + death_rate <= 1; got {self.event_rate}"
            )

    def compute_count(
        self,
        population: int,
        capacity: int = UNBOUNDED_CAPACITY,
        rng: np.random.Generator | None = None,
    ) -> GrowthCount:
        """Semi-stochastic event count for a large population.

        The total event count is discretized first and then split by the
        death fraction, so death_count never exceeds the event count and the
        event count never exceeds the population. When the net change would
        exceed ``capacity``, births are reduced until it matches exactly.
        """
        _validate_population(population, capacity)
        self._require_normalized()
        if population == 0 or self.event_rate == 0.0:
            return ZERO_COUNT
        if rng is None:
            rng = np.random.default_rng()

        event_count = min(population, discretize(population * self.event_rate, rng))
        death_count = discretize(event_count * self.death_rate / self.event_rate, rng)
        death_count = min(death_count, event_count)
        birth_count = event_count - death_count

        if birth_count - death_count > capacity:
            birth_count = death_count + capacity
        return GrowthCount(birth_count, death_count)

    def sample_count(
        self,
        population: int,
        capacity: int = UNBOUNDED_CAPACITY,
        rng: np.random.Generator | None = None,
    ) -> GrowthCount:
        """Explicit event count: one independent outcome per cell.

        A birth only counts while the running net growth is below
        ``capacity``; a capped birth leaves the cell unchanged.
        """
        _validate_population(population, capacity)
        self._require_normalized()
        if population == 0 or self.event_rate == 0.0:
            return ZERO_COUNT
        if rng is None:
            rng = np.random.default_rng()

        if capacity >= population:
            # Net growth cannot exceed the population, so the cap never binds.
            idle = max(0.0, 1.0 - self.event_rate)
            birth, death, _ = rng.multinomial(population, [self.birth_rate, self.death_rate, idle])
            return GrowthCount(int(birth), int(death))

        birth_count = 0
        death_count = 0
        net_growth = 0
        for draw in rng.random(population):
            if draw < self.birth_rate:
                if net_growth < capacity:
                    birth_count += 1
                    net_growth += 1
            elif draw < self.event_rate:
                death_count += 1
                net_growth -= 1
        return GrowthCount(birth_count, death_count)

    def resolve_count(
        self,
        population: int,
        capacity: int = UNBOUNDED_CAPACITY,
        rng: np.random.Generator | None = None,
        sampling_limit: int = DEFAULT_SAMPLING_LIMIT,
    ) -> GrowthCount:
        """Sample at or below ``sampling_limit`` cells, compute above it."""
        if population <= sampling_limit:
            return self.sample_count(population, capacity, rng)
        return self.compute_count(population, capacity, rng)

    def resolve_maximum_growth(self, population: int, sampling_limit: int = DEFAULT_SAMPLING_LIMIT) -> int:
        """Largest net change the population could realize in one step.

        Small populations may in principle all divide at once; large ones
        are bounded by the rounded-up expected net growth.
        """
        if population < 0:
            raise ValueError(f"Population size must be non-negative; got {population}")
        if self.birth_rate == 0.0:
            return 0
        if population <= sampling_limit:
            return population
        return max(0, math.ceil(population * self.net_rate))


NO_GROWTH = GrowthRate(0.5, 0.5)
