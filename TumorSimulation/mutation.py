"""Mutations, their effect on growth rates, and the registry that issues them."""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable

from TumorSimulation.growth import GrowthRate

MIN_SELECTION_COEFF = -0.5
MAX_SELECTION_COEFF = 0.5


class MutationType(Enum):
    FOUNDER = "founder"
    NEOANTIGEN = "neoantigen"
    NEUTRAL = "neutral"
    RESISTANCE = "resistance"
    SCALAR = "scalar"


@dataclass(frozen=True, order=True)
class Mutation:
    """Immutable mutation event, identified and ordered by its index.

    Only SCALAR mutations carry a selection coefficient; they rescale the
    death rate by (1 - s) and move the difference into the birth rate so the
    event rate is unchanged. Every other type leaves the growth rate alone.
    """
    index: int
    origin_time: int = field(compare=False)
    mutation_type: MutationType = field(compare=False)
    selection_coeff: float = field(default=0.0, compare=False)

    def __post_init__(self) -> None:
        if self.index < 0:
            raise ValueError(f"Mutation index must be non-negative; got {self.index}")
        if self.origin_time < 0:
            raise ValueError(f"Mutation origin_time must be non-negative; got {self.origin_time}")
        if self.mutation_type is MutationType.SCALAR:
            if not MIN_SELECTION_COEFF <= self.selection_coeff <= MAX_SELECTION_COEFF:
                raise ValueError(
                    f"selection_coeff must lie in [{MIN_SELECTION_COEFF}, {MAX_SELECTION_COEFF}]; "
                    f"got {self.selection_coeff}"
                )
        elif self.selection_coeff != 0.0:
            raise ValueError(f"{self.mutation_type.value} mutations carry no selection coefficient")

    @property
    def is_neutral(self) -> bool:
        return self.selection_coeff == 0.0

    def apply(self, rate: GrowthRate) -> GrowthRate:
        if self.mutation_type is not MutationType.SCALAR or self.is_neutral:
            return rate
        death = rate.death_rate * (1.0 - self.selection_coeff)
        birth = rate.event_rate - death
        return GrowthRate(birth, death)


def apply_mutations(rate: GrowthRate, mutations: Iterable[Mutation]) -> GrowthRate:
    """Apply mutations to a rate in order."""
    for mutation in mutations:
        rate = mutation.apply(rate)
    return rate


# -----------------------------------------------------------------------------
# Registry
# -----------------------------------------------------------------------------

class MutationRegistry:
    """Issues mutations with unique, monotonically increasing indices.

    With ``max_count`` set, no more than that many mutations are ever
    created: a request that would cross the ceiling is truncated.
    """

    def __init__(self, max_count: int | None = None) -> None:
        if max_count is not None and max_count < 0:
            raise ValueError(f"max_count must be non-negative; got {max_count}")
        self.max_count = max_count
        self.total_count = 0
        self._index = itertools.count()

    @property
    def remaining(self) -> int | None:
        if self.max_count is None:
            return None
        return self.max_count - self.total_count

    @property
    def exhausted(self) -> bool:
        return self.max_count is not None and self.total_count >= self.max_count

    def create(
        self,
        mutation_type: MutationType,
        origin_time: int,
        count: int = 1,
        selection_coeff: float = 0.0,
    ) -> list[Mutation]:
        if count < 0:
            raise ValueError(f"Mutation count must be non-negative; got {count}")
        if self.max_count is not None:
            count = min(count, self.remaining)
        mutations = [
            Mutation(next(self._index), origin_time, mutation_type, selection_coeff)
            for _ in range(count)
        ]
        self.total_count += len(mutations)
        return mutations

    def create_founder(self, origin_time: int) -> Mutation:
        """Founder mutation; it takes an index but does not count toward the ceiling."""
        return Mutation(next(self._index), origin_time, MutationType.FOUNDER)


# -----------------------------------------------------------------------------
# Frequencies
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class MutationFrequency:
    """Fraction of cells in a population that carry one mutation."""
    mutation: Mutation
    frequency: float

    def __post_init__(self) -> None:
        if not 0.0 <= self.frequency <= 1.0:
            raise ValueError(f"Mutation frequency must lie in [0, 1]; got {self.frequency}")

    @staticmethod
    def sort_ascending(frequencies: Iterable[MutationFrequency]) -> list[MutationFrequency]:
        return sorted(frequencies, key=lambda mf: (mf.frequency, mf.mutation.index))

    @staticmethod
    def sort_descending(frequencies: Iterable[MutationFrequency]) -> list[MutationFrequency]:
        return sorted(frequencies, key=lambda mf: (-mf.frequency, mf.mutation.index))
