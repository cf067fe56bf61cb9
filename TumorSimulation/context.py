"""Per-trial simulation state passed into every advancement call.

Holds the random stream, the clock, the ordinal counters, the mutation
registry and the global mutation ceilings. Nothing here is module-global, so
independent trials never share state.
"""

from __future__ import annotations

import itertools
import logging
from typing import TYPE_CHECKING

import numpy as np

from TumorSimulation.generator import EMPTY_GENERATOR, MutationGenerator, build_mutation_generator
from TumorSimulation.growth import DEFAULT_SAMPLING_LIMIT
from TumorSimulation.mutation import Mutation, MutationRegistry

if TYPE_CHECKING:
    from TumorSimulation.config import SimulationConfig

logger = logging.getLogger(__name__)


class OrdinalIndex:
    """Monotonic counter handing out 0, 1, 2, ..."""

    def __init__(self) -> None:
        self._counter = itertools.count()
        self.issued = 0

    def next(self) -> int:
        self.issued += 1
        return next(self._counter)


class SimulationContext:
    def __init__(
        self,
        rng: np.random.Generator | None = None,
        seed: int | None = None,
        mutation_generator: MutationGenerator = EMPTY_GENERATOR,
        max_mutation_count: int | None = None,
        max_mutation_time: int | None = None,
        explicit_sampling_limit: int = DEFAULT_SAMPLING_LIMIT,
        mutation_sampling_limit: int = DEFAULT_SAMPLING_LIMIT,
    ) -> None:
        if max_mutation_time is not None and max_mutation_time < 0:
            raise ValueError(f"max_mutation_time must be non-negative; got {max_mutation_time}")
        if explicit_sampling_limit < 0 or mutation_sampling_limit < 0:
            raise ValueError("Sampling limits must be non-negative")
        self.rng = rng if rng is not None else np.random.default_rng(seed)
        self.time_step = 0
        self.mutation_generator = mutation_generator
        self.mutations = MutationRegistry(max_mutation_count)
        self.max_mutation_time = max_mutation_time
        self.explicit_sampling_limit = int(explicit_sampling_limit)
        self.mutation_sampling_limit = int(mutation_sampling_limit)
        self.genotype_index = OrdinalIndex()
        self.component_index = OrdinalIndex()
        self._transformer: Mutation | None = None
        self._ceiling_logged = False

    @classmethod
    def from_config(cls, config: SimulationConfig, seed: int | None = None) -> SimulationContext:
        return cls(
            seed=config.random_seed if seed is None else seed,
            mutation_generator=build_mutation_generator(config),
            max_mutation_count=config.max_mutation_count,
            max_mutation_time=config.max_mutation_time,
            explicit_sampling_limit=config.explicit_sampling_limit,
            mutation_sampling_limit=config.mutation_sampling_limit,
        )

    def advance_time(self) -> int:
        self.time_step += 1
        return self.time_step

    @property
    def ceiling_reached(self) -> bool:
        if self.mutations.exhausted:
            return True
        return self.max_mutation_time is not None and self.time_step >= self.max_mutation_time

    def active_generator(self, generator: MutationGenerator | None = None) -> MutationGenerator:
        """Generator to use right now: the empty one once a ceiling is reached."""
        if generator is None:
            generator = self.mutation_generator
        if not self.ceiling_reached:
            return generator
        if not self._ceiling_logged:
            logger.info(
                "Mutation ceiling reached at step %d after %d mutations; generation stopped",
                self.time_step,
                self.mutations.total_count,
            )
            self._ceiling_logged = True
        return EMPTY_GENERATOR

    def transformer(self) -> Mutation:
        """Founder mutation shared by every founder carrier of this trial."""
        if self._transformer is None:
            self._transformer = self.mutations.create_founder(self.time_step)
        return self._transformer
