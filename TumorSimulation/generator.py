"""Mutation generators: stochastic sources of new mutations at division time.

Every generator answers three questions, one per kind of carrier:

    generate_cell_mutations:    new mutations in one daughter cell.
    generate_deme_mutations:    all new mutations among the daughters of a
                                deme in one step, folded into its genotype.
    generate_lineage_mutations: one batch per mutated daughter of a lineage;
                                daughters without mutations are omitted.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

from TumorSimulation.mutation import Mutation, MutationType
from TumorSimulation.rate import MutationRate

if TYPE_CHECKING:
    from TumorSimulation.config import SimulationConfig
    from TumorSimulation.context import SimulationContext


class MutationGenerator:
    """Base generator; subclasses supply the cell and deme contracts."""

    @property
    def is_empty(self) -> bool:
        return False

    def generate_cell_mutations(self, ctx: SimulationContext) -> list[Mutation]:
        raise NotImplementedError

    def generate_deme_mutations(self, ctx: SimulationContext, daughter_count: int) -> list[Mutation]:
        raise NotImplementedError

    def generate_lineage_mutations(
        self,
        ctx: SimulationContext,
        daughter_count: int,
    ) -> list[list[Mutation]]:
        """Explicit per-daughter draws; large populations override this."""
        if daughter_count < 0:
            raise ValueError(f"daughter_count must be non-negative; got {daughter_count}")
        batches = []
        for _ in range(daughter_count):
            batch = self.generate_cell_mutations(ctx)
            if batch:
                batches.append(batch)
        return batches


class EmptyGenerator(MutationGenerator):
    """Generator that never produces mutations."""

    @property
    def is_empty(self) -> bool:
        return True

    def generate_cell_mutations(self, ctx: SimulationContext) -> list[Mutation]:
        return []

    def generate_deme_mutations(self, ctx: SimulationContext, daughter_count: int) -> list[Mutation]:
        return []

    def generate_lineage_mutations(self, ctx: SimulationContext, daughter_count: int) -> list[list[Mutation]]:
        return []

    def __repr__(self) -> str:
        return "EmptyGenerator()"


EMPTY_GENERATOR = EmptyGenerator()


class HomogeneousGenerator(MutationGenerator):
    """Mutations of a single type arriving at a single rate."""

    def __init__(
        self,
        mutation_type: MutationType,
        rate: MutationRate,
        selection_coeff: float = 0.0,
    ) -> None:
        if mutation_type is MutationType.FOUNDER:
            raise ValueError("Founder mutations are not generated at division")
        if mutation_type is not MutationType.SCALAR and selection_coeff != 0.0:
            raise ValueError(f"{mutation_type.value} mutations carry no selection coefficient")
        self.mutation_type = mutation_type
        self.rate = rate
        self.selection_coeff = float(selection_coeff)

    @property
    def is_empty(self) -> bool:
        return self.rate.is_zero

    def _create(self, ctx: SimulationContext, count: int) -> list[Mutation]:
        if count == 0:
            return []
        return ctx.mutations.create(self.mutation_type, ctx.time_step, count, self.selection_coeff)

    def generate_cell_mutations(self, ctx: SimulationContext) -> list[Mutation]:
        return self._create(ctx, self.rate.sample(ctx.rng))

    def generate_deme_mutations(self, ctx: SimulationContext, daughter_count: int) -> list[Mutation]:
        count = self.rate.resolve_count(daughter_count, ctx.rng, ctx.mutation_sampling_limit)
        return self._create(ctx, count)

    def generate_lineage_mutations(self, ctx: SimulationContext, daughter_count: int) -> list[list[Mutation]]:
        if daughter_count <= ctx.mutation_sampling_limit:
            return super().generate_lineage_mutations(ctx, daughter_count)

        distribution = self.rate.compute_distribution(daughter_count, ctx.rng)
        batches = []
        remaining = daughter_count
        for mutation_count, mutated in enumerate(distribution):
            if mutation_count == 0:
                continue
            for _ in range(min(int(mutated), remaining)):
                batch = self._create(ctx, mutation_count)
                if not batch:
                    return batches
                batches.append(batch)
                remaining -= 1
        return batches

    def __repr__(self) -> str:
        return (
            f"HomogeneousGenerator({self.mutation_type.value}, {self.rate.rate_type.value}, "
            f"mean={self.rate.mean}, selection_coeff={self.selection_coeff})"
        )


class CompositeGenerator(MutationGenerator):
    """Independent generators whose draws are concatenated.

    For large lineages each component generator draws its mutated daughters
    independently. When the draws name more mutated daughters than exist,
    the surplus batches land on randomly chosen daughters that already
    carry a batch, so every created mutation is carried by some daughter.
    """

    def __init__(self, generators: Sequence[MutationGenerator]) -> None:
        self.generators = tuple(gen for gen in generators if not gen.is_empty)

    @property
    def is_empty(self) -> bool:
        return not self.generators

    def generate_cell_mutations(self, ctx: SimulationContext) -> list[Mutation]:
        mutations: list[Mutation] = []
        for gen in self.generators:
            mutations.extend(gen.generate_cell_mutations(ctx))
        return mutations

    def generate_deme_mutations(self, ctx: SimulationContext, daughter_count: int) -> list[Mutation]:
        mutations: list[Mutation] = []
        for gen in self.generators:
            mutations.extend(gen.generate_deme_mutations(ctx, daughter_count))
        return mutations

    def generate_lineage_mutations(self, ctx: SimulationContext, daughter_count: int) -> list[list[Mutation]]:
        if daughter_count <= ctx.mutation_sampling_limit:
            return super().generate_lineage_mutations(ctx, daughter_count)
        batches: list[list[Mutation]] = []
        for gen in self.generators:
            batches.extend(gen.generate_lineage_mutations(ctx, daughter_count))
        if len(batches) <= daughter_count:
            return batches
        daughters = batches[:daughter_count]
        for surplus in batches[daughter_count:]:
            daughters[int(ctx.rng.integers(daughter_count))].extend(surplus)
        return daughters

    def __repr__(self) -> str:
        return f"CompositeGenerator({list(self.generators)!r})"


# -----------------------------------------------------------------------------
# Construction from configuration
# -----------------------------------------------------------------------------

def build_mutation_generator(config: SimulationConfig) -> MutationGenerator:
    """Combine the configured per-type rates into one generator."""
    generators = [
        HomogeneousGenerator(
            MutationType.NEUTRAL,
            MutationRate.resolve(config.neutral_rate_type, config.neutral_mean_rate),
        ),
        HomogeneousGenerator(
            MutationType.SCALAR,
            MutationRate.resolve(config.selective_rate_type, config.selective_mean_rate),
            config.selection_coeff,
        ),
        HomogeneousGenerator(
            MutationType.RESISTANCE,
            MutationRate.resolve(config.resistance_rate_type, config.resistance_mean_rate),
        ),
        HomogeneousGenerator(
            MutationType.NEOANTIGEN,
            MutationRate.resolve(config.neoantigen_rate_type, config.neoantigen_mean_rate),
        ),
    ]
    active = [gen for gen in generators if not gen.is_empty]
    if not active:
        return EMPTY_GENERATOR
    if len(active) == 1:
        return active[0]
    return CompositeGenerator(active)
