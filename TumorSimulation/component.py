"""Replicating tumor components: single cells, lineages and demes.

All three kinds share one record (genotype, growth rate, cell count, state)
and differ only in how one time step is carried out:

    CELL:    one cell; a birth replaces it with two daughter cells, each with
             its own new mutations; a death removes it.
    LINEAGE: genetically identical cells; the net change is applied to the
             cell count and every mutated daughter leaves to found a new
             single-cell lineage.
    DEME:    genetically identical cells; new mutations are folded into the
             deme's own genotype and growth rate, so no component is spawned.

Lineages and demes may also divide into two genetically identical groups.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Iterable

from TumorSimulation.environment import TumorEnv
from TumorSimulation.genotype import Genotype
from TumorSimulation.growth import GrowthCount, GrowthRate, UNBOUNDED_CAPACITY
from TumorSimulation.mutation import Mutation, apply_mutations

if TYPE_CHECKING:
    from TumorSimulation.context import SimulationContext

DAUGHTER_CELL_COUNT = 1

# Above this size a random division uses the expected clone size.
BINOMIAL_DIVISION_LIMIT = 10_000


class ComponentKind(Enum):
    CELL = "cell"
    LINEAGE = "lineage"
    DEME = "deme"


class State(Enum):
    ACTIVE = "active"
    DEAD = "dead"
    SENESCENT = "senescent"


class GenotypeMismatchError(ValueError):
    """Cells may only move between components with identical genotypes."""


@dataclass(eq=False)
class TumorComponent:
    kind: ComponentKind
    index: int
    genotype: Genotype = field(repr=False)
    growth_rate: GrowthRate
    cell_count: int
    parent: TumorComponent | None = field(default=None, repr=False)
    state: State = State.ACTIVE
    prev_count: int = 0
    owner: Any = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if self.cell_count <= 0:
            raise ValueError(f"cell_count must be positive; got {self.cell_count}")
        if self.kind is ComponentKind.CELL and self.cell_count != 1:
            raise ValueError("A tumor cell always contains exactly one cell")
        if self.kind is ComponentKind.DEME and not self.genotype.mutable:
            raise ValueError("Demes require a mutable genotype")
        if self.prev_count == 0:
            self.prev_count = self.cell_count

    # -------------------------------------------------------------------------
    # Founders
    # -------------------------------------------------------------------------

    @classmethod
    def _founder(
        cls,
        kind: ComponentKind,
        ctx: SimulationContext,
        growth_rate: GrowthRate,
        cell_count: int,
        mutations: Iterable[Mutation] | None,
    ) -> TumorComponent:
        if mutations is None:
            mutations = [ctx.transformer()]
        mutations = list(mutations)
        genotype = Genotype.founder(ctx, mutations, mutable=kind is ComponentKind.DEME)
        return cls(
            kind=kind,
            index=ctx.component_index.next(),
            genotype=genotype,
            growth_rate=apply_mutations(growth_rate, mutations),
            cell_count=cell_count,
        )

    @classmethod
    def founder_cell(
        cls,
        ctx: SimulationContext,
        growth_rate: GrowthRate,
        mutations: Iterable[Mutation] | None = None,
    ) -> TumorComponent:
        return cls._founder(ComponentKind.CELL, ctx, growth_rate, 1, mutations)

    @classmethod
    def founder_cells(
        cls,
        ctx: SimulationContext,
        growth_rate: GrowthRate,
        count: int,
        mutations: Iterable[Mutation] | None = None,
    ) -> list[TumorComponent]:
        """``count`` founder cells sharing one set of founding mutations."""
        if count <= 0:
            raise ValueError(f"count must be positive; got {count}")
        if mutations is None:
            mutations = [ctx.transformer()]
        mutations = list(mutations)
        return [cls.founder_cell(ctx, growth_rate, mutations) for _ in range(count)]

    @classmethod
    def founder_lineage(
        cls,
        ctx: SimulationContext,
        growth_rate: GrowthRate,
        cell_count: int,
        mutations: Iterable[Mutation] | None = None,
    ) -> TumorComponent:
        return cls._founder(ComponentKind.LINEAGE, ctx, growth_rate, cell_count, mutations)

    @classmethod
    def founder_deme(
        cls,
        ctx: SimulationContext,
        growth_rate: GrowthRate,
        cell_count: int,
        mutations: Iterable[Mutation] | None = None,
    ) -> TumorComponent:
        return cls._founder(ComponentKind.DEME, ctx, growth_rate, cell_count, mutations)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def count_cells(self) -> int:
        return 0 if self.is_dead else self.cell_count

    @property
    def is_active(self) -> bool:
        return self.state is State.ACTIVE

    @property
    def is_dead(self) -> bool:
        return self.state is State.DEAD

    @property
    def is_senescent(self) -> bool:
        return self.state is State.SENESCENT

    @property
    def net_change(self) -> int:
        """Cell count change caused by the latest advancement or division."""
        return self.count_cells() - self.prev_count

    def view_original_mutations(self) -> tuple[Mutation, ...]:
        return self.genotype.view_original_mutations()

    def view_accumulated_mutations(self) -> tuple[Mutation, ...]:
        return self.genotype.view_accumulated_mutations()

    def is_clone(self, other: TumorComponent) -> bool:
        """True when both components carry the same mutations."""
        return self.genotype.same_mutations(other.genotype)

    def trace_ancestors(self) -> list[TumorComponent]:
        ancestors = []
        node = self.parent
        while node is not None:
            ancestors.append(node)
            node = node.parent
        return ancestors

    # -------------------------------------------------------------------------
    # State transitions
    # -------------------------------------------------------------------------

    def _die(self) -> None:
        self.state = State.DEAD

    def senesce(self) -> None:
        if self.is_dead:
            raise RuntimeError(f"Component {self.index} is dead and cannot become senescent")
        self.state = State.SENESCENT

    # -------------------------------------------------------------------------
    # Advancement
    # -------------------------------------------------------------------------

    def resolve_growth_count(self, ctx: SimulationContext, env: TumorEnv) -> GrowthCount:
        return env.effective_rate.resolve_count(
            self.cell_count,
            env.growth_capacity,
            ctx.rng,
            ctx.explicit_sampling_limit,
        )

    def advance(self, ctx: SimulationContext, env: TumorEnv) -> list[TumorComponent]:
        """Carry out one time step and return any newly created components.

        Inactive components do nothing. A component whose cells are all gone
        is marked DEAD; its population removes it after the step.
        """
        if not self.is_active:
            return []
        self.prev_count = self.cell_count
        match self.kind:
            case ComponentKind.CELL:
                return self._advance_cell(ctx, env)
            case ComponentKind.LINEAGE:
                return self._advance_lineage(ctx, env)
            case ComponentKind.DEME:
                return self._advance_deme(ctx, env)
        raise ValueError(f"Unknown component kind: {self.kind}")

    def _advance_cell(self, ctx: SimulationContext, env: TumorEnv) -> list[TumorComponent]:
        count = env.effective_rate.sample_count(1, env.growth_capacity, ctx.rng)
        if count.birth_count > 0:
            self._die()
            generator = env.mutation_generator
            return [
                self._new_daughter(ctx, generator.generate_cell_mutations(ctx), 1)
                for _ in range(2)
            ]
        if count.death_count > 0:
            self._die()
        return []

    def _advance_lineage(self, ctx: SimulationContext, env: TumorEnv) -> list[TumorComponent]:
        count = self.resolve_growth_count(ctx, env)
        self.cell_count += count.net_change

        batches = env.mutation_generator.generate_lineage_mutations(ctx, count.daughter_count)
        daughters = []
        for batch in batches:
            if not batch:
                continue
            daughters.append(self._new_daughter(ctx, batch, DAUGHTER_CELL_COUNT))
            self.cell_count -= DAUGHTER_CELL_COUNT

        if self.cell_count < 0:
            raise RuntimeError(f"Lineage {self.index} lost more cells than it held")
        if self.cell_count == 0:
            self._die()
        return daughters

    def _advance_deme(self, ctx: SimulationContext, env: TumorEnv) -> list[TumorComponent]:
        count = self.resolve_growth_count(ctx, env)
        self.cell_count += count.net_change
        if self.cell_count == 0:
            self._die()
            return []

        mutations = env.mutation_generator.generate_deme_mutations(ctx, count.daughter_count)
        if mutations:
            self.genotype.append(mutations)
            self.growth_rate = apply_mutations(self.growth_rate, mutations)
        return []

    def advance_steps(
        self,
        ctx: SimulationContext,
        steps: int,
        capacity: int = UNBOUNDED_CAPACITY,
    ) -> list[TumorComponent]:
        """Advance this component and its offspring in their intrinsic environments.

        Returns the offspring still alive after ``steps`` steps.
        """
        if steps < 0:
            raise ValueError(f"steps must be non-negative; got {steps}")
        offspring: list[TumorComponent] = []
        for _ in range(steps):
            born = []
            for component in [self] + offspring:
                born.extend(component.advance(ctx, TumorEnv.intrinsic(component, ctx, capacity)))
            offspring = [c for c in offspring + born if not c.is_dead]
        return offspring

    def _new_daughter(
        self,
        ctx: SimulationContext,
        mutations: list[Mutation],
        cell_count: int,
    ) -> TumorComponent:
        return TumorComponent(
            kind=self.kind,
            index=ctx.component_index.next(),
            genotype=self.genotype.for_daughter(ctx, mutations),
            growth_rate=apply_mutations(self.growth_rate, mutations),
            cell_count=cell_count,
            parent=self,
        )

    # -------------------------------------------------------------------------
    # Division and transfer
    # -------------------------------------------------------------------------

    def _require_group(self, operation: str) -> None:
        if self.kind is ComponentKind.CELL:
            raise RuntimeError(f"Tumor cells do not support {operation}")

    def divide(self, ctx: SimulationContext, clone_cell_count: int) -> TumorComponent:
        """Move exactly ``clone_cell_count`` cells into a new clone of this component."""
        self._require_group("divide")
        if self.cell_count < 2:
            raise RuntimeError(f"Component {self.index} has fewer than two cells and cannot divide")
        if not 1 <= clone_cell_count < self.cell_count:
            raise ValueError(
                f"Clone cell count must lie in [1, {self.cell_count - 1}]; got {clone_cell_count}"
            )
        self.prev_count = self.cell_count
        self.cell_count -= clone_cell_count
        return TumorComponent(
            kind=self.kind,
            index=ctx.component_index.next(),
            genotype=self.genotype.for_clone(ctx),
            growth_rate=self.growth_rate,
            cell_count=clone_cell_count,
            parent=self,
        )

    def divide_random(
        self,
        ctx: SimulationContext,
        transfer_prob: float,
        min_clone_count: int = 1,
        max_clone_count: int | None = None,
    ) -> TumorComponent:
        """Divide with each cell moving to the clone with probability ``transfer_prob``.

        The clone size is Binomial(N, p) below the division limit and the
        rounded expectation N * p above it, then clamped into
        [min_clone_count, max_clone_count].
        """
        self._require_group("divide")
        if not 0.0 <= transfer_prob <= 1.0:
            raise ValueError(f"transfer_prob must lie in [0, 1]; got {transfer_prob}")
        if self.cell_count < 2:
            raise RuntimeError(f"Component {self.index} has fewer than two cells and cannot divide")
        if max_clone_count is None:
            max_clone_count = self.cell_count - 1
        if not 1 <= min_clone_count <= max_clone_count <= self.cell_count - 1:
            raise ValueError(
                f"Invalid clone size bounds [{min_clone_count}, {max_clone_count}] "
                f"for {self.cell_count} cells"
            )
        if self.cell_count < BINOMIAL_DIVISION_LIMIT:
            clone_count = int(ctx.rng.binomial(self.cell_count, transfer_prob))
        else:
            clone_count = int(round(transfer_prob * self.cell_count))
        clone_count = min(max(clone_count, min_clone_count), max_clone_count)
        return self.divide(ctx, clone_count)

    def transfer(self, clone: TumorComponent, transfer_count: int) -> None:
        """Move ``transfer_count`` cells into a genetically identical component."""
        self._require_group("transfer")
        if clone.kind is not self.kind:
            raise ValueError(f"Cannot transfer cells from a {self.kind.value} to a {clone.kind.value}")
        if not self.is_clone(clone):
            raise GenotypeMismatchError(
                f"Components {self.index} and {clone.index} have different genotypes"
            )
        if not 1 <= transfer_count < self.cell_count:
            raise ValueError(
                f"Transfer count must lie in [1, {self.cell_count - 1}]; got {transfer_count}"
            )
        self.prev_count = self.cell_count
        clone.prev_count = clone.cell_count
        self.cell_count -= transfer_count
        clone.cell_count += transfer_count
