"""Populations of tumor components and the aggregate queries over them.

A population advances in two phases: every live component takes its step
against a snapshot of the membership, then offspring are added and dead
components removed in one batch. No component sees a half-updated
population.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Iterable, Iterator, Protocol, Sequence

import numpy as np

from TumorSimulation.component import ComponentKind, TumorComponent
from TumorSimulation.environment import TumorEnv
from TumorSimulation.genotype import Genotype, ancestor
from TumorSimulation.growth import UNBOUNDED_CAPACITY
from TumorSimulation.mutation import Mutation, MutationFrequency

if TYPE_CHECKING:
    from TumorSimulation.context import SimulationContext

EnvOverride = Callable[[TumorEnv], TumorEnv]


class PlacementError(RuntimeError):
    """A new component could not be placed in the spatial layer."""


class SpatialLayer(Protocol):
    """What a tumor needs from a lattice or other spatial model."""

    def growth_capacity(self, component: TumorComponent) -> int:
        ...

    def can_place(self, component: TumorComponent) -> bool:
        ...

    def place(self, parent: TumorComponent, child: TumorComponent) -> bool:
        ...

    def remove(self, component: TumorComponent) -> None:
        ...


# -----------------------------------------------------------------------------
# Aggregate queries
# -----------------------------------------------------------------------------

def count_cells(components: Iterable[TumorComponent]) -> int:
    return sum(component.count_cells() for component in components)


def count_components(components: Iterable[TumorComponent]) -> int:
    return sum(1 for component in components if not component.is_dead)


def cell_fractions(components: Sequence[TumorComponent]) -> np.ndarray:
    """Fraction of all cells held by each component, in order."""
    counts = np.array([component.count_cells() for component in components], dtype=np.float64)
    total = counts.sum()
    if total == 0:
        return np.zeros_like(counts)
    return counts / total


def select_weighted(components: Sequence[TumorComponent], rng: np.random.Generator) -> TumorComponent:
    """Pick one component with probability proportional to its cell count."""
    if not components:
        raise ValueError("Cannot select from an empty collection of components")
    fractions = cell_fractions(components)
    if fractions.sum() == 0:
        raise ValueError("Cannot select from components with no cells")
    return components[int(rng.choice(len(components), p=fractions))]


def accumulate_original_mutations(components: Iterable[TumorComponent]) -> list[Mutation]:
    """Every mutation that originated in one of the components, in index order."""
    mutations: set[Mutation] = set()
    for component in components:
        mutations.update(component.view_original_mutations())
    return sorted(mutations, key=lambda m: m.index)


def find_ancestor_genotype(ctx: SimulationContext, components: Sequence[TumorComponent]) -> Genotype:
    return ancestor(ctx, [component.genotype for component in components])


class MutationFrequencyMap:
    """Fraction of cells carrying each mutation, weighted by cell count."""

    def __init__(self, frequencies: dict[Mutation, float]) -> None:
        self._frequencies = dict(frequencies)

    @classmethod
    def compute(cls, components: Iterable[TumorComponent]) -> MutationFrequencyMap:
        components = list(components)
        total = count_cells(components)
        if total == 0:
            return cls({})
        carriers: dict[Mutation, int] = {}
        for component in components:
            cells = component.count_cells()
            if cells == 0:
                continue
            for mutation in component.view_accumulated_mutations():
                carriers[mutation] = carriers.get(mutation, 0) + cells
        return cls({mutation: count / total for mutation, count in carriers.items()})

    def __len__(self) -> int:
        return len(self._frequencies)

    def count_mutations(self) -> int:
        return len(self._frequencies)

    def frequency(self, mutation: Mutation) -> float:
        return self._frequencies.get(mutation, 0.0)

    def view_mutations(self) -> frozenset[Mutation]:
        return frozenset(self._frequencies)

    def frequency_distribution(self) -> np.ndarray:
        return np.array(list(self._frequencies.values()), dtype=np.float64)

    def list_frequencies(self) -> list[MutationFrequency]:
        """Frequencies from most to least common."""
        return MutationFrequency.sort_descending(
            MutationFrequency(mutation, freq) for mutation, freq in self._frequencies.items()
        )


def compute_mutation_frequency(components: Iterable[TumorComponent]) -> MutationFrequencyMap:
    return MutationFrequencyMap.compute(components)


class GenotypeMap:
    """Index of lineages by mutation content; each genotype appears once."""

    def __init__(self, lineages: Iterable[TumorComponent] = ()) -> None:
        self._lineages: dict[tuple[int, ...], TumorComponent] = {}
        for lineage in lineages:
            self.add(lineage)

    def __len__(self) -> int:
        return len(self._lineages)

    def __contains__(self, genotype: Genotype) -> bool:
        return genotype.mutation_key() in self._lineages

    def add(self, lineage: TumorComponent) -> None:
        key = lineage.genotype.mutation_key()
        if key in self._lineages:
            raise ValueError(f"Duplicate genotype for lineage {lineage.index}")
        self._lineages[key] = lineage

    def lookup(self, genotype: Genotype) -> TumorComponent | None:
        return self._lineages.get(genotype.mutation_key())

    def remove(self, lineage: TumorComponent) -> bool:
        """Remove ``lineage`` only if it is the object mapped to its genotype."""
        key = lineage.genotype.mutation_key()
        if self._lineages.get(key) is lineage:
            del self._lineages[key]
            return True
        return False


# -----------------------------------------------------------------------------
# Deme fission
# -----------------------------------------------------------------------------

class ThresholdDivision:
    """Demes divide once they fill ``threshold`` of their site capacity."""

    def __init__(self, threshold: float, site_capacity: int, transfer_prob: float = 0.5) -> None:
        if threshold <= 0.0:
            raise ValueError(f"threshold must be positive; got {threshold}")
        if site_capacity <= 0:
            raise ValueError(f"site_capacity must be positive; got {site_capacity}")
        if not 0.0 < transfer_prob < 1.0:
            raise ValueError(f"transfer_prob must lie in (0, 1); got {transfer_prob}")
        self.threshold = threshold
        self.site_capacity = site_capacity
        self.transfer_prob = transfer_prob

    def should_divide(self, deme: TumorComponent) -> bool:
        if not deme.is_active or deme.cell_count < 2:
            return False
        return deme.cell_count / self.site_capacity >= self.threshold

    def divide(self, ctx: SimulationContext, deme: TumorComponent) -> TumorComponent:
        return deme.divide_random(ctx, self.transfer_prob)


# -----------------------------------------------------------------------------
# Populations
# -----------------------------------------------------------------------------

class Population:
    """Exclusive, insertion-ordered membership of tumor components."""

    def __init__(self, components: Iterable[TumorComponent] = ()) -> None:
        self._members: dict[TumorComponent, None] = {}
        self.add_all(components)

    def __len__(self) -> int:
        return len(self._members)

    def __iter__(self) -> Iterator[TumorComponent]:
        return iter(list(self._members))

    def __contains__(self, component: TumorComponent) -> bool:
        return component in self._members

    def _claim(self, component: TumorComponent) -> None:
        if component.owner is not None and component.owner is not self:
            raise ValueError(f"Component {component.index} already belongs to another population")
        component.owner = self

    def add(self, component: TumorComponent) -> None:
        self._claim(component)
        self._members[component] = None

    def add_all(self, components: Iterable[TumorComponent]) -> None:
        for component in components:
            self.add(component)

    def remove(self, component: TumorComponent) -> None:
        if component not in self._members:
            raise ValueError(f"Component {component.index} is not a member of this population")
        del self._members[component]
        component.owner = None

    def remove_all(self, components: Iterable[TumorComponent]) -> None:
        for component in components:
            self.remove(component)

    def view_components(self) -> list[TumorComponent]:
        return list(self._members)

    def count_cells(self) -> int:
        return count_cells(self._members)

    def count_components(self) -> int:
        return len(self._members)

    @property
    def is_extinct(self) -> bool:
        return self.count_cells() == 0

    def cell_fractions(self) -> np.ndarray:
        return cell_fractions(self.view_components())

    def select_weighted(self, rng: np.random.Generator) -> TumorComponent:
        return select_weighted(self.view_components(), rng)

    def accumulate_original_mutations(self) -> list[Mutation]:
        return accumulate_original_mutations(self._members)

    def compute_mutation_frequency(self) -> MutationFrequencyMap:
        return MutationFrequencyMap.compute(self._members)

    def find_ancestor_genotype(self, ctx: SimulationContext) -> Genotype:
        return find_ancestor_genotype(ctx, self.view_components())

    @staticmethod
    def _resolve_env(
        component: TumorComponent,
        ctx: SimulationContext,
        capacity: int,
        overrides: Sequence[EnvOverride],
    ) -> TumorEnv:
        env = TumorEnv.intrinsic(component, ctx, capacity)
        for override in overrides:
            env = override(env)
        return env


class WellMixedPopulation(Population):
    """Components sharing no local resources; visitation order is irrelevant."""

    def advance(
        self,
        ctx: SimulationContext,
        capacity: int = UNBOUNDED_CAPACITY,
        overrides: Sequence[EnvOverride] = (),
    ) -> list[TumorComponent]:
        """Advance every member one step and return the offspring that survived it."""
        born: list[TumorComponent] = []
        dead: list[TumorComponent] = []
        for component in self.view_components():
            env = self._resolve_env(component, ctx, capacity, overrides)
            born.extend(component.advance(ctx, env))
            if component.is_dead:
                dead.append(component)
        survivors = [child for child in born if not child.is_dead]
        self.remove_all(dead)
        self.add_all(survivors)
        return survivors


class Tumor(Population):
    """Active and senescent components of one tumor.

    Senescent components stay members: they hold cells, carry mutations
    and appear in every aggregate query, but they no longer advance.
    Components are visited in random order each step so that none gets
    systematic first access to shared local capacity. Without a spatial
    layer the tumor is a point tumor with unbounded capacity.
    """

    def __init__(
        self,
        components: Iterable[TumorComponent] = (),
        layer: SpatialLayer | None = None,
        deme_division: ThresholdDivision | None = None,
    ) -> None:
        self.layer = layer
        self.deme_division = deme_division
        super().__init__(components)

    def view_active(self) -> list[TumorComponent]:
        return [c for c in self._members if c.is_active]

    def view_senescent(self) -> list[TumorComponent]:
        return [c for c in self._members if c.is_senescent]

    def _place(self, parent: TumorComponent, child: TumorComponent) -> None:
        if self.layer is not None and not self.layer.place(parent, child):
            raise PlacementError(f"No room to place component {child.index} next to {parent.index}")

    def _maybe_divide(self, ctx: SimulationContext, component: TumorComponent, env: TumorEnv) -> list[TumorComponent]:
        if self.deme_division is None or component.kind is not ComponentKind.DEME:
            return []
        if not env.allow_deme_division or not self.deme_division.should_divide(component):
            return []
        if self.layer is not None and not self.layer.can_place(component):
            return []
        return [self.deme_division.divide(ctx, component)]

    def advance(self, ctx: SimulationContext, overrides: Sequence[EnvOverride] = ()) -> list[TumorComponent]:
        """Advance every active component one step and return the surviving offspring."""
        order = self.view_active()
        ctx.rng.shuffle(order)

        born: list[TumorComponent] = []
        dead: list[TumorComponent] = []
        for component in order:
            if self.layer is not None:
                capacity = self.layer.growth_capacity(component)
            else:
                capacity = UNBOUNDED_CAPACITY
            env = self._resolve_env(component, ctx, capacity, overrides)
            children = component.advance(ctx, env)
            children.extend(self._maybe_divide(ctx, component, env))
            for child in children:
                if not child.is_dead:
                    self._place(component, child)
            born.extend(children)
            if component.is_dead:
                dead.append(component)
                if self.layer is not None:
                    self.layer.remove(component)

        survivors = [child for child in born if not child.is_dead]
        self.remove_all(dead)
        self.add_all(survivors)
        return survivors
