"""Genotypes: the chronological mutation history of one carrier.

A genotype stores only its own original mutations plus a reference to its
parent and the length of the parent's accumulated history at branching
time. The inherited mutations are therefore always a fixed-length prefix of
the parent's history. Parents only ever grow at the end (mutable genotypes
append), so a prefix taken at clone or daughter time can never change
afterwards, and nothing is copied when a genotype branches.

    founder:  inherited = [],               original = given mutations
    clone:    inherited = parent history,   original = []
    daughter: inherited = parent history,   original = new batch

Fixed genotypes are immutable once created. Mutable genotypes (used by
demes) accept appends to their original mutations.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable, Sequence

from TumorSimulation.mutation import Mutation

if TYPE_CHECKING:
    from TumorSimulation.context import SimulationContext


class Genotype:
    def __init__(
        self,
        index: int,
        parent: Genotype | None,
        inherited_count: int,
        original: Iterable[Mutation],
        mutable: bool = False,
    ) -> None:
        if parent is None and inherited_count != 0:
            raise ValueError("A founder genotype has no inherited mutations")
        if parent is not None and not 0 <= inherited_count <= parent.count_accumulated_mutations():
            raise ValueError(f"Invalid inherited mutation count: {inherited_count}")
        self.index = index
        self.parent = parent
        self.mutable = mutable
        self._inherited_count = inherited_count
        self._original: list[Mutation] = list(original)
        self._accumulated: tuple[Mutation, ...] | None = None

    # -------------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------------

    @classmethod
    def founder(
        cls,
        ctx: SimulationContext,
        mutations: Iterable[Mutation] = (),
        mutable: bool = False,
    ) -> Genotype:
        return cls(ctx.genotype_index.next(), None, 0, mutations, mutable)

    def for_clone(self, ctx: SimulationContext) -> Genotype:
        """Genetically identical copy whose history is this genotype's history now."""
        return Genotype(ctx.genotype_index.next(), self, self.count_accumulated_mutations(), (), self.mutable)

    def for_daughter(self, ctx: SimulationContext, mutations: Iterable[Mutation]) -> Genotype:
        """Child genotype carrying ``mutations`` as its original mutations."""
        return Genotype(
            ctx.genotype_index.next(),
            self,
            self.count_accumulated_mutations(),
            mutations,
            self.mutable,
        )

    def append(self, mutations: Iterable[Mutation]) -> None:
        if not self.mutable:
            raise RuntimeError(f"Genotype {self.index} is fixed; cannot append mutations")
        mutations = list(mutations)
        if mutations:
            self._original.extend(mutations)
            self._accumulated = None

    # -------------------------------------------------------------------------
    # Views
    # -------------------------------------------------------------------------

    def view_inherited_mutations(self) -> tuple[Mutation, ...]:
        if self.parent is None:
            return ()
        return self.parent.view_accumulated_mutations()[: self._inherited_count]

    def view_original_mutations(self) -> tuple[Mutation, ...]:
        return tuple(self._original)

    def view_accumulated_mutations(self) -> tuple[Mutation, ...]:
        if self._accumulated is not None:
            return self._accumulated
        # Walk up to the nearest cached ancestor, then fill caches downwards.
        pending = []
        node: Genotype | None = self
        while node is not None and node._accumulated is None:
            pending.append(node)
            node = node.parent
        for node in reversed(pending):
            inherited = () if node.parent is None else node.parent._accumulated[: node._inherited_count]
            node._accumulated = inherited + tuple(node._original)
        return self._accumulated

    def count_inherited_mutations(self) -> int:
        return self._inherited_count

    def count_original_mutations(self) -> int:
        return len(self._original)

    def count_accumulated_mutations(self) -> int:
        return self._inherited_count + len(self._original)

    def mutation_key(self) -> tuple[int, ...]:
        """Mutation indices of the accumulated history, for content comparison."""
        return tuple(mutation.index for mutation in self.view_accumulated_mutations())

    def same_mutations(self, other: Genotype) -> bool:
        return self is other or self.mutation_key() == other.mutation_key()

    # -------------------------------------------------------------------------
    # Lineage queries
    # -------------------------------------------------------------------------

    def trace_ancestors(self) -> list[Genotype]:
        """Parent, grandparent, ... back to the founder."""
        ancestors = []
        node = self.parent
        while node is not None:
            ancestors.append(node)
            node = node.parent
        return ancestors

    def trace_lineage(self) -> list[Genotype]:
        """Founder first, this genotype last."""
        lineage = [self] + self.trace_ancestors()
        lineage.reverse()
        return lineage

    @property
    def founder_genotype(self) -> Genotype:
        node = self
        while node.parent is not None:
            node = node.parent
        return node

    def earliest_mutation(self) -> Mutation | None:
        accumulated = self.view_accumulated_mutations()
        return accumulated[0] if accumulated else None

    def latest_mutation(self) -> Mutation | None:
        accumulated = self.view_accumulated_mutations()
        return accumulated[-1] if accumulated else None

    def format(self) -> str:
        """``index;inherited indices;original indices`` with comma-separated lists."""
        inherited = ",".join(str(m.index) for m in self.view_inherited_mutations())
        original = ",".join(str(m.index) for m in self._original)
        return f"{self.index};{inherited};{original}"

    def __repr__(self) -> str:
        kind = "mutable" if self.mutable else "fixed"
        return (
            f"Genotype(index={self.index}, {kind}, inherited={self._inherited_count}, "
            f"original={len(self._original)})"
        )


# -----------------------------------------------------------------------------
# Set queries over many genotypes
# -----------------------------------------------------------------------------

def _sorted(mutations: Iterable[Mutation]) -> list[Mutation]:
    return sorted(mutations, key=lambda m: m.index)


def find_common(genotypes: Sequence[Genotype]) -> list[Mutation]:
    """Mutations carried by every genotype, in index order."""
    if not genotypes:
        return []
    common = set(genotypes[0].view_accumulated_mutations())
    for genotype in genotypes[1:]:
        common.intersection_update(genotype.view_accumulated_mutations())
        if not common:
            break
    return _sorted(common)


def find_all(genotypes: Iterable[Genotype]) -> list[Mutation]:
    """Mutations carried by at least one genotype, in index order."""
    union: set[Mutation] = set()
    for genotype in genotypes:
        union.update(genotype.view_accumulated_mutations())
    return _sorted(union)


def find_unique(genotypes: Sequence[Genotype]) -> list[Mutation]:
    """Mutations carried by some but not all genotypes."""
    common = set(find_common(genotypes))
    return [m for m in find_all(genotypes) if m not in common]


def count_mutations(genotypes: Iterable[Genotype]) -> Counter:
    """Number of genotypes carrying each mutation."""
    counts: Counter = Counter()
    for genotype in genotypes:
        counts.update(genotype.view_accumulated_mutations())
    return counts


def ancestor(ctx: SimulationContext, genotypes: Sequence[Genotype]) -> Genotype:
    """Founder genotype holding the mutations common to all ``genotypes``."""
    return Genotype.founder(ctx, find_common(genotypes))


def aggregate(ctx: SimulationContext, genotypes: Sequence[Genotype]) -> Genotype:
    """Founder genotype holding every mutation found in ``genotypes``."""
    return Genotype.founder(ctx, find_all(genotypes))


@dataclass(frozen=True)
class MutationalDistance:
    """Hamming distance between two mutation sets.

    ``union_count`` counts mutations in either set; the integral distance is
    the number carried by exactly one of them.
    """
    shared_count: int
    union_count: int

    def __post_init__(self) -> None:
        if self.shared_count < 0:
            raise ValueError("shared_count must be non-negative")
        if self.union_count < self.shared_count:
            raise ValueError("union_count must be at least as large as shared_count")

    @classmethod
    def compute(
        cls,
        first: Genotype | Iterable[Mutation],
        second: Genotype | Iterable[Mutation],
    ) -> MutationalDistance:
        set1 = set(first.view_accumulated_mutations() if isinstance(first, Genotype) else first)
        set2 = set(second.view_accumulated_mutations() if isinstance(second, Genotype) else second)
        return cls(len(set1 & set2), len(set1 | set2))

    def count_shared(self) -> int:
        return self.shared_count

    def count_unique(self) -> int:
        """Distinct mutations carried by either set."""
        return self.union_count

    @property
    def int_distance(self) -> int:
        return self.union_count - self.shared_count

    @property
    def frac_distance(self) -> float:
        if self.union_count == 0:
            return 0.0
        return self.int_distance / self.union_count
