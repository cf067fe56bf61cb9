"""Local environment of one component during one time step.

The environment is a flat set of effective parameters. Start from the
component's intrinsic parameters and fold any number of restrictions on
top; every fold returns a new environment.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

from TumorSimulation.generator import MutationGenerator
from TumorSimulation.growth import UNBOUNDED_CAPACITY, GrowthRate

if TYPE_CHECKING:
    from TumorSimulation.component import TumorComponent
    from TumorSimulation.context import SimulationContext


@dataclass(frozen=True)
class TumorEnv:
    """Growth capacity, rate and mutation source applicable to one component.

    ``intrinsic_rate`` remembers the component's own rate so that rate
    restrictions always derive from it, whatever restrictions came before.
    """
    growth_capacity: int
    growth_rate: GrowthRate
    intrinsic_rate: GrowthRate
    mutation_generator: MutationGenerator
    allow_cell_division: bool = True
    allow_deme_division: bool = True

    def __post_init__(self) -> None:
        if self.growth_capacity < 0:
            raise ValueError(f"growth_capacity must be non-negative; got {self.growth_capacity}")

    @classmethod
    def intrinsic(
        cls,
        component: TumorComponent,
        ctx: SimulationContext,
        capacity: int = UNBOUNDED_CAPACITY,
    ) -> TumorEnv:
        """Unrestricted environment built from the component's own parameters."""
        return cls(
            growth_capacity=capacity,
            growth_rate=component.growth_rate,
            intrinsic_rate=component.growth_rate,
            mutation_generator=ctx.active_generator(),
        )

    def no_birth(self) -> TumorEnv:
        """Births suppressed and no division of cells or demes."""
        return replace(
            self,
            growth_rate=self.intrinsic_rate.no_birth(),
            allow_cell_division=False,
            allow_deme_division=False,
        )

    def no_growth(self) -> TumorEnv:
        return replace(self, growth_rate=self.intrinsic_rate.no_growth())

    def no_deme_division(self) -> TumorEnv:
        return replace(self, allow_deme_division=False)

    def with_capacity(self, capacity: int) -> TumorEnv:
        return replace(self, growth_capacity=min(self.growth_capacity, capacity))

    def with_mutation_generator(self, generator: MutationGenerator) -> TumorEnv:
        return replace(self, mutation_generator=generator)

    @property
    def effective_rate(self) -> GrowthRate:
        """Rate used for event counts: births vanish where division is forbidden."""
        if self.allow_cell_division:
            return self.growth_rate
        return self.growth_rate.no_birth()
