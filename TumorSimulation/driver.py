"""Trial driver: grows point tumors from a founder population.

Each trial gets its own SimulationContext seeded with
``random_seed + trial_index``, so trials are independent and reproducible.
A trial ends at ``max_step_count``, at extinction, or once the tumor
reaches ``max_cell_count`` cells.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from TumorSimulation.component import TumorComponent
from TumorSimulation.config import SimulationConfig
from TumorSimulation.context import SimulationContext
from TumorSimulation.growth import GrowthRate
from TumorSimulation.population import Tumor

logger = logging.getLogger(__name__)


@dataclass
class TrialResult:
    """Outcome of one trial: its trajectory and the final tumor."""
    trial_index: int
    context: SimulationContext = field(repr=False)
    tumor: Tumor = field(repr=False)
    trajectory: list[dict] = field(default_factory=list, repr=False)

    @property
    def final_step(self) -> int:
        return self.context.time_step

    @property
    def final_cell_count(self) -> int:
        return self.tumor.count_cells()

    @property
    def extinct(self) -> bool:
        return self.tumor.is_extinct


class TumorDriver:
    """Runs ``config.trial_count`` independent tumor growth trials."""

    def __init__(self, config: SimulationConfig) -> None:
        self.config = config
        self.growth_rate = GrowthRate(config.birth_rate, config.death_rate)

    def build_founders(self, ctx: SimulationContext) -> list[TumorComponent]:
        cfg = self.config
        if cfg.component_type == "cell":
            return TumorComponent.founder_cells(ctx, self.growth_rate, cfg.initial_cell_count)
        if cfg.component_type == "deme":
            return [TumorComponent.founder_deme(ctx, self.growth_rate, cfg.initial_cell_count)]
        return [TumorComponent.founder_lineage(ctx, self.growth_rate, cfg.initial_cell_count)]

    def _trajectory_row(self, trial_index: int, ctx: SimulationContext, tumor: Tumor) -> dict:
        return {
            "trial_index": trial_index,
            "time_step": ctx.time_step,
            "component_count": tumor.count_components(),
            "cell_count": tumor.count_cells(),
            "mutation_count": ctx.mutations.total_count,
        }

    def _finished(self, ctx: SimulationContext, tumor: Tumor) -> bool:
        if ctx.time_step >= self.config.max_step_count:
            return True
        if tumor.is_extinct:
            return True
        max_cells = self.config.max_cell_count
        return max_cells is not None and tumor.count_cells() >= max_cells

    def run_trial(self, trial_index: int = 0) -> TrialResult:
        ctx = SimulationContext.from_config(self.config, seed=self.config.random_seed + trial_index)
        tumor = Tumor(self.build_founders(ctx))
        result = TrialResult(trial_index, ctx, tumor)
        result.trajectory.append(self._trajectory_row(trial_index, ctx, tumor))

        while not self._finished(ctx, tumor):
            ctx.advance_time()
            offspring = tumor.advance(ctx)
            row = self._trajectory_row(trial_index, ctx, tumor)
            result.trajectory.append(row)
            logger.debug(
                "Trial %d step %d: %d components, %d cells, %d offspring",
                trial_index,
                row["time_step"],
                row["component_count"],
                row["cell_count"],
                len(offspring),
            )

        logger.info(
            "Trial %d finished at step %d with %d cells in %d components (%d mutations)%s",
            trial_index,
            ctx.time_step,
            tumor.count_cells(),
            tumor.count_components(),
            ctx.mutations.total_count,
            "; tumor extinct" if tumor.is_extinct else "",
        )
        return result

    def run(self) -> list[TrialResult]:
        logger.info("Running %d trial(s) with %s founders", self.config.trial_count, self.config.component_type)
        return [self.run_trial(index) for index in range(self.config.trial_count)]
