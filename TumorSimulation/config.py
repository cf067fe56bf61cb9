"""Simulation configuration for stochastic tumor growth trials.

Defines the founder population (component type, size, growth rate), the
per-type mutation rates, the global mutation ceilings and the sampling
limits that switch event counting between explicit sampling and
large-population computation.
"""

from __future__ import annotations

from dataclasses import dataclass

COMPONENT_TYPES = ("cell", "lineage", "deme")
RATE_TYPES = ("poisson", "uniform", "zero")


@dataclass(frozen=True)
class SimulationConfig:
    """Configuration parameters for a batch of tumor growth trials."""
    birth_rate: float
    death_rate: float
    max_step_count: int
    out_path: str
    component_type: str = "lineage"
    initial_cell_count: int = 1
    trial_count: int = 1
    random_seed: int = 0
    max_cell_count: int | None = None
    explicit_sampling_limit: int = 10
    mutation_sampling_limit: int = 10
    neutral_rate_type: str = "zero"
    neutral_mean_rate: float = 0.0
    selective_rate_type: str = "zero"
    selective_mean_rate: float = 0.0
    selection_coeff: float = 0.0
    resistance_rate_type: str = "zero"
    resistance_mean_rate: float = 0.0
    neoantigen_rate_type: str = "zero"
    neoantigen_mean_rate: float = 0.0
    max_mutation_count: int | None = None
    max_mutation_time: int | None = None
    component_out_path: str | None = None
    mutation_frequency_path: str | None = None

    def __post_init__(self) -> None:
        if not 0.0 <= self.birth_rate <= 1.0:
            raise ValueError("birth_rate must lie in [0, 1]")
        if not 0.0 <= self.death_rate <= 1.0:
            raise ValueError("death_rate must lie in [0, 1]")
        if self.birth_rate + self.death_rate > 1.0:
            raise ValueError("birth_rate + death_rate must not exceed 1")
        if self.component_type not in COMPONENT_TYPES:
            raise ValueError("component_type must be 'cell', 'lineage', or 'deme'")
        if self.initial_cell_count <= 0:
            raise ValueError("initial_cell_count must be positive")
        if self.max_step_count <= 0:
            raise ValueError("max_step_count must be positive")
        if self.trial_count <= 0:
            raise ValueError("trial_count must be positive")
        if self.max_cell_count is not None and self.max_cell_count <= 0:
            raise ValueError("max_cell_count must be positive")
        if self.explicit_sampling_limit < 0:
            raise ValueError("explicit_sampling_limit must be non-negative")
        if self.mutation_sampling_limit < 0:
            raise ValueError("mutation_sampling_limit must be non-negative")
        for prefix in ("neutral", "selective", "resistance", "neoantigen"):
            rate_type = getattr(self, f"{prefix}_rate_type")
            mean_rate = getattr(self, f"{prefix}_mean_rate")
            if rate_type not in RATE_TYPES:
                raise ValueError(f"{prefix}_rate_type must be 'poisson', 'uniform', or 'zero'")
            if mean_rate < 0:
                raise ValueError(f"{prefix}_mean_rate must be non-negative")
            if rate_type == "uniform" and mean_rate > 1.0:
                raise ValueError(f"{prefix}_mean_rate must lie in [0, 1] for uniform rates")
        if not -0.5 <= self.selection_coeff <= 0.5:
            raise ValueError("selection_coeff must lie in [-0.5, 0.5]")
        if self.max_mutation_count is not None and self.max_mutation_count < 0:
            raise ValueError("max_mutation_count must be non-negative")
        if self.max_mutation_time is not None and self.max_mutation_time < 0:
            raise ValueError("max_mutation_time must be non-negative")
