"""Discrete-time stochastic tumor growth simulation package.

This package advances populations of replicating, mutating tumor components
(single cells, lineages or demes) through rounds of birth/death sampling and
mutation generation.

Main entry points:
- TumorSimulation.driver: TumorDriver for running trials programmatically
- TumorSimulation.population: Tumor and WellMixedPopulation containers
- TumorSimulation.component: TumorComponent cells, lineages and demes
- TumorSimulation.io: I/O utilities for loading configs and saving results
- TumorSimulation.config: Simulation configuration
"""

from TumorSimulation.component import (
    ComponentKind,
    GenotypeMismatchError,
    State,
    TumorComponent,
)
from TumorSimulation.config import SimulationConfig
from TumorSimulation.context import SimulationContext
from TumorSimulation.driver import TrialResult, TumorDriver
from TumorSimulation.environment import TumorEnv
from TumorSimulation.generator import (
    EMPTY_GENERATOR,
    CompositeGenerator,
    EmptyGenerator,
    HomogeneousGenerator,
    MutationGenerator,
    build_mutation_generator,
)
from TumorSimulation.genotype import Genotype, MutationalDistance
from TumorSimulation.growth import NO_GROWTH, UNBOUNDED_CAPACITY, GrowthCount, GrowthRate
from TumorSimulation.io import (
    load_simulation_config,
    save_component_csv,
    save_mutation_frequency_csv,
    save_trajectory_csv,
)
from TumorSimulation.mutation import Mutation, MutationFrequency, MutationType
from TumorSimulation.population import (
    GenotypeMap,
    MutationFrequencyMap,
    PlacementError,
    ThresholdDivision,
    Tumor,
    WellMixedPopulation,
)
from TumorSimulation.rate import ZERO_RATE, MutationRate, MutationRateType

__all__ = [
    # Core classes
    "ComponentKind",
    "CompositeGenerator",
    "EmptyGenerator",
    "Genotype",
    "GenotypeMap",
    "GrowthCount",
    "GrowthRate",
    "HomogeneousGenerator",
    "Mutation",
    "MutationFrequency",
    "MutationFrequencyMap",
    "MutationGenerator",
    "MutationRate",
    "MutationRateType",
    "MutationType",
    "MutationalDistance",
    "SimulationConfig",
    "SimulationContext",
    "State",
    "ThresholdDivision",
    "TrialResult",
    "Tumor",
    "TumorComponent",
    "TumorDriver",
    "TumorEnv",
    "WellMixedPopulation",
    # Errors
    "GenotypeMismatchError",
    "PlacementError",
    # Constants
    "EMPTY_GENERATOR",
    "NO_GROWTH",
    "UNBOUNDED_CAPACITY",
    "ZERO_RATE",
    # Functions
    "build_mutation_generator",
    "load_simulation_config",
    "save_component_csv",
    "save_mutation_frequency_csv",
    "save_trajectory_csv",
]
