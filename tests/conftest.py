import numpy as np
import pytest

from TumorSimulation.context import SimulationContext
from TumorSimulation.mutation import MutationType


@pytest.fixture
def ctx():
    return SimulationContext(seed=20240611)


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def make_mutations(ctx):
    def _make(count, mutation_type=MutationType.NEUTRAL):
        return ctx.mutations.create(mutation_type, ctx.time_step, count)
    return _make
