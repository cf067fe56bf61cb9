import pytest

from TumorSimulation.component import TumorComponent
from TumorSimulation.context import SimulationContext
from TumorSimulation.environment import TumorEnv
from TumorSimulation.generator import EMPTY_GENERATOR, HomogeneousGenerator
from TumorSimulation.growth import UNBOUNDED_CAPACITY, GrowthRate
from TumorSimulation.mutation import MutationType
from TumorSimulation.rate import MutationRate

GROWING = GrowthRate(0.55, 0.45)
SHRINKING = GrowthRate(0.20, 0.25)
GENERATOR = HomogeneousGenerator(MutationType.NEUTRAL, MutationRate.poisson(0.01))


@pytest.fixture
def mutating_ctx():
    return SimulationContext(seed=3, mutation_generator=GENERATOR, max_mutation_count=5)


def test_intrinsic_environment(mutating_ctx):
    lineage = TumorComponent.founder_lineage(mutating_ctx, GROWING, 100)
    env = TumorEnv.intrinsic(lineage, mutating_ctx)
    assert env.growth_rate == GROWING
    assert env.mutation_generator is GENERATOR
    assert env.growth_capacity == UNBOUNDED_CAPACITY
    assert env.allow_cell_division and env.allow_deme_division


def test_no_birth(ctx):
    lineage = TumorComponent.founder_lineage(ctx, GROWING, 100)
    env = TumorEnv.intrinsic(lineage, ctx).no_birth()
    assert env.growth_rate == GrowthRate(0.0, 0.45)
    assert not env.allow_cell_division
    assert not env.allow_deme_division


def test_no_growth_only_restrains_growing_rates(ctx):
    growing = TumorEnv.intrinsic(TumorComponent.founder_lineage(ctx, GROWING, 100), ctx).no_growth()
    assert growing.growth_rate.growth_factor == pytest.approx(1.0)
    assert growing.growth_rate.event_rate == pytest.approx(1.0)
    shrinking = TumorEnv.intrinsic(TumorComponent.founder_lineage(ctx, SHRINKING, 100), ctx).no_growth()
    assert shrinking.growth_rate == SHRINKING


def test_restrictions_chain(ctx):
    env = TumorEnv.intrinsic(TumorComponent.founder_deme(ctx, GROWING, 100), ctx, capacity=50)
    chained = env.no_growth().no_deme_division().with_capacity(80).with_capacity(20)
    assert chained.allow_cell_division
    assert not chained.allow_deme_division
    assert chained.growth_capacity == 20
    assert chained.growth_rate.growth_factor == pytest.approx(1.0)

    # Rate restrictions always derive from the intrinsic rate.
    both = env.no_growth().no_birth()
    assert both.growth_rate == GROWING.no_birth()
    assert env.no_birth().no_growth().allow_cell_division is False


def test_effective_rate_drops_births_without_division(ctx):
    env = TumorEnv.intrinsic(TumorComponent.founder_lineage(ctx, GROWING, 100), ctx)
    assert env.effective_rate == GROWING
    assert env.no_birth().effective_rate.birth_rate == 0.0


def test_ceiling_switches_to_empty_generator(mutating_ctx):
    lineage = TumorComponent.founder_lineage(mutating_ctx, GROWING, 100)
    mutating_ctx.mutations.create(MutationType.NEUTRAL, 0, 5)
    env = TumorEnv.intrinsic(lineage, mutating_ctx)
    assert env.mutation_generator is EMPTY_GENERATOR


def test_negative_capacity_is_rejected(ctx):
    lineage = TumorComponent.founder_lineage(ctx, GROWING, 100)
    with pytest.raises(ValueError):
        TumorEnv.intrinsic(lineage, ctx, capacity=-1)
