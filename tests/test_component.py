"""Tests for cell, lineage and deme advancement, division and transfer."""

from collections import Counter

import pytest

from TumorSimulation.component import ComponentKind, GenotypeMismatchError, State, TumorComponent
from TumorSimulation.context import SimulationContext
from TumorSimulation.environment import TumorEnv
from TumorSimulation.generator import EMPTY_GENERATOR, HomogeneousGenerator
from TumorSimulation.growth import GrowthRate
from TumorSimulation.mutation import MutationType
from TumorSimulation.rate import MutationRate

RATE = GrowthRate(0.55, 0.45)
NEUTRAL_ALWAYS = HomogeneousGenerator(MutationType.NEUTRAL, MutationRate.uniform(1.0))


def _env(component, ctx, generator=EMPTY_GENERATOR, **kwargs):
    return TumorEnv.intrinsic(component, ctx, **kwargs).with_mutation_generator(generator)


def test_founders(ctx):
    lineage = TumorComponent.founder_lineage(ctx, RATE, 1000)
    assert lineage.kind is ComponentKind.LINEAGE
    assert lineage.count_cells() == 1000
    assert lineage.view_accumulated_mutations() == (ctx.transformer(),)
    assert not lineage.genotype.mutable

    deme = TumorComponent.founder_deme(ctx, RATE, 10)
    assert deme.genotype.mutable

    cells = TumorComponent.founder_cells(ctx, RATE, 3)
    assert len(cells) == 3
    assert len({cell.index for cell in cells}) == 3
    assert all(cell.is_clone(cells[0]) for cell in cells)

    with pytest.raises(ValueError):
        TumorComponent.founder_lineage(ctx, RATE, 0)


def test_deterministic_division(ctx):
    founder = TumorComponent.founder_lineage(ctx, RATE, 1000)
    clone1 = founder.divide(ctx, 300)
    assert founder.count_cells() == 700
    assert clone1.count_cells() == 300

    clone2 = founder.divide(ctx, 150)
    assert founder.count_cells() == 550
    assert clone2.count_cells() == 150

    assert clone1.is_clone(founder)
    assert clone1.parent is founder
    assert clone1.genotype is not founder.genotype
    assert founder.net_change == -150


def test_division_preconditions(ctx):
    single = TumorComponent.founder_lineage(ctx, RATE, 1)
    with pytest.raises(RuntimeError):
        single.divide(ctx, 1)

    lineage = TumorComponent.founder_lineage(ctx, RATE, 10)
    with pytest.raises(ValueError):
        lineage.divide(ctx, 0)
    with pytest.raises(ValueError):
        lineage.divide(ctx, 10)
    with pytest.raises(ValueError):
        lineage.divide_random(ctx, 1.5)
    with pytest.raises(ValueError):
        lineage.divide_random(ctx, 0.5, 6, 5)

    cell = TumorComponent.founder_cell(ctx, RATE)
    with pytest.raises(RuntimeError):
        cell.divide(ctx, 1)
    with pytest.raises(RuntimeError):
        cell.divide_random(ctx, 0.5)
    with pytest.raises(RuntimeError):
        cell.transfer(TumorComponent.founder_cell(ctx, RATE), 1)


def test_random_division_mean(ctx):
    clone_sizes = []
    for _ in range(2000):
        lineage = TumorComponent.founder_lineage(ctx, RATE, 1000)
        clone = lineage.divide_random(ctx, 0.75)
        assert clone.count_cells() + lineage.count_cells() == 1000
        clone_sizes.append(clone.count_cells())
    assert sum(clone_sizes) / len(clone_sizes) == pytest.approx(750, abs=2.0)


def test_random_division_bounds(ctx):
    trials = 20000
    sizes = Counter()
    for _ in range(trials):
        lineage = TumorComponent.founder_lineage(ctx, RATE, 10)
        sizes[lineage.divide_random(ctx, 0.6, 5, 8).count_cells()] += 1
    assert set(sizes) == {5, 6, 7, 8}
    assert sizes[5] / trials == pytest.approx(0.367, abs=0.015)
    assert sizes[6] / trials == pytest.approx(0.251, abs=0.015)
    assert sizes[7] / trials == pytest.approx(0.215, abs=0.015)
    assert sizes[8] / trials == pytest.approx(0.167, abs=0.015)


def test_random_division_of_large_group_uses_expectation(ctx):
    lineage = TumorComponent.founder_lineage(ctx, RATE, 20000)
    clone = lineage.divide_random(ctx, 0.3)
    assert clone.count_cells() == 6000
    assert lineage.count_cells() == 14000


def test_transfer_between_clones(ctx):
    lineage = TumorComponent.founder_lineage(ctx, RATE, 1000)
    clone = lineage.divide(ctx, 300)
    lineage.transfer(clone, 100)
    assert lineage.count_cells() == 600
    assert clone.count_cells() == 400
    with pytest.raises(ValueError):
        lineage.transfer(clone, 600)


def test_transfer_rejects_different_genotypes(ctx):
    founder = TumorComponent.founder_lineage(ctx, GrowthRate(0.5, 0.5), 1000)
    generator = HomogeneousGenerator(MutationType.NEUTRAL, MutationRate.uniform(0.01))
    daughters = founder.advance(ctx, _env(founder, ctx, generator))
    assert len(daughters) >= 1
    assert founder.count_cells() > 100
    with pytest.raises(GenotypeMismatchError):
        founder.transfer(daughters[0], 100)


def test_neutral_lineage_mutation_rate_calibration(ctx):
    population = 1_000_000
    founder = TumorComponent.founder_lineage(ctx, GrowthRate.net(0.0), population)
    generator = HomogeneousGenerator(MutationType.NEUTRAL, MutationRate.poisson(0.001))

    daughters = founder.advance(ctx, _env(founder, ctx, generator))

    assert all(d.genotype.count_original_mutations() == 1 for d in daughters)
    assert all(d.count_cells() == 1 for d in daughters)
    assert len(daughters) / population == pytest.approx(0.001, abs=0.0002)
    assert founder.count_cells() + len(daughters) == population


def test_no_mutation_growth_tracks_growth_factor(ctx):
    lineage = TumorComponent.founder_lineage(ctx, RATE, 1000)
    steps = 50
    for _ in range(steps):
        assert lineage.advance(ctx, _env(lineage, ctx)) == []
    expected = 1000 * RATE.growth_factor_after(steps)
    assert lineage.count_cells() == pytest.approx(expected, rel=0.01)


def test_lineage_daughters_carry_mutated_rates(ctx):
    generator = HomogeneousGenerator(MutationType.SCALAR, MutationRate.uniform(1.0), 0.1)
    founder = TumorComponent.founder_lineage(ctx, RATE, 5)
    founder_rate = founder.growth_rate
    daughters = founder.advance(ctx, _env(founder, ctx, generator))
    for daughter in daughters:
        assert daughter.parent is founder
        assert daughter.growth_rate.death_rate == pytest.approx(0.45 * 0.9)
        assert daughter.genotype.view_inherited_mutations() == founder.view_accumulated_mutations()
    assert founder.growth_rate is founder_rate


def test_lineage_capacity_limits_net_growth(ctx):
    lineage = TumorComponent.founder_lineage(ctx, RATE, 1000)
    lineage.advance(ctx, _env(lineage, ctx, capacity=10))
    assert lineage.count_cells() == 1010


def test_no_birth_environment_stops_growth(ctx):
    lineage = TumorComponent.founder_lineage(ctx, RATE, 1000)
    for _ in range(5):
        previous = lineage.count_cells()
        assert lineage.advance(ctx, _env(lineage, ctx).no_birth()) == []
        assert lineage.count_cells() < previous


def test_lineage_extinction(ctx):
    lineage = TumorComponent.founder_lineage(ctx, GrowthRate(0.0, 1.0), 50)
    lineage.advance(ctx, _env(lineage, ctx))
    assert lineage.state is State.DEAD
    assert lineage.count_cells() == 0
    assert lineage.advance(ctx, _env(lineage, ctx)) == []


def test_deme_folds_mutations_into_its_genotype(ctx):
    generator = HomogeneousGenerator(MutationType.SCALAR, MutationRate.uniform(0.01), 0.1)
    deme = TumorComponent.founder_deme(ctx, RATE, 1000)
    genotype = deme.genotype

    assert deme.advance(ctx, _env(deme, ctx, generator)) == []

    assert deme.genotype is genotype
    assert genotype.count_original_mutations() > 1
    assert deme.growth_rate.death_rate < RATE.death_rate
    assert deme.growth_rate.event_rate == pytest.approx(RATE.event_rate)


def test_deme_death(ctx):
    deme = TumorComponent.founder_deme(ctx, GrowthRate(0.0, 1.0), 5)
    assert deme.advance(ctx, _env(deme, ctx, NEUTRAL_ALWAYS)) == []
    assert deme.is_dead
    assert deme.genotype.count_original_mutations() == 1


def test_cell_birth_replaces_parent_with_two_daughters(ctx):
    cell = TumorComponent.founder_cell(ctx, GrowthRate(1.0, 0.0))
    daughters = cell.advance(ctx, _env(cell, ctx, NEUTRAL_ALWAYS))
    assert cell.is_dead
    assert len(daughters) == 2
    first, second = daughters
    assert first.kind is ComponentKind.CELL
    assert first.count_cells() == 1
    assert first.view_original_mutations() != second.view_original_mutations()
    assert first.genotype.count_original_mutations() == 1
    assert first.parent is cell


def test_cell_death_and_quiescence(ctx):
    doomed = TumorComponent.founder_cell(ctx, GrowthRate(0.0, 1.0))
    assert doomed.advance(ctx, _env(doomed, ctx)) == []
    assert doomed.is_dead

    idle = TumorComponent.founder_cell(ctx, GrowthRate(0.0, 0.0))
    assert idle.advance(ctx, _env(idle, ctx)) == []
    assert idle.is_active


def test_cell_without_capacity_cannot_divide(ctx):
    cell = TumorComponent.founder_cell(ctx, GrowthRate(1.0, 0.0))
    assert cell.advance(ctx, _env(cell, ctx, capacity=0)) == []
    assert cell.is_active


def test_senescent_components_do_not_advance(ctx):
    lineage = TumorComponent.founder_lineage(ctx, RATE, 100)
    lineage.senesce()
    assert lineage.advance(ctx, _env(lineage, ctx, NEUTRAL_ALWAYS)) == []
    assert lineage.count_cells() == 100


def test_advance_steps_follows_offspring():
    ctx = SimulationContext(seed=5, mutation_generator=NEUTRAL_ALWAYS)
    cell = TumorComponent.founder_cell(ctx, GrowthRate(1.0, 0.0))
    offspring = cell.advance_steps(ctx, 3)
    assert len(offspring) == 8
    assert all(c.genotype.count_accumulated_mutations() == 4 for c in offspring)
