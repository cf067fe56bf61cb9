import pytest

from TumorSimulation.genotype import (
    Genotype,
    MutationalDistance,
    aggregate,
    ancestor,
    count_mutations,
    find_all,
    find_common,
    find_unique,
)


def test_mutation_accumulation_chain(ctx, make_mutations):
    m1, m2, m3, m4 = make_mutations(4)
    founder = Genotype.founder(ctx, [m1, m2])
    d1 = founder.for_daughter(ctx, [m3])
    d2 = d1.for_daughter(ctx, [m4])

    assert d2.view_accumulated_mutations() == (m1, m2, m3, m4)
    assert d2.view_inherited_mutations() == (m1, m2, m3)
    assert d2.view_original_mutations() == (m4,)
    assert founder.view_accumulated_mutations() == (m1, m2)
    assert d1.view_original_mutations() == (m3,)
    assert d2.count_accumulated_mutations() == 4
    assert d2.count_inherited_mutations() == 3
    assert d2.count_original_mutations() == 1


def test_clone_isolation(ctx, make_mutations):
    m1, m2, mx = make_mutations(3)
    founder = Genotype.founder(ctx, [m1, m2], mutable=True)
    clone = founder.for_clone(ctx)
    assert clone.view_accumulated_mutations() == (m1, m2)

    founder.append([mx])

    assert clone.view_original_mutations() == ()
    assert clone.view_accumulated_mutations() == (m1, m2)
    assert founder.view_accumulated_mutations() == (m1, m2, mx)
    assert founder.view_original_mutations() == (m1, m2, mx)


def test_clone_taken_after_append_sees_new_mutations(ctx, make_mutations):
    m1, m2 = make_mutations(2)
    founder = Genotype.founder(ctx, [m1], mutable=True)
    early = founder.for_clone(ctx)
    founder.append([m2])
    late = founder.for_clone(ctx)
    assert early.view_accumulated_mutations() == (m1,)
    assert late.view_accumulated_mutations() == (m1, m2)
    assert late.mutable


def test_fixed_genotypes_reject_appends(ctx, make_mutations):
    (m1,) = make_mutations(1)
    founder = Genotype.founder(ctx, [])
    with pytest.raises(RuntimeError):
        founder.append([m1])


def test_branching_never_mutates_the_parent(ctx, make_mutations):
    m1, m2 = make_mutations(2)
    founder = Genotype.founder(ctx, [m1])
    founder.for_daughter(ctx, [m2])
    founder.for_clone(ctx)
    assert founder.view_accumulated_mutations() == (m1,)


def test_clones_are_equivalent_but_distinct(ctx, make_mutations):
    m1, m2 = make_mutations(2)
    founder = Genotype.founder(ctx, [m1])
    clone = founder.for_clone(ctx)
    daughter = founder.for_daughter(ctx, [m2])
    assert clone is not founder
    assert clone.index != founder.index
    assert clone.same_mutations(founder)
    assert not daughter.same_mutations(founder)


def test_lineage_queries(ctx, make_mutations):
    m1, m2, m3 = make_mutations(3)
    founder = Genotype.founder(ctx, [m1])
    d1 = founder.for_daughter(ctx, [m2])
    d2 = d1.for_daughter(ctx, [m3])
    assert d2.trace_ancestors() == [d1, founder]
    assert d2.trace_lineage() == [founder, d1, d2]
    assert d2.founder_genotype is founder
    assert d2.earliest_mutation() == m1
    assert d2.latest_mutation() == m3
    assert Genotype.founder(ctx).latest_mutation() is None
    assert d2.format() == f"{d2.index};{m1.index},{m2.index};{m3.index}"


def test_deep_histories_do_not_recurse(ctx, make_mutations):
    genotype = Genotype.founder(ctx, make_mutations(1))
    for mutation in make_mutations(2000):
        genotype = genotype.for_daughter(ctx, [mutation])
    assert genotype.count_accumulated_mutations() == 2001
    assert len(genotype.view_accumulated_mutations()) == 2001


def test_set_queries(ctx, make_mutations):
    m1, m2, m3, m4 = make_mutations(4)
    founder = Genotype.founder(ctx, [m1])
    left = founder.for_daughter(ctx, [m2])
    right = founder.for_daughter(ctx, [m3])
    far = right.for_daughter(ctx, [m4])
    genotypes = [left, right, far]

    assert find_common(genotypes) == [m1]
    assert find_all(genotypes) == [m1, m2, m3, m4]
    assert find_unique(genotypes) == [m2, m3, m4]
    assert count_mutations(genotypes) == {m1: 3, m2: 1, m3: 2, m4: 1}
    assert find_common([]) == []

    common = ancestor(ctx, genotypes)
    assert common.view_accumulated_mutations() == (m1,)
    assert common.parent is None
    assert aggregate(ctx, genotypes).view_accumulated_mutations() == (m1, m2, m3, m4)


def test_mutational_distance(ctx, make_mutations):
    m1, m2, m3, m4 = make_mutations(4)
    founder = Genotype.founder(ctx, [m1])
    left = founder.for_daughter(ctx, [m2, m3])
    right = founder.for_daughter(ctx, [m4])

    distance = MutationalDistance.compute(left, right)
    assert distance.shared_count == 1
    assert distance.union_count == 4
    assert distance.count_shared() == 1
    assert distance.count_unique() == 4
    assert distance.int_distance == 3
    assert distance.frac_distance == pytest.approx(0.75)

    assert MutationalDistance.compute([], []).frac_distance == 0.0
    with pytest.raises(ValueError):
        MutationalDistance(3, 2)
