"""Tests for fwdpop.fitness — diploid merge, homozygosity, hemizygous X/Y."""

from collections import Counter

import numpy as np
import pytest

from fwdpop.fitness import diploid_fitness, hemizygous_fitness, merged_fitness
from fwdpop.genome import Genome, NullGenome
from fwdpop.types import ChromosomeType, Mutation, MutationType


# ═══════════════════════════════════════════════════════════════════════
# HELPERS
# ═══════════════════════════════════════════════════════════════════════

def _genome(*mutations, chromosome=ChromosomeType.AUTOSOME):
    return Genome(chromosome, mutations)


def _naive_fitness(muts1, muts2):
    """Reference: group by position, pair equal records, no short-circuit."""
    w = 1.0
    for pos in {m.position for m in muts1} | {m.position for m in muts2}:
        side1 = Counter((m.mutation_type, m.selection_coeff)
                        for m in muts1 if m.position == pos)
        side2 = Counter((m.mutation_type, m.selection_coeff)
                        for m in muts2 if m.position == pos)
        for (mut_type, s) in side1.keys() | side2.keys():
            pairs = min(side1[(mut_type, s)], side2[(mut_type, s)])
            single = side1[(mut_type, s)] + side2[(mut_type, s)] - 2 * pairs
            w *= (1.0 + s) ** pairs * (1.0 + mut_type.dominance_coeff * s) ** single
    return w


def _random_genome(rng, types, n):
    coeffs = [-0.3, -0.1, 0.0, 0.05, 0.2]
    muts = [
        Mutation(types[rng.integers(len(types))], int(rng.integers(0, 12)),
                 coeffs[rng.integers(len(coeffs))])
        for _ in range(n)
    ]
    return Genome(ChromosomeType.AUTOSOME, muts)


@pytest.fixture
def mt():
    return MutationType(id=1, dominance_coeff=0.5)


# ═══════════════════════════════════════════════════════════════════════
# NULL GENOMES
# ═══════════════════════════════════════════════════════════════════════

class TestNullGenomes:
    def test_both_null_is_one(self):
        assert diploid_fitness(NullGenome(ChromosomeType.X),
                               NullGenome(ChromosomeType.Y)) == 1.0

    def test_both_null_ignores_x_dominance(self):
        assert diploid_fitness(NullGenome(ChromosomeType.X),
                               NullGenome(ChromosomeType.X), 0.0) == 1.0

    def test_hemizygous_x_uses_x_dominance(self, mt):
        """s=0.2 on an unpaired X with h_X=0.3 → 1 + 0.3·0.2 = 1.06."""
        x = _genome(Mutation(mt, 50, 0.2), chromosome=ChromosomeType.X)
        w = diploid_fitness(x, NullGenome(ChromosomeType.Y), x_dominance_coeff=0.3)
        assert w == pytest.approx(1.06)

    def test_hemizygous_x_either_side(self, mt):
        x = _genome(Mutation(mt, 50, 0.2), chromosome=ChromosomeType.X)
        null = NullGenome(ChromosomeType.X)
        assert diploid_fitness(null, x, 0.3) == pytest.approx(diploid_fitness(x, null, 0.3))

    def test_hemizygous_y_full_coefficient(self, mt):
        y = _genome(Mutation(mt, 7, -0.1), Mutation(mt, 9, 0.2),
                    chromosome=ChromosomeType.Y)
        w = diploid_fitness(NullGenome(ChromosomeType.X), y, x_dominance_coeff=0.3)
        assert w == pytest.approx(0.9 * 1.2)

    def test_hemizygous_skips_neutral(self, mt):
        x = _genome(Mutation(mt, 1, 0.0), chromosome=ChromosomeType.X)
        assert diploid_fitness(x, NullGenome(ChromosomeType.Y), 0.3) == 1.0

    def test_hemizygous_short_circuit(self, mt):
        """Product passes through ≤ 0 → 0.0 even if later factors would flip sign."""
        muts = [Mutation(mt, 1, -2.0), Mutation(mt, 2, -2.0)]
        assert hemizygous_fitness(muts, 1.0) == 0.0


# ═══════════════════════════════════════════════════════════════════════
# HETEROZYGOUS / HOMOZYGOUS
# ═══════════════════════════════════════════════════════════════════════

class TestMergedFitness:
    def test_empty_genomes(self):
        assert diploid_fitness(Genome(), Genome()) == 1.0

    def test_single_heterozygous(self, mt):
        a = _genome(Mutation(mt, 10, -0.2))
        assert diploid_fitness(a, Genome()) == pytest.approx(1.0 - 0.5 * 0.2)

    def test_same_record_homozygous(self, mt):
        m = Mutation(mt, 10, -0.2)
        assert diploid_fitness(_genome(m), _genome(m)) == pytest.approx(0.8)

    def test_distinct_equal_records_homozygous(self, mt):
        """Two separately created mutations with equal type and s are homozygous."""
        a = _genome(Mutation(mt, 100, -0.1))
        b = _genome(Mutation(mt, 100, -0.1))
        assert a.mutations[0] is not b.mutations[0]
        assert diploid_fitness(a, b) == pytest.approx(0.9)

    def test_different_coefficient_is_heterozygous(self, mt):
        a = _genome(Mutation(mt, 100, -0.1))
        b = _genome(Mutation(mt, 100, -0.2))
        assert diploid_fitness(a, b) == pytest.approx((1 - 0.05) * (1 - 0.1))

    def test_different_type_is_heterozygous(self, mt):
        other = MutationType(id=1, dominance_coeff=0.5)  # equal fields, distinct object
        a = _genome(Mutation(mt, 100, -0.1))
        b = _genome(Mutation(other, 100, -0.1))
        assert diploid_fitness(a, b) == pytest.approx(0.95 * 0.95)

    def test_interleaved_positions(self, mt):
        recessive = MutationType(id=2, dominance_coeff=0.0)
        a = _genome(Mutation(mt, 1, 0.1), Mutation(recessive, 5, -0.5), Mutation(mt, 9, 0.2))
        b = _genome(Mutation(mt, 3, -0.1), Mutation(mt, 9, 0.2), Mutation(mt, 20, 0.4))
        expected = (1 + 0.05) * (1 - 0.05) * 1.0 * 1.2 * (1 + 0.2)
        assert diploid_fitness(a, b) == pytest.approx(expected)

    def test_neutral_mutations_ignored(self, mt):
        a = _genome(Mutation(mt, 1, 0.0), Mutation(mt, 2, 0.0))
        b = _genome(Mutation(mt, 2, 0.0), Mutation(mt, 3, 0.0))
        assert diploid_fitness(a, b) == 1.0

    def test_remainder_is_heterozygous(self, mt):
        a = _genome(Mutation(mt, 1, 0.1))
        b = _genome(Mutation(mt, 2, 0.1), Mutation(mt, 3, 0.1), Mutation(mt, 4, 0.1))
        assert diploid_fitness(a, b) == pytest.approx(1.05 ** 4)


class TestTiedRuns:
    def test_partial_match_in_run(self):
        t1 = MutationType(1, 0.5)
        t2 = MutationType(2, 0.25)
        a = _genome(Mutation(t1, 5, 0.1), Mutation(t2, 5, 0.2))
        b = _genome(Mutation(t2, 5, 0.2))
        assert diploid_fitness(a, b) == pytest.approx((1 + 0.05) * 1.2)

    def test_unmatched_on_second_side(self):
        t1 = MutationType(1, 0.5)
        t2 = MutationType(2, 0.25)
        a = _genome(Mutation(t2, 5, 0.2))
        b = _genome(Mutation(t1, 5, 0.1), Mutation(t2, 5, 0.2))
        assert diploid_fitness(a, b) == pytest.approx(1.2 * (1 + 0.05))

    def test_duplicate_pairs_once(self, mt):
        """Two equal records against one: one homozygous pair plus one heterozygote."""
        a = _genome(Mutation(mt, 5, -0.3), Mutation(mt, 5, -0.3))
        b = _genome(Mutation(mt, 5, -0.3))
        expected = 0.7 * 0.85
        assert diploid_fitness(a, b) == pytest.approx(expected)
        assert diploid_fitness(b, a) == pytest.approx(expected)

    def test_duplicates_on_both_sides_all_paired(self, mt):
        a = _genome(Mutation(mt, 5, 0.1), Mutation(mt, 5, 0.1))
        b = _genome(Mutation(mt, 5, 0.1), Mutation(mt, 5, 0.1))
        assert diploid_fitness(a, b) == pytest.approx(1.1 * 1.1)

    def test_duplicate_surplus_mixed_types(self):
        t1 = MutationType(1, 0.5)
        t2 = MutationType(2, 0.2)
        a = _genome(Mutation(t1, 5, 0.1), Mutation(t1, 5, 0.1), Mutation(t2, 5, 0.5))
        b = _genome(Mutation(t2, 5, 0.5), Mutation(t1, 5, 0.1), Mutation(t2, 5, 0.5))
        expected = 1.1 * 1.05 * 1.5 * 1.1
        assert diploid_fitness(a, b) == pytest.approx(expected)
        assert diploid_fitness(b, a) == pytest.approx(expected)

    def test_run_followed_by_more_positions(self, mt):
        a = _genome(Mutation(mt, 5, 0.1), Mutation(mt, 5, -0.1), Mutation(mt, 8, 0.2))
        b = _genome(Mutation(mt, 5, -0.1), Mutation(mt, 6, 0.4))
        expected = 1.05 * 0.9 * 1.2 * 1.1
        assert diploid_fitness(a, b) == pytest.approx(expected)


# ═══════════════════════════════════════════════════════════════════════
# SHORT-CIRCUIT & SYMMETRY
# ═══════════════════════════════════════════════════════════════════════

class TestShortCircuit:
    def test_homozygous_lethal_is_zero(self, mt):
        m = Mutation(mt, 3, -1.0)
        later = Mutation(mt, 10, 0.5)
        assert diploid_fitness(_genome(m, later), _genome(m)) == 0.0

    def test_negative_product_returns_zero(self):
        dominant = MutationType(1, 1.0)
        a = _genome(Mutation(dominant, 1, -2.0), Mutation(dominant, 2, -2.0))
        # Without stopping at the first factor the product would be (+1)
        assert diploid_fitness(a, Genome()) == 0.0
        assert diploid_fitness(Genome(), a) == 0.0

    def test_negative_in_tied_run(self):
        dominant = MutationType(1, 1.0)
        a = _genome(Mutation(dominant, 4, -3.0), Mutation(dominant, 9, -3.0))
        b = _genome(Mutation(dominant, 4, 0.5))
        assert diploid_fitness(a, b) == 0.0

    def test_zero_not_negative(self):
        lethal = MutationType(1, 1.0)
        w = merged_fitness([Mutation(lethal, 1, -1.0)], [])
        assert w == 0.0
        assert not np.signbit(w)


class TestSymmetry:
    def test_swap_haplotypes_random(self):
        rng = np.random.default_rng(2024)
        types = [MutationType(1, 0.5), MutationType(2, 0.1), MutationType(3, 0.9)]
        for _ in range(200):
            a = _random_genome(rng, types, int(rng.integers(0, 15)))
            b = _random_genome(rng, types, int(rng.integers(0, 15)))
            assert diploid_fitness(a, b) == pytest.approx(diploid_fitness(b, a))

    def test_matches_reference(self):
        """Merge result equals a position-grouped brute-force product."""
        rng = np.random.default_rng(7)
        types = [MutationType(1, 0.5), MutationType(2, 0.2)]
        for _ in range(200):
            a = _random_genome(rng, types, int(rng.integers(0, 12)))
            b = _random_genome(rng, types, int(rng.integers(0, 12)))
            assert diploid_fitness(a, b) == pytest.approx(
                _naive_fitness(a.mutations, b.mutations))
