"""Diploid fitness evaluation.

Fitness of an individual is the product over its mutations of:
  (1 + h·s)        heterozygous, h = dominance of the mutation's type
  (1 + s)          homozygous: both haplotypes carry a mutation at the same
                   position with the same MutationType object and an equal s;
                   one factor per such pair, matched one-to-one, so the
                   result does not depend on the order of the haplotypes
  (1 + h_X·s)      hemizygous X (partner genome is null), h_X = the
                   subpopulation's X dominance coefficient
  (1 + s)          hemizygous non-X (e.g. a Y when the Y is modeled)

Mutations with s == 0 are skipped. As soon as the running product is ≤ 0
the individual's fitness is 0.0; nothing further can raise it.

Both genomes are walked once in position order, like the merge step of a
merge sort, so the cost is O(n + m).
"""

from __future__ import annotations

from collections import Counter
from typing import Sequence

from fwdpop.genome import AnyGenome, NullGenome
from fwdpop.types import ChromosomeType, Mutation


def diploid_fitness(
    genome1: AnyGenome,
    genome2: AnyGenome,
    x_dominance_coeff: float = 1.0,
) -> float:
    """Multiplicative fitness of the individual carrying genome1 and genome2.

    Args:
        genome1: First haplotype.
        genome2: Second haplotype.
        x_dominance_coeff: Dominance applied to mutations on an X that has no
            modeled partner.

    Returns:
        Fitness ≥ 0. Exactly 1.0 when both genomes are null.
    """
    null1 = isinstance(genome1, NullGenome)
    null2 = isinstance(genome2, NullGenome)

    if null1 and null2:
        return 1.0
    if null1 or null2:
        genome = genome2 if null1 else genome1
        if genome.chromosome_type == ChromosomeType.X:
            return hemizygous_fitness(genome.mutations, x_dominance_coeff)
        return hemizygous_fitness(genome.mutations, 1.0)
    return merged_fitness(genome1.mutations, genome2.mutations)


def hemizygous_fitness(mutations: Sequence[Mutation], dominance_coeff: float) -> float:
    """Fitness of an unpaired chromosome; every mutation scaled by dominance_coeff."""
    w = 1.0
    for mut in mutations:
        s = mut.selection_coeff
        if s != 0.0:
            w *= 1.0 + dominance_coeff * s
            if w <= 0.0:
                return 0.0
    return w


def merged_fitness(muts1: Sequence[Mutation], muts2: Sequence[Mutation]) -> float:
    """Fitness of two modeled haplotypes, each sorted ascending by position."""
    w = 1.0
    i = j = 0
    n1 = len(muts1)
    n2 = len(muts2)

    while i < n1 and j < n2:
        mut1 = muts1[i]
        mut2 = muts2[j]
        pos1 = mut1.position
        pos2 = mut2.position

        if pos1 < pos2:
            s = mut1.selection_coeff
            if s != 0.0:
                w *= 1.0 + mut1.mutation_type.dominance_coeff * s
                if w <= 0.0:
                    return 0.0
            i += 1
        elif pos1 > pos2:
            s = mut2.selection_coeff
            if s != 0.0:
                w *= 1.0 + mut2.mutation_type.dominance_coeff * s
                if w <= 0.0:
                    return 0.0
            j += 1
        else:
            # Tied run: every mutation at this position on either side
            end1 = i + 1
            while end1 < n1 and muts1[end1].position == pos1:
                end1 += 1
            end2 = j + 1
            while end2 < n2 and muts2[end2].position == pos1:
                end2 += 1

            # Equal (type, s) records pair off one-to-one; each pair is one
            # homozygous factor and any surplus on either side is heterozygous
            unpaired = Counter((m.mutation_type, m.selection_coeff) for m in muts2[j:end2])

            for mut in muts1[i:end1]:
                s = mut.selection_coeff
                if s == 0.0:
                    continue
                key = (mut.mutation_type, s)
                if unpaired[key] > 0:
                    unpaired[key] -= 1
                    w *= 1.0 + s
                else:
                    w *= 1.0 + mut.mutation_type.dominance_coeff * s
                if w <= 0.0:
                    return 0.0

            for mut in muts2[j:end2]:
                s = mut.selection_coeff
                if s == 0.0:
                    continue
                key = (mut.mutation_type, s)
                if unpaired[key] > 0:
                    unpaired[key] -= 1
                    w *= 1.0 + mut.mutation_type.dominance_coeff * s
                    if w <= 0.0:
                        return 0.0

            i = end1
            j = end2

    # Whatever remains on one side has no partner
    for mut in muts1[i:]:
        s = mut.selection_coeff
        if s != 0.0:
            w *= 1.0 + mut.mutation_type.dominance_coeff * s
            if w <= 0.0:
                return 0.0
    for mut in muts2[j:]:
        s = mut.selection_coeff
        if s != 0.0:
            w *= 1.0 + mut.mutation_type.dominance_coeff * s
            if w <= 0.0:
                return 0.0

    return w
