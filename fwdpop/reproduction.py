"""Default reproduction step: Wright–Fisher sampling with Mendelian transmission.

Fills every slot of a subpopulation's child buffer from parents drawn in
proportion to fitness. Each child receives one randomly chosen haplotype
from its mother and one from its father. No recombination and no new
mutations; both belong to richer reproduction models that plug into
``advance_generation`` the same way.

Sex-chromosome transmission (X or Y modeled):
  - haplotype 0 of every child comes from the mother (one of her two Xs)
  - a daughter's haplotype 1 is her father's X, a son's is his father's Y
Null target slots are left untouched.
"""

from __future__ import annotations

import numpy as np

from fwdpop.genome import NullGenome
from fwdpop.subpopulation import Subpopulation
from fwdpop.types import ChromosomeType, Mutation, Sex


def wright_fisher_generation(subpop: Subpopulation, rng: np.random.Generator) -> None:
    """Produce the whole child generation of ``subpop``.

    Mothers, fathers and the inherited haplotypes are each drawn as one
    batch for the whole generation, in that order, so a fixed seed
    reproduces the same pedigree.

    Args:
        subpop: Subpopulation whose samplers were rebuilt this generation.
        rng: Random generator for this subpopulation.
    """
    n_children = subpop.child_size
    if subpop.sex_enabled:
        mothers = subpop.draw_parents(rng, n_children, Sex.FEMALE)
        fathers = subpop.draw_parents(rng, n_children, Sex.MALE)
    else:
        mothers = subpop.draw_parents(rng, n_children)
        fathers = subpop.draw_parents(rng, n_children)
    maternal_haps = rng.integers(0, 2, size=n_children)
    if subpop.sex_enabled and subpop.modeled_chromosome != ChromosomeType.AUTOSOME:
        # Father's X is haplotype 0 (daughters), his Y haplotype 1 (sons)
        paternal_haps = (np.arange(n_children) >= subpop.child_first_male_index).astype(np.int64)
    else:
        paternal_haps = rng.integers(0, 2, size=n_children)

    for child in range(n_children):
        maternal = subpop.parent_genome(int(mothers[child]), int(maternal_haps[child]))
        paternal = subpop.parent_genome(int(fathers[child]), int(paternal_haps[child]))
        _transmit(subpop.child_genome(child, 0), maternal)
        _transmit(subpop.child_genome(child, 1), paternal)


def _transmit(target, source) -> None:
    if isinstance(target, NullGenome):
        return
    if isinstance(source, NullGenome):
        target.clear()
    else:
        target.copy_from(source)


def add_mutation(
    subpop: Subpopulation,
    individual: int,
    haplotype: int,
    mutation: Mutation,
) -> None:
    """Insert ``mutation`` into a parent genome, keeping position order.

    The subpopulation's stored fitness no longer describes its parents
    afterwards and is dropped.

    Raises:
        TypeError: If that genome is a null genome.
    """
    subpop.parent_genome(individual, haplotype).add_mutation(mutation)
    subpop.invalidate_fitness()


def seed_standing_variation(
    subpop: Subpopulation,
    mutation: Mutation,
    frequency: float,
    rng: np.random.Generator,
) -> int:
    """Add one shared mutation to a random subset of modeled parent genomes.

    Each modeled parent genome receives the same
    Mutation object with probability ``frequency``.

    Returns:
        Number of genomes that received the mutation.
    """
    if not 0.0 <= frequency <= 1.0:
        raise ValueError(f"frequency must be in [0, 1], got {frequency}")

    hits = rng.random(len(subpop.parent_genomes)) < frequency
    n_added = 0
    for slot in np.flatnonzero(hits):
        individual, haplotype = divmod(int(slot), 2)
        if isinstance(subpop.parent_genome(individual, haplotype), NullGenome):
            continue
        add_mutation(subpop, individual, haplotype, mutation)
        n_added += 1
    return n_added
