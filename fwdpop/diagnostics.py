"""Per-generation genetic summaries.

Mutation counts are taken by identity: two genomes share a mutation only if
they reference the same Mutation object, which is how transmission
propagates it.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Dict, Iterable

import numpy as np

from fwdpop.genome import AnyGenome, NullGenome
from fwdpop.subpopulation import Subpopulation
from fwdpop.types import Mutation


def mutation_counts(genomes: Iterable[AnyGenome]) -> Dict[Mutation, int]:
    """Number of modeled genomes carrying each mutation."""
    counts: Counter = Counter()
    for genome in genomes:
        if not isinstance(genome, NullGenome):
            counts.update(genome.mutations)
    return dict(counts)


def mutation_frequencies(genomes: Iterable[AnyGenome]) -> Dict[Mutation, float]:
    """Frequency of each mutation among the modeled genomes.

    Returns an empty dict if no genome is modeled.
    """
    genomes = list(genomes)
    n_modeled = sum(1 for g in genomes if not isinstance(g, NullGenome))
    if n_modeled == 0:
        return {}
    return {mut: n / n_modeled for mut, n in mutation_counts(genomes).items()}


def mean_fitness(subpop: Subpopulation) -> float:
    """Mean parent fitness (recomputed if the stored vector is stale)."""
    fitness = subpop.parent_fitness
    if fitness is None:
        fitness = subpop.compute_fitness()
    return float(np.mean(fitness))


@dataclass
class GenerationSummary:
    """Summary of one subpopulation's parent generation."""
    generation: int
    subpop_id: int
    size: int
    mean_fitness: float
    n_segregating: int
    n_fixed: int


def summarize_generation(subpop: Subpopulation, generation: int) -> GenerationSummary:
    """Summarize the parent generation of ``subpop``.

    A mutation is fixed when every modeled genome carries it, segregating
    otherwise.
    """
    freqs = mutation_frequencies(subpop.parent_genomes)
    n_fixed = sum(1 for f in freqs.values() if f >= 1.0)
    return GenerationSummary(
        generation=generation,
        subpop_id=subpop.id,
        size=subpop.parent_size,
        mean_fitness=mean_fitness(subpop),
        n_segregating=len(freqs) - n_fixed,
        n_fixed=n_fixed,
    )
