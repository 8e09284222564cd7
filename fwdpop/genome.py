"""Genome containers.

A genome is one haplotype of an individual and comes in two variants:

  Genome      modeled chromosome; list of Mutation references kept sorted
              ascending by position
  NullGenome  placeholder for a chromosome that is not modeled for this
              individual (e.g. the Y of a female, or the X of any individual
              when only the Y is modeled). Always empty, fitness-neutral.

Fitness evaluation dispatches on the variant, not on a flag. The sort order
of Genome.mutations is a precondition of the fitness merge and is not
re-checked there.
"""

from __future__ import annotations

import bisect
from typing import Iterable, Iterator, List, Sequence, Union

from fwdpop.types import ChromosomeType, Mutation


class Genome:
    """A modeled haplotype: chromosome type plus position-sorted mutations."""

    __slots__ = ('chromosome_type', 'mutations')

    is_null = False

    def __init__(
        self,
        chromosome_type: ChromosomeType = ChromosomeType.AUTOSOME,
        mutations: Iterable[Mutation] = (),
    ):
        self.chromosome_type = chromosome_type
        self.mutations: List[Mutation] = sorted(mutations, key=_position)

    def __len__(self) -> int:
        return len(self.mutations)

    def __iter__(self) -> Iterator[Mutation]:
        return iter(self.mutations)

    def __repr__(self) -> str:
        return (f"Genome({self.chromosome_type.name}, "
                f"n_mutations={len(self.mutations)})")

    def add_mutation(self, mutation: Mutation) -> None:
        """Insert a mutation, keeping the list sorted by position.

        Mutations at an equal position are placed after the existing ones.
        """
        bisect.insort_right(self.mutations, mutation, key=_position)

    def copy_from(self, source: 'Genome') -> None:
        """Make this genome carry the same mutation references as source.

        The references are shared, not the list; later insertions into either
        genome do not affect the other.
        """
        self.mutations = list(source.mutations)

    def clear(self) -> None:
        self.mutations = []


class NullGenome:
    """Placeholder for an unmodeled chromosome copy."""

    __slots__ = ('chromosome_type',)

    is_null = True
    mutations: Sequence[Mutation] = ()

    def __init__(self, chromosome_type: ChromosomeType):
        self.chromosome_type = chromosome_type

    def __len__(self) -> int:
        return 0

    def __iter__(self) -> Iterator[Mutation]:
        return iter(())

    def __repr__(self) -> str:
        return f"NullGenome({self.chromosome_type.name})"

    def add_mutation(self, mutation: Mutation) -> None:
        raise TypeError(
            f"cannot add a mutation to a null {self.chromosome_type.name} genome"
        )

    def copy_from(self, source: AnyGenome) -> None:
        raise TypeError(
            f"cannot copy mutations into a null {self.chromosome_type.name} genome"
        )


AnyGenome = Union[Genome, NullGenome]


def _position(mutation: Mutation) -> int:
    return mutation.position


def make_genome(chromosome_type: ChromosomeType, modeled: bool = True) -> AnyGenome:
    """Create an empty genome of the given type, modeled or null."""
    if modeled:
        return Genome(chromosome_type)
    return NullGenome(chromosome_type)
