"""Core data types for fwdpop.

This module is the single place that defines:
  - ChromosomeType and Sex enumerations
  - MutationType: shared dominance descriptor
  - Mutation: immutable mutation record shared by every genome carrying it

Mutations are never modified after creation. Genomes hold plain references
to them, so a mutation is released once the last genome referencing it is
discarded.
"""

from dataclasses import dataclass
from enum import IntEnum


# ═══════════════════════════════════════════════════════════════════════
# ENUMERATIONS
# ═══════════════════════════════════════════════════════════════════════

class ChromosomeType(IntEnum):
    """Chromosome being modeled by a genome."""
    AUTOSOME = 0
    X = 1
    Y = 2


class Sex(IntEnum):
    """Sex of an individual.

    HERMAPHRODITE is used whenever sex is disabled for a subpopulation.
    """
    HERMAPHRODITE = 0
    FEMALE = 1
    MALE = 2


# Config letters → ChromosomeType
CHROMOSOME_CODES = {
    'A': ChromosomeType.AUTOSOME,
    'X': ChromosomeType.X,
    'Y': ChromosomeType.Y,
}


def parse_chromosome_type(code: str) -> ChromosomeType:
    """Convert a config letter ('A', 'X' or 'Y') to a ChromosomeType.

    Raises:
        ValueError: If the letter is not recognised.
    """
    try:
        return CHROMOSOME_CODES[code.upper()]
    except (KeyError, AttributeError):
        raise ValueError(
            f"chromosome type must be one of {sorted(CHROMOSOME_CODES)}, got {code!r}"
        ) from None


# ═══════════════════════════════════════════════════════════════════════
# MUTATION RECORDS
# ═══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True, eq=False)
class MutationType:
    """Shared descriptor for a class of mutations.

    Compared by identity: two mutations are of the same type only if they
    reference the same MutationType object.
    """
    id: int
    dominance_coeff: float = 0.5


@dataclass(frozen=True, eq=False)
class Mutation:
    """One mutation at a genomic position.

    A selection coefficient of 0 contributes no fitness effect.
    """
    mutation_type: MutationType
    position: int
    selection_coeff: float
