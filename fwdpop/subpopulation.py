"""Subpopulation: genome buffers, fitness and parent sampling.

A subpopulation owns two genome buffers:

  parent_genomes  the current generation; fitness is evaluated here and
                  parents are drawn from here
  child_genomes   the generation being produced; the reproduction step
                  writes into it slot by slot

Each buffer holds 2 × size genomes; individual i owns slots 2i and 2i+1.
With sex enabled, individuals [0, first_male_index) are female and
[first_male_index, size) are male, and both ranges must be non-empty.

Per generation:
  1. update_fitness()                     evaluate parents, rebuild samplers
  2. reproduction draws parents and fills child_genomes
  3. swap_child_and_parent_genomes()      exchange the two buffers
"""

from __future__ import annotations

import logging
import math
from typing import Callable, List, Optional, Tuple

import numpy as np

from fwdpop.fitness import diploid_fitness
from fwdpop.genome import AnyGenome, make_genome
from fwdpop.sampling import DiscreteSampler
from fwdpop.types import ChromosomeType, Sex

logger = logging.getLogger(__name__)

# callback(subpop, fitness) -> modified fitness, or None to keep the array as edited
FitnessCallback = Callable[['Subpopulation', np.ndarray], Optional[np.ndarray]]


class SexRatioError(ValueError):
    """Sex ratio yields no females or no males at the given population size.

    This is a configuration mistake; the run cannot continue.
    """


# ═══════════════════════════════════════════════════════════════════════
# BUFFER FITTING
# ═══════════════════════════════════════════════════════════════════════

def first_male_index(size: int, sex_ratio: float, role: str = "child") -> int:
    """Index of the first male for a population of ``size`` individuals.

    ``round((1 − sex_ratio) × size)``, halves rounded away from zero.

    Args:
        size: Number of individuals.
        sex_ratio: Fraction of males.
        role: 'parent' or 'child', used in the error message.

    Raises:
        SexRatioError: If the result leaves no females or no males.
    """
    index = int(math.floor((1.0 - sex_ratio) * size + 0.5))

    if index <= 0:
        message = f"{role} sex ratio of {sex_ratio} produced no females"
    elif index >= size:
        message = f"{role} sex ratio of {sex_ratio} produced no males"
    else:
        return index

    logger.error(message)
    raise SexRatioError(message)


def fit_genomes(
    size: int,
    sex_enabled: bool,
    first_male: int,
    modeled_chromosome: ChromosomeType,
) -> List[AnyGenome]:
    """Build a fresh buffer of 2 × size empty genomes.

    Without sex, or with sex but an autosome model, every slot is a modeled
    autosome. With an X or Y model, females get (X, X) and males (X, Y); the
    chromosome that is not modeled is one NullGenome shared by every slot.
    """
    if not sex_enabled or modeled_chromosome == ChromosomeType.AUTOSOME:
        return [make_genome(ChromosomeType.AUTOSOME) for _ in range(2 * size)]

    x_modeled = modeled_chromosome == ChromosomeType.X
    x_null = None if x_modeled else make_genome(ChromosomeType.X, modeled=False)
    y_null = make_genome(ChromosomeType.Y, modeled=False) if x_modeled else None

    def x_genome():
        return make_genome(ChromosomeType.X) if x_null is None else x_null

    def y_genome():
        return make_genome(ChromosomeType.Y) if y_null is None else y_null

    genomes: List[AnyGenome] = []
    for _ in range(first_male):
        genomes.append(x_genome())
        genomes.append(x_genome())
    for _ in range(first_male, size):
        genomes.append(x_genome())
        genomes.append(y_genome())
    return genomes


# ═══════════════════════════════════════════════════════════════════════
# SUBPOPULATION
# ═══════════════════════════════════════════════════════════════════════

class Subpopulation:
    """Diploid subpopulation with parent/child genome buffers.

    Args:
        size: Number of individuals (parent and child generation).
        sex_enabled: Separate sexes; parents are then drawn as one female
            and one male.
        sex_ratio: Fraction of males (only used when sex_enabled).
        modeled_chromosome: Chromosome carried by the genomes. X or Y
            requires sex_enabled.
        x_dominance_coeff: Dominance applied to mutations on an X with no
            modeled partner (hemizygous males when modeling the X).
        subpop_id: Identifier used in logs and summaries.

    Raises:
        ValueError: On size < 1, a sex ratio outside [0, 1], or a sex
            chromosome model without sex.
        SexRatioError: If the sex ratio leaves either sex empty.
    """

    def __init__(
        self,
        size: int,
        sex_enabled: bool = False,
        sex_ratio: float = 0.5,
        modeled_chromosome: ChromosomeType = ChromosomeType.AUTOSOME,
        x_dominance_coeff: float = 1.0,
        subpop_id: int = 0,
    ):
        _check_size(size)
        modeled_chromosome = ChromosomeType(modeled_chromosome)
        if sex_enabled:
            _check_sex_ratio(sex_ratio)
        elif modeled_chromosome != ChromosomeType.AUTOSOME:
            raise ValueError(
                f"modeling the {modeled_chromosome.name} chromosome requires sex_enabled"
            )

        self.id = subpop_id
        self.sex_enabled = bool(sex_enabled)
        self.modeled_chromosome = modeled_chromosome
        self.x_dominance_coeff = float(x_dominance_coeff)

        self.parent_size = size
        self.child_size = size
        self.parent_sex_ratio = float(sex_ratio) if sex_enabled else 0.0
        self.child_sex_ratio = self.parent_sex_ratio
        self.parent_first_male_index = size
        self.child_first_male_index = size

        self.parent_genomes: List[AnyGenome] = []
        self.child_genomes: List[AnyGenome] = []
        self._generate_children_to_fit(parents_also=True)

        # None until fitness has been evaluated for the current parents
        self.parent_fitness: Optional[np.ndarray] = None
        self.parent_sampler: Optional[DiscreteSampler] = None
        self.female_sampler: Optional[DiscreteSampler] = None
        self.male_sampler: Optional[DiscreteSampler] = None
        self._samplers_current = False
        self._build_uniform_samplers()

    def __repr__(self) -> str:
        sex = (f", sex_ratio={self.parent_sex_ratio}, "
               f"chromosome={self.modeled_chromosome.name}") if self.sex_enabled else ""
        return f"Subpopulation(p{self.id}, size={self.parent_size}{sex})"

    # ── buffer fitting ────────────────────────────────────────────────

    def _generate_children_to_fit(self, parents_also: bool = False) -> None:
        """Replace the child buffer (and optionally the parent buffer) with
        empty genomes laid out for the current child (parent) settings."""
        if self.sex_enabled:
            self.child_first_male_index = first_male_index(
                self.child_size, self.child_sex_ratio, role="child")
            if parents_also:
                self.parent_first_male_index = first_male_index(
                    self.parent_size, self.parent_sex_ratio, role="parent")
        else:
            self.child_first_male_index = self.child_size
            if parents_also:
                self.parent_first_male_index = self.parent_size

        self.child_genomes = fit_genomes(
            self.child_size, self.sex_enabled,
            self.child_first_male_index, self.modeled_chromosome)
        if parents_also:
            self.parent_genomes = fit_genomes(
                self.parent_size, self.sex_enabled,
                self.parent_first_male_index, self.modeled_chromosome)

        logger.debug(
            "p%d: fitted child buffer for %d individuals (first male %d)%s",
            self.id, self.child_size, self.child_first_male_index,
            " and parent buffer" if parents_also else "",
        )

    def set_size(self, size: int) -> None:
        """Set the size of the generation being produced.

        The child buffer is refitted now, so reproduction writes into a
        buffer of the new size; the parent role takes it over at the next
        swap.

        Raises:
            ValueError: If size < 1.
            SexRatioError: If the current ratio leaves either sex empty at
                the new size. The child generation is left unchanged.
        """
        _check_size(size)
        if self.sex_enabled:
            first_male_index(size, self.child_sex_ratio, role="child")
        self.child_size = size
        self._generate_children_to_fit()

    def set_sex_ratio(self, sex_ratio: float) -> None:
        """Set the male fraction of the generation being produced.

        Raises:
            ValueError: If sex is disabled or the ratio is outside [0, 1].
            SexRatioError: If the ratio leaves either sex empty. The child
                generation is left unchanged.
        """
        if not self.sex_enabled:
            raise ValueError(f"p{self.id}: cannot set a sex ratio with sex disabled")
        _check_sex_ratio(sex_ratio)
        first_male_index(self.child_size, sex_ratio, role="child")
        self.child_sex_ratio = float(sex_ratio)
        self._generate_children_to_fit()

    # ── genome access ─────────────────────────────────────────────────

    def parent_genome(self, individual: int, haplotype: int) -> AnyGenome:
        _check_haplotype(haplotype)
        return self.parent_genomes[2 * individual + haplotype]

    def child_genome(self, individual: int, haplotype: int) -> AnyGenome:
        """Write target for reproduction: haplotype 0 or 1 of a child slot."""
        _check_haplotype(haplotype)
        return self.child_genomes[2 * individual + haplotype]

    def parent_individual(self, individual: int) -> Tuple[AnyGenome, AnyGenome]:
        return (self.parent_genomes[2 * individual],
                self.parent_genomes[2 * individual + 1])

    def sex_of_parent(self, individual: int) -> Sex:
        if not self.sex_enabled:
            return Sex.HERMAPHRODITE
        return Sex.FEMALE if individual < self.parent_first_male_index else Sex.MALE

    def sex_of_child(self, individual: int) -> Sex:
        if not self.sex_enabled:
            return Sex.HERMAPHRODITE
        return Sex.FEMALE if individual < self.child_first_male_index else Sex.MALE

    # ── fitness & sampling ────────────────────────────────────────────

    def fitness_of_parent(self, individual: int) -> float:
        """Fitness of parent individual ``individual`` from its two genomes."""
        return diploid_fitness(
            self.parent_genomes[2 * individual],
            self.parent_genomes[2 * individual + 1],
            self.x_dominance_coeff,
        )

    def compute_fitness(self) -> np.ndarray:
        """(parent_size,) fitness of every parent, in individual order."""
        genomes = self.parent_genomes
        x_dom = self.x_dominance_coeff
        return np.fromiter(
            (diploid_fitness(genomes[2 * i], genomes[2 * i + 1], x_dom)
             for i in range(self.parent_size)),
            dtype=np.float64,
            count=self.parent_size,
        )

    def update_fitness(self, fitness_callback: Optional[FitnessCallback] = None) -> np.ndarray:
        """Evaluate every parent and rebuild the parent samplers.

        Call exactly once per generation, before any parent is drawn.

        Args:
            fitness_callback: Optional ``callback(subpop, fitness)``. It may
                edit ``fitness`` in place or return a replacement array of
                the same length. Values must stay finite and ≥ 0.

        Returns:
            The fitness vector the samplers were built from.
        """
        fitness = self.compute_fitness()

        if fitness_callback is not None:
            modified = fitness_callback(self, fitness)
            if modified is not None:
                fitness = np.asarray(modified, dtype=np.float64)
            if fitness.shape != (self.parent_size,):
                raise ValueError(
                    f"p{self.id}: fitness callback returned shape {fitness.shape}, "
                    f"expected ({self.parent_size},)"
                )

        self.parent_fitness = fitness
        self._rebuild_samplers()
        return fitness

    def invalidate_fitness(self) -> None:
        """Drop the stored fitness after the parent genomes were edited.

        The samplers stay usable; they keep the weights they were built
        from until the next update_fitness().
        """
        self.parent_fitness = None

    def _rebuild_samplers(self) -> None:
        fitness = self.parent_fitness
        if self.sex_enabled:
            first_male = self.parent_first_male_index
            self.parent_sampler = None
            self.female_sampler = DiscreteSampler(fitness[:first_male])
            self.male_sampler = DiscreteSampler(fitness[first_male:], offset=first_male)
        else:
            self.parent_sampler = DiscreteSampler(fitness)
            self.female_sampler = None
            self.male_sampler = None
        self._samplers_current = True
        logger.debug("p%d: rebuilt parent samplers over %d individuals",
                     self.id, self.parent_size)

    def _build_uniform_samplers(self) -> None:
        """Equal-weight samplers so parents can be drawn before any fitness update."""
        size = self.parent_size
        if self.sex_enabled:
            first_male = self.parent_first_male_index
            self.female_sampler = DiscreteSampler.uniform(first_male)
            self.male_sampler = DiscreteSampler.uniform(size - first_male, offset=first_male)
        else:
            self.parent_sampler = DiscreteSampler.uniform(size)
        self._samplers_current = True

    def draw_parent(self, rng: np.random.Generator, sex: Optional[Sex] = None) -> int:
        """Draw one parent index proportional to fitness.

        Args:
            rng: Random generator for this subpopulation.
            sex: FEMALE or MALE when sex is enabled; ignored otherwise.

        Raises:
            RuntimeError: If the samplers have not been rebuilt since the last swap.
            ValueError: If sex is enabled and ``sex`` is not FEMALE or MALE.
        """
        return int(self._sampler_for(sex).draw(rng))

    def draw_parents(self, rng: np.random.Generator, size: int,
                     sex: Optional[Sex] = None) -> np.ndarray:
        """Draw ``size`` parent indices with replacement."""
        return self._sampler_for(sex).draw_many(rng, size)

    def _sampler_for(self, sex: Optional[Sex]) -> DiscreteSampler:
        if not self._samplers_current:
            raise RuntimeError(
                f"p{self.id}: parent samplers are stale; call update_fitness() first"
            )
        if not self.sex_enabled:
            return self.parent_sampler
        if sex == Sex.FEMALE:
            return self.female_sampler
        if sex == Sex.MALE:
            return self.male_sampler
        raise ValueError(f"p{self.id}: sex must be FEMALE or MALE, got {sex!r}")

    # ── generation swap ───────────────────────────────────────────────

    def swap_child_and_parent_genomes(self) -> bool:
        """Make the child generation the parent generation.

        The two buffers are exchanged, not copied. If the child generation's
        size, sex ratio or first male index differ from the outgoing parent
        generation, the now-child buffer is refitted.

        Returns:
            True if the child buffer was refitted.
        """
        needs_refit = (
            self.parent_size != self.child_size
            or self.parent_sex_ratio != self.child_sex_ratio
            or self.parent_first_male_index != self.child_first_male_index
        )

        self.parent_genomes, self.child_genomes = self.child_genomes, self.parent_genomes

        self.parent_size = self.child_size
        self.parent_sex_ratio = self.child_sex_ratio
        self.parent_first_male_index = self.child_first_male_index

        # Fitness and samplers describe the outgoing generation
        self.parent_fitness = None
        self._samplers_current = False

        if needs_refit:
            self._generate_children_to_fit()
        return needs_refit


def _check_size(size: int) -> None:
    if int(size) != size or size < 1:
        raise ValueError(f"subpopulation size must be a positive integer, got {size}")


def _check_sex_ratio(sex_ratio: float) -> None:
    if not 0.0 <= sex_ratio <= 1.0:
        raise ValueError(f"sex ratio must be in [0, 1], got {sex_ratio}")


def _check_haplotype(haplotype: int) -> None:
    if haplotype not in (0, 1):
        raise ValueError(f"haplotype must be 0 or 1, got {haplotype}")
