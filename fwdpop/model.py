"""Generation loop over one or more subpopulations.

Each generation, every subpopulation is advanced in configuration order:

  1. update_fitness (optional fitness callback)   → samplers rebuilt
  2. reproduce(subpop, rng)                        → child buffer filled
  3. swap_child_and_parent_genomes                 → child becomes parent

Each subpopulation draws from its own RNG stream, so a fixed master seed
reproduces the run exactly, and adding a subpopulation leaves the draws of
the existing ones unchanged.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

import numpy as np

from fwdpop.config import SimulationConfig, validate_config
from fwdpop.diagnostics import GenerationSummary, summarize_generation
from fwdpop.perf import PerfMonitor
from fwdpop.reproduction import seed_standing_variation, wright_fisher_generation
from fwdpop.rng import create_rng_hierarchy, get_subpop_rng
from fwdpop.subpopulation import FitnessCallback, Subpopulation
from fwdpop.types import Mutation, MutationType

logger = logging.getLogger(__name__)

ReproduceFn = Callable[[Subpopulation, np.random.Generator], None]
# generation_callback(generation, subpops), called before each generation;
# may request size / sex-ratio changes for the next child generation
GenerationCallback = Callable[[int, List[Subpopulation]], None]


# ═══════════════════════════════════════════════════════════════════════
# SETUP
# ═══════════════════════════════════════════════════════════════════════

def build_mutation_types(config: SimulationConfig) -> Dict[int, MutationType]:
    """MutationType objects keyed by configured id."""
    return {
        mt.id: MutationType(id=mt.id, dominance_coeff=mt.dominance_coeff)
        for mt in config.mutation_types
    }


def build_subpopulations(config: SimulationConfig) -> List[Subpopulation]:
    """Create the configured subpopulations, in configuration order.

    Raises:
        SexRatioError: If a configured sex ratio leaves a sex empty.
    """
    return [
        Subpopulation(
            size=sp.size,
            sex_enabled=sp.sex_enabled,
            sex_ratio=sp.sex_ratio,
            modeled_chromosome=sp.chromosome_type,
            x_dominance_coeff=sp.x_dominance_coeff,
            subpop_id=sp.id,
        )
        for sp in config.subpopulations
    ]


def seed_initial_mutations(
    config: SimulationConfig,
    subpops: List[Subpopulation],
    mutation_types: Dict[int, MutationType],
    rng: np.random.Generator,
) -> List[Mutation]:
    """Add the configured standing variation to the first parent generation.

    Returns:
        The Mutation objects created, one per configured entry.
    """
    created = []
    for im in config.initial_mutations:
        mutation = Mutation(
            mutation_type=mutation_types[im.mutation_type],
            position=im.position,
            selection_coeff=im.selection_coeff,
        )
        created.append(mutation)
        for subpop in subpops:
            if im.subpop_id is None or im.subpop_id == subpop.id:
                n = seed_standing_variation(subpop, mutation, im.frequency, rng)
                logger.debug("p%d: seeded mutation at %d into %d genomes",
                             subpop.id, im.position, n)
    return created


# ═══════════════════════════════════════════════════════════════════════
# GENERATION STEP
# ═══════════════════════════════════════════════════════════════════════

def advance_generation(
    subpop: Subpopulation,
    rng: np.random.Generator,
    reproduce: ReproduceFn = wright_fisher_generation,
    fitness_callback: Optional[FitnessCallback] = None,
    perf: Optional[PerfMonitor] = None,
) -> bool:
    """Advance one subpopulation by one generation.

    Returns:
        True if the child buffer had to be refitted after the swap.
    """
    if perf is None:
        perf = PerfMonitor(enabled=False)

    with perf.track("fitness"):
        subpop.update_fitness(fitness_callback)
    with perf.track("reproduction"):
        reproduce(subpop, rng)
    with perf.track("swap"):
        refitted = subpop.swap_child_and_parent_genomes()
    return refitted


# ═══════════════════════════════════════════════════════════════════════
# FULL RUN
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class SimResult:
    """Results from run_simulation()."""
    seed: int = 0
    n_generations: int = 0
    subpopulations: List[Subpopulation] = field(default_factory=list)
    mutation_types: Dict[int, MutationType] = field(default_factory=dict)
    summaries: List[GenerationSummary] = field(default_factory=list)
    timing: Optional[dict] = None

    def mean_fitness_trajectory(self, subpop_id: int) -> np.ndarray:
        """(n_records,) mean fitness of one subpopulation at each record."""
        return np.array(
            [s.mean_fitness for s in self.summaries if s.subpop_id == subpop_id],
            dtype=np.float64,
        )


def run_simulation(
    config: SimulationConfig,
    reproduce: ReproduceFn = wright_fisher_generation,
    fitness_callback: Optional[FitnessCallback] = None,
    generation_callback: Optional[GenerationCallback] = None,
) -> SimResult:
    """Run the configured simulation to completion.

    Generation 0 is the seeded initial population. Summaries are recorded
    at generation 0, every ``record_every`` generations, and at the end.

    Args:
        config: Simulation configuration (validated here).
        reproduce: Fills a subpopulation's child buffer.
        fitness_callback: Passed to every ``update_fitness`` call.
        generation_callback: Called as ``callback(generation, subpops)``
            before each generation is produced.

    Raises:
        SexRatioError: If a sex ratio leaves either sex empty.
        ExtinctionError: If a subpopulation's total fitness reaches zero.
    """
    validate_config(config)
    sim = config.simulation

    rngs = create_rng_hierarchy(sim.seed, n_subpops=len(config.subpopulations))
    mutation_types = build_mutation_types(config)
    subpops = build_subpopulations(config)
    seed_initial_mutations(config, subpops, mutation_types, rngs['global'])

    perf = PerfMonitor(enabled=sim.timing)
    result = SimResult(
        seed=sim.seed,
        n_generations=sim.n_generations,
        subpopulations=subpops,
        mutation_types=mutation_types,
    )

    logger.info("Starting run: %d subpopulation(s), %d generations, seed %d",
                len(subpops), sim.n_generations, sim.seed)

    for subpop in subpops:
        result.summaries.append(summarize_generation(subpop, 0))

    for gen in range(1, sim.n_generations + 1):
        if generation_callback is not None:
            generation_callback(gen, subpops)

        for i, subpop in enumerate(subpops):
            refitted = advance_generation(
                subpop, get_subpop_rng(rngs, i),
                reproduce=reproduce,
                fitness_callback=fitness_callback,
                perf=perf,
            )
            if refitted:
                logger.debug("p%d: generation %d changed shape to %d individuals",
                             subpop.id, gen, subpop.parent_size)

        if gen % sim.record_every == 0 or gen == sim.n_generations:
            with perf.track("summary"):
                for subpop in subpops:
                    result.summaries.append(summarize_generation(subpop, gen))
            logger.info("Generation %d: %s", gen, ", ".join(
                f"p{s.id} N={s.parent_size}" for s in subpops))

    if perf.enabled:
        result.timing = perf.summary()
        logger.info(perf.report())

    return result
