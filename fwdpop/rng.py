"""Named random streams derived from one master seed.

A run owns one ``global`` stream (setup work such as seeding standing
variation) and one ``subpop_<i>`` stream per subpopulation, indexed by
configuration order. Streams are spawned from a single
``numpy.random.SeedSequence``; child ``k`` depends only on the master seed
and ``k``, so appending subpopulations never perturbs the earlier streams.
"""

from __future__ import annotations

from typing import Dict

import numpy as np

GLOBAL_STREAM = 'global'
_SUBPOP_PREFIX = 'subpop_'


def _stream_name(index: int) -> str:
    return f'{_SUBPOP_PREFIX}{index}'


def _generator(seed: np.random.SeedSequence) -> np.random.Generator:
    return np.random.Generator(np.random.PCG64(seed))


def create_rng_hierarchy(
    master_seed: int,
    n_subpops: int,
) -> Dict[str, np.random.Generator]:
    """Spawn the global stream and one stream per subpopulation.

    Args:
        master_seed: Non-negative master seed.
        n_subpops: Number of subpopulations.

    Returns:
        Stream name → Generator, with ``'global'`` first.

    Example:
        >>> rngs = create_rng_hierarchy(42, n_subpops=2)
        >>> rngs['subpop_1'].integers(0, 100)  # same value on every run
    """
    global_seed, *subpop_seeds = np.random.SeedSequence(master_seed).spawn(n_subpops + 1)

    rngs = {GLOBAL_STREAM: _generator(global_seed)}
    rngs.update(
        (_stream_name(i), _generator(seed)) for i, seed in enumerate(subpop_seeds)
    )
    return rngs


def get_subpop_rng(
    rngs: Dict[str, np.random.Generator],
    index: int,
) -> np.random.Generator:
    """Stream for the subpopulation at position ``index`` (0-based).

    Raises:
        KeyError: If no such stream was created.
    """
    try:
        return rngs[_stream_name(index)]
    except KeyError:
        n = sum(name.startswith(_SUBPOP_PREFIX) for name in rngs)
        raise KeyError(
            f"No RNG stream for subpopulation {index} ({n} subpopulation streams)."
        ) from None


def rng_state_snapshot(
    rngs: Dict[str, np.random.Generator],
) -> Dict[str, dict]:
    """Bit-generator state of every stream, for checkpointing a run."""
    return {name: rng.bit_generator.state for name, rng in rngs.items()}


def restore_rng_state(
    rngs: Dict[str, np.random.Generator],
    states: Dict[str, dict],
) -> None:
    """Put each stream back into a state taken by rng_state_snapshot().

    Raises:
        KeyError: If ``states`` names a stream missing from ``rngs``.
    """
    unknown = sorted(set(states) - set(rngs))
    if unknown:
        raise KeyError(f"Cannot restore RNG state for unknown stream(s): {unknown}")
    for name, state in states.items():
        rngs[name].bit_generator.state = state
