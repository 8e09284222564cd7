"""fwdpop: Forward-time individual-based population genetics kernel.

A generation-advance engine for diploid, optionally sexed populations:
  - Position-sorted genomes of shared, immutable mutation records
  - Multiplicative fitness with dominance and homozygosity detection
  - X/Y sex-chromosome models with null (unmodeled) genome placeholders
  - Fitness-weighted parent sampling, rebuilt every generation
  - Parent/child genome buffers exchanged by ownership swap
"""

import logging

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())
