"""Configuration system for fwdpop.

Hierarchical YAML configuration with deep-merge support:
  base.yaml → scenario override → sweep overrides

Top-level YAML keys:
  simulation:         seed, generation count, recording, timing
  mutation_types:     list of {id, dominance_coeff}
  subpopulations:     list of {id, size, sex_enabled, sex_ratio,
                      modeled_chromosome, x_dominance_coeff}
  initial_mutations:  list of {mutation_type, position, selection_coeff,
                      frequency, subpop_id}

Sex ratios are only range-checked here. Whether a ratio leaves a sex empty
at a given size is decided when the genome buffers are fitted.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from fwdpop.types import CHROMOSOME_CODES, ChromosomeType, parse_chromosome_type


# ═══════════════════════════════════════════════════════════════════════
# CONFIGURATION DATACLASSES
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class SimulationSection:
    """Run length and control."""
    seed: int = 42
    n_generations: int = 100
    record_every: int = 1        # Summarize every k-th generation
    timing: bool = False         # Component timing via PerfMonitor


@dataclass
class MutationTypeSection:
    """One mutation type."""
    id: int = 1
    dominance_coeff: float = 0.5  # h: heterozygote expresses h·s


@dataclass
class SubpopulationSection:
    """One subpopulation.

    modeled_chromosome: 'A' (autosome), 'X' or 'Y'. X and Y need sex_enabled.
    """
    id: int = 1
    size: int = 500
    sex_enabled: bool = False
    sex_ratio: float = 0.5        # Fraction of males
    modeled_chromosome: str = 'A'
    x_dominance_coeff: float = 1.0  # Hemizygous X expression

    @property
    def chromosome_type(self) -> ChromosomeType:
        return parse_chromosome_type(self.modeled_chromosome)


@dataclass
class InitialMutationSection:
    """Standing variation present in the first generation.

    One Mutation object is created and shared by every genome that gets it.
    subpop_id None seeds every subpopulation.
    """
    mutation_type: int = 1
    position: int = 0
    selection_coeff: float = 0.0
    frequency: float = 0.5
    subpop_id: Optional[int] = None


@dataclass
class SimulationConfig:
    """Complete simulation configuration.

    Load from YAML via `load_config()`.
    """
    simulation: SimulationSection = field(default_factory=SimulationSection)
    mutation_types: List[MutationTypeSection] = field(
        default_factory=lambda: [MutationTypeSection()]
    )
    subpopulations: List[SubpopulationSection] = field(
        default_factory=lambda: [SubpopulationSection()]
    )
    initial_mutations: List[InitialMutationSection] = field(default_factory=list)


# ═══════════════════════════════════════════════════════════════════════
# YAML LOADING & MERGING
# ═══════════════════════════════════════════════════════════════════════

def deep_merge(base: Dict, override: Dict) -> Dict:
    """Merge ``override`` into ``base`` in place and return ``base``.

    Nested dicts merge key by key; anything else, lists included, is
    replaced outright.
    """
    for key, value in override.items():
        current = base.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            deep_merge(current, value)
        else:
            base[key] = value
    return base


def _dict_to_section(section_cls, data: Dict) -> Any:
    """Convert a dict to a dataclass, ignoring unknown keys."""
    valid_fields = {f.name for f in dataclasses.fields(section_cls)}
    filtered = {k: v for k, v in data.items() if k in valid_fields}
    return section_cls(**filtered)


def _list_to_sections(section_cls, data: Any) -> List[Any]:
    if not isinstance(data, list):
        return []
    return [_dict_to_section(section_cls, d) for d in data if isinstance(d, dict)]


def _yaml_to_config(data: Dict) -> SimulationConfig:
    """Convert a merged YAML dict to a SimulationConfig."""
    sections: Dict[str, Any] = {}

    if isinstance(data.get('simulation'), dict):
        sections['simulation'] = _dict_to_section(SimulationSection, data['simulation'])

    list_map = {
        'mutation_types': MutationTypeSection,
        'subpopulations': SubpopulationSection,
        'initial_mutations': InitialMutationSection,
    }
    for key, cls in list_map.items():
        if key in data:
            sections[key] = _list_to_sections(cls, data[key])

    return SimulationConfig(**sections)


def validate_config(config: SimulationConfig) -> None:
    """Validate configuration constraints. Raises ValueError on failure.

    Checks:
      - Run length, seed and recording interval are sensible
      - Mutation type and subpopulation ids are unique
      - Subpopulation sizes, sex ratios and chromosome models are valid
      - Initial mutations reference existing types and subpopulations
    """
    sim = config.simulation
    if sim.seed < 0:
        raise ValueError("simulation.seed must be non-negative")
    if sim.n_generations < 0:
        raise ValueError(
            f"simulation.n_generations must be >= 0, got {sim.n_generations}"
        )
    if sim.record_every < 1:
        raise ValueError(
            f"simulation.record_every must be >= 1, got {sim.record_every}"
        )

    # Mutation types
    type_ids = [mt.id for mt in config.mutation_types]
    if len(set(type_ids)) != len(type_ids):
        raise ValueError(f"mutation_types ids must be unique, got {type_ids}")

    # Subpopulations
    if not config.subpopulations:
        raise ValueError("at least one subpopulation is required")
    subpop_ids = [sp.id for sp in config.subpopulations]
    if len(set(subpop_ids)) != len(subpop_ids):
        raise ValueError(f"subpopulations ids must be unique, got {subpop_ids}")

    for sp in config.subpopulations:
        if sp.size < 1:
            raise ValueError(f"subpopulations[p{sp.id}].size must be >= 1, got {sp.size}")
        if not 0.0 <= sp.sex_ratio <= 1.0:
            raise ValueError(
                f"subpopulations[p{sp.id}].sex_ratio must be in [0, 1], "
                f"got {sp.sex_ratio}"
            )
        if str(sp.modeled_chromosome).upper() not in CHROMOSOME_CODES:
            raise ValueError(
                f"subpopulations[p{sp.id}].modeled_chromosome must be one of "
                f"{sorted(CHROMOSOME_CODES)}, got '{sp.modeled_chromosome}'"
            )
        if not sp.sex_enabled and sp.chromosome_type != ChromosomeType.AUTOSOME:
            raise ValueError(
                f"subpopulations[p{sp.id}]: modeling the "
                f"{sp.chromosome_type.name} chromosome requires sex_enabled"
            )

    # Initial mutations
    for i, im in enumerate(config.initial_mutations):
        if im.mutation_type not in type_ids:
            raise ValueError(
                f"initial_mutations[{i}].mutation_type {im.mutation_type} "
                f"is not a configured mutation type"
            )
        if im.subpop_id is not None and im.subpop_id not in subpop_ids:
            raise ValueError(
                f"initial_mutations[{i}].subpop_id {im.subpop_id} "
                f"is not a configured subpopulation"
            )
        if im.position < 0:
            raise ValueError(
                f"initial_mutations[{i}].position must be >= 0, got {im.position}"
            )
        if not 0.0 <= im.frequency <= 1.0:
            raise ValueError(
                f"initial_mutations[{i}].frequency must be in [0, 1], "
                f"got {im.frequency}"
            )


def _read_yaml(path: Path) -> Dict:
    with open(path) as f:
        return yaml.safe_load(f) or {}


def load_config(
    base_path: Union[str, Path],
    scenario_path: Optional[Union[str, Path]] = None,
    sweep_overrides: Optional[Dict] = None,
) -> SimulationConfig:
    """Read the base YAML, layer the overrides on top, and validate.

    Layers apply in order base, scenario, sweep. A layer replaces only the
    keys it names, but a list (subpopulations, for instance) is replaced
    as a whole. A scenario path that does not exist is skipped.

    Raises:
        FileNotFoundError: If base_path doesn't exist.
        ValueError: If the merged configuration is invalid.
    """
    base_path = Path(base_path)
    if not base_path.exists():
        raise FileNotFoundError(f"Config file not found: {base_path}")

    layers = [_read_yaml(base_path)]
    if scenario_path is not None and Path(scenario_path).exists():
        layers.append(_read_yaml(Path(scenario_path)))
    if sweep_overrides is not None:
        layers.append(sweep_overrides)

    merged: Dict = {}
    for layer in layers:
        deep_merge(merged, layer)

    config = _yaml_to_config(merged)
    validate_config(config)
    return config


def default_config() -> SimulationConfig:
    """Return a SimulationConfig with all default values."""
    config = SimulationConfig()
    validate_config(config)
    return config
