"""Run configuration for the inference and path-building stages."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from deschrambler.exceptions import ConsistencyError

LOG_LEVEL_ENV = "DESCHRAMBLER_LOG_LEVEL"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass
class InferenceConfig:
    """Configuration for the ancestral adjacency likelihood engine."""

    reference_species: str
    alpha: float
    tree_file: Path
    genome_file: Path
    output_file: Path = Path("adjacencies.prob")
    use_outgroup_joins: bool = False
    """Read outgroup adjacencies from ``<species>.joins`` instead of the genome file."""

    joins_dir: Path = Path(".")
    default_branch_length: float = 0.0
    """Branch length assumed where the tree description omits ``:length``."""

    def __post_init__(self):
        self.tree_file = Path(self.tree_file)
        self.genome_file = Path(self.genome_file)
        self.output_file = Path(self.output_file)
        self.joins_dir = Path(self.joins_dir)
        if not self.reference_species:
            raise ConsistencyError("Reference species must be given")
        if self.alpha < 0:
            raise ConsistencyError(f"alpha must be non-negative, got {self.alpha}")
        if self.default_branch_length < 0:
            raise ConsistencyError(
                f"Default branch length must be non-negative, got {self.default_branch_length}"
            )

    def joins_file(self, species: str) -> Path:
        return self.joins_dir / f"{species}.joins"


@dataclass
class PathBuilderConfig:
    """Configuration for the greedy APCF builder."""

    min_weight: float
    score_file: Path
    apcf_file: Path
    join_file: Path

    def __post_init__(self):
        self.score_file = Path(self.score_file)
        self.apcf_file = Path(self.apcf_file)
        self.join_file = Path(self.join_file)
        if self.min_weight < 0:
            raise ConsistencyError(
                f"Minimum weight must be non-negative, got {self.min_weight}"
            )


def resolve_log_level(verbose: bool = False, default: str = "INFO") -> int:
    """Pick the log level from ``--verbose`` or the environment."""
    if verbose:
        return logging.DEBUG
    name = os.environ.get(LOG_LEVEL_ENV, default).upper()
    level = logging.getLevelName(name)
    if not isinstance(level, int):
        return logging.INFO
    return level


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(level=resolve_log_level(verbose), format=LOG_FORMAT)
