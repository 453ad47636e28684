"""
Command-line entry points.

``infer-adjacencies`` scores every possible adjacency at the designated
ancestor of a tree; ``build-apcfs`` assembles such scores into ancestral
contiguous fragments.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from deschrambler.config import InferenceConfig, PathBuilderConfig, configure_logging
from deschrambler.exceptions import DeschramblerError
from deschrambler.inference import infer_adjacencies
from deschrambler.io import (
    read_adjacency_scores,
    write_adjacency_probabilities,
    write_fragments,
    write_joins,
)
from deschrambler.path_builder import build_fragments, count_blocks, score_table
from deschrambler.validators import NonNegativeFloatAction

logger = logging.getLogger(__name__)


def setup_inference_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="infer-adjacencies",
        description="Compute posterior probabilities of ancestral adjacencies.",
    )
    parser.add_argument("reference_species", help="Species whose genome defines the block count")
    parser.add_argument(
        "alpha",
        help="Rate parameter multiplied into every branch length",
        type=float,
        action=NonNegativeFloatAction,
    )
    parser.add_argument("tree_file", help="Tree with the ancestor marked by '@'", type=Path)
    parser.add_argument("genome_file", help="Block orders of all species", type=Path)

    output_group = parser.add_argument_group("output options")
    output_group.add_argument(
        "-o",
        "--output",
        help="Probability file to write (default: adjacencies.prob)",
        default=Path("adjacencies.prob"),
        type=Path,
    )

    outgroup_group = parser.add_argument_group("outgroup options")
    outgroup_group.add_argument(
        "--outgroup-joins",
        help=(
            "Read outgroup adjacencies from <species>.joins files "
            "instead of the genome file, as the DESCHRAMBLER C tools always do"
        ),
        action="store_true",
    )
    outgroup_group.add_argument(
        "--joins-dir",
        help="Directory holding the .joins files (default: current directory)",
        default=Path("."),
        type=Path,
    )

    parser.add_argument("-v", "--verbose", help="Log debug messages", action="store_true")
    return parser


def setup_path_builder_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="build-apcfs",
        description="Assemble scored adjacencies into ancestral contiguous fragments.",
    )
    parser.add_argument(
        "min_weight",
        help="Edges lighter than this are ignored",
        type=float,
        action=NonNegativeFloatAction,
    )
    parser.add_argument("score_file", help="'block1 block2 score' lines", type=Path)
    parser.add_argument("apcf_file", help="APCF file to write", type=Path)
    parser.add_argument("join_file", help="Adjacencies used by the APCFs", type=Path)
    parser.add_argument("-v", "--verbose", help="Log debug messages", action="store_true")
    return parser


def _fail(error: DeschramblerError) -> int:
    logger.error("%s", error)
    print(f"[ERROR] {error}", file=sys.stderr)
    return 1


def infer_main(argv: Optional[List[str]] = None) -> int:
    args = setup_inference_parser().parse_args(argv)
    configure_logging(args.verbose)
    try:
        config = InferenceConfig(
            reference_species=args.reference_species,
            alpha=args.alpha,
            tree_file=args.tree_file,
            genome_file=args.genome_file,
            output_file=args.output,
            use_outgroup_joins=args.outgroup_joins,
            joins_dir=args.joins_dir,
        )
        total_blocks, scored = infer_adjacencies(config)
        write_adjacency_probabilities(config.output_file, total_blocks, scored)
    except DeschramblerError as e:
        return _fail(e)
    return 0


def build_apcfs_main(argv: Optional[List[str]] = None) -> int:
    args = setup_path_builder_parser().parse_args(argv)
    configure_logging(args.verbose)
    try:
        config = PathBuilderConfig(
            min_weight=args.min_weight,
            score_file=args.score_file,
            apcf_file=args.apcf_file,
            join_file=args.join_file,
        )
        logger.info("Minimum weight = %g", config.min_weight)
        logger.info("Conservation score file = %s", config.score_file)
        scores = score_table(read_adjacency_scores(config.score_file))
        fragments = build_fragments(scores, config.min_weight)
        write_fragments(config.apcf_file, count_blocks(scores), fragments)
        write_joins(config.join_file, fragments)
    except DeschramblerError as e:
        return _fail(e)
    return 0
