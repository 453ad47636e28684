"""
End-to-end ancestral adjacency inference.

``build_context`` reads the tree and the leaf genomes, reroots the tree at the
designated ancestor and fills the presence indicators; ``infer_adjacencies``
runs the likelihood engine on that context and returns one scored adjacency
per possible symbol pair.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Tuple

from deschrambler.config import InferenceConfig
from deschrambler.exceptions import ConsistencyError
from deschrambler.genome import Genome, read_genome_file, read_joins_file
from deschrambler.io import read_newick
from deschrambler.likelihood import (
    AdjacencyLikelihood,
    AdjacencyPosteriors,
    ScoredAdjacency,
)
from deschrambler.presence import PresenceIndex, new_presence_index
from deschrambler.rooting import reroot_at_ancestor
from deschrambler.symbols import SymbolSpace
from deschrambler.tree import PhyloTree

logger = logging.getLogger(__name__)


@dataclass
class InferenceContext:
    """Everything one inference run needs, built once and shared with the engine."""

    tree: PhyloTree
    space: SymbolSpace
    presence: PresenceIndex
    alpha: float


def total_block_count(genomes: Dict[str, Genome], reference_species: str) -> int:
    """Number of blocks over all chromosomes of the reference species."""
    genome = genomes.get(reference_species)
    if genome is None:
        raise ConsistencyError(
            f"Reference species '{reference_species}' not found in the genome file"
        )
    count = genome.block_count
    if count == 0:
        raise ConsistencyError(f"Reference species '{reference_species}' has no blocks")
    return count


def load_presence(
    tree: PhyloTree,
    genomes: Dict[str, Genome],
    space: SymbolSpace,
    config: InferenceConfig,
) -> PresenceIndex:
    """Record the adjacencies of every leaf; outgroups may come from ``.joins`` files."""
    presence = new_presence_index(space)
    for index in tree.leaves():
        node = tree[index]
        if node.outgroup:
            logger.info("Initializing %s (outgroup)", node.name)
        else:
            logger.info("Initializing %s (ingroup)", node.name)

        if node.outgroup and config.use_outgroup_joins:
            adjacencies = read_joins_file(config.joins_file(node.name))
        else:
            genome = genomes.get(node.name)
            if genome is None:
                raise ConsistencyError(
                    f"No genome for species '{node.name}' in {config.genome_file}"
                )
            if genome.max_block() > space.total_blocks:
                raise ConsistencyError(
                    f"Block {genome.max_block()} of species '{node.name}' is outside "
                    f"1..{space.total_blocks}"
                )
            node.genome = genome
            adjacencies = list(genome.adjacencies())
        presence.record(index, node.name, adjacencies)

    logger.debug("Observed pairs per leaf: %s", presence.summary())
    logger.debug("Possible adjacencies: %d", len(presence.universe))
    return presence


def build_context(config: InferenceConfig) -> InferenceContext:
    logger.info("alpha = %g", config.alpha)
    tree = read_newick(
        config.tree_file,
        alpha=config.alpha,
        default_length=config.default_branch_length,
    )
    reroot_at_ancestor(tree)

    genomes = read_genome_file(config.genome_file)
    total = total_block_count(genomes, config.reference_species)
    logger.info("Total number of blocks: %d", total)
    space = SymbolSpace(total)

    presence = load_presence(tree, genomes, space, config)
    return InferenceContext(tree=tree, space=space, presence=presence, alpha=config.alpha)


def run_inference(
    context: InferenceContext,
) -> Tuple[AdjacencyPosteriors, List[ScoredAdjacency]]:
    ancestor = context.tree[context.tree.ancestor]
    logger.info("Computing posterior probabilities at '%s'", ancestor.name)
    engine = AdjacencyLikelihood(context)
    posteriors = engine.run()
    return posteriors, engine.score_adjacencies(posteriors)


def infer_adjacencies(config: InferenceConfig) -> Tuple[int, List[ScoredAdjacency]]:
    """
    Score every possible adjacency at the designated ancestor.

    Returns:
        The total block count ``T`` and the scored adjacencies in symbol order.
    """
    context = build_context(config)
    _, scored = run_inference(context)
    return context.space.total_blocks, scored
