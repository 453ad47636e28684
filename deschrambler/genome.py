"""
Readers for leaf genomes and outgroup join files.

A genome file holds one record per species::

    >human 2
    # chr1
    1 -2 3 $
    # chr2
    4 5 $

and a ``<species>.joins`` file lists observed adjacencies, one
``block1<TAB>block2`` pair per line, with ``0`` standing for a chromosome end.
Both readers return adjacencies in the same form: signed block pairs where
``0`` marks a terminus.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Iterator, List, Tuple, Union

from deschrambler.exceptions import ConsistencyError, ParseError

logger = logging.getLogger(__name__)

TERMINUS = 0
CHROMOSOME_END = "$"

Adjacency = Tuple[int, int]


class ChromosomeKind(Enum):
    CHR = "chr"
    NONCHR = "nonchr"


@dataclass
class Chromosome:
    """Ordered signed block identifiers of one chromosome or segment."""

    blocks: List[int]
    kind: ChromosomeKind = ChromosomeKind.CHR

    def __len__(self) -> int:
        return len(self.blocks)

    def adjacencies(self) -> Iterator[Adjacency]:
        """Consecutive block pairs, anchored by ``0`` at both chromosome ends."""
        yield TERMINUS, self.blocks[0]
        for previous, following in zip(self.blocks, self.blocks[1:]):
            yield previous, following
        yield self.blocks[-1], TERMINUS


@dataclass
class Genome:
    species: str
    chromosomes: List[Chromosome] = field(default_factory=list)

    @property
    def block_count(self) -> int:
        return sum(len(chrom) for chrom in self.chromosomes)

    def adjacencies(self) -> Iterator[Adjacency]:
        for chrom in self.chromosomes:
            yield from chrom.adjacencies()

    def max_block(self) -> int:
        return max((abs(b) for chrom in self.chromosomes for b in chrom.blocks), default=0)


def parse_chromosome_line(line: str, source: str = "<string>", line_no: int = 0) -> List[int]:
    """Parse ``1 -2 3 $`` into ``[1, -2, 3]``; tokens after ``$`` are ignored."""
    blocks: List[int] = []
    for token in line.split():
        if token == CHROMOSOME_END:
            break
        try:
            block = int(token)
        except ValueError:
            raise ParseError(f"invalid block identifier '{token}'", source, line_no)
        if block == TERMINUS:
            raise ParseError("block identifier 0 is reserved for chromosome ends", source, line_no)
        blocks.append(block)
    if not blocks:
        raise ParseError("empty chromosome", source, line_no)
    return blocks


def _parse_header(line: str, source: str, line_no: int) -> Tuple[str, int]:
    fields = line[1:].split()
    if len(fields) < 2:
        raise ParseError(f"cannot parse genome header '{line}'", source, line_no)
    try:
        count = int(fields[1])
    except ValueError:
        raise ParseError(f"invalid chromosome count in '{line}'", source, line_no)
    if count <= 0:
        raise ParseError(f"genome '{fields[0]}' declares {count} chromosomes", source, line_no)
    return fields[0], count


def parse_genomes(lines: List[str], source: str = "<string>") -> Dict[str, Genome]:
    """
    Parse all genome records.

    A ``#`` line before a chromosome line sets the kind of the following
    chromosomes: ``# chr...`` means a chromosome, anything else a
    non-chromosomal segment.
    """
    genomes: Dict[str, Genome] = {}
    position = 0
    total = len(lines)

    while position < total:
        line = lines[position].strip()
        position += 1
        if not line.startswith(">"):
            continue

        species, count = _parse_header(line, source, position)
        if species in genomes:
            raise ConsistencyError(f"{source}: genome '{species}' is listed twice")

        genome = Genome(species)
        kind = ChromosomeKind.CHR
        while len(genome.chromosomes) < count:
            if position >= total:
                raise ParseError(
                    f"genome '{species}' ends after {len(genome.chromosomes)} of {count} chromosomes",
                    source,
                    position,
                )
            line = lines[position].strip()
            position += 1
            if not line:
                continue
            if line.startswith(">"):
                raise ParseError(
                    f"genome '{species}' ends after {len(genome.chromosomes)} of {count} chromosomes",
                    source,
                    position,
                )
            if line.startswith("#"):
                tag = line[1:].strip()
                is_chrom = tag.startswith("chr") and bool(tag[3:].strip())
                kind = ChromosomeKind.CHR if is_chrom else ChromosomeKind.NONCHR
                continue
            blocks = parse_chromosome_line(line, source, position)
            genome.chromosomes.append(Chromosome(blocks, kind))

        genomes[species] = genome

    return genomes


def read_genome_file(path: Union[str, Path]) -> Dict[str, Genome]:
    path = Path(path)
    try:
        with open(path) as f:
            lines = f.readlines()
    except OSError as e:
        raise ConsistencyError(f"cannot read genome file {path}: {e}")
    genomes = parse_genomes(lines, source=str(path))
    logger.debug("Read %d genomes from %s", len(genomes), path)
    return genomes


def parse_joins(lines: List[str], source: str = "<string>") -> List[Adjacency]:
    """Parse ``block1 block2`` lines; ``0 0`` lines carry no adjacency and are dropped."""
    joins: List[Adjacency] = []
    for line_no, line in enumerate(lines, start=1):
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        fields = line.split()
        if len(fields) != 2:
            raise ParseError(f"bad join line '{line}'", source, line_no)
        try:
            first, second = int(fields[0]), int(fields[1])
        except ValueError:
            raise ParseError(f"bad join line '{line}'", source, line_no)
        if first == TERMINUS and second == TERMINUS:
            continue
        joins.append((first, second))
    return joins


def read_joins_file(path: Union[str, Path]) -> List[Adjacency]:
    path = Path(path)
    try:
        with open(path) as f:
            lines = f.readlines()
    except OSError as e:
        raise ConsistencyError(f"cannot read joins file {path}: {e}")
    return parse_joins(lines, source=str(path))
