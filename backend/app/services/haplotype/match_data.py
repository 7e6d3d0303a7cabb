"""
Match Data - one sample's genotypes bound to one gene panel.

Builds the working set used for haplotype matching: the sample genotype at
every panel position, the positions the sample is missing, the haplotype
library restricted to the positions that can be evaluated, and every
single-chromosome allele sequence ("permutation") consistent with the sample.
"""

import itertools
import logging
from functools import cached_property
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Tuple

from .config import get_matching_config
from .exceptions import DefinitionError, DuplicateSampleAlleleError
from .models import (
    ALLELE_SEPARATOR,
    FRAGMENT_TERMINATOR,
    NamedAllele,
    SampleAllele,
    VariantLocus,
    encode_fragment,
)

logger = logging.getLogger(__name__)


# ===== Permutation encoding =====

def encode_permutation(positions: Sequence[VariantLocus], alleles: Sequence[str]) -> str:
    """
    Canonical string for one chromosome's alleles across the panel.

    Every position contributes ``position:allele;`` in panel order, so two
    permutations are equal exactly when their allele sequences are equal.
    Example: "1:A;2:C;3:T;"
    """
    if len(positions) != len(alleles):
        raise ValueError(f"Expected {len(positions)} alleles, got {len(alleles)}")
    return "".join(
        encode_fragment(locus.position, allele)
        for locus, allele in zip(positions, alleles)
    )


def decode_permutation(permutation: str) -> List[Tuple[int, str]]:
    """Split a permutation string back into (position, allele) pairs."""
    pairs = []
    for fragment in permutation.split(FRAGMENT_TERMINATOR):
        if not fragment:
            continue
        position, sep, allele = fragment.partition(ALLELE_SEPARATOR)
        if not sep or not allele or ALLELE_SEPARATOR in allele:
            raise ValueError(f"Malformed permutation fragment: {fragment!r}")
        pairs.append((int(position), allele))
    return pairs


def permutation_fragments(permutation: str) -> FrozenSet[str]:
    """The "pos:allele;" fragments of a permutation string, for key lookups."""
    return frozenset(
        f"{fragment}{FRAGMENT_TERMINATOR}"
        for fragment in permutation.split(FRAGMENT_TERMINATOR)
        if fragment
    )


# ===== Sample allele map =====

def build_sample_allele_map(alleles: Iterable[SampleAllele]) -> Dict[str, SampleAllele]:
    """
    Key sample genotypes by CHROM:POS.
    Raises DuplicateSampleAlleleError if a position is given twice.
    """
    sample_map: Dict[str, SampleAllele] = {}
    for allele in alleles:
        if allele.chr_position in sample_map:
            raise DuplicateSampleAlleleError(allele.chr_position)
        sample_map[allele.chr_position] = allele
    return sample_map


class MatchData:
    """
    Sample genotypes, panel and haplotype library for one (sample, gene) pair.

    Panel positions without a sample genotype are recorded as missing and left
    out of every permutation. Haplotypes are re-bound to the remaining
    positions; a haplotype whose defining positions are all missing cannot be
    evaluated and is dropped from the library.
    """

    def __init__(
        self,
        sample_alleles: Mapping[str, SampleAllele],
        positions: Sequence[VariantLocus],
        haplotypes: Sequence[NamedAllele],
    ):
        self._panel: Tuple[VariantLocus, ...] = tuple(positions)

        present: List[VariantLocus] = []
        missing: List[VariantLocus] = []
        for locus in self._panel:
            if locus.chr_position in sample_alleles:
                present.append(locus)
            else:
                missing.append(locus)

        self._positions: Tuple[VariantLocus, ...] = tuple(present)
        self._missing_positions: Tuple[VariantLocus, ...] = tuple(missing)
        self._sample_alleles: Dict[str, SampleAllele] = {
            locus.chr_position: sample_alleles[locus.chr_position] for locus in present
        }
        self._ordered_alleles: Tuple[SampleAllele, ...] = tuple(
            self._sample_alleles[locus.chr_position] for locus in present
        )
        self._haplotypes: Tuple[NamedAllele, ...] = self._marshall_haplotypes(haplotypes)

        if missing:
            logger.debug(
                f"{len(missing)} of {len(self._panel)} panel positions missing from sample: "
                f"{', '.join(locus.chr_position for locus in missing)}"
            )

    # ===== Haplotype library =====

    def _marshall_haplotypes(self, haplotypes: Sequence[NamedAllele]) -> Tuple[NamedAllele, ...]:
        for hap in haplotypes:
            if not hap.is_finalized or hap.positions != self._panel:
                raise DefinitionError(f"{hap.name} is not finalized against this panel")

        if not self._positions:
            return ()

        keep = [idx for idx, locus in enumerate(self._panel) if locus.chr_position in self._sample_alleles]
        marshalled = []
        for hap in haplotypes:
            if self._missing_positions:
                hap = NamedAllele(
                    name=hap.name,
                    id=hap.id,
                    function=hap.function,
                    alleles=tuple(hap.alleles[idx] for idx in keep),
                ).finalize(self._positions)
            # A haplotype with nothing left to constrain would match every permutation
            if hap.score == 0:
                logger.debug(f"{hap.name} constrains no position present in the sample, skipping")
                continue
            marshalled.append(hap)
        return tuple(marshalled)

    # ===== Accessors =====

    @property
    def panel(self) -> Tuple[VariantLocus, ...]:
        """All panel positions, including missing ones."""
        return self._panel

    @property
    def positions(self) -> Tuple[VariantLocus, ...]:
        """Panel positions with a sample genotype, in panel order."""
        return self._positions

    @property
    def missing_positions(self) -> Tuple[VariantLocus, ...]:
        return self._missing_positions

    @property
    def haplotypes(self) -> Tuple[NamedAllele, ...]:
        """Haplotypes that can be evaluated against this sample."""
        return self._haplotypes

    @property
    def sample_alleles(self) -> Mapping[str, SampleAllele]:
        return MappingProxyType(self._sample_alleles)

    def get_sample_allele(self, chr_position: str) -> Optional[SampleAllele]:
        return self._sample_alleles.get(chr_position)

    @property
    def heterozygous_count(self) -> int:
        return sum(1 for allele in self._ordered_alleles if not allele.is_homozygous)

    # ===== Permutations =====

    @cached_property
    def _permutation_index(self) -> Dict[str, Tuple[str, ...]]:
        if not self._positions:
            return {}

        # Homozygous and unphased positions are independent choices. Phased
        # heterozygous positions share a strand: allele1 on one, allele2 on the other.
        has_phased_het = any(a.phased and not a.is_homozygous for a in self._ordered_alleles)
        strands = (0, 1) if has_phased_het else (0,)

        index: Dict[str, Tuple[str, ...]] = {}
        for strand in strands:
            choices = []
            for allele in self._ordered_alleles:
                if allele.is_homozygous:
                    choices.append((allele.allele1,))
                elif allele.phased:
                    choices.append((allele.allele1 if strand == 0 else allele.allele2,))
                else:
                    choices.append((allele.allele1, allele.allele2))

            for combo in itertools.product(*choices):
                index[encode_permutation(self._positions, combo)] = combo

        threshold = get_matching_config().permutation_warning_threshold
        if len(index) > threshold:
            logger.warning(
                f"{len(index)} sample permutations across {len(self._positions)} positions "
                f"exceeds warning threshold {threshold}"
            )
        else:
            logger.debug(f"Generated {len(index)} sample permutations ({self.heterozygous_count} heterozygous positions)")
        return index

    @property
    def permutations(self) -> FrozenSet[str]:
        """Every allele sequence one chromosome could carry, given the sample."""
        return frozenset(self._permutation_index)

    @cached_property
    def _fragment_index(self) -> Dict[str, FrozenSet[str]]:
        return {p: permutation_fragments(p) for p in self._permutation_index}

    def fragments(self, permutation: str) -> FrozenSet[str]:
        """Fragments of a permutation from this dataset, for haplotype key lookups."""
        return self._fragment_index[permutation]

    def permutation_alleles(self, permutation: str) -> Tuple[str, ...]:
        """Alleles of a permutation from this dataset, in panel order."""
        return self._permutation_index[permutation]

    def complement(self, permutation: str) -> str:
        """
        The permutation the other chromosome must carry: the opposite call at
        every heterozygous position, the same call at every homozygous one.
        """
        alleles = self.permutation_alleles(permutation)
        other = tuple(
            sample.other_allele(allele) for sample, allele in zip(self._ordered_alleles, alleles)
        )
        return encode_permutation(self._positions, other)
