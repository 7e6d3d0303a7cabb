"""
Haplotype Matcher - find the haplotypes each sample permutation satisfies.

Finalized haplotypes carry one "pos:allele;" key per concrete slot, so a
haplotype matches a permutation exactly when all of its keys are fragments of
that permutation. Wildcard slots contribute no key.
"""

import logging
from typing import FrozenSet, Tuple

from .exceptions import DefinitionError
from .match_data import MatchData, decode_permutation, permutation_fragments
from .models import HaplotypeMatch, NamedAllele
from .sorting import haplotype_match_key

logger = logging.getLogger(__name__)


def matches_permutation(haplotype: NamedAllele, permutation: str) -> bool:
    """
    Test a permutation string against a finalized haplotype.
    The permutation must cover the haplotype's positions in the same order.
    """
    if not haplotype.is_finalized:
        raise DefinitionError(f"{haplotype.name} has not been finalized against a panel")

    positions = [position for position, _ in decode_permutation(permutation)]
    if positions != [locus.position for locus in haplotype.positions]:
        raise DefinitionError(f"Permutation {permutation} does not follow the {haplotype.name} panel")
    return haplotype.matches_fragments(permutation_fragments(permutation))


class HaplotypeMatcher:
    """Matches every haplotype of a dataset against the sample permutations."""

    def __init__(self, dataset: MatchData):
        self.dataset = dataset

    def compare_permutations(self) -> Tuple[HaplotypeMatch, ...]:
        """
        Returns one HaplotypeMatch per haplotype matching at least one
        permutation, in natural haplotype-name order.
        """
        permutations = sorted(self.dataset.permutations)
        matches = []
        for hap in self.dataset.haplotypes:
            sequences = frozenset(
                p for p in permutations if hap.matches_fragments(self.dataset.fragments(p))
            )
            if sequences:
                matches.append(HaplotypeMatch(haplotype=hap, sequences=sequences))

        matches.sort(key=haplotype_match_key)
        logger.debug(
            f"{len(matches)} of {len(self.dataset.haplotypes)} haplotypes matched "
            f"{len(permutations)} permutations: {', '.join(m.name for m in matches)}"
        )
        return tuple(matches)

    def matched_names(self) -> FrozenSet[str]:
        return frozenset(match.name for match in self.compare_permutations())
