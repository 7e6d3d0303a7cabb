"""
Diplotype Matcher - pair matched haplotypes into diplotype calls.

Two haplotypes form a diplotype when one of each's matched permutations
together reconstruct the sample: at every position the two permutations carry
exactly the two called alleles. Pairs are found by looking up the complement
of every matched permutation, so the work scales with the number of
permutations rather than the square of the haplotype library.

Every consistent diplotype is returned. Zero diplotypes means the gene could
not be called; more than one means phase is ambiguous. Neither is an error.
"""

import logging
from collections import defaultdict
from typing import Dict, List, Sequence, Set, Tuple

from .haplotype_matcher import HaplotypeMatcher
from .match_data import MatchData
from .models import DiplotypeMatch, HaplotypeMatch
from .sorting import diplotype_match_key, order_pair

logger = logging.getLogger(__name__)


class DiplotypeMatcher:
    """Computes every diplotype consistent with a MatchData."""

    def __init__(self, dataset: MatchData):
        self.dataset = dataset

    def compute(self) -> Tuple[DiplotypeMatch, ...]:
        return self.determine_pairs(self.compare_permutations())

    def compare_permutations(self) -> Tuple[HaplotypeMatch, ...]:
        return HaplotypeMatcher(self.dataset).compare_permutations()

    def determine_pairs(self, haplotype_matches: Sequence[HaplotypeMatch]) -> Tuple[DiplotypeMatch, ...]:
        """
        Pair haplotype matches whose permutations are complementary.

        Diplotypes are deduplicated by haplotype names; the permutation pairs
        supporting each are kept. Output is ordered by score (most positions
        constrained first), then by name.
        """
        by_sequence: Dict[str, List[HaplotypeMatch]] = defaultdict(list)
        for match in haplotype_matches:
            for sequence in match.sequences:
                by_sequence[sequence].append(match)

        pairs: Dict[str, Tuple[HaplotypeMatch, HaplotypeMatch]] = {}
        supporting: Dict[str, Set[Tuple[str, str]]] = defaultdict(set)

        for sequence in sorted(by_sequence):
            complement = self.dataset.complement(sequence)
            # complement() is its own inverse; visit each unordered pair once
            if complement not in by_sequence or complement < sequence:
                continue

            for left in by_sequence[sequence]:
                for right in by_sequence[complement]:
                    hap1, hap2, swapped = order_pair(left, right)
                    name = f"{hap1.name}/{hap2.name}"
                    pairs.setdefault(name, (hap1, hap2))
                    supporting[name].add((complement, sequence) if swapped else (sequence, complement))

        diplotypes = [
            DiplotypeMatch(
                haplotype1=hap1,
                haplotype2=hap2,
                sequence_pairs=frozenset(supporting[name]),
            )
            for name, (hap1, hap2) in pairs.items()
        ]
        diplotypes.sort(key=diplotype_match_key)

        logger.debug(f"Found {len(diplotypes)} diplotype(s): {', '.join(d.name for d in diplotypes)}")
        return tuple(diplotypes)
