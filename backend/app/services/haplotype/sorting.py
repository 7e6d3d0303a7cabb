"""
Deterministic ordering of haplotype and diplotype matches.

Haplotype names sort naturally, so *4a comes before *17 and *2 before *10.
"""

import re
from typing import Tuple

from .models import DiplotypeMatch, HaplotypeMatch

_DIGITS = re.compile(r"(\d+)")


def natural_key(name: str) -> Tuple:
    # re.split with a capture group alternates text and digits, so every
    # odd index holds digits and tuples compare element-wise without mixing types
    parts = _DIGITS.split(name)
    key = tuple(int(part) if idx % 2 else part.lower() for idx, part in enumerate(parts))
    return key, name


def haplotype_match_key(match: HaplotypeMatch) -> Tuple:
    return natural_key(match.name)


def order_pair(
    first: HaplotypeMatch, second: HaplotypeMatch
) -> Tuple[HaplotypeMatch, HaplotypeMatch, bool]:
    """Order two haplotype matches by name; the flag is True when they were swapped."""
    if haplotype_match_key(second) < haplotype_match_key(first):
        return second, first, True
    return first, second, False


def diplotype_match_key(match: DiplotypeMatch) -> Tuple:
    """Highest score first, then by haplotype names."""
    return (
        -match.score,
        haplotype_match_key(match.haplotype1),
        haplotype_match_key(match.haplotype2),
    )
