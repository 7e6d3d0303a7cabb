"""
Errors raised by the haplotype matching engine.

Only configuration problems raise. A missing sample position, a gene with no
matching diplotype and an ambiguous call are all normal outcomes.
"""


class HaplotyperError(ValueError):
    pass


class DefinitionError(HaplotyperError):
    """Haplotype definitions do not agree with the panel they are used with."""


class DuplicateSampleAlleleError(HaplotyperError):
    """More than one sample genotype was supplied for the same position."""

    def __init__(self, chr_position: str):
        super().__init__(f"Duplicate sample allele for {chr_position}")
        self.chr_position = chr_position
