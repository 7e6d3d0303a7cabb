"""
Haplotyper - calls diplotypes for every gene definition from one sample's
genotypes.

Each gene is evaluated independently: its own MatchData, matches and GeneCall.
Definitions are shared read-only, so genes or samples may be evaluated in
parallel by the caller.
"""

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Union

from .config import get_config
from .diplotype_matcher import DiplotypeMatcher
from .exceptions import DefinitionError, HaplotyperError
from .match_data import MatchData, build_sample_allele_map
from .models import GeneDefinition, SampleAllele
from .result_builder import GeneCall, HaplotyperResult, build_gene_call, build_metadata, build_result

logger = logging.getLogger(__name__)

SampleAlleles = Union[Mapping[str, SampleAllele], Iterable[SampleAllele]]


def _as_sample_map(sample_alleles: SampleAlleles) -> Dict[str, SampleAllele]:
    if isinstance(sample_alleles, Mapping):
        for key, allele in sample_alleles.items():
            if key != allele.chr_position:
                raise HaplotyperError(f"Sample allele for {allele.chr_position} is keyed as {key}")
        return dict(sample_alleles)
    return build_sample_allele_map(sample_alleles)


class Haplotyper:
    """Runs haplotype and diplotype matching for a set of gene definitions."""

    def __init__(self, definitions: Iterable[GeneDefinition]):
        self._definitions: Dict[str, GeneDefinition] = {}
        for definition in definitions:
            if definition.gene in self._definitions:
                raise DefinitionError(f"Duplicate definition for {definition.gene}")
            self._definitions[definition.gene] = definition

    @property
    def genes(self) -> List[str]:
        return list(self._definitions)

    def get_definition(self, gene: str) -> GeneDefinition:
        definition = self._definitions.get(gene)
        if definition is None:
            raise DefinitionError(f"No definition loaded for {gene}")
        return definition

    def call_gene(self, gene: str, sample_alleles: SampleAlleles) -> GeneCall:
        """Match one gene and assemble its call."""
        definition = self.get_definition(gene)
        dataset = MatchData(_as_sample_map(sample_alleles), definition.positions, definition.haplotypes)

        matcher = DiplotypeMatcher(dataset)
        haplotype_matches = matcher.compare_permutations()
        diplotypes = matcher.determine_pairs(haplotype_matches)
        gene_call = build_gene_call(definition, dataset, haplotype_matches, diplotypes)

        level = logging.INFO if get_config().verbose_logging else logging.DEBUG
        logger.log(
            level,
            f"{gene}: {', '.join(gene_call.diplotype_names) or 'no call'} "
            f"({len(dataset.missing_positions)} missing positions, "
            f"{len(gene_call.missing_data_haplotypes)} haplotypes without data)"
        )
        return gene_call

    def call(
        self,
        sample_alleles: SampleAlleles,
        input_file: Optional[Union[str, Path]] = None,
    ) -> HaplotyperResult:
        """Match every loaded gene for one sample."""
        sample_map = _as_sample_map(sample_alleles)
        metadata = build_metadata(input_file)
        gene_calls = [self.call_gene(gene, sample_map) for gene in self._definitions]
        return build_result(metadata, gene_calls)
