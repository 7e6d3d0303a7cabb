"""
Haplotype Matching Service

Calls pharmacogene diplotypes by matching a sample's genotypes at a gene's
diagnostic positions against a library of named haplotype definitions.
Matching is exact: every diplotype consistent with the data is returned.
"""

from .exceptions import (
    HaplotyperError,
    DefinitionError,
    DuplicateSampleAlleleError
)
from .models import (
    VariantLocus,
    AlleleSlot,
    SlotKind,
    NamedAllele,
    GeneDefinition,
    SampleAllele,
    HaplotypeMatch,
    DiplotypeMatch,
    index_panel
)
from .match_data import (
    MatchData,
    build_sample_allele_map,
    encode_permutation,
    decode_permutation,
    permutation_fragments
)
from .haplotype_matcher import HaplotypeMatcher, matches_permutation
from .diplotype_matcher import DiplotypeMatcher
from .result_builder import (
    Variant,
    GeneCall,
    Metadata,
    HaplotyperResult,
    build_gene_call,
    build_metadata
)
from .haplotyper import Haplotyper
from .config import (
    get_config,
    update_config,
    reset_config,
    load_config_from_file,
    save_config_to_file,
    get_matching_config,
    get_call_format_config
)

__all__ = [
    # Errors
    'HaplotyperError',
    'DefinitionError',
    'DuplicateSampleAlleleError',

    # Models
    'VariantLocus',
    'AlleleSlot',
    'SlotKind',
    'NamedAllele',
    'GeneDefinition',
    'SampleAllele',
    'HaplotypeMatch',
    'DiplotypeMatch',
    'index_panel',

    # Matching
    'MatchData',
    'build_sample_allele_map',
    'encode_permutation',
    'decode_permutation',
    'permutation_fragments',
    'HaplotypeMatcher',
    'matches_permutation',
    'DiplotypeMatcher',

    # Results
    'Variant',
    'GeneCall',
    'Metadata',
    'HaplotyperResult',
    'build_gene_call',
    'build_metadata',
    'Haplotyper',

    # Configuration
    'get_config',
    'update_config',
    'reset_config',
    'load_config_from_file',
    'save_config_to_file',
    'get_matching_config',
    'get_call_format_config',
]
