"""
Result assembly - turn matching output into per-gene call records.

Every record is built in one step from its inputs and is immutable.
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from .config import get_call_format_config
from .match_data import MatchData
from .models import DiplotypeMatch, GeneDefinition, HaplotypeMatch, SampleAllele, VariantLocus
from .sorting import natural_key

VCF_SUFFIXES = (".vcf", ".vcf.gz")


class Variant(BaseModel):
    """Sample call at one evaluated panel position."""
    model_config = ConfigDict(frozen=True)

    position: int = Field(..., description="Genomic position")
    rsid: Optional[str] = Field(None, description="dbSNP reference ID")
    call: str = Field(..., description="Called alleles (e.g., A|G when phased, A/G when not)")
    chr_position: str = Field(..., description="CHROM:POS of the position")
    vcf_alleles: str = Field("", description="REF and ALT alleles as joined strings")


class GeneCall(BaseModel):
    """Diplotype call and supporting detail for one gene."""
    model_config = ConfigDict(frozen=True)

    gene: str = Field(..., description="Gene symbol")
    chromosome: str = Field(..., description="Chromosome of the gene")
    definition_version: str = Field(..., description="Definition version shown in reports")
    diplotypes: Tuple[DiplotypeMatch, ...] = Field(default=(), description="Every consistent diplotype")
    matched_haplotypes: Tuple[str, ...] = Field(default=(), description="Haplotypes matching the sample")
    uncallable_haplotypes: Tuple[str, ...] = Field(
        default=(), description="Library haplotypes absent from every match"
    )
    missing_data_haplotypes: Tuple[str, ...] = Field(
        default=(), description="Haplotypes with no constrained position present in the sample"
    )
    missing_positions: Tuple[VariantLocus, ...] = Field(
        default=(), description="Panel positions not found in the input"
    )
    variants: Tuple[Variant, ...] = Field(default=(), description="Sample calls at evaluated positions")

    @property
    def is_called(self) -> bool:
        return len(self.diplotypes) > 0

    @property
    def is_ambiguous(self) -> bool:
        return len(self.diplotypes) > 1

    @property
    def diplotype_names(self) -> List[str]:
        return [d.name for d in self.diplotypes]


class Metadata(BaseModel):
    """Run information attached to a result."""
    model_config = ConfigDict(frozen=True)

    input_file: Optional[str] = Field(None, description="Name of the VCF the sample came from")
    date: datetime = Field(..., description="When the result was created")


class HaplotyperResult(BaseModel):
    """Gene calls for one sample."""
    model_config = ConfigDict(frozen=True)

    metadata: Metadata
    gene_calls: Tuple[GeneCall, ...] = Field(default=())

    def get_gene_call(self, gene: str) -> Optional[GeneCall]:
        for call in self.gene_calls:
            if call.gene == gene:
                return call
        return None

    @property
    def called_genes(self) -> List[str]:
        return [call.gene for call in self.gene_calls if call.is_called]


def format_definition_version(definition: GeneDefinition) -> str:
    """'<content version> (<modification date>)', e.g. 'v1.1 (02/14/17)'"""
    if definition.modification_date is None:
        return definition.content_version
    date = definition.modification_date.strftime(get_call_format_config().definition_date_format)
    if not definition.content_version:
        return f"({date})"
    return f"{definition.content_version} ({date})"


def build_variant(locus: VariantLocus, allele: SampleAllele) -> Variant:
    fmt = get_call_format_config()
    separator = fmt.phased_separator if allele.phased else fmt.unphased_separator
    return Variant(
        position=locus.position,
        rsid=locus.rsid,
        call=f"{allele.allele1}{separator}{allele.allele2}",
        chr_position=locus.chr_position,
        vcf_alleles=fmt.vcf_allele_separator.join(allele.vcf_alleles),
    )


def _sorted_names(names: Iterable[str]) -> Tuple[str, ...]:
    return tuple(sorted(names, key=natural_key))


def build_gene_call(
    definition: GeneDefinition,
    dataset: MatchData,
    haplotype_matches: Sequence[HaplotypeMatch],
    diplotypes: Sequence[DiplotypeMatch],
) -> GeneCall:
    library = set(definition.haplotype_names)
    matched = {match.name for match in haplotype_matches}
    evaluated = {hap.name for hap in dataset.haplotypes}

    variants = tuple(
        build_variant(locus, dataset.sample_alleles[locus.chr_position])
        for locus in dataset.positions
    )

    return GeneCall(
        gene=definition.gene,
        chromosome=definition.chromosome,
        definition_version=format_definition_version(definition),
        diplotypes=tuple(diplotypes),
        matched_haplotypes=_sorted_names(matched),
        uncallable_haplotypes=_sorted_names(library - matched),
        missing_data_haplotypes=_sorted_names(library - evaluated),
        missing_positions=dataset.missing_positions,
        variants=variants,
    )


def build_metadata(
    vcf_file: Optional[Union[str, Path]] = None,
    date: Optional[datetime] = None,
) -> Metadata:
    """Describe a run; when given, vcf_file must be an existing VCF."""
    input_file = None
    if vcf_file is not None:
        path = Path(vcf_file)
        if not path.name.endswith(VCF_SUFFIXES):
            raise ValueError(f"Not a VCF file: {path}")
        if not path.is_file():
            raise FileNotFoundError(f"VCF file not found: {path}")
        input_file = path.name

    return Metadata(input_file=input_file, date=date or datetime.now(timezone.utc))


def build_result(metadata: Metadata, gene_calls: Iterable[GeneCall]) -> HaplotyperResult:
    return HaplotyperResult(metadata=metadata, gene_calls=tuple(gene_calls))
