"""Pytest fixtures for haplotype matching tests."""

import pytest

from app.services.haplotype.config import reset_config
from app.services.haplotype.match_data import MatchData, build_sample_allele_map
from app.services.haplotype.models import GeneDefinition, NamedAllele, SampleAllele, VariantLocus


@pytest.fixture(autouse=True)
def default_config():
    """Every test starts from, and leaves behind, the default configuration."""
    reset_config()
    yield
    reset_config()


@pytest.fixture
def loci():
    return [
        VariantLocus(chromosome="chr1", position=1, rsid="rs1", description="g.1T>A"),
        VariantLocus(chromosome="chr1", position=2, rsid="rs2", description="g.2T>A"),
        VariantLocus(chromosome="chr1", position=3, rsid="rs3", description="g.3T>A"),
    ]


@pytest.fixture
def definition(loci):
    """
            | 1 | 2 | 3 |
        *1  | A | C | C |
        *4a | G |   |   |
        *4b | G | T | T |
        *17 |   | T | T |
    """
    return GeneDefinition.from_panel(
        gene="TEST1",
        chromosome="chr1",
        positions=loci,
        haplotypes=[
            NamedAllele(name="*1", id="*1", alleles=("A", "C", "C"), function="Normal function"),
            NamedAllele(name="*4a", id="*4a", alleles=("G", None, None), function="No function"),
            NamedAllele(name="*4b", id="*4b", alleles=("G", "T", "T"), function="No function"),
            NamedAllele(name="*17", id="*17", alleles=(None, "T", "T"), function="Increased function"),
        ],
        content_version="v1.0",
    )


@pytest.fixture
def make_alleles():
    """Build chr1 sample alleles from (position, allele1, allele2) triples."""
    def _make(calls, phased=False):
        return [
            SampleAllele(
                chromosome="chr1",
                position=pos,
                allele1=a1,
                allele2=a2,
                phased=phased,
                vcf_alleles=tuple(dict.fromkeys((a1, a2))),
            )
            for pos, a1, a2 in calls
        ]
    return _make


@pytest.fixture
def make_dataset(definition, make_alleles):
    """Build a MatchData for the TEST1 definition from (position, allele1, allele2) triples."""
    def _make(calls, phased=False):
        sample_map = build_sample_allele_map(make_alleles(calls, phased=phased))
        return MatchData(sample_map, definition.positions, definition.haplotypes)
    return _make
