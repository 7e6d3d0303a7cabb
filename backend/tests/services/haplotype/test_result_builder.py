"""
Unit tests for gene call and result assembly.
"""

from datetime import datetime

import pytest

from app.services.haplotype.config import update_config
from app.services.haplotype.diplotype_matcher import DiplotypeMatcher
from app.services.haplotype.match_data import MatchData, build_sample_allele_map
from app.services.haplotype.models import GeneDefinition, NamedAllele, SampleAllele
from app.services.haplotype.result_builder import (
    build_gene_call,
    build_metadata,
    build_result,
    build_variant,
    format_definition_version,
)


def gene_call_for(definition, dataset):
    matcher = DiplotypeMatcher(dataset)
    haplotype_matches = matcher.compare_permutations()
    return build_gene_call(definition, dataset, haplotype_matches, matcher.determine_pairs(haplotype_matches))


class TestDefinitionVersion:
    """Test the version string shown with each gene call."""

    def test_version_only(self, definition):
        assert format_definition_version(definition) == "v1.0"

    def test_version_and_date(self, definition):
        dated = definition.model_copy(update={"modification_date": datetime(2017, 2, 14)})
        assert format_definition_version(dated) == "v1.0 (02/14/17)"

    def test_date_only(self, definition):
        dated = definition.model_copy(
            update={"content_version": "", "modification_date": datetime(2017, 2, 14)}
        )
        assert format_definition_version(dated) == "(02/14/17)"

    def test_configured_date_format(self, definition):
        update_config(**{"call_format.definition_date_format": "%Y-%m-%d"})
        dated = definition.model_copy(update={"modification_date": datetime(2017, 2, 14)})
        assert format_definition_version(dated) == "v1.0 (2017-02-14)"


class TestBuildVariant:
    """Test per-position call strings."""

    def test_unphased_call(self, loci):
        allele = SampleAllele(chromosome="chr1", position=1, allele1="A", allele2="G", vcf_alleles=("A", "G"))
        variant = build_variant(loci[0], allele)
        assert variant.call == "A/G"
        assert variant.rsid == "rs1"
        assert variant.chr_position == "chr1:1"
        assert variant.vcf_alleles == "A,G"

    def test_phased_call(self, loci):
        allele = SampleAllele(chromosome="chr1", position=1, allele1="G", allele2="A", phased=True)
        assert build_variant(loci[0], allele).call == "G|A"


class TestBuildGeneCall:
    """Test gene call assembly from matcher output."""

    def test_ambiguous_call(self, definition, make_dataset):
        dataset = make_dataset([(1, "A", "G"), (2, "C", "T"), (3, "C", "T")])

        gene_call = gene_call_for(definition, dataset)

        assert gene_call.gene == "TEST1"
        assert gene_call.chromosome == "chr1"
        assert gene_call.definition_version == "v1.0"
        assert gene_call.is_called
        assert gene_call.is_ambiguous
        assert gene_call.diplotype_names == ["*1/*4b", "*1/*17", "*1/*4a", "*4a/*17"]
        assert gene_call.matched_haplotypes == ("*1", "*4a", "*4b", "*17")
        assert gene_call.uncallable_haplotypes == ()
        assert gene_call.missing_data_haplotypes == ()
        assert gene_call.missing_positions == ()
        assert [v.call for v in gene_call.variants] == ["A/G", "C/T", "C/T"]

    def test_unmatched_haplotypes_are_uncallable(self, definition, make_dataset):
        dataset = make_dataset([(1, "A", "G"), (2, "C", "C"), (3, "C", "C")])

        gene_call = gene_call_for(definition, dataset)

        assert gene_call.diplotype_names == ["*1/*4a"]
        assert not gene_call.is_ambiguous
        assert gene_call.matched_haplotypes == ("*1", "*4a")
        assert gene_call.uncallable_haplotypes == ("*4b", "*17")

    def test_no_call(self, definition, make_dataset):
        dataset = make_dataset([(1, "T", "T"), (2, "A", "A"), (3, "A", "A")])

        gene_call = gene_call_for(definition, dataset)

        assert not gene_call.is_called
        assert gene_call.diplotypes == ()
        assert gene_call.uncallable_haplotypes == ("*1", "*4a", "*4b", "*17")

    def test_missing_data_haplotypes(self, loci, make_alleles):
        """
        GIVEN a haplotype defined only at a position the sample lacks
        WHEN the gene call is assembled
        THEN it is reported both as uncallable and as lacking data
        """
        definition = GeneDefinition.from_panel(
            gene="TEST1",
            chromosome="chr1",
            positions=loci,
            haplotypes=[
                NamedAllele(name="*1", alleles=("A", "C", "C")),
                NamedAllele(name="*4a", alleles=("G", None, None)),
                NamedAllele(name="*9", alleles=(None, None, "T")),
            ],
        )
        sample_map = build_sample_allele_map(make_alleles([(1, "A", "G"), (2, "C", "C")]))
        dataset = MatchData(sample_map, definition.positions, definition.haplotypes)

        gene_call = gene_call_for(definition, dataset)

        assert gene_call.diplotype_names == ["*1/*4a"]
        assert [locus.chr_position for locus in gene_call.missing_positions] == ["chr1:3"]
        assert gene_call.missing_data_haplotypes == ("*9",)
        assert gene_call.uncallable_haplotypes == ("*9",)
        assert [v.chr_position for v in gene_call.variants] == ["chr1:1", "chr1:2"]


class TestBuildMetadata:
    """Test run metadata."""

    def test_without_input_file(self):
        metadata = build_metadata()
        assert metadata.input_file is None
        assert metadata.date is not None

    def test_with_vcf(self, tmp_path):
        vcf = tmp_path / "sample.vcf"
        vcf.write_text("##fileformat=VCFv4.2\n")
        date = datetime(2024, 1, 2, 3, 4, 5)

        metadata = build_metadata(vcf, date=date)

        assert metadata.input_file == "sample.vcf"
        assert metadata.date == date

    def test_with_compressed_vcf(self, tmp_path):
        vcf = tmp_path / "sample.vcf.gz"
        vcf.write_bytes(b"")
        assert build_metadata(str(vcf)).input_file == "sample.vcf.gz"

    def test_rejects_non_vcf(self, tmp_path):
        other = tmp_path / "sample.txt"
        other.write_text("")
        with pytest.raises(ValueError, match="Not a VCF file"):
            build_metadata(other)

    def test_rejects_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            build_metadata(tmp_path / "absent.vcf")


class TestBuildResult:
    """Test result lookup helpers."""

    def test_get_gene_call(self, definition, make_dataset):
        called = gene_call_for(definition, make_dataset([(1, "A", "G"), (2, "C", "C"), (3, "C", "C")]))

        result = build_result(build_metadata(), [called])

        assert result.get_gene_call("TEST1") == called
        assert result.get_gene_call("CYP2C19") is None
        assert result.called_genes == ["TEST1"]

    def test_uncalled_gene_is_not_listed_as_called(self, definition, make_dataset):
        uncalled = gene_call_for(definition, make_dataset([(1, "T", "T"), (2, "A", "A"), (3, "A", "A")]))
        result = build_result(build_metadata(), [uncalled])
        assert result.called_genes == []
