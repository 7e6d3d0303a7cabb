"""
Internal data models for the haplotype matching service.
These models describe gene panels, haplotype definitions and sample genotypes,
plus the haplotype/diplotype matches produced from them.
"""

from datetime import datetime
from enum import Enum
from typing import FrozenSet, List, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .exceptions import DefinitionError

# Permutation strings are "pos:allele;" fragments, so alleles may not contain either
ALLELE_SEPARATOR = ":"
FRAGMENT_TERMINATOR = ";"
RESERVED_ALLELE_CHARS = (ALLELE_SEPARATOR, FRAGMENT_TERMINATOR)


def encode_fragment(position: int, allele: str) -> str:
    """One position of a permutation string, e.g. "1:A;"."""
    return f"{position}{ALLELE_SEPARATOR}{allele}{FRAGMENT_TERMINATOR}"


def has_reserved_chars(allele: str) -> bool:
    return any(char in allele for char in RESERVED_ALLELE_CHARS)


class VariantLocus(BaseModel):
    """A diagnostic position in a gene panel."""
    model_config = ConfigDict(frozen=True)

    chromosome: str = Field(..., description="Chromosome identifier (e.g., chr10)")
    position: int = Field(..., description="Genomic position on the chromosome")
    rsid: Optional[str] = Field(None, description="dbSNP reference ID")
    description: Optional[str] = Field(None, description="HGVS-style description (e.g., g.1T>A)")
    index: Optional[int] = Field(None, ge=0, description="Index within the panel's ordered positions")

    @property
    def chr_position(self) -> str:
        """Key used to look up the sample genotype: CHROM:POS"""
        return f"{self.chromosome}:{self.position}"


def index_panel(positions: Sequence[VariantLocus]) -> Tuple[VariantLocus, ...]:
    """Bind every position to its index in the ordered panel."""
    seen = set()
    panel = []
    for idx, locus in enumerate(positions):
        if locus.chr_position in seen:
            raise DefinitionError(f"Duplicate panel position {locus.chr_position}")
        seen.add(locus.chr_position)
        if locus.index != idx:
            locus = locus.model_copy(update={"index": idx})
        panel.append(locus)
    return tuple(panel)


class SlotKind(str, Enum):
    """Whether a haplotype constrains a panel position."""
    WILDCARD = "wildcard"
    CONCRETE = "concrete"


class AlleleSlot(BaseModel):
    """Expected allele of a haplotype at one panel position."""
    model_config = ConfigDict(frozen=True)

    kind: SlotKind = Field(..., description="WILDCARD matches any allele, CONCRETE only its value")
    value: Optional[str] = Field(None, description="Expected allele for a CONCRETE slot")

    @model_validator(mode="after")
    def _check_value(self) -> "AlleleSlot":
        if self.kind == SlotKind.CONCRETE and not self.value:
            raise ValueError("Concrete slot requires an allele")
        if self.kind == SlotKind.WILDCARD and self.value is not None:
            raise ValueError("Wildcard slot cannot carry an allele")
        return self

    @classmethod
    def wildcard(cls) -> "AlleleSlot":
        return cls(kind=SlotKind.WILDCARD)

    @classmethod
    def concrete(cls, value: str) -> "AlleleSlot":
        return cls(kind=SlotKind.CONCRETE, value=value)

    @classmethod
    def from_allele(cls, allele: Optional[str]) -> "AlleleSlot":
        """Definition files leave unconstrained positions empty (None)."""
        if allele is None:
            return cls.wildcard()
        return cls.concrete(allele)

    @property
    def is_wildcard(self) -> bool:
        return self.kind == SlotKind.WILDCARD

    def matches(self, allele: str) -> bool:
        if self.kind == SlotKind.WILDCARD:
            return True
        return self.value == allele


class NamedAllele(BaseModel):
    """
    A named haplotype (e.g. a star allele) and its expected allele at every
    panel position.

    The definition is unusable for matching until ``finalize`` binds it to the
    ordered panel, which returns a copy holding one AlleleSlot per position.
    """
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Haplotype name (e.g., *4a)")
    id: Optional[str] = Field(None, description="Identifier from the definition source")
    alleles: Tuple[Optional[str], ...] = Field(
        ..., description="Expected allele per panel position; None means any allele"
    )
    function: Optional[str] = Field(None, description="Allele function (e.g., No function)")
    slots: Tuple[AlleleSlot, ...] = Field(default=(), description="Slots bound by finalize()")
    positions: Tuple[VariantLocus, ...] = Field(default=(), description="Panel bound by finalize()")
    match_keys: Tuple[Optional[str], ...] = Field(
        default=(), description="Permutation fragment per concrete slot (e.g. 1:A;), None for wildcards"
    )

    @property
    def is_finalized(self) -> bool:
        return len(self.positions) > 0

    @property
    def concrete_keys(self) -> Tuple[str, ...]:
        return tuple(key for key in self.match_keys if key is not None)

    @property
    def score(self) -> int:
        """Number of positions this haplotype constrains."""
        return sum(1 for allele in self.alleles if allele is not None)

    def finalize(self, positions: Sequence[VariantLocus]) -> "NamedAllele":
        """Bind this definition to the ordered panel it was written against."""
        positions = tuple(positions)
        if not positions:
            raise DefinitionError(f"Cannot finalize {self.name} against an empty panel")
        if len(self.alleles) != len(positions):
            raise DefinitionError(
                f"{self.name} defines {len(self.alleles)} alleles "
                f"but the panel has {len(positions)} positions"
            )

        slots: List[AlleleSlot] = []
        keys: List[Optional[str]] = []
        for locus, allele in zip(positions, self.alleles):
            if allele is not None:
                if not allele.strip():
                    raise DefinitionError(f"{self.name} has an empty allele at {locus.chr_position}")
                if has_reserved_chars(allele):
                    raise DefinitionError(
                        f"{self.name} has allele {allele!r} at {locus.chr_position} "
                        f"containing a reserved character"
                    )
            slots.append(AlleleSlot.from_allele(allele))
            keys.append(None if allele is None else encode_fragment(locus.position, allele))

        return self.model_copy(
            update={"slots": tuple(slots), "positions": positions, "match_keys": tuple(keys)}
        )

    def matches_fragments(self, fragments: FrozenSet[str]) -> bool:
        """Test a permutation, given as its set of fragments, against the concrete keys."""
        if not self.is_finalized:
            raise DefinitionError(f"{self.name} has not been finalized against a panel")
        return all(key in fragments for key in self.concrete_keys)

    def matches(self, alleles: Sequence[str]) -> bool:
        """
        Test one chromosome's alleles, in panel order, against this haplotype.
        Wildcard slots always match; concrete slots need an equal allele.
        """
        if not self.is_finalized:
            raise DefinitionError(f"{self.name} has not been finalized against a panel")
        if len(alleles) != len(self.slots):
            raise DefinitionError(
                f"{self.name} expects {len(self.slots)} alleles, got {len(alleles)}"
            )
        return all(slot.matches(allele) for slot, allele in zip(self.slots, alleles))


class GeneDefinition(BaseModel):
    """
    Panel and haplotype library for one gene, as handed over by a definition
    loader. Use ``from_panel`` to index the panel and finalize the library.
    """
    model_config = ConfigDict(frozen=True)

    gene: str = Field(..., min_length=1, description="Gene symbol (e.g., CYP2C19)")
    chromosome: str = Field(..., description="Chromosome of the gene")
    content_version: str = Field("", description="Version of the definition content")
    modification_date: Optional[datetime] = Field(None, description="Last modification of the definition")
    positions: Tuple[VariantLocus, ...] = Field(..., description="Ordered panel positions")
    haplotypes: Tuple[NamedAllele, ...] = Field(..., description="Finalized haplotype library")

    def __init__(self, **data):
        super().__init__(**data)
        # Checked after validation so the mismatch surfaces as DefinitionError
        for hap in self.haplotypes:
            if hap.positions != self.positions:
                raise DefinitionError(f"{hap.name} is not finalized against the {self.gene} panel")

    @classmethod
    def from_panel(
        cls,
        gene: str,
        chromosome: str,
        positions: Sequence[VariantLocus],
        haplotypes: Sequence[NamedAllele],
        content_version: str = "",
        modification_date: Optional[datetime] = None,
    ) -> "GeneDefinition":
        panel = index_panel(positions)

        names = set()
        library = []
        for hap in haplotypes:
            if hap.name in names:
                raise DefinitionError(f"Duplicate haplotype {hap.name} for {gene}")
            names.add(hap.name)
            library.append(hap.finalize(panel))

        return cls(
            gene=gene,
            chromosome=chromosome,
            content_version=content_version,
            modification_date=modification_date,
            positions=panel,
            haplotypes=tuple(library),
        )

    @property
    def haplotype_names(self) -> List[str]:
        return [hap.name for hap in self.haplotypes]


class SampleAllele(BaseModel):
    """One sample's diploid genotype at one position."""
    model_config = ConfigDict(frozen=True)

    chromosome: str = Field(..., description="Chromosome identifier")
    position: int = Field(..., description="Genomic position on the chromosome")
    allele1: str = Field(..., min_length=1, description="First called allele")
    allele2: str = Field(..., min_length=1, description="Second called allele")
    phased: bool = Field(default=False, description="Whether allele1/allele2 are on known strands")
    vcf_alleles: Tuple[str, ...] = Field(
        default=(), description="REF followed by ALT alleles as written in the VCF"
    )

    @field_validator("allele1", "allele2")
    @classmethod
    def _check_allele(cls, v: str) -> str:
        if has_reserved_chars(v):
            raise ValueError(f"Allele {v!r} contains a reserved character")
        return v

    @property
    def chr_position(self) -> str:
        return f"{self.chromosome}:{self.position}"

    @property
    def reference(self) -> Optional[str]:
        return self.vcf_alleles[0] if self.vcf_alleles else None

    @property
    def is_homozygous(self) -> bool:
        return self.allele1 == self.allele2

    def other_allele(self, allele: str) -> str:
        """The allele on the opposite chromosome, given one of the two calls."""
        if allele == self.allele1:
            return self.allele2
        if allele == self.allele2:
            return self.allele1
        raise ValueError(f"{allele} was not called at {self.chr_position}")


class HaplotypeMatch(BaseModel):
    """A haplotype together with the sample permutations it matches."""
    model_config = ConfigDict(frozen=True)

    haplotype: NamedAllele
    sequences: FrozenSet[str] = Field(..., description="Matched permutation strings")

    @property
    def name(self) -> str:
        return self.haplotype.name

    @property
    def score(self) -> int:
        return self.haplotype.score


class DiplotypeMatch(BaseModel):
    """
    Two haplotype matches whose permutations together reconstruct the sample.
    haplotype1 and haplotype2 may be the same haplotype.
    """
    model_config = ConfigDict(frozen=True)

    haplotype1: HaplotypeMatch
    haplotype2: HaplotypeMatch
    sequence_pairs: FrozenSet[Tuple[str, str]] = Field(
        ..., description="(haplotype1 permutation, haplotype2 permutation) pairs"
    )

    @property
    def name(self) -> str:
        return f"{self.haplotype1.name}/{self.haplotype2.name}"

    @property
    def score(self) -> int:
        return self.haplotype1.score + self.haplotype2.score

    @property
    def is_homozygous(self) -> bool:
        return self.haplotype1.name == self.haplotype2.name
