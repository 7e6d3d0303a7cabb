"""
Configuration for the haplotype matching service.
Centralizes tunable parameters for permutation matching and call formatting.
"""

import json

from pydantic import BaseModel, Field


class MatchingConfig(BaseModel):
    """Configuration for permutation generation and matching."""

    permutation_warning_threshold: int = Field(
        default=4096,
        ge=1,
        description="Log a warning when one gene yields more sample permutations than this"
    )


class CallFormatConfig(BaseModel):
    """Formatting of per-position calls and definition versions in gene calls."""

    phased_separator: str = Field(
        default="|",
        min_length=1,
        description="Separator between alleles of a phased call (e.g. A|G)"
    )

    unphased_separator: str = Field(
        default="/",
        min_length=1,
        description="Separator between alleles of an unphased call (e.g. A/G)"
    )

    vcf_allele_separator: str = Field(
        default=",",
        description="Separator used when joining the raw VCF alleles of a position"
    )

    definition_date_format: str = Field(
        default="%m/%d/%y",
        description="strftime format of the definition modification date"
    )


class HaplotyperConfig(BaseModel):
    """Main configuration for the haplotype matching service."""

    matching: MatchingConfig = Field(
        default_factory=MatchingConfig,
        description="Permutation matching configuration"
    )

    call_format: CallFormatConfig = Field(
        default_factory=CallFormatConfig,
        description="Gene call formatting configuration"
    )

    # Logging
    verbose_logging: bool = Field(
        default=False,
        description="Log the per-gene call summary at INFO instead of DEBUG"
    )


# Global configuration instance
_config: HaplotyperConfig = HaplotyperConfig()


def get_config() -> HaplotyperConfig:
    """Get the global configuration instance."""
    return _config


def update_config(**kwargs):
    """Update configuration parameters."""
    global _config
    current_dict = _config.model_dump()

    for key, value in kwargs.items():
        if '.' in key:
            # Handle nested keys like 'matching.permutation_warning_threshold'
            parts = key.split('.')
            current = current_dict
            for part in parts[:-1]:
                current = current[part]
            current[parts[-1]] = value
        else:
            current_dict[key] = value

    _config = HaplotyperConfig(**current_dict)
    return _config


def reset_config() -> HaplotyperConfig:
    """Restore the default configuration."""
    global _config
    _config = HaplotyperConfig()
    return _config


def load_config_from_file(filepath: str):
    """Load configuration from a JSON file."""
    global _config

    with open(filepath, 'r') as f:
        config_dict = json.load(f)

    _config = HaplotyperConfig(**config_dict)
    return _config


def save_config_to_file(filepath: str):
    """Save current configuration to a JSON file."""
    with open(filepath, 'w') as f:
        json.dump(_config.model_dump(), f, indent=2)


# Convenience accessors
def get_matching_config() -> MatchingConfig:
    """Get permutation matching configuration."""
    return _config.matching


def get_call_format_config() -> CallFormatConfig:
    """Get gene call formatting configuration."""
    return _config.call_format
