#!/usr/bin/env python3

"""
Configuration management for the principal isoform pipeline.

Values come from a JSON or YAML file, ``PREX_*`` environment variables and
the defaults below, in that order of priority. Command line options are
applied on top by ``pipeline_cli``.
"""

import os
import json
from dataclasses import dataclass, fields
from typing import Optional, Dict, Any

import yaml

from .exceptions import ConfigurationError

DEFAULT_CONFIG_FILE = "prex.json"

EXTRACTORS = ('bedtools', 'faidx')

ENV_PREFIX = "PREX_"


def _parse_bool(value: str) -> bool:
    return value.lower() in ('true', '1', 'yes')


# Fields that can be set from the environment, with their converters
_ENV_FIELDS = {
    'gff3': str,
    'fasta': str,
    'upstream': int,
    'downstream': int,
    'extractor': str,
    'output_dir': str,
    'parallel_workers': int,
    'debug_mode': _parse_bool,
}


def _read_config_file(config_path: str) -> Dict[str, Any]:
    """Read a JSON or YAML configuration file into a dictionary."""
    if not os.path.exists(config_path):
        raise ConfigurationError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, 'r') as f:
            if config_path.lower().endswith(('.yaml', '.yml')):
                config_data = yaml.safe_load(f)
            else:
                config_data = json.load(f)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Invalid configuration file format: {e}")
    except OSError as e:
        raise ConfigurationError(f"Error loading configuration: {e}")

    if not isinstance(config_data, dict):
        raise ConfigurationError(f"Configuration file must contain a mapping: {config_path}")

    return config_data


def _known_fields(values: Dict[str, Any]) -> Dict[str, Any]:
    """Lower-case keys (``Gff3`` -> ``gff3``) and drop unknown ones."""
    names = {f.name for f in fields(PipelineConfig)}
    return {key.lower(): value for key, value in values.items() if key.lower() in names}


def _env_values() -> Dict[str, Any]:
    """Get the fields set through ``PREX_*`` environment variables."""
    values = {}
    for field_name, converter in _ENV_FIELDS.items():
        env_var = ENV_PREFIX + field_name.upper()
        raw = os.getenv(env_var)
        if not raw:
            continue
        try:
            values[field_name] = converter(raw)
        except ValueError as e:
            raise ConfigurationError(f"Invalid environment variable {env_var}: {e}")
    return values


@dataclass
class PipelineConfig:
    """Settings of one pipeline run, validated on creation."""

    # Input files
    gff3: str = ""
    fasta: str = ""

    # Window around the principal isoform start
    upstream: int = 0
    downstream: int = 0

    # Annotation rows that carry the start coordinate of an isoform
    feature_type: str = "start_codon"

    # Sequence extraction
    extractor: str = "bedtools"
    bedtools_path: str = "bedtools"
    output_dir: str = "."

    # Performance settings
    parallel_workers: int = 1
    memory_limit_mb: int = 4096
    enable_memory_monitoring: bool = True

    debug_mode: bool = False

    @classmethod
    def from_file(cls, config_path: str) -> 'PipelineConfig':
        """Load configuration from file (JSON or YAML)."""
        return cls.from_dict(_read_config_file(config_path))

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'PipelineConfig':
        return cls(**_known_fields(config_dict))

    @classmethod
    def from_env(cls) -> 'PipelineConfig':
        return cls(**_env_values())

    def validate(self) -> None:
        """Raise ConfigurationError for out of range or mistyped values."""
        for name in ('upstream', 'downstream', 'parallel_workers', 'memory_limit_mb'):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigurationError(f"{name} must be an integer, got {value!r}")

        if self.upstream < 0 or self.downstream < 0:
            raise ConfigurationError(
                f"upstream and downstream must be >= 0 (got {self.upstream}, {self.downstream})"
            )
        if not self.feature_type:
            raise ConfigurationError("feature_type cannot be empty")
        if self.extractor not in EXTRACTORS:
            raise ConfigurationError(f"extractor must be one of {', '.join(EXTRACTORS)}")
        if self.parallel_workers < 1:
            raise ConfigurationError("parallel_workers must be >= 1")
        if self.memory_limit_mb < 100:
            raise ConfigurationError("memory_limit_mb must be >= 100")

    def __post_init__(self):
        if self.gff3:
            self.gff3 = os.path.expanduser(self.gff3)
        if self.fasta:
            self.fasta = os.path.expanduser(self.fasta)
        self.validate()


def load_config(config_path: Optional[str] = None,
                use_env: bool = True) -> PipelineConfig:
    """
    Load configuration with priority: file > environment > defaults.

    Args:
        config_path: Path to configuration file (optional)
        use_env: Whether to read ``PREX_*`` environment variables

    Returns:
        PipelineConfig: Loaded configuration
    """
    values: Dict[str, Any] = {}
    if use_env:
        values.update(_env_values())
    if config_path:
        values.update(_known_fields(_read_config_file(config_path)))
    return PipelineConfig(**values)
