#!/usr/bin/env python3

"""
Core module for the principal isoform pipeline.

Contains data structures, exception types, configuration, annotation
parsing and the principal isoform selection components.
"""

from .data_structures import AnnotationRecord, Region
from .exceptions import (
    PrexError, AmbiguousPrincipalIsoformError, IdentifierNotFoundError,
    UndefinedStrandError, UnknownIdentifierError, ConfigurationError
)
from .config import PipelineConfig, load_config

__all__ = [
    'AnnotationRecord', 'Region',
    'PrexError', 'AmbiguousPrincipalIsoformError', 'IdentifierNotFoundError',
    'UndefinedStrandError', 'UnknownIdentifierError', 'ConfigurationError',
    'PipelineConfig', 'load_config'
]
