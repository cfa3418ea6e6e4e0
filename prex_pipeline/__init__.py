#!/usr/bin/env python3

"""
Principal Isoform Pipeline

Selects the principal (canonical) isoform of queried genes or transcripts
from a GENCODE-style annotation and extracts a sequence window around the
isoform's start codon.

Modules:
- core: Data structures, exceptions, configuration, parsing and selection
- utils: Performance monitoring
- tests: Unit test suite
"""

__version__ = "1.0.0"

from .core.data_structures import AnnotationRecord, Region, expand_if_new, append_if_new
from .core.exceptions import (
    PrexError, AnnotationParseError, MalformedAttributeError,
    AmbiguousPrincipalIsoformError, UnknownIdentifierError,
    IdentifierNotFoundError, UndefinedStrandError, ExtractionError,
    ConfigurationError
)
from .core.config import PipelineConfig, load_config
from .core.identifiers import IdentifierType, classify_identifier, build_query_set
from .core.parsers import AnnotationReader
from .core.processors import (
    IsoformPriorityComparator, AnnotationStreamResolver, WindowExpander
)
from .core.pipeline import PrexPipeline, PipelineReport

__all__ = [
    # Main pipeline
    'PrexPipeline', 'PipelineReport',
    # Data structures
    'AnnotationRecord', 'Region', 'expand_if_new', 'append_if_new',
    # Selection
    'IsoformPriorityComparator', 'AnnotationStreamResolver', 'WindowExpander',
    'AnnotationReader', 'IdentifierType', 'classify_identifier', 'build_query_set',
    # Exceptions
    'PrexError', 'AnnotationParseError', 'MalformedAttributeError',
    'AmbiguousPrincipalIsoformError', 'UnknownIdentifierError',
    'IdentifierNotFoundError', 'UndefinedStrandError', 'ExtractionError',
    'ConfigurationError',
    # Configuration
    'PipelineConfig', 'load_config'
]
