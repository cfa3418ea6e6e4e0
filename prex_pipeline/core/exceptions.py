#!/usr/bin/env python3

"""
Custom exceptions for the principal isoform pipeline.

Per-identifier failures (ambiguous isoforms, missing identifiers, undefined
strands, failed extractions) are collected into results rather than raised
through a whole batch.
"""

class PrexError(Exception):
    """Base exception for all pipeline-related errors."""
    pass


class AnnotationParseError(PrexError):
    """Error occurred while reading the annotation file."""

    def __init__(self, message: str, filename: str = "", line_number: int = 0):
        super().__init__(message)
        self.filename = filename
        self.line_number = line_number

    def __str__(self):
        if self.filename and self.line_number:
            return f"Parse error in {self.filename} at line {self.line_number}: {super().__str__()}"
        elif self.filename:
            return f"Parse error in {self.filename}: {super().__str__()}"
        return super().__str__()


class MalformedAttributeError(PrexError):
    """An attribute value could not be parsed as expected."""

    def __init__(self, message: str, key: str = "", value: str = ""):
        super().__init__(message)
        self.key = key
        self.value = value

    def __str__(self):
        if self.key:
            return f"Malformed attribute {self.key}={self.value!r}: {super().__str__()}"
        return super().__str__()


class IdentifierError(PrexError):
    """Error bound to a single queried identifier."""

    def __init__(self, message: str, identifier: str = ""):
        super().__init__(message)
        self.identifier = identifier

    def __str__(self):
        if self.identifier:
            return f"{self.identifier}: {super().__str__()}"
        return super().__str__()


class AmbiguousPrincipalIsoformError(IdentifierError):
    """Two different candidates tie on every principal isoform criterion."""

    def __init__(self, message: str, identifier: str = "", first=None, second=None):
        super().__init__(message, identifier)
        self.first = first
        self.second = second


class UnknownIdentifierError(IdentifierError):
    """Identifier type cannot be matched against annotation attributes."""

    def __init__(self, message: str, identifier: str = "", id_type: str = ""):
        super().__init__(message, identifier)
        self.id_type = id_type


class IdentifierNotFoundError(IdentifierError):
    """Annotation scan completed without a candidate for the identifier."""
    pass


class UndefinedStrandError(IdentifierError):
    """A window cannot be computed for a region without strand."""

    def __init__(self, message: str, identifier: str = "", region=None):
        super().__init__(message, identifier)
        self.region = region


class ExtractionError(IdentifierError):
    """Sequence extraction for a window failed."""
    pass


class ConfigurationError(PrexError):
    """Error in pipeline configuration."""
    pass


class MemoryLimitError(PrexError):
    """Memory usage exceeded limits."""

    def __init__(self, message: str, current_usage: float, limit: float):
        super().__init__(message)
        self.current_usage = current_usage
        self.limit = limit

    def __str__(self):
        return f"Memory error: {super().__str__()} (current: {self.current_usage:.1f}MB, limit: {self.limit:.1f}MB)"
