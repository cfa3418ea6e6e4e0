#!/usr/bin/env python3

"""
Core data structures for the principal isoform pipeline.

Defines the annotation record produced while streaming a GFF3/GTF file and
the genomic region type together with its interval algebra.
"""

import re
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional

from .exceptions import MalformedAttributeError

APPRIS_KEYWORD = "appris_principal_"

# Rank given to records without an appris_principal_N tag; lower ranks win.
APPRIS_MISSING_RANK = 2 ** 31 - 1

VALID_STRANDS = ('+', '-')

_APPRIS_PATTERN = re.compile(r"^appris_principal_(\d+)$")


@dataclass
class AnnotationRecord:
    """One row of an annotation file.

    An incomplete record (``complete=False``) stands for "no candidate yet"
    and loses against any complete record.
    """
    seqid: str
    type: str
    start: int
    end: int
    strand: Optional[str] = None
    attributes: Dict[str, str] = field(default_factory=dict)
    source: str = ""
    complete: bool = True

    def __post_init__(self):
        """Validate record data after initialization."""
        if not self.complete:
            return
        if self.start > self.end:
            raise ValueError(f"Invalid record coordinates: {self.start}-{self.end}")
        if self.strand is not None and self.strand not in VALID_STRANDS:
            raise ValueError(f"Invalid strand: {self.strand}")

    @classmethod
    def empty(cls) -> 'AnnotationRecord':
        """Return the identity element of the principal isoform fold."""
        return cls(seqid="", type="", start=0, end=0, complete=False)

    def get_attribute(self, key: str, default: str = "") -> str:
        """Get an attribute value, or ``default`` when absent."""
        return self.attributes.get(key, default)

    def matches(self, key: str, identifier: str) -> bool:
        """Check whether the attribute ``key`` of this record equals ``identifier``."""
        return self.complete and self.attributes.get(key) == identifier

    def int_attribute(self, key: str, default: int = 0) -> int:
        """
        Parse an integer attribute.

        Missing attributes yield ``default``; values that are present but not
        integers raise MalformedAttributeError.
        """
        value = self.attributes.get(key)
        if value is None or value == "":
            return default
        try:
            return int(value)
        except ValueError:
            raise MalformedAttributeError("Expected an integer", key=key, value=value)

    @property
    def tags(self) -> List[str]:
        """Get the comma-separated ``tag`` attribute as a list."""
        tag = self.attributes.get('tag', '')
        return [t.strip() for t in tag.split(',') if t.strip()]

    @property
    def appris_rank(self) -> int:
        """
        Get the APPRIS principal rank N from an ``appris_principal_N`` tag.

        Records without such a tag get APPRIS_MISSING_RANK.
        """
        for tag in self.tags:
            if not tag.startswith(APPRIS_KEYWORD):
                continue
            match = _APPRIS_PATTERN.match(tag)
            if not match:
                raise MalformedAttributeError("Unparseable APPRIS tag", key='tag', value=tag)
            return int(match.group(1))
        return APPRIS_MISSING_RANK

    def to_region(self) -> 'Region':
        """Get the genomic region covered by this record."""
        if not self.complete:
            return Region()
        return Region(chrom=self.seqid, start=self.start, end=self.end, strand=self.strand)


@dataclass(frozen=True)
class Region:
    """A resolved genomic interval (1-based, inclusive)."""
    chrom: str = ""
    start: int = 0
    end: int = 0
    strand: Optional[str] = None

    def __str__(self):
        return f"{self.chrom}:{self.start}-{self.end}({self.strand or '.'})"

    @property
    def length(self) -> int:
        """Get region length."""
        return self.end - self.start + 1

    def is_empty(self) -> bool:
        """Check if the region is totally uninitialized."""
        return self.start == 0 and self.end == 0 and self.chrom == "" and self.strand is None

    def same_locus(self, other: 'Region') -> bool:
        """Check if both regions lie on the same chromosome and strand."""
        return self.chrom == other.chrom and self.strand == other.strand

    def greater_than(self, other: 'Region') -> bool:
        """
        Check if this region extends beyond ``other``.

        On a shared chromosome and strand, the region dominates when it starts
        further left or, failing that, ends further right. Any region dominates
        an empty one. This is a partial order.
        """
        if self.same_locus(other):
            if self.start < other.start:
                return True
            elif self.end > other.end:
                return True
        elif other.is_empty():
            return True
        return False

    def expand_to(self, other: 'Region') -> 'Region':
        """
        Widen this region towards ``other``.

        Only one bound moves per call: the start if ``other`` starts further
        left, otherwise the end if ``other`` ends further right. An empty
        region is replaced by ``other``.
        """
        if self.same_locus(other):
            if self.start > other.start:
                return replace(self, start=other.start)
            elif self.end < other.end:
                return replace(self, end=other.end)
        elif self.start == 0 and self.end == 0:
            return other
        return self


def expand_if_new(running: Region, candidate: Region) -> Region:
    """Fold ``candidate`` into ``running`` if it extends beyond it."""
    if candidate.greater_than(running):
        return running.expand_to(candidate)
    return running


def append_if_new(regions: List[Region], addition: Region) -> List[Region]:
    """Append ``addition`` unless an equal region is already listed."""
    if addition in regions:
        return regions
    return regions + [addition]
