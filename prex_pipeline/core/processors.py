#!/usr/bin/env python3

"""
Processing classes for principal isoform selection and window expansion.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from intervaltree import IntervalTree

from .data_structures import AnnotationRecord, Region, APPRIS_MISSING_RANK, expand_if_new
from .exceptions import (
    PrexError, MalformedAttributeError, AmbiguousPrincipalIsoformError,
    IdentifierNotFoundError, UndefinedStrandError
)


class IsoformPriorityComparator:
    """
    Decide which of two annotation records is more likely the principal isoform.

    Criteria, each consulted only when the previous ones tie:

    1. completeness (a real candidate beats the empty record)
    2. APPRIS principal rank from the ``tag`` attribute (missing ranks last)
    3. ``transcript_support_level`` (missing counts as 0)
    4. ``level`` (missing counts as 0)
    5. identical start/end coordinates: the first record is kept

    Lower values win for 2-4. Two different records that still tie raise
    AmbiguousPrincipalIsoformError. Based on the GENCODE FAQ:
    http://www.gencodegenes.org/faq.html
    """

    def compare(self, first: AnnotationRecord, second: AnnotationRecord,
                identifier: str = "") -> AnnotationRecord:
        """Return the winning record of ``first`` and ``second``."""
        if not first.complete and not second.complete:
            return first
        if not first.complete:
            return second
        if not second.complete:
            return first

        first_key = self.priority_key(first)
        second_key = self.priority_key(second)
        if first_key < second_key:
            return first
        if second_key < first_key:
            return second

        if first.start == second.start and first.end == second.end and first != second:
            return first

        raise AmbiguousPrincipalIsoformError(
            f"Cannot determine principal isoform between {first.to_region()} "
            f"and {second.to_region()}",
            identifier=identifier, first=first, second=second
        )

    def priority_key(self, record: AnnotationRecord) -> Tuple[int, int, int]:
        """Get the (APPRIS rank, support level, level) sort key; lower is better."""
        return (
            self.appris_rank(record),
            self._numeric_attribute(record, 'transcript_support_level'),
            self._numeric_attribute(record, 'level'),
        )

    def appris_rank(self, record: AnnotationRecord) -> int:
        """Get the APPRIS principal rank, or APPRIS_MISSING_RANK."""
        try:
            return record.appris_rank
        except MalformedAttributeError as e:
            logging.warning(f"{e}; treating as untagged")
            return APPRIS_MISSING_RANK

    def _numeric_attribute(self, record: AnnotationRecord, key: str) -> int:
        try:
            return record.int_attribute(key, default=0)
        except MalformedAttributeError as e:
            logging.debug(f"{e}; using 0")
            return 0


@dataclass
class Resolution:
    """Outcome of resolving one identifier against the annotation stream."""
    identifier: str
    attribute_key: str
    record: AnnotationRecord = field(default_factory=AnnotationRecord.empty)
    region: Region = field(default_factory=Region)
    error: Optional[PrexError] = None
    candidates: int = 0

    @property
    def found(self) -> bool:
        """Check if a principal isoform was selected without error."""
        return self.record.complete and self.error is None


class AnnotationStreamResolver:
    """Select the principal isoform record per identifier in one streaming pass."""

    def __init__(self, comparator: Optional[IsoformPriorityComparator] = None,
                 feature_type: str = "start_codon"):
        self.comparator = comparator or IsoformPriorityComparator()
        self.feature_type = feature_type

    def resolve(self, records: Iterable[AnnotationRecord],
                query_set: Dict[str, str]) -> Dict[str, Resolution]:
        """
        Fold every relevant record into its identifier's running best.

        Args:
            records: Annotation records in file order
            query_set: Identifier -> attribute key used to match it

        Returns:
            Identifier -> Resolution, in query order. Identifiers without a
            candidate carry IdentifierNotFoundError; identifiers whose fold ever
            tied carry AmbiguousPrincipalIsoformError.
        """
        results = {
            identifier: Resolution(identifier=identifier, attribute_key=key)
            for identifier, key in query_set.items()
        }

        for record in records:
            if record.type != self.feature_type:
                continue

            identifier = self.match_identifier(record, query_set)
            if identifier is None:
                continue

            self._fold(results[identifier], record)

        for resolution in results.values():
            if not resolution.record.complete and resolution.error is None:
                resolution.error = IdentifierNotFoundError(
                    f"No {self.feature_type} record with {resolution.attribute_key} matching",
                    identifier=resolution.identifier
                )

        found = sum(1 for r in results.values() if r.found)
        logging.info(f"Resolved principal isoforms for {found}/{len(results)} identifiers")
        return results

    @staticmethod
    def match_identifier(record: AnnotationRecord, query_set: Dict[str, str]) -> Optional[str]:
        """Get the first identifier the record matches, if any."""
        return next(
            (identifier for identifier, key in query_set.items() if record.matches(key, identifier)),
            None
        )

    def _fold(self, resolution: Resolution, record: AnnotationRecord) -> None:
        """Merge a matching record into the current best.

        Rows of the transcript already selected (a start codon split by an
        intron, several CDS rows) widen its region; rows of another
        transcript compete through the comparator.
        """
        resolution.candidates += 1

        if self.same_transcript(resolution.record, record):
            resolution.region = expand_if_new(resolution.region, record.to_region())
            logging.debug(f"{resolution.identifier}: merged {record.to_region()} "
                          f"into {resolution.region}")
            return

        try:
            best = self.comparator.compare(
                resolution.record, record, identifier=resolution.identifier
            )
        except AmbiguousPrincipalIsoformError as e:
            logging.warning(f"Failed to identify principal isoform for {e}")
            if resolution.error is None:
                resolution.error = e
            return

        if best is not resolution.record:
            resolution.record = best
            resolution.region = best.to_region()

    @staticmethod
    def same_transcript(best: AnnotationRecord, record: AnnotationRecord) -> bool:
        """Check if ``record`` is another row of the transcript held as ``best``."""
        transcript_id = best.get_attribute('transcript_id')
        return best.complete and transcript_id != "" and \
            record.get_attribute('transcript_id') == transcript_id


class WindowExpander:
    """Convert a principal isoform region into an upstream/downstream window."""

    def __init__(self, upstream: int = 0, downstream: int = 0):
        if upstream < 0 or downstream < 0:
            raise ValueError(f"Window distances must be >= 0: up={upstream}, down={downstream}")
        self.upstream = upstream
        self.downstream = downstream

    def expand(self, region: Region, identifier: str = "") -> Region:
        """
        Anchor a window at the 5' end of ``region``.

        On ``+`` the window is [start - upstream, start + downstream]; on ``-``
        it is [end - downstream, end + upstream]. Bounds are not clamped.
        """
        if region.strand == '+':
            start = region.start - self.upstream
            end = region.start + self.downstream
        elif region.strand == '-':
            start = region.end - self.downstream
            end = region.end + self.upstream
        else:
            raise UndefinedStrandError(
                f"No strand found for {region}", identifier=identifier, region=region
            )
        return Region(chrom=region.chrom, start=start, end=end, strand=region.strand)


class WindowOverlapChecker:
    """Detect extraction windows of different identifiers that share sequence."""

    def find_overlaps(self, windows: Dict[str, Region]) -> List[Tuple[str, str]]:
        """Get sorted pairs of identifiers whose windows overlap."""
        chrom_trees = defaultdict(IntervalTree)

        for identifier, window in windows.items():
            # IntervalTree intervals are half-open
            chrom_trees[window.chrom].addi(window.start, window.end + 1, identifier)

        overlaps = set()
        for tree in chrom_trees.values():
            for interval in tree:
                for other in tree.overlap(interval.begin, interval.end):
                    if other.data != interval.data:
                        overlaps.add(tuple(sorted((interval.data, other.data))))

        for first, second in sorted(overlaps):
            logging.warning(f"Windows of {first} ({windows[first]}) and "
                            f"{second} ({windows[second]}) overlap")

        return sorted(overlaps)
