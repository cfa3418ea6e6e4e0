#!/usr/bin/env python3

"""
Main pipeline class for principal isoform window extraction.

Classifies identifiers, resolves each one to its principal isoform in a
single pass over the annotation, expands the isoform start into a window and
extracts the window sequence.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from .config import PipelineConfig
from .data_structures import Region
from .exceptions import (
    PrexError, AmbiguousPrincipalIsoformError, UnknownIdentifierError,
    IdentifierNotFoundError, UndefinedStrandError, ExtractionError
)
from .extractors import SequenceExtractor, get_extractor
from .identifiers import build_query_set
from .parsers import AnnotationReader
from .processors import (
    IsoformPriorityComparator, AnnotationStreamResolver, WindowExpander,
    WindowOverlapChecker
)
from ..utils.performance_monitor import PerformanceMonitor

STATUS_EXTRACTED = "extracted"
STATUS_UNKNOWN = "unknown_identifier"
STATUS_NOT_FOUND = "not_found"
STATUS_AMBIGUOUS = "ambiguous"
STATUS_UNDEFINED_STRAND = "undefined_strand"
STATUS_EXTRACTION_FAILED = "extraction_failed"
STATUS_PENDING = "pending"

_ERROR_STATUSES = [
    (UnknownIdentifierError, STATUS_UNKNOWN),
    (IdentifierNotFoundError, STATUS_NOT_FOUND),
    (AmbiguousPrincipalIsoformError, STATUS_AMBIGUOUS),
    (UndefinedStrandError, STATUS_UNDEFINED_STRAND),
    (ExtractionError, STATUS_EXTRACTION_FAILED),
]


def status_for_error(error: PrexError) -> str:
    """Map a per-identifier error to its outcome status."""
    for error_type, status in _ERROR_STATUSES:
        if isinstance(error, error_type):
            return status
    return STATUS_EXTRACTION_FAILED


@dataclass
class IdentifierOutcome:
    """Final result for one queried identifier."""
    identifier: str
    status: str = STATUS_PENDING
    region: Optional[Region] = None
    window: Optional[Region] = None
    output_path: str = ""
    message: str = ""

    @property
    def succeeded(self) -> bool:
        return self.status == STATUS_EXTRACTED

    def fail(self, error: PrexError) -> None:
        self.status = status_for_error(error)
        self.message = str(error)


@dataclass
class PipelineReport:
    """Per-identifier outcomes of one pipeline run."""
    outcomes: Dict[str, IdentifierOutcome] = field(default_factory=dict)
    overlaps: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def extracted_count(self) -> int:
        return sum(1 for o in self.outcomes.values() if o.succeeded)

    @property
    def all_succeeded(self) -> bool:
        return bool(self.outcomes) and self.extracted_count == len(self.outcomes)

    def status_counts(self) -> Dict[str, int]:
        """Count outcomes by status."""
        counts: Dict[str, int] = {}
        for outcome in self.outcomes.values():
            counts[outcome.status] = counts.get(outcome.status, 0) + 1
        return counts

    def failures(self) -> List[IdentifierOutcome]:
        return [o for o in self.outcomes.values() if not o.succeeded]


class PrexPipeline:
    """Main pipeline class that coordinates all processing phases."""

    def __init__(self, config: PipelineConfig, extractor: Optional[SequenceExtractor] = None):
        self.config = config
        self.monitor = PerformanceMonitor(
            memory_limit_mb=config.memory_limit_mb,
            enabled=config.enable_memory_monitoring
        )
        self.resolver = AnnotationStreamResolver(IsoformPriorityComparator(), config.feature_type)
        self.expander = WindowExpander(config.upstream, config.downstream)
        self.overlap_checker = WindowOverlapChecker()
        self.extractor = extractor or get_extractor(config.extractor, config.bedtools_path)

    def run(self, identifiers: Iterable[str]) -> PipelineReport:
        """
        Run the complete pipeline for a batch of identifiers.

        Args:
            identifiers: Gene symbols, Ensembl gene or transcript ids

        Returns:
            PipelineReport with one outcome per distinct identifier. Failures
            of single identifiers are recorded there; only errors affecting
            the whole batch (unreadable annotation, bad configuration) raise.
        """
        output_dir = Path(self.config.output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        file_handler = self._setup_pipeline_logging(output_dir)

        try:
            logging.info("Starting principal isoform pipeline")
            logging.info(f"Configuration: {self.config}")

            report = PipelineReport()
            query_set = self._classify(identifiers, report)
            resolutions = self._scan_annotation(query_set)
            windows = self._expand_windows(resolutions, report)
            self._extract_sequences(windows, report, output_dir)

            report.overlaps = self.overlap_checker.find_overlaps(windows)
            self._write_report(report, output_dir)

            logging.info(f"Extracted {report.extracted_count}/{len(report.outcomes)} identifiers")
            self.monitor.log_report()
            return report
        finally:
            self.extractor.close()
            logging.getLogger().removeHandler(file_handler)
            file_handler.close()

    def _setup_pipeline_logging(self, output_dir: Path) -> logging.Handler:
        """Add a log file handler for this run."""
        file_handler = logging.FileHandler(output_dir / 'prex.log')
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(levelname)s - %(message)s'
        ))

        root_logger = logging.getLogger()
        root_logger.addHandler(file_handler)

        if self.config.debug_mode:
            root_logger.setLevel(logging.DEBUG)

        return file_handler

    def _classify(self, identifiers: Iterable[str], report: PipelineReport) -> Dict[str, str]:
        """Build the query set and record unsupported identifiers."""
        with self.monitor.phase("identifier_classification") as metrics:
            query_set, rejected = build_query_set(identifiers)

            for identifier in query_set:
                report.outcomes[identifier] = IdentifierOutcome(identifier=identifier)
            for identifier, error in rejected.items():
                outcome = IdentifierOutcome(identifier=identifier)
                outcome.fail(error)
                report.outcomes[identifier] = outcome
                logging.warning(str(error))

            metrics.items = len(query_set) + len(rejected)
            return query_set

    def _scan_annotation(self, query_set: Dict[str, str]):
        """Resolve principal isoforms in a single pass over the annotation."""
        with self.monitor.phase("annotation_scan") as metrics:
            reader = AnnotationReader(self.config.gff3)
            resolutions = self.resolver.resolve(reader, query_set)
            metrics.items = reader.records_read
            self.monitor.check_memory_limit()
            return resolutions

    def _expand_windows(self, resolutions, report: PipelineReport) -> Dict[str, Region]:
        """Turn every resolved region into an extraction window."""
        windows: Dict[str, Region] = {}

        with self.monitor.phase("window_expansion") as metrics:
            for identifier, resolution in resolutions.items():
                outcome = report.outcomes[identifier]
                if resolution.error is not None:
                    outcome.fail(resolution.error)
                    logging.warning(str(resolution.error))
                    continue

                outcome.region = resolution.region
                try:
                    windows[identifier] = self.expander.expand(resolution.region, identifier)
                except UndefinedStrandError as e:
                    outcome.fail(e)
                    logging.warning(str(e))
                    continue

                outcome.window = windows[identifier]
                logging.info(f"{identifier} found: {outcome.region} -> window {outcome.window}")

            metrics.items = len(resolutions)

        return windows

    def _extract_sequences(self, windows: Dict[str, Region], report: PipelineReport,
                           output_dir: Path) -> None:
        """Extract every window; identifiers are processed independently."""
        with self.monitor.phase("sequence_extraction") as metrics:
            with ThreadPoolExecutor(max_workers=self.config.parallel_workers) as executor:
                futures = {
                    identifier: executor.submit(
                        self.extractor.extract, window, identifier, self.config.fasta,
                        str(output_dir / f"{identifier}.fa")
                    )
                    for identifier, window in windows.items()
                }

                for identifier, future in futures.items():
                    outcome = report.outcomes[identifier]
                    try:
                        outcome.output_path = future.result()
                    except ExtractionError as e:
                        outcome.fail(e)
                        logging.warning(str(e))
                        continue
                    except Exception as e:
                        outcome.fail(ExtractionError(f"{type(e).__name__}: {e}", identifier=identifier))
                        logging.warning(f"{identifier}: extraction failed: {e}")
                        continue

                    outcome.status = STATUS_EXTRACTED
                    logging.info(f"{identifier} done: {outcome.output_path}")

            metrics.items = len(windows)

    def _write_report(self, report: PipelineReport, output_dir: Path) -> None:
        """Write a processing report to the output directory."""
        report_file = output_dir / 'processing_report.txt'
        performance = self.monitor.summary()

        try:
            with open(report_file, 'w') as f:
                f.write("Principal Isoform Pipeline - Processing Report\n")
                f.write("=" * 50 + "\n\n")

                f.write("RESULTS\n")
                f.write("-" * 20 + "\n")
                f.write(f"Identifiers queried: {len(report.outcomes)}\n")
                f.write(f"Sequences extracted: {report.extracted_count}\n")
                for status, count in sorted(report.status_counts().items()):
                    f.write(f"  {status}: {count}\n")
                f.write("\n")

                f.write("IDENTIFIERS\n")
                f.write("-" * 20 + "\n")
                for outcome in report.outcomes.values():
                    detail = outcome.window if outcome.window else outcome.message
                    f.write(f"{outcome.identifier}\t{outcome.status}\t{detail}\n")
                f.write("\n")

                if report.overlaps:
                    f.write("OVERLAPPING WINDOWS\n")
                    f.write("-" * 20 + "\n")
                    for first, second in report.overlaps:
                        f.write(f"{first}\t{second}\n")
                    f.write("\n")

                f.write("PERFORMANCE METRICS\n")
                f.write("-" * 20 + "\n")
                f.write(f"Total processing time: {performance['total_elapsed_time']:.2f} seconds\n")
                f.write(f"Peak memory usage: {performance['peak_memory_mb']:.1f} MB\n")
                for phase_name, phase_data in performance['phases'].items():
                    f.write(f"{phase_name}: {phase_data['elapsed_time']:.2f}s ")
                    f.write(f"({phase_data['items']} items)\n")

            logging.info(f"Generated processing report: {report_file}")

        except OSError as e:
            logging.warning(f"Failed to generate processing report: {e}")
