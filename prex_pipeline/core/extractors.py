#!/usr/bin/env python3

"""
Sequence extraction for resolved windows.

Two backends are available: ``bedtools getfasta`` run as a subprocess, and
in-process slicing of an indexed FASTA with pyfaidx.
"""

import logging
import os
import subprocess
import tempfile
import threading
from typing import Dict, Optional

import pyfaidx

from .data_structures import Region
from .exceptions import ExtractionError


def window_label(region: Region, name: str) -> str:
    """Build the FASTA header used for an extracted window."""
    return f"{name};{region}"


class SequenceExtractor:
    """Base class: one region in, one named FASTA record out."""

    def extract(self, region: Region, name: str, fasta_in: str, fasta_out: str) -> str:
        """Extract ``region`` from ``fasta_in`` into ``fasta_out`` and return its path."""
        raise NotImplementedError

    def close(self) -> None:
        """Release resources held between extractions."""


class BedtoolsExtractor(SequenceExtractor):
    """Extract windows through ``bedtools getfasta``."""

    def __init__(self, bedtools_path: str = "bedtools", tmp_dir: Optional[str] = None):
        self.bedtools_path = bedtools_path
        self.tmp_dir = tmp_dir

    def to_bed_line(self, region: Region, name: str) -> str:
        """Format a region as a 6-column BED line (0-based, half-open)."""
        return "\t".join([
            region.chrom,
            str(region.start - 1),
            str(region.end),
            window_label(region, name),
            ".",
            region.strand or ".",
        ])

    def extract(self, region: Region, name: str, fasta_in: str, fasta_out: str) -> str:
        logging.debug(f"bedtools extraction of {name}: {region}")

        bed_file = tempfile.NamedTemporaryFile(mode='w', prefix='prex_', suffix='.bed',
                                               dir=self.tmp_dir, delete=False)
        cmd = [
            self.bedtools_path, "getfasta", "-name", "-s",
            "-fi", fasta_in, "-bed", bed_file.name, "-fo", fasta_out
        ]

        try:
            with bed_file:
                bed_file.write(self.to_bed_line(region, name) + "\n")
            result = subprocess.run(cmd, capture_output=True, text=True)
        except OSError as e:
            raise ExtractionError(f"bedtools extraction failed: {e}", identifier=name)
        finally:
            os.remove(bed_file.name)

        if result.returncode != 0:
            raise ExtractionError(
                f"bedtools getfasta exited with status {result.returncode}: {result.stderr.strip()}",
                identifier=name
            )

        return fasta_out


class FaidxExtractor(SequenceExtractor):
    """Extract windows from an indexed FASTA with pyfaidx."""

    def __init__(self, line_width: int = 60):
        self.line_width = line_width
        self._genomes: Dict[str, pyfaidx.Fasta] = {}
        self._lock = threading.Lock()

    def _genome(self, fasta_in: str) -> pyfaidx.Fasta:
        if fasta_in not in self._genomes:
            logging.info(f"Loading genome from {fasta_in}")
            self._genomes[fasta_in] = pyfaidx.Fasta(fasta_in)
        return self._genomes[fasta_in]

    def fetch(self, region: Region, fasta_in: str) -> str:
        """Get the window sequence, reverse complemented on the minus strand."""
        if region.start < 1:
            raise ExtractionError(f"Window {region} starts before the contig")

        with self._lock:
            genome = self._genome(fasta_in)
            if region.chrom not in genome:
                raise ExtractionError(f"Contig {region.chrom} not found in {fasta_in}")
            # pyfaidx uses 0-based indexing, GFF uses 1-based
            sequence = genome[region.chrom][region.start - 1:region.end]
            if region.strand == '-':
                sequence = sequence.reverse.complement
            return str(sequence)

    def extract(self, region: Region, name: str, fasta_in: str, fasta_out: str) -> str:
        logging.debug(f"pyfaidx extraction of {name}: {region}")

        try:
            sequence = self.fetch(region, fasta_in)
        except ExtractionError as e:
            e.identifier = name
            raise
        except (OSError, KeyError, ValueError, pyfaidx.FastaIndexingError) as e:
            raise ExtractionError(f"Failed to extract {region}: {e}", identifier=name)

        with open(fasta_out, 'w') as f:
            f.write(f">{window_label(region, name)}\n")
            for i in range(0, len(sequence), self.line_width):
                f.write(sequence[i:i + self.line_width] + "\n")

        return fasta_out

    def close(self) -> None:
        """Close all opened genomes."""
        with self._lock:
            for genome in self._genomes.values():
                genome.close()
            self._genomes.clear()


def get_extractor(name: str, bedtools_path: str = "bedtools") -> SequenceExtractor:
    """Create the extraction backend named ``name``."""
    if name == "bedtools":
        return BedtoolsExtractor(bedtools_path)
    if name == "faidx":
        return FaidxExtractor()
    raise ValueError(f"Unknown extractor: {name}")
