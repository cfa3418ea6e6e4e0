#!/usr/bin/env python3

"""
File parsers for gene annotations and identifier lists.

Streams GFF3/GTF rows (plain or gzip-compressed) as AnnotationRecord
objects in a single forward pass.
"""

import gzip
import logging
import os
from typing import Dict, Iterator, List
from urllib.parse import unquote

from .data_structures import AnnotationRecord, VALID_STRANDS
from .exceptions import AnnotationParseError

GZIP_MAGIC = b"\x1f\x8b"


def is_gzipped(file_path: str) -> bool:
    """Detect gzip compression from magic bytes, falling back to the extension."""
    try:
        with open(file_path, 'rb') as f:
            magic = f.read(2)
            if len(magic) == 2:
                return magic == GZIP_MAGIC
    except OSError:
        pass
    return file_path.endswith('.gz')


def detect_file_type(file_path: str) -> str:
    """Get "GTF" or "GFF3" from the file name."""
    name = file_path.lower()
    if name.endswith('.gz'):
        name = name[:-3]
    return "GTF" if name.endswith('.gtf') else "GFF3"


class AnnotationReader:
    """Read GFF3/GTF files lazily with O(1) memory per record."""

    def __init__(self, file_path: str):
        self.file_path = file_path
        self.file_type = detect_file_type(file_path)
        self.records_read = 0

    def __iter__(self) -> Iterator[AnnotationRecord]:
        return self.read()

    def read(self) -> Iterator[AnnotationRecord]:
        """Yield one AnnotationRecord per data row."""
        logging.info(f"Reading {self.file_type} file: {self.file_path}")

        try:
            handle = self._open()
        except OSError as e:
            raise AnnotationParseError(f"Cannot open annotation file: {e}", self.file_path)

        with handle:
            try:
                for line_num, line in enumerate(handle, 1):
                    line = line.rstrip('\r\n')
                    if not line.strip():
                        continue
                    if line.startswith('##FASTA'):
                        break
                    if line.startswith('#'):
                        continue

                    record = self._parse_line(line, line_num)
                    self.records_read += 1
                    yield record
            except (OSError, EOFError, UnicodeDecodeError) as e:
                raise AnnotationParseError(f"Failed to read {self.file_type} file: {e}", self.file_path)

        logging.info(f"Read {self.records_read} records from {self.file_path}")

    def _open(self):
        if is_gzipped(self.file_path):
            return gzip.open(self.file_path, 'rt')
        return open(self.file_path, 'r')

    def _parse_line(self, line: str, line_num: int) -> AnnotationRecord:
        """Parse one tab-separated annotation row."""
        parts = line.split('\t')
        if len(parts) != 9:
            raise AnnotationParseError(
                f"Expected 9 tab-separated columns, found {len(parts)}",
                self.file_path, line_num
            )

        seqid, source, feature, start, end, score, strand, phase, attributes = parts

        try:
            start, end = int(start), int(end)
        except ValueError:
            raise AnnotationParseError(
                f"Non-integer coordinates: {start}-{end}", self.file_path, line_num
            )

        if self.file_type == "GTF":
            attr_dict = self._parse_gtf_attributes(attributes)
        else:
            attr_dict = self._parse_gff3_attributes(attributes)

        try:
            return AnnotationRecord(
                seqid=seqid,
                type=feature,
                start=start,
                end=end,
                strand=strand if strand in VALID_STRANDS else None,
                attributes=attr_dict,
                source=source
            )
        except ValueError as e:
            raise AnnotationParseError(str(e), self.file_path, line_num)

    def _parse_gff3_attributes(self, attr_string: str) -> Dict[str, str]:
        """Parse GFF3 attributes string."""
        attributes = {}
        for attr in attr_string.split(';'):
            if '=' in attr:
                key, value = attr.split('=', 1)
                attributes[key.strip()] = unquote(value)
        return attributes

    def _parse_gtf_attributes(self, attr_string: str) -> Dict[str, str]:
        """
        Parse GTF attributes string.

        Values may be quoted or bare (``level 2;``). Repeated keys such as
        ``tag`` are joined with commas.
        """
        attributes = {}
        for attr in attr_string.split(';'):
            attr = attr.strip()
            if not attr:
                continue
            key, _, value = attr.partition(' ')
            value = value.strip().strip('"')
            if key in attributes:
                attributes[key] = f"{attributes[key]},{value}"
            else:
                attributes[key] = value
        return attributes


def read_identifier_file(file_path: str) -> List[str]:
    """Read identifiers, one per line, ignoring blank lines."""
    identifiers = []
    with open(file_path, 'r') as f:
        for line in f:
            line = line.strip()
            if line:
                identifiers.append(line)
    return identifiers


def collect_identifiers(arguments: List[str]) -> List[str]:
    """
    Resolve command-line arguments into identifiers.

    A single argument naming an existing file is read as an identifier list;
    anything else is taken literally.
    """
    if len(arguments) == 1 and os.path.isfile(arguments[0]):
        return read_identifier_file(arguments[0])
    return list(arguments)
