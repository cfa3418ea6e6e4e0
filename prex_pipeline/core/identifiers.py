#!/usr/bin/env python3

"""
Identifier classification.

Recognizes Ensembl, UCSC, RefSeq and gene symbol naming conventions and maps
each identifier to the annotation attribute it should be matched against.
"""

import logging
import re
from enum import Enum
from typing import Dict, Iterable, Optional, Tuple

from .exceptions import UnknownIdentifierError


class IdentifierType(Enum):
    """Kinds of identifiers, with description and matching attribute key."""
    ENST = ("ensembl! transcript", "transcript_id")
    ENSG = ("ensembl! gene", "gene_id")
    UCSC = ("UCSC transcript id", None)
    REFSEQ = ("NCBI Refseq id", None)
    SYMBOL = ("Official gene symbol", "gene_name")
    UNKNOWN = ("Unknown identifier type", None)

    def __init__(self, description: str, attribute_key: Optional[str]):
        self.description = description
        self.attribute_key = attribute_key

    @property
    def is_supported(self) -> bool:
        """Check if identifiers of this type can be matched against annotation."""
        return self.attribute_key is not None


# Checked in order; the first match wins
_ID_PATTERNS = [
    (IdentifierType.ENST, re.compile(r"^ENST[0-9]{11}")),
    (IdentifierType.ENSG, re.compile(r"^ENSG[0-9]{11}")),
    (IdentifierType.UCSC, re.compile(r"^uc[0-9]{3}[a-z]{3}\.")),
    (IdentifierType.REFSEQ, re.compile(r"^[NX][GM]_")),
    (IdentifierType.SYMBOL, re.compile(r"[A-Z0-9][A-Za-z0-9]{1,}")),
]


def classify_identifier(identifier: str) -> IdentifierType:
    """Decode an identifier like "ENST00000356575" or "RUNX1" into its type."""
    for id_type, pattern in _ID_PATTERNS:
        if pattern.search(identifier):
            return id_type

    logging.warning(f"Could not understand identifier: {identifier}")
    return IdentifierType.UNKNOWN


def build_query_set(identifiers: Iterable[str]) -> Tuple[Dict[str, str], Dict[str, UnknownIdentifierError]]:
    """
    Map each identifier to the attribute key used to match it.

    Args:
        identifiers: Identifiers in query order (duplicates are collapsed)

    Returns:
        Tuple of (query set, rejected identifiers with their error)
    """
    query_set: Dict[str, str] = {}
    rejected: Dict[str, UnknownIdentifierError] = {}

    for identifier in identifiers:
        if identifier in query_set or identifier in rejected:
            continue

        id_type = classify_identifier(identifier)
        logging.info(f"{identifier} -> {id_type.description}")

        if id_type.is_supported:
            query_set[identifier] = id_type.attribute_key
        else:
            rejected[identifier] = UnknownIdentifierError(
                f"Unsupported identifier type ({id_type.description})",
                identifier=identifier,
                id_type=id_type.name
            )

    return query_set, rejected
