#!/usr/bin/env python3

"""
Unit tests for core data structures.

Tests annotation records and the region interval algebra.
"""

import unittest
import sys
import os

# Add the parent directory to the path to import modules
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../..')))

from prex_pipeline.core.data_structures import (
    AnnotationRecord, Region, expand_if_new, append_if_new, APPRIS_MISSING_RANK
)
from prex_pipeline.core.exceptions import MalformedAttributeError


class TestAnnotationRecord(unittest.TestCase):
    """Test the AnnotationRecord data structure."""

    def setUp(self):
        """Set up test fixtures."""
        self.record = AnnotationRecord(
            seqid="chr1",
            type="start_codon",
            start=3499922,
            end=3499924,
            strand="-",
            attributes={
                "tag": "basic,appris_principal_1,CCDS",
                "gene_id": "ENSG00000162591.15",
                "transcript_id": "ENST00000356575.8",
                "gene_name": "MEGF6",
                "transcript_support_level": "1",
                "level": "2",
            },
            source="HAVANA"
        )

    def test_appris_rank(self):
        """Test APPRIS principal rank extraction from the tag list."""
        self.assertEqual(self.record.appris_rank, 1)

        self.record.attributes["tag"] = "basic,CCDS,appris_principal_4"
        self.assertEqual(self.record.appris_rank, 4)

    def test_missing_appris_rank_never_wins(self):
        """Test that untagged records get the worst rank."""
        self.record.attributes["tag"] = "basic,CCDS"
        self.assertEqual(self.record.appris_rank, APPRIS_MISSING_RANK)

        del self.record.attributes["tag"]
        self.assertEqual(self.record.appris_rank, APPRIS_MISSING_RANK)
        self.assertGreater(APPRIS_MISSING_RANK, 1000)

    def test_multi_digit_appris_rank(self):
        """Test ranks with more than one digit."""
        self.record.attributes["tag"] = "appris_principal_12"
        self.assertEqual(self.record.appris_rank, 12)

    def test_malformed_appris_tag(self):
        """Test that an unparseable APPRIS tag raises MalformedAttributeError."""
        self.record.attributes["tag"] = "basic,appris_principal_x"
        with self.assertRaises(MalformedAttributeError):
            _ = self.record.appris_rank

    def test_int_attribute(self):
        """Test integer attribute parsing."""
        self.assertEqual(self.record.int_attribute("level"), 2)
        self.assertEqual(self.record.int_attribute("missing", default=0), 0)

        self.record.attributes["transcript_support_level"] = "NA"
        with self.assertRaises(MalformedAttributeError):
            self.record.int_attribute("transcript_support_level")

    def test_matches(self):
        """Test attribute matching predicate."""
        self.assertTrue(self.record.matches("gene_name", "MEGF6"))
        self.assertTrue(self.record.matches("gene_id", "ENSG00000162591.15"))
        self.assertFalse(self.record.matches("gene_name", "RUNX1"))
        self.assertFalse(self.record.matches("protein_id", "MEGF6"))
        # Matching does not change the record
        self.assertTrue(self.record.complete)

    def test_empty_record(self):
        """Test the empty record."""
        empty = AnnotationRecord.empty()
        self.assertFalse(empty.complete)
        self.assertFalse(empty.matches("gene_name", ""))
        self.assertTrue(empty.to_region().is_empty())

    def test_to_region(self):
        """Test conversion to a region."""
        region = self.record.to_region()
        self.assertEqual(region, Region("chr1", 3499922, 3499924, "-"))

    def test_invalid_record(self):
        """Test that invalid records raise ValueError."""
        with self.assertRaises(ValueError):
            AnnotationRecord(seqid="chr1", type="CDS", start=200, end=100, strand="+")

        with self.assertRaises(ValueError):
            AnnotationRecord(seqid="chr1", type="CDS", start=100, end=200, strand="x")

        # Unknown strand is allowed on records
        record = AnnotationRecord(seqid="chr1", type="CDS", start=100, end=100)
        self.assertIsNone(record.strand)


class TestRegion(unittest.TestCase):
    """Test the Region interval algebra."""

    def test_is_empty(self):
        """Test empty region detection."""
        self.assertTrue(Region().is_empty())
        self.assertFalse(Region("chr1", 0, 0).is_empty())
        self.assertFalse(Region(strand="+").is_empty())
        self.assertFalse(Region("chr1", 1, 10, "+").is_empty())

    def test_equality(self):
        """Test that regions compare equal on all four fields."""
        self.assertEqual(Region("chr1", 1, 10, "+"), Region("chr1", 1, 10, "+"))
        self.assertNotEqual(Region("chr1", 1, 10, "+"), Region("chr1", 1, 10, "-"))
        self.assertNotEqual(Region("chr1", 1, 10, "+"), Region("chr2", 1, 10, "+"))

    def test_str(self):
        """Test region string representation."""
        self.assertEqual(str(Region("chr1", 50, 103, "+")), "chr1:50-103(+)")
        self.assertEqual(str(Region("chr1", 50, 103)), "chr1:50-103(.)")

    def test_greater_than(self):
        """Test the partial dominance order."""
        base = Region("chr1", 100, 200, "+")

        self.assertTrue(Region("chr1", 50, 150, "+").greater_than(base))   # Further left
        self.assertTrue(Region("chr1", 150, 250, "+").greater_than(base))  # Further right
        self.assertFalse(Region("chr1", 120, 180, "+").greater_than(base))  # Contained
        self.assertFalse(base.greater_than(base))
        self.assertFalse(Region("chr2", 50, 250, "+").greater_than(base))  # Other chromosome
        self.assertFalse(Region("chr1", 50, 250, "-").greater_than(base))  # Other strand

    def test_greater_than_empty(self):
        """Test that any region dominates an empty one."""
        self.assertTrue(Region("chr1", 100, 200, "+").greater_than(Region()))
        self.assertFalse(Region().greater_than(Region()))

    def test_expand_to_moves_one_bound_per_call(self):
        """Test progressive single-bound widening."""
        region = Region("chr1", 100, 200, "+")
        other = Region("chr1", 50, 300, "+")

        once = region.expand_to(other)
        self.assertEqual(once, Region("chr1", 50, 200, "+"))

        twice = once.expand_to(other)
        self.assertEqual(twice, Region("chr1", 50, 300, "+"))

    def test_expand_to_empty(self):
        """Test that an empty region is replaced by the other region."""
        other = Region("chr1", 50, 300, "+")
        self.assertEqual(Region().expand_to(other), other)

    def test_expand_to_other_locus(self):
        """Test that regions on another locus are ignored."""
        region = Region("chr1", 100, 200, "+")
        self.assertEqual(region.expand_to(Region("chr2", 1, 1000, "+")), region)

    def test_expand_if_new(self):
        """Test folding candidates into a running region."""
        running = Region()
        running = expand_if_new(running, Region("chr1", 100, 200, "+"))
        self.assertEqual(running, Region("chr1", 100, 200, "+"))

        running = expand_if_new(running, Region("chr1", 120, 180, "+"))
        self.assertEqual(running, Region("chr1", 100, 200, "+"))

        running = expand_if_new(running, Region("chr1", 150, 260, "+"))
        self.assertEqual(running, Region("chr1", 100, 260, "+"))

    def test_expand_if_new_idempotent(self):
        """Test that folding the same candidate twice equals folding it once."""
        candidate = Region("chr1", 80, 150, "+")
        for running in (Region(), Region("chr1", 100, 200, "+")):
            once = expand_if_new(running, candidate)
            twice = expand_if_new(once, candidate)
            self.assertEqual(once, twice)

    def test_append_if_new(self):
        """Test appending only unseen regions."""
        regions = append_if_new([], Region("chr1", 1, 10, "+"))
        regions = append_if_new(regions, Region("chr1", 1, 10, "+"))
        regions = append_if_new(regions, Region("chr1", 1, 10, "-"))
        self.assertEqual(len(regions), 2)


if __name__ == '__main__':
    unittest.main()
