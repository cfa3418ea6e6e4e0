#!/usr/bin/env python3

"""
Unit tests for the command line entry point.
"""

import os
import shutil
import sys
import tempfile
import unittest
from unittest.mock import patch

# Add the parent directory to the path to import modules
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../..')))

import pipeline_cli
from prex_pipeline.core.pipeline import (
    IdentifierOutcome, PipelineReport, STATUS_EXTRACTED, STATUS_NOT_FOUND
)


def make_report(**statuses) -> PipelineReport:
    report = PipelineReport()
    for identifier, status in statuses.items():
        report.outcomes[identifier] = IdentifierOutcome(identifier, status=status)
    return report


class TestPipelineCli(unittest.TestCase):
    """Test argument handling and exit codes."""

    def setUp(self):
        """Set up test fixtures."""
        self.temp_dir = tempfile.mkdtemp()
        self.gff3 = os.path.join(self.temp_dir, "annotation.gff3")
        self.fasta = os.path.join(self.temp_dir, "genome.fa")
        for path in (self.gff3, self.fasta):
            with open(path, 'w') as f:
                f.write("")

        env = {k: v for k, v in os.environ.items() if not k.startswith("PREX_")}
        for patcher in (patch.dict(os.environ, env, clear=True),
                        patch("pipeline_cli.DEFAULT_CONFIG_FILE",
                              os.path.join(self.temp_dir, "prex.json"))):
            patcher.start()
            self.addCleanup(patcher.stop)

    def tearDown(self):
        """Clean up test fixtures."""
        shutil.rmtree(self.temp_dir)

    def _argv(self, *extra):
        return ["--gff3", self.gff3, "--fasta", self.fasta,
                "--output-dir", self.temp_dir, *extra]

    def test_all_extracted(self):
        """Test exit status 0 and CLI overrides."""
        with patch("prex_pipeline.PrexPipeline") as pipeline_cls:
            pipeline_cls.return_value.run.return_value = make_report(RUNX1=STATUS_EXTRACTED)
            status = pipeline_cli.main(self._argv("--up", "500", "--down", "3",
                                                  "--workers", "4", "RUNX1"))

        self.assertEqual(status, pipeline_cli.EXIT_SUCCESS)
        config = pipeline_cls.call_args[0][0]
        self.assertEqual((config.upstream, config.downstream), (500, 3))
        self.assertEqual(config.parallel_workers, 4)
        self.assertEqual(config.gff3, self.gff3)
        pipeline_cls.return_value.run.assert_called_once_with(["RUNX1"])

    def test_partial_success(self):
        """Test exit status 2 when some identifiers fail."""
        with patch("prex_pipeline.PrexPipeline") as pipeline_cls:
            pipeline_cls.return_value.run.return_value = make_report(
                RUNX1=STATUS_EXTRACTED, GATA2=STATUS_NOT_FOUND
            )
            status = pipeline_cli.main(self._argv("--up", "10", "RUNX1", "GATA2"))

        self.assertEqual(status, pipeline_cli.EXIT_PARTIAL)

    def test_nothing_extracted(self):
        with patch("prex_pipeline.PrexPipeline") as pipeline_cls:
            pipeline_cls.return_value.run.return_value = make_report(GATA2=STATUS_NOT_FOUND)
            status = pipeline_cli.main(self._argv("--up", "10", "GATA2"))

        self.assertEqual(status, pipeline_cli.EXIT_FAILURE)

    def test_no_identifiers(self):
        """Test that an empty identifier list is fatal."""
        with patch("prex_pipeline.PrexPipeline") as pipeline_cls:
            status = pipeline_cli.main(self._argv())

        self.assertEqual(status, pipeline_cli.EXIT_FAILURE)
        pipeline_cls.assert_not_called()

    def test_identifier_file(self):
        """Test that a single file argument is read as an identifier list."""
        list_path = os.path.join(self.temp_dir, "genes.txt")
        with open(list_path, 'w') as f:
            f.write("RUNX1\nGATA2\n")

        with patch("prex_pipeline.PrexPipeline") as pipeline_cls:
            pipeline_cls.return_value.run.return_value = make_report(
                RUNX1=STATUS_EXTRACTED, GATA2=STATUS_EXTRACTED
            )
            status = pipeline_cli.main(self._argv("--up", "10", list_path))

        self.assertEqual(status, pipeline_cli.EXIT_SUCCESS)
        pipeline_cls.return_value.run.assert_called_once_with(["RUNX1", "GATA2"])

    def test_missing_fasta(self):
        """Test that a missing genome file is fatal."""
        with patch("prex_pipeline.PrexPipeline") as pipeline_cls:
            status = pipeline_cli.main(["--gff3", self.gff3,
                                        "--fasta", os.path.join(self.temp_dir, "missing.fa"),
                                        "RUNX1"])

        self.assertEqual(status, pipeline_cli.EXIT_FAILURE)
        pipeline_cls.assert_not_called()

    def test_invalid_window(self):
        """Test that negative window sizes are rejected."""
        with patch("prex_pipeline.PrexPipeline") as pipeline_cls:
            status = pipeline_cli.main(self._argv("--up", "-5", "RUNX1"))

        self.assertEqual(status, pipeline_cli.EXIT_FAILURE)
        pipeline_cls.assert_not_called()

    def test_empty_window_warning(self):
        """Test the warning for a zero-width window."""
        with patch("prex_pipeline.PrexPipeline") as pipeline_cls:
            pipeline_cls.return_value.run.return_value = make_report(RUNX1=STATUS_EXTRACTED)
            with self.assertLogs("pipeline_cli", level="WARNING") as logs:
                pipeline_cli.main(self._argv("RUNX1"))

        self.assertTrue(any("Must define upstream and/or downstream" in line
                            for line in logs.output))

    def test_config_file_values(self):
        """Test that input paths can come from the configuration file."""
        config_path = os.path.join(self.temp_dir, "prex.json")
        with open(config_path, 'w') as f:
            f.write(f'{{"Gff3": "{self.gff3}", "Fasta": "{self.fasta}", "upstream": 7}}')

        with patch("prex_pipeline.PrexPipeline") as pipeline_cls:
            pipeline_cls.return_value.run.return_value = make_report(RUNX1=STATUS_EXTRACTED)
            status = pipeline_cli.main(["--output-dir", self.temp_dir, "RUNX1"])

        self.assertEqual(status, pipeline_cli.EXIT_SUCCESS)
        config = pipeline_cls.call_args[0][0]
        self.assertEqual(config.fasta, self.fasta)
        self.assertEqual(config.upstream, 7)


if __name__ == '__main__':
    unittest.main()
