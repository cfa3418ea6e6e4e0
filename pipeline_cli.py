#!/usr/bin/env python3

"""
Command-line interface for the principal isoform pipeline.

Resolves each identifier to the start codon of its principal isoform and
writes the sequence window around it to ``<output-dir>/<identifier>.fa``.
"""

import argparse
import sys
import os
import logging

from prex_pipeline.core.config import DEFAULT_CONFIG_FILE, EXTRACTORS, load_config
from prex_pipeline.core.exceptions import PrexError
from prex_pipeline.core.parsers import collect_identifiers

EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_PARTIAL = 2


def setup_logging(log_level: str = "INFO") -> None:
    """Set up logging configuration."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format='%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


def create_argument_parser() -> argparse.ArgumentParser:
    """Create command line argument parser."""
    parser = argparse.ArgumentParser(
        description="Extract sequence windows around principal isoform start codons",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # 500 bases upstream and 3 downstream of the RUNX1 and GATA2 start codons
  python pipeline_cli.py --gff3 gencode.v44.annotation.gff3.gz --fasta hg38.fa --up 500 --down 3 RUNX1 GATA2

  # Identifiers read from a file, one per line
  python pipeline_cli.py --config prex.json --up 2000 --output-dir results genes.txt
        """
    )

    parser.add_argument(
        'identifiers',
        nargs='*',
        metavar='IDENTIFIER',
        help='Gene symbols, Ensembl gene or transcript ids, or a single file listing them'
    )

    # Inputs
    parser.add_argument(
        '--gff3',
        help='GENCODE annotation (GFF3 or GTF, optionally gzipped)'
    )
    parser.add_argument(
        '--fasta',
        help='Reference genome FASTA file'
    )
    parser.add_argument(
        '--config',
        help=f'Configuration file (JSON or YAML, default: ./{DEFAULT_CONFIG_FILE} if present)'
    )

    # Window
    parser.add_argument(
        '--up',
        type=int,
        help='Bases upstream of the start codon (default: 0)'
    )
    parser.add_argument(
        '--down',
        type=int,
        help='Bases downstream of the start codon (default: 0)'
    )

    # Output and execution
    parser.add_argument(
        '--output-dir',
        help='Output directory for FASTA files (default: .)'
    )
    parser.add_argument(
        '--extractor',
        choices=EXTRACTORS,
        help='Sequence extraction backend (default: bedtools)'
    )
    parser.add_argument(
        '--workers',
        type=int,
        help='Parallel extraction workers (default: 1)'
    )
    parser.add_argument(
        '--memory-limit',
        type=int,
        help='Memory limit in MB (default: 4096)'
    )
    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        default='INFO',
        help='Logging level (default: INFO)'
    )

    return parser


def default_config_path(config_arg=None):
    """Return the configuration file to load, if any."""
    if config_arg:
        return config_arg
    if os.path.isfile(DEFAULT_CONFIG_FILE):
        return DEFAULT_CONFIG_FILE
    return None


def validate_input_files(config) -> None:
    """Validate that the annotation and genome files exist."""
    input_files = {
        'annotation': config.gff3,
        'FASTA': config.fasta,
    }

    for file_type, file_path in input_files.items():
        if not file_path:
            raise FileNotFoundError(f"No {file_type} file given")
        if not os.path.exists(file_path):
            raise FileNotFoundError(f"{file_type} file not found: {file_path}")


def main(argv=None):
    """Main CLI entry point."""
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    # Set up logging
    setup_logging(args.log_level)
    logger = logging.getLogger(__name__)

    try:
        identifiers = collect_identifiers(args.identifiers)
        if not identifiers:
            logger.error("No identifiers given")
            return EXIT_FAILURE

        # Load configuration
        config = load_config(config_path=default_config_path(args.config), use_env=True)

        # Override config with command line arguments
        if args.gff3 is not None:
            config.gff3 = os.path.expanduser(args.gff3)
        if args.fasta is not None:
            config.fasta = os.path.expanduser(args.fasta)
        if args.up is not None:
            config.upstream = args.up
        if args.down is not None:
            config.downstream = args.down
        if args.output_dir is not None:
            config.output_dir = args.output_dir
        if args.extractor is not None:
            config.extractor = args.extractor
        if args.workers is not None:
            config.parallel_workers = args.workers
        if args.memory_limit is not None:
            config.memory_limit_mb = args.memory_limit

        # Re-validate after CLI overrides.
        config.validate()
        validate_input_files(config)

        if config.upstream == 0 and config.downstream == 0:
            logger.warning("Must define upstream and/or downstream")

        logger.info("Starting principal isoform pipeline...")
        logger.info(f"Annotation: {config.gff3}")
        logger.info(f"Genome file: {config.fasta}")
        logger.info(f"Output directory: {config.output_dir}")
        logger.info(f"Window: {config.upstream} upstream, {config.downstream} downstream")
        logger.info(f"Identifiers: {len(identifiers)}")

        # Initialize and run the pipeline
        from prex_pipeline import PrexPipeline

        pipeline = PrexPipeline(config)
        report = pipeline.run(identifiers)

        for outcome in report.failures():
            logger.warning(f"{outcome.identifier}: {outcome.status} ({outcome.message})")

        if report.all_succeeded:
            logger.info("Pipeline completed successfully!")
            return EXIT_SUCCESS
        if report.extracted_count > 0:
            logger.warning(f"Pipeline completed for {report.extracted_count}/"
                           f"{len(report.outcomes)} identifiers")
            return EXIT_PARTIAL
        logger.error("No sequence was extracted!")
        return EXIT_FAILURE

    except FileNotFoundError as e:
        logger.error(f"File error: {e}")
        return EXIT_FAILURE
    except PrexError as e:
        logger.error(f"Pipeline error: {e}")
        return EXIT_FAILURE
    except Exception as e:
        logger.error(f"Unexpected error: {e}")
        logger.debug("Full traceback:", exc_info=True)
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
