"""Command line entry point for the Sequence Batch Processor.

Usage:
    python -m sequence_batch_processor --output-dir DIR --input-dir DIR [--group G] [--kind protein]
    python -m sequence_batch_processor --output-dir DIR --manifest jobs.csv
    python -m sequence_batch_processor --output-dir DIR --review-pending [--group G ...]

Submitting records every accepted job in <output-dir>/<group>/PendingJobs.txt.
Reviewing polls those jobs, writes finished results next to the ledger and
keeps only the jobs that are still running.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from . import create_orchestrator
from .clients.clustal_omega_client import ClustalOmegaClient
from .config import (
    DEFAULT_CLUSTAL_BASE_URL,
    DEFAULT_CONTACT_EMAIL,
    DEFAULT_OUTPUT_SUFFIX,
    MAX_PARALLELISM,
    MIN_PARALLELISM,
    default_parallelism,
    validate_parallelism,
)
from .core.models import SequenceKind
from .enumerators import create_enumerator, describe_enumerators
from .errors import ConfigurationError, PersistenceError


logger = logging.getLogger("sequence_batch_processor")


def build_parser() -> argparse.ArgumentParser:
    sources = "\n".join(f"    {name:<8}{description}" for name, description in describe_enumerators().items())

    parser = argparse.ArgumentParser(
        prog="python -m sequence_batch_processor",
        description="Submit sequence analysis jobs and collect their results",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Request sources (--input-dir uses "file", --manifest uses "csv"):
{sources}

Examples:
    # Submit one alignment job per FASTA file in ./IGH
    python -m sequence_batch_processor --output-dir out --input-dir IGH --pattern "*.fasta"

    # Submit jobs for several groups from a manifest, 4 at a time
    python -m sequence_batch_processor --output-dir out --manifest jobs.csv --parallelism 4

    # Collect finished results for every group with pending jobs
    python -m sequence_batch_processor --output-dir out --review-pending
""",
    )

    mode = parser.add_mutually_exclusive_group(required=True)
    mode.add_argument("--input-dir", type=str, help="Directory of sequence files to submit, one job per file")
    mode.add_argument("--manifest", type=str, help="CSV manifest of jobs to submit")
    mode.add_argument(
        "--review-pending", action="store_true", help="Review already submitted jobs instead of submitting new ones"
    )

    parser.add_argument("--output-dir", type=str, required=True, help="Directory where output files should be saved")
    parser.add_argument(
        "--group",
        action="append",
        default=None,
        help="Group name (submit: defaults to the input directory name; review: repeat to limit groups)",
    )
    parser.add_argument("--pattern", type=str, default="*", help="Glob pattern for --input-dir (default: *)")
    parser.add_argument(
        "--kind",
        choices=[k.value for k in SequenceKind],
        default=SequenceKind.PROTEIN.value,
        help="Sequence kind for --input-dir (default: protein)",
    )
    parser.add_argument(
        "--output-suffix",
        type=str,
        default=DEFAULT_OUTPUT_SUFFIX,
        help=f"Suffix appended to input file stems to name outputs (default: {DEFAULT_OUTPUT_SUFFIX})",
    )
    parser.add_argument(
        "--parallelism",
        type=str,
        default=None,
        help=f"Number of jobs to submit in parallel, in range [{MIN_PARALLELISM}, {MAX_PARALLELISM}] "
        "(default: SBP_PARALLELISM or 1)",
    )
    parser.add_argument("--email", type=str, default=DEFAULT_CONTACT_EMAIL, help="Contact email sent with jobs")
    parser.add_argument("--base-url", type=str, default=DEFAULT_CLUSTAL_BASE_URL, help="Clustal Omega service URL")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    return parser


def _validate_args(parser: argparse.ArgumentParser, args) -> int:
    """Check configuration before any work starts; exits via parser.error on problems."""
    try:
        if args.parallelism is not None:
            parallelism = validate_parallelism(args.parallelism)
        else:
            parallelism = default_parallelism()
    except ConfigurationError as e:
        parser.error(str(e))

    if not Path(args.output_dir).is_dir():
        parser.error(f"Output directory does not exist: {args.output_dir}")

    if args.input_dir and args.group and len(args.group) > 1:
        parser.error("--group can only be given once with --input-dir")

    return parallelism


def _build_requests(parser: argparse.ArgumentParser, args):
    if args.input_dir:
        config = {
            "base_directory": args.input_dir,
            "pattern": args.pattern,
            "group_key": args.group[0] if args.group else None,
            "kind": args.kind,
            "output_suffix": args.output_suffix,
            "output_directory": args.output_dir,
        }
        enumerator = create_enumerator("file", config)
    else:
        enumerator = create_enumerator("csv", {"file_path": args.manifest, "output_directory": args.output_dir})

    result = enumerator.enumerate()
    if not result.success:
        parser.error(result.error)

    for output_target in result.skipped:
        logger.info(f"Output already exists, skipping - {output_target}")

    return result.requests


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    parallelism = _validate_args(parser, args)
    requests = [] if args.review_pending else _build_requests(parser, args)

    client = ClustalOmegaClient(base_url=args.base_url, email=args.email)

    try:
        with create_orchestrator(args.output_dir, client=client) as orchestrator:
            if args.review_pending:
                summaries = orchestrator.review_pending(args.group, parallelism=parallelism)
                for group_key, summary in summaries.items():
                    if summary.all_complete:
                        print(f"{group_key}: all jobs complete")
                    else:
                        print(f"{group_key}: {summary.resolved} resolved, {summary.remaining} remaining")
                if not summaries:
                    print("No pending jobs")
            else:
                if not requests:
                    print("Nothing to submit")
                    return 0
                summaries = orchestrator.submit_requests(requests, parallelism=parallelism)
                for group_key, summary in summaries.items():
                    print(f"{group_key}: {summary.submitted}/{summary.total} submitted, {summary.failed} failed")
    except PersistenceError as e:
        logger.error(f"Pending job ledger error: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
