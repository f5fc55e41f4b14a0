"""
Command-line interface for pfxinspect.
"""

import argparse
import asyncio
import getpass
import logging
import os
import sys
from typing import TYPE_CHECKING, Optional

from . import __version__
from .console import ConsoleOutput

if TYPE_CHECKING:
    from .inspector import InspectionResult


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser."""
    parser = argparse.ArgumentParser(
        prog="pfxinspect",
        description="Validate PKCS#12 (.pfx/.p12) certificates and extract their metadata",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Inspect a single certificate, prompting for its password
  pfxinspect empresa.pfx --ask-password

  # Inspect every certificate in a directory, password from the environment
  pfxinspect certs/ --password-env PFX_PASSWORD -o report.json

  # Only check that uploads are well-formed containers
  pfxinspect --file uploads.txt --check-only
        """,
    )

    # Version
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    # Input options
    parser.add_argument(
        "paths",
        nargs="*",
        metavar="PATH",
        help="Certificate files or directories containing .pfx/.p12 files",
    )
    parser.add_argument(
        "--file", "-f", metavar="FILE", help="File listing certificate paths, one per line"
    )
    parser.add_argument(
        "--recursive",
        "-r",
        action="store_true",
        help="Descend into subdirectories of directory inputs",
    )

    # Password options (mutually exclusive)
    password_group = parser.add_mutually_exclusive_group()
    password_group.add_argument(
        "--password", "-p", metavar="PASSWORD", help="Certificate password (visible in process lists)"
    )
    password_group.add_argument(
        "--password-env",
        metavar="VAR",
        help="Read the certificate password from an environment variable",
    )
    password_group.add_argument(
        "--ask-password",
        action="store_true",
        help="Prompt for the certificate password",
    )

    # Mode options
    parser.add_argument(
        "--check-only",
        action="store_true",
        help="Only check container structure, no password needed",
    )
    parser.add_argument(
        "--warn-days",
        type=int,
        default=30,
        metavar="DAYS",
        help="Flag certificates expiring within DAYS days (default: 30)",
    )

    # Output options
    parser.add_argument(
        "--output",
        "-o",
        metavar="FILE",
        help="Write JSON results to FILE ('-' for stdout)",
    )

    # Performance options
    parser.add_argument(
        "--threads",
        type=int,
        default=4,
        metavar="NUM",
        help="Number of certificates parsed concurrently (default: 4)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=10.0,
        metavar="SEC",
        help="Seconds allowed to parse one certificate (default: 10)",
    )

    # Logging options
    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error"],
        default="warning",
        help="Logging level (default: warning)",
    )
    parser.add_argument(
        "--log-file",
        metavar="FILE",
        help="Log output to file",
    )
    parser.add_argument(
        "--quiet",
        "-q",
        action="store_true",
        help="Suppress per-certificate output",
    )

    return parser


def validate_args(args: argparse.Namespace) -> Optional[str]:
    """
    Validate parsed arguments.

    Returns:
        Error message if validation fails, None otherwise.
    """
    if not args.paths and not args.file:
        return "No input given. Pass certificate paths or --file."

    if args.threads < 1:
        return f"Invalid thread count: {args.threads}. Must be at least 1."

    if args.timeout <= 0:
        return f"Invalid timeout: {args.timeout}. Must be positive."

    if args.warn_days < 0:
        return f"Invalid warning window: {args.warn_days}. Must be non-negative."

    return None


def resolve_password(args: argparse.Namespace) -> Optional[str]:
    """
    Get the certificate password from the selected source.

    Raises:
        ValueError: If --password-env names an unset variable
    """
    if args.check_only:
        return None
    if args.password_env:
        value = os.environ.get(args.password_env)
        if value is None:
            raise ValueError(f"Environment variable {args.password_env} is not set")
        return value
    if args.ask_password:
        return getpass.getpass("Certificate password: ")
    return args.password


def main() -> int:
    """
    Main entry point for the CLI.

    Returns:
        Exit code (0 when every certificate was inspected, non-zero otherwise).
    """
    parser = create_parser()
    args = parser.parse_args()

    error = validate_args(args)
    if error:
        print(f"Error: {error}", file=sys.stderr)
        return 1

    log_level = getattr(logging, args.log_level.upper())
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        filename=args.log_file if args.log_file else None,
    )

    # JSON on stdout must not be mixed with per-file output
    console = ConsoleOutput(quiet=args.quiet or args.output == "-")

    try:
        password = resolve_password(args)
    except ValueError as e:
        console.error(f"Error: {e}")
        return 1

    try:
        return asyncio.run(run_inspection(args, console, password))
    except KeyboardInterrupt:
        console.error("\nInspection interrupted by user")
        return 130
    except Exception as e:
        console.error(f"Fatal error: {e}")
        logging.exception("Fatal error during inspection")
        return 1


async def run_inspection(
    args: argparse.Namespace, console: ConsoleOutput, password: Optional[str]
) -> int:
    """
    Execute the inspection run.

    Args:
        args: Parsed command-line arguments
        console: Console output handler
        password: Certificate password, used only by the inspector

    Returns:
        Exit code
    """
    from .console import InspectionStatistics
    from .input_parser import InputParser
    from .inspector import CertificateInspector
    from .output import OutputFormatter

    logger = logging.getLogger(__name__)

    try:
        inputs = list(args.paths)
        if args.file:
            inputs.extend(InputParser.parse_path_file(args.file))
        paths = InputParser.collect_paths(inputs, recursive=args.recursive)
    except FileNotFoundError as e:
        console.error(str(e))
        return 1

    if not paths:
        console.error("No certificate files found in input")
        return 1

    inspector = CertificateInspector(
        password=password,
        timeout=args.timeout,
        check_only=args.check_only,
        warning_days=args.warn_days,
    )
    stats = InspectionStatistics(total_files=len(paths))

    console.info(f"Inspecting {len(paths)} file(s)")

    async def progress_callback(result: "InspectionResult") -> None:
        stats.record(result)
        console.print_result(result)
        if not result.ok:
            logger.debug(f"{result.path}: {result.error_kind} {result.error}")

    results = await inspector.inspect_multiple(
        paths, concurrency=args.threads, progress_callback=progress_callback
    )

    console.print_summary(stats)

    if args.output:
        formatter = OutputFormatter(args.output, mode="check" if args.check_only else "inspect")
        output_data = formatter.create_output(
            results,
            parameters={
                "inputs": inputs,
                "recursive": args.recursive,
                "check_only": args.check_only,
                "password_supplied": password is not None,
                "warn_days": args.warn_days,
                "threads": args.threads,
                "timeout": args.timeout,
            },
            statistics={
                "total_files": stats.total_files,
                "inspected": stats.inspected,
                "successful": stats.successful,
                "failed": stats.failed,
                "rejected": stats.rejected,
                "expired": stats.expired,
                "expiring": stats.expiring,
                "elapsed_seconds": stats.elapsed_time,
            },
        )
        try:
            formatter.write(output_data)
        except IOError as e:
            console.error(str(e))
            return 1
        if args.output != "-":
            console.success(f"Results written to {args.output}")

    return 0 if all(result.ok for result in results) else 1
