"""
Console output and run summary.
"""

import os
import sys
import threading
import time
from dataclasses import dataclass

from .identity import format_tax_id
from .inspector import InspectionResult


@dataclass
class InspectionStatistics:
    """Statistics for an inspection run."""

    total_files: int = 0
    inspected: int = 0
    successful: int = 0
    failed: int = 0
    rejected: int = 0
    expired: int = 0
    expiring: int = 0
    start_time: float = 0.0

    def __post_init__(self):
        if self.start_time == 0.0:
            self.start_time = time.time()

    def record(self, result: InspectionResult) -> None:
        """Account for one finished file."""
        self.inspected += 1
        if result.ok:
            self.successful += 1
        elif result.status == "rejected":
            self.rejected += 1
        else:
            self.failed += 1

        if result.expiration_status == "expired":
            self.expired += 1
        elif result.expiration_status == "warning":
            self.expiring += 1

    @property
    def elapsed_time(self) -> float:
        """Get elapsed time in seconds."""
        return time.time() - self.start_time

    @property
    def inspection_rate(self) -> float:
        """Get inspection rate in files per second."""
        elapsed = self.elapsed_time
        if elapsed > 0:
            return self.inspected / elapsed
        return 0.0


class ConsoleOutput:
    """
    Handles console output for inspection runs.

    Thread-safe so progress callbacks can print while other files are parsed.
    """

    # ANSI colors per expiration status
    _STATUS_COLORS = {"valid": "32", "warning": "33", "expired": "31"}

    def __init__(self, quiet: bool = False, use_colors: bool = True):
        """
        Initialize console output handler.

        Args:
            quiet: Suppress per-file output
            use_colors: Use ANSI color codes (if terminal supports)
        """
        self.quiet = quiet
        self.use_colors = use_colors and self._supports_color()
        self._lock = threading.Lock()

    @staticmethod
    def _supports_color() -> bool:
        """Check if terminal supports ANSI colors."""
        if not hasattr(sys.stdout, "isatty") or not sys.stdout.isatty():
            return False

        term = os.environ.get("TERM", "")
        if term in ("dumb", ""):
            return False

        return True

    def _colorize(self, text: str, color_code: str) -> str:
        """Add ANSI color codes to text (or return it unchanged)."""
        if not self.use_colors:
            return text
        return f"\033[{color_code}m{text}\033[0m"

    def success(self, message: str) -> None:
        """Print success message in green."""
        with self._lock:
            print(self._colorize(message, "32"))

    def error(self, message: str) -> None:
        """Print error message in red."""
        with self._lock:
            print(self._colorize(message, "31"), file=sys.stderr)

    def warning(self, message: str) -> None:
        """Print warning message in yellow."""
        with self._lock:
            print(self._colorize(message, "33"))

    def info(self, message: str) -> None:
        """Print info message."""
        if self.quiet:
            return
        with self._lock:
            print(message)

    def print_result(self, result: InspectionResult) -> None:
        """
        Print one inspected file.

        Args:
            result: Inspection result to display
        """
        if self.quiet:
            return

        with self._lock:
            if result.status == "valid_structure":
                print(self._colorize(f"[OK] {result.path}: well-formed container", "32"))
                return

            if result.metadata is None:
                kind = f" ({result.error_kind})" if result.error_kind else ""
                print(self._colorize(f"[FAIL] {result.path}: {result.error}{kind}", "31"))
                return

            metadata = result.metadata
            color = self._STATUS_COLORS.get(result.expiration_status or "", "0")
            print(self._colorize(f"[OK] {result.path}", "36"))
            print(f"  Holder:       {metadata.holder_name}")
            if metadata.company_name:
                print(f"  Company:      {metadata.company_name}")
            if metadata.cnpj:
                print(f"  CNPJ:         {format_tax_id(metadata.cnpj)}")
            print(f"  Issuer:       {metadata.issuer}")
            print(f"  Serial:       {metadata.serial_number}")
            expires = metadata.expiration_date.strftime("%Y-%m-%d %H:%M:%S %Z").strip()
            print(self._colorize(
                f"  Expires:      {expires} ({self._format_days(result.days_remaining)})", color
            ))

    @staticmethod
    def _format_days(days) -> str:
        if days is None:
            return "unknown"
        if days < 0:
            return "expired"
        if days == 0:
            return "expires today"
        return f"{days} day(s) left"

    def print_summary(self, stats: InspectionStatistics) -> None:
        """
        Print final run summary.

        Args:
            stats: Final run statistics
        """
        if self.quiet:
            return

        with self._lock:
            print("\n" + "=" * 60)
            print("Inspection Summary")
            print("=" * 60)
            print(f"Total files:        {stats.total_files}")
            print(f"Inspected:          {stats.inspected}")
            print(f"Successful:         {stats.successful}")
            print(f"Failed:             {stats.failed}")
            print(f"Rejected:           {stats.rejected}")
            if stats.expired or stats.expiring:
                print(f"  - Expired:        {stats.expired}")
                print(f"  - Expiring soon:  {stats.expiring}")
            print(f"Elapsed time:       {self._format_duration(stats.elapsed_time)}")
            print("=" * 60)

    @staticmethod
    def _format_duration(seconds: float) -> str:
        """
        Format duration in human-readable format.

        Args:
            seconds: Duration in seconds

        Returns:
            Formatted duration string
        """
        if seconds < 60:
            return f"{seconds:.0f}s"
        elif seconds < 3600:
            minutes = seconds / 60
            return f"{minutes:.1f}m"
        else:
            hours = seconds / 3600
            return f"{hours:.1f}h"
