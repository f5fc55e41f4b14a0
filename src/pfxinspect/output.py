"""
Output formatting and JSON export.
"""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List

from . import __version__
from .inspector import InspectionResult
from .models import isoformat_z


class OutputFormatter:
    """
    Handles formatting and exporting inspection results.

    Output never contains the password used for the run.
    """

    def __init__(self, output_path: str, mode: str = "inspect"):
        """
        Initialize output formatter.

        Args:
            output_path: Path to output file ("-" for stdout)
            mode: Operation mode ("inspect" or "check")
        """
        self.output_path = Path(output_path)
        self.mode = mode

    @staticmethod
    def summarize(results: List[InspectionResult]) -> Dict[str, Any]:
        """
        Summarize expiration state across successful results.

        Returns:
            Dictionary with counts per expiration status and the certificates
            needing attention, soonest first
        """
        by_status: Dict[str, int] = {"valid": 0, "warning": 0, "expired": 0}
        attention = []

        for result in results:
            if result.metadata is None or result.expiration_status is None:
                continue
            by_status[result.expiration_status] = by_status.get(result.expiration_status, 0) + 1
            if result.expiration_status != "valid":
                attention.append(
                    {
                        "path": result.path,
                        "name": result.metadata.display_name,
                        "cnpj": result.metadata.cnpj,
                        "expiration_date": isoformat_z(result.metadata.expiration_date),
                        "days_remaining": result.days_remaining,
                        "status": result.expiration_status,
                    }
                )

        attention.sort(key=lambda item: item["days_remaining"])
        return {
            "by_status": by_status,
            "needs_attention": attention,
            "total_needing_attention": len(attention),
        }

    def create_output(
        self,
        results: List[InspectionResult],
        parameters: Dict[str, Any],
        statistics: Dict[str, Any],
    ) -> Dict[str, Any]:
        """
        Create structured output dictionary.

        Args:
            results: Inspection results
            parameters: Run parameters used (no password)
            statistics: Run statistics

        Returns:
            Complete output structure
        """
        return {
            "metadata": {
                "version": __version__,
                "inspection_timestamp": isoformat_z(datetime.now(timezone.utc)),
                "mode": self.mode,
                "parameters": parameters,
                "statistics": statistics,
            },
            "results": [result.to_dict() for result in results],
            "summary": self.summarize(results),
        }

    def write_json(self, data: Dict[str, Any]) -> None:
        """
        Write data to JSON file atomically.

        Args:
            data: Data to write
        """
        self.output_path.parent.mkdir(parents=True, exist_ok=True)

        # Write to temporary file first (atomic write)
        temp_path = self.output_path.with_suffix(".tmp")

        try:
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)

            temp_path.replace(self.output_path)

            # Set restrictive permissions (600)
            self.output_path.chmod(0o600)

        except Exception as e:
            if temp_path.exists():
                temp_path.unlink()
            raise IOError(f"Failed to write output file: {e}") from e

    def write_stdout(self, data: Dict[str, Any]) -> None:
        """
        Write data to stdout.

        Args:
            data: Data to write
        """
        print(json.dumps(data, indent=2, ensure_ascii=False))

    def write(self, data: Dict[str, Any]) -> None:
        """Write to stdout when the output path is "-", otherwise to the file."""
        if str(self.output_path) == "-":
            self.write_stdout(data)
        else:
            self.write_json(data)
