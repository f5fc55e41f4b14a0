"""
Input path collection for certificate inspection runs.
"""

import logging
from pathlib import Path
from typing import Iterable, List

from .inspector import has_supported_extension

logger = logging.getLogger(__name__)


class InputParser:
    """
    Turns command-line inputs into a list of certificate files.

    Accepts individual files, directories (expanded to their .pfx/.p12
    files) and list files with one path per line.
    """

    @staticmethod
    def parse_path_file(file_path: str) -> List[str]:
        """
        Parse a file listing certificate paths.

        Args:
            file_path: Path to file with one path per line; blank lines and
                lines starting with ``#`` are skipped. Relative entries are
                resolved against the list file's directory.

        Returns:
            List of paths in file order
        """
        path = Path(file_path)

        if not path.exists():
            raise FileNotFoundError(f"Path list file not found: {file_path}")

        paths = []
        with open(path, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()

                # Skip empty lines and comments
                if not line or line.startswith("#"):
                    continue

                entry = Path(line)
                if not entry.is_absolute():
                    entry = path.parent / entry
                paths.append(str(entry))

        return paths

    @staticmethod
    def expand_directory(directory: Path, recursive: bool = False) -> List[str]:
        """List .pfx/.p12 files in a directory, sorted by path."""
        pattern = "**/*" if recursive else "*"
        return sorted(
            str(p)
            for p in directory.glob(pattern)
            if p.is_file() and has_supported_extension(p.name)
        )

    @staticmethod
    def collect_paths(inputs: Iterable[str], recursive: bool = False) -> List[str]:
        """
        Resolve files and directories into a de-duplicated list of files.

        Files are kept whatever their extension so that the inspector can
        report them as rejected; directories only contribute .pfx/.p12 files.

        Args:
            inputs: File or directory paths
            recursive: Descend into subdirectories

        Returns:
            List of file paths in input order
        """
        collected: List[str] = []
        seen = set()

        for raw in inputs:
            path = Path(raw)
            if path.is_dir():
                candidates = InputParser.expand_directory(path, recursive)
                if not candidates:
                    logger.warning(f"No .pfx or .p12 files in directory: {raw}")
            elif path.exists():
                candidates = [str(path)]
            else:
                raise FileNotFoundError(f"Input not found: {raw}")

            for candidate in candidates:
                if candidate not in seen:
                    seen.add(candidate)
                    collected.append(candidate)

        return collected
