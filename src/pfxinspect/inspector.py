"""
Concurrent inspection of certificate files.
"""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, List, Optional, Union

from .errors import CertificateError, ErrorKind, wrap_exception
from .expiration import DEFAULT_WARNING_DAYS, certificate_status, days_remaining
from .models import CertificateMetadata
from .parser import CertificateParser
from .prevalidator import is_pfx_file

logger = logging.getLogger(__name__)

# Constants
DEFAULT_TIMEOUT = 10.0  # Seconds allowed for a single parse
DEFAULT_CONCURRENCY = 4
SUPPORTED_EXTENSIONS = (".pfx", ".p12")


@dataclass
class InspectionResult:
    """Result from inspecting a single certificate file."""

    path: str
    status: str  # "success", "valid_structure", "rejected", "error" or "timeout"
    metadata: Optional[CertificateMetadata] = None
    error: Optional[str] = None
    error_kind: Optional[str] = None
    days_remaining: Optional[int] = None
    expiration_status: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status in ("success", "valid_structure")

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "status": self.status,
            "certificate": self.metadata.to_dict() if self.metadata else None,
            "days_remaining": self.days_remaining,
            "expiration_status": self.expiration_status,
            "error": self.error,
            "error_kind": self.error_kind,
        }


def has_supported_extension(name: str) -> bool:
    """Check for a .pfx or .p12 file name, case-insensitively."""
    return name.lower().endswith(SUPPORTED_EXTENSIONS)


class CertificateInspector:
    """
    Runs the parser over uploaded files the way the upload handlers do:
    extension check, structural pre-check, then full parse.

    The password is shared by every file in a run and is never logged or
    copied into results.
    """

    def __init__(
        self,
        password: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        check_only: bool = False,
        warning_days: int = DEFAULT_WARNING_DAYS,
        parser: Optional[CertificateParser] = None,
    ):
        """
        Initialize inspector.

        Args:
            password: Passphrase used for every container
            timeout: Seconds allowed for one parse before giving up on it
            check_only: Only run the structural pre-check
            warning_days: Days before expiry that count as "warning"
            parser: Parser instance (defaults to CNPJ heuristics)
        """
        self._password = password
        self.timeout = timeout
        self.check_only = check_only
        self.warning_days = warning_days
        self.parser = parser or CertificateParser()

    def _success(self, path: str, metadata: CertificateMetadata) -> InspectionResult:
        return InspectionResult(
            path=path,
            status="success",
            metadata=metadata,
            days_remaining=days_remaining(metadata.expiration_date),
            expiration_status=certificate_status(
                metadata.expiration_date, warning_days=self.warning_days
            ).value,
        )

    @staticmethod
    def _failure(path: str, error: CertificateError) -> InspectionResult:
        return InspectionResult(
            path=path,
            status="error",
            error=error.message,
            error_kind=error.kind.value,
        )

    def _precheck(self, name: str, data: bytes) -> Optional[InspectionResult]:
        """Return a rejection result, or None when the upload may be parsed."""
        if not has_supported_extension(name):
            logger.warning(f"Rejected {name}: not a .pfx or .p12 file")
            return InspectionResult(
                path=name,
                status="rejected",
                error="file must be a .pfx or .p12 file",
                error_kind="INVALID_FILE_TYPE",
            )
        if not is_pfx_file(data):
            logger.warning(f"Rejected {name}: not a well-formed container")
            return InspectionResult(
                path=name,
                status="rejected",
                error="invalid or corrupted .pfx file",
                error_kind=ErrorKind.INVALID_CERTIFICATE.value,
            )
        return None

    def inspect_bytes(self, name: str, data: bytes) -> InspectionResult:
        """
        Inspect an in-memory upload synchronously.

        Args:
            name: Upload file name (used for the extension check)
            data: Upload bytes

        Returns:
            InspectionResult for the upload
        """
        rejected = self._precheck(name, data)
        if rejected:
            return rejected
        if self.check_only:
            return InspectionResult(path=name, status="valid_structure")

        try:
            metadata = self.parser.parse(data, self._password)
        except CertificateError as e:
            return self._failure(name, e)
        return self._success(name, metadata)

    async def inspect_file(self, path: Union[str, Path]) -> InspectionResult:
        """
        Inspect a certificate file, bounding the parse by ``timeout``.

        The parse runs in a worker thread; on timeout the result is reported
        and the thread is left to finish on its own.

        Args:
            path: Path to a .pfx/.p12 file

        Returns:
            InspectionResult for the file
        """
        name = str(path)
        try:
            data = await asyncio.to_thread(Path(path).read_bytes)
        except OSError as e:
            logger.warning(f"Cannot read {name}: {e}")
            return InspectionResult(
                path=name, status="error", error=f"cannot read file: {e.strerror or e}",
                error_kind="READ_ERROR",
            )

        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self.inspect_bytes, name, data), timeout=self.timeout
            )
        except asyncio.TimeoutError:
            logger.warning(f"Parsing {name} exceeded {self.timeout}s")
            return InspectionResult(
                path=name,
                status="timeout",
                error=f"parsing exceeded {self.timeout} seconds",
                error_kind=ErrorKind.PROCESSING_ERROR.value,
            )

    async def inspect_multiple(
        self,
        paths: List[Union[str, Path]],
        concurrency: int = DEFAULT_CONCURRENCY,
        progress_callback: Optional[Callable[[InspectionResult], Awaitable[None]]] = None,
    ) -> List[InspectionResult]:
        """
        Inspect multiple files concurrently.

        Args:
            paths: Files to inspect
            concurrency: Maximum number of concurrent parses
            progress_callback: Optional coroutine called after each file with
                             signature: callback(result: InspectionResult)

        Returns:
            Results in the same order as ``paths``

        Raises:
            asyncio.CancelledError: If an inspection was cancelled
            KeyboardInterrupt: If an inspection was interrupted
        """
        semaphore = asyncio.Semaphore(concurrency)

        async def inspect_with_semaphore(path):
            async with semaphore:
                result = await self.inspect_file(path)

                if progress_callback:
                    try:
                        await progress_callback(result)
                    except Exception as e:
                        logger.warning(f"Progress callback error: {e}")

                return result

        tasks = [inspect_with_semaphore(path) for path in paths]
        results = await asyncio.gather(*tasks, return_exceptions=True)

        processed_results: List[InspectionResult] = []
        for path, result in zip(paths, results):
            if isinstance(result, InspectionResult):
                processed_results.append(result)
            elif isinstance(result, Exception):
                processed_results.append(self._failure(str(path), wrap_exception(result)))
            elif isinstance(result, BaseException):
                # Cancellation and interrupts are not per-file failures
                raise result

        return processed_results
