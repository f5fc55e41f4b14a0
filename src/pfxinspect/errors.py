"""
Error classification for certificate ingestion.

Every failure of the parse pipeline surfaces as exactly one of four kinds.
The kind is chosen by the stage that fails, not by inspecting library
exception text.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from cryptography.exceptions import UnsupportedAlgorithm


class ErrorKind(str, Enum):
    """Externally visible failure kinds of the parse call."""

    WRONG_PASSWORD = "WRONG_PASSWORD"
    INVALID_CERTIFICATE = "INVALID_CERTIFICATE"
    PROCESSING_ERROR = "PROCESSING_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


WRONG_PASSWORD_MESSAGE = "incorrect password for the certificate"
INVALID_CERTIFICATE_MESSAGE = "invalid or corrupted .pfx file"
PROCESSING_ERROR_PREFIX = "error processing certificate"
UNKNOWN_ERROR_MESSAGE = "unknown error processing certificate"


@dataclass
class CertificateError(Exception):
    """
    Base exception for certificate parsing failures.

    Preserves the error kind and diagnostic details for callers that map
    failures to user-facing messages. Details never carry password material.
    """

    message: str
    kind: ErrorKind
    details: Dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return self.message


class WrongPasswordError(CertificateError):
    """The passphrase does not decrypt the container."""

    def __init__(self, details: Optional[Dict[str, Any]] = None):
        super().__init__(WRONG_PASSWORD_MESSAGE, ErrorKind.WRONG_PASSWORD, details or {})


class InvalidCertificateError(CertificateError):
    """Bytes are not a usable PKCS#12 container."""

    def __init__(self, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            INVALID_CERTIFICATE_MESSAGE, ErrorKind.INVALID_CERTIFICATE, details or {}
        )


class ProcessingError(CertificateError):
    """Any other failure; the original message is kept for diagnostics."""

    def __init__(self, reason: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            f"{PROCESSING_ERROR_PREFIX}: {reason}", ErrorKind.PROCESSING_ERROR, details or {}
        )


class UnknownCertificateError(CertificateError):
    """Failure that carries no usable diagnostic message."""

    def __init__(self, details: Optional[Dict[str, Any]] = None):
        super().__init__(UNKNOWN_ERROR_MESSAGE, ErrorKind.UNKNOWN_ERROR, details or {})


def classify_exception(e: BaseException) -> Tuple[ErrorKind, Dict[str, Any]]:
    """
    Classify an exception raised inside the parse pipeline.

    Args:
        e: The exception to classify

    Returns:
        Tuple of (ErrorKind, error_details dict)
    """
    if isinstance(e, CertificateError):
        return e.kind, dict(e.details)

    details: Dict[str, Any] = {
        "exception_type": type(e).__name__,
        "exception_module": type(e).__module__,
        "raw_message": str(e),
    }

    if isinstance(e, UnsupportedAlgorithm):
        details["unsupported_algorithm"] = True
        return ErrorKind.PROCESSING_ERROR, details

    if not str(e).strip():
        return ErrorKind.UNKNOWN_ERROR, details

    return ErrorKind.PROCESSING_ERROR, details


def wrap_exception(e: BaseException) -> CertificateError:
    """
    Convert any exception into one of the four certificate error kinds.

    Args:
        e: The exception to wrap

    Returns:
        A CertificateError subclass instance (``e`` itself if already one)
    """
    if isinstance(e, CertificateError):
        return e

    kind, details = classify_exception(e)
    if kind == ErrorKind.UNKNOWN_ERROR:
        return UnknownCertificateError(details)
    return ProcessingError(str(e), details)
