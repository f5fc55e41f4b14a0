"""
pfxinspect - PKCS#12 Certificate Validation and Metadata Extraction

Validates .pfx/.p12 uploads, decrypts them with an optional password and
extracts holder, expiration, issuer and Brazilian CNPJ metadata from the
end-entity certificate.
"""

__version__ = "1.0.0"
__author__ = "pfxinspect Team"

__all__ = [
    "parse_certificate",
    "is_pfx_file",
    "is_valid_container",
    "CertificateParser",
    "CertificateMetadata",
    "CertificateError",
    "WrongPasswordError",
    "InvalidCertificateError",
    "ProcessingError",
    "UnknownCertificateError",
    "ErrorKind",
    "CertificateInspector",
    "InspectionResult",
]

_ERROR_NAMES = (
    "CertificateError",
    "WrongPasswordError",
    "InvalidCertificateError",
    "ProcessingError",
    "UnknownCertificateError",
    "ErrorKind",
)


def __getattr__(name: str):
    """Lazy import module attributes on first access."""
    if name in ("parse_certificate", "CertificateParser"):
        from . import parser
        return getattr(parser, name)
    elif name in ("is_pfx_file", "is_valid_container"):
        from . import prevalidator
        return getattr(prevalidator, name)
    elif name == "CertificateMetadata":
        from .models import CertificateMetadata
        return CertificateMetadata
    elif name in _ERROR_NAMES:
        from . import errors
        return getattr(errors, name)
    elif name in ("CertificateInspector", "InspectionResult"):
        from . import inspector
        return getattr(inspector, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
