"""
End-to-end PKCS#12 parsing: bytes and optional password to metadata.
"""

import logging
from typing import Optional

from .container import ContainerDecryptor
from .errors import CertificateError, wrap_exception
from .extractor import MetadataExtractor
from .identity import IdentityResolver
from .models import CertificateMetadata
from .prevalidator import is_pfx_file, is_valid_container

logger = logging.getLogger(__name__)

__all__ = ["CertificateParser", "parse_certificate", "is_pfx_file", "is_valid_container"]


class CertificateParser:
    """
    Parses .pfx/.p12 uploads into CertificateMetadata.

    Stateless: one instance can serve concurrent callers. Every failure is
    raised as one of the four CertificateError kinds and no partial record is
    ever returned. Parsing is single-attempt; callers must not retry wrong
    password or invalid file errors with the same input.
    """

    def __init__(self, resolver: Optional[IdentityResolver] = None):
        self.extractor = MetadataExtractor(resolver)

    def parse(self, data: bytes, password: Optional[str] = None) -> CertificateMetadata:
        """
        Parse a PKCS#12 container.

        Args:
            data: Raw container bytes
            password: Optional passphrase; None and "" are equivalent

        Returns:
            Metadata of the end-entity certificate

        Raises:
            WrongPasswordError: Passphrase does not decrypt the container
            InvalidCertificateError: Not a usable PKCS#12 container
            ProcessingError: Any other failure, original message preserved
            UnknownCertificateError: Failure without a diagnostic message
        """
        try:
            certificate = ContainerDecryptor.decrypt(data, password)
            metadata = self.extractor.extract(certificate)
        except CertificateError as e:
            logger.debug(f"Certificate rejected ({e.kind.value}): {e.details}")
            raise
        except Exception as e:
            wrapped = wrap_exception(e)
            logger.debug(f"Certificate processing failed ({wrapped.kind.value}): {e!r}")
            raise wrapped from e

        logger.debug(
            f"Parsed certificate for '{metadata.holder_name}' "
            f"expiring {metadata.expiration_date.isoformat()}"
        )
        return metadata


_default_parser = CertificateParser()


def parse_certificate(data: bytes, password: Optional[str] = None) -> CertificateMetadata:
    """Parse a PKCS#12 container with the default CNPJ heuristics."""
    return _default_parser.parse(data, password)
