"""
X.509 metadata extraction for PKCS#12 end-entity certificates.
"""

import logging
from typing import Dict, List, Optional, Tuple, Union

from asn1crypto import core
from cryptography import x509

from .identity import IdentityContext, IdentityResolver
from .models import CertificateMetadata

logger = logging.getLogger(__name__)

UNKNOWN_HOLDER = "Unknown"
CONVENIENCE_KEYS = ("commonName", "organizationName", "countryName")
# Name cryptography reports for OIDs it has no registered name for
_UNREGISTERED_OID_NAME = "Unknown OID"


class MetadataExtractor:
    """
    Reads identity fields, validity and serial from a decoded certificate.

    The certificate is only read, never modified.
    """

    def __init__(self, resolver: Optional[IdentityResolver] = None):
        """
        Initialize the extractor.

        Args:
            resolver: Tax id heuristics to apply (defaults to the CNPJ chain)
        """
        self.resolver = resolver or IdentityResolver()

    @staticmethod
    def attribute_name(oid: x509.ObjectIdentifier) -> str:
        """Registered attribute name, or the dotted OID when none exists."""
        name = oid._name
        if not name or name == _UNREGISTERED_OID_NAME:
            return oid.dotted_string
        return name

    @staticmethod
    def attribute_text(value: Union[str, bytes, None]) -> str:
        """
        Render an attribute value as text.

        Binary values are decoded as DER when they parse as a string type,
        otherwise as Latin-1 so no byte is lost.
        """
        if not value:
            return ""
        if isinstance(value, bytes):
            try:
                parsed = core.load(value, strict=True).native
            except ValueError:
                return value.decode("latin-1")
            if isinstance(parsed, str):
                return parsed
            return value.decode("latin-1")
        return str(value)

    @staticmethod
    def _subject_pairs(cert: x509.Certificate) -> List[Tuple[x509.ObjectIdentifier, str]]:
        return [
            (attr.oid, MetadataExtractor.attribute_text(attr.value)) for attr in cert.subject
        ]

    @staticmethod
    def _extract_subject(
        pairs: List[Tuple[x509.ObjectIdentifier, str]]
    ) -> Dict[str, Optional[str]]:
        """Build the subject map, convenience keys first."""
        attributes: Dict[str, Optional[str]] = {}
        for oid, text in pairs:
            attributes[MetadataExtractor.attribute_name(oid)] = text

        subject: Dict[str, Optional[str]] = {key: attributes.get(key) for key in CONVENIENCE_KEYS}
        subject.update(attributes)
        return subject

    @staticmethod
    def _extract_issuer(cert: x509.Certificate) -> str:
        """Flatten the issuer DN to ``name=value`` pairs in encoding order."""
        return ", ".join(
            f"{MetadataExtractor.attribute_name(attr.oid)}="
            f"{MetadataExtractor.attribute_text(attr.value)}"
            for attr in cert.issuer
        )

    @staticmethod
    def _extract_serial(cert: x509.Certificate) -> str:
        """Lowercase hex of the serial's DER INTEGER content bytes."""
        serial = cert.serial_number
        return serial.to_bytes((serial.bit_length() + 8) // 8, "big", signed=True).hex()

    @staticmethod
    def _extract_other_names(cert: x509.Certificate) -> List[Tuple[str, bytes]]:
        """Collect SubjectAltName otherName entries as (dotted OID, DER value)."""
        try:
            san_ext = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName)
        except x509.ExtensionNotFound:
            return []
        except (ValueError, x509.DuplicateExtension) as e:
            logger.warning(f"Unreadable certificate extensions, skipping SAN lookup: {e}")
            return []

        san_value: x509.SubjectAlternativeName = san_ext.value
        return [
            (name.type_id.dotted_string, name.value)
            for name in san_value.get_values_for_type(x509.OtherName)
        ]

    @staticmethod
    def holder_name(subject: Dict[str, Optional[str]]) -> str:
        """First non-empty of commonName and organizationName."""
        return subject.get("commonName") or subject.get("organizationName") or UNKNOWN_HOLDER

    def extract(self, cert: x509.Certificate) -> CertificateMetadata:
        """
        Extract the metadata record from a decoded certificate.

        Args:
            cert: End-entity certificate

        Returns:
            CertificateMetadata with identity heuristics applied
        """
        pairs = self._subject_pairs(cert)
        subject = self._extract_subject(pairs)
        holder = self.holder_name(subject)

        identity = self.resolver.resolve(
            IdentityContext(
                holder_name=holder,
                subject_attributes=[(oid.dotted_string, text) for oid, text in pairs],
                other_names=self._extract_other_names(cert),
            )
        )

        return CertificateMetadata(
            holder_name=holder,
            expiration_date=cert.not_valid_after_utc,
            issuer=self._extract_issuer(cert),
            serial_number=self._extract_serial(cert),
            subject=subject,
            cnpj=identity.cnpj,
            company_name=identity.company_name,
        )
