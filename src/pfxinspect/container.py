"""
PKCS#12 container decoding and end-entity certificate selection.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from asn1crypto import pkcs12 as asn1_pkcs12
from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives.serialization import pkcs12

from .errors import InvalidCertificateError, ProcessingError, WrongPasswordError
from .prevalidator import check_structure

logger = logging.getLogger(__name__)

# Authenticated safe content types a PFX may carry
AUTH_SAFE_TYPES = ("data", "signed_data")


@dataclass
class ContainerLayout:
    """Password-independent view of a PFX envelope."""

    version: int
    auth_safe_type: str
    has_mac: bool
    safe_count: int = 0
    encrypted_safe_count: int = 0
    # Bag types found in safes that are readable without the password
    visible_bags: List[str] = field(default_factory=list)

    @property
    def fully_visible(self) -> bool:
        """True when no safe needs the password to be read."""
        return self.encrypted_safe_count == 0


class ContainerDecryptor:
    """
    Decodes PKCS#12 containers and yields the end-entity certificate.

    The stage that fails picks the error kind:
    - not ASN.1, or not shaped like a PFX: InvalidCertificateError
    - PFX shape but decrypt/MAC failure: WrongPasswordError
    - decrypted but no certificate bag, or a bag that does not decode in a
      container with no MAC and no encrypted safe: InvalidCertificateError
    - unsupported encryption algorithm: ProcessingError
    """

    @staticmethod
    def inspect_layout(data: bytes) -> ContainerLayout:
        """
        Read the PFX envelope without decrypting anything.

        Args:
            data: Raw container bytes

        Returns:
            ContainerLayout describing the envelope

        Raises:
            InvalidCertificateError: If the bytes are not a PFX structure
        """
        try:
            check_structure(data)
        except (ValueError, TypeError) as e:
            raise InvalidCertificateError({"stage": "structure", "reason": str(e)}) from e

        try:
            pfx = asn1_pkcs12.Pfx.load(bytes(data), strict=True)
            auth_safe_type = pfx["auth_safe"]["content_type"].native
            if auth_safe_type not in AUTH_SAFE_TYPES:
                raise ValueError(f"Unexpected authSafe content type: {auth_safe_type}")

            layout = ContainerLayout(
                version=pfx["version"].native,
                auth_safe_type=auth_safe_type,
                has_mac=pfx["mac_data"].native is not None,
            )

            for content_info in pfx.authenticated_safe:
                layout.safe_count += 1
                if content_info["content_type"].native != "data":
                    layout.encrypted_safe_count += 1
                    continue
                safe_contents = asn1_pkcs12.SafeContents.load(content_info["content"].native)
                for bag in safe_contents:
                    layout.visible_bags.append(bag["bag_id"].native)
        except (ValueError, TypeError, KeyError) as e:
            raise InvalidCertificateError({"stage": "layout", "reason": str(e)}) from e

        return layout

    @staticmethod
    def certificate_bags(bundle: pkcs12.PKCS12KeyAndCertificates) -> List[x509.Certificate]:
        """
        List decoded certificates, key-matched certificate first.

        Args:
            bundle: Decrypted PKCS#12 bundle

        Returns:
            Certificates in selection order (may be empty)
        """
        certificates: List[x509.Certificate] = []
        if bundle.cert is not None:
            certificates.append(bundle.cert.certificate)
        for extra in bundle.additional_certs:
            certificates.append(extra.certificate)
        return certificates

    @staticmethod
    def decrypt(data: bytes, password: Optional[str] = None) -> x509.Certificate:
        """
        Decrypt a container and return its end-entity certificate.

        A missing password and an empty password behave the same.

        Args:
            data: Raw container bytes
            password: Optional passphrase, used only for this call

        Returns:
            The first certificate bag's decoded certificate

        Raises:
            InvalidCertificateError: Structurally broken or no certificate bag
            WrongPasswordError: Passphrase does not decrypt the container
            ProcessingError: Container uses an unsupported algorithm
        """
        layout = ContainerDecryptor.inspect_layout(data)
        logger.debug(
            f"PFX v{layout.version}: {layout.safe_count} safe(s), "
            f"{layout.encrypted_safe_count} encrypted, mac={layout.has_mac}, "
            f"visible bags={layout.visible_bags}"
        )

        password_bytes = password.encode("utf-8") if password else None
        try:
            bundle = pkcs12.load_pkcs12(bytes(data), password_bytes)
        except UnsupportedAlgorithm as e:
            raise ProcessingError(str(e), {"stage": "decrypt"}) from e
        except ValueError as e:
            # Nothing is password-protected, so the bags themselves are broken
            if not layout.has_mac and layout.fully_visible:
                raise InvalidCertificateError(
                    {"stage": "bags", "visible_bags": list(layout.visible_bags)}
                ) from e
            raise WrongPasswordError({"stage": "decrypt"}) from e

        certificates = ContainerDecryptor.certificate_bags(bundle)
        if not certificates:
            raise InvalidCertificateError(
                {"stage": "bags", "visible_bags": list(layout.visible_bags)}
            )

        if bundle.key is None:
            logger.debug("Container holds no private key bag")
        logger.debug(f"Found {len(certificates)} certificate bag(s), using the first")
        return certificates[0]
