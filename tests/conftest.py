"""
Shared fixtures: certificates and PKCS#12 containers generated on the fly.
"""

import datetime
from typing import Iterable, List, Optional

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.serialization import pkcs12
from cryptography.x509.oid import NameOID

NOT_BEFORE = datetime.datetime(2024, 1, 1, tzinfo=datetime.timezone.utc)
NOT_AFTER = datetime.datetime(2030, 1, 15, 12, 30, 0, tzinfo=datetime.timezone.utc)

ISSUER = x509.Name(
    [
        x509.NameAttribute(NameOID.COUNTRY_NAME, "BR"),
        x509.NameAttribute(NameOID.ORGANIZATION_NAME, "ICP-Brasil"),
        x509.NameAttribute(NameOID.COMMON_NAME, "AC TESTE"),
    ]
)


def create_test_certificate(
    key,
    common_name: Optional[str] = None,
    organization: Optional[str] = None,
    country: Optional[str] = "BR",
    extra_attributes: Iterable[x509.NameAttribute] = (),
    other_names: Iterable[x509.OtherName] = (),
    not_after: datetime.datetime = NOT_AFTER,
    serial_number: int = 0x1A2B3C,
) -> x509.Certificate:
    """Create a certificate for ``key`` signed by itself under a fixed issuer."""
    attributes: List[x509.NameAttribute] = []
    if country:
        attributes.append(x509.NameAttribute(NameOID.COUNTRY_NAME, country))
    if organization:
        attributes.append(x509.NameAttribute(NameOID.ORGANIZATION_NAME, organization))
    attributes.extend(extra_attributes)
    if common_name:
        attributes.append(x509.NameAttribute(NameOID.COMMON_NAME, common_name))

    builder = (
        x509.CertificateBuilder()
        .subject_name(x509.Name(attributes))
        .issuer_name(ISSUER)
        .public_key(key.public_key())
        .serial_number(serial_number)
        .not_valid_before(NOT_BEFORE)
        .not_valid_after(not_after)
    )
    other_names = list(other_names)
    if other_names:
        builder = builder.add_extension(x509.SubjectAlternativeName(other_names), critical=False)

    return builder.sign(key, hashes.SHA256())


def create_test_pfx(
    key,
    cert: Optional[x509.Certificate],
    password: Optional[str] = None,
    cas: Optional[List[x509.Certificate]] = None,
) -> bytes:
    """Serialize a PKCS#12 container, encrypted when a password is given."""
    if password:
        encryption = serialization.BestAvailableEncryption(password.encode("utf-8"))
    else:
        encryption = serialization.NoEncryption()
    return pkcs12.serialize_key_and_certificates(None, key, cert, cas, encryption)


OID_DATA = bytes.fromhex("06092a864886f70d010701")  # 1.2.840.113549.1.7.1
OID_CERT_BAG = bytes.fromhex("060b2a864886f70d010c0a0103")  # 1.2.840.113549.1.12.10.1.3
OID_X509_CERT = bytes.fromhex("060a2a864886f70d01091601")  # 1.2.840.113549.1.9.22.1


def der_tlv(tag: int, content: bytes) -> bytes:
    """Encode one DER value with a definite length."""
    size = len(content)
    if size < 0x80:
        length = bytes([size])
    else:
        encoded = size.to_bytes((size.bit_length() + 7) // 8, "big")
        length = bytes([0x80 | len(encoded)]) + encoded
    return bytes([tag]) + length + content


def create_plain_pfx(cert_value: bytes) -> bytes:
    """
    Build a PKCS#12 container without MAC or encryption holding one cert bag.

    ``cert_value`` is placed in the bag as is, so it need not be a certificate.
    """
    cert_bag = der_tlv(0x30, OID_X509_CERT + der_tlv(0xA0, der_tlv(0x04, cert_value)))
    safe_bag = der_tlv(0x30, OID_CERT_BAG + der_tlv(0xA0, cert_bag))
    safe_contents = der_tlv(0x30, safe_bag)
    content_info = der_tlv(0x30, OID_DATA + der_tlv(0xA0, der_tlv(0x04, safe_contents)))
    authenticated_safe = der_tlv(0x30, content_info)
    auth_safe = der_tlv(0x30, OID_DATA + der_tlv(0xA0, der_tlv(0x04, authenticated_safe)))
    return der_tlv(0x30, der_tlv(0x02, b"\x03") + auth_safe)


@pytest.fixture(scope="session")
def private_key():
    """EC key shared by the generated certificates."""
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture
def make_certificate(private_key):
    """Factory for certificates with a chosen subject."""

    def factory(**kwargs) -> x509.Certificate:
        return create_test_certificate(private_key, **kwargs)

    return factory


@pytest.fixture
def make_pfx(private_key):
    """Factory for PKCS#12 bytes holding a certificate for ``private_key``."""

    def factory(
        password: Optional[str] = "senha123",
        include_key: bool = True,
        include_cert: bool = True,
        cas: Optional[List[x509.Certificate]] = None,
        **cert_kwargs,
    ) -> bytes:
        cert = create_test_certificate(private_key, **cert_kwargs) if include_cert else None
        key = private_key if include_key else None
        return create_test_pfx(key, cert, password, cas)

    return factory


@pytest.fixture
def empresa_pfx(make_pfx) -> bytes:
    """Password-protected container for an ICP-Brasil style company certificate."""
    return make_pfx(password="senha123", common_name="EMPRESA TESTE LTDA:11222333000181")
