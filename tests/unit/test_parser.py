"""
Unit tests for the end-to-end parse call.
"""

import logging

import pytest
from asn1crypto import core
from cryptography import x509
from cryptography.hazmat.primitives.serialization import Encoding

from pfxinspect import parse_certificate as lazy_parse_certificate
from pfxinspect.errors import (
    CertificateError,
    ErrorKind,
    InvalidCertificateError,
    ProcessingError,
    UnknownCertificateError,
    WrongPasswordError,
)
from pfxinspect.extractor import MetadataExtractor
from pfxinspect.models import CertificateMetadata
from pfxinspect.parser import CertificateParser, is_pfx_file, parse_certificate

from conftest import NOT_AFTER

PASSWORD = "senha123"


class TestParseCertificate:
    """Test successful parsing."""

    def test_company_certificate(self, empresa_pfx):
        """Test the fused holder name case end to end."""
        metadata = parse_certificate(empresa_pfx, PASSWORD)

        assert isinstance(metadata, CertificateMetadata)
        assert metadata.holder_name == "EMPRESA TESTE LTDA:11222333000181"
        assert metadata.cnpj == "11222333000181"
        assert metadata.company_name == "EMPRESA TESTE LTDA"
        assert metadata.expiration_date == NOT_AFTER
        assert metadata.issuer == "countryName=BR, organizationName=ICP-Brasil, commonName=AC TESTE"
        assert metadata.serial_number == "1a2b3c"
        assert metadata.subject["commonName"] == "EMPRESA TESTE LTDA:11222333000181"

    def test_personal_certificate(self, make_pfx):
        """Test a certificate without CNPJ."""
        metadata = parse_certificate(make_pfx(common_name="Jane Doe"), PASSWORD)

        assert metadata.holder_name == "Jane Doe"
        assert metadata.cnpj is None
        assert metadata.company_name == "Jane Doe"

    def test_alt_name_cnpj(self, make_pfx):
        """Test CNPJ recovery from a SubjectAltName otherName."""
        data = make_pfx(
            common_name="EMPRESA SAN LTDA",
            other_names=[
                x509.OtherName(
                    x509.ObjectIdentifier("2.16.76.1.3.3"),
                    core.OctetString(b"12345678000195").dump(),
                )
            ],
        )

        metadata = parse_certificate(data, PASSWORD)

        assert metadata.cnpj == "12345678000195"
        assert metadata.company_name == "EMPRESA SAN LTDA"

    def test_unencrypted_container(self, make_pfx):
        """Test that a container without password parses with None or ""."""
        data = make_pfx(password=None, common_name="ACME CORP:12.345.678/0001-95")

        assert parse_certificate(data).cnpj == "12345678000195"
        assert parse_certificate(data, "") == parse_certificate(data, None)

    def test_parse_is_idempotent(self, empresa_pfx):
        """Test that repeated calls give equal records."""
        assert parse_certificate(empresa_pfx, PASSWORD) == parse_certificate(empresa_pfx, PASSWORD)

    def test_input_not_modified(self, empresa_pfx):
        """Test that the caller's buffer is left as it was."""
        buffer = bytearray(empresa_pfx)

        parse_certificate(buffer, PASSWORD)

        assert bytes(buffer) == empresa_pfx

    def test_package_level_export(self, empresa_pfx):
        """Test the lazily exported entry point."""
        assert lazy_parse_certificate(empresa_pfx, PASSWORD).cnpj == "11222333000181"

    def test_cnpj_is_always_fourteen_digits(self, make_pfx):
        """Test the CNPJ shape across holder name layouts."""
        for holder in (
            "EMPRESA A:11222333000181",
            "EMPRESA B 11.222.333/0001-81",
            "11222333/0001-81 EMPRESA C",
        ):
            cnpj = parse_certificate(make_pfx(common_name=holder), PASSWORD).cnpj
            assert cnpj is not None
            assert cnpj.isdigit() and len(cnpj) == 14


class TestParseFailures:
    """Test the four failure kinds."""

    def test_wrong_password(self, empresa_pfx):
        """Test that a wrong password raises WrongPasswordError."""
        with pytest.raises(WrongPasswordError) as exc_info:
            parse_certificate(empresa_pfx, "wrong")

        assert exc_info.value.kind == ErrorKind.WRONG_PASSWORD
        assert str(exc_info.value) == "incorrect password for the certificate"

    def test_missing_password(self, empresa_pfx):
        """Test that no password on an encrypted container is a wrong password."""
        with pytest.raises(WrongPasswordError):
            parse_certificate(empresa_pfx)

    def test_corrupt_bytes(self):
        """Test that corrupt bytes raise InvalidCertificateError."""
        with pytest.raises(InvalidCertificateError) as exc_info:
            parse_certificate(b"\x8f\x13\xa7\x00\xfe\x42\x91\x3c\x07\xd5", PASSWORD)

        assert str(exc_info.value) == "invalid or corrupted .pfx file"

    def test_truncated_container(self, empresa_pfx):
        with pytest.raises(InvalidCertificateError):
            parse_certificate(empresa_pfx[: len(empresa_pfx) // 2], PASSWORD)

    def test_certificate_der_is_not_a_container(self, make_certificate):
        """Test that a bare DER certificate is rejected as invalid."""
        der = make_certificate(common_name="Jane Doe").public_bytes(Encoding.DER)

        assert is_pfx_file(der) is True
        with pytest.raises(InvalidCertificateError):
            parse_certificate(der, PASSWORD)

    def test_key_only_container(self, make_pfx):
        with pytest.raises(InvalidCertificateError):
            parse_certificate(make_pfx(include_cert=False), PASSWORD)

    def test_non_bytes_input(self):
        """Test that non-binary input is reported as invalid."""
        with pytest.raises(InvalidCertificateError):
            parse_certificate("not bytes", PASSWORD)

    def test_unexpected_failure_keeps_message(self, empresa_pfx, monkeypatch):
        """Test that other failures become ProcessingError with the cause."""

        def broken(self, cert):
            raise RuntimeError("boom")

        monkeypatch.setattr(MetadataExtractor, "extract", broken)

        with pytest.raises(ProcessingError) as exc_info:
            parse_certificate(empresa_pfx, PASSWORD)

        assert exc_info.value.kind == ErrorKind.PROCESSING_ERROR
        assert str(exc_info.value) == "error processing certificate: boom"
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_failure_without_message(self, empresa_pfx, monkeypatch):
        """Test that failures without a message become UnknownCertificateError."""

        def broken(self, cert):
            raise RuntimeError()

        monkeypatch.setattr(MetadataExtractor, "extract", broken)

        with pytest.raises(UnknownCertificateError) as exc_info:
            parse_certificate(empresa_pfx, PASSWORD)

        assert exc_info.value.kind == ErrorKind.UNKNOWN_ERROR
        assert str(exc_info.value) == "unknown error processing certificate"

    def test_every_failure_is_a_certificate_error(self, empresa_pfx):
        """Test that callers can catch a single base class."""
        for data, password in ((empresa_pfx, "wrong"), (b"", PASSWORD), (b"not a pfx!", None)):
            with pytest.raises(CertificateError):
                parse_certificate(data, password)


class TestPasswordHandling:
    """Test that the password never leaves the parse call."""

    def test_password_not_logged(self, empresa_pfx, caplog):
        """Test that neither success nor failure logs the password."""
        secret = "s3cr3t-Senha!"
        caplog.set_level(logging.DEBUG)

        with pytest.raises(WrongPasswordError) as exc_info:
            parse_certificate(empresa_pfx, secret)
        parse_certificate(empresa_pfx, PASSWORD)

        assert secret not in caplog.text
        assert PASSWORD not in caplog.text
        assert secret not in str(exc_info.value.details)

    def test_password_not_in_metadata(self, empresa_pfx):
        metadata = parse_certificate(empresa_pfx, PASSWORD)

        assert PASSWORD not in repr(metadata)
        assert PASSWORD not in str(metadata.to_dict())

    def test_parser_instance_is_reusable(self, empresa_pfx, make_pfx):
        """Test that one parser serves many independent calls."""
        parser = CertificateParser()

        with pytest.raises(WrongPasswordError):
            parser.parse(empresa_pfx, "wrong")

        assert parser.parse(empresa_pfx, PASSWORD).cnpj == "11222333000181"
        assert parser.parse(make_pfx(common_name="Jane Doe"), PASSWORD).cnpj is None
