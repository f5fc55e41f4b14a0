"""
Certificate metadata record produced by a successful parse.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional


def isoformat_z(value: datetime) -> str:
    """Render a datetime as ISO-8601, using ``Z`` for UTC."""
    return value.isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class CertificateMetadata:
    """
    Public metadata of the end-entity certificate in a PKCS#12 container.

    Built once per parse call and handed to the caller, who decides what to
    persist. Never holds the password or any private key material.
    """

    holder_name: str
    expiration_date: datetime
    issuer: str
    serial_number: str
    # Convenience keys first, then every subject attribute in encoding order
    subject: Dict[str, Optional[str]] = field(default_factory=dict)
    cnpj: Optional[str] = None
    company_name: Optional[str] = None

    @property
    def display_name(self) -> str:
        """Company name when available, holder name otherwise."""
        return self.company_name or self.holder_name

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the camelCase record used in JSON output."""
        return {
            "holderName": self.holder_name,
            "expirationDate": isoformat_z(self.expiration_date),
            "issuer": self.issuer,
            "serialNumber": self.serial_number,
            "subject": dict(self.subject),
            "cnpj": self.cnpj,
            "companyName": self.company_name,
        }
