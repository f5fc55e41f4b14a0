"""
Tax identifier and company name recovery from certificate identity fields.

Certificates issued under ICP-Brasil carry the company CNPJ either in a
dedicated attribute (OID 2.16.76.1.3.3) or fused into the common name,
typically as ``"COMPANY NAME:12345678000195"``. Strategies are tried in
order and the first candidate wins.
"""

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional, Pattern, Sequence, Tuple

from asn1crypto import core

logger = logging.getLogger(__name__)

_NON_DIGITS = re.compile(r"[^0-9]")
_TRAILING_COLON = re.compile(r":\Z")
_LEADING_NON_WORD = re.compile(r"^\W+")
_TRAILING_NON_WORD = re.compile(r"\W+\Z")


@dataclass(frozen=True)
class TaxIdScheme:
    """Describes a national tax identifier and how certificates embed it."""

    name: str
    oid: str
    length: int
    pattern: Pattern[str]
    groups: Tuple[int, ...]
    separators: Tuple[str, ...]


CNPJ_SCHEME = TaxIdScheme(
    name="CNPJ",
    oid="2.16.76.1.3.3",
    length=14,
    pattern=re.compile(r"\d{2}\.?\d{3}\.?\d{3}/?\d{4}-?\d{2}", re.ASCII),
    groups=(2, 3, 3, 4, 2),
    separators=(".", ".", "/", "-"),
)


def only_digits(value: str) -> str:
    """Strip everything except ASCII digits."""
    return _NON_DIGITS.sub("", value)


def format_tax_id(digits: str, scheme: TaxIdScheme = CNPJ_SCHEME) -> str:
    """
    Insert the scheme's display punctuation, e.g. ``XX.XXX.XXX/XXXX-XX``.

    Values that are not exactly ``scheme.length`` digits are returned unchanged.
    """
    if len(digits) != scheme.length or only_digits(digits) != digits:
        return digits

    parts = []
    offset = 0
    for size in scheme.groups:
        parts.append(digits[offset:offset + size])
        offset += size

    formatted = parts[0]
    for separator, part in zip(scheme.separators, parts[1:]):
        formatted += separator + part
    return formatted


def decode_other_name(value: bytes) -> str:
    """
    Decode the DER value of a SubjectAltName otherName to text.

    ICP-Brasil encodes these as OCTET STRING or PrintableString holding
    ASCII digits.
    """
    try:
        parsed = core.load(value, strict=True).native
    except ValueError:
        return value.decode("latin-1")
    if isinstance(parsed, bytes):
        return parsed.decode("latin-1")
    return str(parsed)


@dataclass
class IdentityContext:
    """Identity fields read from a decoded certificate."""

    holder_name: str
    # (dotted OID, text value) in encoding order
    subject_attributes: List[Tuple[str, str]] = field(default_factory=list)
    # (dotted OID, DER-encoded value) from SubjectAltName otherName entries
    other_names: List[Tuple[str, bytes]] = field(default_factory=list)


@dataclass
class IdentityMatch:
    """Outcome of the heuristic chain."""

    cnpj: Optional[str] = None
    company_name: Optional[str] = None
    source: Optional[str] = None


class TaxIdStrategy(ABC):
    """A single way of finding a tax id candidate."""

    name: str = ""

    @abstractmethod
    def find(self, context: IdentityContext, scheme: TaxIdScheme) -> Optional[str]:
        """Return a digits-only candidate or None."""

    @staticmethod
    def _accept(value: str, scheme: TaxIdScheme) -> Optional[str]:
        digits = only_digits(value)
        if len(digits) == scheme.length:
            return digits
        if digits:
            logger.debug(
                f"Ignoring {scheme.name} candidate with {len(digits)} digit(s), "
                f"expected {scheme.length}"
            )
        return None


class SubjectAttributeStrategy(TaxIdStrategy):
    """Dedicated subject attribute carrying the tax id OID."""

    name = "subject-oid"

    def find(self, context: IdentityContext, scheme: TaxIdScheme) -> Optional[str]:
        for oid, value in context.subject_attributes:
            if oid != scheme.oid or not value:
                continue
            candidate = self._accept(value, scheme)
            if candidate:
                return candidate
        return None


class AltNameStrategy(TaxIdStrategy):
    """SubjectAltName otherName entry carrying the tax id OID."""

    name = "alt-name-oid"

    def find(self, context: IdentityContext, scheme: TaxIdScheme) -> Optional[str]:
        for oid, value in context.other_names:
            if oid != scheme.oid:
                continue
            candidate = self._accept(decode_other_name(value), scheme)
            if candidate:
                return candidate
        return None


class HolderNamePatternStrategy(TaxIdStrategy):
    """First punctuated or bare tax id pattern anywhere in the holder name."""

    name = "holder-pattern"

    def find(self, context: IdentityContext, scheme: TaxIdScheme) -> Optional[str]:
        match = scheme.pattern.search(context.holder_name)
        if match:
            return only_digits(match.group(0))
        return None


DEFAULT_STRATEGIES: Tuple[TaxIdStrategy, ...] = (
    SubjectAttributeStrategy(),
    AltNameStrategy(),
    HolderNamePatternStrategy(),
)


def clean_company_name(
    holder_name: str, tax_id: Optional[str], scheme: TaxIdScheme = CNPJ_SCHEME
) -> Optional[str]:
    """
    Derive a company name by removing the tax id from the holder name.

    Removes the formatted and the bare form of ``tax_id`` (first occurrence
    of each), then one trailing colon, leading and trailing non-word runs and
    surrounding whitespace.

    Returns:
        The cleaned name, or None if nothing is left
    """
    name = holder_name
    if tax_id:
        name = name.replace(format_tax_id(tax_id, scheme), "", 1)
        name = name.replace(tax_id, "", 1)

    name = _TRAILING_COLON.sub("", name)
    name = _LEADING_NON_WORD.sub("", name)
    name = _TRAILING_NON_WORD.sub("", name)
    name = name.strip()
    return name or None


class IdentityResolver:
    """Runs the tax id strategies in order and cleans the company name."""

    def __init__(
        self,
        scheme: TaxIdScheme = CNPJ_SCHEME,
        strategies: Optional[Sequence[TaxIdStrategy]] = None,
    ):
        self.scheme = scheme
        self.strategies = tuple(strategies) if strategies is not None else DEFAULT_STRATEGIES

    def find_tax_id(self, context: IdentityContext) -> Tuple[Optional[str], Optional[str]]:
        """
        Find the first tax id candidate.

        Returns:
            Tuple of (digits or None, name of the strategy that found it or None)
        """
        for strategy in self.strategies:
            candidate = strategy.find(context, self.scheme)
            if candidate:
                logger.debug(f"{self.scheme.name} found by strategy '{strategy.name}'")
                return candidate, strategy.name
        logger.debug(f"No {self.scheme.name} candidate found")
        return None, None

    def resolve(self, context: IdentityContext) -> IdentityMatch:
        """Recover the tax id and company name for a certificate."""
        tax_id, source = self.find_tax_id(context)
        return IdentityMatch(
            cnpj=tax_id,
            company_name=clean_company_name(context.holder_name, tax_id, self.scheme),
            source=source,
        )
