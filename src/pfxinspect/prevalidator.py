"""
Password-independent structural check for PKCS#12 uploads.
"""

import logging
from typing import Any, Optional, Tuple

from asn1crypto import parser

logger = logging.getLogger(__name__)

# Constants
MAX_NESTING_DEPTH = 64  # Deepest constructed value accepted
CONSTRUCTED_BIT = 0x20
HIGH_TAG_NUMBER = 0x1F
INDEFINITE_LENGTH = 0x80
END_OF_CONTENTS = b"\x00\x00"


def _read_header(data: bytes, offset: int, end: int) -> Tuple[bool, int, Optional[int]]:
    """
    Read the identifier and length octets of the value at ``offset``.

    Returns:
        (constructed, contents start, contents end or None for indefinite length)

    Raises:
        ValueError: If the header is truncated or the value runs past ``end``
    """
    if offset + 2 > end:
        raise ValueError(f"Truncated ASN.1 header at offset {offset}")
    identifier = data[offset]
    offset += 1
    constructed = bool(identifier & CONSTRUCTED_BIT)

    if identifier & HIGH_TAG_NUMBER == HIGH_TAG_NUMBER:
        while True:
            if offset >= end:
                raise ValueError("Truncated ASN.1 tag number")
            octet = data[offset]
            offset += 1
            if not octet & 0x80:
                break
        if offset >= end:
            raise ValueError("Truncated ASN.1 length")

    length_octet = data[offset]
    offset += 1
    if length_octet == INDEFINITE_LENGTH:
        if not constructed:
            raise ValueError("Indefinite length on a primitive value")
        return constructed, offset, None

    if length_octet & 0x80:
        count = length_octet & 0x7F
        if count == 0x7F or offset + count > end:
            raise ValueError("Invalid ASN.1 long-form length")
        length = int.from_bytes(data[offset:offset + count], "big")
        offset += count
    else:
        length = length_octet

    if offset + length > end:
        raise ValueError(f"ASN.1 value at offset {offset} runs past its container")
    return constructed, offset, offset + length


def _walk(data: bytes, offset: int, end: int, depth: int, indefinite: bool = False) -> int:
    """
    Walk the values in ``data[offset:end]``, recursing into constructed ones.

    Offsets index the original buffer, so no value is copied.

    Returns:
        Offset just past the last value walked (past the end-of-contents
        marker when ``indefinite``)

    Raises:
        ValueError: If a value is malformed or nesting exceeds MAX_NESTING_DEPTH
    """
    if depth > MAX_NESTING_DEPTH:
        raise ValueError(f"ASN.1 nesting deeper than {MAX_NESTING_DEPTH} levels")

    while offset < end:
        if indefinite and data[offset:offset + 2] == END_OF_CONTENTS:
            return offset + 2
        constructed, start, stop = _read_header(data, offset, end)
        if stop is None:
            offset = _walk(data, start, end, depth + 1, indefinite=True)
        elif constructed:
            _walk(data, start, stop, depth + 1)
            offset = stop
        else:
            offset = stop

    if indefinite:
        raise ValueError("Missing end-of-contents marker")
    return offset


def check_structure(data: bytes) -> None:
    """
    Decode a buffer as a single BER/DER value without interpreting it.

    Args:
        data: Raw bytes

    Raises:
        ValueError: If the buffer is not exactly one well-formed ASN.1 value
        TypeError: If the buffer is not bytes-like
    """
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise TypeError(f"Expected bytes, got {type(data).__name__}")
    data = bytes(data)
    if not data:
        raise ValueError("Empty buffer")

    # One top-level value and no trailing bytes
    parser.parse(data, strict=True)
    _walk(data, 0, len(data), 0)


def is_valid_container(data: Any) -> bool:
    """
    Check that a buffer is a well-formed ASN.1 structure.

    This is a fast filter, not a validator: structurally valid input can
    still fail the full decrypt.

    Args:
        data: Raw upload bytes, no preconditions

    Returns:
        True if the buffer decodes as exactly one TLV tree, False otherwise
    """
    try:
        check_structure(data)
    except Exception as e:
        logger.debug(f"Structural check rejected buffer: {e}")
        return False
    return True


def is_pfx_file(data: Any) -> bool:
    """Entry point used before asking the user for a password."""
    return is_valid_container(data)
