"""Conversions for Starknet field elements.

A field element (felt) is handled as a plain ``int`` in ``[0, FIELD_PRIME)``.
Helpers here move between that int and the other shapes the chain uses:
0x-hex strings, big-endian bytes, u256 ``(low, high)`` halves and short
ASCII strings.
"""

import re
import string

from web3 import Web3

FIELD_PRIME = 2**251 + 17 * 2**192 + 1
MASK_128 = (1 << 128) - 1
MASK_250 = (1 << 250) - 1
U256_MAX = (1 << 256) - 1
SHORT_STRING_MAX_LEN = 31

DEFAULT_ENTRY_POINT_NAME = "__default__"
DEFAULT_L1_ENTRY_POINT_NAME = "__l1_default__"

_ADDRESS_PATTERN = re.compile(r"^0x[0-9a-fA-F]{50,64}$")
_PRINTABLE = set(string.printable.encode("ascii"))


def to_felt(value: int | str | bytes) -> int:
    """Coerce an int, 0x-hex string or big-endian bytes into a field element.

    Raises:
        ValueError: If the value is negative or does not fit in the field
    """
    match value:
        case bool():
            felt = int(value)
        case int():
            felt = value
        case str():
            felt = Web3.to_int(hexstr=value) if value.startswith(("0x", "0X")) else int(value)
        case bytes():
            felt = int.from_bytes(value, "big")
        case _:
            raise TypeError(f"Cannot convert {type(value).__name__} to a field element")

    if not 0 <= felt < FIELD_PRIME:
        raise ValueError(f"Value {felt:#x} is outside the Starknet field")
    return felt


def felt_to_hex(felt: int) -> str:
    """Render a field element as minimal 0x-hex (``0x0`` for zero)."""
    return Web3.to_hex(to_felt(felt))


def felt_to_bytes(felt: int) -> bytes:
    """Big-endian 32-byte form of a field element."""
    return to_felt(felt).to_bytes(32, "big")


def felt_from_bytes(data: bytes) -> int:
    """Inverse of :func:`felt_to_bytes`."""
    if len(data) > 32:
        raise ValueError(f"Field element bytes too long: {len(data)}")
    return to_felt(data)


def decode_u256(low: int | None, high: int | None) -> str:
    """Combine the low 128 bits of two words into a decimal string.

    Returns ``"0"`` when either half is missing.
    """
    if low is None or high is None:
        return "0"
    value = ((high & MASK_128) << 128) | (low & MASK_128)
    return str(value)


def encode_u256(value: int | str) -> tuple[int, int]:
    """Split an unsigned 256-bit integer into ``(low, high)`` words."""
    number = int(value)
    if not 0 <= number <= U256_MAX:
        raise ValueError(f"Value out of u256 range: {value}")
    return number & MASK_128, number >> 128


def encode_short_string(text: str) -> int:
    """Pack an ASCII string of at most 31 bytes into one field element."""
    if not text.isascii():
        raise ValueError(f"Short string must be ASCII: {text!r}")
    if len(text) > SHORT_STRING_MAX_LEN:
        raise ValueError(
            f"Short string too long ({len(text)} > {SHORT_STRING_MAX_LEN}): {text!r}"
        )
    return int.from_bytes(text.encode("ascii"), "big")


def decode_short_string(felt: int) -> str:
    """Unpack a short string from a field element.

    Leading padding and trailing NUL bytes are dropped. When the remaining
    bytes are not printable ASCII the 0x-hex of the element is returned
    instead, so this never raises for an in-range element.
    """
    raw = felt_to_bytes(felt).lstrip(b"\x00").rstrip(b"\x00")
    if all(byte in _PRINTABLE for byte in raw):
        return raw.decode("ascii")
    return felt_to_hex(felt)


def normalize_address(felt: int | str) -> str:
    """Canonical address form: ``0x`` followed by 64 lowercase hex digits."""
    return f"0x{to_felt(felt):064x}"


def get_selector_from_name(name: str) -> int:
    """Starknet entry point selector: keccak-256 of the name, masked to 250 bits."""
    if name in (DEFAULT_ENTRY_POINT_NAME, DEFAULT_L1_ENTRY_POINT_NAME):
        return 0
    digest = Web3.keccak(text=name)
    return int.from_bytes(digest, "big") & MASK_250


def is_valid_starknet_address(address: str) -> bool:
    """Check a user supplied address: 0x-hex of 50 to 64 digits inside the field."""
    if not _ADDRESS_PATTERN.match(address):
        return False
    return int(address, 16) < FIELD_PRIME
