"""
TBURN address utilities

Native TBURN addresses use Bech32m with the `tb` human readable part for
wallets and contracts and `tbv` for validators:

    tb1 + 32 data chars + 6 checksum chars   (20-byte payload)

Legacy forms still accepted on input:
    tburn + 40 hex chars
    0x + 40 hex chars
    40 plain hex chars

Contracts and RPC calls still speak the 20-byte hex form, so `to_hex_address`
converts any accepted form back to an EIP-55 checksummed 0x address.
"""

import hashlib
import re
import secrets
from typing import List, Optional, Tuple

from eth_utils import is_hex_address, to_checksum_address

from .exceptions import InvalidAddressError

BECH32M_CONST = 0x2bc830a3
CHARSET = "qpzry9x8gf2tvdw0s3jn54khce6mua7l"
CHARSET_MAP = {c: i for i, c in enumerate(CHARSET)}

HRP_WALLET = "tb"
HRP_VALIDATOR = "tbv"

LEGACY_PREFIX = "tburn"
LEGACY_VALIDATOR_PREFIX = "tburnvalidator"
ADDRESS_HEX_LENGTH = 40

_PLAIN_HEX_RE = re.compile(r"^[a-fA-F0-9]{40}$")
_LEGACY_RE = re.compile(rf"^{LEGACY_PREFIX}[a-f0-9]{{{ADDRESS_HEX_LENGTH}}}$")
_LEGACY_VALIDATOR_RE = re.compile(rf"^{LEGACY_VALIDATOR_PREFIX}\d{{4}}$")


def _polymod(values: List[int]) -> int:
    generator = [0x3b6a57b2, 0x26508e6d, 0x1ea119fa, 0x3d4233dd, 0x2a1462b3]
    chk = 1
    for value in values:
        top = chk >> 25
        chk = ((chk & 0x1ffffff) << 5) ^ value
        for i in range(5):
            if (top >> i) & 1:
                chk ^= generator[i]
    return chk


def _hrp_expand(hrp: str) -> List[int]:
    return [ord(c) >> 5 for c in hrp] + [0] + [ord(c) & 31 for c in hrp]


def _create_checksum(hrp: str, data: List[int]) -> List[int]:
    values = _hrp_expand(hrp) + data + [0, 0, 0, 0, 0, 0]
    mod = _polymod(values) ^ BECH32M_CONST
    return [(mod >> (5 * (5 - i))) & 31 for i in range(6)]


def _verify_checksum(hrp: str, data: List[int]) -> bool:
    return _polymod(_hrp_expand(hrp) + data) == BECH32M_CONST


def _convert_bits(data: bytes, from_bits: int, to_bits: int, pad: bool) -> Optional[List[int]]:
    acc = 0
    bits = 0
    ret = []
    maxv = (1 << to_bits) - 1
    for value in data:
        if value < 0 or (value >> from_bits):
            return None
        acc = (acc << from_bits) | value
        bits += from_bits
        while bits >= to_bits:
            bits -= to_bits
            ret.append((acc >> bits) & maxv)
    if pad:
        if bits:
            ret.append((acc << (to_bits - bits)) & maxv)
    elif bits >= from_bits or ((acc << (to_bits - bits)) & maxv):
        return None
    return ret


def encode_bech32m(hrp: str, data: bytes) -> str:
    """Encode raw bytes as a Bech32m string"""
    values = _convert_bits(data, 8, 5, True)
    if values is None:
        raise ValueError("Failed to convert bits for Bech32m encoding")
    combined = values + _create_checksum(hrp, values)
    return hrp + "1" + "".join(CHARSET[v] for v in combined)


def decode_bech32m(address: str) -> Optional[Tuple[str, bytes]]:
    """
    Decode a Bech32m string.

    Returns:
        (hrp, payload bytes) or None if the string is not valid Bech32m
    """
    if address != address.lower() and address != address.upper():
        return None

    addr = address.lower()
    pos = addr.rfind("1")
    if pos < 1 or pos + 7 > len(addr) or len(addr) > 90:
        return None

    hrp = addr[:pos]
    data = []
    for c in addr[pos + 1:]:
        if c not in CHARSET_MAP:
            return None
        data.append(CHARSET_MAP[c])

    if not _verify_checksum(hrp, data):
        return None

    decoded = _convert_bits(bytes(data[:-6]), 5, 8, False)
    if decoded is None:
        return None
    return hrp, bytes(decoded)


def generate_random_tburn_address() -> str:
    """Random tb1 address not linked to any key; for simulations only"""
    return encode_bech32m(HRP_WALLET, secrets.token_bytes(20))


def generate_system_address(label: str) -> str:
    """Deterministic tb1 address derived from a label"""
    digest = hashlib.sha256(label.encode("utf-8")).digest()
    return encode_bech32m(HRP_WALLET, digest[:20])


def generate_validator_address(index: int) -> str:
    digest = hashlib.sha256(f"tburn-validator-{index}".encode("utf-8")).digest()
    return encode_bech32m(HRP_VALIDATOR, digest[:20])


def migrate_legacy_address(address: str) -> str:
    """Convert any legacy address representation to tb1 format"""
    if is_tb1_format(address):
        return address

    if address.startswith(LEGACY_VALIDATOR_PREFIX):
        return generate_validator_address(int(address[len(LEGACY_VALIDATOR_PREFIX):]))

    if address.startswith(LEGACY_PREFIX):
        hex_part = address[len(LEGACY_PREFIX):]
        if len(hex_part) == ADDRESS_HEX_LENGTH:
            return encode_bech32m(HRP_WALLET, bytes.fromhex(hex_part))

    if address.startswith("0x"):
        hex_part = address[2:]
        if len(hex_part) == ADDRESS_HEX_LENGTH:
            return encode_bech32m(HRP_WALLET, bytes.fromhex(hex_part))

    if _PLAIN_HEX_RE.match(address):
        return encode_bech32m(HRP_WALLET, bytes.fromhex(address))

    # Unknown format: derive deterministically from the string itself
    return generate_system_address(address)


format_tburn_address = migrate_legacy_address


def to_legacy_format(tb1_address: str) -> str:
    decoded = decode_bech32m(tb1_address)
    if decoded is None:
        return tb1_address
    hrp, payload = decoded
    if hrp == HRP_VALIDATOR:
        return f"{LEGACY_VALIDATOR_PREFIX}{payload.hex()[:4]}"
    return f"{LEGACY_PREFIX}{payload.hex()}"


def to_hex_address(address: str) -> str:
    """
    Convert a tb1, legacy tburn, or 0x address to checksummed 0x hex.

    Raises:
        InvalidAddressError: If the address has no 20-byte interpretation
    """
    if is_tb1_format(address):
        decoded = decode_bech32m(address)
        if decoded is None or len(decoded[1]) != 20:
            raise InvalidAddressError(address, "invalid Bech32m address")
        return to_checksum_address("0x" + decoded[1].hex())

    if _LEGACY_RE.match(address):
        return to_checksum_address("0x" + address[len(LEGACY_PREFIX):])

    if is_hex_address(address):
        return to_checksum_address(address)

    raise InvalidAddressError(address)


def is_valid_tburn_address(address: str) -> bool:
    if is_tb1_format(address):
        decoded = decode_bech32m(address)
        return decoded is not None and len(decoded[1]) == 20
    if address.startswith(LEGACY_VALIDATOR_PREFIX):
        return bool(_LEGACY_VALIDATOR_RE.match(address))
    return bool(_LEGACY_RE.match(address))


def is_tb1_format(address: str) -> bool:
    return address.startswith("tb1") or address.startswith("tbv1")


def is_legacy_format(address: str) -> bool:
    return address.startswith(LEGACY_PREFIX) and not address.startswith("tb1")


def truncate_address(address: str, start_chars: int = 8, end_chars: int = 5) -> str:
    if len(address) <= start_chars + end_chars + 3:
        return address
    return f"{address[:start_chars]}...{address[-end_chars:]}"
