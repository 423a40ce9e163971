"""Address parsing and encoding (base58 <-> 32-byte Pubkey)."""

from __future__ import annotations

import base58
from solders.pubkey import Pubkey

from sol_sender.core.exceptions import InvalidAddress

ADDRESS_LENGTH = 32
# Longest base58 rendering of 32 bytes
MAX_ENCODED_LENGTH = 44

_B58_ALPHABET = set(base58.BITCOIN_ALPHABET.decode("ascii"))


class AddressCodec:
    """Parse and render addresses. Pure; no network access."""

    @staticmethod
    def parse(value: str) -> Pubkey:
        if not isinstance(value, str):
            raise InvalidAddress(value, "expected a string")
        raw = value.strip()
        if not raw:
            raise InvalidAddress(value, "empty")
        if len(raw) > MAX_ENCODED_LENGTH:
            raise InvalidAddress(value, f"too long ({len(raw)} characters)")
        bad = sorted(set(raw) - _B58_ALPHABET)
        if bad:
            raise InvalidAddress(value, f"invalid base58 characters {''.join(bad)!r}")
        decoded = base58.b58decode(raw)
        if len(decoded) != ADDRESS_LENGTH:
            raise InvalidAddress(value, f"decodes to {len(decoded)} bytes, expected {ADDRESS_LENGTH}")
        return Pubkey.from_bytes(decoded)

    @staticmethod
    def encode(address: Pubkey) -> str:
        return base58.b58encode(bytes(address)).decode("ascii")

    @classmethod
    def coerce(cls, value: Pubkey | str) -> Pubkey:
        """Accept an already-parsed Pubkey or parse a string."""
        if isinstance(value, Pubkey):
            return value
        return cls.parse(value)


def is_valid_address(value: str) -> bool:
    """Return True if value is a valid Solana address."""
    try:
        AddressCodec.parse(value)
        return True
    except InvalidAddress:
        return False


parse_address = AddressCodec.parse
encode_address = AddressCodec.encode
