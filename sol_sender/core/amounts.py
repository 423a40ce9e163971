"""
Amount encoding policy.

Program instruction amounts are unsigned 64-bit little-endian integers in the
token's base units. Scaling a human amount by 10^decimals happens here and only
when the caller asks for it; instruction builders never infer decimals.
"""

from __future__ import annotations

import math
import struct
from decimal import Decimal, InvalidOperation
from fractions import Fraction
from typing import Sequence

from sol_sender.core.exceptions import InvalidAmount

LAMPORTS_PER_SOL = 1_000_000_000
SOL_DECIMALS = 9
U64_MAX = 2**64 - 1
AMOUNT_LENGTH = 8

_U64_LE = struct.Struct("<Q")


def check_base_units(amount: object) -> int:
    """Validate a base-unit amount: non-negative, integral, fits in u64."""
    if isinstance(amount, bool):
        raise InvalidAmount(amount, "booleans are not amounts")
    if isinstance(amount, int):
        value = amount
    elif isinstance(amount, (float, Decimal)):
        try:
            whole = math.floor(amount)
        except (OverflowError, ValueError, InvalidOperation) as e:
            raise InvalidAmount(amount, "not a finite number") from e
        if whole != amount:
            raise InvalidAmount(amount, "base units must be whole numbers")
        value = whole
    else:
        raise InvalidAmount(amount, f"unsupported type {type(amount).__name__}")
    if value < 0:
        raise InvalidAmount(amount, "must be non-negative")
    if value > U64_MAX:
        raise InvalidAmount(amount, "exceeds u64 range")
    return value


def encode_amount(amount: int) -> bytes:
    """u64 little-endian, 8 bytes."""
    return _U64_LE.pack(check_base_units(amount))


def decode_amount(data: bytes) -> int:
    if len(data) != AMOUNT_LENGTH:
        raise InvalidAmount(data, f"expected {AMOUNT_LENGTH} bytes, got {len(data)}")
    return _U64_LE.unpack(data)[0]


def to_base_units(amount: int | str | Decimal, decimals: int) -> int:
    """
    Scale a human amount (e.g. "1.5" tokens) to base units.

    Raises InvalidAmount if the amount has more fractional digits than the
    token supports. Floats are rejected; pass a str or Decimal instead.
    """
    if not 0 <= decimals <= 255:
        raise InvalidAmount(amount, f"decimals out of range: {decimals}")
    if isinstance(amount, (float, bool)):
        raise InvalidAmount(amount, "use str or Decimal for fractional amounts")
    try:
        value = Decimal(amount)
    except (InvalidOperation, TypeError, ValueError) as e:
        raise InvalidAmount(amount, "not a number") from e
    if not value.is_finite():
        raise InvalidAmount(amount, "not a finite number")
    # Exact integer arithmetic; Decimal.scaleb would round to the context precision
    sign, digits, exponent = value.as_tuple()
    coefficient = int("".join(map(str, digits)) or "0")
    if not coefficient:
        return 0
    shift = exponent + decimals
    if shift > len(str(U64_MAX)):
        raise InvalidAmount(amount, "exceeds u64 range")
    if -shift > len(digits):
        raise InvalidAmount(amount, f"more than {decimals} decimal places")
    if shift >= 0:
        units = coefficient * 10**shift
    else:
        units, remainder = divmod(coefficient, 10**-shift)
        if remainder:
            raise InvalidAmount(amount, f"more than {decimals} decimal places")
    return check_base_units(-units if sign else units)


def lamports_to_sol(lamports: int) -> Decimal:
    return Decimal(lamports) / LAMPORTS_PER_SOL


def sol_to_lamports(sol: int | str | Decimal) -> int:
    return to_base_units(sol, SOL_DECIMALS)


def split_lamports(balance: int, weights: Sequence[int | str | Decimal], reserve: int = 0) -> list[int]:
    """
    Divide ``balance - reserve`` lamports by ``weights`` (fractions of the
    spendable balance, summing to at most 1). Each share is rounded down, so
    the total never exceeds the spendable amount.
    """
    balance = check_base_units(balance)
    reserve = check_base_units(reserve)
    spendable = max(balance - reserve, 0)
    fractions = []
    for w in weights:
        try:
            d = Decimal(w)
        except (InvalidOperation, TypeError, ValueError) as e:
            raise InvalidAmount(w, "weight is not a number") from e
        if not d.is_finite():
            raise InvalidAmount(w, "weight must be a finite number")
        if d < 0:
            raise InvalidAmount(w, "weight must be non-negative")
        fractions.append(Fraction(d))
    if sum(fractions) > 1:
        raise InvalidAmount(list(weights), "weights sum to more than 1")
    return [int(spendable * f) for f in fractions]
