"""
Proof-of-work verification.

Algorithm ``sha256-leading-zero-bits/v1``:

    digest = SHA-256(bytes.fromhex(challenge_nonce) || bytes.fromhex(solution_nonce))

The solution is valid when the digest, read as a big-endian integer, is below
``2 ** (256 - work_factor)``, i.e. it has at least ``work_factor`` leading zero bits.

Verification costs a single hash over bounded input regardless of the work factor.
Only the client pays the ~2**work_factor expected search cost.
"""

import hashlib
import string
from typing import Protocol

POW_ALGORITHM = "sha256-leading-zero-bits/v1"
DIGEST_BITS = 256
MAX_WORK_FACTOR = DIGEST_BITS
CHALLENGE_NONCE_BYTES = 32
DEFAULT_MAX_SOLUTION_BYTES = 32


class PowChallenge(Protocol):
    nonce: str
    work_factor: int


def _decode_hex(value: str, max_bytes: int) -> bytes | None:
    # Length is checked before decoding
    if not isinstance(value, str) or not value or len(value) > max_bytes * 2:
        return None
    if len(value) % 2 or any(c not in string.hexdigits for c in value):
        return None
    return bytes.fromhex(value)


def pow_digest(challenge_nonce: bytes, solution_nonce: bytes) -> bytes:
    """Combine challenge and solution nonces into the digest that is scored."""
    return hashlib.sha256(challenge_nonce + solution_nonce).digest()


def meets_work_factor(digest: bytes, work_factor: int) -> bool:
    """Check that ``digest`` has at least ``work_factor`` leading zero bits."""
    target = 2 ** (DIGEST_BITS - work_factor)
    return int.from_bytes(digest, "big") < target


def leading_zero_bits(digest: bytes) -> int:
    """Count leading zero bits of a digest."""
    value = int.from_bytes(digest, "big")
    return len(digest) * 8 - value.bit_length()


def verify(
    challenge: PowChallenge,
    solution_nonce: str,
    *,
    max_solution_bytes: int = DEFAULT_MAX_SOLUTION_BYTES,
) -> bool:
    """
    Verify a proof-of-work solution against a challenge.

    Pure and deterministic. Malformed or oversized input is rejected without hashing.
    """
    work_factor = challenge.work_factor
    if isinstance(work_factor, bool) or not isinstance(work_factor, int):
        return False
    if work_factor < 1 or work_factor > MAX_WORK_FACTOR:
        return False

    challenge_bytes = _decode_hex(challenge.nonce, CHALLENGE_NONCE_BYTES)
    solution_bytes = _decode_hex(solution_nonce, max_solution_bytes)
    if challenge_bytes is None or solution_bytes is None:
        return False

    return meets_work_factor(pow_digest(challenge_bytes, solution_bytes), work_factor)
