"""Insecure on-chain randomness: a block-hash mixing source and a pallet that consumes it."""

from __future__ import annotations

import hashlib
from collections import deque
from dataclasses import dataclass

from runtimekit.runtime import Origin, System, ensure_signed

HASH_LENGTH = 32
_MATERIAL_SIZE = 81
_U32_MODULUS = 2**32
_ZERO_HASH = bytes(HASH_LENGTH)


def _hash(data: bytes) -> bytes:
    return hashlib.blake2b(data, digest_size=HASH_LENGTH).digest()


def _xor(a: bytes, b: bytes) -> bytes:
    return bytes(x ^ y for x, y in zip(a, b))


class CollectiveFlip:
    """Mixes the most recent block hashes into a pseudo-random value.

    Until any block hash has been noted, every result is the zero hash.
    """

    def __init__(self, system: System) -> None:
        self.system = system
        self._material: deque[bytes] = deque(maxlen=_MATERIAL_SIZE)

    def note_block_hash(self, block_hash: bytes) -> None:
        """Add a block hash to the material, dropping the oldest beyond the limit."""
        block_hash = bytes(block_hash)
        if len(block_hash) != HASH_LENGTH:
            raise ValueError(f"block hash must be {HASH_LENGTH} bytes")
        self._material.append(block_hash)

    def random_seed(self) -> bytes:
        return self.random(b"")

    def random(self, subject: bytes) -> bytes:
        """A value derived from the subject, the block number and the stored hashes."""
        if not self._material:
            return _ZERO_HASH
        material = list(self._material)
        offset = self.system.block_number() % _MATERIAL_SIZE
        result = _ZERO_HASH
        for i in range(_MATERIAL_SIZE):
            block_hash = material[(offset + i) % len(material)]
            result = _xor(result, _hash(bytes([i]) + bytes(subject) + block_hash))
        return result


@dataclass(frozen=True)
class RandomnessConsumed:
    """A random seed and a nonce-subject random value were consumed."""

    seed: bytes
    value: bytes


class RandomnessPallet:
    """Draws a seed and a subject-specific value from a randomness source."""

    def __init__(self, system: System, source: CollectiveFlip) -> None:
        self.system = system
        self.source = source
        self._nonce = 0

    def _encode_and_update_nonce(self) -> bytes:
        nonce = self._nonce
        self._nonce = (nonce + 1) % _U32_MODULUS
        return nonce.to_bytes(4, "little")

    def consume_randomness(self, origin: Origin) -> None:
        ensure_signed(origin)
        subject = self._encode_and_update_nonce()
        seed = self.source.random_seed()
        value = self.source.random(subject)
        self.system.deposit_event(RandomnessConsumed(seed, value))

    def nonce(self) -> int:
        return self._nonce