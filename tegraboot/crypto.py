"""Elliptic-curve and SHA parameter structures used by the boot ROM."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from enum import IntEnum

SHA256_LENGTH_BYTES = 256 // 8
SHA256_LENGTH_WORDS = SHA256_LENGTH_BYTES // 4
SHA2_MAX_BYTE_SIZE = 512 // 8

ECC_KEY_BITS_192 = 192
ECC_KEY_BITS_224 = 224
ECC_KEY_BITS_256 = 256
ECC_KEY_BITS_384 = 384
ECC_KEY_BITS_521 = 521
ECC_DEFAULT_KEY_BITS = ECC_KEY_BITS_256

_SIGNATURE_KEY_BITS = ECC_KEY_BITS_256
_POINT_KEY_BITS = (ECC_KEY_BITS_256, ECC_KEY_BITS_384)


class EccCurve(IntEnum):
    """Elliptic curves known to the boot ROM; only NIST P-256 is supported."""

    NIST_P256 = 0
    DEFAULT = 0


class ShaFamily(IntEnum):
    SHA2 = 2
    SHA3 = 3


class ShaDigestSize(IntEnum):
    """Digest size in bits."""

    SHA_256 = 256
    SHA_384 = 384
    SHA_512 = 512


class Sha2Algorithm(IntEnum):
    """SHA2 algorithm, valued by its digest size in bits."""

    SHA2_256 = 256


def ecc_key_size_bytes(bits: int) -> int:
    """Number of bytes needed to hold a prime-field integer of ``bits`` bits."""
    if bits <= 0:
        raise ValueError(f"key size must be positive, got {bits}")
    return -(-bits // 8)


ECC_DEFAULT_KEY_SIZE_BYTES = ecc_key_size_bytes(ECC_DEFAULT_KEY_BITS)
ECC_MAX_KEY_SIZE_BYTES = ecc_key_size_bytes(ECC_KEY_BITS_384)
ECC_T194_KEY_SIZE_BYTES = ecc_key_size_bytes(ECC_KEY_BITS_256)


@dataclass(frozen=True)
class ShaConfig:
    """A SHA family and digest size pairing."""

    family: ShaFamily
    digest_size: ShaDigestSize

    @property
    def digest_bytes(self) -> int:
        return int(self.digest_size) // 8


@dataclass(frozen=True)
class EcPoint:
    """A point on a prime-field elliptic curve; stored as x then y."""

    x: bytes
    y: bytes

    def __post_init__(self) -> None:
        if len(self.x) != len(self.y):
            raise ValueError("x and y coordinates differ in size")
        if len(self.x) not in {ecc_key_size_bytes(b) for b in _POINT_KEY_BITS}:
            raise ValueError(f"unsupported coordinate size {len(self.x)} bytes")

    @property
    def key_bits(self) -> int:
        size = len(self.x)
        return next(b for b in _POINT_KEY_BITS if ecc_key_size_bytes(b) == size)

    @classmethod
    def from_bytes(cls, data: bytes, key_bits: int = ECC_DEFAULT_KEY_BITS) -> EcPoint:
        """Split ``data`` into x and y coordinates for a ``key_bits`` key."""
        if key_bits not in _POINT_KEY_BITS:
            raise ValueError(f"unsupported key size {key_bits} bits")
        size = ecc_key_size_bytes(key_bits)
        data = bytes(data)
        if len(data) != 2 * size:
            raise ValueError(f"EC point needs {2 * size} bytes, got {len(data)}")
        return cls(x=data[:size], y=data[size:])

    def to_bytes(self) -> bytes:
        return self.x + self.y


@dataclass(frozen=True)
class EcdsaSignature:
    """An ECDSA signature (r, s) for the T194 key size."""

    r: bytes
    s: bytes

    def __post_init__(self) -> None:
        for name, value in (("r", self.r), ("s", self.s)):
            if len(value) != ECC_T194_KEY_SIZE_BYTES:
                raise ValueError(
                    f"{name} must be {ECC_T194_KEY_SIZE_BYTES} bytes, got {len(value)}"
                )

    @classmethod
    def from_bytes(cls, data: bytes) -> EcdsaSignature:
        size = ecc_key_size_bytes(_SIGNATURE_KEY_BITS)
        data = bytes(data)
        if len(data) != 2 * size:
            raise ValueError(f"ECDSA signature needs {2 * size} bytes, got {len(data)}")
        return cls(r=data[:size], s=data[size:])

    def to_bytes(self) -> bytes:
        return self.r + self.s


@dataclass(frozen=True)
class Sha256Digest:
    """A SHA-256 hash digest."""

    hash: bytes

    def __post_init__(self) -> None:
        if len(self.hash) != SHA256_LENGTH_BYTES:
            raise ValueError(
                f"SHA-256 digest must be {SHA256_LENGTH_BYTES} bytes, got {len(self.hash)}"
            )

    @classmethod
    def from_bytes(cls, data: bytes) -> Sha256Digest:
        return cls(hash=bytes(data))

    @classmethod
    def of(cls, data: bytes) -> Sha256Digest:
        """Digest of ``data``."""
        return cls(hash=hashlib.sha256(data).digest())

    def to_bytes(self) -> bytes:
        return self.hash

    @property
    def words(self) -> tuple[int, ...]:
        """The digest as little-endian 32-bit words."""
        return tuple(
            int.from_bytes(self.hash[i:i + 4], "little")
            for i in range(0, SHA256_LENGTH_BYTES, 4)
        )