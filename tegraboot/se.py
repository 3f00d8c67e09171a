"""Security engine and crypto parameter definitions used by the boot ROM."""

from __future__ import annotations

from enum import IntEnum

ARSE_SHA1_HASH_SIZE = 160
ARSE_SHA224_HASH_SIZE = 224
ARSE_SHA256_HASH_SIZE = 256
ARSE_SHA384_HASH_SIZE = 384
ARSE_SHA512_HASH_SIZE = 512
ARSE_SHA_HASH_SIZE = 512
ARSE_AES_HASH_SIZE = 128
ARSE_HASH_SIZE = 512
ARSE_SHA_MSG_LENGTH_SIZE = 128
ARSE_RSA_MAX_EXPONENT_SIZE = 2048
ARSE_RSA_MAX_MODULUS_SIZE = 2048
ARSE_RSA_MAX_INPUT_SIZE = 2048
ARSE_RSA_MAX_OUTPUT_SIZE = 2048
ARSE_RSA_MIN_EXPONENT_SIZE = 32
ARSE_RSA_MIN_MODULUS_SIZE = 512
ARSE_RSA_MIN_INPUT_SIZE = 512
ARSE_RSA_MIN_OUTPUT_SIZE = 512

SE_RSA_KEY_PKT_KEY_SLOT_ONE = 0
SE_RSA_KEY_PKT_KEY_SLOT_TWO = 1

LL_MAX_BUFFER_LENGTH_LOG2 = 24
# One SHA block short of 16 MiB, to work around a hardware limitation.
LL_MAX_BUFFER_SIZE_BYTES = (1 << LL_MAX_BUFFER_LENGTH_LOG2) - 0x400
LL_MAX_BUFFER_SIZE_WORDS = LL_MAX_BUFFER_SIZE_BYTES // 4
LL_MAX_NUM_BUFFERS = 16
LL_MAX_SIZE_BYTES = LL_MAX_NUM_BUFFERS * LL_MAX_BUFFER_SIZE_BYTES


class CryptoAlgo(IntEnum):
    NONE = 0
    AES = 1
    AES_CMAC = 2
    ECC_ECDSA = 3
    RSA = 4
    RSA_RSASSA_PSS = 5
    SHA2 = 6


class CryptoEngine(IntEnum):
    SE0_AES0 = 0
    SE0_PKA0 = 1
    SE0_PKA1 = 2
    SE0_SHA2 = 3
    SW_AES_ENGINE = 4


class VerifyOp(IntEnum):
    OEM_KEY = 0
    NV_KEY = 1


class DecryptOp(IntEnum):
    OEM_KEY = 0
    NV_KEY = 1


class SeOperationMode(IntEnum):
    AES_CMAC_HASH = 0
    AES_CBC = 1


def make_field(mask: int, shift: int) -> int:
    """Return ``mask`` positioned at bit ``shift``."""
    return mask << shift


def linked_list_buffers_needed(size: int) -> int:
    """Number of maximum-sized linked-list buffers needed to cover ``size`` bytes."""
    if size < 0:
        raise ValueError("size must not be negative")
    return -(-size // LL_MAX_BUFFER_SIZE_BYTES)