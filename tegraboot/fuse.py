"""Fuse field layouts for the T18x and T19x boot ROMs.

Bit positions are given as inclusive ``high:low`` ranges within 32-bit
fuse or ECID words.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import IntEnum

from tegraboot.se import make_field

DEVICE_KEY_BYTES = 16
_WORD_MASK = 0xFFFFFFFF


@dataclass(frozen=True)
class BitRange:
    """An inclusive ``high:low`` bit range within a 32-bit word."""

    high: int
    low: int

    def __post_init__(self) -> None:
        if not 0 <= self.low <= self.high <= 31:
            raise ValueError(f"invalid bit range {self.high}:{self.low}")

    @property
    def width(self) -> int:
        return self.high - self.low + 1

    @property
    def mask(self) -> int:
        """Mask for the field value, not shifted."""
        return (1 << self.width) - 1

    @property
    def field_mask(self) -> int:
        """Mask for the field in its position within the word."""
        return make_field(self.mask, self.low)

    def extract(self, value: int) -> int:
        """Return the field's value from ``value``."""
        return (value >> self.low) & self.mask

    def insert(self, value: int, field: int) -> int:
        """Return ``value`` with this range replaced by ``field``."""
        if not 0 <= field <= self.mask:
            raise ValueError(
                f"value {field} does not fit in {self.width}-bit range {self.high}:{self.low}"
            )
        return ((value & ~self.field_mask) | (field << self.low)) & _WORD_MASK


# ECID word layouts common to both generations.
ECID0_RSVD1 = BitRange(5, 0)
ECID0_Y = BitRange(14, 6)
ECID0_X = BitRange(23, 15)
ECID0_WAFER = BitRange(29, 24)
ECID0_LOT1 = BitRange(31, 30)
ECID1_LOT1 = BitRange(25, 0)
ECID1_LOT0 = BitRange(31, 26)
ECID2_LOT0 = BitRange(25, 0)
ECID2_FAB = BitRange(31, 26)
ECID3_VENDOR = BitRange(3, 0)

# T18x ECID word 3.
ECID3_T18X_RSVD2 = BitRange(11, 4)
ECID3_T18X_RCM_VERSION = BitRange(27, 12)
ECID3_T18X_OPMODE = BitRange(31, 28)  # valid for RCM mode only

# T19x ECID word 3.
ECID3_T19X_MAJORREV = BitRange(7, 4)
ECID3_T19X_CHIPID = BitRange(15, 8)
ECID3_T19X_MINORREV = BitRange(19, 16)
ECID3_T19X_BOOT_SECURITY_INFO_ECC = BitRange(26, 26)
ECID3_T19X_BPMP_DUMMY_KEY_READ_ENABLE = BitRange(27, 27)
ECID3_T19X_BOOT_SECURITY_INFO_AUTH = BitRange(29, 28)
ECID3_T19X_BOOT_SECURITY_INFO_ENC = BitRange(30, 30)
ECID3_T19X_PRODUCTION_MODE = BitRange(31, 31)

# T18x device configuration fuses.
SDMMC_T18X_DDR_MODE = BitRange(0, 0)
SDMMC_T18X_VOLTAGE_RANGE = BitRange(1, 1)
SDMMC_T18X_ENABLE_BOOT_MODE = BitRange(2, 2)
SDMMC_T18X_SDMMC4_CLOCK_DIVIDER = BitRange(4, 3)
SDMMC_T18X_SDMMC4_MULTI_PAGE_READ = BitRange(5, 5)
SPI_T18X_PAGE_SIZE_2KOR16K = BitRange(0, 0)
SPI_T18X_DATA_BUS_WIDTH = BitRange(1, 1)
SPI_T18X_MODE = BitRange(2, 2)
SPI_T18X_SPI_CLOCK = BitRange(3, 3)
SPI_T18X_CS_POLARITY = BitRange(4, 4)
USBH_T18X_ROOT_PORT = BitRange(3, 0)
USBH_T18X_OC_PIN = BitRange(7, 4)
USBH_T18X_VBUS_ENABLE = BitRange(8, 8)

# T19x device configuration fuses.
SDMMC_T19X_DEV_CONFIG = BitRange(2, 0)
SPI_T19X_DEV_CONFIG = BitRange(2, 0)
SATA_T19X_DEV_CONFIG = BitRange(1, 0)
USBH_T19X_DEV_CONFIG = BitRange(0, 0)
UFS_T19X_DEV_CONFIG = BitRange(2, 0)

# T19x secure provisioning fuses.
SECURE_PROVISION_KEY_HIDE = BitRange(0, 0)
SECURE_PROVISION_TEST_PART = BitRange(1, 1)

# Boot security info fuse.
BOOT_SECURITY_AUTHENTICATION = BitRange(1, 0)
BOOT_SECURITY_ENCRYPTION = BitRange(2, 2)
BOOT_SECURITY_T18X_KEY_SELECT = BitRange(5, 3)
BOOT_SECURITY_T19X_ODM_FUSE_ENCRYPTION_ENABLE = BitRange(3, 3)
BOOT_SECURITY_T19X_KEY_SELECT = BitRange(6, 4)
BOOT_SECURITY_T19X_ECC_ALGORITHM = BitRange(7, 7)

# T18x ODM info fuse.
ODM_INFO_T18X_ODM_FUSE_ENCRYPTION_ENABLE = BitRange(15, 15)

# T19x reserved production fuse; randomization uses reversed polarity.
RESERVED_PRODUCTION_RANDOMIZATION_FEATURE = BitRange(3, 3)
RESERVED_PRODUCTION_RANDOMIZATION_TUNING = BitRange(9, 4)
RANDOMIZATION_FEATURE_ENABLED = 0
RANDOMIZATION_FEATURE_DISABLED = 1

KEY_SELECT_TEST_KEY = 0
KEY_SELECT_NVIDIA_KEY = 1
KEY_SELECT_OEM_KEY_1 = 2
KEY_SELECT_OEM_KEY_2 = 3
KEY_SELECT_OEM_KEY_3 = 4
KEY_SELECT_OEM_KEY_4 = 5
KEY_SELECT_OEM_KEY_5 = 6
KEY_SELECT_OEM_KEY_6 = 7

ECC_ALGORITHM_ECDSA = 0  # NIST P-256
ECC_ALGORITHM_EDDSA = 1  # Ed25519


class BootDeviceT18x(IntEnum):
    SDMMC = 0
    SPI_FLASH = 1
    SATA = 2
    RESVD_4 = 3
    FOOS = 3
    USB3 = 4
    UFS = 5
    PROD_UART = 6


class BootDeviceT19x(IntEnum):
    SDMMC = 0
    SPI_FLASH = 1
    SATA = 2
    RESVD_4 = 3
    FOOS = 3
    USB3 = 4
    UFS = 5


class AuthenticationT18x(IntEnum):
    """Authentication scheme; DEFAULT also means AES-CMAC."""

    DEFAULT = 0
    AES_CMAC = 1
    PKC_RSA = 2
    PKC_ECC = 3


class AuthenticationT19x(IntEnum):
    """Authentication scheme; DEFAULT is SHA2."""

    SHA2 = 0
    DEFAULT = 0
    PKC_RSA = 1
    PKC_RSA_3K = 2
    PKC_ECC = 3


@dataclass(frozen=True)
class EcidT18x:
    """Decoded T18x ECID words."""

    rsvd1: int
    y: int
    x: int
    wafer: int
    lot1_ecid0: int
    lot1_ecid1: int
    lot0_ecid1: int
    lot0_ecid2: int
    fab: int
    vendor: int
    rsvd2: int
    rcm_version: int
    opmode: int


@dataclass(frozen=True)
class EcidT19x:
    """Decoded T19x ECID words."""

    rsvd1: int
    y: int
    x: int
    wafer: int
    lot1_ecid0: int
    lot1_ecid1: int
    lot0_ecid1: int
    lot0_ecid2: int
    fab: int
    vendor: int
    major_rev: int
    chip_id: int
    minor_rev: int
    boot_security_info_ecc: bool
    bpmp_dummy_key_read_enable: bool
    boot_security_info_auth: int
    boot_security_info_enc: bool
    production_mode: bool


@dataclass(frozen=True)
class BootSecurityInfo:
    """Decoded boot security info fuse.

    ``odm_fuse_encryption_enabled`` and ``ecc_algorithm`` are only held
    in this fuse on T19x; they are None for T18x.
    """

    authentication: AuthenticationT18x | AuthenticationT19x
    encryption: bool
    key_select: int
    odm_fuse_encryption_enabled: bool | None = None
    ecc_algorithm: int | None = None


def _check_words(words: Sequence[int]) -> tuple[int, int, int, int]:
    values = tuple(words)
    if len(values) != 4:
        raise ValueError(f"ECID needs 4 words, got {len(values)}")
    for w in values:
        if not 0 <= w <= _WORD_MASK:
            raise ValueError(f"ECID word {w:#x} is not a 32-bit value")
    return values  # type: ignore[return-value]


def _common_ecid(e0: int, e1: int, e2: int, e3: int) -> dict[str, int]:
    return {
        "rsvd1": ECID0_RSVD1.extract(e0),
        "y": ECID0_Y.extract(e0),
        "x": ECID0_X.extract(e0),
        "wafer": ECID0_WAFER.extract(e0),
        "lot1_ecid0": ECID0_LOT1.extract(e0),
        "lot1_ecid1": ECID1_LOT1.extract(e1),
        "lot0_ecid1": ECID1_LOT0.extract(e1),
        "lot0_ecid2": ECID2_LOT0.extract(e2),
        "fab": ECID2_FAB.extract(e2),
        "vendor": ECID3_VENDOR.extract(e3),
    }


def decode_ecid_t18x(words: Sequence[int]) -> EcidT18x:
    """Decode the four T18x ECID words."""
    e0, e1, e2, e3 = _check_words(words)
    return EcidT18x(
        **_common_ecid(e0, e1, e2, e3),
        rsvd2=ECID3_T18X_RSVD2.extract(e3),
        rcm_version=ECID3_T18X_RCM_VERSION.extract(e3),
        opmode=ECID3_T18X_OPMODE.extract(e3),
    )


def decode_ecid_t19x(words: Sequence[int]) -> EcidT19x:
    """Decode the four T19x ECID words."""
    e0, e1, e2, e3 = _check_words(words)
    return EcidT19x(
        **_common_ecid(e0, e1, e2, e3),
        major_rev=ECID3_T19X_MAJORREV.extract(e3),
        chip_id=ECID3_T19X_CHIPID.extract(e3),
        minor_rev=ECID3_T19X_MINORREV.extract(e3),
        boot_security_info_ecc=bool(ECID3_T19X_BOOT_SECURITY_INFO_ECC.extract(e3)),
        bpmp_dummy_key_read_enable=bool(ECID3_T19X_BPMP_DUMMY_KEY_READ_ENABLE.extract(e3)),
        boot_security_info_auth=ECID3_T19X_BOOT_SECURITY_INFO_AUTH.extract(e3),
        boot_security_info_enc=bool(ECID3_T19X_BOOT_SECURITY_INFO_ENC.extract(e3)),
        production_mode=bool(ECID3_T19X_PRODUCTION_MODE.extract(e3)),
    )


def _check_fuse(value: int) -> None:
    if not 0 <= value <= _WORD_MASK:
        raise ValueError(f"fuse value {value:#x} is not a 32-bit value")


def decode_boot_security_info_t18x(value: int) -> BootSecurityInfo:
    """Decode a T18x boot security info fuse value."""
    _check_fuse(value)
    return BootSecurityInfo(
        authentication=AuthenticationT18x(BOOT_SECURITY_AUTHENTICATION.extract(value)),
        encryption=bool(BOOT_SECURITY_ENCRYPTION.extract(value)),
        key_select=BOOT_SECURITY_T18X_KEY_SELECT.extract(value),
    )


def decode_boot_security_info_t19x(value: int) -> BootSecurityInfo:
    """Decode a T19x boot security info fuse value."""
    _check_fuse(value)
    return BootSecurityInfo(
        authentication=AuthenticationT19x(BOOT_SECURITY_AUTHENTICATION.extract(value)),
        encryption=bool(BOOT_SECURITY_ENCRYPTION.extract(value)),
        key_select=BOOT_SECURITY_T19X_KEY_SELECT.extract(value),
        odm_fuse_encryption_enabled=bool(
            BOOT_SECURITY_T19X_ODM_FUSE_ENCRYPTION_ENABLE.extract(value)
        ),
        ecc_algorithm=BOOT_SECURITY_T19X_ECC_ALGORITHM.extract(value),
    )