"""Boot partition naming, update ordering and version checks."""

from __future__ import annotations

import sys
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from enum import Enum

from tegraboot.ver import VersionInfo, format_bsp_version

SECTOR_SIZE = 512
_MAX_T210_ENTRIES = 128

# Tegra210 partitions to update, in order.  Only eMMC-based platforms have
# redundant copies of most boot partitions; the redundant NVC partition is
# named differently on eMMC and SPI flash platforms.
T210_EMMC_PARTNAMES: tuple[str, ...] = (
    "VER_b", "BCT", "NVC-1",
    "PT-1", "TBC-1", "RP1-1", "EBT-1", "WB0-1", "BPF-1", "DTB-1", "TOS-1", "EKS-1", "LNX-1",
    "BCT",
    "BCT",
    "PT", "TBC", "RP1", "EBT", "WB0", "BPF", "DTB", "TOS", "EKS", "LNX",
    "NVC", "VER",
)
T210_SPI_SD_PARTNAMES: tuple[str, ...] = (
    "VER_b", "BCT", "NVC_R",
    "BCT",
    "BCT",
    "PT", "TBC", "RP1", "EBT", "WB0", "BPF", "DTB", "TOS", "EKS", "LNX",
    "NVC", "VER",
)

# Processed last, in this order, on tegra186/tegra194: mb2 before BCT before mb1.
_T18X_TAIL_ORDER = ("mb2", "mb2_b", "BCT", "mb1", "mb1_b")


class SocType(Enum):
    INVALID = "invalid"
    T186 = "tegra186"
    T194 = "tegra194"
    T210 = "tegra210"


class UpdateRefused(Exception):
    """Raised when an update cannot or must not be applied."""


@dataclass(frozen=True)
class Partition:
    """A partition in the boot device's partition table."""

    name: str
    first_lba: int
    last_lba: int

    @property
    def offset(self) -> int:
        """Byte offset of the partition from the start of the device."""
        return self.first_lba * SECTOR_SIZE

    @property
    def size(self) -> int:
        """Size of the partition in bytes."""
        return (self.last_lba - self.first_lba + 1) * SECTOR_SIZE


@dataclass(frozen=True)
class UpdateEntry:
    """One write to perform from the update payload.

    ``part`` is set for partitions in the boot device; otherwise
    ``devname`` names the device node to write.
    """

    partname: str
    bup_offset: int
    length: int
    part: Partition | None = None
    devname: str = ""


def redundant_part_name(partname: str, soctype: SocType, spiboot: bool) -> str:
    """Name of the redundant copy of ``partname`` on the given platform."""
    if soctype is not SocType.T210:
        return f"{partname}_b"
    if partname == "NVC":
        return f"{partname}_R" if spiboot else f"{partname}-1"
    if partname == "VER":
        return f"{partname}_b"
    return f"{partname}-1"


def find_entry(entries: Iterable[UpdateEntry], name: str) -> UpdateEntry | None:
    """Return the first entry for partition ``name``, or None."""
    return next((ent for ent in entries if ent.partname == name), None)


def order_entries(entries: Sequence[UpdateEntry]) -> list[UpdateEntry]:
    """Order tegra186/tegra194 entries so mb2 precedes BCT, which precedes mb1.

    All other entries keep their order and come first.
    """
    special: dict[str, UpdateEntry] = {}
    ordered: list[UpdateEntry] = []
    for ent in entries:
        if ent.partname in _T18X_TAIL_ORDER:
            special[ent.partname] = ent
        else:
            ordered.append(ent)
    ordered.extend(special[name] for name in _T18X_TAIL_ORDER if name in special)
    if len(ordered) != len(entries):
        print("Warning: ordered entry list mismatch", file=sys.stderr)
    return ordered


def order_entries_t210(entries: Sequence[UpdateEntry], spiboot: bool) -> list[UpdateEntry]:
    """Order tegra210 entries following the fixed update sequence.

    The BCT entry appears several times, since it is written in parts
    (last copy, middle copies, first copy).  EKS partitions are optional;
    entries not in the fixed sequence are appended at the end.
    Raises UpdateRefused if a required partition has no entry.
    """
    if len(entries) > _MAX_T210_ENTRIES:
        raise ValueError("update entry list too long")
    sequence = T210_SPI_SD_PARTNAMES if spiboot else T210_EMMC_PARTNAMES
    used: set[int] = set()
    ordered: list[UpdateEntry] = []
    for name in sequence:
        index = next((i for i, ent in enumerate(entries) if ent.partname == name), None)
        if index is None:
            if name.startswith("EKS"):
                continue
            raise UpdateRefused(f"payload or partition not found for {name}")
        ordered.append(entries[index])
        used.add(index)
    ordered.extend(ent for i, ent in enumerate(entries) if i not in used)
    return ordered


def check_update_version(
    bup_info: VersionInfo,
    current: Sequence[VersionInfo | None],
    nvc_match: bool | Callable[[], bool],
    force_initialize: bool,
) -> str | None:
    """Decide whether an update may be applied given current VER partitions.

    ``current`` holds the primary and redundant VER information (None for
    a partition that is absent).  ``nvc_match`` tells whether the NVC
    partition and its backup are identical; a callable is only called when
    that check is needed.

    Returns a warning message when the update may proceed despite a
    problem, None when all is well, and raises UpdateRefused otherwise.
    """
    primary, backup = (info if info is not None else VersionInfo() for info in current)
    cur0, cur1 = primary.bsp_version, backup.bsp_version
    new = bup_info.bsp_version

    if cur0 == cur1 and cur0 != 0:
        if cur0 > new:
            raise UpdateRefused(
                f"current bootloader version is {format_bsp_version(cur0)}; "
                f"cannot roll back to {format_bsp_version(new)}"
            )
        if primary.crc == backup.crc:
            matched = nvc_match() if callable(nvc_match) else bool(nvc_match)
            if not matched:
                raise UpdateRefused("NVC partition mismatch - reflash required")
        return None

    if cur1 == 0 and cur0 != 0 and cur0 > new:
        if force_initialize:
            return (
                f"downgrading bootloader from {format_bsp_version(cur0)} "
                f"to {format_bsp_version(new)}"
            )
        raise UpdateRefused(
            f"current bootloader version is {format_bsp_version(cur0)}; "
            f"cannot downgrade to {format_bsp_version(new)}"
        )
    if cur1 != 0 and cur1 != new:
        # The maintenance number is taken from the primary partition.
        wanted = f"{(cur1 >> 16) & 0xFFFF}.{(cur1 >> 8) & 0xFF}.{cur0 & 0xFF}"
        raise UpdateRefused(
            f"previous update was incomplete; please update with version {wanted}"
        )
    if force_initialize:
        return "bootloader version partitions were corrupted"
    raise UpdateRefused("bootloader version partitions are corrupted; cannot apply update")