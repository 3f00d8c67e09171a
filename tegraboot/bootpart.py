"""Reading and writing boot partitions, including the redundant BCT copies."""

from __future__ import annotations

import os
import sys
import zlib
from collections.abc import Callable
from dataclasses import dataclass
from typing import BinaryIO, Union

from tegraboot.layout import Partition, SocType, UpdateEntry

_MAX_T210_BCT_COPIES = 64
# Width of the "  Processing BCT... " leader, for aligning later BCT lines.
_T210_INDENT = " " * 20

ValidatorResult = Union[bool, None, tuple[int, int]]
BctValidator = Callable[[bytes, bytes], ValidatorResult]


class UpdateError(OSError):
    """Raised when a boot partition cannot be read or written."""


def _sync(f: BinaryIO) -> None:
    f.flush()
    try:
        os.fsync(f.fileno())
    except (OSError, AttributeError, ValueError):
        pass


def _say(text: str) -> None:
    print(text, end="", flush=True)


def read_at(f: BinaryIO, size: int, offset: int) -> bytes:
    """Read exactly ``size`` bytes from ``f`` at ``offset``.

    Raises UpdateError on a short read.
    """
    f.seek(offset)
    chunks = []
    remain = size
    while remain > 0:
        chunk = f.read(remain)
        if not chunk:
            raise UpdateError(f"short read at offset {offset}: wanted {size} bytes")
        chunks.append(chunk)
        remain -= len(chunk)
    return b"".join(chunks)


def _write_all(f: BinaryIO, data: bytes) -> None:
    view = memoryview(data)
    while view:
        n = f.write(view)
        if not n:
            raise UpdateError("short write")
        view = view[n:]


def write_at(f: BinaryIO, data: bytes, offset: int, erase_size: int = 0) -> int:
    """Write ``data`` to ``f`` at ``offset``.

    If ``erase_size`` is non-zero, that many zero bytes are written at
    ``offset`` first.  Returns the number of bytes of ``data`` written.
    """
    f.seek(offset)
    if erase_size:
        _write_all(f, bytes(erase_size))
        _sync(f)
        f.seek(offset)
    _write_all(f, bytes(data))
    return len(data)


@dataclass
class BootDevices:
    """The boot device and, on eMMC platforms, the second ("GPT") boot device.

    Partitions whose offset lies past the end of the boot device live in
    the GPT device, at an offset relative to the end of the boot device.
    """

    boot: BinaryIO
    gpt: BinaryIO | None = None
    boot_size: int | None = None

    def __post_init__(self) -> None:
        if self.boot_size is None:
            self.boot_size = self.boot.seek(0, os.SEEK_END)
            self.boot.seek(0)

    def locate(self, part: Partition) -> tuple[BinaryIO, int]:
        """Return the device holding ``part`` and the partition's offset in it."""
        offset = part.offset
        if offset >= self.boot_size:
            if self.gpt is None:
                raise UpdateError(f"Partition {part.name} starts past end of boot device")
            return self.gpt, offset - self.boot_size
        return self.boot, offset

    def read_partition(self, part: Partition) -> bytes:
        """Read the full contents of ``part``."""
        f, offset = self.locate(part)
        return read_at(f, part.size, offset)


class BctUpdater:
    """Writes the redundant copies of the BCT.

    ``validator``, if given, is called with the current BCT partition
    contents and the new BCT before anything is written; a false result
    refuses the update.  On tegra210 it may instead return a
    ``(block_size, page_size)`` pair to override the device geometry.

    On tegra210 the copies are written in three calls: the last copy,
    then the middle copies, then the first.  ``updated`` becomes True
    once any BCT update has completed.
    """

    def __init__(self, soctype: SocType, spiboot: bool = False,
                 validator: BctValidator | None = None) -> None:
        if soctype is SocType.INVALID:
            raise ValueError("BCT updates need a valid SoC type")
        self.soctype = soctype
        self.spiboot = spiboot
        self.validator = validator
        self.updated = False
        self._which = -1

    @property
    def block_size(self) -> int:
        return 32768 if self.spiboot else 16384

    @property
    def page_size(self) -> int:
        return 2048 if self.spiboot else 512

    def update(self, devices: BootDevices, current: bytes | None, content: bytes,
               entry: UpdateEntry) -> bool:
        """Write the new BCT ``content``; ``current`` is None when initializing.

        Returns True if any copy was written.
        """
        if entry.part is None:
            raise ValueError(f"entry {entry.partname} has no boot partition")
        data = bytes(content[:entry.length])
        if len(data) < entry.length:
            raise UpdateError(f"BCT content shorter than {entry.length} bytes")
        if self.soctype is SocType.T210:
            return self._update_t210(devices, current, data, entry.part)
        return self._update_t18x(devices, current, data, entry.part)

    def _validate(self, current: bytes, data: bytes) -> ValidatorResult:
        if self.validator is None:
            return True
        result = self.validator(current, data)
        if not result:
            raise UpdateError("validation check failed for BCT update")
        return result

    def _update_t18x(self, devices: BootDevices, current: bytes | None, data: bytes,
                     part: Partition) -> bool:
        if current is not None:
            self._validate(current, data)
        page = self.page_size
        length = len(data)
        slot_size = page * ((length + page - 1) // page)
        written = False
        # Block 0 slot 1, then block 1 slot 0, then block 0 slot 0.
        for offset in (slot_size, self.block_size, 0):
            if current is not None and current[offset:offset + length] == data:
                _say(f"[offset={offset},no update needed]...")
                continue
            _say(f"[offset={offset}]...")
            write_at(devices.boot, data, part.offset + offset, slot_size)
            written = True
        _sync(devices.boot)
        self.updated = True
        _say("[OK]\n")
        return written

    def _update_t210(self, devices: BootDevices, current: bytes | None, data: bytes,
                     part: Partition) -> bool:
        block_size, page_size = self.block_size, self.page_size
        copies = 2 if self.spiboot else 1
        if current is not None:
            result = self._validate(current, data)
            if isinstance(result, tuple):
                block_size, page_size = result
        length = len(data)
        if length % page_size != 0:
            raise UpdateError(
                "BCT update payload not an even multiple of boot device page size"
            )
        if length * copies > block_size:
            plural = "" if copies == 1 else "s"
            raise UpdateError(
                f"{copies} BCT payload{plural} too large for boot device block size"
            )
        count = min(part.size // block_size, _MAX_T210_BCT_COPIES)

        if self._which < 0:
            start = end = count - 1
            self._which = 1
        elif self._which == 0:
            start = end = 0
            self._which = -1
        else:
            start, end = count - 2, 1
            self._which = 0

        written = False
        prefix = ""
        for idx in range(start, end - 1, -1):
            offset = idx * block_size
            name = "BCT" if idx == 0 else f"BCT-{idx}"
            if current is not None and current[offset:offset + length] == data:
                print(f"{prefix}{name}: [no update needed]")
                prefix = _T210_INDENT
                continue
            _say(f"{prefix}{name}: ")
            write_at(devices.boot, data, part.offset + offset, length)
            if idx == 0 and copies == 2:
                write_at(devices.boot, data, part.offset + offset + length, length)
            print("[OK]")
            written = True
            prefix = _T210_INDENT
        _sync(devices.boot)
        self.updated = True
        return written


def update_bootpart(devices: BootDevices, entry: UpdateEntry, content: bytes,
                    bct: BctUpdater | None = None, initialize: bool = False) -> bool:
    """Update a boot partition if its contents differ from ``content``.

    The BCT is handed to ``bct``.  Returns True if anything was written.
    """
    part = entry.part
    if part is None:
        raise ValueError(f"entry {entry.partname} has no boot partition")
    if entry.length > part.size:
        raise UpdateError("BUP contents too large for boot partition")
    f, offset = devices.locate(part)
    current = read_at(f, part.size, offset)
    if entry.partname == "BCT":
        if bct is None:
            raise ValueError("BCT update needs a BctUpdater")
        return bct.update(devices, None if initialize else current, content, entry)

    data = bytes(content[:entry.length])
    if len(data) < entry.length:
        raise UpdateError(f"content for {entry.partname} shorter than {entry.length} bytes")
    if current[:entry.length] == data:
        print("[no update needed]")
        return False
    write_at(f, data, offset, part.size)
    _sync(f)
    print("[OK]")
    return True


def nvc_parts_match(devices: BootDevices, primary: UpdateEntry | None,
                    backup: UpdateEntry | None) -> bool:
    """True if the NVC partition and its backup are present and identical."""
    if primary is None or primary.part is None or backup is None or backup.part is None:
        return False
    crcs = []
    for ent in (primary, backup):
        try:
            crcs.append(zlib.crc32(devices.read_partition(ent.part)))
        except OSError:
            return False
    return crcs[0] == crcs[1]