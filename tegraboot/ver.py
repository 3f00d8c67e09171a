"""Parsing and validation of bootloader version (VER) information blocks.

A version block is a series of linefeed-terminated text lines::

    NVn                               version information revision tag
    # Rxx , REVISION: y.z             BSP version information
    BOARDID=xxxx BOARDSKU=xxxx ...    product information (NV2 and later)
    YYYYMMDDHHMMSS                    date/time stamp (NV3 and later)
    BYTES:nn CRC32:cksum              length and checksum (NV3 and later)

For NV3 the checksum covers the text up to, but not including, the last line.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

PRODUCT_SPEC_MAXSIZE = 256
_LINE_MAXSIZE = 1024
_ULONG_MAX = (1 << 64) - 1

_STRTOUL_RE = re.compile(r"[ \t\n\v\f\r]*([+-]?)([0-9]+)")


class VersionError(ValueError):
    """Raised when version information cannot be parsed or validated.

    ``info`` holds whatever fields were parsed before the failure.
    """

    def __init__(self, message: str, info: VersionInfo | None = None) -> None:
        super().__init__(message)
        self.info = info if info is not None else VersionInfo()


@dataclass
class VersionInfo:
    """Version information extracted from a VER block."""

    ver_info_revision: int = 0
    bsp_version: int = 0
    crc: int = 0
    timestamp: tuple[int, int, int, int, int, int] | None = None
    product_spec: str = field(default="")

    @property
    def version_string(self) -> str:
        return format_bsp_version(self.bsp_version)


def bsp_version_major(bv: int) -> int:
    return (bv >> 16) & 0xFFFF


def bsp_version_minor(bv: int) -> int:
    return (bv >> 8) & 0xFF


def bsp_version_maint(bv: int) -> int:
    return bv & 0xFF


def make_bsp_version(major: int, minor: int, maint: int) -> int:
    return ((major & 0xFFFF) << 16) | ((minor & 0xFF) << 8) | (maint & 0xFF)


def format_bsp_version(bv: int) -> str:
    """Render a packed BSP version as ``major.minor.maint``."""
    return f"{bsp_version_major(bv)}.{bsp_version_minor(bv)}.{bsp_version_maint(bv)}"


def _make_crc_table() -> tuple[int, ...]:
    table = []
    for i in range(256):
        c = i << 24
        for _ in range(8):
            if c & 0x80000000:
                c = ((c << 1) ^ 0x04C11DB7) & 0xFFFFFFFF
            else:
                c = (c << 1) & 0xFFFFFFFF
        table.append(c)
    return tuple(table)


_CRC_TABLE = _make_crc_table()


def posix_crc32(data: bytes) -> int:
    """Compute the POSIX ``cksum`` CRC of ``data``."""
    crc = 0
    for b in data:
        crc = ((crc << 8) & 0xFFFFFFFF) ^ _CRC_TABLE[((crc >> 24) ^ b) & 0xFF]
    n = len(data)
    while n:
        crc = ((crc << 8) & 0xFFFFFFFF) ^ _CRC_TABLE[((crc >> 24) ^ n) & 0xFF]
        n >>= 8
    return ~crc & 0xFFFFFFFF


def _strtoul(text: str, pos: int) -> tuple[int, int]:
    """Parse an unsigned decimal number the way strtoul does.

    Returns the value and the position just past it; with no digits the
    value is 0 and the position is unchanged.
    """
    m = _STRTOUL_RE.match(text, pos)
    if m is None:
        return 0, pos
    value = int(m.group(2))
    if value > _ULONG_MAX:
        raise ValueError("number out of range")
    if m.group(1) == "-":
        value = (-value) & _ULONG_MAX
    if value == _ULONG_MAX:
        raise ValueError("number out of range")
    return value, m.end()


class _LineReader:
    def __init__(self, data: bytes) -> None:
        self.data = data
        self.pos = 0

    def next_line(self, maxsize: int, info: VersionInfo) -> str:
        end = self.data.find(b"\n", self.pos)
        if end < 0:
            raise VersionError("missing line terminator", info)
        if end - self.pos >= maxsize:
            raise VersionError("line too long", info)
        line = self.data[self.pos:end].decode("latin-1")
        self.pos = end + 1
        return line


def _parse_bsp_version(line: str, info: VersionInfo) -> int:
    if not line.startswith("# R"):
        raise VersionError("malformed BSP version line", info)
    try:
        major, pos = _strtoul(line, 3)
        rest = line[pos:]
        if len(rest) < 14 or not rest.startswith(" , REVISION: "):
            raise VersionError("malformed BSP version line", info)
        minor, pos = _strtoul(line, pos + 13)
        if pos >= len(line) or line[pos] != ".":
            raise VersionError("malformed BSP revision", info)
        maint, _ = _strtoul(line, pos + 1)
    except VersionError:
        raise
    except ValueError as exc:
        raise VersionError(str(exc), info) from exc
    return make_bsp_version(major, minor, maint)


def _parse_datetime(line: str, info: VersionInfo) -> tuple[int, int, int, int, int, int]:
    if len(line) != 14 or not all("0" <= c <= "9" for c in line):
        raise VersionError("malformed date/time stamp", info)
    return (
        int(line[0:4]),
        int(line[4:6]),
        int(line[6:8]),
        int(line[8:10]),
        int(line[10:12]),
        int(line[12:14]),
    )


def _parse_sizecrc(line: str, covered: bytes, info: VersionInfo) -> int:
    if len(line) <= 6 or not line.startswith("BYTES:"):
        raise VersionError("malformed size/checksum line", info)
    try:
        nbytes, pos = _strtoul(line, 6)
        if nbytes != len(covered):
            raise VersionError("size mismatch in version information", info)
        rest = line[pos:]
        if len(rest) <= 7 or not rest.startswith(" CRC32:"):
            raise VersionError("malformed size/checksum line", info)
        crc, _ = _strtoul(line, pos + 7)
    except VersionError:
        raise
    except ValueError as exc:
        raise VersionError(str(exc), info) from exc
    actual = posix_crc32(covered)
    if actual != crc & 0xFFFFFFFF:
        raise VersionError("checksum mismatch in version information", info)
    return actual


def extract_info(data: bytes) -> VersionInfo:
    """Parse and validate the version information held in ``data``.

    Raises VersionError on failure; its ``info`` carries the fields
    parsed so far.
    """
    info = VersionInfo()
    reader = _LineReader(bytes(data))

    tag = reader.next_line(_LINE_MAXSIZE, info)
    if len(tag) < 3 or tag[0] != "N" or tag[1] != "V" or not ("0" <= tag[2] <= "9"):
        raise VersionError("missing version information tag", info)
    info.ver_info_revision = int(tag[2])

    info.bsp_version = _parse_bsp_version(reader.next_line(_LINE_MAXSIZE, info), info)
    if info.ver_info_revision < 2:
        return info

    info.product_spec = reader.next_line(PRODUCT_SPEC_MAXSIZE, info)
    if info.ver_info_revision < 3:
        return info

    info.timestamp = _parse_datetime(reader.next_line(_LINE_MAXSIZE, info), info)
    infosize = reader.pos
    sizeline = reader.next_line(_LINE_MAXSIZE, info)
    info.crc = _parse_sizecrc(sizeline, reader.data[:infosize], info)
    return info