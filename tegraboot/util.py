"""Helpers for boot device write protection and partition configuration."""

from __future__ import annotations

import functools
import os
import sys

DEFAULT_PARTITION_CONFIG = "/usr/share/tegra-boot-tools/all-partitions.conf"
_MAX_PARTITIONS = 256
_CONFIG_READ_LIMIT = 4095


def set_bootdev_writeable_status(bootdev, make_writeable, sysfs_root="/sys/block"):
    """Toggle the sysfs ``force_ro`` switch for an eMMC boot device.

    Returns True if the write status was changed, False otherwise.
    """
    if bootdev is None or not 6 <= len(bootdev) <= 32:
        return False
    path = os.path.join(sysfs_root, bootdev[5:], "force_ro")
    make_writeable = bool(make_writeable)
    try:
        f = open(path, "r+b", buffering=0)
    except OSError:
        return False
    write_failed = False
    with f:
        try:
            current = f.read(1)
        except OSError:
            return False
        if len(current) != 1:
            return False
        is_writeable = current == b"0"
        if make_writeable != is_writeable:
            try:
                f.seek(0)
                if f.write(b"0" if make_writeable else b"1") != 1:
                    write_failed = True
            except OSError:
                write_failed = True
    if write_failed:
        print("warning: could not change boot device write status", file=sys.stderr)
    return make_writeable != is_writeable


def read_partition_list(path):
    """Read a comma-separated partition name list from ``path``.

    Raises OSError if the file cannot be read.
    """
    with open(path, "rb") as f:
        text = f.read(_CONFIG_READ_LIMIT).decode("latin-1")
    names = [name for name in text.rstrip().split(",") if name]
    return names[:_MAX_PARTITIONS]


@functools.lru_cache(maxsize=None)
def _configured_partitions(config_path):
    try:
        return frozenset(read_partition_list(config_path))
    except OSError:
        print(f"Warning: could not open {config_path}", file=sys.stderr)
        return frozenset()


def partition_should_be_present(partname, config_path=DEFAULT_PARTITION_CONFIG):
    """Report whether ``partname`` is expected to exist.

    True if the configuration file is missing or empty, or lists the name.
    """
    names = _configured_partitions(os.fspath(config_path))
    return not names or partname in names