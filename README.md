# tegraboot

`tegraboot` is a library for working with the boot partitions of Tegra
(T186, T194 and T210) devices. It provides the pieces needed to check and
apply the contents of a bootloader update:

- `tegraboot.ver`: parse and validate the text version blocks stored in
  `VER` partitions, including the size and CRC check of revision 3 blocks.
- `tegraboot.layout`: names of redundant partitions per SoC and boot medium,
  the order in which partitions must be written, and the rollback and
  corruption checks that decide whether an update may be applied.
- `tegraboot.bootpart`: reading and writing partitions on open boot device
  files, including the multi-copy BCT layout and the NVC redundancy check.
- `tegraboot.util`: the sysfs `force_ro` switch for eMMC boot areas and the
  list of partitions expected on a device.
- `tegraboot.se`, `tegraboot.fuse`, `tegraboot.crypto`: boot ROM
  enumerations and constants, fuse bit fields with ECID and boot security
  info decoding, and fixed-size EC point, ECDSA signature and SHA-256
  digest structures.

It uses only the standard library and needs Python 3.10 or later.

## Version information

```python
from tegraboot.ver import VersionError, extract_info, format_bsp_version, make_bsp_version

packed = make_bsp_version(32, 5, 1)
print(format_bsp_version(packed))   # 32.5.1

with open("ver.bin", "rb") as f:
    try:
        info = extract_info(f.read())
        print(info.ver_info_revision, info.version_string, info.product_spec)
    except VersionError as exc:
        print(f"invalid version block: {exc}")
```

`extract_info` returns a `VersionInfo` (revision, packed BSP version, CRC,
timestamp tuple and product spec). It raises `VersionError`, a `ValueError`,
when a line is missing or malformed, or when the recorded size or CRC does
not match; the exception's `info` attribute holds the fields parsed so far.
`posix_crc32` computes the `cksum`-style CRC used by revision 3 blocks.

## Update planning

`tegraboot.layout` describes what gets written and in what order:

- `Partition` (name, first and last LBA, with `offset` and `size` in bytes)
  and `UpdateEntry` (partition name, payload offset and length, plus either
  a boot-device `Partition` or a device node path).
- `redundant_part_name(partname, soctype, spiboot)` gives the name of the
  backup copy for a `SocType`: `_b` on T186/T194; `-1`, `_b` for `VER` and
  `_R` for `NVC` on SPI-boot T210.
- `order_entries` puts T186/T194 entries in order with `mb2`, `mb2_b`,
  `BCT`, `mb1`, `mb1_b` last; `order_entries_t210` follows the fixed T210
  sequence, repeating `BCT` for its three write passes, skipping missing
  `EKS` entries and raising `UpdateRefused` for other missing ones.
- `check_update_version(bup_info, current, nvc_match, force_initialize)`
  raises `UpdateRefused` for a rollback, an incomplete previous update, an
  NVC mismatch or corrupted version partitions. With `force_initialize` it
  returns a warning message instead for a downgrade or corruption, and
  `None` when all is well.

## Writing partitions

```python
from tegraboot.bootpart import BctUpdater, BootDevices, update_bootpart
from tegraboot.layout import Partition, SocType, UpdateEntry

with open("boot0.img", "r+b") as boot, open("boot1.img", "r+b") as gpt:
    devices = BootDevices(boot, gpt)
    bct = BctUpdater(SocType.T194)
    entry = UpdateEntry("mb2", bup_offset=0, length=len(content),
                        part=Partition("mb2", first_lba=64, last_lba=127))
    update_bootpart(devices, entry, content, bct)
```

`BootDevices` places partitions that start past the end of the boot device
in the second (GPT) device. `update_bootpart` rewrites a partition (zeroing
it first) only when its contents differ, and hands `BCT` entries to
`BctUpdater`, which writes the redundant BCT copies in a safe order: on
T186/T194 block 0 slot 1, block 1 slot 0, then block 0 slot 0; on T210 the
last copy, the middle copies and the first copy over three calls. An
optional validator callable can refuse a BCT update or, on T210, supply the
block and page size. `nvc_parts_match` compares the NVC partition with its
backup. `read_at` and `write_at` are the underlying positioned I/O helpers.
Failures raise `UpdateError`, an `OSError`.

## Device helpers

```python
from tegraboot.util import partition_should_be_present, set_bootdev_writeable_status

if partition_should_be_present("kernel-dtb", "all-partitions.conf"):
    ...

changed = set_bootdev_writeable_status("/dev/mmcblk0boot0", True)
```

`partition_should_be_present` reads a comma-separated list once per path;
when the file is missing or empty every partition is treated as expected.

## What the package does not do

There is no command-line tool. The package does not read update payload
archives, load or write partition tables, manage A/B slot metadata, detect
the SoC type or perform the BCT content validation itself: the caller opens
the devices, supplies the `UpdateEntry` list, the payload content and any
BCT validator, and drives the update.

## Running the tests

Install the `test` extra and run `pytest` from the project directory.