import pytest

from tegraboot.layout import (
    T210_EMMC_PARTNAMES,
    T210_SPI_SD_PARTNAMES,
    Partition,
    SocType,
    UpdateEntry,
    UpdateRefused,
    check_update_version,
    find_entry,
    order_entries,
    order_entries_t210,
    redundant_part_name,
)
from tegraboot.ver import VersionInfo, make_bsp_version


def _entry(name, offset=0):
    return UpdateEntry(partname=name, bup_offset=offset, length=16)


def _info(major, minor, maint, crc=0):
    return VersionInfo(bsp_version=make_bsp_version(major, minor, maint), crc=crc)


@pytest.mark.parametrize(
    "name,soc,spi,expected",
    [
        ("mb1", SocType.T186, False, "mb1_b"),
        ("NVC", SocType.T194, True, "NVC_b"),
        ("NVC", SocType.T210, True, "NVC_R"),
        ("NVC", SocType.T210, False, "NVC-1"),
        ("VER", SocType.T210, True, "VER_b"),
        ("TBC", SocType.T210, False, "TBC-1"),
    ],
)
def test_redundant_part_name(name, soc, spi, expected):
    assert redundant_part_name(name, soc, spi) == expected


def test_partition_offset_and_size():
    part = Partition("BCT", first_lba=2, last_lba=3)
    assert part.offset == 2 * 512
    assert part.size == 2 * 512


def test_find_entry_returns_first_match():
    a, b = _entry("LNX", 1), _entry("LNX", 2)
    assert find_entry([_entry("DTB"), a, b], "LNX") is a
    assert find_entry([a], "missing") is None


def test_order_entries_puts_boot_chain_last():
    names = ["mb1", "BCT", "cpu-bootloader", "mb2_b", "mb1_b", "mb2", "bpmp-fw"]
    ordered = order_entries([_entry(n) for n in names])
    assert [e.partname for e in ordered] == [
        "cpu-bootloader", "bpmp-fw", "mb2", "mb2_b", "BCT", "mb1", "mb1_b",
    ]


def test_order_entries_is_permutation():
    entries = [_entry(n) for n in ["x", "mb1", "y", "BCT"]]
    ordered = order_entries(entries)
    assert sorted(e.partname for e in ordered) == sorted(e.partname for e in entries)


def test_order_entries_t210_spi_sequence_and_extras():
    names = sorted(set(T210_SPI_SD_PARTNAMES)) + ["extra"]
    entries = [_entry(n) for n in names]
    ordered = order_entries_t210(entries, spiboot=True)
    assert [e.partname for e in ordered] == list(T210_SPI_SD_PARTNAMES) + ["extra"]
    bcts = [e for e in ordered if e.partname == "BCT"]
    assert len(bcts) == 3
    assert all(e is bcts[0] for e in bcts)


def test_order_entries_t210_eks_optional():
    names = [n for n in set(T210_EMMC_PARTNAMES) if not n.startswith("EKS")]
    ordered = order_entries_t210([_entry(n) for n in names], spiboot=False)
    expected = [n for n in T210_EMMC_PARTNAMES if not n.startswith("EKS")]
    assert [e.partname for e in ordered] == expected


def test_order_entries_t210_missing_required():
    names = [n for n in set(T210_SPI_SD_PARTNAMES) if n != "TBC"]
    with pytest.raises(UpdateRefused, match="TBC"):
        order_entries_t210([_entry(n) for n in names], spiboot=True)


def test_check_version_matching_upgrade_ok():
    cur = _info(32, 4, 3, crc=1)
    assert check_update_version(_info(32, 5, 0), [cur, cur], True, False) is None


def test_check_version_rollback_refused():
    cur = _info(32, 5, 0)
    with pytest.raises(UpdateRefused, match="cannot roll back"):
        check_update_version(_info(32, 4, 3), [cur, cur], True, False)


def test_check_version_nvc_mismatch_refused():
    cur = _info(32, 4, 3, crc=7)
    with pytest.raises(UpdateRefused, match="NVC partition mismatch"):
        check_update_version(_info(32, 4, 3), [cur, cur], lambda: False, False)


def test_check_version_nvc_not_checked_when_crcs_differ():
    def fail():
        raise AssertionError("should not be called")

    result = check_update_version(
        _info(32, 4, 3), [_info(32, 4, 3, crc=1), _info(32, 4, 3, crc=2)], fail, False
    )
    assert result is None


def test_check_version_downgrade_refused_or_warned():
    bup = _info(32, 4, 3)
    current = [_info(32, 5, 0), None]
    with pytest.raises(UpdateRefused, match="cannot downgrade"):
        check_update_version(bup, current, True, False)
    warning = check_update_version(bup, current, True, True)
    assert "downgrading bootloader from 32.5.0 to 32.4.3" in warning


def test_check_version_incomplete_update():
    with pytest.raises(UpdateRefused, match="previous update was incomplete"):
        check_update_version(_info(32, 5, 0), [None, _info(32, 4, 3)], True, True)


def test_check_version_corrupted():
    bup = _info(32, 5, 0)
    with pytest.raises(UpdateRefused, match="corrupted"):
        check_update_version(bup, [None, None], True, False)
    assert "corrupted" in check_update_version(bup, [None, None], True, True)