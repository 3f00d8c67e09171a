import pytest

from tegraboot.ver import (
    VersionError,
    bsp_version_maint,
    bsp_version_major,
    bsp_version_minor,
    extract_info,
    format_bsp_version,
    make_bsp_version,
    posix_crc32,
)


def _nv3_block(body_lines=None, product="BOARDID=1234 FAB=000 BOARDSKU=0001"):
    if body_lines is None:
        body_lines = ["NV3", "# R32 , REVISION: 4.3", product, "20200101120000"]
    body = ("\n".join(body_lines) + "\n").encode()
    trailer = f"BYTES:{len(body)} CRC32:{posix_crc32(body)}\n".encode()
    return body, body + trailer


def test_version_packing_round_trip():
    bv = make_bsp_version(32, 4, 3)
    assert (bsp_version_major(bv), bsp_version_minor(bv), bsp_version_maint(bv)) == (32, 4, 3)
    assert format_bsp_version(bv) == "32.4.3"


def test_version_packing_masks_fields():
    bv = make_bsp_version(0x1FFFF, 0x1FF, 0x1FF)
    assert bsp_version_major(bv) == 0xFFFF
    assert bsp_version_minor(bv) == 0xFF
    assert bsp_version_maint(bv) == 0xFF


def test_versions_order_numerically():
    assert make_bsp_version(32, 4, 3) > make_bsp_version(32, 3, 9)
    assert make_bsp_version(32, 4, 3) < make_bsp_version(32, 4, 4)


def test_posix_crc32_empty():
    assert posix_crc32(b"") == 4294967295


def test_posix_crc32_depends_on_length_and_content():
    assert posix_crc32(b"\x00") != posix_crc32(b"\x00\x00")
    assert posix_crc32(b"abc") == posix_crc32(bytearray(b"abc"))


def test_extract_nv3_block():
    body, block = _nv3_block()
    info = extract_info(block)
    assert info.ver_info_revision == 3
    assert info.bsp_version == make_bsp_version(32, 4, 3)
    assert info.product_spec == "BOARDID=1234 FAB=000 BOARDSKU=0001"
    assert info.timestamp == (2020, 1, 1, 12, 0, 0)
    assert info.crc == posix_crc32(body)
    assert info.version_string == "32.4.3"


def test_extract_ignores_trailing_padding():
    _, block = _nv3_block()
    info = extract_info(block + b"\x00" * 512)
    assert info.bsp_version == make_bsp_version(32, 4, 3)


def test_extract_nv1_stops_after_version():
    info = extract_info(b"NV1\n# R28 , REVISION: 2.1\ngarbage")
    assert info.ver_info_revision == 1
    assert info.bsp_version == make_bsp_version(28, 2, 1)
    assert info.product_spec == ""
    assert info.timestamp is None


def test_extract_nv2_reads_product_spec():
    info = extract_info(b"NV2\n# R32 , REVISION: 5.0\nBOARDID=1234\n")
    assert info.product_spec == "BOARDID=1234"
    assert info.timestamp is None


def test_missing_linefeed():
    with pytest.raises(VersionError):
        extract_info(b"NV3")


def test_bad_tag():
    with pytest.raises(VersionError):
        extract_info(b"XV3\n# R32 , REVISION: 4.3\n")


def test_bad_version_line():
    with pytest.raises(VersionError):
        extract_info(b"NV1\nR32 , REVISION: 4.3\n")


def test_revision_needs_digits_after_prefix():
    with pytest.raises(VersionError):
        extract_info(b"NV1\n# R32 , REVISION: \n")


def test_revision_needs_dot():
    with pytest.raises(VersionError):
        extract_info(b"NV1\n# R32 , REVISION: 4-3\n")


def test_product_spec_too_long():
    data = b"NV2\n# R32 , REVISION: 4.3\n" + b"x" * 256 + b"\n"
    with pytest.raises(VersionError):
        extract_info(data)


def test_bad_timestamp():
    _, block = _nv3_block(["NV3", "# R32 , REVISION: 4.3", "P", "2020010112000X"])
    with pytest.raises(VersionError):
        extract_info(block)


def test_crc_mismatch_keeps_partial_info():
    body, _ = _nv3_block()
    block = body + f"BYTES:{len(body)} CRC32:{(posix_crc32(body) + 1) & 0xFFFFFFFF}\n".encode()
    with pytest.raises(VersionError) as excinfo:
        extract_info(block)
    assert excinfo.value.info.bsp_version == make_bsp_version(32, 4, 3)
    assert excinfo.value.info.crc == 0


def test_size_mismatch():
    body, _ = _nv3_block()
    block = body + f"BYTES:{len(body) + 1} CRC32:{posix_crc32(body)}\n".encode()
    with pytest.raises(VersionError):
        extract_info(block)


def test_malformed_crc_label():
    body, _ = _nv3_block()
    block = body + f"BYTES:{len(body)} CRC:{posix_crc32(body)}\n".encode()
    with pytest.raises(VersionError):
        extract_info(block)