import sys
import os
import struct
import threading
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..', 'src')))

import pytest

from unpacker import (
    CrxFormatError,
    CrxHeader,
    CrxReader,
    InvalidMagicError,
    TruncatedInputError,
    UnsupportedVersionError,
    crx_file_to_zip,
    parse_header,
    unwrap,
)

ZIP_SIGNATURE = bytes.fromhex('504B0304')


def make_crx(payload=b'', header=b'', version=3, magic=b'Cr24', header_length=None):
    if header_length is None:
        header_length = len(header)
    return magic + struct.pack('<I', version) + struct.pack('<I', header_length) + header + payload


def test_zero_length_header():
    buf = bytes.fromhex('43723234' '03000000' '00000000' '504B0304')
    assert unwrap(buf) == ZIP_SIGNATURE


def test_header_is_skipped():
    buf = bytes.fromhex('43723234' '03000000' '04000000' 'DEADBEEF' 'AABB')
    assert unwrap(buf) == bytes.fromhex('AABB')


def test_zeroed_magic():
    buf = bytes.fromhex('00000000' '03000000' '00000000' '504B0304')
    with pytest.raises(InvalidMagicError):
        unwrap(buf)


@pytest.mark.parametrize('size', range(8))
def test_short_buffers_are_truncated(size):
    # Even when the bytes that are present look like a valid prefix
    for buf in (make_crx(ZIP_SIGNATURE)[:size], b'\xff' * size, b'Cr24\x03\x00\x00'[:size]):
        with pytest.raises(TruncatedInputError):
            unwrap(buf)


@pytest.mark.parametrize('magic', [b'\x00\x00\x00\x00', b'PK\x03\x04', b'cr24', b'Cr23', b'Cr2\x00'])
def test_wrong_magic(magic):
    with pytest.raises(InvalidMagicError) as exc:
        unwrap(make_crx(ZIP_SIGNATURE, magic=magic))
    assert exc.value.magic == magic


def test_wrong_magic_wins_over_other_defects():
    # Bad version and an overrunning header length are never reached
    buf = b'Xr24' + struct.pack('<I', 9) + struct.pack('<I', 1000)
    with pytest.raises(InvalidMagicError):
        unwrap(buf)


@pytest.mark.parametrize('version', [0, 1, 2, 4, 0x0300, 0xFFFFFFFF])
def test_unsupported_versions(version):
    with pytest.raises(UnsupportedVersionError) as exc:
        unwrap(make_crx(ZIP_SIGNATURE, version=version))
    assert exc.value.version == version


def test_version_checked_before_header_length():
    buf = b'Cr24' + struct.pack('<I', 2)
    with pytest.raises(UnsupportedVersionError):
        unwrap(buf)


def test_missing_header_length_field():
    with pytest.raises(TruncatedInputError):
        unwrap(b'Cr24\x03\x00\x00\x00\x00\x00')


@pytest.mark.parametrize('header_length,actual', [(1, 0), (4, 3), (100, 99), (0xFFFFFFFF, 16)])
def test_header_length_overrun(header_length, actual):
    buf = make_crx(header=b'\x00' * actual, header_length=header_length)
    with pytest.raises(TruncatedInputError):
        unwrap(buf)


@pytest.mark.parametrize('header_size,payload_size', [(0, 0), (0, 1), (5, 0), (64, 1000), (1, 70000)])
def test_payload_is_exact_suffix(header_size, payload_size):
    header = bytes(range(256)) * (header_size // 256 + 1)
    payload = bytes((i * 7) % 256 for i in range(payload_size))
    buf = make_crx(payload, header=header[:header_size])

    result = unwrap(buf)

    assert result == buf[12 + header_size:]
    assert result == payload
    assert isinstance(result, bytes)


def test_header_exactly_fills_buffer():
    assert unwrap(make_crx(header=b'abcd')) == b''


def test_accepts_other_buffer_types():
    buf = make_crx(b'payload', header=b'hh')
    assert unwrap(bytearray(buf)) == b'payload'
    assert unwrap(memoryview(buf)) == b'payload'


def test_result_does_not_alias_input():
    buf = bytearray(make_crx(b'abc'))
    result = unwrap(buf)
    buf[-1] = ord('z')
    assert result == b'abc'


def test_unwrap_is_idempotent():
    buf = make_crx(ZIP_SIGNATURE * 3, header=b'\x01\x02\x03')
    assert unwrap(buf) == unwrap(buf)

    bad = make_crx(version=2)
    for _ in range(2):
        with pytest.raises(UnsupportedVersionError):
            unwrap(bad)


def test_errors_share_a_base_class():
    for cls in (TruncatedInputError, InvalidMagicError, UnsupportedVersionError):
        assert issubclass(cls, CrxFormatError)
        assert issubclass(cls, ValueError)


def test_concurrent_unwrap():
    buf = make_crx(b'x' * 4096, header=b'h' * 32)
    results = []

    def worker():
        for _ in range(50):
            results.append(unwrap(buf))

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(results) == 200
    assert all(r == b'x' * 4096 for r in results)


def test_parse_header():
    header = parse_header(make_crx(b'zip', header=b'0123456789'))
    assert header == CrxHeader(3, 10)
    assert header.payload_offset == 22


def test_reader_bounds():
    reader = CrxReader(b'\x01\x00\x00\x00\x02')
    assert reader.read_u32_le() == 1
    assert reader.remaining() == 1
    with pytest.raises(TruncatedInputError) as exc:
        reader.read_u32_le('length')
    assert exc.value.needed == 8
    assert exc.value.available == 5
    # Failed reads do not move the cursor
    assert reader.offset == 4
    assert bytes(reader.rest()) == b'\x02'
    assert reader.remaining() == 0


def test_crx_file_to_zip(tmp_path):
    crx_path = tmp_path / 'abc.crx'
    crx_path.write_bytes(make_crx(ZIP_SIGNATURE, header=b'sig'))

    zip_path = crx_file_to_zip(crx_path)

    assert zip_path == tmp_path / 'abc.zip'
    assert zip_path.read_bytes() == ZIP_SIGNATURE


def test_crx_file_to_zip_custom_target(tmp_path):
    crx_path = tmp_path / 'abc.crx'
    crx_path.write_bytes(make_crx(b'data'))

    target = tmp_path / 'out' / 'x.zip'
    assert crx_file_to_zip(crx_path, target) == target
    assert target.read_bytes() == b'data'


def test_crx_file_to_zip_bad_file(tmp_path):
    crx_path = tmp_path / 'bad.crx'
    crx_path.write_bytes(b'PK\x03\x04' + b'\x00' * 20)

    with pytest.raises(InvalidMagicError):
        crx_file_to_zip(crx_path)
    assert not (tmp_path / 'bad.zip').exists()


def test_crx_file_to_zip_input_already_named_zip(tmp_path):
    package = tmp_path / 'pkg.zip'
    original = make_crx(ZIP_SIGNATURE, header=b'sig')
    package.write_bytes(original)

    zip_path = crx_file_to_zip(package)

    assert zip_path == tmp_path / 'pkg.zip.zip'
    assert zip_path.read_bytes() == ZIP_SIGNATURE
    assert package.read_bytes() == original


def test_crx_file_to_zip_refuses_to_overwrite_input(tmp_path):
    crx_path = tmp_path / 'abc.crx'
    original = make_crx(b'data')
    crx_path.write_bytes(original)

    with pytest.raises(ValueError, match='overwrite'):
        crx_file_to_zip(crx_path, crx_path)
    assert crx_path.read_bytes() == original
