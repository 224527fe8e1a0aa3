"""
CRX Unpacker
Strips the CRX3 container header and returns the embedded ZIP archive

CRX3 layout:
- [4 octets] Magic number: "Cr24"
- [4 octets] Format version, little-endian (must be 3)
- [4 octets] N, little-endian, length of the header section
- [N octets] Header (a serialized CrxFileHeader, not inspected here)
- [rest]     ZIP archive
"""

import struct
from pathlib import Path

from utils import write_bytes_file

CRX_MAGIC = b'Cr24'
CRX_VERSION = 3

# Magic number (4), format version (4), header length (4)
PREFIX_SIZE = 12


class CrxFormatError(ValueError):
    """Base class for malformed CRX containers"""


class TruncatedInputError(CrxFormatError):
    """Buffer ends before a field or the declared header"""

    def __init__(self, needed, available, what='data'):
        self.needed = needed
        self.available = available
        self.what = what
        super().__init__(
            f"truncated CRX: need {needed} bytes for {what}, only {available} available"
        )


class InvalidMagicError(CrxFormatError):
    """Leading four bytes are not the Cr24 magic number"""

    def __init__(self, magic):
        self.magic = bytes(magic)
        super().__init__(f"invalid CRX magic number {self.magic!r}, expected {CRX_MAGIC!r}")


class UnsupportedVersionError(CrxFormatError):
    """Format version is anything other than 3"""

    def __init__(self, version):
        self.version = version
        super().__init__(f"unsupported CRX format version {version}, only {CRX_VERSION} is supported")


class CrxReader:
    """Sequential, bounds-checked reader over an immutable byte view"""

    def __init__(self, buffer):
        self._view = memoryview(buffer).cast('B')
        self.offset = 0

    def __len__(self):
        return len(self._view)

    def remaining(self):
        return len(self._view) - self.offset

    def _require(self, size, what):
        if size > self.remaining():
            raise TruncatedInputError(self.offset + size, len(self._view), what)

    def read(self, size, what='data'):
        self._require(size, what)
        chunk = self._view[self.offset:self.offset + size]
        self.offset += size
        return chunk

    def read_u32_le(self, what='integer'):
        return struct.unpack('<I', self.read(4, what))[0]

    def skip(self, size, what='data'):
        self._require(size, what)
        self.offset += size

    def rest(self):
        chunk = self._view[self.offset:]
        self.offset = len(self._view)
        return chunk


class CrxHeader:
    """Decoded fixed prefix of a CRX3 container"""

    __slots__ = ('version', 'header_length')

    def __init__(self, version, header_length):
        self.version = version
        self.header_length = header_length

    @property
    def payload_offset(self):
        return PREFIX_SIZE + self.header_length

    def __eq__(self, other):
        if not isinstance(other, CrxHeader):
            return NotImplemented
        return (self.version, self.header_length) == (other.version, other.header_length)

    def __repr__(self):
        return f"CrxHeader(version={self.version}, header_length={self.header_length})"


def _read_prefix(reader):
    if len(reader) < 8:
        raise TruncatedInputError(8, len(reader), 'magic number and version')

    magic = reader.read(4, 'magic number')
    if magic != CRX_MAGIC:
        raise InvalidMagicError(magic)

    version = reader.read_u32_le('format version')
    if version != CRX_VERSION:
        raise UnsupportedVersionError(version)

    header_length = reader.read_u32_le('header length')
    reader.skip(header_length, 'header')
    return CrxHeader(version, header_length)


def parse_header(buffer):
    """
    Validate the CRX3 prefix without copying the payload

    Args:
        buffer (bytes): Full container contents

    Returns:
        CrxHeader: Decoded version and header length

    Raises:
        CrxFormatError: On a short buffer, wrong magic or wrong version
    """
    return _read_prefix(CrxReader(buffer))


def unwrap(buffer):
    """
    Extract the ZIP archive embedded in a CRX3 container

    Args:
        buffer (bytes): Full container contents

    Returns:
        bytes: Everything after the prefix and header, unmodified

    Raises:
        TruncatedInputError: Buffer too short for the prefix or declared header
        InvalidMagicError: First four bytes are not "Cr24"
        UnsupportedVersionError: Version field is not 3
    """
    reader = CrxReader(buffer)
    _read_prefix(reader)
    return bytes(reader.rest())


def crx_file_to_zip(crx_path, zip_path=None):
    """
    Convert a .crx file on disk into a .zip next to it

    Args:
        crx_path (Path or str): Path to .crx file
        zip_path (Path or str): Output path (default: same name with .zip,
            or ".zip" appended when the input already ends in .zip)

    Returns:
        Path: Path to the written .zip file

    Raises:
        ValueError: zip_path points at the input file
    """
    crx_path = Path(crx_path)
    if zip_path:
        zip_path = Path(zip_path)
    elif crx_path.suffix.lower() == '.zip':
        zip_path = crx_path.with_name(crx_path.name + '.zip')
    else:
        zip_path = crx_path.with_suffix('.zip')

    if zip_path.resolve() == crx_path.resolve():
        raise ValueError(f"refusing to overwrite input file {crx_path}")

    print(f"[+] Unpacking: {crx_path.name}")
    payload = unwrap(crx_path.read_bytes())
    write_bytes_file(zip_path, payload)
    print(f"[[OK]] Extracted archive: {zip_path} ({len(payload):,} bytes)")

    return zip_path
