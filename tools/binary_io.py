# binary_io.py
# --------------- exact-length little-endian reads and writes on byte streams

import struct
from typing import BinaryIO

from bm_errors import TruncatedInput, WriteFailure

U32 = struct.Struct('<I')
I32 = struct.Struct('<i')
U16 = struct.Struct('<H')


def read_exact(stream: BinaryIO, size: int, what: str = 'stream') -> bytes:
    """Read exactly *size* bytes or raise TruncatedInput."""
    data = stream.read(size)
    if data is None or len(data) != size:
        raise TruncatedInput(what, size, len(data or b''))
    return data


def read_u32(stream: BinaryIO, what: str = 'stream') -> int:
    return U32.unpack(read_exact(stream, U32.size, what))[0]


def write_bytes(stream: BinaryIO, data: bytes) -> None:
    """Write all of *data*; a partial write is a failure, never retried."""
    try:
        written = stream.write(data)
    except (OSError, ValueError) as exc:
        raise WriteFailure(f'failed to write {len(data)} bytes: {exc}') from exc
    # raw (unbuffered) streams report a count; buffered ones raise instead
    if written is not None and written != len(data):
        raise WriteFailure(
            f'short write: wrote {written} bytes, expected {len(data)}.')


def _pack(layout: struct.Struct, value: int) -> bytes:
    try:
        return layout.pack(value)
    except struct.error as exc:
        raise WriteFailure(f'value {value} does not fit the field: {exc}') from exc


def write_u32(stream: BinaryIO, value: int) -> None:
    write_bytes(stream, _pack(U32, value))


def write_i32(stream: BinaryIO, value: int) -> None:
    write_bytes(stream, _pack(I32, value))


def write_u16(stream: BinaryIO, value: int) -> None:
    write_bytes(stream, _pack(U16, value))


def write_u8(stream: BinaryIO, value: int) -> None:
    if not 0 <= value <= 0xFF:
        raise WriteFailure(f'value {value} does not fit a byte.')
    write_bytes(stream, bytes((value,)))
