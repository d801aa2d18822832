"""
BM raster decoder

A .BM file is a bare indexed image:
    - Bytes 0 to 3 hold the width in pixels (u32, little-endian).
    - Bytes 4 to 7 hold the height in pixels (u32, little-endian).
    - Then width*height bytes follow, one palette index per pixel, top row
      first, left to right.

Some files carry 4 extra reserved bytes after the dimensions, so their pixel
data begins at byte 12. That layout is never guessed from the file size; the
caller asks for it with HeaderLayout.RESERVED.

Each index selects a 3-byte RGB entry of the companion .PAL file. The decoded
PixelGrid keeps the colours in BGR order and stores the rows bottom-up, which
is exactly how a 24-bit BMP wants them, so the encoder can stream the grid
out without flipping or swapping anything.
"""

import enum
import logging
from dataclasses import dataclass
from typing import BinaryIO, Optional

from binary_io import read_exact, read_u32
from bm_errors import AllocationFailure, ConversionError
from logging_config import get_logger
from palette_pal import PaletteReader

BYTES_PER_PIXEL = 3
MAX_DIMENSION = 0x7FFFFFFF           # BMP stores width/height as signed i32
MAX_FILE_SIZE = 0xFFFFFFFF           # BMP stores the file size as u32
BMP_HEADERS_SIZE = 54

log = get_logger('decoder')


class HeaderLayout(enum.Enum):
    """Where the pixel indices start in a .BM stream."""

    MINIMAL = 8
    RESERVED = 12

    @property
    def reserved_bytes(self) -> int:
        return self.value - 8


@dataclass(frozen=True)
class RasterHeader:
    width: int
    height: int


def row_stride(width: int) -> int:
    """Length of one BMP pixel row: width*3 padded up to a multiple of 4."""
    return (width * BYTES_PER_PIXEL + 3) & ~3


class PixelGrid:
    """
    Contiguous BGR pixel buffer of ``height`` rows by ``width`` columns.

    Rows are kept in BMP order: storage row 0 is the bottom image row.
    Cell (row, col) starts at ``row * row_width + col * 3``.
    """

    def __init__(self, header: RasterHeader):
        self.header = header
        self.row_width = header.width * BYTES_PER_PIXEL
        self.data = bytearray(self.row_width * header.height)
        self.released = False

    @classmethod
    def allocate(cls, header: RasterHeader) -> 'PixelGrid':
        width, height = header.width, header.height
        if width > MAX_DIMENSION or height > MAX_DIMENSION:
            raise AllocationFailure(
                f'image of {width}x{height} pixels cannot be stored in a BMP.')
        if BMP_HEADERS_SIZE + row_stride(width) * height > MAX_FILE_SIZE:
            raise AllocationFailure(
                f'unable to allocate image buffer of size '
                f'{height}x{width}x{BYTES_PER_PIXEL * 8}.')
        try:
            return cls(header)
        except MemoryError as exc:
            raise AllocationFailure(
                f'unable to allocate image buffer of size '
                f'{height}x{width}x{BYTES_PER_PIXEL * 8}.') from exc

    @property
    def width(self) -> int:
        return self.header.width

    @property
    def height(self) -> int:
        return self.header.height

    @property
    def row_stride(self) -> int:
        return row_stride(self.width)

    def _check_live(self) -> None:
        if self.released:
            raise ValueError('pixel grid has been released')

    def row(self, index: int) -> memoryview:
        """Storage row *index* (0 = bottom of the image)."""
        self._check_live()
        start = index * self.row_width
        return memoryview(self.data)[start:start + self.row_width]

    def pixel(self, x: int, y: int) -> bytes:
        """BGR bytes of the pixel at column *x*, row *y* counted from the top."""
        self._check_live()
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(f'pixel ({x}, {y}) outside {self.width}x{self.height}')
        start = (self.height - 1 - y) * self.row_width + x * BYTES_PER_PIXEL
        return bytes(self.data[start:start + BYTES_PER_PIXEL])

    def release(self) -> None:
        self.data = bytearray()
        self.released = True


def read_header(bm_stream: BinaryIO,
                layout: HeaderLayout = HeaderLayout.MINIMAL) -> RasterHeader:
    width = read_u32(bm_stream, 'BM header (width)')
    height = read_u32(bm_stream, 'BM header (height)')
    if layout.reserved_bytes:
        read_exact(bm_stream, layout.reserved_bytes, 'BM header (reserved)')
    return RasterHeader(width, height)


def decode_raster(bm_stream: BinaryIO, palette_stream: BinaryIO, *,
                  layout: HeaderLayout = HeaderLayout.MINIMAL,
                  cache_palette: bool = True,
                  logger: Optional[logging.Logger] = None) -> PixelGrid:
    """
    Decode a BM stream against a PAL stream into a PixelGrid.

    Both streams must be positioned at their start and stay owned by the
    caller. The BM stream is read strictly sequentially; the palette stream
    is seeked to ``index * 3`` for every lookup. Any short read raises
    TruncatedInput and the partial grid is discarded.
    """
    logger = logger or log

    try:
        header = read_header(bm_stream, layout)
    except ConversionError as exc:
        logger.error('[BMtoBMP] %s', exc)
        raise
    logger.debug('BM header: width=%d height=%d layout=%s',
                 header.width, header.height, layout.name)

    try:
        grid = PixelGrid.allocate(header)
    except AllocationFailure as exc:
        logger.error('[BMtoBMP] %s', exc)
        raise

    palette = PaletteReader(palette_stream, cache=cache_palette)
    width, height = header.width, header.height
    rows = height if width else 0

    try:
        # source rows arrive top first; store them bottom-up for the BMP
        for i in range(rows):
            indices = read_exact(bm_stream, width, f'BM pixel row {i}')
            dest = (height - 1 - i) * grid.row_width
            for j, index in enumerate(indices):
                offset = dest + j * BYTES_PER_PIXEL
                grid.data[offset:offset + BYTES_PER_PIXEL] = \
                    palette.bgr_bytes(index)
    except ConversionError as exc:
        logger.error('[BMtoBMP] %s', exc)
        grid.release()
        raise

    return grid
