"""
24-bit BMP encoder

Writes a decoded PixelGrid as an uncompressed Windows bitmap:

    offset  size  field
    ------  ----  -----------------------------------------------
    0x00    2     signature 'BM'
    0x02    4     file size (54 + padded pixel data)
    0x06    2+2   reserved, both 0
    0x0A    4     pixel array offset, always 0x36
    0x0E    4     info header size, 0x28 (BITMAPINFOHEADER)
    0x12    4+4   width, height (signed; positive height = bottom-up)
    0x1A    2     colour planes, 1
    0x1C    2     bits per pixel, 24
    0x1E    4     compression, 0 (BI_RGB)
    0x22    4     pixel data size (padded rows)
    0x26    4+4   horizontal/vertical resolution in pixels per metre
    0x2E    4+4   palette colours, important colours, both 0

Pixel rows follow bottom row first, each BGR row padded with zeros to a
multiple of 4 bytes. All size fields are computed from the padded stride.
"""

import logging
import struct
from dataclasses import dataclass
from typing import BinaryIO, Optional

from binary_io import write_bytes, write_i32, write_u16, write_u32
from bm_decoder import BYTES_PER_PIXEL, PixelGrid, row_stride
from bm_errors import ConversionError, WriteFailure
from logging_config import get_logger

BITS_PER_PIXEL = BYTES_PER_PIXEL * 8
FILE_HEADER_SIZE = 14
INFO_HEADER_SIZE = 40
PIXEL_ARRAY_OFFSET = FILE_HEADER_SIZE + INFO_HEADER_SIZE   # 0x36
FILE_SIZE_OFFSET = 2
COLOR_PLANES = 1
BI_RGB = 0
DEFAULT_DPI = 96
INCHES_PER_METER = 39.37
MAX_DPI = int(0x7FFFFFFF / INCHES_PER_METER)    # resolution is a signed i32

HEADER = struct.Struct('<2sIHHIIiiHHIIiiII')

log = get_logger('encoder')


def pixels_per_meter(dpi: int = DEFAULT_DPI) -> int:
    return round(dpi * INCHES_PER_METER)


def pixel_data_size(width: int, height: int) -> int:
    return row_stride(width) * height


def bmp_file_size(width: int, height: int) -> int:
    return PIXEL_ARRAY_OFFSET + pixel_data_size(width, height)


def _write_headers(sink: BinaryIO, width: int, height: int, dpi: int) -> None:
    image_size = pixel_data_size(width, height)
    resolution = pixels_per_meter(dpi)

    # file header
    write_bytes(sink, b'BM')
    write_u32(sink, PIXEL_ARRAY_OFFSET + image_size)
    write_u16(sink, 0)
    write_u16(sink, 0)
    write_u32(sink, PIXEL_ARRAY_OFFSET)

    # BITMAPINFOHEADER
    write_u32(sink, INFO_HEADER_SIZE)
    write_i32(sink, width)
    write_i32(sink, height)
    write_u16(sink, COLOR_PLANES)
    write_u16(sink, BITS_PER_PIXEL)
    write_u32(sink, BI_RGB)
    write_u32(sink, image_size)
    write_i32(sink, resolution)
    write_i32(sink, resolution)
    write_u32(sink, 0)
    write_u32(sink, 0)


def encode_bmp(grid: PixelGrid, sink: BinaryIO, dpi: int = DEFAULT_DPI,
               logger: Optional[logging.Logger] = None) -> int:
    """
    Serialise *grid* into *sink* and return the number of bytes written.

    A failed write raises WriteFailure; whatever already reached the sink is
    left there for the caller to discard.
    """
    logger = logger or log
    width, height = grid.width, grid.height
    stride = row_stride(width)
    padding = b'\x00' * (stride - grid.row_width)
    logger.debug('BMP: %dx%d, row stride %d, pixel data %d bytes',
                 width, height, stride, stride * height)

    try:
        _write_headers(sink, width, height, dpi)
        # zero-width rows are empty, nothing to write however tall
        for i in range(height if stride else 0):
            write_bytes(sink, bytes(grid.row(i)) + padding)
    except ConversionError as exc:
        logger.error('[BMtoBMP] %s', exc)
        raise

    return bmp_file_size(width, height)


def finalize_bmp(sink: BinaryIO,
                 logger: Optional[logging.Logger] = None) -> Optional[int]:
    """
    Patch the file size field with the size actually measured on *sink*.

    Returns the measured size, or None when the sink cannot seek.
    """
    logger = logger or log
    if not sink.seekable():
        logger.debug('sink is not seekable, file size left as computed')
        return None

    try:
        sink.flush()
        end = sink.seek(0, 2)
        sink.seek(FILE_SIZE_OFFSET)
        write_u32(sink, end)
        sink.seek(end)
    except OSError as exc:
        logger.error('[BMtoBMP] unable to patch file size: %s', exc)
        raise WriteFailure(f'unable to patch file size: {exc}') from exc
    except WriteFailure as exc:
        logger.error('[BMtoBMP] %s', exc)
        raise

    logger.debug('file size patched to %d bytes', end)
    return end


@dataclass(frozen=True)
class BmpHeader:
    file_size: int
    data_offset: int
    header_size: int
    width: int
    height: int
    planes: int
    bpp: int
    compression: int
    image_size: int
    x_ppm: int
    y_ppm: int
    colors_used: int
    colors_important: int


def parse_bmp_header(data: bytes) -> BmpHeader:
    """Read back the 54 header bytes written by encode_bmp()."""
    if len(data) < HEADER.size or data[0:2] != b'BM':
        raise ValueError('Not a BMP file')
    (_, file_size, _, _, data_offset, header_size, width, height, planes,
     bpp, compression, image_size, x_ppm, y_ppm, colors_used,
     colors_important) = HEADER.unpack_from(data)
    return BmpHeader(file_size, data_offset, header_size, width, height,
                     planes, bpp, compression, image_size, x_ppm, y_ppm,
                     colors_used, colors_important)
