"""
Tests for the BM raster decoder
"""

import io
import logging

import pytest

from bm_decoder import (HeaderLayout, PixelGrid, RasterHeader, decode_raster,
                        read_header, row_stride)
from bm_errors import AllocationFailure, TruncatedInput


def bgr(entry):
    r, g, b = entry
    return bytes((b, g, r))


class TestRowStride:
    @pytest.mark.parametrize('width, stride', [
        (0, 0), (1, 4), (2, 8), (3, 12), (4, 12), (5, 16), (640, 1920),
    ])
    def test_padded_to_four(self, width, stride):
        assert row_stride(width) == stride


class TestReadHeader:
    def test_minimal_layout(self, make_bm):
        stream = io.BytesIO(make_bm(320, 200, b'\x07'))
        assert read_header(stream) == RasterHeader(320, 200)
        assert stream.tell() == 8

    def test_reserved_layout_skips_four_bytes(self, make_bm):
        stream = io.BytesIO(make_bm(2, 1, b'\x07\x08', reserved=True))
        header = read_header(stream, HeaderLayout.RESERVED)
        assert header == RasterHeader(2, 1)
        assert stream.tell() == 12
        assert stream.read() == b'\x07\x08'

    def test_truncated_height(self):
        with pytest.raises(TruncatedInput, match='height'):
            read_header(io.BytesIO(b'\x01\x00\x00\x00\x01'))


class TestDecodeRaster:
    def test_colours_are_stored_bgr(self, make_bm, palette_bytes, palette_entry):
        grid = decode_raster(io.BytesIO(make_bm(1, 1, b'\x05')),
                             io.BytesIO(palette_bytes))
        assert bytes(grid.data) == bgr(palette_entry(5))

    def test_rows_are_stored_bottom_up(self, make_bm, palette_bytes, palette_entry):
        # 2x2: top row indices 1, 2; bottom row indices 3, 4
        grid = decode_raster(io.BytesIO(make_bm(2, 2, b'\x01\x02\x03\x04')),
                             io.BytesIO(palette_bytes))
        assert bytes(grid.row(0)) == bgr(palette_entry(3)) + bgr(palette_entry(4))
        assert bytes(grid.row(1)) == bgr(palette_entry(1)) + bgr(palette_entry(2))

    def test_pixel_uses_top_left_origin(self, make_bm, palette_bytes, palette_entry):
        indices = bytes(range(10, 16))          # 3x2
        grid = decode_raster(io.BytesIO(make_bm(3, 2, indices)),
                             io.BytesIO(palette_bytes))
        for y in range(2):
            for x in range(3):
                assert grid.pixel(x, y) == bgr(palette_entry(indices[y * 3 + x]))

    def test_reserved_layout(self, make_bm, palette_bytes, palette_entry):
        grid = decode_raster(io.BytesIO(make_bm(1, 1, b'\x09', reserved=True)),
                             io.BytesIO(palette_bytes),
                             layout=HeaderLayout.RESERVED)
        assert grid.pixel(0, 0) == bgr(palette_entry(9))

    def test_bm_stream_is_read_sequentially(self, make_bm, palette_bytes):
        data = make_bm(2, 2, b'\x00\x01\x02\x03') + b'trailing'
        stream = io.BytesIO(data)
        decode_raster(stream, io.BytesIO(palette_bytes))
        assert stream.tell() == 12

    @pytest.mark.parametrize('width, height', [(0, 0), (0, 5), (7, 0)])
    def test_empty_image(self, make_bm, palette_bytes, width, height):
        grid = decode_raster(io.BytesIO(make_bm(width, height)),
                             io.BytesIO(palette_bytes))
        assert grid.width == width
        assert grid.height == height
        assert len(grid.data) == 0

    def test_no_cache_gives_same_grid(self, make_bm, palette_bytes):
        data = make_bm(4, 3, bytes([1, 1, 2, 2, 3, 3, 1, 1, 250, 0, 0, 250]))
        cached = decode_raster(io.BytesIO(data), io.BytesIO(palette_bytes))
        uncached = decode_raster(io.BytesIO(data), io.BytesIO(palette_bytes),
                                 cache_palette=False)
        assert cached.data == uncached.data


class TestDecodeFailures:
    def test_missing_pixel_bytes(self, make_bm, palette_bytes):
        stream = io.BytesIO(make_bm(3, 3, b'\x01' * 7))
        with pytest.raises(TruncatedInput, match='BM pixel row 2'):
            decode_raster(stream, io.BytesIO(palette_bytes))

    def test_reserved_layout_on_minimal_file(self, make_bm, palette_bytes):
        # 1x1 minimal file has only one byte where four reserved are expected
        with pytest.raises(TruncatedInput, match='reserved'):
            decode_raster(io.BytesIO(make_bm(1, 1, b'\x01')),
                          io.BytesIO(palette_bytes),
                          layout=HeaderLayout.RESERVED)

    def test_short_palette_is_not_replaced_by_black(self, make_bm):
        palette = b'\x10\x20\x30'               # only index 0 exists
        with pytest.raises(TruncatedInput, match='PAL entry 0x01'):
            decode_raster(io.BytesIO(make_bm(2, 1, b'\x00\x01')),
                          io.BytesIO(palette))

    def test_short_palette_is_fine_for_present_indices(self, make_bm):
        grid = decode_raster(io.BytesIO(make_bm(2, 1, b'\x00\x00')),
                             io.BytesIO(b'\x10\x20\x30'))
        assert bytes(grid.data) == b'\x30\x20\x10' * 2

    def test_size_overflow(self, make_bm, palette_bytes):
        with pytest.raises(AllocationFailure, match='65536x65536x24'):
            decode_raster(io.BytesIO(make_bm(0x10000, 0x10000)),
                          io.BytesIO(palette_bytes))

    def test_dimension_not_storable(self, make_bm, palette_bytes):
        with pytest.raises(AllocationFailure, match='cannot be stored'):
            decode_raster(io.BytesIO(make_bm(0x80000000, 0)),
                          io.BytesIO(palette_bytes))

    def test_memory_error_becomes_allocation_failure(self, monkeypatch):
        def no_memory(self, header):
            raise MemoryError
        monkeypatch.setattr(PixelGrid, '__init__', no_memory)
        with pytest.raises(AllocationFailure):
            PixelGrid.allocate(RasterHeader(4, 4))

    def test_failure_is_logged_to_injected_logger(self, make_bm, palette_bytes, caplog):
        logger = logging.getLogger('test.decoder')
        with caplog.at_level(logging.DEBUG, logger='test.decoder'):
            with pytest.raises(TruncatedInput):
                decode_raster(io.BytesIO(make_bm(2, 2, b'\x00')),
                              io.BytesIO(palette_bytes), logger=logger)
        assert 'BM header: width=2 height=2' in caplog.text
        errors = [r for r in caplog.records if r.levelno == logging.ERROR]
        assert len(errors) == 1
        assert errors[0].getMessage().startswith('[BMtoBMP]')


class TestPixelGridLifetime:
    def test_pixel_out_of_range(self):
        grid = PixelGrid(RasterHeader(2, 2))
        with pytest.raises(IndexError, match=r'\(2, 0\) outside 2x2'):
            grid.pixel(2, 0)
        with pytest.raises(IndexError):
            grid.pixel(0, -1)

    def test_access_after_release(self):
        grid = PixelGrid(RasterHeader(2, 2))
        grid.release()
        assert grid.released
        assert len(grid.data) == 0
        with pytest.raises(ValueError, match='released'):
            grid.pixel(0, 0)
        with pytest.raises(ValueError, match='released'):
            grid.row(0)
