#!/usr/bin/env python3
"""
bmToBmp.py  -  convert a .BM indexed image and its .PAL palette to a 24-bit BMP.
usage: python bmToBmp.py picture.BM picture.PAL [options]

Options
-------
--out NAME          output base name, '.bmp' is appended   (default output)
--reserved-header   pixel data starts at byte 12 instead of 8
--dpi N             resolution stored in the BMP header     (default 96)
--no-cache          re-read the palette for every pixel
--info              print the header of the written BMP
--debug             log diagnostics to stderr
--log-file FILE     also write the log to FILE

"""

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import BinaryIO, Optional

from bm_decoder import HeaderLayout, decode_raster
from bm_errors import ConversionError, InvalidDestination, WriteFailure
from bmp_encoder import (DEFAULT_DPI, MAX_DPI, encode_bmp, finalize_bmp,
                         parse_bmp_header)
from logging_config import get_logger, setup_logging

OUTPUT_SUFFIX = '.bmp'
OUTPUT_FILENAME_MAX_LEN = 256     # name + suffix + terminator

log = get_logger('convert')


def output_path(output_name: str) -> Path:
    """Validate *output_name* and return the path of the BMP to create."""
    if not output_name:
        raise InvalidDestination('output filename is empty.')
    if len(output_name) + len(OUTPUT_SUFFIX) + 1 > OUTPUT_FILENAME_MAX_LEN:
        raise InvalidDestination('output filename is too long.')
    return Path(output_name + OUTPUT_SUFFIX)


def convert(bm_source: BinaryIO, pal_source: BinaryIO, output_name: str, *,
            layout: HeaderLayout = HeaderLayout.MINIMAL,
            dpi: int = DEFAULT_DPI,
            cache_palette: bool = True,
            logger: Optional[logging.Logger] = None) -> Path:
    """
    Decode *bm_source* against *pal_source* and write ``<output_name>.bmp``.

    The two sources are read but neither opened nor closed here. Decoding
    finishes before the output file is created, so a truncated input leaves
    no file behind; if writing fails the partial file is removed.
    """
    logger = logger or log

    try:
        path = output_path(output_name)
    except InvalidDestination as exc:
        logger.error('[BMtoBMP] %s', exc)
        raise

    grid = decode_raster(bm_source, pal_source, layout=layout,
                         cache_palette=cache_palette, logger=logger)
    try:
        try:
            output = path.open('wb')
        except OSError as exc:
            logger.error('[BMtoBMP] could not create file, %s: %s', path, exc)
            raise InvalidDestination(
                f'could not create file, {path}.') from exc

        try:
            with output:
                encode_bmp(grid, output, dpi=dpi, logger=logger)
                finalize_bmp(output, logger=logger)
        except ConversionError:
            path.unlink(missing_ok=True)
            raise
        except OSError as exc:
            # close() flushing the last buffered bytes can still fail
            path.unlink(missing_ok=True)
            raise WriteFailure(f'could not write {path}: {exc}') from exc
    finally:
        grid.release()

    logger.info('wrote %s', path)
    return path


def convert_files(bm_path: str, pal_path: str, output_name: str,
                  **kwargs) -> Path:
    """Open both inputs, convert them and close them whatever happens."""
    with open(bm_path, 'rb') as bm_file, open(pal_path, 'rb') as pal_file:
        return convert(bm_file, pal_file, output_name, **kwargs)


# ---------------------------------------------------------------------- main
def has_extension(filename: str, extension: str) -> bool:
    return filename.lower().endswith(extension)


def print_bmp_info(path: Path) -> None:
    with path.open('rb') as f:
        header = parse_bmp_header(f.read(54))
    print(f"{'file_size':<12}: {header.file_size}")
    print(f"{'data_offset':<12}: 0x{header.data_offset:02X}")
    print(f"{'width':<12}: {header.width}")
    print(f"{'height':<12}: {header.height}")
    print(f"{'bpp':<12}: {header.bpp}")
    print(f"{'image_size':<12}: {header.image_size}")


def dpi_value(text: str) -> int:
    dpi = int(text)
    if not 1 <= dpi <= MAX_DPI:
        raise argparse.ArgumentTypeError(
            f'{dpi} is outside 1..{MAX_DPI}')
    return dpi


def parse_arguments(argv=None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        description='Convert a .BM indexed image and its .PAL palette '
                    'into a 24-bit BMP.')
    p.add_argument('bm',                  help='input .BM file')
    p.add_argument('palette',             help='palette .PAL file')
    p.add_argument('--out',   default='output',
                   help="output base name, '.bmp' is appended "
                        '(default: %(default)s)')
    p.add_argument('--reserved-header', action='store_true',
                   help='pixel data starts at byte 12 (4 reserved bytes '
                        'after width and height)')
    p.add_argument('--dpi', type=dpi_value, default=DEFAULT_DPI,
                   help='resolution written to the header '
                        '(default: %(default)s)')
    p.add_argument('--no-cache', action='store_true',
                   help='seek and read the palette for every pixel')
    p.add_argument('--info', action='store_true',
                   help='print the header of the written BMP')
    p.add_argument('--debug', action='store_true',
                   help='log diagnostics to stderr')
    p.add_argument('--log-file', metavar='FILE',
                   help='also write the log to FILE')
    return p.parse_args(argv)


def main(argv=None) -> int:
    args = parse_arguments(argv)
    setup_logging('DEBUG' if args.debug else 'WARNING', args.log_file)

    if not has_extension(args.bm, '.bm'):
        print(f'Error: {args.bm} is not a BM file.', file=sys.stderr)
        return 1
    if not has_extension(args.palette, '.pal'):
        print(f'Error: {args.palette} is not a PAL file.', file=sys.stderr)
        return 1

    for fileName in (args.bm, args.palette):
        if not os.path.exists(fileName):
            print(f'Error: unable to open file, {fileName}.', file=sys.stderr)
            return 1

    layout = HeaderLayout.RESERVED if args.reserved_header else HeaderLayout.MINIMAL

    print(f'Converting image, {args.bm}.')
    try:
        path = convert_files(args.bm, args.palette, args.out,
                             layout=layout, dpi=args.dpi,
                             cache_palette=not args.no_cache)
    except (ConversionError, OSError) as exc:
        print(f'Error: {exc}', file=sys.stderr)
        return 1

    print('BMP   ->', path)
    if args.info:
        print_bmp_info(path)
    print('Done!')
    return 0


if __name__ == '__main__':
    sys.exit(main())
