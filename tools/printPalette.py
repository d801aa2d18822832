"""
Generate a BMP displaying each color of a .PAL palette with its index.

Usage:
    python printPalette.py picture.PAL palette.bmp --base 16
"""
import argparse
import sys

from PIL import Image, ImageDraw, ImageFont

from bm_errors import ConversionError
from palette_pal import load_pal_palette

DIGITS = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"


def load_palette(path, adjust=1):
    """Read up to 256 RGB triplets from the start of a .PAL file."""
    with open(path, 'rb') as f:
        return load_pal_palette(f, adjust=adjust)


def format_index(value, base):
    """Palette index *value* written in *base* (2-36), upper-case digits."""
    if not 2 <= base <= 36:
        raise ValueError("Base must be between 2 and 36")
    out = []
    while True:
        value, rem = divmod(value, base)
        out.append(DIGITS[rem])
        if not value:
            return ''.join(reversed(out))


def label_color(color):
    # dark text on light swatches
    r, g, b = color
    return (0, 0, 0) if (r * 299 + g * 587 + b * 114) > 128000 else (255, 255, 255)


def swatch_box(index, columns, swatch_size):
    """Inclusive (left, top, right, bottom) of swatch *index*, filled row by row."""
    row, col = divmod(index, columns)
    left, top = col * swatch_size, row * swatch_size
    return left, top, left + swatch_size - 1, top + swatch_size - 1


def draw_centred_label(draw, box, text, font, fill):
    left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
    x = box[0] + (box[2] - box[0] + 1 - (right - left)) / 2
    y = box[1] + (box[3] - box[1] + 1 - (bottom - top)) / 2
    draw.text((x, y), text, fill=fill, font=font)


def create_palette_image(palette, swatch_size=40, columns=16, base=10):
    """Swatch sheet of *palette*, *columns* entries per row, each labelled with its index."""
    row_count = -(-len(palette) // columns)
    img = Image.new('RGB', (columns * swatch_size, row_count * swatch_size))
    draw = ImageDraw.Draw(img)
    font = ImageFont.load_default()

    for index, color in enumerate(palette):
        box = swatch_box(index, columns, swatch_size)
        draw.rectangle(box, fill=color)
        draw_centred_label(draw, box, format_index(index, base), font,
                           label_color(color))

    return img


def main(argv=None):
    parser = argparse.ArgumentParser(description="Generate BMP displaying a .PAL palette with index labels in a chosen base")
    parser.add_argument('palette_file', help='Path to the .PAL file')
    parser.add_argument('output_file', help='Output BMP filename')
    parser.add_argument('--swatch-size', type=int, default=40, help='Size of each color swatch')
    parser.add_argument('--columns', type=int, default=16, help='Number of columns per row')
    parser.add_argument('--adjust', type=int, default=1, help='Palette adjustment multiplier (4 for 6-bit VGA palettes)')
    parser.add_argument('--base', type=int, default=10, help='Numeral base for index labels (2-36)')
    args = parser.parse_args(argv)

    if args.base < 2 or args.base > 36:
        parser.error("--base must be between 2 and 36")

    try:
        palette = load_palette(args.palette_file, adjust=args.adjust)
    except (ConversionError, OSError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    img = create_palette_image(
        palette,
        swatch_size=args.swatch_size,
        columns=args.columns,
        base=args.base
    )
    img.save(args.output_file, format='BMP')
    print(f"Saved palette image to {args.output_file} with index base {args.base}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
