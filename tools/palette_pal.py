# palette_pal.py
# --------------- read colours from a .PAL file (flat array of RGB triples)

from typing import BinaryIO, Dict, List, Tuple

from binary_io import read_exact
from bm_errors import TruncatedInput

PALETTE_ENTRIES = 256
PALETTE_ENTRY_SIZE = 3

RGB = Tuple[int, int, int]


class PaletteReader:
    """
    Random-access view of a PAL stream.

    Every lookup seeks to ``index * 3`` and reads one RGB triple, so the
    palette is never loaded wholesale and a palette that is too short only
    fails when a missing entry is actually requested. With *cache* enabled
    each entry is read once and remembered; results are the same either way.
    The stream is owned by the caller and is never closed here.
    """

    def __init__(self, stream: BinaryIO, cache: bool = True):
        self.stream = stream
        self.cache = cache
        self._entries: Dict[int, bytes] = {}

    def rgb_bytes(self, index: int) -> bytes:
        """Return palette entry *index* as 3 bytes in R, G, B order."""
        entry = self._entries.get(index)
        if entry is not None:
            return entry

        self.stream.seek(index * PALETTE_ENTRY_SIZE)
        entry = read_exact(self.stream, PALETTE_ENTRY_SIZE,
                           f'PAL entry 0x{index:02X}')
        if self.cache:
            self._entries[index] = entry
        return entry

    def bgr_bytes(self, index: int) -> bytes:
        """Return palette entry *index* channel-reversed for BMP storage."""
        return self.rgb_bytes(index)[::-1]

    def rgb(self, index: int) -> RGB:
        r, g, b = self.rgb_bytes(index)
        return r, g, b


def load_pal_palette(stream: BinaryIO, adjust: int = 1) -> List[RGB]:
    """
    Read up to 256 RGB triples from the start of *stream*.

    A trailing partial triple is ignored. Each channel is multiplied by
    *adjust* and clamped to 255 (VGA dumps store 6-bit intensities, use 4).
    """
    stream.seek(0)
    raw = stream.read(PALETTE_ENTRIES * PALETTE_ENTRY_SIZE)
    if len(raw) < PALETTE_ENTRY_SIZE:
        raise TruncatedInput('PAL file', PALETTE_ENTRY_SIZE, len(raw))

    palette = []
    for i in range(0, len(raw) - PALETTE_ENTRY_SIZE + 1, PALETTE_ENTRY_SIZE):
        r, g, b = (min(255, byte * adjust) for byte in raw[i:i+3])
        palette.append((r, g, b))
    return palette
