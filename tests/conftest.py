"""
Shared pytest fixtures for the BM to BMP tests
"""

import logging
import struct

import pytest

from logging_config import LOGGER_NAME


def _entry(index):
    # every channel differs so a swapped channel order shows up
    return (index, (index * 7) & 0xFF, 255 - index)


@pytest.fixture
def palette_entry():
    """RGB triple stored at each index of the sample palette"""
    return _entry


@pytest.fixture
def palette_bytes():
    """A full 256-entry PAL file"""
    return b''.join(bytes(_entry(i)) for i in range(256))


@pytest.fixture
def make_bm():
    """Build .BM file contents from dimensions and index bytes"""
    def build(width, height, indices=b'', reserved=False):
        data = struct.pack('<II', width, height)
        if reserved:
            data += b'\xAA\xBB\xCC\xDD'
        return data + bytes(indices)
    return build


@pytest.fixture
def in_tmp_dir(tmp_path, monkeypatch):
    """Run the test with the temporary directory as working directory"""
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture(autouse=True)
def reset_bmtobmp_logger():
    """Undo any setup_logging() done by a CLI test"""
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
