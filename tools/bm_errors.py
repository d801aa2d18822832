# bm_errors.py
# --------------- failures raised while turning a BM/PAL pair into a BMP


class ConversionError(Exception):
    """Base class for every failure of a BM -> BMP conversion."""


class TruncatedInput(ConversionError):
    """A read returned fewer bytes than the format requires."""

    def __init__(self, what: str, expected: int, actual: int):
        self.what = what
        self.expected = expected
        self.actual = actual
        super().__init__(
            f'{what}: read {actual} bytes, expected {expected}.')


class AllocationFailure(ConversionError):
    """The pixel grid for the declared dimensions cannot be sized or allocated."""


class WriteFailure(ConversionError):
    """The output sink rejected a write."""


class InvalidDestination(ConversionError):
    """The output name is unusable or the output file cannot be created."""
