# pgs_core/errors.py
# -*- coding: utf-8 -*-
"""Exceptions raised while decoding PGS streams."""


class PgsError(Exception):
    """Base class for all decoder errors."""


class SupFormatError(PgsError, ValueError):
    """Input is not a readable SUP stream (e.g. missing 'PG' magic)."""


class SegmentDesyncError(PgsError):
    """A segment declares more payload than the buffer holds."""

    def __init__(self, offset: int, declared: int, available: int):
        super().__init__(
            f"Segment at offset {offset} declares {declared} bytes, only {available} available"
        )
        self.offset = offset
        self.declared = declared
        self.available = available


class SegmentPayloadError(PgsError):
    """The payload of a single segment has an invalid layout."""


class UnsupportedInputError(PgsError, ValueError):
    """Input file type cannot be decoded."""
