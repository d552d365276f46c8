# pgs_core/segments.py
# -*- coding: utf-8 -*-
"""
PGS segment framing and payload parsing.

Two header layouts are supported:
    - SUP file: 13 bytes ('PG' magic, PTS, DTS, type, size)
    - Container block: 3 bytes (type, size); timing comes from the container
"""
from __future__ import annotations
import logging
import struct
from typing import Iterator, List, Optional, Tuple

from .errors import SegmentDesyncError, SegmentPayloadError, SupFormatError
from .models import (
    CompositionObject, CompositionState, Caption, ObjectFragment,
    PaletteBatch, PaletteEntry, Segment, SegmentType, WindowDefinition,
)

logger = logging.getLogger(__name__)

SUP_HEADER_SIZE = 13
BLOCK_HEADER_SIZE = 3
SUP_MAGIC = b'PG'


def read_big_endian_int16(data: bytes, offset: int) -> int:
    """Read 16-bit big-endian integer"""
    return struct.unpack_from('>H', data, offset)[0]


def read_big_endian_int24(data: bytes, offset: int) -> int:
    """Read 24-bit big-endian integer"""
    return (data[offset] << 16) | (data[offset + 1] << 8) | data[offset + 2]


def read_big_endian_int32(data: bytes, offset: int) -> int:
    """Read 32-bit big-endian integer"""
    return struct.unpack_from('>I', data, offset)[0]


def read_segment(
    buffer: bytes,
    offset: int,
    external_timestamps: bool = False
) -> Optional[Tuple[Segment, int]]:
    """
    Frame one segment starting at offset.

    Args:
        buffer: Source bytes
        offset: Position of the segment header
        external_timestamps: If True, expect the 3-byte container header

    Returns:
        (segment, next_offset), or None if not even a full header is left

    Raises:
        SupFormatError: 13-byte header without the 'PG' magic
        SegmentDesyncError: declared payload size exceeds the remaining bytes
    """
    header_size = BLOCK_HEADER_SIZE if external_timestamps else SUP_HEADER_SIZE
    if len(buffer) - offset < header_size:
        return None

    if external_timestamps:
        type_tag = buffer[offset]
        size = read_big_endian_int16(buffer, offset + 1)
        pts = 0
    else:
        if buffer[offset:offset + 2] != SUP_MAGIC:
            raise SupFormatError(f"Missing 'PG' magic at offset {offset}")
        pts = read_big_endian_int32(buffer, offset + 2)
        # bytes 6-9 hold the decoding timestamp, which is not needed
        type_tag = buffer[offset + 10]
        size = read_big_endian_int16(buffer, offset + 11)

    start = offset + header_size
    available = len(buffer) - start
    if size > available:
        raise SegmentDesyncError(offset, size, available)

    segment = Segment(
        type_tag=type_tag,
        size=size,
        pts=pts,
        data=bytes(buffer[start:start + size]),
        offset=offset,
    )
    return segment, start + size


def iter_segments(buffer: bytes, external_timestamps: bool = False) -> Iterator[Segment]:
    """
    Yield segments until the buffer is exhausted or framing is lost.

    A desync ends iteration; segments already yielded stay valid. A missing
    magic or a truncated header before the first segment means the input is
    not a SUP stream and is raised to the caller.
    """
    offset = 0
    count = 0
    while True:
        try:
            framed = read_segment(buffer, offset, external_timestamps)
        except SegmentDesyncError as e:
            logger.warning("Stopping decode: %s", e)
            return
        except SupFormatError:
            if count == 0:
                raise
            logger.warning("Stopping decode: lost segment sync at offset %d", offset)
            return

        if framed is None:
            if count == 0 and buffer:
                raise SupFormatError(f"Input of {len(buffer)} bytes is shorter than one segment header")
            if offset < len(buffer):
                logger.debug("Ignoring %d trailing bytes", len(buffer) - offset)
            return

        segment, offset = framed
        count += 1
        yield segment


def contains_end_segment(block: bytes) -> bool:
    """Check whether a 3-byte framed container block holds an END segment."""
    position = 0
    while position + BLOCK_HEADER_SIZE <= len(block):
        if block[position] == SegmentType.END:
            return True
        position += read_big_endian_int16(block, position + 1) + BLOCK_HEADER_SIZE
    return False


def parse_palette(segment: Segment) -> Optional[PaletteBatch]:
    """
    Parse Palette Definition Segment (PDS - 0x14).

    Structure:
        - byte 0: palette_id
        - byte 1: version
        - rest: 5-byte entries [index, Y, Cr, Cb, Alpha]

    Returns:
        PaletteBatch, or None for a palette without entries
    """
    data = segment.data
    if len(data) < 2:
        raise SegmentPayloadError(f"PDS too short ({len(data)} bytes)")

    palette_id = data[0]
    version = data[1]
    count = (len(data) - 2) // 5
    if count <= 0:
        return None

    entries = []
    for offset in range(2, 2 + count * 5, 5):
        index, y, cr, cb, alpha = data[offset:offset + 5]
        entries.append(PaletteEntry(index, y, cr, cb, alpha))

    return PaletteBatch(palette_id, version, entries)


def parse_object(segment: Segment, force_first: bool = False) -> ObjectFragment:
    """
    Parse Object Definition Segment (ODS - 0x15).

    Structure:
        - bytes 0-1: object_id (big-endian)
        - byte 2: version
        - byte 3: sequence flags
            bit 7 (0x80): first fragment
            bit 6 (0x40): last fragment

        If first fragment:
            - bytes 4-6: data length (24-bit, big-endian)
            - bytes 7-8: width (big-endian)
            - bytes 9-10: height (big-endian)
            - bytes 11+: RLE image data
        Else:
            - bytes 4+: continuation data

    Args:
        segment: ODS segment
        force_first: Treat the fragment as first regardless of its flags
    """
    data = segment.data
    if len(data) < 4:
        raise SegmentPayloadError(f"ODS too short ({len(data)} bytes)")

    object_id = read_big_endian_int16(data, 0)
    version = data[2]
    sequence = data[3]
    is_first = (sequence & 0x80) == 0x80 or force_first
    is_last = (sequence & 0x40) == 0x40

    if not is_first:
        return ObjectFragment(object_id, version, False, is_last, data[4:])

    if len(data) < 11:
        raise SegmentPayloadError(f"First ODS fragment too short ({len(data)} bytes)")

    return ObjectFragment(
        object_id=object_id,
        version=version,
        is_first=True,
        is_last=is_last,
        data=data[11:],
        width=read_big_endian_int16(data, 7),
        height=read_big_endian_int16(data, 9),
    )


def parse_composition(segment: Segment) -> Caption:
    """
    Parse Picture Composition Segment (PCS - 0x16).

    Structure:
        - bytes 0-1: width (big-endian)
        - bytes 2-3: height (big-endian)
        - byte 4: frame_rate
        - bytes 5-6: composition_number (big-endian)
        - byte 7: composition_state
        - byte 8: palette_update_flag
        - byte 9: palette_id
        - byte 10: number_of_objects

        For each object (8 bytes):
            - bytes 0-1: object_id
            - byte 2: window_id
            - byte 3: flags (bit 6 = forced)
            - bytes 4-5: x position
            - bytes 6-7: y position

    Objects are not read for an invalid composition state.
    """
    data = segment.data
    if len(data) < 11:
        raise SegmentPayloadError(f"PCS too short ({len(data)} bytes)")

    caption = Caption(
        composition_number=read_big_endian_int16(data, 5),
        composition_state=CompositionState.from_byte(data[7]),
        start_ticks=segment.pts,
        width=read_big_endian_int16(data, 0),
        height=read_big_endian_int16(data, 2),
        frame_rate=data[4],
        palette_update=data[8] == 0x80,
        palette_id=data[9],
    )
    if caption.composition_state is CompositionState.INVALID:
        return caption

    num_objects = data[10]
    if 11 + num_objects * 8 > len(data):
        raise SegmentPayloadError(
            f"PCS declares {num_objects} objects but holds {len(data) - 11} object bytes"
        )

    for offset in range(11, 11 + num_objects * 8, 8):
        caption.objects.append(CompositionObject(
            object_id=read_big_endian_int16(data, offset),
            window_id=data[offset + 2],
            forced=(data[offset + 3] & 0x40) == 0x40,
            x=read_big_endian_int16(data, offset + 4),
            y=read_big_endian_int16(data, offset + 6),
        ))

    return caption


def parse_windows(segment: Segment) -> List[WindowDefinition]:
    """
    Parse Window Definition Segment (WDS - 0x17).

    Structure:
        - byte 0: number_of_windows
        For each window (9 bytes):
            - byte 0: window_id
            - bytes 1-2: x, bytes 3-4: y
            - bytes 5-6: width, bytes 7-8: height
    """
    data = segment.data
    if not data:
        raise SegmentPayloadError("Empty WDS")

    count = data[0]
    if 1 + count * 9 > len(data):
        raise SegmentPayloadError(f"WDS declares {count} windows, holds {len(data) - 1} bytes")

    windows = []
    for offset in range(1, 1 + count * 9, 9):
        windows.append(WindowDefinition(
            window_id=data[offset],
            x=read_big_endian_int16(data, offset + 1),
            y=read_big_endian_int16(data, offset + 3),
            width=read_big_endian_int16(data, offset + 5),
            height=read_big_endian_int16(data, offset + 7),
        ))
    return windows
