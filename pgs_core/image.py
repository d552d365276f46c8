# pgs_core/image.py
# -*- coding: utf-8 -*-
"""
RLE decompression and bitmap composition for PGS captions.

RLE encoding patterns:
    - 0xNN (non-zero): Single pixel with palette index NN
    - 0x00 0x00: End of line, move to next row
    - 0x00 0xNN: NN pixels of index 0 (NN < 0x40)
    - 0x00 0x4N 0xNN: Long run ((N-0x40) << 8) + NN pixels of index 0
    - 0x00 0x8N 0xCC: (N-0x80) pixels of color CC
    - 0x00 0xCN 0xNN 0xCC: Long run ((N-0xC0) << 8) + NN pixels of color CC
"""
from __future__ import annotations
from typing import List, Optional, Sequence, Tuple

import numpy as np
from PIL import Image

from .models import Caption, CompositionObject, ObjectFragment
from .palette import ColorMatrix, Palette, TRANSPARENT_INDEX


def decode_rle(data: bytes, width: int, height: int, palette: Palette) -> np.ndarray:
    """
    Decompress an RLE object into a (height, width) array of palette indices.

    Pixels whose palette slot has zero alpha are never written, so they keep
    the transparent background index 0xFF. Writes beyond the bitmap are
    dropped.

    Args:
        data: Coalesced RLE image data of one object
        width: Object width in pixels
        height: Object height in pixels
        palette: Resolved palette, used only for slot visibility

    Returns:
        numpy uint8 array of palette indices
    """
    total = width * height
    pixels = np.full(total, TRANSPARENT_INDEX, dtype=np.uint8)
    if total == 0:
        return pixels.reshape(height, width)

    visible = palette.rgba[:, 3] > 0

    def fill(start: int, count: int, index: int):
        if count <= 0 or not visible[index]:
            return
        end = min(start + count, total)
        if start < end:
            pixels[start:end] = index

    ofs = 0    # Linear pixel offset
    xpos = 0   # Current x position in line
    i = 0      # Buffer index
    size = len(data)

    while i < size:
        b = data[i]
        i += 1

        if b != 0 or i >= size:
            # Single pixel; a lone 0x00 as the final byte is a slot 0 pixel
            fill(ofs, 1, b)
            ofs += 1
            xpos += 1
            continue

        c = data[i]
        i += 1

        if c == 0:
            # End of line: back to the row start, then down one row unless
            # the previous run already reached the row end
            ofs = (ofs // width) * width
            if xpos < width:
                ofs += width
            xpos = 0
            continue

        if (c & 0xC0) == 0x40:
            if i >= size:
                break
            run = ((c - 0x40) << 8) | data[i]
            i += 1
            color = 0
        elif (c & 0xC0) == 0x80:
            if i >= size:
                break
            run = c - 0x80
            color = data[i]
            i += 1
        elif (c & 0xC0) == 0xC0:
            if i + 1 >= size:
                break
            run = ((c - 0xC0) << 8) | data[i]
            color = data[i + 1]
            i += 2
        else:
            run = c
            color = 0

        fill(ofs, run, color)
        ofs += run
        xpos += run

    return pixels.reshape(height, width)


def _empty_bitmap() -> np.ndarray:
    return np.zeros((1, 1, 4), dtype=np.uint8)


def decode_object(fragments: Sequence[ObjectFragment], palette: Palette) -> np.ndarray:
    """Decode one object's fragments to an RGBA array."""
    if not fragments:
        return _empty_bitmap()
    head = fragments[0]
    if head.width <= 0 or head.height <= 0:
        return _empty_bitmap()

    data = b''.join(frag.data for frag in fragments)
    if not data:
        return _empty_bitmap()

    indices = decode_rle(data, head.width, head.height, palette)
    return palette.rgba[indices]


def placed_objects(caption: Caption) -> List[Tuple[CompositionObject, List[ObjectFragment]]]:
    """Pair composition objects with their fragment lists, skipping objects without data."""
    pairs = []
    remaining = iter(caption.bitmap_objects)
    pending = next(remaining, None)
    for obj in caption.objects:
        if pending and pending[0].object_id == obj.object_id:
            pairs.append((obj, pending))
            pending = next(remaining, None)
    return pairs


def render_caption(caption: Caption, matrix: Optional[ColorMatrix] = None) -> np.ndarray:
    """
    Render all objects of a caption into one RGBA array.

    Multiple objects are placed on a canvas covering the union of their
    rectangles. Later objects are painted over earlier ones.

    Returns:
        numpy uint8 array of shape (height, width, 4)
    """
    pairs = placed_objects(caption)
    if not pairs:
        return _empty_bitmap()

    palette = Palette.from_batches(caption.palette_batches, matrix)

    if len(pairs) == 1:
        return decode_object(pairs[0][1], palette)

    min_x = min(obj.x for obj, _ in pairs)
    min_y = min(obj.y for obj, _ in pairs)
    max_x = max(obj.x + frags[0].width for obj, frags in pairs)
    max_y = max(obj.y + frags[0].height for obj, frags in pairs)

    canvas = np.zeros((max_y - min_y, max_x - min_x, 4), dtype=np.uint8)
    for obj, frags in pairs:
        layer = decode_object(frags, palette)
        h, w = layer.shape[:2]
        rel_x = obj.x - min_x
        rel_y = obj.y - min_y
        region = canvas[rel_y:rel_y + h, rel_x:rel_x + w]
        mask = layer[:region.shape[0], :region.shape[1], 3] > 0
        region[mask] = layer[:region.shape[0], :region.shape[1]][mask]

    return canvas


def non_transparent_height(rgba: np.ndarray) -> int:
    """Height of the band between the first and last rows with visible pixels."""
    rows = np.flatnonzero(rgba[..., 3].any(axis=1))
    if rows.size == 0:
        return 0
    return int(rows[-1] - rows[0] + 1)


def non_transparent_width(rgba: np.ndarray) -> int:
    """Width of the band between the first and last columns with visible pixels."""
    cols = np.flatnonzero(rgba[..., 3].any(axis=0))
    if cols.size == 0:
        return 0
    return int(cols[-1] - cols[0] + 1)


def bitmaps_equal(a: np.ndarray, b: np.ndarray) -> bool:
    return a.shape == b.shape and bool(np.array_equal(a, b))


def to_pil(rgba: np.ndarray) -> Image.Image:
    """Wrap an RGBA array as a PIL Image."""
    return Image.fromarray(np.ascontiguousarray(rgba, dtype=np.uint8))
