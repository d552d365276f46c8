# pgs_core/palette.py
# -*- coding: utf-8 -*-
"""
YCbCr to RGB color conversion and palette resolution for PGS captions.
"""
from __future__ import annotations
import logging
from enum import Enum
from typing import Iterable, Optional, Tuple

import numpy as np

from .models import PaletteBatch

logger = logging.getLogger(__name__)

PALETTE_SIZE = 256
TRANSPARENT_INDEX = 0xFF
# Entries this transparent get a neutral color so edge blending stays grey
LOW_ALPHA_THRESHOLD = 14
NEUTRAL_YCRCB = (16, 128, 128)


class ColorMatrix(Enum):
    """YCbCr -> RGB conversion coefficients (kr, kg_cb, kg_cr, kb)"""
    BT601 = (1.402, 0.344136, 0.714136, 1.772)
    BT709 = (1.5748, 0.187324, 0.468124, 1.8556)


def clamp(value: float, min_val: int = 0, max_val: int = 255) -> int:
    """Clamp value to range [min_val, max_val]"""
    return int(max(min_val, min(max_val, value)))


def ycbcr_to_rgb(
    y: int,
    cr: int,
    cb: int,
    matrix: ColorMatrix = ColorMatrix.BT601
) -> Tuple[int, int, int]:
    """
    Convert full-range YCbCr to RGB.

    BT.601:
        r = y + 1.402 * (cr - 128)
        g = y - 0.344136 * (cb - 128) - 0.714136 * (cr - 128)
        b = y + 1.772 * (cb - 128)

    Args:
        y: Luma (0-255)
        cr: Red chroma difference (0-255)
        cb: Blue chroma difference (0-255)
        matrix: Conversion coefficients

    Returns:
        Tuple of (r, g, b) values (0-255)
    """
    kr, kg_cb, kg_cr, kb = matrix.value
    d = cb - 128
    e = cr - 128

    r = y + kr * e
    g = y - kg_cb * d - kg_cr * e
    b = y + kb * d

    return (clamp(r), clamp(g), clamp(b))


class Palette:
    """
    256-slot RGBA lookup table built from one or more palette batches.

    Slots start fully transparent. An entry only replaces a slot when its
    alpha is not lower than the slot's current alpha, so fade-out updates
    never dim an already shown color. Slot 0xFF is always transparent.
    """

    def __init__(self, matrix: ColorMatrix = ColorMatrix.BT601):
        self.matrix = matrix
        self.rgba = np.zeros((PALETTE_SIZE, 4), dtype=np.uint8)
        self.fade_outs = 0

    @classmethod
    def from_batches(
        cls,
        batches: Iterable[PaletteBatch],
        matrix: Optional[ColorMatrix] = None
    ) -> 'Palette':
        """Fold batches oldest to newest into a resolved palette."""
        palette = cls(matrix or ColorMatrix.BT601)
        for batch in batches:
            palette.apply(batch)
        if palette.fade_outs:
            logger.debug("Ignored %d fade-out palette entries", palette.fade_outs)
        return palette

    def apply(self, batch: PaletteBatch):
        for entry in batch.entries:
            if entry.alpha < self.rgba[entry.index, 3]:
                self.fade_outs += 1
                continue

            y, cr, cb = entry.y, entry.cr, entry.cb
            if entry.alpha < LOW_ALPHA_THRESHOLD:
                y, cr, cb = NEUTRAL_YCRCB

            r, g, b = ycbcr_to_rgb(y, cr, cb, self.matrix)
            self.rgba[entry.index] = (r, g, b, entry.alpha)

        self.rgba[TRANSPARENT_INDEX] = (0, 0, 0, 0)

    def alpha(self, index: int) -> int:
        return int(self.rgba[index, 3])

    def color(self, index: int) -> Tuple[int, int, int, int]:
        r, g, b, a = self.rgba[index]
        return (int(r), int(g), int(b), int(a))
