# pgs_core/blocks.py
# -*- coding: utf-8 -*-
"""
Caption assembly from demuxed container blocks (e.g. Matroska S_HDMV/PGS).

Container blocks carry segments with 3-byte headers and no PTS. A display
set may be split over several blocks, so payloads are buffered until a block
holding an END segment arrives. All caption timing in this mode comes from
the block timestamps; nothing here estimates a time.
"""
from __future__ import annotations
import logging
from typing import Iterable, List, Optional, Tuple

from .assembler import DecodeContext
from .config import DecodeOptions, resolve_options
from .decoder import decode_block
from .merge import merge_redundant_captions
from .models import Caption, TICKS_PER_MS
from .segments import contains_end_segment

logger = logging.getLogger(__name__)

# A clear block further away than this does not close an open caption
MAX_CLOSE_GAP_TICKS = 1_000_000


def ms_to_ticks(ms: float) -> int:
    return int(round(ms * TICKS_PER_MS))


class BlockAssembler:
    """Feeds container blocks through the decoder and stamps block timing."""

    def __init__(self, options: Optional[DecodeOptions] = None):
        self.options = resolve_options(options)
        self.context = DecodeContext()
        self.captions: List[Caption] = []
        self._pending = bytearray()

    def add_block(self, data: bytes, start_ticks: int, end_ticks: int):
        """
        Add one block.

        Args:
            data: Block payload (3-byte framed segments)
            start_ticks: Block start time in 90kHz ticks
            end_ticks: Block end time in 90kHz ticks (equal to start if unknown)
        """
        if len(data) <= 2:
            self._close_open_caption(start_ticks, from_clear_block=True)
            return

        self._pending += data
        if not contains_end_segment(data):
            return

        self._close_open_caption(start_ticks)
        for caption in decode_block(bytes(self._pending), self.context):
            caption.start_ticks = start_ticks
            caption.end_ticks = end_ticks
            previous = self.captions[-1] if self.captions else None
            if (previous is not None and previous.start_ticks < caption.start_ticks
                    and previous.end_ticks > caption.start_ticks):
                # Overlapping blocks: the earlier caption ends one tick early
                previous.end_ticks = caption.start_ticks - 1
            self.captions.append(caption)
        self._pending = bytearray()

    def finish(self) -> List[Caption]:
        """Run the merge pass and return all captions."""
        if self._pending:
            logger.debug("Dropping %d bytes of unterminated display set", len(self._pending))
            self._pending = bytearray()

        decoded = len(self.captions)
        merge_redundant_captions(self.captions, self.options)
        logger.info("Decoded %d captions from blocks (%d after merge)", decoded, len(self.captions))
        return self.captions

    def _close_open_caption(self, start_ticks: int, from_clear_block: bool = False):
        """Give a zero-length caption the start time of the following block."""
        if not self.captions:
            return
        last = self.captions[-1]
        if last.start_ticks != last.end_ticks:
            return
        last.end_ticks = start_ticks
        if from_clear_block and last.end_ticks - last.start_ticks > MAX_CLOSE_GAP_TICKS:
            last.end_ticks = last.start_ticks


def decode_blocks(
    blocks: Iterable[Tuple[bytes, int, int]],
    options: Optional[DecodeOptions] = None
) -> List[Caption]:
    """
    Decode a sequence of (payload, start_ticks, end_ticks) container blocks.

    Returns:
        Ordered, merged list of captions
    """
    assembler = BlockAssembler(options)
    for data, start_ticks, end_ticks in blocks:
        assembler.add_block(data, start_ticks, end_ticks)
    return assembler.finish()
