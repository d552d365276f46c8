# pgs_core/decoder.py
# -*- coding: utf-8 -*-
"""
Entry points for decoding PGS data into captions.

    - decode_stream: a complete SUP stream with 13-byte segment headers
    - decode_block: one container block with 3-byte headers, using
      caller-owned carry state
    - decode_file: a .sup file on disk
"""
from __future__ import annotations
import logging
from pathlib import Path
from typing import List, Optional, Union

from .assembler import CompositionAssembler, DecodeContext
from .config import DecodeOptions, resolve_options
from .errors import UnsupportedInputError
from .merge import merge_redundant_captions
from .models import Caption, TICKS_PER_MS
from .segments import iter_segments

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = ('.sup',)


def _assemble(data: bytes, context: DecodeContext, external_timestamps: bool) -> List[Caption]:
    assembler = CompositionAssembler(context)
    for segment in iter_segments(data, external_timestamps):
        assembler.feed(segment)
    return assembler.finish()


def decode_stream(data: bytes, options: Optional[DecodeOptions] = None) -> List[Caption]:
    """
    Decode a standalone SUP stream.

    Timing comes from the segment headers. A trailing caption that no later
    composition closes lasts options.default_duration_ms. Redundant captions
    are merged before returning.

    Args:
        data: Raw SUP bytes
        options: Decode settings (defaults if None)

    Returns:
        Ordered list of captions

    Raises:
        SupFormatError: If the data does not start with a SUP segment header
    """
    options = resolve_options(options)
    captions = _assemble(data, DecodeContext(), external_timestamps=False)

    if captions and captions[-1].end_ticks == 0:
        last = captions[-1]
        last.end_ticks = last.start_ticks + options.default_duration_ms * TICKS_PER_MS

    decoded = len(captions)
    merge_redundant_captions(captions, options)
    logger.info("Decoded %d captions (%d after merge)", decoded, len(captions))
    return captions


def decode_block(data: bytes, context: DecodeContext) -> List[Caption]:
    """
    Decode the segments of one container block.

    Palette and object state persists in context between calls. Start and
    end times are left for the caller to set from the container timestamps,
    and no merge pass is run.
    """
    return _assemble(data, context, external_timestamps=True)


def decode_file(path: Union[str, Path], options: Optional[DecodeOptions] = None) -> List[Caption]:
    """
    Decode a .sup file.

    Raises:
        FileNotFoundError: If the file does not exist
        UnsupportedInputError: If the file is not a .sup file
    """
    file_path = Path(path)
    if file_path.suffix.lower() not in SUPPORTED_EXTENSIONS:
        raise UnsupportedInputError(f"Unsupported subtitle file type: {file_path.name}")
    if not file_path.exists():
        raise FileNotFoundError(f"SUP file not found: {file_path}")

    logger.info("Decoding %s", file_path.name)
    return decode_stream(file_path.read_bytes(), options)
