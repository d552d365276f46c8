# pgs_core/__init__.py
# -*- coding: utf-8 -*-
"""
Blu-ray PGS (SUP) caption decoding.

Decodes presentation graphics segments into timed captions whose RGBA
bitmaps can be rendered on demand for OCR.
"""
from .assembler import CompositionAssembler, DecodeContext
from .blocks import BlockAssembler, decode_blocks, ms_to_ticks
from .config import DecodeOptions, DecoderConfig
from .decoder import decode_block, decode_file, decode_stream
from .errors import (
    PgsError, SegmentDesyncError, SegmentPayloadError, SupFormatError, UnsupportedInputError,
)
from .merge import merge_redundant_captions
from .models import Caption, CompositionObject, CompositionState, ObjectFragment, PaletteBatch
from .ocr_input import PgsParser, SubtitleImage
from .palette import ColorMatrix, Palette

__all__ = [
    'BlockAssembler',
    'Caption',
    'ColorMatrix',
    'CompositionAssembler',
    'CompositionObject',
    'CompositionState',
    'DecodeContext',
    'DecodeOptions',
    'DecoderConfig',
    'ObjectFragment',
    'Palette',
    'PaletteBatch',
    'PgsError',
    'PgsParser',
    'SegmentDesyncError',
    'SegmentPayloadError',
    'SubtitleImage',
    'SupFormatError',
    'UnsupportedInputError',
    'decode_block',
    'decode_blocks',
    'decode_file',
    'decode_stream',
    'merge_redundant_captions',
    'ms_to_ticks',
]
