# pgs_core/ocr_input.py
# -*- coding: utf-8 -*-
"""
Hand-off records for an OCR stage.

Decoded captions are rendered to RGBA bitmaps and wrapped with their timing
and placement, the form an OCR backend consumes.
"""
from __future__ import annotations
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

import numpy as np

from .config import DecodeOptions, resolve_options
from .decoder import decode_file
from .errors import PgsError
from .models import Caption

logger = logging.getLogger(__name__)


@dataclass
class SubtitleImage:
    """
    One caption rendered for OCR.

    Attributes:
        index: Position of the caption in decode order
        start_ms: Display start, milliseconds
        end_ms: Display end, milliseconds
        image: RGBA array of shape (height, width, 4)
        x, y: Placement of the bitmap's top-left corner on the video frame
        width, height: Bitmap size; taken from image when left at 0
        frame_width, frame_height: Video frame size from the composition
        is_forced: Any placed object carries the forced flag
    """
    index: int
    start_ms: float
    end_ms: float
    image: np.ndarray
    x: int = 0
    y: int = 0
    width: int = 0
    height: int = 0
    frame_width: int = 1920
    frame_height: int = 1080
    is_forced: bool = False

    def __post_init__(self):
        rows, cols = self.image.shape[:2]
        self.height = self.height or rows
        self.width = self.width or cols

    @classmethod
    def from_caption(cls, caption: Caption, index: int, options: Optional[DecodeOptions] = None) -> 'SubtitleImage':
        options = resolve_options(options)
        x, y = caption.position
        return cls(
            index=index,
            start_ms=caption.start_ms,
            end_ms=caption.end_ms,
            image=caption.render_bitmap(options.color_matrix),
            x=x,
            y=y,
            frame_width=caption.width,
            frame_height=caption.height,
            is_forced=caption.is_forced,
        )

    @property
    def duration_ms(self) -> float:
        return self.end_ms - self.start_ms

    @property
    def y_position_percent(self) -> float:
        """Vertical center of the bitmap as a share of the frame, 0 at the top."""
        if self.frame_height == 0:
            return 100.0
        return (self.y + self.height / 2) / self.frame_height * 100

    def is_top_positioned(self, threshold_percent: float = 25.0) -> bool:
        return self.y_position_percent <= threshold_percent


@dataclass
class ParseResult:
    """Rendered captions of one file plus format details and collected problems."""
    subtitles: List[SubtitleImage] = field(default_factory=list)
    format_info: dict = field(default_factory=dict)
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors and bool(self.subtitles)


class SubtitleImageParser(ABC):
    """Base class for parsers that turn image-based subtitle files into SubtitleImages."""

    @abstractmethod
    def parse(self, file_path: Path) -> ParseResult:
        pass

    @abstractmethod
    def can_parse(self, file_path: Path) -> bool:
        pass


class PgsParser(SubtitleImageParser):
    """Parser for Blu-ray PGS (.sup) files."""

    def __init__(self, options: Optional[DecodeOptions] = None):
        self.options = resolve_options(options)

    def can_parse(self, file_path: Path) -> bool:
        return file_path.suffix.lower() == '.sup'

    def parse(self, file_path: Path) -> ParseResult:
        result = ParseResult()
        try:
            captions = decode_file(file_path, self.options)
        except (PgsError, OSError) as e:
            result.errors.append(f"Failed to parse PGS: {e}")
            return result

        result.format_info = {
            "format": "PGS",
            "frame_size": (captions[0].width, captions[0].height) if captions else (0, 0),
            "subtitle_count": len(captions),
            "forced_count": sum(1 for caption in captions if caption.is_forced),
            "top_positioned_count": 0,
        }
        if not captions:
            result.warnings.append("No captions found in SUP file")
            return result

        for i, caption in enumerate(captions):
            result.subtitles.append(SubtitleImage.from_caption(caption, i, self.options))

        result.format_info["top_positioned_count"] = sum(
            1 for subtitle in result.subtitles if subtitle.is_top_positioned()
        )

        logger.debug("Rendered %d captions from %s", len(result.subtitles), file_path.name)
        return result
