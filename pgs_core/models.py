# pgs_core/models.py
# -*- coding: utf-8 -*-
"""
Data models for PGS (Presentation Graphic Stream) caption decoding.

Timestamps are kept in 90kHz clock ticks, the unit used by the bitstream
itself. Millisecond views are exposed as properties.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import List, Optional, Tuple, TYPE_CHECKING

if TYPE_CHECKING:
    import numpy as np
    from PIL import Image
    from .palette import ColorMatrix

TICKS_PER_MS = 90


class SegmentType(IntEnum):
    """PGS segment types"""
    PALETTE = 0x14      # PDS - Palette Definition Segment
    OBJECT = 0x15       # ODS - Object Definition Segment (bitmap data)
    COMPOSITION = 0x16  # PCS - Picture Composition Segment (timing/position)
    WINDOW = 0x17       # WDS - Window Definition Segment
    END = 0x80          # End of Display Set

    @classmethod
    def from_tag(cls, tag: int) -> Optional['SegmentType']:
        """Map a raw type byte to a known segment type, None for anything else."""
        try:
            return cls(tag)
        except ValueError:
            return None


class CompositionState(Enum):
    """Composition state field of a PCS"""
    NORMAL = 0x00
    ACQUISITION_POINT = 0x40
    EPOCH_START = 0x80
    EPOCH_CONTINUE = 0xC0
    INVALID = -1

    @classmethod
    def from_byte(cls, value: int) -> 'CompositionState':
        for state in (cls.NORMAL, cls.ACQUISITION_POINT, cls.EPOCH_START, cls.EPOCH_CONTINUE):
            if state.value == value:
                return state
        return cls.INVALID


@dataclass
class Segment:
    """One framed segment. pts is 0 when timing comes from the container."""
    type_tag: int
    size: int
    pts: int
    data: bytes
    offset: int = 0  # Header position in the source buffer

    @property
    def type(self) -> Optional[SegmentType]:
        return SegmentType.from_tag(self.type_tag)


@dataclass
class PaletteEntry:
    """Single raw palette entry as stored in a PDS"""
    index: int
    y: int   # Luma
    cr: int  # Red chroma
    cb: int  # Blue chroma
    alpha: int


@dataclass
class PaletteBatch:
    """One palette definition segment"""
    palette_id: int
    version: int
    entries: List[PaletteEntry] = field(default_factory=list)


@dataclass
class ObjectFragment:
    """
    Object Definition Segment fragment.

    Only the first fragment of an object carries its width and height.
    """
    object_id: int
    version: int
    is_first: bool
    is_last: bool
    data: bytes
    width: int = 0
    height: int = 0


@dataclass
class CompositionObject:
    """Single object placed by a Picture Composition"""
    object_id: int
    window_id: int
    forced: bool
    x: int
    y: int


@dataclass
class WindowDefinition:
    """Window from a WDS, kept for diagnostics only"""
    window_id: int
    x: int
    y: int
    width: int
    height: int


@dataclass
class Caption:
    """
    One decoded display set: a Picture Composition plus the palette and
    object data resolved for it.
    """
    composition_number: int
    composition_state: CompositionState
    start_ticks: int = 0
    end_ticks: int = 0
    width: int = 0
    height: int = 0
    frame_rate: int = 0
    palette_update: bool = False
    palette_id: int = 0
    objects: List[CompositionObject] = field(default_factory=list)
    palette_batches: List[PaletteBatch] = field(default_factory=list)
    bitmap_objects: List[List[ObjectFragment]] = field(default_factory=list)
    merged: bool = False  # Set on the caption a merge group collapsed into

    @property
    def start_ms(self) -> float:
        return self.start_ticks / TICKS_PER_MS

    @property
    def end_ms(self) -> float:
        return self.end_ticks / TICKS_PER_MS

    @property
    def duration_ms(self) -> float:
        return (self.end_ticks - self.start_ticks) / TICKS_PER_MS

    @property
    def is_forced(self) -> bool:
        return any(obj.forced for obj in self.objects)

    @property
    def is_empty(self) -> bool:
        """A caption without composition objects clears the screen."""
        return not self.objects

    @property
    def position(self) -> Tuple[int, int]:
        """Top-left corner of all placed objects (X, Y)"""
        if not self.objects:
            return (0, 0)
        return (min(obj.x for obj in self.objects), min(obj.y for obj in self.objects))

    def coalesce_fragments(self):
        """Join multi-fragment objects into one decodable fragment each."""
        for i, fragments in enumerate(self.bitmap_objects):
            if len(fragments) > 1:
                head = fragments[0]
                joined = ObjectFragment(
                    object_id=head.object_id,
                    version=head.version,
                    is_first=True,
                    is_last=True,
                    data=b''.join(frag.data for frag in fragments),
                    width=head.width,
                    height=head.height,
                )
                self.bitmap_objects[i] = [joined]

    def render_bitmap(self, matrix: Optional['ColorMatrix'] = None) -> 'np.ndarray':
        """Render the caption to an RGBA array of shape (height, width, 4)."""
        from .image import render_caption
        return render_caption(self, matrix)

    def to_image(self, matrix: Optional['ColorMatrix'] = None) -> 'Image.Image':
        """Render the caption to a PIL Image in RGBA mode."""
        from .image import to_pil
        return to_pil(self.render_bitmap(matrix))
