# pgs_core/assembler.py
# -*- coding: utf-8 -*-
"""
Composition state machine.

Palette and object segments are collected under the currently open Picture
Composition. A caption is completed when the next composition opens or an
End of Display Set segment arrives.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from .errors import SegmentPayloadError
from .models import Caption, CompositionState, ObjectFragment, PaletteBatch, Segment, SegmentType
from .segments import parse_composition, parse_object, parse_palette, parse_windows

logger = logging.getLogger(__name__)


@dataclass
class DecodeContext:
    """
    Palette and object state carried between block-at-a-time decode calls.

    Owned by the caller; a decode call borrows it and updates it in place.
    """
    palettes: Dict[int, List[PaletteBatch]] = field(default_factory=dict)
    objects: Dict[int, List[ObjectFragment]] = field(default_factory=dict)

    def clear(self):
        self.palettes.clear()
        self.objects.clear()


class AssemblerState(Enum):
    NO_OPEN_CAPTION = 'no_open_caption'
    CAPTION_OPEN = 'caption_open'


class CompositionAssembler:
    """Turns an ordered segment sequence into completed captions."""

    def __init__(self, context: Optional[DecodeContext] = None):
        self.context = context if context is not None else DecodeContext()
        self.batches: Dict[int, List[PaletteBatch]] = {}  # palette_id -> batches read in this call
        self.captions: List[Caption] = []
        self.current: Optional[Caption] = None
        self.force_first = True

    @property
    def state(self) -> AssemblerState:
        if self.current is None:
            return AssemblerState.NO_OPEN_CAPTION
        return AssemblerState.CAPTION_OPEN

    def feed(self, segment: Segment):
        """Apply one segment. A malformed payload only skips that segment."""
        handlers = {
            SegmentType.PALETTE: self._on_palette,
            SegmentType.OBJECT: self._on_object,
            SegmentType.COMPOSITION: self._on_composition,
            SegmentType.WINDOW: self._on_window,
            SegmentType.END: self._on_end,
        }
        handler = handlers.get(segment.type)
        if handler is None:
            logger.debug("Ignoring segment type 0x%02X at offset %d", segment.type_tag, segment.offset)
            return

        try:
            handler(segment)
        except (SegmentPayloadError, IndexError) as e:
            logger.warning(
                "Skipping malformed segment 0x%02X at offset %d: %s",
                segment.type_tag, segment.offset, e
            )

    def finish(self) -> List[Caption]:
        """
        Complete any open caption and return the captions of this call.

        Unset end times are taken from the following caption's start; captions
        without objects are dropped afterwards and multi-fragment objects are
        coalesced.
        """
        if self.current is not None:
            self._append_if_complete(self.current)
            self.current = None

        for previous, following in zip(self.captions, self.captions[1:]):
            if previous.end_ticks == 0:
                previous.end_ticks = following.start_ticks

        captions = [caption for caption in self.captions if not caption.is_empty]
        for caption in captions:
            caption.coalesce_fragments()

        if self.batches:
            self.context.palettes.clear()
            self.context.palettes.update(self.batches)

        return captions

    def _on_composition(self, segment: Segment):
        if self.current is not None:
            self._append_if_complete(self.current)
            self.current = None
        self.force_first = True

        caption = parse_composition(segment)
        logger.debug(
            "PCS #%d pts=%d state=%s palette=%d update=%s objects=%d",
            caption.composition_number, caption.start_ticks, caption.composition_state.name,
            caption.palette_id, caption.palette_update, len(caption.objects)
        )

        if caption.start_ticks > 0 and self.captions and self.captions[-1].end_ticks == 0:
            self.captions[-1].end_ticks = caption.start_ticks

        self.current = caption
        if caption.composition_state is CompositionState.EPOCH_START:
            self.batches.clear()
            self.context.clear()

    def _on_palette(self, segment: Segment):
        if self.current is None:
            return
        batch = parse_palette(segment)
        if batch is None:
            logger.debug("Empty palette at offset %d", segment.offset)
            return

        batches = self.batches.get(batch.palette_id)
        if batches is None:
            self.batches[batch.palette_id] = [batch]
            return
        if self.current.palette_update:
            # Palette updates replace the previous definition
            batches.pop()
        batches.append(batch)

    def _on_object(self, segment: Segment):
        if self.current is None:
            return
        fragment = parse_object(segment, self.force_first)
        self.force_first = False
        if self.current.palette_update:
            return

        if fragment.is_first:
            self.context.objects[fragment.object_id] = [fragment]
            return

        fragments = self.context.objects.get(fragment.object_id)
        if fragments is None:
            logger.debug("Dropping continuation of unknown object %d", fragment.object_id)
            return
        fragments.append(fragment)

    def _on_window(self, segment: Segment):
        if self.current is None:
            return
        for window in parse_windows(segment):
            logger.debug(
                "WDS window=%d x=%d y=%d width=%d height=%d",
                window.window_id, window.x, window.y, window.width, window.height
            )

    def _on_end(self, segment: Segment):
        self.force_first = True
        if self.current is not None:
            self._append_if_complete(self.current)
            self.current = None

    def _append_if_complete(self, caption: Caption):
        if self._complete(caption):
            self.captions.append(caption)
        else:
            logger.debug("Dropping incomplete caption #%d", caption.composition_number)

    def _complete(self, caption: Caption) -> bool:
        """
        Attach palette and object data to a caption.

        Captions without objects complete trivially. Palettes fall back to the
        carried context when this call has not read any.
        """
        if caption.composition_state is CompositionState.INVALID:
            return False
        if caption.is_empty:
            return True

        palettes = self.batches if self.batches else self.context.palettes
        batches = palettes.get(caption.palette_id)
        if batches is None:
            return False

        caption.palette_batches = list(batches)
        caption.bitmap_objects = []
        for obj in caption.objects:
            fragments = self.context.objects.get(obj.object_id)
            if fragments:
                caption.bitmap_objects.append(list(fragments))

        return bool(caption.bitmap_objects)
