# pgs_core/merge.py
# -*- coding: utf-8 -*-
"""
Redundant caption merging.

Some encoders repeat one caption as several back-to-back display sets with
identical bitmaps. Adjacent repeats are collapsed into a single caption
covering the whole span.
"""
from __future__ import annotations
import logging
from typing import List, Optional, Sequence

from .config import DecodeOptions, resolve_options
from .image import bitmaps_equal, non_transparent_height, non_transparent_width
from .models import Caption

logger = logging.getLogger(__name__)


def _same_bitmaps(earlier: Caption, later: Caption) -> bool:
    if not later.bitmap_objects or len(earlier.bitmap_objects) != len(later.bitmap_objects):
        return False
    for first, second in zip(earlier.bitmap_objects, later.bitmap_objects):
        if len(first) != len(second):
            return False
        if any(a.data != b.data for a, b in zip(first, second)):
            return False
    return True


def is_repeat(earlier: Caption, later: Caption, gap_ticks: int = 10) -> bool:
    """Check whether later directly continues earlier with the same bitmap."""
    return (
        abs(earlier.end_ticks - later.start_ticks) < gap_ticks
        and earlier.width == later.width
        and earlier.height == later.height
        and _same_bitmaps(earlier, later)
    )


def find_repeat_groups(captions: Sequence[Caption], gap_ticks: int = 10) -> List[List[int]]:
    """
    Scan adjacent pairs from the end of the list backward.

    Returns:
        Groups of caption indices, each sorted descending. A pair that does
        not repeat closes the current group.
    """
    groups: List[List[int]] = []
    current: List[int] = []
    for index in range(len(captions) - 1, 0, -1):
        if is_repeat(captions[index - 1], captions[index], gap_ticks):
            if not current:
                current.append(index)
            current.append(index - 1)
        elif current:
            groups.append(current)
            current = []
    if current:
        groups.append(current)
    return groups


def qualifies_for_merge(
    members: Sequence[int],
    captions: Sequence[Caption],
    group_count: int,
    options: DecodeOptions
) -> bool:
    """
    Decide whether a group of repeats is collapsed.

    Larger groups are only trusted when the stream has several of them.
    A pair is merged in a stream with few groups when either caption is long,
    carries several palette updates, renders large, or both render alike.
    """
    if options.force_merge_all:
        return True
    if len(members) != 2:
        return group_count >= options.merge_min_groups
    if group_count >= options.merge_min_groups:
        return False

    later = captions[members[0]]
    earlier = captions[members[1]]
    if (later.duration_ms >= options.merge_min_duration_ms
            or earlier.duration_ms >= options.merge_min_duration_ms):
        return True
    if (len(later.palette_batches) > options.merge_max_palette_batches
            or len(earlier.palette_batches) > options.merge_max_palette_batches):
        return True

    bitmap_later = later.render_bitmap(options.color_matrix)
    bitmap_earlier = earlier.render_bitmap(options.color_matrix)
    if (non_transparent_height(bitmap_later) > options.merge_max_height
            or non_transparent_width(bitmap_later) > options.merge_max_width):
        return True

    return bitmaps_equal(bitmap_later, bitmap_earlier)


def merge_redundant_captions(
    captions: List[Caption],
    options: Optional[DecodeOptions] = None
) -> List[Caption]:
    """
    Collapse groups of repeated captions in place.

    The middle member of a qualifying group takes the group's full time span;
    the other members are removed.

    Returns:
        The same list, for chaining
    """
    options = resolve_options(options)
    if options.skip_merge and not options.force_merge_all:
        return captions

    groups = find_repeat_groups(captions, options.merge_gap_ticks)
    # Captions collapsed by an earlier pass still count as groups
    group_count = len(groups) + sum(1 for caption in captions if caption.merged)
    removed = 0
    merged_groups = 0
    # Groups come from the end of the list, so removals never shift pending indices
    for members in groups:
        if not qualifies_for_merge(members, captions, group_count, options):
            continue

        representative = members[round(len(members) / 2)]
        captions[representative].start_ticks = captions[members[-1]].start_ticks
        captions[representative].end_ticks = captions[members[0]].end_ticks
        captions[representative].merged = True
        for index in members:
            if index != representative:
                del captions[index]
                removed += 1
        merged_groups += 1

    if removed:
        logger.info("Merged %d redundant captions in %d groups", removed, merged_groups)
    return captions
