# tests/conftest.py
import pytest

from pgs_core.models import (
    Caption, CompositionObject, CompositionState, ObjectFragment, PaletteBatch, PaletteEntry,
)


@pytest.fixture
def make_caption():
    """
    Build a completed caption directly.

    Defaults to one 1x1 object whose RLE data is a single slot-1 pixel.
    """
    def _make(start, end, data=b'\x01', width=1920, height=1080,
              batches=None, object_size=(1, 1), number=0):
        if batches is None:
            batches = [PaletteBatch(0, 0, [PaletteEntry(1, 235, 128, 128, 255)])]
        obj_w, obj_h = object_size
        return Caption(
            composition_number=number,
            composition_state=CompositionState.EPOCH_START,
            start_ticks=start,
            end_ticks=end,
            width=width,
            height=height,
            objects=[CompositionObject(1, 0, False, 100, 900)],
            palette_batches=list(batches),
            bitmap_objects=[[ObjectFragment(1, 0, True, True, data, obj_w, obj_h)]],
        )
    return _make
