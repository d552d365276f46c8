# tests/test_image.py
import numpy as np

from pgs_core.image import (
    bitmaps_equal, decode_rle, non_transparent_height, non_transparent_width,
    render_caption, to_pil,
)
from pgs_core.models import (
    Caption, CompositionObject, CompositionState, ObjectFragment, PaletteBatch, PaletteEntry,
)
from pgs_core.palette import Palette

FF = 0xFF


def _palette(visible_slots, slot0_visible=True):
    entries = [PaletteEntry(i, 235, 128, 128, 255) for i in visible_slots]
    if slot0_visible:
        entries.append(PaletteEntry(0, 16, 128, 128, 255))
    return Palette.from_batches([PaletteBatch(0, 0, entries)])


def test_four_run_forms_in_one_scanline():
    data = bytes([
        0x00, 0x03,               # 3 x slot 0
        0x00, 0x40, 0x46,         # 70 x slot 0
        0x00, 0x85, 0x02,         # 5 x slot 2
        0x00, 0xC0, 0x64, 0x03,   # 100 x slot 3
        0x04,                     # 1 x slot 4
    ])

    pixels = decode_rle(data, 179, 1, _palette([2, 3, 4]))

    expected = [0] * 73 + [2] * 5 + [3] * 100 + [4]
    assert pixels.shape == (1, 179)
    assert pixels[0].tolist() == expected


def test_transparent_slot_runs_leave_background():
    data = bytes([0x00, 0x03, 0x01, 0x00, 0x82, 0x00])

    pixels = decode_rle(data, 6, 1, _palette([1], slot0_visible=False))

    assert pixels[0].tolist() == [FF, FF, FF, 1, FF, FF]


def test_long_run_crosses_256():
    data = bytes([0x00, 0xC1, 0x2C, 0x01])  # 300 x slot 1

    pixels = decode_rle(data, 300, 1, _palette([1]))

    assert (pixels == 1).all()


def test_end_of_line_after_full_row_adds_no_blank_row():
    data = bytes([0x00, 0x84, 0x01, 0x00, 0x00, 0x00, 0x84, 0x02, 0x00, 0x00])

    pixels = decode_rle(data, 4, 2, _palette([1, 2]))

    assert pixels.tolist() == [[1, 1, 1, 1], [2, 2, 2, 2]]


def test_end_of_line_mid_row_pads_to_next_row():
    data = bytes([0x01, 0x00, 0x00, 0x02, 0x02, 0x00, 0x00])

    pixels = decode_rle(data, 4, 2, _palette([1, 2]))

    assert pixels.tolist() == [[1, FF, FF, FF], [2, 2, FF, FF]]


def test_end_of_line_at_row_start_is_blank_row():
    data = bytes([0x00, 0x00, 0x01, 0x00, 0x00])

    pixels = decode_rle(data, 2, 2, _palette([1]))

    assert pixels.tolist() == [[FF, FF], [1, FF]]


def test_runs_past_bitmap_end_are_clipped():
    pixels = decode_rle(bytes([0x00, 0x85, 0x01]), 2, 1, _palette([1]))

    assert pixels.tolist() == [[1, 1]]


def test_trailing_zero_byte_is_slot_zero_pixel():
    pixels = decode_rle(bytes([0x01, 0x00]), 2, 1, _palette([1]))

    assert pixels.tolist() == [[1, 0]]


def test_truncated_run_code_stops_decoding():
    pixels = decode_rle(bytes([0x01, 0x00, 0xC0]), 3, 1, _palette([1]))

    assert pixels.tolist() == [[1, FF, FF]]


def _caption(objects, fragments, entries=None):
    if entries is None:
        entries = [PaletteEntry(1, 235, 128, 128, 255), PaletteEntry(2, 16, 128, 128, 255)]
    return Caption(
        composition_number=0,
        composition_state=CompositionState.EPOCH_START,
        objects=objects,
        palette_batches=[PaletteBatch(0, 0, entries)],
        bitmap_objects=fragments,
    )


def test_render_single_object():
    caption = _caption(
        [CompositionObject(1, 0, False, 50, 60)],
        [[ObjectFragment(1, 0, True, True, bytes([0x00, 0x82, 0x01]), 2, 1)]],
    )

    rgba = render_caption(caption)

    assert rgba.shape == (1, 2, 4)
    assert rgba[0, 0].tolist() == [235, 235, 235, 255]


def test_render_multiple_objects_on_union_canvas():
    caption = _caption(
        [CompositionObject(1, 0, False, 10, 10), CompositionObject(2, 0, False, 11, 12)],
        [
            [ObjectFragment(1, 0, True, True, bytes([0x00, 0x82, 0x01]), 2, 1)],
            [ObjectFragment(2, 0, True, True, bytes([0x00, 0x82, 0x02]), 2, 1)],
        ],
    )

    rgba = render_caption(caption)

    assert rgba.shape == (3, 3, 4)
    alpha = rgba[..., 3]
    assert alpha.tolist() == [[255, 255, 0], [0, 0, 0], [0, 255, 255]]
    assert rgba[2, 1, :3].tolist() == [16, 16, 16]


def test_later_object_paints_over_earlier():
    caption = _caption(
        [CompositionObject(1, 0, False, 0, 0), CompositionObject(2, 0, False, 1, 0)],
        [
            [ObjectFragment(1, 0, True, True, bytes([0x00, 0x82, 0x01]), 2, 1)],
            [ObjectFragment(2, 0, True, True, bytes([0x00, 0x82, 0x02]), 2, 1)],
        ],
    )

    rgba = render_caption(caption)

    assert rgba[0, :, 0].tolist() == [235, 16, 16]


def test_object_without_fragments_is_skipped():
    caption = _caption(
        [CompositionObject(1, 0, False, 0, 0), CompositionObject(2, 0, False, 500, 500)],
        [[ObjectFragment(2, 0, True, True, b'\x01', 1, 1)]],
    )

    rgba = render_caption(caption)

    assert rgba.shape == (1, 1, 4)
    assert rgba[0, 0, 3] == 255


def test_render_without_bitmaps_is_single_transparent_pixel():
    rgba = render_caption(_caption([CompositionObject(1, 0, False, 0, 0)], []))

    assert rgba.shape == (1, 1, 4)
    assert not rgba.any()


def test_non_transparent_extent():
    rgba = np.zeros((10, 20, 4), dtype=np.uint8)
    rgba[2, 5, 3] = 255
    rgba[6, 12, 3] = 10

    assert non_transparent_height(rgba) == 5
    assert non_transparent_width(rgba) == 8
    assert non_transparent_height(np.zeros((4, 4, 4), dtype=np.uint8)) == 0


def test_bitmaps_equal():
    a = np.zeros((2, 2, 4), dtype=np.uint8)
    b = a.copy()
    assert bitmaps_equal(a, b)
    b[1, 1, 3] = 1
    assert not bitmaps_equal(a, b)
    assert not bitmaps_equal(a, np.zeros((2, 3, 4), dtype=np.uint8))


def test_to_pil_rgba_image():
    image = to_pil(np.zeros((3, 5, 4), dtype=np.uint8))

    assert image.mode == 'RGBA'
    assert image.size == (5, 3)


def test_caption_to_image():
    caption = _caption(
        [CompositionObject(1, 0, False, 0, 0)],
        [[ObjectFragment(1, 0, True, True, b'\x01\x01', 2, 1)]],
    )

    image = caption.to_image()

    assert image.size == (2, 1)
    assert image.getpixel((1, 0)) == (235, 235, 235, 255)
