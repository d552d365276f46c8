# tests/test_decoder.py
import pytest

from pgs_core import decode_file, decode_stream
from pgs_core.config import DecodeOptions
from pgs_core.errors import SupFormatError, UnsupportedInputError
from pgs_core.palette import ycbcr_to_rgb
from tests.builders import (
    END, NORMAL, ODS, PCS, PDS, RED, ods, pcs, pds, red_pixel_stream, sup_segment,
)


def test_single_red_pixel_caption():
    captions = decode_stream(red_pixel_stream(start=90000, clear=180000))

    assert len(captions) == 1
    caption = captions[0]
    assert caption.start_ticks == 90000
    assert caption.end_ticks == 180000
    assert caption.position == (100, 900)
    assert (caption.width, caption.height) == (1920, 1080)

    rgba = caption.render_bitmap()
    assert rgba.shape == (1, 1, 4)
    assert rgba[0, 0].tolist() == list(ycbcr_to_rgb(*RED)) + [255]


def test_trailing_caption_gets_default_duration():
    data = red_pixel_stream()
    trailing = data[:data.rfind(b'PG')]

    captions = decode_stream(trailing)

    assert captions[0].end_ticks == 90000 + 3000 * 90


def test_trailing_caption_duration_is_configurable():
    data = red_pixel_stream()
    trailing = data[:data.rfind(b'PG')]

    captions = decode_stream(trailing, DecodeOptions(default_duration_ms=1000))

    assert captions[0].end_ms == 1000 + 1000


def test_empty_input_decodes_to_nothing():
    assert decode_stream(b'') == []


def test_garbage_input_raises():
    with pytest.raises(SupFormatError):
        decode_stream(b'\x00' * 64)


def test_input_shorter_than_a_header_raises():
    with pytest.raises(SupFormatError):
        decode_stream(b'PG\x00\x00\x00')


def test_truncated_stream_keeps_completed_captions():
    data = red_pixel_stream() + sup_segment(PDS, bytes(40))[:-10]

    captions = decode_stream(data)

    assert len(captions) == 1
    assert captions[0].end_ticks == 180000


def test_forced_caption():
    y, cr, cb = RED
    data = b''.join([
        sup_segment(PCS, pcs(objects=[(1, 0, 0, True)]), pts=900),
        sup_segment(PDS, pds([(1, y, cr, cb, 255)]), pts=900),
        sup_segment(ODS, ods(1, b'\x01'), pts=900),
        sup_segment(END, pts=900),
        sup_segment(PCS, pcs(number=1), pts=9000),
    ])

    captions = decode_stream(data)

    assert captions[0].is_forced


def test_multi_fragment_object_renders_whole_bitmap():
    data = b''.join([
        sup_segment(PCS, pcs(objects=[(1, 0, 0)]), pts=900),
        sup_segment(PDS, pds([(1, 235, 128, 128, 255)]), pts=900),
        sup_segment(ODS, ods(1, b'\x00\x83\x01\x00\x00', width=3, height=2, last=False), pts=900),
        sup_segment(ODS, ods(1, b'\x01\x01\x01\x00\x00', first=False), pts=900),
        sup_segment(END, pts=900),
    ])

    captions = decode_stream(data)

    assert len(captions[0].bitmap_objects[0]) == 1
    assert captions[0].render_bitmap()[..., 3].tolist() == [[255] * 3, [255] * 3]


def test_repeated_captions_are_merged():
    data = b''.join([
        red_pixel_stream(start=90000, clear=99000)[:-len(sup_segment(PCS, pcs(number=2)))],
        sup_segment(PCS, pcs(number=2, state=NORMAL, objects=[(1, 100, 900)]), pts=99000),
        sup_segment(PCS, pcs(number=3), pts=108000),
    ])

    captions = decode_stream(data)

    assert len(captions) == 1
    assert (captions[0].start_ticks, captions[0].end_ticks) == (90000, 108000)


def test_decode_file(tmp_path):
    path = tmp_path / 'subs.SUP'
    path.write_bytes(red_pixel_stream())

    captions = decode_file(path)

    assert len(captions) == 1


def test_decode_file_missing(tmp_path):
    with pytest.raises(FileNotFoundError):
        decode_file(tmp_path / 'missing.sup')


def test_decode_file_rejects_other_formats(tmp_path):
    path = tmp_path / 'subs.idx'
    path.write_bytes(b'# VobSub index file')

    with pytest.raises(UnsupportedInputError):
        decode_file(path)
