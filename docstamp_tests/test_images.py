from io import BytesIO

import pytest
from PIL import Image

from docstamp.image_utils.blending import BlendMode
from docstamp.image_utils.config_utils import ConfigurationError
from docstamp.image_utils.images import (
    InvalidOpacityError,
    InvalidRasterError,
    composite,
    load_page,
    opacity_to_alpha,
    resample_stamp,
    transparency_to_opacity,
)
from docstamp.image_utils.layout import (
    CanvasSpec,
    Dimensions,
    PlacementMode,
    PlacementResult,
    StampPosition,
    compute_placement,
)
from docstamp.image_utils.misc import StampingError, resolve_page_index

from .samples import *


def _bottom_right(document, stamp, scale=30):
    return compute_placement(
        CanvasSpec.raster(document.width, document.height),
        Dimensions(stamp.width, stamp.height),
        PlacementMode(StampPosition.BOTTOM_RIGHT), scale
    )


def test_full_opacity_reproduces_stamp():
    document = document_raster()
    stamp = gradient_stamp()
    placement = _bottom_right(document, stamp)
    assert placement == PlacementResult(x=690, y=920, width=60, height=30)

    result = composite(document, stamp, placement, 100, BlendMode.NORMAL)

    expected_stamp = resample_stamp(stamp, placement).convert('RGB')
    expected = document.copy()
    expected.paste(expected_stamp, (690, 920))
    assert result.size == document.size
    assert result.crop((690, 920, 750, 950)).tobytes() \
        == expected_stamp.tobytes()
    assert result.tobytes() == expected.tobytes()


def test_zero_opacity_is_identity():
    document = document_raster()
    stamp = gradient_stamp()
    placement = _bottom_right(document, stamp, scale=100)
    for mode in BlendMode:
        result = composite(document, stamp, placement, 0, mode)
        assert result.mode == document.mode
        assert result.tobytes() == document.tobytes()


def test_document_not_mutated():
    document = document_raster()
    before = document.tobytes()
    stamp = solid_stamp()
    result = composite(
        document, stamp, _bottom_right(document, stamp), 100
    )
    assert result is not document
    assert document.tobytes() == before
    assert result.tobytes() != before


def test_no_op_still_copies():
    document = document_raster()
    stamp = solid_stamp()
    result = composite(
        document, stamp, _bottom_right(document, stamp), 0
    )
    assert result is not document


def test_out_of_bounds_pixels_skipped():
    document = document_raster(100, 100)
    stamp = solid_stamp(150, 150)
    placement = compute_placement(
        CanvasSpec.raster(100, 100), Dimensions(150, 150),
        PlacementMode(StampPosition.CENTER), 100
    )
    assert placement == PlacementResult(x=-25, y=-25, width=150, height=150)
    result = composite(document, stamp, placement, 100)
    assert result.size == (100, 100)
    # the stamp covers the whole document
    assert result.getcolors() == [(100 * 100, STAMP_COLOUR)]


def test_partially_off_canvas():
    document = Image.new('RGB', (100, 100), (255, 255, 255))
    stamp = solid_stamp(40, 40, colour=(0, 0, 0))
    placement = PlacementResult(x=80, y=-20, width=40, height=40)
    result = composite(document, stamp, placement, 100)
    assert result.getpixel((85, 5)) == (0, 0, 0)
    assert result.getpixel((99, 19)) == (0, 0, 0)
    assert result.getpixel((79, 5)) == (255, 255, 255)
    assert result.getpixel((85, 20)) == (255, 255, 255)


@pytest.mark.parametrize('placement', [
    PlacementResult(x=-500, y=10, width=100, height=100),
    PlacementResult(x=10, y=2000, width=100, height=100),
    PlacementResult(x=10, y=10, width=0.2, height=100),
])
def test_nothing_to_draw(placement):
    document = document_raster()
    result = composite(document, solid_stamp(), placement, 100)
    assert result.tobytes() == document.tobytes()


def test_deterministic():
    document = document_raster()
    stamp = gradient_stamp(173, 91)
    placement = PlacementResult(x=101.4, y=33.6, width=77.7, height=41.2)
    first = composite(document, stamp, placement, 65, BlendMode.MULTIPLY)
    second = composite(document, stamp, placement, 65, BlendMode.MULTIPLY)
    assert first.tobytes() == second.tobytes()


def test_fractional_placement_rounded():
    document = Image.new('RGB', (50, 50), (255, 255, 255))
    stamp = solid_stamp(10, 10, colour=(0, 0, 0))
    placement = PlacementResult(x=10.6, y=4.4, width=9.6, height=10.4)
    result = composite(document, stamp, placement, 100)
    bbox = result.convert('L').point(lambda v: 255 - v).getbbox()
    assert bbox == (11, 4, 21, 14)


@pytest.mark.parametrize('mode,backdrop,source,expected', [
    (BlendMode.NORMAL, (10, 20, 30), (200, 20, 40), (200, 20, 40)),
    (BlendMode.MULTIPLY, (255, 0, 255), (200, 20, 40), (200, 0, 40)),
    (BlendMode.SCREEN, (0, 255, 0), (200, 20, 40), (200, 255, 40)),
    (BlendMode.OVERLAY, (0, 255, 0), (200, 20, 40), (0, 255, 0)),
    (BlendMode.DARKEN, (100, 200, 50), (150, 100, 50), (100, 100, 50)),
    (BlendMode.LIGHTEN, (100, 200, 50), (150, 100, 50), (150, 200, 50)),
])
def test_blend_modes(mode, backdrop, source, expected):
    document = Image.new('RGB', (20, 20), backdrop)
    stamp = solid_stamp(10, 10, colour=source)
    placement = PlacementResult(x=5, y=5, width=10, height=10)
    result = composite(document, stamp, placement, 100, mode)
    assert result.getpixel((10, 10)) == expected
    assert result.getpixel((2, 2)) == backdrop


def test_half_opacity():
    document = Image.new('RGB', (20, 20), (255, 255, 255))
    stamp = solid_stamp(20, 20, colour=(0, 0, 0))
    placement = PlacementResult(x=0, y=0, width=20, height=20)
    result = composite(document, stamp, placement, 50)
    r, g, b = result.getpixel((10, 10))
    assert r == g == b
    assert abs(r - 127) <= 1


def test_stamp_alpha_respected():
    document = Image.new('RGB', (200, 200), (255, 255, 255))
    stamp = ringed_stamp(120)
    placement = PlacementResult(x=40, y=40, width=120, height=120)
    result = composite(document, stamp, placement, 100)
    # centre of the ring is transparent
    assert result.getpixel((100, 100)) == (255, 255, 255)
    # the ring itself is not
    assert result.getpixel((100, 40 + 8)) == STAMP_COLOUR


def test_stamp_without_alpha():
    document = document_raster(50, 50)
    stamp = Image.new('RGB', (10, 10), (1, 2, 3))
    placement = PlacementResult(x=0, y=0, width=10, height=10)
    result = composite(document, stamp, placement, 100)
    assert result.getpixel((5, 5)) == (1, 2, 3)


def test_rgba_document_keeps_alpha():
    document = Image.new('RGBA', (30, 30), (255, 255, 255, 100))
    stamp = solid_stamp(10, 10)
    placement = PlacementResult(x=10, y=10, width=10, height=10)
    result = composite(document, stamp, placement, 100)
    assert result.mode == 'RGBA'
    assert result.getpixel((15, 15)) == STAMP_COLOUR + (100,)
    assert result.getchannel('A').getextrema() == (100, 100)


def test_grayscale_document():
    document = document_raster(30, 30, mode='L')
    stamp = solid_stamp(10, 10)
    placement = PlacementResult(x=10, y=10, width=10, height=10)
    result = composite(document, stamp, placement, 100)
    assert result.mode == 'RGB'
    assert result.size == (30, 30)
    assert result.getpixel((15, 15)) == STAMP_COLOUR


@pytest.mark.parametrize('doc_size,stamp_size', [
    ((0, 10), (10, 10)),
    ((10, 0), (10, 10)),
    ((10, 10), (0, 5)),
    ((10, 10), (5, 0)),
])
def test_empty_raster(doc_size, stamp_size):
    document = Image.new('RGB', doc_size)
    stamp = Image.new('RGBA', stamp_size)
    placement = PlacementResult(x=0, y=0, width=5, height=5)
    with pytest.raises(InvalidRasterError):
        composite(document, stamp, placement, 100)


@pytest.mark.parametrize('opacity', [-1, 100.5, float('nan')])
def test_invalid_opacity(opacity):
    document = document_raster(30, 30)
    placement = PlacementResult(x=0, y=0, width=5, height=5)
    with pytest.raises(InvalidOpacityError):
        composite(document, solid_stamp(), placement, opacity)


def test_opacity_conventions():
    assert opacity_to_alpha(0) == 0
    assert opacity_to_alpha(100) == 1
    assert opacity_to_alpha(25) == 0.25
    assert transparency_to_opacity(0) == 100
    assert transparency_to_opacity(30) == 70
    with pytest.raises(InvalidOpacityError):
        transparency_to_opacity(101)


def test_resample_stamp():
    stamp = gradient_stamp(200, 100)
    resized = resample_stamp(
        stamp, PlacementResult(x=0, y=0, width=59.6, height=30.4)
    )
    assert resized.size == (60, 30)
    assert resized.mode == 'RGBA'
    assert resample_stamp(
        stamp, PlacementResult(x=0, y=0, width=0.4, height=30)
    ) is None


@pytest.mark.parametrize('config_str,expected', [
    ('normal', BlendMode.NORMAL),
    ('Multiply', BlendMode.MULTIPLY),
    ('SCREEN', BlendMode.SCREEN),
    ('overlay', BlendMode.OVERLAY),
    ('darken', BlendMode.DARKEN),
    ('lighten', BlendMode.LIGHTEN),
])
def test_blend_mode_from_config(config_str, expected):
    assert BlendMode.from_config(config_str) == expected


def test_blend_mode_bad_config():
    with pytest.raises(ConfigurationError, match='multiply'):
        BlendMode.from_config('dissolve')


def _multipage_tiff():
    colours = [(255, 0, 0), (0, 255, 0), (0, 0, 255)]
    frames = [Image.new('RGB', (40, 60), c) for c in colours]
    out = BytesIO()
    frames[0].save(out, format='TIFF', save_all=True,
                   append_images=frames[1:])
    out.seek(0)
    return out


@pytest.mark.parametrize('page_number,expected', [
    (1, (255, 0, 0)), (2, (0, 255, 0)), (3, (0, 0, 255)), (7, (0, 0, 255)),
])
def test_load_page(page_number, expected):
    with Image.open(_multipage_tiff()) as img:
        page = load_page(img, page_number)
    assert page.size == (40, 60)
    assert page.convert('RGB').getpixel((0, 0)) == expected


def test_load_page_single_frame():
    img = document_raster(30, 30)
    page = load_page(img, 4)
    assert page is not img
    assert page.tobytes() == img.tobytes()


def test_load_page_rewinds():
    with Image.open(_multipage_tiff()) as img:
        second = load_page(img, 2)
        assert img.tell() == 1
        first = load_page(img, 1)
        assert img.tell() == 0
    assert second.convert('RGB').getpixel((0, 0)) == (0, 255, 0)
    assert first.convert('RGB').getpixel((0, 0)) == (255, 0, 0)


def test_load_page_invalid():
    with Image.open(_multipage_tiff()) as img:
        with pytest.raises(StampingError):
            load_page(img, 0)


@pytest.mark.parametrize('page_number,page_count,expected', [
    (1, 1, 0), (1, 5, 0), (5, 5, 4), (6, 5, 4), (100, 3, 2),
])
def test_resolve_page_index(page_number, page_count, expected):
    assert resolve_page_index(page_number, page_count) == expected


@pytest.mark.parametrize('page_number,page_count', [(0, 5), (-1, 5), (1, 0)])
def test_resolve_page_index_errors(page_number, page_count):
    with pytest.raises(StampingError):
        resolve_page_index(page_number, page_count)
