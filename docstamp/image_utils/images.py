"""Utilities for compositing stamps onto document rasters.

The image data handling is done by
`Pillow <https://github.com/python-pillow/Pillow>`_.

.. note::
    Opacity is always expressed as a percentage in ``[0, 100]``, where `0`
    means that the stamp is invisible and `100` means that it is fully
    opaque. User interfaces that expose a "transparency" slider should
    convert its value using :func:`transparency_to_opacity`.

"""

from typing import Optional

from PIL import Image

from .blending import BlendMode
from .layout import PlacementResult
from .misc import StampingError, resolve_page_index

__all__ = [
    'InvalidRasterError', 'InvalidOpacityError',
    'opacity_to_alpha', 'transparency_to_opacity',
    'check_raster', 'resample_stamp', 'composite', 'load_page',
    'RESAMPLING_FILTER',
]


RESAMPLING_FILTER = Image.Resampling.BILINEAR
"""
Filter used to resize stamps. Resampling is deterministic for a given input.
"""


class InvalidRasterError(StampingError, ValueError):
    """Raised when a raster has no pixels."""
    pass


class InvalidOpacityError(StampingError, ValueError):
    """Raised when an opacity percentage is not in ``[0, 100]``."""
    pass


def opacity_to_alpha(opacity_percent: float) -> float:
    """
    Convert an opacity percentage to an alpha multiplier.

    :param opacity_percent:
        Opacity percentage in ``[0, 100]``.
    :return:
        A float between `0` and `1`.
    :raises InvalidOpacityError:
        if the percentage is out of range.
    """
    if not (0 <= opacity_percent <= 100):
        raise InvalidOpacityError(
            f"Opacity must be in [0, 100], not {opacity_percent}."
        )
    return opacity_percent / 100


def transparency_to_opacity(transparency_percent: float) -> float:
    """
    Convert a transparency percentage (`0` is fully opaque) to an opacity
    percentage (`0` is invisible).

    :param transparency_percent:
        Transparency percentage in ``[0, 100]``.
    :return:
        The corresponding opacity percentage.
    :raises InvalidOpacityError:
        if the percentage is out of range.
    """
    if not (0 <= transparency_percent <= 100):
        raise InvalidOpacityError(
            f"Transparency must be in [0, 100], not {transparency_percent}."
        )
    return 100 - transparency_percent


def check_raster(img: Image.Image, name: str = 'document'):
    """
    :raises InvalidRasterError: if the image has no pixels.
    """
    if img.width == 0 or img.height == 0:
        raise InvalidRasterError(
            f"The {name} raster is empty ({img.width}x{img.height})."
        )


def _has_alpha(img: Image.Image) -> bool:
    return 'A' in img.getbands() or 'transparency' in img.info


def resample_stamp(stamp: Image.Image, placement: PlacementResult) \
        -> Optional[Image.Image]:
    """
    Resize a stamp to the (rounded) size of a placement rectangle.

    :param stamp:
        The stamp raster.
    :param placement:
        The placement rectangle.
    :return:
        A new ``RGBA`` image, or ``None`` if the rectangle is less than
        half a pixel wide or high.
    :raises InvalidRasterError:
        if the stamp raster is empty.
    """
    check_raster(stamp, 'stamp')
    width = round(placement.width)
    height = round(placement.height)
    if width <= 0 or height <= 0:
        return None
    return stamp.convert('RGBA').resize((width, height), RESAMPLING_FILTER)


def composite(document: Image.Image, stamp: Image.Image,
              placement: PlacementResult, opacity_percent: float,
              blend_mode: BlendMode = BlendMode.NORMAL) -> Image.Image:
    """
    Composite a stamp onto a document raster.

    The stamp is resampled to the size of the placement rectangle, blended
    with the document according to the blend mode, and mixed over the
    document using the stamp's own alpha channel multiplied by the opacity.
    Stamp pixels that fall outside the document are dropped.

    :param document:
        The document raster. This image is not modified.
    :param stamp:
        The stamp raster.
    :param placement:
        Placement rectangle, in pixel coordinates with the origin in the
        top left corner of the document.
        Fractional coordinates are rounded to the nearest pixel.
    :param opacity_percent:
        Opacity percentage in ``[0, 100]``; `0` leaves the document
        unchanged.
    :param blend_mode:
        The blend mode.
    :return:
        A new image with the size of the document, in ``RGBA`` mode if the
        document has an alpha channel and ``RGB`` mode otherwise.
    :raises InvalidRasterError:
        if either raster is empty.
    :raises InvalidOpacityError:
        if the opacity is out of range.
    """
    check_raster(document, 'document')
    check_raster(stamp, 'stamp')
    alpha = opacity_to_alpha(opacity_percent)

    # convert() always returns a new image, even if the mode is unchanged
    result = document.convert('RGBA' if _has_alpha(document) else 'RGB')

    stamp_img = resample_stamp(stamp, placement)
    if stamp_img is None or alpha == 0:
        return result

    left, upper, _, _ = placement.pixel_box()
    # intersect the stamp rectangle with the document
    x0 = max(left, 0)
    y0 = max(upper, 0)
    x1 = min(left + stamp_img.width, result.width)
    y1 = min(upper + stamp_img.height, result.height)
    if x0 >= x1 or y0 >= y1:
        return result

    box = (x0, y0, x1, y1)
    source = stamp_img.crop((x0 - left, y0 - upper, x1 - left, y1 - upper))
    backdrop = result.crop(box)
    backdrop_rgb = backdrop.convert('RGB')

    blended = blend_mode.blend(backdrop_rgb, source.convert('RGB'))
    mask = source.getchannel('A')
    if alpha < 1:
        mask = mask.point(lambda a: round(a * alpha))
    mixed = Image.composite(blended, backdrop_rgb, mask)
    if result.mode == 'RGBA':
        # the document's own transparency is left as-is
        mixed.putalpha(backdrop.getchannel('A'))
    result.paste(mixed, box)
    return result


def load_page(img: Image.Image, page_number: int = 1) -> Image.Image:
    """
    Extract a single page from a (possibly multi-frame) document raster.

    :param img:
        A Pillow image, e.g. a multi-page TIFF file.
    :param page_number:
        Page number, starting at `1`. Numbers past the end of the document
        select the last page.
    :return:
        A copy of the selected frame. The image passed in is left positioned
        on that frame.
    :raises StampingError:
        if the page number is not positive.
    """
    page_ix = resolve_page_index(page_number, getattr(img, 'n_frames', 1))
    img.seek(page_ix)
    page = img.copy()
    check_raster(page, 'document')
    return page
