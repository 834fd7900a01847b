"""
Utilities for stamping documents.

Here 'stamping' refers to overlaying a small image (a seal, a signature, a
company logo) on top of a page of an existing document, and exporting the
result as an image or a PDF file.

The heavy lifting is done by the functions in
:mod:`docstamp.image_utils.layout` and :mod:`docstamp.image_utils.images`;
this module bundles their parameters into reusable styles, and wires them up
to file I/O.
"""

import logging
import os
from dataclasses import dataclass

from PIL import Image, ImageColor

from docstamp.image_utils.blending import BlendMode
from docstamp.image_utils.config_utils import (
    ConfigurableMixin,
    ConfigurationError,
    process_percentage,
)
from docstamp.image_utils.images import check_raster, composite, load_page
from docstamp.image_utils.layout import (
    DEFAULT_MARGIN,
    PAPER_SIZES,
    CanvasSpec,
    Dimensions,
    InnerScaling,
    PlacementMode,
    PlacementResult,
    StampPosition,
    compute_placement,
    fit_to_page,
)

__all__ = [
    'StampSpec', 'StampStyle', 'PdfExportSettings',
    'stamp_raster', 'pdf_placement', 'export_pdf', 'stamp_file',
    'DEFAULT_STAMP_STYLE',
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StampSpec:
    """
    A stamp image's size, together with the parameters that govern how it is
    rendered.
    """

    stamp_dimensions: Dimensions
    """
    The stamp's natural dimensions.
    """

    scale_percent: float
    """
    Scale factor, as a percentage in ``(0, 100]``.
    """

    opacity_percent: float
    """
    Opacity, as a percentage in ``[0, 100]``. `0` is invisible, `100` is
    fully opaque.
    """

    blend_mode: BlendMode = BlendMode.NORMAL
    """
    Blend mode used to combine the stamp with the document.
    """


@dataclass(frozen=True)
class StampStyle(ConfigurableMixin):
    """
    Reusable stamp appearance settings.

    All fields can be set from a configuration file; the keys are the field
    names with underscores replaced by hyphens. For example::

        placement: top-right
        scale-percent: 30
        opacity-percent: 80
        blend-mode: multiply
        margin: 20
    """

    placement: PlacementMode = PlacementMode(StampPosition.BOTTOM_RIGHT)
    """
    Where to put the stamp.
    """

    scale_percent: float = 100
    """
    Scale factor applied to the stamp image, as a percentage in ``(0, 100]``.
    """

    opacity_percent: float = 100
    """
    Opacity of the stamp, as a percentage in ``[0, 100]``.
    """

    blend_mode: BlendMode = BlendMode.NORMAL
    """
    Blend mode used to combine the stamp with the document.
    """

    margin: float = DEFAULT_MARGIN
    """
    Distance between an anchored stamp and the edges of the page.
    """

    @classmethod
    def process_entries(cls, config_dict):
        """
        This implementation of :meth:`process_entries` validates the
        percentages and the margin, and processes the :attr:`blend_mode`
        configuration value.
        """
        super().process_entries(config_dict)
        try:
            config_dict['scale_percent'] = process_percentage(
                config_dict['scale_percent'], 'scale-percent',
                allow_zero=False
            )
        except KeyError:
            pass
        try:
            config_dict['opacity_percent'] = process_percentage(
                config_dict['opacity_percent'], 'opacity-percent'
            )
        except KeyError:
            pass

        blend_mode = config_dict.get('blend_mode', None)
        if isinstance(blend_mode, str):
            config_dict['blend_mode'] = BlendMode.from_config(blend_mode)

        margin = config_dict.get('margin', None)
        if margin is not None:
            if isinstance(margin, bool) or \
                    not isinstance(margin, (int, float)) or margin < 0:
                raise ConfigurationError(
                    f"'margin' must be a non-negative number, "
                    f"not {repr(margin)}."
                )

    def stamp_spec(self, stamp_dimensions: Dimensions) -> StampSpec:
        """
        Apply this style to a concrete stamp.

        :param stamp_dimensions:
            The stamp's natural dimensions.
        :return:
            A :class:`.StampSpec`.
        """
        return StampSpec(
            stamp_dimensions=stamp_dimensions,
            scale_percent=self.scale_percent,
            opacity_percent=self.opacity_percent,
            blend_mode=self.blend_mode,
        )

    def place(self, canvas: CanvasSpec, stamp_dimensions: Dimensions) \
            -> PlacementResult:
        return compute_placement(
            canvas, stamp_dimensions, self.placement, self.scale_percent
        )


DEFAULT_STAMP_STYLE = StampStyle()
"""
Default stamp style: full size, fully opaque, in the bottom right corner.
"""


def _is_colour(value) -> bool:
    if not isinstance(value, str):
        return False
    try:
        ImageColor.getrgb(value)
    except ValueError:
        return False
    return True


@dataclass(frozen=True)
class PdfExportSettings(ConfigurableMixin):
    """
    Settings that govern how stamped rasters are written to PDF files.
    """

    page_size: Dimensions = PAPER_SIZES['a4']
    """
    Page size in points. In configuration files, this can be a paper size
    name (e.g. ``a4`` or ``letter``) or a ``[width, height]`` pair.
    """

    dpi: int = 150
    """
    Resolution at which the raster is embedded.
    """

    scaling: InnerScaling = InnerScaling.STRETCH_TO_FIT
    """
    How to scale the raster to the page.
    """

    background: str = 'white'
    """
    Page colour around the raster, in any notation understood by Pillow.
    """

    @classmethod
    def process_entries(cls, config_dict):
        super().process_entries(config_dict)
        scaling = config_dict.get('scaling', None)
        if isinstance(scaling, str):
            config_dict['scaling'] = InnerScaling.from_config(scaling)
        dpi = config_dict.get('dpi', None)
        if dpi is not None and (not isinstance(dpi, int) or dpi <= 0):
            raise ConfigurationError(
                f"'dpi' must be a positive integer, not {repr(dpi)}."
            )
        background = config_dict.get('background', None)
        if background is not None and not _is_colour(background):
            raise ConfigurationError(
                f"'background' must be a colour name or code, "
                f"not {repr(background)}."
            )


def stamp_raster(document: Image.Image, stamp: Image.Image,
                 style: StampStyle = DEFAULT_STAMP_STYLE) -> Image.Image:
    """
    Put a stamp on a document raster.

    :param document:
        The document raster. This image is not modified.
    :param stamp:
        The stamp raster.
    :param style:
        The stamp style to apply. Custom placements are interpreted as pixel
        coordinates relative to the top left corner of the document.
    :return:
        A new image.
    """
    check_raster(document, 'document')
    check_raster(stamp, 'stamp')
    canvas = CanvasSpec.raster(
        document.width, document.height, margin=style.margin
    )
    spec = style.stamp_spec(Dimensions(stamp.width, stamp.height))
    placement = style.place(canvas, spec.stamp_dimensions)
    logger.debug(
        f"Placing {stamp.width}x{stamp.height} stamp on "
        f"{document.width}x{document.height} document at {placement}"
    )
    return composite(
        document, stamp, placement, spec.opacity_percent, spec.blend_mode
    )


def pdf_placement(page: Dimensions, stamp_dimensions: Dimensions,
                  style: StampStyle = DEFAULT_STAMP_STYLE) -> PlacementResult:
    """
    Work out where a stamp should be drawn on a PDF page.

    :param page:
        The page's dimensions (usually its media box), in user units.
    :param stamp_dimensions:
        The stamp's natural dimensions, in user units.
    :param style:
        The stamp style to apply. Custom placements are interpreted as
        coordinates relative to the page's lower left corner.
    :return:
        A :class:`.PlacementResult` describing the stamp's lower left
        corner and size, in the page's default coordinate system.
    """
    canvas = CanvasSpec(page, origin_top_left=False, margin=style.margin)
    return style.place(canvas, stamp_dimensions)


def export_pdf(raster: Image.Image, output,
               settings: PdfExportSettings = PdfExportSettings()):
    """
    Write a raster to a single-page PDF file.

    :param raster:
        The raster to write.
    :param output:
        A file name or a writable binary stream.
    :param settings:
        The export settings to use.
    """
    check_raster(raster, 'output')
    dpi = settings.dpi
    page_px = Dimensions(
        max(round(settings.page_size.width * dpi / 72), 1),
        max(round(settings.page_size.height * dpi / 72), 1),
    )
    placement = fit_to_page(
        Dimensions(raster.width, raster.height), page_px, settings.scaling
    )
    left, upper, right, lower = placement.pixel_box()
    size = (max(right - left, 1), max(lower - upper, 1))
    logger.debug(
        f"Embedding {raster.width}x{raster.height} raster as {size} on a "
        f"{page_px.width}x{page_px.height} page at {dpi} dpi"
    )
    content = raster.convert('RGBA').resize(size, Image.Resampling.LANCZOS)
    page = Image.new(
        'RGB', (page_px.width, page_px.height), settings.background
    )
    page.paste(content, (left, upper), content)
    page.save(output, format='PDF', resolution=dpi)


def _save_raster(raster: Image.Image, output_name: str):
    ext = os.path.splitext(output_name)[1].lower()
    if raster.mode == 'RGBA' and ext in ('.jpg', '.jpeg'):
        # JPEG has no alpha channel, so flatten onto white
        flattened = Image.new('RGB', raster.size, 'white')
        flattened.paste(raster, (0, 0), raster)
        raster = flattened
    raster.save(output_name)


def stamp_file(input_name: str, stamp_name: str, output_name: str,
               style: StampStyle = DEFAULT_STAMP_STYLE, page_number: int = 1,
               export_settings: PdfExportSettings = None):
    """
    Add a stamp to a document file.

    :param input_name:
        Path to the input document. This can be any raster format that
        Pillow can read, including multi-page TIFF files.
    :param stamp_name:
        Path to the stamp image.
    :param output_name:
        Path to the output file. If the name ends in ``.pdf``, the result is
        exported as a PDF file, otherwise the image format is inferred from
        the extension.
    :param style:
        Stamp style to use.
    :param page_number:
        Page to stamp, starting at `1`. Numbers past the end of the
        document select the last page.
    :param export_settings:
        PDF export settings. Ignored for image output.
    """
    with Image.open(input_name) as doc_img:
        document = load_page(doc_img, page_number)
    with Image.open(stamp_name) as stamp_img:
        stamp_img.load()
        stamp = stamp_img.copy()

    logger.info(f"Stamping page {page_number} of {input_name}")
    result = stamp_raster(document, stamp, style)

    if output_name.lower().endswith('.pdf'):
        export_pdf(result, output_name, export_settings or PdfExportSettings())
    else:
        _save_raster(result, output_name)
    logger.info(f"Wrote stamped document to {output_name}")
