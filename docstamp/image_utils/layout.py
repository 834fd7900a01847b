"""
Layout utilities for stamp placement.

All computations in this module are pure functions on immutable values.
Coordinates are expressed in whatever unit the caller uses for the canvas
(pixels for rasters, user units for PDF pages); the only requirement is that
the canvas and the stamp use the same one.

Two coordinate conventions are supported, and the convention in use is always
explicit (see :attr:`.CanvasSpec.origin_top_left`):

* rasters put the origin in the top left corner, with the vertical axis
  pointing down;
* PDF pages put the origin in the bottom left corner, with the vertical axis
  pointing up.
"""

import enum
from dataclasses import dataclass
from typing import Optional

from .config_utils import ConfigurableMixin, ConfigurationError
from .misc import StampingError

__all__ = [
    'LayoutError', 'InvalidScaleError', 'InvalidCanvasError',
    'Dimensions', 'InnerScaling', 'AxisAlignment', 'StampPosition',
    'PlacementMode', 'CanvasSpec', 'PlacementResult',
    'DEFAULT_MARGIN', 'PAPER_SIZES', 'compute_placement', 'fit_to_page',
]

DEFAULT_MARGIN = 50
"""
Default distance between the stamp and the edges of the canvas.
"""


class LayoutError(StampingError, ValueError):
    """Indicates an error in a layout computation."""
    pass


class InvalidScaleError(LayoutError):
    """Raised when a scale percentage is not in the interval ``(0, 100]``."""
    pass


class InvalidCanvasError(LayoutError):
    """Raised when a canvas has a degenerate size or a negative margin."""
    pass


@dataclass(frozen=True)
class Dimensions(ConfigurableMixin):
    """Width and height of a box."""

    width: float
    height: float

    @classmethod
    def from_config(cls, config_dict):
        # convenience
        if isinstance(config_dict, str):
            try:
                return PAPER_SIZES[config_dict.lower()]
            except KeyError:
                raise ConfigurationError(
                    f"'{config_dict}' is not a known paper size; valid "
                    f"values are {', '.join(map(repr, PAPER_SIZES))}."
                )
        if isinstance(config_dict, (list, tuple)):
            if len(config_dict) != 2:
                raise ConfigurationError(
                    "Dimensions must be specified as [width, height]."
                )
            config_dict = dict(zip(("width", "height"), config_dict))
        return super().from_config(config_dict)

    @property
    def is_degenerate(self) -> bool:
        """
        :return:
            ``True`` if either the width or the height is not strictly
            positive.
        """
        # written this way to also catch NaN
        return not (self.width > 0 and self.height > 0)


PAPER_SIZES = {
    'a4': Dimensions(595.28, 841.89),
    'a5': Dimensions(419.53, 595.28),
    'letter': Dimensions(612, 792),
    'legal': Dimensions(612, 1008),
}
"""
Common paper sizes, in PDF user units (points).
"""


class InnerScaling(enum.Enum):
    """Class representing a scaling convention."""

    NO_SCALING = enum.auto()
    """Never scale content."""

    STRETCH_FILL = enum.auto()
    """Scale content to fill the entire container."""

    STRETCH_TO_FIT = enum.auto()
    """
    Scale content while preserving aspect ratio until either the maximal
    width or maximal height is reached.
    """

    SHRINK_TO_FIT = enum.auto()
    """
    Scale content down to fit in the container, while preserving the original
    aspect ratio.
    """

    @classmethod
    def from_config(cls, config_str: str) -> 'InnerScaling':
        """
        Convert from a configuration string.

        :param config_str:
            A string: 'none', 'stretch-fill', 'stretch-to-fit', 'shrink-to-fit'
        :return:
            An :class:`.InnerScaling` value.
        :raise ConfigurationError: on unexpected string inputs.
        """
        try:
            return {
                'none': InnerScaling.NO_SCALING,
                'stretch-fill': InnerScaling.STRETCH_FILL,
                'stretch-to-fit': InnerScaling.STRETCH_TO_FIT,
                'shrink-to-fit': InnerScaling.SHRINK_TO_FIT
            }[str(config_str).lower()]
        except KeyError:
            raise ConfigurationError(
                f"'{config_str}' is not a valid inner scaling setting; valid "
                f"values are 'none', 'stretch-fill', 'stretch-to-fit', "
                f"'shrink-to-fit'."
            )


class AxisAlignment(enum.Enum):
    """Class representing one-dimensional alignment along an axis."""

    ALIGN_MIN = enum.auto()
    """
    Align maximally towards the negative end of the axis.
    """

    ALIGN_MID = enum.auto()
    """
    Center content along the axis.
    """

    ALIGN_MAX = enum.auto()
    """
    Align maximally towards the positive end of the axis.
    """

    @property
    def flipped(self) -> 'AxisAlignment':
        return _alignment_opposites[self]

    def align(self, container_len: float, inner_len: float,
              pre_margin: float, post_margin: float) -> float:
        """
        Compute the offset of the inner box along the axis.

        Centred content ignores the margins. No attempt is made to keep the
        inner box inside the container.

        :param container_len:
            Length of the container along the axis.
        :param inner_len:
            Length of the inner box along the axis.
        :param pre_margin:
            Margin at the negative end of the axis.
        :param post_margin:
            Margin at the positive end of the axis.
        :return:
            The coordinate of the inner box's edge closest to the origin.
        """
        if self == AxisAlignment.ALIGN_MAX:
            # we want to start as far up the axis as possible, leaving
            # room for post_margin in the back.
            return container_len - inner_len - post_margin
        elif self == AxisAlignment.ALIGN_MIN:
            return pre_margin
        else:
            return (container_len - inner_len) / 2


# Class variables in enums are weird, so let's put this here
_alignment_opposites = {
    AxisAlignment.ALIGN_MID: AxisAlignment.ALIGN_MID,
    AxisAlignment.ALIGN_MIN: AxisAlignment.ALIGN_MAX,
    AxisAlignment.ALIGN_MAX: AxisAlignment.ALIGN_MIN
}


class StampPosition(enum.Enum):
    """Named anchor points for a stamp on a canvas."""

    TOP_LEFT = enum.auto()
    TOP_RIGHT = enum.auto()
    BOTTOM_LEFT = enum.auto()
    BOTTOM_RIGHT = enum.auto()
    CENTER = enum.auto()

    CUSTOM = enum.auto()
    """
    Explicit coordinates, see :meth:`.PlacementMode.custom`.
    """

    @classmethod
    def from_config(cls, config_str: str) -> 'StampPosition':
        """
        Convert from a configuration string.

        :param config_str:
            A string: 'top-left', 'top-right', 'bottom-left', 'bottom-right',
            'center' or 'custom'.
        :return:
            A :class:`.StampPosition` value.
        :raise ConfigurationError: on unexpected string inputs.
        """
        try:
            return cls[str(config_str).upper().replace('-', '_')]
        except KeyError:
            raise ConfigurationError(
                f"'{config_str}' is not a valid stamp position; valid values "
                f"are 'top-left', 'top-right', 'bottom-left', 'bottom-right', "
                f"'center' and 'custom'."
            )

    @property
    def alignments(self):
        """
        Horizontal and vertical alignment for this anchor, in a coordinate
        system with the origin in the bottom left corner.

        :raises LayoutError: for :attr:`CUSTOM`, which has no alignment.
        """
        try:
            return _position_alignments[self]
        except KeyError:
            raise LayoutError(
                "Custom positions do not correspond to an alignment."
            )


_position_alignments = {
    StampPosition.TOP_LEFT:
        (AxisAlignment.ALIGN_MIN, AxisAlignment.ALIGN_MAX),
    StampPosition.TOP_RIGHT:
        (AxisAlignment.ALIGN_MAX, AxisAlignment.ALIGN_MAX),
    StampPosition.BOTTOM_LEFT:
        (AxisAlignment.ALIGN_MIN, AxisAlignment.ALIGN_MIN),
    StampPosition.BOTTOM_RIGHT:
        (AxisAlignment.ALIGN_MAX, AxisAlignment.ALIGN_MIN),
    StampPosition.CENTER:
        (AxisAlignment.ALIGN_MID, AxisAlignment.ALIGN_MID),
}


@dataclass(frozen=True)
class PlacementMode(ConfigurableMixin):
    """
    Describes where a stamp goes: either one of the named anchors, or an
    explicit coordinate pair.

    .. warning::
        Custom coordinates are used verbatim, in the coordinate system of the
        canvas they are applied to. They are *not* converted between
        top-left and bottom-left origin conventions.
    """

    position: StampPosition
    """
    The anchor to use.
    """

    x: Optional[float] = None
    """
    Horizontal coordinate (custom placements only).
    """

    y: Optional[float] = None
    """
    Vertical coordinate (custom placements only).
    """

    def __post_init__(self):
        has_coords = self.x is not None or self.y is not None
        if self.position == StampPosition.CUSTOM:
            if self.x is None or self.y is None:
                raise LayoutError(
                    "Custom placements require both an x and a y coordinate."
                )
        elif has_coords:
            raise LayoutError(
                f"Coordinates are only meaningful for custom placements, "
                f"not for {self.position.name}."
            )

    @classmethod
    def custom(cls, x: float, y: float) -> 'PlacementMode':
        """
        Place the stamp at an explicit position.

        :param x:
            Horizontal coordinate.
        :param y:
            Vertical coordinate.
        :return:
            A :class:`.PlacementMode`.
        """
        return PlacementMode(StampPosition.CUSTOM, x=x, y=y)

    @classmethod
    def process_entries(cls, config_dict):
        super().process_entries(config_dict)
        position = config_dict.get('position', None)
        if position is None:
            # a bare coordinate pair implies a custom placement
            position = StampPosition.CUSTOM
        elif isinstance(position, str):
            position = StampPosition.from_config(position)
        config_dict['position'] = position

    @classmethod
    def from_config(cls, config_dict):
        # convenience: allow 'top-left' instead of {position: top-left}
        if isinstance(config_dict, str):
            config_dict = {'position': config_dict}
        try:
            return super().from_config(config_dict)
        except LayoutError as e:
            raise ConfigurationError(e.msg) from e


@dataclass(frozen=True)
class CanvasSpec:
    """
    The surface a stamp is placed on.
    """

    dimensions: Dimensions
    """
    Size of the canvas.
    """

    origin_top_left: bool
    """
    ``True`` if the origin is in the top left corner (rasters), ``False``
    if it is in the bottom left corner (PDF pages).
    """

    margin: float = DEFAULT_MARGIN
    """
    Distance between an anchored stamp and the nearest canvas edges.
    Not applied to centred or custom placements.
    """

    @classmethod
    def raster(cls, width, height, margin=DEFAULT_MARGIN) -> 'CanvasSpec':
        """
        Describe a raster canvas (origin in the top left corner).
        """
        return CanvasSpec(Dimensions(width, height), True, margin)

    @classmethod
    def pdf_page(cls, width, height, margin=DEFAULT_MARGIN) -> 'CanvasSpec':
        """
        Describe a PDF page (origin in the bottom left corner).
        """
        return CanvasSpec(Dimensions(width, height), False, margin)


@dataclass(frozen=True)
class PlacementResult:
    """
    A stamp rectangle on a canvas.

    The :attr:`x` and :attr:`y` coordinates describe the rectangle's corner
    closest to the canvas origin: the top left corner on rasters, the lower
    left corner on PDF pages.
    """

    x: float
    y: float
    width: float
    height: float

    def as_cm(self) -> bytes:
        """
        Convert this :class:`.PlacementResult` into a PDF ``cm`` operator
        that maps the unit square (where PDF images live) onto the
        placement rectangle.

        This is meant for PDF writers that draw the stamp themselves, using
        a placement computed by :func:`docstamp.stamp.pdf_placement`.

        :return:
            A byte string representing the ``cm`` operator.
        """
        return b'%g 0 0 %g %g %g cm' % (
            self.width, self.height, self.x, self.y
        )

    def pixel_box(self):
        """
        Round this rectangle to a pixel box.

        :return:
            A ``(left, upper, right, lower)`` tuple of integers, as used by
            Pillow.
        """
        left = round(self.x)
        upper = round(self.y)
        return (
            left, upper, left + round(self.width), upper + round(self.height)
        )


def _check_canvas(canvas: CanvasSpec):
    if canvas.dimensions.is_degenerate:
        raise InvalidCanvasError(
            f"Canvas dimensions must be positive, not "
            f"{canvas.dimensions.width}x{canvas.dimensions.height}."
        )
    if not canvas.margin >= 0:
        raise InvalidCanvasError(
            f"Canvas margin must be non-negative, not {canvas.margin}."
        )


def compute_placement(canvas: CanvasSpec, stamp: Dimensions,
                      mode: PlacementMode, scale_percent: float) \
        -> PlacementResult:
    """
    Work out where a stamp goes on a canvas, and how large it is.

    The result is never clamped to the canvas: stamps that are too large,
    or custom placements near the edges, may extend past the canvas.

    :param canvas:
        The canvas to put the stamp on.
    :param stamp:
        The stamp's natural dimensions, in the same unit as the canvas.
    :param mode:
        The placement mode.
    :param scale_percent:
        Scale factor applied to the stamp, as a percentage in ``(0, 100]``.
    :return:
        A :class:`.PlacementResult`.
    :raises InvalidScaleError:
        if the scale is not in ``(0, 100]``.
    :raises InvalidCanvasError:
        if the canvas is degenerate or has a negative margin.
    :raises LayoutError:
        if the stamp dimensions are not positive.
    """
    if not (0 < scale_percent <= 100):
        raise InvalidScaleError(
            f"Scale must be in (0, 100], not {scale_percent}."
        )
    _check_canvas(canvas)
    if stamp.is_degenerate:
        raise LayoutError(
            f"Stamp dimensions must be positive, not "
            f"{stamp.width}x{stamp.height}."
        )

    width = stamp.width * scale_percent / 100
    height = stamp.height * scale_percent / 100

    if mode.position == StampPosition.CUSTOM:
        return PlacementResult(x=mode.x, y=mode.y, width=width, height=height)

    x_align, y_align = mode.position.alignments
    if canvas.origin_top_left:
        # 'top' is at the low end of the vertical axis
        y_align = y_align.flipped
    margin = canvas.margin
    x = x_align.align(canvas.dimensions.width, width, margin, margin)
    y = y_align.align(canvas.dimensions.height, height, margin, margin)
    return PlacementResult(x=x, y=y, width=width, height=height)


def fit_to_page(content: Dimensions, page: Dimensions,
                scaling: InnerScaling = InnerScaling.STRETCH_TO_FIT) \
        -> PlacementResult:
    """
    Scale content to a page according to a scaling rule, and centre it.

    The result does not depend on the page's coordinate convention.

    :param content:
        The content's natural dimensions.
    :param page:
        The page dimensions.
    :param scaling:
        The scaling rule to apply.
    :return:
        A :class:`.PlacementResult` describing the scaled content.
    :raises InvalidCanvasError:
        if the page is degenerate.
    :raises LayoutError:
        if the content dimensions are not positive.
    """
    if page.is_degenerate:
        raise InvalidCanvasError(
            f"Page dimensions must be positive, not "
            f"{page.width}x{page.height}."
        )
    if content.is_degenerate:
        raise LayoutError(
            f"Content dimensions must be positive, not "
            f"{content.width}x{content.height}."
        )

    x_scale = y_scale = 1
    if scaling != InnerScaling.NO_SCALING:
        x_scale = page.width / content.width
        y_scale = page.height / content.height
        if scaling == InnerScaling.STRETCH_TO_FIT:
            x_scale = y_scale = min(x_scale, y_scale)
        elif scaling == InnerScaling.SHRINK_TO_FIT:
            # same as stretch to fit, with the additional stipulation
            # that it can't scale up, only down.
            x_scale = y_scale = min(x_scale, y_scale, 1)

    width = content.width * x_scale
    height = content.height * y_scale
    mid = AxisAlignment.ALIGN_MID
    return PlacementResult(
        x=mid.align(page.width, width, 0, 0),
        y=mid.align(page.height, height, 0, 0),
        width=width, height=height
    )
