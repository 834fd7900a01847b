"""
Separable blend modes.

Each blend mode combines a backdrop colour (the document) with a source colour
(the stamp) channel by channel, before the result is alpha-mixed over the
backdrop. The formulas match the ones defined for PDF in § 11.3.5 of
ISO 32000-1, and are evaluated by
`Pillow <https://github.com/python-pillow/Pillow>`_'s :mod:`PIL.ImageChops`.
"""

import enum

from PIL import Image, ImageChops

from .config_utils import ConfigurationError

__all__ = ['BlendMode']


class BlendMode(enum.Enum):
    """Class representing a separable blend mode."""

    NORMAL = enum.auto()
    """
    Use the source colour as-is.
    """

    MULTIPLY = enum.auto()
    """
    Multiply the backdrop and source colours. The result is never lighter
    than either input.
    """

    SCREEN = enum.auto()
    """
    Multiply the complements of the backdrop and source colours, and
    complement the result. The result is never darker than either input.
    """

    OVERLAY = enum.auto()
    """
    Multiply or screen, depending on the backdrop colour.
    """

    DARKEN = enum.auto()
    """
    Select the darker of the backdrop and source colours.
    """

    LIGHTEN = enum.auto()
    """
    Select the lighter of the backdrop and source colours.
    """

    @classmethod
    def from_config(cls, config_str: str) -> 'BlendMode':
        """
        Convert from a configuration string.

        :param config_str:
            A string: 'normal', 'multiply', 'screen', 'overlay', 'darken'
            or 'lighten'.
        :return:
            A :class:`.BlendMode` value.
        :raise ConfigurationError: on unexpected string inputs.
        """
        try:
            return cls[str(config_str).upper()]
        except KeyError:
            raise ConfigurationError(
                f"'{config_str}' is not a valid blend mode; valid values "
                f"are {', '.join(repr(m.name.lower()) for m in cls)}."
            )

    def blend(self, backdrop: Image.Image, source: Image.Image) \
            -> Image.Image:
        """
        Blend two images of the same size and mode.

        :param backdrop:
            The backdrop image.
        :param source:
            The source image.
        :return:
            A new image.
        """
        return _blend_functions[self](backdrop, source)


# Class variables in enums are weird, so let's put this here
_blend_functions = {
    BlendMode.NORMAL: lambda backdrop, source: source.copy(),
    BlendMode.MULTIPLY: ImageChops.multiply,
    BlendMode.SCREEN: ImageChops.screen,
    # the first argument of ImageChops.overlay determines whether
    # to multiply or to screen
    BlendMode.OVERLAY: ImageChops.overlay,
    BlendMode.DARKEN: ImageChops.darker,
    BlendMode.LIGHTEN: ImageChops.lighter,
}
