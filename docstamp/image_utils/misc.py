"""
Utility functions and exception classes shared by the image utilities.

Generally, all of these constitute internal API, except for the exception
classes.
"""

from typing import Callable

__all__ = [
    'StampingError', 'get_and_apply', 'rd', 'resolve_page_index',
]


rd = lambda x: round(x, 4)


class StampingError(Exception):
    """Base class for all errors raised while stamping a document."""

    def __init__(self, msg: str, *args):
        self.msg = msg
        super().__init__(msg, *args)


def get_and_apply(dictionary: dict, key, function: Callable, *, default=None):
    try:
        value = dictionary[key]
    except KeyError:
        return default
    return function(value)


def resolve_page_index(page_number: int, page_count: int) -> int:
    """
    Convert a user-facing page number into a page index.

    :param page_number:
        Page number, starting at `1`.
        Numbers past the end of the document select the last page.
    :param page_count:
        The number of pages in the document.
    :return:
        A page index, starting at `0`.
    :raises StampingError:
        if the page number is not positive, or the document has no pages.
    """
    if page_count <= 0:
        raise StampingError("Document has no pages.")
    if page_number < 1:
        raise StampingError(
            f"Page numbers start at 1, not {page_number}."
        )
    return min(page_number, page_count) - 1
