"""
Built-in filters.

Filters are registered by name in :py:data:`FILTERS`; each entry is a
factory returning a fresh filter variant.

- ``invert``: instant, inverts the focused layer.
- ``grayscale``, ``brightness_contrast``: modal color adjustments.
- ``flip``: modal, flips every layer or the focused one.
- ``gradient``, ``shape``: modal paint tools, require the ``composite``
  extra.

Example::

    from pixstack.filters import get_filter

    invocation = session.pipeline.invoke(get_filter('grayscale'))
    invocation.handle.element.update(amount=0.5)
    invocation.confirm()
"""

from pixstack.api.pipeline import Filter
from pixstack.exceptions import InvalidFilterError
from pixstack.filters import adjustments, tools, transform  # noqa: F401
from pixstack.filters.adjustments import BrightnessContrastInput, GrayscaleInput
from pixstack.filters.base import FILTERS, ParameterForm
from pixstack.filters.transform import FlipInput

__all__ = [
    "FILTERS",
    "BrightnessContrastInput",
    "FlipInput",
    "GrayscaleInput",
    "ParameterForm",
    "get_filter",
]


def get_filter(name: str) -> Filter:
    """
    Create the built-in filter registered under ``name``.

    :raises InvalidFilterError: for unknown names.
    """
    try:
        factory = FILTERS[name]
    except KeyError:
        raise InvalidFilterError(
            "Unknown filter %r, expected one of %s" % (name, ", ".join(sorted(FILTERS)))
        )
    return factory()
