"""
Exception types raised by pixstack.

Buffer and stack errors signal programming mistakes. Pipeline errors are
recovered at the pipeline boundary and reported through
:py:class:`~pixstack.api.pipeline.ApplyResult`; only :py:class:`BusyError`
reaches the caller as an exception.
"""


class PixstackError(Exception):
    """Base class of all pixstack errors."""


class OutOfBoundsError(PixstackError, IndexError):
    """Pixel access outside of the buffer dimensions."""


class DimensionMismatchError(PixstackError, ValueError):
    """A buffer does not match the dimensions it is combined with."""


class BusyError(PixstackError):
    """Another invocation is already mutating the layer stack."""


class ApplyFailure(PixstackError):
    """A filter reported failure or raised while applying."""


class DialogError(PixstackError):
    """The parameter dialog reported an error before confirmation."""


class InvalidFilterError(PixstackError, ValueError):
    """A filter descriptor violates the filter contract."""
