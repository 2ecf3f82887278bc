"""Compatibility module for optional composite dependencies."""

import functools
from typing import TYPE_CHECKING, Callable, TypeVar

F = TypeVar("F", bound=Callable)

if TYPE_CHECKING:
    # Type checkers see these as always available
    import aggdraw  # type: ignore[import-not-found]
    from scipy import interpolate  # type: ignore[import-untyped]

# Check for optional dependencies
try:
    import aggdraw  # noqa: F401  # type: ignore[import-not-found,no-redef]

    HAS_AGGDRAW = True
except ImportError:
    HAS_AGGDRAW = False

try:
    from scipy import interpolate  # noqa: F401  # type: ignore[import-untyped,no-redef]

    HAS_SCIPY = True
except ImportError:
    HAS_SCIPY = False


def require_aggdraw(func: F) -> F:
    """
    Decorator to check if aggdraw is available before calling the function.

    Required for shape rasterization (rectangles, ellipses, lines).

    Raises:
        ImportError: If aggdraw is not installed.

    Example:
        >>> @require_aggdraw
        ... def rasterize_shape(buffer, params):
        ...     return _draw_mask(...)
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        if not HAS_AGGDRAW:
            raise ImportError(
                "Shape rasterization requires: aggdraw\n\n"
                "Install with:\n"
                "    pip install 'pixstack[composite]'\n"
                "Or:\n"
                "    pip install aggdraw"
            )
        return func(*args, **kwargs)

    return wrapper  # type: ignore[return-value]


def require_scipy(func: F) -> F:
    """
    Decorator to check if scipy is available before calling the function.

    Required for gradients (color stop interpolation).

    Raises:
        ImportError: If scipy is not installed.

    Example:
        >>> @require_scipy
        ... def render_gradient(buffer, params):
        ...     # gradient implementation
        ...     pass
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        if not HAS_SCIPY:
            raise ImportError(
                "Gradients require: scipy\n\n"
                "Install with:\n"
                "    pip install 'pixstack[composite]'\n"
                "Or:\n"
                "    pip install scipy"
            )
        return func(*args, **kwargs)

    return wrapper  # type: ignore[return-value]
