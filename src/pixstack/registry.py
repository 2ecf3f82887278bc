"""
Registry pattern utility for creating name registries.

This module provides the ``new_registry`` function which creates a registry
dictionary and a decorator for registering objects. pixstack uses it for the
built-in filter table.

Usage example::

    from pixstack.registry import new_registry

    FILTERS, register = new_registry(attribute='filter_name')

    @register('invert')
    def make_invert():
        ...

    factory = FILTERS['invert']
"""

from typing import Any, Callable, Tuple, TypeVar, Union

T = TypeVar("T")


def new_registry(attribute: Union[str, None] = None) -> Tuple[dict, Callable]:
    """
    Returns an empty dict and a @register decorator.

    :param attribute: Optional attribute name to set on registered objects.
                     The key will be stored as this attribute on the object.
    :return: Tuple of (registry_dict, register_decorator)
    """
    registry = {}

    def register(key: Any) -> Callable[[Callable[..., T]], Callable[..., T]]:
        def decorator(func: Callable[..., T]) -> Callable[..., T]:
            if key in registry:
                raise KeyError("%r is already registered" % (key,))
            registry[key] = func
            if attribute:
                setattr(func, attribute, key)
            return func

        return decorator

    return registry, register
