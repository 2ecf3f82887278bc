"""
Editing session configuration.
"""
from typing import Optional

from attrs import define, field
from attrs.validators import ge, instance_of, optional

from pixstack.api.color import RGB


@define(frozen=True)
class SessionConfig:
    """
    Settings of one :py:class:`~pixstack.api.session.EditSession`.

    .. py:attribute:: max_width
    .. py:attribute:: max_height

        Largest canvas a geometry changing filter may produce. Handed to
        dialogs.

    .. py:attribute:: history_limit

        Maximum number of retained history entries, None for no limit.

    .. py:attribute:: embed_mode

        When set, filters not available in embedded mode are refused.

    .. py:attribute:: primary_color
    .. py:attribute:: secondary_color

        Tool colors handed to dialogs.

    .. py:attribute:: thumbnail_size

        Longest edge of storage thumbnails. 0 disables thumbnails.
    """

    max_width: int = field(default=4096, validator=[instance_of(int), ge(1)])
    max_height: int = field(default=4096, validator=[instance_of(int), ge(1)])
    history_limit: Optional[int] = field(
        default=None, validator=optional([instance_of(int), ge(1)])
    )
    embed_mode: bool = field(default=False, converter=bool)
    primary_color: RGB = field(factory=lambda: RGB(0, 0, 0), converter=RGB.coerce)
    secondary_color: RGB = field(
        factory=lambda: RGB(255, 255, 255), converter=RGB.coerce
    )
    thumbnail_size: int = field(default=240, validator=[instance_of(int), ge(0)])
