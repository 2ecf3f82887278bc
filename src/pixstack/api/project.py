"""
Project records exchanged with the import and persistence collaborators.

- :py:class:`Project`: decoded layer images, consumed to build a
  :py:class:`~pixstack.api.layers.LayerStack`.
- :py:class:`ImportedDocument`: output of a layered document importer,
  possibly flattened, with a list of
  :py:class:`~pixstack.constants.UnsupportedFeature` warnings.
- :py:class:`StorageProject`: serializable record with PNG encoded layer
  blobs and an optional thumbnail.

Records are value snapshots; they never reference a live stack.

Example::

    record = StorageProject.from_dict(stored)
    stack = LayerStack.from_project(record.to_project())

    record = StorageProject.from_stack(stack, id=1)
    text = record.to_json()
"""

import base64
import json
import logging
import time
from typing import Any, Optional, Union

from attrs import define, field
from attrs.validators import ge, instance_of, optional

from pixstack.api import pil_io
from pixstack.api.layers import LayerStack, StackState
from pixstack.api.protocols import RasterSource
from pixstack.composite import composite_pil
from pixstack.constants import BlendMode, UnsupportedFeature
from pixstack.exceptions import DimensionMismatchError
from pixstack.validators import range_

logger = logging.getLogger(__name__)


def _blend_mode(value: Any) -> BlendMode:
    """Read a stored blend mode, falling back to normal for unknown names."""
    if value is None:
        return BlendMode.NORMAL
    try:
        return BlendMode(value)
    except ValueError:
        logger.warning("Unknown blend mode %r, using normal" % (value,))
        return BlendMode.NORMAL


def _optional_bytes(value: Any) -> Optional[bytes]:
    return None if value is None else bytes(value)


@define(frozen=True)
class ProjectLayer:
    """Layer record with a decoded image."""

    name: str = field(converter=str)
    opacity: float = field(converter=float, validator=range_(0.0, 1.0))
    blend_mode: BlendMode = field(converter=_blend_mode)
    image: RasterSource = field(converter=pil_io.as_source, eq=False)


@define(frozen=True)
class Project:
    """
    Decoded layered image.

    .. py:attribute:: layers

        Layer records, bottom to top. Every image has the project size.
    """

    width: int = field(converter=int, validator=ge(1))
    height: int = field(converter=int, validator=ge(1))
    layers: tuple[ProjectLayer, ...] = field(converter=tuple)

    @layers.validator
    def _validate_layers(self, attribute: Any, value: tuple) -> None:
        for layer in value:
            if (layer.image.width, layer.image.height) != (self.width, self.height):
                raise DimensionMismatchError(
                    "Layer %r is %dx%d, project is %dx%d"
                    % (
                        layer.name,
                        layer.image.width,
                        layer.image.height,
                        self.width,
                        self.height,
                    )
                )

    def to_stack(self) -> LayerStack:
        return LayerStack.from_project(self)


@define(frozen=True)
class ImportedDocument:
    """
    Result of importing an external layered document.

    .. py:attribute:: layers

        Layer records, or None when the document was flattened.

    .. py:attribute:: warnings

        Features that could not be represented, as
        :py:class:`~pixstack.constants.UnsupportedFeature` values.

    .. py:attribute:: flattened

        The source was too complex and only ``canvas`` is usable.

    .. py:attribute:: canvas

        Composite of the whole document.
    """

    width: int = field(converter=int, validator=ge(1))
    height: int = field(converter=int, validator=ge(1))
    canvas: RasterSource = field(converter=pil_io.as_source, eq=False)
    layers: Optional[tuple[ProjectLayer, ...]] = field(
        default=None, converter=lambda x: None if x is None else tuple(x)
    )
    warnings: tuple[UnsupportedFeature, ...] = field(
        factory=tuple, converter=lambda x: tuple(UnsupportedFeature(w) for w in x)
    )
    flattened: bool = field(default=False, converter=bool)

    @classmethod
    def from_dict(cls, data: dict) -> "ImportedDocument":
        """
        Read an importer record with ``width``, ``height``, ``canvas`` and
        the optional ``layers``, ``warningArr`` and ``error`` keys.

        Unknown warning names are logged and dropped.
        """
        warnings = []
        for name in data.get("warningArr") or ():
            try:
                warnings.append(UnsupportedFeature(name))
            except ValueError:
                logger.warning("Unknown import warning %r" % (name,))
        layers = data.get("layers")
        if layers is not None:
            layers = [
                ProjectLayer(
                    name=item.get("name", ""),
                    opacity=item.get("opacity", 1.0),
                    blend_mode=item.get("mixModeStr"),
                    image=item["image"],
                )
                for item in layers
            ]
        return cls(
            width=data["width"],
            height=data["height"],
            canvas=data["canvas"],
            layers=layers,
            warnings=warnings,
            flattened=bool(data.get("error", False)) or layers is None,
        )

    def to_project(self) -> Project:
        """
        Convert to a :py:class:`Project`. A flattened document becomes a
        single layer holding the canvas, even when a layer list is present.
        """
        for warning in self.warnings:
            logger.info("Import dropped unsupported feature: %s" % warning.value)
        if self.flattened or self.layers is None:
            layers: tuple = (ProjectLayer("Image", 1.0, BlendMode.NORMAL, self.canvas),)
        else:
            layers = self.layers
        return Project(self.width, self.height, layers)


@define(frozen=True)
class StorageLayer:
    """Layer record with a PNG encoded image."""

    name: str = field(converter=str)
    opacity: float = field(converter=float, validator=range_(0.0, 1.0))
    blend_mode: BlendMode = field(converter=_blend_mode)
    blob: bytes = field(converter=bytes, repr=False)

    @classmethod
    def from_dict(cls, data: dict) -> "StorageLayer":
        return cls(
            name=data.get("name", ""),
            opacity=data.get("opacity", 1.0),
            blend_mode=data.get("mixModeStr"),
            blob=data["blob"],
        )

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "opacity": self.opacity,
            "mixModeStr": self.blend_mode.value,
            "blob": self.blob,
        }


@define(frozen=True)
class StorageProject:
    """
    Serializable project record.

    .. py:attribute:: thumbnail

        PNG encoded preview, or None. Older records have none.
    """

    id: int = field(converter=int)
    timestamp: float = field(converter=float)
    width: int = field(converter=int, validator=ge(1))
    height: int = field(converter=int, validator=ge(1))
    layers: tuple[StorageLayer, ...] = field(converter=tuple)
    thumbnail: Optional[bytes] = field(
        default=None,
        converter=_optional_bytes,
        validator=optional(instance_of(bytes)),
        repr=False,
    )

    @classmethod
    def from_dict(cls, data: dict) -> "StorageProject":
        """
        Read a stored record. ``thumbnail`` and per layer ``mixModeStr`` may be
        missing.
        """
        return cls(
            id=data["id"],
            timestamp=data["timestamp"],
            width=data["width"],
            height=data["height"],
            layers=[StorageLayer.from_dict(item) for item in data["layers"]],
            thumbnail=data.get("thumbnail"),
        )

    def to_dict(self) -> dict:
        data: dict[str, Any] = {
            "id": self.id,
            "timestamp": self.timestamp,
            "width": self.width,
            "height": self.height,
            "layers": [layer.to_dict() for layer in self.layers],
        }
        if self.thumbnail is not None:
            data["thumbnail"] = self.thumbnail
        return data

    @classmethod
    def from_stack(
        cls,
        stack: Union[LayerStack, StackState],
        id: int = 1,
        timestamp: Optional[float] = None,
        thumbnail_size: int = 240,
    ) -> "StorageProject":
        """
        Encode a stack or a stack snapshot.

        :param thumbnail_size: Longest edge of the composite thumbnail, 0 to
            omit it.
        """
        layers = [
            StorageLayer(
                layer.name,
                layer.opacity,
                layer.blend_mode,
                pil_io.encode_png(layer.buffer),
            )
            for layer in stack.layers
        ]
        thumbnail = None
        if thumbnail_size > 0:
            thumbnail = pil_io.make_thumbnail(composite_pil(stack), thumbnail_size)
        return cls(
            id=id,
            timestamp=time.time() if timestamp is None else timestamp,
            width=stack.width,
            height=stack.height,
            layers=layers,
            thumbnail=thumbnail,
        )

    def to_project(self) -> Project:
        """Decode layer blobs."""
        return Project(
            self.width,
            self.height,
            tuple(
                ProjectLayer(
                    layer.name,
                    layer.opacity,
                    layer.blend_mode,
                    pil_io.decode_png(layer.blob),
                )
                for layer in self.layers
            ),
        )

    def to_json(self, **kwargs: Any) -> str:
        """Serialize with base64 encoded blobs."""
        data = self.to_dict()
        for layer in data["layers"]:
            layer["blob"] = base64.b64encode(layer["blob"]).decode("ascii")
        if "thumbnail" in data:
            data["thumbnail"] = base64.b64encode(data["thumbnail"]).decode("ascii")
        return json.dumps(data, **kwargs)

    @classmethod
    def from_json(cls, text: Union[str, bytes]) -> "StorageProject":
        data = json.loads(text)
        for layer in data["layers"]:
            layer["blob"] = base64.b64decode(layer["blob"])
        if data.get("thumbnail") is not None:
            data["thumbnail"] = base64.b64decode(data["thumbnail"])
        return cls.from_dict(data)
