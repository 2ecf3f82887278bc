"""
Editing API.

This subpackage holds the in-memory document model and the machinery that
mutates it.

Key modules:

- :py:mod:`pixstack.api.raster`: RasterBuffer, the owned RGBA pixel buffer
- :py:mod:`pixstack.api.layers`: Layer and LayerStack
- :py:mod:`pixstack.api.history`: Undo/redo timeline
- :py:mod:`pixstack.api.pipeline`: Filter variants and the apply pipeline
- :py:mod:`pixstack.api.project`: Import and storage records
- :py:mod:`pixstack.api.session`: EditSession, tying the above together
- :py:mod:`pixstack.api.pil_io`: PIL/Pillow image I/O utilities
- :py:mod:`pixstack.api.numpy_io`: NumPy array I/O utilities

Example usage::

    from pixstack.api.session import EditSession

    session = EditSession.new(320, 240)
    layer = session.add_layer('Sketch', opacity=0.5)
    session.set_layer_blend_mode(1, 'multiply')
    session.undo()
"""
