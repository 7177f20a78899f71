"""Viewport model: pointer-anchored zoom and panning.

Zoom is unbounded. A world point p is drawn at ``p * zoom + pan`` on screen.
"""

from dataclasses import replace

from models import Viewport, ZOOM_STEP


def screen_to_world(viewport: Viewport, sx: float, sy: float) -> tuple[float, float]:
    return ((sx - viewport.pan_x) / viewport.zoom,
            (sy - viewport.pan_y) / viewport.zoom)


def world_to_screen(viewport: Viewport, wx: float, wy: float) -> tuple[float, float]:
    return (wx * viewport.zoom + viewport.pan_x,
            wy * viewport.zoom + viewport.pan_y)


def zoom_by(viewport: Viewport, factor: float, anchor_x: float, anchor_y: float) -> Viewport:
    """Scale zoom by *factor* keeping the world point under the anchor fixed."""
    world_x, world_y = screen_to_world(viewport, anchor_x, anchor_y)
    new_zoom = viewport.zoom * factor
    return Viewport(
        zoom=new_zoom,
        pan_x=anchor_x - world_x * new_zoom,
        pan_y=anchor_y - world_y * new_zoom,
    )


def zoom_at(viewport: Viewport, delta: float, pointer_x: float, pointer_y: float,
            step: float = ZOOM_STEP) -> Viewport:
    """Apply one wheel notch at the pointer.

    Positive *delta* (wheel away from the user) zooms in, negative zooms out.
    """
    if delta == 0:
        return viewport
    factor = step if delta > 0 else 1 / step
    return zoom_by(viewport, factor, pointer_x, pointer_y)


def set_zoom(viewport: Viewport, zoom: float) -> Viewport:
    return replace(viewport, zoom=zoom)


def set_pan(viewport: Viewport, pan_x: float, pan_y: float) -> Viewport:
    return replace(viewport, pan_x=pan_x, pan_y=pan_y)


def pan_by(viewport: Viewport, dx: float, dy: float) -> Viewport:
    return replace(viewport, pan_x=viewport.pan_x + dx, pan_y=viewport.pan_y + dy)


def reset() -> Viewport:
    return Viewport()
