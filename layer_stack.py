"""LayerStack: invariant-preserving operations on the layers of an EditorState.

Each operation takes the current snapshot and returns a new one. Unknown
layer ids are not errors: the input snapshot is returned unchanged.

After every operation the z_index values of N layers are exactly 0..N-1.
"""

import logging
import uuid
from dataclasses import replace
from typing import Callable

from geometry import (
    apply_classic, apply_policy, clamp_crop, default_policy,
    toggled_orientation, with_print_mode, with_print_size,
)
from models import (
    Classic, Crop, EditorState, Layer, LayerRequest, PrintSize,
    DEFAULT_PRINT_SIZE, IMPORT_COLUMNS, IMPORT_ORIGIN, IMPORT_SPACING, WIDTH, cm_to_px,
)

logger = logging.getLogger(__name__)

UP = "up"
DOWN = "down"

# Fields a plain update may change; geometry goes through the print-policy operations.
UPDATABLE_FIELDS = frozenset({"name", "x", "y", "rotation", "visible", "locked"})


def new_layer_id() -> str:
    return f"layer-{uuid.uuid4().hex[:12]}"


def release_resource(resource) -> None:
    """Default release: close the decoded image."""
    if resource is not None and hasattr(resource, "close"):
        resource.close()


def import_position(batch_index: int) -> tuple[float, float]:
    """Canvas origin for the n-th photo of an import batch (3-column grid)."""
    col = batch_index % IMPORT_COLUMNS
    row = batch_index // IMPORT_COLUMNS
    x = IMPORT_ORIGIN + col * (cm_to_px(DEFAULT_PRINT_SIZE.width_cm) + IMPORT_SPACING)
    y = IMPORT_ORIGIN + row * (cm_to_px(DEFAULT_PRINT_SIZE.height_cm) + IMPORT_SPACING)
    return x, y


def _restack(layers: list[Layer]) -> tuple[Layer, ...]:
    """Assign contiguous z_index values in list order."""
    return tuple(
        layer if layer.z_index == i else replace(layer, z_index=i)
        for i, layer in enumerate(layers)
    )


class LayerStack:
    """Owns the rules for adding, removing, restacking and resizing layers.

    *release* is called with a layer's resource when the last layer holding
    it is removed. *id_factory* makes ids for layers built from requests.
    """

    def __init__(self, release: Callable | None = None,
                 id_factory: Callable[[], str] | None = None):
        self._release = release or release_resource
        self._new_id = id_factory or new_layer_id

    # ------------------------------------------------------------------ #
    #  Creation and removal                                               #
    # ------------------------------------------------------------------ #

    def create_layer(self, request: LayerRequest) -> Layer:
        """Build a layer with default placement and a classic first-size policy."""
        w, h = request.original_width, request.original_height
        policy = default_policy(w, h, DEFAULT_PRINT_SIZE)
        geom = apply_classic(w, h, policy.size, policy.is_landscape)
        x, y = import_position(request.batch_index)
        return Layer(
            id=self._new_id(),
            name=request.name or "Untitled",
            image=request.image,
            original_width=w,
            original_height=h,
            thumbnail=request.thumbnail,
            resource=request.resource,
            x=x,
            y=y,
            policy=policy,
            crop=geom.crop,
            display_width=geom.display_width,
            display_height=geom.display_height,
        )

    def add(self, state: EditorState, layer: Layer) -> EditorState:
        """Append *layer* on top of the stack and select it."""
        layer = replace(layer, z_index=len(state.layers))
        logger.debug("Added layer %s (%s) at z=%d", layer.id, layer.name, layer.z_index)
        return replace(
            state,
            layers=_restack(state.ordered_layers() + [layer]),
            selected_layer_id=layer.id,
        )

    def add_request(self, state: EditorState, request: LayerRequest) -> EditorState:
        return self.add(state, self.create_layer(request))

    def remove(self, state: EditorState, layer_id: str) -> EditorState:
        """Drop a layer, release its resource and compact z_index."""
        layer = state.get_layer(layer_id)
        if layer is None:
            return state
        remaining = [l for l in state.ordered_layers() if l.id != layer_id]
        self._release_unreferenced([layer], remaining)
        logger.debug("Removed layer %s", layer_id)
        selected = None if state.selected_layer_id == layer_id else state.selected_layer_id
        return replace(state, layers=_restack(remaining), selected_layer_id=selected)

    def clear(self, state: EditorState) -> EditorState:
        """Remove every layer."""
        if not state.layers:
            return state
        self._release_unreferenced(state.ordered_layers(), [])
        return replace(state, layers=(), selected_layer_id=None)

    def _release_unreferenced(self, removed: list[Layer], remaining: list[Layer]) -> None:
        """Release each removed resource once, unless a remaining layer still holds it."""
        kept = {id(l.resource) for l in remaining if l.resource is not None}
        released = set()
        for layer in removed:
            res = layer.resource
            if res is None or id(res) in kept or id(res) in released:
                continue
            released.add(id(res))
            logger.debug("Releasing resource of layer %s", layer.id)
            self._release(res)

    # ------------------------------------------------------------------ #
    #  Placement and flags                                                #
    # ------------------------------------------------------------------ #

    def update(self, state: EditorState, layer_id: str, **changes) -> EditorState:
        """Merge placement/flag fields into a layer."""
        bad = set(changes) - UPDATABLE_FIELDS
        if bad:
            raise ValueError(f"Cannot update {sorted(bad)} directly; use the print-size operations")
        return self._replace_layer(state, layer_id, lambda layer: replace(layer, **changes))

    # ------------------------------------------------------------------ #
    #  Stacking order                                                     #
    # ------------------------------------------------------------------ #

    def reorder(self, state: EditorState, layer_id: str, direction: str) -> EditorState:
        """Swap a layer with its neighbor one step up (front) or down (back)."""
        ordered = state.ordered_layers()
        index = self._index_of(ordered, layer_id)
        if index is None:
            return state
        new_index = index + 1 if direction == UP else index - 1
        if new_index < 0 or new_index >= len(ordered):
            return state
        ordered[index], ordered[new_index] = ordered[new_index], ordered[index]
        return replace(state, layers=_restack(ordered))

    def move_to_front(self, state: EditorState, layer_id: str) -> EditorState:
        ordered = state.ordered_layers()
        index = self._index_of(ordered, layer_id)
        if index is None or index == len(ordered) - 1:
            return state
        layer = ordered.pop(index)
        return replace(state, layers=_restack(ordered + [layer]))

    def move_to_back(self, state: EditorState, layer_id: str) -> EditorState:
        ordered = state.ordered_layers()
        index = self._index_of(ordered, layer_id)
        if index is None or index == 0:
            return state
        layer = ordered.pop(index)
        return replace(state, layers=_restack([layer] + ordered))

    # ------------------------------------------------------------------ #
    #  Selection                                                          #
    # ------------------------------------------------------------------ #

    def select(self, state: EditorState, layer_id: str | None) -> EditorState:
        if state.selected_layer_id == layer_id:
            return state
        return replace(state, selected_layer_id=layer_id)

    def clear_selection(self, state: EditorState) -> EditorState:
        return self.select(state, None)

    # ------------------------------------------------------------------ #
    #  Print policy                                                       #
    # ------------------------------------------------------------------ #

    def set_print_size(self, state: EditorState, layer_id: str, size: PrintSize | None,
                       is_landscape: bool | None = None) -> EditorState:
        """Constrain a layer to *size* (None frees it), keeping its current mode."""
        def change(layer):
            policy = with_print_size(layer.policy, size, layer.original_width,
                                     layer.original_height, is_landscape)
            return self._with_policy(layer, policy)
        return self._replace_layer(state, layer_id, change)

    def set_print_mode(self, state: EditorState, layer_id: str, mode: str,
                       fixed_side: str = WIDTH) -> EditorState:
        def change(layer):
            return self._with_policy(layer, with_print_mode(layer.policy, mode, fixed_side))
        return self._replace_layer(state, layer_id, change)

    def toggle_orientation(self, state: EditorState, layer_id: str) -> EditorState:
        def change(layer):
            policy = toggled_orientation(layer.policy)
            if policy == layer.policy:
                return layer
            return self._with_policy(layer, policy)
        return self._replace_layer(state, layer_id, change)

    def set_crop(self, state: EditorState, layer_id: str, crop: Crop) -> EditorState:
        """Move or resize the crop of a classic layer; other policies never crop."""
        def change(layer):
            if not isinstance(layer.policy, Classic):
                return layer
            return replace(layer, crop=clamp_crop(crop))
        return self._replace_layer(state, layer_id, change)

    @staticmethod
    def _with_policy(layer: Layer, policy) -> Layer:
        """Recompute geometry for *policy*; a hand-edited crop is re-centered."""
        geom = apply_policy(layer.original_width, layer.original_height, policy)
        if (policy == layer.policy and geom.crop == layer.crop
                and geom.display_width == layer.display_width
                and geom.display_height == layer.display_height):
            return layer
        return replace(layer, policy=policy, crop=geom.crop,
                       display_width=geom.display_width,
                       display_height=geom.display_height)

    # ------------------------------------------------------------------ #
    #  Helpers                                                            #
    # ------------------------------------------------------------------ #

    @staticmethod
    def _index_of(ordered: list[Layer], layer_id: str) -> int | None:
        for i, layer in enumerate(ordered):
            if layer.id == layer_id:
                return i
        return None

    @staticmethod
    def _replace_layer(state: EditorState, layer_id: str, change) -> EditorState:
        """Apply *change* to one layer; return *state* itself if nothing changed."""
        layer = state.get_layer(layer_id)
        if layer is None:
            return state
        new_layer = change(layer)
        if new_layer is layer:
            return state
        layers = tuple(new_layer if l.id == layer_id else l for l in state.layers)
        return replace(state, layers=layers)
