"""Unit tests for LayerStack operations."""
import itertools
import random

import pytest

from geometry import apply_classic
from layer_stack import DOWN, UP, LayerStack, import_position, release_resource
from models import (
    Classic, Crop, EditorState, FULL_CROP, LayerRequest, Original, PrintSize, Unconstrained,
    CLASSIC, DEFAULT_PRINT_SIZE, HEIGHT, MAX_PREVIEW_SIZE, ORIGINAL, WIDTH, lookup_print_size,
)

SQUARE = PrintSize('10x10', '10 × 10', 10, 10, 3.94, 3.94)


class Resource:
    """Stand-in for a decoded image handle."""

    def __init__(self):
        self.closed = 0

    def close(self):
        self.closed += 1


def _stack(released=None):
    counter = itertools.count()
    release = released.append if released is not None else (lambda res: None)
    return LayerStack(release=release, id_factory=lambda: f'layer-{next(counter)}')


def _request(index=0, width=400, height=300, resource=None):
    return LayerRequest(
        name=f'photo{index}.jpg', image=object(), original_width=width,
        original_height=height, resource=resource if resource is not None else Resource(),
        batch_index=index,
    )


def _state(stack, n, **kwargs):
    state = EditorState()
    for i in range(n):
        state = stack.add_request(state, _request(i, **kwargs))
    return state


def _order(state):
    return [l.id for l in state.ordered_layers()]


def _z_is_contiguous(state):
    return sorted(l.z_index for l in state.layers) == list(range(len(state.layers)))


class TestCreate:

    def test_landscape_defaults(self):
        layer = _stack().create_layer(_request(0, 400, 300))
        assert layer.policy == Classic(DEFAULT_PRINT_SIZE, True)
        assert (layer.display_width, layer.display_height) == (156, 108)
        assert layer.crop == apply_classic(400, 300, DEFAULT_PRINT_SIZE, True).crop
        assert (layer.x, layer.y) == (50, 50)
        assert layer.rotation == 0
        assert layer.visible and not layer.locked

    def test_portrait_defaults(self):
        layer = _stack().create_layer(_request(0, 300, 400))
        assert layer.policy == Classic(DEFAULT_PRINT_SIZE, False)
        assert (layer.display_width, layer.display_height) == (108, 156)

    def test_import_grid(self):
        assert import_position(0) == (50, 50)
        assert import_position(1) == (178, 50)
        assert import_position(3) == (50, 226)
        assert import_position(4) == (178, 226)

    def test_add_puts_layer_on_top_and_selects(self):
        stack = _stack()
        state = _state(stack, 3)
        assert _order(state) == ['layer-0', 'layer-1', 'layer-2']
        assert state.get_layer('layer-2').z_index == 2
        assert state.selected_layer_id == 'layer-2'


class TestStacking:

    def test_move_to_front(self):
        stack = _stack()
        state = stack.move_to_front(_state(stack, 5), 'layer-1')
        assert _order(state) == ['layer-0', 'layer-2', 'layer-3', 'layer-4', 'layer-1']
        assert state.get_layer('layer-1').z_index == 4

    def test_move_to_back(self):
        stack = _stack()
        state = stack.move_to_back(_state(stack, 4), 'layer-2')
        assert _order(state) == ['layer-2', 'layer-0', 'layer-1', 'layer-3']

    def test_reorder_swaps_neighbors(self):
        stack = _stack()
        state = _state(stack, 3)
        assert _order(stack.reorder(state, 'layer-0', UP)) == ['layer-1', 'layer-0', 'layer-2']
        assert _order(stack.reorder(state, 'layer-2', DOWN)) == ['layer-0', 'layer-2', 'layer-1']

    def test_boundary_moves_return_same_state(self):
        stack = _stack()
        state = _state(stack, 3)
        assert stack.move_to_front(state, 'layer-2') is state
        assert stack.move_to_back(state, 'layer-0') is state
        assert stack.reorder(state, 'layer-2', UP) is state
        assert stack.reorder(state, 'layer-0', DOWN) is state

    def test_unknown_id_is_noop(self):
        stack = _stack()
        state = _state(stack, 2)
        assert stack.move_to_front(state, 'nope') is state
        assert stack.reorder(state, 'nope', UP) is state
        assert stack.update(state, 'nope', x=5) is state
        assert stack.toggle_orientation(state, 'nope') is state

    def test_z_stays_contiguous_under_random_operations(self):
        stack = _stack()
        state = _state(stack, 6)
        rng = random.Random(7)
        next_index = 6
        for _ in range(200):
            ids = [l.id for l in state.layers] or ['missing']
            target = rng.choice(ids)
            op = rng.randrange(5)
            if op == 0:
                state = stack.move_to_front(state, target)
            elif op == 1:
                state = stack.move_to_back(state, target)
            elif op == 2:
                state = stack.reorder(state, target, rng.choice([UP, DOWN]))
            elif op == 3 and len(state.layers) > 1:
                state = stack.remove(state, target)
            else:
                state = stack.add_request(state, _request(next_index))
                next_index += 1
            assert _z_is_contiguous(state)


class TestRemove:

    def test_remove_compacts_and_releases(self):
        released = []
        stack = _stack(released)
        state = _state(stack, 3)
        resource = state.get_layer('layer-1').resource
        state = stack.remove(state, 'layer-1')
        assert _order(state) == ['layer-0', 'layer-2']
        assert _z_is_contiguous(state)
        assert released == [resource]

    def test_remove_clears_selection_of_removed_layer(self):
        stack = _stack()
        state = _state(stack, 2)
        assert stack.remove(state, 'layer-1').selected_layer_id is None
        assert stack.remove(state, 'layer-0').selected_layer_id == 'layer-1'

    def test_remove_unknown_id_releases_nothing(self):
        released = []
        stack = _stack(released)
        state = _state(stack, 2)
        assert stack.remove(state, 'nope') is state
        assert released == []

    def test_shared_resource_released_with_last_holder(self):
        released = []
        stack = _stack(released)
        shared = Resource()
        state = EditorState()
        state = stack.add_request(state, _request(0, resource=shared))
        state = stack.add_request(state, _request(1, resource=shared))
        state = stack.remove(state, 'layer-0')
        assert released == []
        state = stack.remove(state, 'layer-1')
        assert released == [shared]

    def test_clear_releases_each_resource_once(self):
        released = []
        stack = _stack(released)
        shared = Resource()
        state = EditorState()
        for i in range(3):
            state = stack.add_request(state, _request(i, resource=shared))
        state = stack.add_request(state, _request(3))
        state = stack.clear(state)
        assert state.layers == ()
        assert state.selected_layer_id is None
        assert len(released) == 2
        assert released.count(shared) == 1

    def test_default_release_closes(self):
        resource = Resource()
        release_resource(resource)
        release_resource(None)
        assert resource.closed == 1


class TestUpdateAndSelect:

    def test_update_placement(self):
        stack = _stack()
        state = stack.update(_state(stack, 1), 'layer-0', x=10, y=20, rotation=45, locked=True)
        layer = state.get_layer('layer-0')
        assert (layer.x, layer.y, layer.rotation, layer.locked) == (10, 20, 45, True)

    def test_update_rejects_geometry_fields(self):
        stack = _stack()
        state = _state(stack, 1)
        with pytest.raises(ValueError):
            stack.update(state, 'layer-0', display_width=10)
        with pytest.raises(ValueError):
            stack.update(state, 'layer-0', z_index=3)

    def test_select_and_clear(self):
        stack = _stack()
        state = _state(stack, 2)
        state = stack.select(state, 'layer-0')
        assert state.selected_layer_id == 'layer-0'
        assert stack.select(state, 'layer-0') is state
        assert stack.clear_selection(state).selected_layer_id is None

    def test_hidden_selection_is_not_active(self):
        stack = _stack()
        state = stack.update(_state(stack, 1), 'layer-0', visible=False)
        assert state.selected_layer is not None
        assert state.active_layer is None


class TestPrintPolicy:

    def _one(self, width=3000, height=2000):
        stack = _stack()
        state = stack.add_request(EditorState(), _request(0, width, height))
        return stack, state

    def test_free_size(self):
        stack, state = self._one()
        layer = stack.set_print_size(state, 'layer-0', None).get_layer('layer-0')
        assert layer.policy == Unconstrained()
        assert layer.crop == FULL_CROP
        assert max(layer.display_width, layer.display_height) <= MAX_PREVIEW_SIZE

    def test_free_then_size_is_classic(self):
        stack, state = self._one()
        state = stack.set_print_size(state, 'layer-0', None)
        size = lookup_print_size('10x15')
        layer = stack.set_print_size(state, 'layer-0', size).get_layer('layer-0')
        assert layer.policy == Classic(size, True)
        assert (layer.display_width, layer.display_height) == (180, 120)

    def test_mode_transitions(self):
        stack, state = self._one()
        state = stack.set_print_mode(state, 'layer-0', ORIGINAL, HEIGHT)
        layer = state.get_layer('layer-0')
        assert layer.print_mode == ORIGINAL
        assert layer.fixed_side == HEIGHT
        assert layer.crop == FULL_CROP

        state = stack.toggle_orientation(state, 'layer-0')
        assert state.get_layer('layer-0').fixed_side == WIDTH

        state = stack.set_print_mode(state, 'layer-0', CLASSIC)
        assert state.get_layer('layer-0').print_mode == CLASSIC

    def test_size_change_keeps_original_mode(self):
        stack, state = self._one()
        state = stack.set_print_mode(state, 'layer-0', ORIGINAL, HEIGHT)
        size = lookup_print_size('13x18')
        layer = stack.set_print_size(state, 'layer-0', size).get_layer('layer-0')
        assert layer.policy == Original(size, True, HEIGHT)

    def test_mode_on_free_layer_is_noop(self):
        stack, state = self._one()
        state = stack.set_print_size(state, 'layer-0', None)
        assert stack.set_print_mode(state, 'layer-0', ORIGINAL) is state

    @pytest.mark.parametrize('mode', [CLASSIC, ORIGINAL])
    def test_toggle_twice_restores_display(self, mode):
        stack, state = self._one()
        state = stack.set_print_mode(state, 'layer-0', mode)
        before = state.get_layer('layer-0')
        state = stack.toggle_orientation(stack.toggle_orientation(state, 'layer-0'), 'layer-0')
        after = state.get_layer('layer-0')
        assert after.display_width == pytest.approx(before.display_width)
        assert after.display_height == pytest.approx(before.display_height)

    def test_original_classic_original_round_trip(self):
        stack, state = self._one()
        state = stack.set_print_mode(state, 'layer-0', ORIGINAL, HEIGHT)
        before = state.get_layer('layer-0')
        state = stack.set_print_mode(state, 'layer-0', CLASSIC)
        state = stack.set_print_mode(state, 'layer-0', ORIGINAL, HEIGHT)
        after = state.get_layer('layer-0')
        assert (after.display_width, after.display_height) == \
            pytest.approx((before.display_width, before.display_height))

    def test_square_toggle_is_noop(self):
        stack, state = self._one()
        state = stack.set_print_size(state, 'layer-0', SQUARE)
        assert stack.toggle_orientation(state, 'layer-0') is state

    def test_policy_change_keeps_placement(self):
        stack, state = self._one()
        state = stack.update(state, 'layer-0', x=12, y=34, rotation=90)
        state = stack.set_print_size(state, 'layer-0', None)
        layer = state.get_layer('layer-0')
        assert (layer.x, layer.y, layer.rotation) == (12, 34, 90)

    def test_set_crop_clamps_classic(self):
        stack, state = self._one()
        state = stack.set_crop(state, 'layer-0', Crop(0.8, 0, 0.5, 1))
        assert state.get_layer('layer-0').crop == Crop(0.5, 0, 0.5, 1)

    def test_choosing_same_size_recenters_crop(self):
        stack, state = self._one()
        centered = state.get_layer('layer-0').crop
        state = stack.set_crop(state, 'layer-0', Crop(0, 0, centered.width, centered.height))
        assert state.get_layer('layer-0').crop != centered
        state = stack.set_print_size(state, 'layer-0', DEFAULT_PRINT_SIZE)
        assert state.get_layer('layer-0').crop == centered

    def test_choosing_same_mode_recenters_crop(self):
        stack, state = self._one()
        centered = state.get_layer('layer-0').crop
        state = stack.set_crop(state, 'layer-0', Crop(0, 0, centered.width, centered.height))
        state = stack.set_print_mode(state, 'layer-0', CLASSIC)
        assert state.get_layer('layer-0').crop == centered

    def test_same_size_without_edit_is_noop(self):
        stack, state = self._one()
        assert stack.set_print_size(state, 'layer-0', DEFAULT_PRINT_SIZE) is state

    def test_square_toggle_keeps_edited_crop(self):
        stack, state = self._one()
        state = stack.set_print_size(state, 'layer-0', SQUARE)
        state = stack.set_crop(state, 'layer-0', Crop(0, 0, 2 / 3, 1))
        assert stack.toggle_orientation(state, 'layer-0') is state

    def test_set_crop_ignored_for_original(self):
        stack, state = self._one()
        state = stack.set_print_mode(state, 'layer-0', ORIGINAL)
        assert stack.set_crop(state, 'layer-0', Crop(0, 0, 0.5, 0.5)) is state
