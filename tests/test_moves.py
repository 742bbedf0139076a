"""
Tests for the bulk move coordinator and the item list reducer.
"""
import pytest

from stash.constants import MOVE_SESSION_KEY
from stash.exceptions import NotFound, PersistenceFailure, ValidationError
from stash.models import Box, Item
from stash.moves import MoveSession, load_move_session, save_move_session
from stash.reducers import ItemRemoved, ItemSaved, ItemsMoved, reduce_items, settle


class TestMoveValidation:
    """Each invalid request has its own message."""

    def test_empty_selection(self, user, box, other_box):
        move = MoveSession(box_id=box.pk, move_mode=True, destination=other_box.pk)
        with pytest.raises(ValidationError, match="Select at least one item."):
            move.request_move(user.pk)

    def test_no_destination(self, user, box, items):
        move = MoveSession(box_id=box.pk, move_mode=True, selected={items[0].pk})
        with pytest.raises(ValidationError, match="Choose a destination box."):
            move.request_move(user.pk)

    def test_destination_is_source(self, user, box, items):
        move = MoveSession(box_id=box.pk, move_mode=True, selected={items[0].pk}, destination=box.pk)
        with pytest.raises(ValidationError, match="Destination must be a different box."):
            move.request_move(user.pk)

    def test_destination_missing(self, user, other_user, box, items):
        foreign = Box.objects.create(owner=other_user, code="BOX-777")
        move = MoveSession(box_id=box.pk, move_mode=True, selected={items[0].pk}, destination=foreign.pk)
        with pytest.raises(NotFound, match="Destination box not found."):
            move.request_move(user.pk)

    def test_move_mode_off(self, user, box, other_box, items):
        move = MoveSession(box_id=box.pk, selected={items[0].pk}, destination=other_box.pk)
        with pytest.raises(ValidationError, match="Turn on move mode first."):
            move.request_move(user.pk)
        with pytest.raises(ValidationError):
            move.confirm_move(user.pk)
        assert Item.objects.get(pk=items[0].pk).box_id == box.pk

    @pytest.mark.parametrize("value", ["BOX-002", "two", object()])
    def test_unparseable_destination(self, box, value):
        move = MoveSession(box_id=box.pk, move_mode=True, destination=7)
        with pytest.raises(ValidationError, match="Choose a destination box."):
            move.set_destination(value)
        assert move.destination == 7

    def test_valid_plan(self, user, box, other_box, items):
        move = MoveSession(box_id=box.pk, move_mode=True, destination=other_box.pk)
        move.select_all([i.pk for i in items])
        plan = move.request_move(user.pk)
        assert plan.count == 3
        assert plan.destination.code == "BOX-002"
        assert plan.item_ids == sorted(i.pk for i in items)


class TestMoveSession:

    def test_toggle_select(self, box):
        move = MoveSession(box_id=box.pk)
        move.toggle_select(5)
        move.toggle_select("6")
        move.toggle_select(5)
        assert move.selected == {6}

    def test_exit_resets_everything(self, box):
        move = MoveSession(box_id=box.pk, move_mode=True, selected={1, 2}, destination=9)
        move.exit()
        assert (move.move_mode, move.selected, move.destination) == (False, set(), None)

    def test_confirm_moves_and_resets(self, user, box, other_box, items):
        move = MoveSession(box_id=box.pk, move_mode=True, selected={items[0].pk, items[1].pk})
        move.set_destination(str(other_box.pk))

        plan = move.confirm_move(user.pk)

        assert plan.count == 2
        assert Item.objects.get(pk=items[0].pk).box_id == other_box.pk
        assert Item.objects.get(pk=items[1].pk).box_id == other_box.pk
        assert Item.objects.get(pk=items[2].pk).box_id == box.pk
        assert move.selected == set()
        assert move.destination is None
        assert move.move_mode

    def test_failed_confirm_keeps_selection(self, user, box, other_box, items):
        """A move that cannot apply to every item changes nothing and keeps the selection."""
        stray = Item.objects.create(owner=user, box=other_box, name="Stray")
        move = MoveSession(box_id=box.pk, move_mode=True, selected={items[0].pk, stray.pk}, destination=other_box.pk)

        with pytest.raises(PersistenceFailure):
            move.confirm_move(user.pk)

        assert move.selected == {items[0].pk, stray.pk}
        assert move.destination == other_box.pk
        assert Item.objects.get(pk=items[0].pk).box_id == box.pk

    def test_session_roundtrip_per_box(self, box, other_box):
        session = {}
        move = load_move_session(session, box.pk)
        move.enter()
        move.toggle_select(3)
        save_move_session(session, move)

        assert load_move_session(session, box.pk).selected == {3}
        assert session[MOVE_SESSION_KEY]["box_id"] == box.pk

    def test_navigating_to_other_box_resets(self, box, other_box):
        session = {}
        move = load_move_session(session, box.pk)
        move.enter()
        move.toggle_select(3)
        save_move_session(session, move)

        fresh = load_move_session(session, other_box.pk)
        assert not fresh.move_mode
        assert fresh.selected == set()


def _row(pk, box_id, created):
    return {"id": pk, "box_id": box_id, "name": f"item {pk}", "created_at": created}


class TestReducer:
    """Displayed list follows store results; drift triggers a re-fetch."""

    def test_saved_item_is_inserted_newest_first(self):
        items = [_row(1, 10, "2025-01-01T00:00:00")]
        new, clean = reduce_items(items, 10, ItemSaved(_row(2, 10, "2025-01-02T00:00:00")))
        assert clean
        assert [r["id"] for r in new] == [2, 1]

    def test_saved_item_replaces_existing(self):
        items = [_row(1, 10, "2025-01-01T00:00:00")]
        updated = dict(items[0], name="renamed")
        new, clean = reduce_items(items, 10, ItemSaved(updated))
        assert clean
        assert new == [updated]

    def test_removed_item(self):
        items = [_row(1, 10, "a"), _row(2, 10, "b")]
        new, clean = reduce_items(items, 10, ItemRemoved(1))
        assert clean
        assert [r["id"] for r in new] == [2]

    def test_unknown_removal_is_unclean(self):
        new, clean = reduce_items([_row(1, 10, "a")], 10, ItemRemoved(99))
        assert not clean

    def test_moved_out(self):
        items = [_row(1, 10, "a"), _row(2, 10, "b"), _row(3, 10, "c")]
        new, clean = reduce_items(items, 10, ItemsMoved(item_ids=(1, 3), destination_box_id=11))
        assert clean
        assert [r["id"] for r in new] == [2]

    def test_moved_in_requires_refetch(self):
        _, clean = reduce_items([], 11, ItemsMoved(item_ids=(1,), destination_box_id=11))
        assert not clean

    def test_settle_uses_local_result_when_clean(self):
        items = [_row(1, 10, "a"), _row(2, 10, "b")]

        def refetch():
            raise AssertionError("should not re-fetch")

        assert [r["id"] for r in settle(items, 10, ItemRemoved(2), refetch)] == [1]

    def test_settle_refetches_on_mismatch(self):
        fresh = [_row(7, 10, "z")]
        assert settle([_row(1, 10, "a")], 10, ItemRemoved(5), lambda: fresh) == fresh

    def test_unknown_event(self):
        with pytest.raises(TypeError):
            reduce_items([], 1, object())
