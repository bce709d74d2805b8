"""
Tests for SiftBoard: gesture routing, debounced saves, two-phase flings,
reset, and subscriptions.
"""
import threading

import pytest

from sift import engine
from sift.board import SiftBoard
from sift.engine import ENTRY_POINT
from sift.gestures import Action, Direction
from sift.schema import default_tree, Layout
from sift.store import SnapshotStore, key_for


def _shape(box):
    return (box.name, [c.text for c in box.cards], [_shape(b) for b in box.children])


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Construction
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def test_board_without_store_uses_default(make_config, scheduler):
    board = SiftBoard(make_config(), scheduler=scheduler)
    assert _shape(board.root) == _shape(default_tree(4))
    assert board.fan_out == 4
    assert board.box((3,)).name == "D"


def test_board_loads_saved_tree(make_config, make_store, scheduler):
    cfg = make_config()
    store = make_store(cfg)
    saved = engine.add_card(default_tree(4), (1,), "from last time")
    store.save(saved)

    board = SiftBoard(cfg, store=store, scheduler=scheduler)
    assert board.root == saved


def test_board_ignores_tree_with_wrong_fan_out(make_config, make_store, scheduler):
    cfg = make_config(gesture_policy="two_way")
    store = make_store(cfg)
    store.save(default_tree(4))

    board = SiftBoard(cfg, store=store, scheduler=scheduler)
    assert [b.name for b in board.root.children] == ["A", "B"]


def test_from_config_uses_layout_key(make_config, scheduler):
    cfg = make_config(layout="stack", gesture_policy="two_way")
    board = SiftBoard.from_config(cfg, scheduler=scheduler)
    assert board.store.key == "sift_root_v1"
    assert board.store.db_path == cfg.db_path


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# End-to-end scenarios
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def test_swipe_right_files_front_card_into_b(make_config, scheduler):
    """Two-way stack board: a (150, 0) swipe sends the front card to B"""
    board = SiftBoard(make_config(layout="stack", gesture_policy="two_way"), scheduler=scheduler)
    assert len(board.root.cards) == 2
    front = board.root.cards[0]

    gesture = board.release((), front.id, 150, 0)

    assert gesture.direction == Direction.RIGHT
    assert [c.id for c in board.box((1,)).cards] == [front.id]
    assert board.box((1,)).name == "B"
    assert len(board.root.cards) == 1
    assert board.box((0,)).cards == ()


def test_swipe_up_keeps_card_at_back(make_config, scheduler):
    board = SiftBoard(make_config(layout="stack", gesture_policy="two_way"), scheduler=scheduler)
    front, second = board.root.cards

    gesture = board.release((), front.id, 0, -200)

    assert gesture.action == Action.KEEP
    assert [c.id for c in board.root.cards] == [second.id, front.id]


def test_swipe_up_in_leaf_box_is_ignored(make_config, scheduler):
    """Leaf boxes do not sort, so an up swipe does not reorder them"""
    board = SiftBoard(make_config(layout="stack", gesture_policy="two_way"), scheduler=scheduler)
    first, second = board.root.cards
    board.file_card((), first.id, 0)
    board.file_card((), second.id, 0)
    before = board.root

    gesture = board.release((0,), second.id, 0, -200)

    assert gesture.action == Action.SETTLE
    assert board.root is before


def test_small_swipe_cancels(make_config, scheduler):
    board = SiftBoard(make_config(layout="stack", gesture_policy="two_way"), scheduler=scheduler)
    before = board.root

    gesture = board.release((), before.cards[0].id, 40, 30)

    assert gesture.action == Action.SETTLE
    assert board.root is before


def test_reset_restores_default_and_clears_store(make_config, make_store, scheduler):
    """Reset after edits gives the default tree and an empty store"""
    cfg = make_config()
    store = make_store(cfg)
    board = SiftBoard(cfg, store=store, scheduler=scheduler)

    board.add_card((), "one")
    board.file_card((), board.root.cards[0].id, 2)
    board.add_card((3,), "two")
    board.flush()
    assert store.load() is not None

    board.add_card((), "pending")
    board.reset()

    assert _shape(board.root) == _shape(default_tree(4))
    assert len(board.root.cards) == 3
    assert store.load() is None

    # The save that was pending before reset never lands
    scheduler.advance(1.0)
    assert store.load() is None

    reopened = SiftBoard(cfg, store=make_store(cfg), scheduler=scheduler)
    assert _shape(reopened.root) == _shape(default_tree(4))


class _BlockingStore(SnapshotStore):
    """Store whose save() parks until the test lets it finish."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.entered = threading.Event()
        self.release = threading.Event()

    def save(self, root):
        self.entered.set()
        self.release.wait(5)
        return super().save(root)


def test_reset_waits_for_save_in_flight(make_config, scheduler):
    """A save already writing when reset starts cannot bring the old tree back"""
    cfg = make_config()
    store = _BlockingStore(cfg.db_path, key=key_for(cfg.layout_kind))
    board = SiftBoard(cfg, store=store, scheduler=scheduler)
    board.add_card((), "before reset")

    saver = threading.Thread(target=scheduler.advance, args=(1.0,))
    saver.start()
    assert store.entered.wait(5)

    resetter = threading.Thread(target=board.reset)
    resetter.start()
    resetter.join(0.1)
    assert resetter.is_alive()

    store.release.set()
    saver.join(5)
    resetter.join(5)

    assert store.load() is None
    reopened = SiftBoard(cfg, store=store, scheduler=scheduler)
    assert _shape(reopened.root) == _shape(default_tree(4))


def test_save_fired_before_reset_writes_nothing(make_config, make_store, scheduler):
    """A debounce timer that fired just before reset finds nothing to save"""
    cfg = make_config()
    store = make_store(cfg)
    board = SiftBoard(cfg, store=store, scheduler=scheduler)

    board.add_card((), "before reset")
    board.reset()
    board._save_now()

    assert store.saved == []
    assert store.load() is None


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Debounced persistence
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def test_burst_of_mutations_saves_once(make_config, make_store, scheduler):
    """N changes inside the debounce window give one snapshot of the last state"""
    cfg = make_config()
    store = make_store(cfg)
    board = SiftBoard(cfg, store=store, scheduler=scheduler)

    for i in range(5):
        board.add_card((), f"card {i}")
        scheduler.advance(0.1)
    assert store.saved == []

    scheduler.advance(0.2)
    assert len(store.saved) == 1
    assert store.saved[0] is board.root
    assert store.load() == board.root


def test_each_change_rearms_the_delay(make_config, make_store, scheduler):
    cfg = make_config()
    store = make_store(cfg)
    board = SiftBoard(cfg, store=store, scheduler=scheduler)

    board.add_card((), "a")
    scheduler.advance(0.2)
    board.add_card((), "b")
    scheduler.advance(0.2)
    assert store.saved == []
    scheduler.advance(0.1)
    assert len(store.saved) == 1


def test_separate_bursts_save_separately(make_config, make_store, scheduler):
    cfg = make_config()
    store = make_store(cfg)
    board = SiftBoard(cfg, store=store, scheduler=scheduler)

    board.add_card((), "a")
    scheduler.advance(0.5)
    board.add_card((), "b")
    scheduler.advance(0.5)
    assert len(store.saved) == 2


def test_noop_does_not_schedule_save(make_config, make_store, scheduler):
    cfg = make_config()
    store = make_store(cfg)
    board = SiftBoard(cfg, store=store, scheduler=scheduler)

    assert board.add_card((), "   ") is None
    assert board.move_card((), "gone", (1,)) is False
    assert scheduler.pending == []


def test_flush_saves_pending_now(make_config, make_store, scheduler):
    cfg = make_config()
    store = make_store(cfg)
    board = SiftBoard(cfg, store=store, scheduler=scheduler)

    assert board.flush() is False
    board.add_card((), "a")
    assert board.flush() is True
    assert store.load() == board.root

    scheduler.advance(1.0)
    assert len(store.saved) == 1


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Spatial desk gestures
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class TestSpatialBoard:

    @pytest.fixture(autouse=True)
    def _board(self, make_config, scheduler):
        self.scheduler = scheduler
        self.board = SiftBoard(make_config(), scheduler=scheduler)
        self.card = self.board.root.cards[0]

    def test_drag_repositions_immediately(self):
        assert self.board.drag((), self.card.id, 0.2, 0.7)
        assert self.board.dragging_id == self.card.id
        assert self.board.root.card(self.card.id).position == (0.2, 0.7)

    def test_drag_is_clamped(self):
        self.board.drag((), self.card.id, 0.99, 0.99)
        px, py = self.board.root.card(self.card.id).position
        assert px <= 0.92 + 1e-9 and py <= 0.80 + 1e-9

    def test_slow_release_settles_at_drop(self):
        self.board.drag((), self.card.id, 0.3, 0.4)
        gesture = self.board.release((), self.card.id, 40, 20, drop=(0.31, 0.42))
        assert gesture.action == Action.SETTLE
        assert self.board.dragging_id is None
        assert self.board.root.card(self.card.id).position == (0.31, 0.42)

    def test_fling_is_two_phase(self):
        """Card is drawn off the desk first and moves after the fling delay"""
        gesture = self.board.release((), self.card.id, 150, 0)
        assert gesture.child_index == 1

        sunk = self.board.root.card(self.card.id)
        assert sunk is not None
        assert sunk.px > 1

        self.scheduler.advance(0.2)
        assert self.board.root.index_of(self.card.id) is None
        moved = self.board.box((1,)).card(self.card.id)
        assert moved.position == ENTRY_POINT

    def test_fling_after_reset_is_dropped(self):
        self.board.release((), self.card.id, -150, 0)
        self.board.reset()
        self.scheduler.advance(0.2)
        assert _shape(self.board.root) == _shape(default_tree(4))
        assert self.board.box((0,)).cards == ()

    def test_fling_after_card_moved_elsewhere_is_dropped(self):
        self.board.release((), self.card.id, 0, 150)
        self.board.move_card((), self.card.id, (0,))
        self.scheduler.advance(0.2)
        assert [c.id for c in self.board.box((0,)).cards] == [self.card.id]
        assert self.board.box((3,)).cards == ()
        assert len(set(engine.card_ids(self.board.root))) == engine.count_cards(self.board.root)

    def test_fling_from_leaf_box_settles(self):
        """A box with no children has nowhere to file into"""
        self.board.move_card((), self.card.id, (2,))
        before = self.board.root
        scheduled = len(self.scheduler.pending)
        gesture = self.board.release((2,), self.card.id, 150, 0)
        assert gesture.action == Action.SETTLE
        assert self.board.root is before
        assert len(self.scheduler.pending) == scheduled

    def test_release_of_unknown_card_does_nothing(self):
        before = self.board.root
        gesture = self.board.release((), "gone", 300, 0)
        assert not gesture.committed
        assert self.board.root is before

    def test_add_card_returns_created_card(self):
        card = self.board.add_card((), "note")
        assert card.text == "note"
        assert self.board.root.cards[-1] == card

    def test_pick_to_front(self):
        last = self.board.root.cards[-1]
        assert self.board.pick_to_front((), last.id)
        assert self.board.root.cards[0].id == last.id


def test_stack_fling_moves_at_once(make_config, scheduler):
    board = SiftBoard(make_config(layout="stack"), scheduler=scheduler)
    card = board.root.cards[0]
    board.release((), card.id, 0, -200)
    assert board.box((2,)).cards[0].id == card.id
    assert board.box((2,)).cards[0].position is None


def test_flick_policy_board(make_config, scheduler):
    board = SiftBoard(make_config(gesture_policy="flick_four_way"), scheduler=scheduler)
    card = board.root.cards[0]

    slow = board.release((), card.id, 400, 0, predicted=(420, 0), drop=(0.8, 0.3))
    assert slow.action == Action.SETTLE
    assert board.root.card(card.id).position == (0.8, 0.3)

    fast = board.release((), card.id, 80, 0, predicted=(500, 0))
    assert fast.action == Action.FILE
    scheduler.advance(0.2)
    assert board.box((1,)).card(card.id) is not None


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Subscriptions
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def test_subscribers_see_every_change(make_config, scheduler):
    board = SiftBoard(make_config(), scheduler=scheduler)
    seen = []
    board.subscribe("tree_changed", lambda root: seen.append(root))

    card = board.add_card((), "x")
    board.move_card((), card.id, (1,))
    board.reset()

    assert len(seen) == 3
    assert seen[-1] is board.root


def test_specific_events(make_config, scheduler):
    board = SiftBoard(make_config(), scheduler=scheduler)
    moved = []
    board.subscribe("card_moved", lambda **kw: moved.append(kw))

    card = board.root.cards[0]
    board.file_card((), card.id, 3)

    assert moved == [{"from_path": (), "to_path": (3,), "card_id": card.id}]


def test_failing_subscriber_does_not_block_change(make_config, scheduler, caplog):
    board = SiftBoard(make_config(), scheduler=scheduler)

    def boom(**kwargs):
        raise RuntimeError("view crashed")

    board.subscribe("card_added", boom)
    card = board.add_card((), "still added")

    assert board.root.cards[-1] == card
    assert "view crashed" in caplog.text


def test_unsubscribe(make_config, scheduler):
    board = SiftBoard(make_config(), scheduler=scheduler)
    seen = []
    cb = lambda root: seen.append(root)
    board.subscribe("tree_changed", cb)
    board.unsubscribe("tree_changed", cb)
    board.add_card((), "x")
    assert seen == []


def test_store_layout_matches_board(make_config, make_store, scheduler):
    cfg = make_config(layout="stack", gesture_policy="two_way")
    store = make_store(cfg)
    board = SiftBoard(cfg, store=store, scheduler=scheduler)
    board.add_card((), "top")
    board.flush()

    assert SnapshotStore(cfg.db_path).load() is None
    loaded = store.load()
    assert loaded.cards[0].text == "top"
    assert board.layout == Layout.STACK
