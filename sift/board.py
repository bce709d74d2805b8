"""
SiftBoard: the one owned copy of the tree.

Presentation code keeps only a path into the tree and asks the board for
the box at that path on every render. Changes reach views through
subscribe(); nobody holds a private copy that could drift.

Every applied change re-arms a debounced snapshot save. A committed
fling on the spatial desk is two writes: the card is drawn off the desk
at once, and the real move lands after the fling animation. The second
write looks the card up again by id and is dropped if it moved on.
"""
import logging
import random
import threading
from typing import Callable, Dict, Optional, Sequence, Tuple

from .schema import Box, Card, Layout, default_tree
from .gestures import Action, Gesture, GestureClassifier, SETTLE
from .config import SiftConfig
from .scheduler import Debouncer, TimerScheduler
from .store import SnapshotStore, key_for
from . import engine
from . import paths

logger = logging.getLogger(__name__)


class SiftBoard:
    """Owns the box tree and routes gestures into the mutation engine."""

    def __init__(
        self,
        config: Optional[SiftConfig] = None,
        store: Optional[SnapshotStore] = None,
        scheduler=None,
        rng: Optional[random.Random] = None,
    ):
        self.cfg = config or SiftConfig()
        self.layout = self.cfg.layout_kind
        self.classifier = GestureClassifier(
            self.cfg.policy,
            threshold=self.cfg.swipe_threshold,
            flick_boost=self.cfg.flick_boost_threshold,
        )
        self.bounds = self.cfg.bounds
        self.store = store
        self.scheduler = scheduler or TimerScheduler()
        self.rng = rng
        self.subscribers: Dict[str, list] = {}  # event -> list of callbacks
        self.dragging_id: Optional[str] = None

        self._lock = threading.RLock()
        self._dirty = False  # root changed since the last save
        self._saver = Debouncer(
            self.scheduler, self.cfg.save_debounce_ms / 1000, self._save_now
        )
        self._root = self._load()

    @classmethod
    def from_config(cls, config: SiftConfig, scheduler=None) -> "SiftBoard":
        """Board backed by the SQLite store the config points at."""
        store = SnapshotStore(config.db_path, key=key_for(config.layout_kind))
        return cls(config=config, store=store, scheduler=scheduler)

    @property
    def fan_out(self) -> int:
        return self.classifier.fan_out

    @property
    def root(self) -> Box:
        return self._root

    def box(self, path: Sequence[int] = ()) -> Box:
        """The box at path, as of now."""
        return paths.resolve(self._root, path)

    # ── Subscriptions ────────────────────────────────────────────────────

    def subscribe(self, event: str, callback: Callable) -> None:
        """Register a callback for an event."""
        if event not in self.subscribers:
            self.subscribers[event] = []
        self.subscribers[event].append(callback)

    def unsubscribe(self, event: str, callback: Callable) -> None:
        callbacks = self.subscribers.get(event, [])
        if callback in callbacks:
            callbacks.remove(callback)

    def _emit(self, event: str, **kwargs) -> None:
        """Emit an event to all subscribers."""
        for callback in list(self.subscribers.get(event, [])):
            try:
                callback(**kwargs)
            except Exception as e:
                logger.error(f"Error in {event} callback: {e}")

    # ── Load / save ──────────────────────────────────────────────────────

    def _default(self) -> Box:
        return default_tree(self.fan_out, self.layout)

    def _load(self) -> Box:
        if self.store is None:
            return self._default()
        root = self.store.load()
        if root is None:
            logger.info("No saved tree, starting from default")
            return self._default()
        if len(root.children) != self.fan_out:
            logger.warning(
                f"Saved tree has {len(root.children)} boxes, expected {self.fan_out}; "
                "starting from default"
            )
            return self._default()
        logger.info(f"Loaded tree with {engine.count_cards(root)} cards")
        return root

    def _save_now(self) -> None:
        # Held across the write so reset() cannot clear the store mid-save
        with self._lock:
            if not self._dirty or self.store is None:
                return
            if self.store.save(self._root):
                self._dirty = False

    def flush(self) -> bool:
        """Write a pending save immediately. Returns True if one was pending."""
        return self._saver.flush()

    def close(self) -> None:
        self.flush()

    # ── Mutations ────────────────────────────────────────────────────────

    def _commit(self, new_root: Box, event: str, **kwargs) -> bool:
        if new_root is self._root:
            return False
        self._root = new_root
        self._dirty = True
        self._saver.trigger()
        self._emit(event, **kwargs)
        self._emit("tree_changed", root=new_root)
        return True

    def add_card(self, path: Sequence[int], text: str) -> Optional[Card]:
        """Create a card in the box at path. None for blank text."""
        with self._lock:
            card = engine.new_card(text, self.layout, self.rng, self.bounds)
            if card is None:
                return None
            new_root = engine.insert_card(self._root, path, card, self.layout)
            self._commit(new_root, "card_added", path=tuple(path), card=card)
            return card

    def reposition_card(self, path: Sequence[int], card_id: str, px: float, py: float) -> bool:
        with self._lock:
            new_root = engine.reposition_card(self._root, path, card_id, px, py, self.bounds)
            return self._commit(new_root, "card_repositioned", path=tuple(path), card_id=card_id)

    def drag(self, path: Sequence[int], card_id: str, px: float, py: float) -> bool:
        """Live drag update: the card follows the pointer with no animation."""
        with self._lock:
            self.dragging_id = card_id
            return self.reposition_card(path, card_id, px, py)

    def move_card(self, from_path: Sequence[int], card_id: str, to_path: Sequence[int]) -> bool:
        with self._lock:
            new_root = engine.move_card(self._root, from_path, card_id, to_path, self.layout)
            return self._commit(
                new_root, "card_moved",
                from_path=tuple(from_path), to_path=tuple(to_path), card_id=card_id,
            )

    def file_card(self, path: Sequence[int], card_id: str, child_index: int) -> bool:
        return self.move_card(path, card_id, paths.child_path(path, child_index))

    def keep_card(self, path: Sequence[int], card_id: str) -> bool:
        with self._lock:
            new_root = engine.keep_card(self._root, path, card_id)
            return self._commit(new_root, "card_moved", from_path=tuple(path), to_path=tuple(path), card_id=card_id)

    def pick_to_front(self, path: Sequence[int], card_id: str) -> bool:
        with self._lock:
            new_root = engine.pick_to_front(self._root, path, card_id)
            return self._commit(new_root, "card_picked", path=tuple(path), card_id=card_id)

    def reset(self) -> None:
        """Drop the saved snapshot and start over from the default tree."""
        with self._lock:
            self._saver.cancel()
            self._dirty = False
            if self.store is not None:
                self.store.clear()
            self.dragging_id = None
            self._root = self._default()
            logger.info("Board reset to default tree")
            self._emit("tree_reset", root=self._root)
            self._emit("tree_changed", root=self._root)

    # ── Gestures ─────────────────────────────────────────────────────────

    def release(
        self,
        path: Sequence[int],
        card_id: str,
        dx: float,
        dy: float,
        predicted: Optional[Tuple[float, float]] = None,
        drop: Optional[Tuple[float, float]] = None,
    ) -> Gesture:
        """
        Finish a drag of card_id inside the box at path.

        Args:
            dx, dy: release displacement in screen points
            predicted: displacement extrapolated with exit velocity
            drop: normalized desk position under the pointer at release

        Returns:
            The gesture that was acted on. SETTLE covers both a desk
            reposition and a cancelled gesture.
        """
        with self._lock:
            self.dragging_id = None
            box = paths.resolve(self._root, path)
            if box.index_of(card_id) is None:
                return SETTLE

            gesture = self.classifier.classify(dx, dy, predicted)
            if gesture.action == Action.FILE and gesture.child_index >= len(box.children):
                gesture = SETTLE

            if gesture.action == Action.FILE:
                self._fling(path, card_id, gesture)
            elif gesture.action == Action.KEEP:
                # Only a full sorting box keeps; leaf boxes ignore swipes
                if len(box.children) < self.fan_out:
                    return SETTLE
                self.keep_card(path, card_id)
            elif drop is not None and self.layout == Layout.SPATIAL:
                self.reposition_card(path, card_id, *drop)
            return gesture

    def _fling(self, path: Sequence[int], card_id: str, gesture: Gesture) -> None:
        from_path = tuple(path)
        to_path = paths.child_path(path, gesture.child_index)
        if self.layout == Layout.STACK:
            self.move_card(from_path, card_id, to_path)
            return

        new_root = engine.sink_card(self._root, from_path, card_id, gesture.direction)
        self._commit(
            new_root, "card_sinking",
            path=from_path, card_id=card_id, direction=gesture.direction,
        )
        self.scheduler.call_later(
            self.cfg.fling_duration_ms / 1000,
            self._complete_fling, from_path, card_id, to_path,
        )

    def _complete_fling(self, from_path: Tuple[int, ...], card_id: str, to_path: Tuple[int, ...]) -> None:
        with self._lock:
            source = paths.try_resolve(self._root, from_path)
            target = paths.try_resolve(self._root, to_path)
            if source is None or target is None or source.index_of(card_id) is None:
                logger.debug(f"Fling of {card_id} is stale, skipping move")
                return
            self.move_card(from_path, card_id, to_path)
