"""
Mutation engine: the operations that change a sift tree.

Every operation takes a root, reads the target box through path
addressing, computes the new box and writes it back. A call that changes
nothing returns the very same root object, so callers detect no-ops with
an identity check.

Only move_card() changes which box owns a card.
"""
import random
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from .schema import Box, Card, Layout
from .gestures import Direction
from . import paths

# Where a card lands in a box it was just moved into
ENTRY_POINT = (0.50, 0.35)

# New cards scatter around the entry point
JITTER_X = 0.14
JITTER_Y = 0.10

# How far past its spot a flung card is drawn before the move lands
SINK_DISTANCE = 1.0


@dataclass(frozen=True)
class DeskBounds:
    """Visible desk region in normalized coordinates."""
    margin: float = 0.08
    input_bar_height: float = 0.12     # reserved strip along the bottom edge

    @property
    def min_x(self) -> float:
        return self.margin

    @property
    def max_x(self) -> float:
        return 1.0 - self.margin

    @property
    def min_y(self) -> float:
        return self.margin

    @property
    def max_y(self) -> float:
        return 1.0 - self.input_bar_height - self.margin

    def clamp(self, px: float, py: float) -> Tuple[float, float]:
        return (
            min(max(px, self.min_x), self.max_x),
            min(max(py, self.min_y), self.max_y),
        )


DEFAULT_BOUNDS = DeskBounds()


def new_card(
    text: str,
    layout: Layout = Layout.SPATIAL,
    rng: Optional[random.Random] = None,
    bounds: DeskBounds = DEFAULT_BOUNDS,
) -> Optional[Card]:
    """Build a card from user input. None if the text is blank."""
    text = text.strip()
    if not text:
        return None
    if layout == Layout.STACK:
        return Card(text=text)

    rng = rng or random
    px = ENTRY_POINT[0] + rng.uniform(-JITTER_X, JITTER_X)
    py = ENTRY_POINT[1] + rng.uniform(-JITTER_Y, JITTER_Y)
    px, py = bounds.clamp(px, py)
    return Card(text=text, px=px, py=py)


def insert_card(root: Box, path: Sequence[int], card: Card, layout: Layout = Layout.SPATIAL) -> Box:
    """Place an existing card into the box at path."""
    def _insert(box: Box) -> Box:
        if layout == Layout.STACK:
            return box.with_cards((card,) + box.cards)
        return box.with_cards(box.cards + (card,))
    return paths.update(root, path, _insert)


def add_card(
    root: Box,
    path: Sequence[int],
    text: str,
    layout: Layout = Layout.SPATIAL,
    rng: Optional[random.Random] = None,
    bounds: DeskBounds = DEFAULT_BOUNDS,
) -> Box:
    """Create a card from text in the box at path. Blank text is a no-op."""
    card = new_card(text, layout, rng, bounds)
    if card is None:
        return root
    return insert_card(root, path, card, layout)


def reposition_card(
    root: Box,
    path: Sequence[int],
    card_id: str,
    px: float,
    py: float,
    bounds: DeskBounds = DEFAULT_BOUNDS,
) -> Box:
    """Overwrite a card's desk position, clamped to the visible desk."""
    px, py = bounds.clamp(px, py)

    def _move(box: Box) -> Box:
        i = box.index_of(card_id)
        if i is None:
            return box
        card = box.cards[i]
        if card.position == (px, py):
            return box
        cards = list(box.cards)
        cards[i] = card.placed_at(px, py)
        return box.with_cards(cards)

    return paths.update(root, path, _move)


def move_card(
    root: Box,
    from_path: Sequence[int],
    card_id: str,
    to_path: Sequence[int],
    layout: Layout = Layout.SPATIAL,
) -> Box:
    """
    Take a card out of one box and append it to another.

    The destination is resolved before anything changes, so a bad path
    raises without leaving the card half moved. A card missing from the
    source box makes this a no-op.
    """
    paths.resolve(root, to_path)
    source = paths.resolve(root, from_path)
    i = source.index_of(card_id)
    if i is None:
        return root

    card = source.cards[i]
    if layout == Layout.SPATIAL:
        card = card.placed_at(*ENTRY_POINT)

    remaining = source.cards[:i] + source.cards[i + 1:]
    root = paths.replace(root, from_path, source.with_cards(remaining))
    return paths.update(root, to_path, lambda box: box.with_cards(box.cards + (card,)))


def file_card(
    root: Box,
    path: Sequence[int],
    card_id: str,
    child_index: int,
    layout: Layout = Layout.SPATIAL,
) -> Box:
    return move_card(root, path, card_id, paths.child_path(path, child_index), layout)


def keep_card(root: Box, path: Sequence[int], card_id: str) -> Box:
    """Send a card to the back of its own box."""
    def _keep(box: Box) -> Box:
        i = box.index_of(card_id)
        if i is None or i == len(box.cards) - 1:
            return box
        card = box.cards[i]
        return box.with_cards(box.cards[:i] + box.cards[i + 1:] + (card,))
    return paths.update(root, path, _keep)


def pick_to_front(root: Box, path: Sequence[int], card_id: str) -> Box:
    """Make a card the current one (index 0) without changing its owner."""
    def _pick(box: Box) -> Box:
        i = box.index_of(card_id)
        if not i:
            return box
        card = box.cards[i]
        return box.with_cards((card,) + box.cards[:i] + box.cards[i + 1:])
    return paths.update(root, path, _pick)


def sink_card(root: Box, path: Sequence[int], card_id: str, direction: Direction) -> Box:
    """
    First half of a fling: push the card off the desk toward its target.

    The new position lies outside the desk and is not clamped.
    Cards without a position (stack layout) are left alone.
    """
    vx, vy = direction.vector

    def _sink(box: Box) -> Box:
        i = box.index_of(card_id)
        if i is None or box.cards[i].position is None or (vx, vy) == (0, 0):
            return box
        card = box.cards[i]
        cards = list(box.cards)
        cards[i] = card.placed_at(card.px + vx * SINK_DISTANCE, card.py + vy * SINK_DISTANCE)
        return box.with_cards(cards)

    return paths.update(root, path, _sink)


def card_ids(root: Box) -> List[str]:
    """Every card id in the tree, in walk order. Duplicates mean aliasing."""
    return [card.id for box in root.walk() for card in box.cards]


def count_cards(root: Box) -> int:
    return sum(len(box.cards) for box in root.walk())
