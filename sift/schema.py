"""
Sift tree model: cards filed into a rooted tree of boxes.

A Box owns its cards and its child boxes outright. There are no back
references, so every box is reached from the root by exactly one path
of child indices.

Both types are frozen. A change produces a new value and untouched
subtrees are shared between the old and the new tree.
"""
from enum import Enum
from dataclasses import dataclass, field, replace
from typing import Optional, Tuple, List, Dict, Any, Iterator
import uuid


class Layout(Enum):
    """How a box presents its own cards."""
    SPATIAL = "spatial"      # free-form desk, cards carry (px, py)
    STACK = "stack"          # ordered pile, index 0 is the current card

    @classmethod
    def from_str(cls, value: str) -> "Layout":
        try:
            return cls[value.upper()]
        except KeyError:
            return cls.SPATIAL


def new_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class Card:
    """A short text note, optionally placed on a desk."""

    text: str
    px: Optional[float] = None      # normalized 0..1, spatial layout only
    py: Optional[float] = None
    id: str = field(default_factory=new_id)

    @property
    def position(self) -> Optional[Tuple[float, float]]:
        if self.px is None or self.py is None:
            return None
        return (self.px, self.py)

    def placed_at(self, px: float, py: float) -> "Card":
        return replace(self, px=px, py=py)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"id": self.id, "text": self.text}
        if self.position is not None:
            data["px"] = self.px
            data["py"] = self.py
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Card":
        """Deserialize from dict. Missing id/text raise KeyError; a lone px or py raises ValueError."""
        px = data.get("px")
        py = data.get("py")
        if (px is None) != (py is None):
            raise ValueError(f"Card {data.get('id')} has only one coordinate")
        return cls(
            id=str(data["id"]),
            text=str(data["text"]),
            px=float(px) if px is not None else None,
            py=float(py) if py is not None else None,
        )


@dataclass(frozen=True)
class Box:
    """Named container of cards with a fixed fan-out of child boxes."""

    name: str
    cards: Tuple[Card, ...] = ()
    children: Tuple["Box", ...] = ()
    id: str = field(default_factory=new_id)

    def __post_init__(self):
        # Accept lists from callers, store tuples
        object.__setattr__(self, "cards", tuple(self.cards))
        object.__setattr__(self, "children", tuple(self.children))

    @property
    def is_leaf(self) -> bool:
        return not self.children

    def index_of(self, card_id: str) -> Optional[int]:
        """Position of a card in this box's own list, or None."""
        for i, card in enumerate(self.cards):
            if card.id == card_id:
                return i
        return None

    def card(self, card_id: str) -> Optional[Card]:
        i = self.index_of(card_id)
        return self.cards[i] if i is not None else None

    def with_cards(self, cards) -> "Box":
        return replace(self, cards=tuple(cards))

    def with_child(self, index: int, child: "Box") -> "Box":
        children = list(self.children)
        children[index] = child
        return replace(self, children=tuple(children))

    def walk(self) -> Iterator["Box"]:
        """This box and every descendant, depth first."""
        yield self
        for child in self.children:
            yield from child.walk()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "cards": [c.to_dict() for c in self.cards],
            "children": [b.to_dict() for b in self.children],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Box":
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            cards=tuple(Card.from_dict(c) for c in data.get("cards", [])),
            children=tuple(cls.from_dict(b) for b in data.get("children", [])),
        )


# ── Default tree ─────────────────────────────────────────────────────────────

ROOT_NAME = "Workspace"
CHILD_NAMES = ("A", "B", "C", "D")

TWO_WAY_SEEDS = [
    "Sift: swipe to sort",
    "→ B / ← A / ↑ Keep",
]

FOUR_WAY_SEEDS = [
    "Sift: flick a card into a box",
    "Drag slowly to arrange the desk",
    "Tap a corner to open a box",
]

# Fixed desk spots for seed cards so a reset is reproducible
SEED_POSITIONS = [(0.50, 0.30), (0.38, 0.46), (0.62, 0.58)]


def default_tree(fan_out: int = 4, layout: Layout = Layout.SPATIAL) -> Box:
    """Build the hard-coded starting tree for a fan-out of 2 or 4."""
    if fan_out not in (2, 4):
        raise ValueError(f"Unsupported fan-out: {fan_out}")

    seeds = TWO_WAY_SEEDS if fan_out == 2 else FOUR_WAY_SEEDS
    cards: List[Card] = []
    for text, (px, py) in zip(seeds, SEED_POSITIONS):
        if layout == Layout.SPATIAL:
            cards.append(Card(text=text, px=px, py=py))
        else:
            cards.append(Card(text=text))

    return Box(
        name=ROOT_NAME,
        cards=tuple(cards),
        children=tuple(Box(name=n) for n in CHILD_NAMES[:fan_out]),
    )
