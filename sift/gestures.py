"""
Gesture classifier: turns a drag displacement into a routing decision.

Coordinates are screen-style, so a negative dy points up. Each policy is
tied to a fan-out:

  two_way            2 children   left/right file, up keeps
  axis_four_way      4 children   dominant axis picks left/right/up/down
  diagonal_four_way  4 children   both axes must pass, picks a quadrant
  flick_four_way     4 children   axis rule on the predicted end, but only
                                  a fast release (flick) commits
"""
import math
from enum import Enum
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

SWIPE_THRESHOLD = 120.0
FLICK_BOOST_THRESHOLD = 260.0


class Direction(Enum):
    NONE = "none"
    LEFT = "left"
    RIGHT = "right"
    UP = "up"
    DOWN = "down"
    UP_LEFT = "up_left"
    UP_RIGHT = "up_right"
    DOWN_LEFT = "down_left"
    DOWN_RIGHT = "down_right"

    @property
    def vector(self) -> Tuple[int, int]:
        """Unit-ish heading in screen coordinates."""
        return _VECTORS[self]


_VECTORS = {
    Direction.NONE: (0, 0),
    Direction.LEFT: (-1, 0),
    Direction.RIGHT: (1, 0),
    Direction.UP: (0, -1),
    Direction.DOWN: (0, 1),
    Direction.UP_LEFT: (-1, -1),
    Direction.UP_RIGHT: (1, -1),
    Direction.DOWN_LEFT: (-1, 1),
    Direction.DOWN_RIGHT: (1, 1),
}


class Action(Enum):
    """What the board should do with the released card."""
    FILE = "file"        # move into a child box
    KEEP = "keep"        # stay in this box, go to the back
    SETTLE = "settle"    # no commitment: reposition on the desk or cancel


class GesturePolicy(Enum):
    TWO_WAY = "two_way"
    AXIS_FOUR_WAY = "axis_four_way"
    DIAGONAL_FOUR_WAY = "diagonal_four_way"
    FLICK_FOUR_WAY = "flick_four_way"

    @classmethod
    def from_str(cls, value: str) -> "GesturePolicy":
        try:
            return cls[value.upper()]
        except KeyError:
            return cls.AXIS_FOUR_WAY

    @property
    def fan_out(self) -> int:
        return 2 if self == GesturePolicy.TWO_WAY else 4


# Which child each committed direction files into
CHILD_INDEX: Dict[GesturePolicy, Dict[Direction, int]] = {
    GesturePolicy.TWO_WAY: {
        Direction.LEFT: 0,
        Direction.RIGHT: 1,
    },
    GesturePolicy.AXIS_FOUR_WAY: {
        Direction.LEFT: 0,
        Direction.RIGHT: 1,
        Direction.UP: 2,
        Direction.DOWN: 3,
    },
    GesturePolicy.DIAGONAL_FOUR_WAY: {
        Direction.UP_LEFT: 0,
        Direction.UP_RIGHT: 1,
        Direction.DOWN_LEFT: 2,
        Direction.DOWN_RIGHT: 3,
    },
}
CHILD_INDEX[GesturePolicy.FLICK_FOUR_WAY] = CHILD_INDEX[GesturePolicy.AXIS_FOUR_WAY]


@dataclass(frozen=True)
class Gesture:
    """Outcome of classifying one released drag."""
    direction: Direction
    action: Action
    child_index: Optional[int] = None

    @property
    def committed(self) -> bool:
        return self.action != Action.SETTLE


SETTLE = Gesture(Direction.NONE, Action.SETTLE)


def axis_direction(dx: float, dy: float, threshold: float) -> Direction:
    """Dominant axis wins; a tie goes to the horizontal axis."""
    if max(abs(dx), abs(dy)) < threshold:
        return Direction.NONE
    if abs(dx) >= abs(dy):
        return Direction.RIGHT if dx > 0 else Direction.LEFT
    return Direction.DOWN if dy > 0 else Direction.UP


def quadrant_direction(dx: float, dy: float, threshold: float) -> Direction:
    """Both axes must reach the threshold at once."""
    if abs(dx) < threshold or abs(dy) < threshold:
        return Direction.NONE
    if dy < 0:
        return Direction.UP_RIGHT if dx > 0 else Direction.UP_LEFT
    return Direction.DOWN_RIGHT if dx > 0 else Direction.DOWN_LEFT


def swipe_direction(dx: float, dy: float, threshold: float) -> Direction:
    if dx > threshold:
        return Direction.RIGHT
    if dx < -threshold:
        return Direction.LEFT
    if dy < -threshold:
        return Direction.UP
    return Direction.NONE


class GestureClassifier:
    """Classifies released drags under one policy."""

    def __init__(
        self,
        policy: GesturePolicy = GesturePolicy.AXIS_FOUR_WAY,
        threshold: float = SWIPE_THRESHOLD,
        flick_boost: float = FLICK_BOOST_THRESHOLD,
    ):
        self.policy = policy
        self.threshold = threshold
        self.flick_boost = flick_boost

    @property
    def fan_out(self) -> int:
        return self.policy.fan_out

    def direction(self, dx: float, dy: float) -> Direction:
        """Raw direction of a displacement under this policy, ignoring flick gating."""
        if self.policy == GesturePolicy.TWO_WAY:
            return swipe_direction(dx, dy, self.threshold)
        if self.policy == GesturePolicy.DIAGONAL_FOUR_WAY:
            return quadrant_direction(dx, dy, self.threshold)
        return axis_direction(dx, dy, self.threshold)

    def is_flick(self, dx: float, dy: float, predicted: Optional[Tuple[float, float]]) -> bool:
        """True when the velocity-extrapolated end runs far past the release point."""
        if predicted is None:
            return False
        return math.hypot(predicted[0] - dx, predicted[1] - dy) > self.flick_boost

    def classify(
        self,
        dx: float,
        dy: float,
        predicted: Optional[Tuple[float, float]] = None,
    ) -> Gesture:
        """
        Classify a release.

        Args:
            dx, dy: end position minus start position
            predicted: displacement extrapolated with exit velocity, if known

        Returns:
            Gesture with the child index to file into for FILE actions
        """
        if self.policy == GesturePolicy.FLICK_FOUR_WAY:
            if not self.is_flick(dx, dy, predicted):
                return SETTLE
            direction = self.direction(*predicted)
        else:
            direction = self.direction(dx, dy)

        if direction == Direction.NONE:
            return SETTLE
        if self.policy == GesturePolicy.TWO_WAY and direction == Direction.UP:
            return Gesture(direction, Action.KEEP)
        return Gesture(direction, Action.FILE, CHILD_INDEX[self.policy][direction])
