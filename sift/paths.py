"""
Path addressing for the box tree.

A path is a tuple of child indices walked down from the root; () is the
root itself. Paths are recomputed on every navigation and never stored
as identity.

replace() rebuilds only the boxes along the path. Every sibling subtree
of the old tree is reused as-is by the new one.
"""
from typing import Callable, Iterator, Optional, Sequence, Tuple

from .schema import Box

BoxPath = Tuple[int, ...]


class InvalidPath(IndexError):
    """A path index fell outside its box's children."""
    pass


def _child(box: Box, index: int, depth: int) -> Box:
    if not 0 <= index < len(box.children):
        raise InvalidPath(
            f"Index {index} at depth {depth} is out of range for box "
            f"'{box.name}' ({len(box.children)} children)"
        )
    return box.children[index]


def resolve(root: Box, path: Sequence[int]) -> Box:
    """Return the box at path. Raises InvalidPath."""
    box = root
    for depth, index in enumerate(path):
        box = _child(box, index, depth)
    return box


def try_resolve(root: Box, path: Sequence[int]) -> Optional[Box]:
    """Like resolve(), but None for a path that no longer exists."""
    try:
        return resolve(root, path)
    except InvalidPath:
        return None


def replace(root: Box, path: Sequence[int], new_box: Box, _depth: int = 0) -> Box:
    """Return a new root with the box at path swapped for new_box."""
    if not path:
        return new_box
    head = path[0]
    child = _child(root, head, _depth)
    return root.with_child(head, replace(child, path[1:], new_box, _depth + 1))


def update(root: Box, path: Sequence[int], fn: Callable[[Box], Box]) -> Box:
    """Read the box at path, transform it, write it back.

    Returns root itself when fn hands back the same box.
    """
    box = resolve(root, path)
    new_box = fn(box)
    if new_box is box:
        return root
    return replace(root, path, new_box)


def child_path(path: Sequence[int], index: int) -> BoxPath:
    return tuple(path) + (index,)


def iter_boxes(root: Box, path: BoxPath = ()) -> Iterator[Tuple[BoxPath, Box]]:
    """Every (path, box) pair below and including root, depth first."""
    yield path, root
    for i, child in enumerate(root.children):
        yield from iter_boxes(child, path + (i,))


def locate_card(root: Box, card_id: str) -> Optional[Tuple[BoxPath, int]]:
    """Find which box owns a card and at what index."""
    for path, box in iter_boxes(root):
        i = box.index_of(card_id)
        if i is not None:
            return path, i
    return None
