# tensor_explorer/tree.py
"""
Namespace tree over dot-delimited tensor names.

The forest is built once from a record set and afterwards only the
``expanded`` flag of a GroupNode changes. Group aggregates are computed when
the group is created, from its already-built children.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple, Union

if TYPE_CHECKING:
    from tensor_explorer.records import MetadataRecord, TensorRecord

METADATA_GROUP_LABEL = "🔧 Metadata"

_TOKEN_RE = re.compile(r"[0-9]+|[^0-9]+")


def natural_sort_key(name: str) -> Tuple[Tuple[int, Union[str, int]], ...]:
    """Sort key comparing digit runs by magnitude: ``layer2`` < ``layer10``.

    Text tokens are tagged 0 and numbers 1, so a text token sorts before a
    number at the same position and the two are never compared directly.
    """
    return tuple(
        (1, int(tok)) if "0" <= tok[0] <= "9" else (0, tok) for tok in _TOKEN_RE.findall(name)
    )


@dataclass
class TensorNode:
    name: str  # last path segment
    record: "TensorRecord"

    kind = "tensor"


@dataclass
class MetadataNode:
    record: "MetadataRecord"

    kind = "metadata"

    @property
    def name(self) -> str:
        return self.record.name


@dataclass
class GroupNode:
    name: str
    children: List["TreeNode"]
    expanded: bool = False
    tensor_count: int = field(init=False)
    total_size: int = field(init=False)

    kind = "group"

    def __post_init__(self) -> None:
        count = 0
        size = 0
        for child in self.children:
            if isinstance(child, GroupNode):
                count += child.tensor_count
                size += child.total_size
            elif isinstance(child, TensorNode):
                count += 1
                size += child.record.size_bytes
        self.tensor_count = count
        self.total_size = size


TreeNode = Union[GroupNode, TensorNode, MetadataNode]


def _sorted(nodes: List[TreeNode]) -> List[TreeNode]:
    nodes.sort(key=lambda n: natural_sort_key(n.name))
    return nodes


class _Level:
    """Mutable trie node used while building; turned into TreeNodes afterwards."""

    __slots__ = ("leaves", "groups", "nodes")

    def __init__(self) -> None:
        self.leaves: List[TreeNode] = []
        self.groups: Dict[str, _Level] = {}
        self.nodes: List[TreeNode] = []


def _materialize(root: _Level) -> List[TreeNode]:
    # post-order, so a group's children exist before its aggregates are taken
    stack: List[Tuple[_Level, bool]] = [(root, False)]
    while stack:
        level, ready = stack.pop()
        if not ready:
            stack.append((level, True))
            stack.extend((child, False) for child in level.groups.values())
            continue
        nodes = list(level.leaves)
        for prefix, child in level.groups.items():
            nodes.append(GroupNode(name=prefix, children=child.nodes, expanded=level is root))
            child.nodes = []
        level.nodes = _sorted(nodes)
    return root.nodes


def build_tree(
    tensors: Iterable["TensorRecord"],
    metadata: Optional[Iterable["MetadataRecord"]] = None,
) -> List[TreeNode]:
    """Group records by dotted path into a naturally sorted forest.

    Top-level groups start expanded, nested ones collapsed. Metadata, when
    given, goes into a single leading collapsed group.
    """
    root = _Level()
    for rec in tensors:
        *prefixes, leaf = rec.name.split(".")
        level = root
        for prefix in prefixes:
            level = level.groups.setdefault(prefix, _Level())
        level.leaves.append(TensorNode(name=leaf, record=rec))
    forest = _materialize(root)

    meta_nodes: List[TreeNode] = [MetadataNode(record=m) for m in metadata or ()]
    if meta_nodes:
        forest.insert(
            0, GroupNode(name=METADATA_GROUP_LABEL, children=_sorted(meta_nodes), expanded=False)
        )
    return forest


def walk(
    forest: Sequence[TreeNode], *, visible_only: bool = False
) -> Iterator[Tuple[TreeNode, int]]:
    """Pre-order (node, depth) pairs.

    With ``visible_only`` the children of collapsed groups are skipped, which
    gives exactly the rows a viewer shows.
    """
    stack: List[Tuple[TreeNode, int]] = [(node, 0) for node in reversed(forest)]
    while stack:
        node, depth = stack.pop()
        yield node, depth
        if isinstance(node, GroupNode) and (node.expanded or not visible_only):
            stack.extend((child, depth + 1) for child in reversed(node.children))


def flatten(forest: Sequence[TreeNode]) -> List[Tuple[TreeNode, int]]:
    """Visible rows as (node, depth), depth-first, skipping collapsed subtrees."""
    return list(walk(forest, visible_only=True))


def node_at(forest: Sequence[TreeNode], index: int) -> Optional[TreeNode]:
    """Node shown at flattened row ``index``, or None when out of range."""
    if index < 0:
        return None
    for row, (node, _) in enumerate(walk(forest, visible_only=True)):
        if row == index:
            return node
    return None


def toggle_by_index(forest: Sequence[TreeNode], index: int) -> bool:
    """Flip the group at flattened row ``index``; False for leaves or bad indices."""
    node = node_at(forest, index)
    if isinstance(node, GroupNode):
        node.expanded = not node.expanded
        return True
    return False


def iter_groups(forest: Sequence[TreeNode]) -> Iterator[GroupNode]:
    """Every group in pre-order, collapsed or not."""
    for node, _ in walk(forest):
        if isinstance(node, GroupNode):
            yield node


def find_group(forest: Sequence[TreeNode], name: str) -> Optional[GroupNode]:
    # first pre-order match; same-named groups elsewhere are not reachable by name
    return next((g for g in iter_groups(forest) if g.name == name), None)


def toggle_by_name(forest: Sequence[TreeNode], name: str) -> bool:
    """Flip the first group named ``name`` in pre-order."""
    group = find_group(forest, name)
    if group is None:
        return False
    group.expanded = not group.expanded
    return True


def set_expanded(forest: Sequence[TreeNode], expanded: bool) -> int:
    """Set every group's flag; returns how many groups were visited."""
    n = 0
    for group in iter_groups(forest):
        group.expanded = expanded
        n += 1
    return n
