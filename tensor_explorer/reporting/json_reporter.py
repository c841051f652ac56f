"""
JSON reporting utilities.

The tree is written as a flat pre-order list of nodes with their depth, so
the report nests no deeper than the records themselves however long the
tensor names are.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List

from tensor_explorer.explorer import ModelExplorer
from tensor_explorer.observability import to_dict
from tensor_explorer.tree import GroupNode, TensorNode, TreeNode, walk


def _node_dict(node: TreeNode, depth: int) -> Dict[str, Any]:
    d: Dict[str, Any] = {"kind": node.kind, "name": node.name, "depth": depth}
    if isinstance(node, GroupNode):
        d.update(
            expanded=node.expanded, tensor_count=node.tensor_count, total_size=node.total_size
        )
    elif isinstance(node, TensorNode):
        d["tensor"] = node.record.name
    return d


def tree_to_list(forest: List[TreeNode]) -> List[Dict[str, Any]]:
    """Every node of the forest, collapsed or not, as pre-order dicts."""
    return [_node_dict(node, depth) for node, depth in walk(forest)]


def to_json_dict(session: ModelExplorer) -> Dict[str, Any]:
    """Convert a loaded session to a JSON-serializable dict."""
    return {
        "files": [
            {"path": f.path, "format": f.format, "file_size": f.file_size} for f in session.files
        ],
        "failures": to_dict(session.failures),
        "total_parameters": session.total_parameters,
        "total_size": session.total_size,
        "tensors": to_dict(session.tensors),
        "metadata": to_dict(session.metadata),
        "tree": tree_to_list(session.tree),
    }


def write_json(session: ModelExplorer, path: str) -> None:
    """Write the session to a file as pretty JSON."""
    with open(path, "w", encoding="utf-8") as f:
        json.dump(to_json_dict(session), f, indent=2, ensure_ascii=False)
