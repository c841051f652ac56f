# tensor_explorer/reporting/console.py
"""
Console rendering of the flattened tree and of single-record detail views.
"""
from __future__ import annotations

from typing import List, Optional, Tuple, Union

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from tensor_explorer.explorer import ModelExplorer
from tensor_explorer.model_formats.gguf import lookup_quantization
from tensor_explorer.records import MetadataRecord, TensorRecord
from tensor_explorer.reporting.formatting import format_parameters, format_shape, format_size
from tensor_explorer.tree import GroupNode, MetadataNode, TensorNode, TreeNode

console = Console()

INDENT = "  "
# Metadata values longer than this are cut in the tree view
VALUE_PREVIEW_WIDTH = 60


def _row_cells(node: TreeNode, depth: int) -> Tuple[Text, str, str, str, str]:
    pad = INDENT * depth
    if isinstance(node, GroupNode):
        marker = "▼ " if node.expanded else "▶ "
        name = Text(pad + marker + node.name, style="bold blue")
        details = f"{node.tensor_count} tensors" if node.tensor_count else f"{len(node.children)} keys"
        size = format_size(node.total_size) if node.tensor_count else ""
        return name, "", "", size, details
    if isinstance(node, TensorNode):
        rec = node.record
        name = Text(pad + "  " + node.name, style="cyan")
        return name, rec.dtype, format_shape(rec.shape), format_size(rec.size_bytes), ""
    if isinstance(node, MetadataNode):
        rec = node.record
        value = rec.value
        if len(value) > VALUE_PREVIEW_WIDTH:
            value = value[: VALUE_PREVIEW_WIDTH - 3] + "..."
        name = Text(pad + "  " + node.name, style="magenta")
        return name, rec.value_type, "", "", value
    raise TypeError(f"Unknown tree node {type(node).__name__}")


def render_rows(
    rows: List[Tuple[TreeNode, int]], *, title: str = "", out: Optional[Console] = None
) -> None:
    """Render flattened rows as one table, numbered by row index."""
    table = Table(title=title or None, box=box.SIMPLE_HEAVY, title_style="bold magenta")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Name", no_wrap=True)
    table.add_column("Type", style="yellow")
    table.add_column("Shape", style="green")
    table.add_column("Size", justify="right")
    table.add_column("Details", style="white")
    for index, (node, depth) in enumerate(rows):
        table.add_row(str(index), *_row_cells(node, depth))
    (out or console).print(table)


def render_summary(session: ModelExplorer, *, out: Optional[Console] = None) -> None:
    t = Table(box=box.SIMPLE_HEAVY, show_header=False)
    t.add_column("Field", style="bold")
    t.add_column("Value")
    t.add_row("Files", str(len(session.files)))
    t.add_row("Tensors", str(len(session.tensors)))
    t.add_row("Parameters", format_parameters(session.total_parameters))
    t.add_row("Size", format_size(session.total_size))
    if session.metadata:
        t.add_row("Metadata keys", str(len(session.metadata)))
    if session.failures:
        t.add_row("Skipped", Text(", ".join(f.path for f in session.failures), style="red"))
    (out or console).print(Panel(t, title=Text(session.title), style="bold cyan", expand=False))


def render_session(session: ModelExplorer, *, out: Optional[Console] = None) -> None:
    render_summary(session, out=out)
    render_rows(session.rows, out=out)


def render_detail(
    record: Union[TensorRecord, MetadataRecord], *, out: Optional[Console] = None
) -> None:
    """Key/value table for one tensor or metadata entry."""
    t = Table(box=box.ROUNDED, show_header=False)
    t.add_column("Field", style="bold")
    t.add_column("Value")
    t.add_row("Name", Text(record.name))
    if isinstance(record, TensorRecord):
        t.add_row("Type", record.dtype)
        t.add_row("Shape", format_shape(record.shape))
        t.add_row("Elements", f"{record.n_elements:,} ({format_parameters(record.n_elements)})")
        t.add_row("Size", f"{record.size_bytes:,} B ({format_size(record.size_bytes)})")
        info = lookup_quantization(record.dtype)
        if info is not None:
            encoding = f"{info.bits_per_weight:g} bits/weight"
            if info.block_size > 1:
                encoding += f", {info.block_size}-element blocks"
            t.add_row("Encoding", encoding)
        title = "Tensor"
    else:
        t.add_row("Type", record.value_type)
        t.add_row("Value", Text(record.value))
        title = "Metadata"
    if record.source:
        t.add_row("Source", Text(record.source))
    (out or console).print(Panel(t, title=title, border_style="cyan", expand=False))
