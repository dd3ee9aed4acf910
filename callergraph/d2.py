"""Render a caller graph as D2 diagram source."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, List, Optional

from .models import Function, Graph

# Line break inside a markdown link title.
CRLF = "&#013;&#010;"


def render_d2(graph: Graph, link_prefix: str, root: Optional[Path] = None) -> str:
    """Return D2 source for *graph*.

    Functions are grouped into containers named after their directory
    relative to *root* (default: the current directory). Each function gets a
    markdown label linking to ``<link_prefix>/<path>?line=<n>`` whose tooltip
    lists the calls it makes.
    """
    root = root or Path.cwd()
    link_prefix = link_prefix.rstrip("/")

    tooltips: Dict[Function, str] = {f: "" for f in graph.functions()}
    lines: List[str] = [""]
    for edge in graph:
        caller = edge.caller.function
        lines.append(
            f"{_node_id(caller, root)} -> {_node_id(edge.callee, root)} # {edge.caller.location}"
        )
        tooltips[caller] += f"=> {edge.callee.name}: {edge.caller.location}{CRLF}"

    for function, tooltip in tooltips.items():
        url = f"{link_prefix}/{rel_path(function.location.file, root)}?line={function.location.line}"
        lines.append("")
        lines.append(f"{_node_id(function, root)}: |md")
        lines.append(f'\t[`{function.name}`]({url} "{tooltip or "[leaf]"}")')
        lines.append("|")
    return "\n".join(lines) + "\n"


def _node_id(function: Function, root: Path) -> str:
    return f"{rel_dir(function.location.file, root)}.{function.name}"


def rel_dir(path: str, root: Path) -> str:
    """Directory of *path* as a D2 container key: ``a/b`` becomes ``a\\.b``."""
    directory = os.path.dirname(rel_path(path, root))
    if directory in ("", "."):
        directory = "root"
    return directory.replace("/", "\\.")


def rel_path(path: str, root: Path) -> str:
    try:
        return os.path.relpath(path, root)
    except ValueError:
        return path
