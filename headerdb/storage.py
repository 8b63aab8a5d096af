"""Persist database snapshots as node-link JSON."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

import networkx as nx
from networkx.readwrite import json_graph

from .database import HeaderDatabase
from .graph import build_graph


def save_graph(graph: nx.DiGraph, path: str | Path) -> None:
    data = json_graph.node_link_data(graph, edges="links")
    Path(path).write_text(json.dumps(data, indent=2, sort_keys=True), encoding="utf-8")


def load_graph(path: str | Path) -> nx.DiGraph:
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    return json_graph.node_link_graph(data, directed=True, edges="links")


def save_database(
    database: HeaderDatabase,
    path: str | Path,
    compilation_types: list[str] | None = None,
) -> nx.DiGraph:
    graph = build_graph(database)
    graph.graph["snapshot"] = {
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "symbol_count": len(database),
        "compilation_types": compilation_types or [],
    }
    save_graph(graph, path)
    return graph
