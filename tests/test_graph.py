from __future__ import annotations

from pathlib import Path
from tempfile import TemporaryDirectory

from headerdb.database import HeaderDatabase
from headerdb.decls import DeclKind, ParsedDecl, TranslationUnit
from headerdb.graph import (
    EDGE_DECLARED_AT,
    NODE_DECLARATION,
    NODE_SYMBOL,
    build_graph,
    declaration_node_id,
    symbol_node_id,
)
from headerdb.models import Arch, CompilationType, Location, Position
from headerdb.storage import load_graph, save_database


ARM_9 = CompilationType(Arch.ARM, 9)
ARM64_21 = CompilationType(Arch.ARM64, 21)


def _unit(*entries: tuple[str, int, str]) -> TranslationUnit:
    decls = [
        ParsedDecl(
            kind=DeclKind.FUNCTION,
            location=Location("sample.h", Position(line, 1), Position(line, 40)),
            identifier=name,
            annotations=(annotation,),
        )
        for name, line, annotation in entries
    ]
    return TranslationUnit(filename="sample.h", decls=decls)


def _database() -> HeaderDatabase:
    database = HeaderDatabase()
    database.ingest(ARM_9, _unit(("foo", 1, "introduced_in=9"), ("bar", 2, "introduced_in=9")))
    database.ingest(ARM64_21, _unit(("foo", 1, "introduced_in=9"), ("bar", 2, "introduced_in=21")))
    return database


def test_build_graph_nodes_and_edges():
    database = _database()
    graph = build_graph(database)

    foo_id = symbol_node_id("foo")
    foo_decl = next(iter(database["foo"].declarations.values()))
    decl_id = declaration_node_id(foo_decl)

    assert graph.nodes[foo_id]["type"] == NODE_SYMBOL
    assert graph.nodes[foo_id]["availability"] == "introduced = 9"
    assert graph.nodes[foo_id]["conflict"] is None
    assert graph.nodes[decl_id]["type"] == NODE_DECLARATION
    assert graph.nodes[decl_id]["availability"] == {
        "arm-9": "introduced = 9",
        "arm64-21": "introduced = 9",
    }
    assert graph[foo_id][decl_id]["type"] == EDGE_DECLARED_AT
    assert decl_id == "decl:foo@sample.h:1:1"


def test_build_graph_records_conflicts():
    graph = build_graph(_database())
    bar = graph.nodes[symbol_node_id("bar")]

    assert bar["availability"] is None
    assert "conflicting global availability for 'bar'" in bar["conflict"]


def test_snapshot_roundtrip():
    database = _database()
    with TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "snapshot.json"
        graph = save_database(database, path, ["arm-9", "arm64-21"])
        loaded = load_graph(path)

    assert loaded.number_of_nodes() == graph.number_of_nodes() == 4
    assert loaded.number_of_edges() == graph.number_of_edges() == 2
    assert loaded.graph["snapshot"]["symbol_count"] == 2
    assert loaded.graph["snapshot"]["compilation_types"] == ["arm-9", "arm64-21"]
