"""NetworkX snapshot of a finished HeaderDatabase."""

from __future__ import annotations

import networkx as nx

from .database import HeaderDatabase
from .symbols import Declaration
from .errors import AvailabilityConflictError
from .formatting import (
    format_compilation_type,
    format_conflict,
    format_declaration_availability,
    format_location,
)


NODE_SYMBOL = "Symbol"
NODE_DECLARATION = "Declaration"

EDGE_DECLARED_AT = "DECLARED_AT"


def symbol_node_id(name: str) -> str:
    return f"symbol:{name}"


def declaration_node_id(declaration: Declaration) -> str:
    return f"decl:{declaration.name}@{format_location(declaration.location)}"


def build_graph(database: HeaderDatabase) -> nx.DiGraph:
    graph = nx.DiGraph()

    for name in sorted(database.symbols):
        symbol = database.symbols[name]
        try:
            availability = format_declaration_availability(symbol.calculate_availability())
            conflict = None
        except AvailabilityConflictError as exc:
            availability = None
            conflict = format_conflict(exc)

        symbol_id = symbol_node_id(name)
        graph.add_node(
            symbol_id,
            type=NODE_SYMBOL,
            name=name,
            declaration_type=symbol.declaration_type.value,
            availability=availability,
            conflict=conflict,
        )

        for location in sorted(symbol.declarations):
            declaration = symbol.declarations[location]
            decl_id = declaration_node_id(declaration)
            graph.add_node(
                decl_id,
                type=NODE_DECLARATION,
                name=name,
                path=location.filename,
                start=[location.start.line, location.start.column],
                end=[location.end.line, location.end.column],
                is_extern=declaration.is_extern,
                is_definition=declaration.is_definition,
                availability={
                    format_compilation_type(compilation_type): format_declaration_availability(
                        declaration.availability[compilation_type]
                    )
                    for compilation_type in sorted(declaration.availability)
                },
            )
            graph.add_edge(symbol_id, decl_id, type=EDGE_DECLARED_AT)

    return graph
