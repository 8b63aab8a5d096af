"""Declaration tree handed to the database by a header front end.

Any front end (the tree-sitter one in ``parser.py`` or a compiler-backed one)
produces a ``TranslationUnit`` of ``ParsedDecl`` nodes for one header parsed
under one ``CompilationType``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator

from .models import Location


class DeclKind(str, Enum):
    FUNCTION = "function"
    VARIABLE = "variable"
    OTHER = "other"


class Linkage(str, Enum):
    EXTERNAL = "external"
    INTERNAL = "internal"
    NONE = "none"


class VarDefinition(str, Enum):
    DECLARATION_ONLY = "declaration_only"
    DEFINITION = "definition"
    TENTATIVE = "tentative"


@dataclass
class ParsedDecl:
    kind: DeclKind
    location: Location
    identifier: str | None = None
    mangled_name: str | None = None
    linkage: Linkage = Linkage.EXTERNAL
    # Functions only: this occurrence carries a body.
    has_body: bool = False
    # Variables only.
    var_definition: VarDefinition | None = None
    file_scope: bool = True
    in_function: bool = False
    unavailable: bool = False
    annotations: tuple[str, ...] = ()
    children: list[ParsedDecl] = field(default_factory=list)

    def walk(self) -> Iterator[ParsedDecl]:
        yield self
        for child in self.children:
            yield from child.walk()

    def dump(self) -> str:
        loc = self.location
        return (
            f"{self.kind.value} '{self.identifier or ''}' "
            f"<{loc.filename}:{loc.start.line}:{loc.start.column}, "
            f"line:{loc.end.line}:{loc.end.column}> "
            f"linkage={self.linkage.value}"
        )


@dataclass
class TranslationUnit:
    filename: str
    decls: list[ParsedDecl] = field(default_factory=list)

    def walk(self) -> Iterator[ParsedDecl]:
        for decl in self.decls:
            yield from decl.walk()
