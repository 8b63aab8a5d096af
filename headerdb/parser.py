"""Tree-sitter based front end for C headers."""

from __future__ import annotations

import logging
import re
from bisect import bisect_left
from pathlib import Path

from tree_sitter import Parser

from .decls import DeclKind, Linkage, ParsedDecl, TranslationUnit, VarDefinition
from .errors import FrontEndError
from .models import CompilationType, Location, Position
from .preprocessor import MacroState
from .ts_lang import load_c_language

logger = logging.getLogger(__name__)


CONDITIONAL_TYPES = {"preproc_if", "preproc_ifdef", "preproc_elif", "preproc_elifdef"}
CONDITIONAL_FIELDS = {"condition", "name", "alternative"}
DECLARATOR_WRAPPERS = {
    "pointer_declarator",
    "array_declarator",
    "function_declarator",
    "parenthesized_declarator",
    "attributed_declarator",
    "init_declarator",
}

# Availability macros as they appear when headers are read without expansion.
AVAILABILITY_MACROS = {
    "__INTRODUCED_IN": "introduced_in",
    "__INTRODUCED_IN_32": "introduced_in_32",
    "__INTRODUCED_IN_64": "introduced_in_64",
    "__INTRODUCED_IN_ARM": "introduced_in_arm",
    "__INTRODUCED_IN_MIPS": "introduced_in_mips",
    "__INTRODUCED_IN_X86": "introduced_in_x86",
    "__DEPRECATED_IN": "deprecated_in",
    "__REMOVED_IN": "obsoleted_in",
}
FUTURE_MACRO = "__INTRODUCED_IN_FUTURE"

UNAVAILABLE_ATTRIBUTE = "unavailable"
ANNOTATE_ATTRIBUTE = "annotate"

# Directives, comments and literals are matched first so macro uses inside
# them are left alone.
_MACRO_SCAN_RE = re.compile(
    rb"^[ \t]*#(?:\\\r?\n|[^\n])*"
    rb"|/\*[\s\S]*?\*/"
    rb"|//[^\n]*"
    rb'|"(?:\\.|[^"\\\n])*"'
    rb"|'(?:\\.|[^'\\\n])*'"
    rb"|\b(?P<future>" + FUTURE_MACRO.encode() + rb")\b"
    rb"|\b(?P<macro>"
    + b"|".join(re.escape(name.encode()) for name in sorted(AVAILABILITY_MACROS, reverse=True))
    + rb")\s*\(\s*(?P<operand>[^()]*?)\s*\)",
    re.MULTILINE,
)


def mask_availability_macros(source_bytes: bytes) -> tuple[bytes, list[tuple[int, str]]]:
    """Blank out availability macro uses, returning the annotations they stand for.

    Each annotation is paired with the byte offset of its macro. Blanking keeps
    every byte offset, so tree-sitter locations are unchanged.
    """
    masked = bytearray(source_bytes)
    found: list[tuple[int, str]] = []
    for match in _MACRO_SCAN_RE.finditer(source_bytes):
        if match.group("future"):
            annotation = "introduced_in_future"
        elif match.group("macro"):
            prefix = AVAILABILITY_MACROS[match.group("macro").decode()]
            annotation = f"{prefix}={match.group('operand').decode('utf-8')}"
        else:
            continue
        start, end = match.span()
        masked[start:end] = bytes(byte if byte == 0x0A else 0x20 for byte in source_bytes[start:end])
        found.append((start, annotation))
    return bytes(masked), found


class HeaderParser:
    def __init__(self) -> None:
        self._parser = Parser(load_c_language())

    def parse_bytes(
        self,
        source_bytes: bytes,
        filename: str,
        compilation_type: CompilationType,
    ) -> TranslationUnit:
        masked, macro_annotations = mask_availability_macros(source_bytes)
        tree = self._parser.parse(masked)
        macros = MacroState(compilation_type, masked, parser=self._parser)
        builder = _UnitBuilder(filename, masked, macros, macro_annotations)
        return builder.build(tree.root_node)

    def parse_text(
        self,
        source_text: str,
        filename: str,
        compilation_type: CompilationType,
    ) -> TranslationUnit:
        return self.parse_bytes(source_text.encode("utf-8"), filename, compilation_type)

    def parse_file(self, path: str | Path, compilation_type: CompilationType) -> TranslationUnit:
        try:
            with open(path, "rb") as handle:
                source_bytes = handle.read()
        except OSError as exc:
            raise FrontEndError(f"failed to read header {path}: {exc}") from exc
        return self.parse_bytes(source_bytes, str(path), compilation_type)


class _UnitBuilder:
    def __init__(
        self,
        filename: str,
        source_bytes: bytes,
        macros: MacroState,
        macro_annotations: list[tuple[int, str]] | None = None,
    ) -> None:
        self.filename = filename
        self.source_bytes = source_bytes
        self.macros = macros
        self.macro_annotations = sorted(macro_annotations or [])
        self._macro_offsets = [offset for offset, _ in self.macro_annotations]

    def build(self, root) -> TranslationUnit:
        unit = TranslationUnit(filename=self.filename)
        self._items(root.children, unit.decls)
        return unit

    def _items(self, nodes, out: list[ParsedDecl]) -> None:
        for node in nodes:
            self._item(node, out)

    def _item(self, node, out: list[ParsedDecl]) -> None:
        node_type = node.type

        if node_type == "declaration":
            out.extend(self._declaration(node, in_function=False))
        elif node_type == "function_definition":
            decl = self._function_definition(node)
            if decl is not None:
                out.append(decl)
        elif node_type == "type_definition":
            out.append(self._typedef(node))
        elif node_type == "linkage_specification":
            body = node.child_by_field_name("body")
            if body is None:
                return
            if body.type == "declaration_list":
                self._items(body.named_children, out)
            else:
                self._item(body, out)
        elif node_type in ("preproc_def", "preproc_function_def"):
            name = node.child_by_field_name("name")
            value = node.child_by_field_name("value") if node_type == "preproc_def" else None
            self.macros.define(self._text(name), self._text(value) if value else None)
        elif node_type == "preproc_call":
            self._directive(node)
        elif node_type in CONDITIONAL_TYPES:
            self._conditional(node, out)
        elif node_type == "ERROR":
            logger.debug("Recovering from parse error at %s:%d", self.filename, node.start_point[0] + 1)
            self._items(node.children, out)

    def _directive(self, node) -> None:
        directive = self._text(node.child_by_field_name("directive"))
        argument = node.child_by_field_name("argument")
        if directive == "#undef" and argument is not None:
            self.macros.undefine(self._text(argument).strip())

    def _conditional(self, node, out: list[ParsedDecl], taken: bool = False) -> None:
        body = [
            child
            for index, child in enumerate(node.children)
            if child.is_named and node.field_name_for_child(index) not in CONDITIONAL_FIELDS
        ]
        if not taken and self._condition_holds(node):
            self._items(body, out)
            taken = True
        else:
            self._linkage_bodies(body, out)

        alternative = node.child_by_field_name("alternative")
        if alternative is None:
            return
        if alternative.type != "preproc_else":
            self._conditional(alternative, out, taken)
        elif taken:
            self._linkage_bodies(alternative.named_children, out)
        else:
            self._items(alternative.named_children, out)

    def _linkage_bodies(self, nodes, out: list[ParsedDecl]) -> None:
        # `#ifdef __cplusplus` / `extern "C" {` / `#endif` leaves the C
        # declarations inside a branch a C compiler skips.
        for node in nodes:
            if node.type == "linkage_specification":
                self._item(node, out)
            elif node.type == "ERROR":
                self._linkage_bodies(node.children, out)

    def _condition_holds(self, node) -> bool:
        if node.type in ("preproc_if", "preproc_elif"):
            return bool(self.macros.evaluate(node.child_by_field_name("condition")))

        name = self._text(node.child_by_field_name("name"))
        negated = node.children[0].type in ("#ifndef", "#elifndef")
        return self.macros.is_defined(name) != negated

    def _declaration(self, node, in_function: bool) -> list[ParsedDecl]:
        storage = self._storage_classes(node)
        linkage = Linkage.INTERNAL if "static" in storage else Linkage.EXTERNAL
        annotations, unavailable = self._attributes(node)
        location = self._location(node)
        declarators = node.children_by_field_name("declarator")
        macro_annotations = self._declarator_macros(node, declarators)

        decls: list[ParsedDecl] = []
        for declarator, trailing in zip(declarators, macro_annotations):
            name_node, is_function = _declared_entity(declarator)
            identifier = self._text(name_node) if name_node is not None else None

            if is_function:
                decl = ParsedDecl(
                    kind=DeclKind.FUNCTION,
                    location=location,
                    identifier=identifier,
                    linkage=linkage,
                    in_function=in_function,
                    unavailable=unavailable,
                    annotations=annotations + trailing,
                )
            else:
                if declarator.type == "init_declarator":
                    definition = VarDefinition.DEFINITION
                elif "extern" in storage:
                    definition = VarDefinition.DECLARATION_ONLY
                else:
                    definition = VarDefinition.TENTATIVE
                decl = ParsedDecl(
                    kind=DeclKind.VARIABLE,
                    location=location,
                    identifier=identifier,
                    linkage=Linkage.NONE if in_function and "extern" not in storage else linkage,
                    var_definition=definition,
                    file_scope=not in_function,
                    in_function=in_function,
                    unavailable=unavailable,
                    annotations=annotations + trailing,
                )
            decls.append(decl)
        return decls

    def _declarator_macros(self, node, declarators) -> list[tuple[str, ...]]:
        """Availability macros for each declarator of a declaration.

        Macros before the first declarator apply to all of them; the rest
        belong to the declarator they follow.
        """
        if not declarators:
            return []
        leading = self._macros_between(node.start_byte, declarators[0].start_byte)
        ends = [declarator.start_byte for declarator in declarators[1:]] + [node.end_byte]
        return [
            leading + self._macros_between(declarator.start_byte, end)
            for declarator, end in zip(declarators, ends)
        ]

    def _macros_between(self, start: int, end: int) -> tuple[str, ...]:
        first = bisect_left(self._macro_offsets, start)
        last = bisect_left(self._macro_offsets, end)
        return tuple(annotation for _, annotation in self.macro_annotations[first:last])

    def _function_definition(self, node) -> ParsedDecl | None:
        declarator = node.child_by_field_name("declarator")
        if declarator is None:
            return None
        name_node, _ = _declared_entity(declarator)
        storage = self._storage_classes(node)
        annotations, unavailable = self._attributes(node)
        body = node.child_by_field_name("body")
        header_end = body.start_byte if body is not None else node.end_byte

        decl = ParsedDecl(
            kind=DeclKind.FUNCTION,
            location=self._location(node),
            identifier=self._text(name_node) if name_node is not None else None,
            linkage=Linkage.INTERNAL if "static" in storage else Linkage.EXTERNAL,
            has_body=True,
            unavailable=unavailable,
            annotations=annotations + self._macros_between(node.start_byte, header_end),
        )
        if body is not None:
            decl.children = self._locals(body)
        return decl

    def _locals(self, body) -> list[ParsedDecl]:
        found: list[ParsedDecl] = []
        stack = [body]
        while stack:
            current = stack.pop()
            for child in reversed(current.named_children):
                if child.type == "declaration":
                    found.extend(self._declaration(child, in_function=True))
                else:
                    stack.append(child)
        found.sort(key=lambda decl: decl.location)
        return found

    def _typedef(self, node) -> ParsedDecl:
        declarator = node.child_by_field_name("declarator")
        name_node = _innermost_name(declarator) if declarator is not None else None
        return ParsedDecl(
            kind=DeclKind.OTHER,
            location=self._location(node),
            identifier=self._text(name_node) if name_node is not None else None,
            linkage=Linkage.NONE,
        )

    def _storage_classes(self, node) -> set[str]:
        return {
            self._text(child)
            for child in node.children
            if child.type == "storage_class_specifier"
        }

    def _attributes(self, node) -> tuple[tuple[str, ...], bool]:
        annotations: list[str] = []
        unavailable = False
        stack = [node]
        while stack:
            current = stack.pop()
            for child in reversed(current.children):
                if child.type == "attribute_specifier":
                    for name, arguments in self._attribute_entries(child):
                        if name == UNAVAILABLE_ATTRIBUTE:
                            unavailable = True
                        elif name == ANNOTATE_ATTRIBUTE and arguments is not None:
                            annotations.extend(self._string_arguments(arguments))
                elif child.type != "compound_statement":
                    stack.append(child)
        return tuple(annotations), unavailable

    def _attribute_entries(self, specifier):
        """Yield (name, arguments) for each attribute in ``__attribute__((...))``."""
        for argument_list in specifier.named_children:
            if argument_list.type != "argument_list":
                continue
            for entry in argument_list.named_children:
                if entry.type == "identifier":
                    yield _attribute_name(self._text(entry)), None
                elif entry.type == "call_expression":
                    function = entry.child_by_field_name("function")
                    if function is not None and function.type == "identifier":
                        yield _attribute_name(self._text(function)), entry.child_by_field_name("arguments")

    def _string_arguments(self, arguments) -> list[str]:
        values: list[str] = []
        for argument in arguments.named_children:
            if argument.type == "string_literal":
                values.append(self._text(argument)[1:-1])
            elif argument.type == "concatenated_string":
                values.append(
                    "".join(
                        self._text(part)[1:-1]
                        for part in argument.named_children
                        if part.type == "string_literal"
                    )
                )
        return values

    def _location(self, node) -> Location:
        start_line, start_column = node.start_point
        end_line, end_column = node.end_point
        return Location(
            filename=self.filename,
            start=Position(line=start_line + 1, column=start_column + 1),
            end=Position(line=end_line + 1, column=end_column + 1),
        )

    def _text(self, node) -> str:
        return self.source_bytes[node.start_byte : node.end_byte].decode("utf-8")


def _attribute_name(name: str) -> str:
    # GNU attributes may be spelled with surrounding double underscores.
    if len(name) > 4 and name.startswith("__") and name.endswith("__"):
        return name[2:-2]
    return name


def _inner_declarator(node):
    inner = node.child_by_field_name("declarator")
    if inner is not None:
        return inner
    for child in node.named_children:
        if child.type not in ("attribute_specifier", "attribute_declaration"):
            return child
    return None


def _declared_entity(declarator) -> tuple[object | None, bool]:
    """Return the name node and whether the declared entity is a function.

    The derivation closest to the identifier decides: ``int *f(void)`` is a
    function, ``void (*f)(void)`` is a pointer variable.
    """
    innermost = None
    node = declarator
    while node is not None and node.type in DECLARATOR_WRAPPERS:
        if node.type not in ("parenthesized_declarator", "attributed_declarator", "init_declarator"):
            innermost = node.type
        node = _inner_declarator(node)
    if node is None or node.type != "identifier":
        return None, innermost == "function_declarator"
    return node, innermost == "function_declarator"


def _innermost_name(declarator):
    node = declarator
    while node is not None and node.type in DECLARATOR_WRAPPERS:
        node = _inner_declarator(node)
    if node is None or node.type not in ("identifier", "type_identifier"):
        return None
    return node
