"""Per-configuration evaluation of preprocessor conditionals.

Tree-sitter parses every branch of ``#if``/``#ifdef`` blocks. The front end
uses ``MacroState`` to decide which branch a compiler targeting a given
``CompilationType`` would have kept.
"""

from __future__ import annotations

import logging
import re

from tree_sitter import Parser

from .config import Config
from .models import Arch, CompilationType

logger = logging.getLogger(__name__)


ARCH_MACROS: dict[Arch, tuple[str, ...]] = {
    Arch.ARM: ("__arm__",),
    Arch.ARM64: ("__aarch64__", "__LP64__"),
    Arch.MIPS: ("__mips__",),
    Arch.MIPS64: ("__mips__", "__mips64", "__LP64__"),
    Arch.X86: ("__i386__",),
    Arch.X86_64: ("__x86_64__", "__LP64__"),
}

_NUMBER_RE = re.compile(r"(0[xX][0-9a-fA-F]+|[0-9]+)[uUlL]*")
_IDENTIFIER_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")

MAX_EXPANSION_DEPTH = 32

_BINARY_OPERATORS = {
    "+": lambda a, b: a + b,
    "-": lambda a, b: a - b,
    "*": lambda a, b: a * b,
    "/": lambda a, b: int(a / b) if b else 0,
    "%": lambda a, b: a % b if b else 0,
    "<<": lambda a, b: a << b,
    ">>": lambda a, b: a >> b,
    "&": lambda a, b: a & b,
    "|": lambda a, b: a | b,
    "^": lambda a, b: a ^ b,
    "==": lambda a, b: int(a == b),
    "!=": lambda a, b: int(a != b),
    "<": lambda a, b: int(a < b),
    "<=": lambda a, b: int(a <= b),
    ">": lambda a, b: int(a > b),
    ">=": lambda a, b: int(a >= b),
}


def predefined_macros(compilation_type: CompilationType) -> dict[str, int | None]:
    macros: dict[str, int | None] = {
        "__ANDROID__": 1,
        "__ANDROID_API__": compilation_type.api_level,
        "__ANDROID_API_FUTURE__": Config.FUTURE_API_LEVEL,
    }
    for name in ARCH_MACROS[compilation_type.arch]:
        macros[name] = 1
    return macros


def parse_number(text: str) -> int | None:
    match = _NUMBER_RE.fullmatch(text.strip())
    if not match:
        return None
    digits = match.group(1)
    if digits.lower().startswith("0x"):
        return int(digits, 16)
    if len(digits) > 1 and digits.startswith("0"):
        return int(digits, 8)
    return int(digits)


class MacroState:
    """Object-like macros visible at the current point of a header.

    Values keep the macro's replacement text and are expanded when a condition
    is evaluated. None means defined without a value.
    """

    def __init__(
        self,
        compilation_type: CompilationType,
        source_bytes: bytes,
        parser: Parser | None = None,
    ) -> None:
        self.macros: dict[str, int | str | None] = dict(predefined_macros(compilation_type))
        self._source = source_bytes
        self._parser = parser

    def define(self, name: str, value: str | None = None) -> None:
        value = value.strip() if value else None
        self.macros[name] = value or None

    def undefine(self, name: str) -> None:
        self.macros.pop(name, None)

    def is_defined(self, name: str) -> bool:
        return name in self.macros

    def evaluate(self, node) -> int:
        return self._evaluate(node, self._source, frozenset())

    def expand(self, name: str, expanding: frozenset[str] = frozenset()) -> int:
        value = self.macros.get(name)
        if value is None or isinstance(value, int):
            return value or 0

        number = parse_number(value)
        if number is not None:
            return number
        # A macro is not re-expanded inside its own replacement.
        if name in expanding or len(expanding) >= MAX_EXPANSION_DEPTH:
            logger.debug("Not expanding recursive macro %s", name)
            return 0
        expanding = expanding | {name}
        if _IDENTIFIER_RE.fullmatch(value):
            return self.expand(value, expanding)
        return self._evaluate_text(value, expanding)

    def _evaluate_text(self, text: str, expanding: frozenset[str]) -> int:
        if self._parser is None:
            logger.debug("No parser to evaluate macro text %r", text)
            return 0
        source = f"#if {text}\n#endif\n".encode("utf-8")
        tree = self._parser.parse(source)
        directive = tree.root_node.named_children[0] if tree.root_node.named_children else None
        condition = directive.child_by_field_name("condition") if directive is not None else None
        if directive is None or directive.type != "preproc_if" or condition is None:
            logger.debug("Treating macro text %r as 0", text)
            return 0
        return self._evaluate(condition, source, expanding)

    def _evaluate(self, node, source: bytes, expanding: frozenset[str]) -> int:
        node_type = node.type

        if node_type == "number_literal":
            return parse_number(_text(node, source)) or 0

        if node_type == "char_literal":
            text = _text(node, source)
            return ord(text[1]) if len(text) == 3 else 0

        if node_type == "identifier":
            return self.expand(_text(node, source), expanding)

        if node_type == "preproc_defined":
            names = [child for child in node.named_children if child.type == "identifier"]
            return int(bool(names) and self.is_defined(_text(names[0], source)))

        if node_type == "parenthesized_expression":
            inner = node.named_children
            return self._evaluate(inner[0], source, expanding) if inner else 0

        if node_type == "unary_expression":
            operator = node.child_by_field_name("operator").type
            value = self._evaluate(node.child_by_field_name("argument"), source, expanding)
            if operator == "!":
                return int(not value)
            if operator == "-":
                return -value
            if operator == "~":
                return ~value
            return value

        if node_type == "binary_expression":
            operator = node.child_by_field_name("operator").type
            left = node.child_by_field_name("left")
            right = node.child_by_field_name("right")
            if operator == "&&":
                return int(
                    bool(self._evaluate(left, source, expanding))
                    and bool(self._evaluate(right, source, expanding))
                )
            if operator == "||":
                return int(
                    bool(self._evaluate(left, source, expanding))
                    or bool(self._evaluate(right, source, expanding))
                )
            apply = _BINARY_OPERATORS.get(operator)
            if apply is not None:
                return apply(
                    self._evaluate(left, source, expanding),
                    self._evaluate(right, source, expanding),
                )

        # Function-like macro invocations and anything else unknown evaluate to 0.
        logger.debug("Treating preprocessor expression %r as 0", _text(node, source))
        return 0


def _text(node, source: bytes) -> str:
    return source[node.start_byte : node.end_byte].decode("utf-8")
