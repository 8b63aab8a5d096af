"""Fold a parsed translation unit into a HeaderDatabase."""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Callable, Iterable

from .decls import DeclKind, Linkage, ParsedDecl, TranslationUnit, VarDefinition
from .errors import InvalidAnnotationError, TentativeDefinitionError, VaryingDeclarationError
from .models import Arch, CompilationType, DeclarationAvailability, DeclarationType, Location
from .symbols import Declaration, Symbol

if TYPE_CHECKING:
    from .database import HeaderDatabase

logger = logging.getLogger(__name__)


LOCAL_VAR_NAME = "<local var>"
ERROR_NAME = "<error>"
FUTURE_ANNOTATION = "introduced_in_future"

# (arch, field): arch None is the global slot.
Slot = tuple[Arch | None, str]

ANNOTATION_SLOTS: dict[str, tuple[Slot, ...]] = {
    "introduced_in": ((None, "introduced"),),
    "deprecated_in": ((None, "deprecated"),),
    "obsoleted_in": ((None, "obsoleted"),),
    "introduced_in_arm": ((Arch.ARM, "introduced"),),
    "introduced_in_mips": ((Arch.MIPS, "introduced"),),
    "introduced_in_x86": ((Arch.X86, "introduced"),),
    "introduced_in_32": (
        (Arch.ARM, "introduced"),
        (Arch.MIPS, "introduced"),
        (Arch.X86, "introduced"),
    ),
    "introduced_in_64": (
        (Arch.ARM64, "introduced"),
        (Arch.MIPS64, "introduced"),
        (Arch.X86_64, "introduced"),
    ),
}

_INTEGER_RE = re.compile(r"-?[0-9]+")


def local_variable_name(decl: ParsedDecl) -> str | None:
    if decl.kind == DeclKind.VARIABLE and not decl.file_scope:
        return LOCAL_VAR_NAME
    return None


def mangled_name(decl: ParsedDecl) -> str | None:
    return decl.mangled_name or None


def identifier_name(decl: ParsedDecl) -> str | None:
    return decl.identifier or None


NAMING_STRATEGIES: tuple[Callable[[ParsedDecl], str | None], ...] = (
    local_variable_name,
    mangled_name,
    identifier_name,
)


def declaration_name(decl: ParsedDecl) -> str:
    for strategy in NAMING_STRATEGIES:
        name = strategy(decl)
        if name:
            return name
    return ERROR_NAME


def parse_annotations(
    annotations: Iterable[str],
    arch: Arch,
    symbol: str = ERROR_NAME,
    location: Location | None = None,
) -> DeclarationAvailability:
    """Build an availability record from annotate() strings.

    ``introduced_in_future`` marks ``arch`` only, since the header is compiled
    separately per architecture. Unknown prefixes are ignored.
    """
    availability = DeclarationAvailability()

    for annotation in annotations:
        if annotation == FUTURE_ANNOTATION:
            availability.arch_availability[arch].future = True
            continue

        fragments = annotation.split("=")
        if len(fragments) != 2:
            continue

        prefix, operand = fragments
        slots = ANNOTATION_SLOTS.get(prefix)
        if slots is None:
            continue
        if not _INTEGER_RE.fullmatch(operand):
            raise InvalidAnnotationError(symbol, annotation, location)
        value = int(operand)

        for slot_arch, field_name in slots:
            if slot_arch is None:
                target = availability.global_availability
            else:
                target = availability.arch_availability[slot_arch]
            setattr(target, field_name, value)

    return availability


class DeclarationVisitor:
    def __init__(self, database: HeaderDatabase, compilation_type: CompilationType) -> None:
        self.database = database
        self.compilation_type = compilation_type

    def traverse(self, unit: TranslationUnit) -> None:
        for decl in unit.walk():
            self.visit(decl)

    def visit(self, decl: ParsedDecl) -> None:
        # Parameters and locals of inline functions aren't part of the API.
        if decl.in_function:
            return

        name = declaration_name(decl)
        is_extern = decl.linkage == Linkage.EXTERNAL

        if decl.kind == DeclKind.FUNCTION:
            declaration_type = DeclarationType.FUNCTION
            is_definition = decl.has_body
        elif decl.kind == DeclKind.VARIABLE:
            if not decl.file_scope:
                return
            declaration_type = DeclarationType.VARIABLE
            if decl.var_definition == VarDefinition.TENTATIVE:
                raise TentativeDefinitionError(name, decl.location, dump=decl.dump())
            is_definition = decl.var_definition == VarDefinition.DEFINITION
        else:
            return

        if decl.unavailable:
            logger.debug("Skipping unavailable declaration '%s'", name)
            return

        availability = parse_annotations(
            decl.annotations, self.compilation_type.arch, name, decl.location
        )

        symbol = self.database.symbols.get(name)
        if symbol is None:
            symbol = Symbol(name=name)
            self.database.symbols[name] = symbol

        declaration = symbol.declarations.get(decl.location)
        if declaration is None:
            declaration = Declaration(
                name=name,
                location=decl.location,
                type=declaration_type,
                is_extern=is_extern,
                is_definition=is_definition,
            )
            symbol.declarations[decl.location] = declaration
        elif declaration.is_extern != is_extern or declaration.is_definition != is_definition:
            raise VaryingDeclarationError(name, decl.location)

        declaration.availability[self.compilation_type] = availability
