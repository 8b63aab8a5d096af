"""Text rendering for diagnostics and database dumps."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .errors import AvailabilityConflictError
from .models import (
    AvailabilityValues,
    CompilationType,
    DeclarationAvailability,
    DeclarationType,
    Location,
)

if TYPE_CHECKING:
    from .database import HeaderDatabase


def format_compilation_type(compilation_type: CompilationType) -> str:
    return f"{compilation_type.arch.value}-{compilation_type.api_level}"


def format_availability_values(values: AvailabilityValues) -> str:
    parts: list[str] = []
    if values.future:
        parts.append("future")
    if values.introduced:
        parts.append(f"introduced = {values.introduced}")
    if values.deprecated:
        parts.append(f"deprecated = {values.deprecated}")
    if values.obsoleted:
        parts.append(f"obsoleted = {values.obsoleted}")
    return ", ".join(parts)


def format_declaration_availability(availability: DeclarationAvailability) -> str:
    parts: list[str] = []
    if not availability.global_availability.empty():
        parts.append(format_availability_values(availability.global_availability))

    for arch in sorted(availability.arch_availability):
        values = availability.arch_availability[arch]
        if not values.empty():
            parts.append(f"{arch.value}: {format_availability_values(values)}")

    if not parts:
        return "no availability"
    return ", ".join(parts)


def format_declaration_type(declaration_type: DeclarationType) -> str:
    return declaration_type.value


def format_location(location: Location) -> str:
    return f"{location.filename}:{location.start.line}:{location.start.column}"


def format_conflict(conflict: AvailabilityConflictError) -> str:
    existing = format_availability_values(conflict.existing)
    incoming = format_availability_values(conflict.incoming)
    return f"{conflict}: [{existing}] vs [{incoming}]"


def dump_database(database: HeaderDatabase) -> str:
    lines: list[str] = []
    for name in sorted(database.symbols):
        symbol = database.symbols[name]
        try:
            summary = format_declaration_availability(symbol.calculate_availability())
        except AvailabilityConflictError as exc:
            summary = f"error: {format_conflict(exc)}"
        lines.append(f"{name} ({format_declaration_type(symbol.declaration_type)}): {summary}")

        for location in sorted(symbol.declarations):
            declaration = symbol.declarations[location]
            flags = []
            if declaration.is_extern:
                flags.append("extern")
            if declaration.is_definition:
                flags.append("definition")
            lines.append(f"  {format_location(location)} [{', '.join(flags)}]")
            for compilation_type in sorted(declaration.availability):
                rendered = format_declaration_availability(
                    declaration.availability[compilation_type]
                )
                lines.append(f"    {format_compilation_type(compilation_type)}: {rendered}")

    return "\n".join(lines)
