"""Declarations of one symbol across locations and compilation types."""

from __future__ import annotations

from dataclasses import dataclass, field

from .errors import AvailabilityConflictError
from .models import CompilationType, DeclarationAvailability, DeclarationType, Location


@dataclass
class Declaration:
    name: str
    location: Location
    type: DeclarationType
    is_extern: bool
    is_definition: bool
    availability: dict[CompilationType, DeclarationAvailability] = field(default_factory=dict)

    def calculate_availability(self) -> DeclarationAvailability:
        result = DeclarationAvailability()
        for compilation_type in sorted(self.availability):
            try:
                result.merge(self.availability[compilation_type])
            except AvailabilityConflictError as exc:
                raise exc.with_name(self.name) from exc
        return result


@dataclass
class Symbol:
    name: str
    declarations: dict[Location, Declaration] = field(default_factory=dict)

    def calculate_availability(self) -> DeclarationAvailability:
        result = DeclarationAvailability()
        for location in sorted(self.declarations):
            declaration = self.declarations[location]
            # Inline definitions in headers don't carry availability of their own.
            if declaration.is_definition:
                continue
            decl_availability = declaration.calculate_availability()
            try:
                result.merge(decl_availability)
            except AvailabilityConflictError as exc:
                raise exc.with_name(self.name) from exc
        return result

    def has_declaration(self, compilation_type: CompilationType) -> bool:
        return any(
            compilation_type in declaration.availability
            for declaration in self.declarations.values()
        )

    @property
    def declaration_type(self) -> DeclarationType:
        types = {declaration.type for declaration in self.declarations.values()}
        if len(types) == 1:
            return types.pop()
        return DeclarationType.INCONSISTENT
