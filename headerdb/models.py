"""Value types shared by the declaration database."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum

from .errors import AvailabilityConflictError


class Arch(str, Enum):
    ARM = "arm"
    ARM64 = "arm64"
    MIPS = "mips"
    MIPS64 = "mips64"
    X86 = "x86"
    X86_64 = "x86_64"

    def __str__(self) -> str:
        return self.value

    @property
    def is_64bit(self) -> bool:
        return self in (Arch.ARM64, Arch.MIPS64, Arch.X86_64)


SUPPORTED_ARCHS: tuple[Arch, ...] = tuple(Arch)


class DeclarationType(str, Enum):
    FUNCTION = "function"
    VARIABLE = "variable"
    INCONSISTENT = "inconsistent"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, order=True)
class CompilationType:
    arch: Arch
    api_level: int


@dataclass(frozen=True, order=True)
class Position:
    line: int
    column: int


@dataclass(frozen=True, order=True)
class Location:
    filename: str
    start: Position
    end: Position


@dataclass
class AvailabilityValues:
    """Introduced/deprecated/obsoleted API levels; 0 means unset."""

    introduced: int = 0
    deprecated: int = 0
    obsoleted: int = 0
    future: bool = False

    def empty(self) -> bool:
        return not (self.introduced or self.deprecated or self.obsoleted or self.future)


def _all_archs() -> dict[Arch, AvailabilityValues]:
    return {arch: AvailabilityValues() for arch in SUPPORTED_ARCHS}


@dataclass
class DeclarationAvailability:
    global_availability: AvailabilityValues = field(default_factory=AvailabilityValues)
    arch_availability: dict[Arch, AvailabilityValues] = field(default_factory=_all_archs)

    def empty(self) -> bool:
        if not self.global_availability.empty():
            return False
        return all(values.empty() for values in self.arch_availability.values())

    def merge(self, other: DeclarationAvailability) -> None:
        """Fold ``other`` into this record in place.

        A slot takes the other record's value whenever that value is non-empty.
        If the slot already held a different non-empty value the merge still
        completes every other slot, then raises AvailabilityConflictError for
        the first slot that disagreed (global first, then architecture order).
        """
        conflicts: list[AvailabilityConflictError] = []

        if not other.global_availability.empty():
            current = self.global_availability
            if not current.empty() and current != other.global_availability:
                conflicts.append(
                    AvailabilityConflictError("global", current, other.global_availability)
                )
            self.global_availability = replace(other.global_availability)

        for arch in SUPPORTED_ARCHS:
            incoming = other.arch_availability.get(arch)
            if incoming is None or incoming.empty():
                continue
            current = self.arch_availability.setdefault(arch, AvailabilityValues())
            if not current.empty() and current != incoming:
                conflicts.append(AvailabilityConflictError(arch.value, current, incoming))
            self.arch_availability[arch] = replace(incoming)

        if conflicts:
            raise conflicts[0]

    def copy(self) -> DeclarationAvailability:
        return DeclarationAvailability(
            global_availability=replace(self.global_availability),
            arch_availability={
                arch: replace(values) for arch, values in self.arch_availability.items()
            },
        )
