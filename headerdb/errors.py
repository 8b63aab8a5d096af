"""Exception types raised while building and reducing the declaration database."""

from __future__ import annotations

from typing import Any


class HeaderDbError(RuntimeError):
    pass


class HeaderAuthoringError(HeaderDbError):
    """A header defect that leaves the database untrustworthy.

    These are raised from ingestion and are meant to end the run.
    """

    def __init__(self, message: str, symbol: str, location: Any = None) -> None:
        super().__init__(message)
        self.symbol = symbol
        self.location = location


class TentativeDefinitionError(HeaderAuthoringError):
    def __init__(self, symbol: str, location: Any = None, dump: str | None = None) -> None:
        super().__init__(f"declaration '{symbol}' is a tentative definition", symbol, location)
        self.dump = dump


class VaryingDeclarationError(HeaderAuthoringError):
    def __init__(self, symbol: str, location: Any) -> None:
        where = f"{location.filename}:{location.start.line}:{location.start.column}"
        super().__init__(f"varying declaration of '{symbol}' at {where}", symbol, location)


class InvalidAnnotationError(HeaderAuthoringError):
    def __init__(self, symbol: str, annotation: str, location: Any = None) -> None:
        super().__init__(
            f"invalid __ANDROID_AVAILABILITY_DUMP__ annotation: '{annotation}'",
            symbol,
            location,
        )
        self.annotation = annotation


class AvailabilityConflictError(HeaderDbError):
    """Two non-empty availability values disagree for the same slot."""

    def __init__(self, slot: str, existing: Any, incoming: Any, name: str | None = None) -> None:
        message = f"conflicting {slot} availability"
        if name:
            message = f"{message} for '{name}'"
        super().__init__(message)
        self.slot = slot
        self.existing = existing
        self.incoming = incoming
        self.name = name

    def with_name(self, name: str) -> "AvailabilityConflictError":
        return AvailabilityConflictError(self.slot, self.existing, self.incoming, name=name)


class FrontEndError(HeaderDbError):
    pass
