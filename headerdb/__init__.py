"""Cross-configuration declaration database for C headers."""

from .database import HeaderDatabase
from .errors import AvailabilityConflictError, HeaderAuthoringError
from .models import (
    Arch,
    AvailabilityValues,
    CompilationType,
    DeclarationAvailability,
    Location,
    Position,
)
from .parser import HeaderParser
from .pipeline import run_matrix
from .symbols import Declaration, Symbol

__all__ = [
    "Arch",
    "AvailabilityConflictError",
    "AvailabilityValues",
    "CompilationType",
    "Declaration",
    "DeclarationAvailability",
    "HeaderAuthoringError",
    "HeaderDatabase",
    "HeaderParser",
    "Location",
    "Position",
    "Symbol",
    "run_matrix",
]
