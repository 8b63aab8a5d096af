"""The shared header database."""

from __future__ import annotations

import logging
import threading

from .decls import TranslationUnit
from .errors import AvailabilityConflictError
from .models import CompilationType
from .symbols import Symbol
from .visitor import DeclarationVisitor

logger = logging.getLogger(__name__)


class HeaderDatabase:
    """Map from symbol name to Symbol, filled by one ingest() per parse.

    ingest() may be called from several threads. Queries are meant to run once
    every ingest() has returned and take no lock.
    """

    def __init__(self) -> None:
        self.symbols: dict[str, Symbol] = {}
        self._lock = threading.Lock()

    def __contains__(self, name: object) -> bool:
        return name in self.symbols

    def __getitem__(self, name: str) -> Symbol:
        return self.symbols[name]

    def __len__(self) -> int:
        return len(self.symbols)

    def ingest(self, compilation_type: CompilationType, unit: TranslationUnit) -> None:
        with self._lock:
            logger.info("Ingesting %s for %s", unit.filename, compilation_type)
            DeclarationVisitor(self, compilation_type).traverse(unit)

    def find_conflicts(self) -> dict[str, AvailabilityConflictError]:
        conflicts: dict[str, AvailabilityConflictError] = {}
        for name in sorted(self.symbols):
            try:
                self.symbols[name].calculate_availability()
            except AvailabilityConflictError as exc:
                logger.warning("%s", exc)
                conflicts[name] = exc
        return conflicts
