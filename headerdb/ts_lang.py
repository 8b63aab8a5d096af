"""Tree-sitter language loader helpers."""

from __future__ import annotations

from tree_sitter import Language

from .errors import FrontEndError


def load_c_language() -> Language:
    """Return a Tree-sitter Language object for C."""
    try:
        import tree_sitter_c as tsc
    except ImportError as exc:  # pragma: no cover - import guard
        raise FrontEndError("tree_sitter_c is not installed") from exc
    return Language(tsc.language())
