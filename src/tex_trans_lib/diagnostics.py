from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional

from .enums import DiagnosticKind


@dataclass
class Diagnostic:
    """A non-fatal problem met while masking, translating or reconstructing a file."""
    kind: DiagnosticKind
    message: str
    placeholder_id: Optional[str] = None
    chunk_index: Optional[int] = None
    path: Optional[Path] = None

    def __str__(self) -> str:
        return f"[{self.kind.value}] {self.message}"


class DiagnosticLog:
    """Collects diagnostics of one masking session (or one project run)."""

    def __init__(self) -> None:
        self._items: list[Diagnostic] = []

    def add(
        self,
        kind: DiagnosticKind,
        message: str,
        placeholder_id: Optional[str] = None,
        chunk_index: Optional[int] = None,
        path: Optional[Path] = None,
    ) -> Diagnostic:
        diagnostic = Diagnostic(kind, message, placeholder_id, chunk_index, path)
        self._items.append(diagnostic)
        return diagnostic

    def extend(self, other: "DiagnosticLog") -> None:
        self._items.extend(other)

    def of_kind(self, kind: DiagnosticKind) -> list[Diagnostic]:
        return [d for d in self._items if d.kind == kind]

    @property
    def unresolved_ids(self) -> list[str]:
        return [d.placeholder_id for d in self.of_kind(DiagnosticKind.UNRESOLVED_PLACEHOLDER) if d.placeholder_id]

    def __iter__(self) -> Iterator[Diagnostic]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)
