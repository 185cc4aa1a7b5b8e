from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass
from typing import Any, Iterator, Optional

from ..constants import DEFAULT_TOKEN_FORMAT, ID_COUNTER_WIDTH, ID_PATTERN
from ..diagnostics import DiagnosticLog
from ..enums import PlaceholderKind
from ..helpers import split_token_format
from ..nodes import Node
from .serializer import serialize

# Tolerates spacing changes a translator may introduce inside the tag
_DEFAULT_TOKEN_RE = re.compile(r'<ph\s+id\s*=\s*"(?P<id>' + ID_PATTERN + r')"\s*/>')


def build_token_pattern(token_format: str = DEFAULT_TOKEN_FORMAT) -> re.Pattern[str]:
    """Regex matching one placeholder token written with `token_format`."""
    if token_format == DEFAULT_TOKEN_FORMAT:
        return _DEFAULT_TOKEN_RE
    before, after = split_token_format(token_format)
    return re.compile(re.escape(before) + f"(?P<id>{ID_PATTERN})" + re.escape(after))


@dataclass
class PlaceholderEntry:
    """
    `left_neighbour`/`right_neighbour` hold the source character directly touching
    the protected node on that side, empty when whitespace or nothing was there.
    """
    id: str
    kind: PlaceholderKind
    original_node: Node
    left_neighbour: str = ""
    right_neighbour: str = ""


class PlaceholderRegistry:
    """
    Maps generated ids to the protected subtrees they replace.
    Counters are kept per kind and start at zero, so the first inline math id is IMATH_0001.
    Ids are never reused, even after `discard`.
    """

    def __init__(self) -> None:
        self._entries: dict[str, PlaceholderEntry] = {}
        self._counters: Counter[str] = Counter()

    def register(self, kind: PlaceholderKind, node: Node) -> str:
        self._counters[kind.value] += 1
        placeholder_id = f"{kind.value}_{self._counters[kind.value]:0{ID_COUNTER_WIDTH}d}"
        self._entries[placeholder_id] = PlaceholderEntry(placeholder_id, kind, node)
        return placeholder_id

    def resolve(self, placeholder_id: str) -> Optional[Node]:
        entry = self._entries.get(placeholder_id)
        if entry is None:
            return None
        return entry.original_node

    def get_entry(self, placeholder_id: str) -> Optional[PlaceholderEntry]:
        return self._entries.get(placeholder_id)

    def discard(self, kind: PlaceholderKind) -> None:
        """Forgets every entry of `kind`; the counter keeps running."""
        self._entries = {k: v for k, v in self._entries.items() if v.kind != kind}

    def ids(self) -> list[str]:
        """Ids in registration order."""
        return list(self._entries)

    def to_json_dict(self) -> dict[str, dict[str, Any]]:
        """
        Inspection format of the map: `{id: {"id": id, "originalContent": markup}}`.
        """
        return {
            entry.id: {"id": entry.id, "originalContent": serialize(entry.original_node)}
            for entry in self._entries.values()
        }

    def __contains__(self, placeholder_id: object) -> bool:
        return placeholder_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[PlaceholderEntry]:
        return iter(self._entries.values())


class MaskingSession:
    """
    Per-file state of the masking pipeline: the registry, the token format and the
    diagnostics. Create one for every file and drop it after reconstruction.
    """

    def __init__(self, token_format: str = DEFAULT_TOKEN_FORMAT) -> None:
        self.registry = PlaceholderRegistry()
        self.diagnostics = DiagnosticLog()
        self.token_format = token_format
        self.token_pattern = build_token_pattern(token_format)
        self.masked = False

    def register(self, kind: PlaceholderKind, node: Node) -> str:
        return self.registry.register(kind, node)

    def token(self, placeholder_id: str) -> str:
        return self.token_format.replace("{id}", placeholder_id)
