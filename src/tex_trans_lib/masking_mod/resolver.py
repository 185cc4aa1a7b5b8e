"""
Puts the original markup back in place of the placeholder tokens of translated text.
"""
from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass, field

from loguru import logger

from ..diagnostics import DiagnosticLog
from ..enums import DiagnosticKind
from .registry import MaskingSession
from .serializer import serialize

_WORD_RE = re.compile(r"\w")


@dataclass
class TokenCountReport:
    expected: int
    found: int
    missing: list[str] = field(default_factory=list)
    unexpected: list[str] = field(default_factory=list)
    duplicated: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not (self.missing or self.unexpected or self.duplicated)


def _is_word_char(text: str, pos: int) -> bool:
    return 0 <= pos < len(text) and bool(_WORD_RE.match(text[pos]))


def _drop_padding(text: str, beyond: int, glued: str) -> bool:
    """
    A padding space goes away unless a word character lies beyond it that was not
    glued to the node in the source.
    """
    if not _is_word_char(text, beyond):
        return True
    return text[beyond] == glued


class PlaceholderResolver:
    """
    Replaces every token found in a text with the serialized node it stands for.

    The masking walker pads tokens with one space on each side. Resolution drops
    that padding again unless dropping it would glue the markup to a word
    character it did not touch in the source, so an untouched masked text
    resolves to the source markup.
    """

    def __init__(self, session: MaskingSession):
        self._session = session

    @property
    def diagnostics(self) -> DiagnosticLog:
        return self._session.diagnostics

    def validate(self, text: str) -> TokenCountReport:
        """Counts expected against found tokens before resolution."""
        expected = self._session.registry.ids()
        found = [m.group("id") for m in self._session.token_pattern.finditer(text)]
        counts = Counter(found)

        report = TokenCountReport(
            expected=len(expected),
            found=len(found),
            missing=[i for i in expected if i not in counts],
            unexpected=[i for i in counts if i not in self._session.registry],
            duplicated=[i for i, n in counts.items() if n > 1],
        )
        if not report.ok:
            message = (f"Placeholder count mismatch: expected {report.expected}, found {report.found}"
                       f" (missing: {report.missing}, unexpected: {report.unexpected},"
                       f" duplicated: {report.duplicated})")
            logger.warning(message)
            self.diagnostics.add(DiagnosticKind.PLACEHOLDER_COUNT_MISMATCH, message)
        return report

    def resolve(self, text: str) -> str:
        """Single pass over the text; unknown ids are left as they are and reported."""
        out: list[str] = []
        cursor = 0
        for match in self._session.token_pattern.finditer(text):
            start, end = match.span()
            placeholder_id = match.group("id")
            entry = self._session.registry.get_entry(placeholder_id)
            if entry is None:
                message = f"Unresolved placeholder {placeholder_id}, token left in the output"
                logger.warning(message)
                self.diagnostics.add(DiagnosticKind.UNRESOLVED_PLACEHOLDER, message, placeholder_id=placeholder_id)
                continue

            left = start
            if left - 1 >= cursor and text[left - 1] == " " and _drop_padding(text, left - 2, entry.left_neighbour):
                left -= 1
            right = end
            if text[right:right + 1] == " " and _drop_padding(text, right + 1, entry.right_neighbour):
                right += 1

            out.append(text[cursor:left])
            out.append(serialize(entry.original_node, self.diagnostics))
            cursor = right
        out.append(text[cursor:])
        return "".join(out)


def resolve_placeholders(text: str, session: MaskingSession) -> str:
    """Validates the token counts, then resolves."""
    resolver = PlaceholderResolver(session)
    resolver.validate(text)
    return resolver.resolve(text)
