from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

from loguru import logger

from ..config_models import MaskingConfig
from ..enums import Decision, DiagnosticKind
from ..errors import SessionReuseError
from ..nodes import (Argument, Block, Command, DisplayMath, DocumentTree, Group, InlineMath,
                     Node, ParagraphBreak, Text, Whitespace)
from .classifier import Classification, classify, opaque_content
from .registry import MaskingSession
from .serializer import block_begin, block_end, command_head, report_serialization_failure


@dataclass
class MaskedDocument:
    """Flat, placeholder-bearing text of one file together with its session."""
    text: str
    session: MaskingSession


def _glued_char(text: str, pos: int) -> str:
    if 0 <= pos < len(text) and not text[pos].isspace():
        return text[pos]
    return ""


class MaskingWalker:
    """
    Walks a node forest in document order and writes the text sent to the translator.
    Protected nodes become ` <ph id="..."/> ` (padded with one space on each side),
    everything else is written as text with the LaTeX syntax around it kept literal.
    """

    def __init__(self, config: MaskingConfig, session: MaskingSession):
        self._config = config
        self._session = session

    def mask(self, nodes: Iterable[Node]) -> str:
        if self._session.masked:
            raise SessionReuseError("A masking session can only be used for one document")
        self._session.masked = True
        text = self._walk_nodes(nodes)
        self._record_neighbours(text)
        return text

    def _walk_nodes(self, nodes: Iterable[Any]) -> str:
        return "".join(self._walk(node) for node in nodes)

    def _walk(self, node: Any) -> str:
        classification = classify(node, self._config)
        if classification.gap:
            self._report_gap(node, classification)

        match classification.decision:
            case Decision.PROTECT:
                assert classification.kind is not None
                placeholder_id = self._session.register(classification.kind, node)
                return f" {self._session.token(placeholder_id)} "
            case Decision.LITERAL:
                return self._literal(node)
            case Decision.RECURSE:
                children = node if isinstance(node, list) else opaque_content(node)
                return self._walk_nodes(children)
            case Decision.INLINE_SERIALIZE:
                return self._inline(node)
            case _:
                return ""

    def _literal(self, node: Any) -> str:
        match node:
            case Text(content=content):
                return content
            case Whitespace():
                return " "
            case ParagraphBreak():
                return "\n\n"
            case _:
                content = opaque_content(node)
                return content if isinstance(content, str) else ""

    def _inline(self, node: Any) -> str:
        """Literal syntax of the node around its walked content."""
        match node:
            case Command():
                if not node.name:
                    report_serialization_failure(node, self._session.diagnostics)
                    return ""
                return command_head(node) + self._walk_args(node.args) + node.post_space
            case Block():
                if not node.name:
                    report_serialization_failure(node, self._session.diagnostics)
                    return ""
                return (block_begin(node)
                        + self._walk_args(node.args)
                        + self._walk_nodes(node.children)
                        + block_end(node))
            case InlineMath() | DisplayMath() | Group():
                return node.open_mark + self._walk_nodes(node.children) + node.close_mark
            case Argument():
                return self._walk_arg(node)
            case _:
                return ""

    def _walk_arg(self, arg: Argument) -> str:
        content = arg.content
        inner = content if isinstance(content, str) else self._walk_nodes(content)
        return f"{arg.open_mark}{inner}{arg.close_mark}"

    def _walk_args(self, args: Iterable[Argument]) -> str:
        return "".join(self._walk_arg(a) for a in args)

    def _record_neighbours(self, text: str) -> None:
        """Notes the characters glued to each protected node, past the padding spaces."""
        for match in self._session.token_pattern.finditer(text):
            entry = self._session.registry.get_entry(match.group("id"))
            if entry is None:
                continue
            start, end = match.span()
            entry.left_neighbour = _glued_char(text, start - 2)
            entry.right_neighbour = _glued_char(text, end + 1)

    def _report_gap(self, node: Any, classification: Classification) -> None:
        message = f"Unrecognized node {type(node).__name__}, treated as {classification.decision.value}"
        logger.debug(message)
        self._session.diagnostics.add(DiagnosticKind.CLASSIFICATION_GAP, message)


def mask_document(nodes: Iterable[Node], config: MaskingConfig) -> MaskedDocument:
    """Masks one file with a fresh session."""
    session = MaskingSession(config.token_format)
    text = MaskingWalker(config, session).mask(nodes)
    logger.debug("Masked document: {} placeholders, {} chars", len(session.registry), len(text))
    return MaskedDocument(text, session)


def mask_project(tree: DocumentTree, config: MaskingConfig) -> tuple[list[MaskedDocument], str]:
    """
    Masks every file of a project, each with its own session.
    Also returns the whole project flattened into one text, files separated by a blank line.
    """
    documents = [mask_document(f.nodes, config) for f in tree.ordered_files()]
    flat = "\n\n".join(d.text for d in documents if d.text)
    return documents, flat
