"""
Turns nodes back into LaTeX markup.

This is the inverse of parser_mod.latex for every node kind: serializing a parsed
file reproduces the source text. The functions are pure; the optional
`diagnostics` log only receives serialization failures.
"""
from __future__ import annotations

from typing import Any, Iterable, Optional

from loguru import logger

from ..diagnostics import DiagnosticLog
from ..enums import DiagnosticKind
from ..nodes import (Argument, Block, Command, Comment, DisplayMath, Group, InlineMath,
                     ParagraphBreak, Text, Verbatim, Whitespace)
from .classifier import opaque_content

# superscript / subscript in math mode, written without a backslash
MATH_SCRIPT_MACROS = {"^", "_"}


def command_head(node: Command) -> str:
    """`\\name` part of a command."""
    if node.escape is not None:
        return f"{node.escape}{node.name}"
    if node.name in MATH_SCRIPT_MACROS:
        return node.name
    return f"\\{node.name}"


def begin_marker(name: str) -> str:
    return f"\\begin{{{name}}}"


def end_marker(name: str) -> str:
    return f"\\end{{{name}}}"


def block_begin(node: Block) -> str:
    return node.begin_mark if node.begin_mark is not None else begin_marker(node.name)


def block_end(node: Block) -> str:
    return node.end_mark if node.end_mark is not None else end_marker(node.name)


def report_serialization_failure(node: Any, diagnostics: Optional[DiagnosticLog]) -> None:
    message = f"Cannot determine the name of {type(node).__name__} node, it is dropped from the output"
    logger.warning(message)
    if diagnostics is not None:
        diagnostics.add(DiagnosticKind.SERIALIZATION_FAILURE, message)


def serialize(node: Any, diagnostics: Optional[DiagnosticLog] = None) -> str:
    """Exact markup of a node (or of a list of nodes)."""
    match node:
        case list():
            return serialize_nodes(node, diagnostics)
        case Text(content=content):
            return content
        case Whitespace(raw=raw) | ParagraphBreak(raw=raw):
            return raw
        case Comment(content=content, post_space=post_space):
            return f"%{content}{post_space}"
        case Command():
            if not node.name:
                report_serialization_failure(node, diagnostics)
                return ""
            return command_head(node) + serialize_args(node.args, diagnostics) + node.post_space
        case Block():
            if not node.name:
                report_serialization_failure(node, diagnostics)
                return ""
            return (block_begin(node)
                    + serialize_args(node.args, diagnostics)
                    + serialize_nodes(node.children, diagnostics)
                    + block_end(node))
        case InlineMath() | DisplayMath() | Group():
            return node.open_mark + serialize_nodes(node.children, diagnostics) + node.close_mark
        case Verbatim():
            if not node.name:
                report_serialization_failure(node, diagnostics)
                return ""
            if node.inline:
                return f"\\{node.name}{node.raw}"
            return (begin_marker(node.name)
                    + serialize_args(node.args, diagnostics)
                    + node.raw
                    + end_marker(node.name))
        case Argument():
            return serialize_argument(node, diagnostics)
        case _:
            content = opaque_content(node)
            if isinstance(content, list):
                return serialize_nodes(content, diagnostics)
            if isinstance(content, str):
                return content
            logger.debug("Unknown node {} cannot be serialized", type(node).__name__)
            return ""


def serialize_nodes(nodes: Iterable[Any], diagnostics: Optional[DiagnosticLog] = None) -> str:
    return "".join(serialize(n, diagnostics) for n in nodes)


def serialize_argument(arg: Argument, diagnostics: Optional[DiagnosticLog] = None) -> str:
    content = arg.content
    inner = content if isinstance(content, str) else serialize_nodes(content, diagnostics)
    return f"{arg.open_mark}{inner}{arg.close_mark}"


def serialize_args(args: Iterable[Argument], diagnostics: Optional[DiagnosticLog] = None) -> str:
    return "".join(serialize_argument(a, diagnostics) for a in args)
