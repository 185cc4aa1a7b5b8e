"""
Document node types.

The tree is produced by a parser (see parser_mod.latex) and is only read by the
masking pipeline. Every node keeps the exact source characters it needs so that
serializing a parsed tree gives back the original markup.
"""
from __future__ import annotations

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Union


@dataclass
class Text:
    content: str


@dataclass
class Whitespace:
    raw: str = " "


@dataclass
class ParagraphBreak:
    raw: str = "\n\n"


@dataclass
class Comment:
    """`%` comment, `content` excludes the percent sign."""
    content: str
    post_space: str = "\n"


@dataclass
class Argument:
    """
    Argument of a command or environment.
    `open_mark`/`close_mark` are kept verbatim (they may be `[`/`]`, empty, or carry leading spaces).
    """
    open_mark: str
    close_mark: str
    content: Union[list["Node"], str] = field(default_factory=list)


@dataclass
class Command:
    """
    A macro call. `escape` is None for the usual backslash form; the math scripts
    `^` and `_` are then written without it.
    """
    name: str
    args: list[Argument] = field(default_factory=list)
    post_space: str = ""
    escape: str | None = None


@dataclass
class Block:
    """
    `\\begin{name}...\\end{name}`, both regular and math environments.
    `begin_mark`/`end_mark` keep the markers as written in the source (`\\end {name}`);
    when None they are generated from the name.
    """
    name: str
    args: list[Argument] = field(default_factory=list)
    children: list["Node"] = field(default_factory=list)
    begin_mark: str | None = None
    end_mark: str | None = None


@dataclass
class InlineMath:
    children: list["Node"] = field(default_factory=list)
    open_mark: str = "$"
    close_mark: str = "$"


@dataclass
class DisplayMath:
    children: list["Node"] = field(default_factory=list)
    open_mark: str = "\\["
    close_mark: str = "\\]"


@dataclass
class Verbatim:
    """
    Verbatim environment or, with `inline` set, a `\\verb` command.
    For `\\verb|x|` the name is `verb` and `raw` is `|x|`.
    """
    name: str
    args: list[Argument] = field(default_factory=list)
    raw: str = ""
    inline: bool = False


@dataclass
class Group:
    children: list["Node"] = field(default_factory=list)
    open_mark: str = "{"
    close_mark: str = "}"


Node = Union[Text, Whitespace, ParagraphBreak, Comment, Command, Block,
             InlineMath, DisplayMath, Verbatim, Group, Argument]

NODE_TYPES = (Text, Whitespace, ParagraphBreak, Comment, Command, Block,
              InlineMath, DisplayMath, Verbatim, Group, Argument)


@dataclass
class FileNodes:
    """Node forest of a single file."""
    path: Path
    nodes: list[Node]


@dataclass
class DocumentTree:
    """Parser output: one forest per file plus the designated root file, if any."""
    files: list[FileNodes] = field(default_factory=list)
    root_file: Path | None = None
    errors: list[tuple[Path, Exception]] = field(default_factory=list)

    def ordered_files(self) -> list[FileNodes]:
        """Files in processing order: root file first, then the others as discovered."""
        if self.root_file is None:
            return list(self.files)
        root = [f for f in self.files if f.path == self.root_file]
        rest = [f for f in self.files if f.path != self.root_file]
        return root + rest


def node_to_dict(node: Any) -> Any:
    """JSON friendly form of a node (used for the AST dumps)."""
    if isinstance(node, list):
        return [node_to_dict(n) for n in node]
    if isinstance(node, NODE_TYPES):
        res: dict[str, Any] = {"type": type(node).__name__}
        for f in fields(node):
            res[f.name] = node_to_dict(getattr(node, f.name))
        return res
    return node


def tree_to_dict(tree: DocumentTree) -> dict[str, Any]:
    return {
        "rootFile": str(tree.root_file) if tree.root_file is not None else None,
        "files": [
            {"path": str(f.path), "nodes": node_to_dict(f.nodes)}
            for f in tree.files
        ],
        "errors": [{"path": str(p), "error": str(e)} for p, e in tree.errors],
    }
