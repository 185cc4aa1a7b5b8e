import re
from pathlib import Path
from typing import Any, Optional

from loguru import logger
from pylatexenc.latexwalker import (LatexCharsNode, LatexCommentNode, LatexEnvironmentNode,
                                    LatexGroupNode, LatexMacroNode, LatexMathNode, LatexSpecialsNode,
                                    LatexWalker, get_default_latex_context_db)
from pylatexenc.macrospec import EnvironmentSpec, MacroSpec

from ..constants import DEFINITION_COMMANDS, VERBATIM_ENVIRONMENTS
from ..errors import ParseError
from ..nodes import (Argument, Block, Command, Comment, DisplayMath, Group, InlineMath, Node,
                     ParagraphBreak, Text, Verbatim, Whitespace)
from ..storage import LocalStorage, Storage

# Argument specs of macros whose arguments matter for masking
MACRO_ARGSPECS = {
    "ref": "{", "eqref": "{", "label": "{", "url": "{",
    "cite": "[{", "includegraphics": "[{", "caption": "[{", "footnote": "[{",
    "href": "{{",
    "textcolor": "[{{",
    "underline": "{",
    "item": "[",
    "chapter": "*[{", "section": "*[{", "subsection": "*[{", "subsubsection": "*[{",
    "paragraph": "*[{", "subparagraph": "*[{",
}

ENVIRONMENT_ARGSPECS = {
    "figure": "[", "figure*": "[", "table": "[", "table*": "[",
    "tabular": "{",
}

# Verbatim-like environments, cut out of the source before pylatexenc sees it
_VERBATIM_ENV_RE = re.compile(
    r"\\begin\{(" + "|".join(re.escape(e) for e in VERBATIM_ENVIRONMENTS) + r")\}(.*?)\\end\{\1\}", re.S
)
_VERB_RE = re.compile(r"\\verb(\*?)([^a-zA-Z\s*])(.*?)\2")
# Options / language argument right after \begin{...} of these environments
_VERBATIM_ARG_RE = re.compile(r"\[[^\]\n]*\]|\{[^}\n]*\}")
_ENVS_WITH_VERBATIM_ARGS = {"lstlisting", "minted", "Verbatim"}

# Macro definitions are cut out too: their bodies hold unbalanced \begin/\end
_DEFINITION_RE = re.compile(r"\\(" + "|".join(DEFINITION_COMMANDS) + r")(?![a-zA-Z@])(\*?)")
# Number of brace arguments (the name included) of each definition command
_DEFINITION_BRACE_ARGS = {"newenvironment": 3, "renewenvironment": 3}
_DEFINITION_ARG_GAP_RE = re.compile(r"[ \t]*\n?[ \t]*")
_CONTROL_SEQUENCE_RE = re.compile(r"\\(?:[a-zA-Z@]+|.)", re.S)

_SENTINEL_RE = re.compile("\ue000(\\d+)\ue001")
_PARAGRAPH_BREAK_RE = re.compile(r"(\n[ \t]*\n\s*)")


def _sentinel(i: int) -> str:
    return f"\ue000{i}\ue001"


def _end_marker_re(name: str) -> re.Pattern[str]:
    return re.compile(r"\\end\s*\{\s*" + re.escape(name) + r"\s*\}")


def _build_latex_context() -> Any:
    db = get_default_latex_context_db()
    db.add_context_category(
        "tex-trans-lib",
        macros=[MacroSpec(name, argspec) for name, argspec in MACRO_ARGSPECS.items()],
        environments=[EnvironmentSpec(name, argspec) for name, argspec in ENVIRONMENT_ARGSPECS.items()],
        prepend=True,
    )
    return db


_LATEX_CONTEXT = _build_latex_context()


class _Converter:
    """
    Turns a pylatexenc node list into our node types.
    Source characters between nodes are kept as text, so serializing the
    result gives back the exact source.
    """

    def __init__(self, src: str, cut_nodes: list[Node], originals: list[str]):
        self.src = src
        self.cut_nodes = cut_nodes
        self.originals = originals

    def restore(self, s: str) -> str:
        """Puts the cut-out source text back into a plain string."""
        return _SENTINEL_RE.sub(lambda m: self.originals[int(m.group(1))], s)

    def text_nodes(self, s: str) -> list[Node]:
        res: list[Node] = []
        for i, part in enumerate(_SENTINEL_RE.split(s)):
            if i % 2 == 1:
                res.append(self.cut_nodes[int(part)])
                continue
            for j, piece in enumerate(_PARAGRAPH_BREAK_RE.split(part)):
                if not piece:
                    continue
                if j % 2 == 1:
                    res.append(ParagraphBreak(piece))
                elif not piece.strip():
                    res.append(Whitespace(piece))
                else:
                    res.append(Text(piece))
        return res

    def convert_nodelist(self, nodelist: Optional[list[Any]], start: int, end: int) -> list[Node]:
        res: list[Node] = []
        cursor = start
        for node in nodelist or []:
            if node is None or node.pos + node.len <= cursor:
                continue
            if node.pos > cursor:
                res.extend(self.text_nodes(self.src[cursor:node.pos]))
            converted, node_end = self.convert(node)
            res.extend(converted)
            cursor = max(cursor, node_end)
        if end > cursor:
            res.extend(self.text_nodes(self.src[cursor:end]))
        return res

    def convert(self, node: Any) -> tuple[list[Node], int]:
        """Converted node(s) and the source position right after the node."""
        end = node.pos + node.len
        if node.isNodeType(LatexCharsNode):
            return self.text_nodes(self.src[node.pos:end]), end
        if node.isNodeType(LatexCommentNode):
            post_space = self.src[node.pos + 1 + len(node.comment):end]
            return [Comment(self.restore(node.comment), post_space)], end
        if node.isNodeType(LatexMacroNode):
            return self._convert_macro(node)
        if node.isNodeType(LatexEnvironmentNode):
            return self._convert_environment(node)
        if node.isNodeType(LatexMathNode):
            return self._convert_math(node), end
        if node.isNodeType(LatexGroupNode):
            return self._convert_group(node), end
        if node.isNodeType(LatexSpecialsNode):
            end = max(end, self._args_end(node))
            return self.text_nodes(self.src[node.pos:end]), end
        logger.debug("Unhandled pylatexenc node {}, kept as text", type(node).__name__)
        return self.text_nodes(self.src[node.pos:end]), end

    def _args_end(self, node: Any) -> int:
        argnlist = node.nodeargd.argnlist if node.nodeargd is not None else []
        ends = [a.pos + a.len for a in argnlist if a is not None]
        return max(ends, default=node.pos + node.len)

    def _closed_by(self, node: Any, open_delim: str, close_delim: str) -> bool:
        """
        True when the node's source really ends with `close_delim`.
        In tolerant mode pylatexenc closes unterminated groups and math itself.
        """
        inner = self.src[node.pos + len(open_delim):node.pos + node.len]
        return inner.endswith(close_delim)

    def _unclosed(self, node: Any, open_delim: str) -> list[Node]:
        """Opening delimiter kept as text, followed by the content up to the node end."""
        logger.debug("{} at offset {} is never closed, kept without a closing delimiter", open_delim, node.pos)
        return (self.text_nodes(self.src[node.pos:node.pos + len(open_delim)])
                + self.convert_nodelist(node.nodelist, node.pos + len(open_delim), node.pos + node.len))

    def _convert_group(self, node: Any) -> list[Node]:
        open_delim, close_delim = node.delimiters
        if not self._closed_by(node, open_delim, close_delim):
            return self._unclosed(node, open_delim)
        children = self.convert_nodelist(node.nodelist, node.pos + len(open_delim),
                                         node.pos + node.len - len(close_delim))
        return [Group(children, open_delim, close_delim)]

    def _convert_group_arg(self, group: Any, gap: str) -> Argument:
        open_delim, close_delim = group.delimiters
        if not self._closed_by(group, open_delim, close_delim):
            close_delim = ""
        inner_start = group.pos + len(open_delim)
        inner_end = group.pos + group.len - len(close_delim)
        return Argument(gap + open_delim, close_delim,
                        self.convert_nodelist(group.nodelist, inner_start, inner_end))

    def _convert_args(self, node: Any, cursor: int) -> tuple[list[Argument], int]:
        args: list[Argument] = []
        argnlist = node.nodeargd.argnlist if node.nodeargd is not None else []
        for argnode in argnlist:
            if argnode is None:
                continue
            gap = self.src[cursor:argnode.pos] if argnode.pos >= cursor else ""
            arg_end = argnode.pos + argnode.len
            if argnode.isNodeType(LatexGroupNode):
                args.append(self._convert_group_arg(argnode, gap))
            elif argnode.isNodeType(LatexCharsNode):
                args.append(Argument(gap, "", self.restore(self.src[argnode.pos:arg_end])))
            else:
                converted, arg_end = self.convert(argnode)
                args.append(Argument(gap, "", converted))
            cursor = max(cursor, arg_end)
        return args, cursor

    def _convert_macro(self, node: Any) -> tuple[list[Node], int]:
        cursor = node.pos + 1 + len(node.macroname)
        args, cursor = self._convert_args(node, cursor)
        end = max(node.pos + node.len, cursor)
        return [Command(node.macroname, args, self.src[cursor:end], escape="\\")], end

    def _convert_environment(self, node: Any) -> tuple[list[Node], int]:
        name = node.environmentname
        end = max(node.pos + node.len, self._args_end(node))
        header = re.compile(r"\\begin\s*\{\s*" + re.escape(name) + r"\s*\}").match(self.src, node.pos)
        if header is None:
            logger.debug("Cannot locate \\begin{{{}}}, environment kept as text", name)
            return self.text_nodes(self.src[node.pos:end]), end
        args, body_start = self._convert_args(node, header.end())
        closers = list(_end_marker_re(name).finditer(self.src, body_start, end))
        closer = closers[-1] if closers else None
        if closer is None or closer.end() != end:
            logger.debug("\\begin{{{}}} is never closed, kept without an \\end", name)
            return (self.text_nodes(self.src[node.pos:body_start])
                    + self.convert_nodelist(node.nodelist, body_start, end)), end
        children = self.convert_nodelist(node.nodelist, body_start, closer.start())
        return [Block(name, args, children, begin_mark=header.group(0), end_mark=closer.group(0))], end

    def _convert_math(self, node: Any) -> list[Node]:
        open_delim, close_delim = node.delimiters
        if not self._closed_by(node, open_delim, close_delim):
            return self._unclosed(node, open_delim)
        children = self.convert_nodelist(node.nodelist, node.pos + len(open_delim),
                                         node.pos + node.len - len(close_delim))
        if node.displaytype == "inline":
            return [InlineMath(children, open_delim, close_delim)]
        return [DisplayMath(children, open_delim, close_delim)]


def _verbatim_env_args(name: str, body: str) -> tuple[list[Argument], str]:
    args: list[Argument] = []
    if name not in _ENVS_WITH_VERBATIM_ARGS:
        return args, body
    while True:
        m = _VERBATIM_ARG_RE.match(body)
        if m is None:
            return args, body
        token = m.group(0)
        args.append(Argument(token[0], token[-1], token[1:-1]))
        body = body[m.end():]


def extract_verbatim(src: str) -> tuple[str, list[Verbatim], list[str]]:
    """
    Cuts verbatim environments and \\verb commands out of the source.
    Each one is replaced by a private-use sentinel; returns the processed text,
    the verbatim nodes and their original source text (both indexed by sentinel number).
    """
    verbatims: list[Verbatim] = []
    originals: list[str] = []

    def collect_env(m: re.Match) -> str:
        name = m.group(1)
        args, raw = _verbatim_env_args(name, m.group(2))
        verbatims.append(Verbatim(name, args, raw))
        originals.append(m.group(0))
        return _sentinel(len(verbatims) - 1)

    def collect_verb(m: re.Match) -> str:
        star, delim, body = m.group(1), m.group(2), m.group(3)
        verbatims.append(Verbatim("verb" + star, [], f"{delim}{body}{delim}", inline=True))
        originals.append(m.group(0))
        return _sentinel(len(verbatims) - 1)

    processed = _VERBATIM_ENV_RE.sub(collect_env, src)
    processed = _VERB_RE.sub(collect_verb, processed)
    return processed, verbatims, originals


def _balanced_end(src: str, start: int, open_char: str, close_char: str) -> int:
    """Position right after the delimiter closing the one at `start`, -1 when it is never closed."""
    depth = 0
    i = start
    while i < len(src):
        c = src[i]
        if c == "\\":
            i += 2
            continue
        if c == open_char:
            depth += 1
        elif c == close_char:
            depth -= 1
            if depth == 0:
                return i + 1
        i += 1
    return -1


def _definition_args(src: str, pos: int, brace_args: int) -> Optional[tuple[list[Argument], int]]:
    """
    Raw arguments of a macro definition starting at `pos`: `[...]` options and
    `brace_args` brace groups (`\\newcommand\\foo{...}` counts the bare name as one).
    None when the definition is incomplete.
    """
    args: list[Argument] = []
    found = 0
    while found < brace_args:
        arg_start = _DEFINITION_ARG_GAP_RE.match(src, pos).end()
        gap = src[pos:arg_start]
        c = src[arg_start:arg_start + 1]
        if c in ("{", "["):
            close_char = "}" if c == "{" else "]"
            arg_end = _balanced_end(src, arg_start, c, close_char)
            if arg_end == -1:
                return None
            args.append(Argument(gap + c, close_char, src[arg_start + 1:arg_end - 1]))
            found += c == "{"
        elif c == "\\" and not found and arg_start + 1 < len(src):
            name = _CONTROL_SEQUENCE_RE.match(src, arg_start)
            arg_end = name.end()
            args.append(Argument(gap, "", name.group(0)))
            found += 1
        else:
            return None
        pos = arg_end
    return args, pos


def extract_definitions(src: str, cut_nodes: list[Node], originals: list[str]) -> str:
    """
    Cuts `\\newcommand`, `\\newenvironment` and the like out of the source, the same
    way as extract_verbatim. The definitions become Command nodes with raw string
    arguments, appended to `cut_nodes`/`originals`.
    """
    def restore(s: str) -> str:
        return _SENTINEL_RE.sub(lambda m: originals[int(m.group(1))], s)

    out: list[str] = []
    cursor = 0
    for m in _DEFINITION_RE.finditer(src):
        if m.start() < cursor:
            continue
        name, star = m.group(1), m.group(2)
        parsed = _definition_args(src, m.end(), _DEFINITION_BRACE_ARGS.get(name, 2))
        if parsed is None:
            logger.debug("Incomplete \\{} definition at offset {}, left to the parser", name, m.start())
            continue
        args, end = parsed
        args = [Argument(a.open_mark, a.close_mark, restore(a.content)) for a in args]
        if star:
            args.insert(0, Argument(star, ""))
        cut_nodes.append(Command(name, args))
        originals.append(restore(src[m.start():end]))
        out.append(src[cursor:m.start()])
        out.append(_sentinel(len(cut_nodes) - 1))
        cursor = end
    out.append(src[cursor:])
    return "".join(out)


class LatexDocumentParser:
    """Parses LaTeX source into the node types of `tex_trans_lib.nodes`."""

    def __init__(self, storage: Optional[Storage] = None):
        self._storage = storage if storage is not None else LocalStorage()

    def parse_string(self, src: str, path: Optional[Path] = None) -> list[Node]:
        processed, verbatims, originals = extract_verbatim(src)
        cut_nodes: list[Node] = list(verbatims)
        processed = extract_definitions(processed, cut_nodes, originals)
        try:
            walker = LatexWalker(processed, latex_context=_LATEX_CONTEXT, tolerant_parsing=True)
            nodelist, _, _ = walker.get_latex_nodes()
            converter = _Converter(processed, cut_nodes, originals)
            nodes = converter.convert_nodelist(nodelist, 0, len(processed))
        except Exception as e:
            raise ParseError(f"Could not parse LaTeX source {path or ''}: {e}", path=path, original_exception=e) from e
        logger.debug("Parsed {} top level nodes ({} verbatim blocks)", len(nodes), len(verbatims))
        return nodes

    def parse_file(self, path: Path) -> list[Node]:
        try:
            src = self._storage.read_text(path)
        except (OSError, UnicodeDecodeError) as e:
            raise ParseError(f"Could not read {path}: {e}", path=path, original_exception=e) from e
        return self.parse_string(src, path)
