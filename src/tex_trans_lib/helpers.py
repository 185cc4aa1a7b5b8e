import re
from pathlib import Path

from .constants import CTEX_PACKAGE_LINE, ID_PATTERN, TEX_EXTENSIONS

_DOCUMENTCLASS_RE = re.compile(r"^[ \t]*\\documentclass", re.M)
_USEPACKAGE_RE = re.compile(r"^[ \t]*\\usepackage(\[[^\]]*\])?\{[^}]*\}.*$", re.M)
_DOCUMENTCLASS_LINE_RE = re.compile(r"^[ \t]*\\documentclass(\[[^\]]*\])?\{[^}]*\}.*$", re.M)
_CTEX_PRESENT_RE = re.compile(r"\\usepackage(\[[^\]]*\])?\{[^}]*\bctex\b[^}]*\}|\\documentclass(\[[^\]]*\])?\{ctex")
_ID_RE = re.compile(ID_PATTERN)


def is_tex_file(path: Path) -> bool:
    return path.suffix.lower() in TEX_EXTENSIONS


def has_documentclass(contents: str) -> bool:
    """True when a line of the file starts with \\documentclass."""
    return _DOCUMENTCLASS_RE.search(contents) is not None


def get_relative_path(path: Path, root: Path) -> Path:
    """`path` relative to `root`; for a single input file (path == root) its name."""
    if path == root:
        return Path(path.name)
    return path.relative_to(root)


def safe_identifier(relative_path: Path) -> str:
    """
    File identifier for intermediate artefacts: the relative path with
    separators replaced by `_` (`chapters/intro.tex` -> `chapters_intro.tex`).
    """
    return "_".join(relative_path.parts)


def split_token_format(token_format: str) -> tuple[str, str]:
    """
    Text before and after `{id}` in a placeholder token format.
    Both parts must be non-empty and must not look like a placeholder id themselves.
    """
    if token_format.count("{id}") != 1:
        raise ValueError(f"Token format {token_format!r} must contain {{id}} exactly once")
    before, after = token_format.split("{id}")
    if not before or not after:
        raise ValueError(f"Token format {token_format!r} needs text on both sides of {{id}}")
    if _ID_RE.search(before) or _ID_RE.search(after):
        raise ValueError(f"Token format {token_format!r} contains a placeholder id")
    return before, after


def add_ctex_support(contents: str) -> str:
    """
    Adds `\\usepackage[UTF8]{ctex}` so that CJK output compiles.
    The line goes after the last \\usepackage, or after \\documentclass when there is none.
    Files without \\documentclass, or already using ctex, are returned unchanged.
    """
    if not has_documentclass(contents) or _CTEX_PRESENT_RE.search(contents):
        return contents

    packages = list(_USEPACKAGE_RE.finditer(contents))
    anchor = packages[-1] if packages else _DOCUMENTCLASS_LINE_RE.search(contents)
    if anchor is None:
        return contents
    return contents[:anchor.end()] + "\n" + CTEX_PACKAGE_LINE + contents[anchor.end():]


def extract_translated_from_response(message: str) -> str:
    """
    Takes a text and returns the content written within all <output>...</output> tags.
    Concatenates content from multiple <output> tags if present.
    A response without any <output> tag is returned as is.
    """
    if "<output>" not in message:
        return message

    res_list = []
    current_pos = 0
    while True:
        start_idx = message.find("<output>", current_pos)
        if start_idx == -1:
            break
        start_idx += len("<output>")

        end_idx = message.find("</output>", start_idx)
        if end_idx == -1:  # unterminated tag, take the rest
            segment = message[start_idx:]
            if segment.startswith("\n"):
                segment = segment[1:]
            res_list.append(segment)
            break

        segment = message[start_idx:end_idx]
        if segment.startswith("\n"):
            segment = segment[1:]
        if segment.endswith("\n"):
            segment = segment[:-1]
        res_list.append(segment)
        current_pos = end_idx + len("</output>")

    return "".join(res_list)
