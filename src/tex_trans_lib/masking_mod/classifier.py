from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from ..config_models import MaskingConfig
from ..constants import DEFINITION_COMMANDS
from ..enums import Decision, PlaceholderKind
from ..nodes import (Argument, Block, Command, Comment, DisplayMath, Group, InlineMath,
                     ParagraphBreak, Text, Verbatim, Whitespace)


@dataclass(frozen=True)
class Classification:
    decision: Decision
    kind: Optional[PlaceholderKind] = None
    # True when the node shape is not one of the known node types
    gap: bool = False


_LITERAL = Classification(Decision.LITERAL)
_INLINE = Classification(Decision.INLINE_SERIALIZE)
_DROP = Classification(Decision.DROP)


def _protect(kind: PlaceholderKind) -> Classification:
    return Classification(Decision.PROTECT, kind)


def classify(node: Any, config: MaskingConfig) -> Classification:
    """
    Decides how the masking walker treats `node`.

    Rules, in priority order:
    - macro definition or command listed in `mask_commands` -> protected as CMD
    - formatting / sectioning command -> protected as FMT_CMD
    - environment listed as math (with display math masking on) or as regular -> protected
    - inline / display math -> protected when the matching switch is on, otherwise written inline
    - comment -> protected when `mask_comments`, otherwise dropped
    - verbatim -> always protected
    - text, whitespace, paragraph breaks -> literal passthrough
    - other commands, environments, groups, arguments -> syntax kept, arguments/content walked
    """
    match node:
        case Command(name=name):
            if name in DEFINITION_COMMANDS or name in config.mask_commands:
                return _protect(PlaceholderKind.CMD)
            if name in config.formatting_commands:
                return _protect(PlaceholderKind.FMT_CMD)
            return _INLINE
        case Block(name=name):
            if name in config.math_environments and config.mask_display_math:
                return _protect(PlaceholderKind.MATH_ENV)
            if name in config.regular_environments:
                return _protect(PlaceholderKind.ENV)
            return _INLINE
        case InlineMath():
            return _protect(PlaceholderKind.IMATH) if config.mask_inline_math else _INLINE
        case DisplayMath():
            return _protect(PlaceholderKind.DMATH) if config.mask_display_math else _INLINE
        case Comment():
            return _protect(PlaceholderKind.COMMENT) if config.mask_comments else _DROP
        case Verbatim():
            return _protect(PlaceholderKind.VERBATIM)
        case Text() | Whitespace() | ParagraphBreak():
            return _LITERAL
        case Group() | Argument():
            return _INLINE
        case list():
            return Classification(Decision.RECURSE)
        case _:
            return _classify_unknown(node)


def opaque_content(node: Any) -> Any:
    """`children` or `content` of a node of unknown shape (None when it has neither)."""
    children = getattr(node, "children", None)
    if children is None:
        children = getattr(node, "content", None)
    return children


def _classify_unknown(node: Any) -> Classification:
    children = opaque_content(node)
    if isinstance(children, list):
        return Classification(Decision.RECURSE, gap=True)
    if isinstance(children, str):
        return Classification(Decision.LITERAL, gap=True)
    return Classification(Decision.DROP, gap=True)
