import re
from dataclasses import dataclass
from typing import Iterator, Optional

from loguru import logger

from ..constants import DEFAULT_MAX_CHUNK_SIZE
from .registry import build_token_pattern

_PARAGRAPH_SPLIT_RE = re.compile(r"(\n\s*\n)")
_SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?])(\s+)")


@dataclass
class Chunk:
    """
    One piece of the masked text, in order.
    `separator` is the text that followed the chunk in the source (blank lines,
    sentence spacing or nothing); `text + separator` over all chunks is the input.
    """
    index: int
    text: str
    separator: str = ""

    def needs_translation(self, token_pattern: Optional[re.Pattern] = None) -> bool:
        """False for chunks made only of whitespace and placeholder tokens."""
        pattern = token_pattern or build_token_pattern()
        return bool(pattern.sub("", self.text).strip())


def _split_keep_separators(text: str, splitter: re.Pattern) -> list[tuple[str, str]]:
    """[(piece, separator_after_piece), ...]; the last separator is empty."""
    parts = splitter.split(text)
    pieces = parts[0::2]
    separators = parts[1::2] + [""]
    return list(zip(pieces, separators))


def _accumulate(pieces: list[tuple[str, str]], max_chunk_size: int) -> Iterator[tuple[str, str, bool]]:
    """
    Greedily packs consecutive pieces while the packed text fits in `max_chunk_size`.
    Yields (text, separator, oversized): `oversized` marks a single piece that is
    larger than the limit on its own.
    """
    current = ""
    pending_sep = ""
    for piece, sep in pieces:
        if not current and not pending_sep:
            current = piece
        elif len(current) + len(pending_sep) + len(piece) <= max_chunk_size:
            current = current + pending_sep + piece
        else:
            yield current, pending_sep, len(current) > max_chunk_size
            current = piece
        pending_sep = sep
    yield current, pending_sep, len(current) > max_chunk_size


def _slice_boundaries(text: str, max_chunk_size: int, token_pattern: re.Pattern) -> list[int]:
    """
    Cut positions for fixed size slicing, moved off placeholder tokens:
    a cut inside a token goes to the token start, or to its end when the start
    would give an empty slice.
    """
    spans = [m.span() for m in token_pattern.finditer(text)]
    cuts = []
    start = 0
    while len(text) - start > max_chunk_size:
        cut = start + max_chunk_size
        for tok_start, tok_end in spans:
            if tok_start < cut < tok_end:
                cut = tok_start if tok_start > start else tok_end
                break
        cuts.append(cut)
        start = cut
    return cuts


def slice_text(text: str, max_chunk_size: int, token_pattern: Optional[re.Pattern] = None) -> list[str]:
    """Last resort split of a single oversized sentence."""
    pattern = token_pattern or build_token_pattern()
    bounds = [0] + _slice_boundaries(text, max_chunk_size, pattern) + [len(text)]
    return [text[a:b] for a, b in zip(bounds, bounds[1:])]


def split_into_chunks(text: str, max_chunk_size: int = DEFAULT_MAX_CHUNK_SIZE,
                      token_pattern: Optional[re.Pattern] = None) -> list[Chunk]:
    """
    Splits masked text into ordered chunks of at most `max_chunk_size` characters.

    Paragraphs (split on blank lines) are packed together while they fit; an
    oversized paragraph is split into sentences, packed the same way; an
    oversized sentence is sliced at fixed boundaries that never cut through a
    placeholder token. Slices may exceed the limit only when a single token does.
    """
    if max_chunk_size <= 0:
        raise ValueError("max_chunk_size must be positive")
    pattern = token_pattern or build_token_pattern()

    raw: list[tuple[str, str]] = []
    paragraphs = _split_keep_separators(text, _PARAGRAPH_SPLIT_RE)
    for packed, sep, oversized in _accumulate(paragraphs, max_chunk_size):
        if not oversized:
            raw.append((packed, sep))
            continue
        sentences = _split_keep_separators(packed, _SENTENCE_SPLIT_RE)
        sentence_chunks = list(_accumulate(sentences, max_chunk_size))
        for i, (s_packed, s_sep, s_oversized) in enumerate(sentence_chunks):
            # the paragraph separator belongs after the last sentence chunk
            if i == len(sentence_chunks) - 1:
                s_sep = sep
            if not s_oversized:
                raw.append((s_packed, s_sep))
                continue
            logger.debug("Slicing a sentence of {} chars at fixed boundaries", len(s_packed))
            slices = slice_text(s_packed, max_chunk_size, pattern)
            for j, piece in enumerate(slices):
                raw.append((piece, s_sep if j == len(slices) - 1 else ""))

    chunks = [Chunk(i, t, s) for i, (t, s) in enumerate(raw)]
    logger.debug("Split {} chars into {} chunks (max {})", len(text), len(chunks), max_chunk_size)
    return chunks


def join_chunks(chunks: list[Chunk], texts: Optional[list[str]] = None) -> str:
    """
    Joins chunks back with their separators. When `texts` is given it replaces
    the chunk contents (e.g. with their translations) one by one.
    """
    if texts is None:
        texts = [c.text for c in chunks]
    if len(texts) != len(chunks):
        raise ValueError(f"Expected {len(chunks)} texts, got {len(texts)}")
    return "".join(t + c.separator for t, c in zip(texts, chunks))
