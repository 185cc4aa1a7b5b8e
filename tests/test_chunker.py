import pytest

from tex_trans_lib.masking_mod.chunker import Chunk, join_chunks, slice_text, split_into_chunks
from tex_trans_lib.masking_mod.registry import build_token_pattern

TOKEN_PATTERN = build_token_pattern()


def token(n: int) -> str:
    return f'<ph id="IMATH_{n:04d}"/>'


def assert_tokens_intact(chunks):
    for chunk in chunks:
        whole = len(TOKEN_PATTERN.findall(chunk.text))
        assert chunk.text.count("<ph") == whole
        assert chunk.text.count("/>") == whole


def test_small_text_is_one_chunk():
    chunks = split_into_chunks("Hello world.\n\nSecond.", 4000)
    assert [c.text for c in chunks] == ["Hello world.\n\nSecond."]
    assert chunks[0].separator == ""


def test_paragraphs_are_packed_while_they_fit():
    a, b, c = "A" * 10, "B" * 10, "C" * 10
    text = f"{a}\n\n{b}\n\n\n{c}"
    chunks = split_into_chunks(text, 22)
    assert [c.text for c in chunks] == [f"{a}\n\n{b}", c]
    assert chunks[0].separator == "\n\n\n"
    assert join_chunks(chunks) == text


def test_long_unbroken_paragraph_is_sliced():
    text = "a" * 9000
    chunks = split_into_chunks(text, 4000)
    assert len(chunks) >= 3
    assert [len(c.text) for c in chunks] == [4000, 4000, 1000]
    assert join_chunks(chunks) == text


def test_long_paragraph_is_split_on_sentences():
    text = "Lorem ipsum dolor sit amet. " * 330 + "The end."
    assert len(text) > 9000
    chunks = split_into_chunks(text, 4000)
    assert len(chunks) >= 3
    assert all(len(c.text) <= 4000 for c in chunks)
    assert all(c.text.endswith(".") for c in chunks)
    assert join_chunks(chunks) == text


@pytest.mark.parametrize("max_size", [5, 7, 13, 21, 22, 50, 101, 4000])
def test_slicing_never_cuts_a_token(max_size):
    text = "".join(f"word{i} {token(i)} " for i in range(1, 200))
    chunks = split_into_chunks(text, max_size)
    assert_tokens_intact(chunks)
    assert join_chunks(chunks) == text


def test_oversized_slices_only_for_tokens():
    text = "ab " + token(1) + " cd"
    slices = slice_text(text, 10, TOKEN_PATTERN)
    assert "".join(slices) == text
    assert slices[0] == "ab "
    assert slices[1] == token(1)


def test_identity_join_with_replacements():
    chunks = split_into_chunks("one.\n\ntwo.", 5)
    assert join_chunks(chunks, [c.text.upper() for c in chunks]) == "ONE.\n\nTWO."
    with pytest.raises(ValueError):
        join_chunks(chunks, ["only one"])


def test_needs_translation():
    assert not Chunk(0, f" {token(1)}  {token(2)} ").needs_translation(TOKEN_PATTERN)
    assert not Chunk(0, " \n ").needs_translation()
    assert Chunk(0, f"See {token(1)}.").needs_translation()


def test_invalid_size():
    with pytest.raises(ValueError):
        split_into_chunks("text", 0)
