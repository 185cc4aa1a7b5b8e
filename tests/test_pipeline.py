import asyncio
from types import SimpleNamespace

import pytest
from tenacity import wait_none

from tex_trans_lib import pipeline
from tex_trans_lib.config_models import PipelineConfig, RetryPolicy
from tex_trans_lib.enums import DiagnosticKind
from tex_trans_lib.errors import ChunkTranslationFailed
from tex_trans_lib.masking_mod.chunker import Chunk
from tex_trans_lib.nodes import InlineMath, ParagraphBreak, Text
from tex_trans_lib.parser_mod.latex import LatexDocumentParser
from tex_trans_lib.pipeline import (retry_wait, select_translator, translate_chunk_with_retry,
                                    translate_document_async)
from tex_trans_lib.translator import IdentityTranslator, Translator


class RecordingTranslator(Translator):
    """Prefixes every chunk with `T:` and raises for chunks containing FAIL."""

    def __init__(self):
        self.calls: list[str] = []

    async def translate(self, text, target_language, source_language=None):
        self.calls.append(text)
        if "FAIL" in text:
            raise RuntimeError("model overloaded")
        return "T:" + text


class WordTranslator(Translator):
    async def translate(self, text, target_language, source_language=None):
        return text.replace("Hello", "Bonjour").replace("world", "monde")


class FlakyTranslator(Translator):
    def __init__(self, failures: int):
        self.failures = failures
        self.calls = 0

    async def translate(self, text, target_language, source_language=None):
        self.calls += 1
        if self.calls <= self.failures:
            raise RuntimeError("try again")
        return text.upper()


def make_config(**translation) -> PipelineConfig:
    config = PipelineConfig()
    config.translation.inter_chunk_delay = 0
    for key, value in translation.items():
        setattr(config.translation, key, value)
    return config


def hello_nodes():
    return [Text("Hello "), InlineMath([Text("x+y=1")]), Text(" world.")]


def test_identity_round_trip():
    result = asyncio.run(translate_document_async(hello_nodes(), make_config(), IdentityTranslator()))
    assert result.masked_text == 'Hello  <ph id="IMATH_0001"/>  world.'
    assert result.output == "Hello $x+y=1$ world."
    assert not result.diagnostics


def test_translated_prose_keeps_protected_markup():
    result = asyncio.run(translate_document_async(hello_nodes(), make_config(), WordTranslator()))
    assert result.output == "Bonjour $x+y=1$ monde."


def test_identity_round_trip_from_source():
    src = "Hello $x+y=1$ world.\n\nSee \\ref{fig:a}, \\cite{knuth}; and $y$."
    nodes = LatexDocumentParser().parse_string(src)
    result = asyncio.run(translate_document_async(nodes, make_config(), IdentityTranslator()))
    assert result.output == src
    assert not result.unresolved_ids


def test_failing_chunk_keeps_original_text():
    nodes = [Text("First paragraph."), ParagraphBreak(),
             Text("FAIL here "), InlineMath([Text("x")]), Text("."), ParagraphBreak(),
             Text("Third paragraph.")]
    translator = RecordingTranslator()
    result = asyncio.run(translate_document_async(nodes, make_config(max_chunk_size=40), translator))

    assert len(result.chunks) == 3
    assert len(translator.calls) == 3
    assert result.output == "T:First paragraph.\n\nFAIL here $x$.\n\nT:Third paragraph."
    assert result.failed_chunks == [1]
    failures = result.diagnostics.of_kind(DiagnosticKind.CHUNK_TRANSLATION_FAILURE)
    assert len(failures) == 1
    assert failures[0].chunk_index == 1


def test_placeholder_only_chunks_are_not_sent():
    nodes = [Text("Text."), ParagraphBreak(), InlineMath([Text("x")]), ParagraphBreak(), Text("More.")]
    translator = RecordingTranslator()
    result = asyncio.run(translate_document_async(nodes, make_config(max_chunk_size=10), translator))
    assert translator.calls == ["Text.", "More."]
    assert result.output == "T:Text.\n\n$x$\n\nT:More."


def test_delay_between_chunks(monkeypatch):
    delays = []

    async def fake_sleep(seconds):
        delays.append(seconds)

    monkeypatch.setattr(pipeline.asyncio, "sleep", fake_sleep)
    nodes = [Text("One."), ParagraphBreak(), Text("Two."), ParagraphBreak(), Text("Three.")]
    asyncio.run(translate_document_async(nodes, make_config(max_chunk_size=6, inter_chunk_delay=0.5),
                                         RecordingTranslator()))
    assert delays == [0.5, 0.5]


def test_retry_until_success(monkeypatch):
    monkeypatch.setattr(pipeline, "retry_wait", lambda policy: wait_none())
    config = make_config(retry=RetryPolicy(attempts=3, initial_delay=1.0, max_delay=30.0))
    translator = FlakyTranslator(failures=2)
    res = asyncio.run(translate_chunk_with_retry(translator, Chunk(0, "abc"), config.translation))
    assert res == "ABC"
    assert translator.calls == 3


def test_retry_gives_up(monkeypatch):
    monkeypatch.setattr(pipeline, "retry_wait", lambda policy: wait_none())
    config = make_config(retry=RetryPolicy(attempts=2, initial_delay=0))
    translator = FlakyTranslator(failures=5)
    with pytest.raises(ChunkTranslationFailed) as exc_info:
        asyncio.run(translate_chunk_with_retry(translator, Chunk(4, "abc"), config.translation))
    assert translator.calls == 2
    assert exc_info.value.index == 4
    assert exc_info.value.chunk == "abc"
    assert isinstance(exc_info.value.original_exception, RuntimeError)


def test_single_attempt_by_default():
    translator = FlakyTranslator(failures=1)
    with pytest.raises(ChunkTranslationFailed):
        asyncio.run(translate_chunk_with_retry(translator, Chunk(0, "abc"), make_config().translation))
    assert translator.calls == 1


def test_retry_wait_is_capped():
    wait = retry_wait(RetryPolicy(attempts=5, initial_delay=1.0, max_delay=5.0))
    assert [wait(SimpleNamespace(attempt_number=n)) for n in (1, 2, 3, 4)] == [1.0, 2.0, 4.0, 5.0]


def test_ctex_is_added_on_request():
    nodes = [Text("\\documentclass{article}\nHello")]
    result = asyncio.run(translate_document_async(nodes, make_config(add_ctex_package=True), IdentityTranslator()))
    assert result.output == "\\documentclass{article}\n\\usepackage[UTF8]{ctex}\nHello"


def test_bypass_selects_identity_translator():
    config = make_config(bypass_llm_translation=True)
    assert isinstance(select_translator(config), IdentityTranslator)
