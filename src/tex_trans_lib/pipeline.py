"""
Per-file translation pipeline.

mask -> chunk -> translate chunk by chunk (sequentially) -> join -> validate -> resolve.
A chunk whose translation fails is replaced by its original text, so its
placeholders stay resolvable; the failure is logged and recorded as a diagnostic.
"""
from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional

from loguru import logger
from tenacity import AsyncRetrying, RetryCallState, stop_after_attempt, wait_exponential
from tenacity.wait import wait_base

from .config_models import PipelineConfig, RetryPolicy, TranslationConfig
from .diagnostics import DiagnosticLog
from .enums import DiagnosticKind
from .errors import ChunkTranslationFailed
from .helpers import add_ctex_support
from .masking_mod.chunker import Chunk, join_chunks, split_into_chunks
from .masking_mod.registry import MaskingSession
from .masking_mod.resolver import resolve_placeholders
from .masking_mod.walker import mask_document
from .nodes import Node
from .translator import IdentityTranslator, Translator, build_llm_translator


@dataclass
class FileTranslationResult:
    path: Optional[Path]
    masked_text: str
    translated_text: str
    output: str
    session: MaskingSession
    chunks: list[Chunk] = field(default_factory=list)
    failed_chunks: list[int] = field(default_factory=list)

    @property
    def diagnostics(self) -> DiagnosticLog:
        return self.session.diagnostics

    @property
    def unresolved_ids(self) -> list[str]:
        return self.diagnostics.unresolved_ids


def select_translator(config: PipelineConfig) -> Translator:
    """Identity translator in bypass mode, otherwise the configured LLM."""
    if config.translation.bypass_llm_translation:
        logger.info("LLM translation bypassed, the masked text is used as translation")
        return IdentityTranslator()
    return build_llm_translator(config.llm)


def retry_wait(policy: RetryPolicy) -> wait_base:
    """Exponential backoff: `initial_delay`, doubled after every failure, capped at `max_delay`."""
    return wait_exponential(multiplier=policy.initial_delay, max=policy.max_delay)


async def translate_chunk_with_retry(translator: Translator, chunk: Chunk, config: TranslationConfig) -> str:
    """
    Translates one chunk, trying up to `config.retry.attempts` times.
    Raises ChunkTranslationFailed when every attempt failed.
    """
    policy = config.retry

    def log_retry(retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome is not None else None
        delay = retry_state.next_action.sleep if retry_state.next_action is not None else 0
        logger.warning(f"Chunk {chunk.index + 1}: attempt {retry_state.attempt_number}/{policy.attempts} "
                       f"failed ({error}), retrying in {delay:.1f}s")

    try:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(policy.attempts),
            wait=retry_wait(policy),
            before_sleep=log_retry,
            reraise=True,
        ):
            with attempt:
                translated = await translator.translate(chunk.text, config.target_language, config.source_language)
    except Exception as e:
        raise ChunkTranslationFailed(chunk.text, chunk.index, e) from e
    return translated


async def translate_chunks_async(
    chunks: list[Chunk],
    translator: Translator,
    config: TranslationConfig,
    diagnostics: DiagnosticLog,
    token_pattern: Optional[re.Pattern] = None,
) -> list[str]:
    """
    Translates the chunks one after the other, in order.
    Chunks holding only whitespace and placeholders are not sent to the translator.
    """
    results: list[str] = []
    total = len(chunks)
    called = False
    for chunk in chunks:
        if not chunk.needs_translation(token_pattern):
            results.append(chunk.text)
            continue

        if called:
            # rate limiting of the external API
            await asyncio.sleep(config.inter_chunk_delay)
        called = True

        logger.info(f"Translating chunk {chunk.index + 1}/{total} ({len(chunk.text)} chars)")
        try:
            translated = await translate_chunk_with_retry(translator, chunk, config)
        except ChunkTranslationFailed as e:
            logger.error(f"Translation of chunk {e.index + 1}/{total} failed, keeping the original text: {e.original_exception}")
            diagnostics.add(DiagnosticKind.CHUNK_TRANSLATION_FAILURE, f"{e} {e.original_exception}", chunk_index=e.index)
            translated = chunk.text
        results.append(translated)
    return results


def reconstruct(translated_text: str, session: MaskingSession) -> str:
    """Validates the placeholder counts and puts the protected markup back."""
    return resolve_placeholders(translated_text, session)


async def translate_document_async(
    nodes: Iterable[Node],
    config: PipelineConfig,
    translator: Translator,
    path: Optional[Path] = None,
) -> FileTranslationResult:
    """Runs the whole pipeline for one file, with a fresh masking session."""
    masked = mask_document(nodes, config.masking)
    session = masked.session
    chunks = split_into_chunks(masked.text, config.translation.max_chunk_size, session.token_pattern)
    logger.info(f"{path or 'document'}: {len(session.registry)} placeholders, {len(chunks)} chunk(s)")

    translated_chunks = await translate_chunks_async(
        chunks, translator, config.translation, session.diagnostics, session.token_pattern
    )
    translated_text = join_chunks(chunks, translated_chunks)
    output = reconstruct(translated_text, session)
    if config.translation.add_ctex_package:
        output = add_ctex_support(output)

    for diagnostic in session.diagnostics:
        if diagnostic.path is None:
            diagnostic.path = path
    failed = [d.chunk_index for d in session.diagnostics.of_kind(DiagnosticKind.CHUNK_TRANSLATION_FAILURE)
              if d.chunk_index is not None]
    return FileTranslationResult(path, masked.text, translated_text, output, session, chunks, failed)
