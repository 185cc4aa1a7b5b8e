from abc import ABC, abstractmethod
from typing import Optional

from loguru import logger
from unified_model_caller.core import LLMCaller

from .config_models import LLMConfig
from .errors import TranslationProcessError
from .helpers import extract_translated_from_response
from .prompts import masked_latex_prompt, source_language_hint


class Translator(ABC):
    """Translates one chunk of placeholder-bearing text."""

    @abstractmethod
    async def translate(self, text: str, target_language: str, source_language: Optional[str] = None) -> str:
        pass


class IdentityTranslator(Translator):
    """Returns the text unchanged (used when LLM translation is bypassed)."""

    async def translate(self, text: str, target_language: str, source_language: Optional[str] = None) -> str:
        return text


def get_default_prompt_text() -> str:
    """Returns the default prompt"""
    return masked_latex_prompt


def _prepare_prompt_for_language(prompt_template: str, target_language: str, source_language: Optional[str] = None) -> str:
    """Replaces the language placeholders in the prompt."""
    hint = ""
    if source_language:
        hint = source_language_hint.replace("[SOURCE_LANGUAGE]", source_language)
    return prompt_template.replace("[SOURCE_LANGUAGE_HINT]", hint).replace("[TARGET_LANGUAGE]", target_language)


def finalize_prompt(prompt: str, contents_to_translate: str) -> str:
    return f"{prompt}\n<document>\n{contents_to_translate}\n</document>"


class LLMTranslator(Translator):
    """Asks a language model (through unified_model_caller) for the translation."""

    def __init__(self, caller: LLMCaller, prompt_template: Optional[str] = None):
        self._caller = caller
        self._prompt_template = prompt_template if prompt_template is not None else get_default_prompt_text()

    async def translate(self, text: str, target_language: str, source_language: Optional[str] = None) -> str:
        prompt = _prepare_prompt_for_language(self._prompt_template, target_language, source_language)
        message = finalize_prompt(prompt, text)
        try:
            response = self._caller.call(message)
        except Exception as e:
            logger.error(f"Error communicating with the LLM: {e}")
            raise TranslationProcessError(f"LLM call failed: {e}", original_exception=e)

        response = response or ""
        logger.debug("Model response received ({} chars).", len(response))
        return extract_translated_from_response(response)


def build_llm_translator(config: LLMConfig) -> LLMTranslator:
    api_key = config.get_api_key()
    if not api_key:
        logger.warning("No API key configured (LLM_API_KEY is not set). Translation will fail.")
    return LLMTranslator(LLMCaller(config.service, config.model, api_key))
