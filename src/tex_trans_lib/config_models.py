from __future__ import annotations

import os
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .constants import (
    DEFAULT_MAX_CHUNK_SIZE,
    DEFAULT_OUTPUT_DIR,
    DEFAULT_TARGET_LANGUAGE,
    DEFAULT_TOKEN_FORMAT,
    INTER_CHUNK_DELAY_SECONDS,
    LLM_API_KEY_ENV,
)
from .helpers import split_token_format

DEFAULT_REGULAR_ENVIRONMENTS = [
    "figure", "table", "algorithm", "enumerate", "itemize", "tabular", "lstlisting",
]
DEFAULT_MATH_ENVIRONMENTS = [
    "equation", "align", "gather", "multline", "eqnarray", "matrix", "pmatrix",
    "bmatrix", "array", "aligned", "cases", "split",
]
DEFAULT_MASK_COMMANDS = [
    "ref", "cite", "eqref", "includegraphics", "url", "label", "textit", "textbf",
    "texttt", "emph", "href", "caption", "footnote", "item",
]
# Wrapped as a whole even when they are not listed in mask_commands
DEFAULT_FORMATTING_COMMANDS = [
    "textbf", "textit", "texttt", "textrm", "textsc", "emph", "underline", "textcolor",
    "chapter", "section", "subsection", "subsubsection", "paragraph", "subparagraph",
]


class _CamelModel(BaseModel):
    """Accepts both snake_case and camelCase keys (the latter is what config files use)."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MaskingConfig(_CamelModel):
    """Options consumed by the node classifier and the masking walker."""
    regular_environments: set[str] = Field(default_factory=lambda: set(DEFAULT_REGULAR_ENVIRONMENTS))
    math_environments: set[str] = Field(default_factory=lambda: set(DEFAULT_MATH_ENVIRONMENTS))
    mask_commands: set[str] = Field(default_factory=lambda: set(DEFAULT_MASK_COMMANDS))
    formatting_commands: set[str] = Field(default_factory=lambda: set(DEFAULT_FORMATTING_COMMANDS))
    mask_inline_math: bool = True
    mask_display_math: bool = True
    mask_comments: bool = False
    # kept for compatibility with old config files, tokens are tags now
    mask_prefix: str = "MASK_"
    token_format: str = DEFAULT_TOKEN_FORMAT

    @field_validator("token_format")
    @classmethod
    def _check_token_format(cls, value: str) -> str:
        split_token_format(value)
        return value


class RetryPolicy(_CamelModel):
    """How often a failing chunk translation is attempted before falling back to the source text."""
    attempts: int = Field(default=1, ge=1)
    initial_delay: float = Field(default=1.0, ge=0)
    max_delay: float = Field(default=30.0, ge=0)


class TranslationConfig(_CamelModel):
    target_language: str = DEFAULT_TARGET_LANGUAGE
    source_language: Optional[str] = None
    max_chunk_size: int = Field(default=DEFAULT_MAX_CHUNK_SIZE, gt=0)
    inter_chunk_delay: float = Field(default=INTER_CHUNK_DELAY_SECONDS, ge=0)
    retry: RetryPolicy = Field(default_factory=RetryPolicy)
    bypass_llm_translation: bool = False
    add_ctex_package: bool = False


class LLMConfig(_CamelModel):
    service: str = "google"
    model: str = "gemini-2.0-flash"
    api_key: Optional[str] = None

    def get_api_key(self) -> str:
        if self.api_key:
            return self.api_key
        return os.getenv(LLM_API_KEY_ENV, "")


class PipelineConfig(_CamelModel):
    """Top level configuration, one JSON file."""
    masking: MaskingConfig = Field(default_factory=MaskingConfig)
    translation: TranslationConfig = Field(default_factory=TranslationConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    output_dir: str = DEFAULT_OUTPUT_DIR
    save_intermediate_files: bool = True
