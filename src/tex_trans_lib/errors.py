from pathlib import Path
from typing import Optional

# Base Exception
class DocumentTranslationError(Exception):
    """Base exception for the LaTeX translation tool."""
    pass

# Config Errors
class ConfigError(DocumentTranslationError):
    """Base exception for configuration errors."""
    pass

class LoadConfigError(ConfigError):
    """Errors related to loading the configuration."""
    def __init__(self, message: str, original_exception: Optional[Exception] = None):
        super().__init__(message)
        self.original_exception = original_exception

class WriteConfigError(ConfigError):
    """Errors related to writing the configuration."""
    def __init__(self, message: str, original_exception: Optional[Exception] = None):
        super().__init__(message)
        self.original_exception = original_exception

# Parsing
class ParseError(DocumentTranslationError):
    """The LaTeX source could not be read or turned into a node tree."""
    def __init__(self, message: str, path: Optional[Path] = None, original_exception: Optional[Exception] = None):
        super().__init__(message)
        self.path = path
        self.original_exception = original_exception

# Masking
class MaskingError(DocumentTranslationError):
    """Errors of the masking stage."""
    pass

class SessionReuseError(MaskingError):
    """A masking session was handed a second document."""
    pass

# Translation
class TranslateFileError(DocumentTranslationError):
    """Errors during file translation."""
    pass

class TranslationProcessError(TranslateFileError):
    """Generic error during the translation API call or processing."""
    def __init__(self, message: str, original_exception: Optional[Exception] = None):
        super().__init__(message)
        self.original_exception = original_exception

class ChunkTranslationFailed(TranslateFileError):
    """Signals that a chunk could not be translated and should be left unchanged."""

    def __init__(self, chunk: str, index: int, original_exception: Optional[Exception] = None):
        super().__init__(f"Translation of chunk {index + 1} failed.")
        self.chunk = chunk
        self.index = index
        self.original_exception = original_exception

# Project
class ProjectTranslationError(DocumentTranslationError):
    """Errors of the file/directory level orchestration."""
    pass

class InputPathError(ProjectTranslationError, FileNotFoundError):
    """The input file or directory does not exist."""
    pass

class CopyFileDirError(ProjectTranslationError):
    """Errors during file/directory copying."""
    def __init__(self, message: str, original_exception: Optional[Exception] = None):
        super().__init__(message)
        self.original_exception = original_exception
