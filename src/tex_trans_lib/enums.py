import enum


class Decision(str, enum.Enum):
    """What the masking walker does with a node."""
    PROTECT = "protect"
    INLINE_SERIALIZE = "inline_serialize"
    RECURSE = "recurse"
    LITERAL = "literal"
    DROP = "drop"


class PlaceholderKind(str, enum.Enum):
    """
    Prefix of a placeholder id, e.g. IMATH in IMATH_0003
    """
    CMD = "CMD"
    FMT_CMD = "FMT_CMD"
    ENV = "ENV"
    MATH_ENV = "MATH_ENV"
    IMATH = "IMATH"
    DMATH = "DMATH"
    COMMENT = "COMMENT"
    VERBATIM = "VERBATIM"

    def __str__(self) -> str:
        return self.value


class DiagnosticKind(str, enum.Enum):
    CLASSIFICATION_GAP = "classification_gap"
    SERIALIZATION_FAILURE = "serialization_failure"
    CHUNK_TRANSLATION_FAILURE = "chunk_translation_failure"
    UNRESOLVED_PLACEHOLDER = "unresolved_placeholder"
    PLACEHOLDER_COUNT_MISMATCH = "placeholder_count_mismatch"
    FILE_FAILURE = "file_failure"
